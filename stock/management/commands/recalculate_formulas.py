from django.core.management.base import BaseCommand, CommandError

from stock.services import RecalculationService, ServiceError


class Command(BaseCommand):
    help = 'Rebuild recorded production inputs from the current formulas'

    def add_arguments(self, parser):
        parser.add_argument('--product', type=int, metavar='PRODUCT_ID', help='Only this finished good')

    def handle(self, *args, **options):
        try:
            if options['product']:
                results = [RecalculationService.recalculate(options['product'])]
            else:
                results = RecalculationService.recalculate_all()['products']
        except ServiceError as e:
            raise CommandError(e.message)

        for result in results:
            self.stdout.write(
                f"{result['product_name']}: {result['events']} production events, "
                f"{result['rows_written']} input rows"
            )
        self.stdout.write(self.style.SUCCESS(f"Recalculated {len(results)} products"))
