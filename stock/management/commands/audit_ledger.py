"""
Stock ledger integrity check

Usage:
    python manage.py audit_ledger                 # Report orphans and missing rows
    python manage.py audit_ledger --repair        # Delete orphans, back-fill missing rows
    python manage.py audit_ledger --production    # Compare auto-production with formulas
"""

from django.core.management.base import BaseCommand

from stock.services import LedgerAuditService


class Command(BaseCommand):
    help = 'Audit the stock ledger against sales, purchases and production logs'

    def add_arguments(self, parser):
        parser.add_argument('--repair', action='store_true', help='Apply the repair instead of reporting')
        parser.add_argument('--production', action='store_true', help='Audit auto-production consumption')
        parser.add_argument('--product', type=int, metavar='PRODUCT_ID', help='Limit the production audit')
        parser.add_argument('--limit', type=int, default=20, help='Production events to audit')

    def handle(self, *args, **options):
        if options['production']:
            self.production_audit(options['product'], options['limit'])
        elif options['repair']:
            self.repair()
        else:
            self.report()

    def report(self):
        result = LedgerAuditService.report()

        if result['is_clean']:
            self.stdout.write(self.style.SUCCESS('Ledger is consistent'))
            return

        self.stdout.write(self.style.WARNING(f"Orphaned rows: {len(result['orphans'])}"))
        for row in result['orphans']:
            self.stdout.write(
                f"  #{row['id']} {row['date']} {row['transaction_type']} "
                f"{row['product_name']} related_id={row['related_id']} (missing {row['missing']})"
            )

        self.stdout.write(self.style.WARNING(f"Sales without a ledger row: {len(result['missing_sales'])}"))
        for sale in result['missing_sales']:
            self.stdout.write(f"  sale #{sale['id']} {sale['date']} {sale['product__name']}")

        self.stdout.write(self.style.WARNING(f"Purchases without a ledger row: {len(result['missing_purchases'])}"))
        for purchase in result['missing_purchases']:
            self.stdout.write(f"  purchase #{purchase['id']} {purchase['date']} {purchase['product__name']}")

        self.stdout.write('\nRun with --repair to fix.')

    def repair(self):
        result = LedgerAuditService.repair(dry_run=False)
        self.stdout.write(self.style.SUCCESS(
            f"Deleted {result['orphans_deleted']} orphaned rows, "
            f"back-filled {result['sales_backfilled']} sales and {result['purchases_backfilled']} purchases"
        ))

    def production_audit(self, product_id, limit):
        result = LedgerAuditService.production_audit(product_id=product_id, limit=limit)

        for production in result['productions']:
            style = self.style.SUCCESS if production['matches'] else self.style.ERROR
            self.stdout.write(style(
                f"{production['date']} {production['product_name']} x {production['quantity']} "
                f"(sale #{production['sale_id']})"
            ))
            for ingredient in production['ingredients']:
                marker = 'ok' if ingredient['matches'] else 'MISMATCH'
                self.stdout.write(
                    f"    {ingredient['ingredient']}: recorded {ingredient['recorded']}, "
                    f"expected {ingredient['expected']} [{marker}]"
                )

        self.stdout.write(f"\n{result['count']} audited, {result['mismatches']} mismatched")
