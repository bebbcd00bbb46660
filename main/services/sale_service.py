import logging
from decimal import Decimal

from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from main.models import Product, Sale
from stock.services import (
    AutoProductionService, NotFoundError, ValidationError,
    parse_quantity, to_date, to_decimal,
)

logger = logging.getLogger(__name__)

SALE_FIELDS = ('date', 'bill_no', 'party_name', 'product_id', 'quantity', 'unit', 'conversion_factor', 'bill_value')


class SaleService:
    """Sale records. Every write goes through the stock ledger in the same transaction."""

    @staticmethod
    def serialize(sale):
        return {
            'id': sale.id,
            'date': sale.date.isoformat(),
            'bill_no': sale.bill_no,
            'party_name': sale.party_name,
            'product_id': sale.product_id,
            'product_name': sale.product.name,
            'quantity': str(sale.quantity),
            'unit': sale.unit,
            'conversion_factor': str(sale.conversion_factor),
            'bill_value': str(sale.bill_value),
            'created_at': sale.created_at.isoformat(),
        }

    @staticmethod
    def get_sale(sale_id):
        try:
            return Sale.objects.select_related('product').get(id=sale_id)
        except (Sale.DoesNotExist, ValueError, TypeError):
            raise NotFoundError('Sale', sale_id)

    @staticmethod
    def get_all_sales(page=1, per_page=20, search=None, product_id=None, start_date=None, end_date=None):
        queryset = Sale.objects.select_related('product')

        if search:
            queryset = queryset.filter(Q(bill_no__icontains=search) | Q(party_name__icontains=search))
        if product_id:
            queryset = queryset.filter(product_id=product_id)
        if start_date:
            queryset = queryset.filter(date__gte=to_date(start_date, 'start_date'))
        if end_date:
            queryset = queryset.filter(date__lte=to_date(end_date, 'end_date'))

        paginator = Paginator(queryset, per_page)
        page_obj = paginator.get_page(page)

        return {
            'sales': [SaleService.serialize(s) for s in page_obj.object_list],
            'pagination': {
                'current_page': page_obj.number,
                'total_pages': paginator.num_pages,
                'total_sales': paginator.count,
                'per_page': per_page,
                'has_next': page_obj.has_next(),
                'has_previous': page_obj.has_previous(),
            },
        }

    @staticmethod
    def _apply(sale, data):
        for field in SALE_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if field == 'date':
                value = to_date(value, default=timezone.localdate())
            elif field == 'product_id':
                if not Product.objects.filter(id=value).exists():
                    raise NotFoundError('Product', value)
            elif field == 'quantity':
                value = parse_quantity(value)
            elif field == 'conversion_factor':
                value = to_decimal(value, Decimal('1'))
                if value <= 0:
                    raise ValidationError('conversion_factor must be greater than 0', 'conversion_factor')
            elif field == 'bill_value':
                value = to_decimal(value)
            elif value is None:
                value = ''
            setattr(sale, field, value)

        if sale.date is None:
            sale.date = timezone.localdate()

    @staticmethod
    @transaction.atomic
    def create_sale(**data):
        missing = [field for field in ('product_id', 'quantity') if data.get(field) in (None, '')]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing[0])

        sale = Sale()
        SaleService._apply(sale, data)
        sale.save()
        sale = SaleService.get_sale(sale.id)

        stock = AutoProductionService.process_sale(sale)
        logger.info('Created sale %s (%s x %s)', sale.id, sale.product.name, sale.quantity)

        return {'success': True, 'sale': SaleService.serialize(sale), 'stock': stock, 'message': 'Sale created'}

    @staticmethod
    @transaction.atomic
    def update_sale(sale_id, **data):
        sale = SaleService.get_sale(sale_id)
        SaleService._apply(sale, data)
        sale.save()
        sale = SaleService.get_sale(sale.id)

        stock = AutoProductionService.process_sale(sale, is_edit=True)
        return {'success': True, 'sale': SaleService.serialize(sale), 'stock': stock, 'message': 'Sale updated'}

    @staticmethod
    @transaction.atomic
    def delete_sale(sale_id):
        sale = SaleService.get_sale(sale_id)
        deleted = AutoProductionService.remove_sale(sale.id)
        sale.delete()

        logger.info('Deleted sale %s and %s ledger rows', sale_id, deleted)
        return {'success': True, 'deleted_entries': deleted, 'message': 'Sale deleted'}
