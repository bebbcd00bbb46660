import logging
from decimal import Decimal

from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from main.models import Product, Purchase
from stock.models import StockLedger
from stock.services import (
    NotFoundError, ValidationError, StockLedgerService,
    parse_quantity, round_decimal, to_date, to_decimal,
)

logger = logging.getLogger(__name__)

PURCHASE_FIELDS = ('date', 'bill_no', 'party_name', 'product_id', 'quantity', 'unit', 'conversion_factor', 'bill_value')


class PurchaseService:

    @staticmethod
    def serialize(purchase):
        return {
            'id': purchase.id,
            'date': purchase.date.isoformat(),
            'bill_no': purchase.bill_no,
            'party_name': purchase.party_name,
            'product_id': purchase.product_id,
            'product_name': purchase.product.name,
            'quantity': str(purchase.quantity),
            'unit': purchase.unit,
            'conversion_factor': str(purchase.conversion_factor),
            'bill_value': str(purchase.bill_value),
            'created_at': purchase.created_at.isoformat(),
        }

    @staticmethod
    def get_purchase(purchase_id):
        try:
            return Purchase.objects.select_related('product').get(id=purchase_id)
        except (Purchase.DoesNotExist, ValueError, TypeError):
            raise NotFoundError('Purchase', purchase_id)

    @staticmethod
    def get_all_purchases(page=1, per_page=20, search=None, product_id=None):
        queryset = Purchase.objects.select_related('product')

        if search:
            queryset = queryset.filter(Q(bill_no__icontains=search) | Q(party_name__icontains=search))
        if product_id:
            queryset = queryset.filter(product_id=product_id)

        paginator = Paginator(queryset, per_page)
        page_obj = paginator.get_page(page)

        return {
            'purchases': [PurchaseService.serialize(p) for p in page_obj.object_list],
            'pagination': {
                'current_page': page_obj.number,
                'total_pages': paginator.num_pages,
                'total_purchases': paginator.count,
                'per_page': per_page,
                'has_next': page_obj.has_next(),
                'has_previous': page_obj.has_previous(),
            },
        }

    @staticmethod
    def record_entry(purchase):
        """PURCHASE stock-in row for ``purchase``; untracked products get none."""
        product = purchase.product
        if not product.maintain_stock:
            logger.debug('Purchase %s: product %s is not stock-tracked', purchase.id, product.id)
            return None

        return StockLedgerService.append(
            product,
            purchase.date,
            StockLedger.TransactionType.PURCHASE,
            quantity_in=round_decimal(purchase.quantity * (purchase.conversion_factor or Decimal('1'))),
            related_id=purchase.id,
            trans_unit=purchase.unit or product.packing_type,
            trans_conversion_factor=purchase.conversion_factor,
            remarks=f'Bill {purchase.bill_no}' if purchase.bill_no else '',
        )

    @staticmethod
    def _apply(purchase, data):
        for field in PURCHASE_FIELDS:
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
            setattr(purchase, field, value)

        if purchase.date is None:
            purchase.date = timezone.localdate()

    @staticmethod
    @transaction.atomic
    def create_purchase(**data):
        missing = [field for field in ('product_id', 'quantity') if data.get(field) in (None, '')]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing[0])

        purchase = Purchase()
        PurchaseService._apply(purchase, data)
        purchase.save()
        purchase = PurchaseService.get_purchase(purchase.id)

        PurchaseService.record_entry(purchase)
        return {'success': True, 'purchase': PurchaseService.serialize(purchase), 'message': 'Purchase created'}

    @staticmethod
    @transaction.atomic
    def update_purchase(purchase_id, **data):
        purchase = PurchaseService.get_purchase(purchase_id)
        PurchaseService._apply(purchase, data)
        purchase.save()
        purchase = PurchaseService.get_purchase(purchase.id)

        StockLedgerService.delete_by_related(purchase.id, [StockLedger.TransactionType.PURCHASE])
        PurchaseService.record_entry(purchase)
        return {'success': True, 'purchase': PurchaseService.serialize(purchase), 'message': 'Purchase updated'}

    @staticmethod
    @transaction.atomic
    def delete_purchase(purchase_id):
        purchase = PurchaseService.get_purchase(purchase_id)
        deleted = StockLedgerService.delete_by_related(purchase.id, [StockLedger.TransactionType.PURCHASE])
        purchase.delete()
        return {'success': True, 'deleted_entries': deleted, 'message': 'Purchase deleted'}
