import logging

from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Q

from main.models import Product
from stock.models import ProductFormula, UnitMode
from stock.conf import get_stock_setting
from stock.services import (
    BusinessRuleError, ConfigurationError, NotFoundError, ValidationError,
    UnitConversionService, StockLedgerService, to_decimal,
)

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = (
    'name', 'hsn_code', 'packing_type', 'maintain_stock',
    'has_dual_units', 'secondary_unit', 'conversion_rate', 'formula_base_qty', 'is_active',
)


class ProductService:

    @staticmethod
    def serialize(product):
        return {
            'id': product.id,
            'name': product.name,
            'hsn_code': product.hsn_code,
            'packing_type': product.packing_type,
            'maintain_stock': product.maintain_stock,
            'has_dual_units': product.has_dual_units,
            'secondary_unit': product.secondary_unit,
            'conversion_rate': str(product.conversion_rate) if product.conversion_rate is not None else None,
            'formula_base_qty': str(product.formula_base_qty),
            'has_formula': product.formula_lines.exists(),
            'is_active': product.is_active,
            'created_at': product.created_at.isoformat(),
            'updated_at': product.updated_at.isoformat(),
        }

    @staticmethod
    def get_all_products(page=1, per_page=20, search=None, stock_only=False, order_by='name'):
        queryset = Product.objects.all()

        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(hsn_code__icontains=search))

        if stock_only:
            queryset = queryset.filter(maintain_stock=True)

        paginator = Paginator(queryset.order_by(order_by), per_page)
        page_obj = paginator.get_page(page)

        return {
            'products': [ProductService.serialize(p) for p in page_obj.object_list],
            'pagination': {
                'current_page': page_obj.number,
                'total_pages': paginator.num_pages,
                'total_products': paginator.count,
                'per_page': per_page,
                'has_next': page_obj.has_next(),
                'has_previous': page_obj.has_previous(),
            },
        }

    @staticmethod
    def get_product(product_id):
        try:
            return Product.objects.get(id=product_id)
        except (Product.DoesNotExist, ValueError, TypeError):
            raise NotFoundError('Product', product_id)

    @staticmethod
    def _apply(product, data):
        for field in PRODUCT_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if field == 'conversion_rate':
                value = to_decimal(value) if value not in (None, '') else None
            elif field == 'formula_base_qty':
                value = to_decimal(value, None)
                if value is None or value <= 0:
                    raise ValidationError('formula_base_qty must be greater than 0', 'formula_base_qty')
            elif field == 'secondary_unit':
                value = (value or '').strip().upper() or None
            elif field == 'packing_type':
                value = (value or '').strip().upper()
            setattr(product, field, value)

        if not product.name or not product.packing_type:
            raise ValidationError('name and packing_type are required', 'name')

        if not product.has_dual_units:
            product.secondary_unit = None
            product.conversion_rate = None

            # Formula lines measured in this ingredient's secondary unit need it to stay
            if product.pk:
                users = list(ProductFormula.objects.filter(
                    ingredient_id=product.pk, unit_type=UnitMode.SECONDARY,
                ).values_list('product__name', flat=True))
                if users:
                    raise ConfigurationError(
                        f"'{product.name}' is used in secondary units by: {', '.join(sorted(users))}",
                        product, 'has_dual_units',
                    )

        try:
            UnitConversionService.validate_product(product)
        except ConfigurationError:
            if get_stock_setting('STRICT_UNIT_CONFIG'):
                raise
            logger.warning('Saving product %r with an incomplete unit setup', product.name)

    @staticmethod
    @transaction.atomic
    def create_product(**data):
        name = (data.get('name') or '').strip()
        if Product.objects.filter(name__iexact=name).exists():
            raise ValidationError(f"Product '{name}' already exists", 'name')

        product = Product(name=name)
        ProductService._apply(product, {**data, 'name': name})
        product.save()

        logger.info('Created product %s (%s)', product.id, product.name)
        return {'success': True, 'product': ProductService.serialize(product), 'message': 'Product created'}

    @staticmethod
    @transaction.atomic
    def update_product(product_id, **data):
        product = ProductService.get_product(product_id)

        if 'name' in data:
            name = (data['name'] or '').strip()
            if Product.objects.filter(name__iexact=name).exclude(id=product.id).exists():
                raise ValidationError(f"Product '{name}' already exists", 'name')
            data['name'] = name

        ProductService._apply(product, data)
        product.save()

        return {'success': True, 'product': ProductService.serialize(product), 'message': 'Product updated'}

    @staticmethod
    @transaction.atomic
    def delete_product(product_id):
        product = ProductService.get_product(product_id)

        if product.ledger_entries.exists() or product.sales.exists() or product.purchases.exists():
            raise BusinessRuleError(
                f"'{product.name}' has stock history and cannot be deleted", 'product_in_use'
            )
        if product.used_in_formulas.exists():
            raise BusinessRuleError(
                f"'{product.name}' is used in a formula and cannot be deleted", 'product_in_use'
            )

        product.delete()
        return {'success': True, 'message': 'Product deleted'}

    @staticmethod
    def get_stock(product_id, as_of=None):
        return StockLedgerService.get_balance(product_id, as_of)
