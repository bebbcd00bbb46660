from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _
from unfold.admin import ModelAdmin
from unfold.decorators import display
from unfold.contrib.filters.admin import RangeDateFilter, RangeNumericFilter

from stock.services import ServiceError, StockLedgerService
from .models import Product, Sale, Purchase
from .services.sale_service import SaleService
from .services.purchase_service import PurchaseService
from .services.product_service import ProductService

BILL_FIELDS = ('date', 'bill_no', 'party_name', 'quantity', 'unit', 'conversion_factor', 'bill_value')


def _bill_payload(obj):
    data = {field: getattr(obj, field) for field in BILL_FIELDS}
    data['product_id'] = obj.product_id
    return data


@admin.register(Product)
class ProductAdmin(ModelAdmin):
    list_display = ['id', 'name', 'packing_type', 'units_display', 'formula_base_qty', 'stock_badge', 'balance_display']
    list_filter = ['maintain_stock', 'has_dual_units', 'is_active']
    search_fields = ['name', 'hsn_code']
    list_filter_submit = True
    list_fullwidth = True
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        (_('Product Information'), {
            'fields': ('name', 'hsn_code', 'is_active')
        }),
        (_('Units'), {
            'fields': ('packing_type', 'has_dual_units', 'secondary_unit', 'conversion_rate')
        }),
        (_('Stock'), {
            'fields': ('maintain_stock', 'formula_base_qty')
        }),
    )

    @display(description=_("Units"))
    def units_display(self, obj):
        if obj.has_dual_units:
            return f"1 {obj.packing_type} = {obj.conversion_rate} {obj.secondary_unit}"
        return obj.packing_type

    @display(description=_("Stock"), label=True)
    def stock_badge(self, obj):
        if obj.maintain_stock:
            return 'success', _('Tracked')
        return 'warning', _('Not tracked')

    @display(description=_("Balance"))
    def balance_display(self, obj):
        if not obj.maintain_stock:
            return '-'
        return f"{StockLedgerService.balance_as_of(obj)} {obj.packing_type}"

    def save_model(self, request, obj, form, change):
        data = {field: getattr(obj, field) for field in (
            'name', 'hsn_code', 'packing_type', 'maintain_stock', 'has_dual_units',
            'secondary_unit', 'conversion_rate', 'formula_base_qty', 'is_active',
        )}
        try:
            if change:
                ProductService.update_product(obj.pk, **data)
            else:
                result = ProductService.create_product(**data)
                obj.pk = result['product']['id']
        except ServiceError as e:
            self.message_user(request, e.message, messages.ERROR)


class BillAdmin(ModelAdmin):
    list_display = ['id', 'date', 'bill_no', 'party_name', 'product', 'quantity_display', 'bill_value']
    list_filter = [
        ('date', RangeDateFilter),
        ('bill_value', RangeNumericFilter),
        'product',
    ]
    search_fields = ['bill_no', 'party_name', 'product__name']
    list_filter_submit = True
    list_fullwidth = True
    date_hierarchy = 'date'
    readonly_fields = ['created_at', 'updated_at']

    @display(description=_("Quantity"), ordering='quantity')
    def quantity_display(self, obj):
        return f"{obj.quantity} {obj.unit or obj.product.packing_type}"


@admin.register(Sale)
class SaleAdmin(BillAdmin):

    def save_model(self, request, obj, form, change):
        try:
            if change:
                SaleService.update_sale(obj.pk, **_bill_payload(obj))
            else:
                result = SaleService.create_sale(**_bill_payload(obj))
                obj.pk = result['sale']['id']
        except ServiceError as e:
            self.message_user(request, e.message, messages.ERROR)

    def delete_model(self, request, obj):
        SaleService.delete_sale(obj.pk)

    def delete_queryset(self, request, queryset):
        for sale_id in queryset.values_list('id', flat=True):
            SaleService.delete_sale(sale_id)


@admin.register(Purchase)
class PurchaseAdmin(BillAdmin):

    def save_model(self, request, obj, form, change):
        try:
            if change:
                PurchaseService.update_purchase(obj.pk, **_bill_payload(obj))
            else:
                result = PurchaseService.create_purchase(**_bill_payload(obj))
                obj.pk = result['purchase']['id']
        except ServiceError as e:
            self.message_user(request, e.message, messages.ERROR)

    def delete_model(self, request, obj):
        PurchaseService.delete_purchase(obj.pk)

    def delete_queryset(self, request, queryset):
        for purchase_id in queryset.values_list('id', flat=True):
            PurchaseService.delete_purchase(purchase_id)
