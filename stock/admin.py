from django.contrib import admin
from django.utils.translation import gettext_lazy as _
from unfold.admin import ModelAdmin, TabularInline
from unfold.decorators import display
from unfold.contrib.filters.admin import RangeDateFilter

from .models import ProductFormula, StockLedger, ProductionLog, ProductionItem
from .services import ManualProductionService


@admin.register(ProductFormula)
class ProductFormulaAdmin(ModelAdmin):
    """Read-only: formula edits must go through the API so history is recalculated."""

    list_display = ['id', 'product', 'ingredient', 'quantity', 'unit_type']
    list_filter = ['unit_type', 'product']
    search_fields = ['product__name', 'ingredient__name']
    list_filter_submit = True

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(StockLedger)
class StockLedgerAdmin(ModelAdmin):
    list_display = ['id', 'date', 'product', 'type_badge', 'quantity_in', 'quantity_out', 'related_id', 'trans_unit']
    list_filter = [
        'transaction_type',
        ('date', RangeDateFilter),
        'product',
    ]
    search_fields = ['product__name', 'remarks']
    list_filter_submit = True
    list_fullwidth = True
    date_hierarchy = 'date'

    @display(description=_("Type"), label=True)
    def type_badge(self, obj):
        if obj.is_inflow:
            return 'success', obj.get_transaction_type_display()
        return 'danger', obj.get_transaction_type_display()

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class ProductionItemInline(TabularInline):
    model = ProductionItem
    extra = 0
    fields = ('input_product', 'input_quantity')
    readonly_fields = ('input_product', 'input_quantity')
    can_delete = False


@admin.register(ProductionLog)
class ProductionLogAdmin(ModelAdmin):
    list_display = ['batch_no', 'date', 'output_product', 'output_quantity', 'items_count']
    list_filter = [('date', RangeDateFilter), 'output_product']
    search_fields = ['batch_no', 'output_product__name', 'notes']
    list_filter_submit = True
    inlines = [ProductionItemInline]

    @display(description=_("Inputs"))
    def items_count(self, obj):
        return obj.items.count()

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def delete_model(self, request, obj):
        ManualProductionService.delete_production(obj.pk)

    def delete_queryset(self, request, queryset):
        for log_id in queryset.values_list('id', flat=True):
            ManualProductionService.delete_production(log_id)
