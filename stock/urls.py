from django.urls import path
from . import views

app_name = "stock"

urlpatterns = [
    path("balance/<int:product_id>/", views.StockBalanceView.as_view(), name="balance"),
    path("summary/", views.StockSummaryView.as_view(), name="summary"),
    path("ledger/", views.StockLedgerView.as_view(), name="ledger"),
    path("entries/", views.StockEntryListView.as_view(), name="entry-list"),

    path("adjust/", views.StockAdjustView.as_view(), name="adjust"),
    path("adjust/<int:entry_id>/", views.StockAdjustDetailView.as_view(), name="adjust-detail"),
    path("opening/", views.OpeningStockView.as_view(), name="opening"),

    path("formulas/<int:product_id>/", views.FormulaView.as_view(), name="formula"),
    path("formulas/<int:product_id>/batch-size/", views.FormulaBatchSizeView.as_view(), name="formula-batch-size"),
    path("formulas/<int:product_id>/recalculate/", views.FormulaRecalculateView.as_view(), name="formula-recalculate"),
    path("formulas/<int:product_id>/preview/", views.FormulaPreviewView.as_view(), name="formula-preview"),
    path("formulas/entries/<int:entry_id>/", views.FormulaEntryView.as_view(), name="formula-entry"),

    path("production/", views.ProductionListView.as_view(), name="production-list"),
    path("production/<int:log_id>/", views.ProductionDetailView.as_view(), name="production-detail"),

    path("audit/", views.LedgerAuditView.as_view(), name="audit"),
    path("units/convert/", views.UnitConvertView.as_view(), name="unit-convert"),
]
