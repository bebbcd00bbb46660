import json
import logging

from django.http import JsonResponse
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from django.utils.decorators import method_decorator

from stock.services import (
    ValidationError, NotFoundError, BusinessRuleError, ConfigurationError,
    StockLedgerService, FormulaService,
    ManualProductionService, RecalculationService,
    StockAdjustmentService, LedgerAuditService,
    UnitConversionService, compute_consumption, parse_quantity,
)
from main.models import Product

logger = logging.getLogger(__name__)


def error_response(message: str, code: str = "error", status: int = 400, details: dict = None):
    data = {"success": False, "error": {"code": code, "message": message}}
    if details:
        data["error"]["details"] = details
    return JsonResponse(data, status=status)


def handle_service_error(e: Exception):
    if isinstance(e, ValidationError):
        return error_response(str(e), "validation_error", 400, {"field": e.field})
    elif isinstance(e, NotFoundError):
        return error_response(str(e), "not_found", 404)
    elif isinstance(e, ConfigurationError):
        return error_response(str(e), "configuration_error", 422, e.details)
    elif isinstance(e, BusinessRuleError):
        return error_response(str(e), "business_rule", 400, e.details)
    elif isinstance(e, KeyError):
        return error_response(f"Missing field: {e.args[0]}", "validation_error", 400, {"field": e.args[0]})
    else:
        logger.exception("Unhandled stock API error")
        return error_response(str(e), "server_error", 500)


def int_param(request, name: str):
    value = request.GET.get(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", name)


class BaseStockView(View):
    @method_decorator(csrf_exempt)
    def dispatch(self, request, *args, **kwargs):
        return super().dispatch(request, *args, **kwargs)

    def get_json_body(self, request):
        try:
            return json.loads(request.body) if request.body else {}
        except json.JSONDecodeError:
            return {}

    def success(self, data: dict, status: int = 200):
        return JsonResponse({"success": True, **data}, status=status)


# ==================== LEDGER ====================

class StockBalanceView(BaseStockView):
    """GET /api/stock/balance/<product_id>/?as_of=YYYY-MM-DD"""

    def get(self, request, product_id):
        try:
            result = StockLedgerService.get_balance(product_id, request.GET.get("as_of"))
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class StockSummaryView(BaseStockView):
    """GET /api/stock/summary/"""

    def get(self, request):
        try:
            include_untracked = request.GET.get("include_untracked", "false").lower() == "true"
            result = StockLedgerService.stock_summary(include_untracked=include_untracked)
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class StockLedgerView(BaseStockView):
    """GET /api/stock/ledger/?product_id=&start_date=&end_date="""

    def get(self, request):
        try:
            result = StockLedgerService.ledger_range(
                product_id=int_param(request, "product_id"),
                start_date=request.GET.get("start_date"),
                end_date=request.GET.get("end_date"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class StockEntryListView(BaseStockView):
    """GET /api/stock/entries/"""

    def get(self, request):
        try:
            result = StockLedgerService.list_entries(
                product_id=int_param(request, "product_id"),
                transaction_type=request.GET.get("type"),
                related_id=int_param(request, "related_id"),
                start_date=request.GET.get("start_date"),
                end_date=request.GET.get("end_date"),
                page=int_param(request, "page") or 1,
                per_page=int_param(request, "per_page") or 50,
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


# ==================== ADJUSTMENTS ====================

class StockAdjustView(BaseStockView):
    """POST /api/stock/adjust/ (type IN, OUT or TRANSFER)"""

    def post(self, request):
        try:
            data = self.get_json_body(request)
            adjustment_type = (data.get("type") or "").upper()

            if adjustment_type == "TRANSFER":
                result = StockAdjustmentService.transfer(
                    source_product_id=data["source_product_id"],
                    target_product_id=data["target_product_id"],
                    quantity=data["quantity"],
                    unit_mode=data.get("unit_mode"),
                    transfer_date=data.get("date"),
                    remarks=data.get("remarks", ""),
                )
            else:
                result = StockAdjustmentService.adjust(
                    product_id=data["product_id"],
                    adjustment_type=adjustment_type,
                    quantity=data["quantity"],
                    unit_mode=data.get("unit_mode"),
                    adjustment_date=data.get("date"),
                    remarks=data.get("remarks", ""),
                )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class StockAdjustDetailView(BaseStockView):
    """DELETE /api/stock/adjust/<entry_id>/"""

    def delete(self, request, entry_id):
        try:
            if request.GET.get("transfer", "false").lower() == "true":
                result = StockAdjustmentService.delete_transfer(entry_id)
            else:
                result = StockAdjustmentService.delete_adjustment(entry_id)
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class OpeningStockView(BaseStockView):
    """POST /api/stock/opening/"""

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = StockAdjustmentService.set_opening_stock(
                product_id=data["product_id"],
                quantity=data["quantity"],
                unit_mode=data.get("unit_mode"),
                opening_date=data.get("date"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


# ==================== FORMULAS ====================

class FormulaView(BaseStockView):
    """GET/POST /api/stock/formulas/<product_id>/"""

    def get(self, request, product_id):
        try:
            result = FormulaService.get_formula(product_id)
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request, product_id):
        try:
            data = self.get_json_body(request)
            result = FormulaService.upsert_entry(
                product_id=product_id,
                ingredient_id=data["ingredient_id"],
                quantity=data["quantity"],
                unit_mode=data.get("unit_mode", "primary"),
                per_batch=bool(data.get("per_batch", False)),
            )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class FormulaEntryView(BaseStockView):
    """DELETE /api/stock/formulas/entries/<entry_id>/"""

    def delete(self, request, entry_id):
        try:
            result = FormulaService.delete_entry(entry_id)
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class FormulaBatchSizeView(BaseStockView):
    """PUT /api/stock/formulas/<product_id>/batch-size/"""

    def put(self, request, product_id):
        try:
            data = self.get_json_body(request)
            result = FormulaService.set_batch_size(product_id, data["batch_size"])
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class FormulaRecalculateView(BaseStockView):
    """POST /api/stock/formulas/<product_id>/recalculate/"""

    def post(self, request, product_id):
        try:
            result = RecalculationService.recalculate(product_id)
            return self.success({"recalculation": result})
        except Exception as e:
            return handle_service_error(e)


class FormulaPreviewView(BaseStockView):
    """GET /api/stock/formulas/<product_id>/preview/?quantity=10"""

    def get(self, request, product_id):
        try:
            try:
                product = Product.objects.get(id=product_id)
            except Product.DoesNotExist:
                raise NotFoundError("Product", product_id)

            quantity = parse_quantity(request.GET.get("quantity", "1"))
            lines = compute_consumption(product, quantity)
            return self.success({
                "product_id": product.id,
                "quantity": str(quantity),
                "unit": product.packing_type,
                "consumption": [line.to_dict() for line in lines],
            })
        except Exception as e:
            return handle_service_error(e)


# ==================== PRODUCTION ====================

class ProductionListView(BaseStockView):
    """GET/POST /api/stock/production/"""

    def get(self, request):
        try:
            result = ManualProductionService.list(
                product_id=int_param(request, "product_id"),
                start_date=request.GET.get("start_date"),
                end_date=request.GET.get("end_date"),
                page=int_param(request, "page") or 1,
                per_page=int_param(request, "per_page") or 20,
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = ManualProductionService.record_production(
                output_product_id=data["output_product_id"],
                output_quantity=data["output_quantity"],
                production_date=data.get("date"),
                batch_no=data.get("batch_no"),
                inputs=data.get("inputs"),
                notes=data.get("notes", ""),
            )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class ProductionDetailView(BaseStockView):
    """GET/DELETE /api/stock/production/<log_id>/"""

    def get(self, request, log_id):
        try:
            result = ManualProductionService.get(log_id)
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def delete(self, request, log_id):
        try:
            result = ManualProductionService.delete_production(log_id)
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


# ==================== AUDIT ====================

class LedgerAuditView(BaseStockView):
    """GET /api/stock/audit/ and POST /api/stock/audit/ {"dry_run": false}"""

    def get(self, request):
        try:
            if request.GET.get("production", "false").lower() == "true":
                result = LedgerAuditService.production_audit(
                    product_id=int_param(request, "product_id"),
                    limit=int_param(request, "limit") or 20,
                )
            else:
                result = LedgerAuditService.report()
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = LedgerAuditService.repair(dry_run=data.get("dry_run", True) is not False)
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class UnitConvertView(BaseStockView):
    """POST /api/stock/units/convert/"""

    def post(self, request):
        try:
            data = self.get_json_body(request)
            try:
                product = Product.objects.get(id=data["product_id"])
            except (Product.DoesNotExist, ValueError, TypeError):
                raise NotFoundError("Product", data["product_id"])

            converted = UnitConversionService.to_primary(
                product, data["quantity"], data.get("unit_mode", "secondary")
            )
            return self.success({
                "quantity": str(converted.quantity),
                "unit": product.packing_type,
                "trans_unit": converted.trans_unit,
                "trans_conversion_factor": str(converted.trans_conversion_factor),
            })
        except Exception as e:
            return handle_service_error(e)
