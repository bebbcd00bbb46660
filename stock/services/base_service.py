from typing import Dict, Any, Optional, List, Tuple
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, ROUND_CEILING
from datetime import date, datetime, timedelta
from django.db.models import Model
from django.utils import timezone
from django.utils.dateparse import parse_date

from stock.conf import get_stock_setting


class ServiceError(Exception):
    def __init__(self, message: str, code: str = "ERROR", details: Dict = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ValidationError(ServiceError):
    def __init__(self, message: str, field: str = None, details: Dict = None):
        super().__init__(message, "VALIDATION_ERROR", details)
        self.field = field


class NotFoundError(ServiceError):
    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}",
            "NOT_FOUND",
            {"resource": resource, "identifier": str(identifier)}
        )


class BusinessRuleError(ServiceError):
    def __init__(self, message: str, rule: str = None):
        super().__init__(message, "BUSINESS_RULE_VIOLATION", {"rule": rule})


class ConfigurationError(ServiceError):
    """A product's unit setup cannot support the requested calculation."""

    def __init__(self, message: str, product=None, field: str = None):
        details = {"field": field}
        if product is not None:
            details["product_id"] = product.id
            details["product"] = product.name
        super().__init__(message, "CONFIGURATION_ERROR", details)
        self.field = field


def success_response(data: Any = None, message: str = "Success") -> Dict:
    response = {"success": True, "message": message}
    if data is not None:
        if isinstance(data, dict):
            response.update(data)
        else:
            response["data"] = data
    return response


def paginate_queryset(queryset, page: int = 1, per_page: int = 20) -> Tuple[List, Dict]:
    page = max(1, page)
    per_page = min(max(1, per_page), 100)

    total = queryset.count()
    total_pages = (total + per_page - 1) // per_page

    offset = (page - 1) * per_page
    items = list(queryset[offset:offset + per_page])

    return items, {
        "page": page,
        "per_page": per_page,
        "total_items": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1
    }


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default


def parse_quantity(value: Any, field: str = "quantity", allow_zero: bool = False) -> Decimal:
    """Strict variant of to_decimal for user-entered quantities."""
    try:
        quantity = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Invalid {field}: {value!r}", field)

    if not quantity.is_finite():
        raise ValidationError(f"Invalid {field}: {value!r}", field)
    if quantity < 0 or (quantity == 0 and not allow_zero):
        raise ValidationError(f"{field} must be greater than 0", field)
    return quantity


def round_decimal(value: Decimal, places: int = None) -> Decimal:
    if value is None:
        return Decimal("0")
    if places is None:
        places = get_stock_setting("QUANTITY_DECIMAL_PLACES")
    quantize_str = "0." + "0" * places if places else "1"
    return value.quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)


def ceil_decimal(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_CEILING)


def to_date(value: Any, field: str = "date", default: Optional[date] = None) -> Optional[date]:
    if value is None or value == "":
        return default
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"Invalid {field}: {value!r}, expected YYYY-MM-DD", field)
    return parsed


def financial_year_bounds(for_date: date = None) -> Tuple[date, date]:
    """Tracking period (financial year) containing ``for_date``."""
    for_date = for_date or timezone.localdate()
    start_month = get_stock_setting("FINANCIAL_YEAR_START_MONTH")

    if start_month == 1:
        return date(for_date.year, 1, 1), date(for_date.year, 12, 31)

    start_year = for_date.year if for_date.month >= start_month else for_date.year - 1
    start = date(start_year, start_month, 1)
    end = date(start_year + 1, start_month, 1) - timedelta(days=1)
    return start, end


def generate_number(prefix: str, model_class: Model, field: str = "batch_no",
                    for_date: date = None) -> str:
    for_date = for_date or timezone.localdate()
    date_part = for_date.strftime("%Y%m%d")
    filter_kwargs = {f"{field}__startswith": f"{prefix}-{date_part}"}
    last = model_class.objects.filter(**filter_kwargs).order_by(f"-{field}").first()

    if last:
        last_num = getattr(last, field)
        try:
            seq = int(last_num.split("-")[-1]) + 1
        except ValueError:
            seq = 1
    else:
        seq = 1

    return f"{prefix}-{date_part}-{seq:04d}"


class BaseService:
    model = None

    @classmethod
    def get_by_id(cls, id: int) -> Optional[Model]:
        try:
            return cls.model.objects.get(id=id)
        except (cls.model.DoesNotExist, ValueError, TypeError):
            return None

    @classmethod
    def get_or_404(cls, id: int) -> Model:
        obj = cls.get_by_id(id)
        if not obj:
            raise NotFoundError(cls.model._meta.verbose_name.capitalize(), id)
        return obj

    @classmethod
    def exists(cls, id: int) -> bool:
        return cls.model.objects.filter(id=id).exists()
