"""
Stock Services - inventory ledger and formula-driven production

Usage:
    from stock.services import AutoProductionService, StockLedgerService

    # Record a sale and cover any deficit from the product's formula
    AutoProductionService.process_sale(sale)

    # Current stock in the product's primary unit
    StockLedgerService.balance_as_of(product)
"""

# Base utilities
from stock.services.base_service import (
    ServiceError,
    ValidationError,
    NotFoundError,
    BusinessRuleError,
    ConfigurationError,
    success_response,
    paginate_queryset,
    to_decimal,
    parse_quantity,
    round_decimal,
    ceil_decimal,
    to_date,
    financial_year_bounds,
    generate_number,
    BaseService,
)

# Units
from .unit_service import (
    ConversionDirection,
    ConvertedQuantity,
    UnitConversionService,
    resolve_direction,
    validate_unit_mode,
    convert,
)

# Ledger
from .ledger_service import StockLedgerService

# Production & formulas
from .production_service import (
    ConsumptionLine,
    AutoProductionService,
    ManualProductionService,
    RecalculationService,
    compute_consumption,
    production_quantity,
)
from .formula_service import FormulaService

# Corrections & integrity
from .adjustment_service import StockAdjustmentService
from .audit_service import LedgerAuditService


__all__ = [
    "ServiceError",
    "ValidationError",
    "NotFoundError",
    "BusinessRuleError",
    "ConfigurationError",
    "success_response",
    "paginate_queryset",
    "to_decimal",
    "parse_quantity",
    "round_decimal",
    "ceil_decimal",
    "to_date",
    "financial_year_bounds",
    "generate_number",
    "BaseService",
    "ConversionDirection",
    "ConvertedQuantity",
    "UnitConversionService",
    "resolve_direction",
    "validate_unit_mode",
    "convert",
    "StockLedgerService",
    "ConsumptionLine",
    "AutoProductionService",
    "ManualProductionService",
    "RecalculationService",
    "compute_consumption",
    "production_quantity",
    "FormulaService",
    "StockAdjustmentService",
    "LedgerAuditService",
]
