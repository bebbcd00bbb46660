import logging
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Tuple
from decimal import Decimal

from main.models import Product
from stock.conf import get_stock_setting
from stock.models import UnitMode
from stock.services.base_service import ConfigurationError, ValidationError, to_decimal

logger = logging.getLogger(__name__)


SMALL_UNITS = (
    "KG", "KGS", "KILOGRAM", "GM", "GRAM", "GMS",
    "LTR", "LITER", "ML", "METER", "MTR", "NOS", "PCS", "PIECE",
)
LARGE_UNITS = (
    "BAG", "BOX", "PACK", "PKT", "DRUM", "CAN", "BOTTLE",
    "JAR", "TIN", "BUNDLE", "ROLL", "CRT", "CARTON",
)

# Units shown with two decimals in ledger output; everything else is rounded
DISPLAY_DECIMAL_UNITS = (
    "KG", "KGS", "KILOGRAM", "GM", "GRAM", "GMS", "LTR", "LITER", "ML", "METER",
)


class ConversionDirection(str, Enum):
    MULTIPLY = "MULTIPLY"
    DIVIDE = "DIVIDE"

    def inverse(self) -> "ConversionDirection":
        if self is ConversionDirection.MULTIPLY:
            return ConversionDirection.DIVIDE
        return ConversionDirection.MULTIPLY


def _matches_any(unit_name: Optional[str], names: Tuple[str, ...]) -> bool:
    upper = (unit_name or "").upper()
    return any(name in upper for name in names)


def is_small_unit(unit_name: Optional[str]) -> bool:
    return _matches_any(unit_name, SMALL_UNITS)


def is_large_unit(unit_name: Optional[str]) -> bool:
    return _matches_any(unit_name, LARGE_UNITS)


def resolve_direction(primary_unit: str, secondary_unit: str,
                      rate: Any = None, warn: bool = True) -> ConversionDirection:
    """
    Direction that turns a secondary-unit quantity into primary units.

    The rate always reads "1 primary = rate secondary", so a small secondary
    unit under a large primary one is divided (20 KGS per BAG: 6 KGS is
    0.3 BAG). The reverse pairing multiplies. Anything the unit lists cannot
    classify falls back to MULTIPLY, with a warning unless ``warn`` is off.
    """
    if is_small_unit(secondary_unit) and is_large_unit(primary_unit):
        return ConversionDirection.DIVIDE
    if is_large_unit(secondary_unit) and is_small_unit(primary_unit):
        return ConversionDirection.MULTIPLY

    if warn:
        logger.warning(
            "Ambiguous unit pair primary=%r secondary=%r rate=%s, defaulting to MULTIPLY",
            primary_unit, secondary_unit, rate,
        )
    return ConversionDirection.MULTIPLY


def validate_unit_mode(unit_mode: Optional[str], field: str = "unit_mode") -> str:
    """Blank means primary; anything outside UnitMode is rejected."""
    unit_mode = unit_mode or UnitMode.PRIMARY
    if unit_mode not in UnitMode.values:
        raise ValidationError(f"Invalid unit mode. Valid: {UnitMode.values}", field)
    return unit_mode


def convert(quantity: Any, direction: ConversionDirection, rate: Any) -> Decimal:
    quantity = to_decimal(quantity)
    rate = to_decimal(rate)
    if rate <= 0:
        raise ConfigurationError(f"Conversion rate must be greater than 0, got {rate}", field="conversion_rate")

    if direction is ConversionDirection.DIVIDE:
        return quantity / rate
    return quantity * rate


class ConvertedQuantity(NamedTuple):
    quantity: Decimal
    trans_unit: str
    trans_conversion_factor: Decimal


class UnitConversionService:
    """
    Every primary/secondary conversion in the stock engine goes through here:
    auto-production, recalculation, manual production, adjustments,
    transfers, opening stock and ledger display.
    """

    @classmethod
    def validate_product(cls, product: Product) -> None:
        if not product.has_dual_units:
            return

        if not (product.secondary_unit or "").strip():
            raise ConfigurationError(
                f"Product '{product.name}' has dual units but no secondary unit",
                product, "secondary_unit",
            )

        rate = to_decimal(product.conversion_rate)
        if rate <= 0:
            raise ConfigurationError(
                f"Product '{product.name}' has dual units but no valid conversion rate",
                product, "conversion_rate",
            )

    @classmethod
    def conversion_for(cls, product: Product) -> Optional[Tuple[str, Decimal]]:
        """(secondary unit, rate) for a dual-unit product, None otherwise."""
        if not product.has_dual_units:
            return None

        try:
            cls.validate_product(product)
        except ConfigurationError:
            if get_stock_setting("STRICT_UNIT_CONFIG"):
                raise
            logger.warning(
                "Product %s (%s) has an incomplete unit setup, using rate 1",
                product.id, product.name,
            )
            return product.secondary_unit or product.packing_type, Decimal("1")

        return product.secondary_unit, to_decimal(product.conversion_rate)

    @classmethod
    def to_primary(cls, product: Product, quantity: Any,
                   unit_mode: str = UnitMode.PRIMARY) -> ConvertedQuantity:
        quantity = to_decimal(quantity)

        if unit_mode != UnitMode.SECONDARY:
            return ConvertedQuantity(quantity, product.packing_type, Decimal("1"))

        conversion = cls.conversion_for(product)
        if conversion is None:
            raise ConfigurationError(
                f"Product '{product.name}' has no secondary unit to convert from",
                product, "unit_mode",
            )

        secondary_unit, rate = conversion
        direction = resolve_direction(product.packing_type, secondary_unit, rate)
        return ConvertedQuantity(convert(quantity, direction, rate), secondary_unit, rate)

    @classmethod
    def from_primary(cls, product: Product, quantity: Any) -> Optional[Decimal]:
        """Primary-unit quantity rendered in the secondary unit, if any."""
        conversion = cls.conversion_for(product)
        if conversion is None:
            return None
        secondary_unit, rate = conversion
        # Display only: the ambiguous pair was already reported when the quantity came in
        direction = resolve_direction(product.packing_type, secondary_unit, rate, warn=False)
        return convert(quantity, direction.inverse(), rate)

    @classmethod
    def is_decimal_unit(cls, unit_name: Optional[str]) -> bool:
        return _matches_any(unit_name, tuple(get_stock_setting("DECIMAL_UNITS")))

    @classmethod
    def format_quantity(cls, quantity: Any, unit_name: Optional[str]) -> str:
        quantity = to_decimal(quantity)
        if _matches_any(unit_name, DISPLAY_DECIMAL_UNITS):
            text = f"{quantity:.2f}"
        else:
            text = f"{quantity:.0f}"
        return f"{text} {unit_name or ''}".strip()

    @classmethod
    def describe(cls, product: Product) -> Dict[str, Any]:
        return {
            "primary_unit": product.packing_type,
            "has_dual_units": product.has_dual_units,
            "secondary_unit": product.secondary_unit,
            "conversion_rate": str(product.conversion_rate) if product.conversion_rate is not None else None,
        }
