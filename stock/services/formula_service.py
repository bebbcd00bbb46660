import logging
from typing import Dict, Any, List
from decimal import Decimal
from django.db import transaction

from main.models import Product
from stock.models import ProductFormula, UnitMode
from stock.services.base_service import (
    BaseService, success_response,
    ValidationError, NotFoundError, ConfigurationError,
    parse_quantity, round_decimal
)
from stock.services.production_service import RecalculationService
from stock.services.unit_service import UnitConversionService, validate_unit_mode

logger = logging.getLogger(__name__)


def _get_product(product_id: int, label: str = "Product") -> Product:
    try:
        return Product.objects.get(id=product_id)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(label, product_id)


class FormulaService(BaseService):
    model = ProductFormula

    @classmethod
    def serialize(cls, line: ProductFormula) -> Dict[str, Any]:
        ingredient = line.ingredient
        per_unit = UnitConversionService.to_primary(ingredient, line.quantity, line.unit_type)
        unit = ingredient.secondary_unit if line.unit_type == UnitMode.SECONDARY else ingredient.packing_type
        return {
            "id": line.id,
            "product_id": line.product_id,
            "ingredient_id": ingredient.id,
            "ingredient": ingredient.name,
            "quantity": str(line.quantity),
            "unit_mode": line.unit_type,
            "unit": unit,
            "quantity_per_unit_primary": str(round_decimal(per_unit.quantity)),
            **UnitConversionService.describe(ingredient),
        }

    @classmethod
    def has_formula(cls, product_id: int) -> bool:
        return cls.model.objects.filter(product_id=product_id).exists()

    @classmethod
    def list_ingredients(cls, product_id: int) -> List[Dict[str, Any]]:
        lines = cls.model.objects.filter(product_id=product_id).select_related("ingredient")
        return [
            {
                "ingredient_id": line.ingredient_id,
                "quantity": line.quantity,
                "unit_mode": line.unit_type,
            }
            for line in lines
        ]

    @classmethod
    def get_formula(cls, product_id: int) -> Dict[str, Any]:
        product = _get_product(product_id)
        lines = cls.model.objects.filter(product=product).select_related("ingredient")

        return success_response({
            "product_id": product.id,
            "product_name": product.name,
            "unit": product.packing_type,
            "batch_size": str(product.formula_base_qty),
            "ingredients": [cls.serialize(line) for line in lines],
            "count": len(lines),
        })

    @classmethod
    @transaction.atomic
    def upsert_entry(cls,
                     product_id: int,
                     ingredient_id: int,
                     quantity: Any,
                     unit_mode: str = UnitMode.PRIMARY,
                     per_batch: bool = False) -> Dict[str, Any]:
        """
        Set how much of ``ingredient_id`` one unit of ``product_id`` consumes
        and rebuild recorded production inputs for the product.

        With ``per_batch`` the quantity covers a whole batch
        (``formula_base_qty`` units) and is stored per unit.
        """
        product = _get_product(product_id)
        ingredient = _get_product(ingredient_id, "Ingredient")

        if product.id == ingredient.id:
            raise ValidationError("A product cannot be an ingredient of itself", "ingredient_id")

        unit_mode = validate_unit_mode(unit_mode)

        if unit_mode == UnitMode.SECONDARY:
            if not ingredient.has_dual_units:
                raise ConfigurationError(
                    f"Ingredient '{ingredient.name}' has no secondary unit", ingredient, "unit_mode"
                )
            UnitConversionService.validate_product(ingredient)

        quantity = parse_quantity(quantity)
        if per_batch:
            batch = product.formula_base_qty or Decimal("1")
            if batch > 0:
                quantity = quantity / batch

        line, created = cls.model.objects.update_or_create(
            product=product,
            ingredient=ingredient,
            defaults={"quantity": quantity.quantize(Decimal("0.000001")), "unit_type": unit_mode},
        )

        recalculation = RecalculationService.recalculate(product)
        logger.info(
            "%s formula line %s <- %s (%s %s)",
            "Added" if created else "Updated", product.name, ingredient.name, line.quantity, unit_mode,
        )

        return success_response({
            "entry": cls.serialize(line),
            "created": created,
            "recalculation": recalculation,
        }, "Formula entry saved")

    @classmethod
    @transaction.atomic
    def delete_entry(cls, entry_id: int) -> Dict[str, Any]:
        line = cls.get_or_404(entry_id)
        product = line.product
        ingredient_name = line.ingredient.name
        line.delete()

        recalculation = RecalculationService.recalculate(product)
        logger.info("Removed %s from the formula of %s", ingredient_name, product.name)

        return success_response({"recalculation": recalculation}, "Formula entry deleted")

    @classmethod
    @transaction.atomic
    def set_batch_size(cls, product_id: int, batch_size: Any) -> Dict[str, Any]:
        """Only production recorded from now on uses the new batch size."""
        product = _get_product(product_id)
        product.formula_base_qty = parse_quantity(batch_size, "batch_size")
        product.save(update_fields=["formula_base_qty", "updated_at"])

        return success_response({
            "product_id": product.id,
            "batch_size": str(product.formula_base_qty),
        }, "Batch size updated")
