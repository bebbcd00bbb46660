import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional, List, Union
from decimal import Decimal
from django.db import transaction
from django.utils import timezone

from main.models import Product, Sale
from stock.models import ProductFormula, ProductionLog, ProductionItem, StockLedger
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, NotFoundError, BusinessRuleError,
    to_date, round_decimal, ceil_decimal, parse_quantity, generate_number
)
from stock.services.ledger_service import StockLedgerService
from stock.services.unit_service import UnitConversionService, validate_unit_mode

logger = logging.getLogger(__name__)

TT = StockLedger.TransactionType

SALE_DERIVED_TYPES = (TT.SALE, TT.PRODUCTION, TT.CONSUMPTION)
MANUAL_PRODUCTION_TYPES = (TT.PRODUCTION_IN, TT.PRODUCTION_OUT)


@dataclass
class ConsumptionLine:
    ingredient: Product
    quantity_per_unit: Decimal
    required_quantity: Decimal
    trans_unit: str
    trans_conversion_factor: Decimal
    formula_line: Optional[ProductFormula] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ingredient_id": self.ingredient.id,
            "ingredient": self.ingredient.name,
            "quantity_per_unit": str(self.quantity_per_unit),
            "required_quantity": str(self.required_quantity),
            "unit": self.ingredient.packing_type,
            "trans_unit": self.trans_unit,
            "trans_conversion_factor": str(self.trans_conversion_factor),
        }


def production_quantity(finished_good: Product, deficit: Decimal, sale_unit: str = None) -> Decimal:
    """
    Quantity to manufacture for a deficit: whole units unless the good is
    sold by weight, then rounded up to a multiple of the batch size.
    """
    if deficit <= 0:
        return Decimal("0")

    unit = sale_unit or finished_good.packing_type
    raw = deficit if UnitConversionService.is_decimal_unit(unit) else ceil_decimal(deficit)

    batch = finished_good.formula_base_qty or Decimal("1")
    if batch <= 0:
        batch = Decimal("1")

    return round_decimal(ceil_decimal(raw / batch) * batch)


def compute_consumption(finished_good: Product, quantity: Decimal) -> List[ConsumptionLine]:
    """Ingredient draw for ``quantity`` units of ``finished_good`` under its current formula."""
    lines = []
    formula = ProductFormula.objects.filter(product=finished_good).select_related("ingredient")

    for formula_line in formula:
        ingredient = formula_line.ingredient
        if not ingredient.maintain_stock:
            logger.debug("Skipping untracked ingredient %s (%s)", ingredient.id, ingredient.name)
            continue

        converted = UnitConversionService.to_primary(
            ingredient, formula_line.quantity, formula_line.unit_type
        )
        required = quantity * converted.quantity
        if not (UnitConversionService.is_decimal_unit(ingredient.packing_type) or ingredient.has_dual_units):
            required = ceil_decimal(required)

        lines.append(ConsumptionLine(
            ingredient=ingredient,
            quantity_per_unit=converted.quantity,
            required_quantity=round_decimal(required),
            trans_unit=converted.trans_unit,
            trans_conversion_factor=converted.trans_conversion_factor,
            formula_line=formula_line,
        ))

    return lines


class AutoProductionService:
    """Sale-driven manufacturing: covers a finished good's deficit from its formula."""

    @classmethod
    @transaction.atomic
    def process_sale(cls, sale: Sale, is_edit: bool = False) -> Dict[str, Any]:
        """
        Write the SALE row for ``sale`` and cover any resulting deficit.

        On edit the SALE row is rewritten but production already recorded for
        the sale is left as is; a new production run happens only when the
        sale has none yet.
        """
        StockLedgerService.delete_by_related(sale.id, [TT.SALE])

        sale_entry = cls.record_sale_entry(sale)
        if sale_entry is None:
            return {"sale_id": sale.id, "sale_entry": None, "production": None}
        product = sale.product

        if is_edit and StockLedger.objects.filter(related_id=sale.id, transaction_type=TT.PRODUCTION).exists():
            logger.info("Sale %s edited, keeping its existing production", sale.id)
            return {"sale_id": sale.id, "sale_entry": sale_entry.id, "production": None}

        production = cls.produce_for_deficit(product, sale.date, related_id=sale.id, sale_unit=sale.unit)
        return {"sale_id": sale.id, "sale_entry": sale_entry.id, "production": production}

    @classmethod
    def record_sale_entry(cls, sale: Sale) -> Optional[StockLedger]:
        product = sale.product
        if not product.maintain_stock:
            logger.debug("Sale %s: product %s is not stock-tracked", sale.id, product.id)
            return None

        quantity = round_decimal(sale.quantity * (sale.conversion_factor or Decimal("1")))
        return StockLedgerService.append(
            product,
            sale.date,
            TT.SALE,
            quantity_out=quantity,
            related_id=sale.id,
            trans_unit=sale.unit or product.packing_type,
            trans_conversion_factor=sale.conversion_factor,
            remarks=f"Bill {sale.bill_no}" if sale.bill_no else "",
        )

    @classmethod
    @transaction.atomic
    def produce_for_deficit(cls,
                            finished_good: Product,
                            on_date: Any,
                            related_id: int = None,
                            sale_unit: str = None) -> Optional[Dict[str, Any]]:
        if not ProductFormula.objects.filter(product=finished_good).exists():
            return None

        balance = StockLedgerService.balance_as_of(finished_good)
        if balance >= 0:
            return None

        deficit = -balance
        quantity = production_quantity(finished_good, deficit, sale_unit)
        lines = compute_consumption(finished_good, quantity)

        StockLedgerService.append(
            finished_good,
            on_date,
            TT.PRODUCTION,
            quantity_in=quantity,
            related_id=related_id,
            remarks=f"Auto production for sale #{related_id}" if related_id else "Auto production",
        )

        for line in lines:
            StockLedgerService.append(
                line.ingredient,
                on_date,
                TT.CONSUMPTION,
                quantity_out=line.required_quantity,
                related_id=related_id,
                trans_unit=line.trans_unit,
                trans_conversion_factor=line.trans_conversion_factor,
                remarks=f"Used for {finished_good.name}",
            )

        logger.info(
            "Auto production: %s x %s (deficit %s, batch %s) for related_id=%s, %s ingredients",
            finished_good.name, quantity, deficit, finished_good.formula_base_qty, related_id, len(lines),
        )

        return {
            "product_id": finished_good.id,
            "deficit": str(deficit),
            "production_quantity": str(quantity),
            "consumption": [line.to_dict() for line in lines],
        }

    @classmethod
    @transaction.atomic
    def remove_sale(cls, sale_id: int) -> int:
        return StockLedgerService.delete_by_related(sale_id, SALE_DERIVED_TYPES)


class ManualProductionService(BaseService):
    model = ProductionLog

    @classmethod
    def serialize(cls, log: ProductionLog, include_items: bool = True) -> Dict[str, Any]:
        data = {
            "id": log.id,
            "date": log.date.isoformat(),
            "batch_no": log.batch_no,
            "output_product_id": log.output_product_id,
            "output_product": log.output_product.name,
            "output_quantity": str(log.output_quantity),
            "unit": log.output_product.packing_type,
            "notes": log.notes,
            "created_at": log.created_at.isoformat(),
        }
        if include_items:
            data["items"] = [
                {
                    "id": item.id,
                    "input_product_id": item.input_product_id,
                    "input_product": item.input_product.name,
                    "input_quantity": str(item.input_quantity),
                    "unit": item.input_product.packing_type,
                }
                for item in log.items.select_related("input_product")
            ]
        return data

    @classmethod
    def list(cls,
             product_id: int = None,
             start_date: Any = None,
             end_date: Any = None,
             page: int = 1,
             per_page: int = 20) -> Dict[str, Any]:
        queryset = cls.model.objects.select_related("output_product")
        if product_id:
            queryset = queryset.filter(output_product_id=product_id)
        if start_date:
            queryset = queryset.filter(date__gte=to_date(start_date, "start_date"))
        if end_date:
            queryset = queryset.filter(date__lte=to_date(end_date, "end_date"))

        items, pagination = paginate_queryset(queryset, page, per_page)
        return success_response({
            "productions": [cls.serialize(log, include_items=False) for log in items],
            "pagination": pagination,
        })

    @classmethod
    def get(cls, log_id: int) -> Dict[str, Any]:
        return success_response({"production": cls.serialize(cls.get_or_404(log_id))})

    @classmethod
    def _inputs_from_payload(cls, output_product: Product, inputs: List[Dict], quantity: Decimal) -> List[ConsumptionLine]:
        lines = []
        for idx, data in enumerate(inputs):
            product_id = data.get("product_id")
            try:
                ingredient = Product.objects.get(id=product_id)
            except (Product.DoesNotExist, ValueError, TypeError):
                raise NotFoundError("Product", product_id)

            if ingredient.id == output_product.id:
                raise ValidationError(f"Input {idx + 1}: a product cannot consume itself", "inputs")

            converted = UnitConversionService.to_primary(
                ingredient,
                parse_quantity(data.get("quantity"), f"inputs[{idx}].quantity"),
                validate_unit_mode(data.get("unit_mode"), f"inputs[{idx}].unit_mode"),
            )
            lines.append(ConsumptionLine(
                ingredient=ingredient,
                quantity_per_unit=round_decimal(converted.quantity / quantity),
                required_quantity=round_decimal(converted.quantity),
                trans_unit=converted.trans_unit,
                trans_conversion_factor=converted.trans_conversion_factor,
            ))
        return lines

    @classmethod
    def _write_inputs(cls, log: ProductionLog, lines: List[ConsumptionLine]) -> int:
        for line in lines:
            ProductionItem.objects.create(
                production=log,
                input_product=line.ingredient,
                input_quantity=line.required_quantity,
            )
            StockLedgerService.append(
                line.ingredient,
                log.date,
                TT.PRODUCTION_OUT,
                quantity_out=line.required_quantity,
                related_id=log.id,
                trans_unit=line.trans_unit,
                trans_conversion_factor=line.trans_conversion_factor,
                remarks=f"Used for {log.output_product.name} ({log.batch_no})",
            )
        return len(lines)

    @classmethod
    @transaction.atomic
    def record_production(cls,
                          output_product_id: int,
                          output_quantity: Any,
                          production_date: Any = None,
                          batch_no: str = None,
                          inputs: List[Dict] = None,
                          notes: str = "") -> Dict[str, Any]:
        try:
            product = Product.objects.get(id=output_product_id)
        except (Product.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Product", output_product_id)

        if not product.maintain_stock:
            raise BusinessRuleError(f"'{product.name}' is not stock-tracked", "maintain_stock")

        quantity = parse_quantity(output_quantity, "output_quantity")
        production_date = to_date(production_date, default=timezone.localdate())

        if batch_no:
            if cls.model.objects.filter(batch_no=batch_no).exists():
                raise ValidationError(f"Batch number '{batch_no}' already exists", "batch_no")
        else:
            batch_no = generate_number("PROD", cls.model, "batch_no", production_date)

        if inputs is None:
            lines = compute_consumption(product, quantity)
        else:
            lines = cls._inputs_from_payload(product, inputs, quantity)

        log = cls.model.objects.create(
            date=production_date,
            batch_no=batch_no,
            output_product=product,
            output_quantity=round_decimal(quantity),
            notes=notes or "",
        )

        StockLedgerService.append(
            product,
            production_date,
            TT.PRODUCTION_IN,
            quantity_in=quantity,
            related_id=log.id,
            remarks=f"Production {batch_no}",
        )
        cls._write_inputs(log, lines)

        logger.info("Recorded production %s: %s x %s, %s inputs", batch_no, product.name, quantity, len(lines))

        return success_response({"production": cls.serialize(log)}, "Production recorded")

    @classmethod
    @transaction.atomic
    def delete_production(cls, log_id: int) -> Dict[str, Any]:
        log = cls.get_or_404(log_id)
        batch_no = log.batch_no

        deleted = StockLedgerService.delete_by_related(log.id, MANUAL_PRODUCTION_TYPES)
        log.delete()

        logger.info("Deleted production %s and %s ledger rows", batch_no, deleted)
        return success_response({"deleted_entries": deleted}, f"Production {batch_no} deleted")


class RecalculationService:
    """Rebuilds the inputs of recorded manual production from the current formula."""

    @classmethod
    def production_logs_for(cls, finished_good: Product):
        log_ids = StockLedger.objects.filter(
            product=finished_good,
            transaction_type=TT.PRODUCTION_IN,
            related_id__isnull=False,
        ).values_list("related_id", flat=True)
        return ProductionLog.objects.filter(id__in=set(log_ids)).select_related("output_product")

    @classmethod
    @transaction.atomic
    def recalculate(cls, finished_good: Union[Product, int]) -> Dict[str, Any]:
        if not isinstance(finished_good, Product):
            try:
                finished_good = Product.objects.get(id=finished_good)
            except (Product.DoesNotExist, ValueError, TypeError):
                raise NotFoundError("Product", finished_good)

        events = 0
        rows = 0
        for log in cls.production_logs_for(finished_good).order_by("date", "id"):
            StockLedgerService.delete_by_related(log.id, [TT.PRODUCTION_OUT])
            log.items.all().delete()

            lines = compute_consumption(finished_good, log.output_quantity)
            rows += ManualProductionService._write_inputs(log, lines)
            events += 1

        logger.info(
            "Recalculated %s production events for %s (%s input rows)",
            events, finished_good.name, rows,
        )
        return {
            "product_id": finished_good.id,
            "product_name": finished_good.name,
            "events": events,
            "rows_written": rows,
        }

    @classmethod
    def recalculate_all(cls) -> Dict[str, Any]:
        product_ids = set(ProductFormula.objects.values_list("product_id", flat=True))
        product_ids.update(ProductionLog.objects.values_list("output_product_id", flat=True))
        results = [cls.recalculate(product) for product in Product.objects.filter(id__in=product_ids)]
        return success_response({
            "products": results,
            "count": len(results),
            "events": sum(r["events"] for r in results),
        })
