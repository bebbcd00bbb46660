import logging
from typing import Dict, Any
from django.db import transaction
from django.utils import timezone

from main.models import Product
from stock.models import StockLedger, UnitMode
from stock.services.base_service import (
    success_response,
    ValidationError, NotFoundError, BusinessRuleError,
    to_date, parse_quantity, financial_year_bounds
)
from stock.services.ledger_service import StockLedgerService
from stock.services.unit_service import UnitConversionService, validate_unit_mode

logger = logging.getLogger(__name__)

TT = StockLedger.TransactionType

ADJUSTMENT_TYPES = {
    "IN": TT.ADJUSTMENT_IN,
    "OUT": TT.ADJUSTMENT_OUT,
    TT.ADJUSTMENT_IN: TT.ADJUSTMENT_IN,
    TT.ADJUSTMENT_OUT: TT.ADJUSTMENT_OUT,
}


def _tracked_product(product_id: int) -> Product:
    try:
        product = Product.objects.get(id=product_id)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Product", product_id)

    if not product.maintain_stock:
        raise BusinessRuleError(f"'{product.name}' is not stock-tracked", "maintain_stock")
    return product


class StockAdjustmentService:
    """Manual corrections: adjustments, product-to-product transfers, opening stock."""

    @classmethod
    @transaction.atomic
    def adjust(cls,
               product_id: int,
               adjustment_type: str,
               quantity: Any,
               unit_mode: str = UnitMode.PRIMARY,
               adjustment_date: Any = None,
               remarks: str = "") -> Dict[str, Any]:
        transaction_type = ADJUSTMENT_TYPES.get((adjustment_type or "").upper())
        if transaction_type is None:
            raise ValidationError("Adjustment type must be IN or OUT", "type")

        product = _tracked_product(product_id)
        converted = UnitConversionService.to_primary(product, parse_quantity(quantity), validate_unit_mode(unit_mode))

        is_in = transaction_type == TT.ADJUSTMENT_IN
        entry = StockLedgerService.append(
            product,
            to_date(adjustment_date, default=timezone.localdate()),
            transaction_type,
            quantity_in=converted.quantity if is_in else 0,
            quantity_out=0 if is_in else converted.quantity,
            trans_unit=converted.trans_unit,
            trans_conversion_factor=converted.trans_conversion_factor,
            remarks=remarks,
        )

        return success_response({
            "entry": StockLedgerService.serialize(entry),
            "balance": str(StockLedgerService.balance_as_of(product)),
        }, "Stock adjusted")

    @classmethod
    @transaction.atomic
    def transfer(cls,
                 source_product_id: int,
                 target_product_id: int,
                 quantity: Any,
                 unit_mode: str = UnitMode.PRIMARY,
                 transfer_date: Any = None,
                 remarks: str = "") -> Dict[str, Any]:
        """
        Move stock from one product to another. The quantity is read in the
        target product's units and both rows carry the same primary quantity.
        """
        if str(source_product_id) == str(target_product_id):
            raise ValidationError("Source and target must be different products", "target_product_id")

        source = _tracked_product(source_product_id)
        target = _tracked_product(target_product_id)

        converted = UnitConversionService.to_primary(target, parse_quantity(quantity), validate_unit_mode(unit_mode))
        transfer_date = to_date(transfer_date, default=timezone.localdate())

        out_entry = StockLedgerService.append(
            source,
            transfer_date,
            TT.TRANSFER_OUT,
            quantity_out=converted.quantity,
            trans_unit=converted.trans_unit,
            trans_conversion_factor=converted.trans_conversion_factor,
            remarks=remarks or f"Transfer to {target.name}",
        )
        in_entry = StockLedgerService.append(
            target,
            transfer_date,
            TT.TRANSFER_IN,
            quantity_in=converted.quantity,
            related_id=out_entry.id,
            trans_unit=converted.trans_unit,
            trans_conversion_factor=converted.trans_conversion_factor,
            remarks=remarks or f"Transfer from {source.name}",
        )
        out_entry.related_id = in_entry.id
        out_entry.save(update_fields=["related_id"])

        logger.info("Transferred %s from %s to %s", converted.quantity, source.name, target.name)

        return success_response({
            "out_entry": StockLedgerService.serialize(out_entry),
            "in_entry": StockLedgerService.serialize(in_entry),
        }, "Stock transferred")

    @classmethod
    @transaction.atomic
    def delete_transfer(cls, entry_id: int) -> Dict[str, Any]:
        """Delete either row of a transfer together with its pair."""
        entry = StockLedger.objects.filter(
            id=entry_id, transaction_type__in=[TT.TRANSFER_IN, TT.TRANSFER_OUT]
        ).first()
        if entry is None:
            raise NotFoundError("Transfer entry", entry_id)

        ids = [entry.id]
        if entry.related_id:
            ids.append(entry.related_id)
        deleted, _ = StockLedger.objects.filter(
            id__in=ids, transaction_type__in=[TT.TRANSFER_IN, TT.TRANSFER_OUT]
        ).delete()

        return success_response({"deleted_entries": deleted}, "Transfer deleted")

    @classmethod
    @transaction.atomic
    def delete_adjustment(cls, entry_id: int) -> Dict[str, Any]:
        deleted, _ = StockLedger.objects.filter(
            id=entry_id, transaction_type__in=[TT.ADJUSTMENT_IN, TT.ADJUSTMENT_OUT]
        ).delete()
        if not deleted:
            raise NotFoundError("Adjustment entry", entry_id)
        return success_response({"deleted_entries": deleted}, "Adjustment deleted")

    @classmethod
    @transaction.atomic
    def set_opening_stock(cls,
                          product_id: int,
                          quantity: Any,
                          unit_mode: str = UnitMode.PRIMARY,
                          opening_date: Any = None) -> Dict[str, Any]:
        """
        Replace the product's OPENING row for the financial year containing
        ``opening_date`` (defaults to the start of the current year).
        """
        product = _tracked_product(product_id)
        quantity = parse_quantity(quantity, allow_zero=True)

        opening_date = to_date(opening_date, "date")
        fy_start, fy_end = financial_year_bounds(opening_date)
        opening_date = opening_date or fy_start

        StockLedger.objects.filter(
            product=product,
            transaction_type=TT.OPENING,
            date__range=(fy_start, fy_end),
        ).delete()

        entry = None
        if quantity > 0:
            converted = UnitConversionService.to_primary(product, quantity, validate_unit_mode(unit_mode))
            entry = StockLedgerService.append(
                product,
                opening_date,
                TT.OPENING,
                quantity_in=converted.quantity,
                trans_unit=converted.trans_unit,
                trans_conversion_factor=converted.trans_conversion_factor,
                remarks=f"Opening stock {fy_start.year}-{fy_end.year}",
            )

        return success_response({
            "entry": StockLedgerService.serialize(entry) if entry else None,
            "financial_year": {"start": fy_start.isoformat(), "end": fy_end.isoformat()},
        }, "Opening stock set")
