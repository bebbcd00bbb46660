import logging
import operator
from collections import defaultdict
from functools import reduce
from typing import Dict, Any, List
from decimal import Decimal
from django.db import transaction
from django.db.models import Q

from main.models import Sale, Purchase
from stock.models import StockLedger, ProductionLog
from stock.services.base_service import success_response, round_decimal
from stock.services.ledger_service import StockLedgerService
from stock.services.production_service import AutoProductionService, compute_consumption

logger = logging.getLogger(__name__)

TT = StockLedger.TransactionType

# Ledger types and the record their related_id points at
RELATED_SOURCES = (
    ((TT.SALE, TT.PRODUCTION, TT.CONSUMPTION), Sale, "sale"),
    ((TT.PURCHASE,), Purchase, "purchase"),
    ((TT.PRODUCTION_IN, TT.PRODUCTION_OUT), ProductionLog, "production_log"),
)
TRANSFER_TYPES = (TT.TRANSFER_IN, TT.TRANSFER_OUT)


class LedgerAuditService:
    """Integrity checks over the ledger and the records that own its rows."""

    @classmethod
    def orphan_queryset(cls):
        conditions = []
        for types, model, _ in RELATED_SOURCES:
            conditions.append(Q(transaction_type__in=types) & (
                Q(related_id__isnull=True) | ~Q(related_id__in=model.objects.values("id"))
            ))

        conditions.append(Q(transaction_type__in=TRANSFER_TYPES) & (
            Q(related_id__isnull=True)
            | ~Q(related_id__in=StockLedger.objects.filter(transaction_type__in=TRANSFER_TYPES).values("id"))
        ))
        return StockLedger.objects.filter(reduce(operator.or_, conditions)).select_related("product")

    @classmethod
    def list_orphans(cls) -> List[Dict[str, Any]]:
        sources = {t: label for types, _, label in RELATED_SOURCES for t in types}
        sources.update({t: "transfer" for t in TRANSFER_TYPES})

        orphans = []
        for entry in cls.orphan_queryset().order_by("date", "id"):
            data = StockLedgerService.serialize(entry)
            data["product_name"] = entry.product.name
            data["missing"] = sources.get(entry.transaction_type)
            orphans.append(data)
        return orphans

    @classmethod
    def find_missing_sale_rows(cls):
        recorded = StockLedger.objects.filter(transaction_type=TT.SALE, related_id__isnull=False)
        return (
            Sale.objects.filter(product__maintain_stock=True)
            .exclude(id__in=recorded.values("related_id"))
            .select_related("product")
            .order_by("date", "id")
        )

    @classmethod
    def find_missing_purchase_rows(cls):
        recorded = StockLedger.objects.filter(transaction_type=TT.PURCHASE, related_id__isnull=False)
        return (
            Purchase.objects.filter(product__maintain_stock=True)
            .exclude(id__in=recorded.values("related_id"))
            .select_related("product")
            .order_by("date", "id")
        )

    @classmethod
    def report(cls) -> Dict[str, Any]:
        orphans = cls.list_orphans()
        missing_sales = list(cls.find_missing_sale_rows().values("id", "date", "bill_no", "product__name"))
        missing_purchases = list(cls.find_missing_purchase_rows().values("id", "date", "bill_no", "product__name"))

        return success_response({
            "orphans": orphans,
            "missing_sales": missing_sales,
            "missing_purchases": missing_purchases,
            "is_clean": not (orphans or missing_sales or missing_purchases),
        })

    @classmethod
    @transaction.atomic
    def repair(cls, dry_run: bool = True) -> Dict[str, Any]:
        """
        Delete orphaned rows and back-fill the SALE / PURCHASE rows of records
        that have none. Back-filled sales get their SALE row only; no
        production is generated for them.
        """
        from main.services.purchase_service import PurchaseService

        orphans = list(cls.orphan_queryset())
        missing_sales = list(cls.find_missing_sale_rows())
        missing_purchases = list(cls.find_missing_purchase_rows())

        summary = {
            "dry_run": dry_run,
            "orphans_deleted": len(orphans),
            "sales_backfilled": len(missing_sales),
            "purchases_backfilled": len(missing_purchases),
        }
        if dry_run:
            return success_response(summary, "Dry run, nothing changed")

        if orphans:
            StockLedger.objects.filter(id__in=[e.id for e in orphans]).delete()
            logger.warning("Deleted %s orphaned ledger rows", len(orphans))

        for sale in missing_sales:
            AutoProductionService.record_sale_entry(sale)
        for purchase in missing_purchases:
            PurchaseService.record_entry(purchase)

        if missing_sales or missing_purchases:
            logger.warning(
                "Back-filled %s sale and %s purchase ledger rows",
                len(missing_sales), len(missing_purchases),
            )

        return success_response(summary, "Ledger repaired")

    @classmethod
    def production_audit(cls, product_id: int = None, limit: int = 20) -> Dict[str, Any]:
        """Compare recorded auto-production consumption with the current formula."""
        productions = StockLedger.objects.filter(transaction_type=TT.PRODUCTION).select_related("product")
        if product_id:
            productions = productions.filter(product_id=product_id)
        productions = list(productions.order_by("-id")[:limit])

        results = []
        for production in productions:
            recorded = defaultdict(Decimal)
            for row in StockLedger.objects.filter(
                related_id=production.related_id, transaction_type=TT.CONSUMPTION
            ):
                recorded[row.product_id] += row.quantity_out

            expected = {
                line.ingredient.id: line
                for line in compute_consumption(production.product, production.quantity_in)
            }

            ingredients = []
            for ingredient_id in sorted(set(recorded) | set(expected)):
                line = expected.get(ingredient_id)
                expected_qty = line.required_quantity if line else Decimal("0")
                recorded_qty = round_decimal(recorded.get(ingredient_id, Decimal("0")))
                ingredients.append({
                    "ingredient_id": ingredient_id,
                    "ingredient": line.ingredient.name if line else None,
                    "recorded": str(recorded_qty),
                    "expected": str(expected_qty),
                    "matches": recorded_qty == expected_qty,
                })

            results.append({
                "entry_id": production.id,
                "date": production.date.isoformat(),
                "product_id": production.product_id,
                "product_name": production.product.name,
                "sale_id": production.related_id,
                "quantity": str(production.quantity_in),
                "ingredients": ingredients,
                "matches": all(i["matches"] for i in ingredients),
            })

        return success_response({
            "productions": results,
            "count": len(results),
            "mismatches": sum(1 for r in results if not r["matches"]),
        })
