import logging
from typing import Any, Dict, Iterable, List, Optional, Union
from datetime import date
from decimal import Decimal
from django.db import transaction
from django.db.models import Sum, Value, DecimalField
from django.db.models.functions import Coalesce

from main.models import Product, Sale, Purchase
from stock.models import StockLedger, ProductionLog
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, NotFoundError, ConfigurationError,
    to_decimal, to_date, round_decimal, financial_year_bounds
)
from stock.services.unit_service import UnitConversionService

logger = logging.getLogger(__name__)

TT = StockLedger.TransactionType

ZERO = Value(Decimal("0"), output_field=DecimalField(max_digits=15, decimal_places=4))


def _product(product: Union[Product, int]) -> Product:
    if isinstance(product, Product):
        return product
    try:
        return Product.objects.get(id=product)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Product", product)


class StockLedgerService(BaseService):
    model = StockLedger

    @classmethod
    def serialize(cls, entry: StockLedger) -> Dict[str, Any]:
        return {
            "id": entry.id,
            "product_id": entry.product_id,
            "date": entry.date.isoformat(),
            "transaction_type": entry.transaction_type,
            "transaction_type_display": entry.get_transaction_type_display(),
            "quantity_in": str(entry.quantity_in),
            "quantity_out": str(entry.quantity_out),
            "related_id": entry.related_id,
            "trans_unit": entry.trans_unit,
            "trans_conversion_factor": str(entry.trans_conversion_factor),
            "remarks": entry.remarks,
            "created_at": entry.created_at.isoformat() if entry.created_at else None,
        }

    @classmethod
    def append(cls,
               product: Union[Product, int],
               entry_date: Any,
               transaction_type: str,
               quantity_in: Any = 0,
               quantity_out: Any = 0,
               related_id: int = None,
               trans_unit: str = None,
               trans_conversion_factor: Any = 1,
               remarks: str = "") -> StockLedger:
        product = _product(product)

        if transaction_type not in TT.values:
            raise ValidationError(f"Unknown transaction type: {transaction_type}", "transaction_type")

        return StockLedger.objects.create(
            product=product,
            date=to_date(entry_date),
            transaction_type=transaction_type,
            quantity_in=round_decimal(to_decimal(quantity_in)),
            quantity_out=round_decimal(to_decimal(quantity_out)),
            related_id=related_id,
            trans_unit=trans_unit or product.packing_type,
            trans_conversion_factor=to_decimal(trans_conversion_factor, Decimal("1")),
            remarks=remarks or "",
        )

    @classmethod
    def balance_as_of(cls,
                      product: Union[Product, int],
                      scope_start: Any = None,
                      scope_end: Any = None) -> Decimal:
        """Sum of in minus sum of out, both date bounds inclusive."""
        product_id = product.id if isinstance(product, Product) else product
        queryset = StockLedger.objects.filter(product_id=product_id)

        scope_start = to_date(scope_start, "scope_start")
        scope_end = to_date(scope_end, "scope_end")
        if scope_start:
            queryset = queryset.filter(date__gte=scope_start)
        if scope_end:
            queryset = queryset.filter(date__lte=scope_end)

        totals = queryset.aggregate(
            total_in=Coalesce(Sum("quantity_in"), ZERO),
            total_out=Coalesce(Sum("quantity_out"), ZERO),
        )
        return totals["total_in"] - totals["total_out"]

    @classmethod
    def get_balance(cls, product_id: int, as_of: Any = None) -> Dict[str, Any]:
        product = _product(product_id)
        as_of = to_date(as_of, "as_of")
        balance = cls.balance_as_of(product, scope_end=as_of)

        return success_response({
            "product_id": product.id,
            "product_name": product.name,
            "as_of": as_of.isoformat() if as_of else None,
            "balance": str(balance),
            "secondary_balance": cls._secondary(product, balance),
            **UnitConversionService.describe(product),
        })

    @classmethod
    @transaction.atomic
    def delete_by_related(cls, related_id: int, types: Iterable[str]) -> int:
        types = list(types)
        if related_id is None or not types:
            return 0
        deleted, _ = StockLedger.objects.filter(
            related_id=related_id, transaction_type__in=types
        ).delete()
        logger.debug("Deleted %s ledger rows for related_id=%s types=%s", deleted, related_id, types)
        return deleted

    @classmethod
    def entries_for(cls, related_id: int, types: Iterable[str]):
        return StockLedger.objects.filter(
            related_id=related_id, transaction_type__in=list(types)
        ).select_related("product")

    @classmethod
    def list_entries(cls,
                     product_id: int = None,
                     transaction_type: str = None,
                     related_id: int = None,
                     start_date: Any = None,
                     end_date: Any = None,
                     page: int = 1,
                     per_page: int = 50) -> Dict[str, Any]:
        queryset = StockLedger.objects.select_related("product")

        if product_id:
            queryset = queryset.filter(product_id=product_id)
        if transaction_type:
            queryset = queryset.filter(transaction_type=transaction_type)
        if related_id:
            queryset = queryset.filter(related_id=related_id)

        start_date = to_date(start_date, "start_date")
        end_date = to_date(end_date, "end_date")
        if start_date:
            queryset = queryset.filter(date__gte=start_date)
        if end_date:
            queryset = queryset.filter(date__lte=end_date)

        items, pagination = paginate_queryset(queryset.order_by("-date", "-id"), page, per_page)

        return success_response({
            "entries": [cls.serialize(e) for e in items],
            "pagination": pagination,
        })

    @classmethod
    def stock_summary(cls, include_untracked: bool = False) -> Dict[str, Any]:
        products = Product.objects.all()
        if not include_untracked:
            products = products.filter(maintain_stock=True)

        products = products.annotate(
            total_in=Coalesce(Sum("ledger_entries__quantity_in"), ZERO),
            total_out=Coalesce(Sum("ledger_entries__quantity_out"), ZERO),
        ).order_by("name")

        summary = []
        for product in products:
            balance = product.total_in - product.total_out
            summary.append({
                "product_id": product.id,
                "product_name": product.name,
                "total_in": str(product.total_in),
                "total_out": str(product.total_out),
                "current_balance": str(balance),
                "secondary_balance": cls._secondary(product, balance),
                **UnitConversionService.describe(product),
            })

        return success_response({
            "products": summary,
            "count": len(summary),
        })

    @classmethod
    def ledger_range(cls,
                     product_id: int = None,
                     start_date: Any = None,
                     end_date: Any = None) -> Dict[str, Any]:
        """
        Ledger rows between two dates (inclusive) replayed per product into a
        running balance.

        Rows replay one financial year at a time. Within a year the OPENING
        row leads, then rows by date with receipts ahead of issues on the same
        day. Each row carries the stock before and after it plus the
        receipts / sales / issued split used by the ledger export;
        OPENING quantities are folded into the opening figure, not receipts.
        """
        start_date = to_date(start_date, "start_date")
        end_date = to_date(end_date, "end_date")
        if start_date and end_date and start_date > end_date:
            raise ValidationError("start_date must not be after end_date", "start_date")

        product = _product(product_id) if product_id else None

        queryset = StockLedger.objects.select_related("product")
        if product:
            queryset = queryset.filter(product=product)
        if start_date:
            queryset = queryset.filter(date__gte=start_date)
        if end_date:
            queryset = queryset.filter(date__lte=end_date)

        entries = sorted(queryset, key=cls._replay_key)
        openings = cls._openings_before(start_date, product)
        descriptions = cls._descriptions(entries)

        groups: Dict[int, Dict[str, Any]] = {}
        for entry in entries:
            group = groups.get(entry.product_id)
            if group is None:
                group = cls._group(entry.product, openings.get(entry.product_id, Decimal("0")))
                groups[entry.product_id] = group

            running = group["_running"]
            closing = running + entry.quantity_in - entry.quantity_out
            group["rows"].append(cls._row(entry, running, closing, descriptions.get(entry.id)))
            group["_running"] = closing

        # Products with a carried-forward balance but no movement in range
        if product and product.id not in groups:
            groups[product.id] = cls._group(product, openings.get(product.id, Decimal("0")))

        results = []
        for group in sorted(groups.values(), key=lambda g: (g["product_name"], g["product_id"])):
            group["closing_balance"] = str(group.pop("_running"))
            results.append(group)

        return success_response({
            "start_date": start_date.isoformat() if start_date else None,
            "end_date": end_date.isoformat() if end_date else None,
            "products": results,
            "count": len(results),
        })

    @staticmethod
    def _replay_key(entry: StockLedger):
        return (
            entry.product.name,
            entry.product_id,
            financial_year_bounds(entry.date)[0],
            0 if entry.transaction_type == TT.OPENING else 1,
            entry.date,
            0 if entry.is_inflow else 1,
            entry.id,
        )

    @classmethod
    def _openings_before(cls, start_date: Optional[date], product: Optional[Product]) -> Dict[int, Decimal]:
        if not start_date:
            return {}

        queryset = StockLedger.objects.filter(date__lt=start_date)
        if product:
            queryset = queryset.filter(product=product)

        rows = queryset.values("product_id").annotate(
            total_in=Coalesce(Sum("quantity_in"), ZERO),
            total_out=Coalesce(Sum("quantity_out"), ZERO),
        )
        return {r["product_id"]: r["total_in"] - r["total_out"] for r in rows}

    @classmethod
    def _group(cls, product: Product, opening: Decimal) -> Dict[str, Any]:
        return {
            "product_id": product.id,
            "product_name": product.name,
            **UnitConversionService.describe(product),
            "opening_balance": str(opening),
            "rows": [],
            "_running": opening,
        }

    @classmethod
    def _row(cls, entry: StockLedger, opening: Decimal, closing: Decimal,
             description: Optional[Dict[str, str]]) -> Dict[str, Any]:
        row = cls.serialize(entry)

        receipts = entry.quantity_in
        opening_stock = opening
        if entry.transaction_type == TT.OPENING:
            opening_stock += receipts
            receipts = Decimal("0")

        sales = issued = Decimal("0")
        if entry.quantity_out > 0:
            if entry.transaction_type == TT.SALE:
                sales = entry.quantity_out
            else:
                issued = entry.quantity_out

        description = description or {}
        row.update({
            "opening_stock": str(opening_stock),
            "receipts": str(receipts),
            "total_available": str(opening_stock + receipts),
            "sales": str(sales),
            "issued": str(issued),
            "closing_stock": str(closing),
            "description": description.get("text") or cls._default_description(entry),
            "bill_no": description.get("bill_no"),
            "display_in": cls._secondary(entry.product, entry.quantity_in),
            "display_out": cls._secondary(entry.product, entry.quantity_out),
            "display_closing": cls._secondary(entry.product, closing),
        })
        return row

    @staticmethod
    def _default_description(entry: StockLedger) -> str:
        if entry.transaction_type == TT.PRODUCTION:
            return f"Produced {entry.product.name}"
        if entry.transaction_type == TT.CONSUMPTION:
            return "Consumption"
        if entry.remarks:
            return entry.remarks
        return entry.get_transaction_type_display()

    @classmethod
    def _descriptions(cls, entries: List[StockLedger]) -> Dict[int, Dict[str, str]]:
        sale_ids, purchase_ids, log_ids = set(), set(), set()
        for entry in entries:
            if entry.related_id is None:
                continue
            if entry.transaction_type in (TT.SALE, TT.PRODUCTION, TT.CONSUMPTION):
                sale_ids.add(entry.related_id)
            elif entry.transaction_type == TT.PURCHASE:
                purchase_ids.add(entry.related_id)
            elif entry.transaction_type in (TT.PRODUCTION_IN, TT.PRODUCTION_OUT):
                log_ids.add(entry.related_id)

        sales = Sale.objects.select_related("product").in_bulk(sale_ids)
        purchases = Purchase.objects.in_bulk(purchase_ids)
        logs = ProductionLog.objects.select_related("output_product").in_bulk(log_ids)

        descriptions = {}
        for entry in entries:
            tt = entry.transaction_type
            if tt == TT.SALE and entry.related_id in sales:
                sale = sales[entry.related_id]
                descriptions[entry.id] = {"text": f"Sale to {sale.party_name or 'cash'}", "bill_no": sale.bill_no}
            elif tt == TT.PRODUCTION and entry.related_id in sales:
                sale = sales[entry.related_id]
                descriptions[entry.id] = {"text": f"Produced {entry.product.name}", "bill_no": sale.bill_no}
            elif tt == TT.CONSUMPTION and entry.related_id in sales:
                sale = sales[entry.related_id]
                descriptions[entry.id] = {"text": f"Consumed for {sale.product.name}", "bill_no": sale.bill_no}
            elif tt == TT.PURCHASE and entry.related_id in purchases:
                purchase = purchases[entry.related_id]
                descriptions[entry.id] = {"text": f"Purchase from {purchase.party_name or 'cash'}", "bill_no": purchase.bill_no}
            elif tt in (TT.PRODUCTION_IN, TT.PRODUCTION_OUT) and entry.related_id in logs:
                log = logs[entry.related_id]
                verb = "Produced" if tt == TT.PRODUCTION_IN else f"Used for {log.output_product.name}"
                descriptions[entry.id] = {"text": f"{verb} ({log.batch_no})", "bill_no": log.batch_no}
        return descriptions

    @staticmethod
    def _secondary(product: Product, quantity: Decimal) -> Optional[str]:
        if not product.has_dual_units:
            return None
        try:
            value = UnitConversionService.from_primary(product, quantity)
        except ConfigurationError:
            return None
        return UnitConversionService.format_quantity(value, product.secondary_unit)

