from datetime import date
from decimal import Decimal

from django.test import TestCase

from stock.models import StockLedger
from stock.services import (
    NotFoundError, StockLedgerService, ValidationError, financial_year_bounds,
)
from stock.tests.factories import make_product, make_pva, make_sale

TT = StockLedger.TransactionType


class AppendAndBalanceTests(TestCase):

    def setUp(self):
        self.product = make_product("SCREW", "PCS")

    def test_balance_is_in_minus_out(self):
        StockLedgerService.append(self.product, date(2024, 4, 1), TT.OPENING, quantity_in=10)
        StockLedgerService.append(self.product, date(2024, 4, 5), TT.PURCHASE, quantity_in=5)
        StockLedgerService.append(self.product, date(2024, 4, 9), TT.SALE, quantity_out=12)
        StockLedgerService.append(self.product, date(2024, 4, 9), TT.ADJUSTMENT_OUT, quantity_out="0.5")

        self.assertEqual(StockLedgerService.balance_as_of(self.product), Decimal("2.5"))

    def test_date_bounds_are_inclusive(self):
        StockLedgerService.append(self.product, date(2024, 4, 1), TT.PURCHASE, quantity_in=10)
        StockLedgerService.append(self.product, date(2024, 4, 2), TT.PURCHASE, quantity_in=20)
        StockLedgerService.append(self.product, date(2024, 4, 3), TT.PURCHASE, quantity_in=40)

        self.assertEqual(StockLedgerService.balance_as_of(self.product, scope_end="2024-04-02"), Decimal("30"))
        self.assertEqual(
            StockLedgerService.balance_as_of(self.product, date(2024, 4, 2), date(2024, 4, 3)),
            Decimal("60"),
        )

    def test_empty_ledger_is_zero(self):
        self.assertEqual(StockLedgerService.balance_as_of(self.product.id), Decimal("0"))

    def test_quantities_are_rounded(self):
        entry = StockLedgerService.append(self.product, date(2024, 4, 1), TT.PURCHASE, quantity_in="1.234567")
        entry.refresh_from_db()
        self.assertEqual(entry.quantity_in, Decimal("1.2346"))
        self.assertEqual(entry.trans_unit, "PCS")

    def test_unknown_type(self):
        with self.assertRaises(ValidationError):
            StockLedgerService.append(self.product, date(2024, 4, 1), "GIFT", quantity_in=1)

    def test_unknown_product(self):
        with self.assertRaises(NotFoundError):
            StockLedgerService.get_balance(999999)

    def test_get_balance_shows_secondary_quantity(self):
        pva = make_pva()
        StockLedgerService.append(pva, date(2024, 4, 1), TT.PURCHASE, quantity_in="1.5")

        result = StockLedgerService.get_balance(pva.id)
        self.assertEqual(Decimal(result["balance"]), Decimal("1.5"))
        self.assertEqual(result["secondary_balance"], "30.00 KGS")

    def test_delete_by_related_only_touches_listed_types(self):
        StockLedgerService.append(self.product, date(2024, 4, 1), TT.SALE, quantity_out=1, related_id=7)
        StockLedgerService.append(self.product, date(2024, 4, 1), TT.PURCHASE, quantity_in=1, related_id=7)

        self.assertEqual(StockLedgerService.delete_by_related(7, [TT.SALE]), 1)
        self.assertEqual(StockLedger.objects.filter(related_id=7).get().transaction_type, TT.PURCHASE)


class LedgerRangeTests(TestCase):

    def setUp(self):
        self.product = make_product("SCREW", "PCS")
        StockLedgerService.append(self.product, date(2024, 3, 20), TT.PURCHASE, quantity_in=8)
        StockLedgerService.append(self.product, date(2024, 4, 1), TT.OPENING, quantity_in=10)
        StockLedgerService.append(self.product, date(2024, 4, 5), TT.SALE, quantity_out=4)
        StockLedgerService.append(self.product, date(2024, 4, 5), TT.PURCHASE, quantity_in=6)
        StockLedgerService.append(self.product, date(2024, 4, 7), TT.ADJUSTMENT_OUT, quantity_out=1)

    def test_running_balance(self):
        result = StockLedgerService.ledger_range(self.product.id, "2024-04-01", "2024-04-30")
        group = result["products"][0]

        self.assertEqual(Decimal(group["opening_balance"]), Decimal("8"))
        types = [row["transaction_type"] for row in group["rows"]]
        self.assertEqual(types, [TT.OPENING, TT.PURCHASE, TT.SALE, TT.ADJUSTMENT_OUT])

        closings = [Decimal(row["closing_stock"]) for row in group["rows"]]
        self.assertEqual(closings, [Decimal("18"), Decimal("24"), Decimal("20"), Decimal("19")])
        self.assertEqual(Decimal(group["closing_balance"]), Decimal("19"))

    def test_opening_leads_only_its_own_financial_year(self):
        StockLedgerService.append(self.product, date(2025, 3, 10), TT.SALE, quantity_out=2)
        StockLedgerService.append(self.product, date(2025, 4, 2), TT.PURCHASE, quantity_in=3)
        StockLedgerService.append(self.product, date(2025, 4, 15), TT.OPENING, quantity_in=5)

        group = StockLedgerService.ledger_range(self.product.id, "2024-04-01", "2025-04-30")["products"][0]

        types = [row["transaction_type"] for row in group["rows"]]
        self.assertEqual(types, [
            TT.OPENING, TT.PURCHASE, TT.SALE, TT.ADJUSTMENT_OUT, TT.SALE,
            TT.OPENING, TT.PURCHASE,
        ])
        closings = [Decimal(row["closing_stock"]) for row in group["rows"]]
        self.assertEqual(closings, [
            Decimal("18"), Decimal("24"), Decimal("20"), Decimal("19"), Decimal("17"),
            Decimal("22"), Decimal("25"),
        ])

    def test_opening_is_folded_into_opening_stock(self):
        rows = StockLedgerService.ledger_range(self.product.id, "2024-04-01", "2024-04-30")["products"][0]["rows"]

        self.assertEqual(Decimal(rows[0]["opening_stock"]), Decimal("18"))
        self.assertEqual(Decimal(rows[0]["receipts"]), Decimal("0"))
        self.assertEqual(Decimal(rows[2]["sales"]), Decimal("4"))
        self.assertEqual(Decimal(rows[3]["issued"]), Decimal("1"))

    def test_closing_matches_balance(self):
        result = StockLedgerService.ledger_range(self.product.id, None, "2024-04-30")
        self.assertEqual(
            Decimal(result["products"][0]["closing_balance"]),
            StockLedgerService.balance_as_of(self.product, scope_end="2024-04-30"),
        )

    def test_product_without_movement_in_range(self):
        result = StockLedgerService.ledger_range(self.product.id, "2024-05-01", "2024-05-31")
        group = result["products"][0]
        self.assertEqual(group["rows"], [])
        self.assertEqual(Decimal(group["closing_balance"]), Decimal("19"))

    def test_sale_rows_are_described_from_the_bill(self):
        sale = make_sale(self.product, 2, on_date=date(2024, 4, 10), bill_no="INV-9", party_name="Ravi Traders")
        StockLedgerService.append(self.product, sale.date, TT.SALE, quantity_out=2, related_id=sale.id)

        rows = StockLedgerService.ledger_range(self.product.id, "2024-04-10", "2024-04-10")["products"][0]["rows"]
        self.assertEqual(rows[0]["description"], "Sale to Ravi Traders")
        self.assertEqual(rows[0]["bill_no"], "INV-9")

    def test_inverted_range(self):
        with self.assertRaises(ValidationError):
            StockLedgerService.ledger_range(self.product.id, "2024-05-01", "2024-04-01")


class SummaryTests(TestCase):

    def test_untracked_products_are_excluded_by_default(self):
        tracked = make_product("SCREW", "PCS")
        make_product("SERVICE CHARGE", "NOS", maintain_stock=False)
        StockLedgerService.append(tracked, date(2024, 4, 1), TT.PURCHASE, quantity_in=3)

        summary = StockLedgerService.stock_summary()
        self.assertEqual(summary["count"], 1)
        self.assertEqual(Decimal(summary["products"][0]["current_balance"]), Decimal("3"))

        self.assertEqual(StockLedgerService.stock_summary(include_untracked=True)["count"], 2)


class FinancialYearTests(TestCase):

    def test_april_to_march(self):
        self.assertEqual(financial_year_bounds(date(2024, 6, 15)), (date(2024, 4, 1), date(2025, 3, 31)))
        self.assertEqual(financial_year_bounds(date(2025, 2, 1)), (date(2024, 4, 1), date(2025, 3, 31)))
