from datetime import date
from decimal import Decimal

from django.test import TestCase, override_settings

from stock.models import StockLedger, UnitMode
from stock.services import (
    BusinessRuleError, ConfigurationError, NotFoundError, StockAdjustmentService,
    StockLedgerService, ValidationError,
)
from stock.tests.factories import make_product, make_pva

TT = StockLedger.TransactionType


class AdjustTests(TestCase):

    def setUp(self):
        self.pva = make_pva()

    def test_adjust_in_secondary_units(self):
        result = StockAdjustmentService.adjust(self.pva.id, "IN", "50", UnitMode.SECONDARY, "2024-06-15")

        self.assertEqual(result["entry"]["transaction_type"], TT.ADJUSTMENT_IN)
        self.assertEqual(Decimal(result["entry"]["quantity_in"]), Decimal("2.5"))
        self.assertEqual(result["entry"]["trans_unit"], "KGS")
        self.assertEqual(Decimal(result["balance"]), Decimal("2.5"))

    def test_adjust_out(self):
        StockAdjustmentService.adjust(self.pva.id, "OUT", "1")
        self.assertEqual(StockLedgerService.balance_as_of(self.pva), Decimal("-1"))

    def test_invalid_type(self):
        with self.assertRaises(ValidationError):
            StockAdjustmentService.adjust(self.pva.id, "SIDEWAYS", "1")

    def test_untracked_product(self):
        labour = make_product("LABOUR", "NOS", maintain_stock=False)
        with self.assertRaises(BusinessRuleError):
            StockAdjustmentService.adjust(labour.id, "IN", "1")

    def test_secondary_mode_on_single_unit_product(self):
        screw = make_product("SCREW", "PCS")
        with self.assertRaises(ConfigurationError):
            StockAdjustmentService.adjust(screw.id, "IN", "1", UnitMode.SECONDARY)

    def test_delete_adjustment(self):
        entry_id = StockAdjustmentService.adjust(self.pva.id, "IN", "1")["entry"]["id"]
        StockAdjustmentService.delete_adjustment(entry_id)
        self.assertFalse(StockLedger.objects.exists())

        with self.assertRaises(NotFoundError):
            StockAdjustmentService.delete_adjustment(entry_id)


class TransferTests(TestCase):

    def setUp(self):
        self.source = make_product("PVA LOOSE", "KGS")
        self.target = make_pva()

    def test_transfer_writes_a_linked_pair(self):
        result = StockAdjustmentService.transfer(
            self.source.id, self.target.id, "40", UnitMode.SECONDARY, "2024-06-15"
        )
        out_entry = StockLedger.objects.get(id=result["out_entry"]["id"])
        in_entry = StockLedger.objects.get(id=result["in_entry"]["id"])

        self.assertEqual(out_entry.related_id, in_entry.id)
        self.assertEqual(in_entry.related_id, out_entry.id)
        self.assertEqual(out_entry.quantity_out, Decimal("2"))
        self.assertEqual(in_entry.quantity_in, Decimal("2"))

    def test_same_product(self):
        with self.assertRaises(ValidationError):
            StockAdjustmentService.transfer(self.target.id, self.target.id, "1")

    def test_delete_either_side_removes_both(self):
        result = StockAdjustmentService.transfer(self.source.id, self.target.id, "1")

        deleted = StockAdjustmentService.delete_transfer(result["in_entry"]["id"])
        self.assertEqual(deleted["deleted_entries"], 2)
        self.assertFalse(StockLedger.objects.exists())

    def test_delete_non_transfer_row(self):
        entry_id = StockAdjustmentService.adjust(self.source.id, "IN", "1")["entry"]["id"]
        with self.assertRaises(NotFoundError):
            StockAdjustmentService.delete_transfer(entry_id)


class OpeningStockTests(TestCase):

    def setUp(self):
        self.pva = make_pva()

    def test_defaults_to_start_of_financial_year(self):
        result = StockAdjustmentService.set_opening_stock(self.pva.id, "100", UnitMode.SECONDARY, "2024-06-15")
        self.assertEqual(result["financial_year"], {"start": "2024-04-01", "end": "2025-03-31"})
        self.assertEqual(Decimal(result["entry"]["quantity_in"]), Decimal("5"))

        result = StockAdjustmentService.set_opening_stock(self.pva.id, "3")
        self.assertIsNotNone(result["entry"])

    def test_setting_again_replaces_the_row(self):
        StockAdjustmentService.set_opening_stock(self.pva.id, "3", opening_date="2024-04-01")
        StockAdjustmentService.set_opening_stock(self.pva.id, "7", opening_date="2024-04-01")

        self.assertEqual(StockLedger.objects.filter(transaction_type=TT.OPENING).count(), 1)
        self.assertEqual(StockLedgerService.balance_as_of(self.pva), Decimal("7"))

    def test_other_years_are_kept(self):
        StockAdjustmentService.set_opening_stock(self.pva.id, "3", opening_date="2023-04-01")
        StockAdjustmentService.set_opening_stock(self.pva.id, "7", opening_date="2024-04-01")

        self.assertEqual(
            StockLedgerService.balance_as_of(self.pva, scope_start=date(2024, 4, 1)), Decimal("7")
        )
        self.assertEqual(StockLedger.objects.filter(transaction_type=TT.OPENING).count(), 2)

    def test_zero_clears_the_opening(self):
        StockAdjustmentService.set_opening_stock(self.pva.id, "3", opening_date="2024-04-01")
        result = StockAdjustmentService.set_opening_stock(self.pva.id, "0", opening_date="2024-04-01")

        self.assertIsNone(result["entry"])
        self.assertFalse(StockLedger.objects.exists())

    @override_settings(TRADEBOOK_STOCK={"FINANCIAL_YEAR_START_MONTH": 1})
    def test_calendar_financial_year(self):
        result = StockAdjustmentService.set_opening_stock(self.pva.id, "1", opening_date="2024-06-15")
        self.assertEqual(result["financial_year"], {"start": "2024-01-01", "end": "2024-12-31"})
