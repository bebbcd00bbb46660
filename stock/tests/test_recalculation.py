from datetime import date
from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase

from stock.models import ProductionItem, ProductionLog, StockLedger, UnitMode
from stock.services import (
    BusinessRuleError, FormulaService, ManualProductionService, RecalculationService,
    StockLedgerService, ValidationError,
)
from stock.tests.factories import make_formula, make_product, make_pva

TT = StockLedger.TransactionType


class ManualProductionTests(TestCase):

    def setUp(self):
        self.gum = make_product("LIQUID GUM", "BAG")
        self.pva = make_pva()
        make_formula(self.gum, self.pva, "6", UnitMode.SECONDARY)

    def test_inputs_default_to_the_formula(self):
        result = ManualProductionService.record_production(self.gum.id, "5", "2024-06-15")
        production = result["production"]

        self.assertEqual(production["batch_no"], "PROD-20240615-0001")
        self.assertEqual(len(production["items"]), 1)
        self.assertEqual(Decimal(production["items"][0]["input_quantity"]), Decimal("1.5"))

        self.assertEqual(StockLedgerService.balance_as_of(self.gum), Decimal("5"))
        self.assertEqual(StockLedgerService.balance_as_of(self.pva), Decimal("-1.5"))

    def test_explicit_inputs_in_secondary_units(self):
        result = ManualProductionService.record_production(
            self.gum.id, "2", "2024-06-15",
            inputs=[{"product_id": self.pva.id, "quantity": "30", "unit_mode": "secondary"}],
        )
        self.assertEqual(Decimal(result["production"]["items"][0]["input_quantity"]), Decimal("1.5"))

        out = StockLedger.objects.get(transaction_type=TT.PRODUCTION_OUT)
        self.assertEqual(out.trans_unit, "KGS")

    def test_sequential_batch_numbers(self):
        first = ManualProductionService.record_production(self.gum.id, "1", "2024-06-15")
        second = ManualProductionService.record_production(self.gum.id, "1", "2024-06-15")
        self.assertEqual(first["production"]["batch_no"], "PROD-20240615-0001")
        self.assertEqual(second["production"]["batch_no"], "PROD-20240615-0002")

    def test_duplicate_batch_no(self):
        ManualProductionService.record_production(self.gum.id, "1", batch_no="B-1")
        with self.assertRaises(ValidationError):
            ManualProductionService.record_production(self.gum.id, "1", batch_no="B-1")

    def test_product_cannot_consume_itself(self):
        with self.assertRaises(ValidationError):
            ManualProductionService.record_production(
                self.gum.id, "1", inputs=[{"product_id": self.gum.id, "quantity": "1"}]
            )

    def test_unknown_input_unit_mode(self):
        with self.assertRaises(ValidationError) as ctx:
            ManualProductionService.record_production(
                self.gum.id, "2", "2024-06-15",
                inputs=[{"product_id": self.pva.id, "quantity": "30", "unit_mode": "kgs"}],
            )
        self.assertEqual(ctx.exception.field, "inputs[0].unit_mode")
        self.assertFalse(ProductionLog.objects.exists())
        self.assertFalse(StockLedger.objects.exists())

    def test_untracked_output(self):
        labour = make_product("LABOUR", "NOS", maintain_stock=False)
        with self.assertRaises(BusinessRuleError):
            ManualProductionService.record_production(labour.id, "1")

    def test_delete_production(self):
        log_id = ManualProductionService.record_production(self.gum.id, "5")["production"]["id"]

        result = ManualProductionService.delete_production(log_id)
        self.assertEqual(result["deleted_entries"], 2)
        self.assertFalse(ProductionLog.objects.exists())
        self.assertFalse(ProductionItem.objects.exists())
        self.assertFalse(StockLedger.objects.exists())


class RecalculationTests(TestCase):

    def setUp(self):
        self.gum = make_product("LIQUID GUM", "BAG")
        self.pva = make_pva()
        self.line = make_formula(self.gum, self.pva, "6", UnitMode.SECONDARY)
        self.log_id = ManualProductionService.record_production(
            self.gum.id, "5", date(2024, 6, 15)
        )["production"]["id"]

    def consumed(self):
        return StockLedger.objects.get(related_id=self.log_id, transaction_type=TT.PRODUCTION_OUT).quantity_out

    def test_formula_edit_rewrites_inputs(self):
        self.assertEqual(self.consumed(), Decimal("1.5"))

        result = FormulaService.upsert_entry(self.gum.id, self.pva.id, "8", UnitMode.SECONDARY)
        self.assertEqual(result["recalculation"]["events"], 1)

        self.assertEqual(self.consumed(), Decimal("2"))
        production_in = StockLedger.objects.get(related_id=self.log_id, transaction_type=TT.PRODUCTION_IN)
        self.assertEqual(production_in.quantity_in, Decimal("5"))
        self.assertEqual(ProductionItem.objects.get(production_id=self.log_id).input_quantity, Decimal("2"))

    def test_recalculation_is_idempotent(self):
        RecalculationService.recalculate(self.gum)
        first = list(StockLedger.objects.order_by("product_id", "transaction_type").values_list(
            "product_id", "transaction_type", "quantity_in", "quantity_out", "related_id"))

        RecalculationService.recalculate(self.gum.id)
        second = list(StockLedger.objects.order_by("product_id", "transaction_type").values_list(
            "product_id", "transaction_type", "quantity_in", "quantity_out", "related_id"))

        self.assertEqual(first, second)

    def test_removing_an_ingredient_drops_its_inputs(self):
        FormulaService.delete_entry(self.line.id)
        self.assertFalse(StockLedger.objects.filter(transaction_type=TT.PRODUCTION_OUT).exists())
        self.assertEqual(StockLedgerService.balance_as_of(self.gum), Decimal("5"))

    def test_batch_size_change_is_not_retroactive(self):
        FormulaService.set_batch_size(self.gum.id, "10")
        self.assertEqual(self.consumed(), Decimal("1.5"))

    def test_failed_recalculation_rolls_back_the_formula_edit(self):
        with patch.object(ManualProductionService, "_write_inputs", side_effect=DatabaseError("disk I/O error")):
            with self.assertRaises(DatabaseError):
                FormulaService.upsert_entry(self.gum.id, self.pva.id, "8", UnitMode.SECONDARY)

        self.line.refresh_from_db()
        self.assertEqual(self.line.quantity, Decimal("6"))
        self.assertEqual(self.consumed(), Decimal("1.5"))
        self.assertEqual(ProductionItem.objects.get(production_id=self.log_id).input_quantity, Decimal("1.5"))

    def test_recalculate_all(self):
        result = RecalculationService.recalculate_all()
        self.assertEqual(result["count"], 1)
        self.assertEqual(result["events"], 1)
