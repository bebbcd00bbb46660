from decimal import Decimal

from django.test import TestCase, override_settings

from stock.models import UnitMode
from stock.services import (
    ConfigurationError, ConversionDirection, UnitConversionService, ValidationError,
    convert, resolve_direction, validate_unit_mode,
)
from stock.tests.factories import make_product, make_pva


class ResolveDirectionTests(TestCase):

    def test_small_secondary_under_large_primary_divides(self):
        self.assertIs(resolve_direction("BAG", "KGS", 20), ConversionDirection.DIVIDE)

    def test_large_secondary_under_small_primary_multiplies(self):
        self.assertIs(resolve_direction("KGS", "BAG", 20), ConversionDirection.MULTIPLY)

    def test_matching_is_case_insensitive_substring(self):
        self.assertIs(resolve_direction("Bags (50)", "kilogram", 50), ConversionDirection.DIVIDE)

    def test_ambiguous_pair_multiplies_and_warns(self):
        with self.assertLogs("stock.services.unit_service", level="WARNING"):
            direction = resolve_direction("LTR", "ML", 1000)
        self.assertIs(direction, ConversionDirection.MULTIPLY)

    def test_unknown_units_fall_back_to_multiply(self):
        with self.assertLogs("stock.services.unit_service", level="WARNING"):
            self.assertIs(resolve_direction("SET", "UNIT", 4), ConversionDirection.MULTIPLY)


class ConvertTests(TestCase):

    def test_divide(self):
        self.assertEqual(convert("6", ConversionDirection.DIVIDE, "20"), Decimal("0.3"))

    def test_multiply(self):
        self.assertEqual(convert("2", ConversionDirection.MULTIPLY, "50"), Decimal("100"))

    def test_zero_rate_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            convert("6", ConversionDirection.DIVIDE, "0")


class UnitConversionServiceTests(TestCase):

    def setUp(self):
        self.pva = make_pva()

    def test_secondary_to_primary(self):
        converted = UnitConversionService.to_primary(self.pva, "6", UnitMode.SECONDARY)
        self.assertEqual(converted.quantity, Decimal("0.3"))
        self.assertEqual(converted.trans_unit, "KGS")
        self.assertEqual(converted.trans_conversion_factor, Decimal("20"))

    def test_primary_mode_is_passthrough(self):
        converted = UnitConversionService.to_primary(self.pva, "2.5")
        self.assertEqual(converted.quantity, Decimal("2.5"))
        self.assertEqual(converted.trans_unit, "BAG")
        self.assertEqual(converted.trans_conversion_factor, Decimal("1"))

    def test_round_trip(self):
        for quantity in ("6", "24", "0.5", "1000"):
            primary = UnitConversionService.to_primary(self.pva, quantity, UnitMode.SECONDARY).quantity
            self.assertEqual(UnitConversionService.from_primary(self.pva, primary), Decimal(quantity))

    def test_round_trip_for_ambiguous_pair(self):
        can = make_product("THINNER", "LTR", has_dual_units=True, secondary_unit="ML", conversion_rate=Decimal("1000"))
        with self.assertLogs("stock.services.unit_service", level="WARNING"):
            primary = UnitConversionService.to_primary(can, "500", UnitMode.SECONDARY).quantity
        self.assertEqual(UnitConversionService.from_primary(can, primary), Decimal("500"))

    def test_display_of_ambiguous_pair_does_not_warn(self):
        can = make_product("THINNER", "LTR", has_dual_units=True, secondary_unit="ML", conversion_rate=Decimal("1000"))
        with self.assertNoLogs("stock.services.unit_service", level="WARNING"):
            for quantity in ("0.5", "2", "12"):
                UnitConversionService.from_primary(can, quantity)

    def test_unit_mode_validation(self):
        self.assertEqual(validate_unit_mode(""), UnitMode.PRIMARY)
        self.assertEqual(validate_unit_mode(UnitMode.SECONDARY), UnitMode.SECONDARY)
        with self.assertRaises(ValidationError) as ctx:
            validate_unit_mode("kgs", "inputs[0].unit_mode")
        self.assertEqual(ctx.exception.field, "inputs[0].unit_mode")

    def test_secondary_mode_on_single_unit_product(self):
        plain = make_product("SCREW", "PCS")
        with self.assertRaises(ConfigurationError):
            UnitConversionService.to_primary(plain, "4", UnitMode.SECONDARY)

    def test_from_primary_without_secondary_unit(self):
        self.assertIsNone(UnitConversionService.from_primary(make_product("SCREW", "PCS"), "4"))

    def test_dual_unit_without_rate_is_rejected(self):
        broken = make_product("RESIN", "BAG", has_dual_units=True, secondary_unit="KGS")
        with self.assertRaises(ConfigurationError) as ctx:
            UnitConversionService.validate_product(broken)
        self.assertEqual(ctx.exception.details["field"], "conversion_rate")

    def test_dual_unit_without_secondary_unit_is_rejected(self):
        broken = make_product("RESIN", "BAG", has_dual_units=True, conversion_rate=Decimal("25"))
        with self.assertRaises(ConfigurationError):
            UnitConversionService.validate_product(broken)

    @override_settings(TRADEBOOK_STOCK={"STRICT_UNIT_CONFIG": False})
    def test_lenient_mode_uses_rate_one(self):
        broken = make_product("RESIN", "BAG", has_dual_units=True, secondary_unit="KGS")
        with self.assertLogs("stock.services.unit_service", level="WARNING"):
            converted = UnitConversionService.to_primary(broken, "7", UnitMode.SECONDARY)
        self.assertEqual(converted.quantity, Decimal("7"))

    def test_decimal_units(self):
        self.assertTrue(UnitConversionService.is_decimal_unit("KGS"))
        self.assertTrue(UnitConversionService.is_decimal_unit("kilogram"))
        self.assertFalse(UnitConversionService.is_decimal_unit("BAG"))
        self.assertFalse(UnitConversionService.is_decimal_unit(None))

    def test_format_quantity(self):
        self.assertEqual(UnitConversionService.format_quantity(Decimal("24"), "KGS"), "24.00 KGS")
        self.assertEqual(UnitConversionService.format_quantity(Decimal("3"), "BAG"), "3 BAG")
