import json
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse

from stock.models import StockLedger, UnitMode
from stock.tests.factories import make_formula, make_product, make_pva


class ProductApiTests(TestCase):

    def post(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type="application/json")

    def test_create_and_fetch(self):
        response = self.post(reverse("main:product-create"), {
            "name": "PVA", "packing_type": "bag", "has_dual_units": True,
            "secondary_unit": "kgs", "conversion_rate": "20",
        })
        self.assertEqual(response.status_code, 201)
        product_id = response.json()["data"]["id"]

        body = self.client.get(reverse("main:product-detail", args=[product_id])).json()
        self.assertEqual(body["data"]["secondary_unit"], "KGS")

        body = self.client.get(reverse("main:product-list"), {"search": "pv"}).json()
        self.assertEqual(body["data"]["pagination"]["total_products"], 1)

    def test_missing_fields(self):
        response = self.post(reverse("main:product-create"), {"name": "PVA"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("packing_type", response.json()["error"]["details"])

    def test_configuration_error(self):
        response = self.post(reverse("main:product-create"), {
            "name": "Resin", "packing_type": "BAG", "has_dual_units": True, "secondary_unit": "KGS",
        })
        self.assertEqual(response.status_code, 422)

    def test_not_found(self):
        response = self.client.get(reverse("main:product-detail", args=[999999]))
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.json()["success"])

    def test_stock(self):
        product = make_pva()
        body = self.client.get(reverse("main:product-stock", args=[product.id])).json()
        self.assertEqual(Decimal(body["data"]["balance"]), Decimal("0"))


class SaleApiTests(TestCase):

    def setUp(self):
        self.gum = make_product("LIQUID GUM", "BAG")
        self.pva = make_pva()
        make_formula(self.gum, self.pva, "6", UnitMode.SECONDARY)

    def post(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type="application/json")

    def test_sale_lifecycle(self):
        response = self.post(reverse("main:sale-create"), {
            "product_id": self.gum.id, "quantity": "10", "date": "2024-06-15",
        })
        self.assertEqual(response.status_code, 201)
        data = response.json()["data"]
        self.assertEqual(Decimal(data["stock"]["production"]["consumption"][0]["required_quantity"]), Decimal("3"))
        sale_id = data["sale"]["id"]

        response = self.client.patch(
            reverse("main:sale-update", args=[sale_id]),
            data=json.dumps({"bill_no": "INV-7"}),
            content_type="application/json",
        )
        self.assertEqual(response.json()["data"]["sale"]["bill_no"], "INV-7")

        response = self.client.delete(reverse("main:sale-delete", args=[sale_id]))
        self.assertEqual(response.json()["data"]["deleted_entries"], 3)
        self.assertFalse(StockLedger.objects.exists())

    def test_missing_quantity(self):
        response = self.post(reverse("main:sale-create"), {"product_id": self.gum.id})
        self.assertEqual(response.status_code, 400)

    def test_purchase_lifecycle(self):
        response = self.post(reverse("main:purchase-create"), {
            "product_id": self.pva.id, "quantity": "2", "date": "2024-06-15",
        })
        self.assertEqual(response.status_code, 201)
        purchase_id = response.json()["data"]["id"]

        body = self.client.get(reverse("main:purchase-list")).json()
        self.assertEqual(body["data"]["pagination"]["total_purchases"], 1)

        response = self.client.delete(reverse("main:purchase-delete", args=[purchase_id]))
        self.assertEqual(response.status_code, 200)
