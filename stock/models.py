from django.db import models


class UnitMode(models.TextChoices):
    PRIMARY = "primary", "Primary Unit"
    SECONDARY = "secondary", "Secondary Unit"


class ProductFormula(models.Model):
    """
    One BOM line: ``quantity`` of ``ingredient`` consumed per single unit of
    ``product``, expressed in the ingredient's primary or secondary unit.
    """

    product = models.ForeignKey(
        "main.Product", on_delete=models.CASCADE, related_name="formula_lines"
    )
    ingredient = models.ForeignKey(
        "main.Product", on_delete=models.PROTECT, related_name="used_in_formulas"
    )
    quantity = models.DecimalField(max_digits=15, decimal_places=6)
    unit_type = models.CharField(
        max_length=10, choices=UnitMode.choices, default=UnitMode.PRIMARY
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "ingredient"], name="unique_formula_ingredient"
            ),
        ]

    def __str__(self):
        return f"{self.product.name} <- {self.ingredient.name} × {self.quantity}"


class StockLedger(models.Model):
    class TransactionType(models.TextChoices):
        OPENING = "OPENING", "Opening Stock"
        PURCHASE = "PURCHASE", "Purchase"
        SALE = "SALE", "Sale"
        PRODUCTION = "PRODUCTION", "Auto Production"
        CONSUMPTION = "CONSUMPTION", "Consumption"
        PRODUCTION_IN = "PRODUCTION_IN", "Production In"
        PRODUCTION_OUT = "PRODUCTION_OUT", "Production Out"
        ADJUSTMENT_IN = "ADJUSTMENT_IN", "Adjustment In"
        ADJUSTMENT_OUT = "ADJUSTMENT_OUT", "Adjustment Out"
        TRANSFER_IN = "TRANSFER_IN", "Transfer In"
        TRANSFER_OUT = "TRANSFER_OUT", "Transfer Out"

    product = models.ForeignKey(
        "main.Product", on_delete=models.PROTECT, related_name="ledger_entries"
    )
    date = models.DateField()
    transaction_type = models.CharField(
        max_length=20, choices=TransactionType.choices, db_index=True
    )
    quantity_in = models.DecimalField(max_digits=15, decimal_places=4, default=0)
    quantity_out = models.DecimalField(max_digits=15, decimal_places=4, default=0)

    # Id of the sale / purchase / production log / paired transfer row
    related_id = models.PositiveBigIntegerField(null=True, blank=True)

    # Unit and rate the quantity was entered in, kept for display after the
    # product's unit configuration changes
    trans_unit = models.CharField(max_length=30, null=True, blank=True)
    trans_conversion_factor = models.DecimalField(
        max_digits=15, decimal_places=6, default=1
    )
    remarks = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["date", "id"]
        verbose_name = "stock ledger entry"
        verbose_name_plural = "stock ledger"
        indexes = [
            models.Index(fields=["product", "date"], name="stock_ledger_product_date_idx"),
            models.Index(fields=["related_id", "transaction_type"], name="stock_ledger_related_type_idx"),
        ]

    def __str__(self):
        return f"{self.date} | {self.get_transaction_type_display()} | {self.product_id}"

    @property
    def is_inflow(self) -> bool:
        return self.quantity_in > 0


class ProductionLog(models.Model):
    date = models.DateField(db_index=True)
    batch_no = models.CharField(max_length=50, unique=True)
    output_product = models.ForeignKey(
        "main.Product", on_delete=models.PROTECT, related_name="production_logs"
    )
    output_quantity = models.DecimalField(max_digits=15, decimal_places=4)
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "-id"]

    def __str__(self):
        return f"{self.batch_no} | {self.output_product.name} × {self.output_quantity}"


class ProductionItem(models.Model):
    production = models.ForeignKey(
        ProductionLog, on_delete=models.CASCADE, related_name="items"
    )
    input_product = models.ForeignKey(
        "main.Product", on_delete=models.PROTECT, related_name="+"
    )
    # Primary units, already converted
    input_quantity = models.DecimalField(max_digits=15, decimal_places=4)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.input_product.name} × {self.input_quantity}"
