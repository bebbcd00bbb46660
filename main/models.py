from django.db import models


class Product(models.Model):
    """
    Product master. All stock quantities for a product are kept in its
    primary unit (``packing_type``); a secondary unit is an input convenience
    related to the primary one by ``conversion_rate``
    (1 primary unit = ``conversion_rate`` secondary units).
    """

    name = models.CharField(max_length=200, unique=True)
    hsn_code = models.CharField(max_length=20, blank=True, default="")
    packing_type = models.CharField(max_length=30, help_text="Primary unit, e.g. BAG")
    maintain_stock = models.BooleanField(default=True)

    has_dual_units = models.BooleanField(default=False)
    secondary_unit = models.CharField(max_length=30, null=True, blank=True)
    conversion_rate = models.DecimalField(
        max_digits=15,
        decimal_places=6,
        null=True,
        blank=True,
        help_text="Secondary units per one primary unit (1 BAG = 20 KGS)",
    )

    formula_base_qty = models.DecimalField(
        max_digits=15,
        decimal_places=4,
        default=1,
        help_text="Batch size production is rounded up to",
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.packing_type})"


class Sale(models.Model):
    date = models.DateField(db_index=True)
    bill_no = models.CharField(max_length=50, blank=True, default="")
    party_name = models.CharField(max_length=200, blank=True, default="")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="sales")

    # Quantity as billed; quantity * conversion_factor is the primary-unit quantity
    quantity = models.DecimalField(max_digits=15, decimal_places=4)
    unit = models.CharField(max_length=30, blank=True, default="")
    conversion_factor = models.DecimalField(max_digits=15, decimal_places=6, default=1)

    bill_value = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "-id"]

    def __str__(self):
        return f"Sale {self.bill_no or self.id} | {self.product.name}"


class Purchase(models.Model):
    date = models.DateField(db_index=True)
    bill_no = models.CharField(max_length=50, blank=True, default="")
    party_name = models.CharField(max_length=200, blank=True, default="")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="purchases")

    quantity = models.DecimalField(max_digits=15, decimal_places=4)
    unit = models.CharField(max_length=30, blank=True, default="")
    conversion_factor = models.DecimalField(max_digits=15, decimal_places=6, default=1)

    bill_value = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "-id"]

    def __str__(self):
        return f"Purchase {self.bill_no or self.id} | {self.product.name}"
