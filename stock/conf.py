from django.conf import settings


DEFAULTS = {
    "FINANCIAL_YEAR_START_MONTH": 4,
    "DECIMAL_UNITS": ["KG", "KGS", "KILOGRAM"],
    "QUANTITY_DECIMAL_PLACES": 4,
    "STRICT_UNIT_CONFIG": True,
}


def get_stock_setting(name: str):
    """Read one key of ``settings.TRADEBOOK_STOCK``, falling back to DEFAULTS."""
    if name not in DEFAULTS:
        raise KeyError(f"Unknown stock setting: {name}")
    overrides = getattr(settings, "TRADEBOOK_STOCK", None) or {}
    return overrides.get(name, DEFAULTS[name])
