"""
Base settings for the tradebook project.
Shared between local (single office machine) and cloud deployments.
"""

from pathlib import Path
import os

from django.urls import reverse_lazy

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-tradebook-dev-key-change-me')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv('DEBUG', 'True').lower() == 'true'

ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', '*').split(',')


# Application definition
INSTALLED_APPS = [
    "unfold",
    "unfold.contrib.filters",
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'main',
    'stock',
    'corsheaders',
    'rest_framework',
    'drf_spectacular',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'tradebook.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'tradebook.wsgi.application'


# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]


# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'Asia/Kolkata'
USE_I18N = True
USE_TZ = True


# Static files
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# CORS
CORS_ALLOW_ALL_ORIGINS = True


# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Stock ledger engine
TRADEBOOK_STOCK = {
    # Indian financial year: 1 April - 31 March
    'FINANCIAL_YEAR_START_MONTH': int(os.getenv('FINANCIAL_YEAR_START_MONTH', '4')),
    # Units whose produced/consumed quantities are never rounded up
    'DECIMAL_UNITS': ['KG', 'KGS', 'KILOGRAM'],
    'QUANTITY_DECIMAL_PLACES': 4,
    # Reject dual-unit products without a usable conversion rate
    'STRICT_UNIT_CONFIG': os.getenv('STRICT_UNIT_CONFIG', 'True').lower() == 'true',
}


# Unfold Admin Configuration
UNFOLD = {
    "SITE_TITLE": "Tradebook Admin",
    "SITE_HEADER": "Tradebook",
    "SITE_URL": "/",
    "SITE_SYMBOL": "inventory",

    "SIDEBAR": {
        "show_search": True,
        "show_all_applications": True,
        "navigation": [
            {
                "title": "Masters",
                "separator": False,
                "items": [
                    {
                        "title": "Products",
                        "icon": "inventory_2",
                        "link": reverse_lazy("admin:main_product_changelist"),
                    },
                    {
                        "title": "Formulas (BOM)",
                        "icon": "science",
                        "link": reverse_lazy("admin:stock_productformula_changelist"),
                    },
                ],
            },
            {
                "title": "Invoicing",
                "separator": True,
                "items": [
                    {
                        "title": "Sales",
                        "icon": "point_of_sale",
                        "link": reverse_lazy("admin:main_sale_changelist"),
                    },
                    {
                        "title": "Purchases",
                        "icon": "shopping_cart",
                        "link": reverse_lazy("admin:main_purchase_changelist"),
                    },
                ],
            },
            {
                "title": "Stock",
                "separator": True,
                "items": [
                    {
                        "title": "Stock Ledger",
                        "icon": "receipt_long",
                        "link": reverse_lazy("admin:stock_stockledger_changelist"),
                    },
                    {
                        "title": "Production Logs",
                        "icon": "factory",
                        "link": reverse_lazy("admin:stock_productionlog_changelist"),
                    },
                ],
            },
        ],
    },
}

REST_FRAMEWORK = {
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',

    # Authentication is handled in front of this service
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],

    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
        'rest_framework.renderers.BrowsableAPIRenderer',
    ],
}


SPECTACULAR_SETTINGS = {
    'TITLE': 'Tradebook',
    'DESCRIPTION': 'Tradebook stock ledger API documentation',
    'VERSION': '1.0.0',
}
