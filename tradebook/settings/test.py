"""
Settings used by the test suite (pytest-django).
"""

from .base import *

DEPLOYMENT_MODE = 'test'

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'null': {
            'class': 'logging.NullHandler',
        },
    },
    'loggers': {
        'stock': {
            'handlers': ['null'],
            'level': 'DEBUG',
        },
        'main': {
            'handlers': ['null'],
            'level': 'DEBUG',
        },
    },
}
