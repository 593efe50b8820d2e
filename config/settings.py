import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-secret-key")
DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = os.getenv("DJANGO_ALLOWED_HOSTS", "*").split(",")

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "rest_framework",
    "apps.shop",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
            ],
        },
    },
]

DATABASES = {
    "default": {
        "ENGINE": os.getenv("DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.getenv("DB_NAME", str(BASE_DIR / "shop.sqlite3")),
        "USER": os.getenv("DB_USER", ""),
        "PASSWORD": os.getenv("DB_PASSWORD", ""),
        "HOST": os.getenv("DB_HOST", ""),
        "PORT": os.getenv("DB_PORT", ""),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
        "rest_framework.authentication.BasicAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "EXCEPTION_HANDLER": "apps.shop.exceptions.shop_exception_handler",
}

# Shop tunables; intervals are in seconds.
SHOP = {
    "MINIMUM_STOCK_THRESHOLD": int(os.getenv("SHOP_MINIMUM_STOCK_THRESHOLD", "5")),
    "FLASH_SALE_ACTIVATION_MODE": os.getenv("SHOP_FLASH_SALE_ACTIVATION_MODE", "legacy"),
    "FLASH_SALE_SWEEP_INTERVAL": int(os.getenv("SHOP_FLASH_SALE_SWEEP_INTERVAL", "3600")),
    "SALE_EXPIRY_SWEEP_INTERVAL": int(os.getenv("SHOP_SALE_EXPIRY_SWEEP_INTERVAL", "60")),
    "CART_REPRICE_INTERVAL": int(os.getenv("SHOP_CART_REPRICE_INTERVAL", "900")),
    "TX_RETRY_ATTEMPTS": int(os.getenv("SHOP_TX_RETRY_ATTEMPTS", "3")),
    "TX_RETRY_BACKOFF": float(os.getenv("SHOP_TX_RETRY_BACKOFF", "0.05")),
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "apps.shop": {
            "level": os.getenv("SHOP_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
