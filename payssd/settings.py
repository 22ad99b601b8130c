"""
Django settings for the payssd project.

Values come from environment variables; defaults suit local development
and the test suite.
"""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    raw = os.getenv(name)
    value = default
    if raw is not None:
        try:
            value = int(raw)
        except ValueError:
            value = default
    if minimum is not None and value < minimum:
        return minimum
    return value


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return [item.strip() for item in raw.split(",") if item.strip()]


BASE_DIR = Path(__file__).resolve().parent.parent

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").strip().lower()
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-insecure-payssd-secret-key")
DEBUG = _env_flag("DJANGO_DEBUG", ENVIRONMENT != "production")
ALLOWED_HOSTS = _env_list("DJANGO_ALLOWED_HOSTS", ["localhost", "127.0.0.1", "testserver"])

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "apps.payment_links",
    "apps.payments",
    "apps.checkout",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "payssd.urls"
WSGI_APPLICATION = "payssd.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

DATABASES = {
    "default": {
        "ENGINE": os.getenv("DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.getenv("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": os.getenv("DB_USER", ""),
        "PASSWORD": os.getenv("DB_PASSWORD", ""),
        "HOST": os.getenv("DB_HOST", ""),
        "PORT": os.getenv("DB_PORT", ""),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("DJANGO_TIME_ZONE", "Africa/Juba")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = "Lax"
SESSION_COOKIE_SECURE = _env_flag("DJANGO_SESSION_COOKIE_SECURE", not DEBUG)
CSRF_COOKIE_SECURE = SESSION_COOKIE_SECURE
DATA_UPLOAD_MAX_MEMORY_SIZE = _env_int("DATA_UPLOAD_MAX_MEMORY_SIZE", 2_621_440, minimum=1024)

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_THROTTLE_RATES": {
        "checkout": os.getenv("CHECKOUT_THROTTLE_RATE", "30/min"),
    },
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=_env_int("JWT_ACCESS_MINUTES", 30, minimum=1)),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=_env_int("JWT_REFRESH_DAYS", 7, minimum=1)),
}

# Payment links
PAYSSD_PUBLIC_BASE_URL = os.getenv("PAYSSD_PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")
PAYSSD_SHORT_URL_HOST = os.getenv("PAYSSD_SHORT_URL_HOST", "payssd.ss/p")
PAYSSD_CURRENCIES = tuple(_env_list("PAYSSD_CURRENCIES", ["SSP", "USD"]))
PAYSSD_PLATFORM_FEE_PERCENT = os.getenv("PAYSSD_PLATFORM_FEE_PERCENT", "2.5")
PAYSSD_PLATFORM_FEE_FIXED = os.getenv("PAYSSD_PLATFORM_FEE_FIXED", "5")

# Payment providers: customer-facing method -> gateway code.
PAYSSD_PAYMENT_PROVIDERS = {
    "mtn_momo": os.getenv("PAYSSD_PROVIDER_MTN_MOMO", "sandbox" if DEBUG else "mtn_momo"),
    "digicash": os.getenv("PAYSSD_PROVIDER_DIGICASH", "sandbox" if DEBUG else "digicash"),
}
PAYMENT_GATEWAY_TIMEOUT_SECONDS = _env_int("PAYMENT_GATEWAY_TIMEOUT_SECONDS", 20, minimum=1)

MTN_MOMO_BASE_URL = os.getenv("MTN_MOMO_BASE_URL", "https://sandbox.momodeveloper.mtn.com")
MTN_MOMO_API_KEY = os.getenv("MTN_MOMO_API_KEY", "")
MTN_MOMO_API_SECRET = os.getenv("MTN_MOMO_API_SECRET", "")
MTN_MOMO_SUBSCRIPTION_KEY = os.getenv("MTN_MOMO_SUBSCRIPTION_KEY", "")
MTN_MOMO_TARGET_ENVIRONMENT = os.getenv("MTN_MOMO_TARGET_ENVIRONMENT", "sandbox")

DIGICASH_BASE_URL = os.getenv("DIGICASH_BASE_URL", "")
DIGICASH_API_KEY = os.getenv("DIGICASH_API_KEY", "")
DIGICASH_API_SECRET = os.getenv("DIGICASH_API_SECRET", "")
DIGICASH_MERCHANT_ID = os.getenv("DIGICASH_MERCHANT_ID", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "loggers": {
        "payssd": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "django.request": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}
