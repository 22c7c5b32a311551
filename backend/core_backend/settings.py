"""
Django settings for core_backend project.

Values come from environment variables. A local .env file is loaded when present,
so development machines can keep overrides out of the shell profile.
"""

import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_int(name, default):
    value = os.environ.get(name)
    return int(value) if value not in (None, "") else default


SECRET_KEY = os.environ.get(
    "DJANGO_SECRET_KEY", "django-insecure-self-order-development-key"
)

DEBUG = env_bool("DJANGO_DEBUG", True)

ALLOWED_HOSTS = [
    host.strip()
    for host in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",")
    if host.strip()
]


# Application definition

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third-party
    "rest_framework",
    "django_filters",
    # Local
    "core_backend",
    "settings",
    "products",
    "orders",
    "kds",
    "self_order",
]

MIDDLEWARE = [
    "core_backend.infrastructure.middleware.CorrelationIdMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "core_backend.urls"

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

WSGI_APPLICATION = "core_backend.wsgi.application"
ASGI_APPLICATION = "core_backend.asgi.application"


# Database
# PostgreSQL in deployed environments, SQLite for local development and tests.

if os.environ.get("POSTGRES_DB"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ.get("POSTGRES_DB"),
            "USER": os.environ.get("POSTGRES_USER", "postgres"),
            "PASSWORD": os.environ.get("POSTGRES_PASSWORD", ""),
            "HOST": os.environ.get("POSTGRES_HOST", "localhost"),
            "PORT": os.environ.get("POSTGRES_PORT", "5432"),
            "CONN_MAX_AGE": env_int("POSTGRES_CONN_MAX_AGE", 60),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]


# Internationalization

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("DJANGO_TIME_ZONE", "Asia/Jakarta")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"


# Django REST Framework

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_FILTER_BACKENDS": [
        "django_filters.rest_framework.DjangoFilterBackend",
    ],
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": 50,
    "EXCEPTION_HANDLER": "core_backend.exceptions.api_exception_handler",
}


# Celery

CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_ALWAYS_EAGER = env_bool("CELERY_TASK_ALWAYS_EAGER", False)


# Self-order sessions and payment orchestration

SELF_ORDER = {
    "SESSION_TTL_MINUTES": env_int("SELF_ORDER_SESSION_TTL_MINUTES", 120),
    "PAYMENT_WINDOW_MINUTES": env_int("SELF_ORDER_PAYMENT_WINDOW_MINUTES", 15),
    "EXPIRED_RETENTION_HOURS": env_int("SELF_ORDER_EXPIRED_RETENTION_HOURS", 24),
    "EXPIRE_SWEEP_SECONDS": env_int("SELF_ORDER_EXPIRE_SWEEP_SECONDS", 300),
    "CLEANUP_SWEEP_SECONDS": env_int("SELF_ORDER_CLEANUP_SWEEP_SECONDS", 3600),
    "AMOUNT_TOLERANCE": env_int("SELF_ORDER_AMOUNT_TOLERANCE", 1),
    "DEFAULT_EXTEND_MINUTES": env_int("SELF_ORDER_DEFAULT_EXTEND_MINUTES", 30),
    "MAX_EXTEND_MINUTES": env_int("SELF_ORDER_MAX_EXTEND_MINUTES", 240),
    "PUBLIC_BASE_URL": os.environ.get("SELF_ORDER_PUBLIC_BASE_URL", "http://localhost:5173"),
    "QRIS_BASE_URL": os.environ.get("SELF_ORDER_QRIS_BASE_URL", "https://api.qris.example.com"),
    "EWALLET_BASE_URL": os.environ.get("SELF_ORDER_EWALLET_BASE_URL", "https://payment.example.com"),
}

CELERY_BEAT_SCHEDULE = {
    "expire-stale-self-order-sessions": {
        "task": "self_order.tasks.expire_stale_sessions",
        "schedule": timedelta(seconds=SELF_ORDER["EXPIRE_SWEEP_SECONDS"]),
    },
    "cleanup-expired-self-order-sessions": {
        "task": "self_order.tasks.cleanup_expired_sessions",
        "schedule": timedelta(seconds=SELF_ORDER["CLEANUP_SWEEP_SECONDS"]),
    },
}


# Logging

LOG_LEVEL = os.environ.get("DJANGO_LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "correlation_id": {
            "()": "core_backend.infrastructure.middleware.CorrelationIdFilter",
        },
    },
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} [{correlation_id}] {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
            "filters": ["correlation_id"],
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
        "celery": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}
