import os

from .base import *  # noqa: F401,F403

DEBUG = False

if SECRET_KEY == "change-me":  # noqa: F405
    raise RuntimeError("DJANGO_SECRET_KEY must be set in production")

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.mysql",
        "NAME": os.getenv("DB_NAME", "riskregister"),
        "USER": os.getenv("DB_USER", "riskregister"),
        "PASSWORD": os.getenv("DB_PASSWORD", ""),
        "HOST": os.getenv("DB_HOST", "mariadb"),
        "PORT": os.getenv("DB_PORT", "3306"),
        "CONN_MAX_AGE": int(os.getenv("DB_CONN_MAX_AGE", "60")),
        "OPTIONS": {
            "charset": "utf8mb4",
        },
    }
}

# Review decisions lock the risk row; keep the isolation level explicit.
DATABASES["default"]["OPTIONS"]["isolation_level"] = "read committed"

REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = ["rest_framework.renderers.JSONRenderer"]  # noqa: F405

SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = "DENY"
