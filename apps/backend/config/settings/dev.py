from pathlib import Path
import os

from .base import *  # noqa: F401,F403

DEBUG = True

_default_db_path = Path(BASE_DIR) / "data" / "riskregister.sqlite3"  # noqa: F405
_dev_db_path = Path(os.getenv("DEV_DB_PATH", str(_default_db_path)))
_dev_db_path.parent.mkdir(parents=True, exist_ok=True)

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": str(_dev_db_path),
    }
}

# Run beat tasks inline unless a broker is configured for local work.
CELERY_TASK_ALWAYS_EAGER = os.getenv("CELERY_BROKER_URL") is None

REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = [  # noqa: F405
    "rest_framework.renderers.JSONRenderer",
    "rest_framework.renderers.BrowsableAPIRenderer",
]
LOGGING["loggers"]["risk"]["level"] = os.getenv("DJANGO_LOG_LEVEL", "DEBUG").upper()  # noqa: F405
