import os
import shlex
from pathlib import Path
from dotenv import load_dotenv
import dj_database_url

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

# ---- Core ----
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "django-insecure-ticketing-dev-key")
DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"

DATABASE_URL = os.getenv("DATABASE_URL", "").strip()

ALLOWED_HOSTS = ["localhost", "127.0.0.1"]

# ---- Apps ----
INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "ticketing",
]

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ---- DB ----
if DATABASE_URL:
    DATABASES = {
        "default": dj_database_url.parse(
            DATABASE_URL,
            conn_max_age=600,
            ssl_require=os.getenv("DATABASE_SSL", "1") == "1",
        )
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

# ---- I18N/Timezone ----
# Ticket dates and times are rendered in this zone.
LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

# ---- Email (ticket delivery) ----
EMAIL_BACKEND = os.getenv("EMAIL_BACKEND", "django.core.mail.backends.console.EmailBackend")
DEFAULT_FROM_EMAIL = os.getenv("DEFAULT_FROM_EMAIL", "tickets@kamleen.com")

# ---- Tickets ----
TICKETS = {
    "APP_URL": os.getenv("APP_URL", "https://kamleen.com"),
    "ASSET_ROOT": os.getenv("TICKET_ASSET_ROOT", str(BASE_DIR / "static")),
    "BRAND_NAME": os.getenv("TICKET_BRAND_NAME", "Kamleen"),
    "DEFAULT_CURRENCY": os.getenv("TICKET_DEFAULT_CURRENCY", "MAD"),
    "CODE_PREFIX": "T",
    "CODE_MAX_ATTEMPTS": 10,
    "HTML_RENDERER_COMMAND": shlex.split(os.getenv("TICKET_HTML_RENDERER", "weasyprint - -")),
    "HTML_RENDER_TIMEOUT": float(os.getenv("TICKET_HTML_RENDER_TIMEOUT", "30")),
    "ASSET_FETCH_TIMEOUT": float(os.getenv("TICKET_ASSET_FETCH_TIMEOUT", "10")),
    "DEBUG_DUMP_DIR": os.getenv("TICKET_DEBUG_DUMP_DIR") or None,
    "FONT_DIRS": [d for d in os.getenv("TICKET_FONT_DIRS", "").split(os.pathsep) if d],
}

# ---- Logging ----
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "plain"}},
    "loggers": {
        "ticketing": {"handlers": ["console"], "level": os.getenv("TICKETS_LOG_LEVEL", "INFO")},
        "django.db.backends": {"handlers": ["console"], "level": "WARNING"},
    },
}
