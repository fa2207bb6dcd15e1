import os
import secrets

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class Config:
    """
    Unified configuration for development and production.
    Reads settings from environment variables, with sensible local defaults.
    """

    # --- General & Security ---
    SECRET_KEY = os.environ.get("SECRET_KEY", secrets.token_hex(16))
    FLASK_ENV = os.environ.get("FLASK_ENV", "development").lower()
    DEBUG = FLASK_ENV != "production"

    # --- Logging ---
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    LOG_FILE_PATH = os.environ.get("LOG_FILE_PATH")

    # --- Database ---
    # Local fallback: SQLite file in the instance folder
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL") or "sqlite:///okto_portal.db"
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # --- Celery / Redis ---
    CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL")
    CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND") or CELERY_BROKER_URL

    # --- Rate Limiting ---
    RATELIMIT_ENABLED = _env_flag("RATELIMIT_ENABLED", "true")
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_DEFAULT = os.environ.get("RATELIMIT_DEFAULT", "300 per hour;60 per minute")

    # --- CORS Origins ---
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ]

    # --- Swagger ---
    SWAGGER = {"title": "Okto Portal API", "uiversion": 3}

    # --- Firebase Admin ---
    FIREBASE_CREDENTIAL_PATH = os.environ.get("FIREBASE_CREDENTIAL_PATH", "serviceAccountKey.json")

    # --- Lifecycle rules ---
    PROJECT_DEFAULT_DURATION_DAYS = int(os.environ.get("PROJECT_DEFAULT_DURATION_DAYS", 90))
    ENFORCE_MILESTONE_POINTS_CAP = _env_flag("ENFORCE_MILESTONE_POINTS_CAP", "true")
    RECONCILE_BATCH_SIZE = int(os.environ.get("RECONCILE_BATCH_SIZE", 100))
