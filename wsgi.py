import logging
from okto_portal import create_app

logger = logging.getLogger(__name__)

try:
    # This file's only job is to create the app via the factory.
    app = create_app()
    logger.info("✅ WSGI application instance created.")

except Exception as e:
    logger.exception("🚨 CRITICAL FAILURE in wsgi.py: %s", str(e))
    raise

# Celery worker entry point: celery -A wsgi:celery worker --beat
celery = app.extensions.get("celery")
