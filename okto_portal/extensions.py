from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flasgger import Swagger
from celery import Celery

# --- Flask Extensions ---
db = SQLAlchemy()
migrate = Migrate()
cors = CORS()
swagger = Swagger()
limiter = Limiter(key_func=get_remote_address)
celery = Celery(__name__, include=["okto_portal.tasks"])


def make_celery(app):
    """Binds the shared Celery instance to a Flask application context."""
    celery.conf.update(
        broker_url=app.config.get("CELERY_BROKER_URL"),
        result_backend=app.config.get("CELERY_RESULT_BACKEND"),
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        beat_schedule={
            "reconcile-pending-credits": {
                "task": "okto_portal.reconcile_pending_credits",
                "schedule": 300.0,
                "kwargs": {"limit": app.config.get("RECONCILE_BATCH_SIZE")},
            },
        },
    )

    class ContextTask(celery.Task):
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = ContextTask
    app.extensions["celery"] = celery
    return celery
