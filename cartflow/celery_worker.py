# cartflow/celery_worker.py
from celery import Celery

from cartflow.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND, CELERY_ALWAYS_EAGER

celery_app = Celery(
    "cartflow",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# task modules have to be imported explicitly for the worker to register them
celery_app.conf.imports = (
    "cartflow.services.cart_mirror",
    "cartflow.services.notification_service",
)

celery_app.conf.task_always_eager = CELERY_ALWAYS_EAGER
celery_app.conf.timezone = "UTC"
