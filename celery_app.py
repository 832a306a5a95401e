"""Celery configuration for background task processing."""
from celery import Celery
from config import Config

def make_celery(app_name=__name__):
    """Create and configure Celery instance."""
    celery = Celery(
        app_name,
        broker=Config.CELERY_BROKER_URL,
        backend=Config.CELERY_RESULT_BACKEND,
        include=['tasks']
    )

    celery.conf.update(
        task_serializer=Config.CELERY_TASK_SERIALIZER,
        result_serializer=Config.CELERY_RESULT_SERIALIZER,
        accept_content=Config.CELERY_ACCEPT_CONTENT,
        timezone=Config.CELERY_TIMEZONE,
        enable_utc=Config.CELERY_ENABLE_UTC,
        task_track_started=True,
        result_expires=3600,  # Results expire after 1 hour
        task_acks_late=True,  # Acknowledge tasks after completion
        worker_prefetch_multiplier=1,
        task_soft_time_limit=60,
        task_time_limit=120,
        task_routes={
            'orders.record_product_sales': {'queue': 'orders', 'priority': 3},
        },
        broker_transport_options={
            'visibility_timeout': 3600,
            'priority_steps': list(range(10)),
            'queue_order_strategy': 'priority',
        }
    )

    return celery

# Create Celery instance
celery_app = make_celery()
