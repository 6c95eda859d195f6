from celery import Celery
from kombu import Queue

from a11y_engine.platform.config import settings


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Queue Structure:
    - audit.pipeline: per-scan normalize/classify/group/enrich/score/conformity runs
    - remediation.planning: campaign-wide aggregation and plan generation
    """
    celery_app = Celery(
        "a11y_engine",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
    )

    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer=settings.CELERY_RESULT_SERIALIZER,
        accept_content=[settings.CELERY_ACCEPT_CONTENT],
        timezone="UTC",
        enable_utc=True,
        task_track_started=settings.CELERY_TASK_TRACK_STARTED,
        task_time_limit=settings.CELERY_TASK_TIME_LIMIT,

        result_expires=3600,  # Results expire after 1 hour

        task_routes={
            "a11y_engine.features.audit.workers.tasks.process_scan": {"queue": "audit.pipeline"},
            "a11y_engine.features.remediation.workers.tasks.generate_remediation_plan": {
                "queue": "remediation.planning"
            },
        },

        task_queues=(
            Queue("default"),
            Queue("audit.pipeline"),
            Queue("remediation.planning"),
        ),

        task_default_queue="default",

        worker_prefetch_multiplier=1,  # Fair distribution

        task_acks_late=True,  # Acknowledge after task completes
        task_reject_on_worker_lost=True,  # Requeue if worker dies
    )

    celery_app.autodiscover_tasks([
        "a11y_engine.features.audit.workers",
        "a11y_engine.features.remediation.workers",
    ])

    return celery_app


# Global Celery app instance
celery_app = create_celery_app()
