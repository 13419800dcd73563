import logging

from celery import Celery

from .config import settings

logger = logging.getLogger(__name__)

celery = Celery(__name__, broker=settings.CELERY_BROKER_URL, backend=settings.CELERY_BROKER_URL)
celery.conf.update(
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_ignore_result=True,
)


@celery.task(name="send_order_email")
def send_order_email(email: str, order_id: int) -> bool:
    logger.info("Sending order email to %s for order #%s", email, order_id)
    return True
