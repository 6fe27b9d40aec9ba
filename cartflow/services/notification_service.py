# cartflow/services/notification_service.py
from kombu.exceptions import OperationalError

from cartflow.celery_worker import celery_app
from cartflow.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Order notifications, processed asynchronously by celery.
    """

    @staticmethod
    def send_order_notification(buyer_id: str | None, order_id: int) -> bool:
        try:
            send_order_notification_task.delay(buyer_id, order_id)
        except OperationalError as e:
            #order is already saved, a missing notification must not fail checkout
            logger.warning(f"Could not enqueue notification for order {order_id}: {e}")
            return False
        return True


@celery_app.task(name="cartflow.services.notification_service.send_order_notification_task")
def send_order_notification_task(buyer_id: str | None, order_id: int):
    """
    Celery task - only logs for now, an email/SMS/push sender would plug in here.
    """
    logger.info(f"[NOTIFICATION] Buyer {buyer_id or 'guest'}: order {order_id} placed")
    return {"buyer_id": buyer_id, "order_id": order_id, "status": "sent"}
