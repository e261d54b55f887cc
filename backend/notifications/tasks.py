from celery import shared_task
import logging

from .services import EmailService, SmsService

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_order_confirmation(self, order_id, channels, company_name=""):
    """
    Deliver the order confirmation on the requested channels ("email", "sms").

    Returns:
        dict: Status and the channels that were actually delivered
    """
    from orders.models import Order

    try:
        order = Order.all_objects.select_related('table').get(id=order_id)
    except Order.DoesNotExist:
        logger.error(f"Order {order_id} not found for confirmation")
        return {"status": "failed", "error": "Order not found", "order_id": str(order_id)}

    delivered = []
    try:
        if "email" in channels and EmailService(company_name).send_order_confirmation_email(order, company_name):
            delivered.append("email")
        if "sms" in channels and SmsService().send_order_confirmation_sms(order, company_name):
            delivered.append("sms")
    except Exception as exc:
        logger.error(f"Error sending confirmation for order {order.order_number}: {exc}")
        raise self.retry(exc=exc)

    return {"status": "completed", "order_number": order.order_number, "delivered": delivered}


@shared_task(bind=True, max_retries=3, default_retry_delay=300)
def send_feedback_request(self, order_id, company_name=""):
    from orders.models import Order

    try:
        order = Order.all_objects.select_related('table').get(id=order_id)
    except Order.DoesNotExist:
        logger.error(f"Order {order_id} not found for feedback request")
        return {"status": "failed", "error": "Order not found", "order_id": str(order_id)}

    try:
        sent = EmailService(company_name).send_feedback_request_email(order, company_name)
    except Exception as exc:
        logger.error(f"Error sending feedback request for order {order.order_number}: {exc}")
        raise self.retry(exc=exc)

    return {"status": "completed" if sent else "skipped", "order_number": order.order_number}
