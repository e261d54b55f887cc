from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string
from django.utils import timezone
import logging

import requests

from core_backend.utils.pii import PIIProtection

logger = logging.getLogger(__name__)


class EmailService:
    def __init__(self, company_name=None):
        # Format the sender's email to include a display name
        from_email_address = getattr(settings, "DEFAULT_FROM_EMAIL", "orders@localhost")
        display_name = company_name or getattr(settings, "DEFAULT_FROM_NAME", "")
        self.default_from_email = (
            f"{display_name} <{from_email_address}>" if display_name else from_email_address
        )

    def send_email(self, recipient_list, subject, template_name, context):
        """
        Sends an email using a Django template.

        Args:
            recipient_list (list): A list of recipient email addresses.
            subject (str): The subject of the email.
            template_name (str): The path to the email template (e.g., 'emails/order_confirmation.html').
            context (dict): A dictionary of data to render in the template.
        """
        html_message = render_to_string(template_name, context)
        send_mail(
            subject,
            "",  # Empty message, as we are sending HTML
            self.default_from_email,
            recipient_list,
            html_message=html_message,
            fail_silently=False,
        )

    def _order_context(self, order, company_name):
        return {
            "company_name": company_name,
            "order": {
                "orderNumber": order.order_number,
                "orderType": order.get_order_type_display(),
                "status": order.get_status_display(),
                "customerName": order.customer_name,
                "tableNumber": order.table.number if order.table_id else None,
                "items": [
                    {
                        "name": item.name,
                        "quantity": item.quantity,
                        "price": item.unit_price,
                        "addons": [addon.name for addon in item.addons],
                        "total": item.line_total,
                    }
                    for item in order.line_items
                ],
                "discount": order.discount_amount,
                "total": order.total_amount,
                "currency": order.currency,
                "pointsEarned": order.points_earned,
                "otp": order.otp,
                "qrCode": order.qr_code,
                "pickupTime": timezone.localtime(order.pickup_time) if order.pickup_time else None,
                "createdAt": timezone.localtime(order.created_at).strftime("%B %d, %Y at %I:%M %p"),
            },
        }

    def send_order_confirmation_email(self, order, company_name=""):
        """
        Sends the order confirmation with the pickup code and QR image.
        Returns False when the order has no email address.
        """
        recipient_email = order.customer_email
        if not recipient_email:
            logger.warning(f"No email address found for order_id {order.id}")
            return False

        self.send_email(
            recipient_list=[recipient_email],
            subject=f"{company_name or 'Your'} Order Confirmation #{order.order_number}".strip(),
            template_name="emails/order_confirmation.html",
            context=self._order_context(order, company_name),
        )
        logger.info(
            f"Order confirmation email sent to {PIIProtection.mask_email(recipient_email)} "
            f"for order {order.order_number}"
        )
        return True

    def send_feedback_request_email(self, order, company_name=""):
        recipient_email = order.customer_email
        if not recipient_email:
            logger.warning(f"No email address found for order_id {order.id}")
            return False

        self.send_email(
            recipient_list=[recipient_email],
            subject=f"How was your order #{order.order_number}?",
            template_name="emails/item_feedback.html",
            context=self._order_context(order, company_name),
        )
        logger.info(
            f"Feedback request sent to {PIIProtection.mask_email(recipient_email)} "
            f"for order {order.order_number}"
        )
        return True


class SmsService:
    """
    Sends SMS through an HTTP SMS API.

    Configured with SMS_API_URL, SMS_API_TOKEN and SMS_FROM_NUMBER. When any of them
    is missing, sends are skipped and reported as not sent.
    """

    def __init__(self):
        self.api_url = getattr(settings, "SMS_API_URL", "")
        self.api_token = getattr(settings, "SMS_API_TOKEN", "")
        self.from_number = getattr(settings, "SMS_FROM_NUMBER", "")
        self.timeout = getattr(settings, "SMS_API_TIMEOUT", 10)

    @property
    def is_configured(self):
        return bool(self.api_url and self.api_token and self.from_number)

    def send_sms(self, to_number, body):
        if not self.is_configured:
            logger.info(f"SMS not configured, skipping message to {PIIProtection.mask_phone(to_number)}")
            return False
        if not to_number:
            logger.warning("No phone number to send SMS to")
            return False

        response = requests.post(
            self.api_url,
            json={"to": to_number, "from": self.from_number, "body": body},
            headers={"Authorization": f"Bearer {self.api_token}"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        logger.info(f"SMS sent to {PIIProtection.mask_phone(to_number)}")
        return True

    def send_order_confirmation_sms(self, order, company_name=""):
        prefix = f"{company_name}: " if company_name else ""
        body = f"{prefix}Order {order.order_number} received. Total {order.total_amount} {order.currency}."
        if order.otp:
            body += f" Your pickup code is {order.otp}."
        return self.send_sms(order.customer_phone, body)


class MessagingGateway:
    """
    Fire-and-forget entry point used by the fulfillment service.

    Only enqueues Celery tasks; rendering and delivery happen in the worker.
    """

    def queue_order_confirmation(self, order, ordering_settings):
        from .tasks import send_order_confirmation

        channels = []
        if ordering_settings.email_confirmations_enabled and order.customer_email:
            channels.append("email")
        if ordering_settings.sms_confirmations_enabled and order.customer_phone:
            channels.append("sms")
        if not channels:
            logger.debug(f"No confirmation channels enabled for order {order.order_number}")
            return False

        send_order_confirmation.delay(str(order.id), channels, ordering_settings.company_name)
        return True

    def queue_feedback_request(self, order, ordering_settings):
        from .tasks import send_feedback_request

        if not ordering_settings.feedback_requests_enabled or not order.customer_email:
            return False

        send_feedback_request.delay(str(order.id), ordering_settings.company_name)
        return True
