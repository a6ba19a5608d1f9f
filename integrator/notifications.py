import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils.html import strip_tags

from integrator.transforms import GIGABYTE

logger = logging.getLogger(__name__)

SUBJECT = getattr(settings, 'ESIM_EMAIL_SUBJECT', 'Your eSIM package is ready')
SUPPORT_EMAIL = getattr(settings, 'ESIM_SUPPORT_EMAIL', 'support@example.com')


class EsimMailer:
    """Sends the customer the activation details of a fulfilled eSIM."""

    template_name = 'integrator/esim_ready.html'

    def __init__(self, from_email=None, connection=None):
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL
        self.connection = connection

    def render(self, esim_data, order_details):
        package = esim_data.get('package_details') or {}
        data_bytes = package.get('data') or 0
        context = {
            'esim': esim_data,
            'package': package,
            'data_gb': f"{data_bytes / GIGABYTE:.2f}",
            'order': order_details,
            'support_email': SUPPORT_EMAIL,
        }
        return render_to_string(self.template_name, context)

    def send(self, customer_email, esim_data, order_details):
        html = self.render(esim_data, order_details)
        message = EmailMultiAlternatives(
            subject=SUBJECT,
            body=strip_tags(html),
            from_email=self.from_email,
            to=[customer_email],
            connection=self.connection,
        )
        message.attach_alternative(html, 'text/html')
        message.send()
        logger.info("Sent eSIM details for order %s to %s",
                    order_details.get('order_number'), customer_email)
