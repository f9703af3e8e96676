"""
Outbound notifications: in-app visit updates and invoice delivery.

Every function here is best-effort. Failures are logged and reported in the
return value, never raised to the calling workflow.
"""

import logging
import os
from typing import Dict

import requests
from django.conf import settings
from django.core.mail import EmailMessage
from django.urls import reverse

from workshop.models import Notification

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    'inquired': 'Service inquiry registered',
    'working': 'Service work has started',
    'waiting': 'Service is waiting (parts or approval)',
    'completed': 'Service completed and ready for pickup',
}


def notify_service_visit_status(visit, customer_name: str, status: str):
    """Create an in-app notification for a visit entering ``status``."""
    try:
        title = STATUS_MESSAGES.get(status, f'Service status changed to {status}')
        return Notification.objects.create(
            title=title,
            message=f"{customer_name} - {visit.vehicle_reg}: {title}",
            notification_type='service_visit',
            resource='service_visit',
            resource_id=str(visit.pk),
        )
    except Exception as e:
        logger.warning(f"Failed to notify status {status} for visit {visit.pk}: {e}")
        return None


def public_pdf_url(invoice) -> str:
    path = reverse('workshop:public_invoice_pdf', kwargs={'pk': invoice.pk})
    return f"{settings.WORKSHOP_APP_URL.rstrip('/')}{path}?token={invoice.pdf_access_token}"


def send_invoice_email(invoice) -> bool:
    email = (invoice.customer_details or {}).get('email')
    if not email:
        logger.info(f"Invoice {invoice.invoice_number}: customer has no email, skipping email delivery")
        return False
    try:
        message = EmailMessage(
            subject=f"Invoice {invoice.invoice_number}",
            body=(
                f"Dear {invoice.customer_details.get('fullName', 'Customer')},\n\n"
                f"Please find attached invoice {invoice.invoice_number} "
                f"for a total of {invoice.total_amount}.\n\nThank you for your business."
            ),
            to=[email],
        )
        if invoice.pdf_path and os.path.exists(invoice.pdf_path):
            with open(invoice.pdf_path, 'rb') as fh:
                message.attach(invoice.pdf_filename, fh.read(), 'application/pdf')
        message.send(fail_silently=False)
        return True
    except Exception as e:
        logger.error(f"Failed to email invoice {invoice.invoice_number} to {email}: {e}")
        return False


def send_invoice_whatsapp(invoice) -> bool:
    api_url = settings.WORKSHOP_WHATSAPP_API_URL
    phone = (invoice.customer_details or {}).get('mobileNumber')
    if not api_url:
        logger.info(f"Invoice {invoice.invoice_number}: WhatsApp gateway not configured, skipping")
        return False
    if not phone:
        logger.info(f"Invoice {invoice.invoice_number}: customer has no mobile number, skipping WhatsApp")
        return False
    payload = {
        'to': phone,
        'document': {
            'link': public_pdf_url(invoice),
            'filename': invoice.pdf_filename,
        },
        'caption': f"Invoice {invoice.invoice_number} - total {invoice.total_amount}",
    }
    headers = {}
    if settings.WORKSHOP_WHATSAPP_API_TOKEN:
        headers['Authorization'] = f"Bearer {settings.WORKSHOP_WHATSAPP_API_TOKEN}"
    try:
        response = requests.post(api_url, json=payload, headers=headers, timeout=settings.WORKSHOP_WHATSAPP_TIMEOUT)
        response.raise_for_status()
        return True
    except requests.RequestException as e:
        logger.error(f"Failed to send invoice {invoice.invoice_number} over WhatsApp: {e}")
        return False


def send_invoice_notifications(invoice) -> Dict[str, bool]:
    """Deliver an approved invoice. Returns which channels succeeded."""
    return {
        'email': send_invoice_email(invoice),
        'whatsapp': send_invoice_whatsapp(invoice),
    }
