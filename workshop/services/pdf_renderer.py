"""
Invoice PDF rendering.

The renderer is a function from the structured invoice payload to a file
path; calling it again for the same invoice overwrites the same file.
"""

import logging
import os
from typing import Any, Dict

from django.conf import settings
from django.template.loader import render_to_string

from workshop.exceptions import ExternalServiceFailure

logger = logging.getLogger(__name__)


def build_invoice_pdf_data(invoice) -> Dict[str, Any]:
    """Canonical projection of an invoice consumed by the renderer."""
    return {
        'invoiceNumber': invoice.invoice_number,
        'createdAt': invoice.created_at,
        'dueDate': invoice.due_date,
        'customerDetails': invoice.customer_details or {},
        'vehicleDetails': invoice.vehicle_details or [],
        'items': [
            {
                'name': item.name,
                'description': item.description,
                'quantity': item.quantity,
                'unitPrice': item.unit_price,
                'total': item.total,
                'hasGst': item.has_gst,
                'gstAmount': item.gst_amount,
            }
            for item in invoice.items.all()
        ],
        'subtotal': invoice.subtotal,
        'discountType': invoice.discount_type,
        'discountValue': invoice.discount_value,
        'discountAmount': invoice.discount_amount,
        'taxRate': invoice.tax_rate,
        'taxAmount': invoice.tax_amount,
        'totalAmount': invoice.total_amount,
        'paidAmount': invoice.paid_amount,
        'dueAmount': invoice.due_amount,
        'notes': invoice.notes,
        'terms': invoice.terms,
    }


def invoice_pdf_dir() -> str:
    path = os.path.abspath(settings.WORKSHOP_INVOICE_PDF_DIR)
    os.makedirs(path, exist_ok=True)
    return path


def generate_invoice_pdf(data: Dict[str, Any]) -> str:
    """Render ``data`` to a PDF file and return its path."""
    try:
        from weasyprint import HTML
    except (ImportError, OSError) as e:
        raise ExternalServiceFailure(f'PDF generation not available: {e}')

    filename = f"{data['invoiceNumber'].replace('/', '_')}.pdf"
    path = os.path.join(invoice_pdf_dir(), filename)
    try:
        html_string = render_to_string('workshop/invoice_pdf.html', {'invoice': data})
        HTML(string=html_string).write_pdf(path)
    except Exception as e:
        logger.error(f"Error generating PDF for invoice {data.get('invoiceNumber')}: {e}")
        raise ExternalServiceFailure(f'Failed to render invoice PDF: {e}')
    logger.info(f"Rendered invoice PDF {path}")
    return path


def is_inside_pdf_dir(path: str) -> bool:
    base = os.path.abspath(settings.WORKSHOP_INVOICE_PDF_DIR)
    resolved = os.path.abspath(path)
    try:
        return os.path.commonpath([base, resolved]) == base
    except ValueError:
        return False
