"""
Shared fixtures for the workshop tests.

PDF rendering is replaced with a stub that writes a small file into a
temporary directory; email goes to Django's locmem outbox and WhatsApp stays
unconfigured unless a test sets it up.
"""

import os
from decimal import Decimal

import pytest
from django.contrib.auth.models import Group, User

from workshop.models import Customer, Product, ServiceVisit, Vehicle
from workshop.services import invoice_service
from workshop.services.invoice_service import InvoiceService
from workshop.services.pdf_renderer import invoice_pdf_dir
from workshop.utils import Actor

PNG = 'data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=='
JPEG = 'data:image/jpeg;base64,/9j/4AAQSkZJRgABAQEASABIAAD/2wBDAP8='


@pytest.fixture(autouse=True)
def workshop_settings(settings, tmp_path):
    settings.WORKSHOP_INVOICE_PDF_DIR = str(tmp_path / 'invoices')
    settings.WORKSHOP_WHATSAPP_API_URL = ''
    settings.EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    return settings


@pytest.fixture
def staff_user(db):
    return User.objects.create_user('frontdesk', password='secret', first_name='Asha', last_name='Patil')


@pytest.fixture
def actor(staff_user):
    return Actor(staff_user.id, 'Asha Patil', 'Admin')


@pytest.fixture
def handler(db):
    group, _ = Group.objects.get_or_create(name='Service Staff')
    user = User.objects.create_user('mechanic', password='secret', first_name='Sunil', last_name='More')
    user.groups.add(group)
    return user


@pytest.fixture
def customer(db):
    return Customer.objects.create(
        full_name='Ravi Kumar',
        mobile_number='9876543210',
        email='ravi@example.com',
        city='Pune',
        state='Maharashtra',
        is_verified=True,
    )


@pytest.fixture
def product(db):
    return Product.objects.create(
        name='Engine Oil 5W-30',
        category='Lubricants',
        brand='Castrol',
        selling_price=Decimal('500.00'),
        stock_qty=10,
        warranty='6 months manufacturer warranty',
    )


@pytest.fixture
def vehicle(customer, product):
    return Vehicle.objects.create(
        customer=customer,
        vehicle_number='MH12AB1234',
        vehicle_brand='Maruti',
        vehicle_model='Swift',
        selected_parts=[str(product.pk), 'brake-pads'],
    )


@pytest.fixture
def completed_visit(customer, vehicle, handler):
    visit = ServiceVisit.objects.create(
        customer=customer,
        vehicle_reg=vehicle.vehicle_number,
        status='completed',
        before_images=[PNG],
        after_images=[PNG],
    )
    visit.handlers.add(handler)
    return visit


@pytest.fixture
def fake_pdf(monkeypatch):
    """Replace weasyprint rendering; returns the list of payloads rendered."""
    rendered = []

    def render(data):
        path = os.path.join(invoice_pdf_dir(), f"{data['invoiceNumber'].replace('/', '_')}.pdf")
        with open(path, 'wb') as fh:
            fh.write(b'%PDF-1.4 test document')
        rendered.append(data)
        return path

    monkeypatch.setattr(invoice_service, 'generate_invoice_pdf', render)
    return rendered


@pytest.fixture
def warranty_line(product):
    return {
        'productId': str(product.pk),
        'quantity': 1,
        'unitPrice': 500,
        'total': 500,
        'hasWarranty': True,
    }


@pytest.fixture
def pending_invoice(completed_visit, warranty_line, actor):
    return InvoiceService.create_from_service_visit(
        completed_visit.pk, {'items': [warranty_line]}, actor=actor
    )


@pytest.fixture
def approved_invoice(pending_invoice, actor, fake_pdf):
    return InvoiceService.approve(pending_invoice.pk, actor=actor)
