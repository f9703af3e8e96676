"""
Racing writers on the same invoice or coupon.

These need a database that honours SELECT ... FOR UPDATE across
connections, so they are skipped on SQLite.
"""

import threading
from decimal import Decimal
from functools import partial

import pytest
from django.db import connection

from workshop.exceptions import ValidationError
from workshop.models import Coupon, CouponUsage, Invoice, InvoicePayment
from workshop.services.invoice_service import InvoiceService

requires_row_locks = pytest.mark.skipif(
    connection.vendor == 'sqlite' or not connection.features.has_select_for_update,
    reason='needs SELECT ... FOR UPDATE',
)

pytestmark = [requires_row_locks, pytest.mark.django_db(transaction=True)]


def run_together(*calls):
    """Start every call at the same moment, each on its own connection."""
    barrier = threading.Barrier(len(calls))
    results = [None] * len(calls)

    def worker(index, call):
        try:
            barrier.wait(timeout=10)
            results[index] = call()
        except Exception as e:
            results[index] = e
        finally:
            connection.close()

    threads = [threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return results


def test_two_payments_cannot_both_spend_the_due_amount(approved_invoice, actor):
    pay = partial(InvoiceService.record_payment, approved_invoice.pk, Decimal('300'), 'Cash', actor=actor)
    results = run_together(pay, pay)

    assert sum(isinstance(r, InvoicePayment) for r in results) == 1
    assert sum(isinstance(r, ValidationError) for r in results) == 1

    invoice = Invoice.objects.get(pk=approved_invoice.pk)
    assert invoice.paid_amount == Decimal('300')
    assert invoice.due_amount == Decimal('200')
    assert invoice.paid_amount + invoice.due_amount == invoice.total_amount
    assert InvoicePayment.objects.filter(invoice=invoice).count() == 1


def test_per_customer_cap_holds_under_concurrent_redemption(completed_visit, warranty_line, actor):
    coupon = Coupon.objects.create(
        code='ONCE', discount_type='fixed', discount_value=Decimal('100'), usage_per_customer=1,
    )
    payload = {'items': [warranty_line], 'couponCode': 'ONCE'}
    create = partial(InvoiceService.create_from_service_visit, completed_visit.pk, payload, actor=actor)
    results = run_together(create, create)

    assert all(isinstance(r, Invoice) for r in results)
    assert sorted(r.coupon_code or '' for r in results) == ['', 'ONCE']

    coupon.refresh_from_db()
    assert coupon.used_count == 1
    assert CouponUsage.objects.filter(coupon=coupon).count() == 1
