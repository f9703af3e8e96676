import os
from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth.models import Group, User
from django.core import mail
from django.template.loader import render_to_string
from django.utils import timezone

from workshop.exceptions import (
    AccessTokenExpired, AccessTokenInvalid, ConflictError, ExternalServiceFailure,
    NotFoundError, ValidationError,
)
from workshop.models import Customer, Invoice, ServiceVisit, Vehicle, Warranty
from workshop.services import invoice_service
from workshop.services.invoice_service import InvoiceService
from workshop.services.pdf_renderer import build_invoice_pdf_data
from workshop.services.service_visit_service import ServiceVisitService
from workshop.templatetags.invoice_filters import currency, discount_label

from .conftest import JPEG, PNG


def money_invariant(invoice):
    return invoice.paid_amount + invoice.due_amount == invoice.total_amount


@pytest.mark.django_db
class TestCreateFromServiceVisit:

    def test_requires_completed_visit(self, customer, warranty_line, actor):
        visit = ServiceVisit.objects.create(customer=customer, vehicle_reg='MH12AB1234', status='waiting')
        with pytest.raises(ValidationError) as exc:
            InvoiceService.create_from_service_visit(visit.pk, {'items': [warranty_line]}, actor=actor)
        assert "'waiting'" in exc.value.message
        assert Invoice.objects.count() == 0

    def test_missing_visit(self, warranty_line, actor):
        with pytest.raises(NotFoundError):
            InvoiceService.create_from_service_visit(4040, {'items': [warranty_line]}, actor=actor)

    def test_items_required(self, completed_visit, actor):
        with pytest.raises(ValidationError):
            InvoiceService.create_from_service_visit(completed_visit.pk, {'items': []}, actor=actor)

    def test_totals_and_defaults(self, pending_invoice, product):
        invoice = pending_invoice
        assert invoice.status == 'pending_approval'
        assert invoice.payment_status == 'unpaid'
        assert invoice.subtotal == Decimal('500')
        assert invoice.total_amount == Decimal('500')
        assert invoice.due_amount == Decimal('500')
        assert invoice.paid_amount == Decimal('0')
        assert invoice.tax_rate == Decimal('18')
        assert invoice.tax_amount == Decimal('0')
        assert invoice.discount_type == 'none'
        assert invoice.invoice_number.startswith(f'INV/{timezone.now().year}/')
        item = invoice.items.get()
        assert item.product == product
        assert item.name == product.name

    def test_line_totals_taken_as_supplied(self, completed_visit, product, actor):
        items = [
            {'productId': f'product-{product.pk}', 'quantity': 2, 'unitPrice': 500, 'total': 1180, 'hasGst': True, 'gstAmount': 180},
            {'productId': 'brake-pads', 'quantity': 1, 'unitPrice': 1200, 'total': 1200},
            {'type': 'service', 'name': 'Labour', 'quantity': 1, 'unitPrice': 300, 'total': 300},
        ]
        invoice = InvoiceService.create_from_service_visit(
            completed_visit.pk, {'items': items, 'taxRate': 12}, actor=actor
        )
        assert invoice.subtotal == Decimal('2680')
        assert invoice.tax_rate == Decimal('12')
        lines = list(invoice.items.all())
        assert [line.position for line in lines] == [0, 1, 2]
        assert lines[0].product == product
        assert lines[0].part_ref == f'product-{product.pk}'
        assert lines[1].product is None
        assert lines[1].name == 'Brake Pads'
        assert lines[2].item_type == 'service'

    def test_snapshots_every_vehicle_of_customer(self, completed_visit, customer, vehicle, warranty_line, actor):
        second = Vehicle.objects.create(customer=customer, vehicle_number='MH12CD5678')
        invoice = InvoiceService.create_from_service_visit(completed_visit.pk, {'items': [warranty_line]}, actor=actor)
        assert {v['vehicleId'] for v in invoice.vehicle_details} == {vehicle.vehicle_id, second.vehicle_id}
        assert invoice.customer_details['fullName'] == 'Ravi Kumar'

        Customer.objects.filter(pk=customer.pk).update(full_name='Renamed')
        invoice.refresh_from_db()
        assert invoice.customer_details['fullName'] == 'Ravi Kumar'

    def test_unknown_coupon_is_ignored(self, completed_visit, warranty_line, actor):
        invoice = InvoiceService.create_from_service_visit(
            completed_visit.pk, {'items': [warranty_line], 'couponCode': 'GHOST'}, actor=actor
        )
        assert invoice.coupon_code is None
        assert invoice.total_amount == Decimal('500')

    def test_invoice_numbers_are_sequential(self, completed_visit, warranty_line, actor):
        first = InvoiceService.create_from_service_visit(completed_visit.pk, {'items': [warranty_line]}, actor=actor)
        second = InvoiceService.create_from_service_visit(completed_visit.pk, {'items': [warranty_line]}, actor=actor)
        assert int(second.invoice_number.rsplit('/', 1)[1]) == int(first.invoice_number.rsplit('/', 1)[1]) + 1

    @pytest.mark.parametrize('field', ['unitPrice', 'total', 'gstAmount'])
    def test_negative_line_amounts_rejected(self, completed_visit, warranty_line, field, actor):
        second = dict(warranty_line, **{field: -500})
        with pytest.raises(ValidationError) as exc:
            InvoiceService.create_from_service_visit(
                completed_visit.pk, {'items': [warranty_line, second]}, actor=actor
            )
        assert exc.value.message == f'Line item 2 {field} cannot be negative'
        assert Invoice.objects.count() == 0

    def test_non_numeric_visit_id(self, warranty_line, actor):
        with pytest.raises(ValidationError):
            InvoiceService.create_from_service_visit('abc', {'items': [warranty_line]}, actor=actor)


@pytest.mark.django_db
class TestApproveReject:

    def test_approve(self, pending_invoice, actor, fake_pdf):
        invoice = InvoiceService.approve(pending_invoice.pk, actor=actor)
        assert invoice.status == 'approved'
        assert invoice.approved_by_id == actor.user_id
        assert len(invoice.pdf_access_token) == 64
        assert invoice.pdf_token_expiry > timezone.now() + timedelta(days=6)
        assert os.path.exists(invoice.pdf_path)
        assert fake_pdf[0]['invoiceNumber'] == invoice.invoice_number
        assert invoice.post_approval_results['pdf'] is True
        assert invoice.post_approval_results['warranties'] == 1

    def test_approve_emails_customer_with_pdf(self, pending_invoice, actor, fake_pdf):
        invoice = InvoiceService.approve(pending_invoice.pk, actor=actor)
        assert invoice.post_approval_results['email'] is True
        assert invoice.post_approval_results['whatsapp'] is False
        assert mail.outbox[0].to == ['ravi@example.com']
        assert mail.outbox[0].attachments[0][0] == invoice.pdf_filename

    @pytest.mark.parametrize('status', ['draft', 'approved', 'rejected'])
    def test_approve_requires_pending(self, pending_invoice, actor, status):
        Invoice.objects.filter(pk=pending_invoice.pk).update(status=status)
        with pytest.raises(ConflictError) as exc:
            InvoiceService.approve(pending_invoice.pk, actor=actor)
        assert exc.value.current_status == status
        assert exc.value.expected_status == 'pending_approval'
        assert f"'{status}'" in exc.value.message

    def test_approval_survives_failing_side_effects(self, pending_invoice, actor, monkeypatch):
        def broken_pdf(data):
            raise ExternalServiceFailure('renderer down')

        def broken_notify(invoice):
            raise RuntimeError('gateway down')

        monkeypatch.setattr(invoice_service, 'generate_invoice_pdf', broken_pdf)
        monkeypatch.setattr(invoice_service, 'send_invoice_notifications', broken_notify)

        invoice = InvoiceService.approve(pending_invoice.pk, actor=actor)
        invoice.refresh_from_db()
        assert invoice.status == 'approved'
        assert invoice.pdf_path is None
        assert invoice.post_approval_results == {'pdf': False, 'warranties': 1, 'email': False, 'whatsapp': False}

    def test_reject(self, pending_invoice, actor):
        invoice = InvoiceService.reject(pending_invoice.pk, reason='Wrong parts billed', actor=actor)
        assert invoice.status == 'rejected'
        assert invoice.rejection_reason == 'Wrong parts billed'
        assert invoice.rejected_by_id == actor.user_id
        with pytest.raises(ConflictError):
            InvoiceService.approve(pending_invoice.pk, actor=actor)

    def test_rejected_invoice_gets_no_warranties(self, pending_invoice, actor):
        InvoiceService.reject(pending_invoice.pk, actor=actor)
        assert Warranty.objects.count() == 0


@pytest.mark.django_db
class TestPayments:

    def test_status_toggle_needs_approval(self, pending_invoice, actor):
        with pytest.raises(ConflictError):
            InvoiceService.set_payment_status(pending_invoice.pk, 'paid', 'Cash', actor=actor)

    def test_toggle_paid_and_unpaid(self, approved_invoice, actor):
        paid = InvoiceService.set_payment_status(approved_invoice.pk, 'paid', 'UPI', actor=actor)
        assert paid.paid_amount == paid.total_amount
        assert paid.due_amount == 0
        assert paid.payment_method == 'UPI'
        assert money_invariant(paid)

        unpaid = InvoiceService.set_payment_status(approved_invoice.pk, 'unpaid', actor=actor)
        assert unpaid.paid_amount == 0
        assert unpaid.due_amount == unpaid.total_amount
        assert unpaid.payment_method is None
        assert money_invariant(unpaid)

    def test_toggle_rejects_partial(self, approved_invoice, actor):
        with pytest.raises(ValidationError):
            InvoiceService.set_payment_status(approved_invoice.pk, 'partial', 'Cash', actor=actor)

    def test_paid_needs_method(self, approved_invoice, actor):
        with pytest.raises(ValidationError):
            InvoiceService.set_payment_status(approved_invoice.pk, 'paid', actor=actor)

    def test_payment_needs_approval(self, pending_invoice, actor):
        with pytest.raises(ConflictError):
            InvoiceService.record_payment(pending_invoice.pk, 100, 'Cash', actor=actor)

    def test_overpayment_rejected(self, approved_invoice, actor):
        with pytest.raises(ValidationError):
            InvoiceService.record_payment(approved_invoice.pk, Decimal('500.01'), 'Cash', actor=actor)
        approved_invoice.refresh_from_db()
        assert approved_invoice.payments.count() == 0
        assert approved_invoice.due_amount == Decimal('500')

    def test_non_positive_amount_rejected(self, approved_invoice, actor):
        with pytest.raises(ValidationError):
            InvoiceService.record_payment(approved_invoice.pk, 0, 'Cash', actor=actor)

    def test_partial_then_paid(self, approved_invoice, actor):
        InvoiceService.record_payment(approved_invoice.pk, 120, 'Cash', actor=actor)
        invoice = Invoice.objects.get(pk=approved_invoice.pk)
        assert invoice.payment_status == 'partial'
        assert money_invariant(invoice)

        InvoiceService.record_payment(approved_invoice.pk, 380, 'Card', transaction_id='TXN-1', actor=actor)
        invoice.refresh_from_db()
        assert invoice.payment_status == 'paid'
        assert invoice.due_amount == 0
        assert invoice.payment_method == 'Card'
        assert money_invariant(invoice)
        assert [p.amount for p in invoice.payments.all()] == [Decimal('120.00'), Decimal('380.00')]


@pytest.mark.django_db
class TestPdfAccess:

    def test_public_pdf_with_token(self, approved_invoice):
        invoice = InvoiceService.get_public_pdf(approved_invoice.pk, approved_invoice.pdf_access_token)
        assert invoice.pk == approved_invoice.pk

    @pytest.mark.parametrize('token', [None, '', 'not-the-token'])
    def test_bad_token(self, approved_invoice, token):
        with pytest.raises(AccessTokenInvalid):
            InvoiceService.get_public_pdf(approved_invoice.pk, token)

    def test_expired_token(self, approved_invoice):
        Invoice.objects.filter(pk=approved_invoice.pk).update(pdf_token_expiry=timezone.now() - timedelta(seconds=1))
        with pytest.raises(AccessTokenExpired):
            InvoiceService.get_public_pdf(approved_invoice.pk, approved_invoice.pdf_access_token)

    def test_unapproved_invoice_not_public(self, pending_invoice):
        with pytest.raises(NotFoundError):
            InvoiceService.get_public_pdf(pending_invoice.pk, 'anything')

    def test_missing_file_is_regenerated(self, approved_invoice, fake_pdf):
        os.remove(approved_invoice.pdf_path)
        path = InvoiceService.ensure_pdf(approved_invoice)
        assert os.path.exists(path)
        assert len(fake_pdf) == 2

    def test_delete_removes_pdf_inside_directory(self, approved_invoice, actor):
        path = approved_invoice.pdf_path
        InvoiceService.delete_invoice(approved_invoice.pk, actor=actor)
        assert not Invoice.objects.filter(pk=approved_invoice.pk).exists()
        assert not os.path.exists(path)

    def test_delete_leaves_foreign_files(self, pending_invoice, tmp_path, actor):
        outside = tmp_path / 'elsewhere.pdf'
        outside.write_bytes(b'%PDF')
        Invoice.objects.filter(pk=pending_invoice.pk).update(pdf_path=str(outside))
        InvoiceService.delete_invoice(pending_invoice.pk, actor=actor)
        assert outside.exists()


@pytest.mark.django_db
class TestListInvoices:

    def test_filters(self, approved_invoice, staff_user):
        assert list(InvoiceService.list_invoices(user=staff_user, status='approved')) == [approved_invoice]
        assert InvoiceService.list_invoices(user=staff_user, payment_status='paid').count() == 0
        assert InvoiceService.list_invoices(user=staff_user, search='ravi').count() == 1
        assert InvoiceService.list_invoices(user=staff_user, search='MH12AB1234').count() == 1

    def test_bad_date(self, staff_user):
        with pytest.raises(ValidationError):
            InvoiceService.list_invoices(user=staff_user, from_date='yesterday')

    def test_sales_executive_sees_own_invoices(self, pending_invoice):
        group, _ = Group.objects.get_or_create(name='Sales Executive')
        seller = User.objects.create_user('seller', password='secret')
        seller.groups.add(group)
        assert InvoiceService.list_invoices(user=seller).count() == 0


@pytest.mark.django_db
def test_service_to_paid_invoice_end_to_end(customer, vehicle, handler, product, actor, fake_pdf):
    visit = ServiceVisit(customer=customer, vehicle_reg=vehicle.vehicle_number)
    visit.stamp_stage('inquired')
    visit.save()

    visit = ServiceVisitService.update_visit(
        visit.pk, {'status': 'working', 'handlerIds': [handler.pk], 'beforeImages': [PNG]}, actor=actor
    )
    assert 'working' in visit.stage_timestamps

    visit = ServiceVisitService.update_visit(visit.pk, {'status': 'completed', 'afterImages': [JPEG]}, actor=actor)
    assert visit.status == 'completed'

    invoice = InvoiceService.create_from_service_visit(visit.pk, {'items': [{
        'productId': str(product.pk), 'quantity': 1, 'unitPrice': 500, 'total': 500, 'hasWarranty': True,
    }]}, actor=actor)
    assert invoice.subtotal == 500
    assert invoice.total_amount == 500
    assert invoice.status == 'pending_approval'

    invoice = InvoiceService.approve(invoice.pk, actor=actor)
    assert invoice.status == 'approved'
    warranty = Warranty.objects.get(invoice=invoice)
    assert warranty.product == product
    assert warranty.duration_months == 6
    assert warranty.end_date > timezone.now()

    InvoiceService.record_payment(invoice.pk, 300, 'Cash', actor=actor)
    invoice.refresh_from_db()
    assert (invoice.paid_amount, invoice.due_amount, invoice.payment_status) == (300, 200, 'partial')

    InvoiceService.record_payment(invoice.pk, 200, 'UPI', actor=actor)
    invoice.refresh_from_db()
    assert (invoice.paid_amount, invoice.due_amount, invoice.payment_status) == (500, 0, 'paid')


class TestInvoiceFilters:

    @pytest.mark.parametrize('value, expected', [
        (Decimal('1234567.5'), '₹1,234,567.50'),
        (0, '₹0.00'),
        (None, '₹0.00'),
        ('n/a', 'n/a'),
    ])
    def test_currency(self, value, expected):
        assert currency(value) == expected

    @pytest.mark.parametrize('invoice, expected', [
        ({'discountType': 'percentage', 'discountValue': Decimal('10.00')}, 'Discount (10%)'),
        ({'discountType': 'percentage', 'discountValue': Decimal('12.50')}, 'Discount (12.5%)'),
        ({'discountType': 'fixed', 'discountValue': Decimal('200')}, 'Discount (Flat)'),
        ({'discountType': 'none'}, ''),
        (None, ''),
    ])
    def test_discount_label(self, invoice, expected):
        assert discount_label(invoice) == expected


@pytest.mark.django_db
def test_invoice_template_renders_snapshot(pending_invoice):
    html = render_to_string('workshop/invoice_pdf.html', {'invoice': build_invoice_pdf_data(pending_invoice)})
    assert pending_invoice.invoice_number in html
    assert 'Ravi Kumar' in html
    assert 'MH12AB1234' in html
    assert '₹500.00' in html
