"""
Invoice lifecycle: creation from a completed visit, approval, rejection,
payments and PDF access.

Status moves one way, from pending_approval to approved or rejected. Payment
status (unpaid, partial, paid) only moves on approved invoices, and every
money mutation keeps paid_amount + due_amount == total_amount.
"""

import logging
import os
import secrets
from decimal import Decimal
from typing import List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_date

from workshop.exceptions import (
    AccessTokenExpired, AccessTokenInvalid, ConflictError, NotFoundError, ValidationError,
)
from workshop.models import Invoice, InvoiceLineItem, InvoicePayment, Product, ServiceVisit
from workshop.services.activity import log_activity
from workshop.services.coupon_service import CouponService
from workshop.services.notifications import send_invoice_notifications
from workshop.services.part_resolver import PartRef, resolve_part
from workshop.services.pdf_renderer import (
    build_invoice_pdf_data, generate_invoice_pdf, is_inside_pdf_dir,
)
from workshop.services.warranty_service import WarrantyService
from workshop.utils import parse_amount, parse_id
from workshop.utils.time_utils import is_expired, pdf_token_expiry

logger = logging.getLogger(__name__)

SALES_EXECUTIVE_GROUP = 'Sales Executive'


def _build_line_items(items) -> List[InvoiceLineItem]:
    """Normalize caller-supplied lines. Totals are taken as given."""
    if not isinstance(items, list) or not items:
        raise ValidationError('At least one line item is required')
    lines = []
    for position, entry in enumerate(items):
        if not isinstance(entry, dict):
            raise ValidationError('Each line item must be an object')
        ref = PartRef.parse(entry.get('productId'))
        product = None
        if ref.product_pk is not None:
            product = Product.objects.filter(pk=ref.product_pk).first()
        name = entry.get('name')
        if not name and ref.raw:
            resolved = resolve_part(ref.raw)
            name = resolved.name if resolved else None
        if not name:
            raise ValidationError(f'Line item {position + 1} needs a name or a known productId')
        try:
            quantity = int(entry.get('quantity', 1))
        except (TypeError, ValueError):
            raise ValidationError(f'Line item {position + 1}: quantity must be a whole number')
        if quantity < 1:
            raise ValidationError(f'Line item {position + 1}: quantity must be at least 1')
        item_type = entry.get('type') or 'product'
        if item_type not in ('product', 'service'):
            raise ValidationError(f"Line item {position + 1}: invalid type '{item_type}'")
        lines.append(InvoiceLineItem(
            position=position,
            item_type=item_type,
            product=product,
            part_ref=ref.raw or None,
            name=name,
            description=entry.get('description'),
            quantity=quantity,
            unit_price=parse_amount(entry.get('unitPrice'), f'Line item {position + 1} unitPrice'),
            total=parse_amount(entry.get('total'), f'Line item {position + 1} total'),
            has_gst=bool(entry.get('hasGst', False)),
            gst_amount=parse_amount(entry.get('gstAmount'), f'Line item {position + 1} gstAmount'),
            has_warranty=bool(entry.get('hasWarranty', False)),
        ))
    return lines


def _derive_payment_status(invoice: Invoice) -> str:
    if invoice.due_amount == 0:
        return 'paid'
    if invoice.paid_amount > 0:
        return 'partial'
    return 'unpaid'


def _lock_invoice(invoice_id) -> Invoice:
    invoice = Invoice.objects.select_for_update().filter(pk=invoice_id).first()
    if invoice is None:
        raise NotFoundError('Invoice not found')
    return invoice


def _require_status(invoice: Invoice, expected: str, action: str):
    if invoice.status != expected:
        raise ConflictError(
            f"Cannot {action} invoice with status '{invoice.status}'",
            current_status=invoice.status,
            expected_status=expected,
        )


def is_sales_executive(user) -> bool:
    if user is None or user.is_superuser:
        return False
    return user.groups.filter(name=SALES_EXECUTIVE_GROUP).exists()


class InvoiceService:

    @staticmethod
    def get_invoice(invoice_id) -> Invoice:
        invoice = (
            Invoice.objects.select_related('customer', 'coupon', 'service_visit')
            .prefetch_related('items', 'payments')
            .filter(pk=invoice_id)
            .first()
        )
        if invoice is None:
            raise NotFoundError('Invoice not found')
        return invoice

    @staticmethod
    def list_invoices(user=None, status=None, payment_status=None, customer_id=None,
                      from_date=None, to_date=None, search=None):
        qs = Invoice.objects.all()
        if is_sales_executive(user):
            qs = qs.filter(created_by=user)
        if status:
            qs = qs.filter(status=status)
        if payment_status:
            qs = qs.filter(payment_status=payment_status)
        customer_id = parse_id(customer_id, 'customerId')
        if customer_id:
            qs = qs.filter(customer_id=customer_id)
        if from_date:
            start = parse_date(from_date)
            if start is None:
                raise ValidationError('fromDate must be YYYY-MM-DD')
            qs = qs.filter(created_at__date__gte=start)
        if to_date:
            end = parse_date(to_date)
            if end is None:
                raise ValidationError('toDate must be YYYY-MM-DD')
            qs = qs.filter(created_at__date__lte=end)
        if search:
            qs = qs.filter(
                Q(invoice_number__icontains=search)
                | Q(customer_details__fullName__icontains=search)
                | Q(customer_details__mobileNumber__icontains=search)
                | Q(customer_details__email__icontains=search)
                | Q(customer_details__referenceCode__icontains=search)
                | Q(vehicle_details__icontains=search)
            )
        return qs

    @staticmethod
    def create_from_service_visit(visit_id, data: dict, actor=None, ip_address=None) -> Invoice:
        """
        Bill a completed service visit.

        Customer and all of the customer's vehicles are copied onto the
        invoice. A coupon that does not apply is dropped without failing the
        call; one that applies is redeemed in the same transaction.
        """
        lines = _build_line_items(data.get('items'))
        tax_rate = parse_amount(
            data.get('taxRate') if data.get('taxRate') is not None else settings.WORKSHOP_DEFAULT_TAX_RATE,
            'taxRate',
        )
        coupon_code = (data.get('couponCode') or '').strip().upper()
        visit_id = parse_id(visit_id, 'serviceVisitId')

        with transaction.atomic():
            visit = ServiceVisit.objects.select_for_update().filter(pk=visit_id).first()
            if visit is None:
                raise NotFoundError('Service visit not found')
            customer = visit.customer
            if customer is None:
                raise ValidationError('Service visit has no customer')
            if visit.status != 'completed':
                raise ValidationError(
                    f"Cannot create invoice: service visit status is '{visit.status}', it must be 'completed'",
                    currentStatus=visit.status,
                )

            subtotal = sum((line.total for line in lines), Decimal('0'))
            coupon = None
            discount = Decimal('0')
            if coupon_code:
                coupon, check = CouponService.lock_applicable(coupon_code, customer.pk, subtotal)
                if coupon is None:
                    logger.info(f"Coupon {coupon_code} ignored for visit {visit.pk}: {check.reason}")
                else:
                    discount = coupon.calculate_discount(subtotal)

            total = subtotal - discount
            invoice = Invoice(
                status='pending_approval',
                payment_status='unpaid',
                service_visit=visit,
                customer=customer,
                customer_details=customer.snapshot(),
                vehicle_details=[v.snapshot() for v in customer.vehicles.all()],
                subtotal=subtotal,
                discount_type=coupon.discount_type if coupon else 'none',
                discount_value=coupon.discount_value if coupon else Decimal('0'),
                discount_amount=discount,
                coupon=coupon,
                coupon_code=coupon.code if coupon else None,
                tax_rate=tax_rate,
                tax_amount=Decimal('0'),
                total_amount=total,
                paid_amount=Decimal('0'),
                due_amount=total,
                notes=data.get('notes'),
                terms=data.get('terms'),
                created_by_id=getattr(actor, 'user_id', None),
            )
            invoice.save()
            for line in lines:
                line.invoice = invoice
            InvoiceLineItem.objects.bulk_create(lines)
            if coupon is not None:
                CouponService.record_redemption(coupon, invoice, customer, discount)

        logger.info(f"Created invoice {invoice.invoice_number} from service visit {visit.pk}: total {total}")
        log_activity(
            actor, 'create', 'invoice', invoice.pk,
            f"Created invoice {invoice.invoice_number} for {customer.full_name}",
            details={'serviceVisitId': visit.pk, 'totalAmount': str(total), 'couponCode': invoice.coupon_code},
            ip_address=ip_address,
        )
        return invoice

    @staticmethod
    def approve(invoice_id, actor=None, ip_address=None) -> Invoice:
        """
        Approve a pending invoice, then run PDF rendering, warranty creation
        and customer delivery. Those later steps never undo the approval; the
        outcome of each is stored in post_approval_results.
        """
        with transaction.atomic():
            invoice = _lock_invoice(invoice_id)
            _require_status(invoice, 'pending_approval', 'approve')
            now = timezone.now()
            invoice.status = 'approved'
            invoice.approved_by_id = getattr(actor, 'user_id', None)
            invoice.approved_at = now
            invoice.pdf_access_token = secrets.token_hex(32)
            invoice.pdf_token_expiry = pdf_token_expiry(now)
            invoice.save()
        logger.info(f"Invoice {invoice.invoice_number} approved")

        results = {'pdf': False, 'warranties': False, 'email': False, 'whatsapp': False}
        try:
            invoice.pdf_path = generate_invoice_pdf(build_invoice_pdf_data(invoice))
            invoice.save(update_fields=['pdf_path', 'updated_at'])
            results['pdf'] = True
        except Exception as e:
            logger.error(f"PDF generation failed for approved invoice {invoice.invoice_number}: {e}")
        try:
            results['warranties'] = WarrantyService.create_for_invoice(invoice)
        except Exception as e:
            logger.error(f"Warranty creation failed for invoice {invoice.invoice_number}: {e}")
        try:
            results.update(send_invoice_notifications(invoice))
        except Exception as e:
            logger.error(f"Notification dispatch failed for invoice {invoice.invoice_number}: {e}")

        invoice.post_approval_results = results
        invoice.save(update_fields=['post_approval_results', 'updated_at'])

        log_activity(
            actor, 'approve', 'invoice', invoice.pk,
            f"Approved invoice {invoice.invoice_number}",
            details=results,
            ip_address=ip_address,
        )
        return invoice

    @staticmethod
    def reject(invoice_id, reason: Optional[str] = None, actor=None, ip_address=None) -> Invoice:
        with transaction.atomic():
            invoice = _lock_invoice(invoice_id)
            _require_status(invoice, 'pending_approval', 'reject')
            invoice.status = 'rejected'
            invoice.rejection_reason = reason or None
            invoice.rejected_by_id = getattr(actor, 'user_id', None)
            invoice.rejected_at = timezone.now()
            invoice.save()
        logger.info(f"Invoice {invoice.invoice_number} rejected: {reason or 'no reason given'}")
        log_activity(
            actor, 'reject', 'invoice', invoice.pk,
            f"Rejected invoice {invoice.invoice_number}",
            details={'reason': reason},
            ip_address=ip_address,
        )
        return invoice

    @staticmethod
    def set_payment_status(invoice_id, payment_status: str, payment_method: Optional[str] = None,
                           actor=None, ip_address=None) -> Invoice:
        """Toggle an approved invoice between fully paid and unpaid."""
        if payment_status not in ('paid', 'unpaid'):
            raise ValidationError("paymentStatus must be 'paid' or 'unpaid'")
        if payment_status == 'paid' and not payment_method:
            raise ValidationError('Payment method is required when marking as paid')

        with transaction.atomic():
            invoice = _lock_invoice(invoice_id)
            if invoice.status != 'approved':
                raise ConflictError(
                    'Payment status can only be updated for approved invoices',
                    current_status=invoice.status,
                    expected_status='approved',
                )
            if payment_status == 'paid':
                invoice.paid_amount = invoice.total_amount
                invoice.due_amount = Decimal('0')
                invoice.payment_method = payment_method
            else:
                invoice.paid_amount = Decimal('0')
                invoice.due_amount = invoice.total_amount
                invoice.payment_method = None
            invoice.payment_status = payment_status
            invoice.save()

        log_activity(
            actor, 'update', 'invoice', invoice.pk,
            f"Marked invoice {invoice.invoice_number} as {payment_status}",
            details={'paymentStatus': payment_status, 'paymentMethod': payment_method},
            ip_address=ip_address,
        )
        return invoice

    @staticmethod
    def record_payment(invoice_id, amount, payment_mode: str, transaction_id=None, notes=None,
                       actor=None, ip_address=None) -> InvoicePayment:
        amount = parse_amount(amount, 'amount', allow_negative=True)
        if amount <= 0:
            raise ValidationError('Payment amount must be greater than zero')

        with transaction.atomic():
            invoice = _lock_invoice(invoice_id)
            if invoice.status != 'approved':
                raise ConflictError(
                    'Payments can only be recorded for approved invoices',
                    current_status=invoice.status,
                    expected_status='approved',
                )
            if amount > invoice.due_amount:
                raise ValidationError(
                    f"Payment amount ({amount}) exceeds due amount ({invoice.due_amount})"
                )
            payment = InvoicePayment.objects.create(
                invoice=invoice,
                amount=amount,
                payment_mode=payment_mode,
                transaction_id=transaction_id or None,
                notes=notes or None,
                recorded_by_id=getattr(actor, 'user_id', None),
            )
            invoice.paid_amount = invoice.paid_amount + amount
            invoice.due_amount = invoice.due_amount - amount
            invoice.payment_status = _derive_payment_status(invoice)
            invoice.payment_method = payment_mode
            invoice.save()

        logger.info(
            f"Recorded {amount} ({payment_mode}) on invoice {invoice.invoice_number}; due now {invoice.due_amount}"
        )
        log_activity(
            actor, 'payment', 'invoice', invoice.pk,
            f"Recorded payment of {amount} on invoice {invoice.invoice_number}",
            details={'amount': str(amount), 'mode': payment_mode, 'paymentStatus': invoice.payment_status},
            ip_address=ip_address,
        )
        return payment

    @staticmethod
    def ensure_pdf(invoice: Invoice) -> str:
        """Path of the rendered PDF, rendering it again if the file is gone."""
        if invoice.pdf_path and os.path.exists(invoice.pdf_path):
            return invoice.pdf_path
        logger.info(f"PDF missing for invoice {invoice.invoice_number}, regenerating")
        path = generate_invoice_pdf(build_invoice_pdf_data(invoice))
        invoice.pdf_path = path
        invoice.save(update_fields=['pdf_path', 'updated_at'])
        return path

    @staticmethod
    def get_public_pdf(invoice_id, token: Optional[str]) -> Invoice:
        """
        Token-gated lookup for unauthenticated PDF downloads.

        Raises:
            NotFoundError: unknown or unapproved invoice
            AccessTokenInvalid: token missing or not matching
            AccessTokenExpired: token matched but has expired
        """
        invoice = Invoice.objects.filter(pk=invoice_id, status='approved').first()
        if invoice is None:
            raise NotFoundError('Invoice not found or not approved')
        if not token or not invoice.pdf_access_token or not secrets.compare_digest(
            str(token), invoice.pdf_access_token
        ):
            logger.warning(f"Rejected public PDF request for invoice {invoice.invoice_number}: bad token")
            raise AccessTokenInvalid('Invalid or missing access token')
        if is_expired(invoice.pdf_token_expiry):
            raise AccessTokenExpired('Access token has expired')
        return invoice

    @staticmethod
    def delete_invoice(invoice_id, actor=None, ip_address=None) -> None:
        invoice = Invoice.objects.filter(pk=invoice_id).first()
        if invoice is None:
            raise NotFoundError('Invoice not found')
        number = invoice.invoice_number
        pdf_path = invoice.pdf_path
        invoice.delete()
        if pdf_path and os.path.exists(pdf_path):
            if is_inside_pdf_dir(pdf_path):
                try:
                    os.remove(pdf_path)
                except OSError as e:
                    logger.warning(f"Could not remove PDF {pdf_path} for deleted invoice {number}: {e}")
            else:
                logger.warning(f"Not removing PDF outside the invoice directory: {pdf_path}")
        log_activity(
            actor, 'delete', 'invoice', invoice_id,
            f"Deleted invoice {number}",
            ip_address=ip_address,
        )
