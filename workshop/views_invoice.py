"""
Views for invoice creation, approval, payments, PDFs and warranty cards.
"""

import logging

from django.contrib.auth.decorators import login_required
from django.http import HttpResponse, JsonResponse
from django.views.decorators.http import require_http_methods

from .exceptions import ValidationError
from .forms import InvoicePaymentForm, InvoiceRejectForm, PaymentStatusForm, first_form_error
from .services.invoice_service import InvoiceService, is_sales_executive
from .services.warranty_service import WarrantyService
from .utils import get_actor, get_client_ip, parse_json_body

logger = logging.getLogger(__name__)


def _iso(value):
    return value.isoformat() if value else None


def _invoice_summary(invoice):
    return {
        'id': invoice.id,
        'invoiceNumber': invoice.invoice_number,
        'status': invoice.status,
        'paymentStatus': invoice.payment_status,
        'paymentMethod': invoice.payment_method,
        'customerId': invoice.customer_id,
        'customerName': (invoice.customer_details or {}).get('fullName'),
        'serviceVisitId': invoice.service_visit_id,
        'subtotal': float(invoice.subtotal),
        'discountAmount': float(invoice.discount_amount),
        'totalAmount': float(invoice.total_amount),
        'paidAmount': float(invoice.paid_amount),
        'dueAmount': float(invoice.due_amount),
        'createdAt': _iso(invoice.created_at),
    }


def _invoice_data(invoice):
    data = _invoice_summary(invoice)
    data.update({
        'customerDetails': invoice.customer_details or {},
        'vehicleDetails': invoice.vehicle_details or [],
        'items': [
            {
                'type': item.item_type,
                'productId': str(item.product_id) if item.product_id else item.part_ref,
                'name': item.name,
                'description': item.description,
                'quantity': item.quantity,
                'unitPrice': float(item.unit_price),
                'total': float(item.total),
                'hasGst': item.has_gst,
                'gstAmount': float(item.gst_amount),
                'hasWarranty': item.has_warranty,
                'warrantyCards': [card.as_dict() for card in item.warranty_cards.all()],
            }
            for item in invoice.items.all()
        ],
        'discountType': invoice.discount_type,
        'discountValue': float(invoice.discount_value),
        'couponCode': invoice.coupon_code,
        'taxRate': float(invoice.tax_rate),
        'taxAmount': float(invoice.tax_amount),
        'payments': [
            {
                'amount': float(p.amount),
                'paymentMode': p.payment_mode,
                'transactionId': p.transaction_id,
                'notes': p.notes,
                'transactionDate': _iso(p.transaction_date),
            }
            for p in invoice.payments.all()
        ],
        'notes': invoice.notes,
        'terms': invoice.terms,
        'dueDate': _iso(invoice.due_date),
        'approvedAt': _iso(invoice.approved_at),
        'rejectedAt': _iso(invoice.rejected_at),
        'rejectionReason': invoice.rejection_reason,
        'postApprovalResults': invoice.post_approval_results or {},
    })
    return data


def _pdf_response(invoice, path, disposition='attachment'):
    with open(path, 'rb') as fh:
        response = HttpResponse(fh.read(), content_type='application/pdf')
    response['Content-Disposition'] = f'{disposition}; filename="{invoice.pdf_filename}"'
    return response


@login_required
@require_http_methods(["GET"])
def api_invoices(request):
    """
    List invoices.

    Query parameters: status, paymentStatus, customerId, fromDate, toDate, search
    """
    invoices = InvoiceService.list_invoices(
        user=request.user,
        status=request.GET.get('status'),
        payment_status=request.GET.get('paymentStatus'),
        customer_id=request.GET.get('customerId'),
        from_date=request.GET.get('fromDate'),
        to_date=request.GET.get('toDate'),
        search=(request.GET.get('search') or '').strip() or None,
    )
    data = [_invoice_summary(inv) for inv in invoices]
    return JsonResponse({'success': True, 'invoices': data, 'count': len(data)})


@login_required
@require_http_methods(["GET", "DELETE"])
def api_invoice_detail(request, pk):
    if request.method == 'DELETE':
        InvoiceService.delete_invoice(pk, actor=get_actor(request), ip_address=get_client_ip(request))
        return JsonResponse({'success': True, 'message': 'Invoice deleted'})
    invoice = InvoiceService.get_invoice(pk)
    if is_sales_executive(request.user) and invoice.created_by_id != request.user.id:
        return JsonResponse({'success': False, 'error': 'Access denied'}, status=403)
    return JsonResponse({'success': True, 'invoice': _invoice_data(invoice)})


@login_required
@require_http_methods(["POST"])
def api_invoice_from_service_visit(request):
    """
    Create an invoice from a completed service visit.

    Body: serviceVisitId, items, couponCode?, taxRate?, notes?, terms?
    """
    data = parse_json_body(request)
    visit_id = data.get('serviceVisitId')
    if not visit_id:
        raise ValidationError('serviceVisitId is required')
    invoice = InvoiceService.create_from_service_visit(
        visit_id, data, actor=get_actor(request), ip_address=get_client_ip(request)
    )
    invoice = InvoiceService.get_invoice(invoice.pk)
    return JsonResponse({'success': True, 'invoice': _invoice_data(invoice)}, status=201)


@login_required
@require_http_methods(["POST"])
def api_invoice_approve(request, pk):
    invoice = InvoiceService.approve(pk, actor=get_actor(request), ip_address=get_client_ip(request))
    invoice = InvoiceService.get_invoice(invoice.pk)
    return JsonResponse({
        'success': True,
        'message': f'Invoice {invoice.invoice_number} approved',
        'invoice': _invoice_data(invoice),
        'postApprovalResults': invoice.post_approval_results,
    })


@login_required
@require_http_methods(["POST"])
def api_invoice_reject(request, pk):
    form = InvoiceRejectForm.from_payload(parse_json_body(request))
    if not form.is_valid():
        raise ValidationError(first_form_error(form))
    invoice = InvoiceService.reject(
        pk, reason=form.cleaned_data.get('reason'),
        actor=get_actor(request), ip_address=get_client_ip(request),
    )
    invoice = InvoiceService.get_invoice(invoice.pk)
    return JsonResponse({
        'success': True,
        'message': f'Invoice {invoice.invoice_number} rejected',
        'invoice': _invoice_data(invoice),
    })


@login_required
@require_http_methods(["PATCH", "POST"])
def api_invoice_payment_status(request, pk):
    """Mark an approved invoice as fully paid or unpaid."""
    form = PaymentStatusForm.from_payload(parse_json_body(request))
    if not form.is_valid():
        raise ValidationError(first_form_error(form))
    invoice = InvoiceService.set_payment_status(
        pk,
        form.cleaned_data['payment_status'],
        payment_method=form.cleaned_data.get('payment_method') or None,
        actor=get_actor(request),
        ip_address=get_client_ip(request),
    )
    invoice = InvoiceService.get_invoice(invoice.pk)
    return JsonResponse({'success': True, 'invoice': _invoice_data(invoice)})


@login_required
@require_http_methods(["POST"])
def api_invoice_record_payment(request, pk):
    form = InvoicePaymentForm.from_payload(parse_json_body(request))
    if not form.is_valid():
        raise ValidationError(first_form_error(form))
    InvoiceService.record_payment(
        pk,
        form.cleaned_data['amount'],
        form.cleaned_data['payment_mode'],
        transaction_id=form.cleaned_data.get('transaction_id'),
        notes=form.cleaned_data.get('notes'),
        actor=get_actor(request),
        ip_address=get_client_ip(request),
    )
    invoice = InvoiceService.get_invoice(pk)
    return JsonResponse({'success': True, 'invoice': _invoice_data(invoice)}, status=201)


@login_required
@require_http_methods(["GET"])
def api_invoice_pdf(request, pk):
    """Authenticated PDF download; renders again when the file is missing."""
    invoice = InvoiceService.get_invoice(pk)
    path = InvoiceService.ensure_pdf(invoice)
    return _pdf_response(invoice, path)


@require_http_methods(["GET"])
def public_invoice_pdf(request, pk):
    """Token-gated PDF download for links sent to customers."""
    invoice = InvoiceService.get_public_pdf(pk, request.GET.get('token'))
    path = InvoiceService.ensure_pdf(invoice)
    return _pdf_response(invoice, path, disposition='inline')


@login_required
@require_http_methods(["GET"])
def api_invoice_products(request, pk):
    products = WarrantyService.list_invoice_products(pk)
    return JsonResponse({'success': True, 'products': products})


@login_required
@require_http_methods(["POST"])
def api_invoice_warranty_card(request, pk):
    """
    Upload a warranty card for one line item.

    Body: itemIndex, fileData (data URI), filename
    """
    data = parse_json_body(request)
    card, synced = WarrantyService.upload_warranty_card(
        pk,
        data.get('itemIndex'),
        data.get('fileData'),
        data.get('filename'),
        actor=get_actor(request),
        ip_address=get_client_ip(request),
    )
    return JsonResponse({
        'success': True,
        'message': 'Warranty card uploaded',
        'warrantyCard': card.as_dict(),
        'vehiclesSynced': synced,
    }, status=201)
