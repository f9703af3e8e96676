"""
Coupon and warranty API views.
"""

import logging

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from .exceptions import NotFoundError, ValidationError
from .forms import CouponForm, first_form_error
from .models import Coupon
from .services.activity import log_activity
from .services.coupon_service import CouponService
from .services.warranty_service import WarrantyService
from .utils import get_actor, get_client_ip, parse_json_body

logger = logging.getLogger(__name__)


def _coupon_data(coupon):
    return {
        'id': coupon.id,
        'code': coupon.code,
        'description': coupon.description,
        'discountType': coupon.discount_type,
        'discountValue': float(coupon.discount_value),
        'maxDiscountAmount': float(coupon.max_discount_amount) if coupon.max_discount_amount is not None else None,
        'minPurchaseAmount': float(coupon.min_purchase_amount),
        'usageLimit': coupon.usage_limit,
        'usagePerCustomer': coupon.usage_per_customer,
        'usedCount': coupon.used_count,
        'validFrom': coupon.valid_from.isoformat() if coupon.valid_from else None,
        'validUntil': coupon.valid_until.isoformat() if coupon.valid_until else None,
        'isActive': coupon.is_active,
    }


@login_required
@require_http_methods(["GET", "POST"])
def api_coupons(request):
    """GET: list coupons (?isActive=true|false). POST: create a coupon."""
    if request.method == 'POST':
        form = CouponForm.from_payload(parse_json_body(request))
        if not form.is_valid():
            raise ValidationError(first_form_error(form))
        actor = get_actor(request)
        coupon = CouponService.save_coupon(form, actor=actor)
        log_activity(
            actor, 'create', 'coupon', coupon.pk, f"Created coupon {coupon.code}",
            ip_address=get_client_ip(request),
        )
        return JsonResponse({'success': True, 'coupon': _coupon_data(coupon)}, status=201)

    coupons = Coupon.objects.all()
    is_active = request.GET.get('isActive')
    if is_active in ('true', 'false'):
        coupons = coupons.filter(is_active=(is_active == 'true'))
    return JsonResponse({'success': True, 'coupons': [_coupon_data(c) for c in coupons]})


@login_required
@require_http_methods(["PATCH", "PUT"])
def api_coupon_detail(request, pk):
    coupon = Coupon.objects.filter(pk=pk).first()
    if coupon is None:
        raise NotFoundError('Coupon not found')
    form = CouponForm.from_payload(parse_json_body(request), instance=coupon)
    if not form.is_valid():
        raise ValidationError(first_form_error(form))
    actor = get_actor(request)
    coupon = CouponService.save_coupon(form, actor=actor)
    log_activity(
        actor, 'update', 'coupon', coupon.pk, f"Updated coupon {coupon.code}",
        ip_address=get_client_ip(request),
    )
    return JsonResponse({'success': True, 'coupon': _coupon_data(coupon)})


@login_required
@require_http_methods(["POST"])
def api_coupon_validate(request):
    """
    Check a coupon without redeeming it.

    Body: code, customerId, purchaseAmount
    """
    data = parse_json_body(request)
    if not data.get('code'):
        raise ValidationError('Coupon code is required')
    coupon, discount = CouponService.validate(
        data.get('code'), data.get('customerId'), data.get('purchaseAmount', 0)
    )
    return JsonResponse({
        'success': True,
        'valid': True,
        'coupon': _coupon_data(coupon),
        'discountAmount': float(discount),
    })


@login_required
@require_http_methods(["GET"])
def api_warranties(request):
    """List warranties, filtered by ?status= and ?customerId=."""
    warranties = WarrantyService.list_warranties(
        status=request.GET.get('status'),
        customer_id=request.GET.get('customerId'),
    )
    data = [
        {
            'id': w.id,
            'invoiceId': w.invoice_id,
            'invoiceNumber': w.invoice.invoice_number,
            'customerId': w.customer_id,
            'customerName': w.customer.full_name if w.customer else None,
            'productId': str(w.product_id) if w.product_id else None,
            'productName': w.product_name,
            'warrantyType': w.warranty_type,
            'durationMonths': w.duration_months,
            'startDate': w.start_date.isoformat(),
            'endDate': w.end_date.isoformat(),
            'coverage': w.coverage,
            'status': w.status,
        }
        for w in warranties
    ]
    return JsonResponse({'success': True, 'warranties': data, 'count': len(data)})
