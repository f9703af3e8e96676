"""
Service visit API: intake, phase updates, suggested products and the
part resolver endpoint.
"""

import logging

from django.contrib.auth.decorators import login_required
from django.contrib.auth.models import User
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from .exceptions import ValidationError
from .models import ServiceVisit
from .services.part_resolver import resolve_parts
from .services.service_visit_service import ServiceVisitService
from .utils import get_actor, get_client_ip, parse_id, parse_json_body

logger = logging.getLogger(__name__)

SERVICE_STAFF_GROUP = 'Service Staff'


def _visit_data(visit):
    customer = visit.customer
    return {
        'id': visit.id,
        'customerId': visit.customer_id,
        'customerName': customer.full_name if customer else None,
        'vehicleReg': visit.vehicle_reg,
        'status': visit.status,
        'handlers': [
            {'id': h.id, 'name': h.get_full_name() or h.username}
            for h in visit.handlers.all()
        ],
        'handlerIds': [h.id for h in visit.handlers.all()],
        'beforeImages': visit.before_images or [],
        'afterImages': visit.after_images or [],
        'stageTimestamps': visit.stage_timestamps or {},
        'partsUsed': [
            {
                'productId': str(p.product_id) if p.product_id else None,
                'name': p.product.name if p.product else None,
                'quantity': p.quantity,
            }
            for p in visit.parts_used.all()
        ],
        'notes': visit.notes,
        'totalAmount': float(visit.total_amount),
        'createdAt': visit.created_at.isoformat() if visit.created_at else None,
        'updatedAt': visit.updated_at.isoformat() if visit.updated_at else None,
    }


@login_required
@require_http_methods(["GET", "POST"])
def api_service_visits(request):
    """
    GET: list visits, optionally filtered by ?status= and ?customerId=
    POST: register a new visit
    """
    if request.method == 'POST':
        data = parse_json_body(request)
        visit = ServiceVisitService.create_visit(
            data, actor=get_actor(request), ip_address=get_client_ip(request)
        )
        visit = ServiceVisitService.get_visit(visit.pk)
        return JsonResponse({'success': True, 'serviceVisit': _visit_data(visit)}, status=201)

    visits = ServiceVisit.objects.select_related('customer').prefetch_related('handlers', 'parts_used__product')
    status = request.GET.get('status')
    if status:
        visits = visits.filter(status=status)
    customer_id = parse_id(request.GET.get('customerId'), 'customerId')
    if customer_id:
        visits = visits.filter(customer_id=customer_id)
    data = [_visit_data(v) for v in visits]
    return JsonResponse({'success': True, 'serviceVisits': data, 'count': len(data)})


@login_required
@require_http_methods(["GET", "PATCH", "DELETE"])
def api_service_visit_detail(request, pk):
    actor = get_actor(request)
    if request.method == 'PATCH':
        changes = parse_json_body(request)
        visit = ServiceVisitService.update_visit(pk, changes, actor=actor, ip_address=get_client_ip(request))
        return JsonResponse({'success': True, 'serviceVisit': _visit_data(visit)})
    if request.method == 'DELETE':
        ServiceVisitService.delete_visit(pk, actor=actor, ip_address=get_client_ip(request))
        return JsonResponse({'success': True, 'message': 'Service visit deleted'})
    visit = ServiceVisitService.get_visit(pk)
    return JsonResponse({'success': True, 'serviceVisit': _visit_data(visit)})


@login_required
@require_http_methods(["GET"])
def api_suggested_products(request, pk):
    """Products to pre-fill an invoice for this visit."""
    products = ServiceVisitService.suggested_products(pk)
    return JsonResponse({'success': True, 'products': products, 'count': len(products)})


@login_required
@require_http_methods(["GET"])
def api_service_handlers(request):
    """Active staff who can be assigned to a visit."""
    users = User.objects.filter(is_active=True, groups__name=SERVICE_STAFF_GROUP).order_by('first_name', 'username').distinct()
    handlers = [
        {'id': u.id, 'name': u.get_full_name() or u.username, 'email': u.email}
        for u in users
    ]
    return JsonResponse({'success': True, 'handlers': handlers})


@login_required
@require_http_methods(["POST"])
def api_resolve_products_by_ids(request):
    """
    Resolve part identifiers (product ids, "product-<id>" or catalog ids).

    Body: {"productIds": [...]}
    """
    data = parse_json_body(request)
    ids = data.get('productIds')
    if not isinstance(ids, list):
        raise ValidationError('productIds must be a list')
    resolution = resolve_parts(ids)
    return JsonResponse({
        'success': True,
        'products': [part.as_dict() for part in resolution.parts],
        'notFound': resolution.not_found,
    })
