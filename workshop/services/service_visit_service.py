"""
Service visit lifecycle: intake, phase changes and product suggestions.

Phases are inquired, working, waiting and completed. Any phase may follow any
other; what gates a change is the table of preconditions on the target phase.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, List, Optional, Tuple

from django.conf import settings
from django.contrib.auth.models import User
from django.db import transaction
from django.db.models import Q

from workshop.exceptions import NotFoundError, ValidationError
from workshop.models import Customer, Product, ServiceVisit, ServiceVisitPart, Vehicle
from workshop.services.activity import log_activity
from workshop.services.notifications import notify_service_visit_status
from workshop.services.part_resolver import PartRef, resolve_parts
from workshop.utils import parse_id
from workshop.utils.upload_utils import validate_images

logger = logging.getLogger(__name__)

VISIT_STATUSES = [choice[0] for choice in ServiceVisit.STATUS_CHOICES]


@dataclass
class VisitDraft:
    """The visit as it would be stored if the update were accepted."""
    status: str
    handler_ids: List[int] = field(default_factory=list)
    before_images: List[str] = field(default_factory=list)
    after_images: List[str] = field(default_factory=list)


Precondition = Tuple[Callable[[VisitDraft], bool], str]

HANDLER_ASSIGNED: Precondition = (
    lambda d: len(d.handler_ids) > 0,
    'At least one service handler must be assigned for this phase',
)
BEFORE_IMAGE_PRESENT: Precondition = (
    lambda d: any(d.before_images),
    "At least one 'Before' image is required before moving to this phase",
)
AFTER_IMAGE_PRESENT: Precondition = (
    lambda d: any(d.after_images),
    "At least one 'After' image is required before marking as completed",
)

# target phase -> preconditions, regardless of the phase being left
TRANSITION_RULES: Dict[str, List[Precondition]] = {
    'inquired': [],
    'working': [HANDLER_ASSIGNED, BEFORE_IMAGE_PRESENT],
    'waiting': [HANDLER_ASSIGNED, BEFORE_IMAGE_PRESENT],
    'completed': [HANDLER_ASSIGNED, AFTER_IMAGE_PRESENT],
}


def transition_errors(draft: VisitDraft) -> List[str]:
    """Messages of every precondition the draft fails for its target phase."""
    if draft.status not in TRANSITION_RULES:
        return [f"Invalid status '{draft.status}'. Must be one of: {', '.join(VISIT_STATUSES)}"]
    return [message for check, message in TRANSITION_RULES[draft.status] if not check(draft)]


def _check_transition(draft: VisitDraft):
    errors = transition_errors(draft)
    if errors:
        raise ValidationError(errors[0], errors=errors)


def _image_list(value, label) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f'{label} must be a list')
    if not validate_images(value):
        raise ValidationError(
            f"Invalid {label}: must be valid base64 image data (PNG, JPEG, GIF, WebP) "
            f"under {settings.WORKSHOP_MAX_IMAGE_MB}MB per image"
        )
    return list(value)


def _resolve_handlers(handler_ids) -> List[User]:
    if not isinstance(handler_ids, list):
        raise ValidationError('handlerIds must be a list')
    try:
        ids = list(dict.fromkeys(int(h) for h in handler_ids))
    except (TypeError, ValueError):
        raise ValidationError('handlerIds must contain user ids')
    handlers = list(User.objects.filter(pk__in=ids, is_active=True))
    missing = set(ids) - {u.pk for u in handlers}
    if missing:
        raise ValidationError(f"Unknown service handler(s): {sorted(missing)}")
    return handlers


def _resolve_parts_used(parts) -> List[Tuple[Product, int]]:
    if not isinstance(parts, list):
        raise ValidationError('partsUsed must be a list')
    resolved = []
    for entry in parts:
        if not isinstance(entry, dict):
            raise ValidationError('Each partsUsed entry must be an object')
        ref = PartRef.parse(entry.get('productId'))
        product = Product.objects.filter(pk=ref.product_pk).first() if ref.product_pk is not None else None
        if product is None:
            raise ValidationError(f"Unknown product '{ref.raw}' in partsUsed")
        try:
            quantity = int(entry.get('quantity', 1))
        except (TypeError, ValueError):
            raise ValidationError('partsUsed quantity must be a whole number')
        if quantity < 1:
            raise ValidationError('partsUsed quantity must be at least 1')
        resolved.append((product, quantity))
    return resolved


def _decimal(value, label) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{label} must be a number')


def _customer_name(visit) -> str:
    customer = visit.customer
    return customer.full_name if customer else 'Unknown Customer'


class ServiceVisitService:
    """Creates and advances service visits."""

    @staticmethod
    def get_visit(visit_id) -> ServiceVisit:
        visit = (
            ServiceVisit.objects.select_related('customer')
            .prefetch_related('handlers', 'parts_used__product')
            .filter(pk=visit_id)
            .first()
        )
        if visit is None:
            raise NotFoundError('Service visit not found')
        return visit

    @staticmethod
    def create_visit(data: dict, actor=None, ip_address: Optional[str] = None) -> ServiceVisit:
        """
        Register a visit. The initial status is checked against the same
        preconditions as a later change into that status.
        """
        customer_id = parse_id(data.get('customerId'), 'customerId')
        customer = Customer.objects.filter(pk=customer_id).first() if customer_id else None
        if customer is None:
            raise NotFoundError('Customer not found')
        vehicle_reg = (data.get('vehicleReg') or '').strip()
        if not vehicle_reg:
            raise ValidationError('vehicleReg is required')

        status = data.get('status') or 'inquired'
        before_images = _image_list(data.get('beforeImages'), 'before images')
        after_images = _image_list(data.get('afterImages'), 'after images')
        handlers = _resolve_handlers(data.get('handlerIds') or [])
        parts = _resolve_parts_used(data.get('partsUsed') or [])
        _check_transition(VisitDraft(status, [h.pk for h in handlers], before_images, after_images))

        with transaction.atomic():
            visit = ServiceVisit(
                customer=customer,
                vehicle_reg=vehicle_reg,
                status=status,
                before_images=before_images,
                after_images=after_images,
                notes=data.get('notes'),
                total_amount=_decimal(data.get('totalAmount', 0), 'totalAmount'),
                created_by_id=getattr(actor, 'user_id', None),
            )
            visit.stamp_stage(status)
            visit.save()
            visit.handlers.set(handlers)
            ServiceVisitPart.objects.bulk_create(
                [ServiceVisitPart(visit=visit, product=product, quantity=qty) for product, qty in parts]
            )
            transaction.on_commit(lambda: notify_service_visit_status(visit, customer.full_name, visit.status))

        logger.info(f"Created service visit {visit.pk} for {vehicle_reg} in status {status}")
        log_activity(
            actor, 'create', 'service_visit', visit.pk,
            f"Created service visit for {visit.vehicle_reg}",
            details={'status': visit.status, 'customerName': customer.full_name},
            ip_address=ip_address,
        )
        return visit

    @staticmethod
    def update_visit(visit_id, changes: dict, actor=None, ip_address: Optional[str] = None) -> ServiceVisit:
        """
        Apply a partial update. Status, handlers, images and parts are
        written together or not at all; a status change that fails its
        preconditions leaves the stored visit untouched.
        """
        with transaction.atomic():
            visit = ServiceVisit.objects.select_for_update().filter(pk=visit_id).first()
            if visit is None:
                raise NotFoundError('Service visit not found')

            before_images = (
                _image_list(changes['beforeImages'], 'before images')
                if changes.get('beforeImages') is not None else list(visit.before_images or [])
            )
            after_images = (
                _image_list(changes['afterImages'], 'after images')
                if changes.get('afterImages') is not None else list(visit.after_images or [])
            )
            handlers = _resolve_handlers(changes['handlerIds']) if changes.get('handlerIds') is not None else None
            parts = _resolve_parts_used(changes['partsUsed']) if changes.get('partsUsed') is not None else None

            previous_status = visit.status
            target_status = changes.get('status') or previous_status
            handler_ids = [h.pk for h in handlers] if handlers is not None else list(visit.handlers.values_list('pk', flat=True))
            status_changed = target_status != previous_status
            if status_changed:
                _check_transition(VisitDraft(target_status, handler_ids, before_images, after_images))

            visit.status = target_status
            visit.before_images = before_images
            visit.after_images = after_images
            if 'notes' in changes:
                visit.notes = changes['notes']
            if changes.get('totalAmount') is not None:
                visit.total_amount = _decimal(changes['totalAmount'], 'totalAmount')
            if status_changed:
                visit.stamp_stage(target_status)
            visit.save()

            if handlers is not None:
                visit.handlers.set(handlers)
            if parts is not None:
                visit.parts_used.all().delete()
                ServiceVisitPart.objects.bulk_create(
                    [ServiceVisitPart(visit=visit, product=product, quantity=qty) for product, qty in parts]
                )
            if status_changed:
                customer_name = _customer_name(visit)
                transaction.on_commit(lambda: notify_service_visit_status(visit, customer_name, target_status))

        if status_changed:
            logger.info(f"Service visit {visit.pk}: {previous_status} -> {target_status}")
        log_activity(
            actor, 'update', 'service_visit', visit.pk,
            f"Updated service visit for {visit.vehicle_reg}",
            details={'status': visit.status, 'previousStatus': previous_status},
            ip_address=ip_address,
        )
        return ServiceVisitService.get_visit(visit.pk)

    @staticmethod
    def delete_visit(visit_id, actor=None, ip_address: Optional[str] = None) -> None:
        visit = ServiceVisit.objects.filter(pk=visit_id).first()
        if visit is None:
            raise NotFoundError('Service visit not found')
        vehicle_reg = visit.vehicle_reg
        visit.delete()
        log_activity(
            actor, 'delete', 'service_visit', visit_id,
            f"Deleted service visit for {vehicle_reg}",
            ip_address=ip_address,
        )

    @staticmethod
    def suggested_products(visit_id) -> List[dict]:
        """
        Products to pre-fill an invoice with. Parts already recorded on the
        visit win; otherwise the serviced vehicle's selected parts are used.
        """
        visit = ServiceVisit.objects.select_related('customer').filter(pk=visit_id).first()
        if visit is None:
            raise NotFoundError('Service visit not found')

        product_ids = list(dict.fromkeys(
            visit.parts_used.filter(product__isnull=False).values_list('product_id', flat=True)
        ))
        if product_ids:
            products = Product.objects.filter(pk__in=product_ids)
            return [_suggestion_from_product(p) for p in products]

        if not visit.customer_id or not visit.vehicle_reg:
            return []
        vehicle = (
            Vehicle.objects.filter(customer_id=visit.customer_id)
            .filter(Q(vehicle_number=visit.vehicle_reg) | Q(vehicle_id=visit.vehicle_reg))
            .first()
        )
        if vehicle is None or not vehicle.selected_parts:
            logger.info(f"Visit {visit.pk}: no vehicle or selected parts for {visit.vehicle_reg}")
            return []

        resolution = resolve_parts(
            vehicle.selected_parts,
            products=Product.objects.exclude(status='discontinued'),
            product_limit=settings.WORKSHOP_SUGGESTED_PRODUCTS_LIMIT,
        )
        from_database = [p for p in resolution.parts if p.source == 'database']
        predefined = [p for p in resolution.parts if p.source == 'predefined']
        suggestions = [_suggestion_from_product(p.product) for p in from_database]
        suggestions += [
            {
                'productId': p.id,
                'name': p.name,
                'price': float(p.price),
                'warranty': None,
                'category': p.category,
                'stockQty': 0,
            }
            for p in predefined
        ]
        return suggestions


def _suggestion_from_product(product: Product) -> dict:
    return {
        'productId': str(product.pk),
        'name': product.name,
        'price': float(product.selling_price),
        'warranty': product.warranty,
        'category': product.category,
        'stockQty': product.stock_qty,
    }
