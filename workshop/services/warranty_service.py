"""
Warranty records and warranty-card synchronization.

Warranty rows are derived once, when an invoice is approved. Warranty cards
uploaded against an invoice line item are appended to that item and mirrored
onto every vehicle of the invoice's customer that lists the item's product
among its selected parts.
"""

import logging
from typing import List, Optional, Tuple

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from workshop.exceptions import NotFoundError, ValidationError
from workshop.models import (
    Invoice, InvoiceItemWarrantyCard, Vehicle, VehicleWarrantyCard, Warranty,
)
from workshop.services.activity import log_activity
from workshop.utils import parse_id
from workshop.utils.time_utils import add_months, parse_warranty_months
from workshop.utils.upload_utils import parse_warranty_card

logger = logging.getLogger(__name__)


def _get_invoice(invoice_id) -> Invoice:
    invoice = Invoice.objects.filter(pk=invoice_id).first()
    if invoice is None:
        raise NotFoundError('Invoice not found')
    return invoice


class WarrantyService:

    @staticmethod
    def create_for_invoice(invoice: Invoice, start=None) -> int:
        """
        Create one Warranty per product line item flagged has_warranty.

        Lines whose part is not a persisted product carry no warranty text and
        are skipped. Returns the number of rows created.
        """
        start = start or timezone.now()
        created = 0
        items = invoice.items.filter(has_warranty=True, item_type='product').select_related('product')
        for item in items:
            product = item.product
            if product is None:
                logger.info(f"Invoice {invoice.invoice_number}: no persisted product for warranty line '{item.name}', skipping")
                continue
            months = parse_warranty_months(product.warranty)
            Warranty.objects.create(
                invoice=invoice,
                line_item=item,
                customer_id=invoice.customer_id,
                product=product,
                product_name=product.name,
                warranty_type='manufacturer',
                duration_months=months,
                start_date=start,
                end_date=add_months(start, months),
                coverage=product.warranty,
                status='active',
            )
            created += 1
        logger.info(f"Created {created} warranties for invoice {invoice.invoice_number}")
        return created

    @staticmethod
    def list_warranties(status: Optional[str] = None, customer_id=None):
        qs = Warranty.objects.select_related('invoice', 'customer', 'product')
        if status:
            qs = qs.filter(status=status)
        customer_id = parse_id(customer_id, 'customerId')
        if customer_id:
            qs = qs.filter(customer_id=customer_id)
        return qs

    @staticmethod
    def expire_warranties(now=None) -> int:
        now = now or timezone.now()
        return Warranty.objects.filter(status='active', end_date__lt=now).update(status='expired')

    @staticmethod
    def list_invoice_products(invoice_id) -> List[dict]:
        """Product line items with their position and uploaded warranty cards."""
        invoice = _get_invoice(invoice_id)
        products = []
        for index, item in enumerate(invoice.items.prefetch_related('warranty_cards')):
            if item.item_type != 'product':
                continue
            products.append({
                'itemIndex': index,
                'productId': str(item.product_id) if item.product_id else item.part_ref,
                'name': item.name,
                'quantity': item.quantity,
                'unitPrice': float(item.unit_price),
                'total': float(item.total),
                'hasWarranty': item.has_warranty,
                'warrantyCards': [card.as_dict() for card in item.warranty_cards.all()],
            })
        return products

    @staticmethod
    def upload_warranty_card(invoice_id, item_index, file_data, filename, actor=None,
                             ip_address=None) -> Tuple[InvoiceItemWarrantyCard, int]:
        """
        Attach a warranty card to a line item and mirror it onto matching vehicles.

        Returns:
            (card, synced_vehicle_count). A zero count is not an error.
        """
        invoice = _get_invoice(invoice_id)
        items = list(invoice.items.select_related('product'))
        try:
            index = int(item_index)
        except (TypeError, ValueError):
            raise ValidationError('Invalid item index')
        if index < 0 or index >= len(items):
            raise ValidationError('Invalid item index')
        if not file_data or not filename:
            raise ValidationError('File data and filename are required')
        _mime, error = parse_warranty_card(file_data)
        if error:
            raise ValidationError(error)

        item = items[index]
        with transaction.atomic():
            card = InvoiceItemWarrantyCard.objects.create(line_item=item, url=file_data, filename=filename)
            synced = WarrantyService._sync_to_vehicles(invoice, item, file_data)

        log_activity(
            actor, 'upload', 'warranty_card', invoice.pk,
            f"Uploaded warranty card for {item.name} on invoice {invoice.invoice_number}",
            details={'itemIndex': index, 'filename': filename, 'vehiclesSynced': synced},
            ip_address=ip_address,
        )
        return card, synced

    @staticmethod
    def _sync_to_vehicles(invoice: Invoice, item, file_data: str) -> int:
        if item.product_id is None:
            return 0
        snapshot_ids = invoice.snapshot_vehicle_ids
        if not snapshot_ids or invoice.customer_id is None:
            logger.warning(f"Invoice {invoice.invoice_number}: no vehicle details, warranty card not synced to vehicles")
            return 0

        # exact match against selected_parts; a "product-" prefixed entry does not match
        part_id = str(item.product_id)
        snapshot_pks = [int(v) for v in snapshot_ids if str(v).isdigit()]
        vehicles = Vehicle.objects.filter(customer_id=invoice.customer_id).filter(
            Q(vehicle_id__in=snapshot_ids) | Q(pk__in=snapshot_pks)
        )
        synced = 0
        for vehicle in vehicles:
            if part_id not in (vehicle.selected_parts or []):
                continue
            VehicleWarrantyCard.objects.update_or_create(
                vehicle=vehicle,
                part_id=part_id,
                defaults={
                    'part_name': item.name,
                    'file_data': file_data,
                    'uploaded_at': timezone.now(),
                },
            )
            synced += 1

        if synced == 0:
            logger.warning(f"Invoice {invoice.invoice_number}: product {part_id} not in any vehicle's selected parts, warranty card not synced")
        else:
            logger.info(f"Warranty card for product {part_id} synced to {synced} vehicle(s)")
        return synced
