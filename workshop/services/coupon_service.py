"""
Coupon validation and redemption.
"""

import logging
from decimal import Decimal
from typing import Optional, Tuple

from django.db import transaction
from django.db.models import F

from workshop.exceptions import NotFoundError, ValidationError
from workshop.models import Coupon, CouponCheck, CouponUsage
from workshop.utils import parse_amount, parse_id

logger = logging.getLogger(__name__)


def normalize_code(code) -> str:
    return (code or '').strip().upper()


class CouponService:

    @staticmethod
    def get_coupon(code) -> Coupon:
        coupon = Coupon.objects.filter(code=normalize_code(code)).first()
        if coupon is None:
            raise NotFoundError('Coupon not found')
        return coupon

    @staticmethod
    def validate(code, customer_id, purchase_amount) -> Tuple[Coupon, Decimal]:
        """
        Check a coupon for a customer and amount without redeeming it.

        Returns:
            (coupon, discount) when the coupon applies

        Raises:
            NotFoundError: unknown code
            ValidationError: the coupon exists but does not apply; the
                message is the rejection reason
        """
        customer_id = parse_id(customer_id, 'customerId')
        purchase_amount = parse_amount(purchase_amount, 'purchaseAmount')
        coupon = CouponService.get_coupon(code)
        check = coupon.is_valid(customer_id, purchase_amount)
        if not check.valid:
            raise ValidationError(check.reason)
        return coupon, coupon.calculate_discount(purchase_amount)

    @staticmethod
    def lock_applicable(code, customer_id, purchase_amount) -> Tuple[Optional[Coupon], CouponCheck]:
        """
        Fetch and row-lock a coupon for redemption. Must run inside the
        transaction that will record the redemption, so the usage counts
        read here cannot change before the ledger entry is written.
        """
        code = normalize_code(code)
        if not code:
            return None, CouponCheck(False, 'No coupon code supplied')
        coupon = Coupon.objects.select_for_update().filter(code=code).first()
        if coupon is None:
            return None, CouponCheck(False, 'Coupon not found')
        check = coupon.is_valid(customer_id, purchase_amount)
        return (coupon if check.valid else None), check

    @staticmethod
    def record_redemption(coupon: Coupon, invoice, customer, discount: Decimal) -> CouponUsage:
        """Increment the usage counter and append the ledger entry together."""
        with transaction.atomic():
            Coupon.objects.filter(pk=coupon.pk).update(used_count=F('used_count') + 1)
            usage = CouponUsage.objects.create(
                coupon=coupon,
                invoice=invoice,
                customer=customer,
                discount_applied=discount,
            )
        logger.info(f"Coupon {coupon.code} redeemed on invoice {invoice.invoice_number} for {discount}")
        return usage

    @staticmethod
    def save_coupon(form, actor=None) -> Coupon:
        """Persist a validated CouponForm, mapping a duplicate code to a validation error."""
        code = normalize_code(form.cleaned_data.get('code'))
        duplicate = Coupon.objects.filter(code=code)
        if form.instance.pk:
            duplicate = duplicate.exclude(pk=form.instance.pk)
        if duplicate.exists():
            raise ValidationError('Coupon code already exists')
        coupon = form.save(commit=False)
        if not coupon.pk and actor is not None:
            coupon.created_by_id = actor.user_id
        coupon.save()
        return coupon
