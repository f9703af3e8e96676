from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from workshop.exceptions import NotFoundError, ValidationError
from workshop.forms import CouponForm
from workshop.models import Coupon, CouponUsage, Customer
from workshop.services.coupon_service import CouponService
from workshop.services.invoice_service import InvoiceService


def make_coupon(**overrides):
    fields = {
        'code': 'save10',
        'discount_type': 'percentage',
        'discount_value': Decimal('10'),
        'usage_per_customer': 1,
    }
    fields.update(overrides)
    return Coupon.objects.create(**fields)


@pytest.mark.django_db
class TestCouponRules:

    def test_code_is_upper_cased(self):
        assert make_coupon().code == 'SAVE10'

    def test_valid(self, customer):
        assert make_coupon().is_valid(customer.pk, 1000).valid

    def test_inactive(self, customer):
        check = make_coupon(is_active=False).is_valid(customer.pk, 1000)
        assert check == (False, 'Coupon is not active')

    def test_not_yet_valid(self, customer):
        check = make_coupon(valid_from=timezone.now() + timedelta(days=1)).is_valid(customer.pk, 1000)
        assert check.reason == 'Coupon is not yet valid'

    def test_expired(self, customer):
        check = make_coupon(valid_until=timezone.now() - timedelta(minutes=1)).is_valid(customer.pk, 1000)
        assert check.reason == 'Coupon has expired'

    def test_global_cap(self, customer):
        check = make_coupon(usage_limit=5, used_count=5).is_valid(customer.pk, 1000)
        assert check.reason == 'Coupon usage limit reached'

    def test_minimum_purchase(self, customer):
        check = make_coupon(min_purchase_amount=Decimal('2000')).is_valid(customer.pk, 1999)
        assert not check.valid
        assert 'Minimum purchase amount' in check.reason

    def test_per_customer_cap_counts_ledger(self, customer):
        coupon = make_coupon(usage_per_customer=2)
        other = Customer.objects.create(full_name='Meera', mobile_number='9000000001')
        CouponUsage.objects.create(coupon=coupon, customer=customer, discount_applied=Decimal('10'))
        assert coupon.is_valid(customer.pk, 1000).valid
        CouponUsage.objects.create(coupon=coupon, customer=customer, discount_applied=Decimal('10'))
        assert coupon.is_valid(customer.pk, 1000).reason == 'Coupon usage limit reached for this customer'
        assert coupon.is_valid(other.pk, 1000).valid


@pytest.mark.django_db
class TestCalculateDiscount:

    def test_percentage(self):
        assert make_coupon().calculate_discount(Decimal('1234.50')) == Decimal('123.45')

    def test_percentage_capped(self):
        coupon = make_coupon(max_discount_amount=Decimal('50'))
        assert coupon.calculate_discount(1000) == Decimal('50.00')

    def test_fixed(self):
        coupon = make_coupon(code='FLAT200', discount_type='fixed', discount_value=Decimal('200'))
        assert coupon.calculate_discount(1000) == Decimal('200.00')

    @pytest.mark.parametrize('amount', [0, 1, 150, 199.99])
    def test_never_exceeds_purchase(self, amount):
        coupon = make_coupon(code='FLAT200', discount_type='fixed', discount_value=Decimal('200'))
        discount = coupon.calculate_discount(amount)
        assert Decimal('0') <= discount <= Decimal(str(amount))

    def test_hundred_percent_is_whole_amount(self):
        coupon = make_coupon(discount_value=Decimal('100'))
        assert coupon.calculate_discount(Decimal('480')) == Decimal('480.00')


@pytest.mark.django_db
class TestCouponService:

    def test_validate_returns_discount(self, customer):
        make_coupon()
        coupon, discount = CouponService.validate('save10', customer.pk, 500)
        assert coupon.code == 'SAVE10'
        assert discount == Decimal('50.00')

    def test_validate_unknown(self, customer):
        with pytest.raises(NotFoundError):
            CouponService.validate('NOPE', customer.pk, 500)

    def test_validate_reason(self, customer):
        make_coupon(is_active=False)
        with pytest.raises(ValidationError) as exc:
            CouponService.validate('SAVE10', customer.pk, 500)
        assert exc.value.message == 'Coupon is not active'

    def test_redemption_up_to_cap_then_rejected(self, completed_visit, warranty_line, actor):
        coupon = make_coupon(usage_per_customer=2)
        payload = {'items': [warranty_line], 'couponCode': 'save10'}

        first = InvoiceService.create_from_service_visit(completed_visit.pk, payload, actor=actor)
        second = InvoiceService.create_from_service_visit(completed_visit.pk, payload, actor=actor)
        third = InvoiceService.create_from_service_visit(completed_visit.pk, payload, actor=actor)

        assert first.coupon_code == 'SAVE10'
        assert second.discount_amount == Decimal('50.00')
        assert third.coupon_id is None
        assert third.coupon_code is None
        assert third.discount_amount == Decimal('0')
        assert third.total_amount == Decimal('500')

        coupon.refresh_from_db()
        assert coupon.used_count == 2
        assert list(coupon.usage_history.values_list('invoice_id', flat=True)) == [first.pk, second.pk]

        with pytest.raises(ValidationError) as exc:
            CouponService.validate('SAVE10', completed_visit.customer_id, 500)
        assert exc.value.message == 'Coupon usage limit reached for this customer'


@pytest.mark.django_db
class TestCouponForm:

    def test_create_payload(self, actor):
        form = CouponForm.from_payload({
            'code': 'monsoon',
            'discountType': 'fixed',
            'discountValue': '150',
            'minPurchaseAmount': '1000',
        })
        assert form.is_valid(), form.errors
        coupon = CouponService.save_coupon(form, actor=actor)
        assert coupon.code == 'MONSOON'
        assert coupon.is_active
        assert coupon.usage_per_customer == 1
        assert coupon.created_by_id == actor.user_id

    def test_duplicate_code_rejected(self):
        make_coupon()
        form = CouponForm.from_payload({'code': 'Save10', 'discountType': 'fixed', 'discountValue': '5'})
        assert not form.is_valid()

    def test_percentage_over_hundred(self):
        form = CouponForm.from_payload({'code': 'BIG', 'discountType': 'percentage', 'discountValue': '150'})
        assert not form.is_valid()
        assert 'discount_value' in form.errors

    def test_partial_update_keeps_other_fields(self):
        coupon = make_coupon(usage_limit=10, description='Ten percent off')
        form = CouponForm.from_payload({'isActive': False}, instance=coupon)
        assert form.is_valid(), form.errors
        updated = CouponService.save_coupon(form)
        assert updated.is_active is False
        assert updated.usage_limit == 10
        assert updated.description == 'Ten percent off'
        assert updated.discount_value == Decimal('10')
