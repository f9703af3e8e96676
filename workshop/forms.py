from decimal import Decimal

from django import forms
from django.forms.models import model_to_dict
from django.utils import timezone

from .models import Coupon, Invoice, InvoicePayment


def payload_to_form_data(payload, key_map):
    """Rename camelCase JSON keys to form field names, keeping unknown keys as-is."""
    return {key_map.get(key, key): value for key, value in (payload or {}).items()}


def first_form_error(form) -> str:
    for field, errors in form.errors.items():
        label = field if field != '__all__' else ''
        return f"{label}: {errors[0]}" if label else errors[0]
    return 'Invalid data'


class CouponForm(forms.ModelForm):
    KEY_MAP = {
        'discountType': 'discount_type',
        'discountValue': 'discount_value',
        'maxDiscountAmount': 'max_discount_amount',
        'minPurchaseAmount': 'min_purchase_amount',
        'usageLimit': 'usage_limit',
        'usagePerCustomer': 'usage_per_customer',
        'validFrom': 'valid_from',
        'validUntil': 'valid_until',
        'isActive': 'is_active',
    }

    class Meta:
        model = Coupon
        fields = [
            'code', 'description', 'discount_type', 'discount_value', 'max_discount_amount',
            'min_purchase_amount', 'usage_limit', 'usage_per_customer', 'valid_from',
            'valid_until', 'is_active',
        ]

    @classmethod
    def from_payload(cls, payload, instance=None):
        """Bind a JSON payload; on update, omitted fields keep their stored values."""
        data = model_to_dict(instance, fields=cls.Meta.fields) if instance is not None else {}
        if instance is None:
            data.setdefault('is_active', True)
            data.setdefault('usage_per_customer', 1)
            data.setdefault('min_purchase_amount', 0)
            data.setdefault('valid_from', timezone.now())
        data.update(payload_to_form_data(payload, cls.KEY_MAP))
        return cls(data=data, instance=instance)

    def clean_code(self):
        code = (self.cleaned_data.get('code') or '').strip().upper()
        if not code:
            raise forms.ValidationError('Coupon code is required')
        return code

    def clean(self):
        cleaned = super().clean()
        discount_type = cleaned.get('discount_type')
        value = cleaned.get('discount_value')
        if value is not None and value <= 0:
            self.add_error('discount_value', 'Discount value must be greater than zero')
        if discount_type == 'percentage' and value is not None and value > 100:
            self.add_error('discount_value', 'Percentage discount cannot exceed 100')
        valid_from = cleaned.get('valid_from')
        valid_until = cleaned.get('valid_until')
        if valid_from and valid_until and valid_until < valid_from:
            self.add_error('valid_until', 'Valid until must be after valid from')
        return cleaned


class InvoicePaymentForm(forms.ModelForm):
    KEY_MAP = {
        'paymentMode': 'payment_mode',
        'transactionId': 'transaction_id',
    }

    class Meta:
        model = InvoicePayment
        fields = ['amount', 'payment_mode', 'transaction_id', 'notes']

    @classmethod
    def from_payload(cls, payload):
        return cls(data=payload_to_form_data(payload, cls.KEY_MAP))

    def clean_amount(self):
        amount = self.cleaned_data.get('amount')
        if amount is None or amount <= Decimal('0'):
            raise forms.ValidationError('Payment amount must be greater than zero')
        return amount


class PaymentStatusForm(forms.Form):
    KEY_MAP = {
        'paymentStatus': 'payment_status',
        'paymentMethod': 'payment_method',
    }

    payment_status = forms.ChoiceField(choices=[('paid', 'Paid'), ('unpaid', 'Unpaid')])
    payment_method = forms.ChoiceField(choices=Invoice.PAYMENT_METHOD_CHOICES, required=False)

    @classmethod
    def from_payload(cls, payload):
        return cls(data=payload_to_form_data(payload, cls.KEY_MAP))


class InvoiceRejectForm(forms.Form):
    reason = forms.CharField(required=False, max_length=2000)

    @classmethod
    def from_payload(cls, payload):
        return cls(data=payload or {})
