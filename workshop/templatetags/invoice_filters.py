"""
Template filters for rendering invoice documents
"""

from decimal import Decimal, InvalidOperation

from django import template

register = template.Library()


@register.filter
def currency(value):
    """Format an amount as rupees with two decimals and thousands separators."""
    try:
        amount = Decimal(str(value if value is not None else 0))
    except (InvalidOperation, ValueError):
        return value
    return f"₹{amount:,.2f}"


@register.filter
def discount_label(invoice):
    """'Discount (10%)', 'Discount (Flat)' or '' when no discount applies."""
    if not invoice:
        return ''
    discount_type = invoice.get('discountType')
    if discount_type == 'percentage':
        value = Decimal(str(invoice.get('discountValue') or 0)).normalize()
        return f"Discount ({value:f}%)"
    if discount_type == 'fixed':
        return "Discount (Flat)"
    return ''
