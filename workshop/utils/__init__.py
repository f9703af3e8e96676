import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from workshop.exceptions import ValidationError


@dataclass(frozen=True)
class Actor:
    """Who is performing a mutating call, as supplied by the session."""
    user_id: Optional[int]
    user_name: Optional[str]
    user_role: Optional[str]


def get_user_role(user) -> Optional[str]:
    if user is None or not getattr(user, 'is_authenticated', False):
        return None
    if user.is_superuser:
        return 'Admin'
    group = user.groups.order_by('name').first()
    return group.name if group else None


def get_actor(request) -> Actor:
    user = getattr(request, 'user', None)
    if user is None or not user.is_authenticated:
        return Actor(None, None, None)
    return Actor(user.id, user.get_full_name() or user.get_username(), get_user_role(user))


def get_client_ip(request) -> Optional[str]:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def parse_json_body(request) -> dict:
    """Decode a JSON object body; an empty body is an empty dict."""
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise ValidationError('Request body must be valid JSON')
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def parse_id(value, label) -> Optional[int]:
    """Coerce a record id from JSON or a query string; blank means no id."""
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValidationError(f'{label} must be a numeric id')
    text = str(value).strip()
    if not text.isdigit() or int(text) == 0:
        raise ValidationError(f'{label} must be a numeric id')
    return int(text)


def parse_amount(value, label, allow_negative=False) -> Decimal:
    """Coerce a money or rate value; missing means zero."""
    if isinstance(value, bool):
        raise ValidationError(f'{label} must be a number')
    try:
        amount = Decimal(str(value if value is not None and value != '' else 0))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{label} must be a number')
    if not amount.is_finite():
        raise ValidationError(f'{label} must be a number')
    if amount < 0 and not allow_negative:
        raise ValidationError(f'{label} cannot be negative')
    return amount
