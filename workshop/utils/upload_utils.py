"""
Validation of base64 data-URI uploads (visit photos, warranty cards).
"""

import re
from typing import Iterable, Optional, Tuple

from django.conf import settings

IMAGE_DATA_URI = re.compile(r'^data:image/(png|jpeg|jpg|gif|webp);base64,')
BASE64_BODY = re.compile(r'^[A-Za-z0-9+/]*={0,2}$')
HTTP_URL = re.compile(r'^https?://')
DATA_URI = re.compile(r'^data:([^;]+);base64,(.+)$', re.DOTALL)

WARRANTY_CARD_MIME_TYPES = {
    'image/jpeg', 'image/jpg', 'image/png', 'image/gif', 'image/webp', 'application/pdf',
}


def _max_bytes() -> int:
    return settings.WORKSHOP_MAX_IMAGE_MB * 1024 * 1024


def decoded_size(base64_body: str) -> int:
    return (len(base64_body) * 3) // 4


def is_valid_image(image: Optional[str]) -> bool:
    """
    Accept an already-stored http(s) reference unchanged, or a new base64
    PNG/JPEG/GIF/WebP data URI no larger than the per-image ceiling.
    Empty entries are ignored.
    """
    if not image:
        return True
    if not isinstance(image, str):
        return False
    if HTTP_URL.match(image):
        return True
    if not IMAGE_DATA_URI.match(image):
        return False
    body = IMAGE_DATA_URI.sub('', image, count=1)
    if not BASE64_BODY.match(body):
        return False
    return decoded_size(body) <= _max_bytes()


def validate_images(images: Iterable) -> bool:
    return all(is_valid_image(img) for img in images)


def parse_warranty_card(data_uri: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Check a warranty card upload.

    Returns:
        (mime_type, None) when acceptable, (None, error message) otherwise
    """
    if not isinstance(data_uri, str) or not data_uri.startswith('data:'):
        return None, 'Invalid file data format'
    match = DATA_URI.match(data_uri)
    if not match:
        return None, 'Invalid base64 format'
    mime_type, body = match.group(1), match.group(2)
    if mime_type not in WARRANTY_CARD_MIME_TYPES:
        return None, 'Invalid file type. Only images and PDFs are allowed'
    if decoded_size(body) > _max_bytes():
        return None, f'File size exceeds {settings.WORKSHOP_MAX_IMAGE_MB}MB limit'
    return mime_type, None
