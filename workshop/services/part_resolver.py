"""
Resolve part identifiers across persisted products and the static catalog.

A part identifier is either a persisted product id, optionally carrying the
legacy "product-" prefix, or a predefined catalog id. Every ingress point
normalizes through PartRef.parse so prefix handling lives in one place.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from workshop.catalog import get_part_by_id
from workshop.models import Product

logger = logging.getLogger(__name__)

PRODUCT_PREFIX = 'product-'


@dataclass(frozen=True)
class PartRef:
    """
    A normalized part identifier.

    raw:        the identifier exactly as supplied (catalog lookups use this)
    product_pk: the persisted product key after stripping the prefix, or None
                when the remainder is not a valid key
    """
    raw: str
    product_pk: Optional[int] = None

    @classmethod
    def parse(cls, identifier) -> 'PartRef':
        raw = str(identifier).strip() if identifier is not None else ''
        stripped = raw[len(PRODUCT_PREFIX):] if raw.startswith(PRODUCT_PREFIX) else raw
        product_pk = int(stripped) if stripped.isdigit() else None
        return cls(raw=raw, product_pk=product_pk)


@dataclass
class ResolvedPart:
    id: str
    name: str
    price: Decimal
    source: str
    category: Optional[str] = None
    brand: Optional[str] = None
    warranty: Optional[str] = None
    stock_qty: Optional[int] = None
    product: Optional[Product] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_product(cls, product: Product, identifier: str) -> 'ResolvedPart':
        return cls(
            id=identifier,
            name=product.name,
            price=product.selling_price,
            source='database',
            category=product.category,
            brand=product.brand,
            warranty=product.warranty,
            stock_qty=product.stock_qty,
            product=product,
        )

    @classmethod
    def from_catalog(cls, part: dict) -> 'ResolvedPart':
        return cls(
            id=part['id'],
            name=part['name'],
            price=part['price'],
            source='predefined',
            category=part.get('category'),
        )

    def as_dict(self) -> dict:
        data = {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'price': float(self.price),
            'warranty': self.warranty,
            'source': self.source,
        }
        if self.source == 'database':
            data['brand'] = self.brand
            data['stockQty'] = self.stock_qty
        return data


@dataclass
class Resolution:
    parts: List[ResolvedPart]
    not_found: List[str]


def _load_products(refs: Iterable[PartRef], products=None, product_limit=None) -> Dict[int, Product]:
    pks = list(dict.fromkeys(ref.product_pk for ref in refs if ref.product_pk is not None))
    if not pks:
        return {}
    qs = (products if products is not None else Product.objects.all()).filter(pk__in=pks)
    if product_limit is not None:
        qs = qs[:product_limit]
    return {p.pk: p for p in qs}


def resolve_parts(identifiers: Iterable, products=None, product_limit: Optional[int] = None) -> Resolution:
    """
    Resolve a batch of identifiers.

    Args:
        identifiers: part identifier strings, in caller order
        products: optional Product queryset restricting persisted matches
        product_limit: optional cap on the number of persisted matches

    Returns:
        Resolution with resolved parts in input order and the identifiers
        that matched neither source. A miss never raises.
    """
    refs = [PartRef.parse(identifier) for identifier in identifiers]
    by_pk = _load_products(refs, products=products, product_limit=product_limit)

    parts: List[ResolvedPart] = []
    not_found: List[str] = []
    for ref in refs:
        product = by_pk.get(ref.product_pk) if ref.product_pk is not None else None
        if product is not None:
            parts.append(ResolvedPart.from_product(product, ref.raw))
            continue
        catalog_part = get_part_by_id(ref.raw)
        if catalog_part:
            parts.append(ResolvedPart.from_catalog(catalog_part))
        else:
            not_found.append(ref.raw)

    if not_found:
        logger.info(f"Unresolved part identifiers: {not_found}")
    return Resolution(parts=parts, not_found=not_found)


def resolve_part(identifier) -> Optional[ResolvedPart]:
    resolution = resolve_parts([identifier])
    return resolution.parts[0] if resolution.parts else None
