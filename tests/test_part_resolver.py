from decimal import Decimal

import pytest

from workshop.models import Product
from workshop.services.part_resolver import PartRef, resolve_part, resolve_parts


class TestPartRef:

    def test_plain_product_id(self):
        ref = PartRef.parse('42')
        assert ref.raw == '42'
        assert ref.product_pk == 42

    def test_prefix_is_stripped_for_product_lookup(self):
        ref = PartRef.parse('product-42')
        assert ref.raw == 'product-42'
        assert ref.product_pk == 42

    def test_catalog_id_has_no_product_key(self):
        ref = PartRef.parse('brake-pads')
        assert ref.product_pk is None

    def test_malformed_prefixed_id_has_no_product_key(self):
        assert PartRef.parse('product-abc').product_pk is None

    def test_integer_input(self):
        assert PartRef.parse(7).product_pk == 7

    def test_none_is_empty(self):
        ref = PartRef.parse(None)
        assert ref.raw == ''
        assert ref.product_pk is None


@pytest.mark.django_db
class TestResolveParts:

    def test_persisted_product_by_bare_and_prefixed_id(self, product):
        resolution = resolve_parts([str(product.pk), f'product-{product.pk}'])
        assert resolution.not_found == []
        assert [p.source for p in resolution.parts] == ['database', 'database']
        assert resolution.parts[1].id == f'product-{product.pk}'
        assert resolution.parts[0].name == 'Engine Oil 5W-30'
        assert resolution.parts[0].stock_qty == 10

    def test_catalog_fallback(self):
        resolution = resolve_parts(['battery'])
        part = resolution.parts[0]
        assert part.source == 'predefined'
        assert part.name == 'Battery'
        assert part.price == Decimal('4500.00')
        assert part.stock_qty is None

    def test_misses_are_reported_not_raised(self, product):
        resolution = resolve_parts(['no-such-part', str(product.pk), '999999', 'product-xyz'])
        assert [p.id for p in resolution.parts] == [str(product.pk)]
        assert resolution.not_found == ['no-such-part', '999999', 'product-xyz']

    def test_input_order_is_kept(self, product):
        resolution = resolve_parts(['oil-filter', str(product.pk), 'coolant'])
        assert [p.id for p in resolution.parts] == ['oil-filter', str(product.pk), 'coolant']

    def test_restricted_queryset_falls_through_to_catalog(self, product):
        product.status = 'discontinued'
        product.save()
        resolution = resolve_parts([str(product.pk)], products=Product.objects.exclude(status='discontinued'))
        assert resolution.parts == []
        assert resolution.not_found == [str(product.pk)]

    def test_as_dict_shapes(self, product):
        resolution = resolve_parts([str(product.pk), 'engine-oil'])
        db_part, catalog_part = [p.as_dict() for p in resolution.parts]
        assert db_part['source'] == 'database'
        assert db_part['brand'] == 'Castrol'
        assert db_part['price'] == 500.0
        assert catalog_part['source'] == 'predefined'
        assert 'stockQty' not in catalog_part

    def test_resolve_single(self, product):
        assert resolve_part(f'product-{product.pk}').source == 'database'
        assert resolve_part('wiper-blade').source == 'predefined'
        assert resolve_part('unknown') is None
