"""Application tests for discount management and price resolution."""

from datetime import timedelta

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError
from storefront.catalogue.product import Product
from storefront.discount.discount import Discount
from storefront.discount.resolver import DiscountResolver
from storefront.errors import DiscountConflict
from storefront.utils.clock import utcnow


def _product(product_id):
    return current_domain.repository_for(Product).get(product_id)


def _discount(discount_id):
    return current_domain.repository_for(Discount).get(discount_id)


@pytest.fixture()
def resolver(clock):
    return DiscountResolver(clock=clock)


def _add(resolver, product_id, value=20.0, discount_type="percentage", starts_in=-1, lasts=2):
    now = utcnow()
    return resolver.add(
        product_id=product_id,
        discount_type=discount_type,
        value=value,
        start_date=now + timedelta(days=starts_in),
        end_date=now + timedelta(days=starts_in + lasts),
    )


class TestAddDiscount:
    def test_add_attaches_to_product(self, resolver, register_product):
        product_id = register_product()
        discount_id = _add(resolver, product_id)
        assert _product(product_id).current_discount_id == discount_id
        assert _discount(discount_id).active is True

    def test_second_live_discount_conflicts(self, resolver, register_product):
        product_id = register_product()
        first = _add(resolver, product_id)
        with pytest.raises(DiscountConflict):
            _add(resolver, product_id, value=30.0)
        assert _product(product_id).current_discount_id == first

    def test_lapsed_discount_is_replaced(self, resolver, register_product):
        product_id = register_product()
        stale = _add(resolver, product_id, starts_in=-5, lasts=1)
        fresh = _add(resolver, product_id)
        assert _discount(stale).active is False
        assert _product(product_id).current_discount_id == fresh

    def test_unknown_product_rejected(self, resolver):
        with pytest.raises(ObjectNotFoundError):
            _add(resolver, "missing")


class TestEffectivePrice:
    def test_base_price_without_discount(self, resolver, register_product):
        product_id = register_product(base_price=1000.0)
        assert resolver.effective_price(_product(product_id)) == 1000.0

    def test_live_percentage_discount(self, resolver, register_product):
        product_id = register_product(base_price=1000.0)
        _add(resolver, product_id, value=20.0)
        assert resolver.effective_price(_product(product_id)) == 800.0

    def test_live_fixed_discount(self, resolver, register_product):
        product_id = register_product(base_price=1000.0)
        _add(resolver, product_id, discount_type="fixed", value=250.0)
        assert resolver.effective_price(_product(product_id)) == 750.0

    def test_expired_discount_self_heals_to_base_price(self, resolver, register_product, clock):
        product_id = register_product(base_price=1000.0)
        _add(resolver, product_id, value=20.0, starts_in=-1, lasts=2)
        assert resolver.effective_price(_product(product_id)) == 800.0

        clock.advance(days=3)
        assert resolver.effective_price(_product(product_id)) == 1000.0
        assert _product(product_id).current_discount_id is None

    def test_dangling_reference_is_cleared(self, resolver, register_product):
        product_id = register_product(base_price=1000.0)
        product = _product(product_id)
        product.attach_discount("vanished")
        current_domain.repository_for(Product).add(product)

        assert resolver.effective_price(_product(product_id)) == 1000.0
        assert _product(product_id).current_discount_id is None

    def test_future_discount_not_applied_yet(self, resolver, register_product, clock):
        product_id = register_product(base_price=1000.0)
        discount_id = _add(resolver, product_id, value=50.0, starts_in=1, lasts=2)

        assert resolver.effective_price(_product(product_id)) == 1000.0
        assert _product(product_id).current_discount_id == discount_id

        clock.advance(days=1, hours=1)
        assert resolver.effective_price(_product(product_id)) == 500.0


class TestSweepExpired:
    def test_sweep_deactivates_and_detaches(self, resolver, register_product, clock):
        product_id = register_product()
        discount_id = _add(resolver, product_id, starts_in=-1, lasts=2)

        clock.advance(days=2)
        assert resolver.sweep_expired() == 1
        assert _discount(discount_id).active is False
        assert _discount(discount_id).deactivation_reason == "expired"
        assert _product(product_id).current_discount_id is None

    def test_sweep_leaves_live_discounts(self, resolver, register_product):
        product_id = register_product()
        discount_id = _add(resolver, product_id)
        assert resolver.sweep_expired() == 0
        assert _discount(discount_id).active is True

    def test_sweep_is_idempotent(self, resolver, register_product, clock):
        product_id = register_product()
        _add(resolver, product_id, starts_in=-1, lasts=2)
        clock.advance(days=2)
        assert resolver.sweep_expired() == 1
        assert resolver.sweep_expired() == 0


class TestRemoveAndList:
    def test_remove_deactivates_and_detaches(self, resolver, register_product):
        product_id = register_product()
        discount_id = _add(resolver, product_id)
        assert resolver.remove(product_id) == 1
        assert _discount(discount_id).active is False
        assert _product(product_id).current_discount_id is None

    def test_remove_without_discount(self, resolver, register_product):
        assert resolver.remove(register_product()) == 0

    def test_list_active_includes_effective_price(self, resolver, register_product):
        product_id = register_product(name="Lehenga", category="Lehenga", base_price=5000.0)
        _add(resolver, product_id, value=10.0)

        listing = resolver.list_active()
        assert len(listing) == 1
        assert listing[0]["product_name"] == "Lehenga"
        assert listing[0]["effective_price"] == 4500.0

    def test_list_active_skips_expired(self, resolver, register_product, clock):
        _add(resolver, register_product(), starts_in=-1, lasts=2)
        clock.advance(days=3)
        assert resolver.list_active() == []
