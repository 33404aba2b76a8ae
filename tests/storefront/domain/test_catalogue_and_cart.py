"""Tests for the Product and Cart aggregates."""

import pytest
from protean.exceptions import ValidationError
from storefront.cart.cart import Cart
from storefront.cart.events import CartCleared, CartLineAdded
from storefront.catalogue.events import DiscountAttached, DiscountDetached
from storefront.catalogue.product import Category, Product


class TestProduct:
    def test_register_product(self):
        product = Product.register(name="Silk Saree", category="Saree", base_price=2500.0)
        assert product.currency == "INR"
        assert product.current_discount_id is None

    @pytest.mark.parametrize("category", [category.value for category in Category])
    def test_every_listed_category_accepted(self, category):
        assert Product.register(name="Item", category=category, base_price=10.0).category == category

    def test_unlisted_category_rejected(self):
        with pytest.raises(ValidationError) as exc:
            Product.register(name="Item", category="Kids", base_price=10.0)
        assert "category" in exc.value.messages

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            Product.register(name="Item", category="Men", base_price=-1.0)

    def test_attach_and_clear_discount(self):
        product = Product.register(name="Item", category="Men", base_price=10.0)
        product.attach_discount("disc-001")
        assert product.current_discount_id == "disc-001"
        assert isinstance(product._events[-1], DiscountAttached)

        product.clear_discount("expired")
        assert product.current_discount_id is None
        assert isinstance(product._events[-1], DiscountDetached)

    def test_clear_without_discount_is_noop(self):
        product = Product.register(name="Item", category="Men", base_price=10.0)
        product._events.clear()
        product.clear_discount("expired")
        assert product._events == []


class TestCart:
    def test_add_line(self):
        cart = Cart.open("user-001")
        cart.add_line("prod-001", "M", 2)
        assert cart.as_items() == [{"product_id": "prod-001", "size": "M", "quantity": 2}]
        assert isinstance(cart._events[-1], CartLineAdded)

    def test_same_product_and_size_merges(self):
        cart = Cart.open("user-001")
        first = cart.add_line("prod-001", "M", 1)
        second = cart.add_line("prod-001", "M", 2)
        assert first == second
        assert cart.as_items()[0]["quantity"] == 3

    def test_different_size_is_a_new_line(self):
        cart = Cart.open("user-001")
        cart.add_line("prod-001", "M", 1)
        cart.add_line("prod-001", "L", 1)
        assert len(cart.lines) == 2

    def test_update_line(self):
        cart = Cart.open("user-001")
        line_id = cart.add_line("prod-001", "M", 1)
        cart.update_line(line_id, 4)
        assert cart.as_items()[0]["quantity"] == 4

    def test_update_unknown_line_rejected(self):
        cart = Cart.open("user-001")
        with pytest.raises(ValidationError):
            cart.update_line("missing", 2)

    def test_remove_line(self):
        cart = Cart.open("user-001")
        line_id = cart.add_line("prod-001", "M", 1)
        cart.remove_line(line_id)
        assert cart.as_items() == []

    def test_unknown_size_rejected(self):
        cart = Cart.open("user-001")
        with pytest.raises(ValidationError):
            cart.add_line("prod-001", "XS", 1)

    def test_clear(self):
        cart = Cart.open("user-001")
        cart.add_line("prod-001", "M", 1)
        cart.add_line("prod-002", "S", 1)
        cart.clear()
        assert len(cart.lines) == 0
        assert isinstance(cart._events[-1], CartCleared)
