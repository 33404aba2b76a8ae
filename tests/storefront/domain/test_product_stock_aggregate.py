"""Tests for the ProductStock aggregate."""

import pytest
from protean.exceptions import ValidationError
from storefront.errors import InsufficientStock
from storefront.stock.events import ProductSoldOut, StockCommitted, StockInitialized, StockRestored
from storefront.stock.stock import SIZE_ORDER, ProductStock


def _make_stock(**quantities):
    return ProductStock.create(product_id="prod-001", quantities=quantities)


class TestStockCreation:
    def test_every_size_is_present(self):
        stock = _make_stock(M=5)
        assert list(stock.levels().keys()) == SIZE_ORDER

    def test_unlisted_sizes_start_at_zero(self):
        stock = _make_stock(M=5)
        assert stock.quantity_of("S") == 0
        assert stock.quantity_of("M") == 5

    def test_in_stock_when_any_size_positive(self):
        assert _make_stock(XL=1).in_stock is True

    def test_out_of_stock_when_all_zero(self):
        assert _make_stock().in_stock is False

    def test_unknown_size_rejected(self):
        with pytest.raises(ValidationError) as exc:
            _make_stock(XS=3)
        assert "size" in exc.value.messages

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValidationError):
            _make_stock(M=-1)

    def test_raises_initialized_event(self):
        stock = _make_stock(M=5)
        assert isinstance(stock._events[-1], StockInitialized)


class TestStockCommit:
    def test_commit_decrements_size(self):
        stock = _make_stock(M=5)
        stock.commit("M", 2)
        assert stock.quantity_of("M") == 3

    def test_commit_leaves_other_sizes_alone(self):
        stock = _make_stock(M=5, L=4)
        stock.commit("M", 2)
        assert stock.quantity_of("L") == 4

    def test_commit_more_than_available_raises(self):
        stock = _make_stock(M=2)
        with pytest.raises(InsufficientStock) as exc:
            stock.commit("M", 3)
        assert exc.value.requested == 3
        assert exc.value.available == 2

    def test_failed_commit_leaves_quantity_untouched(self):
        stock = _make_stock(M=2)
        with pytest.raises(InsufficientStock):
            stock.commit("M", 3)
        assert stock.quantity_of("M") == 2

    def test_commit_exact_quantity_reaches_zero(self):
        stock = _make_stock(M=2)
        stock.commit("M", 2)
        assert stock.quantity_of("M") == 0

    def test_in_stock_cleared_when_last_unit_taken(self):
        stock = _make_stock(M=1)
        stock.commit("M", 1)
        assert stock.in_stock is False

    def test_sold_out_event_raised_on_last_unit(self):
        stock = _make_stock(M=1)
        stock._events.clear()
        stock.commit("M", 1)
        assert any(isinstance(event, StockCommitted) for event in stock._events)
        assert any(isinstance(event, ProductSoldOut) for event in stock._events)

    def test_zero_quantity_commit_rejected(self):
        stock = _make_stock(M=2)
        with pytest.raises(ValidationError):
            stock.commit("M", 0)


class TestStockRestore:
    def test_restore_adds_back(self):
        stock = _make_stock(M=1)
        stock.commit("M", 1)
        stock.restore("M", 1)
        assert stock.quantity_of("M") == 1
        assert stock.in_stock is True

    def test_restore_raises_event(self):
        stock = _make_stock(M=1)
        stock._events.clear()
        stock.restore("M", 2)
        assert isinstance(stock._events[-1], StockRestored)
        assert stock._events[-1].available == 3



class TestSalesFigures:
    def test_new_stock_has_no_sales(self):
        stock = _make_stock(M=5)
        assert stock.sales()["total_sold"] == 0
        assert stock.sales()["last_sold_at"] is None

    def test_commit_adds_units_and_revenue(self):
        stock = _make_stock(M=5)
        stock.commit("M", 2, unit_price=1250.0)
        stock.commit("M", 1, unit_price=999.99)
        assert stock.total_sold == 3
        assert stock.revenue == 3499.99
        assert stock.last_sold_at == stock.updated_at

    def test_commit_event_carries_unit_price(self):
        stock = _make_stock(M=5)
        stock.commit("M", 1, unit_price=450.0)
        committed = [event for event in stock._events if isinstance(event, StockCommitted)]
        assert committed[-1].unit_price == 450.0

    def test_failed_commit_records_no_sale(self):
        stock = _make_stock(M=1)
        with pytest.raises(InsufficientStock):
            stock.commit("M", 2, unit_price=100.0)
        assert stock.total_sold == 0
        assert stock.revenue == 0.0

    def test_restore_takes_sale_back(self):
        stock = _make_stock(M=5)
        stock.commit("M", 2, unit_price=700.0)
        stock.restore("M", 2, unit_price=700.0)
        assert stock.total_sold == 0
        assert stock.revenue == 0.0

    def test_sales_never_drop_below_zero(self):
        stock = _make_stock(M=0)
        stock.restore("M", 3, unit_price=100.0)
        assert stock.total_sold == 0
        assert stock.revenue == 0.0

class TestSetQuantity:
    def test_overwrites_quantity(self):
        stock = _make_stock(M=1)
        stock.set_quantity("M", 10)
        assert stock.quantity_of("M") == 10

    def test_setting_all_to_zero_clears_in_stock(self):
        stock = _make_stock(M=1)
        stock.set_quantity("M", 0)
        assert stock.in_stock is False

    def test_rejects_unknown_size(self):
        stock = _make_stock(M=1)
        with pytest.raises(ValidationError):
            stock.set_quantity("XXXL", 1)
