"""Tests for the tracking cache in front of the carrier."""

from datetime import UTC, datetime, timedelta

import pytest
from storefront.carrier.fake_adapter import FakeCarrier
from storefront.carrier.port import tracking_status_of
from storefront.carrier.tracking import TrackingCache
from storefront.errors import CarrierError


class Clock:
    def __init__(self):
        self.now = datetime(2026, 11, 1, tzinfo=UTC)

    def __call__(self):
        return self.now


@pytest.fixture()
def clock():
    return Clock()


@pytest.fixture()
def carrier():
    return FakeCarrier()


@pytest.fixture()
def cache(carrier, clock):
    return TrackingCache(carrier, ttl=timedelta(minutes=5), clock=clock)


class TestTrackingCache:
    def test_first_lookup_hits_carrier(self, cache, carrier):
        payload = cache.get("AWB1")
        assert tracking_status_of(payload) == "In Transit"
        assert carrier.tracking_requests == ["AWB1"]

    def test_repeat_within_ttl_served_from_cache(self, cache, carrier, clock):
        first = cache.get("AWB1")
        clock.now += timedelta(minutes=4, seconds=59)
        assert cache.get("AWB1") is first
        assert carrier.tracking_requests == ["AWB1"]

    def test_expired_entry_refetched_on_next_read(self, cache, carrier, clock):
        cache.get("AWB1")
        clock.now += timedelta(minutes=5)
        cache.get("AWB1")
        assert carrier.tracking_requests == ["AWB1", "AWB1"]

    def test_codes_cached_independently(self, cache, carrier):
        cache.get("AWB1")
        cache.get("AWB2")
        cache.get("AWB1")
        assert carrier.tracking_requests == ["AWB1", "AWB2"]
        assert len(cache) == 2

    def test_expired_entries_stay_until_read(self, cache, clock):
        cache.get("AWB1")
        clock.now += timedelta(hours=1)
        assert len(cache) == 1

    def test_invalidate(self, cache, carrier):
        cache.get("AWB1")
        cache.invalidate("AWB1")
        cache.get("AWB1")
        assert len(carrier.tracking_requests) == 2

    def test_failures_not_cached(self, cache, carrier):
        carrier.configure(should_succeed=False)
        with pytest.raises(CarrierError):
            cache.get("AWB1")
        assert len(cache) == 0

        carrier.configure(should_succeed=True)
        cache.get("AWB1")
        assert carrier.tracking_requests == ["AWB1"]

    def test_bounded_cache_drops_least_recently_used(self, carrier, clock):
        cache = TrackingCache(carrier, ttl=timedelta(minutes=5), clock=clock, max_entries=2)
        cache.get("AWB1")
        cache.get("AWB2")
        cache.get("AWB1")
        cache.get("AWB3")

        assert len(cache) == 2
        cache.get("AWB1")
        cache.get("AWB2")
        assert carrier.tracking_requests == ["AWB1", "AWB2", "AWB3", "AWB2"]


class TestTrackingStatus:
    def test_status_from_shipment_track(self):
        payload = {"tracking_data": {"shipment_track": [{"current_status": "Delivered"}]}}
        assert tracking_status_of(payload) == "Delivered"

    def test_status_from_flat_payload(self):
        assert tracking_status_of({"current_status": "Picked Up"}) == "Picked Up"

    def test_missing_status(self):
        assert tracking_status_of({"tracking_data": {}}) is None
