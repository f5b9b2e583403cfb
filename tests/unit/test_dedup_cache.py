"""Tests for the expiring key cache."""

import pytest

from otplink.services.otp import ExpiringKeyCache


def test_key_present_until_ttl(clock):
    cache = ExpiringKeyCache(300, clock=clock)
    cache.add("a")

    clock.advance(299)
    assert cache.contains("a")

    clock.advance(1)
    assert not cache.contains("a")


def test_sliding_window_not_bucketed(clock):
    """A key added just before a 5-minute boundary still lives a full TTL."""
    clock.now = 299.9
    cache = ExpiringKeyCache(300, clock=clock)
    cache.add("a")

    clock.now = 300.1
    assert "a" in cache


def test_add_refreshes_expiry(clock):
    cache = ExpiringKeyCache(10, clock=clock)
    cache.add("a")
    clock.advance(8)
    cache.add("a")
    clock.advance(8)
    assert cache.contains("a")


def test_purge_expired_with_explicit_now():
    cache = ExpiringKeyCache(10, clock=lambda: 0.0)
    cache.add("old", now=0.0)
    cache.add("new", now=5.0)

    assert cache.purge_expired(now=10.0) == 1
    assert len(cache) == 1
    assert cache.contains("new", now=10.0)


def test_discard_and_clear(clock):
    cache = ExpiringKeyCache(10, clock=clock)
    cache.add("a")
    cache.add("b")

    cache.discard("a")
    cache.discard("missing")
    assert "a" not in cache
    assert "b" in cache

    cache.clear()
    assert len(cache) == 0


def test_non_string_membership(clock):
    cache = ExpiringKeyCache(10, clock=clock)
    assert 42 not in cache


def test_ttl_must_be_positive():
    with pytest.raises(ValueError):
        ExpiringKeyCache(0)
