import threading
from datetime import timedelta

import pytest

from app.services.cache import TimeWindowedCounterCache


def test_increment_returns_post_increment_value(clock):
    cache = TimeWindowedCounterCache(ttl=timedelta(hours=1), clock=clock)
    assert cache.increment("a") == 1
    assert cache.increment("a") == 2
    assert cache.peek("a") == 2
    assert cache.peek("missing") == 0
    assert cache.peek("missing", default=-1) == -1


def test_decrement_never_goes_below_zero(clock):
    cache = TimeWindowedCounterCache(ttl=timedelta(hours=1), clock=clock)
    cache.increment("a")
    assert cache.decrement("a") == 0
    assert cache.decrement("a") == 0
    assert cache.decrement("fresh") == 0


def test_entry_expires_after_last_write(clock):
    cache = TimeWindowedCounterCache(ttl=timedelta(hours=1), clock=clock)
    cache.increment("a")
    clock.advance(minutes=59)
    assert cache.peek("a") == 1

    clock.advance(minutes=1)
    assert cache.peek("a") == 0
    assert cache.increment("a") == 1


def test_write_extends_but_read_does_not(clock):
    cache = TimeWindowedCounterCache(ttl=timedelta(hours=1), clock=clock)
    cache.increment("a")
    clock.advance(minutes=40)
    cache.increment("a")
    clock.advance(minutes=40)
    assert cache.peek("a") == 2

    clock.advance(minutes=19)
    cache.peek("a")
    clock.advance(minutes=1)
    assert cache.peek("a") == 0


def test_evicts_least_recently_written_at_capacity(clock):
    cache = TimeWindowedCounterCache(ttl=timedelta(hours=1), max_entries=2, clock=clock)
    cache.increment("a")
    cache.increment("b")
    cache.increment("a")
    cache.increment("c")

    assert len(cache) == 2
    assert cache.peek("b") == 0
    assert cache.peek("a") == 2
    assert cache.peek("c") == 1


def test_expired_entries_are_purged_before_evicting(clock):
    cache = TimeWindowedCounterCache(ttl=timedelta(hours=1), max_entries=2, clock=clock)
    cache.increment("old")
    clock.advance(minutes=30)
    cache.increment("live")
    clock.advance(minutes=31)

    cache.increment("new")
    assert cache.peek("live") == 1
    assert cache.peek("new") == 1
    assert len(cache) == 2


def test_invalidate_and_clear(clock):
    cache = TimeWindowedCounterCache(ttl=timedelta(hours=1), clock=clock)
    cache.increment("a")
    cache.increment("b")
    cache.invalidate("a")
    cache.invalidate("never-set")
    assert cache.peek("a") == 0
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0


@pytest.mark.parametrize("ttl, max_entries", [
    (timedelta(0), 10),
    (timedelta(seconds=-1), 10),
    (timedelta(hours=1), 0),
])
def test_rejects_invalid_configuration(ttl, max_entries):
    with pytest.raises(ValueError):
        TimeWindowedCounterCache(ttl=ttl, max_entries=max_entries)


def test_concurrent_increments_are_not_lost():
    cache = TimeWindowedCounterCache(ttl=timedelta(hours=1))

    def worker():
        for _ in range(200):
            cache.increment("shared")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert cache.peek("shared") == 1600
