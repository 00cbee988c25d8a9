import logging
import threading
import time

import pytest

from refbind import BindingOptions, MemberCache, MemberNotFoundError, MemberSearch, TypeBinder
from refbind.refbind_cache import DEFAULT_CACHE
from refbind.refbind_members import FieldHandle


class Widget:
    LIMIT = 10
    _secret = "s"

    def __init__(self):
        self.size = 3

    def area(self) -> int:
        return self.size * self.size


class CountingSearch(MemberSearch):
    """Counts how often the underlying searches actually run."""

    def __init__(self):
        self.calls = 0

    def find_field(self, cls, name, flags, instance=None):
        self.calls += 1
        return super().find_field(cls, name, flags, instance)

    def find_method(self, cls, name, descriptors, flags):
        self.calls += 1
        return super().find_method(cls, name, descriptors, flags)


@pytest.fixture
def search():
    return CountingSearch()


@pytest.fixture
def cache():
    return MemberCache()


def test_resolve_runs_lookup_once(cache):
    handle = FieldHandle(Widget, "size", False, True)
    calls = []

    def lookup():
        calls.append(1)
        return handle

    assert cache.resolve(Widget, "field", "size", lookup) is handle
    assert cache.resolve(Widget, "field", "size", lookup) is handle
    assert len(calls) == 1
    assert (Widget, "field", "size") in cache
    assert cache.get(Widget, "field", "size") is handle
    assert len(cache) == 1


def test_failed_lookups_are_not_cached(cache):
    with pytest.raises(MemberNotFoundError):
        cache.resolve(Widget, "field", "nope", lambda: None)
    assert (Widget, "field", "nope") not in cache
    assert len(cache) == 0


def test_rejected_hit_is_looked_up_again(cache):
    instance_size = FieldHandle(Widget, "size", False, False)
    static_size = FieldHandle(Widget, "size", True, True)
    cache.resolve(Widget, "field", "size", lambda: instance_size)
    got = cache.resolve(Widget, "field", "size", lambda: static_size,
                        accept=lambda h: h.is_public, also=lambda h: ["size#static"])
    assert got is static_size
    # The original entry stays; the fresh handle only fills free keys
    assert cache.get(Widget, "field", "size") is instance_size
    assert cache.get(Widget, "field", "size#static") is static_size


def test_clear(cache):
    cache.resolve(Widget, "field", "size", lambda: FieldHandle(Widget, "size", False, True))
    cache.clear()
    assert len(cache) == 0
    assert cache.get(Widget, "field", "size") is None


def test_repeated_access_reuses_the_handle(cache, search):
    acc = TypeBinder(Widget, cache=cache, search=search).bind(BindingOptions().public.set_instance(Widget()))
    first = acc.field("size").handle
    second = acc.field("size").handle
    assert first is second
    assert search.calls == 1
    acc.method("area").invoke()
    acc.method("area").invoke()
    assert search.calls == 2


def test_missing_member_searches_again(cache, search):
    acc = TypeBinder(Widget, cache=cache, search=search).bind(BindingOptions().public.set_instance(Widget()))
    for _ in range(2):
        with pytest.raises(MemberNotFoundError):
            acc.field("nope")
    assert search.calls == 2


def test_rebinding_shares_entries(cache, search):
    opts = BindingOptions().public.static.set_instance(Widget())
    acc = TypeBinder(Widget, cache=cache, search=search).bind(opts)
    assert acc.field("LIMIT").value == 10
    static = acc.to_static()
    assert static.cache is cache
    assert static.field("LIMIT").value == 10
    assert static.field("LIMIT").handle is acc.field("LIMIT").handle
    assert search.calls == 1


def test_hidden_cached_handle_is_searched_again(cache, search):
    binder = TypeBinder(Widget, cache=cache, search=search)
    wide = binder.bind(BindingOptions().public.non_public.static)
    assert wide.field("_secret").value == "s"
    narrow = binder.bind(BindingOptions().public.static)
    with pytest.raises(MemberNotFoundError):
        narrow.field("_secret")
    assert search.calls == 2
    assert cache.get(Widget, "field", "_secret#static") is not None


def test_concurrent_first_access_searches_once(cache):
    handle = FieldHandle(Widget, "size", False, True)
    calls = []
    results = []
    start = threading.Barrier(8)

    def lookup():
        calls.append(1)
        time.sleep(0.01)
        return handle

    def worker():
        start.wait()
        results.append(cache.resolve(Widget, "field", "size", lookup))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert len(results) == 8
    assert all(r is handle for r in results)


def test_default_cache_is_shared():
    a = TypeBinder(Widget).bind(BindingOptions().public.static)
    b = TypeBinder(Widget).bind(BindingOptions().public.static)
    assert a.cache is DEFAULT_CACHE
    assert a.field("LIMIT").handle is b.field("LIMIT").handle


def test_resolution_is_logged(cache, caplog):
    caplog.set_level(logging.DEBUG, logger="refbind")
    handle = FieldHandle(Widget, "size", False, True)
    cache.resolve(Widget, "field", "size", lambda: handle)
    cache.resolve(Widget, "field", "size", lambda: handle)
    with pytest.raises(MemberNotFoundError):
        cache.resolve(Widget, "field", "nope", lambda: None)
    messages = [r.getMessage() for r in caplog.records if r.name == "refbind"]
    assert any(m.startswith("cached field Widget.size") for m in messages)
    assert any(m.startswith("cache hit field Widget.size") for m in messages)
    assert any(m.startswith("resolution failed field Widget.nope") for m in messages)


class Tally:
    count = 0

    def __init__(self):
        self.count = 5


@pytest.mark.parametrize("static_first", [True, False])
def test_class_and_instance_attribute_share_a_name(cache, static_first):
    binder = TypeBinder(Tally, cache=cache)
    static = binder.bind(BindingOptions().public.static)
    instance = binder.bind(BindingOptions().public.set_instance(Tally()))
    reads = [(static, 0), (instance, 5)]
    if not static_first:
        reads.reverse()
    for acc, expected in reads:
        assert acc.field("count", int).value == expected
    # With both scopes the instance attribute shadows the class one, as in Python
    both = binder.bind(BindingOptions().public.static.set_instance(Tally()))
    assert both.field("count", int).value == 5
    assert static.field("count", int).value == 0


def test_rebinding_moves_between_same_named_members(cache):
    acc = TypeBinder(Tally, cache=cache).bind(BindingOptions().public.set_instance(Tally()))
    assert acc.field("count", int).value == 5
    static = acc.to_static()
    assert static.field("count", int).value == 0
    assert static.to_instance(Tally()).field("count", int).value == 5
    assert acc.field("count").handle is not static.field("count").handle
    assert static.field("count").handle.is_static
