"""
Process-wide cache of resolved member handles.

Handles are stored per class in buckets keyed by (member kind, key). A key is
a name, or a (label, argument types) pair for signature lookups. A bucket has
its own lock, held across check, search and insert, so concurrent first
accesses to the same key run the search exactly once. Entries are never
evicted.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Hashable, Iterable, Optional, Tuple

from refbind.refbind_constants import LOGGER
from refbind.refbind_errors import MemberNotFoundError
from refbind.refbind_members import MemberHandle

CacheKey = Tuple[str, Hashable]


def key_label(key: Hashable) -> str:
    """Readable part of a cache key, for messages and logs."""
    if isinstance(key, tuple):
        return str(key[0])
    return str(key)


class _Bucket:
    __slots__ = ("lock", "entries")

    def __init__(self):
        self.lock = threading.Lock()
        self.entries: Dict[CacheKey, MemberHandle] = {}

    def known(self, kind: str, handle: MemberHandle) -> MemberHandle:
        """The handle already cached for the same member under any key, else `handle`."""
        for (k, _), existing in self.entries.items():
            if k == kind and existing.same_member(handle):
                return existing
        return handle


class MemberCache:
    """Resolved handles, keyed by (class, kind, key)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._buckets: Dict[type, _Bucket] = {}

    def _bucket(self, cls: type) -> _Bucket:
        bucket = self._buckets.get(cls)
        if bucket is None:
            with self._lock:
                bucket = self._buckets.get(cls)
                if bucket is None:
                    bucket = _Bucket()
                    self._buckets[cls] = bucket
        return bucket

    def resolve(self, cls: type, kind: str, key: Hashable,
                lookup: Callable[[], Optional[MemberHandle]],
                accept: Optional[Callable[[MemberHandle], bool]] = None,
                also: Optional[Callable[[MemberHandle], Iterable[Hashable]]] = None) -> MemberHandle:
        """
        Return the cached handle for (cls, kind, key), calling `lookup` on a miss.

        `lookup` runs at most once per key. A None result raises
        MemberNotFoundError and leaves the cache untouched so a later call can
        try again (for example with an instance that carries the field).

        `accept` vets a cached hit. A rejected hit runs `lookup` again and the
        result is returned without displacing the entry. `also` names extra
        keys a fresh handle is filed under when they are still free.
        """
        bucket = self._bucket(cls)
        label = key_label(key)
        with bucket.lock:
            cached = bucket.entries.get((kind, key))
            if cached is not None and (accept is None or accept(cached)):
                LOGGER.debug("cache hit %s %s.%s", kind, cls.__qualname__, label)
                return cached
            handle = lookup()
            if handle is None:
                LOGGER.debug("resolution failed %s %s.%s", kind, cls.__qualname__, label)
                raise MemberNotFoundError(cls, kind, label)
            handle = bucket.known(kind, handle)
            if cached is None:
                bucket.entries[(kind, key)] = handle
                LOGGER.debug("cached %s %s.%s -> %r", kind, cls.__qualname__, label, handle)
            else:
                LOGGER.debug("cached %s %s.%s hidden by flags, resolved %r",
                             kind, cls.__qualname__, label, handle)
            for extra in (also(handle) if also is not None else ()):
                bucket.entries.setdefault((kind, extra), handle)
            return handle

    def get(self, cls: type, kind: str, key: Hashable) -> Optional[MemberHandle]:
        bucket = self._buckets.get(cls)
        if bucket is None:
            return None
        with bucket.lock:
            return bucket.entries.get((kind, key))

    def clear(self) -> None:
        with self._lock:
            self._buckets.clear()

    def __contains__(self, item: Tuple[type, str, Hashable]) -> bool:
        cls, kind, key = item
        return self.get(cls, kind, key) is not None

    def __len__(self) -> int:
        with self._lock:
            buckets = list(self._buckets.values())
        return sum(len(b.entries) for b in buckets)


DEFAULT_CACHE = MemberCache()
"""The process-wide cache used when no other cache is supplied."""


__all__ = [
    "MemberCache",
    "DEFAULT_CACHE",
    "key_label",
]
