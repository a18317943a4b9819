"""Build-once cache of relationship stores, keyed by snapshot content."""

from __future__ import annotations

import hashlib
import logging
import os
from collections import OrderedDict
from threading import Lock
from typing import Iterable

from kinship.family.engine import RelationshipStore, build
from kinship.family.facts import FactEdge, Person

logger = logging.getLogger("kinship.family.cache")

CACHE_SIZE = int(os.environ.get("KE_STORE_CACHE_SIZE", "32"))


def snapshot_fingerprint(persons: Iterable[Person], edges: Iterable[FactEdge]) -> str:
    """Stable digest of a snapshot; any person or edge change alters it."""
    h = hashlib.sha256()
    for p in sorted(persons, key=lambda p: p.id):
        h.update(repr((p.id, p.name, p.nickname, p.gender.value)).encode())
    h.update(b"|")
    for e in sorted(edges, key=lambda e: (e.from_id, e.to_id, e.kind)):
        h.update(repr((e.from_id, e.to_id, e.kind)).encode())
    return h.hexdigest()


class StoreCache:
    """LRU of built stores. Stores are immutable, so handing out shared references is fine."""

    def __init__(self, max_size: int = CACHE_SIZE) -> None:
        self._max_size = max(1, max_size)
        self._lock = Lock()
        self._stores: OrderedDict[str, RelationshipStore] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get_or_build(self, persons: Iterable[Person], edges: Iterable[FactEdge]) -> RelationshipStore:
        persons = list(persons)
        edges = list(edges)
        key = snapshot_fingerprint(persons, edges)

        with self._lock:
            store = self._stores.get(key)
            if store is not None:
                self._stores.move_to_end(key)
                self.hits += 1
                return store
            self.misses += 1

        # Concurrent misses on one key may both build; last write wins
        store = build(persons, edges)

        with self._lock:
            self._stores[key] = store
            self._stores.move_to_end(key)
            while len(self._stores) > self._max_size:
                evicted, _ = self._stores.popitem(last=False)
                logger.debug("Evicted relationship store %s", evicted[:12])
        return store

    def clear(self) -> None:
        with self._lock:
            self._stores.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._stores)

    @property
    def stats(self) -> dict:
        with self._lock:
            return {"size": len(self._stores), "hits": self.hits, "misses": self.misses}


store_cache = StoreCache()
