# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Two-tier memo cache for fitness evaluations.

Each worker thread writes results into a private map without locking.
A shared map, guarded by a lock, is consulted on a private miss and is
filled only by flush(), which merges and empties every private map.
Call flush() once all evaluations of a generation have returned and
before the next generation starts.

One cache belongs to one optimisation run; entries never expire. Use a
fresh cache (or clear()) when the fixed run parameters change.
"""
import logging
import threading
from collections.abc import Callable, Hashable, Sequence
from typing import Generic, TypeVar

V = TypeVar("V")

_log = logging.getLogger(__name__)


def layout_key(layout: Sequence[int]) -> tuple[int, ...]:
    """Exact, order- and length-sensitive cache key of a layout vector."""
    return tuple(int(count) for count in layout)


class FitnessCache(Generic[V]):
    """Thread-local write-back cache merged into a shared map on flush."""

    def __init__(self) -> None:
        self._shared: dict[Hashable, V] = {}
        self._lock = threading.Lock()
        self._local = threading.local()
        self._pending: list[dict[Hashable, V]] = []
        self._epoch = 0

    def _private(self) -> dict[Hashable, V]:
        """This thread's private map for the current flush epoch."""
        local = self._local
        if getattr(local, "epoch", None) != self._epoch:
            local.cache = {}
            local.epoch = self._epoch
            with self._lock:
                self._pending.append(local.cache)
        return local.cache

    def lookup(self, key: Hashable) -> V | None:
        """Return a cached value from either tier, or None."""
        private = self._private()
        if key in private:
            return private[key]
        with self._lock:
            if key not in self._shared:
                return None
            value = self._shared[key]
        private[key] = value
        return value

    def get_or_compute(self, key: Hashable, compute: Callable[[], V]) -> V:
        """
        Return the cached value for key, computing it on a miss.

        A computed value lands in the calling thread's private map only.
        If compute raises, nothing is stored.
        """
        cached = self.lookup(key)
        if cached is not None:
            return cached
        value = compute()
        self._private()[key] = value
        return value

    def flush(self) -> int:
        """
        Merge every private map into the shared map and empty them.

        Returns:
            Number of entries merged.
        """
        with self._lock:
            merged = 0
            for private in self._pending:
                self._shared.update(private)
                merged += len(private)
                private.clear()
            self._pending = []
            self._epoch += 1
            shared_size = len(self._shared)
        _log.debug("Fitness cache flush: merged %d entries, %d shared", merged, shared_size)
        return merged

    def clear(self) -> None:
        """Drop every entry from both tiers."""
        with self._lock:
            for private in self._pending:
                private.clear()
            self._pending = []
            self._shared.clear()
            self._epoch += 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._shared)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._shared
