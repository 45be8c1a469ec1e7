# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Fork-join helpers over a thread pool.

Work items are independent; results are combined with an associative,
commutative operator, so completion order does not matter. Each call
blocks until every item has finished.
"""
import os
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from functools import reduce
from typing import TypeVar

from .errors import InvalidInputError

T = TypeVar("T")
R = TypeVar("R")


def default_workers() -> int:
    """Same default as ThreadPoolExecutor: min(32, cpu_count + 4)."""
    return min(32, (os.cpu_count() or 1) + 4)


def resolve_workers(max_workers: int | None) -> int:
    """Thread count for max_workers; None means default_workers()."""
    if max_workers is None:
        return default_workers()
    if max_workers < 1:
        raise InvalidInputError(f"max_workers must be >= 1, got {max_workers}")
    return max_workers


def parallel_map(
    func: Callable[[T], R],
    items: Iterable[T],
    max_workers: int | None = None,
) -> list[R]:
    """
    Apply func to every item, in parallel threads, preserving input order.

    Runs inline when max_workers == 1 or there is at most one item.
    Exceptions raised by func propagate to the caller; max_workers < 1
    raises InvalidInputError.
    """
    items = list(items)
    workers = resolve_workers(max_workers)
    if workers == 1 or len(items) <= 1:
        return [func(item) for item in items]

    with ThreadPoolExecutor(max_workers=min(workers, len(items))) as executor:
        return list(executor.map(func, items))


def fork_join(
    func: Callable[[T], R],
    items: Iterable[T],
    combine: Callable[[R, R], R],
    initial: R,
    max_workers: int | None = None,
) -> R:
    """
    Map func over items in parallel and fold the results with combine.

    Args:
        func: Work function applied to each item.
        items: Independent work items.
        combine: Associative, commutative reduction operator.
        initial: Identity element of combine.
        max_workers: Thread count (None = executor default).

    Returns:
        combine-reduction of all partial results.
    """
    return reduce(combine, parallel_map(func, items, max_workers), initial)


def split_range(count: int, parts: int) -> list[tuple[int, int]]:
    """Split range(count) into at most `parts` contiguous, non-empty blocks."""
    if count <= 0:
        return []
    parts = max(1, min(parts, count))
    base, extra = divmod(count, parts)
    blocks: list[tuple[int, int]] = []
    start = 0
    for k in range(parts):
        stop = start + base + (1 if k < extra else 0)
        blocks.append((start, stop))
        start = stop
    return blocks
