# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Local refinement of a layout after the genetic search.

Fixed total: steepest ascent over single-satellite moves between planes.
Variable total: greedy growth, one satellite per step into the plane
with the largest coverage gain. Both stop when no candidate improves
coverage strictly.
"""
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .constellation import Layout, as_layout
from .coverage import SEARCH_SETTINGS, CoverageSettings
from .errors import InvalidInputError
from .fitness import LayoutProblem, evaluate_layout_with
from .parallel import parallel_map

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalSearchResult:
    """Refined layout, its coverage and the number of accepted moves."""
    layout: Layout
    coverage_pct: float
    moves: int


def single_moves(layout: Layout) -> list[Layout]:
    """Every layout reachable by moving one satellite from plane j to plane i."""
    neighbours: list[Layout] = []
    for i in range(len(layout)):
        for j in range(len(layout)):
            if i == j or layout[j] == 0:
                continue
            counts = list(layout)
            counts[i] += 1
            counts[j] -= 1
            neighbours.append(tuple(counts))
    return neighbours


def single_additions(layout: Layout) -> list[Layout]:
    """Every layout with one more satellite in exactly one plane."""
    additions: list[Layout] = []
    for i in range(len(layout)):
        counts = list(layout)
        counts[i] += 1
        additions.append(tuple(counts))
    return additions


def improve_layout_fixed_total(
    layout: Sequence[int],
    problem: LayoutProblem,
    settings: CoverageSettings = SEARCH_SETTINGS,
    max_iterations: int = 100,
    max_workers: int | None = None,
) -> LocalSearchResult:
    """
    Move satellites between planes while mean coverage strictly improves.

    Args:
        layout: Starting layout (must hold at least one satellite).
        problem: Phasing, inclination, semi-major axis, elevation mask.
        settings: Coverage resolution of every evaluation.
        max_iterations: Upper bound on accepted moves.
        max_workers: Threads over candidate moves.

    Returns:
        LocalSearchResult; the satellite total is unchanged.
    """
    if max_iterations < 0:
        raise InvalidInputError(f"max_iterations must be >= 0, got {max_iterations}")
    current = as_layout(layout)
    coverage, _ = evaluate_layout_with(current, problem, settings)

    def coverage_of(candidate: Layout) -> float:
        return evaluate_layout_with(candidate, problem, settings, max_workers=1)[0]

    moves = 0
    for _ in range(max_iterations):
        candidates = single_moves(current)
        if not candidates:
            break
        scores = parallel_map(coverage_of, candidates, max_workers)
        best = max(range(len(candidates)), key=lambda k: scores[k])
        if scores[best] <= coverage:
            break
        current, coverage = candidates[best], scores[best]
        moves += 1
        _log.debug("Local search move %d: %s -> %.3f%%", moves, current, coverage)

    return LocalSearchResult(layout=current, coverage_pct=coverage, moves=moves)


def improve_layout_variable_total(
    layout: Sequence[int],
    problem: LayoutProblem,
    settings: CoverageSettings = SEARCH_SETTINGS,
    max_satellites: int = 50,
    max_workers: int | None = None,
) -> LocalSearchResult:
    """
    Grow a layout one satellite at a time while coverage strictly improves.

    Each step adds a satellite to every plane in turn and keeps the plane
    with the largest gain. Growth stops at the first step without a gain
    or once the total reaches max_satellites; a layout already at or above
    the cap is returned unchanged.

    Returns:
        LocalSearchResult; `moves` is the number of satellites added.
    """
    current = as_layout(layout)
    if max_satellites < 1:
        raise InvalidInputError(f"max_satellites must be >= 1, got {max_satellites}")
    coverage, _ = evaluate_layout_with(current, problem, settings)

    def coverage_of(candidate: Layout) -> float:
        return evaluate_layout_with(candidate, problem, settings, max_workers=1)[0]

    added = 0
    while sum(current) < max_satellites:
        candidates = single_additions(current)
        scores = parallel_map(coverage_of, candidates, max_workers)
        best = max(range(len(candidates)), key=lambda k: scores[k])
        if scores[best] <= coverage:
            break
        current, coverage = candidates[best], scores[best]
        added += 1
        _log.debug("Greedy growth step %d: %s -> %.3f%%", added, current, coverage)

    return LocalSearchResult(layout=current, coverage_pct=coverage, moves=added)
