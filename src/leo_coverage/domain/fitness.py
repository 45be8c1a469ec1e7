# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Fitness of a candidate layout vector.

A FitnessModel turns a measured coverage and its layout into a scalar
score. Two models exist: FixedTotalFitness for searches where the total
satellite count never changes, and VariableTotalFitness where the count
itself is optimised. FitnessFunction binds a model to the fixed orbital
parameters of a run, a coverage resolution and a FitnessCache.
"""
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .constellation import Layout, as_layout, empty_plane_count, total_satellites
from .coverage import SEARCH_SETTINGS, CoverageSettings, evaluate_layout
from .errors import InvalidInputError
from .fitness_cache import FitnessCache, layout_key


@dataclass(frozen=True)
class LayoutProblem:
    """Orbital parameters shared by every layout of one optimisation run."""
    phasing_factor: float
    inclination_deg: float
    semi_major_axis_m: float
    min_elevation_deg: float = 10.0
    required_count: int = 1


@dataclass(frozen=True)
class FitnessRecord:
    """Cached outcome of one layout evaluation."""
    coverage_pct: float
    satellite_count: int
    fitness: float


def evaluate_layout_with(
    layout: Sequence[int],
    problem: LayoutProblem,
    settings: CoverageSettings,
    max_workers: int | None = None,
) -> tuple[float, int]:
    """evaluate_layout driven by a LayoutProblem and CoverageSettings.

    Settings fix the sampling resolution; the problem fixes the orbit, the
    elevation mask and the required_count of a covered point.
    """
    return evaluate_layout(
        layout,
        problem.phasing_factor,
        problem.inclination_deg,
        problem.semi_major_axis_m,
        problem.min_elevation_deg,
        n_time_samples=settings.n_time_samples,
        lat_step_deg=settings.lat_step_deg,
        lon_step_deg=settings.lon_step_deg,
        required_count=problem.required_count,
        max_workers=max_workers,
    )


class FitnessModel(ABC):
    """Scores a layout from its measured coverage."""

    @abstractmethod
    def score(self, coverage_pct: float, layout: Layout) -> float:
        """Scalar fitness; higher is better."""
        ...


@dataclass(frozen=True)
class FixedTotalFitness(FitnessModel):
    """
    Threshold fitness for a fixed satellite total.

    Below the coverage floor the score is coverage - floor_penalty, which
    ranks every sub-floor layout under every layout meeting the floor.
    Otherwise it is coverage plus a small bonus per unused plane.
    """
    coverage_floor: float = 75.0
    plan_bonus_enabled: bool = True
    empty_plane_bonus: float = 0.2
    floor_penalty: float = 100.0

    def score(self, coverage_pct: float, layout: Layout) -> float:
        if coverage_pct < self.coverage_floor:
            return coverage_pct - self.floor_penalty
        bonus = self.empty_plane_bonus * empty_plane_count(layout) if self.plan_bonus_enabled else 0.0
        return coverage_pct + bonus


@dataclass(frozen=True)
class VariableTotalFitness(FitnessModel):
    """
    Continuous fitness when the satellite total is free.

    score = coverage
            - count_penalty(N) · N
            + empty_plan_coef · empty_planes
            - max(0, coverage_target - coverage) · penalty_strength
    """
    satellite_count_coef: float = 0.75
    empty_plan_coef: float = 0.3
    coverage_target: float = 95.0
    penalty_strength: float = 5.0
    count_ramp_low: int = 17
    count_ramp_high: int = 23
    count_floor_fraction: float = 0.3
    saturation_thresholds: tuple[tuple[float, float], ...] = field(
        default=((99.9, 3.0), (99.5, 2.0)),
    )

    def __post_init__(self) -> None:
        if self.count_ramp_high <= self.count_ramp_low:
            raise InvalidInputError(
                f"count_ramp_high ({self.count_ramp_high}) must exceed "
                f"count_ramp_low ({self.count_ramp_low})"
            )

    def satellite_count_penalty(self, satellite_count: int) -> float:
        """
        Per-satellite penalty: a floor below count_ramp_low, the full
        coefficient above count_ramp_high, linear in between.
        """
        if satellite_count < self.count_ramp_low:
            return self.count_floor_fraction * self.satellite_count_coef
        if satellite_count > self.count_ramp_high:
            return self.satellite_count_coef
        t = (satellite_count - self.count_ramp_low) / (self.count_ramp_high - self.count_ramp_low)
        fraction = self.count_floor_fraction + (1.0 - self.count_floor_fraction) * t
        return fraction * self.satellite_count_coef

    def saturation_multiplier(self, coverage_pct: float) -> float:
        """Amplifies the count penalty once coverage is nearly saturated."""
        for threshold, multiplier in self.saturation_thresholds:
            if coverage_pct >= threshold:
                return multiplier
        return 1.0

    def score(self, coverage_pct: float, layout: Layout) -> float:
        n = total_satellites(layout)
        count_penalty = self.satellite_count_penalty(n) * self.saturation_multiplier(coverage_pct)
        shortfall = max(0.0, self.coverage_target - coverage_pct) * self.penalty_strength
        return (
            coverage_pct
            - count_penalty * n
            + self.empty_plan_coef * empty_plane_count(layout)
            - shortfall
        )


Evaluator = Callable[[Layout, LayoutProblem, CoverageSettings], tuple[float, int]]


class FitnessFunction:
    """
    Memoised fitness of layout vectors for one optimisation run.

    Args:
        problem: Fixed orbital parameters.
        model: Scoring strategy.
        settings: Coverage resolution used while searching.
        cache: Shared FitnessCache (a fresh one if None).
        evaluator: Coverage evaluator, replaceable for testing.
    """

    def __init__(
        self,
        problem: LayoutProblem,
        model: FitnessModel,
        settings: CoverageSettings = SEARCH_SETTINGS,
        cache: FitnessCache[FitnessRecord] | None = None,
        evaluator: Evaluator | None = None,
    ) -> None:
        self.problem = problem
        self.model = model
        self.settings = settings
        self.cache: FitnessCache[FitnessRecord] = cache if cache is not None else FitnessCache()
        self._evaluator = evaluator or self._evaluate_serial

    @staticmethod
    def _evaluate_serial(
        layout: Layout, problem: LayoutProblem, settings: CoverageSettings,
    ) -> tuple[float, int]:
        # Row blocks run inline; threads are spent across population members
        return evaluate_layout_with(layout, problem, settings, max_workers=1)

    def evaluate(self, layout: Sequence[int]) -> FitnessRecord:
        """Coverage, satellite count and fitness of a layout (cached)."""
        counts = as_layout(layout)

        def compute() -> FitnessRecord:
            coverage, n = self._evaluator(counts, self.problem, self.settings)
            return FitnessRecord(
                coverage_pct=coverage,
                satellite_count=n,
                fitness=self.model.score(coverage, counts),
            )

        return self.cache.get_or_compute(layout_key(counts), compute)

    def __call__(self, layout: Sequence[int]) -> float:
        return self.evaluate(layout).fitness

    def flush(self) -> int:
        """Merge per-thread cache entries into the shared cache."""
        return self.cache.flush()


def fitness_fixed(
    layout: Sequence[int],
    problem: LayoutProblem,
    coverage_floor: float = 75.0,
    plan_bonus_enabled: bool = True,
    settings: CoverageSettings = SEARCH_SETTINGS,
    cache: FitnessCache[FitnessRecord] | None = None,
) -> float:
    """Fixed-total fitness of one layout, memoised through `cache` if given."""
    model = FixedTotalFitness(coverage_floor=coverage_floor, plan_bonus_enabled=plan_bonus_enabled)
    return FitnessFunction(problem, model, settings=settings, cache=cache)(layout)


def fitness_variable(
    layout: Sequence[int],
    problem: LayoutProblem,
    satellite_count_coef: float = 0.75,
    empty_plan_coef: float = 0.3,
    coverage_target: float = 95.0,
    penalty_strength: float = 5.0,
    settings: CoverageSettings = SEARCH_SETTINGS,
    cache: FitnessCache[FitnessRecord] | None = None,
) -> float:
    """Variable-total fitness of one layout, memoised through `cache` if given."""
    model = VariableTotalFitness(
        satellite_count_coef=satellite_count_coef,
        empty_plan_coef=empty_plan_coef,
        coverage_target=coverage_target,
        penalty_strength=penalty_strength,
    )
    return FitnessFunction(problem, model, settings=settings, cache=cache)(layout)
