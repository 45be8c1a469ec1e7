# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Genetic search over per-plane layout vectors.

Each generation evaluates the whole population (in parallel threads),
flushes the fitness cache, ranks by fitness, keeps the top quarter as
elites and refills the population with mutated elites. The search mode
decides how layouts are drawn and mutated:

- FixedTotalSearch moves satellites between planes; N never changes.
- VariableTotalSearch also adds and removes satellites, biased by the
  gap between the best coverage seen and the coverage target, and
  injects one fresh random layout per generation.

The best layout ever seen is re-evaluated at high resolution at the end.
"""
import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from .constellation import Layout, random_layout
from .coverage import FINAL_SETTINGS, SEARCH_SETTINGS, CoverageSettings
from .errors import InvalidInputError
from .fitness import (
    FitnessFunction,
    FitnessRecord,
    FixedTotalFitness,
    LayoutProblem,
    VariableTotalFitness,
    evaluate_layout_with,
)
from .fitness_cache import FitnessCache
from .parallel import parallel_map

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneticSettings:
    """Population-level parameters of a genetic search."""
    population_size: int = 20
    generations: int = 30
    seed: int | None = None
    max_workers: int | None = None

    def __post_init__(self) -> None:
        if self.population_size < 1:
            raise InvalidInputError(f"population_size must be >= 1, got {self.population_size}")
        if self.generations < 0:
            raise InvalidInputError(f"generations must be >= 0, got {self.generations}")
        if self.max_workers is not None and self.max_workers < 1:
            raise InvalidInputError(f"max_workers must be >= 1, got {self.max_workers}")


@dataclass(frozen=True)
class GenerationRecord:
    """Summary of one evaluated generation."""
    generation: int
    best_fitness: float
    best_ever_fitness: float
    best_coverage_pct: float
    mean_fitness: float


@dataclass(frozen=True)
class OptimizationResult:
    """Outcome of a genetic search."""
    best_layout: Layout
    coverage_pct: float
    satellite_count: int
    best_fitness: float
    history: tuple[GenerationRecord, ...]


@dataclass(frozen=True)
class MutationRates:
    """Per-call probabilities of the variable-total mutation operators."""
    p_move: float
    p_add: float
    p_remove: float


def _check_probability(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise InvalidInputError(f"{name} must be in [0, 1], got {value}")


def mutate_fixed_total(layout: Layout, rng: np.random.Generator, p_mut: float = 0.3) -> Layout:
    """
    Move satellites between planes, keeping the total unchanged.

    P trials (P = number of planes); each fires with probability p_mut and
    moves one satellite from a random plane to another random plane. A
    trial whose source plane is empty, or equals the target, does nothing.
    """
    counts = list(layout)
    num_planes = len(counts)
    for _ in range(num_planes):
        if rng.random() >= p_mut:
            continue
        src = int(rng.integers(num_planes))
        dst = int(rng.integers(num_planes))
        if src == dst or counts[src] == 0:
            continue
        counts[src] -= 1
        counts[dst] += 1
    return tuple(counts)


def _random_nonempty_plane(counts: list[int], rng: np.random.Generator) -> int:
    occupied = [k for k, c in enumerate(counts) if c > 0]
    return occupied[int(rng.integers(len(occupied)))]


def mutate_variable_total(
    layout: Layout,
    rng: np.random.Generator,
    rates: MutationRates,
    max_satellites: int | None = None,
) -> Layout:
    """
    Move, add and remove satellites.

    - P move trials, each with probability p_move: a satellite leaves a
      random occupied plane for a random plane (skipped when N <= 1).
    - With probability p_add, one satellite joins a random plane unless
      N has reached max_satellites.
    - With probability p_remove, one satellite leaves a random occupied
      plane unless that would drop N below 1.
    """
    counts = list(layout)
    num_planes = len(counts)

    for _ in range(num_planes):
        if rng.random() < rates.p_move and sum(counts) > 1:
            src = _random_nonempty_plane(counts, rng)
            dst = int(rng.integers(num_planes))
            if src != dst:
                counts[src] -= 1
                counts[dst] += 1

    if rng.random() < rates.p_add and (max_satellites is None or sum(counts) < max_satellites):
        counts[int(rng.integers(num_planes))] += 1

    if rng.random() < rates.p_remove and sum(counts) > 1:
        counts[_random_nonempty_plane(counts, rng)] -= 1

    return tuple(counts)


def adapt_mutation_rates(
    base: MutationRates,
    best_coverage_pct: float,
    coverage_target: float,
    gap_scale: float = 10.0,
) -> MutationRates:
    """
    Bias growth toward the coverage target.

    factor = 1 + min(|gap|, gap_scale)/gap_scale, gap = target - best.
    Below target p_add is multiplied and p_remove divided by factor;
    above target the reverse. p_move is divided by factor so large gaps
    favour resizing over rebalancing. At the target the rates are unchanged.
    """
    gap = coverage_target - best_coverage_pct
    factor = 1.0 + min(abs(gap), gap_scale) / gap_scale
    if gap > 0:
        p_add, p_remove = base.p_add * factor, base.p_remove / factor
    elif gap < 0:
        p_add, p_remove = base.p_add / factor, base.p_remove * factor
    else:
        p_add, p_remove = base.p_add, base.p_remove
    return MutationRates(
        p_move=min(1.0, base.p_move / factor),
        p_add=min(1.0, p_add),
        p_remove=min(1.0, p_remove),
    )


class SearchMode(ABC):
    """How layouts are drawn and mutated during a genetic search."""

    injections: int = 0

    @abstractmethod
    def initial_layout(self, rng: np.random.Generator) -> Layout:
        ...

    @abstractmethod
    def mutate(self, layout: Layout, rng: np.random.Generator, best_coverage_pct: float) -> Layout:
        ...


@dataclass(frozen=True)
class FixedTotalSearch(SearchMode):
    """Search over distributions of exactly `total` satellites."""
    num_planes: int
    total: int
    p_mut: float = 0.3

    def __post_init__(self) -> None:
        if self.num_planes < 1:
            raise InvalidInputError(f"num_planes must be >= 1, got {self.num_planes}")
        if self.total < 1:
            raise InvalidInputError(f"total satellites must be >= 1, got {self.total}")
        _check_probability("p_mut", self.p_mut)

    def initial_layout(self, rng: np.random.Generator) -> Layout:
        return random_layout(self.num_planes, self.total, rng)

    def mutate(self, layout: Layout, rng: np.random.Generator, best_coverage_pct: float) -> Layout:
        return mutate_fixed_total(layout, rng, self.p_mut)


@dataclass(frozen=True)
class VariableTotalSearch(SearchMode):
    """Search over layouts whose total starts at `initial_total` and may drift."""
    num_planes: int
    initial_total: int
    coverage_target: float = 95.0
    max_satellites: int | None = None
    rates: MutationRates = MutationRates(p_move=0.4, p_add=0.1, p_remove=0.05)
    injections: int = 1

    def __post_init__(self) -> None:
        if self.num_planes < 1:
            raise InvalidInputError(f"num_planes must be >= 1, got {self.num_planes}")
        if self.initial_total < 1:
            raise InvalidInputError(f"initial_total must be >= 1, got {self.initial_total}")
        if self.max_satellites is not None and self.max_satellites < self.initial_total:
            raise InvalidInputError(
                f"max_satellites ({self.max_satellites}) is below "
                f"initial_total ({self.initial_total})"
            )
        _check_probability("p_move", self.rates.p_move)
        _check_probability("p_add", self.rates.p_add)
        _check_probability("p_remove", self.rates.p_remove)

    def initial_layout(self, rng: np.random.Generator) -> Layout:
        return random_layout(self.num_planes, self.initial_total, rng)

    def mutate(self, layout: Layout, rng: np.random.Generator, best_coverage_pct: float) -> Layout:
        rates = adapt_mutation_rates(self.rates, best_coverage_pct, self.coverage_target)
        return mutate_variable_total(layout, rng, rates, self.max_satellites)


def elite_count(population_size: int) -> int:
    """Number of elites kept per generation: clamp(popsize // 4, 1, popsize)."""
    return min(max(population_size // 4, 1), population_size)


def run_genetic_search(
    mode: SearchMode,
    fitness: FitnessFunction,
    settings: GeneticSettings,
    final_settings: CoverageSettings = FINAL_SETTINGS,
    on_generation: Callable[[GenerationRecord], None] | None = None,
) -> OptimizationResult:
    """
    Drive a genetic search and re-evaluate the winner at high resolution.

    Ranking uses a stable sort, so equal fitness keeps population order.
    The best-ever layout is replaced only when a generation's best is
    strictly better. Any evaluation error aborts the run; nothing is
    cached for the failing layout.

    Args:
        mode: Initialisation and mutation strategy.
        fitness: Memoised fitness function of the run.
        settings: Population size, generations, seed, worker threads.
        final_settings: Coverage resolution of the final re-evaluation.
        on_generation: Optional callback receiving each GenerationRecord.

    Returns:
        OptimizationResult with the best layout and its final coverage.
    """
    rng = np.random.default_rng(settings.seed)
    popsize = settings.population_size
    n_elite = elite_count(popsize)

    population = [mode.initial_layout(rng) for _ in range(popsize)]

    best_layout = population[0]
    best_fitness = fitness.evaluate(best_layout).fitness
    fitness.flush()
    best_coverage_seen = -math.inf
    history: list[GenerationRecord] = []

    for generation in range(settings.generations):
        records: list[FitnessRecord] = parallel_map(
            fitness.evaluate, population, settings.max_workers,
        )
        fitness.flush()

        scores = np.array([r.fitness for r in records])
        order = np.argsort(-scores, kind="stable")
        elites = [population[int(k)] for k in order[:n_elite]]

        top = int(order[0])
        if scores[top] > best_fitness:
            best_fitness = float(scores[top])
            best_layout = population[top]
        best_coverage_seen = max(best_coverage_seen, max(r.coverage_pct for r in records))

        record = GenerationRecord(
            generation=generation,
            best_fitness=float(scores[top]),
            best_ever_fitness=best_fitness,
            best_coverage_pct=records[top].coverage_pct,
            mean_fitness=float(scores.mean()),
        )
        history.append(record)
        _log.debug(
            "Generation %d: best %.3f, best-ever %.3f, layout %s",
            generation, record.best_fitness, best_fitness, best_layout,
        )
        if on_generation is not None:
            on_generation(record)

        injections = min(mode.injections, popsize - n_elite)
        next_population = list(elites)
        while len(next_population) < popsize - injections:
            parent = elites[int(rng.integers(n_elite))]
            next_population.append(mode.mutate(parent, rng, best_coverage_seen))
        for _ in range(injections):
            next_population.append(mode.initial_layout(rng))
        population = next_population

    coverage, satellite_count = evaluate_layout_with(
        best_layout, fitness.problem, final_settings, max_workers=settings.max_workers,
    )
    _log.info(
        "Genetic search finished: layout %s, %d satellites, %.2f%% coverage",
        best_layout, satellite_count, coverage,
    )
    return OptimizationResult(
        best_layout=best_layout,
        coverage_pct=coverage,
        satellite_count=satellite_count,
        best_fitness=best_fitness,
        history=tuple(history),
    )


def evolve_fixed_total(
    num_planes: int,
    total: int,
    problem: LayoutProblem,
    settings: GeneticSettings = GeneticSettings(population_size=20, generations=30),
    coverage_floor: float = 75.0,
    plan_bonus_enabled: bool = True,
    p_mut: float = 0.3,
    cache: FitnessCache[FitnessRecord] | None = None,
    search_settings: CoverageSettings = SEARCH_SETTINGS,
    final_settings: CoverageSettings = FINAL_SETTINGS,
) -> OptimizationResult:
    """
    Optimise how exactly `total` satellites are spread over `num_planes` planes.

    Args:
        num_planes: Number of orbital planes P.
        total: Satellite count N (>= 1), invariant during the search.
        problem: Phasing, inclination, semi-major axis, elevation mask.
        settings: Population size, generations, seed, worker threads.
        coverage_floor: Coverage below which layouts are heavily penalised.
        plan_bonus_enabled: Reward unused planes among floor-meeting layouts.
        p_mut: Probability of each of the P move trials per mutation.
        cache: Fitness cache of the run (fresh if None).
        search_settings: Coarse coverage resolution used while searching.
        final_settings: Fine resolution for the reported coverage.

    Returns:
        OptimizationResult; satellite_count always equals `total`.
    """
    mode = FixedTotalSearch(num_planes=num_planes, total=total, p_mut=p_mut)
    model = FixedTotalFitness(coverage_floor=coverage_floor, plan_bonus_enabled=plan_bonus_enabled)
    fitness = FitnessFunction(problem, model, settings=search_settings, cache=cache)
    return run_genetic_search(mode, fitness, settings, final_settings=final_settings)


def evolve_variable_total(
    num_planes: int,
    initial_total: int,
    problem: LayoutProblem,
    settings: GeneticSettings = GeneticSettings(population_size=30, generations=40),
    max_satellites: int | None = None,
    model: VariableTotalFitness = VariableTotalFitness(),
    rates: MutationRates = MutationRates(p_move=0.4, p_add=0.1, p_remove=0.05),
    cache: FitnessCache[FitnessRecord] | None = None,
    search_settings: CoverageSettings = SEARCH_SETTINGS,
    final_settings: CoverageSettings = FINAL_SETTINGS,
) -> OptimizationResult:
    """
    Optimise both the plane distribution and the number of satellites.

    Args:
        num_planes: Number of orbital planes P.
        initial_total: Satellite count of every random layout (>= 1).
        problem: Phasing, inclination, semi-major axis, elevation mask.
        settings: Population size, generations, seed, worker threads.
        max_satellites: Cap on N for the add operator (None = uncapped).
        model: Coefficients of the variable-total fitness.
        rates: Base move/add/remove probabilities.
        cache: Fitness cache of the run (fresh if None).
        search_settings: Coarse coverage resolution used while searching.
        final_settings: Fine resolution for the reported coverage.

    Returns:
        OptimizationResult with the final satellite count.
    """
    mode = VariableTotalSearch(
        num_planes=num_planes,
        initial_total=initial_total,
        coverage_target=model.coverage_target,
        max_satellites=max_satellites,
        rates=rates,
    )
    fitness = FitnessFunction(problem, model, settings=search_settings, cache=cache)
    return run_genetic_search(mode, fitness, settings, final_settings=final_settings)
