# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""Tests for the genetic layout search."""
import threading

import numpy as np
import pytest

from leo_coverage.domain.constellation import random_layout
from leo_coverage.domain.coverage import CoverageSettings
from leo_coverage.domain.errors import InvalidInputError
from leo_coverage.domain.fitness import (
    FitnessFunction,
    FixedTotalFitness,
    LayoutProblem,
    VariableTotalFitness,
    evaluate_layout_with,
)
from leo_coverage.domain.genetic_optimizer import (
    FixedTotalSearch,
    GeneticSettings,
    MutationRates,
    SearchMode,
    VariableTotalSearch,
    adapt_mutation_rates,
    elite_count,
    evolve_fixed_total,
    evolve_variable_total,
    mutate_fixed_total,
    mutate_variable_total,
    run_genetic_search,
)
from leo_coverage.domain.orbital_mechanics import OrbitalConstants


# ── Helpers ──────────────────────────────────────────────────────────

_PROBLEM = LayoutProblem(
    phasing_factor=1,
    inclination_deg=53.0,
    semi_major_axis_m=OrbitalConstants.R_EARTH + 800_000,
    min_elevation_deg=10.0,
)

_TINY = CoverageSettings(n_time_samples=2, lat_step_deg=20.0, lon_step_deg=20.0)


def _balance_evaluator(layout, problem, settings):
    """Coverage that rewards evenly filled planes and more satellites."""
    spread = max(layout) - min(layout)
    coverage = min(100.0, 60.0 + 2.0 * sum(layout) - 5.0 * spread)
    return coverage, sum(layout)


def _constant_evaluator(layout, problem, settings):
    return 80.0, sum(layout)


def _fixed_run(evaluator=_balance_evaluator, seed=3, generations=6, population_size=8,
               model=FixedTotalFitness(coverage_floor=0.0)):
    fitness = FitnessFunction(_PROBLEM, model, evaluator=evaluator)
    settings = GeneticSettings(population_size=population_size, generations=generations,
                               seed=seed, max_workers=2)
    mode = FixedTotalSearch(num_planes=4, total=12)
    return run_genetic_search(mode, fitness, settings, final_settings=_TINY)


class _CountingMode(SearchMode):
    """Delegating search mode that counts fresh layouts drawn."""

    def __init__(self, inner):
        self.inner = inner
        self.injections = inner.injections
        self.fresh = 0

    def initial_layout(self, rng):
        self.fresh += 1
        return self.inner.initial_layout(rng)

    def mutate(self, layout, rng, best_coverage_pct):
        return self.inner.mutate(layout, rng, best_coverage_pct)


class _GenerationLog:
    """Evaluator recording the generation in which each layout is computed."""

    def __init__(self):
        self.generation = 0
        self.computed = []
        self._lock = threading.Lock()

    def __call__(self, layout, problem, settings):
        with self._lock:
            self.computed.append((self.generation, layout))
        return _balance_evaluator(layout, problem, settings)

    def next_generation(self, record):
        self.generation = record.generation + 1


# ── Mutation operators ───────────────────────────────────────────────

class TestMutateFixedTotal:

    def test_total_and_length_preserved(self):
        rng = np.random.default_rng(0)
        layout = (5, 0, 3, 4)
        for _ in range(200):
            layout = mutate_fixed_total(layout, rng, p_mut=0.8)
            assert len(layout) == 4
            assert sum(layout) == 12
            assert min(layout) >= 0

    def test_zero_probability_is_identity(self):
        rng = np.random.default_rng(0)
        assert mutate_fixed_total((3, 2, 1), rng, p_mut=0.0) == (3, 2, 1)

    def test_moves_happen(self):
        rng = np.random.default_rng(1)
        results = {mutate_fixed_total((3, 3, 3), rng, p_mut=1.0) for _ in range(50)}
        assert len(results) > 1


class TestMutateVariableTotal:

    def test_never_drops_below_one_satellite(self):
        rng = np.random.default_rng(2)
        rates = MutationRates(p_move=0.5, p_add=0.0, p_remove=1.0)
        layout = (2, 1, 0)
        for _ in range(50):
            layout = mutate_variable_total(layout, rng, rates)
            assert sum(layout) >= 1
            assert min(layout) >= 0

    def test_add_respects_cap(self):
        rng = np.random.default_rng(3)
        rates = MutationRates(p_move=0.0, p_add=1.0, p_remove=0.0)
        assert sum(mutate_variable_total((2, 2), rng, rates, max_satellites=4)) == 4
        assert sum(mutate_variable_total((2, 2), rng, rates, max_satellites=5)) == 5

    def test_uncapped_add(self):
        rng = np.random.default_rng(4)
        rates = MutationRates(p_move=0.0, p_add=1.0, p_remove=0.0)
        assert sum(mutate_variable_total((1, 0), rng, rates)) == 2

    def test_remove_from_occupied_plane(self):
        rng = np.random.default_rng(5)
        rates = MutationRates(p_move=0.0, p_add=0.0, p_remove=1.0)
        assert mutate_variable_total((0, 3, 0), rng, rates) == (0, 2, 0)

    def test_single_satellite_not_moved_or_removed(self):
        rng = np.random.default_rng(6)
        rates = MutationRates(p_move=1.0, p_add=0.0, p_remove=1.0)
        assert mutate_variable_total((0, 1), rng, rates) == (0, 1)


class TestAdaptMutationRates:

    _BASE = MutationRates(p_move=0.4, p_add=0.1, p_remove=0.05)

    def test_below_target_favours_growth(self):
        rates = adapt_mutation_rates(self._BASE, best_coverage_pct=85.0, coverage_target=95.0)
        assert rates.p_add == pytest.approx(0.2)
        assert rates.p_remove == pytest.approx(0.025)
        assert rates.p_move == pytest.approx(0.2)

    def test_above_target_favours_shrinking(self):
        rates = adapt_mutation_rates(self._BASE, best_coverage_pct=100.0, coverage_target=95.0)
        assert rates.p_add < self._BASE.p_add
        assert rates.p_remove > self._BASE.p_remove

    def test_at_target_unchanged(self):
        assert adapt_mutation_rates(self._BASE, 95.0, 95.0) == self._BASE

    def test_gap_effect_saturates(self):
        far = adapt_mutation_rates(self._BASE, 10.0, 95.0)
        near = adapt_mutation_rates(self._BASE, 85.0, 95.0)
        assert far == near

    def test_probabilities_clipped(self):
        rates = adapt_mutation_rates(MutationRates(0.9, 0.9, 0.9), 0.0, 95.0)
        assert rates.p_add == 1.0


# ── Settings and modes ───────────────────────────────────────────────

class TestSettings:

    @pytest.mark.parametrize("population,expected", [(20, 5), (8, 2), (3, 1), (1, 1)])
    def test_elite_count(self, population, expected):
        assert elite_count(population) == expected

    def test_population_must_be_positive(self):
        with pytest.raises(InvalidInputError):
            GeneticSettings(population_size=0)

    def test_generations_non_negative(self):
        with pytest.raises(InvalidInputError):
            GeneticSettings(generations=-1)

    def test_workers_must_be_positive(self):
        with pytest.raises(InvalidInputError):
            GeneticSettings(max_workers=0)

    def test_fixed_total_must_be_positive(self):
        with pytest.raises(InvalidInputError):
            FixedTotalSearch(num_planes=3, total=0)

    def test_fixed_planes_must_be_positive(self):
        with pytest.raises(InvalidInputError):
            FixedTotalSearch(num_planes=0, total=5)

    def test_max_satellites_below_initial(self):
        with pytest.raises(InvalidInputError):
            VariableTotalSearch(num_planes=3, initial_total=10, max_satellites=5)

    def test_probability_out_of_range(self):
        with pytest.raises(InvalidInputError):
            VariableTotalSearch(num_planes=3, initial_total=10,
                                rates=MutationRates(p_move=1.5, p_add=0.1, p_remove=0.05))


# ── Search loop ──────────────────────────────────────────────────────

class TestRunGeneticSearch:

    def test_fixed_total_invariant(self):
        result = _fixed_run()
        assert sum(result.best_layout) == 12
        assert result.satellite_count == 12
        assert len(result.best_layout) == 4

    def test_history_length(self):
        result = _fixed_run(generations=5)
        assert len(result.history) == 5
        assert [r.generation for r in result.history] == list(range(5))

    def test_best_ever_non_decreasing(self):
        result = _fixed_run(generations=10)
        best_ever = [r.best_ever_fitness for r in result.history]
        assert all(b >= a for a, b in zip(best_ever, best_ever[1:]))
        assert all(r.best_ever_fitness >= r.best_fitness for r in result.history)
        assert result.best_fitness == best_ever[-1]

    def test_finds_balanced_layout(self):
        result = _fixed_run(generations=30, population_size=16)
        assert result.best_layout == (3, 3, 3, 3)

    def test_reproducible_with_seed(self):
        first = _fixed_run(seed=11)
        second = _fixed_run(seed=11)
        assert first.best_layout == second.best_layout
        assert first.history == second.history

    def test_ties_keep_first_layout(self):
        model = FixedTotalFitness(coverage_floor=0.0, plan_bonus_enabled=False)
        result = _fixed_run(evaluator=_constant_evaluator, seed=5, model=model)
        expected = random_layout(4, 12, np.random.default_rng(5))
        assert result.best_layout == expected

    def test_zero_generations(self):
        result = _fixed_run(generations=0, seed=9)
        assert result.history == ()
        assert result.best_layout == random_layout(4, 12, np.random.default_rng(9))

    def test_final_coverage_from_final_settings(self):
        result = _fixed_run()
        # The fake search coverage is never used for the reported figure
        coverage, count = evaluate_layout_with(result.best_layout, _PROBLEM, _TINY)
        assert result.coverage_pct == pytest.approx(coverage)
        assert result.satellite_count == count

    def test_callback_per_generation(self):
        seen = []
        fitness = FitnessFunction(_PROBLEM, FixedTotalFitness(), evaluator=_balance_evaluator)
        run_genetic_search(
            FixedTotalSearch(num_planes=3, total=6), fitness,
            GeneticSettings(population_size=4, generations=3, seed=0),
            final_settings=_TINY, on_generation=seen.append,
        )
        assert [r.generation for r in seen] == [0, 1, 2]

    def test_evaluation_error_aborts(self):
        def failing(layout, problem, settings):
            raise ValueError("coverage failed")

        fitness = FitnessFunction(_PROBLEM, FixedTotalFitness(), evaluator=failing)
        with pytest.raises(ValueError, match="coverage failed"):
            run_genetic_search(
                FixedTotalSearch(num_planes=3, total=6), fitness,
                GeneticSettings(population_size=4, generations=2, seed=0),
                final_settings=_TINY,
            )

    def test_variable_total_stays_within_bounds(self):
        fitness = FitnessFunction(_PROBLEM, VariableTotalFitness(), evaluator=_balance_evaluator)
        mode = VariableTotalSearch(num_planes=3, initial_total=6, max_satellites=15,
                                   coverage_target=95.0)
        result = run_genetic_search(
            mode, fitness, GeneticSettings(population_size=10, generations=12, seed=4),
            final_settings=_TINY,
        )
        assert 1 <= sum(result.best_layout) <= 15
        assert result.satellite_count == sum(result.best_layout)

    def test_single_member_population(self):
        fitness = FitnessFunction(_PROBLEM, VariableTotalFitness(), evaluator=_balance_evaluator)
        mode = VariableTotalSearch(num_planes=2, initial_total=3)
        result = run_genetic_search(
            mode, fitness, GeneticSettings(population_size=1, generations=3, seed=0),
            final_settings=_TINY,
        )
        assert len(result.history) == 3

    def test_fixed_mode_draws_no_fresh_layouts_after_start(self):
        mode = _CountingMode(FixedTotalSearch(num_planes=4, total=12))
        fitness = FitnessFunction(_PROBLEM, FixedTotalFitness(), evaluator=_balance_evaluator)
        run_genetic_search(mode, fitness, GeneticSettings(population_size=8, generations=5, seed=2),
                           final_settings=_TINY)
        assert mode.fresh == 8

    def test_variable_mode_injects_one_layout_per_generation(self):
        mode = _CountingMode(VariableTotalSearch(num_planes=3, initial_total=6))
        fitness = FitnessFunction(_PROBLEM, VariableTotalFitness(), evaluator=_balance_evaluator)
        run_genetic_search(mode, fitness, GeneticSettings(population_size=8, generations=5, seed=2),
                           final_settings=_TINY)
        assert mode.fresh == 8 + 5

    def test_no_recompute_across_generations(self):
        log = _GenerationLog()
        fitness = FitnessFunction(_PROBLEM, FixedTotalFitness(), evaluator=log)
        run_genetic_search(
            FixedTotalSearch(num_planes=4, total=12), fitness,
            GeneticSettings(population_size=8, generations=6, seed=7, max_workers=4),
            final_settings=_TINY, on_generation=log.next_generation,
        )
        first_seen = {}
        for generation, layout in log.computed:
            first_seen.setdefault(layout, generation)
            assert generation == first_seen[layout], f"{layout} recomputed in generation {generation}"


# ── Entry points ─────────────────────────────────────────────────────

class TestEvolve:

    def test_evolve_fixed_total(self):
        result = evolve_fixed_total(
            3, 6, _PROBLEM,
            settings=GeneticSettings(population_size=4, generations=2, seed=1, max_workers=2),
            search_settings=_TINY, final_settings=_TINY,
        )
        assert sum(result.best_layout) == 6
        assert result.satellite_count == 6
        assert 0.0 < result.coverage_pct <= 100.0

    def test_evolve_variable_total(self):
        result = evolve_variable_total(
            3, 6, _PROBLEM,
            settings=GeneticSettings(population_size=4, generations=2, seed=1, max_workers=2),
            max_satellites=9,
            search_settings=_TINY, final_settings=_TINY,
        )
        assert 1 <= result.satellite_count <= 9
        assert len(result.history) == 2

    def test_invalid_total(self):
        with pytest.raises(InvalidInputError):
            evolve_fixed_total(3, 0, _PROBLEM, settings=GeneticSettings(population_size=2, generations=1))
