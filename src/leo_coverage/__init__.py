# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
LEO Coverage

Design and evaluate low-Earth-orbit satellite constellations for ground
coverage. Builds generalised Walker-Delta constellations from per-plane
layout vectors, propagates idealised circular orbits, measures
instantaneous and period-mean coverage on latitude/longitude grids, and
optimises the distribution of satellites across planes with a genetic
search (fixed or variable satellite total) and a local-search refinement.
"""

from leo_coverage.domain.errors import (
    InvalidInputError,
    DegenerateGeometryError,
)
from leo_coverage.domain.orbital_mechanics import (
    OrbitalConstants,
    Satellite,
    mean_motion,
    orbital_period,
    eci_position,
    eci_positions,
    ecef_from_eci,
    eci_from_ecef,
    latlon_from_ecef,
    ground_track,
)
from leo_coverage.domain.constellation import (
    Layout,
    as_layout,
    total_satellites,
    empty_plane_count,
    build_constellation,
    walker_delta,
    random_layout,
    balanced_layout,
    biased_layout,
)
from leo_coverage.domain.ground_grid import (
    GroundGrid,
    build_ground_grid,
    cached_ground_grid,
)
from leo_coverage.domain.visibility import (
    is_visible,
    visibility_cosine_threshold,
    elevation_deg,
)
from leo_coverage.domain.coverage import (
    CoveragePoint,
    CoverageSettings,
    SEARCH_SETTINGS,
    FINAL_SETTINGS,
    visible_counts,
    compute_coverage_snapshot,
    instantaneous_coverage,
    coverage_time_series,
    mean_coverage,
    mean_coverage_on_grid,
    evaluate_layout,
)
from leo_coverage.domain.parallel import (
    fork_join,
    parallel_map,
)
from leo_coverage.domain.fitness_cache import (
    FitnessCache,
    layout_key,
)
from leo_coverage.domain.fitness import (
    LayoutProblem,
    FitnessRecord,
    FitnessModel,
    FixedTotalFitness,
    VariableTotalFitness,
    FitnessFunction,
    fitness_fixed,
    fitness_variable,
)
from leo_coverage.domain.genetic_optimizer import (
    GeneticSettings,
    GenerationRecord,
    OptimizationResult,
    MutationRates,
    mutate_fixed_total,
    mutate_variable_total,
    run_genetic_search,
    evolve_fixed_total,
    evolve_variable_total,
)
from leo_coverage.domain.local_search import (
    LocalSearchResult,
    improve_layout_fixed_total,
    improve_layout_variable_total,
)

__version__ = "0.1.0"

__all__ = [
    "InvalidInputError",
    "DegenerateGeometryError",
    "OrbitalConstants",
    "Satellite",
    "mean_motion",
    "orbital_period",
    "eci_position",
    "eci_positions",
    "ecef_from_eci",
    "eci_from_ecef",
    "latlon_from_ecef",
    "ground_track",
    "Layout",
    "as_layout",
    "total_satellites",
    "empty_plane_count",
    "build_constellation",
    "walker_delta",
    "random_layout",
    "balanced_layout",
    "biased_layout",
    "GroundGrid",
    "build_ground_grid",
    "cached_ground_grid",
    "is_visible",
    "visibility_cosine_threshold",
    "elevation_deg",
    "CoveragePoint",
    "CoverageSettings",
    "SEARCH_SETTINGS",
    "FINAL_SETTINGS",
    "visible_counts",
    "compute_coverage_snapshot",
    "instantaneous_coverage",
    "coverage_time_series",
    "mean_coverage",
    "mean_coverage_on_grid",
    "evaluate_layout",
    "fork_join",
    "parallel_map",
    "FitnessCache",
    "layout_key",
    "LayoutProblem",
    "FitnessRecord",
    "FitnessModel",
    "FixedTotalFitness",
    "VariableTotalFitness",
    "FitnessFunction",
    "fitness_fixed",
    "fitness_variable",
    "GeneticSettings",
    "GenerationRecord",
    "OptimizationResult",
    "MutationRates",
    "mutate_fixed_total",
    "mutate_variable_total",
    "run_genetic_search",
    "evolve_fixed_total",
    "evolve_variable_total",
    "LocalSearchResult",
    "improve_layout_fixed_total",
    "improve_layout_variable_total",
]
