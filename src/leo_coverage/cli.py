# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Command-line interface for constellation coverage.

Usage:
    # Mean coverage of a 3-plane layout
    leo-coverage evaluate --layout 4,4,4 --phasing 1 --inclination 53 --altitude-km 550

    # Best distribution of 24 satellites over 6 planes
    leo-coverage optimize fixed --planes 6 --satellites 24 --inclination 53 --seed 1

    # Let the satellite count float, starting from 20
    leo-coverage optimize variable --planes 6 --satellites 20 --max-satellites 40

    # Grow the variable-mode winner greedily up to 40 satellites
    leo-coverage optimize variable --planes 6 --satellites 20 --max-satellites 40 --refine
"""
import argparse
import logging
import sys

from leo_coverage.domain.coverage import CoverageSettings, FINAL_SETTINGS, SEARCH_SETTINGS
from leo_coverage.domain.fitness import LayoutProblem, VariableTotalFitness, evaluate_layout_with
from leo_coverage.domain.genetic_optimizer import (
    GeneticSettings,
    MutationRates,
    OptimizationResult,
    evolve_fixed_total,
    evolve_variable_total,
)
from leo_coverage.domain.local_search import (
    LocalSearchResult,
    improve_layout_fixed_total,
    improve_layout_variable_total,
)
from leo_coverage.domain.orbital_mechanics import OrbitalConstants


def parse_layout(text: str) -> tuple[int, ...]:
    """Parse '4,0,3' into (4, 0, 3)."""
    try:
        return tuple(int(part) for part in text.split(',') if part.strip())
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid layout {text!r}: {e}") from e


def positive_int(text: str) -> int:
    """Parse a strictly positive integer option."""
    try:
        value = int(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid integer {text!r}") from e
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return value


def semi_major_axis_from_altitude(altitude_km: float) -> float:
    return OrbitalConstants.R_EARTH + altitude_km * 1000.0


def _problem_from_args(args: argparse.Namespace) -> LayoutProblem:
    return LayoutProblem(
        phasing_factor=args.phasing,
        inclination_deg=args.inclination,
        semi_major_axis_m=semi_major_axis_from_altitude(args.altitude_km),
        min_elevation_deg=args.elevation,
        required_count=args.required_count,
    )


def run_evaluate(args: argparse.Namespace) -> tuple[float, int]:
    """Mean coverage of the layout given on the command line."""
    settings = CoverageSettings(
        n_time_samples=args.samples,
        lat_step_deg=args.lat_step,
        lon_step_deg=args.lon_step,
    )
    return evaluate_layout_with(
        args.layout, _problem_from_args(args), settings, max_workers=args.workers,
    )


def run_optimize(args: argparse.Namespace) -> OptimizationResult:
    """Genetic search in the requested mode."""
    problem = _problem_from_args(args)
    if args.mode == 'fixed':
        settings = GeneticSettings(
            population_size=args.population if args.population is not None else 20,
            generations=args.generations if args.generations is not None else 30,
            seed=args.seed,
            max_workers=args.workers,
        )
        return evolve_fixed_total(
            args.planes, args.satellites, problem,
            settings=settings,
            coverage_floor=args.coverage_floor,
            plan_bonus_enabled=not args.no_plane_bonus,
            search_settings=SEARCH_SETTINGS,
            final_settings=FINAL_SETTINGS,
        )

    settings = GeneticSettings(
        population_size=args.population if args.population is not None else 30,
        generations=args.generations if args.generations is not None else 40,
        seed=args.seed,
        max_workers=args.workers,
    )
    return evolve_variable_total(
        args.planes, args.satellites, problem,
        settings=settings,
        max_satellites=args.max_satellites,
        model=VariableTotalFitness(coverage_target=args.coverage_target),
        rates=MutationRates(p_move=0.4, p_add=0.1, p_remove=0.05),
    )


def run_refine(args: argparse.Namespace, result: OptimizationResult) -> LocalSearchResult:
    """Local search from the genetic winner, at final resolution."""
    problem = _problem_from_args(args)
    if args.mode == 'fixed':
        return improve_layout_fixed_total(
            result.best_layout, problem,
            settings=FINAL_SETTINGS, max_workers=args.workers,
        )
    cap = args.max_satellites if args.max_satellites is not None else 50
    return improve_layout_variable_total(
        result.best_layout, problem,
        settings=FINAL_SETTINGS, max_satellites=cap, max_workers=args.workers,
    )


def _add_orbit_arguments(parser: argparse.ArgumentParser) -> None:
    orbit = parser.add_argument_group('orbit')
    orbit.add_argument(
        '--phasing', type=float, default=1.0,
        help="Walker phasing factor F (default: 1)"
    )
    orbit.add_argument(
        '--inclination', type=float, default=53.0,
        help="Inclination in degrees (default: 53)"
    )
    orbit.add_argument(
        '--altitude-km', type=float, default=550.0,
        help="Orbit altitude above the spherical Earth in km (default: 550)"
    )
    orbit.add_argument(
        '--elevation', type=float, default=10.0,
        help="Minimum elevation angle in degrees (default: 10)"
    )
    orbit.add_argument(
        '--required-count', type=int, default=1,
        help="Satellites that must be visible for a point to count as covered (default: 1)"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Evaluate and optimise LEO constellation ground coverage"
    )
    parser.add_argument(
        '--verbose', '-v', action='store_true', default=False,
        help="Log every generation (DEBUG)"
    )
    parser.add_argument(
        '--workers', type=positive_int, default=None,
        help="Worker threads (default: executor default, 1 = serial)"
    )
    commands = parser.add_subparsers(dest='command', required=True)

    evaluate = commands.add_parser('evaluate', help="Mean coverage of one layout")
    evaluate.add_argument(
        '--layout', type=parse_layout, required=True,
        help="Satellites per plane, comma-separated (e.g. 4,4,4)"
    )
    _add_orbit_arguments(evaluate)
    evaluate.add_argument('--samples', type=int, default=100, help="Time samples per period (default: 100)")
    evaluate.add_argument('--lat-step', type=float, default=2.0, help="Grid latitude step in degrees (default: 2)")
    evaluate.add_argument('--lon-step', type=float, default=2.0, help="Grid longitude step in degrees (default: 2)")

    optimize = commands.add_parser('optimize', help="Genetic search over plane layouts")
    optimize.add_argument('mode', choices=['fixed', 'variable'], help="Keep N fixed or let it vary")
    optimize.add_argument('--planes', type=int, required=True, help="Number of orbital planes")
    optimize.add_argument(
        '--satellites', type=int, required=True,
        help="Total satellites (fixed) or initial total (variable)"
    )
    _add_orbit_arguments(optimize)
    optimize.add_argument('--population', type=int, default=None, help="Population size (default: 20 fixed, 30 variable)")
    optimize.add_argument('--generations', type=int, default=None, help="Generations (default: 30 fixed, 40 variable)")
    optimize.add_argument('--seed', type=int, default=None, help="Random seed for a reproducible run")
    optimize.add_argument(
        '--coverage-floor', type=float, default=75.0,
        help="Fixed mode: coverage below which layouts are penalised (default: 75)"
    )
    optimize.add_argument(
        '--no-plane-bonus', action='store_true', default=False,
        help="Fixed mode: do not reward unused planes"
    )
    optimize.add_argument(
        '--coverage-target', type=float, default=95.0,
        help="Variable mode: coverage target in percent (default: 95)"
    )
    optimize.add_argument(
        '--max-satellites', type=int, default=None,
        help="Variable mode: upper bound on the satellite total"
    )
    optimize.add_argument(
        '--refine', action='store_true', default=False,
        help="Refine the winner: move satellites between planes (fixed) "
             "or add them one at a time up to --max-satellites, default 50 (variable)"
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == 'evaluate':
            coverage, count = run_evaluate(args)
            print(f"Layout {list(args.layout)}: {count} satellites, mean coverage {coverage:.2f}%")
            return

        result = run_optimize(args)
        print(
            f"Best layout {list(result.best_layout)}: {result.satellite_count} satellites, "
            f"coverage {result.coverage_pct:.2f}% (fitness {result.best_fitness:.3f})"
        )
        if args.refine:
            refined = run_refine(args, result)
            print(
                f"Refined layout {list(refined.layout)}: {sum(refined.layout)} satellites, "
                f"coverage {refined.coverage_pct:.2f}% after {refined.moves} moves"
            )

    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
