# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Grid-based coverage analysis.

Counts, for each point of a latitude/longitude grid, how many satellites
are visible above the elevation mask; a point is covered when that count
reaches the required number. Aggregates to an instantaneous coverage
percentage and to a mean over one orbital period.

Per call, every satellite's Earth-fixed direction and visibility
threshold are computed once and shared, read-only, by all grid rows.
Rows are processed in contiguous blocks that may run on worker threads;
per-block covered counts are summed, so block order is irrelevant.
"""
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from .constellation import build_constellation, as_layout
from .errors import InvalidInputError
from .ground_grid import GroundGrid, cached_ground_grid
from .orbital_mechanics import (
    Satellite,
    ecef_from_eci,
    eci_positions,
    orbital_period,
)
from .parallel import fork_join, resolve_workers, split_range
from .visibility import visibility_cosine_threshold

# Upper bound on grid-point × satellite products held in memory per row block
_MAX_BLOCK_PRODUCTS = 2_000_000


@dataclass(frozen=True)
class CoveragePoint:
    """A grid point with its satellite visibility count."""
    lat_deg: float
    lon_deg: float
    visible_count: int


@dataclass(frozen=True)
class CoverageSettings:
    """Sampling resolution of a coverage evaluation."""
    n_time_samples: int = 100
    lat_step_deg: float = 2.0
    lon_step_deg: float = 2.0


# Coarse settings for search-time fitness, fine settings for the final figure
SEARCH_SETTINGS = CoverageSettings(n_time_samples=10, lat_step_deg=6.0, lon_step_deg=6.0)
FINAL_SETTINGS = CoverageSettings(n_time_samples=75, lat_step_deg=1.0, lon_step_deg=1.0)


@dataclass(frozen=True)
class _SatelliteGeometry:
    unit_ecef: np.ndarray    # (n, 3) direction of each satellite
    threshold: np.ndarray    # (n,) cos of max visible central angle


def _check_required_count(required_count: int) -> None:
    if required_count < 1:
        raise InvalidInputError(f"required_count must be >= 1, got {required_count}")


def _satellite_geometry(
    constellation: Sequence[Satellite],
    t: float,
    min_elevation_deg: float,
) -> _SatelliteGeometry:
    r_ecef = ecef_from_eci(eci_positions(list(constellation), t), t)
    rho = np.linalg.norm(r_ecef, axis=1)
    if len(rho) == 0:
        return _SatelliteGeometry(unit_ecef=np.zeros((0, 3)), threshold=np.zeros(0))
    return _SatelliteGeometry(
        unit_ecef=r_ecef / rho[:, np.newaxis],
        threshold=np.atleast_1d(visibility_cosine_threshold(rho, min_elevation_deg)),
    )


def _row_blocks(grid: GroundGrid, num_satellites: int, workers: int) -> list[tuple[int, int]]:
    n_lat, n_lon = grid.shape
    per_row = max(1, n_lon * num_satellites)
    rows_per_block = max(1, _MAX_BLOCK_PRODUCTS // per_row)
    parts = max(workers, -(-n_lat // rows_per_block))
    return split_range(n_lat, parts)


def _block_visible_counts(
    grid: GroundGrid,
    geometry: _SatelliteGeometry,
    block: tuple[int, int],
) -> np.ndarray:
    start, stop = block
    g = grid.row_unit_vectors(start, stop)
    cos_gamma = g @ geometry.unit_ecef.T
    return np.count_nonzero(cos_gamma >= geometry.threshold, axis=1)


def visible_counts(
    constellation: Sequence[Satellite],
    t: float,
    grid: GroundGrid,
    min_elevation_deg: float,
    max_workers: int | None = None,
) -> np.ndarray:
    """
    Number of visible satellites at every grid point.

    Returns:
        Integer array of shape (n_lat, n_lon).
    """
    geometry = _satellite_geometry(constellation, t, min_elevation_deg)
    workers = resolve_workers(max_workers)
    blocks = _row_blocks(grid, len(constellation), workers)

    def count_block(block: tuple[int, int]) -> list[np.ndarray]:
        return [_block_visible_counts(grid, geometry, block)]

    parts = fork_join(count_block, blocks, lambda acc, part: acc + part, [], workers)
    return np.concatenate(parts).reshape(grid.shape)


def compute_coverage_snapshot(
    constellation: Sequence[Satellite],
    t: float,
    grid: GroundGrid,
    min_elevation_deg: float = 10.0,
) -> list[CoveragePoint]:
    """
    Coverage snapshot: how many satellites are visible per grid point.

    Args:
        constellation: Satellites to evaluate.
        t: Seconds since epoch.
        grid: Ground grid to sample.
        min_elevation_deg: Minimum elevation for visibility.

    Returns:
        List of CoveragePoint objects, row-major over the grid.
    """
    counts = visible_counts(constellation, t, grid, min_elevation_deg)
    points: list[CoveragePoint] = []
    for i, lat in enumerate(grid.lats_deg):
        for j, lon in enumerate(grid.lons_deg):
            points.append(CoveragePoint(
                lat_deg=float(lat), lon_deg=float(lon), visible_count=int(counts[i, j]),
            ))
    return points


def instantaneous_coverage(
    constellation: Sequence[Satellite],
    t: float,
    grid: GroundGrid,
    min_elevation_deg: float,
    required_count: int = 1,
    max_workers: int | None = None,
) -> float:
    """
    Percentage of grid points seen by at least `required_count` satellites at t.

    Args:
        constellation: Satellites to evaluate (may be empty: 0%).
        t: Seconds since epoch.
        grid: Ground grid to sample.
        min_elevation_deg: Minimum elevation for visibility.
        required_count: Satellites needed to call a point covered.
        max_workers: Threads over row blocks (None = default, 1 = inline).

    Returns:
        Coverage in percent, 0-100.
    """
    _check_required_count(required_count)
    geometry = _satellite_geometry(constellation, t, min_elevation_deg)
    workers = resolve_workers(max_workers)
    blocks = _row_blocks(grid, len(constellation), workers)

    def covered_in_block(block: tuple[int, int]) -> int:
        counts = _block_visible_counts(grid, geometry, block)
        return int(np.count_nonzero(counts >= required_count))

    covered = fork_join(covered_in_block, blocks, lambda a, b: a + b, 0, workers)
    return 100.0 * covered / grid.num_points


def coverage_time_series(
    constellation: Sequence[Satellite],
    times: Sequence[float],
    grid: GroundGrid,
    min_elevation_deg: float,
    required_count: int = 1,
    max_workers: int | None = None,
) -> list[float]:
    """Instantaneous coverage at each instant in `times`."""
    return [
        instantaneous_coverage(
            constellation, t, grid, min_elevation_deg,
            required_count=required_count, max_workers=max_workers,
        )
        for t in times
    ]


def sample_times(period_s: float, n_time_samples: int) -> np.ndarray:
    """n evenly spaced instants covering [0, period)."""
    if n_time_samples < 1:
        raise InvalidInputError(f"n_time_samples must be >= 1, got {n_time_samples}")
    return period_s * np.arange(n_time_samples) / n_time_samples


def mean_coverage_on_grid(
    constellation: Sequence[Satellite],
    grid: GroundGrid,
    min_elevation_deg: float,
    n_time_samples: int = 100,
    required_count: int = 1,
    max_workers: int | None = None,
) -> float:
    """
    Arithmetic mean of instantaneous coverage over one orbital period.

    The period comes from the first satellite's semi-major axis; all
    satellites are assumed to share it.

    Raises:
        InvalidInputError: If the constellation is empty.
    """
    if not constellation:
        raise InvalidInputError("cannot compute mean coverage of an empty constellation")
    _check_required_count(required_count)

    period = orbital_period(constellation[0].semi_major_axis_m)
    series = coverage_time_series(
        constellation, sample_times(period, n_time_samples), grid, min_elevation_deg,
        required_count=required_count, max_workers=max_workers,
    )
    return sum(series) / len(series)


def mean_coverage(
    constellation: Sequence[Satellite],
    lat_range: tuple[float, float],
    min_elevation_deg: float,
    n_time_samples: int = 100,
    required_count: int = 1,
    lat_step_deg: float = 2.0,
    lon_step_deg: float = 2.0,
    max_workers: int | None = None,
) -> float:
    """
    Mean coverage over one orbital period on a grid spanning `lat_range`.

    Args:
        constellation: Satellites to evaluate (non-empty).
        lat_range: (min_lat, max_lat) in degrees.
        min_elevation_deg: Minimum elevation for visibility.
        n_time_samples: Instants sampled over [0, T).
        required_count: Satellites needed to call a point covered.
        lat_step_deg: Latitude grid spacing.
        lon_step_deg: Longitude grid spacing.
        max_workers: Threads over row blocks.

    Returns:
        Mean coverage in percent.

    Raises:
        InvalidInputError: If the constellation is empty.
    """
    grid = cached_ground_grid(lat_range[0], lat_range[1], lat_step_deg, lon_step_deg)
    return mean_coverage_on_grid(
        constellation, grid, min_elevation_deg,
        n_time_samples=n_time_samples, required_count=required_count,
        max_workers=max_workers,
    )


def latitude_band_deg(inclination_deg: float) -> float:
    """Highest latitude reached by the ground track of an orbit."""
    inc = abs(inclination_deg) % 360.0
    if inc > 180.0:
        inc = 360.0 - inc
    return min(inc, 180.0 - inc)


def evaluate_layout(
    layout: Sequence[int],
    phasing_factor: float,
    inclination_deg: float,
    semi_major_axis_m: float,
    min_elevation_deg: float,
    n_time_samples: int = 100,
    lat_step_deg: float = 2.0,
    lon_step_deg: float = 2.0,
    required_count: int = 1,
    max_workers: int | None = None,
) -> tuple[float, int]:
    """
    Build a constellation from `layout` and measure its mean coverage.

    The grid spans the latitude band reached by the ground track,
    [-i, +i] (or [-(180-i), 180-i] for retrograde orbits): ground points
    outside it are never evaluated.

    Returns:
        (mean_coverage_percent, satellite_count)

    Raises:
        InvalidInputError: If the layout holds no satellite.
    """
    counts = as_layout(layout)
    if sum(counts) == 0:
        raise InvalidInputError(f"layout {counts} holds no satellite")

    satellites = build_constellation(counts, phasing_factor, inclination_deg, semi_major_axis_m)
    band = latitude_band_deg(inclination_deg)
    coverage = mean_coverage(
        satellites, (-band, band), min_elevation_deg,
        n_time_samples=n_time_samples, required_count=required_count,
        lat_step_deg=lat_step_deg, lon_step_deg=lon_step_deg,
        max_workers=max_workers,
    )
    return coverage, len(satellites)
