# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Precomputed latitude/longitude sampling grid.

Latitudes run from lat_min to lat_max and longitudes from -180° to
180°, both inclusive, at fixed steps. Cosines and sines of every
coordinate (and the resulting unit vectors) are computed once, so the
many coverage evaluations of one fitness computation share them.
"""
import functools
import math
from dataclasses import dataclass

import numpy as np

from .errors import InvalidInputError

# Absorbs float error when the last sample lands exactly on the bound
_RANGE_EPS = 1e-9


@dataclass(frozen=True, eq=False)
class GroundGrid:
    """Immutable lat/lon grid with cached trigonometry.

    All arrays are read-only and safe to share between threads.
    """
    lats_deg: np.ndarray
    lons_deg: np.ndarray
    cos_lat: np.ndarray
    sin_lat: np.ndarray
    cos_lon: np.ndarray
    sin_lon: np.ndarray

    @property
    def num_points(self) -> int:
        return len(self.lats_deg) * len(self.lons_deg)

    @property
    def shape(self) -> tuple[int, int]:
        return len(self.lats_deg), len(self.lons_deg)

    def row_unit_vectors(self, start: int, stop: int) -> np.ndarray:
        """
        Earth-fixed unit vectors for latitude rows [start, stop).

        g = (cosφ·cosλ, cosφ·sinλ, sinφ), flattened row-major to shape
        ((stop - start) · n_lon, 3).
        """
        cos_lat = self.cos_lat[start:stop, np.newaxis]
        sin_lat = self.sin_lat[start:stop, np.newaxis]
        gx = cos_lat * self.cos_lon[np.newaxis, :]
        gy = cos_lat * self.sin_lon[np.newaxis, :]
        gz = np.broadcast_to(sin_lat, gx.shape)
        return np.stack((gx.ravel(), gy.ravel(), gz.ravel()), axis=1)


def _inclusive_range(start: float, stop: float, step: float) -> np.ndarray:
    """start, start+step, ... up to and including stop when it falls on the grid."""
    if step <= 0:
        raise InvalidInputError(f"step must be positive, got {step}")
    if stop < start:
        raise InvalidInputError(f"range end {stop} is below range start {start}")
    count = int(math.floor((stop - start) / step + _RANGE_EPS)) + 1
    return start + step * np.arange(count, dtype=float)


def _readonly(values: np.ndarray) -> np.ndarray:
    values.setflags(write=False)
    return values


def build_ground_grid(
    lat_min_deg: float,
    lat_max_deg: float,
    lat_step_deg: float = 2.0,
    lon_step_deg: float = 2.0,
) -> GroundGrid:
    """
    Build a regular grid between lat_min and lat_max.

    Args:
        lat_min_deg: Lowest sampled latitude (degrees).
        lat_max_deg: Highest latitude bound (degrees, inclusive if on-grid).
        lat_step_deg: Latitude spacing (degrees).
        lon_step_deg: Longitude spacing (degrees).

    Returns:
        GroundGrid with precomputed trigonometry.
    """
    lats = _inclusive_range(float(lat_min_deg), float(lat_max_deg), float(lat_step_deg))
    lons = _inclusive_range(-180.0, 180.0, float(lon_step_deg))
    lat_rad = np.radians(lats)
    lon_rad = np.radians(lons)

    return GroundGrid(
        lats_deg=_readonly(lats),
        lons_deg=_readonly(lons),
        cos_lat=_readonly(np.cos(lat_rad)),
        sin_lat=_readonly(np.sin(lat_rad)),
        cos_lon=_readonly(np.cos(lon_rad)),
        sin_lon=_readonly(np.sin(lon_rad)),
    )


@functools.lru_cache(maxsize=64)
def cached_ground_grid(
    lat_min_deg: float,
    lat_max_deg: float,
    lat_step_deg: float = 2.0,
    lon_step_deg: float = 2.0,
) -> GroundGrid:
    """Memoised build_ground_grid, keyed by the grid configuration."""
    return build_ground_grid(lat_min_deg, lat_max_deg, lat_step_deg, lon_step_deg)
