# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Satellite visibility from a ground point.

Visibility is decided by comparing cosines of Earth-central angles, so
the per-point test needs only a dot product. The arccos lives in the
per-satellite threshold, which callers compute once and reuse across a
whole grid.
"""
import math

import numpy as np

from .orbital_mechanics import OrbitalConstants


def ground_unit_vector(lat_deg: float, lon_deg: float) -> np.ndarray:
    """Earth-fixed unit vector (cosφ·cosλ, cosφ·sinλ, sinφ)."""
    phi = math.radians(lat_deg)
    lam = math.radians(lon_deg)
    return np.array([
        math.cos(phi) * math.cos(lam),
        math.cos(phi) * math.sin(lam),
        math.sin(phi),
    ])


def visibility_cosine_threshold(rho_m, min_elevation_deg: float):
    """
    Cosine of the largest Earth-central angle at which a satellite at
    distance ρ is seen at or above the elevation mask ε.

    From the ground-point/centre/satellite triangle,
    cos(γ + ε) = (Re/ρ)·cos ε at the visibility limit, so
    cos γ_max = cos(arccos((Re/ρ)·cos ε) - ε). With ε = 0 this is the
    horizon limit Re/ρ.

    Works on scalars and numpy arrays alike.
    """
    eps = math.radians(min_elevation_deg)
    ratio = OrbitalConstants.R_EARTH / np.asarray(rho_m, dtype=float) * math.cos(eps)
    threshold = np.cos(np.arccos(np.clip(ratio, -1.0, 1.0)) - eps)
    if threshold.ndim == 0:
        return float(threshold)
    return threshold


def is_visible(
    sat_position_ecef: np.ndarray,
    lat_deg: float,
    lon_deg: float,
    min_elevation_deg: float,
) -> bool:
    """
    Whether a satellite is at or above the elevation mask of a ground point.

    The mask is exact for a spherical Earth: the test is equivalent to
    elevation_deg(...) >= min_elevation_deg. It is not the horizon-scaled
    approximation cos γ >= (Re/ρ)·cos ε, which loosens as ε grows.

    Args:
        sat_position_ecef: Satellite position in the Earth-fixed frame (m).
        lat_deg: Ground point latitude (degrees).
        lon_deg: Ground point longitude (degrees).
        min_elevation_deg: Minimum elevation angle (degrees).

    Returns:
        True if cos γ = (r·g)/ρ reaches cos(arccos((Re/ρ)·cos ε) − ε).
    """
    r = np.asarray(sat_position_ecef, dtype=float)
    rho = float(np.linalg.norm(r))
    cos_gamma = float(r @ ground_unit_vector(lat_deg, lon_deg)) / rho
    return cos_gamma >= visibility_cosine_threshold(rho, min_elevation_deg)


def elevation_deg(sat_position_ecef: np.ndarray, lat_deg: float, lon_deg: float) -> float:
    """Elevation of a satellite above the local horizon of a spherical-Earth point."""
    g = ground_unit_vector(lat_deg, lon_deg)
    line_of_sight = np.asarray(sat_position_ecef, dtype=float) - OrbitalConstants.R_EARTH * g
    distance = float(np.linalg.norm(line_of_sight))
    sin_el = float(line_of_sight @ g) / distance
    return math.degrees(math.asin(max(-1.0, min(1.0, sin_el))))
