# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Orbital mechanics for idealised circular orbits.

Pure functions mapping a satellite's orbital elements and a time offset
to a position in the inertial (ECI) and Earth-fixed (ECEF) frames.
Uniform circular Keplerian motion only: no J2, no drag.
"""
import math
from dataclasses import dataclass

import numpy as np

from .errors import DegenerateGeometryError

_TWO_PI = 2.0 * math.pi


@dataclass(frozen=True)
class _OrbitalConstants:
    """Fixed physical constants used by every coverage computation."""
    MU_EARTH: float = 3.986004418e14          # m³/s² — gravitational parameter
    R_EARTH: float = 6.371e6                  # m — mean radius
    EARTH_ROTATION_RATE: float = 7.2921150e-5  # rad/s — sidereal rotation rate


OrbitalConstants: _OrbitalConstants = _OrbitalConstants()


@dataclass(frozen=True)
class Satellite:
    """A satellite on an idealised circular orbit.

    Angles are stored in radians; RAAN and mean anomaly are wrapped
    to [0, 2π) by the constellation builders.
    """
    semi_major_axis_m: float
    inclination_rad: float
    raan_rad: float
    mean_anomaly_rad: float


def wrap_angle(angle_rad: float) -> float:
    """Wrap an angle to [0, 2π)."""
    wrapped = angle_rad % _TWO_PI
    # Float modulo can land exactly on 2π for tiny negative inputs
    return 0.0 if wrapped >= _TWO_PI else wrapped


def rotation_x(theta_rad: float) -> np.ndarray:
    """Right-handed rotation matrix about the X axis."""
    c = math.cos(theta_rad)
    s = math.sin(theta_rad)
    return np.array([
        [1.0, 0.0, 0.0],
        [0.0, c, -s],
        [0.0, s, c],
    ])


def rotation_z(theta_rad: float) -> np.ndarray:
    """Right-handed rotation matrix about the Z (polar) axis."""
    c = math.cos(theta_rad)
    s = math.sin(theta_rad)
    return np.array([
        [c, -s, 0.0],
        [s, c, 0.0],
        [0.0, 0.0, 1.0],
    ])


def mean_motion(semi_major_axis_m: float) -> float:
    """Mean motion n = √(μ/a³) in rad/s."""
    return math.sqrt(OrbitalConstants.MU_EARTH / semi_major_axis_m**3)


def orbital_period(semi_major_axis_m: float) -> float:
    """Orbital period T = 2π·√(a³/μ) in seconds."""
    return _TWO_PI * math.sqrt(semi_major_axis_m**3 / OrbitalConstants.MU_EARTH)


def eci_position(sat: Satellite, t: float) -> np.ndarray:
    """
    Inertial position of a satellite at time t.

    Uniform circular motion: u = M0 + n·t, then
    r = Rz(Ω) · Rx(i) · Rz(u) · (a, 0, 0).

    Args:
        sat: Satellite orbital elements.
        t: Seconds since epoch.

    Returns:
        Position [x, y, z] in metres (ECI).
    """
    u = sat.mean_anomaly_rad + mean_motion(sat.semi_major_axis_m) * t
    rotation = rotation_z(sat.raan_rad) @ rotation_x(sat.inclination_rad) @ rotation_z(u)
    return rotation @ np.array([sat.semi_major_axis_m, 0.0, 0.0])


def eci_positions(satellites: list[Satellite], t: float) -> np.ndarray:
    """
    Vectorised eci_position for a whole constellation.

    Expands Rz(Ω)·Rx(i)·Rz(u)·(a,0,0) in closed form so all satellites
    are propagated with array arithmetic.

    Returns:
        Array of shape (len(satellites), 3) in metres.
    """
    if not satellites:
        return np.zeros((0, 3))

    elements = np.array([
        (s.semi_major_axis_m, s.inclination_rad, s.raan_rad, s.mean_anomaly_rad)
        for s in satellites
    ])
    a = elements[:, 0]
    inc = elements[:, 1]
    raan = elements[:, 2]
    n = np.sqrt(OrbitalConstants.MU_EARTH / a**3)
    u = elements[:, 3] + n * t

    cos_u = np.cos(u)
    sin_u = np.sin(u)
    cos_raan = np.cos(raan)
    sin_raan = np.sin(raan)
    cos_i = np.cos(inc)

    x = a * (cos_raan * cos_u - sin_raan * sin_u * cos_i)
    y = a * (sin_raan * cos_u + cos_raan * sin_u * cos_i)
    z = a * (sin_u * np.sin(inc))
    return np.column_stack((x, y, z))


def ecef_from_eci(r: np.ndarray, t: float) -> np.ndarray:
    """
    Rotate inertial vector(s) into the Earth-fixed frame.

    Applies Rz(-ωe·t). Accepts a single vector of shape (3,) or a stack
    of vectors of shape (n, 3).
    """
    rotation = rotation_z(-OrbitalConstants.EARTH_ROTATION_RATE * t)
    return np.asarray(r, dtype=float) @ rotation.T


def eci_from_ecef(r: np.ndarray, t: float) -> np.ndarray:
    """Inverse of ecef_from_eci: rotate by +ωe·t about the polar axis."""
    rotation = rotation_z(OrbitalConstants.EARTH_ROTATION_RATE * t)
    return np.asarray(r, dtype=float) @ rotation.T


def latlon_from_ecef(r: np.ndarray) -> tuple[float, float]:
    """
    Spherical latitude/longitude of an Earth-fixed vector.

    Returns:
        (lat_deg, lon_deg) with lon in (-180, 180].

    Raises:
        DegenerateGeometryError: If the vector has zero length.
    """
    x, y, z = (float(c) for c in r)
    rho = math.sqrt(x * x + y * y + z * z)
    if rho == 0.0:
        raise DegenerateGeometryError("latitude/longitude undefined for a zero vector")
    # Clamp guards asin against |z/ρ| drifting a hair above 1
    lat = math.asin(max(-1.0, min(1.0, z / rho)))
    lon = math.atan2(y, x)
    return math.degrees(lat), math.degrees(lon)


def ground_track(sat: Satellite, times: list[float]) -> list[tuple[float, float]]:
    """
    Sub-satellite points over a list of instants.

    Args:
        sat: Satellite orbital elements.
        times: Seconds since epoch.

    Returns:
        List of (lat_deg, lon_deg), one per instant.
    """
    return [latlon_from_ecef(ecef_from_eci(eci_position(sat, t), t)) for t in times]
