# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Constellation generation from per-plane layout vectors.

A layout vector holds one non-negative satellite count per orbital
plane. The generalised Walker-Delta builder spreads planes evenly in
RAAN and phases satellites between planes with the factor F.
"""
import math
from collections.abc import Sequence

import numpy as np

from .errors import InvalidInputError
from .orbital_mechanics import Satellite, wrap_angle

Layout = tuple[int, ...]


def as_layout(layout: Sequence[int]) -> Layout:
    """
    Normalise a layout vector to a tuple of ints.

    Raises:
        InvalidInputError: If any entry is negative or not integral.
    """
    normalised = []
    for count in layout:
        value = int(count)
        if value != count:
            raise InvalidInputError(f"layout entries must be integers, got {count!r}")
        if value < 0:
            raise InvalidInputError(f"layout entries must be >= 0, got {value}")
        normalised.append(value)
    return tuple(normalised)


def total_satellites(layout: Sequence[int]) -> int:
    """Total satellite count N of a layout."""
    return int(sum(layout))


def empty_plane_count(layout: Sequence[int]) -> int:
    """Number of planes holding no satellite."""
    return sum(1 for count in layout if count == 0)


def build_constellation(
    layout: Sequence[int],
    phasing_factor: float,
    inclination_deg: float,
    semi_major_axis_m: float,
) -> list[Satellite]:
    """
    Build satellites from a per-plane layout vector.

    For plane p (1-based) holding S_p satellites, with P = len(layout):
        Ω_p = 2π·p/P
        M0  = 2π·(s/S_p + F·p/(S_p·P))   for s = 1..S_p

    Empty planes are skipped; an all-zero layout yields an empty list.

    Args:
        layout: Satellites per plane.
        phasing_factor: Walker phasing parameter F.
        inclination_deg: Orbital inclination (degrees).
        semi_major_axis_m: Semi-major axis (m), typically R_EARTH + altitude.

    Returns:
        List of Satellite objects, plane by plane.
    """
    counts = as_layout(layout)
    num_planes = len(counts)
    i_rad = math.radians(inclination_deg)

    satellites: list[Satellite] = []
    for p, sats_in_plane in enumerate(counts, start=1):
        if sats_in_plane == 0:
            continue
        raan = wrap_angle(2.0 * math.pi * p / num_planes)
        for s in range(1, sats_in_plane + 1):
            m0 = 2.0 * math.pi * (
                s / sats_in_plane
                + phasing_factor * p / (sats_in_plane * num_planes)
            )
            satellites.append(Satellite(
                semi_major_axis_m=semi_major_axis_m,
                inclination_rad=i_rad,
                raan_rad=raan,
                mean_anomaly_rad=wrap_angle(m0),
            ))

    return satellites


def walker_delta(
    num_planes: int,
    sats_per_plane: int,
    phasing_factor: float,
    inclination_deg: float,
    semi_major_axis_m: float,
) -> list[Satellite]:
    """
    Classic uniform Walker-Delta constellation i:T/P/F.

    Uses 0-based plane and satellite indices, so the first plane sits at
    Ω = 0 and its first satellite at M0 = 0.
    """
    if num_planes < 1:
        raise InvalidInputError(f"num_planes must be >= 1, got {num_planes}")
    if sats_per_plane < 1:
        raise InvalidInputError(f"sats_per_plane must be >= 1, got {sats_per_plane}")

    i_rad = math.radians(inclination_deg)
    satellites: list[Satellite] = []
    for p in range(num_planes):
        raan = 2.0 * math.pi * p / num_planes
        for s in range(sats_per_plane):
            m0 = 2.0 * math.pi * (
                s / sats_per_plane
                + phasing_factor * p / (sats_per_plane * num_planes)
            )
            satellites.append(Satellite(
                semi_major_axis_m=semi_major_axis_m,
                inclination_rad=i_rad,
                raan_rad=wrap_angle(raan),
                mean_anomaly_rad=wrap_angle(m0),
            ))
    return satellites


def random_layout(num_planes: int, total: int, rng: np.random.Generator) -> Layout:
    """
    Distribute `total` satellites uniformly at random over the planes.

    Each satellite draws an independent plane index, which is equivalent
    to multinomial sampling with equal plane probabilities.
    """
    if num_planes < 1:
        raise InvalidInputError(f"num_planes must be >= 1, got {num_planes}")
    if total < 0:
        raise InvalidInputError(f"total must be >= 0, got {total}")
    counts = np.zeros(num_planes, dtype=int)
    for plane in rng.integers(0, num_planes, size=total):
        counts[plane] += 1
    return tuple(int(c) for c in counts)


def balanced_layout(num_planes: int, total: int) -> Layout:
    """Spread satellites as evenly as possible; leading planes take the remainder."""
    if num_planes < 1:
        raise InvalidInputError(f"num_planes must be >= 1, got {num_planes}")
    if total < 0:
        raise InvalidInputError(f"total must be >= 0, got {total}")
    base, remainder = divmod(total, num_planes)
    return tuple(base + 1 if k < remainder else base for k in range(num_planes))


def biased_layout(
    num_planes: int,
    total: int,
    weights: Sequence[float] = (4.0, 4.0, 4.0),
) -> Layout:
    """
    Deterministic layout that favours the leading planes.

    Plane k gets floor(total·w_k / Σw), where w_k comes from `weights` for
    the first len(weights) planes and is 1 elsewhere. The satellites lost
    to rounding are dealt round-robin starting at plane 0.

    Args:
        num_planes: Number of orbital planes.
        total: Satellites to distribute.
        weights: Positive weights of the leading planes.

    Returns:
        Layout summing to `total`.
    """
    if num_planes < 1:
        raise InvalidInputError(f"num_planes must be >= 1, got {num_planes}")
    if total < 0:
        raise InvalidInputError(f"total must be >= 0, got {total}")
    if any(w <= 0 for w in weights):
        raise InvalidInputError(f"weights must be positive, got {tuple(weights)}")

    w = np.ones(num_planes)
    lead = min(len(weights), num_planes)
    w[:lead] = weights[:lead]
    counts = np.floor(total * w / w.sum()).astype(int)
    for k in range(total - int(counts.sum())):
        counts[k % num_planes] += 1
    return tuple(int(c) for c in counts)
