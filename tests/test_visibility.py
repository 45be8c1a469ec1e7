# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""Tests for the elevation-mask visibility test."""
import math

import numpy as np
import pytest

from leo_coverage.domain.orbital_mechanics import OrbitalConstants
from leo_coverage.domain.visibility import (
    elevation_deg,
    ground_unit_vector,
    is_visible,
    visibility_cosine_threshold,
)


# ── Helpers ──────────────────────────────────────────────────────────

_RHO = OrbitalConstants.R_EARTH + 800_000


def _sat_at(lat_deg, lon_deg, rho=_RHO):
    return rho * ground_unit_vector(lat_deg, lon_deg)


def _max_central_angle_deg(rho, eps_deg):
    return math.degrees(math.acos(visibility_cosine_threshold(rho, eps_deg)))


# ── Threshold ────────────────────────────────────────────────────────

class TestThreshold:

    def test_horizon_limit(self):
        assert visibility_cosine_threshold(_RHO, 0.0) == pytest.approx(OrbitalConstants.R_EARTH / _RHO)

    def test_shrinks_with_elevation_mask(self):
        thresholds = [visibility_cosine_threshold(_RHO, eps) for eps in range(0, 90, 5)]
        assert all(b > a for a, b in zip(thresholds, thresholds[1:]))

    def test_zenith_mask_leaves_only_overhead(self):
        assert visibility_cosine_threshold(_RHO, 90.0) == pytest.approx(1.0)

    def test_array_input(self):
        rho = np.array([_RHO, _RHO + 500_000])
        result = visibility_cosine_threshold(rho, 10.0)
        assert result.shape == (2,)
        # Higher satellites see a wider cap
        assert result[1] < result[0]

    def test_scalar_returns_float(self):
        assert isinstance(visibility_cosine_threshold(_RHO, 10.0), float)


# ── Visibility ───────────────────────────────────────────────────────

class TestIsVisible:

    def test_overhead(self):
        assert is_visible(_sat_at(45.0, 10.0), 45.0, 10.0, 10.0)

    def test_antipode(self):
        assert not is_visible(_sat_at(-45.0, -170.0), 45.0, 10.0, 0.0)

    def test_just_inside_and_outside_limit(self):
        gamma = _max_central_angle_deg(_RHO, 10.0)
        assert is_visible(_sat_at(0.0, gamma - 0.01), 0.0, 0.0, 10.0)
        assert not is_visible(_sat_at(0.0, gamma + 0.01), 0.0, 0.0, 10.0)

    def test_visible_set_shrinks_with_mask(self):
        rng = np.random.default_rng(3)
        for _ in range(200):
            lat, lon = rng.uniform(-30, 30), rng.uniform(-30, 30)
            sat = _sat_at(0.0, 0.0)
            seen = [is_visible(sat, lat, lon, eps) for eps in (0.0, 10.0, 20.0, 40.0)]
            # Once hidden at some mask, hidden at every higher mask
            assert seen == sorted(seen, reverse=True)

    def test_agrees_with_elevation_angle(self):
        rng = np.random.default_rng(11)
        checked = 0
        for _ in range(500):
            lat, lon = rng.uniform(-40, 40), rng.uniform(-40, 40)
            eps = rng.uniform(0, 60)
            sat = _sat_at(0.0, 0.0)
            elev = elevation_deg(sat, lat, lon)
            if abs(elev - eps) < 1e-6:
                continue
            assert is_visible(sat, lat, lon, eps) == (elev >= eps)
            checked += 1
        assert checked > 400


class TestElevation:

    def test_overhead_is_zenith(self):
        assert elevation_deg(_sat_at(20.0, 30.0), 20.0, 30.0) == pytest.approx(90.0)

    def test_horizon_at_horizon_limit(self):
        gamma = math.degrees(math.acos(OrbitalConstants.R_EARTH / _RHO))
        assert elevation_deg(_sat_at(0.0, gamma), 0.0, 0.0) == pytest.approx(0.0, abs=1e-6)
