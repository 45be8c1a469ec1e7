# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Error types raised by the coverage domain.

Both subclass ValueError so callers that already catch ValueError keep
working.
"""


class InvalidInputError(ValueError):
    """Input cannot be evaluated (empty constellation, bad parameters)."""


class DegenerateGeometryError(ValueError):
    """Geometry is undefined for the given vector (e.g. zero length)."""
