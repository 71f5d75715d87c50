"""Branch-and-Bound bounding solvers."""

from .base import BaseBoundingSolver, BoundingType
from .coordinate_descent import CoordinateDescent

__all__ = [
    "BaseBoundingSolver",
    "BoundingType",
    "CoordinateDescent",
]
