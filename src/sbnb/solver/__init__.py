"""L0-regularized problem solvers."""

from .base import BaseSolver, Result, Status
from .node import BnbNode, TreeState
from .bounding import BaseBoundingSolver, BoundingType, CoordinateDescent
from .bnb import (
    BnbBranchingStrategy,
    BnbExplorationStrategy,
    BnbParams,
    BnbSolver,
)
from .mip import MipSolver

__all__ = [
    "BaseSolver",
    "Result",
    "Status",
    "BnbNode",
    "TreeState",
    "BaseBoundingSolver",
    "BoundingType",
    "CoordinateDescent",
    "BnbBranchingStrategy",
    "BnbExplorationStrategy",
    "BnbParams",
    "BnbSolver",
    "MipSolver",
]
