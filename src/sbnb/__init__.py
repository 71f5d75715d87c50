"""SBnB: A Screening Branch-and-Bound solver for L0-regularized problems."""

from .problem import Problem, compute_lmbd_max

__version__ = "0.0.1"
__authors__ = "Theo Guyard"

__all__ = [
    "Problem",
    "compute_lmbd_max",
]
