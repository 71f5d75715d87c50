"""Base classes for L0-regularized problem solvers and related utilities."""

import numpy as np
from abc import abstractmethod
from dataclasses import dataclass
from enum import Enum
from numpy.typing import NDArray
from typing import Optional
from sbnb.problem import Problem


class Status(Enum):
    """Solver status.

    Attributes
    ----------
    UNKNOWN: str
        Unknown solver status.
    RUNNING: str
        The solver is running.
    NODE_LIMIT: str
        The solver reached the node limit.
    TIME_LIMIT: str
        The solver reached the time limit.
    INFEASIBLE: str
        The problem is infeasible.
    UNBOUNDED: str
        The problem is unbounded.
    OPTIMAL: str
        The solver found an optimal solution.
    """

    def __str__(self):
        return str(self.value)

    UNKNOWN = "unknown"
    RUNNING = "running"
    NODE_LIMIT = "node_limit"
    TIME_LIMIT = "time_limit"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    OPTIMAL = "optimal"


@dataclass
class Result:
    """Solver results.

    Attributes
    ----------
    termination_status: Status
        Solver status.
    solve_time: float
        Solve time in seconds.
    node_count: int
        Number of nodes explored, ``-1`` when not available.
    x: NDArray
        Problem solution.
    objective_value: float
        Objective value.
    lower_bound: float
        Best lower bound on the optimal objective value.
    trace: dict, default=None
        Solver trace if available, otherwise `None`.
    """

    termination_status: Status
    solve_time: float
    node_count: int
    x: NDArray
    objective_value: float
    lower_bound: float
    trace: Optional[dict]

    def __str__(self) -> str:
        s = ""
        s += "Result\n"
        s += "  Status     : {}\n".format(self.termination_status.value)
        s += "  Objective  : {:.5f}\n".format(self.objective_value)
        s += "  Solve time : {:.5f} seconds\n".format(self.solve_time)
        s += "  Node count : {:d}\n".format(self.node_count)
        s += "  Non-zeros  : {:d}\n".format(self.nnz)
        s += "  Inf-norm x : {:.5f}".format(self.inf_norm)
        return s

    @property
    def nnz(self) -> int:
        """Number of non-zeros in the solution."""
        return int(np.count_nonzero(self.x))

    @property
    def inf_norm(self) -> float:
        """Infinity-norm of the solution."""
        return float(np.max(np.abs(self.x), initial=0.0))


class BaseSolver:
    r"""Base class for solvers of L0-regularized least-squares problems.

    The problem is expressed as

    .. math::

        \textstyle\min_{\|\mathbf{x}\|_{\infty} \leq M} \tfrac{1}{2}\|\mathbf{y} - \mathbf{Ax}\|_2^2 + \lambda\|\mathbf{x}\|_0

    and is described by a :class:`sbnb.Problem` instance."""  # noqa: E501

    @abstractmethod
    def solve(
        self,
        problem: Problem,
        x_init: Optional[NDArray] = None,
    ) -> Result:
        r"""Solve an L0-regularized problem.

        Parameters
        ----------
        problem: Problem
            Problem to solve.
        x_init: NDArray, default=None
            Stating point for the solver.

        Returns
        -------
        result: Result
            Solver results.
        """
        ...
