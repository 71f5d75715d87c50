import time
import numpy as np
from dataclasses import dataclass, field
from numpy.typing import NDArray
from typing import Optional
from sbnb.problem import Problem


class BnbNode:
    """:class:`.solver.BnbSolver` tree node.

    Parameters
    ----------
    category: int
        Node category (root: -1, zero: 0, one: 1).
    S0: NDArray[np.bool_]
        Set of indices forced to be zero.
    S1: NDArray[np.bool_]
        Set of indices forced to be non-zero.
    Sb: NDArray[np.bool_]
        Set of free indices.
    Mpos: NDArray[np.float64]
        Upper bounds on the entries of ``x``, non-negative.
    Mneg: NDArray[np.float64]
        Lower bounds on the entries of ``x``, non-positive.
    lb: float
        Node lower bound.
    ub: float
        Node upper bound.
    x: NDArray[np.float64]
        Relaxation solution.
    w: NDArray[np.float64]
        Value of ``problem.A @ self.x``.
    u: NDArray[np.float64]
        Value of ``problem.y - self.w``.
    x_ub: NDArray[np.float64]
        Feasible solution attaining the node upper bound.
    time_lb: float
        Time to compute the lower bound.
    time_ub: float
        Time to compute the upper bound.
    """

    def __init__(
        self,
        category: int,
        S0: NDArray,
        S1: NDArray,
        Sb: NDArray,
        Mpos: NDArray,
        Mneg: NDArray,
        lb: float,
        ub: float,
        x: NDArray,
        w: NDArray,
        u: NDArray,
        x_ub: NDArray,
        time_lb: float = 0.0,
        time_ub: float = 0.0,
    ) -> None:
        n = x.size
        if not (S0.size == S1.size == Sb.size == n):
            raise ValueError("Node sets and `x` have inconsistent sizes.")
        if np.any(S0 & S1) or np.any(S0 & Sb) or np.any(S1 & Sb):
            raise ValueError("Node sets `S0`, `S1` and `Sb` must be disjoint.")
        if not np.all(S0 | S1 | Sb):
            raise ValueError("Node sets `S0`, `S1` and `Sb` must cover x.")
        if np.any(Mpos < 0.0) or np.any(Mneg > 0.0):
            raise ValueError("Node bounds must satisfy `Mneg <= 0 <= Mpos`.")

        self.category = category
        self.S0 = S0
        self.S1 = S1
        self.Sb = Sb
        self.Mpos = Mpos
        self.Mneg = Mneg
        self.lb = lb
        self.ub = ub
        self.x = x
        self.w = w
        self.u = u
        self.x_ub = x_ub
        self.time_lb = time_lb
        self.time_ub = time_ub

    @classmethod
    def root(cls, problem: Problem, x: Optional[NDArray] = None):
        """Root node of the Branch-and-Bound tree of a :class:`.Problem`,
        with all the indices free and the bounds set to ``[-M, M]``.

        Parameters
        ----------
        problem: Problem
            The :class:`.Problem` being solved.
        x: NDArray, default=None
            Warm-start of the relaxation solution. Defaults to zero.
        """
        n = problem.n
        Mpos = np.full(n, problem.M)
        Mneg = np.full(n, -problem.M)
        if x is None:
            x = np.zeros(n)
        else:
            x = np.clip(np.array(x, dtype=np.float64), Mneg, Mpos)
        w = problem.A @ x
        return cls(
            -1,
            np.zeros(n, dtype=np.bool_),
            np.zeros(n, dtype=np.bool_),
            np.ones(n, dtype=np.bool_),
            Mpos,
            Mneg,
            -np.inf,
            np.inf,
            x,
            w,
            problem.y - w,
            np.zeros(n),
        )

    def __str__(self) -> str:
        s = ""
        s += "BnbNode\n"
        s += "  Category    : {}\n".format(self.category)
        s += "  S0/S1/Sb    : {}/{}/{}\n".format(
            self.card_S0, self.card_S1, self.card_Sb
        )
        s += "  Lower bound : {:.4f}\n".format(self.lb)
        s += "  Upper bound : {:.4f}".format(self.ub)
        return s

    def __copy__(self):
        return BnbNode(
            self.category,
            np.copy(self.S0),
            np.copy(self.S1),
            np.copy(self.Sb),
            np.copy(self.Mpos),
            np.copy(self.Mneg),
            self.lb,
            self.ub,
            np.copy(self.x),
            np.copy(self.w),
            np.copy(self.u),
            np.copy(self.x_ub),
            self.time_lb,
            self.time_ub,
        )

    @property
    def rel_gap(self):
        """Relative gap between the lower and upper bounds."""
        return (self.ub - self.lb) / (np.abs(self.ub) + 1e-16)

    @property
    def card_S0(self):
        return int(np.sum(self.S0))

    @property
    def card_S1(self):
        return int(np.sum(self.S1))

    @property
    def card_Sb(self):
        return int(np.sum(self.Sb))

    @property
    def depth(self):
        return self.card_S0 + self.card_S1

    def fix_to(self, problem: Problem, idx: int, val: bool):
        """Fix an entry of the node to zero or non-zero. Update the
        corresponding attributes of the node.

        Parameters
        ----------
        problem: Problem
            The :class:`.Problem` being solved.
        idx: int
            Index to fix.
        val: bool
            If ``False``, the entry is fixed to zero. If ``True``, the entry is
            fixed to non-zero.
        """
        if not self.Sb[idx]:
            raise ValueError("Index {} is not free in the node.".format(idx))
        self.Sb[idx] = False
        if val:
            self.category = 1
            self.S1[idx] = True
        else:
            self.category = 0
            self.S0[idx] = True
            if self.x[idx] != 0.0:
                self.w -= self.x[idx] * problem.A[:, idx]
                self.u = problem.y - self.w
                self.x[idx] = 0.0

    def child(self, problem: Problem, idx: int, val: bool):
        """Child node with the entry ``idx`` fixed to zero (``val=False``) or
        non-zero (``val=True``)."""
        child = self.__copy__()
        child.time_lb = 0.0
        child.time_ub = 0.0
        child.fix_to(problem, idx, val)
        return child


@dataclass
class TreeState:
    """Global state of a Branch-and-Bound tree shared by all its nodes.

    Attributes
    ----------
    upper_bound: float
        Objective value of the incumbent solution.
    start_time: float
        Time at which the tree search started.
    node_count: int
        Number of nodes explored.
    """

    upper_bound: float = np.inf
    start_time: float = field(default_factory=time.time)
    node_count: int = 0

    def incumbent_upper_bound(self) -> float:
        return self.upper_bound

    def elapsed_time(self) -> float:
        """Elapsed time from the start time."""
        return time.time() - self.start_time

    def update_incumbent(self, value: float) -> bool:
        """Replace the incumbent value when ``value`` improves on it and
        return whether it was replaced."""
        if value < self.upper_bound:
            self.upper_bound = value
            return True
        return False
