"""Branch-and-Bound solver for L0-regularized problems."""

import numpy as np
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from numpy.typing import NDArray
from sbnb.problem import Problem
from sbnb.solver.base import BaseSolver, Result, Status
from sbnb.solver.bounding import (
    BaseBoundingSolver,
    BoundingType,
    CoordinateDescent,
)
from sbnb.solver.node import BnbNode, TreeState


class BnbExplorationStrategy(Enum):
    """:class:`.solver.BnbSolver` exploration strategy.

    Attributes
    ----------
    BFS: str
        Breadth-first search.
    DFS: str
        Depth-first search.
    BBS: str
        Best-bound search.
    MIX: str
        Starts with a DFS strategy and switches to a BBS strategy when the
        relative gap is within a factor `mix_threshold` from the target one.
    """

    BFS = "BFS"
    DFS = "DFS"
    BBS = "BBS"
    MIX = "MIX"

    def mix_threshold(self):
        return 1e-1


class BnbBranchingStrategy(Enum):
    """:class:`.solver.BnbSolver` branching strategy.

    Attributes
    ----------
    LARGEST: str
        Select the largest entry in absolute value in the relaxation solution
        among indices that are still unfixed.
    """

    LARGEST = "LARGEST"


@dataclass
class BnbParams:
    """:class:`.solver.BnbSolver` parameters.

    Parameters
    ----------
    exploration_strategy: BnbExplorationStrategy
        Branch-and-Bound exploration strategy.
    branching_strategy: BnbBranchingStrategy
        Branch-and-Bound branching strategy.
    maxtime: float
        Time limit in seconds, shared by the tree search and the bounding
        operations.
    maxnodes: int
        Limit on the number of nodes explored.
    rel_tol: float
        Relative tolerance on the gap between the global bounds.
    int_tol: float
        Threshold under which an entry of the solution is considered zero.
    tolgap: float
        Absolute duality gap targeted by the bounding solver.
    maxiter: int
        Maximum number of sweeps of the bounding solver.
    dualpruning: bool
        Whether to stop lower bounding operations as soon as the dual value
        exceeds the incumbent value.
    l0screening: bool
        Whether to fix free entries whose zero or non-zero child can be
        pruned during lower bounding operations.
    l1screening: bool
        Whether to use gap-safe screening of the relaxation solution.
    bigmpeeling: bool
        Whether to tighten the node Big-M bounds during lower bounding
        operations.
    seed: int
        Seed of the bounding solver random generator.
    verbose: bool
        Whether to toggle solver verbosity.
    trace: bool
        Whether to store the solver trace.
    """

    exploration_strategy: BnbExplorationStrategy = BnbExplorationStrategy.MIX
    branching_strategy: BnbBranchingStrategy = BnbBranchingStrategy.LARGEST
    maxtime: float = np.inf
    maxnodes: int = sys.maxsize
    rel_tol: float = 1e-4
    int_tol: float = 1e-8
    tolgap: float = 1e-8
    maxiter: int = 10_000
    dualpruning: bool = True
    l0screening: bool = True
    l1screening: bool = True
    bigmpeeling: bool = True
    seed: Optional[int] = None
    verbose: bool = False
    trace: bool = False

    def __post_init__(self):
        if self.maxtime < 0.0:
            raise ValueError("Parameter `maxtime` must be non-negative.")
        if self.maxnodes < 0:
            raise ValueError("Parameter `maxnodes` must be non-negative.")
        if self.rel_tol < 0.0:
            raise ValueError("Parameter `rel_tol` must be non-negative.")
        if self.tolgap < 0.0:
            raise ValueError("Parameter `tolgap` must be non-negative.")


class BnbSolver(BaseSolver):
    """Branch-and-Bound solver for L0-regularized problems.

    Parameters
    ----------
    bounding_solver: BaseBoundingSolver, default=None
        Solver used for the bounding operations. Defaults to a
        :class:`.CoordinateDescent` instance configured from the parameters.
    **kwargs: keyword arguments
        Parameters passed to a :class:`BnbParams` instance.
    """

    _trace_keys = [
        "timer",
        "node_count",
        "queue_length",
        "lower_bound",
        "upper_bound",
        "abs_gap",
        "rel_gap",
        "supp_left",
        "node_lb",
        "node_ub",
        "node_time_lb",
        "node_time_ub",
        "node_card_S0",
        "node_card_S1",
        "node_card_Sb",
        "node_depth",
    ]

    def __init__(
        self,
        bounding_solver: Optional[BaseBoundingSolver] = None,
        **kwargs,
    ) -> None:
        self.params = BnbParams(**kwargs)
        if bounding_solver is None:
            bounding_solver = CoordinateDescent(
                tolgap=self.params.tolgap,
                maxiter=self.params.maxiter,
                seed=self.params.seed,
            )
        self.bounding_solver = bounding_solver
        self.status = Status.RUNNING
        self.problem = None
        self.tree = None
        self.queue = None
        self.x = None
        self.lower_bound = None
        self.trace = None

    def __str__(self):
        return "BnbSolver"

    @property
    def upper_bound(self):
        """Objective value of the incumbent solution."""
        return self.tree.upper_bound

    @property
    def node_count(self):
        return self.tree.node_count

    @property
    def abs_gap(self):
        """Absolute gap between the lower and upper bounds."""
        return self.upper_bound - self.lower_bound

    @property
    def rel_gap(self):
        """Relative gap between the lower and upper bounds."""
        return (self.upper_bound - self.lower_bound) / (
            np.abs(self.upper_bound) + 1e-10
        )

    @property
    def timer(self):
        """Elapsed time from the start time."""
        return self.tree.elapsed_time()

    @property
    def queue_length(self):
        """Length of the Branch-and-Bound queue."""
        return len(self.queue)

    @property
    def supp_left(self):
        """Proportion of supports left to explore."""
        if len(self.queue) == 0:
            return 0.0
        return sum(
            [2.0 ** (qnode.card_Sb - self.problem.n) for qnode in self.queue]
        )

    def setup(self, problem: Problem, x_init: Optional[NDArray]):
        if x_init is None:
            x_init = np.zeros(problem.n)
        if x_init.shape != (problem.n,):
            raise ValueError("Parameter `x_init` has an invalid shape.")

        self.problem = problem
        self.status = Status.RUNNING
        self.queue = []
        self.x = np.copy(x_init)
        self.lower_bound = -np.inf
        self.trace = {key: [] for key in self._trace_keys}

        # The tree state starts its timer on creation
        self.tree = TreeState(upper_bound=problem.value(x_init))

        self.queue.append(BnbNode.root(problem))

    def print_header(self):
        s = "-" * 68 + "\n"
        s += "|"
        s += " {:>6}".format("Nodes")
        s += " {:>6}".format("Timer")
        s += " {:>5}".format("S0")
        s += " {:>5}".format("S1")
        s += " {:>5}".format("Sb")
        s += " {:>6}".format("Lower")
        s += " {:>6}".format("Upper")
        s += " {:>9}".format("Abs gap")
        s += " {:>9}".format("Rel gap")
        s += "|" + "\n"
        s += "-" * 68
        print(s)

    def print_progress(self, node: BnbNode):
        s = "|"
        s += " {:>6d}".format(self.node_count)
        s += " {:>6.2f}".format(self.timer)
        s += " {:>5d}".format(node.card_S0)
        s += " {:>5d}".format(node.card_S1)
        s += " {:>5d}".format(node.card_Sb)
        s += " {:>6.2f}".format(self.lower_bound)
        s += " {:>6.2f}".format(self.upper_bound)
        s += " {:>9.2e}".format(self.abs_gap)
        s += " {:>9.2e}".format(self.rel_gap)
        s += "|"
        print(s)

    def print_footer(self):
        s = "-" * 68
        print(s)

    def can_continue(self):
        if self.timer >= self.params.maxtime:
            self.status = Status.TIME_LIMIT
        elif self.node_count >= self.params.maxnodes:
            self.status = Status.NODE_LIMIT
        elif len(self.queue) == 0:
            self.status = Status.OPTIMAL
        elif self.rel_gap < self.params.rel_tol:
            self.status = Status.OPTIMAL

        return self.status == Status.RUNNING

    def compute_lower_bound(self, node: BnbNode):
        start_time = time.time()
        self.bounding_solver.bound(
            self.problem,
            self.tree,
            node,
            self.params,
            BoundingType.LOWER,
        )
        node.time_lb = time.time() - start_time

    def compute_upper_bound(self, node: BnbNode):
        # Zero children keep the feasible point of their parent
        if node.category == 0:
            return
        start_time = time.time()
        self.bounding_solver.bound(
            self.problem,
            self.tree,
            node,
            self.params,
            BoundingType.UPPER,
        )
        node.time_ub = time.time() - start_time

    def next_node(self):
        strategy = self.params.exploration_strategy
        if strategy == BnbExplorationStrategy.DFS:
            next_node = self.queue.pop()
        elif strategy == BnbExplorationStrategy.BFS:
            next_node = self.queue.pop(0)
        elif strategy == BnbExplorationStrategy.BBS:
            next_node = self.queue.pop(
                np.argmin([qnode.lb for qnode in self.queue])
            )
        elif strategy == BnbExplorationStrategy.MIX:
            ratio = self.rel_gap / self.params.rel_tol
            if ratio < strategy.mix_threshold():
                next_node = self.queue.pop(
                    np.argmin([qnode.lb for qnode in self.queue])
                )
            else:
                next_node = self.queue.pop()
        else:
            raise NotImplementedError
        self.tree.node_count += 1
        return next_node

    def prune(self, node: BnbNode):
        return node.lb >= self.upper_bound

    def is_feasible(self, node: BnbNode):
        return node.rel_gap <= self.params.rel_tol

    def update_trace(self, node: BnbNode):
        for key in self._trace_keys:
            if key.startswith("node_"):
                self.trace[key].append(getattr(node, key[5:]))
            else:
                self.trace[key].append(getattr(self, key))

    def update_bounds(self, node: BnbNode):
        if self.tree.update_incumbent(node.ub):
            self.x = np.copy(node.x_ub)
            self.queue = [
                qnode for qnode in self.queue if not self.prune(qnode)
            ]
        if len(self.queue) != 0:
            self.lower_bound = min(
                min([qnode.lb for qnode in self.queue]), self.upper_bound
            )
        else:
            self.lower_bound = self.upper_bound

    def branch(self, node: BnbNode):
        if not np.any(node.Sb):
            return
        if self.params.branching_strategy == BnbBranchingStrategy.LARGEST:
            jSb = np.argmax(np.abs(node.x[node.Sb]))
            j = np.flatnonzero(node.Sb)[jSb]
        else:
            raise NotImplementedError

        node0 = node.child(self.problem, j, False)
        self.queue.append(node0)

        node1 = node.child(self.problem, j, True)
        self.queue.append(node1)

    def solve(self, problem: Problem, x_init: Optional[NDArray] = None):
        """Solve an L0-regularized problem.

        Parameters
        ----------
        problem: Problem
            Problem to solve.
        x_init: NDArray, default=None
            Initial incumbent solution. If `None`, the solver initializes it
            to the all-zero vector.
        """

        if not isinstance(problem, Problem):
            raise ValueError("Parameter `problem` must derive from `Problem`.")

        self.setup(problem, x_init)

        if self.params.verbose:
            self.print_header()

        while self.can_continue():
            node = self.next_node()
            self.compute_lower_bound(node)
            if not self.prune(node):
                self.compute_upper_bound(node)
                if not self.is_feasible(node):
                    self.branch(node)
            self.update_bounds(node)
            if self.params.trace:
                self.update_trace(node)
            if self.params.verbose:
                self.print_progress(node)
            del node

        if self.params.verbose:
            self.print_footer()

        x = np.copy(self.x)
        x[np.abs(x) <= self.params.int_tol] = 0.0

        return Result(
            self.status,
            self.timer,
            self.node_count,
            x,
            self.upper_bound,
            self.lower_bound,
            self.trace if self.params.trace else None,
        )
