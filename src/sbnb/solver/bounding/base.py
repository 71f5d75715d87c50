import numpy as np
from abc import abstractmethod
from enum import Enum
from numba import njit
from numpy.typing import NDArray
from sbnb.problem import Problem
from sbnb.solver.node import BnbNode, TreeState


class BoundingType(Enum):
    """Bounding operation performed at a node.

    Attributes
    ----------
    LOWER: str
        Compute a lower bound through the node relaxation.
    UPPER: str
        Compute an upper bound through a feasible point supported on ``S1``.
    """

    def __str__(self):
        return str(self.value)

    LOWER = "lower"
    UPPER = "upper"


class BaseBoundingSolver:
    r"""Base class for :class:`.solver.BnbSolver` bounding problem solvers.

    The bounding problem has the form

    .. math:: \textstyle\min_{x} \tfrac{1}{2}\|y - Ax\|_2^2 + \sum_{i=1}^{n}g_i(x_i)

    with

    .. math::

        \begin{cases}
            g_i(t) = 0 &\text{if} \ i \in S_0 \ \text{and} \ t = 0 \\
            g_i(t) = \lambda &\text{if} \ i \in S_1 \ \text{and} \ M^-_i \leq t \leq M^+_i \\
            g_i(t) = \lambda t / M^+_i &\text{if} \ i \in S_{\bullet} \ \text{and} \ 0 \leq t \leq M^+_i \\
            g_i(t) = \lambda t / M^-_i &\text{if} \ i \in S_{\bullet} \ \text{and} \ M^-_i \leq t \leq 0 \\
            g_i(t) = +\infty &\text{otherwise}
        \end{cases}

    where :math:`S_0`, :math:`S_1` and :math:`S_{\bullet}` are sets of
    indices forced to be zero, non-zero and unfixed, respectively, at the
    current node of the Branch-and-Bound tree, and where :math:`M^+` and
    :math:`M^-` are the node bounds on the entries of :math:`x`. The terms on
    :math:`S_{\bullet}` are the perspective relaxation of the L0-norm under
    the Big-M constraint. For an upper bounding operation, :math:`S_{\bullet}`
    is merged into :math:`S_0`.
    """  # noqa: E501

    @abstractmethod
    def bound(
        self,
        problem: Problem,
        tree: TreeState,
        node: BnbNode,
        params,
        bounding_type: BoundingType,
    ) -> float:
        """Solve the bounding problem at a given node of the Branch-and-Bound.

        Parameters
        ----------
        problem: Problem
            Problem data.
        tree: TreeState
            State of the Branch-and-Bound tree, giving the incumbent value and
            the elapsed time.
        node: BnbNode
            Node to bound. Its ``lb`` attribute is updated for a lower
            bounding operation and its ``ub`` and ``x_ub`` attributes are
            updated for an upper bounding operation.
        params: BnbParams
            Branch-and-Bound parameters.
        bounding_type: BoundingType
            Bounding operation to perform.

        Returns
        -------
        value: float
            The bound computed.
        """
        ...


@njit
def abs_gap(pv: float, dv: float) -> float:
    """Absolute duality gap between primal and dual values.

    Parameters
    ----------
    pv: float
        Primal value.
    dv: float
        Dual value.
    """
    return np.abs(pv - dv)


@njit
def compute_pv(
    lmbd: float,
    Mpos: NDArray[np.float64],
    Mneg: NDArray[np.float64],
    x: NDArray[np.float64],
    u: NDArray[np.float64],
    S1: NDArray[np.bool_],
    Sb: NDArray[np.bool_],
    idx: NDArray[np.bool_],
) -> float:
    """Compute the primal value of the bounding problem.

    Parameters
    ----------
    lmbd: float
        L0-norm weight.
    Mpos: NDArray[np.float64]
        Upper bounds on the entries of ``x``.
    Mneg: NDArray[np.float64]
        Lower bounds on the entries of ``x``.
    x: NDArray[np.float64]
        Value at which the primal is evaluated.
    u: NDArray[np.float64]
        Value of ``y - A @ x``.
    S1: NDArray[np.bool_]
        Set of indices forced to be non-zero.
    Sb: NDArray[np.bool_]
        Set of unfixed indices.
    idx: NDArray[np.bool_]
        Indices accounted in the penalty.
    """
    gval = 0.0
    for i in np.flatnonzero(idx):
        if S1[i]:
            gval += 1.0
        elif Sb[i]:
            if x[i] > 0.0:
                gval += x[i] / Mpos[i]
            elif x[i] < 0.0:
                gval += x[i] / Mneg[i]
    return 0.5 * np.dot(u, u) + lmbd * gval


@njit
def compute_dv(
    A: NDArray[np.float64],
    y: NDArray[np.float64],
    lmbd: float,
    Mpos: NDArray[np.float64],
    Mneg: NDArray[np.float64],
    u: NDArray[np.float64],
    v: NDArray[np.float64],
    p: NDArray[np.float64],
    Sb: NDArray[np.bool_],
    idx: NDArray[np.bool_],
) -> float:
    """Compute the dual value of the bounding problem.

    Parameters
    ----------
    A: NDArray[np.float64]
        Linear operator.
    y: NDArray[np.float64]
        Data vector.
    lmbd: float
        L0-norm weight.
    Mpos: NDArray[np.float64]
        Upper bounds on the entries of ``x``.
    Mneg: NDArray[np.float64]
        Lower bounds on the entries of ``x``.
    u: NDArray[np.float64]
        Value at which the dual is evaluated.
    v: NDArray[np.float64]
        Vector to store the values of ``A.T @ u`` over ``idx``.
    p: NDArray[np.float64]
        Vector to store the conjugate values of the penalty terms, offset by
        ``-lmbd``, over ``idx``.
    Sb: NDArray[np.bool_]
        Set of unfixed indices.
    idx: NDArray[np.bool_]
        Indices accounted in the penalty.
    """
    cfval = 0.5 * np.dot(u, u) - np.dot(u, y)
    cgval = 0.0
    for i in np.flatnonzero(idx):
        v[i] = np.dot(A[:, i], u)
        p[i] = Mpos[i] * max(v[i], 0.0) + Mneg[i] * min(v[i], 0.0) - lmbd
        if Sb[i]:
            cgval += max(p[i], 0.0)
        else:
            cgval += p[i]
    return -cfval - cgval
