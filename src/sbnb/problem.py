"""L0-regularized least-squares problem data."""

import numpy as np
from typing import Union
from numpy.typing import NDArray


class Problem:
    r"""L0-regularized least-squares problem with a Big-M constraint.

    The problem is defined as

    .. math::

        \textstyle\min_{\|\mathbf{x}\|_{\infty} \leq M} \tfrac{1}{2}\|\mathbf{y} - \mathbf{Ax}\|_2^2 + \lambda \|\mathbf{x}\|_0

    where :math:`\mathbf{A} \in \mathbb{R}^{m \times n}` is a matrix,
    :math:`\mathbf{y} \in \mathbb{R}^{m}` is a vector, :math:`\lambda \geq 0`
    is the L0-regularization weight and :math:`M > 0` is the Big-M bound.

    Parameters
    ----------
    A: NDArray
        Linear operator.
    y: NDArray
        Data vector.
    lmbd: float, non-negative
        L0-regularization weight.
    M: float, positive
        Big-M bound on the entries of ``x``.

    Attributes
    ----------
    m: int
        Number of rows in ``A``.
    n: int
        Number of columns in ``A``.
    a: NDArray
        Squared Euclidean norm of the columns of ``A``.
    """  # noqa: E501

    def __init__(self, A: NDArray, y: NDArray, lmbd: float, M: float) -> None:
        if not isinstance(A, np.ndarray):
            raise ValueError("Parameter `A` must derive from `np.ndarray`.")
        if A.ndim != 2:
            raise ValueError("Parameter `A` must be a two-dimensional array.")
        if not isinstance(y, np.ndarray):
            raise ValueError("Parameter `y` must derive from `np.ndarray`.")
        if y.ndim != 1:
            raise ValueError("Parameter `y` must be a one-dimensional array.")
        if y.size != A.shape[0]:
            raise ValueError(
                "Parameters `A` and `y` have inconsistent dimensions."
            )
        if not isinstance(lmbd, float):
            raise ValueError("Parameter `lmbd` must derive from `float`.")
        if lmbd < 0.0:
            raise ValueError("Parameter `lmbd` must be non-negative.")
        if not isinstance(M, float):
            raise ValueError("Parameter `M` must derive from `float`.")
        if not M > 0.0:
            raise ValueError("Parameter `M` must be positive.")

        self.A = np.array(A, dtype=np.float64, order="F")
        self.y = np.ascontiguousarray(y, dtype=np.float64)
        self.lmbd = lmbd
        self.M = M
        self.m, self.n = A.shape
        self.a = np.sum(self.A**2, axis=0)

    def __str__(self) -> str:
        s = ""
        s += "L0-penalized problem\n"
        s += "  Dims    : {} x {}\n".format(self.m, self.n)
        s += "  Lambda  : {:.4e}\n".format(self.lmbd)
        s += "  Big-M   : {:.4e}".format(self.M)
        return s

    def value(self, x: NDArray, w: Union[NDArray, None] = None) -> float:
        """Value of the objective function of the problem at ``x``.

        Parameters
        ----------
        x: NDArray
            Vector at which the objective function evaluated.
        w: Union[NDArray, None] = None
            Value of ``A @ x`` if it is already computed, allows to save
            computations.

        Returns
        -------
        value: float
            The value of the problem objective function at ``x``, or
            ``np.inf`` when ``x`` violates the Big-M constraint.
        """
        if np.max(np.abs(x), initial=0.0) > self.M:
            return np.inf
        if w is None:
            w = self.A @ x
        r = self.y - w
        return float(0.5 * np.dot(r, r) + self.lmbd * np.linalg.norm(x, 0))


def compute_lmbd_max(A: NDArray, y: NDArray) -> float:
    r"""Return a value of ``lmbd`` above which the all-zero vector is a
    coordinate-wise minimizer of the problem, that is

    .. math:: \lambda_{\max} = \max_i \frac{(\mathbf{a}_i^{\top}\mathbf{y})^2}{2\|\mathbf{a}_i\|_2^2}

    where :math:`\mathbf{a}_i` is the i-th column of :math:`\mathbf{A}`.

    Parameters
    ----------
    A: NDArray
        Linear operator.
    y: NDArray
        Data vector.

    Returns
    -------
    lmbd_max: float
        The value ``lmbd_max``, zero when ``A`` is empty or has only zero
        columns.
    """  # noqa: E501

    if not isinstance(A, np.ndarray):
        raise ValueError("Parameter `A` must be a `np.ndarray`.")
    if A.ndim != 2:
        raise ValueError("Parameter `A` must be a two-dimensional array.")
    if A.size == 0:
        return 0.0

    a = np.sum(A**2, axis=0)
    v = A.T @ y
    nz = a > 0.0
    if not np.any(nz):
        return 0.0
    return float(np.max(v[nz] ** 2 / (2.0 * a[nz])))
