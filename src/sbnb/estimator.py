"""Scikit-learn-compatible estimator based on L0-regularized problems."""

import numpy as np
from typing import Optional
from numpy.typing import NDArray
from sklearn.base import RegressorMixin
from sklearn.linear_model._base import LinearModel
from sklearn.utils.validation import check_is_fitted, validate_data

from sbnb.problem import Problem
from sbnb.solver import BaseSolver, BnbSolver


class L0Regressor(RegressorMixin, LinearModel):
    r"""Scikit-learn-compatible `linear model <https://scikit-learn.org/stable/api/sklearn.linear_model.html>`_
    regression estimator with L0-regularization.

    The estimator corresponds to a solution of the problem

    .. math::

        \textstyle\min_{\|\mathbf{x}\|_{\infty} \leq M} \tfrac{1}{2}\|\mathbf{y} - \mathbf{Ax}\|_2^2 + \lambda\|\mathbf{x}\|_0

    where :math:`\mathbf{A} \in \mathbb{R}^{m \times n}` is the design matrix,
    :math:`\lambda \geq 0` is a parameter and the L0-norm
    :math:`\|\cdot\|_0` counts the number of non-zero entries in its input.

    Parameters
    ----------
    lmbd: float
        L0-norm weight.
    M: float
        Big-M bound on the coefficients.
    solver: BaseSolver, default=None
        Solver for the estimator associated problem. Defaults to a
        :class:`.solver.BnbSolver` with default parameters.
    """  # noqa: E501

    def __init__(
        self,
        lmbd: float,
        M: float,
        solver: Optional[BaseSolver] = None,
    ) -> None:
        self.lmbd = lmbd
        self.M = M
        self.solver = solver

    def fit(self, X: NDArray, y: NDArray):
        check_X_params = dict(dtype=np.float64, order="F")
        check_y_params = dict(dtype=np.float64, ensure_2d=False)
        X, y = validate_data(
            self, X, y, validate_separately=(check_X_params, check_y_params)
        )
        if y.ndim != 1:
            raise ValueError("Only single-target regression is supported.")

        problem = Problem(X, y, float(self.lmbd), float(self.M))
        solver = self.solver if self.solver is not None else BnbSolver()
        result = solver.solve(problem)

        self.fit_result_ = result
        self.coef_ = np.copy(result.x)
        self.intercept_ = 0.0
        self.n_iter_ = result.node_count

        return self

    def predict(self, X: NDArray) -> NDArray:
        check_is_fitted(self)
        X = validate_data(self, X, dtype=np.float64, reset=False)
        return X @ self.coef_ + self.intercept_
