"""Single-instance experiment on synthetic sparse regression data.

Usage::

    sbnb-onerun k m n sigma rho tau gamma solver maxtime [--seed SEED]
"""

import argparse
import numpy as np
from dataclasses import dataclass
from typing import Optional
from numpy.typing import NDArray

from sbnb.problem import Problem, compute_lmbd_max
from sbnb.solver import BaseSolver, BnbSolver, MipSolver, Result

SOLVERS = ["sbnb", "sbnbn", "sbnbp", "cplex", "gurobi", "mosek"]


def synthetic_data(
    k: int,
    m: int,
    n: int,
    sigma: float,
    rho: float,
    tau: float,
):
    r"""Generate synthetic sparse regression data

    .. math:: y = Ax + e

    where

    - :math:`x \in R^n` is the ground truth vector with :math:`k` non-zero
      entries evenly spaced over :math:`\{1,\dots,n\}` with i.i.d. amplitude
      :math:`x_i \sim N(0,\tau^2)`. When :math:`\tau = 0`, the amplitudes are
      drawn randomly from :math:`\{-1,1\}`.

    - :math:`A \in R^{m \times n}` is a design matrix with i.i.d. rows drawn
      as :math:`a \sim N(0,K)` where :math:`K_{ij} = \rho^{|i-j|}`, and with
      columns normalized.

    - :math:`e \sim N(0,\sigma^2 I)` is a noise vector.

    Parameters
    ----------
    k: int
        Number of non-zero entries in the ground truth.
    m: int
        Number of rows in the design matrix.
    n: int
        Number of columns in the design matrix.
    sigma: float
        Standard deviation of the noise.
    rho: float
        Correlation coefficient between columns of the design matrix.
    tau: float
        Standard deviation of the ground truth non-zero entries amplitude.

    Returns
    -------
    x: NDArray
        Ground truth vector.
    A: NDArray
        Design matrix.
    y: NDArray
        Observation vector.
    """

    # Ground truth
    x = np.zeros(n)
    S = np.array(np.floor(np.linspace(0, n - 1, num=k)), dtype=int)
    if tau == 0.0:
        x[S] = np.sign(np.random.randn(S.size))
    else:
        x[S] = np.random.normal(0.0, tau, S.size)

    # Design matrix
    N1 = np.repeat(np.arange(n).reshape(n, 1), n).reshape(n, n)
    N2 = np.repeat(np.arange(n).reshape(1, n), n).reshape(n, n).T
    K = np.power(rho, np.abs(N1 - N2))
    if m == 0 or n == 0:
        A = np.zeros((m, n))
    else:
        A = np.random.multivariate_normal(np.zeros(n), K, size=m)
    norms = np.linalg.norm(A, axis=0, ord=2)
    norms[norms == 0.0] = 1.0
    A /= norms

    # Observation vector
    y = A @ x + sigma * np.random.randn(m)

    return x, A, y


def calibrate_lmbd(
    A: NDArray, y: NDArray, x: NDArray, lmbd_ratio: float = 0.1
):
    """Return an initial point fitted on the support of ``x`` and a value of
    ``lmbd`` taken as a fraction of :func:`.compute_lmbd_max`.

    Parameters
    ----------
    A: NDArray
        Design matrix.
    y: NDArray
        Observation vector.
    x: NDArray
        Vector whose support is used for the initial point.
    lmbd_ratio: float, default=0.1
        Fraction of ``lmbd_max`` used.
    """
    x0 = np.zeros(A.shape[1])
    S = x != 0.0
    if np.any(S) and A.shape[0] > 0:
        x0[S] = np.linalg.lstsq(A[:, S], y, rcond=None)[0]
    lmbd = lmbd_ratio * compute_lmbd_max(A, y)
    return x0, float(lmbd)


def get_solver(
    solver_name: str, maxtime: float, l1screening: bool = True
) -> BaseSolver:
    """Instantiate a solver from its name.

    The ``sbnb`` preset runs the plain Branch-and-Bound, ``sbnbn`` adds dual
    pruning and node screening and ``sbnbp`` also adds Big-M peeling. Other
    names are mixed-integer programming optimizers.
    """
    if solver_name == "sbnb":
        return BnbSolver(
            maxtime=maxtime,
            dualpruning=False,
            l0screening=False,
            l1screening=l1screening,
            bigmpeeling=False,
        )
    elif solver_name == "sbnbn":
        return BnbSolver(
            maxtime=maxtime,
            dualpruning=True,
            l0screening=True,
            l1screening=l1screening,
            bigmpeeling=False,
        )
    elif solver_name == "sbnbp":
        return BnbSolver(
            maxtime=maxtime,
            dualpruning=True,
            l0screening=True,
            l1screening=l1screening,
            bigmpeeling=True,
        )
    elif solver_name in ["cplex", "gurobi", "mosek"]:
        return MipSolver(optimizer_name=solver_name, time_limit=maxtime)
    else:
        raise ValueError("Unknown solver {}.".format(solver_name))


def calibrate_bigm(
    A: NDArray,
    y: NDArray,
    lmbd: float,
    x0: NDArray,
    maxtime: float,
    maxrounds: int = 100,
) -> float:
    """Calibrate the Big-M bound. Starting from the infinity-norm of ``x0``,
    the bound is increased until the problem solution lies strictly inside
    the box. The bound is then set to the infinity-norm of the solution."""
    M = float(np.max(np.abs(x0), initial=0.0))
    if M <= 0.0:
        M = 1.0
    for _ in range(maxrounds):
        problem = Problem(A, y, lmbd, M)
        solver = get_solver("sbnbp", maxtime)
        result = solver.solve(problem, x_init=np.clip(x0, -M, M))
        if result.inf_norm < M:
            if result.inf_norm > 0.0:
                M = result.inf_norm
            break
        M *= 1.1
    return M


@dataclass
class Setup:
    """Experiment setup.

    Parameters
    ----------
    k: int
        Number of non-zero entries in the ground truth.
    m: int
        Number of rows in the design matrix.
    n: int
        Number of columns in the design matrix.
    sigma: float
        Noise standard deviation.
    rho: float
        Correlation coefficient of the design matrix.
    tau: float
        Ground truth amplitude standard deviation.
    gamma: float
        Multiplicative factor applied to the calibrated Big-M bound.
    solver: str
        Name of the solver, one of ``SOLVERS``.
    maxtime: float
        Time limit of the solver.
    seed: int
        Random seed, not set when zero.
    """

    k: int
    m: int
    n: int
    sigma: float
    rho: float
    tau: float
    gamma: float
    solver: str
    maxtime: float
    seed: int = 0

    def __post_init__(self):
        if not 0 <= self.k <= self.n:
            raise ValueError("Parameter `k` must lie in [0, n].")
        if self.m < 0:
            raise ValueError("Parameter `m` must be non-negative.")
        if self.n < 0:
            raise ValueError("Parameter `n` must be non-negative.")
        if self.sigma < 0.0:
            raise ValueError("Parameter `sigma` must be non-negative.")
        if not 0.0 <= self.rho <= 1.0:
            raise ValueError("Parameter `rho` must lie in [0, 1].")
        if self.tau < 0.0:
            raise ValueError("Parameter `tau` must be non-negative.")
        if self.gamma < 1.0:
            raise ValueError("Parameter `gamma` must be greater than 1.")
        if self.solver not in SOLVERS:
            raise ValueError(
                "Solver {} not supported. Available ones are: {}".format(
                    self.solver, SOLVERS
                )
            )
        if self.maxtime < 0.0:
            raise ValueError("Parameter `maxtime` must be non-negative.")
        if self.seed < 0:
            raise ValueError("Parameter `seed` must be non-negative.")


def onerun(setup: Setup) -> Result:
    if setup.seed > 0:
        np.random.seed(setup.seed)

    print("Generating data...")
    x, A, y = synthetic_data(
        setup.k, setup.m, setup.n, setup.sigma, setup.rho, setup.tau
    )

    print("Calibrating lmbd...")
    x0, lmbd = calibrate_lmbd(A, y, x)

    print("Calibrating M...")
    M = calibrate_bigm(A, y, lmbd, x0, setup.maxtime)
    M *= setup.gamma

    problem = Problem(A, y, lmbd, M)

    # Triggers the compilation of the numba kernels
    print("Precompiling...")
    get_solver(setup.solver, min(5.0, setup.maxtime)).solve(problem)

    print("Running {}...".format(setup.solver))
    solver = get_solver(setup.solver, setup.maxtime)
    result = solver.solve(problem)

    print()
    print(problem)
    print()
    print(result)
    print()

    return result


def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Solve a synthetic L0-regularized problem."
    )
    parser.add_argument("k", type=int)
    parser.add_argument("m", type=int)
    parser.add_argument("n", type=int)
    parser.add_argument("sigma", type=float)
    parser.add_argument("rho", type=float)
    parser.add_argument("tau", type=float)
    parser.add_argument("gamma", type=float)
    parser.add_argument("solver", type=str)
    parser.add_argument("maxtime", type=float)
    parser.add_argument("--seed", type=int, default=0)
    args = parser.parse_args(argv)

    onerun(Setup(**vars(args)))


if __name__ == "__main__":
    main()
