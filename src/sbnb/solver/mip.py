"""Mixed-Integer Programming solver for L0-regularized problems."""

import numpy as np
import pyomo.environ as pyo
import pyomo.kernel as pmo
from typing import Optional
from numpy.typing import NDArray
from pyomo.opt import OptSolver
from pyomo.opt import SolverResults

from sbnb.problem import Problem
from sbnb.solver.base import BaseSolver, Result, Status


_mip_optim_bindings = {
    "cplex": {
        "optimizer_name": "cplex_persistent",
        "relative_gap": "mip_tolerances_mipgap",
        "absolute_gap": "mip_tolerances_absmipgap",
        "time_limit": "timelimit",
        "verbose": "mip_display",
    },
    "gurobi": {
        "optimizer_name": "gurobi_persistent",
        "relative_gap": "MIPGap",
        "absolute_gap": "MIPGapAbs",
        "time_limit": "TimeLimit",
        "verbose": "OutputFlag",
    },
    "mosek": {
        "optimizer_name": "mosek_persistent",
        "relative_gap": "dparam.mio_tol_rel_gap",
        "absolute_gap": "dparam.mio_tol_abs_gap",
        "time_limit": "dparam.mio_max_time",
        "verbose": "iparam.log",
    },
}


class MipSolver(BaseSolver):
    r"""Mixed-integer programming solver for L0-regularized problems.

    The problem is modeled as

    .. math::

        \begin{array}{rl}
            \min & \tfrac{1}{2}\|\mathbf{y} - \mathbf{w}\|_2^2 + \lambda \textstyle\sum_{i=1}^n z_i \\
            \text{s.t.} & \mathbf{w} = \mathbf{Ax}, \ -Mz_i \leq x_i \leq Mz_i, \ z_i \in \{0,1\}
        \end{array}

    To use this solver, the optimizer specified in the ``optimizer_name``
    parameter must be installed and accessible by
    `pyomo <https://pyomo.readthedocs.io/en/stable/>`_ which is the underlying
    library used to model the problem.

    Parameters
    ----------
    optimizer_name: str = "gurobi"
        Mixed-Integer Programming optimizer to use. Available options are
        "cplex", "gurobi", and "mosek".
    relative_gap: float, default=1e-8
        Relative tolerance on the objective value.
    absolute_gap: float, default=0.0
        Absolute tolerance on the objective value.
    time_limit: float, default=None
        Limit in second on the solving time.
    verbose: bool, default=False
        Whether to toggle solver verbosity.
    """  # noqa: E501

    def __init__(
        self,
        optimizer_name: str = "gurobi",
        relative_gap: float = 1e-8,
        absolute_gap: float = 0.0,
        time_limit: Optional[float] = None,
        verbose: bool = False,
    ) -> None:
        if optimizer_name not in _mip_optim_bindings:
            raise ValueError(
                "Solver {} not supported. Available ones are: {}".format(
                    optimizer_name,
                    list(_mip_optim_bindings.keys()),
                )
            )
        self.optimizer_name = optimizer_name
        self.time_limit = time_limit if time_limit is not None else np.inf
        self.relative_gap = relative_gap
        self.absolute_gap = absolute_gap
        self.verbose = verbose

    def __str__(self):
        return "MipSolver"

    def initialize_optimizer(self) -> OptSolver:
        bindings = _mip_optim_bindings[self.optimizer_name]
        optim: OptSolver = pyo.SolverFactory(bindings["optimizer_name"])
        optim.options[bindings["relative_gap"]] = self.relative_gap
        optim.options[bindings["absolute_gap"]] = self.absolute_gap
        if np.isfinite(self.time_limit):
            optim.options[bindings["time_limit"]] = self.time_limit
        optim.options[bindings["verbose"]] = int(self.verbose)
        return optim

    def build_model(self, problem: Problem) -> pmo.block:
        A = problem.A
        y = problem.y
        M = problem.M

        model = pmo.block()
        model.M = range(problem.m)
        model.N = range(problem.n)
        model.x = pmo.variable_dict()
        model.z = pmo.variable_dict()
        for i in model.N:
            model.x[i] = pmo.variable(domain=pmo.Reals)
            model.z[i] = pmo.variable(domain=pmo.Binary)
        model.w = pmo.variable_dict()
        for j in model.M:
            model.w[j] = pmo.variable(domain=pmo.Reals)
        model.f = pmo.variable(domain=pmo.Reals)

        model.w_con = pmo.constraint_dict()
        for j in model.M:
            model.w_con[j] = pmo.constraint(
                model.w[j] == sum(A[j, i] * model.x[i] for i in model.N)
            )

        # Least-squares epigraph f >= 0.5 * ||y - w||^2 as a rotated cone
        model.c_var = pmo.variable()
        model.c_con = pmo.constraint(model.c_var == 1.0)
        model.r_var = pmo.variable_dict()
        model.r_con = pmo.constraint_dict()
        for j in model.M:
            model.r_var[j] = pmo.variable(domain=pmo.Reals)
            model.r_con[j] = pmo.constraint(
                model.r_var[j] == model.w[j] - y[j]
            )
        model.f_con = pmo.conic.rotated_quadratic(
            model.f,
            model.c_var,
            [model.r_var[j] for j in model.M],
        )

        # Big-M constraint linking x and z
        model.hpos_con = pmo.constraint_dict()
        model.hneg_con = pmo.constraint_dict()
        for i in model.N:
            model.hpos_con[i] = pmo.constraint(model.x[i] <= M * model.z[i])
            model.hneg_con[i] = pmo.constraint(model.x[i] >= -M * model.z[i])

        model.obj = pmo.objective(
            model.f + problem.lmbd * sum(model.z[i] for i in model.N)
        )
        return model

    def package_result(
        self, model: pmo.block, result: SolverResults
    ) -> Result:
        if result.solver.termination_condition == "optimal":
            status = Status.OPTIMAL
        elif result.solver.termination_condition == "maxIterations":
            status = Status.NODE_LIMIT
        elif result.solver.termination_condition == "maxTimeLimit":
            status = Status.TIME_LIMIT
        elif result.solver.termination_condition == "unbounded":
            status = Status.UNBOUNDED
        elif result.solver.termination_condition == "infeasible":
            status = Status.INFEASIBLE
        else:
            status = Status.UNKNOWN

        x = np.array(
            [
                model.x[i].value if model.x[i].value is not None else 0.0
                for i in model.N
            ]
        )

        return Result(
            status,
            result.solver.wallclock_time,
            -1,
            x,
            result.problem.upper_bound,
            result.problem.lower_bound,
            None,
        )

    def solve(self, problem: Problem, x_init: Optional[NDArray] = None):
        """Solve an L0-regularized problem.

        Parameters
        ----------
        problem: Problem
            Problem to solve.
        x_init: NDArray, default=None
            Initial point for the solver.
        """

        optim = self.initialize_optimizer()
        model = self.build_model(problem)
        optim.set_instance(model)

        if x_init is not None:
            if len(x_init) != problem.n:
                raise ValueError("Parameter `x_init` has an invalid shape.")
            for i, xi in enumerate(x_init):
                model.x[i].set_value(xi)
                model.z[i].set_value(float(xi != 0.0))

        result = optim.solve(model, warmstart=x_init is not None)

        return self.package_result(model, result)
