import numpy as np
from typing import Optional
from numba import njit
from numpy.typing import NDArray
from sbnb.problem import Problem
from sbnb.solver.node import BnbNode, TreeState
from .base import (
    BaseBoundingSolver,
    BoundingType,
    abs_gap,
    compute_dv,
    compute_pv,
)
from .screening import bigmpeeling, l0screening, l1screening


@njit
def cd_sweep(
    A: NDArray[np.float64],
    y: NDArray[np.float64],
    lmbd: float,
    a: NDArray[np.float64],
    Mpos: NDArray[np.float64],
    Mneg: NDArray[np.float64],
    x: NDArray[np.float64],
    w: NDArray[np.float64],
    u: NDArray[np.float64],
    order: NDArray[np.int64],
    Sb: NDArray[np.bool_],
) -> None:
    for i in order:
        if a[i] == 0.0:
            continue
        ai = A[:, i]
        xi = x[i]
        ci = xi + np.dot(ai, u) / a[i]
        if Sb[i]:
            tpos = (lmbd / a[i]) / Mpos[i] if Mpos[i] > 0.0 else np.inf
            tneg = (lmbd / a[i]) / Mneg[i] if Mneg[i] < 0.0 else -np.inf
            if tneg <= ci and ci <= tpos:
                x[i] = 0.0
            elif ci > tpos:
                x[i] = min(max(ci - tpos, 0.0), Mpos[i])
            else:
                x[i] = min(max(ci - tneg, Mneg[i]), 0.0)
        else:
            x[i] = min(max(ci, Mneg[i]), Mpos[i])
        if x[i] != xi:
            w += (x[i] - xi) * ai
            u[:] = y - w


class CoordinateDescent(BaseBoundingSolver):
    """Coordinate descent bounding solver.

    Each sweep updates the entries in ``S1`` and the free entries in ``Sb`` in
    a random order, then evaluates the duality gap of the bounding problem.
    The lower bounding operations are accelerated by dual pruning, L0 and L1
    screening and Big-M peeling depending on the Branch-and-Bound parameters.

    Parameters
    ----------
    tolgap: float, default=1e-8
        Absolute duality gap targeted.
    maxiter: int, default=10_000
        Maximum number of sweeps.
    seed: int, default=None
        Seed of the generator drawing the coordinate visiting orders.
    """

    def __init__(
        self,
        tolgap: float = 1e-8,
        maxiter: int = 10_000,
        seed: Optional[int] = None,
    ) -> None:
        self.tolgap = tolgap
        self.maxiter = maxiter
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def __str__(self) -> str:
        return "CoordinateDescent"

    def bound(
        self,
        problem: Problem,
        tree: TreeState,
        node: BnbNode,
        params,
        bounding_type: BoundingType,
    ) -> float:

        # ----- Initialization ----- #

        A = problem.A
        y = problem.y
        lmbd = problem.lmbd
        a = problem.a
        n = problem.n

        if bounding_type == BoundingType.LOWER:
            S0 = node.S0
            S1 = node.S1
            Sb = node.Sb
            x = node.x
            w = node.w
            u = node.u
        elif bounding_type == BoundingType.UPPER:
            S0 = node.S0 | node.Sb
            S1 = np.copy(node.S1)
            Sb = np.zeros(n, dtype=np.bool_)
            x = np.zeros(n)
            x[S1] = np.clip(node.x[S1], node.Mneg[S1], node.Mpos[S1])
            w = A[:, S1] @ x[S1]
            u = y - w
        else:
            raise ValueError(
                "Unknown bounding type {}".format(bounding_type)
            )
        Mpos = node.Mpos
        Mneg = node.Mneg
        v = np.zeros(n)
        p = np.zeros(n)

        # Working sets among free indices: still swept, screened to zero and
        # pinned at one of their bounds
        Sbi = np.copy(Sb)
        Sb0 = np.zeros(n, dtype=np.bool_)
        Sbb = np.zeros(n, dtype=np.bool_)

        ub = tree.incumbent_upper_bound()
        pv = np.inf
        dv = -np.inf
        gap = np.inf

        # ----- Main loop ----- #

        it = 0
        while True:
            it += 1

            order = self.rng.permutation(np.flatnonzero(Sbi | S1))
            cd_sweep(A, y, lmbd, a, Mpos, Mneg, x, w, u, order, Sb)

            idx = Sbi | Sbb | S1
            pv = compute_pv(lmbd, Mpos, Mneg, x, u, S1, Sb, idx)
            dv = compute_dv(A, y, lmbd, Mpos, Mneg, u, v, p, Sb, idx)
            gap = abs_gap(pv, dv)

            # ----- Stopping criterion ----- #

            if gap < self.tolgap:
                break
            elif it > self.maxiter:
                break
            elif tree.elapsed_time() >= params.maxtime:
                break

            # ----- Accelerations ----- #

            if bounding_type == BoundingType.LOWER:
                if params.dualpruning and dv >= ub:
                    break
                if params.l1screening:
                    l1screening(
                        A, y, lmbd, a, Mpos, Mneg, x, w, u, v, gap,
                        Sbi, Sb0, Sbb,
                    )  # noqa
                if params.l0screening or params.bigmpeeling:
                    dv_fixed = l0screening(
                        A, y, x, w, u, p, ub, dv, S0, S1, Sb, Sbi, Sbb
                    )
                    if params.bigmpeeling:
                        bigmpeeling(
                            A, y, lmbd, Mpos, Mneg, x, w, u, v, p, ub,
                            dv_fixed, S0, Sb, Sbi,
                        )  # noqa

        # ----- Post-processing ----- #

        if bounding_type == BoundingType.LOWER:
            node.lb = dv
            return dv
        node.ub = pv
        node.x_ub = x
        return pv
