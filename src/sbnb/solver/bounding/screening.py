"""Safe screening and peeling rules used to accelerate the lower bounding
operations of :class:`.solver.BnbSolver`.

All the rules take as input a dual certificate ``u`` together with the
quantities derived from it during the gap computation, namely ``v = A.T @ u``
and ``p``, the conjugate values of the penalty terms offset by ``-lmbd``. They
only shrink sets or bounds and never revert a previous decision.
"""

import numpy as np
from numba import njit
from numpy.typing import NDArray


@njit
def l1screening(
    A: NDArray[np.float64],
    y: NDArray[np.float64],
    lmbd: float,
    a: NDArray[np.float64],
    Mpos: NDArray[np.float64],
    Mneg: NDArray[np.float64],
    x: NDArray[np.float64],
    w: NDArray[np.float64],
    u: NDArray[np.float64],
    v: NDArray[np.float64],
    gap: float,
    Sbi: NDArray[np.bool_],
    Sb0: NDArray[np.bool_],
    Sbb: NDArray[np.bool_],
) -> None:
    r"""Gap-safe screening of the relaxation solution.

    The dual objective is 1-strongly concave so the dual solution lies in a
    ball of radius :math:`\sqrt{2\,\text{gap}}` centered at ``u``. Free
    entries whose correlation :math:`\mathbf{a}_i^{\top}\mathbf{u}^{\star}`
    is guaranteed to lie strictly inside the subdifferential of the
    perspective term at zero are set to zero and moved to ``Sb0``. Entries
    whose correlation is guaranteed to exceed a slope are set to the
    corresponding bound and moved to ``Sbb``.
    """
    r = np.sqrt(2.0 * gap)
    flag = False
    for i in np.flatnonzero(Sbi):
        ri = r * np.sqrt(a[i])
        spos = lmbd / Mpos[i] if Mpos[i] > 0.0 else np.inf
        sneg = lmbd / Mneg[i] if Mneg[i] < 0.0 else -np.inf
        if sneg + ri < v[i] and v[i] < spos - ri:
            xi = 0.0
            Sb0[i] = True
        elif v[i] - ri > spos:
            xi = Mpos[i]
            Sbb[i] = True
        elif v[i] + ri < sneg:
            xi = Mneg[i]
            Sbb[i] = True
        else:
            continue
        Sbi[i] = False
        if x[i] != xi:
            w += (xi - x[i]) * A[:, i]
            x[i] = xi
            flag = True
    if flag:
        u[:] = y - w


@njit
def l0screening(
    A: NDArray[np.float64],
    y: NDArray[np.float64],
    x: NDArray[np.float64],
    w: NDArray[np.float64],
    u: NDArray[np.float64],
    p: NDArray[np.float64],
    ub: float,
    dv: float,
    S0: NDArray[np.bool_],
    S1: NDArray[np.bool_],
    Sb: NDArray[np.bool_],
    Sbi: NDArray[np.bool_],
    Sbb: NDArray[np.bool_],
) -> float:
    """Node screening. For each free entry, the dual value of the two child
    nodes obtained by fixing the entry to zero or non-zero can be evaluated
    at the same dual point for free. When one of them exceeds the incumbent
    value ``ub``, the corresponding child is pruned and the entry is fixed in
    the current node to the value of the other child. Returns the dual value
    of the node with the entries fixed."""
    flag = False
    for i in np.flatnonzero(Sbi | Sbb):
        pp = max(p[i], 0.0)
        pn = max(-p[i], 0.0)
        if dv + pn > ub:
            Sb[i] = False
            S0[i] = True
            Sbi[i] = False
            Sbb[i] = False
            if x[i] != 0.0:
                w -= x[i] * A[:, i]
                x[i] = 0.0
                flag = True
            dv += pp
        elif dv + pp > ub:
            Sb[i] = False
            S1[i] = True
            Sbi[i] = False
            Sbb[i] = False
            dv += pn
    if flag:
        u[:] = y - w
    return dv


@njit
def bigmpeeling(
    A: NDArray[np.float64],
    y: NDArray[np.float64],
    lmbd: float,
    Mpos: NDArray[np.float64],
    Mneg: NDArray[np.float64],
    x: NDArray[np.float64],
    w: NDArray[np.float64],
    u: NDArray[np.float64],
    v: NDArray[np.float64],
    p: NDArray[np.float64],
    ub: float,
    dv: float,
    S0: NDArray[np.bool_],
    Sb: NDArray[np.bool_],
    Sbi: NDArray[np.bool_],
) -> None:
    r"""Big-M peeling. Any feasible point of the node with
    :math:`x_i = t \neq 0` has an objective value at least

    .. math:: \text{dv} + \max(p_i, 0) + \lambda - v_i t

    so the values of :math:`t` making this quantity exceed ``ub`` are peeled
    off the bounds ``Mpos[i]`` and ``Mneg[i]``. Entries with both bounds
    collapsed to zero are moved to ``S0``.
    """
    flag = False
    for i in np.flatnonzero(Sbi):
        k = dv + max(p[i], 0.0) + lmbd - ub
        if v[i] < 0.0:
            Mpos[i] = min(Mpos[i], max(k / v[i], 0.0))
        elif v[i] > 0.0:
            Mneg[i] = max(Mneg[i], min(k / v[i], 0.0))
        if Mpos[i] <= 0.0 and Mneg[i] >= 0.0:
            Sb[i] = False
            S0[i] = True
            Sbi[i] = False
        xi = min(max(x[i], Mneg[i]), Mpos[i])
        if x[i] != xi:
            w += (xi - x[i]) * A[:, i]
            x[i] = xi
            flag = True
    if flag:
        u[:] = y - w
