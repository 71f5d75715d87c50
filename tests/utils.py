"""Test utilities."""

import itertools
import numpy as np
from scipy.optimize import lsq_linear, minimize


def make_regression(k, m, n, snr=10.0):
    x = np.zeros(n)
    s = np.array(np.floor(np.linspace(0, n - 1, num=k)), dtype=int)
    x[s] = np.sign(np.random.randn(k))
    A = np.random.randn(m, n)
    y = A @ x
    e = np.random.randn(m)
    e *= np.sqrt((y @ y) / (snr * (e @ e)))
    y += e
    return A, y, x


def brute_force(A, y, lmbd, Mneg, Mpos, S0=None, S1=None, include=None):
    """Exhaustive search over the supports compatible with a node. Entries
    of ``S1`` are always charged ``lmbd``. When ``include`` is given, only
    supports containing this index are searched."""
    m, n = A.shape
    if S0 is None:
        S0 = np.zeros(n, dtype=bool)
    if S1 is None:
        S1 = np.zeros(n, dtype=bool)
    fixed = list(np.flatnonzero(S1))
    free = [
        i for i in np.flatnonzero(~S0 & ~S1) if Mneg[i] < 0.0 or Mpos[i] > 0.0
    ]

    best_val = np.inf
    best_x = np.zeros(n)
    for r in range(len(free) + 1):
        for T in itertools.combinations(free, r):
            supp = np.array(fixed + list(T), dtype=int)
            if include is not None and include not in supp:
                continue
            x = np.zeros(n)
            if supp.size > 0:
                res = lsq_linear(
                    A[:, supp],
                    y,
                    bounds=(Mneg[supp], Mpos[supp]),
                    method="bvls",
                )
                x[supp] = res.x
            r_ = y - A @ x
            val = 0.5 * (r_ @ r_) + lmbd * supp.size
            if val < best_val:
                best_val = val
                best_x = x
    return best_val, best_x


def relaxation(A, y, lmbd, Mneg, Mpos, S0, S1):
    """Value of the perspective relaxation of a node computed with a
    bound-constrained quasi-Newton method on the split ``x = xp - xn``."""
    m, n = A.shape
    Sb = ~S0 & ~S1
    cpos = np.zeros(n)
    cneg = np.zeros(n)
    cpos[Sb] = lmbd / Mpos[Sb]
    cneg[Sb] = lmbd / -Mneg[Sb]

    def fun(z):
        x = z[:n] - z[n:]
        r = y - A @ x
        g = -A.T @ r
        val = 0.5 * (r @ r) + cpos @ z[:n] + cneg @ z[n:]
        return val, np.concatenate([g + cpos, -g + cneg])

    ubpos = np.where(S0, 0.0, Mpos)
    ubneg = np.where(S0, 0.0, -Mneg)
    bounds = [(0.0, b) for b in ubpos] + [(0.0, b) for b in ubneg]
    res = minimize(
        fun,
        np.zeros(2 * n),
        jac=True,
        method="L-BFGS-B",
        bounds=bounds,
        options={"ftol": 1e-15, "gtol": 1e-12, "maxiter": 100_000},
    )
    return res.fun + lmbd * np.sum(S1)
