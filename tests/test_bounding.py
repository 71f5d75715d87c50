import numpy as np
import pytest

from sbnb.problem import Problem, compute_lmbd_max
from sbnb.solver import (
    BnbNode,
    BnbParams,
    BoundingType,
    CoordinateDescent,
    TreeState,
)
from sbnb.solver.bounding.coordinate_descent import cd_sweep
from .utils import brute_force, make_regression, relaxation


np.random.seed(0)
k, m, n = 3, 30, 8
A, y, x_true = make_regression(k, m, n)
M = 1.5 * np.max(np.abs(x_true))
lmbd = 0.1 * compute_lmbd_max(A, y)
problem = Problem(A, y, lmbd, M)

params_plain = BnbParams(
    dualpruning=False,
    l0screening=False,
    l1screening=False,
    bigmpeeling=False,
)


def make_node(seed):
    """Root node when `seed` is None, otherwise a node with a few entries
    randomly fixed to zero or non-zero."""
    node = BnbNode.root(problem)
    if seed is None:
        return node
    rng = np.random.default_rng(seed)
    for i in rng.choice(n, size=3, replace=False):
        node.fix_to(problem, i, bool(rng.integers(2)))
    return node


seeds = [pytest.param(None, id="root")] + [
    pytest.param(seed, id="node{}".format(seed)) for seed in range(3)
]


def test_scenario_full_support():
    A = np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    y = np.array([1.0, 1.0, 2.0])
    problem = Problem(A, y, 0.1, 2.0)
    node = BnbNode.root(problem)
    node.fix_to(problem, 0, True)
    node.fix_to(problem, 1, True)

    solver = CoordinateDescent()
    lb = solver.bound(
        problem, TreeState(), node, params_plain, BoundingType.LOWER
    )
    assert lb == node.lb
    assert node.lb == pytest.approx(0.2, abs=1e-6)
    assert node.x == pytest.approx(np.array([1.0, 1.0]), abs=1e-4)

    ub = solver.bound(
        problem, TreeState(), node, params_plain, BoundingType.UPPER
    )
    assert ub == node.ub
    assert node.ub == pytest.approx(0.2, abs=1e-6)
    assert node.x_ub == pytest.approx(np.array([1.0, 1.0]), abs=1e-4)


class CountingGenerator:
    """Random generator wrapper counting the visiting orders drawn."""

    def __init__(self, rng):
        self.rng = rng
        self.calls = 0

    def permutation(self, x):
        self.calls += 1
        return self.rng.permutation(x)


def test_scenario_all_zero():
    node = BnbNode.root(problem)
    for i in range(n):
        node.fix_to(problem, i, False)

    # With everything fixed to zero, the first sweep closes the gap
    solver = CoordinateDescent()
    assert solver.maxiter > 1
    for bounding_type in [BoundingType.LOWER, BoundingType.UPPER]:
        solver.rng = CountingGenerator(np.random.default_rng(0))
        solver.bound(problem, TreeState(), node, params_plain, bounding_type)
        assert solver.rng.calls == 1
    assert np.all(node.x == 0.0)
    assert np.all(node.x_ub == 0.0)
    assert node.lb == pytest.approx(node.ub, abs=1e-12)
    assert node.lb == pytest.approx(0.5 * (y @ y))
    assert node.ub == pytest.approx(0.5 * (y @ y))


@pytest.mark.parametrize("seed", seeds)
def test_weak_duality(seed):
    node = make_node(seed)
    Mneg = np.copy(node.Mneg)
    Mpos = np.copy(node.Mpos)
    S0 = np.copy(node.S0)
    S1 = np.copy(node.S1)

    solver = CoordinateDescent(tolgap=1e-10)
    solver.bound(problem, TreeState(), node, params_plain, BoundingType.LOWER)

    rval = relaxation(A, y, lmbd, Mneg, Mpos, S0, S1)
    bval, _ = brute_force(A, y, lmbd, Mneg, Mpos, S0, S1)
    assert node.lb <= rval + 1e-10
    assert node.lb <= bval + 1e-10
    assert node.lb == pytest.approx(rval, rel=1e-5, abs=1e-6)


@pytest.mark.parametrize("seed", seeds)
def test_upper_bound(seed):
    node = make_node(seed)
    solver = CoordinateDescent()
    solver.bound(problem, TreeState(), node, params_plain, BoundingType.LOWER)
    x = np.copy(node.x)
    w = np.copy(node.w)
    u = np.copy(node.u)

    solver.bound(problem, TreeState(), node, params_plain, BoundingType.UPPER)

    assert np.all(node.x_ub[~node.S1] == 0.0)
    assert np.max(np.abs(node.x_ub)) <= problem.M
    assert node.ub >= node.lb - 1e-8
    assert node.ub >= problem.value(node.x_ub) - 1e-10

    # The upper bounding works on its own arrays
    assert np.all(node.x == x)
    assert np.all(node.w == w)
    assert np.all(node.u == u)


@pytest.mark.parametrize("seed", seeds)
def test_residual_consistency(seed):
    node = make_node(seed)
    x = np.random.uniform(-M, M, n)
    x[node.S0] = 0.0
    w = A @ x
    u = y - w
    S = node.S1 | node.Sb
    for _ in range(5):
        order = np.random.permutation(np.flatnonzero(S))
        cd_sweep(
            problem.A, problem.y, lmbd, problem.a, node.Mpos, node.Mneg,
            x, w, u, order, node.Sb,
        )  # noqa
        assert np.linalg.norm(u - (y - A @ x)) < 1e-10
        assert np.linalg.norm(w - A @ x) < 1e-10
        assert np.all(x <= node.Mpos)
        assert np.all(x >= node.Mneg)

    solver = CoordinateDescent()
    params = BnbParams()
    bval, _ = brute_force(A, y, lmbd, node.Mneg, node.Mpos)
    tree = TreeState(upper_bound=bval)
    solver.bound(problem, tree, node, params, BoundingType.LOWER)
    assert np.linalg.norm(node.u - (y - A @ node.x)) < 1e-10
    assert np.linalg.norm(node.w - A @ node.x) < 1e-10


@pytest.mark.parametrize("seed", seeds)
def test_order_independence(seed):
    node = make_node(seed)
    node1 = node.__copy__()
    node2 = node.__copy__()
    tolgap = 1e-10
    CoordinateDescent(tolgap=tolgap, seed=1).bound(
        problem, TreeState(), node1, params_plain, BoundingType.LOWER
    )
    CoordinateDescent(tolgap=tolgap, seed=2).bound(
        problem, TreeState(), node2, params_plain, BoundingType.LOWER
    )
    assert node1.lb == pytest.approx(node2.lb, abs=2.0 * tolgap)

    CoordinateDescent(tolgap=tolgap, seed=1).bound(
        problem, TreeState(), node1, params_plain, BoundingType.UPPER
    )
    CoordinateDescent(tolgap=tolgap, seed=2).bound(
        problem, TreeState(), node2, params_plain, BoundingType.UPPER
    )
    assert node1.ub == pytest.approx(node2.ub, abs=2.0 * tolgap)


def test_maxtime():
    node = BnbNode.root(problem)
    params = BnbParams(maxtime=0.0)
    solver = CoordinateDescent()
    lb = solver.bound(problem, TreeState(), node, params, BoundingType.LOWER)
    assert lb <= relaxation(
        A, y, lmbd, node.Mneg, node.Mpos, node.S0, node.S1
    ) + 1e-10


def test_unknown_bounding_type():
    node = BnbNode.root(problem)
    solver = CoordinateDescent()
    with pytest.raises(ValueError):
        solver.bound(problem, TreeState(), node, params_plain, "middle")
