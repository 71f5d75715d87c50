import numpy as np
import pytest

from sbnb.problem import Problem
from sbnb.solver import BnbNode, TreeState


m = 15
n = 8
A = np.random.randn(m, n)
y = np.random.randn(m)
problem = Problem(A, y, 0.1, 2.0)


def test_root():
    node = BnbNode.root(problem)
    assert node.category == -1
    assert node.card_S0 == 0
    assert node.card_S1 == 0
    assert node.card_Sb == n
    assert node.depth == 0
    assert np.all(node.Mpos == problem.M)
    assert np.all(node.Mneg == -problem.M)
    assert node.lb == -np.inf
    assert node.ub == np.inf
    assert np.allclose(node.u, y)
    assert isinstance(node.__str__(), str)

    x = 3.0 * np.ones(n)
    node = BnbNode.root(problem, x)
    assert np.all(node.x == problem.M)
    assert np.allclose(node.w, A @ node.x)
    assert np.allclose(node.u, y - A @ node.x)


def test_malformed():
    node = BnbNode.root(problem)
    Z = np.zeros(n, dtype=bool)

    def make(S0, S1, Sb, Mpos=node.Mpos, Mneg=node.Mneg):
        return BnbNode(
            -1, S0, S1, Sb, Mpos, Mneg, -np.inf, np.inf,
            node.x, node.w, node.u, node.x_ub,
        )  # noqa

    with pytest.raises(ValueError):
        make(Z, Z, np.ones(n - 1, dtype=bool))

    with pytest.raises(ValueError):
        make(Z, Z, Z)

    with pytest.raises(ValueError):
        make(np.ones(n, dtype=bool), Z, np.ones(n, dtype=bool))

    with pytest.raises(ValueError):
        make(Z, Z, np.ones(n, dtype=bool), Mneg=np.ones(n))

    make(Z, Z, np.ones(n, dtype=bool))


def test_fix_to():
    x = np.random.uniform(-1.0, 1.0, n)
    node = BnbNode.root(problem, x)

    node0 = node.child(problem, 0, False)
    assert node0.category == 0
    assert node0.S0[0] and not node0.Sb[0]
    assert node0.x[0] == 0.0
    assert np.allclose(node0.w, A @ node0.x)
    assert np.allclose(node0.u, y - A @ node0.x)
    assert node0.depth == 1

    node1 = node0.child(problem, 1, True)
    assert node1.category == 1
    assert node1.S1[1] and not node1.Sb[1]
    assert node1.x[1] == x[1]
    assert node1.depth == 2

    # Children do not share arrays with their parent
    assert node.Sb[0] and node.Sb[1]
    assert node.x[0] == x[0]
    assert node0.Sb[1]

    with pytest.raises(ValueError):
        node1.fix_to(problem, 0, True)


def test_tree_state():
    tree = TreeState()
    assert tree.incumbent_upper_bound() == np.inf
    assert tree.elapsed_time() >= 0.0
    assert tree.node_count == 0
    assert tree.update_incumbent(1.0)
    assert not tree.update_incumbent(2.0)
    assert tree.incumbent_upper_bound() == 1.0
