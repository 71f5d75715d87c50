import numpy as np
import pytest

from sbnb.problem import Problem, compute_lmbd_max


m = 30
n = 20
A = np.random.randn(m, n)
y = np.random.randn(m)
x = np.random.randn(n)
w = A @ x
lmbd = np.random.rand()
M = 1.1 * np.max(np.abs(x))


def test_problem():
    with pytest.raises(ValueError):
        Problem("A", y, lmbd, M)

    with pytest.raises(ValueError):
        Problem(np.zeros(m), y, lmbd, M)

    with pytest.raises(ValueError):
        Problem(A, y.reshape(m, 1), lmbd, M)

    with pytest.raises(ValueError):
        Problem(A, y[:-1], lmbd, M)

    with pytest.raises(ValueError):
        Problem(A, y, "lmbd", M)

    with pytest.raises(ValueError):
        Problem(A, y, -1.0, M)

    with pytest.raises(ValueError):
        Problem(A, y, lmbd, 0.0)

    with pytest.raises(ValueError):
        Problem(A, y, lmbd, 1)

    problem = Problem(A, y, lmbd, M)
    assert isinstance(problem.__str__(), str)
    assert problem.m == m
    assert problem.n == n
    assert problem.A.flags.f_contiguous
    assert np.allclose(problem.a, np.linalg.norm(A, axis=0) ** 2)

    obj1 = problem.value(x)
    obj2 = problem.value(x, w)
    assert isinstance(obj1, float)
    assert isinstance(obj2, float)
    assert obj1 == pytest.approx(obj2)
    assert obj1 == pytest.approx(0.5 * np.sum((y - w) ** 2) + lmbd * n)

    assert problem.value(np.zeros(n)) == pytest.approx(0.5 * (y @ y))
    assert problem.value(2.0 * M * np.ones(n)) == np.inf


def test_lmbd_max():
    with pytest.raises(ValueError):
        compute_lmbd_max("A", y)

    with pytest.raises(ValueError):
        compute_lmbd_max(np.zeros(n), y)

    assert compute_lmbd_max(np.zeros((0, n)), np.zeros(0)) == 0.0
    assert compute_lmbd_max(np.zeros((m, 0)), y) == 0.0

    lmbd_max = compute_lmbd_max(A, y)
    assert lmbd_max >= 0.0
    assert lmbd_max < np.inf

    # Above lmbd_max, no single entry improves on the all-zero vector
    a = np.sum(A**2, axis=0)
    for i in range(n):
        t = (A[:, i] @ y) / a[i]
        r = y - t * A[:, i]
        assert 0.5 * (r @ r) + lmbd_max >= 0.5 * (y @ y) - 1e-10

    B = np.copy(A)
    B[:, 0] = 0.0
    assert np.isfinite(compute_lmbd_max(B, y))
    assert compute_lmbd_max(np.zeros((m, n)), y) == 0.0
