import numpy as np
from sbnb import Problem, compute_lmbd_max
from sbnb.solver import BnbSolver

k, m, n = 5, 50, 100
x = np.zeros(n)
s = np.array(np.floor(np.linspace(0, n - 1, num=k)), dtype=int)
x[s] = np.random.randn(k)
A = np.random.randn(m, n)
y = A @ x
y += np.random.randn(m) * 0.1 * (np.linalg.norm(y) ** 2 / m)
M = 1.5 * np.max(np.abs(x))
lmbd = 0.1 * compute_lmbd_max(A, y)

problem = Problem(A, y, lmbd, M)
solver = BnbSolver(verbose=True)
result = solver.solve(problem)
print(result)
