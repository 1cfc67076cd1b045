"""Tensor-product Lagrange shape functions on the reference hypercube."""
from functools import lru_cache
from itertools import product

import numpy as np
import sympy as sp


@lru_cache(maxsize=None)
def lagrange_1d(n: int, max_deriv_order: int):
    """
    Equispaced degree-n Lagrange polynomials on [-1, 1].

    Returns the float nodes and ``table[k]``, a list of numpy callables for
    the k-th derivative of each polynomial, k = 0..max_deriv_order.
    """
    x = sp.Symbol('x')
    # rational nodes keep the symbolic products exact
    exact_nodes = [sp.Integer(-1) + sp.Rational(2 * i, n) for i in range(n + 1)]
    table = [[] for _ in range(max_deriv_order + 1)]
    for i, xi in enumerate(exact_nodes):
        Li = sp.expand(sp.prod([(x - xj) / (xi - xj)
                                for j, xj in enumerate(exact_nodes) if j != i]))
        for k, row in enumerate(table):
            row.append(sp.lambdify(x, sp.diff(Li, x, k), 'numpy'))
    return np.array([float(c) for c in exact_nodes]), table


@lru_cache(maxsize=None)
def hypercube_qn(n: int, dim: int, max_deriv_order: int = 2):
    """
    Tensor-product Q_n on [-1,1]^dim.
    Returns: (nodes, deriv_fns) where
      nodes -> ((n+1)^dim, dim) reference support points
      deriv_fns[alpha](xi) -> ((n+1)^dim,), |alpha| <= max_deriv_order
    Stacking order is lexicographic with the first coordinate fastest,
    e.g. 2-D index = j*(n+1) + i.
    """
    if n < 1:
        raise ValueError("Polynomial order must be a positive integer.")
    nodes1d, table = lagrange_1d(n, max_deriv_order)

    def factor(order, z):
        return np.array([float(L(z)) for L in table[order]])

    def make(alpha):
        def d(xi):
            out = np.ones(1)
            # last axis outermost so the first coordinate runs fastest
            for a in reversed(range(dim)):
                out = np.outer(out, factor(alpha[a], xi[a])).reshape(-1)
            return out
        return d

    derivs = {alpha: make(alpha)
              for alpha in product(range(max_deriv_order + 1), repeat=dim)
              if sum(alpha) <= max_deriv_order}
    lattice = np.array([p[::-1] for p in product(nodes1d, repeat=dim)])
    return lattice, derivs
