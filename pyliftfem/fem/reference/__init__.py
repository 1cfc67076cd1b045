# pyliftfem.fem.reference
"""
Order-agnostic reference-element factory.
"""
from functools import lru_cache
import numpy as np

from pyliftfem.fem.reference.hypercube_qn import hypercube_qn

_ELEMENT_DIM = {'quad': 2, 'hex': 3}


class Ref:
    """Scalar Lagrange element on the reference cell. Points are tuples."""

    def __init__(self, element_type, poly_order, nodes, deriv_lambdas):
        self.element_type = element_type
        self.poly_order = poly_order
        self.dim = _ELEMENT_DIM[element_type]
        self.nodes = nodes
        self.deriv_lambdas = deriv_lambdas
        self.n_dofs = len(nodes)

    @lru_cache(maxsize=None)
    def derivative(self, xi, alpha):
        if alpha not in self.deriv_lambdas:
            raise ValueError(f"Derivative order {alpha} not computed. "
                             f"Adjust max_deriv_order >= {sum(alpha)}.")
        return self.deriv_lambdas[alpha](xi).astype(float).ravel()

    @lru_cache(maxsize=None)
    def shape(self, xi):
        return self.derivative(xi, (0,) * self.dim)

    def _unit(self, *axes):
        alpha = [0] * self.dim
        for a in axes:
            alpha[a] += 1
        return tuple(alpha)

    @lru_cache(maxsize=None)
    def grad(self, xi):
        return np.column_stack([self.derivative(xi, self._unit(a)) for a in range(self.dim)])

    @lru_cache(maxsize=None)
    def hess(self, xi):
        H = np.empty((self.n_dofs, self.dim, self.dim), dtype=float)
        for a in range(self.dim):
            for b in range(a, self.dim):
                d = self.derivative(xi, self._unit(a, b))
                H[:, a, b] = d
                H[:, b, a] = d
        return H

    def tabulate(self, points):
        """Values (nq, n), gradients (nq, n, dim), hessians (nq, n, dim, dim)."""
        pts = [tuple(float(c) for c in p) for p in np.atleast_2d(points)]
        return (np.array([self.shape(p) for p in pts]),
                np.array([self.grad(p) for p in pts]),
                np.array([self.hess(p) for p in pts]))


@lru_cache(maxsize=None)
def get_reference(element_type: str, poly_order: int = 1, max_deriv_order: int = 2):
    if element_type not in _ELEMENT_DIM:
        raise KeyError(element_type)
    nodes, deriv_lambdas = hypercube_qn(poly_order, _ELEMENT_DIM[element_type], max_deriv_order)
    return Ref(element_type, poly_order, nodes, deriv_lambdas)
