# analytic.py
"""
Closed-form exact solutions for manufactured bi-Laplacian problems.

An :class:`ExactSolution` exposes exactly ``value``, ``gradient`` and
``hessian``; the matching right-hand side ``f = Δ²u`` is derived
symbolically next to it. Solutions are picked by name from a fixed
registry when the problem is configured.
"""
from dataclasses import dataclass
from typing import Callable, Dict

import numpy as np
import sympy as sp

_COORDS = sp.symbols("x y z")


def _vectorize(expr, coords):
    """Lambdify a scalar expression; always returns an array of shape (nq,)."""
    f = sp.lambdify(coords, expr, "numpy")

    def ev(X):
        X = np.atleast_2d(np.asarray(X, dtype=float))
        return np.broadcast_to(np.asarray(f(*X.T), dtype=float), (X.shape[0],)).copy()
    return ev


@dataclass(frozen=True)
class ExactSolution:
    """u, ∇u and the symmetric Hessian of u, evaluated at points X (nq, dim)."""
    name: str
    dim: int
    value: Callable[[np.ndarray], np.ndarray]
    gradient: Callable[[np.ndarray], np.ndarray]
    hessian: Callable[[np.ndarray], np.ndarray]


@dataclass(frozen=True)
class ManufacturedSolution:
    exact: ExactSolution
    rhs: Callable[[np.ndarray], np.ndarray]


def from_sympy(name: str, expr, dim: int) -> ManufacturedSolution:
    coords = _COORDS[:dim]
    u = _vectorize(expr, coords)
    du = [_vectorize(sp.diff(expr, c), coords) for c in coords]
    ddu = [[_vectorize(sp.diff(expr, a, b), coords) for b in coords] for a in coords]
    lap = sum(sp.diff(expr, c, 2) for c in coords)
    f = _vectorize(sp.expand(sum(sp.diff(lap, c, 2) for c in coords)), coords)

    def gradient(X):
        return np.stack([g(X) for g in du], axis=-1)

    def hessian(X):
        return np.stack([np.stack([h(X) for h in row], axis=-1) for row in ddu], axis=-2)

    return ManufacturedSolution(ExactSolution(name, dim, u, gradient, hessian), f)


def _bubble(dim):
    coords = _COORDS[:dim]
    return sp.Mul(*[c * (1 - c) for c in coords]) ** 2


def _sine(dim):
    coords = _COORDS[:dim]
    return sp.Mul(*[sp.sin(sp.pi * c) ** 2 for c in coords])


_REGISTRY: Dict[str, Callable[[int], sp.Expr]] = {
    "bubble": _bubble,  # (x(1-x)y(1-y))^2, zero value and gradient on the boundary
    "sine": _sine,
}


def available_solutions():
    return tuple(_REGISTRY)


def get_manufactured_solution(name: str, dim: int) -> ManufacturedSolution:
    if dim not in (2, 3):
        raise ValueError(f"Spatial dimension must be 2 or 3, got {dim}.")
    try:
        build = _REGISTRY[name]
    except KeyError:
        raise ValueError(f"Unknown exact solution '{name}'. "
                         f"Choose one of {available_solutions()}.") from None
    return from_sympy(name, build(dim), dim)
