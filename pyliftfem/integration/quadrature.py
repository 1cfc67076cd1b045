"""pyliftfem.integration.quadrature
Gauss–Legendre quadrature on the reference hypercube [-1, 1]^dim and its faces.
"""
import numpy as np
from functools import lru_cache
from itertools import product
from numpy.polynomial.legendre import leggauss

_ELEMENT_DIM = {'quad': 2, 'hex': 3}


def _dim_of(element_type: str) -> int:
    try:
        return _ELEMENT_DIM[element_type]
    except KeyError:
        raise KeyError(element_type) from None


# -------------------------------------------------------------------------
# 1‑D Gauss–Legendre
# -------------------------------------------------------------------------
def gauss_legendre(n_points: int):
    """``n_points``-point rule on [-1, 1]; exact for degree 2n-1."""
    if n_points < 1:
        raise ValueError(n_points)
    return leggauss(n_points)  # (points, weights)


# -------------------------------------------------------------------------
# Tensor‑product construction helpers
# -------------------------------------------------------------------------
@lru_cache(maxsize=None)
def tensor_rule(dim: int, n_points: int):
    """Tensor Gauss rule on [-1,1]^dim, first coordinate fastest."""
    xi, wi = gauss_legendre(n_points)
    pts = np.array([p[::-1] for p in product(xi, repeat=dim)])
    wts = np.array([np.prod(w) for w in product(wi, repeat=dim)])
    return pts, wts


def volume(element_type: str, n_points: int = 2):
    return tensor_rule(_dim_of(element_type), n_points)


@lru_cache(maxsize=None)
def _face_rule(dim: int, face_index: int, n_points: int):
    if not 0 <= face_index < 2 * dim:
        raise IndexError(face_index)
    axis, side = divmod(face_index, 2)
    sub_pts, sub_wts = tensor_rule(dim - 1, n_points)
    pts = np.insert(sub_pts, axis, 1.0 if side else -1.0, axis=1)
    return pts, sub_wts


def face(element_type: str, face_index: int, n_points: int = 2):
    """
    Points on face ``face_index`` of the reference cell and the weights of the
    (dim-1)-dimensional reference face [-1,1]^(dim-1).
    """
    return _face_rule(_dim_of(element_type), face_index, n_points)
