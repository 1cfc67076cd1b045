"""pyliftfem.utils.meshgen
Mesh generators for uniformly refined hypercubes.
"""
import numpy as np
import numba

from pyliftfem.core.mesh import Mesh

__all__ = ["structured_hypercube", "hypercube_cells_per_axis", "hypercube_mesh"]


def hypercube_cells_per_axis(n_refinements: int) -> int:
    """Cells along each axis after ``n_refinements`` uniform bisections."""
    if n_refinements < 0:
        raise ValueError("Number of refinements must be non-negative.")
    return 2 ** int(n_refinements)


@numba.jit(nopython=True, cache=True)
def _lattice_coords(n: int, dim: int, lo: float, hi: float):
    """Vertex coordinates of an n^dim lattice, first axis fastest."""
    n_pts = (n + 1) ** dim
    coords = np.empty((n_pts, dim), dtype=np.float64)
    h = (hi - lo) / n
    for p in range(n_pts):
        rem = p
        for a in range(dim):
            coords[p, a] = lo + h * (rem % (n + 1))
            rem //= (n + 1)
    return coords


@numba.jit(nopython=True, cache=True)
def _lattice_cells(n: int, dim: int):
    """
    Corner connectivity of the n^dim lattice cells.

    Corner ``v`` of a cell has bit ``a`` set when it sits on the upper side
    along axis ``a`` (lexicographic ordering).
    """
    n_cells = n ** dim
    n_corners = 2 ** dim
    cells = np.empty((n_cells, n_corners), dtype=np.int64)
    for c in range(n_cells):
        rem = c
        base = 0
        stride = 1
        for a in range(dim):
            base += (rem % n) * stride
            rem //= n
            stride *= (n + 1)
        for v in range(n_corners):
            off = 0
            stride = 1
            for a in range(dim):
                if (v >> a) & 1:
                    off += stride
                stride *= (n + 1)
            cells[c, v] = base + off
    return cells


def structured_hypercube(dim: int, n_refinements: int, *, lo: float = 0.0, hi: float = 1.0):
    """
    Raw data for the hypercube ``[lo, hi]^dim`` refined ``n_refinements`` times.

    Returns
    -------
    nodes : ndarray (n_nodes, dim)
        Vertex coordinates.
    corners : ndarray (n_cells, 2**dim)
        Corner node ids per cell in lexicographic order.
    """
    if dim not in (2, 3):
        raise ValueError(f"Spatial dimension must be 2 or 3, got {dim}.")
    if not hi > lo:
        raise ValueError("Upper bound must exceed lower bound.")
    n = hypercube_cells_per_axis(n_refinements)
    nodes = _lattice_coords(n, dim, float(lo), float(hi))
    corners = _lattice_cells(n, dim)
    return nodes, corners


def hypercube_mesh(dim: int, n_refinements: int, *, lo: float = 0.0, hi: float = 1.0):
    """Build a :class:`Mesh` of ``[lo, hi]^dim`` refined ``n_refinements`` times."""
    nodes, corners = structured_hypercube(dim, n_refinements, lo=lo, hi=hi)
    return Mesh(nodes, corners, element_type=Mesh.element_type_for_dim(dim))
