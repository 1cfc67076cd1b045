"""pyliftfem.assembly.dg_global
Global assembly of the lifted-Hessian LDG matrix for  Δ²u = f.
"""
import logging
from collections import Counter
from itertools import combinations
from typing import Iterable, Optional

import numpy as np
import scipy.sparse as sp

from pyliftfem.assembly.dg_local import face_penalty, lifted_stiffness
from pyliftfem.assembly.lifting import compute_discrete_hessians
from pyliftfem.config import LiftingParameters
from pyliftfem.core.dofhandler import DofHandler
from pyliftfem.core.mesh import Mesh
from pyliftfem.fem.fevalues import FaceValues

logger = logging.getLogger(__name__)


class SparseAccumulator:
    """
    Triplet buffer for a square global matrix.

    Blocks are added with their global row and column indices; duplicate
    entries are summed when the buffer is converted with :meth:`tocsr`.
    """

    def __init__(self, n_dofs: int):
        self.shape = (n_dofs, n_dofs)
        self._rows, self._cols, self._data = [], [], []

    def add(self, rows, cols, block: np.ndarray) -> None:
        rr, cc = np.meshgrid(rows, cols, indexing='ij')
        self._rows.append(rr.ravel())
        self._cols.append(cc.ravel())
        self._data.append(np.asarray(block, dtype=float).ravel())

    def __len__(self):
        return sum(len(d) for d in self._data)

    def tocsr(self) -> sp.csr_matrix:
        if not self._data:
            return sp.csr_matrix(self.shape)
        return sp.csr_matrix((np.concatenate(self._data),
                              (np.concatenate(self._rows), np.concatenate(self._cols))),
                             shape=self.shape)


def patch_cells(mesh: Mesh, elem_id: int) -> list:
    """The cell followed by its face neighbours in local face order."""
    return [elem_id] + [nb for f in range(mesh.n_faces_per_cell)
                        if (nb := mesh.neighbor(elem_id, f)) is not None]


def make_sparsity_pattern(mesh: Mesh, dof_handler: DofHandler) -> sp.csr_matrix:
    """
    Boolean pattern coupling every pair of DOFs that live on a common patch
    (a cell together with its face neighbours).

    Two neighbours of the same cell couple through that cell's discrete
    Hessian, so the pattern reaches neighbours of neighbours.
    """
    rows, cols = [], []
    for el in mesh.elements_list:
        dofs = np.concatenate([dof_handler.get_elemental_dofs(c) for c in patch_cells(mesh, el.id)])
        rr, cc = np.meshgrid(dofs, dofs, indexing='ij')
        rows.append(rr.ravel())
        cols.append(cc.ravel())
    rows = np.concatenate(rows)
    cols = np.concatenate(cols)
    pattern = sp.csr_matrix((np.ones(len(rows), dtype=bool), (rows, cols)),
                            shape=(dof_handler.total_dofs, dof_handler.total_dofs))
    pattern.sum_duplicates()
    return pattern


def assemble_matrix(mesh: Mesh, dof_handler: DofHandler, matrix: SparseAccumulator, *,
                    penalty_jump_grad: float,
                    penalty_jump_val: float,
                    lifting: LiftingParameters | None = None,
                    n_q: int | None = None,
                    cell_order: Optional[Iterable[int]] = None,
                    face_visits: Optional[Counter] = None) -> SparseAccumulator:
    """
    Add the lifted-Hessian stiffness and the face penalties to ``matrix``.

    Parameters
    ----------
    mesh, dof_handler
        Geometry and the discontinuous DOF numbering.
    matrix : SparseAccumulator
        Receives every local block.
    penalty_jump_grad, penalty_jump_val : float
        Penalty coefficients; the face terms are scaled by h_f⁻¹ and h_f⁻³.
    lifting : LiftingParameters, optional
        Iteration budget and tolerance of the local lifting solves.
    n_q : int, optional
        Gauss points per direction (default ``degree + 1``).
    cell_order : iterable of int, optional
        Order in which cells are visited. Any permutation gives the same matrix.
    face_visits : collections.Counter, optional
        If given, incremented once per processed face gid.

    Returns
    -------
    SparseAccumulator
        ``matrix``, for chaining.
    """
    poly_order = dof_handler.poly_order
    if n_q is None:
        n_q = poly_order + 1
    if cell_order is None:
        cell_order = range(mesh.n_elements)

    n_cells = n_self = n_neighbors = 0
    for eid in cell_order:
        n_cells += 1
        hessians = compute_discrete_hessians(mesh, eid, poly_order, n_q=n_q, params=lifting)
        n_self += hessians.n_solves_cell
        n_neighbors += hessians.n_solves_neighbors
        JxW = hessians.JxW
        Hc = hessians.cell
        dofs = dof_handler.get_elemental_dofs(eid)

        # --- lifted Hessian products on this cell ---
        matrix.add(dofs, dofs, lifted_stiffness(Hc, Hc, JxW))
        nb_dofs = {f: dof_handler.get_elemental_dofs(mesh.neighbor(eid, f))
                   for f in hessians.neighbors}
        for f, Hn in hessians.neighbors.items():
            matrix.add(dofs, nb_dofs[f], lifted_stiffness(Hc, Hn, JxW))
            matrix.add(nb_dofs[f], dofs, lifted_stiffness(Hn, Hc, JxW))
            matrix.add(nb_dofs[f], nb_dofs[f], lifted_stiffness(Hn, Hn, JxW))
        for f1, f2 in combinations(sorted(hessians.neighbors), 2):
            H1, H2 = hessians.neighbors[f1], hessians.neighbors[f2]
            matrix.add(nb_dofs[f1], nb_dofs[f2], lifted_stiffness(H1, H2, JxW))
            matrix.add(nb_dofs[f2], nb_dofs[f1], lifted_stiffness(H2, H1, JxW))

        # --- face penalties, each face once ---
        for f in range(mesh.n_faces_per_cell):
            nb = mesh.neighbor(eid, f)
            if nb is not None and not mesh.owns_face(eid, nb):
                continue
            if face_visits is not None:
                face_visits[mesh.cell_face(eid, f).gid] += 1
            fv = FaceValues(mesh, eid, f, poly_order, n_q)
            h_f = mesh.face_diameter(eid, f)
            if nb is None:
                matrix.add(dofs, dofs, face_penalty(fv, None, h_f,
                                                    penalty_jump_grad=penalty_jump_grad,
                                                    penalty_jump_val=penalty_jump_val))
                continue
            nfv = FaceValues.at_points(mesh, nb, mesh.neighbor_of_neighbor(eid, f),
                                       poly_order, fv.points)
            cc, cn, nc, nn = face_penalty(fv, nfv, h_f,
                                          penalty_jump_grad=penalty_jump_grad,
                                          penalty_jump_val=penalty_jump_val)
            ndofs = dof_handler.get_elemental_dofs(nb)
            matrix.add(dofs, dofs, cc)
            matrix.add(dofs, ndofs, cn)
            matrix.add(ndofs, dofs, nc)
            matrix.add(ndofs, ndofs, nn)

    logger.info("Assembled %d cells (%d self and %d neighbour-trace lifting solves)",
                n_cells, n_self, n_neighbors)
    return matrix
