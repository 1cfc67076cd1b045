"""pyliftfem.fem.fevalues
Shape-function values, gradients and Hessians at quadrature points of a
cell or of one of its faces, pushed forward to physical coordinates.
"""
from functools import lru_cache

import numpy as np

from pyliftfem.fem import transform
from pyliftfem.fem.reference import get_reference
from pyliftfem.integration import quadrature


@lru_cache(maxsize=None)
def _cell_tabulation(element_type, poly_order, n_q):
    pts, wts = quadrature.volume(element_type, n_q)
    return (pts, wts) + get_reference(element_type, poly_order).tabulate(pts)


@lru_cache(maxsize=None)
def _face_tabulation(element_type, poly_order, face_index, n_q):
    pts, wts = quadrature.face(element_type, face_index, n_q)
    return (pts, wts) + get_reference(element_type, poly_order).tabulate(pts)


def _geometry(mesh, elem_id, ref_points):
    J = np.array([transform.jacobian(mesh, elem_id, p) for p in ref_points])
    x = np.array([transform.x_mapping(mesh, elem_id, p) for p in ref_points])
    return J, x


class CellValues:
    """
    Scalar basis data on one cell.

    Attributes: ``points`` (nq, dim), ``JxW`` (nq,), ``values`` (nq, n),
    ``grads`` (nq, n, dim), ``hessians`` (nq, n, dim, dim).
    """

    def __init__(self, mesh, elem_id: int, poly_order: int, n_q: int):
        self.elem_id = elem_id
        ref_pts, wts, V, G, H = _cell_tabulation(mesh.element_type, poly_order, n_q)
        J, self.points = _geometry(mesh, elem_id, ref_pts)
        B = np.linalg.inv(J).transpose(0, 2, 1)
        self.JxW = wts * np.abs(np.linalg.det(J))
        self.values = V
        self.grads = transform.map_grad(G, B)
        self.hessians = transform.map_hess(H, B)

    @property
    def n_q(self) -> int:
        return len(self.JxW)

    def function_values(self, coeffs):
        return self.values @ coeffs

    def function_grads(self, coeffs):
        return np.einsum('qna,n->qa', self.grads, coeffs)

    def function_hessians(self, coeffs):
        return np.einsum('qnab,n->qab', self.hessians, coeffs)


class FaceValues:
    """
    Scalar basis traces on one face of a cell, with the cell's outward normals.

    Built either on the face's own quadrature rule, or (``at_points``) at
    given physical points, which is how a neighbour's traces are aligned with
    this cell's face quadrature.
    """

    def __init__(self, mesh, elem_id: int, local_face: int, poly_order: int, n_q: int):
        self.elem_id = elem_id
        self.local_face = local_face
        ref_pts, wts, V, G, _ = _face_tabulation(mesh.element_type, poly_order, local_face, n_q)
        J, self.points = _geometry(mesh, elem_id, ref_pts)
        self._set(J, V, G, local_face)
        self.JxW = wts * self._measure

    @classmethod
    def at_points(cls, mesh, elem_id: int, local_face: int, poly_order: int, x_phys):
        """Traces of ``elem_id``'s basis at physical points on its face ``local_face``."""
        self = cls.__new__(cls)
        self.elem_id = elem_id
        self.local_face = local_face
        self.points = np.asarray(x_phys, dtype=float)
        ref_pts = np.array([transform.inverse_mapping(mesh, elem_id, x) for x in self.points])
        V, G, _ = get_reference(mesh.element_type, poly_order).tabulate(ref_pts)
        J = np.array([transform.jacobian(mesh, elem_id, p) for p in ref_pts])
        self._set(J, V, G, local_face)
        self.JxW = None
        return self

    def _set(self, J, V, G, local_face):
        B = np.linalg.inv(J).transpose(0, 2, 1)
        measure, normals = zip(*(transform.face_measure_and_normal(Jq, local_face) for Jq in J))
        self._measure = np.asarray(measure)
        self.normals = np.asarray(normals)
        self.values = V
        self.grads = transform.map_grad(G, B)

    @property
    def n_q(self) -> int:
        return len(self.points)

    def function_values(self, coeffs):
        return self.values @ coeffs

    def function_grads(self, coeffs):
        return np.einsum('qna,n->qa', self.grads, coeffs)
