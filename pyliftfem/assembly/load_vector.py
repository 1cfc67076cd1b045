"""pyliftfem.assembly.load_vector"""
import numpy as np

from pyliftfem.fem.fevalues import CellValues

__all__ = ["dg_element_load", "assemble_rhs"]


def dg_element_load(mesh, elem_id, rhs, *, poly_order, n_q=None):
    """Fe[i] = ∫_K f φ_i, with ``rhs`` called on the (nq, dim) quadrature points."""
    if n_q is None:
        n_q = poly_order + 1
    cv = CellValues(mesh, elem_id, poly_order, n_q)
    return cv.values.T @ (cv.JxW * rhs(cv.points))


def assemble_rhs(mesh, dof_handler, rhs, F, *, n_q=None):
    for el in mesh.elements_list:
        F[dof_handler.get_elemental_dofs(el.id)] += dg_element_load(
            mesh, el.id, rhs, poly_order=dof_handler.poly_order, n_q=n_q)
    return F
