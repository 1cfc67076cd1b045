"""pyliftfem.postprocess.errors
Discrete H², H¹ and L² errors of a DG solution against an exact solution.

The broken norms add face terms so that they are norms on the
discontinuous space:

    |e|²_H2 = Σ_K |D²e|²_K + Σ_f h_f⁻¹ |[∇e]|²_f + h_f⁻³ |[e]|²_f
    |e|²_H1 = Σ_K |∇e|²_K  + Σ_f h_f⁻¹ |[e]|²_f
    |e|²_L2 = Σ_K |e|²_K

On interior faces the jump of e is the jump of u_h. On boundary faces it is
the trace difference u − u_h.
"""
import logging
from dataclasses import dataclass

import numpy as np

from pyliftfem.assembly.lifting import discrete_hessian_of
from pyliftfem.fem.analytic import ExactSolution
from pyliftfem.fem.fevalues import CellValues, FaceValues

logger = logging.getLogger(__name__)

_HESSIAN_KINDS = ("broken", "discrete")


@dataclass(frozen=True)
class ErrorNorms:
    h2: float
    h1: float
    l2: float

    def as_tuple(self):
        return self.h2, self.h1, self.l2


def compute_errors(mesh, dof_handler, solution, exact: ExactSolution, *,
                   n_q: int | None = None,
                   hessian: str = "broken",
                   lifting=None) -> ErrorNorms:
    """
    Parameters
    ----------
    solution : array (total_dofs,)
        Coefficients of u_h.
    exact : ExactSolution
        Reference solution providing value, gradient and Hessian.
    hessian : {"broken", "discrete"}
        Cell term of the H² error. ``"broken"`` uses the cell-wise Hessian of
        u_h, ``"discrete"`` its lifted discrete Hessian.
    """
    if hessian not in _HESSIAN_KINDS:
        raise ValueError(f"hessian must be one of {_HESSIAN_KINDS}, got '{hessian}'.")
    k = dof_handler.poly_order
    if n_q is None:
        n_q = k + 1
    solution = np.asarray(solution, dtype=float)

    err_h2 = err_h1 = err_l2 = 0.0
    for el in mesh.elements_list:
        eid = el.id
        u = solution[dof_handler.get_elemental_dofs(eid)]
        cv = CellValues(mesh, eid, k, n_q)
        if hessian == "discrete":
            H_h = discrete_hessian_of(mesh, dof_handler, solution, eid, n_q=n_q, params=lifting)
        else:
            H_h = cv.function_hessians(u)
        X = cv.points
        err_h2 += np.sum(cv.JxW * np.sum((exact.hessian(X) - H_h) ** 2, axis=(1, 2)))
        err_h1 += np.sum(cv.JxW * np.sum((exact.gradient(X) - cv.function_grads(u)) ** 2, axis=1))
        err_l2 += np.sum(cv.JxW * (exact.value(X) - cv.function_values(u)) ** 2)

        for f in range(mesh.n_faces_per_cell):
            nb = mesh.neighbor(eid, f)
            if nb is not None and not mesh.owns_face(eid, nb):
                continue
            fv = FaceValues(mesh, eid, f, k, n_q)
            if nb is None:
                jump_val = exact.value(fv.points) - fv.function_values(u)
                jump_grad = exact.gradient(fv.points) - fv.function_grads(u)
            else:
                nfv = FaceValues.at_points(mesh, nb, mesh.neighbor_of_neighbor(eid, f), k, fv.points)
                u_nb = solution[dof_handler.get_elemental_dofs(nb)]
                jump_val = nfv.function_values(u_nb) - fv.function_values(u)
                jump_grad = nfv.function_grads(u_nb) - fv.function_grads(u)
            h_f = mesh.face_diameter(eid, f)
            val2 = np.sum(fv.JxW * jump_val ** 2)
            err_h2 += np.sum(fv.JxW * np.sum(jump_grad ** 2, axis=1)) / h_f + val2 / h_f ** 3
            err_h1 += val2 / h_f

    norms = ErrorNorms(np.sqrt(err_h2), np.sqrt(err_h1), np.sqrt(err_l2))
    logger.info("Errors: H2 = %.6e, H1 = %.6e, L2 = %.6e", *norms.as_tuple())
    return norms
