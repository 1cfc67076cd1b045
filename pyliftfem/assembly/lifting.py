"""pyliftfem.assembly.lifting
Lifting operators: discrete Hessians of discontinuous Q_k basis functions.

A discontinuous basis function has no global second derivative. Its discrete
Hessian on a cell K is the cell-wise Hessian corrected by two liftings of its
face traces into the tensor-valued space Σ_h = [Q_k]^{dim×dim}:

    H_h(φ)|_K = D²φ − R(∇φ) + B(φ)

    (R(∇φ), τ)_K = Σ_f  {avg} ∫_f (τ n) · ∇φ
    (B(φ),  τ)_K = Σ_f  {avg} ∫_f (div τ · n) φ

with ``avg = 1`` on boundary faces and ``1/2`` on interior ones. The
basis function of a face neighbour K' is zero on K, but its traces on the
shared face still lift into Σ_h(K); that correction is the
*neighbour-trace* discrete Hessian of the neighbour's basis on K.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict

import numpy as np
import scipy.sparse.linalg as spla

from pyliftfem.config import LiftingParameters
from pyliftfem.fem.fevalues import CellValues, FaceValues
from pyliftfem.fem.tensorelement import TensorElement

logger = logging.getLogger(__name__)


class LiftingConvergenceError(RuntimeError):
    """A local lifting solve exceeded its iteration budget."""

    def __init__(self, elem_id, basis_index, info):
        super().__init__(f"Local lifting solve on element {elem_id} (basis function "
                         f"{basis_index}) did not converge: cg info={info}.")
        self.elem_id = elem_id
        self.basis_index = basis_index
        self.info = info


@dataclass
class DiscreteHessians:
    """Discrete Hessians of every local basis function of one cell."""
    elem_id: int
    cell: np.ndarray                    # (n_dofs, nq, dim, dim), own basis
    JxW: np.ndarray                     # (nq,), cell quadrature weights
    neighbors: Dict[int, np.ndarray] = field(default_factory=dict)  # local face -> neighbour basis on this cell
    n_solves_cell: int = 0
    n_solves_neighbors: int = 0


def lift_mass_matrix(tensor_values: np.ndarray, JxW: np.ndarray) -> np.ndarray:
    """L[m, n] = ∫_K τ_n : τ_m (symmetric positive definite)."""
    return np.einsum('qmrs,qnrs,q->mn', tensor_values, tensor_values, JxW)


def rhs_gradient_trace(tau, normals, grads, JxW, factor):
    """re[i, m] = factor ∫_f (τ_m n) · ∇φ_i."""
    tau_n = np.einsum('qmrs,qs->qmr', tau, normals)
    return factor * np.einsum('qmr,qir,q->im', tau_n, grads, JxW)


def rhs_value_trace(div_tau, normals, values, JxW, factor):
    """be[i, m] = factor ∫_f (div τ_m · n) φ_i."""
    div_n = np.einsum('qmr,qr->qm', div_tau, normals)
    return factor * np.einsum('qm,qi,q->im', div_n, values, JxW)


def solve_lifting_system(L, rhs, params: LiftingParameters, *, elem_id=None, basis_index=None):
    """Conjugate gradients on the local SPD system; non-convergence is fatal."""
    coeffs, info = spla.cg(L, rhs, rtol=params.tol, atol=0.0, maxiter=params.max_iter)
    if info != 0:
        raise LiftingConvergenceError(elem_id, basis_index, info)
    return coeffs


def compute_discrete_hessians(mesh, elem_id: int, poly_order: int, *,
                              n_q: int | None = None,
                              params: LiftingParameters | None = None) -> DiscreteHessians:
    """
    Self and neighbour-trace discrete Hessians for all basis functions of a cell.

    The local mass matrix is built once and reused, unmodified, for every
    right-hand side. Each face issues two solves per basis function (one per
    lifting), so each of the two phases solves at most
    ``2 * n_dofs * n_faces`` systems. Nothing outside the cell is modified.
    """
    if n_q is None:
        n_q = poly_order + 1
    if params is None:
        params = LiftingParameters()

    lift = TensorElement(mesh.element_type, poly_order)
    cv = CellValues(mesh, elem_id, poly_order, n_q)
    tau = lift.values(cv.values)
    L = lift_mass_matrix(tau, cv.JxW)
    n_dofs = cv.values.shape[1]

    def solve_all(rhs):
        return np.array([solve_lifting_system(L, rhs[i], params, elem_id=elem_id, basis_index=i)
                         for i in range(n_dofs)])

    coeffs_re = np.zeros((n_dofs, lift.n_dofs))
    coeffs_be = np.zeros((n_dofs, lift.n_dofs))
    n_solves = 0
    interior = []
    for f in range(mesh.n_faces_per_cell):
        fv = FaceValues(mesh, elem_id, f, poly_order, n_q)
        tau_f = lift.values(fv.values)
        div_f = lift.divergence(fv.grads)
        at_boundary = mesh.at_boundary(elem_id, f)
        factor_avg = 1.0 if at_boundary else 0.5
        re = rhs_gradient_trace(tau_f, fv.normals, fv.grads, fv.JxW, factor_avg)
        be = rhs_value_trace(div_f, fv.normals, fv.values, fv.JxW, factor_avg)
        coeffs_re += solve_all(re)
        coeffs_be += solve_all(be)
        n_solves += 2 * n_dofs
        if not at_boundary:
            interior.append((f, fv, tau_f, div_f))

    H = (cv.hessians.transpose(1, 0, 2, 3)
         - lift.evaluate(coeffs_re, tau)
         + lift.evaluate(coeffs_be, tau))
    result = DiscreteHessians(elem_id, H, cv.JxW, n_solves_cell=n_solves)

    # Neighbour traces: the neighbour's basis seen through this cell's liftings.
    for f, fv, tau_f, div_f in interior:
        nb = mesh.neighbor(elem_id, f)
        nfv = FaceValues.at_points(mesh, nb, mesh.neighbor_of_neighbor(elem_id, f),
                                   poly_order, fv.points)
        re = rhs_gradient_trace(tau_f, nfv.normals, nfv.grads, fv.JxW, 0.5)
        be = rhs_value_trace(div_f, nfv.normals, nfv.values, fv.JxW, 0.5)
        result.neighbors[f] = lift.evaluate(solve_all(be) - solve_all(re), tau)
        result.n_solves_neighbors += 2 * n_dofs

    logger.debug("element %d: %d self and %d neighbour-trace lifting solves",
                 elem_id, result.n_solves_cell, result.n_solves_neighbors)
    return result


def discrete_hessian_of(mesh, dof_handler, coeffs, elem_id: int, *,
                        hessians: DiscreteHessians | None = None,
                        n_q: int | None = None,
                        params: LiftingParameters | None = None) -> np.ndarray:
    """
    Discrete Hessian (nq, dim, dim) of the discrete function ``coeffs`` on a cell.

    Combines the cell's own basis with the neighbour traces of every interior
    face, so the result is linear in ``coeffs``.
    """
    if hessians is None:
        hessians = compute_discrete_hessians(mesh, elem_id, dof_handler.poly_order,
                                             n_q=n_q, params=params)
    coeffs = np.asarray(coeffs, dtype=float)
    H = np.einsum('i,iqrs->qrs', coeffs[dof_handler.get_elemental_dofs(elem_id)], hessians.cell)
    for f, Hn in hessians.neighbors.items():
        nb_dofs = dof_handler.get_elemental_dofs(mesh.neighbor(elem_id, f))
        H += np.einsum('i,iqrs->qrs', coeffs[nb_dofs], Hn)
    return H
