"""pyliftfem.assembly.dg_local
Local kernels for the lifted-Hessian LDG discretisation of  Δ²u = f.

The bilinear form on a cell K is  ∫_K H_h(φ_j) : H_h(φ_i), taken over every
pair of basis functions whose discrete Hessian is non-zero on K (the cell's
own basis and the basis of each face neighbour). Faces add the interior
penalty on the jumps of the gradient and of the value.
"""
from typing import Tuple

import numpy as np

from pyliftfem.fem.fevalues import FaceValues


# -----------------------------------------------------------------------------
# Volume kernel
# -----------------------------------------------------------------------------

def lifted_stiffness(H_row: np.ndarray, H_col: np.ndarray, JxW: np.ndarray) -> np.ndarray:
    """K[i, j] = Σ_q JxW_q  H_col[j, q] : H_row[i, q]."""
    return np.einsum('iqrs,jqrs,q->ij', H_row, H_col, JxW)


# -----------------------------------------------------------------------------
# Face kernel: penalised jumps of ∇u and u
# -----------------------------------------------------------------------------

def _penalty_block(row: FaceValues, col: FaceValues, JxW, gamma_grad, gamma_val):
    return (gamma_grad * np.einsum('qia,qja,q->ij', row.grads, col.grads, JxW)
            + gamma_val * np.einsum('qi,qj,q->ij', row.values, col.values, JxW))


def face_penalty(fv: FaceValues, nfv: FaceValues | None, diameter: float, *,
                 penalty_jump_grad: float,
                 penalty_jump_val: float) -> np.ndarray | Tuple[np.ndarray, ...]:
    """
    Penalty blocks of one face, integrated with the weights of ``fv``.

    Boundary faces (``nfv is None``) return the single self block. Interior
    faces return ``(cc, cn, nc, nn)``, where ``c`` is the cell of ``fv`` and
    ``n`` its neighbour, whose traces ``nfv`` sit at the same points.
    """
    gamma_grad = penalty_jump_grad / diameter
    gamma_val = penalty_jump_val / diameter ** 3
    cc = _penalty_block(fv, fv, fv.JxW, gamma_grad, gamma_val)
    if nfv is None:
        return cc
    cn = -_penalty_block(fv, nfv, fv.JxW, gamma_grad, gamma_val)
    nc = -_penalty_block(nfv, fv, fv.JxW, gamma_grad, gamma_val)
    nn = _penalty_block(nfv, nfv, fv.JxW, gamma_grad, gamma_val)
    return cc, cn, nc, nn
