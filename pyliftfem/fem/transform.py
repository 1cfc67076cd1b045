"""pyliftfem.fem.transform
Reference → physical mapping for multilinear (Q1-geometry) cells.

Conventions follow the reference element: ``jacobian`` returns
``J[i, j] = d x_j / d xi_i`` (rows are reference directions), so a row of
reference gradients maps to physical ones by ``grad_ref @ inv(J).T``.
"""
import numpy as np
from pyliftfem.fem.reference import get_reference


def _corner_coords(mesh, elem_id):
    return mesh.nodes_x[mesh.corner_connectivity[elem_id]]


def _geometry_ref(mesh):
    return get_reference(mesh.element_type, 1)


def x_mapping(mesh, elem_id, xi):
    N = _geometry_ref(mesh).shape(tuple(float(c) for c in xi))
    return N @ _corner_coords(mesh, elem_id)

def jacobian(mesh, elem_id, xi):
    dN = _geometry_ref(mesh).grad(tuple(float(c) for c in xi))
    return dN.T @ _corner_coords(mesh, elem_id)

def det_jacobian(mesh, elem_id, xi):
    return np.linalg.det(jacobian(mesh, elem_id, xi))


def inverse_mapping(mesh, elem_id, x, tol=1e-12, maxiter=50):
    """Newton iteration for the reference coordinates of the physical point ``x``."""
    xi = np.zeros(mesh.spatial_dim)
    x = np.asarray(x, dtype=float)
    for it in range(maxiter):
        X = x_mapping(mesh, elem_id, xi)
        J = jacobian(mesh, elem_id, xi)
        try:
            delta = np.linalg.solve(J.T, x - X)
        except np.linalg.LinAlgError:
            raise ValueError(f"Jacobian singular at iteration {it} for elem {elem_id}, x={x}")
        xi += delta
        if np.linalg.norm(delta) < tol:
            break
    else:
        raise ValueError(f"Inverse mapping did not converge after {maxiter} iterations "
                         f"for elem {elem_id}, x={x}, residual={np.linalg.norm(x - X)}")
    return xi


def map_grad(grad_ref, B):
    """(nq, n, dim) reference gradients → physical, with B (nq, dim, dim) = inv(J).T per point."""
    return grad_ref @ B

def map_hess(hess_ref, B):
    """
    (nq, n, dim, dim) reference Hessians → physical, B as in :func:`map_grad`.

    Assumes the mapping is *affine on the element*, so second derivatives of
    the geometry vanish. Exact for parallelotope cells.
    """
    return np.einsum('qnij,qia,qjb->qnab', hess_ref, B, B)


def face_measure_and_normal(J, face_index):
    """
    Surface scaling and outward unit normal on reference face ``face_index``.

    Nanson's formula: ``dS = |det J| * |J^{-T} n_ref| dS_ref``.
    """
    axis, side = divmod(face_index, 2)
    n = np.linalg.inv(J)[:, axis] * (1.0 if side else -1.0)
    norm = np.linalg.norm(n)
    return abs(np.linalg.det(J)) * norm, n / norm
