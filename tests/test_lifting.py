import numpy as np
import pytest
from pyliftfem.assembly.lifting import (LiftingConvergenceError, compute_discrete_hessians,
                                        discrete_hessian_of, lift_mass_matrix)
from pyliftfem.config import LiftingParameters
from pyliftfem.core.dofhandler import DofHandler
from pyliftfem.fem.fevalues import CellValues
from pyliftfem.fem.tensorelement import TensorElement
from pyliftfem.utils.meshgen import hypercube_mesh


def interior_cell(mesh):
    return next(el.id for el in mesh.elements_list
                if all(nb is not None for nb in el.neighbors.values()))


@pytest.mark.parametrize("dim, k", [(2, 1), (2, 2), (3, 1)])
def test_lift_mass_matrix_is_spd(dim, k):
    mesh = hypercube_mesh(dim, 1)
    lift = TensorElement(mesh.element_type, k)
    cv = CellValues(mesh, 0, k, k + 1)
    L = lift_mass_matrix(lift.values(cv.values), cv.JxW)
    assert L.shape == (dim * dim * (k + 1) ** dim,) * 2
    assert np.allclose(L, L.T)
    assert np.linalg.eigvalsh(L).min() > 0.0


def test_solve_counts_and_neighbor_faces():
    mesh = hypercube_mesh(2, 1)
    k = 2
    n_dofs, n_faces = (k + 1) ** 2, 4
    for el in mesh.elements_list:
        H = compute_discrete_hessians(mesh, el.id, k)
        interior = el.interior_faces()
        assert sorted(H.neighbors) == interior
        assert H.cell.shape == (n_dofs, (k + 1) ** 2, 2, 2)
        assert H.n_solves_cell == 2 * n_dofs * n_faces
        assert H.n_solves_neighbors == 2 * n_dofs * len(interior)
        assert H.n_solves_neighbors <= 2 * n_dofs * n_faces


def test_discrete_hessian_is_linear():
    mesh = hypercube_mesh(2, 1)
    dh = DofHandler(mesh, 2)
    rng = np.random.default_rng(1)
    f = rng.standard_normal(dh.total_dofs)
    g = rng.standard_normal(dh.total_dofs)
    H = compute_discrete_hessians(mesh, 3, 2)
    lhs = discrete_hessian_of(mesh, dh, 2.0 * f - 0.5 * g, 3, hessians=H)
    rhs = (2.0 * discrete_hessian_of(mesh, dh, f, 3, hessians=H)
           - 0.5 * discrete_hessian_of(mesh, dh, g, 3, hessians=H))
    assert np.allclose(lhs, rhs, atol=1e-10)


def test_smooth_function_on_interior_cell_keeps_strong_hessian():
    mesh = hypercube_mesh(2, 2)
    dh = DofHandler(mesh, 2)
    u = dh.interpolate(lambda X: X[:, 0] ** 2 * X[:, 1] ** 2 + X[:, 0] * X[:, 1])
    eid = interior_cell(mesh)
    H = discrete_hessian_of(mesh, dh, u, eid)
    X = CellValues(mesh, eid, 2, 3).points
    x, y = X[:, 0], X[:, 1]
    exact = np.stack([np.stack([2 * y ** 2, 4 * x * y + 1], axis=-1),
                      np.stack([4 * x * y + 1, 2 * x ** 2], axis=-1)], axis=-2)
    assert np.allclose(H, exact, atol=1e-8)


def test_jumps_change_the_discrete_hessian():
    mesh = hypercube_mesh(2, 2)
    dh = DofHandler(mesh, 1)
    eid = interior_cell(mesh)
    u = np.zeros(dh.total_dofs)
    u[dh.get_elemental_dofs(eid)] = 1.0   # constant on one cell, zero elsewhere
    H = discrete_hessian_of(mesh, dh, u, eid)
    assert np.abs(H).max() > 1.0


def test_non_convergence_raises():
    mesh = hypercube_mesh(2, 1)
    with pytest.raises(LiftingConvergenceError) as excinfo:
        compute_discrete_hessians(mesh, 0, 2, params=LiftingParameters(max_iter=1, tol=1e-14))
    assert excinfo.value.elem_id == 0
    assert excinfo.value.info > 0


def test_lifting_parameters_validation():
    with pytest.raises(ValueError):
        LiftingParameters(max_iter=0)
    with pytest.raises(ValueError):
        LiftingParameters(tol=0.0)
