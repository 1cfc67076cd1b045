import numpy as np
from pyliftfem.core.dofhandler import DofHandler
from pyliftfem.utils.meshgen import hypercube_mesh


def test_dg_numbering_is_cell_local():
    mesh = hypercube_mesh(2, 2)
    dh = DofHandler(mesh, 2)
    assert dh.n_local_dofs == 9
    assert dh.total_dofs == 16 * 9
    for el in mesh.elements_list:
        dofs = dh.get_elemental_dofs(el.id)
        assert np.array_equal(dofs, el.id * 9 + np.arange(9))
        assert dh.global_index(el.id, 4) == el.id * 9 + 4


def test_q1_dof_coordinates_are_cell_corners():
    mesh = hypercube_mesh(3, 1)
    dh = DofHandler(mesh, 1)
    for el in mesh.elements_list:
        X = dh.element_dof_coords(el.id)
        corners = mesh.nodes_x[mesh.corner_connectivity[el.id]]
        # Q1 support points are the corners, in the same lexicographic order
        assert np.allclose(X, corners)


def test_interpolation_of_polynomial():
    mesh = hypercube_mesh(2, 1)
    dh = DofHandler(mesh, 2)
    u = dh.interpolate(lambda X: X[:, 0] ** 2 - 3 * X[:, 1])
    coords = dh.get_all_dof_coords()
    assert u.shape == (dh.total_dofs,)
    assert np.allclose(u, coords[:, 0] ** 2 - 3 * coords[:, 1])
