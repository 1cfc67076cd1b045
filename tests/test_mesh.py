import numpy as np
import pytest
from pyliftfem.core.mesh import Mesh
from pyliftfem.utils.meshgen import hypercube_mesh, structured_hypercube


@pytest.mark.parametrize("dim, n_ref, n_cells, n_interior, n_boundary", [
    (2, 0, 1, 0, 4),
    (2, 2, 16, 24, 16),
    (3, 1, 8, 12, 24),
])
def test_topology_counts(dim, n_ref, n_cells, n_interior, n_boundary):
    mesh = hypercube_mesh(dim, n_ref)
    assert mesh.n_elements == n_cells
    assert len(list(mesh.interior_faces())) == n_interior
    assert len(list(mesh.boundary_faces())) == n_boundary
    assert mesh.n_faces_per_cell == 2 * dim


@pytest.mark.parametrize("dim, n_ref", [(2, 2), (3, 1)])
def test_neighbor_relation_is_symmetric(dim, n_ref):
    mesh = hypercube_mesh(dim, n_ref)
    for el in mesh.elements_list:
        for f in range(mesh.n_faces_per_cell):
            nb = mesh.neighbor(el.id, f)
            if nb is None:
                assert mesh.at_boundary(el.id, f)
                continue
            nf = mesh.neighbor_of_neighbor(el.id, f)
            assert nf == f ^ 1          # face 2a meets face 2a+1
            assert mesh.neighbor(nb, nf) == el.id
            assert mesh.cell_face(el.id, f).gid == mesh.cell_face(nb, nf).gid


def test_face_normals_and_diameters():
    mesh = hypercube_mesh(2, 2)
    h = 0.25
    for face in mesh.faces_list:
        assert np.isclose(face.diameter, h)
        assert np.isclose(np.linalg.norm(face.normal), 1.0)
        axis, side = divmod(face.lid, 2)
        expected = np.zeros(2)
        expected[axis] = 1.0 if side else -1.0
        assert np.allclose(face.normal, expected)
    mesh3 = hypercube_mesh(3, 1)
    assert np.allclose([f.diameter for f in mesh3.faces_list], np.sqrt(2) * 0.5)


def test_owns_face_picks_smaller_id():
    assert Mesh.owns_face(2, 5)
    assert not Mesh.owns_face(5, 2)


def test_volumes_sum_to_one():
    for dim in (2, 3):
        mesh = hypercube_mesh(dim, 1)
        assert np.isclose(mesh.volumes().sum(), 1.0)


def test_neighbor_of_neighbor_on_boundary_raises():
    mesh = hypercube_mesh(2, 0)
    with pytest.raises(ValueError):
        mesh.neighbor_of_neighbor(0, 0)


def test_invalid_dimension():
    with pytest.raises(ValueError):
        structured_hypercube(1, 2)
    with pytest.raises(ValueError):
        hypercube_mesh(4, 1)
