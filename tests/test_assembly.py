from collections import Counter

import numpy as np
import pytest
from pyliftfem.assembly.dg_global import SparseAccumulator, assemble_matrix, make_sparsity_pattern
from pyliftfem.assembly.dg_local import face_penalty
from pyliftfem.assembly.load_vector import assemble_rhs
from pyliftfem.core.dofhandler import DofHandler
from pyliftfem.fem.fevalues import FaceValues
from pyliftfem.utils.meshgen import hypercube_mesh


def assemble(dim, n_ref, k, **kwargs):
    mesh = hypercube_mesh(dim, n_ref)
    dh = DofHandler(mesh, k)
    acc = SparseAccumulator(dh.total_dofs)
    assemble_matrix(mesh, dh, acc, penalty_jump_grad=1.0, penalty_jump_val=1.0, **kwargs)
    return mesh, dh, acc.tocsr()


def test_sparse_accumulator_sums_duplicates():
    acc = SparseAccumulator(3)
    acc.add([0, 2], [0, 2], np.ones((2, 2)))
    acc.add([2], [2], np.array([[5.0]]))
    A = acc.tocsr().toarray()
    assert A[2, 2] == 6.0 and A[0, 2] == 1.0 and A[1, 1] == 0.0
    assert len(acc) == 5


@pytest.mark.parametrize("dim, n_ref, k", [(2, 1, 2), (3, 1, 1)])
def test_matrix_is_symmetric(dim, n_ref, k):
    _, _, A = assemble(dim, n_ref, k)
    scale = abs(A).max()
    assert abs(A - A.T).max() <= 1e-10 * scale


def test_each_face_is_penalised_once_in_any_order():
    mesh = hypercube_mesh(2, 2)
    dh = DofHandler(mesh, 1)
    order = np.random.default_rng(7).permutation(mesh.n_elements)
    visits = Counter()
    acc = SparseAccumulator(dh.total_dofs)
    assemble_matrix(mesh, dh, acc, penalty_jump_grad=1.0, penalty_jump_val=1.0,
                    cell_order=order, face_visits=visits)
    assert set(visits) == {f.gid for f in mesh.faces_list}
    assert all(v == 1 for v in visits.values())


def test_traversal_order_does_not_change_matrix():
    mesh = hypercube_mesh(2, 1)
    dh = DofHandler(mesh, 2)
    mats = []
    for order in (None, [3, 1, 0, 2]):
        acc = SparseAccumulator(dh.total_dofs)
        assemble_matrix(mesh, dh, acc, penalty_jump_grad=1.0, penalty_jump_val=1.0, cell_order=order)
        mats.append(acc.tocsr())
    assert abs(mats[0] - mats[1]).max() <= 1e-10 * abs(mats[0]).max()


def test_matrix_is_positive_definite():
    _, _, A = assemble(2, 1, 2)
    assert np.linalg.eigvalsh(A.toarray()).min() > 0.0


def test_sparsity_pattern_covers_matrix():
    mesh, dh, A = assemble(2, 2, 1)
    pattern = make_sparsity_pattern(mesh, dh)
    A = A.tocoo()
    mask = np.abs(A.data) > 0
    assert np.all(pattern[A.row[mask], A.col[mask]])
    # cells two faces apart couple through their common neighbour
    assert pattern[dh.global_index(0, 0), dh.global_index(2, 0)]


def test_penalty_vanishes_for_representable_polynomial():
    mesh = hypercube_mesh(2, 2)
    k = 2
    dh = DofHandler(mesh, k)
    u = dh.interpolate(lambda X: X[:, 0] ** 2 * X[:, 1] - X[:, 1] ** 2)
    for face in mesh.interior_faces():
        eid, f = face.left, face.lid
        nb = mesh.neighbor(eid, f)
        fv = FaceValues(mesh, eid, f, k, k + 1)
        nfv = FaceValues.at_points(mesh, nb, mesh.neighbor_of_neighbor(eid, f), k, fv.points)
        blocks = face_penalty(fv, nfv, face.diameter, penalty_jump_grad=1.0, penalty_jump_val=1.0)
        block = np.block([[blocks[0], blocks[1]], [blocks[2], blocks[3]]])
        w = np.concatenate([u[dh.get_elemental_dofs(eid)], u[dh.get_elemental_dofs(nb)]])
        assert abs(w @ block @ w) < 1e-10
        assert np.allclose(block @ w, 0.0, atol=1e-8)


def test_rhs_of_constant_source_is_cell_volume():
    mesh = hypercube_mesh(2, 1)
    dh = DofHandler(mesh, 2)
    F = assemble_rhs(mesh, dh, lambda X: np.ones(len(X)), np.zeros(dh.total_dofs))
    assert np.isclose(F.sum(), 1.0)
    for el in mesh.elements_list:
        assert np.isclose(F[dh.get_elemental_dofs(el.id)].sum(), 0.25)
