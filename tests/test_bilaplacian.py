import os

import meshio
import numpy as np
import pytest
import scipy.sparse as sp

from pyliftfem.__main__ import main
from pyliftfem.config import LinearSolverParameters, ProblemParameters
from pyliftfem.problems.bilaplacian import BiLaplacianLDGLift, convergence_study, observed_rates
from pyliftfem.solvers.linear_solver import solve_linear_system


def test_bubble_2d_q2_three_refinements():
    params = ProblemParameters(dim=2, n_refinements=3, degree=2,
                               penalty_jump_grad=1.0, penalty_jump_val=1.0,
                               write_output=False)
    errors = BiLaplacianLDGLift(params).run()
    # regression baselines for Q2 with unit penalties
    assert np.isclose(errors.h2, 1.5106e-2, rtol=1e-3)
    assert np.isclose(errors.h1, 3.9975e-4, rtol=1e-3)
    assert np.isclose(errors.l2, 5.3386e-5, rtol=1e-3)
    assert errors.h1 < 1e-3
    assert errors.l2 < 1e-4


def test_q4_reproduces_biquartic_bubble():
    params = ProblemParameters(dim=2, n_refinements=1, degree=4, write_output=False)
    errors = BiLaplacianLDGLift(params).run()
    assert errors.h2 < 1e-9
    assert errors.h1 < 1e-9
    assert errors.l2 < 1e-9


def test_output_files_are_written(tmp_path):
    params = ProblemParameters(dim=2, n_refinements=1, degree=2, output_dir=str(tmp_path))
    problem = BiLaplacianLDGLift(params)
    problem.run()
    assert os.path.exists(tmp_path / "sparsity_pattern.svg")
    assert os.path.exists(tmp_path / "solution.vtu")
    out = meshio.read(tmp_path / "solution.vtu")
    # every cell has its own copy of its 4 vertices
    assert out.points.shape[0] == 4 * problem.mesh.n_elements
    assert out.point_data["solution"].shape == (4 * problem.mesh.n_elements,)


def test_stages_populate_system():
    params = ProblemParameters(n_refinements=1, degree=1, write_output=False)
    problem = BiLaplacianLDGLift(params)
    problem.make_grid()
    problem.setup_system()
    assert problem.rhs.shape == (problem.dof_handler.total_dofs,)
    problem.assemble_system()
    assert sp.issparse(problem.matrix)
    assert problem.matrix.shape == (16, 16)
    problem.solve()
    assert np.all(np.isfinite(problem.solution))


@pytest.mark.slow
def test_convergence_rates_bubble_q2():
    params = ProblemParameters(dim=2, degree=2, write_output=False)
    results = convergence_study(params, range(1, 5))
    errs = np.array([e.as_tuple() for _, _, e in results])
    assert np.all(np.diff(errs, axis=0) < 0.0)
    rates = np.array(observed_rates(results))
    h2, h1, _ = rates[-1]
    assert h2 >= 0.9
    assert h1 >= 1.7
    # L2 stays below k+1 for quadratics and is still rising at level 4
    assert np.all(rates[:, 2] >= 1.25)
    assert rates[-1, 2] > rates[0, 2]


def test_invalid_configuration():
    with pytest.raises(ValueError):
        ProblemParameters(dim=1)
    with pytest.raises(ValueError):
        ProblemParameters(degree=0)
    with pytest.raises(ValueError):
        ProblemParameters(penalty_jump_val=0.0)
    with pytest.raises(ValueError):
        ProblemParameters(exact_solution="polynomial")


def test_unknown_linear_solver_backend():
    A = sp.identity(3, format="csr")
    with pytest.raises(ValueError):
        solve_linear_system(A, np.ones(3), LinearSolverParameters(backend="petsc"))
    assert np.allclose(solve_linear_system(A, np.ones(3)), 1.0)


def test_cli_success(capsys):
    assert main(["--refinements", "1", "--degree", "2", "--no-output", "--log-level", "WARNING"]) == 0
    out = capsys.readouterr().out
    assert "H2 norm" in out and "L2 norm" in out


def test_cli_reports_failure():
    assert main(["--dim", "4", "--no-output"]) == 1


def test_cli_convergence_table(capsys):
    assert main(["--convergence", "0", "1", "--degree", "2", "--no-output", "--log-level", "WARNING"]) == 0
    assert "rates 0->1" in capsys.readouterr().out
