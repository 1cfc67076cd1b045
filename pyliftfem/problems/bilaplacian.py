"""
bilaplacian.py  –  Bi-Laplacian on the unit hypercube with lifted Hessians
==========================================================================
Solves  Δ²u = f  in (0, 1)^dim with u = 0 and ∇u = 0 on the boundary,
using fully discontinuous Q_k elements. The manufactured solution picked in
:class:`~pyliftfem.config.ProblemParameters` provides f and the reference
for the error norms.

The run is the usual sequence of stages::

    make_grid → setup_system → assemble_system → solve → compute_errors → output_results
"""
import logging
import os
from dataclasses import replace
from typing import List, Sequence, Tuple

import numpy as np

from pyliftfem.assembly.dg_global import SparseAccumulator, assemble_matrix, make_sparsity_pattern
from pyliftfem.assembly.load_vector import assemble_rhs
from pyliftfem.config import ProblemParameters
from pyliftfem.core.dofhandler import DofHandler
from pyliftfem.fem.analytic import get_manufactured_solution
from pyliftfem.io.visualization import plot_sparsity_pattern
from pyliftfem.io.vtk import export_vtk
from pyliftfem.postprocess.errors import ErrorNorms, compute_errors
from pyliftfem.solvers.linear_solver import solve_linear_system
from pyliftfem.utils.meshgen import hypercube_mesh

logger = logging.getLogger(__name__)


class BiLaplacianLDGLift:

    def __init__(self, params: ProblemParameters):
        self.params = params
        problem = get_manufactured_solution(params.exact_solution, params.dim)
        self.exact = problem.exact
        self.rhs_function = problem.rhs
        self.mesh = None
        self.dof_handler = None
        self.sparsity_pattern = None
        self.matrix = None
        self.rhs = None
        self.solution = None

    def _output_path(self, name):
        return os.path.join(self.params.output_dir, name)

    def make_grid(self):
        self.mesh = hypercube_mesh(self.params.dim, self.params.n_refinements)
        logger.info("Number of active cells: %d", self.mesh.n_elements)

    def setup_system(self):
        self.dof_handler = DofHandler(self.mesh, self.params.degree)
        logger.info("Number of degrees of freedom: %d", self.dof_handler.total_dofs)
        self.sparsity_pattern = make_sparsity_pattern(self.mesh, self.dof_handler)
        if self.params.write_output:
            os.makedirs(self.params.output_dir, exist_ok=True)
            plot_sparsity_pattern(self.sparsity_pattern, self._output_path("sparsity_pattern.svg"))
        self.rhs = np.zeros(self.dof_handler.total_dofs)
        self.solution = np.zeros(self.dof_handler.total_dofs)

    def assemble_system(self):
        logger.info("Assembling the system matrix")
        acc = SparseAccumulator(self.dof_handler.total_dofs)
        assemble_matrix(self.mesh, self.dof_handler, acc,
                        penalty_jump_grad=self.params.penalty_jump_grad,
                        penalty_jump_val=self.params.penalty_jump_val,
                        lifting=self.params.lifting,
                        n_q=self.params.n_q)
        self.matrix = acc.tocsr()
        assemble_rhs(self.mesh, self.dof_handler, self.rhs_function, self.rhs, n_q=self.params.n_q)

    def solve(self):
        self.solution = solve_linear_system(self.matrix, self.rhs, self.params.linear_solver)

    def compute_errors(self) -> ErrorNorms:
        return compute_errors(self.mesh, self.dof_handler, self.solution, self.exact,
                              n_q=self.params.n_q)

    def output_results(self):
        export_vtk(self._output_path("solution.vtu"), self.mesh, self.dof_handler,
                   {"solution": self.solution, "exact": self.exact.value})

    def run(self) -> ErrorNorms:
        self.make_grid()
        self.setup_system()
        self.assemble_system()
        self.solve()
        errors = self.compute_errors()
        if self.params.write_output:
            self.output_results()
        return errors


def convergence_study(params: ProblemParameters,
                      levels: Sequence[int]) -> List[Tuple[int, float, ErrorNorms]]:
    """Run the problem on each refinement level; returns ``(level, h, errors)``."""
    results = []
    for level in levels:
        logger.info("Refinement level %d", level)
        level_params = replace(params, n_refinements=level)
        errors = BiLaplacianLDGLift(level_params).run()
        results.append((level, 1.0 / 2 ** level, errors))
    return results


def observed_rates(results) -> List[Tuple[float, float, float]]:
    """log2 ratios of successive (h2, h1, l2) errors, for meshes halved each level."""
    rates = []
    for (_, h0, e0), (_, h1, e1) in zip(results[:-1], results[1:]):
        rates.append(tuple(np.log(a / b) / np.log(h0 / h1)
                           for a, b in zip(e0.as_tuple(), e1.as_tuple())))
    return rates
