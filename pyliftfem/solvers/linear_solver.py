"""pyliftfem.solvers.linear_solver
Direct solution of the assembled sparse system.
"""
import logging

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from pyliftfem.config import LinearSolverParameters

logger = logging.getLogger(__name__)


def solve_linear_system(A: sp.spmatrix, rhs: np.ndarray,
                        params: LinearSolverParameters | None = None) -> np.ndarray:
    if params is None:
        params = LinearSolverParameters()
    if params.backend == "scipy":
        logger.info("Solving sparse system with %d unknowns (%d stored entries)", A.shape[0], A.nnz)
        return spla.spsolve(sp.csc_matrix(A), rhs)
    else:
        raise ValueError(f"Unknown linear solver backend '{params.backend}'.")
