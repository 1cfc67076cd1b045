"""pyliftfem.config
Run-time parameters, fixed when a problem is set up.
"""
from dataclasses import dataclass, field

from pyliftfem.fem.analytic import available_solutions


@dataclass(frozen=True)
class LiftingParameters:
    """Budget of the local conjugate-gradient solves."""

    max_iter: int = 1000                # hard cap on CG iterations
    tol: float = 1e-12                  # relative residual threshold

    def __post_init__(self):
        if self.max_iter < 1:
            raise ValueError("max_iter must be positive.")
        if not self.tol > 0.0:
            raise ValueError("tol must be strictly positive.")


@dataclass(frozen=True)
class LinearSolverParameters:
    """Sparse linear solver settings."""

    backend: str = "scipy"


@dataclass(frozen=True)
class ProblemParameters:
    """Settings of one bi-Laplacian solve on the unit hypercube."""

    dim: int = 2
    n_refinements: int = 3
    degree: int = 2                     # shared by primal and lifting spaces
    penalty_jump_grad: float = 1.0
    penalty_jump_val: float = 1.0
    exact_solution: str = "bubble"
    output_dir: str = "."
    write_output: bool = True
    lifting: LiftingParameters = field(default_factory=LiftingParameters)
    linear_solver: LinearSolverParameters = field(default_factory=LinearSolverParameters)

    def __post_init__(self):
        if self.dim not in (2, 3):
            raise ValueError(f"Spatial dimension must be 2 or 3, got {self.dim}.")
        if self.degree < 1:
            raise ValueError("Polynomial degree must be at least 1.")
        if self.n_refinements < 0:
            raise ValueError("Number of refinements must be non-negative.")
        if not (self.penalty_jump_grad > 0.0 and self.penalty_jump_val > 0.0):
            raise ValueError("Penalty coefficients must be strictly positive.")
        if self.exact_solution not in available_solutions():
            raise ValueError(f"Unknown exact solution '{self.exact_solution}'.")

    @property
    def n_q(self) -> int:
        """Gauss points per direction, exact for the Q_k mass matrices."""
        return self.degree + 1
