"""
Tensor-valued discontinuous element: ``dim * dim`` copies of the scalar
Lagrange space, one per entry ``(r, s)`` of a second-order tensor.

Local numbering is component-major, so a lifting basis function is

    tau_m = phi_a E_rs,    m = (r * dim + s) * n_scalar + a

and each component owns the contiguous block ``[c * n_scalar, (c+1) * n_scalar)``.
"""
import numpy as np

from pyliftfem.fem.reference import get_reference


class TensorElement:

    def __init__(self, element_type: str, poly_order: int):
        self.scalar = get_reference(element_type, poly_order)
        self.dim = self.scalar.dim
        self.poly_order = poly_order
        self.n_components = self.dim * self.dim
        self.n_dofs = self.n_components * self.scalar.n_dofs
        # E[c] is the unit tensor E_rs with c = r*dim + s
        self._units = np.eye(self.n_components).reshape(self.n_components, self.dim, self.dim)

    def component_slice(self, r: int, s: int) -> slice:
        n = self.scalar.n_dofs
        c = r * self.dim + s
        return slice(c * n, (c + 1) * n)

    def values(self, scalar_values: np.ndarray) -> np.ndarray:
        """(nq, n_scalar) → tensor basis values (nq, n_dofs, dim, dim)."""
        nq = scalar_values.shape[0]
        out = np.einsum('qa,crs->qcars', scalar_values, self._units)
        return out.reshape(nq, self.n_dofs, self.dim, self.dim)

    def divergence(self, scalar_grads: np.ndarray) -> np.ndarray:
        """(nq, n_scalar, dim) physical gradients → row-wise divergence (nq, n_dofs, dim)."""
        nq = scalar_grads.shape[0]
        out = np.einsum('qaj,crj->qcar', scalar_grads, self._units)
        return out.reshape(nq, self.n_dofs, self.dim)

    def evaluate(self, coeffs: np.ndarray, tensor_values: np.ndarray) -> np.ndarray:
        """Field ``sum_m coeffs[..., m] tau_m`` at the points of ``tensor_values``."""
        return np.einsum('...m,qmrs->...qrs', coeffs, tensor_values)
