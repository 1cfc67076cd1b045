# dofhandler.py

from __future__ import annotations

from typing import Callable, List

import numpy as np

from pyliftfem.core.mesh import Mesh
from pyliftfem.fem import transform
from pyliftfem.fem.reference import get_reference


class DofHandler:
    """Discontinuous (element-local) DOF numbering for a scalar Q_k field."""

    def __init__(self, mesh: Mesh, poly_order: int):
        """
        Parameters
        ----------
        mesh : Mesh
            The mesh whose cells carry the DOFs.
        poly_order : int
            Polynomial degree k of the Q_k space.

        Attributes
        ----------
        element_maps : list[list[int]]
            For each element id, the local→global DOF map in lattice order.
        total_dofs : int
            Size of the global space.
        """
        self.mesh = mesh
        self.poly_order = poly_order
        self.reference = get_reference(mesh.element_type, poly_order)
        self.n_local_dofs: int = self.reference.n_dofs
        self.element_maps: List[List[int]] = []
        self.total_dofs: int = 0
        self._build_maps_dg()

    def _build_maps_dg(self) -> None:
        """Allocate a fresh block of DOFs for each element (no sharing)."""
        offset = 0
        for el in self.mesh.elements_list:
            self.element_maps.append(list(range(offset, offset + self.n_local_dofs)))
            offset += self.n_local_dofs
        self.total_dofs = offset

    def get_elemental_dofs(self, element_id: int) -> np.ndarray:
        return np.asarray(self.element_maps[element_id], dtype=int)

    def global_index(self, element_id: int, local_index: int) -> int:
        return self.element_maps[element_id][local_index]

    def element_dof_coords(self, element_id: int) -> np.ndarray:
        """Physical coordinates of the Lagrange support points of one element."""
        return np.array([transform.x_mapping(self.mesh, element_id, p) for p in self.reference.nodes])

    def get_all_dof_coords(self) -> np.ndarray:
        """Coordinates for every global DOF (total_dofs, dim)."""
        coords = np.empty((self.total_dofs, self.mesh.spatial_dim))
        for el in self.mesh.elements_list:
            coords[self.get_elemental_dofs(el.id)] = self.element_dof_coords(el.id)
        return coords

    def interpolate(self, func: Callable[[np.ndarray], np.ndarray]) -> np.ndarray:
        """Nodal interpolant of ``func`` (called with points of shape (n, dim))."""
        return np.asarray(func(self.get_all_dof_coords()), dtype=float)
