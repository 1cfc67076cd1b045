import numpy as np
import meshio
from typing import Callable, Dict, Union

from pyliftfem.core.mesh import Mesh
from pyliftfem.core.dofhandler import DofHandler

# lexicographic corner order -> VTK winding
_VTK_CELLS = {
    'quad': ('quad', [0, 1, 3, 2]),
    'hex': ('hexahedron', [0, 1, 3, 2, 4, 5, 7, 6]),
}


def _reference_corners(dim: int) -> np.ndarray:
    return np.array([[-1.0 + 2.0 * ((c >> a) & 1) for a in range(dim)] for c in range(2 ** dim)])


def export_vtk(
    filename: str,
    mesh: Mesh,
    dof_handler: DofHandler,
    functions: Dict[str, Union[np.ndarray, Callable[[np.ndarray], np.ndarray]]]
):
    """
    Exports discontinuous fields to a VTK (.vtu) file.

    Every cell gets its own copy of its corner vertices, so jumps across
    faces stay visible.

    Args:
        filename: The path to the output file (e.g., 'results/solution.vtu').
        mesh: The computational mesh object.
        dof_handler: The DofHandler owning the coefficient vectors.
        functions: Field name -> global coefficient vector (total_dofs,), or
                   a callable evaluated at points of shape (n, dim).
    """
    try:
        cell_type, order = _VTK_CELLS[mesh.element_type]
    except KeyError:
        raise ValueError(f"Unsupported element type for VTK export: {mesh.element_type}") from None

    # 1) duplicated geometry
    n_corners = len(order)
    corners = mesh.nodes_x[mesh.corner_connectivity]            # (n_el, n_corners, dim)
    points = corners.reshape(-1, mesh.spatial_dim)
    points_3d = np.pad(points, ((0, 0), (0, 3 - mesh.spatial_dim)), constant_values=0)
    connectivity = np.arange(len(points)).reshape(-1, n_corners)[:, order]
    cells = [meshio.CellBlock(cell_type, connectivity)]

    # 2) point data
    V_corner = dof_handler.reference.tabulate(_reference_corners(mesh.spatial_dim))[0]
    point_data = {}
    for name, obj in functions.items():
        if isinstance(obj, np.ndarray):
            if obj.shape != (dof_handler.total_dofs,):
                raise ValueError(f"{name}: unexpected array shape {obj.shape}")
            per_cell = obj[np.array(dof_handler.element_maps)]       # (n_el, n_loc)
            point_data[name] = (per_cell @ V_corner.T).ravel()
            continue
        if callable(obj):
            point_data[name] = np.asarray(obj(points), dtype=float).reshape(len(points))
            continue
        raise TypeError(f"{name}: unsupported data type {type(obj)}")

    # 3) write
    meshio.Mesh(points_3d, cells, point_data=point_data).write(filename)
    print(f"Solution exported to {filename}")
