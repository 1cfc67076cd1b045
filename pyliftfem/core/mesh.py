import numpy as np
from itertools import combinations
from typing import Tuple, List, Dict, Optional, Iterator

from pyliftfem.core.topology import Face, Element


class Mesh:
    """
    Manages mesh topology for tensor-product cells (quadrilaterals in 2-D,
    hexahedra in 3-D).

    The connectivity graph is built from the vertex coordinates and the corner
    connectivity of each cell. Shared faces are identified by their sorted
    corner ids; each face records a "left" and a "right" element and an
    outward normal relative to the left one. Neighbours are stored as integer
    ids in each element's lookup table, never as object references.

    Local face numbering follows the reference cell ``[-1, 1]^dim``: face
    ``2a`` lies on ``xi_a = -1`` and face ``2a + 1`` on ``xi_a = +1``.
    Corners are in lexicographic order, bit ``a`` of a corner index marks the
    upper side along axis ``a``.
    """
    _FACE_TABLE = {
        'quad': ((0, 2), (1, 3), (0, 1), (2, 3)),
        'hex':  ((0, 2, 4, 6), (1, 3, 5, 7), (0, 1, 4, 5),
                 (2, 3, 6, 7), (0, 1, 2, 3), (4, 5, 6, 7)),
    }
    _DIM = {'quad': 2, 'hex': 3}

    def __init__(self,
                 nodes: np.ndarray,
                 elements_corner_nodes: np.ndarray,
                 *,
                 element_type: str = 'quad'):
        if element_type not in self._DIM:
            raise ValueError(f"Unsupported element type '{element_type}'.")
        self.element_type = element_type
        self.spatial_dim = self._DIM[element_type]
        self.nodes_x = np.asarray(nodes, dtype=float)
        if self.nodes_x.ndim != 2 or self.nodes_x.shape[1] != self.spatial_dim:
            raise ValueError(f"Expected node coordinates of shape (n, {self.spatial_dim}), "
                             f"got {self.nodes_x.shape}.")
        self.corner_connectivity = np.asarray(elements_corner_nodes, dtype=int)
        if self.corner_connectivity.shape[1] != 2 ** self.spatial_dim:
            raise ValueError("Each cell needs 2**dim corner nodes.")
        self.elements_list: List[Element] = []
        self.faces_list: List[Face] = []
        self._face_dict: Dict[Tuple[int, ...], Face] = {}
        self._build_topology()
        self.n_elements = len(self.elements_list)

    @staticmethod
    def element_type_for_dim(dim: int) -> str:
        if dim == 2:
            return 'quad'
        if dim == 3:
            return 'hex'
        raise ValueError(f"Spatial dimension must be 2 or 3, got {dim}.")

    def _build_topology(self):
        """
        Builds the full mesh topology: Elements, Faces, and Neighbors.
        """
        face_defs = self._FACE_TABLE[self.element_type]

        # Step 1: basic Element objects
        for eid, corners in enumerate(self.corner_connectivity):
            self.elements_list.append(Element(
                id=eid,
                nodes=tuple(int(c) for c in corners),
                element_type=self.element_type,
            ))

        # Step 2: map each face (sorted corner ids) to (element, local face)
        incidences: Dict[Tuple[int, ...], List[Tuple[int, int]]] = {}
        for elem in self.elements_list:
            for lf, loc in enumerate(face_defs):
                key = tuple(sorted(elem.nodes[c] for c in loc))
                incidences.setdefault(key, []).append((elem.id, lf))

        # Step 3: unique Face objects
        for gid, (key, shared) in enumerate(incidences.items()):
            if len(shared) > 2:
                raise ValueError(f"Face {key} is shared by more than two cells.")
            (left, lid) = shared[0]
            right, rid = shared[1] if len(shared) > 1 else (None, None)
            face = Face(gid=gid,
                        nodes=tuple(self.elements_list[left].nodes[c] for c in face_defs[lid]),
                        left=left, right=right,
                        normal=self._compute_normal(left, lid),
                        diameter=self._compute_diameter(key),
                        lid=lid, rid=rid)
            self.faces_list.append(face)
            self._face_dict[key] = face

        # Step 4: per-element face ids and neighbour lookup table
        for elem in self.elements_list:
            gids = []
            for lf, loc in enumerate(face_defs):
                face = self._face_dict[tuple(sorted(elem.nodes[c] for c in loc))]
                gids.append(face.gid)
                elem.neighbors[lf] = face.other(elem.id)
            elem.faces = tuple(gids)

    def _cell_axes(self, elem_id: int) -> np.ndarray:
        """Columns d x / d xi_a at the cell centre (multilinear geometry)."""
        X = self.nodes_x[self.corner_connectivity[elem_id]]
        J = np.empty((self.spatial_dim, self.spatial_dim))
        bits = np.arange(X.shape[0])
        for a in range(self.spatial_dim):
            upper = ((bits >> a) & 1).astype(bool)
            J[:, a] = 0.5 * (X[upper].mean(axis=0) - X[~upper].mean(axis=0))
        return J

    def _compute_normal(self, elem_id: int, local_face: int) -> np.ndarray:
        """Outward unit normal of a local face at the cell centre."""
        axis, side = divmod(local_face, 2)
        J = self._cell_axes(elem_id)
        n = np.linalg.inv(J)[axis] * (1.0 if side else -1.0)
        return n / np.linalg.norm(n)

    def _compute_diameter(self, face_nodes: Tuple[int, ...]) -> float:
        X = self.nodes_x[list(face_nodes)]
        return max(float(np.linalg.norm(a - b)) for a, b in combinations(X, 2))

    # --- Public API ---
    @property
    def n_faces_per_cell(self) -> int:
        return 2 * self.spatial_dim

    def cell_face(self, elem_id: int, local_face: int) -> Face:
        return self.faces_list[self.elements_list[elem_id].faces[local_face]]

    def at_boundary(self, elem_id: int, local_face: int) -> bool:
        return self.elements_list[elem_id].neighbors[local_face] is None

    def neighbor(self, elem_id: int, local_face: int) -> Optional[int]:
        """Element across ``local_face`` of ``elem_id`` (None on the boundary)."""
        return self.elements_list[elem_id].neighbors[local_face]

    def neighbor_of_neighbor(self, elem_id: int, local_face: int) -> int:
        """Local index of the shared face as seen from the neighbour."""
        face = self.cell_face(elem_id, local_face)
        if face.at_boundary:
            raise ValueError(f"Face {local_face} of element {elem_id} is on the boundary.")
        return face.local_index(face.other(elem_id))

    def face_diameter(self, elem_id: int, local_face: int) -> float:
        return self.cell_face(elem_id, local_face).diameter

    @staticmethod
    def owns_face(elem_id: int, neighbor_id: int) -> bool:
        """Canonical (min-id, max-id) rule: the smaller id processes a shared face."""
        return elem_id < neighbor_id

    def interior_faces(self) -> Iterator[Face]:
        return (f for f in self.faces_list if not f.at_boundary)

    def boundary_faces(self) -> Iterator[Face]:
        return (f for f in self.faces_list if f.at_boundary)

    def volumes(self) -> np.ndarray:
        """Cell measures (exact for parallelotope cells)."""
        return np.array([abs(np.linalg.det(self._cell_axes(e.id))) * 2.0 ** self.spatial_dim
                         for e in self.elements_list])

    def __repr__(self):
        return (f"<Mesh dim={self.spatial_dim}, "
                f"n_nodes={len(self.nodes_x)}, "
                f"n_elems={len(self.elements_list)}, "
                f"n_faces={len(self.faces_list)}, "
                f"elem_type='{self.element_type}'>")
