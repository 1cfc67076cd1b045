import numpy as np
from dataclasses import dataclass, field
from typing import Tuple, Dict, Optional


@dataclass(slots=True)
class Face:
    gid: int
    nodes: Tuple[int, ...]      # Global node indices of the face corners
    left: int                   # Element ID that owns the outward normal
    right: Optional[int]        # Element ID on the other side, None on the boundary
    normal: np.ndarray          # Unit normal, pointing outward from the left element
    diameter: float = 0.0       # Longest distance between two face corners
    lid: Optional[int] = None   # Local face index within the left element
    rid: Optional[int] = None   # Local face index within the right element

    @property
    def at_boundary(self) -> bool:
        return self.right is None

    def local_index(self, elem_id: int) -> int:
        """Local index of this face as seen from ``elem_id``."""
        if elem_id == self.left:
            return self.lid
        if elem_id == self.right:
            return self.rid
        raise ValueError(f"Face {self.gid} is not adjacent to element {elem_id}.")

    def other(self, elem_id: int) -> Optional[int]:
        """Element on the opposite side of ``elem_id``."""
        if elem_id == self.left:
            return self.right
        if elem_id == self.right:
            return self.left
        raise ValueError(f"Face {self.gid} is not adjacent to element {elem_id}.")


@dataclass(slots=True)
class Element:
    id: int                     # Element ID
    nodes: Tuple[int, ...]      # Global node indices of the element's corners
    element_type: str = "quad"
    faces: Tuple[int, ...] = field(default_factory=tuple)
    neighbors: Dict[int, Optional[int]] = field(default_factory=dict)

    def interior_faces(self):
        """Local indices of the faces shared with another element."""
        return [f for f in range(len(self.faces)) if self.neighbors.get(f) is not None]
