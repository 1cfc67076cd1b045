from .mesh import Mesh
from .topology import Face, Element
__all__ = ['Mesh', 'Face', 'Element']
