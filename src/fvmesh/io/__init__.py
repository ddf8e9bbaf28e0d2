"""Mesh file input and output."""

from .openfoam import PolyMeshReader, PolyMeshWriter, read_polymesh, write_polymesh
from .export import export_patch_surface, patch_surface

__all__ = ['PolyMeshReader', 'PolyMeshWriter', 'read_polymesh', 'write_polymesh',
           'export_patch_surface', 'patch_surface']
