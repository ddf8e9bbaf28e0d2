"""
Face-Based Mesh Data Structures and Point-Addition Refinement

This module provides the polyhedral mesh aggregate used by finite volume
solvers, its geometric metrics, boundary bookkeeping, and the refinement
engine for one-cell-thick extruded meshes.
"""

from .errors import (
    MeshError,
    DegenerateGeometryError,
    TopologyError,
    FaceMatchError,
    IndexConsistencyError,
)
from .geometry import face_area_centroid, cell_volume_centroid
from .boundary import BoundaryPatch, PatchType, make_patches
from .connectivity import ConnectivityManager, CellConnectivity
from .unstructured_mesh import PolyMesh, assemble_mesh
from .ledger import FacesData
from .renumbering import IndexRemap
from .arena import MeshArena
from .adaptation import PointAdditionRefiner, RefinementResult, SplitPlan, refine_cells, refine_all

__all__ = [
    'MeshError',
    'DegenerateGeometryError',
    'TopologyError',
    'FaceMatchError',
    'IndexConsistencyError',
    'face_area_centroid',
    'cell_volume_centroid',
    'BoundaryPatch',
    'PatchType',
    'make_patches',
    'ConnectivityManager',
    'CellConnectivity',
    'PolyMesh',
    'assemble_mesh',
    'FacesData',
    'IndexRemap',
    'MeshArena',
    'PointAdditionRefiner',
    'RefinementResult',
    'SplitPlan',
    'refine_cells',
    'refine_all',
]
