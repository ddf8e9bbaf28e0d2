"""
fvmesh - Face-based finite volume mesh assembly and point-addition refinement.

Assembles owner/neighbour polyhedral meshes with all geometric metrics a
flux solver needs, and refines extruded 2D meshes cell by cell while keeping
the face/patch ordering invariants of the polyMesh format.
"""

__version__ = "0.3.0"

from fvmesh.core import EngineConfig, MeshConfig, RefinementConfig
from fvmesh.mesh import (
    PolyMesh, assemble_mesh, PatchType, BoundaryPatch, FacesData,
    MeshError, DegenerateGeometryError, TopologyError, FaceMatchError, IndexConsistencyError,
    PointAdditionRefiner, RefinementResult, refine_cells,
)
from fvmesh.io import read_polymesh, write_polymesh

__all__ = [
    "EngineConfig", "MeshConfig", "RefinementConfig",
    "PolyMesh", "assemble_mesh", "PatchType", "BoundaryPatch", "FacesData",
    "MeshError", "DegenerateGeometryError", "TopologyError", "FaceMatchError", "IndexConsistencyError",
    "PointAdditionRefiner", "RefinementResult", "refine_cells",
    "read_polymesh", "write_polymesh",
]
