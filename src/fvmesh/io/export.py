"""
Boundary surface export through meshio.

Writes the faces of selected patches as a surface mesh in any format meshio
supports, so refined meshes can be inspected in external viewers.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from ..mesh.unstructured_mesh import PolyMesh

# Check for meshio availability
try:
    import meshio
    MESHIO_AVAILABLE = True
except ImportError:
    MESHIO_AVAILABLE = False

logger = logging.getLogger(__name__)

_CELL_TYPES = {3: "triangle", 4: "quad"}


def patch_surface(mesh: PolyMesh, patches: Optional[Sequence[str]] = None) -> "meshio.Mesh":
    """
    Build a meshio surface mesh from boundary patches.

    Faces are grouped into one cell block per vertex count. Cell data holds
    the owner cell and the patch index of every face.

    Args:
        mesh: Assembled mesh
        patches: Patch names to include; the empty-type patches if None,
            all patches when the mesh has none

    Returns:
        meshio.Mesh holding only the points used by the selected faces
    """
    if not MESHIO_AVAILABLE:
        raise ImportError("meshio is required for surface export")

    if patches is not None:
        selected = [mesh.patch(name) for name in patches]
    else:
        selected = [p for p in mesh.patches if p.is_empty_type] or list(mesh.patches)

    blocks: Dict[int, List[List[int]]] = {}
    owners: Dict[int, List[int]] = {}
    patch_ids: Dict[int, List[int]] = {}
    for patch in selected:
        index = mesh.patch_index(patch.name)
        for face_id in patch.face_range:
            face = mesh.faces[face_id]
            blocks.setdefault(len(face), []).append(face)
            owners.setdefault(len(face), []).append(int(mesh.owner[face_id]))
            patch_ids.setdefault(len(face), []).append(index)

    used = sorted({p for faces in blocks.values() for face in faces for p in face})
    point_map = {old: new for new, old in enumerate(used)}

    cells = []
    cell_data: Dict[str, List[np.ndarray]] = {"owner": [], "patch": []}
    for n_vertices in sorted(blocks):
        data = np.array([[point_map[p] for p in face] for face in blocks[n_vertices]], dtype=np.int64)
        cells.append(meshio.CellBlock(_CELL_TYPES.get(n_vertices, "polygon"), data))
        cell_data["owner"].append(np.array(owners[n_vertices], dtype=np.int64))
        cell_data["patch"].append(np.array(patch_ids[n_vertices], dtype=np.int64))

    return meshio.Mesh(points=mesh.points[used], cells=cells, cell_data=cell_data)


def export_patch_surface(mesh: PolyMesh, output_file: Union[str, Path],
                         patches: Optional[Sequence[str]] = None,
                         file_format: Optional[str] = None) -> Path:
    """Write boundary patches to a surface file (format from the extension unless given)."""
    output_file = Path(output_file)
    surface = patch_surface(mesh, patches)
    logger.info(f"Exporting {sum(len(b.data) for b in surface.cells)} boundary faces to {output_file}")
    meshio.write(output_file, surface, file_format)
    return output_file
