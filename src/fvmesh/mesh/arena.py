"""
Stable-Handle Mesh Storage

Mutable mesh representation used while topology changes. Every point, face
and cell receives a permanent integer handle when it is created; handles of
the entities of the source mesh equal their original positions and new
entities receive increasing handles. Deleting an entity frees its handle
without renumbering anything else, and adjacency is stored as handles only.

Dense positions are produced once, by `compact`, which orders faces
internal-first then patch by patch (ascending handle within each group) and
cells by ascending handle. New cells therefore land after all surviving
original cells, and new faces at the end of their range.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
import logging

import numpy as np

from .boundary import BoundaryPatch, PatchType
from .errors import IndexConsistencyError
from .geometry import face_area_centroid
from .ledger import FacesData
from .renumbering import IndexRemap, compact_remap, grouped_order
from .unstructured_mesh import PolyMesh

logger = logging.getLogger(__name__)


@dataclass
class FaceRecord:
    """Face stored by handle."""
    points: List[int]
    owner: int
    neighbour: int = -1
    patch: Optional[int] = None  # None for internal faces

    @property
    def is_boundary(self) -> bool:
        return self.neighbour < 0


class MeshArena:
    """Handle-addressed points, faces and cells."""

    def __init__(self, patch_names: Sequence[str], patch_types: Sequence[PatchType]):
        self.patch_names = list(patch_names)
        self.patch_types = list(patch_types)

        self.points: List[np.ndarray] = []
        self.faces: Dict[int, FaceRecord] = {}
        self.cells: Dict[int, List[int]] = {}

        self._next_face = 0
        self._next_cell = 0

    @classmethod
    def from_mesh(cls, mesh: PolyMesh) -> "MeshArena":
        """Copy a PolyMesh into an arena; handles equal original positions."""
        arena = cls([p.name for p in mesh.patches], [p.patch_type for p in mesh.patches])
        arena.points = [np.array(p, dtype=float) for p in mesh.points]

        face_patch: List[Optional[int]] = [None] * mesh.n_faces
        for index, patch in enumerate(mesh.patches):
            for face_id in patch.face_range:
                face_patch[face_id] = index

        for face_id, face in enumerate(mesh.faces):
            arena.faces[face_id] = FaceRecord(list(face), int(mesh.owner[face_id]),
                                              int(mesh.neighbour[face_id]), face_patch[face_id])
        for cell_id, cell_faces in enumerate(mesh.cells):
            arena.cells[cell_id] = list(cell_faces)

        arena._next_face = mesh.n_faces
        arena._next_cell = mesh.n_cells
        return arena

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    @property
    def n_cells(self) -> int:
        return len(self.cells)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def face(self, handle: int) -> FaceRecord:
        try:
            return self.faces[handle]
        except KeyError:
            raise IndexConsistencyError("Reference to retired face", face_id=handle) from None

    def cell_faces(self, handle: int) -> List[int]:
        try:
            return self.cells[handle]
        except KeyError:
            raise IndexConsistencyError("Reference to retired cell", cell_id=handle) from None

    def point_coordinates(self, handles: Sequence[int]) -> np.ndarray:
        return np.array([self.points[h] for h in handles])

    def face_geometry(self, handle: int) -> Tuple[np.ndarray, np.ndarray]:
        """(area_vector, centroid) of a live face."""
        return face_area_centroid(self.point_coordinates(self.face(handle).points))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_point(self, coordinates: Sequence[float]) -> int:
        self.points.append(np.array(coordinates, dtype=float))
        return len(self.points) - 1

    def add_cell(self) -> int:
        """New cell with no faces yet."""
        handle = self._next_cell
        self._next_cell += 1
        self.cells[handle] = []
        return handle

    def add_face(self, points: Sequence[int], owner: int,
                 neighbour: int = -1, patch: Optional[int] = None) -> int:
        """New face, registered in the incident face lists of its cells."""
        if (patch is None) == (neighbour < 0):
            raise IndexConsistencyError("Internal faces need a neighbour and no patch; "
                                        "boundary faces need a patch and no neighbour")
        handle = self._next_face
        self._next_face += 1
        self.faces[handle] = FaceRecord(list(points), owner, neighbour, patch)
        self.cell_faces(owner).append(handle)
        if neighbour >= 0:
            self.cell_faces(neighbour).append(handle)
        return handle

    def reassign_face_cell(self, face: int, old_cell: int, new_cell: int) -> None:
        """Move one side of a face from old_cell to new_cell."""
        record = self.face(face)
        if record.owner == old_cell:
            record.owner = new_cell
        elif record.neighbour == old_cell:
            record.neighbour = new_cell
        else:
            raise IndexConsistencyError("Face is not attached to the cell being replaced",
                                        cell_id=old_cell, face_id=face)

        old_faces = self.cell_faces(old_cell)
        if face not in old_faces:
            raise IndexConsistencyError("Cell does not list a face that references it",
                                        cell_id=old_cell, face_id=face)
        old_faces.remove(face)
        self.cell_faces(new_cell).append(face)

    def remove_face(self, face: int) -> None:
        """Retire a face and detach it from its cells."""
        record = self.face(face)
        for cell in (record.owner, record.neighbour):
            if cell < 0:
                continue
            cell_faces = self.cell_faces(cell)
            if face not in cell_faces:
                raise IndexConsistencyError("Face references a cell that does not list it",
                                            cell_id=cell, face_id=face)
            cell_faces.remove(face)
        del self.faces[face]

    def remove_cell(self, cell: int) -> None:
        """
        Retire a cell. All of its faces must already be detached; a face that
        still lists the cell is a reference the deletion would leave dangling.
        """
        remaining = self.cell_faces(cell)
        if remaining:
            raise IndexConsistencyError(
                f"Cell still referenced by faces {remaining}", cell_id=cell, face_id=remaining[0])
        del self.cells[cell]

    # ------------------------------------------------------------------
    # Scans
    # ------------------------------------------------------------------

    def scan_ledger(self) -> FacesData:
        """Ledger derived from the per-face patch tags."""
        order = grouped_order({h: r.patch for h, r in self.faces.items()},
                              [None] + list(range(len(self.patch_names))))
        return FacesData.from_face_tags([self.faces[h].patch for h in order],
                                        self.patch_names, self.patch_types)

    def compact(self, owner_lower: bool = True) -> Tuple[PolyMesh, IndexRemap, IndexRemap]:
        """
        Dense, re-assembled PolyMesh of the live entities.

        Args:
            owner_lower: Swap owner/neighbour (and reverse the point order) of
                internal faces whose owner would get the larger cell index

        Returns:
            Tuple of (mesh, cell_remap, face_remap)
        """
        n_patches = len(self.patch_names)
        face_order = grouped_order({h: r.patch for h, r in self.faces.items()},
                                   [None] + list(range(n_patches)))
        face_remap = IndexRemap.from_order(face_order, "face")
        cell_remap = compact_remap(self.cells.keys(), "cell")

        faces = []
        owner = []
        neighbour = []
        counts = [0] * n_patches
        for handle in face_order:
            record = self.faces[handle]
            face_points = list(record.points)
            o = cell_remap[record.owner]
            n = cell_remap.map_optional(record.neighbour)
            if owner_lower and n >= 0 and o > n:
                o, n = n, o
                face_points.reverse()
            faces.append(face_points)
            owner.append(o)
            neighbour.append(n)
            if record.patch is not None:
                counts[record.patch] += 1

        n_internal = sum(1 for n in neighbour if n >= 0)
        patches = []
        start = n_internal
        for index, count in enumerate(counts):
            patches.append(BoundaryPatch(self.patch_names[index], count, start, self.patch_types[index]))
            start += count

        mesh = PolyMesh.from_arrays(np.array(self.points), faces, owner,
                                    neighbour[:n_internal], patches)

        for handle, cell_faces in self.cells.items():
            expected = set(face_remap.map(cell_faces))
            if expected != set(mesh.cells[cell_remap[handle]]):
                raise IndexConsistencyError("Incident faces changed during compaction", cell_id=handle)

        logger.debug(f"Compacted arena: {mesh.n_cells} cells, {mesh.n_faces} faces")
        return mesh, cell_remap, face_remap
