"""
Face-Based Polyhedral Mesh for Finite Volume Solvers

Provides the mesh aggregate consumed by flux solvers:
- Point table and per-face ordered point lists
- Owner/neighbour cell ids per face (-1 for boundary faces)
- Incident face lists per cell
- Face area vectors and centroids, cell volumes, centroids and sizes
- Boundary patches as contiguous face ranges after the internal faces

`PolyMesh.from_arrays` is the assembler: it normalises index base, builds
topology and evaluates every metric through the geometry module.
"""

import copy
import numpy as np
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from ..core.config import MeshConfig
from .boundary import BoundaryPatch, PatchSpec, make_patches, check_patch_ranges
from .connectivity import ConnectivityManager, build_cell_faces, cell_point_indices
from .errors import DegenerateGeometryError, IndexConsistencyError
from .geometry import (
    bounding_box_size,
    cell_to_face_vectors,
    cell_volume_centroid,
    face_area_centroid,
    quality_summary,
)

logger = logging.getLogger(__name__)


class PolyMesh:
    """
    Assembled face-based mesh.

    Face indices are partitioned as [0, n_internal_faces) followed by one
    contiguous range per patch, in patch order.
    """

    def __init__(self,
                 points: np.ndarray,
                 faces: List[List[int]],
                 owner: np.ndarray,
                 neighbour: np.ndarray,
                 patches: List[BoundaryPatch]):
        """
        Initialize from already normalised (0-based) arrays. Use from_arrays
        to assemble from parser output.

        Args:
            points: Point coordinates [n_points, 3]
            faces: Ordered point ids of every face
            owner: Owner cell id per face [n_faces]
            neighbour: Neighbour cell id per face [n_faces], -1 on boundary faces
            patches: Boundary patches in face order
        """
        self.points = np.asarray(points, dtype=float).reshape(-1, 3)
        self.faces = [list(map(int, face)) for face in faces]
        self.owner = np.asarray(owner, dtype=np.int64)
        self.neighbour = np.asarray(neighbour, dtype=np.int64)
        self.patches = list(patches)

        # Topology
        self.cells: List[List[int]] = []

        # Derived metrics
        self.face_area_vectors = np.zeros((0, 3))
        self.face_centroids = np.zeros((0, 3))
        self.cell_volumes = np.zeros(0)
        self.cell_centroids = np.zeros((0, 3))
        self.cell_sizes = np.zeros((0, 3))

        self._connectivity: Optional[ConnectivityManager] = None

    @classmethod
    def from_arrays(cls,
                    points: Sequence,
                    faces: Sequence[Sequence[int]],
                    owner: Sequence[int],
                    neighbour: Sequence[int],
                    patches: Iterable[PatchSpec],
                    index_base: int = 0,
                    patch_types: Optional[Dict[str, str]] = None) -> "PolyMesh":
        """
        Assemble a mesh from parser output.

        Args:
            points: Point coordinates [n_points, 3]
            faces: Ordered point ids per face
            owner: Owner cell id per face
            neighbour: Neighbour cell id per internal face (first n_internal
                faces), or a full-length list with -1 on boundary faces
            patches: (name, n_faces, start_face[, type]) tuples or BoundaryPatch
            index_base: 0 or 1, base of every incoming index
            patch_types: Optional patch name -> type overrides

        Returns:
            Assembled mesh with all metrics computed
        """
        if index_base not in (0, 1):
            raise ValueError(f"index_base must be 0 or 1, got {index_base}")

        points = np.asarray(points, dtype=float)
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError(f"points must have shape (n, 3), got {points.shape}")

        faces = [[int(p) - index_base for p in face] for face in faces]
        owner = np.asarray(owner, dtype=np.int64) - index_base
        neighbour = np.asarray(neighbour, dtype=np.int64)
        n_faces = len(faces)

        if len(owner) != n_faces:
            raise IndexConsistencyError(f"{len(owner)} owner entries for {n_faces} faces")

        if len(neighbour) == n_faces:
            # Full-length form: boundary entries are already the sentinel
            full_neighbour = np.where(neighbour < 0, -1, neighbour - index_base)
            n_internal = int(np.count_nonzero(full_neighbour >= 0))
            if np.any(full_neighbour[:n_internal] < 0) or np.any(full_neighbour[n_internal:] >= 0):
                raise IndexConsistencyError("Internal faces must precede boundary faces")
        elif len(neighbour) < n_faces:
            n_internal = len(neighbour)
            full_neighbour = np.full(n_faces, -1, dtype=np.int64)
            full_neighbour[:n_internal] = neighbour - index_base
            if np.any(full_neighbour[:n_internal] < 0):
                raise IndexConsistencyError("Negative neighbour on an internal face")
        else:
            raise IndexConsistencyError(f"{len(neighbour)} neighbour entries for {n_faces} faces")

        self_faces = np.flatnonzero(full_neighbour[:n_internal] == owner[:n_internal])
        if len(self_faces):
            raise IndexConsistencyError("Internal face has the same owner and neighbour",
                                        face_id=int(self_faces[0]))

        for face_id, face in enumerate(faces):
            if len(face) < 3:
                raise DegenerateGeometryError(f"Face has {len(face)} points", face_id=face_id)
            if min(face) < 0 or max(face) >= len(points):
                raise IndexConsistencyError("Face references a missing point", face_id=face_id)

        patch_list = make_patches(patches, index_base=index_base, patch_types=patch_types)
        check_patch_ranges(patch_list, n_internal, n_faces)

        mesh = cls(points, faces, owner, full_neighbour, patch_list)
        mesh._build_connectivity()
        mesh._compute_geometry()
        return mesh

    # ------------------------------------------------------------------
    # Assembly steps
    # ------------------------------------------------------------------

    def _build_connectivity(self) -> None:
        """Build incident face lists from owner/neighbour data."""
        if len(self.owner) == 0:
            self.cells = []
            return
        n_cells = int(max(self.owner.max(), self.neighbour.max())) + 1
        self.cells = build_cell_faces(self.owner, self.neighbour, n_cells)
        self._connectivity = None
        logger.debug(f"Built connectivity: {self.n_faces} faces, {n_cells} cells")

    def _compute_geometry(self) -> None:
        """Compute face and cell metrics."""
        n_faces = self.n_faces
        n_cells = self.n_cells

        self.face_area_vectors = np.zeros((n_faces, 3))
        self.face_centroids = np.zeros((n_faces, 3))
        for face_id, face in enumerate(self.faces):
            try:
                area_vector, centroid = face_area_centroid(self.points[face])
            except DegenerateGeometryError as e:
                raise DegenerateGeometryError(e.message, face_id=face_id) from e
            self.face_area_vectors[face_id] = area_vector
            self.face_centroids[face_id] = centroid

        self.cell_volumes = np.zeros(n_cells)
        self.cell_centroids = np.zeros((n_cells, 3))
        self.cell_sizes = np.zeros((n_cells, 3))
        for cell_id, cell_faces in enumerate(self.cells):
            cell_points = self.points[cell_point_indices(cell_faces, self.faces)]
            try:
                volume, centroid = cell_volume_centroid(
                    cell_points,
                    self.face_area_vectors[cell_faces],
                    self.face_centroids[cell_faces])
            except DegenerateGeometryError as e:
                raise DegenerateGeometryError(e.message, cell_id=cell_id) from e
            self.cell_volumes[cell_id] = volume
            self.cell_centroids[cell_id] = centroid
            self.cell_sizes[cell_id] = bounding_box_size(cell_points)

        logger.info(f"Assembled mesh: {n_cells} cells, {n_faces} faces, "
                    f"{self.n_points} points, {len(self.patches)} patches")

    # ------------------------------------------------------------------
    # Counts and lookups
    # ------------------------------------------------------------------

    @property
    def n_points(self) -> int:
        return len(self.points)

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    @property
    def n_cells(self) -> int:
        return len(self.cells)

    @property
    def n_internal_faces(self) -> int:
        return int(np.count_nonzero(self.neighbour >= 0))

    @property
    def n_boundary_faces(self) -> int:
        return self.n_faces - self.n_internal_faces

    @property
    def boundary_faces(self) -> List[np.ndarray]:
        """Face indices of every patch, in patch order."""
        return [np.arange(p.start_face, p.end_face) for p in self.patches]

    @property
    def face_cells(self) -> np.ndarray:
        """[owner, neighbour] per face, shape [n_faces, 2]."""
        return np.column_stack([self.owner, self.neighbour])

    @property
    def connectivity(self) -> ConnectivityManager:
        if self._connectivity is None:
            self._connectivity = ConnectivityManager(self)
        return self._connectivity

    def patch(self, name: str) -> BoundaryPatch:
        for patch in self.patches:
            if patch.name == name:
                return patch
        raise KeyError(f"No patch named '{name}'")

    def patch_index(self, name: str) -> int:
        for index, patch in enumerate(self.patches):
            if patch.name == name:
                return index
        raise KeyError(f"No patch named '{name}'")

    def patch_of_face(self, face_id: int) -> Optional[int]:
        """Index of the patch containing face_id, None for internal faces."""
        for index, patch in enumerate(self.patches):
            if patch.contains(face_id):
                return index
        return None

    def cell_points(self, cell_id: int) -> List[int]:
        """Distinct point ids of a cell."""
        return self.connectivity.get_cell_points(cell_id)

    def cell_to_face_vectors(self, cell_id: int) -> np.ndarray:
        """Vectors from the cell centroid to each incident face centroid."""
        return cell_to_face_vectors(self.face_centroids[self.cells[cell_id]],
                                    self.cell_centroids[cell_id])

    def info(self) -> Tuple[int, int, int, int]:
        """(n_cells, n_faces, n_patches, n_boundary_faces)."""
        n_boundary = sum(p.n_faces for p in self.patches)
        return self.n_cells, self.n_faces, len(self.patches), n_boundary

    def compute_mesh_quality(self) -> Dict[str, float]:
        return quality_summary(self.cell_volumes, self.face_area_vectors)

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """
        Re-check every structural invariant from scratch.

        Raises:
            IndexConsistencyError: If any invariant is broken
            DegenerateGeometryError: If a cell volume is not strictly positive
        """
        n_internal = self.n_internal_faces
        if np.any(self.neighbour[:n_internal] < 0) or np.any(self.neighbour[n_internal:] >= 0):
            raise IndexConsistencyError("Internal faces are not contiguous at the front")

        check_patch_ranges(self.patches, n_internal, self.n_faces)

        for cell_id, cell_faces in enumerate(self.cells):
            for face_id in cell_faces:
                if not 0 <= face_id < self.n_faces:
                    raise IndexConsistencyError("Cell references a missing face",
                                                cell_id=cell_id, face_id=face_id)
                if cell_id not in (self.owner[face_id], self.neighbour[face_id]):
                    raise IndexConsistencyError("Face does not reference its cell",
                                                cell_id=cell_id, face_id=face_id)

        for face_id in range(self.n_faces):
            for cell_id in (self.owner[face_id], self.neighbour[face_id]):
                if cell_id < 0:
                    continue
                if cell_id >= self.n_cells or face_id not in self.cells[cell_id]:
                    raise IndexConsistencyError("Cell does not list its face",
                                                cell_id=int(cell_id), face_id=face_id)
            if self.owner[face_id] == self.neighbour[face_id]:
                raise IndexConsistencyError("Face owner equals neighbour", face_id=face_id)

        bad = np.nonzero(self.cell_volumes <= 0.0)[0]
        if len(bad):
            raise DegenerateGeometryError("Non-positive cell volume", cell_id=int(bad[0]))

    # ------------------------------------------------------------------

    def copy(self) -> "PolyMesh":
        """Deep copy."""
        clone = copy.deepcopy(self)
        clone._connectivity = None
        return clone

    def to_arrays(self) -> Dict[str, Any]:
        """Raw arrays in the parser-output form accepted by from_arrays."""
        n_internal = self.n_internal_faces
        return {
            'points': self.points.copy(),
            'faces': [list(face) for face in self.faces],
            'owner': self.owner.copy(),
            'neighbour': self.neighbour[:n_internal].copy(),
            'patches': [(p.name, p.n_faces, p.start_face, p.patch_type.value) for p in self.patches],
        }

    def __repr__(self) -> str:
        return (f"PolyMesh(points={self.n_points}, cells={self.n_cells}, "
                f"faces={self.n_faces}, internal={self.n_internal_faces}, "
                f"patches={[p.name for p in self.patches]})")


def assemble_mesh(points, faces, owner, neighbour, patches,
                  config: Optional[MeshConfig] = None) -> PolyMesh:
    """
    Assemble parser output according to a MeshConfig.

    The config supplies the index base and patch type overrides; when its
    `validate` flag is set every structural invariant is re-checked.
    """
    config = config or MeshConfig()
    mesh = PolyMesh.from_arrays(points, faces, owner, neighbour, patches,
                                index_base=config.index_base,
                                patch_types=config.patch_types or None)
    if config.validate:
        mesh.validate()
    return mesh
