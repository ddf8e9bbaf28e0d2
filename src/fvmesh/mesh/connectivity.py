"""
Face-Based Connectivity for Polyhedral Meshes

Builds the cell-to-face, cell-to-point and cell-to-cell relations implied by
a face list with owner/neighbour cell ids:
- Incident face lists per cell (owner pass, then neighbour pass)
- De-duplicated point sets per cell
- Neighbour cells across internal faces
"""

import numpy as np
from typing import List, Optional, Sequence
from dataclasses import dataclass
import logging

from .errors import IndexConsistencyError

logger = logging.getLogger(__name__)


@dataclass
class CellConnectivity:
    """Connectivity information for a single cell."""
    cell_id: int
    neighbors: List[int]       # Neighbouring cell ids across internal faces
    faces: List[int]           # Incident face ids
    boundary_faces: List[int]  # Incident faces with no neighbour
    points: List[int]          # Distinct point ids


def build_cell_faces(owner: np.ndarray, neighbour: np.ndarray, n_cells: int) -> List[List[int]]:
    """
    Incident face list of every cell.

    Faces are appended to their owner first (all faces, ascending), then to
    their neighbour (internal faces, ascending).

    Raises:
        IndexConsistencyError: If a cell id is out of range or a cell has no faces
    """
    cells: List[List[int]] = [[] for _ in range(n_cells)]

    for face_id, cell_id in enumerate(owner):
        if not 0 <= cell_id < n_cells:
            raise IndexConsistencyError(f"Owner {cell_id} out of range", face_id=face_id)
        cells[cell_id].append(face_id)

    for face_id, cell_id in enumerate(neighbour):
        if cell_id < 0:
            continue
        if cell_id >= n_cells:
            raise IndexConsistencyError(f"Neighbour {cell_id} out of range", face_id=face_id)
        cells[cell_id].append(face_id)

    for cell_id, cell_faces in enumerate(cells):
        if not cell_faces:
            raise IndexConsistencyError("Cell has no incident faces", cell_id=cell_id)

    return cells


def cell_point_indices(cell_faces: Sequence[int], faces: Sequence[Sequence[int]]) -> List[int]:
    """Distinct point ids touched by a cell's faces, in order of first appearance."""
    seen = set()
    points = []
    for face_id in cell_faces:
        for point_id in faces[face_id]:
            if point_id not in seen:
                seen.add(point_id)
                points.append(point_id)
    return points


def cell_neighbours(cell_id: int,
                    cell_faces: Sequence[int],
                    owner: np.ndarray,
                    neighbour: np.ndarray) -> List[int]:
    """Cells sharing an internal face with cell_id."""
    result = []
    for face_id in cell_faces:
        other = neighbour[face_id] if owner[face_id] == cell_id else owner[face_id]
        if other >= 0 and other != cell_id and other not in result:
            result.append(int(other))
    return result


class ConnectivityManager:
    """
    Lazily cached connectivity queries over an assembled PolyMesh.
    """

    def __init__(self, mesh=None):
        self.mesh = mesh
        self._cell_points: Optional[List[List[int]]] = None
        self._cell_neighbors: Optional[List[List[int]]] = None

    def build_connectivity(self) -> None:
        """Build cell point sets and cell neighbours for all cells."""
        if self.mesh is None:
            raise ValueError("No mesh provided")

        mesh = self.mesh
        self._cell_points = [cell_point_indices(faces, mesh.faces) for faces in mesh.cells]
        self._cell_neighbors = [
            cell_neighbours(c, faces, mesh.owner, mesh.neighbour)
            for c, faces in enumerate(mesh.cells)
        ]
        logger.debug(f"Connectivity built for {mesh.n_cells} cells")

    def _ensure_built(self) -> None:
        if self._cell_points is None:
            self.build_connectivity()

    def get_cell_points(self, cell_id: int) -> List[int]:
        self._ensure_built()
        return self._cell_points[cell_id]

    def get_cell_neighbors(self, cell_id: int) -> List[int]:
        self._ensure_built()
        return self._cell_neighbors[cell_id]

    def get_cell_connectivity(self, cell_id: int) -> CellConnectivity:
        """Complete connectivity information for a cell."""
        self._ensure_built()
        cell_faces = self.mesh.cells[cell_id]
        return CellConnectivity(
            cell_id=cell_id,
            neighbors=list(self._cell_neighbors[cell_id]),
            faces=list(cell_faces),
            boundary_faces=[f for f in cell_faces if self.mesh.neighbour[f] < 0],
            points=list(self._cell_points[cell_id]),
        )
