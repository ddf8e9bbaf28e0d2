"""
Mesh Error Kinds

All errors raised by assembly and refinement derive from MeshError so that a
caller driving a refinement batch can catch a single type. Every error may
carry the id of the offending cell and/or face.
"""

from typing import Optional


class MeshError(Exception):
    """Base class for fatal mesh errors."""

    def __init__(self, message: str,
                 cell_id: Optional[int] = None,
                 face_id: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.cell_id = cell_id
        self.face_id = face_id
        self.target_cell: Optional[int] = None  # refinement target being processed

    def __str__(self) -> str:
        context = []
        if self.cell_id is not None:
            context.append(f"cell {self.cell_id}")
        if self.face_id is not None:
            context.append(f"face {self.face_id}")
        if self.target_cell is not None and self.target_cell != self.cell_id:
            context.append(f"while refining cell {self.target_cell}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class DegenerateGeometryError(MeshError):
    """Zero face area or zero cell volume."""


class TopologyError(MeshError):
    """A refinement target has the wrong empty-face topology, or point correspondence failed."""


class FaceMatchError(MeshError):
    """Zero or several inherited faces matched while stitching a new cell."""


class IndexConsistencyError(MeshError):
    """A stored index reference disagrees with the mesh tables."""
