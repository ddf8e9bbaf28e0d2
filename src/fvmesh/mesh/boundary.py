"""
Boundary Patch Definitions

A patch is a named, typed, contiguous range of boundary face indices
[start_face, start_face + n_faces). Patches follow the internal faces in a
fixed order, so the ranges of consecutive patches abut.

The "empty" type marks the placeholder faces that bound the thickness
direction of a 2D geometry represented as a one-cell-thick 3D extrusion.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union
import logging

from .errors import IndexConsistencyError

logger = logging.getLogger(__name__)


class PatchType(Enum):
    """Boundary patch type tags (OpenFOAM names)."""
    PATCH = "patch"
    WALL = "wall"
    SYMMETRY = "symmetry"
    SYMMETRY_PLANE = "symmetryPlane"
    EMPTY = "empty"
    WEDGE = "wedge"
    CYCLIC = "cyclic"

    @classmethod
    def parse(cls, value: Union[str, "PatchType"]) -> "PatchType":
        """Convert a type name to a PatchType; unknown names map to PATCH."""
        if isinstance(value, PatchType):
            return value
        for member in cls:
            if member.value == value or member.name == str(value).upper():
                return member
        logger.warning(f"Unknown patch type '{value}', treating as '{cls.PATCH.value}'")
        return cls.PATCH


@dataclass
class BoundaryPatch:
    """Named boundary face range."""
    name: str
    n_faces: int
    start_face: int
    patch_type: PatchType = PatchType.PATCH

    def __post_init__(self):
        self.patch_type = PatchType.parse(self.patch_type)
        if self.n_faces < 0:
            raise ValueError(f"Patch '{self.name}' has negative face count {self.n_faces}")

    @property
    def end_face(self) -> int:
        """One past the last face index of the patch."""
        return self.start_face + self.n_faces

    @property
    def face_range(self) -> range:
        return range(self.start_face, self.end_face)

    @property
    def is_empty_type(self) -> bool:
        return self.patch_type is PatchType.EMPTY

    def contains(self, face_id: int) -> bool:
        return self.start_face <= face_id < self.end_face

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type': self.patch_type.value,
            'nFaces': self.n_faces,
            'startFace': self.start_face,
        }


PatchSpec = Union[BoundaryPatch, Sequence]


def make_patches(specs: Iterable[PatchSpec],
                 index_base: int = 0,
                 patch_types: Optional[Dict[str, str]] = None) -> List[BoundaryPatch]:
    """
    Build BoundaryPatch objects from (name, n_faces, start_face[, type]) tuples.

    Args:
        specs: BoundaryPatch instances or tuples as delivered by a mesh parser
        index_base: 0 or 1, base of the incoming start face indices
        patch_types: Optional name -> type overrides

    Returns:
        List of patches with 0-based start faces
    """
    patch_types = patch_types or {}
    patches = []

    for spec in specs:
        if isinstance(spec, BoundaryPatch):
            patch = BoundaryPatch(spec.name, spec.n_faces, spec.start_face - index_base, spec.patch_type)
        else:
            name, n_faces, start_face = spec[0], int(spec[1]), int(spec[2])
            type_name = spec[3] if len(spec) > 3 else PatchType.PATCH
            patch = BoundaryPatch(name, n_faces, start_face - index_base, type_name)

        if patch.name in patch_types:
            patch.patch_type = PatchType.parse(patch_types[patch.name])
        patches.append(patch)

    return patches


def check_patch_ranges(patches: Sequence[BoundaryPatch], n_internal_faces: int, n_faces: int) -> None:
    """
    Verify that patches tile [n_internal_faces, n_faces) contiguously, in order.

    Raises:
        IndexConsistencyError: On a gap, overlap or wrong total
    """
    expected_start = n_internal_faces
    for patch in patches:
        if patch.start_face != expected_start:
            raise IndexConsistencyError(
                f"Patch '{patch.name}' starts at {patch.start_face}, expected {expected_start}",
                face_id=patch.start_face)
        expected_start = patch.end_face

    if expected_start != n_faces:
        raise IndexConsistencyError(
            f"Patches end at face {expected_start}, but the mesh has {n_faces} faces")
