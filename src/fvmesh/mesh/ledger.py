"""
Face/Boundary Index Ledger

Incrementally maintained face bookkeeping for a mesh under mutation: total
face count, internal face count, and per patch its type tag and start index.
The values are redundant with the mesh itself; `check` compares them against
a fresh scan after every mutation batch.

During refinement faces live in a MeshArena under stable handles, so the
positions returned by `insert_faces` are never used to move anything.
`MeshArena.compact` lays faces out internal first and then patch by patch in
handle order, which appends new faces at the end of their range, the same
position `insert_faces` reports. The ledger therefore acts as the expected
layout that the compacted mesh is verified against.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
import logging

import numpy as np

from .boundary import PatchType
from .errors import IndexConsistencyError

logger = logging.getLogger(__name__)


@dataclass
class FacesData:
    """Face counts and contiguous patch ranges."""
    n_faces: int
    n_internal_faces: int
    patch_names: List[str] = field(default_factory=list)
    patch_types: List[PatchType] = field(default_factory=list)
    patch_starts: List[int] = field(default_factory=list)

    @classmethod
    def from_mesh(cls, mesh) -> "FacesData":
        """Derive the ledger by scanning a PolyMesh."""
        return cls(
            n_faces=mesh.n_faces,
            n_internal_faces=mesh.n_internal_faces,
            patch_names=[p.name for p in mesh.patches],
            patch_types=[p.patch_type for p in mesh.patches],
            patch_starts=[p.start_face for p in mesh.patches],
        )

    @classmethod
    def from_face_tags(cls,
                       face_patches: Sequence[Optional[int]],
                       patch_names: Sequence[str],
                       patch_types: Sequence[PatchType]) -> "FacesData":
        """
        Derive the ledger from a per-face patch tag (None for internal faces),
        assuming faces are stored internal first and then patch by patch.
        """
        counts = np.zeros(len(patch_names), dtype=np.int64)
        n_internal = 0
        for tag in face_patches:
            if tag is None:
                n_internal += 1
            else:
                counts[tag] += 1

        starts = []
        start = n_internal
        for count in counts:
            starts.append(start)
            start += int(count)

        return cls(
            n_faces=len(face_patches),
            n_internal_faces=n_internal,
            patch_names=list(patch_names),
            patch_types=list(patch_types),
            patch_starts=starts,
        )

    @property
    def n_patches(self) -> int:
        return len(self.patch_starts)

    def patch_end(self, patch: int) -> int:
        """One past the last face of a patch."""
        if patch == self.n_patches - 1:
            return self.n_faces
        return self.patch_starts[patch + 1]

    def patch_count(self, patch: int) -> int:
        return self.patch_end(patch) - self.patch_starts[patch]

    def patch_range(self, patch: int) -> range:
        return range(self.patch_starts[patch], self.patch_end(patch))

    def patches_of_type(self, patch_type: PatchType) -> List[int]:
        return [b for b, t in enumerate(self.patch_types) if t is patch_type]

    def patch_of(self, face_id: int) -> Optional[int]:
        """Patch index containing face_id, None for internal faces."""
        if not 0 <= face_id < self.n_faces:
            raise IndexConsistencyError("Face index outside ledger range", face_id=face_id)
        if face_id < self.n_internal_faces:
            return None
        for patch in range(self.n_patches - 1, -1, -1):
            if face_id >= self.patch_starts[patch]:
                return patch
        raise IndexConsistencyError("Face falls before the first patch", face_id=face_id)

    def insertion_point(self, patch: Optional[int]) -> int:
        """Index at which a face appended to `patch` (None: internal) lands."""
        if patch is None:
            return self.n_internal_faces
        return self.patch_end(patch)

    # ------------------------------------------------------------------
    # Incremental updates
    # ------------------------------------------------------------------

    def insert_faces(self, patch: Optional[int], count: int) -> int:
        """
        Record `count` faces appended at the end of a patch (None: of the
        internal range). Every later patch start shifts by `count`.

        Returns:
            Index of the first inserted face
        """
        at = self.insertion_point(patch)
        first_shifted = 0 if patch is None else patch + 1

        self.n_faces += count
        if patch is None:
            self.n_internal_faces += count
        for b in range(first_shifted, self.n_patches):
            self.patch_starts[b] += count

        return at

    def remove_faces(self, patch: Optional[int], count: int = 1) -> None:
        """Record `count` faces removed from a patch (None: from the internal range)."""
        available = self.n_internal_faces if patch is None else self.patch_count(patch)
        if count > available:
            raise IndexConsistencyError(
                f"Cannot remove {count} faces from a range holding {available}")

        first_shifted = 0 if patch is None else patch + 1

        self.n_faces -= count
        if patch is None:
            self.n_internal_faces -= count
        for b in range(first_shifted, self.n_patches):
            self.patch_starts[b] -= count

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def check_contiguity(self) -> None:
        """Patch starts are non-decreasing and tile [n_internal_faces, n_faces)."""
        expected = self.n_internal_faces
        for b in range(self.n_patches):
            if self.patch_starts[b] != expected:
                raise IndexConsistencyError(
                    f"Patch '{self.patch_names[b]}' starts at {self.patch_starts[b]}, expected {expected}")
            if self.patch_count(b) < 0:
                raise IndexConsistencyError(f"Patch '{self.patch_names[b]}' has a negative face count")
            expected = self.patch_end(b)
        if expected != self.n_faces:
            raise IndexConsistencyError(f"Patch ranges end at {expected}, ledger has {self.n_faces} faces")

    def check(self, truth: "FacesData") -> None:
        """
        Compare against a ledger derived from scratch.

        Raises:
            IndexConsistencyError: On any difference
        """
        self.check_contiguity()
        mismatches: Dict[str, tuple] = {}
        if self.n_faces != truth.n_faces:
            mismatches['n_faces'] = (self.n_faces, truth.n_faces)
        if self.n_internal_faces != truth.n_internal_faces:
            mismatches['n_internal_faces'] = (self.n_internal_faces, truth.n_internal_faces)
        if list(self.patch_starts) != list(truth.patch_starts):
            mismatches['patch_starts'] = (list(self.patch_starts), list(truth.patch_starts))
        if list(self.patch_types) != list(truth.patch_types):
            mismatches['patch_types'] = (self.patch_types, truth.patch_types)

        if mismatches:
            details = ', '.join(f"{k}: ledger {v[0]} != scan {v[1]}" for k, v in mismatches.items())
            raise IndexConsistencyError(f"Ledger out of sync with mesh ({details})")

    def copy(self) -> "FacesData":
        return FacesData(self.n_faces, self.n_internal_faces, list(self.patch_names),
                         list(self.patch_types), list(self.patch_starts))
