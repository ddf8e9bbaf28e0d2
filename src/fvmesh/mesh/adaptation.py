"""
Point-Addition Refinement for Extruded 2D Meshes

Splits a prismatic cell of a one-cell-thick mesh into p wedge cells, where p
is the number of sides of its polygonal cross-section:
- One new point at the centroid of each of the two empty-patch faces
- p triangles replacing each empty face
- p internal quads joining consecutive wedges
- Every other face of the target is inherited by exactly one wedge

Each target is processed in two phases. `plan` inspects the current mesh and
builds an immutable SplitPlan; `apply` performs the mutation on a MeshArena.
The whole batch runs on a snapshot of the caller's mesh, so any error leaves
the caller's mesh untouched.
"""

import numpy as np
from typing import Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field
import logging

from ..core.config import RefinementConfig
from .arena import MeshArena
from .boundary import PatchType
from .errors import FaceMatchError, MeshError, TopologyError
from .geometry import face_area_centroid
from .ledger import FacesData
from .unstructured_mesh import PolyMesh

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitPlan:
    """Everything needed to split one cell, computed without mutation."""
    cell: int
    positive_face: int
    negative_face: int
    positive_patch: int
    negative_patch: int
    positive_points: Tuple[int, ...]
    negative_points: Tuple[int, ...]  # reconciled: negative_points[k] lies under positive_points[k]
    positive_centroid: Tuple[float, float, float]
    negative_centroid: Tuple[float, float, float]
    inherited_faces: Tuple[int, ...]  # inherited_faces[k] goes to wedge k

    @property
    def n_sides(self) -> int:
        return len(self.positive_points)


@dataclass
class RefinementResult:
    """Outcome of a refinement batch."""
    mesh: PolyMesh
    new_cells: List[List[int]] = field(default_factory=list)  # per target, final cell ids
    refined_cells: List[int] = field(default_factory=list)
    ledger: Optional[FacesData] = None

    @property
    def all_new_cells(self) -> List[int]:
        return [cell for cells in self.new_cells for cell in cells]

    @property
    def n_refined(self) -> int:
        return len(self.refined_cells)


class PointAdditionRefiner:
    """
    Refines cells of an extruded mesh by adding one point on each empty face.

    Cell ids passed to `refine` refer to the mesh given at construction.
    Ids of cells that are not refined stay valid until the final compaction,
    independent of the order of the queue.
    """

    def __init__(self, mesh: PolyMesh, config: Optional[RefinementConfig] = None):
        self.mesh = mesh
        self.config = config or RefinementConfig()

        empty_types = {PatchType.parse(t) for t in self.config.empty_patch_types}
        self.empty_patches = [b for b, patch in enumerate(mesh.patches)
                              if patch.patch_type in empty_types]
        if not self.empty_patches:
            logger.warning("Mesh has no empty patches; no cell can be refined")

    # ------------------------------------------------------------------
    # Batch driver
    # ------------------------------------------------------------------

    def refine(self, cell_ids: Sequence[int]) -> RefinementResult:
        """
        Refine every cell of the queue, in order.

        Args:
            cell_ids: Cell ids of the input mesh

        Returns:
            RefinementResult holding the new mesh and, per target, the final
            ids of its successor cells

        Raises:
            MeshError: The first failure aborts the batch; `target_cell` is set
        """
        targets = [int(c) for c in cell_ids]
        logger.info(f"Refining {len(targets)} cells by point addition")

        arena = MeshArena.from_mesh(self.mesh)
        ledger = FacesData.from_mesh(self.mesh)

        successors: List[List[int]] = []
        for cell in targets:
            try:
                plan = self.plan(arena, cell)
                successors.append(self.apply(arena, ledger, plan))
                if self.config.verify_each_step:
                    ledger.check(arena.scan_ledger())
            except MeshError as e:
                e.target_cell = cell
                logger.error(f"Refinement of cell {cell} failed: {e}")
                raise

        mesh, cell_remap, _ = arena.compact(owner_lower=self.config.owner_lower)
        if self.config.verify_ledger:
            ledger.check(FacesData.from_mesh(mesh))
            mesh.validate()

        new_cells = [cell_remap.map(cells) for cells in successors]
        logger.info(f"Refinement done: {self.mesh.n_cells} -> {mesh.n_cells} cells, "
                    f"{self.mesh.n_faces} -> {mesh.n_faces} faces")
        return RefinementResult(mesh=mesh, new_cells=new_cells, refined_cells=targets, ledger=ledger)

    # ------------------------------------------------------------------
    # Phase 1: planning
    # ------------------------------------------------------------------

    def plan(self, arena: MeshArena, cell: int) -> SplitPlan:
        """Inspect a cell and decide how it will be split."""
        if cell not in arena.cells:
            if 0 <= cell < self.mesh.n_cells:
                raise TopologyError("Cell was already refined in this batch", cell_id=cell)
            raise TopologyError("No such cell", cell_id=cell)

        empty_faces, context_faces = self._locate(arena, cell)
        positive, negative, axis = self._orient(arena, cell, empty_faces)

        positive_points = arena.face(positive).points
        negative_points = self._reconcile(arena, cell, positive_points,
                                          arena.face(negative).points, axis)
        inherited = self._match_inherited(arena, cell, context_faces,
                                          positive_points, negative_points)

        _, positive_centroid = arena.face_geometry(positive)
        _, negative_centroid = arena.face_geometry(negative)

        plan = SplitPlan(
            cell=cell,
            positive_face=positive,
            negative_face=negative,
            positive_patch=arena.face(positive).patch,
            negative_patch=arena.face(negative).patch,
            positive_points=tuple(positive_points),
            negative_points=tuple(negative_points),
            positive_centroid=tuple(positive_centroid),
            negative_centroid=tuple(negative_centroid),
            inherited_faces=tuple(inherited),
        )
        logger.debug(f"Cell {cell}: {plan.n_sides}-sided split, thickness axis {axis}")
        return plan

    def _locate(self, arena: MeshArena, cell: int) -> Tuple[List[int], List[int]]:
        """Split the incident faces into the two empty faces and the rest."""
        empty_faces = []
        context_faces = []
        for face in arena.cell_faces(cell):
            if arena.face(face).patch in self.empty_patches:
                empty_faces.append(face)
            else:
                context_faces.append(face)

        if len(empty_faces) != 2:
            raise TopologyError(f"Expected 2 empty-patch faces, found {len(empty_faces)}",
                                cell_id=cell)
        return empty_faces, context_faces

    def _orient(self, arena: MeshArena, cell: int,
                empty_faces: List[int]) -> Tuple[int, int, int]:
        """(positive face, negative face, thickness axis)."""
        area0, centroid0 = arena.face_geometry(empty_faces[0])
        _, centroid1 = arena.face_geometry(empty_faces[1])

        axis = self.config.thickness_axis
        if axis is None:
            axis = int(np.argmax(np.abs(area0)))

        if centroid0[axis] == centroid1[axis]:
            raise TopologyError("Empty faces are not separated along the thickness axis",
                                cell_id=cell)
        if centroid0[axis] > centroid1[axis]:
            return empty_faces[0], empty_faces[1], axis
        return empty_faces[1], empty_faces[0], axis

    def _same_position(self, a: np.ndarray, b: np.ndarray) -> bool:
        if self.config.match_tolerance == 0.0:
            return bool(np.array_equal(a, b))
        return bool(np.all(np.abs(a - b) <= self.config.match_tolerance))

    def _reconcile(self, arena: MeshArena, cell: int,
                   positive_points: Sequence[int],
                   negative_points: Sequence[int],
                   axis: int) -> List[int]:
        """
        Reorder the negative face so that its k-th point lies under the k-th
        point of the positive face.

        The two faces are stored with opposite winding, so once an anchor j
        with pos[j] ~ neg[0] is found the correspondence is
        neg_r[k] = neg[(j - k) mod p]. Every pair is then verified.
        """
        p = len(positive_points)
        if len(negative_points) != p:
            raise TopologyError(f"Empty faces have {p} and {len(negative_points)} points",
                                cell_id=cell)

        plane = [a for a in range(3) if a != axis]
        pos_xy = arena.point_coordinates(positive_points)[:, plane]
        neg_xy = arena.point_coordinates(negative_points)[:, plane]

        offset = None
        for j in range(p):
            if self._same_position(pos_xy[j], neg_xy[0]):
                offset = j
                break
        if offset is None:
            raise TopologyError("No positive-face point matches the first negative-face point",
                                cell_id=cell)

        reconciled = [negative_points[(offset - k) % p] for k in range(p)]
        for k in range(p):
            if not self._same_position(pos_xy[k], neg_xy[(offset - k) % p]):
                raise TopologyError("Empty faces do not correspond point by point", cell_id=cell)
        return reconciled

    def _match_inherited(self, arena: MeshArena, cell: int,
                         context_faces: List[int],
                         positive_points: Sequence[int],
                         negative_points: Sequence[int]) -> List[int]:
        """Face inherited by each wedge: the one whose points all lie on its outer side."""
        p = len(positive_points)
        inherited = []
        for k in range(p):
            k1 = (k + 1) % p
            targets = {positive_points[k], positive_points[k1],
                       negative_points[k], negative_points[k1]}
            candidates = [f for f in context_faces if set(arena.face(f).points) <= targets]
            if len(candidates) != 1:
                raise FaceMatchError(f"{len(candidates)} faces match side {k}", cell_id=cell)
            inherited.append(candidates[0])

        if len(set(inherited)) != p or len(context_faces) != p:
            unmatched = sorted(set(context_faces) - set(inherited))
            raise FaceMatchError(f"Faces {unmatched} are not inherited by any new cell",
                                 cell_id=cell, face_id=unmatched[0] if unmatched else None)
        return inherited

    # ------------------------------------------------------------------
    # Phase 2: mutation
    # ------------------------------------------------------------------

    def apply(self, arena: MeshArena, ledger: FacesData, plan: SplitPlan) -> List[int]:
        """
        Carry out a plan.

        Returns:
            Arena handles of the new cells, wedge k spanning sides k and k+1
        """
        p = plan.n_sides
        pos = plan.positive_points
        neg = plan.negative_points

        P = arena.add_point(plan.positive_centroid)
        N = arena.add_point(plan.negative_centroid)
        new_cells = [arena.add_cell() for _ in range(p)]

        for k in range(p):
            arena.add_face([P, pos[k], pos[(k + 1) % p]], new_cells[k], patch=plan.positive_patch)
        ledger.insert_faces(plan.positive_patch, p)

        for k in range(p):
            arena.add_face([N, neg[(k + 1) % p], neg[k]], new_cells[k], patch=plan.negative_patch)
        ledger.insert_faces(plan.negative_patch, p)

        wedge_centers = [
            arena.point_coordinates([P, N, pos[k], pos[(k + 1) % p],
                                     neg[k], neg[(k + 1) % p]]).mean(axis=0)
            for k in range(p)
        ]
        for j in range(p):
            # Quad on side j separates wedge j-1 from wedge j
            left, right = (j - 1) % p, j
            owner_k, neighbour_k = (left, right) if new_cells[left] < new_cells[right] else (right, left)
            quad = [P, pos[j], neg[j], N]
            area, centroid = face_area_centroid(arena.point_coordinates(quad))
            if np.dot(area, centroid - wedge_centers[owner_k]) < 0.0:
                quad.reverse()
            arena.add_face(quad, new_cells[owner_k], new_cells[neighbour_k])
        ledger.insert_faces(None, p)

        for k, face in enumerate(plan.inherited_faces):
            arena.reassign_face_cell(face, plan.cell, new_cells[k])

        arena.remove_face(plan.positive_face)
        ledger.remove_faces(plan.positive_patch, 1)
        arena.remove_face(plan.negative_face)
        ledger.remove_faces(plan.negative_patch, 1)
        arena.remove_cell(plan.cell)

        return new_cells


def refine_cells(mesh: PolyMesh, cell_ids: Sequence[int],
                 config: Optional[RefinementConfig] = None) -> RefinementResult:
    """Refine a queue of cells of `mesh` by point addition."""
    return PointAdditionRefiner(mesh, config).refine(cell_ids)


def refine_all(mesh: PolyMesh, config: Optional[RefinementConfig] = None) -> RefinementResult:
    """Refine every cell of an extruded mesh."""
    return refine_cells(mesh, range(mesh.n_cells), config)
