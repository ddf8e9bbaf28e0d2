#!/usr/bin/env python
"""
Test suite for point-addition refinement.

Covers the cell/face delta laws, the shape of the new cells, conservation of
volume, orientation of the new faces, and the failure paths that must leave
the input mesh untouched.
"""

import unittest

import numpy as np
from numpy.testing import assert_allclose, assert_array_equal

from fvmesh.cases import extrude_polygons, extruded_grid_mesh, shock_tube_mesh
from fvmesh.core.config import RefinementConfig
from fvmesh.mesh import (
    FaceMatchError,
    FacesData,
    MeshArena,
    PointAdditionRefiner,
    PolyMesh,
    TopologyError,
    refine_all,
    refine_cells,
)
from fvmesh.mesh.errors import IndexConsistencyError


def assert_outward_faces(test, mesh):
    """Every area vector points from its owner towards the neighbour or outside."""
    for face_id in range(mesh.n_faces):
        owner = mesh.owner[face_id]
        neighbour = mesh.neighbour[face_id]
        if neighbour >= 0:
            direction = mesh.cell_centroids[neighbour] - mesh.cell_centroids[owner]
        else:
            direction = mesh.face_centroids[face_id] - mesh.cell_centroids[owner]
        test.assertGreater(np.dot(mesh.face_area_vectors[face_id], direction), 0.0,
                           f"face {face_id} points into its owner")


def pentagon_mesh():
    """One pentagonal prism."""
    angles = np.linspace(0.0, 2 * np.pi, 6)[:-1]
    points2d = np.column_stack([np.cos(angles), np.sin(angles)])
    return extrude_polygons(points2d, [[0, 1, 2, 3, 4]], thickness=0.5)


class TestDeltaLaws(unittest.TestCase):
    """Cell count changes by p - 1, face count by 3p - 2."""

    def _check(self, mesh, cell_id, p):
        result = refine_cells(mesh, [cell_id])
        self.assertEqual(result.mesh.n_cells - mesh.n_cells, p - 1)
        self.assertEqual(result.mesh.n_faces - mesh.n_faces, 3 * p - 2)
        self.assertEqual(len(result.new_cells), 1)
        self.assertEqual(len(result.new_cells[0]), p)
        for cell in result.new_cells[0]:
            self.assertEqual(len(result.mesh.cells[cell]), 5)
        return result

    def test_triangular_prism(self):
        mesh = extruded_grid_mesh(1, 1, triangles=True)
        result = self._check(mesh, 0, 3)
        self.assertEqual(result.mesh.n_cells, 4)
        # Surviving cell 1 becomes 0, new cells follow
        self.assertEqual(result.new_cells, [[1, 2, 3]])

    def test_hexahedron(self):
        self._check(extruded_grid_mesh(1, 1), 0, 4)

    def test_pentagonal_prism(self):
        self._check(pentagon_mesh(), 0, 5)

    def test_inner_cell_of_grid(self):
        self._check(extruded_grid_mesh(3, 3), 4, 4)

    def test_new_cell_face_kinds(self):
        mesh = extruded_grid_mesh(1, 1, triangles=True)
        result = refine_cells(mesh, [0])
        new_mesh = result.mesh
        empty = new_mesh.patch_index("frontAndBack")
        for cell in result.new_cells[0]:
            kinds = [new_mesh.patch_of_face(f) for f in new_mesh.cells[cell]]
            self.assertEqual(kinds.count(empty), 2)
            internal = [f for f in new_mesh.cells[cell] if new_mesh.neighbour[f] >= 0]
            # Two new quads, plus the inherited diagonal for one of the wedges
            self.assertIn(len(internal), (2, 3))


class TestRefinedGeometry(unittest.TestCase):

    def test_volume_conserved(self):
        for mesh in (extruded_grid_mesh(2, 2, thickness=0.3),
                     extruded_grid_mesh(2, 1, triangles=True),
                     pentagon_mesh()):
            result = refine_all(mesh)
            self.assertAlmostEqual(result.mesh.cell_volumes.sum(), mesh.cell_volumes.sum())

    def test_wedges_split_cell_evenly(self):
        mesh = extruded_grid_mesh(1, 1, thickness=0.2)
        result = refine_cells(mesh, [0])
        assert_allclose(result.mesh.cell_volumes, [0.05] * 4)

    def test_new_points_at_face_centroids(self):
        mesh = extruded_grid_mesh(1, 1, thickness=0.2)
        result = refine_cells(mesh, [0])
        assert_allclose(result.mesh.points[-2:], [[0.5, 0.5, 0.2], [0.5, 0.5, 0.0]])

    def test_orientation(self):
        result = refine_all(extruded_grid_mesh(2, 2, triangles=True))
        assert_outward_faces(self, result.mesh)
        result.mesh.validate()

    def test_owner_lower_than_neighbour(self):
        result = refine_cells(extruded_grid_mesh(3, 3), [8, 0, 4])
        n_internal = result.mesh.n_internal_faces
        self.assertTrue(np.all(result.mesh.owner[:n_internal] < result.mesh.neighbour[:n_internal]))

    def test_without_owner_normalisation(self):
        config = RefinementConfig(owner_lower=False)
        result = refine_cells(extruded_grid_mesh(2, 2), [0], config)
        assert_outward_faces(self, result.mesh)


class TestBatches(unittest.TestCase):

    def test_queue_ids_refer_to_input_mesh(self):
        mesh = extruded_grid_mesh(3, 1)
        result = refine_cells(mesh, [2, 0])
        self.assertEqual(result.mesh.n_cells, 3 + 2 * 3)
        self.assertEqual(result.refined_cells, [2, 0])
        # Cell 1 is the only survivor and comes first
        assert_allclose(result.mesh.cell_centroids[0, :2], mesh.cell_centroids[1, :2])
        wedges = result.new_cells[0]
        self.assertTrue(np.all(result.mesh.cell_centroids[wedges, 0] > 2.0 / 3.0))

    def test_refine_all(self):
        mesh = extruded_grid_mesh(2, 2)
        result = refine_all(mesh)
        self.assertEqual(result.mesh.n_cells, 16)
        self.assertEqual(result.mesh.n_faces, mesh.n_faces + 4 * 10)
        self.assertEqual(sorted(result.all_new_cells), list(range(16)))

    def test_input_mesh_unchanged(self):
        mesh = extruded_grid_mesh(2, 2)
        before = mesh.to_arrays()
        refine_all(mesh)
        after = mesh.to_arrays()
        assert_array_equal(before['owner'], after['owner'])
        self.assertEqual(before['faces'], after['faces'])
        self.assertEqual(mesh.n_cells, 4)

    def test_separate_front_and_back_patches(self):
        mesh = extruded_grid_mesh(1, 1)
        arrays = mesh.to_arrays()
        patches = [("walls", 4, 0, "wall"), ("back", 1, 4, "empty"), ("front", 1, 5, "empty")]
        split = PolyMesh.from_arrays(arrays['points'], arrays['faces'], arrays['owner'],
                                     arrays['neighbour'], patches)
        result = refine_cells(split, [0])
        self.assertEqual(result.mesh.patch("front").n_faces, 4)
        self.assertEqual(result.mesh.patch("back").n_faces, 4)
        front = result.mesh.patch("front").face_range
        assert_allclose(result.mesh.face_centroids[front.start:front.stop, 2], 0.1)

    def test_explicit_thickness_axis(self):
        config = RefinementConfig(thickness_axis=2)
        result = refine_cells(extruded_grid_mesh(1, 1, triangles=True), [1], config)
        self.assertEqual(result.mesh.n_cells, 4)


class TestFailures(unittest.TestCase):
    """Every failure aborts the batch and leaves the input mesh untouched."""

    def _assert_untouched(self, mesh, n_cells, n_faces):
        self.assertEqual(mesh.n_cells, n_cells)
        self.assertEqual(mesh.n_faces, n_faces)
        mesh.validate()

    def test_four_empty_faces(self):
        mesh = shock_tube_mesh()
        with self.assertRaises(TopologyError) as ctx:
            refine_cells(mesh, [0])
        self.assertEqual(ctx.exception.cell_id, 0)
        self.assertEqual(ctx.exception.target_cell, 0)
        self._assert_untouched(mesh, 4, 21)

    def test_one_empty_face(self):
        mesh = extruded_grid_mesh(3, 3)
        config = RefinementConfig(empty_patch_types=["wall"])
        with self.assertRaises(TopologyError) as ctx:
            refine_cells(mesh, [1], config)
        self.assertIn("found 1", str(ctx.exception))
        self._assert_untouched(mesh, 9, mesh.n_faces)

    def test_three_empty_faces(self):
        mesh = extruded_grid_mesh(2, 1)
        config = RefinementConfig(empty_patch_types=["wall"])
        with self.assertRaises(TopologyError) as ctx:
            refine_cells(mesh, [0], config)
        self.assertIn("found 3", str(ctx.exception))

    def test_failure_late_in_batch(self):
        mesh = extruded_grid_mesh(2, 2)
        with self.assertRaises(TopologyError) as ctx:
            refine_cells(mesh, [0, 1, 99])
        self.assertEqual(ctx.exception.target_cell, 99)
        self._assert_untouched(mesh, 4, mesh.n_faces)

    def test_duplicate_target(self):
        mesh = extruded_grid_mesh(1, 1, triangles=True)
        with self.assertRaises(TopologyError) as ctx:
            refine_cells(mesh, [0, 0])
        self.assertIn("already refined", str(ctx.exception))

    def test_point_correspondence_failure(self):
        arrays = extruded_grid_mesh(1, 1).to_arrays()
        arrays['points'][6, 0] += 1e-3  # top copy of (0, 1)
        mesh = PolyMesh.from_arrays(**arrays)
        with self.assertRaises(TopologyError):
            refine_cells(mesh, [0])

        result = refine_cells(mesh, [0], RefinementConfig(match_tolerance=1e-2))
        self.assertEqual(result.mesh.n_cells, 4)

    def test_ambiguous_inherited_face(self):
        arrays = extruded_grid_mesh(1, 1).to_arrays()
        quad = arrays['faces'][0]
        faces = [[quad[0], quad[1], quad[2]], [quad[0], quad[2], quad[3]]] + arrays['faces'][1:]
        owner = np.concatenate([[0], arrays['owner']])
        patches = [("walls", 5, 0, "wall"), ("frontAndBack", 2, 5, "empty")]
        mesh = PolyMesh.from_arrays(arrays['points'], faces, owner, arrays['neighbour'], patches)
        with self.assertRaises(FaceMatchError):
            refine_cells(mesh, [0])

    def test_unmatched_inherited_face(self):
        # One side face fanned around its centre point: no face fits inside that side
        arrays = extruded_grid_mesh(1, 1).to_arrays()
        a, b, c, d = arrays['faces'][0]
        points = np.vstack([arrays['points'], arrays['points'][[a, b, c, d]].mean(axis=0)])
        m = len(points) - 1
        faces = [[a, b, m], [b, c, m], [c, d, m], [d, a, m]] + arrays['faces'][1:]
        owner = np.concatenate([[0, 0, 0], arrays['owner']])
        patches = [("walls", 7, 0, "wall"), ("frontAndBack", 2, 7, "empty")]
        mesh = PolyMesh.from_arrays(points, faces, owner, arrays['neighbour'], patches)
        with self.assertRaises(FaceMatchError) as ctx:
            refine_cells(mesh, [0])
        self.assertIn("0 faces match", str(ctx.exception))
        self.assertEqual(ctx.exception.cell_id, 0)
        self._assert_untouched(mesh, 1, 9)


class TestArena(unittest.TestCase):
    """Stable-handle storage used during refinement."""

    def test_compact_without_changes(self):
        mesh = shock_tube_mesh()
        new_mesh, cell_remap, face_remap = MeshArena.from_mesh(mesh).compact()
        assert_array_equal(new_mesh.owner, mesh.owner)
        assert_array_equal(new_mesh.neighbour, mesh.neighbour)
        self.assertEqual(new_mesh.faces, mesh.faces)
        self.assertEqual(cell_remap.inverse(), [0, 1, 2, 3])

    def test_retired_handles(self):
        arena = MeshArena.from_mesh(extruded_grid_mesh(1, 1))
        arena.remove_face(5)
        with self.assertRaises(IndexConsistencyError):
            arena.face(5)
        with self.assertRaises(IndexConsistencyError):
            arena.remove_cell(0)

    def test_face_kind_consistency(self):
        arena = MeshArena.from_mesh(extruded_grid_mesh(1, 1))
        with self.assertRaises(IndexConsistencyError):
            arena.add_face([0, 1, 2], 0, neighbour=-1, patch=None)

    def test_compact_places_faces_where_ledger_reports(self):
        mesh = shock_tube_mesh()
        arena = MeshArena.from_mesh(mesh)
        ledger = FacesData.from_mesh(mesh)
        inlet = mesh.faces[mesh.patch("inlet").start_face]
        handle = arena.add_face(inlet[:3], 0, patch=0)
        at = ledger.insert_faces(0, 1)
        new_mesh, _, face_remap = arena.compact()
        self.assertEqual(face_remap[handle], at)
        ledger.check(FacesData.from_mesh(new_mesh))

    def test_plan_is_pure(self):
        mesh = extruded_grid_mesh(1, 1, triangles=True)
        refiner = PointAdditionRefiner(mesh)
        arena = MeshArena.from_mesh(mesh)
        plan = refiner.plan(arena, 0)
        self.assertEqual(plan.n_sides, 3)
        self.assertEqual(arena.n_faces, mesh.n_faces)
        self.assertEqual(len(arena.points), mesh.n_points)
        self.assertGreater(plan.positive_centroid[2], plan.negative_centroid[2])


if __name__ == '__main__':
    unittest.main()
