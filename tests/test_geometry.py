#!/usr/bin/env python
"""
Tests for the geometric metric engine.
"""

import unittest

import numpy as np
from numpy.testing import assert_allclose

from fvmesh.mesh.errors import DegenerateGeometryError
from fvmesh.mesh.geometry import (
    cell_volume_centroid,
    cell_to_face_vectors,
    face_area_centroid,
    quality_summary,
)


def unit_cube_faces():
    """Corner coordinates of the six outward-oriented faces of the unit cube."""
    p = np.array([
        [0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0],
        [0, 0, 1], [1, 0, 1], [1, 1, 1], [0, 1, 1],
    ], dtype=float)
    faces = [
        [0, 3, 2, 1],  # z = 0
        [4, 5, 6, 7],  # z = 1
        [0, 1, 5, 4],  # y = 0
        [3, 7, 6, 2],  # y = 1
        [0, 4, 7, 3],  # x = 0
        [1, 2, 6, 5],  # x = 1
    ]
    return p, faces


class TestFaceAreaCentroid(unittest.TestCase):
    """Face area vectors and centroids."""

    def test_rectangle(self):
        points = [[0, 0, 0], [2, 0, 0], [2, 1, 0], [0, 1, 0]]
        area, centroid = face_area_centroid(points)
        assert_allclose(area, [0, 0, 2])
        assert_allclose(centroid, np.mean(points, axis=0))

    def test_triangle(self):
        points = [[0, 0, 0], [1, 0, 0], [0, 1, 0]]
        area, centroid = face_area_centroid(points)
        self.assertAlmostEqual(np.linalg.norm(area), 0.5)
        assert_allclose(centroid, [1 / 3, 1 / 3, 0])

    def test_winding_flips_area_vector(self):
        points = np.array([[0, 0, 1], [0, 3, 1], [0, 3, 2], [0, 0, 2]], dtype=float)
        forward, c1 = face_area_centroid(points)
        backward, c2 = face_area_centroid(points[::-1])
        assert_allclose(forward, -backward)
        assert_allclose(c1, c2)
        self.assertAlmostEqual(np.linalg.norm(forward), 3.0)

    def test_translation_invariant_area(self):
        points = np.array([[0, 0, 0], [1, 0, 0], [1.5, 1, 0], [0.2, 0.8, 0]])
        area0, centroid0 = face_area_centroid(points)
        area1, centroid1 = face_area_centroid(points + [10.0, -4.0, 7.0])
        assert_allclose(area0, area1, atol=1e-12)
        assert_allclose(centroid1 - centroid0, [10.0, -4.0, 7.0], atol=1e-12)

    def test_collinear_points_are_degenerate(self):
        with self.assertRaises(DegenerateGeometryError):
            face_area_centroid([[0, 0, 0], [1, 0, 0], [2, 0, 0]])

    def test_too_few_points(self):
        with self.assertRaises(DegenerateGeometryError):
            face_area_centroid([[0, 0, 0], [1, 0, 0]])


class TestCellVolumeCentroid(unittest.TestCase):
    """Cell volumes and centroids."""

    def _cube_metrics(self, points, faces):
        areas = []
        centroids = []
        for face in faces:
            area, centroid = face_area_centroid(points[face])
            areas.append(area)
            centroids.append(centroid)
        return np.array(areas), np.array(centroids)

    def test_unit_cube(self):
        points, faces = unit_cube_faces()
        areas, centroids = self._cube_metrics(points, faces)
        volume, centroid = cell_volume_centroid(points, areas, centroids)
        self.assertAlmostEqual(volume, 1.0)
        assert_allclose(centroid, [0.5, 0.5, 0.5])

    def test_volume_independent_of_face_orientation(self):
        points, faces = unit_cube_faces()
        faces = [list(reversed(f)) if i % 2 else f for i, f in enumerate(faces)]
        areas, centroids = self._cube_metrics(points, faces)
        volume, _ = cell_volume_centroid(points, areas, centroids)
        self.assertAlmostEqual(volume, 1.0)

    def test_scaled_box(self):
        points, faces = unit_cube_faces()
        points = points * [0.25, 0.1, 0.1]
        areas, centroids = self._cube_metrics(points, faces)
        volume, centroid = cell_volume_centroid(points, areas, centroids)
        self.assertAlmostEqual(volume, 0.0025)
        assert_allclose(centroid, [0.125, 0.05, 0.05])

    def test_flat_cell_is_degenerate(self):
        points, faces = unit_cube_faces()
        points = points * [1.0, 1.0, 0.0]
        # Top and bottom faces collapse onto each other but keep their area
        areas = []
        centroids = []
        for face in faces[:2]:
            area, centroid = face_area_centroid(points[face])
            areas.append(area)
            centroids.append(centroid)
        with self.assertRaises(DegenerateGeometryError):
            cell_volume_centroid(points, areas, centroids)

    def test_no_faces(self):
        with self.assertRaises(DegenerateGeometryError):
            cell_volume_centroid(np.zeros((0, 3)), np.zeros((0, 3)), np.zeros((0, 3)))


class TestHelpers(unittest.TestCase):

    def test_cell_to_face_vectors(self):
        vectors = cell_to_face_vectors([[1, 0, 0], [0, 2, 0]], [0.5, 0.5, 0.0])
        assert_allclose(vectors, [[0.5, -0.5, 0.0], [-0.5, 1.5, 0.0]])

    def test_quality_summary(self):
        summary = quality_summary(np.array([1.0, 2.0, 4.0]), np.array([[0, 0, 1.0], [3.0, 4.0, 0]]))
        self.assertEqual(summary['n_cells'], 3)
        self.assertAlmostEqual(summary['total_volume'], 7.0)
        self.assertAlmostEqual(summary['volume_ratio'], 4.0)
        self.assertAlmostEqual(summary['max_face_area'], 5.0)


if __name__ == '__main__':
    unittest.main()
