"""
Geometric Metric Calculations for Polyhedral Finite Volume Meshes

Pure functions computing the quantities a face-based finite volume solver needs:
- Face area vectors and centroids (triangle fan from the geometric center)
- Cell volumes and centroids (pyramid decomposition, one pyramid per face)
- Cell-centroid to face-centroid vectors
- Volume/area summary statistics

Nothing here depends on mesh topology structures, so every call is independent
and may be evaluated face-by-face or cell-by-cell in any order.
"""

import numpy as np
from typing import Dict, Sequence, Tuple
import logging

from .errors import DegenerateGeometryError

logger = logging.getLogger(__name__)

# Relative tolerance: areas below TOL * L**2 and volumes below TOL * L**3 are
# treated as zero, L being the largest extent of the points involved.
DEGENERATE_TOLERANCE = 1e-12


def geometric_center(points: np.ndarray) -> np.ndarray:
    """Simple average of a set of points."""
    return np.mean(np.asarray(points, dtype=float), axis=0)


def triangle_area_vector(p0: np.ndarray, p1: np.ndarray, p2: np.ndarray) -> np.ndarray:
    """Half the cross product of the two edge vectors leaving p0."""
    return 0.5 * np.cross(np.asarray(p1) - p0, np.asarray(p2) - p0)


def _extent(points: np.ndarray) -> float:
    return float(np.max(np.ptp(points, axis=0)))


def face_area_centroid(points: Sequence) -> Tuple[np.ndarray, np.ndarray]:
    """
    Area vector and centroid of a (possibly non-planar) polygonal face.

    The polygon is split into triangles fanned from its geometric center. The
    sub-triangle area vectors are summed, and the centroid is the average of
    the sub-triangle centroids weighted by their area magnitudes.

    Args:
        points: Ordered face vertices [n, 3], n >= 3, in one consistent winding

    Returns:
        Tuple of (area_vector, centroid)

    Raises:
        DegenerateGeometryError: If fewer than 3 points or zero total area
    """
    points = np.asarray(points, dtype=float)
    if points.ndim != 2 or len(points) < 3:
        raise DegenerateGeometryError(f"Face needs at least 3 points, got {len(points)}")

    center = geometric_center(points)
    next_points = np.roll(points, -1, axis=0)

    sub_area_vectors = 0.5 * np.cross(points - center, next_points - center)
    sub_centroids = (center + points + next_points) / 3.0
    weights = np.linalg.norm(sub_area_vectors, axis=1)

    area_vector = sub_area_vectors.sum(axis=0)
    area = np.linalg.norm(area_vector)
    scale = _extent(points)

    if scale == 0.0 or area <= DEGENERATE_TOLERANCE * scale**2:
        raise DegenerateGeometryError(f"Face has zero area (|S| = {area:.3e})")

    centroid = (sub_centroids * weights[:, None]).sum(axis=0) / weights.sum()

    return area_vector, centroid


def cell_volume_centroid(points: Sequence,
                         face_area_vectors: Sequence,
                         face_centroids: Sequence) -> Tuple[float, np.ndarray]:
    """
    Volume and centroid of a polyhedral cell.

    The cell is split into one pyramid per face, apex at the geometric center
    of all cell points. Pyramid volume is |S_f . (c_f - apex)| / 3, which makes
    the result independent of face orientation. Pyramid centroids are taken as
    0.75 * c_f + 0.25 * apex; this weighting is an approximation that
    downstream numerics are tuned against and is kept as is.

    Args:
        points: All distinct cell vertices [n, 3]
        face_area_vectors: Area vectors of the cell's faces [m, 3]
        face_centroids: Centroids of the cell's faces [m, 3]

    Returns:
        Tuple of (volume, centroid)

    Raises:
        DegenerateGeometryError: If the accumulated volume is zero
    """
    points = np.asarray(points, dtype=float)
    face_area_vectors = np.asarray(face_area_vectors, dtype=float)
    face_centroids = np.asarray(face_centroids, dtype=float)

    if len(face_area_vectors) != len(face_centroids):
        raise ValueError("face_area_vectors and face_centroids must have equal length")
    if len(face_area_vectors) == 0 or len(points) == 0:
        raise DegenerateGeometryError("Cell has no faces")

    apex = geometric_center(points)

    center_vectors = face_centroids - apex
    sub_volumes = np.abs(np.sum(face_area_vectors * center_vectors, axis=1)) / 3.0
    sub_centroids = 0.75 * face_centroids + 0.25 * apex

    volume = float(sub_volumes.sum())
    scale = _extent(points)

    if scale == 0.0 or volume <= DEGENERATE_TOLERANCE * scale**3:
        raise DegenerateGeometryError(f"Cell has zero volume (V = {volume:.3e})")

    centroid = (sub_centroids * sub_volumes[:, None]).sum(axis=0) / volume

    return volume, centroid


def cell_to_face_vectors(face_centroids: Sequence, cell_centroid: Sequence) -> np.ndarray:
    """Vectors from a cell centroid to each of its face centroids [m, 3]."""
    return np.asarray(face_centroids, dtype=float) - np.asarray(cell_centroid, dtype=float)


def bounding_box_size(points: Sequence) -> np.ndarray:
    """Axis-aligned extents (dx, dy, dz) of a point set."""
    return np.ptp(np.asarray(points, dtype=float), axis=0)


def quality_summary(cell_volumes: np.ndarray, face_area_vectors: np.ndarray) -> Dict[str, float]:
    """Volume and area summary statistics."""
    areas = np.linalg.norm(face_area_vectors, axis=1) if len(face_area_vectors) else np.zeros(0)

    if len(cell_volumes) == 0:
        return {'n_cells': 0, 'n_faces': int(len(areas))}

    return {
        'min_volume': float(np.min(cell_volumes)),
        'max_volume': float(np.max(cell_volumes)),
        'mean_volume': float(np.mean(cell_volumes)),
        'total_volume': float(np.sum(cell_volumes)),
        'volume_ratio': float(np.max(cell_volumes) / np.min(cell_volumes)),
        'min_face_area': float(np.min(areas)) if len(areas) else 0.0,
        'max_face_area': float(np.max(areas)) if len(areas) else 0.0,
        'n_cells': int(len(cell_volumes)),
        'n_faces': int(len(areas)),
    }
