"""
Extruded 2D Meshes

Builds one-cell-thick 3D meshes from a planar polygon mesh in the xy plane:
- Every polygon becomes a prism spanning z in [0, thickness]
- Edges shared by two polygons become internal faces
- Edges on the outline go to the wall patch
- Bottom and top faces of every prism go to a single `empty` patch

These are the meshes point-addition refinement operates on.
"""

import numpy as np
from typing import Dict, List, Sequence, Tuple
import logging

from ..mesh.unstructured_mesh import PolyMesh

logger = logging.getLogger(__name__)


def polygon_signed_area(points2d: np.ndarray, polygon: Sequence[int]) -> float:
    """Shoelace area, positive for counter-clockwise polygons."""
    xy = points2d[list(polygon)]
    x, y = xy[:, 0], xy[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y))


def extrude_polygons(points2d: Sequence[Sequence[float]],
                     polygons: Sequence[Sequence[int]],
                     thickness: float = 1.0,
                     wall_patch: str = "walls",
                     empty_patch: str = "frontAndBack") -> PolyMesh:
    """
    Extrude a planar polygon mesh by one layer of cells.

    Args:
        points2d: (x, y) coordinates
        polygons: Counter-clockwise point ids of every 2D cell
        thickness: Extrusion distance along +z
        wall_patch: Name of the patch holding the outline faces
        empty_patch: Name of the patch holding bottom and top faces

    Returns:
        Assembled mesh; cell i is the prism of polygons[i]
    """
    points2d = np.asarray(points2d, dtype=float)
    if thickness <= 0.0:
        raise ValueError("thickness must be positive")

    n2 = len(points2d)
    points = np.vstack([
        np.column_stack([points2d, np.zeros(n2)]),
        np.column_stack([points2d, np.full(n2, thickness)]),
    ])

    # Edge -> [(cell, u, v)] with u -> v the traversal direction in that cell
    edges: Dict[Tuple[int, int], List[Tuple[int, int, int]]] = {}
    for cell, polygon in enumerate(polygons):
        if len(polygon) < 3:
            raise ValueError(f"Polygon {cell} has fewer than 3 points")
        if polygon_signed_area(points2d, polygon) <= 0.0:
            raise ValueError(f"Polygon {cell} is not counter-clockwise")
        for k in range(len(polygon)):
            u, v = polygon[k], polygon[(k + 1) % len(polygon)]
            edges.setdefault((min(u, v), max(u, v)), []).append((cell, u, v))

    internal = []
    walls = []
    for key, uses in edges.items():
        if len(uses) > 2:
            raise ValueError(f"Edge {key} is shared by {len(uses)} polygons")
        if len(uses) == 2:
            (c0, u, v), (c1, _, _) = sorted(uses)
            internal.append(([u, v, v + n2, u + n2], c0, c1))
        else:
            cell, u, v = uses[0]
            walls.append(([u, v, v + n2, u + n2], cell))

    faces = []
    owner = []
    neighbour = []
    for face, c0, c1 in internal:
        faces.append(face)
        owner.append(c0)
        neighbour.append(c1)
    for face, cell in walls:
        faces.append(face)
        owner.append(cell)
    for cell, polygon in enumerate(polygons):
        faces.append(list(reversed(polygon)))
        owner.append(cell)
        faces.append([p + n2 for p in polygon])
        owner.append(cell)

    n_internal = len(internal)
    patches = [
        (wall_patch, len(walls), n_internal, "wall"),
        (empty_patch, 2 * len(polygons), n_internal + len(walls), "empty"),
    ]
    logger.debug(f"Extruded {len(polygons)} polygons: {n_internal} internal, {len(walls)} wall faces")
    return PolyMesh.from_arrays(points, faces, owner, np.array(neighbour, dtype=np.int64), patches)


def grid_polygons(nx: int, ny: int, lx: float = 1.0, ly: float = 1.0,
                  triangles: bool = False) -> Tuple[np.ndarray, List[List[int]]]:
    """Structured nx x ny grid of quads (or two triangles per quad)."""
    if nx < 1 or ny < 1:
        raise ValueError("nx and ny must be at least 1")

    xs = np.linspace(0.0, lx, nx + 1)
    ys = np.linspace(0.0, ly, ny + 1)
    points2d = np.array([[x, y] for y in ys for x in xs])

    def pid(i, j):
        return j * (nx + 1) + i

    polygons = []
    for j in range(ny):
        for i in range(nx):
            a, b, c, d = pid(i, j), pid(i + 1, j), pid(i + 1, j + 1), pid(i, j + 1)
            if triangles:
                polygons.append([a, b, c])
                polygons.append([a, c, d])
            else:
                polygons.append([a, b, c, d])
    return points2d, polygons


def extruded_grid_mesh(nx: int, ny: int, lx: float = 1.0, ly: float = 1.0,
                       thickness: float = 0.1, triangles: bool = False) -> PolyMesh:
    """Extruded structured grid of hexahedra, or of triangular prisms."""
    points2d, polygons = grid_polygons(nx, ny, lx, ly, triangles)
    return extrude_polygons(points2d, polygons, thickness)
