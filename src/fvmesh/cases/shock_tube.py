"""
1D shock tube as a strip of hexahedra.

Cells are stacked along x; the four lateral sides of the strip form a single
`empty` patch so that a solver treats the problem as one-dimensional.
"""

import numpy as np
from typing import Any, Dict
import logging

from ..mesh.unstructured_mesh import PolyMesh

logger = logging.getLogger(__name__)


def shock_tube_arrays(n_cells: int = 4, length: float = 1.0,
                      height: float = 0.1, width: float = 0.1) -> Dict[str, Any]:
    """
    Raw arrays of the shock tube, in the form accepted by PolyMesh.from_arrays.

    Point 4*i + j is corner j of the cross-section at x_i, corners ordered
    (0, 0), (h, 0), (h, w), (0, w) in (y, z).
    """
    if n_cells < 1:
        raise ValueError("n_cells must be at least 1")

    xs = np.linspace(0.0, length, n_cells + 1)
    points = []
    for x in xs:
        points.extend([[x, 0.0, 0.0], [x, height, 0.0], [x, height, width], [x, 0.0, width]])

    def section(i):
        return [4 * i + j for j in range(4)]

    faces = []
    owner = []
    neighbour = []

    # Internal faces, normal +x
    for i in range(n_cells - 1):
        faces.append(section(i + 1))
        owner.append(i)
        neighbour.append(i + 1)

    a = section(0)
    faces.append([a[0], a[3], a[2], a[1]])
    owner.append(0)

    b = section(n_cells)
    faces.append(b)
    owner.append(n_cells - 1)

    for i in range(n_cells):
        a, b = section(i), section(i + 1)
        faces.extend([
            [a[0], b[0], b[3], a[3]],  # y = 0
            [a[1], a[2], b[2], b[1]],  # y = h
            [a[0], a[1], b[1], b[0]],  # z = 0
            [a[3], b[3], b[2], a[2]],  # z = w
        ])
        owner.extend([i] * 4)

    n_internal = n_cells - 1
    patches = [
        ("inlet", 1, n_internal, "patch"),
        ("outlet", 1, n_internal + 1, "patch"),
        ("sides", 4 * n_cells, n_internal + 2, "empty"),
    ]
    return {
        'points': np.array(points),
        'faces': faces,
        'owner': np.array(owner),
        'neighbour': np.array(neighbour, dtype=np.int64),
        'patches': patches,
    }


def shock_tube_mesh(n_cells: int = 4, length: float = 1.0,
                    height: float = 0.1, width: float = 0.1) -> PolyMesh:
    """Assembled shock tube mesh."""
    arrays = shock_tube_arrays(n_cells, length, height, width)
    logger.debug(f"Building shock tube with {n_cells} cells")
    return PolyMesh.from_arrays(arrays['points'], arrays['faces'], arrays['owner'],
                                arrays['neighbour'], arrays['patches'])
