#!/usr/bin/env python
"""
Tests for boundary surface export through meshio.
"""

import tempfile
import unittest
from pathlib import Path

try:
    import meshio
    MESHIO_AVAILABLE = True
except ImportError:
    MESHIO_AVAILABLE = False

from fvmesh.cases import extruded_grid_mesh, shock_tube_mesh
from fvmesh.io.export import export_patch_surface, patch_surface
from fvmesh.mesh import refine_cells


@unittest.skipIf(not MESHIO_AVAILABLE, "meshio not available")
class TestPatchSurface(unittest.TestCase):

    def test_defaults_to_empty_patches(self):
        surface = patch_surface(extruded_grid_mesh(2, 1))
        self.assertEqual([block.type for block in surface.cells], ["quad"])
        self.assertEqual(len(surface.cells[0].data), 4)
        self.assertEqual(len(surface.points), 12)

    def test_refined_cross_section(self):
        result = refine_cells(extruded_grid_mesh(1, 1), [0])
        surface = patch_surface(result.mesh)
        self.assertEqual([block.type for block in surface.cells], ["triangle"])
        self.assertEqual(len(surface.cells[0].data), 8)
        self.assertEqual(sorted(surface.cell_data["owner"][0]), [0, 0, 1, 1, 2, 2, 3, 3])

    def test_selected_patches(self):
        surface = patch_surface(shock_tube_mesh(), patches=["inlet", "outlet"])
        self.assertEqual(len(surface.cells[0].data), 2)
        self.assertEqual(list(surface.cell_data["patch"][0]), [0, 1])

    def test_unknown_patch(self):
        with self.assertRaises(KeyError):
            patch_surface(shock_tube_mesh(), patches=["nozzle"])

    def test_write_vtu(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = export_patch_surface(extruded_grid_mesh(2, 2, triangles=True), Path(tmpdir) / "section.vtu")
            self.assertTrue(path.exists())
            self.assertEqual(len(meshio.read(path).cells[0].data), 16)


if __name__ == '__main__':
    unittest.main()
