#!/usr/bin/env python
"""
Smoke tests for the fvmesh command.
"""

import io
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from fvmesh.cli.app import main
from fvmesh.io import read_polymesh


class TestCommandLine(unittest.TestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_generate_and_info(self):
        target = str(self.tmpdir / "tube")
        self.assertEqual(main(['generate', 'shock-tube', target]), 0)
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(main(['info', target]), 0)
        self.assertIn("Cells:           4", out.getvalue())
        self.assertIn("sides", out.getvalue())

    def test_refine(self):
        source = str(self.tmpdir / "grid")
        output = str(self.tmpdir / "refined")
        self.assertEqual(main(['generate', 'grid', source, '--nx', '2', '--ny', '2']), 0)
        self.assertEqual(main(['refine', source, '-o', output, '--cells', '0', '3']), 0)
        self.assertEqual(read_polymesh(output).n_cells, 2 + 2 * 4)

    def test_refine_with_config(self):
        source = str(self.tmpdir / "grid")
        output = str(self.tmpdir / "refined")
        config = self.tmpdir / "config.yaml"
        config.write_text("refinement:\n  thickness_axis: 2\nlog_level: WARNING\n")
        self.assertEqual(main(['generate', 'grid', source, '--nx', '1', '--ny', '1', '--triangles']), 0)
        self.assertEqual(main(['-c', str(config), 'refine', source, '-o', output, '--all']), 0)
        self.assertEqual(read_polymesh(output).n_cells, 6)

    def test_refine_failure_exit_code(self):
        source = str(self.tmpdir / "tube")
        main(['generate', 'shock-tube', source])
        self.assertEqual(main(['refine', source, '-o', str(self.tmpdir / "out"), '--cells', '1']), 1)
        self.assertFalse((self.tmpdir / "out").exists())

    def test_missing_mesh(self):
        self.assertEqual(main(['info', str(self.tmpdir / "missing")]), 1)

    def test_bad_config(self):
        self.assertEqual(main(['-c', str(self.tmpdir / "nope.yaml"), 'info', '.']), 1)

    def test_config_not_a_mapping(self):
        config = self.tmpdir / "config.json"
        config.write_text("[1, 2]")
        self.assertEqual(main(['-c', str(config), 'info', '.']), 1)


if __name__ == '__main__':
    unittest.main()
