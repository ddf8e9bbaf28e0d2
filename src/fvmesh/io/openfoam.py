"""
OpenFOAM polyMesh Reader and Writer

Implements reading and writing of the ASCII polyMesh format:
- points (vectorField), faces (faceList)
- owner and neighbour (labelList)
- boundary (polyBoundaryMesh) with patch name, type, nFaces and startFace
- Transparent reading of gzip-compressed files

The reader produces the raw arrays consumed by PolyMesh.from_arrays; all
index validation happens in the assembler.
"""

import numpy as np
from typing import Any, Dict, List, Optional, Tuple, Union
import gzip
import re
import logging
from pathlib import Path

from ..mesh.unstructured_mesh import PolyMesh

logger = logging.getLogger(__name__)

FOAM_VERSION = "2.0"


class FoamFileParser:
    """
    Parser for the OpenFOAM file container.

    Strips the FoamFile header and comments and exposes the data section.
    """

    def __init__(self):
        self.foam_file_header_pattern = re.compile(r'FoamFile\s*\{([^}]*)\}', re.DOTALL)
        self.comment_pattern = re.compile(r'//.*$', re.MULTILINE)
        self.block_comment_pattern = re.compile(r'/\*.*?\*/', re.DOTALL)
        self.entry_pattern = re.compile(r'(\w+)\s+([^;]+);')

    def parse_foam_file(self, filepath: Union[str, Path]) -> Dict[str, Any]:
        """Return {'header': dict, 'data_content': str} for a FoamFile."""
        filepath = Path(filepath)
        content = self._remove_comments(self._read_file_content(filepath))

        header_match = self.foam_file_header_pattern.search(content)
        if not header_match:
            raise ValueError(f"No FoamFile header found in {filepath}")

        header = {key: value.strip().strip('"') for key, value
                  in self.entry_pattern.findall(header_match.group(1))}
        if header.get('format', 'ascii') != 'ascii':
            raise ValueError(f"Only ascii polyMesh files are supported: {filepath}")

        return {
            'header': header,
            'data_content': content[header_match.end():].strip(),
        }

    def _read_file_content(self, filepath: Path) -> str:
        """Read file content, handling compression."""
        if filepath.suffix == '.gz':
            with gzip.open(filepath, 'rt', encoding='utf-8') as f:
                return f.read()
        with open(filepath, 'r', encoding='utf-8') as f:
            return f.read()

    def _remove_comments(self, content: str) -> str:
        content = self.block_comment_pattern.sub('', content)
        return self.comment_pattern.sub('', content)

    @staticmethod
    def list_body(content: str) -> Tuple[int, str]:
        """Split 'N ( ... )' into the declared size and the text between the outer parentheses."""
        match = re.match(r'\s*(\d+)\s*\(', content)
        if not match:
            raise ValueError("Expected a list of the form 'N ( ... )'")
        end = content.rfind(')')
        if end < match.end():
            raise ValueError("Unterminated list")
        return int(match.group(1)), content[match.end():end]


class PolyMeshReader:
    """Reads a constant/polyMesh directory into raw mesh arrays."""

    _point_pattern = re.compile(r'\(\s*([^\s()]+)\s+([^\s()]+)\s+([^\s()]+)\s*\)')
    _face_pattern = re.compile(r'(\d+)\s*\(([^()]*)\)')
    _patch_pattern = re.compile(r'([^\s{}]+)\s*\{([^}]*)\}', re.DOTALL)

    def __init__(self):
        self.parser = FoamFileParser()

    def read_arrays(self, polymesh_dir: Union[str, Path]) -> Dict[str, Any]:
        """
        Read every polyMesh file.

        Returns:
            Dict with points, faces, owner, neighbour (internal faces only)
            and patches as (name, nFaces, startFace, type) tuples
        """
        polymesh_dir = Path(polymesh_dir)
        if not polymesh_dir.is_dir():
            raise FileNotFoundError(f"polyMesh directory not found: {polymesh_dir}")

        logger.info(f"Reading OpenFOAM polyMesh from {polymesh_dir}")

        neighbour_file = self._locate(polymesh_dir / "neighbour", required=False)
        arrays = {
            'points': self._read_points(self._locate(polymesh_dir / "points")),
            'faces': self._read_faces(self._locate(polymesh_dir / "faces")),
            'owner': self._read_labels(self._locate(polymesh_dir / "owner")),
            'neighbour': (self._read_labels(neighbour_file) if neighbour_file is not None
                          else np.array([], dtype=np.int64)),
            'patches': self._read_boundary(self._locate(polymesh_dir / "boundary")),
        }
        logger.debug(f"Read {len(arrays['points'])} points, {len(arrays['faces'])} faces, "
                     f"{len(arrays['patches'])} patches")
        return arrays

    def read(self, polymesh_dir: Union[str, Path],
             patch_types: Optional[Dict[str, str]] = None) -> PolyMesh:
        arrays = self.read_arrays(polymesh_dir)
        return PolyMesh.from_arrays(arrays['points'], arrays['faces'], arrays['owner'],
                                    arrays['neighbour'], arrays['patches'],
                                    index_base=0, patch_types=patch_types)

    def _locate(self, path: Path, required: bool = True) -> Optional[Path]:
        """Plain file, or its .gz sibling."""
        if path.exists():
            return path
        compressed = path.with_name(path.name + '.gz')
        if compressed.exists():
            return compressed
        if required:
            raise FileNotFoundError(f"polyMesh file not found: {path}")
        logger.warning(f"Optional polyMesh file not found: {path}")
        return None

    def _read_points(self, path: Path) -> np.ndarray:
        n_points, body = self.parser.list_body(self.parser.parse_foam_file(path)['data_content'])
        points = np.array([[float(x) for x in match] for match in self._point_pattern.findall(body)],
                          dtype=float).reshape(-1, 3)
        if len(points) != n_points:
            raise ValueError(f"{path}: expected {n_points} points, got {len(points)}")
        return points

    def _read_faces(self, path: Path) -> List[List[int]]:
        n_faces, body = self.parser.list_body(self.parser.parse_foam_file(path)['data_content'])
        faces = []
        for count, indices in self._face_pattern.findall(body):
            face = [int(x) for x in indices.split()]
            if len(face) != int(count):
                raise ValueError(f"{path}: face {len(faces)} declares {count} points, lists {len(face)}")
            faces.append(face)
        if len(faces) != n_faces:
            raise ValueError(f"{path}: expected {n_faces} faces, got {len(faces)}")
        return faces

    def _read_labels(self, path: Path) -> np.ndarray:
        n_labels, body = self.parser.list_body(self.parser.parse_foam_file(path)['data_content'])
        labels = np.array([int(x) for x in body.split()], dtype=np.int64)
        if len(labels) != n_labels:
            raise ValueError(f"{path}: expected {n_labels} labels, got {len(labels)}")
        return labels

    def _read_boundary(self, path: Path) -> List[Tuple[str, int, int, str]]:
        n_patches, body = self.parser.list_body(self.parser.parse_foam_file(path)['data_content'])
        patches = []
        for name, entries in self._patch_pattern.findall(body):
            values = dict(self.parser.entry_pattern.findall(entries))
            try:
                patches.append((name, int(values['nFaces']), int(values['startFace']),
                                values.get('type', 'patch').strip()))
            except KeyError as e:
                raise ValueError(f"{path}: patch '{name}' has no {e.args[0]} entry") from e
        if len(patches) != n_patches:
            raise ValueError(f"{path}: expected {n_patches} patches, got {len(patches)}")
        return patches


class PolyMeshWriter:
    """Writes a PolyMesh as an ASCII polyMesh directory."""

    def write(self, mesh: PolyMesh, polymesh_dir: Union[str, Path]) -> Path:
        polymesh_dir = Path(polymesh_dir)
        polymesh_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Writing OpenFOAM polyMesh to {polymesh_dir}")

        note = (f"nPoints:{mesh.n_points}  nCells:{mesh.n_cells}  "
                f"nFaces:{mesh.n_faces}  nInternalFaces:{mesh.n_internal_faces}")

        self._write_points(mesh.points, polymesh_dir / "points")
        self._write_faces(mesh.faces, polymesh_dir / "faces")
        self._write_labels(mesh.owner, polymesh_dir / "owner", note)
        self._write_labels(mesh.neighbour[:mesh.n_internal_faces], polymesh_dir / "neighbour", note)
        self._write_boundary(mesh, polymesh_dir / "boundary")

        logger.info(f"Written polyMesh: {mesh.n_points} points, {mesh.n_cells} cells, "
                    f"{mesh.n_faces} faces")
        return polymesh_dir

    def _write_header(self, f, foam_class: str, foam_object: str, note: Optional[str] = None):
        f.write("FoamFile\n{\n")
        f.write(f"    version     {FOAM_VERSION};\n")
        f.write("    format      ascii;\n")
        f.write(f"    class       {foam_class};\n")
        if note:
            f.write(f"    note        \"{note}\";\n")
        f.write("    location    \"constant/polyMesh\";\n")
        f.write(f"    object      {foam_object};\n")
        f.write("}\n\n")

    def _write_points(self, points: np.ndarray, file_path: Path):
        with open(file_path, 'w') as f:
            self._write_header(f, "vectorField", "points")
            f.write(f"{len(points)}\n(\n")
            for point in points:
                f.write(f"({float(point[0])!r} {float(point[1])!r} {float(point[2])!r})\n")
            f.write(")\n")

    def _write_faces(self, faces: List[List[int]], file_path: Path):
        with open(file_path, 'w') as f:
            self._write_header(f, "faceList", "faces")
            f.write(f"{len(faces)}\n(\n")
            for face in faces:
                f.write(f"{len(face)}({' '.join(map(str, face))})\n")
            f.write(")\n")

    def _write_labels(self, labels: np.ndarray, file_path: Path, note: str):
        with open(file_path, 'w') as f:
            self._write_header(f, "labelList", file_path.name, note)
            f.write(f"{len(labels)}\n(\n")
            for label in labels:
                f.write(f"{int(label)}\n")
            f.write(")\n")

    def _write_boundary(self, mesh: PolyMesh, file_path: Path):
        with open(file_path, 'w') as f:
            self._write_header(f, "polyBoundaryMesh", "boundary")
            f.write(f"{len(mesh.patches)}\n(\n")
            for patch in mesh.patches:
                f.write(f"    {patch.name}\n")
                f.write("    {\n")
                f.write(f"        type            {patch.patch_type.value};\n")
                f.write(f"        nFaces          {patch.n_faces};\n")
                f.write(f"        startFace       {patch.start_face};\n")
                f.write("    }\n")
            f.write(")\n")


def read_polymesh(polymesh_dir: Union[str, Path],
                  patch_types: Optional[Dict[str, str]] = None) -> PolyMesh:
    """Read and assemble a polyMesh directory."""
    return PolyMeshReader().read(polymesh_dir, patch_types=patch_types)


def write_polymesh(mesh: PolyMesh, polymesh_dir: Union[str, Path]) -> Path:
    """Write a mesh as a polyMesh directory."""
    return PolyMeshWriter().write(mesh, polymesh_dir)
