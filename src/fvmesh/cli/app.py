"""Command-line interface for fvmesh.

This module provides the `fvmesh` console script: mesh summaries, generation
of the reference meshes and point-addition refinement of polyMesh
directories.
"""

import argparse
import logging
import sys
import traceback
from typing import List, Optional

from fvmesh.cases import extruded_grid_mesh, shock_tube_mesh
from fvmesh.core.config import EngineConfig
from fvmesh.io.openfoam import read_polymesh, write_polymesh
from fvmesh.mesh.errors import MeshError
from fvmesh.mesh.adaptation import PointAdditionRefiner


def setup_logging(debug_mode: bool = False, level: str = "INFO") -> None:
    """Configure logging based on debug mode.

    Args:
        debug_mode: If True, set logging level to DEBUG, otherwise `level`
        level: Level name used when not in debug mode
    """
    log_level = logging.DEBUG if debug_mode else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Assemble, inspect and refine face-based finite volume meshes'
    )
    parser.add_argument('--debug', action='store_true', help='Enable debug output')
    parser.add_argument('-c', '--config', default=None, help='YAML or JSON configuration file')
    subparsers = parser.add_subparsers(dest='command', required=True)

    info_parser = subparsers.add_parser('info', help='Print mesh counts, volumes and patches')
    info_parser.add_argument('polymesh', help='polyMesh directory')

    gen_parser = subparsers.add_parser('generate', help='Write a reference mesh')
    gen_parser.add_argument('case', choices=['shock-tube', 'grid'], help='Reference mesh to build')
    gen_parser.add_argument('output', help='Output polyMesh directory')
    gen_parser.add_argument('-n', '--cells', type=int, default=4, help='Shock tube cell count')
    gen_parser.add_argument('--nx', type=int, default=4, help='Grid cells along x')
    gen_parser.add_argument('--ny', type=int, default=4, help='Grid cells along y')
    gen_parser.add_argument('--thickness', type=float, default=0.1, help='Grid extrusion thickness')
    gen_parser.add_argument('--triangles', action='store_true', help='Split grid quads into triangles')

    refine_parser = subparsers.add_parser('refine', help='Refine cells by point addition')
    refine_parser.add_argument('polymesh', help='Input polyMesh directory')
    refine_parser.add_argument('-o', '--output', required=True, help='Output polyMesh directory')
    target_group = refine_parser.add_mutually_exclusive_group(required=True)
    target_group.add_argument('--cells', type=int, nargs='+', help='Cell ids to refine')
    target_group.add_argument('--all', action='store_true', help='Refine every cell')
    refine_parser.add_argument('--export', default=None,
                               help='Also write the empty patches as a surface file (needs meshio)')

    return parser.parse_args(argv)


def load_mesh(polymesh_dir: str, config: EngineConfig):
    mesh = read_polymesh(polymesh_dir, patch_types=config.mesh.patch_types)
    if config.mesh.validate:
        mesh.validate()
    return mesh


def print_mesh_info(mesh) -> None:
    n_cells, n_faces, n_patches, n_boundary = mesh.info()
    quality = mesh.compute_mesh_quality()
    print(f"Cells:           {n_cells}")
    print(f"Faces:           {n_faces} ({mesh.n_internal_faces} internal, {n_boundary} boundary)")
    print(f"Points:          {mesh.n_points}")
    print(f"Total volume:    {quality['total_volume']:.6g}")
    print(f"Cell volume:     min {quality['min_volume']:.6g}, max {quality['max_volume']:.6g}")
    print(f"Patches:         {n_patches}")
    for patch in mesh.patches:
        print(f"  {patch.name:<20} {patch.patch_type.value:<14} "
              f"nFaces {patch.n_faces:<8} startFace {patch.start_face}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main function of the fvmesh command.

    Returns:
        Exit code: 0 for success, non-zero for error
    """
    args = parse_arguments(argv)

    try:
        config = EngineConfig.from_file(args.config) if args.config else EngineConfig()
    except (FileNotFoundError, ValueError, TypeError) as e:
        setup_logging(args.debug)
        logging.getLogger(__name__).error(f"Invalid configuration: {e}")
        return 1

    setup_logging(args.debug, config.log_level)
    logger = logging.getLogger(__name__)

    try:
        if args.command == 'info':
            mesh = load_mesh(args.polymesh, config)
            print_mesh_info(mesh)

        elif args.command == 'generate':
            if args.case == 'shock-tube':
                mesh = shock_tube_mesh(args.cells)
            else:
                mesh = extruded_grid_mesh(args.nx, args.ny, thickness=args.thickness,
                                          triangles=args.triangles)
            write_polymesh(mesh, args.output)

        elif args.command == 'refine':
            mesh = load_mesh(args.polymesh, config)
            targets = range(mesh.n_cells) if args.all else args.cells
            result = PointAdditionRefiner(mesh, config.refinement).refine(targets)
            write_polymesh(result.mesh, args.output)
            logger.info(f"Refined {result.n_refined} cells into {len(result.all_new_cells)}")

            if args.export:
                from fvmesh.io.export import export_patch_surface
                export_patch_surface(result.mesh, args.export)

    except MeshError as e:
        logger.error(f"Mesh error: {e}")
        if args.debug:
            logger.debug(traceback.format_exc())
        return 1
    except ImportError as e:
        logger.error(f"Missing dependency: {e}")
        logger.info("Install required dependencies with: pip install meshio")
        return 1
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Error reading mesh: {e}")
        if args.debug:
            logger.debug(traceback.format_exc())
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
