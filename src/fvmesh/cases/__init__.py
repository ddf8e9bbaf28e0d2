"""Reference meshes."""

from .shock_tube import shock_tube_arrays, shock_tube_mesh
from .extruded import extrude_polygons, extruded_grid_mesh, grid_polygons

__all__ = ['shock_tube_arrays', 'shock_tube_mesh', 'extrude_polygons',
           'extruded_grid_mesh', 'grid_polygons']
