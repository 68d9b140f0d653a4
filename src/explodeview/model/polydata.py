"""
PyVista Conversion
Helpers turning Geometry buffers into pyvista.PolyData for drawing and picking.
"""
from __future__ import annotations

import logging

import numpy as np
import pyvista as pv

from explodeview.model.geometry import Geometry, NORMAL, POSITION, UV

logger = logging.getLogger(__name__)


def triangles_to_faces(triangles: np.ndarray) -> np.ndarray:
    """(T, 3) vertex ids -> flat VTK cell array [3, a, b, c, 3, ...]."""
    tris = np.asarray(triangles, dtype=np.int64).reshape(-1, 3)
    return np.column_stack([np.full(tris.shape[0], 3, dtype=np.int64), tris]).ravel()


def geometry_to_polydata(geometry: Geometry) -> pv.PolyData:
    """
    Convert geometry buffers (local space) into a triangle PolyData.
    Normals and the first UV set are carried over when present.
    """
    position = geometry.get_attribute(POSITION)
    if position is None or geometry.triangle_count == 0:
        return pv.PolyData()

    points = np.ascontiguousarray(position.array[:, :3], dtype=np.float64)
    pd = pv.PolyData(points, faces=triangles_to_faces(geometry.triangle_indices()))

    normal = geometry.get_attribute(NORMAL)
    if normal is not None:
        pd.point_data.active_normals = np.ascontiguousarray(normal.array[:, :3], dtype=np.float64)

    uv = geometry.get_attribute(UV)
    if uv is not None:
        pd.active_texture_coordinates = np.ascontiguousarray(uv.array[:, :2], dtype=np.float64)

    return pd
