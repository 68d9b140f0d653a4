"""
Picking Index
=============
Lifecycle hooks of the per-geometry ray-intersection index.

The engine only calls `build` on geometries right after it creates (or
receives) them and `dispose` when it throws them away. The default
implementation stores a vtkOBBTree in `Geometry.bounds_tree`.
"""
from __future__ import annotations

from typing import Protocol, TYPE_CHECKING
import logging

import numpy as np
from vtkmodules.vtkCommonCore import vtkIdList, vtkPoints
from vtkmodules.vtkFiltersGeneral import vtkOBBTree

from explodeview.model.geometry import Geometry
from explodeview.model.polydata import geometry_to_polydata
from explodeview.model.scene import Mesh
from explodeview.model.transforms import transform_points

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


class PickingIndex(Protocol):
    def build(self, geometry: Geometry) -> None: ...

    def dispose(self, geometry: Geometry) -> None: ...


class ObbTreePickingIndex:
    """Oriented bounding-box tree per geometry, built with VTK."""

    def __init__(self, max_level: int = 12) -> None:
        self.max_level = max_level
        self._built: int = 0

    @property
    def built_count(self) -> int:
        """Number of trees currently alive."""
        return self._built

    def build(self, geometry: Geometry) -> None:
        if geometry.bounds_tree is not None or geometry.disposed:
            return
        polydata = geometry_to_polydata(geometry)
        if polydata.n_cells == 0:
            logger.debug(f"Geometry #{geometry.id} has no triangles; no picking index built.")
            return

        tree = vtkOBBTree()
        tree.SetDataSet(polydata)
        tree.SetMaxLevel(self.max_level)
        tree.BuildLocator()

        # The tree keeps a raw pointer to the dataset; hold a reference too
        geometry.bounds_tree = (tree, polydata)
        self._built += 1

    def dispose(self, geometry: Geometry) -> None:
        if geometry.bounds_tree is None:
            return
        tree, _ = geometry.bounds_tree
        tree.FreeSearchStructure()
        geometry.bounds_tree = None
        self._built -= 1

    @staticmethod
    def intersect_ray(
        geometry: Geometry,
        origin: npt.ArrayLike,
        direction: npt.ArrayLike,
        length: float | None = None
    ) -> npt.NDArray[np.float64]:
        """
        Hit points of a ray with the geometry, in geometry-local space,
        ordered by distance from `origin`. Empty (0, 3) if there is no index.
        """
        if geometry.bounds_tree is None:
            return np.zeros((0, 3))
        tree, _ = geometry.bounds_tree

        p0 = np.asarray(origin, dtype=np.float64)
        d = np.asarray(direction, dtype=np.float64)
        norm = np.linalg.norm(d)
        if norm == 0.0:
            return np.zeros((0, 3))
        d = d / norm

        if length is None:
            box = geometry.get_bounding_box()
            length = float(np.linalg.norm(p0 - box.center)) + box.diagonal_length + 1.0
        p1 = p0 + d * length

        points = vtkPoints()
        cell_ids = vtkIdList()
        tree.IntersectWithLine(p0.tolist(), p1.tolist(), points, cell_ids)

        hits = np.array([points.GetPoint(i) for i in range(points.GetNumberOfPoints())],
                        dtype=np.float64).reshape(-1, 3)
        order = np.argsort(np.linalg.norm(hits - p0, axis=1))
        return hits[order]

    def pick(
        self,
        mesh: Mesh,
        origin: npt.ArrayLike,
        direction: npt.ArrayLike
    ) -> npt.NDArray[np.float64] | None:
        """Nearest world-space hit of a world-space ray with `mesh`, or None."""
        world = mesh.world_matrix()
        inverse = np.linalg.inv(world)
        local_origin = transform_points(inverse, origin)[0]
        local_direction = inverse[:3, :3] @ np.asarray(direction, dtype=np.float64)

        hits = self.intersect_ray(mesh.geometry, local_origin, local_direction)
        if hits.shape[0] == 0:
            return None
        return transform_points(world, hits[0])[0]
