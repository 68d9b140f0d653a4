"""
3D Viewport (PyVista Wrapper)
"""
from __future__ import annotations

from typing import Dict, Hashable, Optional, Tuple
import logging

import pyvista as pv
from pyvistaqt import QtInteractor
from PySide6.QtWidgets import QVBoxLayout, QWidget

from explodeview.app.ui.render_utils import (
    collect_draw_items, material_texture, material_to_actor_kwargs
)
from explodeview.model.catalog import CameraSettings
from explodeview.model.polydata import geometry_to_polydata
from explodeview.model.scene import Mesh, SceneNode

logger = logging.getLogger(__name__)


class SceneViewport(QWidget):
    """
    Mirrors one scene graph root into PyVista actors.

    Actors are keyed by (node handle, instance); PolyData is cached per
    geometry id so that switching between the original and the exploded
    clone does not re-convert shared buffers.
    """
    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        self.layout_box: QVBoxLayout = QVBoxLayout(self)
        self.layout_box.setContentsMargins(0, 0, 0, 0)

        self.plotter: QtInteractor = QtInteractor(self)
        self.layout_box.addWidget(self.plotter)
        self._init_plotter()

        # --- Actors state ---
        self._actors: Dict[Hashable, Tuple[pv.Actor, Tuple[int, Optional[int]]]] = {}

        # --- Data cache ---
        self._polydata: Dict[int, pv.PolyData] = {}

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    def show_root(self, root: Optional[SceneNode], reset_camera: bool = False) -> None:
        """Synchronize actors with `root`: add new meshes, drop missing ones, rebuild swapped ones, update transforms."""
        items = collect_draw_items(root) if root is not None else []
        wanted = {item.key for item in items}

        for key in [k for k in self._actors if k not in wanted]:
            actor, _ = self._actors.pop(key)
            self.plotter.remove_actor(actor, render=False)

        for item in items:
            entry = self._actors.get(item.key)
            if entry is not None and entry[1] != item.signature:
                self.plotter.remove_actor(entry[0], render=False)
                entry = None

            if entry is None:
                actor = self._add_actor(item.mesh, item.key)
                if actor is None:
                    continue
                entry = (actor, item.signature)
                self._actors[item.key] = entry

            actor = entry[0]
            actor.user_matrix = item.matrix
            actor.visibility = item.visible

        self._prune_polydata()

        if reset_camera:
            self.plotter.reset_camera()
        self.plotter.render()

    def apply_camera(self, camera: CameraSettings) -> None:
        """Place the camera at `camera.pos` looking at the scene center."""
        bounds = self.plotter.bounds
        center = ((bounds[0] + bounds[1]) / 2, (bounds[2] + bounds[3]) / 2, (bounds[4] + bounds[5]) / 2)
        self.plotter.camera.position = tuple(camera.pos)
        self.plotter.camera.focal_point = center
        self.plotter.camera.view_angle = camera.fov
        self.plotter.camera.up = (0.0, 1.0, 0.0)
        self.plotter.reset_camera_clipping_range()
        self.plotter.render()

    def clear(self) -> None:
        for actor, _ in self._actors.values():
            self.plotter.remove_actor(actor, render=False)
        self._actors.clear()
        self._polydata.clear()
        self.plotter.render()

    def close_plotter(self) -> None:
        self.plotter.close()

    # ------------------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------------------

    def _init_plotter(self) -> None:
        self.plotter.set_background("#0e0f12")
        self.plotter.enable_anti_aliasing()
        self.plotter.add_axes()

    def _add_actor(self, mesh: Mesh, key: Hashable) -> Optional[pv.Actor]:
        geometry = mesh.geometry
        pd = self._polydata.get(geometry.id)
        if pd is None:
            pd = geometry_to_polydata(geometry)
            self._polydata[geometry.id] = pd
        if pd.n_cells == 0:
            logger.debug(f"Mesh '{mesh.name}' has nothing to draw.")
            return None

        kwargs = material_to_actor_kwargs(mesh.material)
        texture = material_texture(mesh.material)
        if texture is not None and pd.active_texture_coordinates is not None:
            kwargs["texture"] = texture
            kwargs.pop("color", None)

        return self.plotter.add_mesh(pd, name=f"mesh-{key[0]}-{key[1]}", render=False, **kwargs)

    def _prune_polydata(self) -> None:
        """Forget PolyData of geometries no actor uses anymore."""
        in_use = {signature[0] for _, signature in self._actors.values()}
        for geometry_id in [g for g in self._polydata if g not in in_use]:
            del self._polydata[geometry_id]
