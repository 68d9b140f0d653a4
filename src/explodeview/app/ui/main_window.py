"""
Main window of the viewer: catalog picker, viewport and explode controls.
"""
from __future__ import annotations

from typing import List, Optional
import logging
import os
import time

from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QAction, QCloseEvent
from PySide6.QtWidgets import (
    QComboBox, QDockWidget, QFileDialog, QMainWindow, QMessageBox, QToolBar
)

from explodeview.app.application import VISIBLE_APP_NAME
from explodeview.app.ui.control_panel import ControlPanel
from explodeview.app.ui.viewport import SceneViewport
from explodeview.config import FRAME_INTERVAL_MS
from explodeview.explode.engine import ExplodeController
from explodeview.explode.picking import ObbTreePickingIndex
from explodeview.model.catalog import ModelItem, ModelSettings, load_catalog
from explodeview.model.io import load_scene

logger = logging.getLogger(__name__)

ASSET_FILTER = "3D Assets (*.glb *.gltf *.obj *.ply *.stl *.off);;All Files (*)"


class MainWindow(QMainWindow):
    def __init__(
        self,
        catalog: Optional[List[ModelItem]] = None,
        controller: Optional[ExplodeController] = None
    ) -> None:
        super().__init__()
        self.setWindowTitle(VISIBLE_APP_NAME)
        self.resize(1400, 900)

        self.catalog: List[ModelItem] = catalog if catalog is not None else load_catalog()
        self.controller = controller or ExplodeController(picking_index=ObbTreePickingIndex())

        # --- Central: viewport ---
        self.viewport = SceneViewport(self)
        self.setCentralWidget(self.viewport)

        # --- Right dock: controls ---
        self.panel = ControlPanel(self)
        dock = QDockWidget("Controls", self)
        dock.setWidget(self.panel)
        dock.setFeatures(QDockWidget.DockWidgetFeature.NoDockWidgetFeatures)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, dock)

        self.panel.explode_toggled.connect(self.on_explode_toggled)
        self.panel.amount_changed.connect(self.controller.set_amount)
        self.controller.set_amount(self.panel.amount)

        self._create_actions()
        self._create_toolbar()

        # --- Frame loop ---
        self._frames: int = 0
        self._fps: int = 0
        self._fps_started: float = time.perf_counter()
        self._frame_timer = QTimer(self)
        self._frame_timer.setInterval(FRAME_INTERVAL_MS)
        self._frame_timer.timeout.connect(self._on_frame)
        self._frame_timer.start()

        if self.catalog and os.path.exists(self.catalog[0].glb_path):
            self.on_catalog_selected(0)

    # --- SETUP ---

    def _create_actions(self) -> None:
        self.act_open = QAction("Open...", self)
        self.act_open.setShortcut("Ctrl+O")
        self.act_open.triggered.connect(self.on_file_open)

        self.act_exit = QAction("Exit", self)
        self.act_exit.triggered.connect(self.close)

        file_menu = self.menuBar().addMenu("&File")
        file_menu.addAction(self.act_open)
        file_menu.addSeparator()
        file_menu.addAction(self.act_exit)

    def _create_toolbar(self) -> None:
        toolbar = QToolBar("Models", self)
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        self.cmb_models = QComboBox(toolbar)
        for item in self.catalog:
            self.cmb_models.addItem(item.name, item.slug)
        self.cmb_models.currentIndexChanged.connect(self.on_catalog_selected)
        toolbar.addWidget(self.cmb_models)
        toolbar.addAction(self.act_open)

    # --- SLOTS ---

    def on_catalog_selected(self, index: int) -> None:
        if not 0 <= index < len(self.catalog):
            return
        item = self.catalog[index]
        self.load_model(item.glb_path, item.settings, title=item.name)

    def on_file_open(self) -> None:
        fname, _ = QFileDialog.getOpenFileName(self, "Open Asset", "", ASSET_FILTER)
        if fname:
            self.load_model(fname, ModelSettings(), title=os.path.basename(fname))

    def on_explode_toggled(self, checked: bool) -> None:
        self.controller.set_amount(self.panel.amount)
        self.controller.set_enabled(checked)
        self._refresh_scene()

    # --- MODEL LIFECYCLE ---

    def load_model(self, path: str, settings: ModelSettings, title: str = "") -> bool:
        """Load an asset, hand it to the explode controller and show it."""
        try:
            root = load_scene(path, settings)
        except ValueError as e:
            logger.error(f"Could not load '{path}': {e}")
            QMessageBox.critical(self, "Error", f"Could not open asset:\n{e}")
            return False

        self.panel.chk_explode.setChecked(False)
        self.viewport.clear()
        capability = self.controller.load(root)
        self.panel.set_capability(capability)

        self.viewport.show_root(self.controller.visible_root, reset_camera=True)
        self.viewport.apply_camera(settings.camera)
        self.setWindowTitle(f"{VISIBLE_APP_NAME} - [{title or os.path.basename(path)}]")
        return True

    # --- FRAME LOOP ---

    def _on_frame(self) -> None:
        if self.controller.tick():
            self._refresh_scene()

        self._frames += 1
        now = time.perf_counter()
        if now - self._fps_started >= 1.0:
            self._fps = self._frames
            self._frames = 0
            self._fps_started = now
            self.panel.set_stats(
                f"Parts {self.controller.part_count} · Meshes {self.controller.capability.mesh_count} · FPS {self._fps}"
            )

    def _refresh_scene(self) -> None:
        self.viewport.show_root(self.controller.visible_root)

    def closeEvent(self, event: QCloseEvent) -> None:
        self._frame_timer.stop()
        self.controller.unload()
        self.viewport.close_plotter()
        super().closeEvent(event)
