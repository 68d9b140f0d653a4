"""
Application Initialization
==========================
Builds the viewer window and starts the Qt event loop.

The explode controller is created here and handed to the window, so the
window only wires widgets to it.
"""
from __future__ import annotations

from typing import Optional
import logging
import os

from explodeview.app.application import create_app
from explodeview.app.ui.main_window import MainWindow
from explodeview.explode.engine import ExplodeController
from explodeview.explode.picking import ObbTreePickingIndex
from explodeview.model.catalog import ModelSettings, load_catalog

logger = logging.getLogger(__name__)


def main(asset: Optional[str] = None) -> int:
    """Main entry point for the viewer. Returns the Qt exit code."""
    app = create_app()

    controller = ExplodeController(picking_index=ObbTreePickingIndex())
    window = MainWindow(catalog=load_catalog(), controller=controller)

    if asset:
        logger.info(f"Opening {asset} from the command line.")
        window.load_model(asset, ModelSettings(), title=os.path.basename(asset))

    window.show()
    return app.exec()
