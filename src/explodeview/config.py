"""
Configuration & Path Management
===============================
This module serves as the central registry for file paths and global constants.

Why is this file needed?
------------------------
1. Abstraction: It prevents hardcoded paths (e.g., "C:/Users/...") scattered
   throughout the code.
2. Deployment: It handles the logic required by PyInstaller (sys._MEIPASS) to
   find assets (catalog, models) when the app is frozen into an .exe.
3. Tuning: The explode engine constants live here so the engine, the viewer
   and the tests agree on them.

Exports:
    ASSETS_PATH (str): Absolute path to the assets directory.
    CATALOG_PATH (str): Absolute path to the model catalog file.
"""
import logging
import sys
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def get_resource_path(relative_path: str) -> str:
    """
    Get absolute path to resource, works for dev and for PyInstaller.
    """
    if hasattr(sys, '_MEIPASS'):
        # PyInstaller temp folder
        base_path: str = getattr(sys, '_MEIPASS')
        return os.path.join(base_path, relative_path)

    # Development mode: resolve relative to this file
    # config.py is in src/explodeview/
    current_file_path: Path = Path(__file__)
    project_root: Path = current_file_path.parent.parent.parent
    return os.path.join(str(project_root), relative_path)


# Global Constants
ASSETS_PATH: str = get_resource_path("assets")
CATALOG_PATH: str = os.path.join(ASSETS_PATH, "models.json")

if not os.path.exists(ASSETS_PATH):
    logger.warning(f"Assets path not found at {ASSETS_PATH}")

# --- Explode engine ---
# Squared length below which an explode direction counts as degenerate
DIRECTION_EPSILON: float = 1e-12
FALLBACK_AXIS: tuple[float, float, float] = (0.0, 1.0, 0.0)

# Parameters of materials synthesized for non-PBR sources
SAFE_METALNESS: float = 0.2
SAFE_ROUGHNESS: float = 0.6

# Largest vertex count addressable by a 16-bit index buffer
UINT16_MAX_VERTICES: int = 65535

# A spatial split yielding fewer parts than this is discarded
OCTANT_MIN_PARTS: int = 2

# --- Viewer ---
FRAME_INTERVAL_MS: int = 16
DEFAULT_AMOUNT: float = 1.0
AMOUNT_SLIDER_STEPS: int = 100
