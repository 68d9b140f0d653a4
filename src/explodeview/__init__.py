"""
ExplodeView: a 3D asset viewer that can pull a model apart into its parts.
"""
from explodeview.explode import ExplodeCapability, ExplodeController, detect_capability
from explodeview.model.io import load_scene

__version__ = "0.1.0"

__all__ = [
    "ExplodeCapability",
    "ExplodeController",
    "detect_capability",
    "load_scene",
    "__version__",
]
