"""
Model Catalog
=============
The list of assets offered by the viewer, with per-asset display settings.

Catalog file format (JSON):
    [
      {"slug": "helmet", "name": "Damaged Helmet", "glb": "models/helmet.glb",
       "thumb": "thumbs/helmet.png",
       "settings": {"scale": 1.0, "y_up": true, "camera": {"pos": [2.2, 1.4, 2.2], "fov": 45}}}
    ]

Relative paths are resolved against the assets directory.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple
import json
import logging
import os

from explodeview.config import ASSETS_PATH, CATALOG_PATH

logger = logging.getLogger(__name__)


@dataclass
class CameraSettings:
    pos: Tuple[float, float, float] = (2.2, 1.4, 2.2)
    fov: float = 45.0


@dataclass
class ModelSettings:
    """Normalization applied once per load, plus the initial camera."""
    scale: float = 1.0
    y_up: bool = True
    camera: CameraSettings = field(default_factory=CameraSettings)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> ModelSettings:
        camera = data.get("camera") or {}
        return ModelSettings(
            scale=float(data.get("scale", 1.0)),
            y_up=bool(data.get("y_up", True)),
            camera=CameraSettings(
                pos=tuple(camera.get("pos", CameraSettings.pos)),
                fov=float(camera.get("fov", CameraSettings.fov)),
            ),
        )


@dataclass
class ModelItem:
    slug: str
    name: str
    glb: str
    thumb: str = ""
    settings: ModelSettings = field(default_factory=ModelSettings)

    @property
    def glb_path(self) -> str:
        if os.path.isabs(self.glb):
            return self.glb
        return os.path.join(ASSETS_PATH, self.glb)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["settings"]["camera"]["pos"] = list(self.settings.camera.pos)
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> ModelItem:
        for key in ("slug", "name", "glb"):
            if key not in data:
                raise ValueError(f"Catalog entry is missing '{key}': {data}")
        return ModelItem(
            slug=str(data["slug"]),
            name=str(data["name"]),
            glb=str(data["glb"]),
            thumb=str(data.get("thumb", "")),
            settings=ModelSettings.from_dict(data.get("settings") or {}),
        )


def load_catalog(path: Optional[str] = None) -> List[ModelItem]:
    """Read the catalog; a missing file yields an empty catalog."""
    path = path or CATALOG_PATH
    if not os.path.exists(path):
        logger.warning(f"Model catalog not found at {path}")
        return []

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"Catalog '{path}' must contain a JSON list.")

    items = [ModelItem.from_dict(entry) for entry in data]
    slugs = [item.slug for item in items]
    if len(set(slugs)) != len(slugs):
        raise ValueError(f"Catalog '{path}' contains duplicate slugs.")

    logger.info(f"Loaded {len(items)} catalog entries from {path}")
    return items


def find_model(items: List[ModelItem], slug: str) -> Optional[ModelItem]:
    for item in items:
        if item.slug == slug:
            return item
    return None
