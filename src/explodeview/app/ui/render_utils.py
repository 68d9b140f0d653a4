"""
Render Utilities
Translate scene graph nodes and materials into PyVista actor parameters.
Kept free of Qt so it can be used off-screen.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Optional, Tuple, TYPE_CHECKING
import logging

import numpy as np
import pyvista as pv

from explodeview.model.materials import Material, Side
from explodeview.model.scene import InstancedMesh, Mesh, NodeKind, SceneNode

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


@dataclass
class DrawItem:
    """One actor to draw: a mesh (or one instance of it) with its world matrix."""
    key: Hashable
    mesh: Mesh
    matrix: npt.NDArray[np.float64]
    visible: bool

    @property
    def signature(self) -> Tuple[int, Optional[int]]:
        """What the actor is built from: geometry id and material handle."""
        material = self.mesh.material
        return self.mesh.geometry.id, material.handle if material is not None else None


def is_effectively_visible(node: SceneNode) -> bool:
    """A node is drawn only if it and all its ancestors are visible."""
    current: Optional[SceneNode] = node
    while current is not None:
        if not current.visible:
            return False
        current = current.parent
    return True


def collect_draw_items(root: SceneNode) -> List[DrawItem]:
    """Flatten the graph into actors. Instanced meshes yield one item per instance."""
    items: List[DrawItem] = []
    for mesh in root.iter_meshes():
        if mesh.geometry.disposed:
            continue
        world = mesh.world_matrix()
        visible = is_effectively_visible(mesh)
        if mesh.kind is NodeKind.INSTANCED_MESH:
            assert isinstance(mesh, InstancedMesh)
            for i, instance in enumerate(mesh.instance_matrices):
                items.append(DrawItem((mesh.handle, i), mesh, world @ instance, visible))
        else:
            items.append(DrawItem((mesh.handle, 0), mesh, world, visible))
    return items


def material_to_actor_kwargs(material: Optional[Material]) -> Dict[str, Any]:
    """Keyword arguments for `Plotter.add_mesh` approximating the material."""
    kwargs: Dict[str, Any] = {"smooth_shading": True, "show_scalar_bar": False}
    if material is None:
        kwargs["color"] = "white"
        return kwargs

    kwargs["color"] = material.color if material.color is not None else (1.0, 1.0, 1.0)
    kwargs["opacity"] = material.opacity if material.transparent else 1.0

    if material.is_pbr:
        kwargs["pbr"] = True
        kwargs["metallic"] = float(getattr(material, "metalness", 0.0))
        kwargs["roughness"] = float(getattr(material, "roughness", 1.0))

    side = material.side if material.side is not None else Side.FRONT
    if side is Side.FRONT:
        kwargs["culling"] = "back"
    elif side is Side.BACK:
        kwargs["culling"] = "front"
    return kwargs


def material_texture(material: Optional[Material]) -> Optional[pv.Texture]:
    """Wrap the material's image (PIL image or array) as a pv.Texture."""
    if material is None or material.map is None:
        return None
    try:
        return pv.Texture(np.asarray(material.map))
    except (TypeError, ValueError) as e:
        logger.warning(f"Texture of material '{material.name}' could not be used: {e}")
        return None
