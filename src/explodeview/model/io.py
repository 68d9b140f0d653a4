"""
Asset Loading
=============
Adapts a trimesh scene (glTF/GLB, OBJ, PLY, ...) into the viewer's scene graph
and applies the per-model normalization once.

Loading failures raise ValueError here, before anything reaches the explode
engine.
"""
from __future__ import annotations

from typing import Dict, Optional, Tuple
import logging
import math
import os

import numpy as np
import trimesh
from trimesh.visual.material import PBRMaterial, SimpleMaterial

from explodeview.model.catalog import ModelSettings
from explodeview.model.geometry import BufferAttribute, Geometry, NORMAL, POSITION, UV
from explodeview.model.materials import (
    LambertMaterial, Material, PhongMaterial, Side, StandardMaterial
)
from explodeview.model.scene import Mesh, SceneNode
from explodeview.model.transforms import axis_rotation, multiply_quaternions

logger = logging.getLogger(__name__)


def _rgb(color) -> Tuple[float, float, float]:
    """trimesh colors are uint8 RGBA; return floats in [0, 1]."""
    c = np.asarray(color, dtype=np.float64).reshape(-1)[:3]
    if c.max(initial=0.0) > 1.0:
        c = c / 255.0
    return float(c[0]), float(c[1]), float(c[2])


def trimesh_to_geometry(mesh: trimesh.Trimesh, name: str = "") -> Geometry:
    """Copy vertices, faces, normals and UVs into a Geometry."""
    geometry = Geometry(name=name)
    geometry.set_attribute(POSITION, BufferAttribute(np.asarray(mesh.vertices, dtype=np.float32)))

    if len(mesh.faces):
        geometry.set_attribute(
            NORMAL, BufferAttribute(np.asarray(mesh.vertex_normals, dtype=np.float32))
        )

    uv = getattr(mesh.visual, "uv", None)
    if uv is not None and len(uv) == len(mesh.vertices):
        geometry.set_attribute(UV, BufferAttribute(np.asarray(uv, dtype=np.float32)))

    geometry.set_index(np.asarray(mesh.faces, dtype=np.uint32).reshape(-1))
    geometry.compute_bounding_box()
    geometry.compute_bounding_sphere()
    return geometry


def trimesh_to_material(mesh: trimesh.Trimesh, name: str = "") -> Material:
    """Map trimesh visuals onto the closest material descriptor."""
    source = getattr(mesh.visual, "material", None)

    if isinstance(source, PBRMaterial):
        color = source.baseColorFactor
        metallic = source.metallicFactor
        roughness = source.roughnessFactor
        return StandardMaterial(
            name=source.name or name,
            color=_rgb(color) if color is not None else (1.0, 1.0, 1.0),
            map=source.baseColorTexture,
            metalness=1.0 if metallic is None else float(metallic),
            roughness=1.0 if roughness is None else float(roughness),
            side=Side.DOUBLE if source.doubleSided else Side.FRONT,
            transparent=source.alphaMode == "BLEND",
        )

    if isinstance(source, SimpleMaterial):
        glossiness = getattr(source, "glossiness", None)
        return PhongMaterial(
            name=source.name or name,
            color=_rgb(source.diffuse),
            map=source.image,
            shininess=30.0 if glossiness is None else float(glossiness),
        )

    main_color = getattr(mesh.visual, "main_color", None)
    return LambertMaterial(
        name=name,
        color=_rgb(main_color) if main_color is not None else (1.0, 1.0, 1.0),
    )


def normalize_root(root: SceneNode, settings: ModelSettings) -> None:
    """Re-orient Z-up assets to Y-up and apply the uniform scale."""
    if not settings.y_up:
        root.quaternion = multiply_quaternions(axis_rotation("x", -math.pi / 2), root.quaternion)
    root.scale = np.full(3, float(settings.scale))


def load_scene(path: str, settings: Optional[ModelSettings] = None) -> SceneNode:
    """
    Load an asset file into a scene graph rooted at a plain SceneNode.

    Each geometry-carrying node of the file becomes a Mesh child of the root,
    placed with its world transform. Geometry and materials reused by several
    nodes are shared.

    Raises:
        ValueError: If the file is missing, unreadable or contains no meshes.
    """
    settings = settings or ModelSettings()
    logger.info(f"Loading asset from: {path}")

    if not os.path.exists(path):
        raise ValueError(f"Asset file '{path}' does not exist.")

    try:
        scene = trimesh.load(path, force="scene")
    except Exception as e:
        logger.exception(f"Failed to load asset: {e}")
        raise ValueError(f"Could not read asset '{path}': {e}") from e

    root = SceneNode(name=os.path.splitext(os.path.basename(path))[0])
    geometries: Dict[str, Geometry] = {}
    materials: Dict[str, Material] = {}

    for node_name in scene.graph.nodes_geometry:
        matrix, geom_name = scene.graph.get(frame_to=node_name)
        source = scene.geometry.get(geom_name)
        if not isinstance(source, trimesh.Trimesh):
            logger.debug(f"Skipping non-triangle geometry '{geom_name}'.")
            continue

        if geom_name not in geometries:
            geometries[geom_name] = trimesh_to_geometry(source, name=geom_name)
            materials[geom_name] = trimesh_to_material(source, name=geom_name)

        mesh = Mesh(geometries[geom_name], materials[geom_name], name=str(node_name))
        mesh.set_from_matrix(matrix)
        root.add(mesh)

    if not root.children:
        raise ValueError(f"Asset '{path}' contains no triangle meshes.")

    normalize_root(root, settings)
    logger.info(f"Loaded {len(root.children)} meshes ({len(geometries)} geometries) from {path}")
    return root
