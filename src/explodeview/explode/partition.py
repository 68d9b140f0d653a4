"""
Partition Strategies
====================
Split one mesh into independently movable parts.

Strategies, in priority order:
    1. SKINNED_GROUPS: skinned mesh with more than one group.
    2. MATERIAL_GROUPS: plain mesh with more than one group.
    3. OCTANTS: plain mesh with at most one group, when it is the only
       explodable mesh of the assembly (nothing else to separate it from).

Parts are new nodes with their own geometry. Source meshes, geometries and
materials are never modified.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Callable, List, Optional, TYPE_CHECKING
import logging

import numpy as np

from explodeview.config import OCTANT_MIN_PARTS
from explodeview.explode.geometry_utils import IndexRange, extract_sub_geometry
from explodeview.model.geometry import Geometry, POSITION
from explodeview.model.materials import Material
from explodeview.model.scene import Mesh, NodeKind, SkinnedMesh
from explodeview.model.transforms import Box3

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)

MaterialMapper = Callable[[Material], Material]


class PartitionStrategy(StrEnum):
    SKINNED_GROUPS = "skinned_groups"
    MATERIAL_GROUPS = "material_groups"
    OCTANTS = "octants"


@dataclass
class PartitionResult:
    """Output of a successful split: the strategy used and the new part nodes."""
    strategy: PartitionStrategy
    source: Mesh
    parts: List[Mesh] = field(default_factory=list)

    @property
    def geometries(self) -> List[Geometry]:
        return [part.geometry for part in self.parts]


def _identity(material: Material) -> Material:
    return material


def can_partition(mesh: Mesh) -> bool:
    """Explodable mesh with positions and at least one triangle."""
    if not mesh.kind.is_explodable:
        return False
    geometry = mesh.geometry
    if geometry.disposed or not geometry.has_attribute(POSITION):
        return False
    return geometry.triangle_count > 0


def select_strategy(mesh: Mesh, only_mesh: bool = False) -> Optional[PartitionStrategy]:
    """
    Pick the strategy whose trigger matches `mesh`, or None to keep it whole.

    Args:
        mesh: Candidate mesh.
        only_mesh: The mesh is the single explodable mesh of its assembly.
    """
    if not can_partition(mesh):
        return None
    n_groups = len(mesh.geometry.groups)
    if mesh.kind is NodeKind.SKINNED_MESH:
        return PartitionStrategy.SKINNED_GROUPS if n_groups > 1 else None
    if n_groups > 1:
        return PartitionStrategy.MATERIAL_GROUPS
    if only_mesh:
        return PartitionStrategy.OCTANTS
    return None


def _make_part(
    source: Mesh,
    geometry: Geometry,
    material: Optional[Material],
    suffix: str
) -> Mesh:
    materials = [material] if material is not None else []
    name = f"{source.name}_{suffix}" if source.name else suffix

    if isinstance(source, SkinnedMesh):
        part: Mesh = SkinnedMesh(
            geometry, materials, source.skeleton,
            bind_matrix=source.bind_matrix.copy(), name=name
        )
    else:
        part = Mesh(geometry, materials, name=name)

    part.copy_transform_from(source)
    part.visible = source.visible
    part.cast_shadow = source.cast_shadow
    part.receive_shadow = source.receive_shadow
    return part


def split_by_groups(mesh: Mesh, map_material: MaterialMapper = _identity) -> List[Mesh]:
    """
    One part per geometry group, carrying that group's material.
    Skinned sources yield skinned parts bound to the same skeleton.
    """
    parts: List[Mesh] = []
    for i, group in enumerate(mesh.geometry.groups):
        geometry = extract_sub_geometry(mesh.geometry, IndexRange(group.start, group.count))
        if geometry.vertex_count == 0:
            logger.debug(f"Group {i} of '{mesh.name}' is empty; skipped.")
            continue
        geometry.name = f"{mesh.geometry.name}_group{i}"

        source_material = mesh.material_for_group(group.material_index)
        material = map_material(source_material) if source_material is not None else None
        parts.append(_make_part(mesh, geometry, material, f"group{i}"))
    return parts


def drawn_triangles(geometry: Geometry) -> npt.NDArray[np.int64]:
    """
    Vertex ids (T, 3) of the triangles actually drawn: the range of the single
    group when there is exactly one, else the whole index sequence.
    """
    if len(geometry.groups) != 1:
        return geometry.triangle_indices()
    group = geometry.groups[0]
    start = max(0, group.start)
    seq = geometry.index_sequence()[start:start + max(0, group.count)]
    n = (seq.size // 3) * 3
    return seq[:n].reshape(-1, 3)


def octant_buckets(
    geometry: Geometry,
    triangles: Optional[npt.NDArray[np.int64]] = None
) -> npt.NDArray[np.int64]:
    """
    Octant id (0-7) per triangle: bit 0 for +X, bit 1 for +Y, bit 2 for +Z
    of the triangle centroid relative to the center of the triangles' bounds.
    """
    if triangles is None:
        triangles = drawn_triangles(geometry)
    positions = geometry.attributes[POSITION].array[:, :3].astype(np.float64)
    # Bounds are measured here; the source's cached box is left alone
    center = Box3.from_points(positions[triangles.reshape(-1)]).center

    centroids = positions[triangles].mean(axis=1)
    positive = (centroids - center) > 0.0
    return (positive[:, 0] * 1 + positive[:, 1] * 2 + positive[:, 2] * 4).astype(np.int64)


def split_by_octants(mesh: Mesh, map_material: MaterialMapper = _identity) -> List[Mesh]:
    """
    One part per non-empty octant bucket, ordered by bucket id.
    Returns an empty list when fewer than OCTANT_MIN_PARTS buckets are filled.
    """
    geometry = mesh.geometry
    triangles = drawn_triangles(geometry)
    buckets = octant_buckets(geometry, triangles)

    filled = np.unique(buckets)
    if filled.size < OCTANT_MIN_PARTS:
        logger.info(
            f"Spatial split of '{mesh.name}' found {filled.size} non-empty octant(s); "
            f"keeping the mesh whole."
        )
        return []

    if geometry.groups:
        source_material = mesh.material_for_group(geometry.groups[0].material_index)
    else:
        source_material = mesh.material
    material = map_material(source_material) if source_material is not None else None

    parts: List[Mesh] = []
    for bucket in filled:
        vertex_ids = triangles[buckets == bucket].reshape(-1)
        part_geometry = extract_sub_geometry(geometry, vertex_ids)
        part_geometry.name = f"{geometry.name}_octant{int(bucket)}"
        parts.append(_make_part(mesh, part_geometry, material, f"octant{int(bucket)}"))
    return parts


def partition_mesh(
    mesh: Mesh,
    only_mesh: bool = False,
    map_material: MaterialMapper = _identity
) -> Optional[PartitionResult]:
    """
    Split `mesh` with the first strategy whose trigger matches.

    Args:
        mesh: Mesh to split. Left untouched.
        only_mesh: The mesh is the single explodable mesh of its assembly
            (enables the spatial fallback).
        map_material: Applied to each part's material (e.g. safe conversion).

    Returns:
        PartitionResult, or None if the mesh should stay whole.
    """
    strategy = select_strategy(mesh, only_mesh=only_mesh)
    if strategy is None:
        if not can_partition(mesh) and mesh.kind.is_explodable:
            logger.debug(f"Mesh '{mesh.name}' cannot be partitioned; it explodes as a whole.")
        return None

    if strategy is PartitionStrategy.OCTANTS:
        parts = split_by_octants(mesh, map_material)
    else:
        parts = split_by_groups(mesh, map_material)

    # A split must yield separable parts to be worth anything
    if len(parts) < 2:
        for part in parts:
            part.geometry.dispose()
        return None

    logger.debug(f"Split '{mesh.name}' into {len(parts)} parts ({strategy}).")
    return PartitionResult(strategy=strategy, source=mesh, parts=parts)
