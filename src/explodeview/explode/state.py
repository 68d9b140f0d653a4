"""
Explode State & Offset Computation
==================================
One ExplodeSession owns the exploded clone of one loaded root.

Lifecycle:
    UNPREPARED -> PREPARED -> DISPOSED

Preparation runs once, on the first `apply_offsets` call: the clone's meshes
are partitioned where a strategy applies and every part gets a safe material.
Later calls only move parts along cached directions, so the per-update cost
is proportional to the number of parts, not triangles.

Explode records live in a side table keyed by node handle; nothing is stored
on the nodes themselves.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, TYPE_CHECKING
import logging

import numpy as np

from explodeview.config import DIRECTION_EPSILON, FALLBACK_AXIS
from explodeview.explode.materials import SafeMaterialConverter
from explodeview.explode.partition import PartitionResult, partition_mesh
from explodeview.explode.picking import PickingIndex
from explodeview.model.geometry import Geometry
from explodeview.model.scene import Mesh, SceneNode, world_bounding_box

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


class ExplodeState(Enum):
    UNPREPARED = "unprepared"
    PREPARED = "prepared"
    DISPOSED = "disposed"


@dataclass
class ExplodeRecord:
    """Cached rest position and unit explode direction of one part (parent space)."""
    base_position: npt.NDArray[np.float64]
    direction: npt.NDArray[np.float64]
    fallback: bool = False


def explode_direction(
    mesh: Mesh,
    root_center: npt.NDArray[np.float64]
) -> tuple[npt.NDArray[np.float64], bool]:
    """
    Unit direction from the assembly center to the mesh center, expressed in
    the mesh's parent space. Degenerate directions become FALLBACK_AXIS.

    Returns:
        (direction, used_fallback)
    """
    mesh_center = mesh.world_bounding_box().center
    local = mesh.parent_world_to_local(np.vstack([mesh_center, root_center]))
    direction = local[0] - local[1]

    if float(direction @ direction) < DIRECTION_EPSILON:
        return np.array(FALLBACK_AXIS, dtype=np.float64), True
    return direction / np.linalg.norm(direction), False


class ExplodeSession:
    """
    Exploded clone of a loaded root.

    The source root, its geometries and its materials are never modified:
    the session works on a clone that shares unsplit geometry with the
    source and owns everything it creates.
    """

    def __init__(
        self,
        source: SceneNode,
        converter: Optional[SafeMaterialConverter] = None,
        picking_index: Optional[PickingIndex] = None,
    ) -> None:
        self.source = source
        clone = source.clone(recursive=True)
        clone.visible = True
        name = f"{source.name}_exploded" if source.name else "exploded"
        if source.kind.is_mesh:
            # A mesh root is split under an identity holder, like any other mesh
            self.root: SceneNode = SceneNode(name=name)
            self.root.add(clone)
        else:
            self.root = clone
            self.root.name = name

        self.converter = converter if converter is not None else SafeMaterialConverter()
        self.picking_index = picking_index
        self.state = ExplodeState.UNPREPARED

        self.center: npt.NDArray[np.float64] = np.zeros(3)
        self.radius: float = 0.0
        self.partitions: List[PartitionResult] = []

        self._records: Dict[int, ExplodeRecord] = {}
        self._created_geometries: List[Geometry] = []

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def is_prepared(self) -> bool:
        return self.state is ExplodeState.PREPARED

    def meshes(self) -> List[Mesh]:
        """Explodable meshes currently under the clone root."""
        return list(self.root.iter_meshes(explodable_only=True))

    @property
    def part_count(self) -> int:
        return len(self.meshes())

    @property
    def records(self) -> Dict[int, ExplodeRecord]:
        return dict(self._records)

    def record_for(self, mesh: Mesh) -> Optional[ExplodeRecord]:
        return self._records.get(mesh.handle)

    @property
    def created_geometries(self) -> List[Geometry]:
        return list(self._created_geometries)

    # ------------------------------------------------------------------
    # Preparation
    # ------------------------------------------------------------------

    def prepare(self) -> None:
        """Partition the clone and convert its materials. Runs at most once."""
        if self.state is ExplodeState.PREPARED:
            return
        if self.state is ExplodeState.DISPOSED:
            raise ValueError("Cannot prepare a disposed explode session.")

        box = world_bounding_box(self.root)
        self.center = box.center
        self.radius = 0.5 * box.diagonal_length

        candidates = self.meshes()
        only_mesh = len(candidates) == 1
        replacements: Dict[int, List[SceneNode]] = {}
        parents: Dict[int, SceneNode] = {}

        for mesh in candidates:
            result = partition_mesh(
                mesh, only_mesh=only_mesh, map_material=self.converter.to_safe_material
            )

            if result is None:
                mesh.materials = self.converter.to_safe_material(mesh.materials)
                continue

            self.partitions.append(result)
            new_nodes: List[SceneNode] = list(result.parts)
            if mesh.children:
                holder = SceneNode(name=f"{mesh.name}_children")
                holder.copy_transform_from(mesh)
                holder.add(*list(mesh.children))
                new_nodes.append(holder)
            replacements[id(mesh)] = new_nodes
            parents[id(mesh.parent)] = mesh.parent

            for geometry in result.geometries:
                self._created_geometries.append(geometry)
                if self.picking_index is not None:
                    self.picking_index.build(geometry)

        self._swap_children(list(parents.values()), replacements)
        self.state = ExplodeState.PREPARED

        logger.info(
            f"Prepared explode of '{self.source.name}': {len(candidates)} mesh(es) -> "
            f"{self.part_count} part(s), {len(self.partitions)} split(s), radius={self.radius:.4g}."
        )

    @staticmethod
    def _swap_children(
        parents: List[SceneNode],
        replacements: Dict[int, List[SceneNode]]
    ) -> None:
        """
        Give every affected parent its new child list in one step.
        Parents are passed explicitly: a holder created for a split mesh
        is not reachable from the root until its own parent is swapped.
        """
        for parent in parents:
            new_children: List[SceneNode] = []
            for child in parent.children:
                new_children.extend(replacements.get(id(child), [child]))
            parent.replace_children(new_children)

    # ------------------------------------------------------------------
    # Offsets
    # ------------------------------------------------------------------

    def apply_offsets(self, amount: float) -> None:
        """
        Move every part to `base + direction * amount * radius`.
        Prepares the session on first use, whatever the amount.
        """
        if self.state is ExplodeState.DISPOSED:
            raise ValueError("Cannot apply offsets on a disposed explode session.")
        self.prepare()

        meshes = self.meshes()
        if not meshes:
            return

        # Record every new part before moving anything so that no direction
        # is measured against an already displaced ancestor
        for mesh in meshes:
            if mesh.handle not in self._records:
                direction, fallback = explode_direction(mesh, self.center)
                self._records[mesh.handle] = ExplodeRecord(
                    base_position=mesh.position.copy(),
                    direction=direction,
                    fallback=fallback,
                )
                if fallback:
                    logger.debug(f"Part '{mesh.name}' sits on the assembly center; using fallback axis.")

        distance = float(amount) * self.radius
        for mesh in meshes:
            record = self._records[mesh.handle]
            mesh.position = record.base_position + record.direction * distance

    def restore(self) -> None:
        """Put every part back on its rest position."""
        self.apply_offsets(0.0)

    # ------------------------------------------------------------------
    # Disposal
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Free everything the session created. Source objects are left alone."""
        if self.state is ExplodeState.DISPOSED:
            return

        for geometry in self._created_geometries:
            if self.picking_index is not None:
                self.picking_index.dispose(geometry)
            geometry.dispose()
        n_geometries = len(self._created_geometries)
        n_materials = len(self.converter.created)

        self.converter.dispose()
        self._created_geometries.clear()
        self._records.clear()
        self.partitions.clear()
        self.root.replace_children([])
        self.state = ExplodeState.DISPOSED

        logger.info(
            f"Disposed explode session of '{self.source.name}' "
            f"({n_geometries} geometries, {n_materials} materials)."
        )
