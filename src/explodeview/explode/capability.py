"""
Capability Detector
Decides whether exploding a loaded asset can separate anything.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
import logging

from explodeview.model.scene import NodeKind, SceneNode

logger = logging.getLogger(__name__)


class ExplodeReason(StrEnum):
    NONE = "none"
    SINGLE_PRIMITIVE = "single_primitive"
    SKINNED_SINGLE_PRIMITIVE = "skinned_single_primitive"


@dataclass(frozen=True)
class ExplodeCapability:
    can_explode: bool
    reason: ExplodeReason
    mesh_count: int = 0
    group_count: int = 0
    skinned_multi_group: bool = False

    @property
    def message(self) -> str:
        """Short human-readable explanation for the control surface."""
        if self.reason is ExplodeReason.SKINNED_SINGLE_PRIMITIVE:
            return "Single skinned primitive: nothing to separate."
        if self.reason is ExplodeReason.SINGLE_PRIMITIVE:
            return "Single primitive: nothing to separate."
        return f"{self.mesh_count} mesh(es), {self.group_count} group(s)."


def detect_capability(root: SceneNode) -> ExplodeCapability:
    """
    Count explodable meshes and material groups under `root`.

    Explodable when there is more than one mesh, more than one group in
    total, or a skinned mesh with more than one group.
    """
    mesh_count = 0
    group_count = 0
    skinned_multi_group = False
    any_skinned = False

    for mesh in root.iter_meshes(explodable_only=True):
        n_groups = len(mesh.geometry.groups)
        mesh_count += 1
        group_count += n_groups
        if mesh.kind is NodeKind.SKINNED_MESH:
            any_skinned = True
            if n_groups > 1:
                skinned_multi_group = True

    can_explode = mesh_count > 1 or group_count > 1 or skinned_multi_group

    if can_explode:
        reason = ExplodeReason.NONE
    elif any_skinned:
        reason = ExplodeReason.SKINNED_SINGLE_PRIMITIVE
    else:
        reason = ExplodeReason.SINGLE_PRIMITIVE

    capability = ExplodeCapability(
        can_explode=can_explode,
        reason=reason,
        mesh_count=mesh_count,
        group_count=group_count,
        skinned_multi_group=skinned_multi_group,
    )
    logger.info(
        f"Explode capability of '{root.name}': can_explode={can_explode} "
        f"({mesh_count} meshes, {group_count} groups, reason={reason})."
    )
    return capability
