"""
Scene Graph
===========
Transform hierarchy of a loaded asset.

Node kinds form a closed set (NodeKind). Code that needs to know what a node
can do asks its kind rather than probing attributes.

Classes:
    SceneNode: Transform + ordered children.
    Mesh: Node drawing one Geometry with one or more Materials.
    SkinnedMesh: Mesh deformed by a shared Skeleton.
    InstancedMesh: Mesh drawn many times; never exploded.
    Skeleton: Bone hierarchy shared between skinned meshes.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, TYPE_CHECKING
import itertools
import logging

import numpy as np

from explodeview.model.geometry import Geometry
from explodeview.model.materials import Material
from explodeview.model.transforms import (
    Box3, IDENTITY_QUATERNION, compose_matrix, decompose_matrix, transform_points
)

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)

_node_handles = itertools.count(1)


class NodeKind(Enum):
    MESH = "mesh"
    SKINNED_MESH = "skinned_mesh"
    INSTANCED_MESH = "instanced_mesh"
    OTHER = "other"

    @property
    def is_mesh(self) -> bool:
        """Carries geometry and materials."""
        return self is not NodeKind.OTHER

    @property
    def is_explodable(self) -> bool:
        """Can be moved and split as a part of the assembly."""
        return self in (NodeKind.MESH, NodeKind.SKINNED_MESH)

    @property
    def is_skinned(self) -> bool:
        return self is NodeKind.SKINNED_MESH


class SceneNode:
    """A transform (position, rotation, scale) with ordered children."""
    kind: NodeKind = NodeKind.OTHER

    def __init__(
        self,
        name: str = "",
        position: Optional[npt.ArrayLike] = None,
        quaternion: Optional[npt.ArrayLike] = None,
        scale: Optional[npt.ArrayLike] = None,
    ) -> None:
        self.name: str = name
        self.handle: int = next(_node_handles)
        self.position: npt.NDArray[np.float64] = np.zeros(3) if position is None \
            else np.array(position, dtype=np.float64)
        self.quaternion: npt.NDArray[np.float64] = np.array(
            IDENTITY_QUATERNION if quaternion is None else quaternion, dtype=np.float64
        )
        self.scale: npt.NDArray[np.float64] = np.ones(3) if scale is None \
            else np.array(scale, dtype=np.float64)
        self.visible: bool = True
        self.parent: Optional[SceneNode] = None
        self.children: List[SceneNode] = []
        self.user_data: Dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, handle={self.handle})"

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------

    def add(self, *nodes: SceneNode) -> SceneNode:
        for node in nodes:
            if node is self:
                raise ValueError("A node cannot be its own child.")
            if node.parent is not None:
                node.parent.remove(node)
            node.parent = self
            self.children.append(node)
        return self

    def remove(self, *nodes: SceneNode) -> SceneNode:
        for node in nodes:
            if node in self.children:
                self.children.remove(node)
                node.parent = None
        return self

    def replace_children(self, children: Sequence[SceneNode]) -> None:
        """Swap in a complete new child list in one step."""
        new_children = list(children)
        keep = set(id(c) for c in new_children)
        for old in self.children:
            if id(old) not in keep:
                old.parent = None
        for child in new_children:
            if child.parent is not None and child.parent is not self:
                child.parent.remove(child)
            child.parent = self
        self.children = new_children

    def traverse(self) -> Iterator[SceneNode]:
        """Depth-first, pre-order walk over this node and its descendants."""
        stack: List[SceneNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def iter_meshes(self, explodable_only: bool = False) -> Iterator[Mesh]:
        for node in self.traverse():
            if not node.kind.is_mesh:
                continue
            if explodable_only and not node.kind.is_explodable:
                continue
            yield node

    # ------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------

    def local_matrix(self) -> npt.NDArray[np.float64]:
        return compose_matrix(self.position, self.quaternion, self.scale)

    def world_matrix(self) -> npt.NDArray[np.float64]:
        m = self.local_matrix()
        node = self.parent
        while node is not None:
            m = node.local_matrix() @ m
            node = node.parent
        return m

    def set_from_matrix(self, matrix: npt.ArrayLike) -> None:
        self.position, self.quaternion, self.scale = decompose_matrix(matrix)

    def local_to_world(self, points: npt.ArrayLike) -> npt.NDArray[np.float64]:
        return transform_points(self.world_matrix(), points)

    def world_to_local(self, points: npt.ArrayLike) -> npt.NDArray[np.float64]:
        return transform_points(np.linalg.inv(self.world_matrix()), points)

    def parent_world_to_local(self, points: npt.ArrayLike) -> npt.NDArray[np.float64]:
        """Convert world points into this node's parent space (world if detached)."""
        if self.parent is None:
            return np.asarray(points, dtype=np.float64).reshape(-1, 3).copy()
        return self.parent.world_to_local(points)

    def copy_transform_from(self, other: SceneNode) -> None:
        self.position = other.position.copy()
        self.quaternion = other.quaternion.copy()
        self.scale = other.scale.copy()

    # ------------------------------------------------------------------
    # Cloning
    # ------------------------------------------------------------------

    def _clone_node(self) -> SceneNode:
        return SceneNode(name=self.name)

    def clone(self, recursive: bool = True) -> SceneNode:
        """
        Copy the node (and its subtree). Geometry, materials and skeletons
        are shared with the source, not copied.
        """
        node = self._clone_node()
        node.copy_transform_from(self)
        node.visible = self.visible
        node.user_data = dict(self.user_data)
        if recursive:
            for child in self.children:
                node.add(child.clone(recursive=True))
        return node


class Mesh(SceneNode):
    """A node referencing one Geometry and one or more Materials."""
    kind = NodeKind.MESH

    def __init__(
        self,
        geometry: Geometry,
        materials: Material | Sequence[Material],
        name: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(name=name, **kwargs)
        self.geometry: Geometry = geometry
        if isinstance(materials, Material):
            materials = [materials]
        self.materials: List[Material] = list(materials)
        self.cast_shadow: bool = True
        self.receive_shadow: bool = True

    @property
    def material(self) -> Optional[Material]:
        return self.materials[0] if self.materials else None

    def material_for_group(self, material_index: Optional[int]) -> Optional[Material]:
        """Material of a group slot; slot 0 when the index is missing or unknown."""
        if material_index is not None and 0 <= material_index < len(self.materials):
            return self.materials[material_index]
        return self.material

    def world_bounding_box(self) -> Box3:
        return self.geometry.get_bounding_box().apply_matrix4(self.world_matrix())

    def _clone_node(self) -> Mesh:
        mesh = Mesh(self.geometry, self.materials, name=self.name)
        mesh.cast_shadow = self.cast_shadow
        mesh.receive_shadow = self.receive_shadow
        return mesh


class Skeleton:
    """Ordered bones with their inverse bind matrices. Shared, never copied."""

    def __init__(
        self,
        bones: Sequence[SceneNode],
        bone_inverses: Optional[Sequence[npt.ArrayLike]] = None
    ) -> None:
        self.bones: List[SceneNode] = list(bones)
        if bone_inverses is None:
            self.bone_inverses = [np.linalg.inv(b.world_matrix()) for b in self.bones]
        else:
            self.bone_inverses = [np.asarray(m, dtype=np.float64) for m in bone_inverses]


class SkinnedMesh(Mesh):
    """A Mesh deformed by a shared Skeleton."""
    kind = NodeKind.SKINNED_MESH

    def __init__(
        self,
        geometry: Geometry,
        materials: Material | Sequence[Material],
        skeleton: Skeleton,
        bind_matrix: Optional[npt.ArrayLike] = None,
        name: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(geometry, materials, name=name, **kwargs)
        self.skeleton: Skeleton = skeleton
        self.bind_matrix: npt.NDArray[np.float64] = np.eye(4) if bind_matrix is None \
            else np.array(bind_matrix, dtype=np.float64)

    def _clone_node(self) -> SkinnedMesh:
        mesh = SkinnedMesh(
            self.geometry, self.materials, self.skeleton,
            bind_matrix=self.bind_matrix.copy(), name=self.name
        )
        mesh.cast_shadow = self.cast_shadow
        mesh.receive_shadow = self.receive_shadow
        return mesh


class InstancedMesh(Mesh):
    """A Mesh drawn once per instance matrix."""
    kind = NodeKind.INSTANCED_MESH

    def __init__(
        self,
        geometry: Geometry,
        materials: Material | Sequence[Material],
        instance_matrices: npt.ArrayLike,
        name: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(geometry, materials, name=name, **kwargs)
        self.instance_matrices: npt.NDArray[np.float64] = \
            np.asarray(instance_matrices, dtype=np.float64).reshape(-1, 4, 4)

    @property
    def instance_count(self) -> int:
        return int(self.instance_matrices.shape[0])

    def world_bounding_box(self) -> Box3:
        box = Box3()
        local = self.geometry.get_bounding_box()
        world = self.world_matrix()
        for m in self.instance_matrices:
            box.union(local.apply_matrix4(world @ m))
        return box

    def _clone_node(self) -> InstancedMesh:
        return InstancedMesh(
            self.geometry, self.materials, self.instance_matrices.copy(), name=self.name
        )


def world_bounding_box(root: SceneNode) -> Box3:
    """World-space box enclosing every mesh under `root`, hidden ones included."""
    box = Box3()
    for mesh in root.iter_meshes():
        if mesh.geometry.disposed:
            continue
        box.union(mesh.world_bounding_box())
    return box
