"""
Geometry Buffers
================
Vertex attribute buffers, index buffer and material groups of a mesh.

Every attribute is an (N, item_size) array; all attributes of one geometry
share the same N (the vertex count). The optional index buffer is a flat
array of vertex ids, three per triangle.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING
import itertools
import logging

import numpy as np

from explodeview.model.transforms import Box3, Sphere

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)

_geometry_ids = itertools.count(1)

POSITION = "position"
NORMAL = "normal"
UV = "uv"
SKIN_INDEX = "skinIndex"
SKIN_WEIGHT = "skinWeight"


@dataclass
class BufferAttribute:
    """A named per-vertex buffer."""
    array: npt.NDArray[Any]
    normalized: bool = False

    def __post_init__(self) -> None:
        arr = np.asarray(self.array)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        if arr.ndim != 2:
            raise ValueError(f"Expected a 2D attribute array, got shape {arr.shape}.")
        self.array = arr

    @property
    def count(self) -> int:
        return int(self.array.shape[0])

    @property
    def item_size(self) -> int:
        return int(self.array.shape[1])


@dataclass
class Group:
    """A contiguous index range drawn with one material slot."""
    start: int
    count: int
    material_index: Optional[int] = 0


@dataclass(eq=False)
class Geometry:
    """
    Vertex/index buffers of one mesh.

    `bounds_tree` is owned by the picking collaborator
    (see explodeview.explode.picking); the geometry only stores it.
    """
    attributes: Dict[str, BufferAttribute] = field(default_factory=dict)
    index: Optional[npt.NDArray[np.integer]] = None
    groups: List[Group] = field(default_factory=list)
    name: str = ""

    bounding_box: Optional[Box3] = None
    bounding_sphere: Optional[Sphere] = None
    bounds_tree: Any = None
    disposed: bool = False
    id: int = field(default_factory=lambda: next(_geometry_ids))

    def __post_init__(self) -> None:
        counts = {attr.count for attr in self.attributes.values()}
        if len(counts) > 1:
            raise ValueError(f"Attributes have mismatching vertex counts: {sorted(counts)}.")
        if self.index is not None:
            self.index = np.asarray(self.index).reshape(-1)

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    @property
    def vertex_count(self) -> int:
        for attr in self.attributes.values():
            return attr.count
        return 0

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def get_attribute(self, name: str) -> Optional[BufferAttribute]:
        return self.attributes.get(name)

    def set_attribute(self, name: str, attribute: BufferAttribute) -> None:
        if self.attributes and attribute.count != self.vertex_count:
            raise ValueError(
                f"Attribute '{name}' has {attribute.count} vertices, geometry has {self.vertex_count}."
            )
        self.attributes[name] = attribute

    def set_index(self, index: Optional[npt.ArrayLike]) -> None:
        self.index = None if index is None else np.asarray(index).reshape(-1)

    def add_group(self, start: int, count: int, material_index: Optional[int] = 0) -> None:
        self.groups.append(Group(start=start, count=count, material_index=material_index))

    def validate(self) -> None:
        """Raise ValueError if index values point outside the vertex buffers."""
        if self.index is None or self.index.size == 0:
            return
        lo, hi = int(self.index.min()), int(self.index.max())
        if lo < 0 or hi >= self.vertex_count:
            raise ValueError(
                f"Index values span [{lo}, {hi}] but geometry has {self.vertex_count} vertices."
            )

    # ------------------------------------------------------------------
    # Triangles
    # ------------------------------------------------------------------

    @property
    def draw_count(self) -> int:
        """Length of the (possibly implicit) index sequence."""
        return int(self.index.size) if self.index is not None else self.vertex_count

    def index_sequence(self) -> npt.NDArray[np.int64]:
        """The index buffer, or 0..N-1 for non-indexed geometry."""
        if self.index is not None:
            return self.index.astype(np.int64)
        return np.arange(self.vertex_count, dtype=np.int64)

    @property
    def triangle_count(self) -> int:
        return self.draw_count // 3

    def triangle_indices(self) -> npt.NDArray[np.int64]:
        """Vertex ids as a (T, 3) array; a trailing partial triangle is ignored."""
        seq = self.index_sequence()
        n = (seq.size // 3) * 3
        return seq[:n].reshape(-1, 3)

    # ------------------------------------------------------------------
    # Bounds
    # ------------------------------------------------------------------

    def compute_bounding_box(self) -> Box3:
        position = self.attributes.get(POSITION)
        if position is None:
            self.bounding_box = Box3()
        else:
            self.bounding_box = Box3.from_points(position.array[:, :3])
        return self.bounding_box

    def compute_bounding_sphere(self) -> Sphere:
        position = self.attributes.get(POSITION)
        if position is None:
            self.bounding_sphere = Sphere()
        else:
            self.bounding_sphere = Sphere.from_points(position.array[:, :3])
        return self.bounding_sphere

    def get_bounding_box(self) -> Box3:
        if self.bounding_box is None:
            self.compute_bounding_box()
        return self.bounding_box

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Release the buffers. The geometry must not be drawn afterwards."""
        if self.disposed:
            return
        self.attributes = {}
        self.index = None
        self.groups = []
        self.bounding_box = None
        self.bounding_sphere = None
        self.disposed = True
        logger.debug(f"Disposed geometry #{self.id} '{self.name}'.")
