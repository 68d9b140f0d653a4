"""
Geometry Buffer Utilities
=========================
Attribute-preserving extraction of a sub-geometry from a source geometry.

A selection is either an IndexRange into the source's index sequence (the
index buffer, or 0..N-1 for non-indexed geometry) or an explicit sequence of
source vertex ids. In both cases the selected ids are read as triangles and
become the index buffer of the result, remapped onto a compacted vertex set.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union, overload, Literal, TYPE_CHECKING
import logging

import numpy as np

from explodeview.config import UINT16_MAX_VERTICES
from explodeview.model.geometry import BufferAttribute, Geometry, POSITION

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexRange:
    """A contiguous range of the source index sequence."""
    start: int
    count: int


Selection = Union[IndexRange, Sequence[int], "npt.NDArray[np.integer]"]


def index_dtype_for(vertex_count: int) -> np.dtype:
    """Narrowest index type able to address `vertex_count` vertices."""
    return np.dtype(np.uint16) if vertex_count <= UINT16_MAX_VERTICES else np.dtype(np.uint32)


def resolve_selection(source: Geometry, selection: Selection) -> npt.NDArray[np.int64]:
    """Turn a selection into the flat list of source vertex ids it refers to."""
    if isinstance(selection, IndexRange):
        sequence = source.index_sequence()
        start = max(0, selection.start)
        end = min(sequence.size, selection.start + selection.count)
        return sequence[start:end]
    return np.asarray(selection, dtype=np.int64).reshape(-1)


def compaction_map(
    selected: npt.NDArray[np.int64]
) -> tuple[npt.NDArray[np.int64], npt.NDArray[np.int64]]:
    """
    Build the source -> compacted vertex mapping in first-seen order.

    Returns:
        old_ids: Source vertex id for each compacted vertex (length = new vertex count).
        new_index: `selected` rewritten in compacted ids.
    """
    if selected.size == 0:
        empty = np.zeros(0, dtype=np.int64)
        return empty, empty

    unique, first_seen, inverse = np.unique(selected, return_index=True, return_inverse=True)
    order = np.argsort(first_seen, kind="stable")
    rank = np.empty_like(order)
    rank[order] = np.arange(order.size)

    old_ids = unique[order]
    new_index = rank[inverse.reshape(-1)]
    return old_ids.astype(np.int64), new_index.astype(np.int64)


@overload
def extract_sub_geometry(
    source: Geometry, selection: Selection, return_map: Literal[False] = ...
) -> Geometry: ...


@overload
def extract_sub_geometry(
    source: Geometry, selection: Selection, return_map: Literal[True]
) -> tuple[Geometry, npt.NDArray[np.int64]]: ...


def extract_sub_geometry(source, selection, return_map=False):
    """
    Build a standalone geometry holding only the selected triangles.

    Args:
        source: Geometry to read from. Never modified.
        selection: IndexRange into the source index sequence, or explicit vertex ids.
        return_map: Also return the compaction map (source id per new vertex).

    Returns:
        The new geometry (and the compaction map if requested).

    Raises:
        ValueError: If the source has no position attribute.
    """
    if not source.has_attribute(POSITION):
        raise ValueError(f"Geometry #{source.id} '{source.name}' has no position attribute.")

    selected = resolve_selection(source, selection)
    if selected.size and (selected.min() < 0 or selected.max() >= source.vertex_count):
        raise ValueError(
            f"Selection references vertices outside [0, {source.vertex_count}) "
            f"of geometry #{source.id}."
        )

    old_ids, new_index = compaction_map(selected)

    result = Geometry(name=source.name)
    for name, attr in source.attributes.items():
        result.set_attribute(
            name,
            BufferAttribute(array=attr.array[old_ids].copy(), normalized=attr.normalized)
        )
    result.set_index(new_index.astype(index_dtype_for(old_ids.size)))

    result.compute_bounding_box()
    result.compute_bounding_sphere()

    logger.debug(
        f"Extracted {old_ids.size} of {source.vertex_count} vertices "
        f"({new_index.size // 3} triangles) from geometry #{source.id}."
    )

    if return_map:
        return result, old_ids
    return result
