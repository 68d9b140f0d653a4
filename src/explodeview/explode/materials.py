"""
Material Safety Converter
=========================
Produces render-safe materials for exploded parts.

A safe material is physically based and carries no custom shader hook, so
asset-specific shader code never runs against split geometry. Conversions are
memoized per source material handle; the source is never modified or
disposed.
"""
from __future__ import annotations

from typing import Dict, List, Sequence, Union, overload
import logging

from explodeview.config import SAFE_METALNESS, SAFE_ROUGHNESS
from explodeview.model.materials import Material, StandardMaterial, WHITE

logger = logging.getLogger(__name__)


class SafeMaterialConverter:
    """Converts and caches materials for one exploded session."""

    def __init__(self) -> None:
        self._cache: Dict[int, Material] = {}
        self._created: List[Material] = []

    @property
    def created(self) -> List[Material]:
        """Materials created by this converter (the only ones it disposes)."""
        return list(self._created)

    def __len__(self) -> int:
        return len(self._cache)

    @overload
    def to_safe_material(self, material: Material) -> Material: ...

    @overload
    def to_safe_material(self, material: Sequence[Material]) -> List[Material]: ...

    def to_safe_material(
        self, material: Union[Material, Sequence[Material]]
    ) -> Union[Material, List[Material]]:
        if isinstance(material, Material):
            return self._convert(material)
        return [self._convert(m) for m in material]

    def _convert(self, source: Material) -> Material:
        cached = self._cache.get(source.handle)
        if cached is not None:
            return cached

        if source.is_pbr:
            safe = source.copy()
            safe.on_before_compile = None
        else:
            safe = StandardMaterial(
                name=source.name,
                color=tuple(source.color) if source.color is not None else WHITE,
                map=source.map,
                metalness=SAFE_METALNESS,
                roughness=SAFE_ROUGHNESS,
            )
            if source.side is not None:
                safe.side = source.side

        self._cache[source.handle] = safe
        self._created.append(safe)
        logger.debug(
            f"Converted material #{source.handle} ({source.type}) to safe material #{safe.handle}."
        )
        return safe

    def dispose(self) -> None:
        """Dispose every converter-created material and forget the cache."""
        for material in self._created:
            material.dispose()
        if self._created:
            logger.debug(f"Disposed {len(self._created)} safe materials.")
        self._created.clear()
        self._cache.clear()
