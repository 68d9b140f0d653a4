"""
Material Descriptors
====================
Appearance parameters of meshes. These classes hold PARAMETERS only; how a
material is drawn is up to the rendering side (see explodeview.app.ui).

Every material gets a stable integer `handle` at construction. Caches key on
the handle, never on object identity.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from abc import ABC, abstractmethod
from enum import IntEnum, StrEnum
from typing import Any, Callable, Dict, Optional, Tuple
import itertools
import logging

logger = logging.getLogger(__name__)

_material_handles = itertools.count(1)

Color = Tuple[float, float, float]
WHITE: Color = (1.0, 1.0, 1.0)


class MaterialType(StrEnum):
    BASIC = "basic"
    LAMBERT = "lambert"
    PHONG = "phong"
    STANDARD = "standard"
    PHYSICAL = "physical"
    SHADER = "shader"


class Side(IntEnum):
    FRONT = 0
    BACK = 1
    DOUBLE = 2


def _next_handle() -> int:
    return next(_material_handles)


@dataclass(kw_only=True, eq=False)
class Material(ABC):
    """
    Abstract base class for material descriptors.

    `color` and `side` are optional: None means the material does not carry
    the setting at all (e.g. shader materials).
    `on_before_compile` is a custom shader injection hook supplied by the asset.
    """
    name: str = ""
    color: Optional[Color] = None
    map: Any = None
    side: Optional[Side] = None
    opacity: float = 1.0
    transparent: bool = False
    on_before_compile: Optional[Callable[..., Any]] = None

    handle: int = field(default_factory=_next_handle)
    disposed: bool = False

    @property
    @abstractmethod
    def type(self) -> MaterialType:
        pass

    @property
    def is_pbr(self) -> bool:
        return self.type in (MaterialType.STANDARD, MaterialType.PHYSICAL)

    def copy(self) -> Material:
        """Shallow copy (texture references are shared) with a fresh handle."""
        return replace(self, handle=_next_handle(), disposed=False)

    def dispose(self) -> None:
        self.disposed = True
        logger.debug(f"Disposed material #{self.handle} '{self.name}'.")

    def to_dict(self) -> Dict[str, Any]:
        """Base serialization method. Texture references and hooks are not serialized."""
        return {
            "name": self.name,
            "type": self.type.value,
            "color": list(self.color) if self.color is not None else None,
            "side": int(self.side) if self.side is not None else None,
            "opacity": self.opacity,
            "transparent": self.transparent,
        }

    @staticmethod
    def _base_kwargs(data: Dict[str, Any]) -> Dict[str, Any]:
        color = data.get("color")
        side = data.get("side")
        return {
            "name": data.get("name", ""),
            "color": tuple(color) if color is not None else None,
            "side": Side(side) if side is not None else None,
            "opacity": data.get("opacity", 1.0),
            "transparent": data.get("transparent", False),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Material:
        """Factory method to deserialize into correct subclass."""
        mat_type = MaterialType(data.get("type", MaterialType.STANDARD))
        kwargs = Material._base_kwargs(data)
        if mat_type == MaterialType.BASIC:
            return BasicMaterial(**kwargs)
        elif mat_type == MaterialType.LAMBERT:
            return LambertMaterial(**kwargs)
        elif mat_type == MaterialType.PHONG:
            return PhongMaterial(shininess=data.get("shininess", 30.0), **kwargs)
        elif mat_type == MaterialType.STANDARD:
            return StandardMaterial(
                metalness=data.get("metalness", 0.0),
                roughness=data.get("roughness", 1.0),
                **kwargs
            )
        elif mat_type == MaterialType.PHYSICAL:
            return PhysicalMaterial(
                metalness=data.get("metalness", 0.0),
                roughness=data.get("roughness", 1.0),
                clearcoat=data.get("clearcoat", 0.0),
                **kwargs
            )
        elif mat_type == MaterialType.SHADER:
            return ShaderMaterial(
                vertex_shader=data.get("vertex_shader", ""),
                fragment_shader=data.get("fragment_shader", ""),
                **kwargs
            )
        else:
            raise ValueError(f"Unknown material type: {mat_type}")


@dataclass(kw_only=True, eq=False)
class BasicMaterial(Material):
    """Unlit material."""
    color: Optional[Color] = WHITE
    side: Optional[Side] = Side.FRONT

    @property
    def type(self) -> MaterialType:
        return MaterialType.BASIC


@dataclass(kw_only=True, eq=False)
class LambertMaterial(Material):
    """Diffuse-only lit material."""
    color: Optional[Color] = WHITE
    side: Optional[Side] = Side.FRONT

    @property
    def type(self) -> MaterialType:
        return MaterialType.LAMBERT


@dataclass(kw_only=True, eq=False)
class PhongMaterial(Material):
    """Blinn-Phong material with specular highlights."""
    color: Optional[Color] = WHITE
    side: Optional[Side] = Side.FRONT
    shininess: float = 30.0

    @property
    def type(self) -> MaterialType:
        return MaterialType.PHONG

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base["shininess"] = self.shininess
        return base


@dataclass(kw_only=True, eq=False)
class StandardMaterial(Material):
    """Metal/rough physically based material."""
    color: Optional[Color] = WHITE
    side: Optional[Side] = Side.FRONT
    metalness: float = 0.0
    roughness: float = 1.0
    emissive: Color = (0.0, 0.0, 0.0)

    @property
    def type(self) -> MaterialType:
        return MaterialType.STANDARD

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "metalness": self.metalness,
            "roughness": self.roughness,
        })
        return base


@dataclass(kw_only=True, eq=False)
class PhysicalMaterial(StandardMaterial):
    """StandardMaterial extended with a clear-coat layer."""
    clearcoat: float = 0.0

    @property
    def type(self) -> MaterialType:
        return MaterialType.PHYSICAL

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base["clearcoat"] = self.clearcoat
        return base


@dataclass(kw_only=True, eq=False)
class ShaderMaterial(Material):
    """Asset-supplied shader program; has no color or side of its own."""
    vertex_shader: str = ""
    fragment_shader: str = ""
    uniforms: Dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> MaterialType:
        return MaterialType.SHADER

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "vertex_shader": self.vertex_shader,
            "fragment_shader": self.fragment_shader,
        })
        return base
