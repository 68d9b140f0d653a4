"""
Explode Controller
==================
Host-facing entry point of the explode engine.

The host (the Qt viewer, or any frame loop) calls:
    load(root)          once per asset
    set_enabled(flag)   when the user toggles explode
    set_amount(value)   when the slider moves
    tick()              once per frame

`tick` only does work when the amount changed since the last applied value,
or when a freshly enabled session still has to be prepared.
"""
from __future__ import annotations

from typing import Dict, Optional
import logging

from explodeview.config import DEFAULT_AMOUNT
from explodeview.explode.capability import ExplodeCapability, ExplodeReason, detect_capability
from explodeview.explode.picking import PickingIndex
from explodeview.explode.state import ExplodeSession
from explodeview.model.geometry import Geometry
from explodeview.model.scene import SceneNode

logger = logging.getLogger(__name__)

NO_CAPABILITY = ExplodeCapability(can_explode=False, reason=ExplodeReason.SINGLE_PRIMITIVE)


class ExplodeController:
    """Switches between the original root and its exploded clone."""

    def __init__(self, picking_index: Optional[PickingIndex] = None) -> None:
        self.picking_index = picking_index

        self.source: Optional[SceneNode] = None
        self.capability: ExplodeCapability = NO_CAPABILITY
        self.session: Optional[ExplodeSession] = None

        self._enabled: bool = False
        self._amount: float = DEFAULT_AMOUNT
        self._applied_amount: Optional[float] = None
        self._indexed: Dict[int, Geometry] = {}

    # ------------------------------------------------------------------
    # Asset lifecycle
    # ------------------------------------------------------------------

    def load(self, root: SceneNode) -> ExplodeCapability:
        """Take ownership of a freshly loaded root and report its capability."""
        self.unload()
        self.source = root
        root.visible = True

        if self.picking_index is not None:
            for mesh in root.iter_meshes():
                geometry = mesh.geometry
                if geometry.id not in self._indexed:
                    self.picking_index.build(geometry)
                    self._indexed[geometry.id] = geometry

        self.capability = detect_capability(root)
        logger.info(f"Loaded '{root.name}' ({self.capability.mesh_count} explodable meshes).")
        return self.capability

    def unload(self) -> None:
        """Drop the current asset and everything derived from it."""
        self._dispose_session()
        if self.picking_index is not None:
            for geometry in self._indexed.values():
                self.picking_index.dispose(geometry)
        self._indexed.clear()

        if self.source is not None:
            self.source.visible = True
            logger.info(f"Unloaded '{self.source.name}'.")
        self.source = None
        self.capability = NO_CAPABILITY
        self._enabled = False

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def amount(self) -> float:
        return self._amount

    def set_enabled(self, enabled: bool) -> None:
        if enabled == self._enabled:
            return
        if self.source is None:
            logger.warning("Explode toggled without a loaded asset; ignored.")
            return

        self._enabled = enabled
        if enabled:
            self.session = ExplodeSession(self.source, picking_index=self.picking_index)
            self._applied_amount = None
            self.source.visible = False
            logger.info(f"Explode enabled for '{self.source.name}'.")
        else:
            self._dispose_session()
            self.source.visible = True
            logger.info(f"Explode disabled for '{self.source.name}'.")

    def set_amount(self, amount: float) -> None:
        """Set the explode amount, clamped to [0, 1]."""
        self._amount = min(1.0, max(0.0, float(amount)))

    # ------------------------------------------------------------------
    # Frame callback
    # ------------------------------------------------------------------

    def tick(self) -> bool:
        """
        Per-frame update.

        Returns:
            True if part positions changed and the scene needs a redraw.
        """
        if not self._enabled or self.session is None:
            return False
        if self.session.is_prepared and self._applied_amount == self._amount:
            return False

        self.session.apply_offsets(self._amount)
        self._applied_amount = self._amount
        return True

    # ------------------------------------------------------------------
    # Rendering side
    # ------------------------------------------------------------------

    @property
    def visible_root(self) -> Optional[SceneNode]:
        """The root the host should draw: the exploded clone when active."""
        if self._enabled and self.session is not None:
            return self.session.root
        return self.source

    @property
    def part_count(self) -> int:
        if self.session is not None and self.session.is_prepared:
            return self.session.part_count
        return self.capability.mesh_count

    def _dispose_session(self) -> None:
        if self.session is not None:
            self.session.dispose()
            self.session = None
        self._applied_amount = None
