"""
The EXPLODE layer separates a loaded asset into movable parts.
It reads and clones the MODEL layer's scene graph and never draws anything.
"""
from explodeview.explode.capability import ExplodeCapability, ExplodeReason, detect_capability
from explodeview.explode.engine import ExplodeController
from explodeview.explode.geometry_utils import IndexRange, extract_sub_geometry, index_dtype_for
from explodeview.explode.materials import SafeMaterialConverter
from explodeview.explode.partition import PartitionResult, PartitionStrategy, partition_mesh
from explodeview.explode.picking import ObbTreePickingIndex, PickingIndex
from explodeview.explode.state import ExplodeRecord, ExplodeSession, ExplodeState

__all__ = [
    "ExplodeCapability",
    "ExplodeController",
    "ExplodeReason",
    "ExplodeRecord",
    "ExplodeSession",
    "ExplodeState",
    "IndexRange",
    "ObbTreePickingIndex",
    "PartitionResult",
    "PartitionStrategy",
    "PickingIndex",
    "SafeMaterialConverter",
    "detect_capability",
    "extract_sub_geometry",
    "index_dtype_for",
    "partition_mesh",
]
