"""
Bounding volumes and TRS transform helpers.

Quaternions are stored scalar-last, (x, y, z, w), which is the order
used by glTF and by scipy's Rotation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
from scipy.spatial.transform import Rotation

if TYPE_CHECKING:
    import numpy.typing as npt


IDENTITY_QUATERNION = (0.0, 0.0, 0.0, 1.0)


def _empty_min() -> npt.NDArray[np.float64]:
    return np.full(3, np.inf)


def _empty_max() -> npt.NDArray[np.float64]:
    return np.full(3, -np.inf)


@dataclass
class Box3:
    """
    Axis-aligned bounding box. A freshly created box is empty
    (min = +inf, max = -inf) and grows as points are added.
    """
    min: npt.NDArray[np.float64] = field(default_factory=_empty_min)
    max: npt.NDArray[np.float64] = field(default_factory=_empty_max)

    @staticmethod
    def from_points(points: npt.ArrayLike) -> Box3:
        box = Box3()
        box.expand_by_points(points)
        return box

    @property
    def is_empty(self) -> bool:
        return bool(np.any(self.max < self.min))

    @property
    def center(self) -> npt.NDArray[np.float64]:
        if self.is_empty:
            return np.zeros(3)
        return (self.min + self.max) * 0.5

    @property
    def size(self) -> npt.NDArray[np.float64]:
        if self.is_empty:
            return np.zeros(3)
        return self.max - self.min

    @property
    def diagonal_length(self) -> float:
        return float(np.linalg.norm(self.size))

    @property
    def corners(self) -> npt.NDArray[np.float64]:
        """The 8 corners as an (8, 3) array."""
        lo, hi = self.min, self.max
        return np.array([
            [x, y, z]
            for x in (lo[0], hi[0])
            for y in (lo[1], hi[1])
            for z in (lo[2], hi[2])
        ], dtype=np.float64)

    def copy(self) -> Box3:
        return Box3(min=self.min.copy(), max=self.max.copy())

    def expand_by_points(self, points: npt.ArrayLike) -> Box3:
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if pts.shape[0] == 0:
            return self
        self.min = np.minimum(self.min, pts.min(axis=0))
        self.max = np.maximum(self.max, pts.max(axis=0))
        return self

    def union(self, other: Box3) -> Box3:
        if other.is_empty:
            return self
        self.min = np.minimum(self.min, other.min)
        self.max = np.maximum(self.max, other.max)
        return self

    def apply_matrix4(self, matrix: npt.NDArray[np.float64]) -> Box3:
        """Return the axis-aligned box enclosing this box transformed by `matrix`."""
        if self.is_empty:
            return Box3()
        return Box3.from_points(transform_points(matrix, self.corners))


@dataclass
class Sphere:
    """A bounding sphere."""
    center: npt.NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    radius: float = -1.0

    @property
    def is_empty(self) -> bool:
        return self.radius < 0.0

    @staticmethod
    def from_points(points: npt.ArrayLike, center: npt.ArrayLike | None = None) -> Sphere:
        """
        Sphere around the bounding-box center of `points` (or the given center)
        with the radius of the farthest point.
        """
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if pts.shape[0] == 0:
            return Sphere()
        c = Box3.from_points(pts).center if center is None else np.asarray(center, dtype=np.float64)
        radius = float(np.sqrt(np.max(np.sum((pts - c) ** 2, axis=1))))
        return Sphere(center=c, radius=radius)


def compose_matrix(
    position: npt.ArrayLike,
    quaternion: npt.ArrayLike,
    scale: npt.ArrayLike
) -> npt.NDArray[np.float64]:
    """Build a 4x4 matrix M = T * R * S."""
    m = np.eye(4)
    rot = Rotation.from_quat(np.asarray(quaternion, dtype=np.float64)).as_matrix()
    m[:3, :3] = rot * np.asarray(scale, dtype=np.float64)[np.newaxis, :]
    m[:3, 3] = np.asarray(position, dtype=np.float64)
    return m


def decompose_matrix(
    matrix: npt.ArrayLike
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Split an affine 4x4 matrix into (position, quaternion, scale).
    Shear is not representable and is dropped.
    """
    m = np.asarray(matrix, dtype=np.float64)
    position = m[:3, 3].copy()
    basis = m[:3, :3]
    scale = np.linalg.norm(basis, axis=0)

    # A negative determinant means one axis is mirrored; put it on X
    if np.linalg.det(basis) < 0.0:
        scale[0] = -scale[0]

    safe = np.where(np.abs(scale) < 1e-15, 1.0, scale)
    rot = basis / safe[np.newaxis, :]
    quaternion = Rotation.from_matrix(rot).as_quat()
    return position, quaternion, scale


def transform_points(matrix: npt.ArrayLike, points: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Apply an affine 4x4 matrix to an (N, 3) array of points."""
    m = np.asarray(matrix, dtype=np.float64)
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    return pts @ m[:3, :3].T + m[:3, 3]


def axis_rotation(axis: str, angle_rad: float) -> npt.NDArray[np.float64]:
    """Quaternion (x, y, z, w) for a rotation about a principal axis."""
    if axis not in ("x", "y", "z"):
        raise ValueError(f"Unknown axis '{axis}'.")
    return Rotation.from_euler(axis, angle_rad).as_quat()


def multiply_quaternions(a: npt.ArrayLike, b: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Hamilton product a * b (apply b first, then a)."""
    return (Rotation.from_quat(a) * Rotation.from_quat(b)).as_quat()
