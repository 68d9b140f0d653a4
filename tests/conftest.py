import itertools

import numpy as np
import pytest

from explodeview.model.geometry import BufferAttribute, Geometry, NORMAL, POSITION, UV
from explodeview.model.materials import PhongMaterial, StandardMaterial
from explodeview.model.scene import Mesh, SceneNode, Skeleton, SkinnedMesh

# Corner id = 4 * xi + 2 * yi + zi
BOX_TRIANGLES = np.array([
    [0, 1, 3], [0, 3, 2],  # -x
    [4, 6, 7], [4, 7, 5],  # +x
    [0, 4, 5], [0, 5, 1],  # -y
    [2, 3, 7], [2, 7, 6],  # +y
    [0, 2, 6], [0, 6, 4],  # -z
    [1, 5, 7], [1, 7, 3],  # +z
], dtype=np.uint32)


def box_geometry(size=1.0, center=(0.0, 0.0, 0.0), name="box", with_extras=True):
    """Indexed cube: 8 shared vertices, 12 triangles."""
    h = size / 2.0
    corners = np.array(list(itertools.product((-h, h), repeat=3)), dtype=np.float32)
    geometry = Geometry(name=name)
    geometry.set_attribute(POSITION, BufferAttribute(corners + np.asarray(center, dtype=np.float32)))
    if with_extras:
        normals = corners / np.linalg.norm(corners, axis=1, keepdims=True)
        geometry.set_attribute(NORMAL, BufferAttribute(normals.astype(np.float32)))
        geometry.set_attribute(UV, BufferAttribute(corners[:, :2] / size + 0.5))
    geometry.set_index(BOX_TRIANGLES.reshape(-1))
    geometry.compute_bounding_box()
    return geometry


def soup_geometry(centers, name="soup"):
    """
    One small triangle around each center; every triangle has its own three
    vertices. Index buffer is 0..3T-1.
    """
    offsets = np.array([[0.1, 0.0, 0.0], [0.0, 0.1, 0.0], [0.0, 0.0, 0.1]], dtype=np.float32)
    centers = np.asarray(centers, dtype=np.float32).reshape(-1, 3)
    positions = (centers[:, np.newaxis, :] + offsets[np.newaxis, :, :]).reshape(-1, 3)
    normals = np.tile(np.array([[0.0, 0.0, 1.0]], dtype=np.float32), (positions.shape[0], 1))

    geometry = Geometry(name=name)
    geometry.set_attribute(POSITION, BufferAttribute(positions))
    geometry.set_attribute(NORMAL, BufferAttribute(normals))
    geometry.set_index(np.arange(positions.shape[0], dtype=np.uint32))
    geometry.compute_bounding_box()
    return geometry


def grouped_geometry():
    """
    Three material groups of 30, 60 and 90 index entries (10, 20, 30
    triangles), clustered around (-2, 0, 0), (2, 0, 0) and (0, 2, 0).
    """
    rng = np.random.default_rng(7)
    clusters = [((-2.0, 0.0, 0.0), 10), ((2.0, 0.0, 0.0), 20), ((0.0, 2.0, 0.0), 30)]
    centers = np.vstack([
        np.asarray(c) + rng.uniform(-0.3, 0.3, size=(n, 3)) for c, n in clusters
    ])
    geometry = soup_geometry(centers, name="grouped")
    geometry.add_group(0, 30, 0)
    geometry.add_group(30, 60, 1)
    geometry.add_group(90, 90, 2)
    return geometry


def make_materials(n):
    return [PhongMaterial(name=f"mat{i}", color=(0.1 * i, 0.5, 0.5)) for i in range(n)]


def make_mesh(geometry, name="mesh", position=(0.0, 0.0, 0.0), materials=None):
    if materials is None:
        materials = [StandardMaterial(name=f"{name}_mat")]
    return Mesh(geometry, materials, name=name, position=position)


def make_skinned_mesh(geometry, name="skinned", materials=None):
    bones = [SceneNode(name="bone0"), SceneNode(name="bone1", position=(0.0, 1.0, 0.0))]
    skeleton = Skeleton(bones)
    if materials is None:
        materials = make_materials(max(1, len(geometry.groups)))
    bind = np.eye(4)
    bind[:3, 3] = (0.0, 0.5, 0.0)
    return SkinnedMesh(geometry, materials, skeleton, bind_matrix=bind, name=name)


def make_root(*children, name="root"):
    root = SceneNode(name=name)
    root.add(*children)
    return root


@pytest.fixture
def box():
    return box_geometry()


@pytest.fixture
def two_box_root():
    """Two unit cubes at x = -1 and x = +1."""
    a = make_mesh(box_geometry(name="a"), name="A", position=(-1.0, 0.0, 0.0))
    b = make_mesh(box_geometry(name="b"), name="B", position=(1.0, 0.0, 0.0))
    return make_root(a, b)


@pytest.fixture
def grouped_root():
    mesh = make_mesh(grouped_geometry(), name="grouped", materials=make_materials(3))
    return make_root(mesh)
