import math

import numpy as np
import pytest

from explodeview.config import FALLBACK_AXIS
from explodeview.explode.partition import PartitionStrategy
from explodeview.explode.state import ExplodeSession, ExplodeState
from explodeview.model.geometry import BufferAttribute, Geometry, POSITION
from explodeview.model.scene import NodeKind, SceneNode

from conftest import (
    box_geometry, grouped_geometry, make_materials, make_mesh, make_root
)


def _positions(session):
    return {m.handle: m.position.copy() for m in session.meshes()}


def test_amount_zero_restores_rest_positions(two_box_root):
    session = ExplodeSession(two_box_root)
    session.apply_offsets(0.0)
    rest = _positions(session)

    session.apply_offsets(1.0)
    assert any(not np.allclose(rest[m.handle], m.position) for m in session.meshes())

    session.restore()
    for mesh in session.meshes():
        assert np.allclose(mesh.position, rest[mesh.handle])


def test_first_call_prepares_even_at_zero(grouped_root):
    session = ExplodeSession(grouped_root)
    assert session.state is ExplodeState.UNPREPARED
    session.apply_offsets(0.0)
    assert session.state is ExplodeState.PREPARED
    assert session.part_count == 3


def test_directions_are_unit_length(grouped_root):
    session = ExplodeSession(grouped_root)
    session.apply_offsets(0.5)
    records = session.records
    assert len(records) == 3
    for record in records.values():
        assert not record.fallback
        assert abs(np.linalg.norm(record.direction) - 1.0) < 1e-6


def test_part_at_the_center_uses_fallback_axis():
    left = make_mesh(box_geometry(), name="left", position=(-1.0, 0.0, 0.0))
    middle = make_mesh(box_geometry(), name="middle")
    right = make_mesh(box_geometry(), name="right", position=(1.0, 0.0, 0.0))
    session = ExplodeSession(make_root(left, middle, right))

    session.apply_offsets(1.0)

    middle_part = next(m for m in session.meshes() if m.name == "middle")
    record = session.record_for(middle_part)
    assert record.fallback
    assert np.array_equal(record.direction, np.array(FALLBACK_AXIS))
    assert np.allclose(middle_part.position, np.array(FALLBACK_AXIS) * session.radius)


def test_preparation_runs_once(grouped_root):
    session = ExplodeSession(grouped_root)
    session.apply_offsets(1.0)
    first_count = session.part_count
    first_geometries = session.created_geometries

    session.apply_offsets(0.3)
    session.prepare()

    assert session.part_count == first_count == 3
    assert len(session.partitions) == 1
    assert [g.id for g in session.created_geometries] == [g.id for g in first_geometries]


def test_material_group_scenario(grouped_root):
    source_mesh = grouped_root.children[0]
    session = ExplodeSession(grouped_root)

    session.apply_offsets(0.0)
    parts = session.meshes()
    assert len(parts) == 3
    assert session.partitions[0].strategy is PartitionStrategy.MATERIAL_GROUPS
    assert sum(p.geometry.vertex_count for p in parts) == source_mesh.geometry.vertex_count

    rest = {p.handle: np.linalg.norm(p.world_bounding_box().center - session.center) for p in parts}
    session.apply_offsets(1.0)
    for part in parts:
        moved = np.linalg.norm(part.world_bounding_box().center - session.center)
        assert moved > rest[part.handle]


def test_mesh_root_is_split():
    source = make_mesh(grouped_geometry(), name="grouped", materials=make_materials(3))
    session = ExplodeSession(source)
    session.apply_offsets(0.0)

    assert session.root.kind is NodeKind.OTHER
    assert session.part_count == 3
    assert session.partitions[0].strategy is PartitionStrategy.MATERIAL_GROUPS
    assert source.parent is None
    assert len(source.geometry.groups) == 3

    rest = {p.handle: p.world_bounding_box().center for p in session.meshes()}
    session.apply_offsets(1.0)
    assert all(not np.allclose(p.world_bounding_box().center, rest[p.handle])
               for p in session.meshes())


def test_single_octant_mesh_moves_as_one_unit():
    triangles = [
        (0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0),
        (0.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.1, 0.1, 0.0),
        (0.0, 0.0, 0.0), (0.2, 0.0, 0.0), (0.0, 0.2, 0.2),
    ]
    geometry = Geometry(name="cluster")
    geometry.set_attribute(POSITION, BufferAttribute(np.asarray(triangles, dtype=np.float32)))
    geometry.compute_bounding_box()

    mesh = make_mesh(geometry, name="cluster")
    session = ExplodeSession(make_root(mesh))
    session.apply_offsets(1.0)

    parts = session.meshes()
    assert len(parts) == 1
    assert session.partitions == []
    assert parts[0].geometry is geometry
    assert session.created_geometries == []
    # Its own center is the assembly center
    assert session.record_for(parts[0]).fallback
    assert np.allclose(parts[0].position, np.array(FALLBACK_AXIS) * session.radius)


def test_two_mesh_scenario(two_box_root):
    session = ExplodeSession(two_box_root)
    session.apply_offsets(0.5)

    # Boxes span x in [-1.5, 1.5], y and z in [-0.5, 0.5]
    radius = 0.5 * math.sqrt(3.0 ** 2 + 1.0 + 1.0)
    assert session.radius == pytest.approx(radius)
    assert np.allclose(session.center, 0.0)

    a = next(m for m in session.meshes() if m.name == "A")
    b = next(m for m in session.meshes() if m.name == "B")
    assert np.allclose(a.position, (-1.0 - 0.5 * radius, 0.0, 0.0))
    assert np.allclose(b.position, (1.0 + 0.5 * radius, 0.0, 0.0))


def test_directions_are_in_parent_space():
    parent = SceneNode(name="turned", scale=(2.0, 2.0, 2.0))
    parent.quaternion = np.array([0.0, 0.0, math.sin(math.pi / 4), math.cos(math.pi / 4)])
    a = make_mesh(box_geometry(), name="A", position=(-1.0, 0.0, 0.0))
    b = make_mesh(box_geometry(), name="B", position=(1.0, 0.0, 0.0))
    parent.add(a, b)
    session = ExplodeSession(make_root(parent))

    session.apply_offsets(1.0)

    b_part = next(m for m in session.meshes() if m.name == "B")
    assert np.allclose(session.record_for(b_part).direction, (1.0, 0.0, 0.0))
    # World displacement follows the rotated, scaled parent: +x local is +y world
    world_center = b_part.world_bounding_box().center
    assert world_center[1] > 2.0


def test_source_graph_is_never_modified(grouped_root):
    source_mesh = grouped_root.children[0]
    materials = list(source_mesh.materials)
    position = source_mesh.position.copy()

    session = ExplodeSession(grouped_root)
    session.apply_offsets(1.0)

    assert grouped_root.children == [source_mesh]
    assert source_mesh.materials == materials
    assert np.array_equal(source_mesh.position, position)
    assert len(source_mesh.geometry.groups) == 3


def test_unsplit_meshes_get_safe_materials(two_box_root):
    source_materials = [m.material for m in two_box_root.children]
    session = ExplodeSession(two_box_root)
    session.prepare()
    for mesh in session.meshes():
        assert mesh.material not in source_materials
        assert mesh.material.on_before_compile is None


def test_nested_split_meshes_all_become_parts():
    outer = make_mesh(grouped_geometry(), name="outer", materials=make_materials(3))
    inner = make_mesh(grouped_geometry(), name="inner", materials=make_materials(3),
                      position=(0.0, 0.0, 5.0))
    outer.add(inner)
    session = ExplodeSession(make_root(outer))

    session.apply_offsets(1.0)

    assert session.part_count == 6
    names = sorted(m.name for m in session.meshes())
    assert names == [f"{n}_group{i}" for n in ("inner", "outer") for i in range(3)]
    holder = next(n for n in session.root.traverse() if n.name == "outer_children")
    assert all(child.name.startswith("inner_group") for child in holder.children)
    assert len(session.records) == 6


def test_dispose_frees_created_objects_only(grouped_root):
    source_mesh = grouped_root.children[0]
    session = ExplodeSession(grouped_root)
    session.apply_offsets(1.0)
    created = session.created_geometries
    safe_materials = [m.material for m in session.meshes()]

    session.dispose()

    assert session.state is ExplodeState.DISPOSED
    assert all(g.disposed for g in created)
    assert all(m.disposed for m in safe_materials)
    assert not source_mesh.geometry.disposed
    assert not any(m.disposed for m in source_mesh.materials)
    assert session.root.children == []

    with pytest.raises(ValueError):
        session.apply_offsets(1.0)
    session.dispose()


def test_empty_scene_is_a_noop():
    session = ExplodeSession(SceneNode(name="empty"))
    session.apply_offsets(1.0)
    assert session.part_count == 0
    assert session.records == {}
