import numpy as np

from explodeview.app.ui.render_utils import (
    collect_draw_items, is_effectively_visible, material_texture, material_to_actor_kwargs
)
from explodeview.explode.state import ExplodeSession
from explodeview.model.materials import BasicMaterial, PhongMaterial, Side, StandardMaterial
from explodeview.model.polydata import geometry_to_polydata, triangles_to_faces
from explodeview.model.geometry import Geometry
from explodeview.model.scene import InstancedMesh, SceneNode

from conftest import box_geometry, make_materials, make_mesh, make_root


def test_triangles_to_faces():
    faces = triangles_to_faces(np.array([[0, 1, 2], [2, 3, 0]]))
    assert faces.tolist() == [3, 0, 1, 2, 3, 2, 3, 0]


def test_geometry_to_polydata(box):
    pd = geometry_to_polydata(box)
    assert pd.n_points == 8
    assert pd.n_cells == 12
    assert pd.active_texture_coordinates is not None
    assert geometry_to_polydata(Geometry()).n_cells == 0


def test_draw_items_follow_hierarchy_and_instances(box):
    hidden_group = SceneNode(name="hidden")
    hidden_group.visible = False
    hidden_group.add(make_mesh(box_geometry(), name="inside"))

    instanced = InstancedMesh(box_geometry(), make_materials(1), np.stack([np.eye(4)] * 3))
    disposed = make_mesh(box_geometry(), name="gone")
    disposed.geometry.dispose()

    root = make_root(make_mesh(box, name="plain", position=(1.0, 0.0, 0.0)), hidden_group,
                     instanced, disposed)
    items = collect_draw_items(root)

    keys = [item.key for item in items]
    assert len(keys) == len(set(keys)) == 5
    plain = items[0]
    assert plain.visible and np.allclose(plain.matrix[:3, 3], (1.0, 0.0, 0.0))
    assert not items[1].visible
    assert not is_effectively_visible(items[1].mesh)
    assert [k[1] for k in keys[2:]] == [0, 1, 2]


def test_actor_kwargs():
    standard = material_to_actor_kwargs(StandardMaterial(metalness=0.7, roughness=0.2))
    assert standard["pbr"] is True
    assert standard["metallic"] == 0.7
    assert standard["culling"] == "back"

    double = material_to_actor_kwargs(PhongMaterial(side=Side.DOUBLE, opacity=0.5, transparent=True))
    assert "culling" not in double
    assert "pbr" not in double
    assert double["opacity"] == 0.5

    assert material_to_actor_kwargs(BasicMaterial(side=Side.BACK))["culling"] == "front"
    assert material_to_actor_kwargs(None)["color"] == "white"


def test_material_texture():
    assert material_texture(None) is None
    assert material_texture(BasicMaterial()) is None
    image = np.zeros((4, 4, 3), dtype=np.uint8)
    assert material_texture(BasicMaterial(map=image)) is not None


def test_draw_item_signature_changes_with_safe_materials(two_box_root):
    session = ExplodeSession(two_box_root)
    before = {item.key: item.signature for item in collect_draw_items(session.root)}
    session.prepare()
    after = {item.key: item.signature for item in collect_draw_items(session.root)}

    assert before.keys() == after.keys()
    for key, (geometry_id, material_handle) in after.items():
        assert geometry_id == before[key][0]
        assert material_handle != before[key][1]
