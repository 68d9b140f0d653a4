from explodeview.explode.capability import ExplodeReason
from explodeview.explode.engine import ExplodeController
from explodeview.explode.picking import ObbTreePickingIndex

from conftest import make_mesh, make_root


def test_load_reports_capability(two_box_root):
    controller = ExplodeController()
    capability = controller.load(two_box_root)
    assert capability.can_explode
    assert controller.capability is capability
    assert controller.visible_root is two_box_root
    assert controller.part_count == 2


def test_tick_does_nothing_while_disabled(two_box_root):
    controller = ExplodeController()
    controller.load(two_box_root)
    assert controller.tick() is False
    assert controller.session is None


def test_enable_swaps_visible_root(two_box_root):
    controller = ExplodeController()
    controller.load(two_box_root)

    controller.set_enabled(True)
    assert not two_box_root.visible
    assert controller.visible_root is controller.session.root
    assert controller.visible_root is not two_box_root

    controller.set_enabled(False)
    assert two_box_root.visible
    assert controller.session is None
    assert controller.visible_root is two_box_root


def test_tick_applies_only_on_change(two_box_root):
    controller = ExplodeController()
    controller.load(two_box_root)
    controller.set_amount(0.0)
    controller.set_enabled(True)

    # First tick prepares, even at amount 0
    assert controller.tick() is True
    assert controller.session.is_prepared
    assert controller.tick() is False

    controller.set_amount(0.5)
    assert controller.tick() is True
    assert controller.tick() is False

    a = next(m for m in controller.visible_root.iter_meshes() if m.name == "A")
    assert a.position[0] < -1.0


def test_amount_is_clamped():
    controller = ExplodeController()
    controller.set_amount(3.0)
    assert controller.amount == 1.0
    controller.set_amount(-1.0)
    assert controller.amount == 0.0


def test_toggle_without_asset_is_ignored():
    controller = ExplodeController()
    controller.set_enabled(True)
    assert not controller.enabled
    assert controller.visible_root is None


def test_reenable_starts_a_fresh_session(two_box_root):
    controller = ExplodeController()
    controller.load(two_box_root)
    controller.set_enabled(True)
    controller.tick()
    first = controller.session

    controller.set_enabled(False)
    controller.set_enabled(True)
    controller.tick()

    assert controller.session is not first
    assert first.root.children == []
    assert controller.part_count == 2


def test_switching_assets_disposes_previous_session(two_box_root, grouped_root):
    controller = ExplodeController()
    controller.load(grouped_root)
    controller.set_enabled(True)
    controller.tick()
    created = controller.session.created_geometries
    assert controller.part_count == 3

    capability = controller.load(two_box_root)

    assert all(g.disposed for g in created)
    assert not controller.enabled
    assert grouped_root.visible
    assert capability.mesh_count == 2


def test_unload_releases_picking_trees(box):
    index = ObbTreePickingIndex()
    controller = ExplodeController(picking_index=index)
    box.add_group(0, 18, 0)
    box.add_group(18, 18, 0)
    root = make_root(make_mesh(box))

    capability = controller.load(root)
    assert capability.reason is ExplodeReason.NONE
    assert index.built_count == 1

    controller.set_enabled(True)
    controller.tick()
    assert index.built_count == 3
    assert all(g.bounds_tree is not None for g in controller.session.created_geometries)

    controller.unload()
    assert index.built_count == 0
    assert box.bounds_tree is None
    assert controller.source is None
