from explodeview.config import SAFE_METALNESS, SAFE_ROUGHNESS
from explodeview.explode.materials import SafeMaterialConverter
from explodeview.model.materials import (
    LambertMaterial, MaterialType, PhongMaterial, PhysicalMaterial, ShaderMaterial, Side,
    StandardMaterial, WHITE
)


def _hook(*args):
    return None


def test_conversion_is_memoized_per_handle():
    converter = SafeMaterialConverter()
    source = PhongMaterial(name="paint", color=(0.8, 0.1, 0.1))

    first = converter.to_safe_material(source)
    second = converter.to_safe_material(source)

    assert first is second
    assert len(converter) == 1
    assert len(converter.created) == 1


def test_copies_with_same_parameters_are_converted_separately():
    converter = SafeMaterialConverter()
    source = PhongMaterial(name="paint")
    twin = source.copy()
    assert twin.handle != source.handle
    assert converter.to_safe_material(source) is not converter.to_safe_material(twin)


def test_non_pbr_becomes_standard_with_safe_defaults():
    texture = object()
    source = LambertMaterial(name="cloth", color=(0.2, 0.4, 0.6), map=texture, side=Side.DOUBLE)

    safe = SafeMaterialConverter().to_safe_material(source)

    assert isinstance(safe, StandardMaterial)
    assert safe.type is MaterialType.STANDARD
    assert safe.color == (0.2, 0.4, 0.6)
    assert safe.map is texture
    assert safe.side is Side.DOUBLE
    assert safe.metalness == SAFE_METALNESS
    assert safe.roughness == SAFE_ROUGHNESS
    assert safe.on_before_compile is None


def test_shader_material_without_color_or_side():
    source = ShaderMaterial(name="custom", on_before_compile=_hook)
    safe = SafeMaterialConverter().to_safe_material(source)
    assert safe.color == WHITE
    assert safe.side is Side.FRONT
    assert safe.on_before_compile is None


def test_pbr_is_copied_with_hook_cleared():
    source = PhysicalMaterial(name="coat", metalness=0.9, roughness=0.1, clearcoat=0.5,
                              on_before_compile=_hook)

    safe = SafeMaterialConverter().to_safe_material(source)

    assert isinstance(safe, PhysicalMaterial)
    assert safe is not source
    assert safe.handle != source.handle
    assert (safe.metalness, safe.roughness, safe.clearcoat) == (0.9, 0.1, 0.5)
    assert safe.on_before_compile is None
    # Source keeps its hook
    assert source.on_before_compile is _hook


def test_source_is_never_mutated():
    source = PhongMaterial(name="paint", color=(0.3, 0.3, 0.3), shininess=12.0, side=Side.BACK)
    before = source.to_dict()
    converter = SafeMaterialConverter()
    converter.to_safe_material(source)
    converter.dispose()
    assert source.to_dict() == before
    assert not source.disposed


def test_list_conversion_preserves_order():
    sources = [PhongMaterial(name="a"), StandardMaterial(name="b"), PhongMaterial(name="c")]
    converter = SafeMaterialConverter()
    safe = converter.to_safe_material(sources)
    assert [m.name for m in safe] == ["a", "b", "c"]
    assert converter.to_safe_material(sources[1]) is safe[1]


def test_dispose_only_touches_created_materials():
    converter = SafeMaterialConverter()
    source = StandardMaterial(name="metal")
    safe = converter.to_safe_material(source)

    converter.dispose()

    assert safe.disposed
    assert not source.disposed
    assert len(converter) == 0
    assert converter.created == []
