import glm
import pytest

from asset_pipeline import LoadedAsset
from park_catalog import SubjectRecord
from scene_graph import Camera, Node, Scene
from subjects import (
    HoverTracker,
    SubjectRegistry,
    apply_textures,
    material_property_for,
    pick_subject,
    populate_subjects,
)
from conftest import make_box_model, make_texture


def _record(name, x=0.0, z=0.0, **extra):
    return SubjectRecord(name=name, height=2.0, length=6.0, color=0x228822,
                         description=f"{name} description", position=(x, 0.0, z), **extra)


def _camera_looking_at(position, target):
    camera = Camera()
    camera.position = glm.vec3(*position)
    camera.look_at(target)
    return camera


def test_populate_places_one_tagged_group_per_asset():
    scene = Scene()
    registry = SubjectRegistry()
    rex = _record("Rex", x=5.0, z=-10.0, scale=2.0)
    ghost = _record("Ghost", x=-5.0)
    assets = [
        LoadedAsset(rex, model=make_box_model("rex"), textures={"map": make_texture()}),
        LoadedAsset(ghost),
    ]

    placed = populate_subjects(scene, assets, registry)

    assert [g.name for g in placed] == ["Rex", "Ghost"]
    assert list(placed[0].position) == [5.0, 0.0, -10.0]
    assert list(placed[0].children[0].scale) == [2.0, 2.0, 2.0]
    assert placed[1].children[0].name == "Ghost_placeholder"
    assert registry.record_for(placed[0]) is rex
    assert registry.record_for(placed[1]) is ghost
    assert len(registry) == 2
    assert all(group.parent is scene for group in placed)


def test_textures_attached_to_materials_and_released():
    scene = Scene()
    texture = make_texture("skin.png")
    normal = make_texture("skin_n.png")
    asset = LoadedAsset(_record("Rex"), model=make_box_model("rex"), textures={"map": texture, "normalMap": normal})

    populate_subjects(scene, [asset], SubjectRegistry())

    material = next(scene.iter_meshes()).material
    assert material.textures["base_color"] is texture
    assert material.textures["normal"] is normal
    assert material.needs_update
    assert asset.textures is None


def test_unknown_slot_is_kept_verbatim(capsys):
    assert material_property_for("map") == "base_color"
    assert material_property_for("sheenMap") == "sheenMap"
    assert "[warn]" in capsys.readouterr().out


def test_apply_textures_touches_shared_material_once():
    model = make_box_model("a")
    shared = next(model.iter_meshes()).material
    twin = model.add(Node("twin", next(model.iter_meshes()).geometry, shared))

    assert apply_textures(model, {"map": make_texture()}) == 1
    assert twin.material.textures["base_color"] is shared.textures["base_color"]
    assert apply_textures(model, {}) == 0


def test_resolve_walks_up_to_tagged_ancestor():
    registry = SubjectRegistry()
    record = _record("Rex")
    group = Node("Rex")
    inner = group.add(Node("armature"))
    leaf = inner.add(make_box_model("leaf"))

    registry.tag(group, record)

    assert registry.resolve(next(leaf.iter_meshes())) is record
    assert registry.resolve(Node("stray")) is None
    assert registry.resolve(None) is None


def test_pick_subject_hits_placeholder_leaf():
    scene = Scene()
    registry = SubjectRegistry()
    record = _record("Raptor", x=10.0, z=-15.0)
    placed = populate_subjects(scene, [LoadedAsset(record)], registry)

    camera = _camera_looking_at((10.0, 1.0, 10.0), (10.0, 1.0, -15.0))
    assert pick_subject(camera, placed, registry) is record

    camera.look_at((40.0, 1.0, 10.0))
    assert pick_subject(camera, placed, registry) is None


def test_pick_subject_prefers_nearest():
    scene = Scene()
    registry = SubjectRegistry()
    near = _record("Near", z=-10.0)
    far = _record("Far", z=-30.0)
    placed = populate_subjects(scene, [LoadedAsset(far), LoadedAsset(near)], registry)

    camera = _camera_looking_at((0.0, 1.0, 0.0), (0.0, 1.0, -50.0))
    assert pick_subject(camera, placed, registry) is near


def test_hover_tracker_only_reports_changes():
    events = []
    tracker = HoverTracker(events.append)
    rex = _record("Rex")
    raptor = _record("Raptor")

    assert tracker.update(None) is False
    assert tracker.update(rex) is True
    assert tracker.update(rex) is False
    assert tracker.update(raptor) is True
    assert tracker.update(None) is True
    assert tracker.update(None) is False

    assert events == [rex, raptor, None]


@pytest.mark.parametrize("slot,prop", [("normalMap", "normal"), ("aoMap", "occlusion")])
def test_known_slots(slot, prop):
    assert material_property_for(slot) == prop
