import asyncio
import random

import glm
import pytest

from camera_travel import TRAVEL_OFFSET
from ground_query import GroundQuery
from park_catalog import build_catalog
from park_world import (
    FENCE_POST_COUNT,
    FENCE_POST_HEIGHT,
    GROUND_MODEL_PATH,
    ParkDirector,
    build_fences,
    build_park,
    create_scene,
)
from primitives import get_plane_model
from scene_graph import AmbientLight, Camera, DirectionalLight, Geometry, Material, Node, Scene
from conftest import FakeLoader, make_box_model, make_tile_model

ENTRIES = [
    {"name": "Rex", "height": 6, "length": 12, "color": 0x5c4033, "desc": "big",
     "pos": {"x": 0, "z": -30}, "model": "models/rex.glb"},
    {"name": "Raptor", "height": 1.8, "length": 3, "color": 0x6e7f80, "desc": "fast",
     "pos": {"x": 10, "z": -15}, "model": "models/raptor.glb"},
    {"name": "Trike", "height": 3, "length": 9, "color": 0x5c5c5c, "desc": "horns",
     "pos": {"x": -20, "z": -20}, "model": "models/trike.glb"},
]


def _loader(ground=True, failing=("models/raptor.glb",)):
    models = {
        "models/rex.glb": lambda: make_box_model("rex", 4.0, 6.0, 12.0),
        "models/raptor.glb": lambda: make_box_model("raptor"),
        "models/trike.glb": lambda: make_box_model("trike", 3.0, 3.0, 9.0),
    }
    for path in failing:
        models[path] = OSError("broken download")
    if ground:
        models[GROUND_MODEL_PATH] = lambda: make_tile_model(40.0)
    return FakeLoader(models=models)


def _build(loader, **kwargs):
    events = []
    kwargs.setdefault("rng", random.Random(11))
    kwargs.setdefault("prop_count", 25)
    park = asyncio.run(build_park(create_scene(), build_catalog(ENTRIES), loader,
                                  on_progress=lambda p, m: events.append((p, m)), **kwargs))
    return park, events


def test_three_subjects_with_one_failure():
    park, events = _build(_loader())

    assert [p for p, _ in events] == [33, 67, 100]
    assert events[1][1] == "Failed to load Raptor, using placeholder"

    assert [g.name for g in park.subjects] == ["Rex", "Raptor", "Trike"]
    assert park.subjects[1].children[0].name == "Raptor_placeholder"
    assert park.assets[0].model is not None and park.assets[1].model is None

    tagged = [park.registry.record_for(g).name for g in park.subjects]
    assert tagged == ["Rex", "Raptor", "Trike"]


def test_scene_environment():
    park, _ = _build(_loader())
    scene = park.scene

    assert any(isinstance(light, AmbientLight) for light in scene.lights)
    sun = next(light for light in scene.lights if isinstance(light, DirectionalLight))
    assert sun.position == (50.0, 100.0, 50.0)
    assert scene.fog.density == pytest.approx(0.008)
    assert len(park.fences) == FENCE_POST_COUNT
    assert {p.name for p in park.props} == {"gyrosphere", "jeep", "human_reference"}


def test_tiled_ground_and_scatter():
    park, _ = _build(_loader(), tiles_per_axis=3)

    assert not park.terrain.is_fallback
    assert len(park.terrain.tiles) == 9
    assert park.scatter.requested == 25
    assert 0 < park.scatter.placed <= 25
    assert park.scatter.attempts <= 25 * 10
    # sem rock.glb: pedras procedurais
    assert all(node.name.startswith("prop_") for node in park.scatter.nodes)


def test_missing_ground_tile_uses_fallback_floor():
    park, _ = _build(_loader(ground=False))

    assert park.terrain.is_fallback
    assert park.ground.height_at(0.0, 0.0) == pytest.approx(0.0)
    assert park.scatter.placed > 0


def test_fence_posts_stand_on_ground():
    scene = Scene()
    hill = Node("hill", Geometry(*get_plane_model(400.0, 400.0)), Material())
    hill.set_position(0.0, 2.0, 0.0)
    posts = build_fences(scene, GroundQuery([hill]))

    assert len(posts) == FENCE_POST_COUNT
    for post in posts:
        assert post.position[1] == pytest.approx(2.0 + FENCE_POST_HEIGHT / 2.0)

    bare = build_fences(Scene(), GroundQuery([]))
    assert bare[0].position[1] == pytest.approx(FENCE_POST_HEIGHT / 2.0)


def test_director_travel_and_hover():
    park, _ = _build(_loader())
    camera = Camera()
    camera.position = glm.vec3(0.0, 2.0, 10.0)
    hovered = []
    director = ParkDirector(park, camera, hovered.append)

    end = director.travel_to(1)
    assert end == glm.vec3(10.0, 0.0, -15.0) + glm.vec3(*TRAVEL_OFFSET)

    for _ in range(60):
        director.update(0.05)

    assert not director.travel.is_active
    # a camera termina olhando para o Raptor
    assert hovered and hovered[-1].name == "Raptor"
    count = len(hovered)
    director.update(0.05)
    assert len(hovered) == count


def test_director_ignores_unknown_subject_index(capsys):
    park, _ = _build(_loader())
    camera = Camera()
    director = ParkDirector(park, camera, lambda record: None)

    assert director.travel_to(len(park.subjects)) is None
    assert director.travel_to(-1) is None
    assert not director.travel.is_active
    assert "[warn]" in capsys.readouterr().out
