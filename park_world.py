"""Park assembly: lights, ground, fences, props, subjects and runtime direction."""

from __future__ import annotations

import math
import os
import random
from dataclasses import dataclass, field
from typing import Callable, List, Sequence

from asset_pipeline import RECOVERABLE_ERRORS, LoadedAsset, ProgressCallback, preload_all_assets
from camera_travel import CameraTravelController
from ground_query import GroundQuery
from park_catalog import SubjectRecord
from primitives import get_box_model, get_cylinder_model, get_rock_model, get_sphere_model
from raycaster import Raycaster
from scatter import DEFAULT_MIN_SPACING, DEFAULT_PROP_COUNT, ScatterResult, scatter_objects
from scene_graph import AmbientLight, Camera, DirectionalLight, Fog, Geometry, Material, Node, Scene, hex_to_rgb
from subjects import HoverTracker, SubjectRegistry, pick_subject, populate_subjects
from terrain_tiling import DEFAULT_TILES_PER_AXIS, TerrainLayout, create_fallback_ground, tile_ground

BACKGROUND_COLOR = 0x112233
FOG_COLOR = 0x112233
FOG_DENSITY = 0.008  # neblina de selva

AMBIENT_COLOR = 0xffffff
AMBIENT_INTENSITY = 0.6
SUN_COLOR = 0xffccaa
SUN_INTENSITY = 1.0
SUN_POSITION = (50.0, 100.0, 50.0)
SUN_SHADOW_EXTENT = 100.0

FENCE_POST_COUNT = 40
FENCE_RADIUS = 80.0
FENCE_POST_RADIUS = 0.2
FENCE_POST_HEIGHT = 10.0
FENCE_COLOR = 0x555555

GROUND_MODEL_PATH = os.path.join("models", "ground_tile.glb")
PROP_MODEL_PATH = os.path.join("models", "rock.glb")
PROP_FALLBACK_COLOR = 0x777777


def create_scene() -> Scene:
    return Scene(background=hex_to_rgb(BACKGROUND_COLOR))


def setup_lights(scene: Scene) -> None:
    scene.lights.append(AmbientLight(hex_to_rgb(AMBIENT_COLOR), AMBIENT_INTENSITY))
    scene.lights.append(
        DirectionalLight(
            hex_to_rgb(SUN_COLOR),
            SUN_INTENSITY,
            SUN_POSITION,
            cast_shadow=True,
            shadow_extent=SUN_SHADOW_EXTENT,
        )
    )
    scene.fog = Fog(hex_to_rgb(FOG_COLOR), FOG_DENSITY)


def _mesh(name: str, model, color: int, **material_args) -> Node:
    return Node(name, Geometry(*model), Material(name=name, color=hex_to_rgb(color), **material_args))


def build_fences(scene: Scene, ground: GroundQuery) -> List[Node]:
    """Ring of posts around the enclosure, each standing on the measured ground."""
    post_model = get_cylinder_model(FENCE_POST_RADIUS, FENCE_POST_HEIGHT, sectors=12)
    material = Material(name="fence", color=hex_to_rgb(FENCE_COLOR))
    geometry = Geometry(*post_model)

    posts = []
    for i in range(FENCE_POST_COUNT):
        angle = (i / FENCE_POST_COUNT) * math.pi * 2.0
        x = math.cos(angle) * FENCE_RADIUS
        z = math.sin(angle) * FENCE_RADIUS
        base = ground.height_at(x, z)
        if base is None:
            base = 0.0

        post = Node(f"fence_post_{i}", geometry, material)
        post.set_position(x, base + FENCE_POST_HEIGHT / 2.0, z)
        scene.add(post)
        posts.append(post)
    return posts


def build_props(scene: Scene) -> List[Node]:
    gyrosphere = _mesh(
        "gyrosphere", get_sphere_model(1.5, 32, 32), 0xffffff,
        opacity=0.5, transparent=True, roughness=0.0,
    )
    gyrosphere.set_position(5.0, 1.5, 5.0)

    jeep = _mesh("jeep", get_box_model(2.0, 2.0, 4.0), 0xaa0000)
    jeep.set_position(-10.0, 1.0, 10.0)

    # referencia de escala humana: capsula de 1.8 m (0.3 de raio, 1.2 de cilindro)
    human = Node("human_reference")
    human.add(_mesh("human_body", get_cylinder_model(0.3, 1.2, sectors=12), 0xff00cc))
    for name, offset in (("human_top", 0.6), ("human_bottom", -0.6)):
        cap = _mesh(name, get_sphere_model(0.3, 12, 6), 0xff00cc)
        cap.set_position(0.0, offset, 0.0)
        human.add(cap)
    human.set_position(2.0, 0.9, 2.0)

    props = [gyrosphere, jeep, human]
    for prop in props:
        scene.add(prop)
    return props


async def load_terrain(scene: Scene, loader, tiles_per_axis: int = DEFAULT_TILES_PER_AXIS,
                       model_path: str = GROUND_MODEL_PATH) -> TerrainLayout:
    try:
        tile_model = await loader.request_model(model_path)
        layout = tile_ground(scene, tile_model, tiles_per_axis)
    except RECOVERABLE_ERRORS as exc:
        print(f"[warn] Ground tile unavailable ({exc}); using a flat fallback floor")
        return create_fallback_ground(scene)

    print(f"[info] Ground tiled: {len(layout.tiles)} tiles covering {layout.width:.1f} x {layout.depth:.1f} m")
    return layout


def create_fallback_prop() -> Node:
    return _mesh("rock", get_rock_model(0.5), PROP_FALLBACK_COLOR)


async def load_prop_source(loader, model_path: str = PROP_MODEL_PATH) -> Node:
    try:
        return await loader.request_model(model_path)
    except RECOVERABLE_ERRORS as exc:
        print(f"[warn] Prop model unavailable ({exc}); scattering procedural rocks")
        return create_fallback_prop()


@dataclass
class Park:
    scene: Scene
    catalog: Sequence[SubjectRecord]
    assets: List[LoadedAsset]
    registry: SubjectRegistry
    subjects: List[Node]
    terrain: TerrainLayout
    ground: GroundQuery
    scatter: ScatterResult
    fences: List[Node] = field(default_factory=list)
    props: List[Node] = field(default_factory=list)


async def build_park(scene: Scene, catalog: Sequence[SubjectRecord], loader,
                     on_progress: ProgressCallback | None = None, rng: random.Random | None = None,
                     tiles_per_axis: int = DEFAULT_TILES_PER_AXIS, prop_count: int = DEFAULT_PROP_COUNT,
                     min_spacing: float = DEFAULT_MIN_SPACING) -> Park:
    assets = await preload_all_assets(catalog, loader, on_progress)

    setup_lights(scene)
    terrain = await load_terrain(scene, loader, tiles_per_axis)
    ground = GroundQuery(terrain.surfaces)

    fences = build_fences(scene, ground)
    props = build_props(scene)

    registry = SubjectRegistry()
    subjects = populate_subjects(scene, assets, registry)
    loaded = sum(1 for asset in assets if asset.model is not None)
    print(f"[info] Subjects placed: {len(subjects)} ({loaded} models, {len(subjects) - loaded} placeholders)")

    source = await load_prop_source(loader)
    scatter = scatter_objects(scene, source, prop_count, terrain.width, terrain.depth, ground, min_spacing, rng)
    print(f"[info] Props scattered: {scatter.placed}/{scatter.requested} in {scatter.attempts} attempts")

    return Park(
        scene=scene,
        catalog=catalog,
        assets=assets,
        registry=registry,
        subjects=subjects,
        terrain=terrain,
        ground=ground,
        scatter=scatter,
        fences=fences,
        props=props,
    )


class ParkDirector:
    """Per-tick runtime: camera travel requests and centre-of-screen subject hover."""

    def __init__(self, park: Park, camera: Camera,
                 on_subject_hover: Callable[[SubjectRecord | None], None]):
        self.park = park
        self.camera = camera
        self.travel = CameraTravelController(camera)
        self.hover = HoverTracker(on_subject_hover)
        self.raycaster = Raycaster()

    def travel_to(self, index: int):
        if not 0 <= index < len(self.park.subjects):
            print(f"[warn] No subject at index {index}; {len(self.park.subjects)} placed")
            return None
        target = self.park.subjects[index]
        return self.travel.travel_to(target.position)

    def check_intersection(self) -> SubjectRecord | None:
        record = pick_subject(self.camera, self.park.subjects, self.park.registry, self.raycaster)
        self.hover.update(record)
        return record

    def update(self, delta_time: float) -> None:
        self.travel.update(delta_time)
        self.check_intersection()
