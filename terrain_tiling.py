"""Seamless ground from one repeated tile model.

Tiles are laid on a regular grid whose step is the tile footprint minus a small
overlap, so neighbours always overlap. Every other tile is mirrored on each
axis (checkerboard) to hide the repetition of the tile texture.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from geometry_utils import get_bounding_box_center, get_bounding_box_size
from primitives import get_plane_model
from scene_graph import Geometry, Material, Node, Scene, hex_to_rgb

GROUND_TILE_OVERLAP = 0.1
DEFAULT_TILES_PER_AXIS = 5
FALLBACK_GROUND_SIZE = 500.0
FALLBACK_GROUND_COLOR = 0x1a4010
FALLBACK_GROUND_ROUGHNESS = 0.8


@dataclass
class TerrainLayout:
    surfaces: List[Node]
    tiles: List[Node] = field(default_factory=list)
    width: float = 0.0
    depth: float = 0.0
    step: tuple = (0.0, 0.0)
    is_fallback: bool = False


def tile_indices(count: int) -> range:
    """Indices centred on the origin: 3 -> -1..1, 4 -> -2..1."""
    return range(-(count // 2), count - count // 2)


def mirror_scale(index: int) -> float:
    return -1.0 if abs(index) % 2 else 1.0


def mirror_material_directions(model: Node, scale_x: float, scale_z: float) -> None:
    """Flip the normal-map direction so lighting matches the mirrored geometry."""
    for mesh in model.iter_meshes():
        material = mesh.material
        if material is None or "normal" not in material.textures:
            continue
        nx, ny = material.normal_scale
        material.normal_scale = (nx * scale_x, ny * scale_z)
        material.needs_update = True


def tile_ground(scene: Scene, tile_model: Node, tiles_per_axis: int = DEFAULT_TILES_PER_AXIS,
                overlap: float = GROUND_TILE_OVERLAP, surfaces: List[Node] | None = None) -> TerrainLayout:
    if tiles_per_axis < 1:
        raise ValueError(f"tiles_per_axis must be >= 1, got {tiles_per_axis}")

    bbox = tile_model.compute_bounding_box()
    if bbox is None:
        raise ValueError("Ground tile model has no geometry")

    size = get_bounding_box_size(bbox)
    center = get_bounding_box_center(bbox)
    footprint_x, footprint_z = float(size[0]), float(size[2])
    step_x = footprint_x - overlap
    step_z = footprint_z - overlap
    if step_x <= 0.0 or step_z <= 0.0:
        raise ValueError(f"Ground tile footprint {footprint_x:.3f}x{footprint_z:.3f} is not larger than the overlap {overlap}")

    surfaces = [] if surfaces is None else surfaces
    tiles = []
    # grade par: indices -n/2..n/2-1, desloca meio passo para centralizar na origem
    shift = 0.0 if tiles_per_axis % 2 else 0.5

    for i in tile_indices(tiles_per_axis):
        for j in tile_indices(tiles_per_axis):
            scale_x = mirror_scale(i)
            scale_z = mirror_scale(j)

            model = tile_model.clone(clone_materials=True)
            # centraliza o modelo no pivo do tile para o espelhamento nao deslocar o tile
            model.position = model.position - [center[0], 0.0, center[2]]
            mirror_material_directions(model, scale_x, scale_z)

            tile = Node(f"ground_tile_{i}_{j}")
            tile.set_position((i + shift) * step_x, 0.0, (j + shift) * step_z)
            tile.set_scale(scale_x, 1.0, scale_z)
            tile.add(model)

            scene.add(tile)
            tiles.append(tile)
            surfaces.extend(tile.iter_meshes())

    return TerrainLayout(
        surfaces=surfaces,
        tiles=tiles,
        width=step_x * (tiles_per_axis - 1) + footprint_x,
        depth=step_z * (tiles_per_axis - 1) + footprint_z,
        step=(step_x, step_z),
    )


def create_fallback_ground(scene: Scene, size: float = FALLBACK_GROUND_SIZE,
                           surfaces: List[Node] | None = None) -> TerrainLayout:
    """Single flat floor used when the ground tile cannot be loaded."""
    geometry = Geometry(*get_plane_model(size, size, uv_repeat=size / 10.0))
    material = Material(
        name="fallback_ground",
        color=hex_to_rgb(FALLBACK_GROUND_COLOR),
        roughness=FALLBACK_GROUND_ROUGHNESS,
    )
    floor = Node("fallback_ground", geometry, material)
    scene.add(floor)

    surfaces = [] if surfaces is None else surfaces
    surfaces.append(floor)

    return TerrainLayout(
        surfaces=surfaces,
        tiles=[floor],
        width=size,
        depth=size,
        step=(size, size),
        is_fallback=True,
    )
