import random

import numpy as np
import pytest

from ground_query import GroundQuery
from scatter import scatter_objects
from scene_graph import Scene
from terrain_tiling import (
    FALLBACK_GROUND_SIZE,
    create_fallback_ground,
    mirror_scale,
    tile_ground,
    tile_indices,
)
from conftest import make_box_model, make_tile_model


@pytest.mark.parametrize("count", [1, 2, 3, 4, 5])
def test_tile_indices_give_exact_count(count):
    indices = list(tile_indices(count))
    assert len(indices) == count
    assert indices == sorted(indices)
    assert 0 in indices


def test_grid_has_n_squared_tiles_with_step_spacing():
    scene = Scene()
    layout = tile_ground(scene, make_tile_model(10.0), tiles_per_axis=3, overlap=0.1)

    assert len(layout.tiles) == 9
    assert layout.step == pytest.approx((9.9, 9.9))
    assert layout.width == pytest.approx(9.9 * 2 + 10.0)
    assert layout.depth == pytest.approx(layout.width)

    positions = {(round(t.position[0], 3), round(t.position[2], 3)) for t in layout.tiles}
    expected = {(round(i * 9.9, 3), round(j * 9.9, 3)) for i in (-1, 0, 1) for j in (-1, 0, 1)}
    assert positions == expected
    assert all(tile.parent is scene for tile in layout.tiles)


def test_checkerboard_mirroring():
    scene = Scene()
    layout = tile_ground(scene, make_tile_model(10.0), tiles_per_axis=3)

    for tile in layout.tiles:
        i = int(round(tile.position[0] / layout.step[0]))
        j = int(round(tile.position[2] / layout.step[1]))
        assert tile.scale[0] == (-1.0 if i % 2 else 1.0)
        assert tile.scale[2] == (-1.0 if j % 2 else 1.0)
        assert tile.scale[1] == 1.0

    assert mirror_scale(0) == 1.0
    assert mirror_scale(-1) == -1.0
    assert mirror_scale(2) == 1.0


def test_mirrored_tiles_flip_normal_map_direction():
    scene = Scene()
    template = make_tile_model(10.0, normal_map=True)
    layout = tile_ground(scene, template, tiles_per_axis=3)

    for tile in layout.tiles:
        material = next(tile.iter_meshes()).material
        assert material.normal_scale == (tile.scale[0], tile.scale[2])

    # o template nao e alterado
    assert next(template.iter_meshes()).material.normal_scale == (1.0, 1.0)


def test_off_centre_tile_model_is_recentred():
    scene = Scene()
    model = make_tile_model(10.0)
    next(model.iter_meshes()).set_position(4.0, 0.0, -3.0)

    layout = tile_ground(scene, model, tiles_per_axis=1)
    bbox = layout.tiles[0].compute_bounding_box()

    assert np.allclose(bbox[0][[0, 2]], [-5.0, -5.0])
    assert np.allclose(bbox[1][[0, 2]], [5.0, 5.0])


def test_tiled_ground_is_continuous_for_ground_queries():
    scene = Scene()
    layout = tile_ground(scene, make_tile_model(10.0), tiles_per_axis=3)
    ground = GroundQuery(layout.surfaces)

    for x in np.linspace(-14.0, 14.0, 9):
        assert ground.height_at(float(x), 4.95) == pytest.approx(0.0, abs=1e-6)
    assert ground.height_at(20.0, 0.0) is None


def test_invalid_tile_inputs():
    with pytest.raises(ValueError):
        tile_ground(Scene(), make_tile_model(10.0), tiles_per_axis=0)
    with pytest.raises(ValueError):
        tile_ground(Scene(), make_tile_model(0.05), tiles_per_axis=2)


def test_tile_thickness_does_not_matter():
    layout = tile_ground(Scene(), make_box_model("slab", 6.0, 1.0, 4.0), tiles_per_axis=2, overlap=0.5)
    assert layout.step == pytest.approx((5.5, 3.5))
    assert len(layout.tiles) == 4


def test_fallback_ground():
    scene = Scene()
    surfaces = []
    layout = create_fallback_ground(scene, surfaces=surfaces)

    assert layout.is_fallback
    assert layout.width == layout.depth == FALLBACK_GROUND_SIZE
    assert surfaces == layout.tiles
    assert GroundQuery(surfaces).height_at(200.0, -200.0) == pytest.approx(0.0)


def test_even_grid_is_centred_and_fully_covered():
    scene = Scene()
    layout = tile_ground(scene, make_tile_model(10.0), tiles_per_axis=4)

    xs = sorted({round(float(t.position[0]), 3) for t in layout.tiles})
    assert xs == [-14.85, -4.95, 4.95, 14.85]

    bbox = None
    for tile in layout.tiles:
        tile_bbox = tile.compute_bounding_box()
        bbox = tile_bbox if bbox is None else np.array([np.minimum(bbox[0], tile_bbox[0]),
                                                        np.maximum(bbox[1], tile_bbox[1])])
    assert np.allclose(bbox[0][[0, 2]], [-layout.width / 2.0, -layout.depth / 2.0], atol=1e-4)
    assert np.allclose(bbox[1][[0, 2]], [layout.width / 2.0, layout.depth / 2.0], atol=1e-4)

    # paridade do espelhamento continua seguindo o indice da grade
    for tile in layout.tiles:
        i = int(round(tile.position[0] / layout.step[0] - 0.5))
        assert tile.scale[0] == mirror_scale(i)

    ground = GroundQuery(layout.surfaces)
    result = scatter_objects(scene, make_box_model("rock"), 200, layout.width, layout.depth,
                             ground, 0.5, random.Random(1))
    assert result.rejected_no_ground == 0
    assert result.placed > 0
