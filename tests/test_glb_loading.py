import asyncio

import numpy as np
import pytest

from asset_pipeline import AssetLoadError, FileAssetLoader, load_model_file
from glb_utils import load_glb_scene
from primitives import get_box_model
from conftest import write_glb


def test_load_glb_bakes_node_translation(tmp_path):
    vertices, faces, _, _ = get_box_model(2.0, 2.0, 2.0)
    path = write_glb(tmp_path / "crate.glb", vertices, faces, translation=(0.0, 3.0, 0.0))

    root = load_glb_scene(str(path))
    meshes = list(root.iter_meshes())

    assert root.name == "crate"
    assert len(meshes) == 1
    assert meshes[0].geometry.triangle_count == 12
    bbox = root.compute_bounding_box()
    assert np.allclose(bbox[0], [-1.0, 2.0, -1.0])
    assert np.allclose(bbox[1], [1.0, 4.0, 1.0])
    # sem NORMAL no arquivo: normais calculadas a partir das faces
    assert meshes[0].geometry.normals.shape == (24, 3)


def test_load_glb_material_factors(tmp_path):
    vertices, faces, _, _ = get_box_model()
    path = write_glb(tmp_path / "glass.glb", vertices, faces, base_color=(1.0, 0.0, 0.0, 0.5))

    material = next(load_glb_scene(str(path)).iter_meshes()).material

    assert material.color == (1.0, 0.0, 0.0)
    assert material.opacity == pytest.approx(0.5)
    assert material.transparent
    assert material.roughness == pytest.approx(0.3)


def test_file_loader_reads_model_relative_to_assets_dir(tmp_path):
    models = tmp_path / "models"
    models.mkdir()
    vertices, faces, _, _ = get_box_model()
    write_glb(models / "rock.glb", vertices, faces)

    model = asyncio.run(FileAssetLoader(str(tmp_path)).request_model("models/rock.glb"))
    assert len(list(model.iter_meshes())) == 1


def test_garbage_model_file_raises_asset_load_error(tmp_path):
    path = tmp_path / "broken.glb"
    path.write_bytes(b"definitely not a gltf file")

    with pytest.raises(AssetLoadError):
        load_model_file(str(path))
