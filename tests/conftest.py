import asyncio

import numpy as np
import pytest

from primitives import get_box_model, get_plane_model
from scene_graph import Geometry, Material, Node, Texture


class FakeLoader:
    """In-memory loader: paths map to model factories, textures, or exceptions to raise."""

    def __init__(self, models=None, textures=None, default_texture=True):
        self.models = models or {}
        self.textures = textures or {}
        self.default_texture = default_texture
        self.requests = []

    async def request_model(self, path):
        self.requests.append(("model", path))
        await asyncio.sleep(0)
        entry = self.models.get(path)
        if entry is None:
            raise FileNotFoundError(f"Model not found: {path}")
        if isinstance(entry, BaseException):
            raise entry
        return entry()

    async def request_texture(self, path):
        self.requests.append(("texture", path))
        await asyncio.sleep(0)
        entry = self.textures.get(path)
        if isinstance(entry, BaseException):
            raise entry
        if entry is None:
            if not self.default_texture:
                raise FileNotFoundError(f"Texture not found: {path}")
            entry = make_texture(path)
        return entry


def make_texture(name="tex.png", size=2):
    return Texture(name=name, image=np.full((size, size, 4), 200, dtype=np.uint8), source_path=name)


def make_box_model(name="model", width=1.0, height=1.0, depth=1.0):
    root = Node(name)
    root.add(Node(f"{name}_mesh", Geometry(*get_box_model(width, height, depth)), Material(name=f"{name}_mat")))
    return root


def make_tile_model(size=10.0, normal_map=False):
    root = Node("ground_tile")
    material = Material(name="ground")
    if normal_map:
        material.textures["normal"] = make_texture("ground_normal.png")
    root.add(Node("ground_tile_mesh", Geometry(*get_plane_model(size, size)), material))
    return root


@pytest.fixture
def fake_loader():
    return FakeLoader()


def write_glb(path, vertices, faces, translation=None, base_color=None):
    """Writes a single-mesh GLB (positions + uint16 indices) with pygltflib."""
    import pygltflib

    points = np.asarray(vertices, dtype=np.float32)
    indices = np.asarray(faces, dtype=np.uint16).ravel()
    points_blob = points.tobytes()
    indices_blob = indices.tobytes()

    materials = []
    material_index = None
    if base_color is not None:
        materials.append(pygltflib.Material(
            name="paint",
            pbrMetallicRoughness=pygltflib.PbrMetallicRoughness(baseColorFactor=list(base_color), roughnessFactor=0.3),
        ))
        material_index = 0

    gltf = pygltflib.GLTF2(
        scene=0,
        scenes=[pygltflib.Scene(nodes=[0])],
        nodes=[pygltflib.Node(mesh=0, translation=list(translation) if translation else None)],
        meshes=[pygltflib.Mesh(name="body", primitives=[
            pygltflib.Primitive(attributes=pygltflib.Attributes(POSITION=0), indices=1, material=material_index),
        ])],
        materials=materials,
        accessors=[
            pygltflib.Accessor(bufferView=0, componentType=pygltflib.FLOAT, count=len(points), type=pygltflib.VEC3,
                               max=points.max(axis=0).tolist(), min=points.min(axis=0).tolist()),
            pygltflib.Accessor(bufferView=1, componentType=pygltflib.UNSIGNED_SHORT, count=int(indices.size),
                               type=pygltflib.SCALAR),
        ],
        bufferViews=[
            pygltflib.BufferView(buffer=0, byteLength=len(points_blob), target=pygltflib.ARRAY_BUFFER),
            pygltflib.BufferView(buffer=0, byteOffset=len(points_blob), byteLength=len(indices_blob),
                                 target=pygltflib.ELEMENT_ARRAY_BUFFER),
        ],
        buffers=[pygltflib.Buffer(byteLength=len(points_blob) + len(indices_blob))],
    )
    gltf.set_binary_blob(points_blob + indices_blob)
    gltf.save_binary(str(path))
    return path
