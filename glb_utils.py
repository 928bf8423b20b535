# python -m pip install pygltflib
# python -m pip install Pillow

import base64
import io
import os

import numpy as np

from PIL import Image
from pygltflib import GLTF2

from geometry_utils import compose_matrix, quaternion_to_matrix, transform_points
from scene_graph import Geometry, Material, Node, Texture

debug_glb = False

COMPONENT_TYPE_MAP = {
    5120: np.int8,
    5121: np.uint8,
    5122: np.int16,
    5123: np.uint16,
    5125: np.uint32,
    5126: np.float32
}

TYPE_COUNT_MAP = {
    "SCALAR": 1,
    "VEC2": 2,
    "VEC3": 3,
    "VEC4": 4,
    "MAT2": 4,
    "MAT3": 9,
    "MAT4": 16
}


def get_raw_buffer_bytes(glb_model, buffer_index, base_dir=""):
    """
    Retorna os bytes de um buffer (seja data:, arquivo externo ou chunk binário do GLB).
    """
    buffer = glb_model.buffers[buffer_index]
    if buffer.uri:
        if buffer.uri.startswith("data:"):
            comma = buffer.uri.find(",")
            return base64.b64decode(buffer.uri[comma + 1:])

        # caminho relativo ao arquivo GLB/Gltf atual
        with open(os.path.join(base_dir, buffer.uri), "rb") as handle:
            return handle.read()

    # Para GLB o binário fica no chunk; pygltflib oferece binary_blob()
    raw = glb_model.binary_blob()
    if raw is None:
        raise ValueError("Buffer.uri é None e gltf.binary_blob() retornou None.")
    return raw


def get_buffer_data(glb_model, accessor_id, base_dir=""):
    """
    Retorna um numpy array com os dados do accessor.
    Lida com bufferView.byteOffset, accessor.byteOffset e byteStride intercalado.
    """
    accessor = glb_model.accessors[accessor_id]
    if accessor.bufferView is None:
        raise NotImplementedError("Accessors sem bufferView (sparse ou outras formas) não implementado aqui.")

    bv = glb_model.bufferViews[accessor.bufferView]
    raw_buffer = get_raw_buffer_bytes(glb_model, bv.buffer, base_dir)

    start = (bv.byteOffset or 0) + (accessor.byteOffset or 0)

    if accessor.componentType not in COMPONENT_TYPE_MAP:
        raise ValueError(f"componentType {accessor.componentType} não suportado")
    dtype = np.dtype(COMPONENT_TYPE_MAP[accessor.componentType])

    if accessor.type not in TYPE_COUNT_MAP:
        raise ValueError(f"accessor.type {accessor.type} não reconhecido")
    type_count = TYPE_COUNT_MAP[accessor.type]

    element_size = dtype.itemsize * type_count
    stride = bv.byteStride or element_size
    needed_bytes = stride * (accessor.count - 1) + element_size if accessor.count else 0
    if start + needed_bytes > len(raw_buffer):
        raise ValueError("Não há bytes suficientes no buffer para o accessor solicitado.")

    arr = np.ndarray(
        shape=(accessor.count, type_count),
        dtype=dtype,
        buffer=raw_buffer,
        offset=start,
        strides=(stride, dtype.itemsize),
    ).copy()

    if type_count == 1:
        arr = arr.ravel()

    return arr


def _load_image(glb_model, image_index, base_dir, cache):
    if image_index in cache:
        return cache[image_index]

    image = glb_model.images[image_index]
    if image.uri:
        if image.uri.startswith("data:"):
            comma = image.uri.find(",")
            img_bytes = base64.b64decode(image.uri[comma + 1:])
        else:
            with open(os.path.join(base_dir, image.uri), "rb") as handle:
                img_bytes = handle.read()
    elif image.bufferView is not None:
        # imagem embutida via bufferView (com image.mimeType)
        bv = glb_model.bufferViews[image.bufferView]
        buffer_bytes = get_raw_buffer_bytes(glb_model, bv.buffer, base_dir)
        start = bv.byteOffset or 0
        img_bytes = buffer_bytes[start:start + (bv.byteLength or 0)]
    else:
        cache[image_index] = None
        return None

    with Image.open(io.BytesIO(img_bytes)) as pil_image:
        pixels = np.array(pil_image.convert("RGBA"), dtype=np.uint8)

    texture = Texture(name=image.name or f"image_{image_index}", image=pixels, source_path=image.uri)
    cache[image_index] = texture
    return texture


def _texture_from_info(glb_model, texture_info, base_dir, cache):
    if texture_info is None or texture_info.index is None:
        return None
    source = glb_model.textures[texture_info.index].source
    if source is None:
        return None
    return _load_image(glb_model, source, base_dir, cache)


def load_glb_material(glb_model, material_index, base_dir="", image_cache=None):
    if image_cache is None:
        image_cache = {}

    if material_index is None or material_index >= len(glb_model.materials):
        return Material(name="default")

    gltf_material = glb_model.materials[material_index]
    material = Material(name=gltf_material.name or f"material_{material_index}")

    pbr = gltf_material.pbrMetallicRoughness
    if pbr is not None:
        factor = pbr.baseColorFactor or [1.0, 1.0, 1.0, 1.0]
        material.color = tuple(float(c) for c in factor[:3])
        material.opacity = float(factor[3]) if len(factor) > 3 else 1.0
        material.transparent = material.opacity < 1.0
        if pbr.roughnessFactor is not None:
            material.roughness = float(pbr.roughnessFactor)
        if pbr.metallicFactor is not None:
            material.metalness = float(pbr.metallicFactor)

        base_texture = _texture_from_info(glb_model, pbr.baseColorTexture, base_dir, image_cache)
        if base_texture is not None:
            material.textures["base_color"] = base_texture

    normal_texture = _texture_from_info(glb_model, gltf_material.normalTexture, base_dir, image_cache)
    if normal_texture is not None:
        material.textures["normal"] = normal_texture
        scale = gltf_material.normalTexture.scale
        if scale is not None:
            material.normal_scale = (float(scale), float(scale))

    return material


def load_glb_primitive(glb_model, primitive, base_dir=""):
    attributes = primitive.attributes

    vertices_pos = get_buffer_data(glb_model, attributes.POSITION, base_dir)

    vertices_normals = None
    if getattr(attributes, "NORMAL", None) is not None:
        vertices_normals = get_buffer_data(glb_model, attributes.NORMAL, base_dir)

    vertices_uvs = None
    if getattr(attributes, "TEXCOORD_0", None) is not None:
        vertices_uvs = get_buffer_data(glb_model, attributes.TEXCOORD_0, base_dir)

    if primitive.indices is not None:
        faces = get_buffer_data(glb_model, primitive.indices, base_dir).astype(np.int32).reshape(-1, 3)
    else:
        faces = np.arange(len(vertices_pos), dtype=np.int32).reshape(-1, 3)

    return vertices_pos, vertices_normals, vertices_uvs, faces


def _node_local_matrix(gltf_node):
    if gltf_node.matrix:
        # glTF guarda a matriz em column-major
        return np.array(gltf_node.matrix, dtype=np.float64).reshape(4, 4).T

    translation = gltf_node.translation or [0.0, 0.0, 0.0]
    rotation = gltf_node.rotation or [0.0, 0.0, 0.0, 1.0]
    scale = gltf_node.scale or [1.0, 1.0, 1.0]
    return compose_matrix(translation, quaternion_to_matrix(rotation), scale)


def load_glb_scene(glb_file_path):
    """
    Carrega um GLB/glTF e devolve um Node raiz com um Mesh por primitive.

    As transformações dos nós do glTF são aplicadas direto nos vértices, então os
    meshes resultantes ficam na origem do Node raiz.
    """
    glb_model = GLTF2().load(glb_file_path)
    if glb_model is None:
        raise ValueError(f"pygltflib could not read {glb_file_path}")
    base_dir = os.path.dirname(os.path.abspath(glb_file_path))
    root = Node(os.path.splitext(os.path.basename(glb_file_path))[0])

    material_cache = {}
    image_cache = {}

    def get_material(material_index):
        if material_index not in material_cache:
            material_cache[material_index] = load_glb_material(glb_model, material_index, base_dir, image_cache)
        return material_cache[material_index]

    def traverse_node(node_index, parent_matrix):
        gltf_node = glb_model.nodes[node_index]
        world = parent_matrix @ _node_local_matrix(gltf_node)

        if gltf_node.mesh is not None:
            mesh = glb_model.meshes[gltf_node.mesh]
            for primitive_index, primitive in enumerate(mesh.primitives):
                if primitive.mode not in (None, 4):
                    # apenas TRIANGLES
                    continue
                vertices_pos, vertices_normals, vertices_uvs, faces = load_glb_primitive(glb_model, primitive, base_dir)
                if len(vertices_pos) == 0:
                    continue

                vertices_pos = transform_points(world, vertices_pos)
                if vertices_normals is not None and len(vertices_normals) > 0:
                    normal_matrix = np.linalg.inv(world[:3, :3]).T
                    vertices_normals = vertices_normals @ normal_matrix.T
                    vertices_normals /= np.linalg.norm(vertices_normals, axis=1, keepdims=True) + 1e-9

                name = mesh.name or gltf_node.name or f"mesh_{gltf_node.mesh}"
                geometry = Geometry(vertices_pos, faces, vertices_normals, vertices_uvs)
                root.add(Node(f"{name}_{primitive_index}", geometry, get_material(primitive.material)))

                if debug_glb:
                    print(f"\tMesh {name}: {len(vertices_pos)} vertices, {len(faces)} triangles")

        for child_index in gltf_node.children or []:
            traverse_node(child_index, world)

    if glb_model.scenes:
        scene_index = glb_model.scene if glb_model.scene is not None else 0
        root_nodes = glb_model.scenes[scene_index].nodes or []
    else:
        root_nodes = range(len(glb_model.nodes))

    for node_index in root_nodes:
        traverse_node(node_index, np.eye(4))

    return root
