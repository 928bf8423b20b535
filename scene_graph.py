"""Renderer-neutral scene graph: geometry, materials, nodes, lights and the camera.

The viewer uploads these objects to OpenGL lazily; everything else in the park
(tiling, scattering, ray queries, picking) works on them without a GL context.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field, replace
from typing import Iterator, List

import glm
import numpy as np

from geometry_utils import (
    build_rotation_matrix,
    compose_matrix,
    compute_bounding_box,
    compute_vertices_normals,
    transform_bounding_box,
    union_bounding_boxes,
)

_node_ids = itertools.count(1)


def to_vec3(value) -> glm.vec3:
    return glm.vec3(float(value[0]), float(value[1]), float(value[2]))


def hex_to_rgb(value: int) -> tuple[float, float, float]:
    return (
        ((value >> 16) & 0xFF) / 255.0,
        ((value >> 8) & 0xFF) / 255.0,
        (value & 0xFF) / 255.0,
    )


class Geometry:
    def __init__(self, vertices, faces, normals=None, uvs=None):
        self.vertices = np.asarray(vertices, dtype=np.float32).reshape(-1, 3)
        self.faces = np.asarray(faces, dtype=np.int32).reshape(-1, 3)
        if normals is None or len(normals) == 0:
            normals = compute_vertices_normals(self.vertices, self.faces)
        self.normals = np.asarray(normals, dtype=np.float32).reshape(-1, 3)
        if uvs is None or len(uvs) == 0:
            uvs = np.zeros((len(self.vertices), 2), dtype=np.float32)
        self.uvs = np.asarray(uvs, dtype=np.float32).reshape(-1, 2)
        self._bbox = None

    @property
    def bounding_box(self) -> np.ndarray:
        if self._bbox is None:
            self._bbox = compute_bounding_box(self.vertices, self.faces)
        return self._bbox

    @property
    def triangle_count(self) -> int:
        return len(self.faces)


@dataclass
class Texture:
    name: str
    image: np.ndarray
    source_path: str | None = None

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])


@dataclass
class Material:
    name: str = ""
    color: tuple = (1.0, 1.0, 1.0)
    textures: dict = field(default_factory=dict)
    normal_scale: tuple = (1.0, 1.0)
    roughness: float = 1.0
    metalness: float = 0.0
    opacity: float = 1.0
    transparent: bool = False
    needs_update: bool = False

    def clone(self) -> Material:
        # texturas continuam compartilhadas, apenas o dicionario e copiado
        return replace(self, textures=dict(self.textures))


class Node:
    """A transform in the scene graph; nodes holding geometry are meshes."""

    def __init__(self, name: str = "", geometry: Geometry | None = None, material: Material | None = None):
        self.id = next(_node_ids)
        self.name = name
        self.geometry = geometry
        self.material = material
        self.parent: Node | None = None
        self.children: List[Node] = []
        self.position = np.zeros(3, dtype=np.float64)
        self.rotation = np.zeros(3, dtype=np.float64)
        self.scale = np.ones(3, dtype=np.float64)
        self.visible = True

    def __repr__(self) -> str:
        kind = "Mesh" if self.is_mesh else "Node"
        return f"<{kind} #{self.id} {self.name!r}>"

    @property
    def is_mesh(self) -> bool:
        return self.geometry is not None

    def add(self, child: Node) -> Node:
        if child.parent is not None:
            child.parent.remove(child)
        child.parent = self
        self.children.append(child)
        return child

    def remove(self, child: Node) -> None:
        if child in self.children:
            self.children.remove(child)
            child.parent = None

    def set_position(self, x: float, y: float, z: float) -> None:
        self.position[:] = (x, y, z)

    def set_scale(self, sx: float, sy: float | None = None, sz: float | None = None) -> None:
        self.scale[:] = (sx, sx if sy is None else sy, sx if sz is None else sz)

    def traverse(self) -> Iterator[Node]:
        yield self
        for child in self.children:
            yield from child.traverse()

    def iter_meshes(self) -> Iterator[Node]:
        return (node for node in self.traverse() if node.is_mesh)

    def ancestors(self) -> Iterator[Node]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def local_matrix(self) -> np.ndarray:
        return compose_matrix(self.position, build_rotation_matrix(self.rotation), self.scale)

    def world_matrix(self) -> np.ndarray:
        matrix = self.local_matrix()
        for ancestor in self.ancestors():
            matrix = ancestor.local_matrix() @ matrix
        return matrix

    def world_position(self) -> np.ndarray:
        return self.world_matrix()[:3, 3].copy()

    def compute_bounding_box(self) -> np.ndarray | None:
        """World-space box around every mesh below (and including) this node."""
        bbox = None
        for mesh in self.iter_meshes():
            mesh_bbox = transform_bounding_box(mesh.world_matrix(), mesh.geometry.bounding_box)
            bbox = union_bounding_boxes(bbox, mesh_bbox)
        return bbox

    def clone(self, clone_materials: bool = False) -> Node:
        copy = Node(self.name, self.geometry, self.material)
        if clone_materials and self.material is not None:
            copy.material = self.material.clone()
        copy.position = self.position.copy()
        copy.rotation = self.rotation.copy()
        copy.scale = self.scale.copy()
        copy.visible = self.visible
        for child in self.children:
            copy.add(child.clone(clone_materials))
        return copy


@dataclass
class Fog:
    color: tuple
    density: float


@dataclass
class AmbientLight:
    color: tuple
    intensity: float


@dataclass
class DirectionalLight:
    color: tuple
    intensity: float
    position: tuple
    cast_shadow: bool = False
    shadow_extent: float = 100.0


class Scene(Node):
    def __init__(self, background: tuple = (0.0, 0.0, 0.0)):
        super().__init__("scene")
        self.background = background
        self.fog: Fog | None = None
        self.lights: list = []


class Camera:
    """Perspective camera kept in PyGLM types, aimed through `front`."""

    def __init__(self, fov: float = 75.0, aspect: float = 1.0, near: float = 0.1, far: float = 200.0):
        self.fov = fov
        self.aspect = aspect
        self.near = near
        self.far = far
        self.position = glm.vec3(0.0, 0.0, 0.0)
        self.front = glm.vec3(0.0, 0.0, -1.0)
        self.world_up = glm.vec3(0.0, 1.0, 0.0)
        self.up = glm.vec3(0.0, 1.0, 0.0)

    def look_at(self, target) -> None:
        direction = to_vec3(target) - self.position
        if glm.length(direction) < 1e-9:
            return
        self.front = glm.normalize(direction)
        right = glm.cross(self.front, self.world_up)
        if glm.length(right) < 1e-9:
            # olhando reto para cima/baixo: mantem o up anterior
            return
        self.up = glm.normalize(glm.cross(glm.normalize(right), self.front))

    def view_matrix(self) -> glm.mat4:
        return glm.lookAt(self.position, self.position + self.front, self.up)

    def projection_matrix(self) -> glm.mat4:
        return glm.perspective(glm.radians(self.fov), self.aspect, self.near, self.far)
