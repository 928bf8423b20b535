from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List

import numpy as np

from geometry_utils import (
    ray_intersects_bounding_box,
    ray_triangles_intersect,
    transform_bounding_box,
    transform_points,
)
from scene_graph import Node


@dataclass
class Intersection:
    distance: float
    point: np.ndarray
    node: Node
    face_index: int


def world_triangles(mesh: Node) -> np.ndarray:
    geometry = mesh.geometry
    vertices = transform_points(mesh.world_matrix(), geometry.vertices)
    return vertices[geometry.faces]


class Raycaster:
    """Nearest-first ray queries against mesh nodes.

    World-space triangles are cached per mesh id when `cache_triangles` is on;
    use that only for meshes that no longer move (e.g. placed ground tiles).
    """

    def __init__(self, origin=(0.0, 0.0, 0.0), direction=(0.0, 0.0, -1.0), cache_triangles: bool = False):
        self.origin = np.zeros(3)
        self.direction = np.array([0.0, 0.0, -1.0])
        self.set(origin, direction)
        self.cache_triangles = cache_triangles
        self._cache: Dict[int, tuple] = {}

    def set(self, origin, direction) -> None:
        direction = np.asarray(direction, dtype=np.float64)
        length = np.linalg.norm(direction)
        if length == 0.0:
            raise ValueError("Ray direction must be non-zero")
        self.origin = np.asarray(origin, dtype=np.float64)
        self.direction = direction / length

    def _mesh_data(self, mesh: Node):
        if self.cache_triangles and mesh.id in self._cache:
            return self._cache[mesh.id]

        matrix = mesh.world_matrix()
        data = (
            transform_bounding_box(matrix, mesh.geometry.bounding_box),
            world_triangles(mesh),
        )
        if self.cache_triangles:
            self._cache[mesh.id] = data
        return data

    def intersect_mesh(self, mesh: Node) -> Intersection | None:
        bbox, triangles = self._mesh_data(mesh)
        if not ray_intersects_bounding_box(self.origin, self.direction, bbox):
            return None

        distances = ray_triangles_intersect(self.origin, self.direction, triangles)
        if len(distances) == 0:
            return None
        face_index = int(np.argmin(distances))
        distance = float(distances[face_index])
        if not np.isfinite(distance):
            return None

        return Intersection(distance, self.origin + self.direction * distance, mesh, face_index)

    def intersect_objects(self, objects: Iterable[Node], recursive: bool = True) -> List[Intersection]:
        hits = []
        for obj in objects:
            candidates = obj.iter_meshes() if recursive else ([obj] if obj.is_mesh else [])
            for mesh in candidates:
                if not mesh.visible:
                    continue
                hit = self.intersect_mesh(mesh)
                if hit is not None:
                    hits.append(hit)

        hits.sort(key=lambda hit: hit.distance)
        return hits
