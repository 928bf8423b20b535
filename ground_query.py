from __future__ import annotations

from typing import List

from raycaster import Raycaster
from scene_graph import Node

RAY_ORIGIN_HEIGHT = 1000.0
DOWN = (0.0, -1.0, 0.0)


class GroundQuery:
    """Ground height under a world column, measured by a downward ray.

    Only the surfaces in `surfaces` (the ground-query set) are considered; the
    list is shared with the terrain layout, so a fallback floor appended later
    is picked up by the next query.
    """

    def __init__(self, surfaces: List[Node]):
        self.surfaces = surfaces
        self.raycaster = Raycaster(cache_triangles=True)
        self.query_count = 0

    def point_at(self, x: float, z: float):
        self.query_count += 1
        if not self.surfaces:
            return None

        self.raycaster.set((x, RAY_ORIGIN_HEIGHT, z), DOWN)
        hits = self.raycaster.intersect_objects(self.surfaces)
        if not hits:
            return None
        return hits[0].point

    def height_at(self, x: float, z: float) -> float | None:
        point = self.point_at(x, z)
        return None if point is None else float(point[1])
