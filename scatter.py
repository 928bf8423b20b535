"""Rejection-sampling scatter of decorative objects over the ground.

Candidates are drawn uniformly over the world rectangle; a candidate closer
than `min_spacing` to an accepted one, or with no ground below it, is
rejected. The pass stops when `count` objects are placed or after
`count * ATTEMPTS_PER_OBJECT` draws, whichever comes first.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import List, Tuple

from ground_query import GroundQuery
from scene_graph import Node, Scene

ATTEMPTS_PER_OBJECT = 10
DEFAULT_PROP_COUNT = 150
DEFAULT_MIN_SPACING = 3.0

# (peso, escala minima, escala maxima)
SIZE_BANDS = (
    (0.50, 0.5, 1.0),
    (0.30, 1.2, 1.8),
    (0.15, 2.0, 3.0),
    (0.05, 3.5, 5.0),
)


@dataclass
class ScatterResult:
    requested: int
    nodes: List[Node] = field(default_factory=list)
    columns: List[Tuple[float, float]] = field(default_factory=list)
    attempts: int = 0
    rejected_spacing: int = 0
    rejected_no_ground: int = 0

    @property
    def placed(self) -> int:
        return len(self.nodes)


def pick_scale(rng: random.Random) -> float:
    roll = rng.random()
    cumulative = 0.0
    for weight, low, high in SIZE_BANDS:
        cumulative += weight
        if roll < cumulative:
            return rng.uniform(low, high)
    # sobra de arredondamento dos pesos cai na ultima faixa
    _, low, high = SIZE_BANDS[-1]
    return rng.uniform(low, high)


def too_close(x: float, z: float, columns: List[Tuple[float, float]], min_spacing: float) -> bool:
    limit = min_spacing * min_spacing
    for px, pz in columns:
        dx = x - px
        dz = z - pz
        if dx * dx + dz * dz < limit:
            return True
    return False


def scatter_objects(scene: Scene, source: Node, count: int, width: float, depth: float,
                    ground: GroundQuery, min_spacing: float = DEFAULT_MIN_SPACING,
                    rng: random.Random | None = None, name: str = "prop") -> ScatterResult:
    rng = rng or random.Random()
    result = ScatterResult(requested=count)
    if count <= 0:
        return result

    max_attempts = count * ATTEMPTS_PER_OBJECT
    half_w = width / 2.0
    half_d = depth / 2.0

    while result.placed < count and result.attempts < max_attempts:
        result.attempts += 1

        x = rng.uniform(-half_w, half_w)
        z = rng.uniform(-half_d, half_d)

        if too_close(x, z, result.columns, min_spacing):
            result.rejected_spacing += 1
            continue

        height = ground.height_at(x, z)
        if height is None:
            result.rejected_no_ground += 1
            continue

        result.columns.append((x, z))

        obj = source.clone()
        obj.name = f"{name}_{result.placed}"
        obj.set_position(x, height, z)
        obj.scale = source.scale * pick_scale(rng)
        obj.rotation[1] = rng.random() * 2.0 * math.pi
        scene.add(obj)
        result.nodes.append(obj)

    return result
