"""Static roster of park subjects.

The catalog is built once as an immutable tuple of `SubjectRecord` and handed
explicitly to the acquisition pipeline and to the subject registry.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence, Tuple


@dataclass(frozen=True)
class SubjectRecord:
    name: str
    height: float
    length: float
    color: int
    description: str
    position: Tuple[float, float, float]
    model_path: str | None = None
    scale: float = 1.0
    textures: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}), hash=False)

    def __post_init__(self):
        if self.height <= 0 or self.length <= 0:
            raise ValueError(f"{self.name}: height and length must be positive")
        if self.scale <= 0:
            raise ValueError(f"{self.name}: scale must be positive")
        if not isinstance(self.textures, MappingProxyType):
            object.__setattr__(self, "textures", MappingProxyType(dict(self.textures)))

    @property
    def width(self) -> float:
        return self.length / 3.0


Catalog = Tuple[SubjectRecord, ...]


def _position(pos: Mapping[str, float]) -> Tuple[float, float, float]:
    return (float(pos["x"]), float(pos.get("y", 0.0)), float(pos["z"]))


def build_catalog(entries: Iterable[Mapping]) -> Catalog:
    """Turns plain dict entries into the immutable catalog, rejecting duplicate names."""
    records = []
    seen = set()
    for entry in entries:
        name = entry["name"]
        if name in seen:
            raise ValueError(f"Duplicate subject name in catalog: {name}")
        seen.add(name)
        records.append(
            SubjectRecord(
                name=name,
                height=float(entry["height"]),
                length=float(entry["length"]),
                color=int(entry["color"]),
                description=entry.get("desc", ""),
                position=_position(entry["pos"]),
                model_path=entry.get("model"),
                scale=float(entry.get("scale", 1.0)),
                textures=entry.get("textures", {}),
            )
        )
    return tuple(records)


DINOSAUR_DATA: Sequence[Mapping] = (
    {
        "name": "T-Rex", "height": 6, "length": 12, "color": 0x5c4033,
        "desc": "The King of Dinosaurs. Extremely powerful bite force.",
        "pos": {"x": 0, "z": -30},
        "model": os.path.join("models", "t_rex.glb"), "scale": 1.5,
        "textures": {"map": "t_rex_diffuse.jpg", "normalMap": "t_rex_normal.jpg"},
    },
    {
        "name": "Velociraptor", "height": 1.8, "length": 3, "color": 0x6e7f80,
        "desc": "Highly intelligent pack hunters. Watch the tall grass.",
        "pos": {"x": 10, "z": -15},
        "model": os.path.join("models", "velociraptor.glb"),
    },
    {
        "name": "Triceratops", "height": 3, "length": 9, "color": 0x5c5c5c,
        "desc": "Herbivore with three horns and a large frill.",
        "pos": {"x": -20, "z": -20},
        "model": os.path.join("models", "triceratops.glb"),
        "textures": {"map": "triceratops_diffuse.jpg"},
    },
    {
        "name": "Spinosaurus", "height": 7, "length": 15, "color": 0x2f4f4f,
        "desc": "Largest carnivorous dinosaur, semi-aquatic with a sail.",
        "pos": {"x": 30, "z": -40},
        "model": os.path.join("models", "spinosaurus.glb"), "scale": 2.0,
    },
    {
        "name": "Carnotaurus", "height": 3.5, "length": 8, "color": 0x8b4513,
        "desc": "Fast predator with bull-like horns above eyes.",
        "pos": {"x": -30, "z": -10},
    },
    {
        "name": "Brachiosaurus", "height": 15, "length": 26, "color": 0x8fbc8f,
        "desc": "Gentle giant. One of the tallest dinosaurs.",
        "pos": {"x": 0, "z": -60},
        "model": os.path.join("models", "brachiosaurus.glb"), "scale": 3.0,
        "textures": {"map": "brachiosaurus_diffuse.jpg", "normalMap": "brachiosaurus_normal.jpg"},
    },
    {
        "name": "Pterodactyl", "height": 1, "length": 2, "color": 0xd2b48c,
        "desc": "Flying reptile. Not technically a dinosaur, but a pterosaur.",
        "pos": {"x": 15, "z": -5, "y": 10},
        "model": os.path.join("models", "pterodactyl.glb"),
    },
    {
        "name": "Mosasaurus", "height": 4, "length": 18, "color": 0x00ced1,
        "desc": "Apex predator of the deep seas.",
        "pos": {"x": -40, "z": 20},
    },
    {
        "name": "Giganotosaurus", "height": 6.5, "length": 13, "color": 0x556b2f,
        "desc": "Larger than T-Rex, but lighter build.",
        "pos": {"x": 25, "z": 20},
        "model": os.path.join("models", "giganotosaurus.glb"), "scale": 1.6,
    },
    {
        "name": "Allosaurus", "height": 4, "length": 10, "color": 0xa0522d,
        "desc": "The lion of the Jurassic period.",
        "pos": {"x": -15, "z": 15},
        "model": os.path.join("models", "allosaurus.glb"),
    },
)


def default_catalog() -> Catalog:
    return build_catalog(DINOSAUR_DATA)
