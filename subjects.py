"""Placing catalog subjects in the scene and finding them again by ray.

Placed groups are tagged through `SubjectRegistry`, a side table from node id
to `SubjectRecord`; scene nodes themselves carry no subject data.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Sequence

from asset_pipeline import LoadedAsset
from park_catalog import SubjectRecord
from placeholders import create_placeholder
from raycaster import Raycaster
from scene_graph import Camera, Node, Scene

# nome do slot de textura no catalogo -> propriedade do Material
MATERIAL_SLOT_PROPERTIES = {
    "map": "base_color",
    "normalMap": "normal",
    "roughnessMap": "roughness",
    "metalnessMap": "metalness",
    "aoMap": "occlusion",
    "emissiveMap": "emissive",
}


class SubjectRegistry:
    def __init__(self):
        self._records: Dict[int, SubjectRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def tag(self, node: Node, record: SubjectRecord) -> None:
        self._records[node.id] = record

    def record_for(self, node: Node) -> SubjectRecord | None:
        return self._records.get(node.id)

    def resolve(self, node: Node | None) -> SubjectRecord | None:
        """Walk from a hit leaf up through its ancestors to the first tagged node."""
        while node is not None:
            record = self._records.get(node.id)
            if record is not None:
                return record
            node = node.parent
        return None


def material_property_for(slot: str) -> str:
    prop = MATERIAL_SLOT_PROPERTIES.get(slot)
    if prop is None:
        print(f"[warn] Unknown texture slot '{slot}', keeping it as a material property of the same name")
        return slot
    return prop


def apply_textures(model: Node, textures: Dict[str, object]) -> int:
    """Attach textures to every material under `model`; returns the number of materials touched."""
    if not textures:
        return 0

    properties = {material_property_for(slot): texture for slot, texture in textures.items()}
    touched = 0
    seen = set()
    for mesh in model.iter_meshes():
        material = mesh.material
        if material is None or id(material) in seen:
            continue
        seen.add(id(material))
        material.textures.update(properties)
        material.needs_update = True
        touched += 1
    return touched


def populate_subjects(scene: Scene, assets: Sequence[LoadedAsset], registry: SubjectRegistry) -> List[Node]:
    """One tagged group per asset, holding the loaded model or a placeholder box."""
    placed = []
    for asset in assets:
        record = asset.record
        group = Node(record.name)
        group.set_position(*record.position)

        if asset.model is not None:
            model = asset.model
            model.set_scale(record.scale)
            apply_textures(model, asset.textures)
            # as texturas ficam referenciadas pelos materiais
            asset.textures = None
            group.add(model)
        else:
            group.add(create_placeholder(record))

        registry.tag(group, record)
        scene.add(group)
        placed.append(group)

    return placed


def pick_subject(camera: Camera, placed: Iterable[Node], registry: SubjectRegistry,
                 raycaster: Raycaster | None = None) -> SubjectRecord | None:
    """Subject under the screen centre, i.e. along the camera's forward axis."""
    raycaster = raycaster or Raycaster()
    raycaster.set(tuple(camera.position), tuple(camera.front))
    hits = raycaster.intersect_objects(placed, recursive=True)
    if not hits:
        return None
    return registry.resolve(hits[0].node)


class HoverTracker:
    """Raises `on_hover(record | None)` only when the hovered subject changes."""

    def __init__(self, on_hover: Callable[[SubjectRecord | None], None]):
        self.on_hover = on_hover
        self.current: SubjectRecord | None = None

    def update(self, record: SubjectRecord | None) -> bool:
        if record is self.current:
            return False
        self.current = record
        self.on_hover(record)
        return True
