"""Asynchronous acquisition of subject models and their texture sets.

Entries are processed strictly in catalog order; the textures of one entry are
requested together and joined before the next entry starts, so progress is
monotonic and every catalog entry yields exactly one `LoadedAsset`.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence

import numpy as np
from PIL import Image, UnidentifiedImageError

from glb_utils import load_glb_scene
from park_catalog import SubjectRecord
from scene_graph import Node, Texture

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
ASSETS_DIR = os.path.join(BASE_DIR, "assets")
SHARED_TEXTURES_DIR = "textures"

ProgressCallback = Callable[[int, str], None]

# Falhas esperadas de um loader; qualquer outra coisa e bug e deve propagar.
RECOVERABLE_ERRORS = (OSError, RuntimeError, ValueError)


class AssetLoadError(RuntimeError):
    """A model or texture file exists but could not be decoded."""


def load_model_file(filepath: str) -> Node:
    if not os.path.isfile(filepath):
        raise FileNotFoundError(f"Model not found: {filepath}")

    try:
        model = load_glb_scene(filepath)
    except Exception as exc:  # arquivo truncado pode gerar struct.error dentro do pygltflib
        raise AssetLoadError(f"Failed to parse '{filepath}': {exc}") from exc

    if not model.children:
        raise AssetLoadError(f"No mesh data found in {filepath}")
    return model


def load_texture_image(filepath: str) -> Texture:
    if not os.path.isfile(filepath):
        raise FileNotFoundError(f"Texture not found: {filepath}")

    try:
        with Image.open(filepath) as image:
            pixels = np.array(image.convert("RGBA"), dtype=np.uint8)
    except (UnidentifiedImageError, OSError) as exc:
        raise AssetLoadError(f"Failed to open texture '{filepath}': {exc}") from exc

    return Texture(name=os.path.basename(filepath), image=pixels, source_path=filepath)


class FileAssetLoader:
    """Default loader boundary: GLB models and image textures read from disk.

    Parsing is blocking work, so it runs in a worker thread and the event loop
    only sees one awaitable per request.
    """

    def __init__(self, assets_dir: str = ASSETS_DIR):
        self.assets_dir = assets_dir

    def resolve_model_path(self, path: str) -> str:
        if os.path.isabs(path):
            return path
        return os.path.normpath(os.path.join(self.assets_dir, path))

    def resolve_texture_path(self, path: str) -> str:
        """First existing candidate among: the given path, a textures/ folder next to it, the shared folder."""
        resolved = self.resolve_model_path(path)
        name = os.path.basename(resolved)
        candidates = [
            resolved,
            os.path.join(os.path.dirname(resolved), SHARED_TEXTURES_DIR, name),
            os.path.join(self.assets_dir, SHARED_TEXTURES_DIR, name),
        ]
        for candidate in candidates:
            if os.path.isfile(candidate):
                return candidate
        return resolved

    async def request_model(self, path: str) -> Node:
        return await asyncio.to_thread(load_model_file, self.resolve_model_path(path))

    async def request_texture(self, path: str) -> Texture:
        return await asyncio.to_thread(load_texture_image, self.resolve_texture_path(path))


@dataclass
class LoadedAsset:
    record: SubjectRecord
    model: Node | None = None
    textures: Dict[str, Texture] | None = None
    texture_failed: bool = False


def texture_path_for(record: SubjectRecord, filename: str) -> str:
    if os.path.isabs(filename) or not record.model_path:
        return filename
    return os.path.join(os.path.dirname(record.model_path), filename)


def progress_percent(completed: int, total: int) -> int:
    if total <= 0 or completed >= total:
        return 100
    # arredonda "half up" e segura em 99 ate o ultimo item
    return min(99, int(100.0 * completed / total + 0.5))


async def acquire_textures(loader, record: SubjectRecord) -> tuple[Dict[str, Texture], List[str]]:
    """Requests every declared texture at once; returns the loaded ones and the failed slot names."""
    slots = list(record.textures.keys())
    requests = [loader.request_texture(texture_path_for(record, record.textures[slot])) for slot in slots]
    results = await asyncio.gather(*requests, return_exceptions=True)

    textures: Dict[str, Texture] = {}
    failed: List[str] = []
    for slot, result in zip(slots, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            print(f"[warn] Texture '{record.textures[slot]}' ({slot}) for {record.name} failed: {result}")
            failed.append(slot)
        else:
            textures[slot] = result
    return textures, failed


async def acquire_asset(loader, record: SubjectRecord) -> tuple[LoadedAsset, str]:
    asset = LoadedAsset(record=record)

    if not record.model_path:
        return asset, f"No model for {record.name}, using placeholder"

    try:
        asset.model = await loader.request_model(record.model_path)
    except RECOVERABLE_ERRORS as exc:
        print(f"[warn] Failed to load model for {record.name}: {exc}")
        return asset, f"Failed to load {record.name}, using placeholder"

    if record.textures:
        textures, failed = await acquire_textures(loader, record)
        asset.textures = textures
        if failed:
            asset.texture_failed = True
            return asset, f"Loaded {record.name} (texture step failed: {', '.join(failed)})"

    return asset, f"Loaded {record.name}"


async def preload_all_assets(catalog: Sequence[SubjectRecord], loader,
                             on_progress: ProgressCallback | None = None) -> List[LoadedAsset]:
    total = len(catalog)
    assets: List[LoadedAsset] = []

    if total == 0:
        if on_progress:
            on_progress(100, "No assets to load")
        return assets

    for completed, record in enumerate(catalog, start=1):
        asset, message = await acquire_asset(loader, record)
        assets.append(asset)
        if on_progress:
            on_progress(progress_percent(completed, total), message)

    return assets
