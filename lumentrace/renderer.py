"""
Renderer module - drives the tracer over a whole frame.

Implements:
- Tile-based rendering, optionally multi-threaded
- Per-pixel averaging of the camera's sample rays
- Progress reporting
- Tone mapping and PNG output
"""

from __future__ import annotations
import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple, Union
import numpy as np

from .vec3 import Color
from .camera import Camera
from .materials import Material
from .shapes import Surface
from .lights import Light
from .tracer import RayTracer
from .tonemapping import ToneMappingOperator, create_tone_mapper
from .image import to_rgb8, save_png

logger = logging.getLogger(__name__)

Tile = Tuple[int, int, int, int]


@dataclass
class RenderSettings:
    """Configuration for the renderer."""
    max_depth: int = 8
    min_weight: float = 1e-3
    background_color: Color = field(default_factory=Color.black)
    vacuum_material: Material = field(default_factory=Material.vacuum)
    tile_size: int = 32
    num_threads: int = 0  # 0 = auto-detect
    tone_mapping: ToneMappingOperator = ToneMappingOperator.ACES_FILMIC
    exposure: float = 1.0

    def __post_init__(self):
        if self.num_threads == 0:
            self.num_threads = os.cpu_count() or 4
        if self.max_depth <= 0:
            raise ValueError(f"max_depth must be positive, got {self.max_depth}")
        if self.min_weight <= 0:
            raise ValueError(f"min_weight must be positive, got {self.min_weight}")
        if self.tile_size <= 0:
            raise ValueError(f"tile_size must be positive, got {self.tile_size}")
        if isinstance(self.tone_mapping, str):
            self.tone_mapping = ToneMappingOperator(self.tone_mapping)


class Renderer:
    """Frame renderer with multi-threading support."""

    def __init__(self, settings: Optional[RenderSettings] = None):
        """Create a renderer with the given settings.

        Args:
            settings: Render configuration (uses defaults if None)
        """
        self.settings = settings if settings else RenderSettings()
        self.tracer = RayTracer(
            background_color=self.settings.background_color,
            max_depth=self.settings.max_depth,
            min_weight=self.settings.min_weight,
            vacuum_material=self.settings.vacuum_material
        )
        self._progress_callback: Optional[Callable[[float], None]] = None

    def set_progress_callback(self, callback: Callable[[float], None]) -> None:
        """Set a callback function for progress updates.

        Args:
            callback: Function that takes progress as float (0.0 to 1.0)
        """
        self._progress_callback = callback

    def render(self, camera: Camera, surfaces: Sequence[Surface], lights: Sequence[Light]) -> np.ndarray:
        """Render the scene and return the image as a numpy array.

        Args:
            camera: Source of the per-pixel sample rays
            surfaces: Surfaces in the scene
            lights: Lights in the scene

        Returns:
            HDR image as numpy array of shape (height, width, 3)
        """
        width = camera.width
        height = camera.height
        image = np.zeros((height, width, 3), dtype=np.float64)

        tiles = self._generate_tiles(width, height)
        total_tiles = len(tiles)
        completed_tiles = [0]
        progress_lock = threading.Lock()

        logger.info(
            f"Rendering {width}x{height} ({camera.samples_per_pixel} samples/pixel), "
            f"{len(surfaces)} surfaces, {len(lights)} lights, {self.settings.num_threads} threads"
        )
        start = time.perf_counter()

        def render_tile(tile: Tile) -> Tuple[Tile, np.ndarray]:
            x0, y0, x1, y1 = tile
            tile_image = np.zeros((y1 - y0, x1 - x0, 3), dtype=np.float64)

            for j in range(y1 - y0):
                for i in range(x1 - x0):
                    rays = camera.pixel_rays(x0 + i, y0 + j)
                    pixel_color = Color.black()
                    for ray in rays:
                        pixel_color = pixel_color + self.tracer.trace(ray, surfaces, lights)
                    tile_image[j, i] = pixel_color.to_array() / len(rays)

            with progress_lock:
                completed_tiles[0] += 1
                if self._progress_callback:
                    self._progress_callback(completed_tiles[0] / total_tiles)

            return tile, tile_image

        if self.settings.num_threads > 1:
            with ThreadPoolExecutor(max_workers=self.settings.num_threads) as executor:
                results = list(executor.map(render_tile, tiles))
        else:
            results = [render_tile(tile) for tile in tiles]

        for tile, tile_image in results:
            x0, y0, x1, y1 = tile
            image[y0:y1, x0:x1] = tile_image

        elapsed = time.perf_counter() - start
        logger.info(f"Render finished in {elapsed:.2f}s")
        logger.debug(f"HDR range=[{image.min():.3f}, {image.max():.3f}]")

        return image

    def _generate_tiles(self, width: int, height: int) -> List[Tile]:
        """Split the image into (x0, y0, x1, y1) tiles."""
        tile_size = self.settings.tile_size
        tiles = []

        for y in range(0, height, tile_size):
            for x in range(0, width, tile_size):
                tiles.append((x, y, min(x + tile_size, width), min(y + tile_size, height)))

        return tiles

    def to_ldr(self, hdr_image: np.ndarray) -> np.ndarray:
        """Tone map an HDR image to 8-bit using the configured operator."""
        mapper = create_tone_mapper(self.settings.tone_mapping, exposure=self.settings.exposure)
        logger.debug(f"Tone mapping with {mapper.name} {mapper.get_parameters()}")
        return to_rgb8(hdr_image, mapper)

    def save_image(self, hdr_image: np.ndarray, filename: Union[str, os.PathLike]) -> None:
        """Tone map and save an HDR image as PNG."""
        save_png(self.to_ldr(hdr_image), filename)
