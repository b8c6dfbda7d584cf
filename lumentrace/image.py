"""
HDR image buffer helpers.

Rendered frames are numpy arrays of shape (height, width, 3) holding
linear, unbounded float64 colors. These helpers compute statistics,
adjust exposure, and convert to 8-bit for display.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image as PILImage

from .tonemapping import ToneMapper

logger = logging.getLogger(__name__)

# Rec. 601 luma weights
LUMINANCE_WEIGHTS = np.array([0.299, 0.587, 0.114])


def average_luminance(hdr_image: np.ndarray) -> float:
    """Mean luminance of an HDR image, 0.0 for an empty image."""
    if hdr_image.size == 0:
        return 0.0
    return float(np.mean(hdr_image @ LUMINANCE_WEIGHTS))


def apply_exposure(hdr_image: np.ndarray, exposure: float) -> np.ndarray:
    """Return a copy of the image with every pixel scaled by exposure."""
    return hdr_image * exposure


def to_rgb8(hdr_image: np.ndarray, tone_mapper: ToneMapper) -> np.ndarray:
    """Tone map an HDR image and quantize it to 8 bits per channel.

    Args:
        hdr_image: HDR image (H, W, 3)
        tone_mapper: Operator producing values in [0, 1]

    Returns:
        uint8 image (H, W, 3)
    """
    mapped = tone_mapper.apply(hdr_image)
    return np.clip(mapped * 255.0, 0.0, 255.0).astype(np.uint8)


def save_png(rgb8: np.ndarray, filename: Union[str, Path]) -> Path:
    """Write an 8-bit RGB image to a PNG file.

    Missing parent directories are created.

    Returns:
        The path written
    """
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)

    PILImage.fromarray(rgb8, 'RGB').save(path, format='PNG')
    logger.info(f"Saved PNG image: {path} ({rgb8.shape[1]}x{rgb8.shape[0]})")
    return path
