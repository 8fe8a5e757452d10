"""Image post-processing and export for rendered rasters.

The renderer produces an 8-bit RGB raster of shape (height, width, 3).
This module applies the optional post-processing steps around it:

    - Supersampling: render at ``factor`` times the target resolution and
      downfilter with a triangle (bilinear) filter
    - PNG encoding via Pillow

Example:
    >>> from glint.scene.demo import create_demo_scene
    >>> from glint.preview.export import render_supersampled, save_png
    >>>
    >>> scene = create_demo_scene()
    >>> image = render_supersampled(scene, 640, 480, max_reflection_depth=1, supersampling=2)
    >>> save_png(image, "output.png")
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from glint.core.integrator import DEFAULT_REFLECTION_DEPTH, render

if TYPE_CHECKING:
    from glint.scene.manager import SceneManager

logger = logging.getLogger(__name__)


def _check_raster(image: npt.NDArray[np.uint8]) -> None:
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) raster, got shape {image.shape}")
    if image.dtype != np.uint8:
        raise ValueError(f"Expected a uint8 raster, got {image.dtype}")


def downsample(image: npt.NDArray[np.uint8], width: int, height: int) -> npt.NDArray[np.uint8]:
    """Resize a raster to width x height with a triangle filter.

    Args:
        image: uint8 raster of shape (H, W, 3).
        width: Target width in pixels.
        height: Target height in pixels.

    Returns:
        uint8 raster of shape (height, width, 3).

    Raises:
        ValueError: If the raster is not (H, W, 3) uint8.
    """
    _check_raster(image)
    if image.shape[0] == height and image.shape[1] == width:
        return image.copy()
    pil_image = PILImage.fromarray(image)
    resized = pil_image.resize((width, height), resample=PILImage.Resampling.BILINEAR)
    return np.asarray(resized, dtype=np.uint8)


def render_supersampled(
    scene: "SceneManager",
    width: int,
    height: int,
    max_reflection_depth: int = DEFAULT_REFLECTION_DEPTH,
    supersampling: int = 1,
) -> npt.NDArray[np.uint8]:
    """Render at supersampled resolution and downfilter to width x height.

    Args:
        scene: The scene to render.
        width: Output width in pixels.
        height: Output height in pixels.
        max_reflection_depth: Maximum number of mirror bounces.
        supersampling: Integer oversampling factor (1 disables it).

    Returns:
        uint8 raster of shape (height, width, 3).

    Raises:
        ValueError: If supersampling is less than 1, or the render
            parameters are invalid.
    """
    if supersampling < 1:
        raise ValueError(f"supersampling must be at least 1, got {supersampling}")

    raster = render(scene, width * supersampling, height * supersampling, max_reflection_depth)
    if supersampling == 1:
        return raster

    logger.debug("Downfiltering %dx%d to %dx%d", raster.shape[1], raster.shape[0], width, height)
    return downsample(raster, width, height)


def save_png(image: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Save an RGB8 raster as a PNG file.

    Args:
        image: uint8 raster of shape (H, W, 3). Row 0 is the top row.
        filepath: Output file path (should end in .png).

    Raises:
        ValueError: If the raster is not (H, W, 3) uint8.
    """
    _check_raster(image)
    PILImage.fromarray(image).save(filepath, format="PNG")
    logger.info("Saved %dx%d image to %s", image.shape[1], image.shape[0], filepath)
