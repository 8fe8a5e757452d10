"""Preview module: post-processing and export of rendered rasters.

Components:
    export: Supersampled rendering and PNG export via Pillow

Example:
    >>> from glint.preview import render_supersampled, save_png
    >>> image = render_supersampled(scene, 640, 480, max_reflection_depth=1, supersampling=2)
    >>> save_png(image, "output.png")
"""

from .export import downsample, render_supersampled, save_png

__all__ = [
    "downsample",
    "render_supersampled",
    "save_png",
]
