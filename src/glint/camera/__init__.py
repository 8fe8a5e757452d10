"""Camera module for primary ray generation.

Components:
    pinhole: Fixed field-of-view pinhole camera

The camera maps pixel (x, y) to a ray through a virtual screen one unit in
front of the camera; y grows downward in the image.
"""

from .pinhole import (
    Camera,
    clear_camera,
    get_camera_info,
    get_ray,
    is_camera_ready,
    primary_ray_direction,
    setup_camera,
)

__all__ = [
    "Camera",
    "setup_camera",
    "clear_camera",
    "is_camera_ready",
    "get_ray",
    "primary_ray_direction",
    "get_camera_info",
]
