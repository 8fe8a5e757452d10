"""Fixed field-of-view pinhole camera for primary ray generation.

The camera keeps an orthonormal basis:
- dir: the view axis
- right: points right in the image plane
- up: image-plane vertical axis

built from a position, a view direction and an approximate up vector:

    right = normalize(up x dir)
    up    = normalize(right x dir)
    dir   = normalize(dir)

With a y-up world this makes ``up`` point toward decreasing y on screen,
so raster row 0 is the top of the image.

There is no field-of-view parameter. The virtual screen sits one unit along
``dir`` and spans one unit vertically (``aspect_ratio`` units
horizontally), so the pixel (x, y) of a width x height image maps to

    nx = (x / width - 0.5) * aspect_ratio
    ny = (y / height - 0.5)
    direction = right * nx + up * ny + dir

All ray generation is Taichi-compatible; the basis is computed once on the
Python side with NumPy and uploaded into fields.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.camera.pinhole import Camera, setup_camera
    >>> camera = Camera.from_lookat(pos=(0.0, 0.0, -4.0), lookat=(0.0, 0.0, 0.0),
    ...                             up=(0.0, 1.0, 0.0))
    >>> setup_camera(camera)
    >>> # Use get_ray(x, y, width, height, aspect_ratio) within a Taichi kernel
"""

import logging
from dataclasses import dataclass

import numpy as np
import taichi as ti

from glint.core.ray import Ray, make_ray, vec3

logger = logging.getLogger(__name__)

Vector = tuple[float, float, float]

# =============================================================================
# Camera Data Structures
# =============================================================================


def _normalized(v: np.ndarray, what: str) -> np.ndarray:
    norm = np.linalg.norm(v)
    if norm == 0.0:
        raise ValueError(f"Camera {what} is degenerate (zero length)")
    return v / norm


@dataclass(frozen=True)
class Camera:
    """An orthonormal camera frame.

    Attributes:
        pos: Camera position in world space.
        dir: Unit view direction.
        up: Unit image-plane vertical axis.
        right: Unit image-plane horizontal axis.
    """

    pos: Vector
    dir: Vector
    up: Vector
    right: Vector

    @classmethod
    def new(cls, pos: Vector, dir: Vector, up: Vector) -> "Camera":
        """Build a camera from a position, view direction and up vector.

        Raises:
            ValueError: If dir is zero or parallel to up.
        """
        view = np.asarray(dir, dtype=np.float64)
        up_hint = np.asarray(up, dtype=np.float64)

        right = _normalized(np.cross(up_hint, view), "right axis")
        true_up = _normalized(np.cross(right, view), "up axis")
        view = _normalized(view, "view direction")

        return cls(
            pos=tuple(float(c) for c in pos),
            dir=tuple(float(c) for c in view),
            up=tuple(float(c) for c in true_up),
            right=tuple(float(c) for c in right),
        )

    @classmethod
    def from_lookat(cls, pos: Vector, lookat: Vector, up: Vector) -> "Camera":
        """Build a camera at pos looking toward lookat."""
        view = np.asarray(lookat, dtype=np.float64) - np.asarray(pos, dtype=np.float64)
        return cls.new(pos, tuple(view), up)


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_pos = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_dir = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_up = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_right = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_ready = ti.field(dtype=ti.i32, shape=())


def setup_camera(camera: Camera) -> None:
    """Upload a camera's frame for rendering.

    Args:
        camera: The camera to use for subsequent renders.
    """
    _camera_pos[None] = list(camera.pos)
    _camera_dir[None] = list(camera.dir)
    _camera_up[None] = list(camera.up)
    _camera_right[None] = list(camera.right)
    _camera_ready[None] = 1
    logger.debug("Camera set at %s looking along %s", camera.pos, camera.dir)


def clear_camera() -> None:
    """Forget the current camera."""
    _camera_ready[None] = 0


def is_camera_ready() -> bool:
    """Check whether setup_camera() has been called."""
    return bool(_camera_ready[None])


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(x: ti.i32, y: ti.i32, width: ti.i32, height: ti.i32, aspect_ratio: ti.f32) -> Ray:
    """Generate the primary ray for pixel (x, y).

    Args:
        x: Pixel column (0 = left).
        y: Pixel row (0 = top).
        width: Image width in pixels.
        height: Image height in pixels.
        aspect_ratio: Image width divided by height.

    Returns:
        A Ray from the camera position with a unit direction.
    """
    norm_x = (ti.cast(x, ti.f32) / ti.cast(width, ti.f32) - 0.5) * aspect_ratio
    norm_y = ti.cast(y, ti.f32) / ti.cast(height, ti.f32) - 0.5

    direction = _camera_right[None] * norm_x + _camera_up[None] * norm_y + _camera_dir[None]
    return make_ray(_camera_pos[None], direction)


@ti.kernel
def _primary_ray_direction(x: ti.i32, y: ti.i32, width: ti.i32, height: ti.i32) -> vec3:
    aspect_ratio = ti.cast(width, ti.f32) / ti.cast(height, ti.f32)
    return get_ray(x, y, width, height, aspect_ratio).direction


def primary_ray_direction(x: int, y: int, width: int, height: int) -> tuple[float, float, float]:
    """Get the unit direction of the primary ray through a pixel.

    Raises:
        RuntimeError: If no camera has been set up.
    """
    if not is_camera_ready():
        raise RuntimeError("Camera not set up. Call setup_camera() first.")
    d = _primary_ray_direction(x, y, width, height)
    return (float(d[0]), float(d[1]), float(d[2]))


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Get the uploaded camera frame for debugging.

    Returns:
        Dictionary with pos, dir, up and right.
    """
    info = {}
    for name, value in (
        ("pos", _camera_pos[None]),
        ("dir", _camera_dir[None]),
        ("up", _camera_up[None]),
        ("right", _camera_right[None]),
    ):
        info[name] = (float(value[0]), float(value[1]), float(value[2]))
    return info
