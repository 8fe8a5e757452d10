"""Whitted-style ray tracing integrator.

For every pixel a primary ray is traced through the scene. At each hit the
local color is

    ambient  = raw_color * (ambient_color / 255 * ambient_coeff)
    direct   = sum over visible lights of
               shade(...) * (light_color / 255 * light_intensity)

and, below the depth limit, a mirror ray is traced from the offset hit
point and its color is added weighted by the material reflectivity:

    trace(d) = local(d) + reflectivity(d) * trace(d + 1)

Taichi functions cannot recurse, so trace_ray() walks the reflection chain
in a loop carrying the product of reflectivities seen so far. Termination
matches the recursive form: a miss contributes the black background, the
chain stops at ``max_depth``, and a surface with reflectivity <= 0 ends it.

A light is visible when the shadow ray toward it hits nothing or hits
something farther away than the light itself.

Pixels are independent, so the render kernel's outermost loop runs in
parallel over the whole image. Colors stay on the 0-255 scale until the
final write, which clamps each channel to [0, 255] and truncates to uint8.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.scene.demo import create_demo_scene
    >>> from glint.core.integrator import render
    >>> scene = create_demo_scene()
    >>> image = render(scene, 320, 240, max_reflection_depth=3)
    >>> image.shape
    (240, 320, 3)
"""

import logging
import time
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from glint.camera.pinhole import get_ray, is_camera_ready, setup_camera
from glint.config import DEFAULT_REFLECTION_DEPTH
from glint.core.ray import Ray, make_ray, offset_point, reflect
from glint.materials.material import get_raw_color, get_reflectivity, shade
from glint.scene.intersection import SceneHit, intersect_scene
from glint.scene.lights import ambient_weight, light_positions, light_weight, num_lights

if TYPE_CHECKING:
    from glint.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Largest accepted image dimensions
MAX_IMAGE_WIDTH = 8192
MAX_IMAGE_HEIGHT = 8192


# =============================================================================
# Shading
# =============================================================================


@ti.func
def local_color(ray_direction: vec3, rec: SceneHit) -> vec3:
    """Ambient plus direct lighting at a hit, without reflection.

    Args:
        ray_direction: Unit direction of the ray that produced the hit.
        rec: The scene hit.

    Returns:
        Color on the 0-255 scale (unclamped).
    """
    material_id = rec.material_id
    color = get_raw_color(material_id) * ambient_weight()

    shadow_origin = offset_point(rec.pos, rec.normal)
    for i in range(num_lights[None]):
        to_light = light_positions[i] - shadow_origin
        light_dist = tm.length(to_light)
        shadow_ray = make_ray(shadow_origin, to_light)

        blocker = intersect_scene(shadow_ray.origin, shadow_ray.direction)
        if blocker.hit == 0 or blocker.dist > light_dist:
            direct = shade(material_id, shadow_ray.direction, ray_direction, rec.normal, rec.u, rec.v)
            color += direct * light_weight(i)

    return color


@ti.func
def trace_ray(ray: Ray, depth: ti.i32, max_depth: ti.i32) -> vec3:
    """Trace a ray and its chain of mirror reflections.

    Args:
        ray: The ray to trace (unit direction).
        depth: Reflection depth of this ray (0 for primary rays).
        max_depth: Depth at which no further reflection is traced.

    Returns:
        Color on the 0-255 scale (unclamped); black for a miss.
    """
    color = vec3(0.0, 0.0, 0.0)
    weight = 1.0
    current = ray
    d = depth
    active = 1

    while active == 1:
        rec = intersect_scene(current.origin, current.direction)
        if rec.hit == 0:
            active = 0
        else:
            color += local_color(current.direction, rec) * weight

            reflectivity = get_reflectivity(rec.material_id)
            if d >= max_depth or reflectivity <= 0.0:
                active = 0
            else:
                weight *= reflectivity
                origin = offset_point(rec.pos, rec.normal)
                current = make_ray(origin, reflect(current.direction, rec.normal))
                d += 1

    return color


@ti.func
def to_pixel(color: vec3):
    """Clamp a 0-255 color and truncate it to 8-bit channels."""
    clamped = ti.min(ti.max(color, 0.0), 255.0)
    return ti.cast(clamped, ti.u8)


# =============================================================================
# Kernels
# =============================================================================


@ti.kernel
def _render_kernel(out: ti.types.ndarray(), width: ti.i32, height: ti.i32, max_depth: ti.i32):
    aspect_ratio = ti.cast(width, ti.f32) / ti.cast(height, ti.f32)
    for x, y in ti.ndrange(width, height):
        ray = get_ray(x, y, width, height, aspect_ratio)
        pixel = to_pixel(trace_ray(ray, 0, max_depth))
        for c in ti.static(range(3)):
            out[y, x, c] = pixel[c]


@ti.kernel
def _render_pixel_kernel(
    out: ti.types.ndarray(),
    x: ti.i32,
    y: ti.i32,
    width: ti.i32,
    height: ti.i32,
    max_depth: ti.i32,
):
    aspect_ratio = ti.cast(width, ti.f32) / ti.cast(height, ti.f32)
    ray = get_ray(x, y, width, height, aspect_ratio)
    pixel = to_pixel(trace_ray(ray, 0, max_depth))
    for c in ti.static(range(3)):
        out[0, 0, c] = pixel[c]


@ti.kernel
def _trace_single_ray_kernel(origin: vec3, direction: vec3, depth: ti.i32, max_depth: ti.i32) -> vec3:
    return trace_ray(make_ray(origin, direction), depth, max_depth)


# =============================================================================
# Python API
# =============================================================================


def _validate_dimensions(width: int, height: int, max_reflection_depth: int) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )
    if max_reflection_depth < 0:
        raise ValueError(f"max_reflection_depth must be non-negative, got {max_reflection_depth}")


def render_image(
    width: int,
    height: int,
    max_reflection_depth: int = DEFAULT_REFLECTION_DEPTH,
) -> npt.NDArray[np.uint8]:
    """Render the currently loaded scene with the current camera.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        max_reflection_depth: Maximum number of mirror bounces.

    Returns:
        uint8 array of shape (height, width, 3). Pixel (x, y) is at row y.

    Raises:
        ValueError: If the dimensions or depth are invalid.
        RuntimeError: If no camera has been set up.
    """
    _validate_dimensions(width, height, max_reflection_depth)
    if not is_camera_ready():
        raise RuntimeError("Camera not set up. Call setup_camera() first.")

    logger.info("Rendering %dx%d (max reflection depth %d)", width, height, max_reflection_depth)
    start = time.perf_counter()

    image = np.zeros((height, width, 3), dtype=np.uint8)
    _render_kernel(image, width, height, max_reflection_depth)
    ti.sync()

    logger.info("Rendered %dx%d in %.2fs", width, height, time.perf_counter() - start)
    return image


def render(
    scene: "SceneManager",
    width: int,
    height: int,
    max_reflection_depth: int = DEFAULT_REFLECTION_DEPTH,
) -> npt.NDArray[np.uint8]:
    """Render a scene into an RGB8 raster.

    The scene is activated first, so it renders the same image even if
    another SceneManager has been built since.

    Args:
        scene: The scene to render.
        width: Image width in pixels.
        height: Image height in pixels.
        max_reflection_depth: Maximum number of mirror bounces.

    Returns:
        uint8 array of shape (height, width, 3).

    Raises:
        ValueError: If the dimensions or depth are invalid.
        RuntimeError: If the scene has no camera.
    """
    if scene.camera is None:
        raise RuntimeError("Scene has no camera. Call set_camera() first.")
    scene.activate()
    setup_camera(scene.camera)
    return render_image(width, height, max_reflection_depth)


def trace_single_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    depth: int = 0,
    max_depth: int = DEFAULT_REFLECTION_DEPTH,
) -> tuple[float, float, float]:
    """Trace one ray from Python and return its unclamped color.

    Useful for testing and debugging.

    Args:
        origin: Ray origin.
        direction: Ray direction (normalized before tracing).
        depth: Starting reflection depth.
        max_depth: Reflection depth limit.

    Returns:
        Tuple of (R, G, B) on the 0-255 scale.
    """
    color = _trace_single_ray_kernel(vec3(*origin), vec3(*direction), depth, max_depth)
    return (float(color[0]), float(color[1]), float(color[2]))


def render_pixel(
    x: int,
    y: int,
    width: int,
    height: int,
    max_reflection_depth: int = DEFAULT_REFLECTION_DEPTH,
) -> tuple[int, int, int]:
    """Render one pixel of a width x height image with the current camera.

    Returns:
        Tuple of (R, G, B) 8-bit channels, identical to the same pixel of
        render_image().
    """
    _validate_dimensions(width, height, max_reflection_depth)
    if not is_camera_ready():
        raise RuntimeError("Camera not set up. Call setup_camera() first.")
    out = np.zeros((1, 1, 3), dtype=np.uint8)
    _render_pixel_kernel(out, x, y, width, height, max_reflection_depth)
    return (int(out[0, 0, 0]), int(out[0, 0, 1]), int(out[0, 0, 2]))

