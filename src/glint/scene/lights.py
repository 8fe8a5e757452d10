"""Point lights and the scene ambient term.

Lights are stored in preallocated fields like every other registry. Colors
are on the 0-255 scale and are divided by 255 when a light's contribution
is weighted, so a white light of intensity 1 passes shading through
unchanged.
"""

import logging
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

WHITE = (255.0, 255.0, 255.0)


@dataclass
class PointLight:
    """An isotropic point light.

    Attributes:
        pos: Light position in world space.
        color: Light color on the 0-255 scale.
        intensity: Scalar multiplier applied to the color.
    """

    pos: tuple[float, float, float]
    color: tuple[float, float, float] = WHITE
    intensity: float = 1.0


# Maximum number of point lights in the scene
MAX_LIGHTS = 64

light_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_intensities = ti.field(dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())

ambient_coeff = ti.field(dtype=ti.f32, shape=())
ambient_color = ti.Vector.field(3, dtype=ti.f32, shape=())


def clear_lights() -> None:
    """Remove all point lights and reset the ambient term to zero (white)."""
    num_lights[None] = 0
    ambient_coeff[None] = 0.0
    ambient_color[None] = vec3(*WHITE)


def get_light_count() -> int:
    """Get the number of point lights."""
    return int(num_lights[None])


def add_point_light(
    pos: tuple[float, float, float],
    color: tuple[float, float, float] = WHITE,
    intensity: float = 1.0,
) -> int:
    """Add a point light.

    Args:
        pos: Light position.
        color: Light color as (R, G, B) on the 0-255 scale.
        intensity: Non-negative intensity multiplier.

    Returns:
        The light index.

    Raises:
        ValueError: If intensity is negative.
        RuntimeError: If the maximum number of lights is exceeded.
    """
    if intensity < 0.0:
        raise ValueError(f"Light intensity must be non-negative, got {intensity}")

    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")

    light_positions[idx] = vec3(pos[0], pos[1], pos[2])
    light_colors[idx] = vec3(color[0], color[1], color[2])
    light_intensities[idx] = intensity
    num_lights[None] = idx + 1
    logger.debug("Added point light %d at %s (color=%s, intensity=%s)", idx, pos, color, intensity)
    return idx


def set_ambient(coeff: float, color: tuple[float, float, float] = WHITE) -> None:
    """Set the scene-wide ambient term.

    Args:
        coeff: Ambient coefficient (0 disables ambient light).
        color: Ambient color on the 0-255 scale.
    """
    ambient_coeff[None] = coeff
    ambient_color[None] = vec3(color[0], color[1], color[2])


def get_ambient() -> tuple[float, tuple[float, float, float]]:
    """Get the current (coeff, color) ambient term."""
    c = ambient_color[None]
    return float(ambient_coeff[None]), (float(c[0]), float(c[1]), float(c[2]))


@ti.func
def ambient_weight() -> vec3:
    """Per-channel ambient multiplier ambient_color / 255 * ambient_coeff."""
    return ambient_color[None] / 255.0 * ambient_coeff[None]


@ti.func
def light_weight(light_id: ti.i32) -> vec3:
    """Per-channel light multiplier color / 255 * intensity."""
    return light_colors[light_id] / 255.0 * light_intensities[light_id]
