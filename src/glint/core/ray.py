"""Ray and intersection data structures plus vector utilities.

This module provides the Ray and Intersection dataclasses shared by every
stage of the tracer, along with small vector helpers used inside Taichi
kernels.

Rays always carry a unit-length direction: make_ray() normalizes the
direction it is given, so callers may pass any non-zero vector (for
example ``light_pos - hit_pos``).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, -4.0)
    >>> # Inside a kernel:
    >>> # ray = make_ray(origin, vec3(0.0, 0.0, 2.0))  # direction becomes (0, 0, 1)
    >>> # point = ray_at(ray, 3.0)                       # (0, 0, -1)
"""

import numpy as np
import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Offset applied along the surface normal before casting secondary rays.
# sqrt(machine epsilon) of the f32 kernels, roughly 3.45e-4.
SURFACE_EPSILON = float(np.sqrt(np.finfo(np.float32).eps))


@ti.dataclass
class Ray:
    """A ray with an origin point and a unit direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction of the ray (vec3). Unit length when the
            ray is built with make_ray().
    """

    origin: vec3
    direction: vec3


@ti.dataclass
class Intersection:
    """Record of a ray-surface intersection.

    Attributes:
        hit: 1 if the ray hit the surface, 0 otherwise.
        dist: Distance along the generating ray (> 0 when hit == 1).
        pos: The hit position.
        normal: The unit surface normal at the hit position.
        u: First surface parameter (definition depends on surface type).
        v: Second surface parameter.
    """

    hit: ti.i32
    dist: ti.f32
    pos: vec3
    normal: vec3
    u: ti.f32
    v: ti.f32


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray, normalizing its direction.

    A zero-length direction is a caller error; the result is undefined.

    Args:
        origin: The starting point of the ray.
        direction: Any non-zero direction vector.

    Returns:
        A new Ray with a unit direction.
    """
    return Ray(origin=origin, direction=tm.normalize(direction))


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t."""
    return ray.origin + t * ray.direction


@ti.func
def make_miss() -> Intersection:
    """Create an Intersection indicating no hit."""
    return Intersection(
        hit=0,
        dist=0.0,
        pos=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        u=0.0,
        v=0.0,
    )


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes.
    """
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length."""
    return tm.normalize(v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product of two vectors."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product of two vectors."""
    return tm.cross(a, b)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        incident - 2 * dot(incident, normal) * normal
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def offset_point(point: vec3, normal: vec3) -> vec3:
    """Push a hit point off the surface along its normal.

    Secondary rays start from the offset point so they do not immediately
    re-hit the surface they leave ("shadow acne").
    """
    return point + normal * SURFACE_EPSILON
