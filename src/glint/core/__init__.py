"""Core rendering module.

Components:
    ray: Ray and Intersection structures and vector utilities
    integrator: Whitted-style ray tracing and the render entry point

The integrator is NOT imported here to avoid circular imports. Import it
directly from glint.core.integrator.
"""

from .ray import (
    SURFACE_EPSILON,
    Intersection,
    Ray,
    cross,
    dot,
    length,
    length_squared,
    make_miss,
    make_ray,
    normalize,
    offset_point,
    ray_at,
    reflect,
    vec3,
)

__all__ = [
    "Ray",
    "Intersection",
    "SURFACE_EPSILON",
    "make_ray",
    "make_miss",
    "ray_at",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "offset_point",
]
