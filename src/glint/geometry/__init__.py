"""Geometry module for shape primitives.

Components:
    sphere: Sphere primitive with ray-sphere intersection and UV mapping
    plane: Infinite plane primitive with ray-plane intersection

All intersection routines are Taichi functions returning an Intersection.
"""

from .plane import Plane, hit_plane, make_plane, plane_uv_axes
from .sphere import Sphere, hit_sphere, make_sphere, sphere_uv

__all__ = [
    "Sphere",
    "hit_sphere",
    "make_sphere",
    "sphere_uv",
    "Plane",
    "hit_plane",
    "make_plane",
    "plane_uv_axes",
]
