"""Infinite plane primitive with ray-plane intersection.

A plane is defined by:
- point: Any point lying on the plane
- normal: The unit plane normal

Ray-plane intersection uses the parametric plane test:

    denom = dot(dir, normal)
    d = dot(normal, point - origin) / denom

A ray is treated as parallel only when ``denom`` is exactly zero. Rays that
are merely close to parallel produce very distant hits; this matches the
reference renderer and is a known precision caveat.

Surface parameters project the hit position onto a pair of axes derived
from the normal:

    u_axis = (n.y, n.z, -n.x)
    v_axis = cross(u_axis, n)

These axes are not unit length and are only orthogonal to the normal for
axis-aligned planes. Checkerboard and image textures on planes are laid out
with exactly this basis.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.geometry.plane import Plane, hit_plane
    >>> # Ground plane at y=0
    >>> floor = Plane(point=ti.math.vec3(0, 0, 0), normal=ti.math.vec3(0, 1, 0))
    >>> # Use hit_plane within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from glint.core.ray import Intersection, make_miss

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Plane:
    """An infinite plane defined by a point and a unit normal.

    Attributes:
        point: A point on the plane (vec3).
        normal: The unit plane normal (vec3).
    """

    point: vec3
    normal: vec3


@ti.func
def plane_uv_axes(normal: vec3):
    """Compute the texture axes of a plane.

    Args:
        normal: The plane normal.

    Returns:
        Tuple of (u_axis, v_axis).
    """
    u_axis = vec3(normal.y, normal.z, -normal.x)
    v_axis = tm.cross(u_axis, normal)
    return u_axis, v_axis


@ti.func
def hit_plane(ray_origin: vec3, ray_direction: vec3, plane: Plane) -> Intersection:
    """Test for ray-plane intersection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The unit direction of the ray.
        plane: The plane to test against.

    Returns:
        An Intersection. The normal is the plane's own normal regardless of
        which side the ray arrives from.
    """
    result = make_miss()

    denom = tm.dot(ray_direction, plane.normal)
    if denom != 0.0:
        d = tm.dot(plane.normal, plane.point - ray_origin) / denom
        if d > 0.0:
            pos = ray_origin + ray_direction * d
            u_axis, v_axis = plane_uv_axes(plane.normal)
            u = tm.dot(pos, u_axis)
            v = tm.dot(pos, v_axis)
            result = Intersection(hit=1, dist=d, pos=pos, normal=plane.normal, u=u, v=v)

    return result


@ti.func
def make_plane(point: vec3, normal: vec3) -> Plane:
    """Create a plane from a point and a normal."""
    return Plane(point=point, normal=normal)
