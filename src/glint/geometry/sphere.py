"""Sphere primitive with ray-sphere intersection.

The intersection solves the quadratic

    |origin + t * dir - center|^2 = radius^2

which, for a unit ray direction, reduces to ``t^2 + b*t + c = 0`` with

    b = 2 * dot(dir, origin - center)
    c = |origin - center|^2 - radius^2

The smaller positive root is used when the ray starts outside the sphere;
when the ray starts inside, only the larger root is positive and it is used
instead (the exit point). Spheres entirely behind the ray origin are missed.

Surface parameters use an angle mapping around the hit point's direction
toward the center:

    u = 0.5 + atan2(c.z, c.x) / (2*pi)
    v = 0.5 - atan(c.y) / pi

where ``c = normalize(center - pos)``. The latitude term uses ``atan`` of
the y component rather than ``acos``; textures authored for this renderer
depend on that exact mapping.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, 0), radius=1.0)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from glint.core.ray import Intersection, make_miss

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.func
def sphere_uv(center: vec3, pos: vec3):
    """Compute the (u, v) surface parameters of a point on a sphere.

    Args:
        center: The sphere center.
        pos: A point on the sphere surface.

    Returns:
        Tuple of (u, v).
    """
    center_vec = tm.normalize(center - pos)
    u = 0.5 + ti.atan2(center_vec.z, center_vec.x) / (2.0 * tm.pi)
    # atan(y) written as atan2(y, 1)
    v = 0.5 - ti.atan2(center_vec.y, 1.0) / tm.pi
    return u, v


@ti.func
def hit_sphere(ray_origin: vec3, ray_direction: vec3, sphere: Sphere) -> Intersection:
    """Test for ray-sphere intersection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The unit direction of the ray.
        sphere: The sphere to test against.

    Returns:
        An Intersection. Check the hit field to determine whether the ray
        hit the sphere. The normal always points away from the center.
    """
    center_offset = ray_origin - sphere.center
    b = 2.0 * tm.dot(ray_direction, center_offset)
    c = tm.dot(center_offset, center_offset) - sphere.radius * sphere.radius

    discriminant = b * b - 4.0 * c

    result = make_miss()

    if discriminant >= 0.0:
        disc_sqrt = ti.sqrt(discriminant)
        # d1 is always the larger root
        d1 = 0.5 * (-b + disc_sqrt)
        d2 = 0.5 * (-b - disc_sqrt)

        d = 0.0
        valid = 0
        if d2 > 0.0:
            d = d2
            valid = 1
        elif d1 > 0.0:
            # Ray origin is inside the sphere
            d = d1
            valid = 1

        if valid == 1:
            pos = ray_origin + ray_direction * d
            normal = tm.normalize(pos - sphere.center)
            u, v = sphere_uv(sphere.center, pos)
            result = Intersection(hit=1, dist=d, pos=pos, normal=normal, u=u, v=v)

    return result


@ti.func
def make_sphere(center: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere from center and radius."""
    return Sphere(center=center, radius=radius)
