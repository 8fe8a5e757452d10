"""Scene-level surface table and nearest-hit queries.

Every surface in the scene lives in one insertion-ordered table tagged by
SurfaceType. A sphere row uses ``surface_points`` as its center and
``surface_radii`` as its radius; a plane row uses ``surface_points`` as a
point on the plane and ``surface_normals`` as its unit normal.

Intersecting a single surface dispatches on the tag and then applies the
surface material's normal and displacement maps. The scene query tests
every surface and keeps the strictly nearest hit, so on an exact tie the
surface added first wins. There is no acceleration structure; the cost is
linear in the surface count.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.scene.intersection import add_plane, add_sphere, clear_scene
    >>> clear_scene()
    >>> add_sphere((0.0, 1.0, 0.0), 1.0, material_id=0)
    >>> add_plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), material_id=1)
    >>> # Use intersect_scene within a Taichi kernel
"""

import logging
from dataclasses import dataclass
from enum import IntEnum

import numpy as np
import taichi as ti
import taichi.math as tm

from glint.core.ray import Intersection, make_miss, make_ray
from glint.geometry.plane import Plane, hit_plane
from glint.geometry.sphere import Sphere, hit_sphere
from glint.materials.material import perturb_hit

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3


class SurfaceType(IntEnum):
    """Enumeration of supported surface types."""

    SPHERE = 0
    PLANE = 1


@ti.dataclass
class SceneHit:
    """Nearest intersection of a ray with the scene.

    Attributes:
        hit: 1 if any surface was hit, 0 otherwise.
        dist: Ray parameter of the hit (before any displacement).
        pos: Hit position, displaced if the material has a displacement map.
        normal: Unit surface normal, perturbed if the material has a normal map.
        u: First surface parameter.
        v: Second surface parameter.
        surface_id: Index of the hit surface in the surface table, or -1.
        material_id: Material of the hit surface, or -1.
    """

    hit: ti.i32
    dist: ti.f32
    pos: vec3
    normal: vec3
    u: ti.f32
    v: ti.f32
    surface_id: ti.i32
    material_id: ti.i32


# Maximum number of surfaces supported in the scene
MAX_SURFACES = 1024

surface_types = ti.field(dtype=ti.i32, shape=MAX_SURFACES)
surface_points = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SURFACES)
surface_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SURFACES)
surface_radii = ti.field(dtype=ti.f32, shape=MAX_SURFACES)
surface_material_ids = ti.field(dtype=ti.i32, shape=MAX_SURFACES)
num_surfaces = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove every surface from the table."""
    num_surfaces[None] = 0


def get_surface_count() -> int:
    """Get the number of surfaces in the scene."""
    return int(num_surfaces[None])


def _next_surface_index() -> int:
    idx = num_surfaces[None]
    if idx >= MAX_SURFACES:
        raise RuntimeError(f"Maximum number of surfaces ({MAX_SURFACES}) exceeded")
    return idx


def add_sphere(center: tuple[float, float, float], radius: float, material_id: int = 0) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center of the sphere.
        radius: The radius of the sphere (should be positive).
        material_id: The material of the sphere.

    Returns:
        The surface id.

    Raises:
        RuntimeError: If the maximum number of surfaces is exceeded.
    """
    idx = _next_surface_index()
    surface_types[idx] = int(SurfaceType.SPHERE)
    surface_points[idx] = vec3(center[0], center[1], center[2])
    surface_normals[idx] = vec3(0.0, 0.0, 0.0)
    surface_radii[idx] = radius
    surface_material_ids[idx] = material_id
    num_surfaces[None] = idx + 1
    logger.debug("Added sphere %d at %s (r=%s, material=%d)", idx, center, radius, material_id)
    return idx


def add_plane(
    point: tuple[float, float, float],
    normal: tuple[float, float, float],
    material_id: int = 0,
) -> int:
    """Add an infinite plane to the scene.

    Args:
        point: Any point on the plane.
        normal: The plane normal; it is normalized before storage.
        material_id: The material of the plane.

    Returns:
        The surface id.

    Raises:
        ValueError: If the normal has zero length.
        RuntimeError: If the maximum number of surfaces is exceeded.
    """
    n = np.asarray(normal, dtype=np.float64)
    norm = np.linalg.norm(n)
    if norm == 0.0:
        raise ValueError("Plane normal must be non-zero")
    n = n / norm

    idx = _next_surface_index()
    surface_types[idx] = int(SurfaceType.PLANE)
    surface_points[idx] = vec3(point[0], point[1], point[2])
    surface_normals[idx] = vec3(n[0], n[1], n[2])
    surface_radii[idx] = 0.0
    surface_material_ids[idx] = material_id
    num_surfaces[None] = idx + 1
    logger.debug("Added plane %d through %s (material=%d)", idx, point, material_id)
    return idx


# =============================================================================
# Intersection Queries
# =============================================================================


@ti.func
def _make_scene_miss() -> SceneHit:
    return SceneHit(
        hit=0,
        dist=0.0,
        pos=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        u=0.0,
        v=0.0,
        surface_id=-1,
        material_id=-1,
    )


@ti.func
def intersect_surface(surface_id: ti.i32, ray_origin: vec3, ray_direction: vec3) -> Intersection:
    """Intersect a ray with one surface of the table.

    Args:
        surface_id: Index into the surface table.
        ray_origin: The starting point of the ray.
        ray_direction: The unit direction of the ray.

    Returns:
        The primitive's Intersection with the material's noise maps
        applied when it is a hit.
    """
    rec = make_miss()

    kind = surface_types[surface_id]
    if kind == int(SurfaceType.SPHERE):
        sphere = Sphere(center=surface_points[surface_id], radius=surface_radii[surface_id])
        rec = hit_sphere(ray_origin, ray_direction, sphere)
    elif kind == int(SurfaceType.PLANE):
        plane = Plane(point=surface_points[surface_id], normal=surface_normals[surface_id])
        rec = hit_plane(ray_origin, ray_direction, plane)

    if rec.hit == 1:
        rec = perturb_hit(surface_material_ids[surface_id], rec)
    return rec


@ti.func
def intersect_scene(ray_origin: vec3, ray_direction: vec3) -> SceneHit:
    """Find the nearest surface hit along a ray.

    Surfaces are tested in insertion order and a later hit only replaces
    the current one when it is strictly nearer.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The unit direction of the ray.

    Returns:
        A SceneHit for the nearest surface, or a miss (hit == 0).
    """
    result = _make_scene_miss()

    for i in range(num_surfaces[None]):
        rec = intersect_surface(i, ray_origin, ray_direction)
        if rec.hit == 1 and (result.hit == 0 or rec.dist < result.dist):
            result = SceneHit(
                hit=1,
                dist=rec.dist,
                pos=rec.pos,
                normal=rec.normal,
                u=rec.u,
                v=rec.v,
                surface_id=i,
                material_id=surface_material_ids[i],
            )

    return result


# =============================================================================
# Python-side Inspection
# =============================================================================


@dataclass(frozen=True)
class HitInfo:
    """Python copy of a SceneHit, returned by cast_ray()."""

    dist: float
    pos: tuple[float, float, float]
    normal: tuple[float, float, float]
    u: float
    v: float
    surface_id: int
    material_id: int


_cast_hit = ti.field(dtype=ti.i32, shape=())
_cast_dist = ti.field(dtype=ti.f32, shape=())
_cast_pos = ti.Vector.field(3, dtype=ti.f32, shape=())
_cast_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_cast_uv = ti.Vector.field(2, dtype=ti.f32, shape=())
_cast_ids = ti.Vector.field(2, dtype=ti.i32, shape=())


@ti.kernel
def _cast_ray_kernel(origin: vec3, direction: vec3):
    ray = make_ray(origin, direction)
    rec = intersect_scene(ray.origin, ray.direction)
    _cast_hit[None] = rec.hit
    _cast_dist[None] = rec.dist
    _cast_pos[None] = rec.pos
    _cast_normal[None] = rec.normal
    _cast_uv[None] = ti.Vector([rec.u, rec.v])
    _cast_ids[None] = ti.Vector([rec.surface_id, rec.material_id])


def _as_tuple(v) -> tuple[float, float, float]:
    return (float(v[0]), float(v[1]), float(v[2]))


def cast_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
) -> HitInfo | None:
    """Query the nearest hit from Python.

    Args:
        origin: Ray origin.
        direction: Ray direction (normalized before tracing).

    Returns:
        HitInfo for the nearest hit, or None on a miss.
    """
    _cast_ray_kernel(vec3(*origin), vec3(*direction))
    if _cast_hit[None] == 0:
        return None
    uv = _cast_uv[None]
    ids = _cast_ids[None]
    return HitInfo(
        dist=float(_cast_dist[None]),
        pos=_as_tuple(_cast_pos[None]),
        normal=_as_tuple(_cast_normal[None]),
        u=float(uv[0]),
        v=float(uv[1]),
        surface_id=int(ids[0]),
        material_id=int(ids[1]),
    )
