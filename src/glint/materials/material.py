"""Surface material: base color, shading coefficients, texture and noise maps.

A material computes the direct contribution of one visible point light:

    diffuse  = color * max(0, n . l) * diffuse_coeff * (texture(u, v) / 255)
    half     = normalize((l - d) / 2)
    specular = (255, 255, 255) * max(0, half . n) ** glossiness * specular_coeff

where ``l`` is the unit direction toward the light and ``d`` the unit
camera-ray direction (pointing into the surface, hence the subtraction).
The result stays on the 0-255 scale and is not yet weighted by the light's
color or intensity; the integrator applies those.

The ambient term uses the raw base color, and reflectivity in [0, 1]
weights the recursively traced mirror reflection.

Materials optionally reference a texture and noise maps by id. Textures
and maps are registered separately so several materials can share them.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.materials.material import add_material
    >>> blue = add_material(color=(0.0, 0.0, 255.0), diffuse_coeff=0.3,
    ...                     specular_coeff=0.2, glossiness=20.0)
    >>> # Use shade(blue, ...) within a Taichi kernel
"""

import logging
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from glint.core.ray import Intersection
from glint.materials.noise import (
    DisplacementMap,
    NormalMap,
    apply_displacement_map,
    apply_normal_map,
    num_noise_maps,
)
from glint.materials.texture import Texture, num_textures, sample_texture

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3


@dataclass(eq=False)
class Material:
    """Description of a surface material.

    Attributes:
        color: Base color on the 0-255 scale.
        diffuse_coeff: Weight of the Lambertian term.
        specular_coeff: Weight of the specular highlight.
        glossiness: Specular exponent (higher is sharper).
        reflectivity: Weight of mirror-reflected light, in [0, 1].
        texture: Optional texture modulating the diffuse term.
        normal_map: Optional noise map perturbing hit normals.
        displacement_map: Optional noise map displacing hit positions.
    """

    color: tuple[float, float, float]
    diffuse_coeff: float = 1.0
    specular_coeff: float = 0.0
    glossiness: float = 0.0
    reflectivity: float = 0.0
    texture: Texture | None = None
    normal_map: NormalMap | None = None
    displacement_map: DisplacementMap | None = None


# =============================================================================
# Material Field Storage
# =============================================================================

# Maximum number of materials in the scene
MAX_MATERIALS = 256

material_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_diffuse_coeffs = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_specular_coeffs = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_glossiness = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_reflectivities = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
# -1 marks an absent texture or map
material_texture_ids = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_normal_map_ids = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_displacement_map_ids = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Clear all materials.

    Textures and noise maps are cleared separately.
    """
    num_materials[None] = 0


def get_material_count() -> int:
    """Get the number of registered materials."""
    return int(num_materials[None])


def add_material(
    color: tuple[float, float, float],
    diffuse_coeff: float = 1.0,
    specular_coeff: float = 0.0,
    glossiness: float = 0.0,
    reflectivity: float = 0.0,
    texture_id: int = -1,
    normal_map_id: int = -1,
    displacement_map_id: int = -1,
) -> int:
    """Register a material.

    Args:
        color: Base color as (R, G, B) on the 0-255 scale.
        diffuse_coeff: Weight of the diffuse term.
        specular_coeff: Weight of the specular term.
        glossiness: Specular exponent.
        reflectivity: Mirror reflection weight in [0, 1].
        texture_id: Registered texture id, or -1 for none.
        normal_map_id: Registered noise map id, or -1 for none.
        displacement_map_id: Registered noise map id, or -1 for none.

    Returns:
        The material id.

    Raises:
        ValueError: If reflectivity is outside [0, 1] or a referenced
            texture/map id is not registered.
        RuntimeError: If the maximum number of materials is exceeded.
    """
    if reflectivity < 0.0 or reflectivity > 1.0:
        raise ValueError(f"Reflectivity {reflectivity} is outside [0, 1]")
    if texture_id != -1 and not 0 <= texture_id < num_textures[None]:
        raise ValueError(f"Invalid texture_id: {texture_id}")
    for map_id in (normal_map_id, displacement_map_id):
        if map_id != -1 and not 0 <= map_id < num_noise_maps[None]:
            raise ValueError(f"Invalid noise map id: {map_id}")

    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    material_colors[idx] = vec3(color[0], color[1], color[2])
    material_diffuse_coeffs[idx] = diffuse_coeff
    material_specular_coeffs[idx] = specular_coeff
    material_glossiness[idx] = glossiness
    material_reflectivities[idx] = reflectivity
    material_texture_ids[idx] = texture_id
    material_normal_map_ids[idx] = normal_map_id
    material_displacement_map_ids[idx] = displacement_map_id
    num_materials[None] = idx + 1

    logger.debug("Registered material %d (color=%s, reflectivity=%s)", idx, color, reflectivity)
    return idx


# =============================================================================
# Shading
# =============================================================================


@ti.func
def get_raw_color(material_id: ti.i32) -> vec3:
    """Get the untextured base color of a material (used for ambient light)."""
    return material_colors[material_id]


@ti.func
def get_reflectivity(material_id: ti.i32) -> ti.f32:
    """Get the mirror reflectivity of a material."""
    return material_reflectivities[material_id]


@ti.func
def shade(
    material_id: ti.i32,
    shadow_direction: vec3,
    camera_direction: vec3,
    normal: vec3,
    u: ti.f32,
    v: ti.f32,
) -> vec3:
    """Compute the local diffuse + specular color for one visible light.

    Args:
        material_id: The material of the hit surface.
        shadow_direction: Unit direction from the hit point toward the light.
        camera_direction: Unit direction of the ray that produced the hit.
        normal: Unit surface normal at the hit point.
        u: First surface parameter of the hit.
        v: Second surface parameter of the hit.

    Returns:
        The diffuse + specular color on the 0-255 scale, not yet scaled by
        light color or intensity.
    """
    f = ti.max(0.0, tm.dot(normal, shadow_direction))

    tint = vec3(1.0, 1.0, 1.0)
    texture_id = material_texture_ids[material_id]
    if texture_id >= 0:
        tint = sample_texture(texture_id, u, v) / 255.0

    diffuse = material_colors[material_id] * f * material_diffuse_coeffs[material_id] * tint

    # Flip the camera ray so both directions point away from the surface
    half_vec = tm.normalize((shadow_direction - camera_direction) / 2.0)
    f2 = ti.max(0.0, tm.dot(half_vec, normal)) ** material_glossiness[material_id]
    specular = vec3(255.0, 255.0, 255.0) * f2 * material_specular_coeffs[material_id]

    return diffuse + specular


@ti.func
def perturb_hit(material_id: ti.i32, rec: Intersection) -> Intersection:
    """Apply a material's normal and displacement maps to a hit.

    The normal map is evaluated at the undisplaced position. Distance and
    surface parameters are left as computed by the primitive. Hits on
    surfaces whose material is not registered pass through unchanged.
    """
    normal = rec.normal
    pos = rec.pos

    if 0 <= material_id < num_materials[None]:
        normal_map_id = material_normal_map_ids[material_id]
        if normal_map_id >= 0:
            normal = apply_normal_map(normal_map_id, normal, pos)

        displacement_map_id = material_displacement_map_ids[material_id]
        if displacement_map_id >= 0:
            pos = apply_displacement_map(displacement_map_id, pos)

    return Intersection(hit=rec.hit, dist=rec.dist, pos=pos, normal=normal, u=rec.u, v=rec.v)
