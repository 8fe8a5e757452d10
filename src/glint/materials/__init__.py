"""Materials module: shading, textures and procedural noise.

Components:
    material: Material registry and Phong-style local shading
    texture: Checkerboard and image textures
    noise: fBm noise maps perturbing normals and positions
"""

from .material import (
    Material,
    add_material,
    clear_materials,
    get_material_count,
    get_raw_color,
    get_reflectivity,
    perturb_hit,
    shade,
)
from .noise import (
    DisplacementMap,
    NoiseParams,
    NormalMap,
    add_noise_map,
    apply_displacement_map,
    apply_normal_map,
    clear_noise_maps,
    evaluate_noise,
    fbm3,
    get_noise_map_count,
    perlin3,
)
from .texture import (
    CheckerboardTexture,
    ImageTexture,
    Texture,
    TextureLoadError,
    TextureType,
    add_checkerboard_texture,
    add_image_texture,
    add_texture,
    clear_textures,
    get_texture_count,
    load_image_texture,
    sample_texture,
    texture_color,
)

__all__ = [
    # Material
    "Material",
    "add_material",
    "clear_materials",
    "get_material_count",
    "get_raw_color",
    "get_reflectivity",
    "shade",
    "perturb_hit",
    # Textures
    "Texture",
    "TextureType",
    "TextureLoadError",
    "CheckerboardTexture",
    "ImageTexture",
    "load_image_texture",
    "add_checkerboard_texture",
    "add_image_texture",
    "add_texture",
    "clear_textures",
    "get_texture_count",
    "sample_texture",
    "texture_color",
    # Noise maps
    "NoiseParams",
    "NormalMap",
    "DisplacementMap",
    "add_noise_map",
    "clear_noise_maps",
    "get_noise_map_count",
    "perlin3",
    "fbm3",
    "apply_normal_map",
    "apply_displacement_map",
    "evaluate_noise",
]
