"""Surface textures: checkerboard and image.

Textures map surface parameters (u, v) to a color on the 0-255 scale. Two
kinds are supported:

- Checkerboard: a two-color tile pattern with period ``dim`` in both axes.
- Image: nearest-neighbor lookup into an RGB image, wrapping (u, v) into
  [0, 1) so the image tiles across the surface.

Textures are registered once and referenced by integer id from any number
of materials. All image texels share one packed atlas field; each image
texture records its offset, width and height into it.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.materials.texture import add_checkerboard_texture
    >>> checker_id = add_checkerboard_texture(dim=1.0)
    >>> # Use sample_texture(checker_id, u, v) within a Taichi kernel
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm
from PIL import Image as PILImage

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3


class TextureLoadError(ValueError):
    """Raised when an image texture cannot be read, decoded, or is not RGB."""


class TextureType(IntEnum):
    """Enumeration of supported texture types."""

    CHECKERBOARD = 0
    IMAGE = 1


@dataclass(eq=False)
class CheckerboardTexture:
    """Two-color checkerboard with tile period ``dim``.

    Attributes:
        dim: The checker period in surface-parameter units (positive).
    """

    dim: float = 1.0


@dataclass(eq=False)
class ImageTexture:
    """An RGB image texture.

    Attributes:
        pixels: uint8 array of shape (height, width, 3). Row 0 is the top
            row of the image.
        path: Source file the pixels were decoded from, if any.
    """

    pixels: npt.NDArray[np.uint8]
    path: str | None = None

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @classmethod
    def from_file(cls, path: str | Path) -> "ImageTexture":
        """Decode an image file into a texture (see load_image_texture)."""
        return load_image_texture(path)


Texture = CheckerboardTexture | ImageTexture


def load_image_texture(path: str | Path) -> ImageTexture:
    """Load an RGB image file as a texture.

    Args:
        path: Path to the image file.

    Returns:
        The decoded ImageTexture.

    Raises:
        TextureLoadError: If the file cannot be opened or decoded, or the
            image is not plain RGB (alpha and palette images are rejected).
    """
    try:
        with PILImage.open(path) as image:
            image.load()
            mode = image.mode
            pixels = np.array(image, dtype=np.uint8) if mode == "RGB" else None
    except (OSError, SyntaxError) as exc:
        raise TextureLoadError(f"Cannot decode texture image {path}: {exc}") from exc

    if pixels is None:
        raise TextureLoadError(
            f"Texture image {path} has unsupported mode {mode!r}; only RGB images are accepted"
        )

    logger.debug("Loaded texture image %s (%dx%d)", path, pixels.shape[1], pixels.shape[0])
    return ImageTexture(pixels=pixels, path=str(path))


# =============================================================================
# Texture Field Storage
# =============================================================================

# Maximum number of textures in the scene
MAX_TEXTURES = 64

# Total texel capacity shared by all image textures
MAX_TEXELS = 2048 * 2048

texture_types = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_dims = ti.field(dtype=ti.f32, shape=MAX_TEXTURES)
texture_offsets = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_widths = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_heights = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
num_textures = ti.field(dtype=ti.i32, shape=())

# Packed RGB texels of every image texture, row-major per image
texture_texels = ti.Vector.field(3, dtype=ti.u8, shape=MAX_TEXELS)
num_texels = ti.field(dtype=ti.i32, shape=())


def clear_textures() -> None:
    """Clear all textures and release the texel atlas."""
    num_textures[None] = 0
    num_texels[None] = 0


def get_texture_count() -> int:
    """Get the number of registered textures."""
    return int(num_textures[None])


def _next_texture_index() -> int:
    idx = num_textures[None]
    if idx >= MAX_TEXTURES:
        raise RuntimeError(f"Maximum number of textures ({MAX_TEXTURES}) exceeded")
    return idx


def add_checkerboard_texture(dim: float = 1.0) -> int:
    """Register a checkerboard texture.

    Args:
        dim: The checker period (must be positive).

    Returns:
        The texture id.

    Raises:
        ValueError: If dim is not positive.
        RuntimeError: If the maximum number of textures is exceeded.
    """
    if dim <= 0.0:
        raise ValueError(f"Checkerboard dim must be positive, got {dim}")

    idx = _next_texture_index()
    texture_types[idx] = int(TextureType.CHECKERBOARD)
    texture_dims[idx] = dim
    texture_offsets[idx] = 0
    texture_widths[idx] = 0
    texture_heights[idx] = 0
    num_textures[None] = idx + 1
    logger.debug("Registered checkerboard texture %d (dim=%s)", idx, dim)
    return idx


@ti.kernel
def _upload_texels(pixels: ti.types.ndarray(), offset: ti.i32, width: ti.i32, height: ti.i32):
    for y, x in ti.ndrange(height, width):
        texel = offset + y * width + x
        for c in ti.static(range(3)):
            texture_texels[texel][c] = pixels[y, x, c]


def add_image_texture(pixels: npt.NDArray[np.uint8]) -> int:
    """Register an image texture from an RGB pixel array.

    Args:
        pixels: Array of shape (height, width, 3). Values are interpreted on
            the 0-255 scale.

    Returns:
        The texture id.

    Raises:
        ValueError: If the array is not a non-empty (H, W, 3) image.
        RuntimeError: If the texture or texel capacity is exceeded.
    """
    if pixels.ndim != 3 or pixels.shape[2] != 3 or pixels.shape[0] == 0 or pixels.shape[1] == 0:
        raise ValueError(f"Image texture must have shape (H, W, 3), got {pixels.shape}")

    height, width = int(pixels.shape[0]), int(pixels.shape[1])
    offset = num_texels[None]
    if offset + width * height > MAX_TEXELS:
        raise RuntimeError(
            f"Texture atlas capacity ({MAX_TEXELS} texels) exceeded by {width}x{height} image"
        )

    idx = _next_texture_index()
    _upload_texels(np.ascontiguousarray(pixels, dtype=np.uint8), offset, width, height)

    texture_types[idx] = int(TextureType.IMAGE)
    texture_dims[idx] = 0.0
    texture_offsets[idx] = offset
    texture_widths[idx] = width
    texture_heights[idx] = height
    num_textures[None] = idx + 1
    num_texels[None] = offset + width * height
    logger.debug("Registered %dx%d image texture %d at texel offset %d", width, height, idx, offset)
    return idx


def add_texture(texture: Texture) -> int:
    """Register a texture description and return its id."""
    if isinstance(texture, CheckerboardTexture):
        return add_checkerboard_texture(texture.dim)
    if isinstance(texture, ImageTexture):
        return add_image_texture(texture.pixels)
    raise ValueError(f"Unsupported texture: {texture!r}")


# =============================================================================
# Texture Sampling
# =============================================================================


@ti.func
def _truncated_mod(a: ti.f32, b: ti.f32) -> ti.f32:
    """Remainder of a / b with the sign of a (C fmod semantics)."""
    q = a / b
    return a - b * ti.select(q >= 0.0, ti.floor(q), ti.ceil(q))


@ti.func
def sample_checkerboard(dim: ti.f32, u: ti.f32, v: ti.f32) -> vec3:
    """Sample the checkerboard pattern.

    Each coordinate is folded by its period and shifted half a period
    toward zero. A tile is black when exactly one folded coordinate is
    positive and the other negative, white otherwise.
    """
    half = dim / 2.0
    s = _truncated_mod(u, dim)
    t = _truncated_mod(v, dim)
    s = ti.select(s > 0.0, s - half, s + half)
    t = ti.select(t > 0.0, t - half, t + half)

    result = vec3(255.0, 255.0, 255.0)
    if (s > 0.0 and t < 0.0) or (s < 0.0 and t > 0.0):
        result = vec3(0.0, 0.0, 0.0)
    return result


@ti.func
def sample_image(texture_id: ti.i32, u: ti.f32, v: ti.f32) -> vec3:
    """Nearest-neighbor lookup into an image texture.

    (u, v) wrap into [0, 1) and scale to (width - 1, height - 1).
    """
    width = texture_widths[texture_id]
    height = texture_heights[texture_id]

    wrapped_u = u - ti.floor(u)
    wrapped_v = v - ti.floor(v)

    px = ti.cast(wrapped_u * ti.cast(width - 1, ti.f32) + 0.5, ti.i32)
    py = ti.cast(wrapped_v * ti.cast(height - 1, ti.f32) + 0.5, ti.i32)
    px = ti.max(0, ti.min(width - 1, px))
    py = ti.max(0, ti.min(height - 1, py))

    texel = texture_texels[texture_offsets[texture_id] + py * width + px]
    return ti.cast(texel, ti.f32)


@ti.func
def sample_texture(texture_id: ti.i32, u: ti.f32, v: ti.f32) -> vec3:
    """Sample any registered texture at (u, v).

    Args:
        texture_id: The texture id returned at registration.
        u: First surface parameter.
        v: Second surface parameter.

    Returns:
        The texture color on the 0-255 scale.
    """
    result = vec3(255.0, 255.0, 255.0)
    tex_type = texture_types[texture_id]
    if tex_type == int(TextureType.CHECKERBOARD):
        result = sample_checkerboard(texture_dims[texture_id], u, v)
    elif tex_type == int(TextureType.IMAGE):
        result = sample_image(texture_id, u, v)
    return result


@ti.kernel
def _sample_texture_kernel(texture_id: ti.i32, u: ti.f32, v: ti.f32) -> vec3:
    return sample_texture(texture_id, u, v)


def texture_color(texture_id: int, u: float, v: float) -> tuple[float, float, float]:
    """Sample a registered texture from Python.

    Args:
        texture_id: The texture id.
        u: First surface parameter.
        v: Second surface parameter.

    Returns:
        Tuple of (R, G, B) on the 0-255 scale.

    Raises:
        ValueError: If texture_id is not a registered texture.
    """
    if texture_id < 0 or texture_id >= num_textures[None]:
        raise ValueError(f"Invalid texture_id: {texture_id}")
    color = _sample_texture_kernel(texture_id, u, v)
    return (float(color[0]), float(color[1]), float(color[2]))
