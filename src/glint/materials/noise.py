"""Procedural noise maps for normal and displacement perturbation.

Both map kinds evaluate fractal Brownian motion (fBm) built from improved
Perlin gradient noise:

    frequency = 1 / wavelength, amplitude = 1
    for each octave:
        result += perlin3(p * frequency) * amplitude
        amplitude *= persistence
        frequency *= lacunarity

The scalar result is roughly in [-1, 1] and is then applied as:

- NormalMap:        val = max(0, (fbm + 1) / 2);  n' = normalize(n + (val, val, val))
- DisplacementMap:  val = max(0, fbm + 1);        p' = p + (val, val, val)

The same scalar is added to every component. This is a deliberately crude
perturbation: it roughens shading and geometry without a directional noise
field.

Each registered map owns a permutation table shuffled from its integer
seed, so two maps with the same parameters and seed produce identical
values. Maps are read-only after registration and safe to evaluate from
every pixel in parallel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.materials.noise import NormalMap, add_noise_map, evaluate_noise
    >>> bumpy = add_noise_map(NormalMap(seed=7, octaves=4, wavelength=0.5))
    >>> value = evaluate_noise(bumpy, (0.3, 1.7, -2.2))
"""

import logging
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# Lattice period of the permutation table
PERMUTATION_SIZE = 256


@dataclass(eq=False)
class NoiseParams:
    """Parameters of an fBm noise function.

    Attributes:
        seed: Seed of the permutation table (non-negative integer).
        octaves: Number of noise octaves summed.
        wavelength: Wavelength of the first octave (1 / base frequency).
        persistence: Amplitude multiplier between octaves.
        lacunarity: Frequency multiplier between octaves.
    """

    seed: int
    octaves: int
    wavelength: float = 1.0
    persistence: float = 0.5
    lacunarity: float = 2.0


@dataclass(eq=False)
class NormalMap(NoiseParams):
    """Noise parameters used to perturb surface normals."""


@dataclass(eq=False)
class DisplacementMap(NoiseParams):
    """Noise parameters used to displace hit positions."""


def make_permutation(seed: int) -> np.ndarray:
    """Build the doubled permutation table for a seed.

    Args:
        seed: Non-negative integer seed.

    Returns:
        int32 array of length 2 * PERMUTATION_SIZE.
    """
    rng = np.random.default_rng(seed)
    perm = rng.permutation(PERMUTATION_SIZE).astype(np.int32)
    return np.concatenate([perm, perm])


# =============================================================================
# Noise Map Field Storage
# =============================================================================

# Maximum number of noise maps in the scene
MAX_NOISE_MAPS = 64

noise_permutations = ti.field(dtype=ti.i32, shape=(MAX_NOISE_MAPS, 2 * PERMUTATION_SIZE))
noise_octaves = ti.field(dtype=ti.i32, shape=MAX_NOISE_MAPS)
noise_wavelengths = ti.field(dtype=ti.f32, shape=MAX_NOISE_MAPS)
noise_persistences = ti.field(dtype=ti.f32, shape=MAX_NOISE_MAPS)
noise_lacunarities = ti.field(dtype=ti.f32, shape=MAX_NOISE_MAPS)
num_noise_maps = ti.field(dtype=ti.i32, shape=())


def clear_noise_maps() -> None:
    """Clear all registered noise maps."""
    num_noise_maps[None] = 0


def get_noise_map_count() -> int:
    """Get the number of registered noise maps."""
    return int(num_noise_maps[None])


@ti.kernel
def _upload_permutation(map_id: ti.i32, perm: ti.types.ndarray()):
    for i in range(2 * PERMUTATION_SIZE):
        noise_permutations[map_id, i] = perm[i]


def add_noise_map(params: NoiseParams) -> int:
    """Register a normal or displacement map.

    Args:
        params: The noise parameters (NormalMap or DisplacementMap).

    Returns:
        The noise map id.

    Raises:
        ValueError: If the seed or octave count is negative, or the
            wavelength is not positive.
        RuntimeError: If the maximum number of noise maps is exceeded.
    """
    if params.seed < 0:
        raise ValueError(f"Noise seed must be non-negative, got {params.seed}")
    if params.octaves < 0:
        raise ValueError(f"Noise octaves must be non-negative, got {params.octaves}")
    if params.wavelength <= 0.0:
        raise ValueError(f"Noise wavelength must be positive, got {params.wavelength}")

    idx = num_noise_maps[None]
    if idx >= MAX_NOISE_MAPS:
        raise RuntimeError(f"Maximum number of noise maps ({MAX_NOISE_MAPS}) exceeded")

    _upload_permutation(idx, make_permutation(params.seed))
    noise_octaves[idx] = params.octaves
    noise_wavelengths[idx] = params.wavelength
    noise_persistences[idx] = params.persistence
    noise_lacunarities[idx] = params.lacunarity
    num_noise_maps[None] = idx + 1

    logger.debug("Registered %s %d (seed=%d)", type(params).__name__, idx, params.seed)
    return idx


# =============================================================================
# Perlin Noise
# =============================================================================


@ti.func
def _fade(t: ti.f32) -> ti.f32:
    """Quintic smoothstep 6t^5 - 15t^4 + 10t^3."""
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


@ti.func
def _lerp(t: ti.f32, a: ti.f32, b: ti.f32) -> ti.f32:
    return a + t * (b - a)


@ti.func
def _grad(hash_value: ti.i32, x: ti.f32, y: ti.f32, z: ti.f32) -> ti.f32:
    """Dot product with one of the 12 cube-edge gradient directions."""
    h = hash_value & 15
    u = ti.select(h < 8, x, y)
    v = z
    if h < 4:
        v = y
    elif h == 12 or h == 14:
        v = x
    return ti.select((h & 1) == 0, u, -u) + ti.select((h & 2) == 0, v, -v)


@ti.func
def perlin3(map_id: ti.i32, p: vec3) -> ti.f32:
    """Improved Perlin noise at p using the map's permutation table.

    Returns 0 at integer lattice points and values roughly in [-1, 1]
    elsewhere.
    """
    cell = ti.floor(p)
    xi = ti.cast(cell.x, ti.i32) & 255
    yi = ti.cast(cell.y, ti.i32) & 255
    zi = ti.cast(cell.z, ti.i32) & 255

    x = p.x - cell.x
    y = p.y - cell.y
    z = p.z - cell.z

    u = _fade(x)
    v = _fade(y)
    w = _fade(z)

    a = noise_permutations[map_id, xi] + yi
    aa = noise_permutations[map_id, a] + zi
    ab = noise_permutations[map_id, a + 1] + zi
    b = noise_permutations[map_id, xi + 1] + yi
    ba = noise_permutations[map_id, b] + zi
    bb = noise_permutations[map_id, b + 1] + zi

    near = _lerp(
        v,
        _lerp(
            u,
            _grad(noise_permutations[map_id, aa], x, y, z),
            _grad(noise_permutations[map_id, ba], x - 1.0, y, z),
        ),
        _lerp(
            u,
            _grad(noise_permutations[map_id, ab], x, y - 1.0, z),
            _grad(noise_permutations[map_id, bb], x - 1.0, y - 1.0, z),
        ),
    )
    far = _lerp(
        v,
        _lerp(
            u,
            _grad(noise_permutations[map_id, aa + 1], x, y, z - 1.0),
            _grad(noise_permutations[map_id, ba + 1], x - 1.0, y, z - 1.0),
        ),
        _lerp(
            u,
            _grad(noise_permutations[map_id, ab + 1], x, y - 1.0, z - 1.0),
            _grad(noise_permutations[map_id, bb + 1], x - 1.0, y - 1.0, z - 1.0),
        ),
    )
    return _lerp(w, near, far)


@ti.func
def fbm3(map_id: ti.i32, p: vec3) -> ti.f32:
    """Sum the map's octaves of Perlin noise at p."""
    frequency = 1.0 / noise_wavelengths[map_id]
    amplitude = 1.0
    result = 0.0
    persistence = noise_persistences[map_id]
    lacunarity = noise_lacunarities[map_id]

    for _ in range(noise_octaves[map_id]):
        result += perlin3(map_id, p * frequency) * amplitude
        amplitude *= persistence
        frequency *= lacunarity

    return result


@ti.func
def apply_normal_map(map_id: ti.i32, normal: vec3, pos: vec3) -> vec3:
    """Perturb a normal by the map's noise value at pos."""
    val = ti.max((fbm3(map_id, pos) + 1.0) / 2.0, 0.0)
    return tm.normalize(normal + vec3(val, val, val))


@ti.func
def apply_displacement_map(map_id: ti.i32, pos: vec3) -> vec3:
    """Displace a position by the map's noise value at pos."""
    val = ti.max(fbm3(map_id, pos) + 1.0, 0.0)
    return pos + vec3(val, val, val)


@ti.kernel
def _evaluate_noise_kernel(map_id: ti.i32, x: ti.f32, y: ti.f32, z: ti.f32) -> ti.f32:
    return fbm3(map_id, vec3(x, y, z))


def evaluate_noise(map_id: int, point: tuple[float, float, float]) -> float:
    """Evaluate a registered map's fBm value at a point.

    Args:
        map_id: The noise map id.
        point: The (x, y, z) position.

    Returns:
        The raw fBm value, before the normal/displacement offset.

    Raises:
        ValueError: If map_id is not a registered noise map.
    """
    if map_id < 0 or map_id >= num_noise_maps[None]:
        raise ValueError(f"Invalid noise map id: {map_id}")
    return float(_evaluate_noise_kernel(map_id, point[0], point[1], point[2]))
