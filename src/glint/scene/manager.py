"""Scene manager: builds a renderable scene and loads it from JSON.

The SceneManager is the in-memory scene. It owns the registries behind it
(surfaces, materials, textures, noise maps, lights and camera) and keeps a
Python-side record of everything added so the scene can be inspected or
written back out with to_dict().

Textures, noise maps and materials are described with plain dataclasses
and registered on first use. Registration is keyed on object identity: a
Texture instance shared by several materials is uploaded once and every
material references the same texture id.

Scene files are JSON documents with named textures, noise maps and
materials referenced by surfaces:

    {
      "camera": {"pos": [0, 2, -5], "lookat": [0, 1, 0], "up": [0, 1, 0]},
      "ambient": {"coeff": 0.1, "color": [255, 255, 255]},
      "textures": {"checker": {"type": "checkerboard", "dim": 1.0}},
      "noise_maps": {"bumps": {"type": "normal", "seed": 3, "octaves": 4}},
      "materials": {
        "floor": {"color": [100, 100, 100], "diffuse_coeff": 0.7,
                  "reflectivity": 1.0, "texture": "checker"}
      },
      "surfaces": [
        {"type": "plane", "point": [1, 0, 1], "normal": [0, 1, 0], "material": "floor"}
      ],
      "lights": [{"type": "point", "pos": [3, 3, -4], "color": [0, 255, 0], "intensity": 2}]
    }

Image texture paths are resolved relative to the scene file. Any problem
with the document raises ValueError; an image that cannot be decoded
raises TextureLoadError while the scene is being built, before any
rendering starts.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.scene.manager import SceneManager
    >>> from glint.materials.material import Material
    >>> scene = SceneManager()
    >>> blue = Material(color=(0.0, 0.0, 255.0), diffuse_coeff=0.3)
    >>> scene.add_sphere(center=(0.0, 1.0, 0.0), radius=1.0, material=blue)
"""

import itertools
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from glint.camera.pinhole import Camera, clear_camera, setup_camera
from glint.materials.material import Material, add_material, clear_materials
from glint.materials.noise import (
    DisplacementMap,
    NoiseParams,
    NormalMap,
    add_noise_map,
    clear_noise_maps,
)
from glint.materials.texture import (
    CheckerboardTexture,
    Texture,
    add_texture,
    clear_textures,
    load_image_texture,
)
from glint.scene.intersection import SurfaceType, add_plane, add_sphere, clear_scene
from glint.scene.lights import WHITE, PointLight, add_point_light, clear_lights, set_ambient

logger = logging.getLogger(__name__)

Vector = tuple[float, float, float]

_scene_ids = itertools.count()

# Id of the SceneManager whose data is currently in the registries
_live_scene_id: int | None = None


@dataclass
class MaterialInfo:
    """A registered material.

    Attributes:
        material_id: The material id.
        material: The material description it was registered from.
    """

    material_id: int
    material: Material


@dataclass
class SurfaceInfo:
    """A surface in the scene.

    Attributes:
        surface_id: Index in the surface table.
        surface_type: Sphere or plane.
        params: Geometry parameters (center/radius or point/normal).
        material_id: The material of the surface.
    """

    surface_id: int
    surface_type: SurfaceType
    params: dict[str, Any]
    material_id: int


class SceneManager:
    """In-memory scene coordinating surfaces, materials, lights and camera.

    The registries hold one scene at a time: constructing a SceneManager
    (or calling clear()) resets them. A scene whose data was replaced that
    way uploads its recorded contents again the next time it is modified
    or rendered (see activate()).

    Attributes:
        textures: Registered textures, indexed by texture id.
        noise_maps: Registered noise maps, indexed by noise map id.
        materials: Registered materials, indexed by material id.
        surfaces: Surfaces in insertion order.
        lights: Point lights in insertion order.
        ambient_coeff: Scene ambient coefficient.
        ambient_color: Scene ambient color (0-255 scale).
        camera: The scene camera, or None until set_camera() is called.
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.textures: list[Texture] = []
        self.noise_maps: list[NoiseParams] = []
        self.materials: list[MaterialInfo] = []
        self.surfaces: list[SurfaceInfo] = []
        self.lights: list[PointLight] = []
        self.ambient_coeff = 0.0
        self.ambient_color: Vector = WHITE
        self.camera: Camera | None = None
        self._scene_id = next(_scene_ids)
        self._clear_all()

    def _clear_all(self) -> None:
        global _live_scene_id

        _clear_registries()
        _live_scene_id = self._scene_id

        self.textures.clear()
        self.noise_maps.clear()
        self.materials.clear()
        self.surfaces.clear()
        self.lights.clear()
        self.ambient_coeff = 0.0
        self.ambient_color = WHITE
        self.camera = None

    def clear(self) -> None:
        """Clear the entire scene."""
        self._clear_all()

    @property
    def is_live(self) -> bool:
        """Whether the registries currently hold this scene."""
        return _live_scene_id == self._scene_id

    def activate(self) -> None:
        """Make the registries hold this scene.

        Does nothing if this scene is already live. Otherwise every
        registry is reset and the recorded textures, noise maps, materials,
        surfaces, lights, ambient term and camera are uploaded again in
        their original order, so all ids stay the same.
        """
        global _live_scene_id

        if self.is_live:
            return
        logger.debug("Re-uploading scene %d", self._scene_id)
        _clear_registries()
        _live_scene_id = self._scene_id

        for texture in self.textures:
            add_texture(texture)
        for params in self.noise_maps:
            add_noise_map(params)
        for info in self.materials:
            self._upload_material(info.material)
        for surface in self.surfaces:
            _upload_surface(surface.surface_type, surface.params, surface.material_id)
        for light in self.lights:
            add_point_light(light.pos, light.color, light.intensity)
        set_ambient(self.ambient_coeff, self.ambient_color)
        if self.camera is not None:
            setup_camera(self.camera)

    # =========================================================================
    # Textures, Noise Maps and Materials
    # =========================================================================

    def add_texture(self, texture: Texture) -> int:
        """Register a texture, reusing the id of an already registered instance."""
        self.activate()
        texture_id = _index_of(self.textures, texture)
        if texture_id >= 0:
            return texture_id
        texture_id = add_texture(texture)
        self.textures.append(texture)
        return texture_id

    def add_noise_map(self, params: NoiseParams) -> int:
        """Register a noise map, reusing the id of an already registered instance."""
        self.activate()
        map_id = _index_of(self.noise_maps, params)
        if map_id >= 0:
            return map_id
        map_id = add_noise_map(params)
        self.noise_maps.append(params)
        return map_id

    def add_material(self, material: Material) -> int:
        """Register a material along with its texture and noise maps.

        Registering the same Material instance twice returns the same id.

        Args:
            material: The material description.

        Returns:
            The material id.

        Raises:
            ValueError: If the material parameters are invalid.
            RuntimeError: If a registry is full.
        """
        self.activate()
        for info in self.materials:
            if info.material is material:
                return info.material_id

        if material.texture is not None:
            self.add_texture(material.texture)
        if material.normal_map is not None:
            self.add_noise_map(material.normal_map)
        if material.displacement_map is not None:
            self.add_noise_map(material.displacement_map)

        material_id = self._upload_material(material)
        self.materials.append(MaterialInfo(material_id=material_id, material=material))
        return material_id

    def _upload_material(self, material: Material) -> int:
        # Texture and noise maps must already be recorded on this scene
        return add_material(
            color=material.color,
            diffuse_coeff=material.diffuse_coeff,
            specular_coeff=material.specular_coeff,
            glossiness=material.glossiness,
            reflectivity=material.reflectivity,
            texture_id=_index_of(self.textures, material.texture),
            normal_map_id=_index_of(self.noise_maps, material.normal_map),
            displacement_map_id=_index_of(self.noise_maps, material.displacement_map),
        )

    def get_material_count(self) -> int:
        """Get the number of registered materials."""
        return len(self.materials)

    def _resolve_material(self, material: Material | int) -> int:
        self.activate()
        if isinstance(material, Material):
            return self.add_material(material)
        if material < 0 or material >= len(self.materials):
            raise ValueError(f"Invalid material_id: {material}")
        return material

    # =========================================================================
    # Surfaces
    # =========================================================================

    def add_sphere(self, center: Vector, radius: float, material: Material | int) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center of the sphere.
            radius: The radius of the sphere.
            material: A Material (registered on demand) or a material id.

        Returns:
            The surface id.

        Raises:
            ValueError: If the material id is invalid.
            RuntimeError: If the surface table is full.
        """
        material_id = self._resolve_material(material)
        params = {"center": tuple(center), "radius": radius}
        return self._record_surface(SurfaceType.SPHERE, params, material_id)

    def add_plane(self, point: Vector, normal: Vector, material: Material | int) -> int:
        """Add an infinite plane to the scene.

        Args:
            point: Any point on the plane.
            normal: The plane normal.
            material: A Material (registered on demand) or a material id.

        Returns:
            The surface id.

        Raises:
            ValueError: If the material id is invalid or the normal is zero.
            RuntimeError: If the surface table is full.
        """
        material_id = self._resolve_material(material)
        params = {"point": tuple(point), "normal": tuple(normal)}
        return self._record_surface(SurfaceType.PLANE, params, material_id)

    def _record_surface(
        self, surface_type: SurfaceType, params: dict[str, Any], material_id: int
    ) -> int:
        surface_id = _upload_surface(surface_type, params, material_id)
        self.surfaces.append(
            SurfaceInfo(
                surface_id=surface_id,
                surface_type=surface_type,
                params=params,
                material_id=material_id,
            )
        )
        return surface_id

    # =========================================================================
    # Lights and Camera
    # =========================================================================

    def add_light(self, light: PointLight) -> int:
        """Add a point light and return its index."""
        self.activate()
        idx = add_point_light(light.pos, light.color, light.intensity)
        self.lights.append(light)
        return idx

    def set_ambient(self, coeff: float, color: Vector = WHITE) -> None:
        """Set the ambient coefficient and color."""
        self.activate()
        set_ambient(coeff, color)
        self.ambient_coeff = coeff
        self.ambient_color = tuple(color)

    def set_camera(self, camera: Camera) -> None:
        """Set and upload the scene camera."""
        self.activate()
        setup_camera(camera)
        self.camera = camera

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Describe the scene as a JSON-compatible dictionary.

        Textures, noise maps and materials are named by their ids
        ("texture_0", "noise_map_0", "material_0").

        Raises:
            ValueError: If an image texture has no source path.
        """
        textures = {}
        for texture_id, texture in enumerate(self.textures):
            textures[f"texture_{texture_id}"] = _texture_to_dict(texture)

        noise_maps = {}
        for map_id, params in enumerate(self.noise_maps):
            noise_maps[f"noise_map_{map_id}"] = _noise_map_to_dict(params)

        materials = {}
        for info in self.materials:
            m = info.material
            entry: dict[str, Any] = {
                "color": list(m.color),
                "diffuse_coeff": m.diffuse_coeff,
                "specular_coeff": m.specular_coeff,
                "glossiness": m.glossiness,
                "reflectivity": m.reflectivity,
            }
            if m.texture is not None:
                entry["texture"] = f"texture_{_index_of(self.textures, m.texture)}"
            if m.normal_map is not None:
                entry["normal_map"] = f"noise_map_{_index_of(self.noise_maps, m.normal_map)}"
            if m.displacement_map is not None:
                entry["displacement_map"] = (
                    f"noise_map_{_index_of(self.noise_maps, m.displacement_map)}"
                )
            materials[f"material_{info.material_id}"] = entry

        surfaces = []
        for surface in self.surfaces:
            entry = {"type": surface.surface_type.name.lower()}
            entry.update({key: _jsonable(value) for key, value in surface.params.items()})
            entry["material"] = f"material_{surface.material_id}"
            surfaces.append(entry)

        data: dict[str, Any] = {
            "ambient": {"coeff": self.ambient_coeff, "color": list(self.ambient_color)},
            "textures": textures,
            "noise_maps": noise_maps,
            "materials": materials,
            "surfaces": surfaces,
            "lights": [
                {
                    "type": "point",
                    "pos": list(light.pos),
                    "color": list(light.color),
                    "intensity": light.intensity,
                }
                for light in self.lights
            ],
        }
        if self.camera is not None:
            # Camera.new flips the stored up axis, so write its negation as the hint
            data["camera"] = {
                "pos": list(self.camera.pos),
                "dir": list(self.camera.dir),
                "up": [-c for c in self.camera.up],
            }
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: str | Path | None = None) -> "SceneManager":
        """Build a scene from a dictionary in the scene file format.

        Args:
            data: The scene description.
            base_dir: Directory that relative image paths are resolved
                against (defaults to the working directory).

        Returns:
            A new, fully registered SceneManager.

        Raises:
            ValueError: If the description is malformed or references an
                unknown texture, noise map or material.
            TextureLoadError: If an image texture cannot be loaded.
        """
        if not isinstance(data, dict):
            raise ValueError("Scene description must be a JSON object")
        base = Path(base_dir) if base_dir is not None else Path.cwd()

        textures = {
            name: _texture_from_dict(name, entry, base)
            for name, entry in _section(data, "textures").items()
        }
        noise_maps = {
            name: _noise_map_from_dict(name, entry)
            for name, entry in _section(data, "noise_maps").items()
        }
        materials = {
            name: _material_from_dict(name, entry, textures, noise_maps)
            for name, entry in _section(data, "materials").items()
        }

        scene = cls()
        for index, entry in enumerate(data.get("surfaces", [])):
            where = f"surface {index}"
            material = _lookup(materials, _require(entry, "material", where), "material")
            kind = _require(entry, "type", where)
            if kind == "sphere":
                scene.add_sphere(
                    _vec3(_require(entry, "center", where), f"{where} center"),
                    _number(_require(entry, "radius", where), f"{where} radius"),
                    material,
                )
            elif kind == "plane":
                scene.add_plane(
                    _vec3(_require(entry, "point", where), f"{where} point"),
                    _vec3(_require(entry, "normal", where), f"{where} normal"),
                    material,
                )
            else:
                raise ValueError(f"Unsupported surface type {kind!r} in {where}")

        for index, entry in enumerate(data.get("lights", [])):
            where = f"light {index}"
            pos = _vec3(_require(entry, "pos", where), f"{where} pos")
            kind = entry.get("type", "point")
            if kind != "point":
                raise ValueError(f"Unsupported light type {kind!r} in {where}")
            scene.add_light(
                PointLight(
                    pos=pos,
                    color=_vec3(entry.get("color", WHITE), f"{where} color"),
                    intensity=_number(entry.get("intensity", 1.0), f"{where} intensity"),
                )
            )

        ambient = data.get("ambient", {})
        if not isinstance(ambient, dict):
            raise ValueError("'ambient' must be an object")
        scene.set_ambient(
            _number(ambient.get("coeff", 0.0), "ambient coeff"),
            _vec3(ambient.get("color", WHITE), "ambient color"),
        )

        if "camera" in data:
            scene.set_camera(_camera_from_dict(data["camera"]))

        logger.info(
            "Built scene: %d surfaces, %d materials, %d lights",
            len(scene.surfaces),
            len(scene.materials),
            len(scene.lights),
        )
        return scene


def load_scene(path: str | Path) -> SceneManager:
    """Load a scene from a JSON file.

    Args:
        path: Path to the scene file.

    Returns:
        The loaded scene.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not valid JSON or not a valid scene.
        TextureLoadError: If an image texture cannot be loaded.
    """
    path = Path(path)
    logger.info("Loading scene %s", path)
    with path.open(encoding="utf-8") as f:
        data = json.load(f)
    return SceneManager.from_dict(data, base_dir=path.parent)


# =============================================================================
# Registry Helpers
# =============================================================================


def _clear_registries() -> None:
    clear_scene()
    clear_materials()
    clear_textures()
    clear_noise_maps()
    clear_lights()
    clear_camera()


def _upload_surface(surface_type: SurfaceType, params: dict[str, Any], material_id: int) -> int:
    if surface_type == SurfaceType.SPHERE:
        return add_sphere(params["center"], params["radius"], material_id)
    return add_plane(params["point"], params["normal"], material_id)


def _index_of(items: list[Any], obj: Any) -> int:
    """Position of ``obj`` in ``items`` by identity, or -1 (also for None)."""
    for index, known in enumerate(items):
        if known is obj:
            return index
    return -1


# =============================================================================
# Scene File Helpers
# =============================================================================


def _require(entry: dict[str, Any], key: str, where: str) -> Any:
    if not isinstance(entry, dict):
        raise ValueError(f"Expected an object for {where}")
    if key not in entry:
        raise ValueError(f"Missing {key!r} in {where}")
    return entry[key]


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    section = data.get(key, {})
    if not isinstance(section, dict):
        raise ValueError(f"{key!r} must map names to definitions")
    return section


def _lookup(table: dict[str, Any], name: Any, kind: str) -> Any:
    if name not in table:
        raise ValueError(f"Unknown {kind} {name!r}")
    return table[name]


def _vec3(value: Any, where: str) -> Vector:
    if not isinstance(value, (list, tuple)) or len(value) != 3:
        raise ValueError(f"Expected three numbers for {where}, got {value!r}")
    try:
        return (float(value[0]), float(value[1]), float(value[2]))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected three numbers for {where}, got {value!r}") from exc


def _number(value: Any, where: str, kind: type = float) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Expected a number for {where}, got {value!r}")
    if kind is int and not (isinstance(value, int) or value.is_integer()):
        raise ValueError(f"Expected an integer for {where}, got {value!r}")
    return kind(value)


def _jsonable(value: Any) -> Any:
    return list(value) if isinstance(value, tuple) else value


def _texture_from_dict(name: str, entry: dict[str, Any], base: Path) -> Texture:
    where = f"texture {name!r}"
    kind = _require(entry, "type", where)
    if kind == "checkerboard":
        return CheckerboardTexture(dim=_number(entry.get("dim", 1.0), f"{where} dim"))
    if kind == "image":
        path = Path(_require(entry, "path", where))
        if not path.is_absolute():
            path = base / path
        return load_image_texture(path)
    raise ValueError(f"Unsupported texture type {kind!r} in {where}")


def _texture_to_dict(texture: Texture) -> dict[str, Any]:
    if isinstance(texture, CheckerboardTexture):
        return {"type": "checkerboard", "dim": texture.dim}
    if texture.path is None:
        raise ValueError("Cannot serialize an image texture that was not loaded from a file")
    return {"type": "image", "path": texture.path}


_NOISE_TYPES: dict[str, type[NoiseParams]] = {
    "normal": NormalMap,
    "displacement": DisplacementMap,
}


def _noise_map_from_dict(name: str, entry: dict[str, Any]) -> NoiseParams:
    where = f"noise map {name!r}"
    kind = _require(entry, "type", where)
    if kind not in _NOISE_TYPES:
        raise ValueError(f"Unsupported noise map type {kind!r} in {where}")
    return _NOISE_TYPES[kind](
        seed=_number(_require(entry, "seed", where), f"{where} seed", int),
        octaves=_number(_require(entry, "octaves", where), f"{where} octaves", int),
        wavelength=_number(entry.get("wavelength", 1.0), f"{where} wavelength"),
        persistence=_number(entry.get("persistence", 0.5), f"{where} persistence"),
        lacunarity=_number(entry.get("lacunarity", 2.0), f"{where} lacunarity"),
    )


def _noise_map_to_dict(params: NoiseParams) -> dict[str, Any]:
    kind = "normal" if isinstance(params, NormalMap) else "displacement"
    return {
        "type": kind,
        "seed": params.seed,
        "octaves": params.octaves,
        "wavelength": params.wavelength,
        "persistence": params.persistence,
        "lacunarity": params.lacunarity,
    }


def _material_from_dict(
    name: str,
    entry: dict[str, Any],
    textures: dict[str, Texture],
    noise_maps: dict[str, NoiseParams],
) -> Material:
    where = f"material {name!r}"
    color = _vec3(_require(entry, "color", where), f"{where} color")

    texture = None
    if entry.get("texture") is not None:
        texture = _lookup(textures, entry["texture"], "texture")

    normal_map = None
    if entry.get("normal_map") is not None:
        normal_map = _lookup(noise_maps, entry["normal_map"], "noise map")
        if not isinstance(normal_map, NormalMap):
            raise ValueError(f"{where} uses {entry['normal_map']!r} as a normal map")

    displacement_map = None
    if entry.get("displacement_map") is not None:
        displacement_map = _lookup(noise_maps, entry["displacement_map"], "noise map")
        if not isinstance(displacement_map, DisplacementMap):
            raise ValueError(f"{where} uses {entry['displacement_map']!r} as a displacement map")

    return Material(
        color=color,
        diffuse_coeff=_number(entry.get("diffuse_coeff", 1.0), f"{where} diffuse_coeff"),
        specular_coeff=_number(entry.get("specular_coeff", 0.0), f"{where} specular_coeff"),
        glossiness=_number(entry.get("glossiness", 0.0), f"{where} glossiness"),
        reflectivity=_number(entry.get("reflectivity", 0.0), f"{where} reflectivity"),
        texture=texture,
        normal_map=normal_map,
        displacement_map=displacement_map,
    )


def _camera_from_dict(entry: dict[str, Any]) -> Camera:
    pos = _vec3(_require(entry, "pos", "camera"), "camera pos")
    up = _vec3(entry.get("up", (0.0, 1.0, 0.0)), "camera up")
    if "lookat" in entry:
        return Camera.from_lookat(pos, _vec3(entry["lookat"], "camera lookat"), up)
    return Camera.new(pos, _vec3(_require(entry, "dir", "camera"), "camera dir"), up)
