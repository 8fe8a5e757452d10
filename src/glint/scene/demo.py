"""Demonstration scene: a glossy blue sphere on a mirrored checkerboard.

The scene contains:
- A unit sphere at (0, 1, 0), blue, slightly glossy, not reflective
- A ground plane at y=0, grey with a checkerboard texture, fully reflective
- A green point light at (3, 3, -4) with intensity 2
- Weak white ambient light (coefficient 0.1)
- A camera at (0, 2, -5) looking at the sphere's center

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.scene.demo import create_demo_scene
    >>> from glint.core.integrator import render
    >>> scene = create_demo_scene()
    >>> image = render(scene, 640, 480, max_reflection_depth=1)
"""

from dataclasses import dataclass

from glint.camera.pinhole import Camera
from glint.materials.material import Material
from glint.materials.texture import CheckerboardTexture
from glint.scene.lights import PointLight
from glint.scene.manager import SceneManager


@dataclass
class DemoSceneParams:
    """Tunable parameters of the demonstration scene.

    Attributes:
        sphere_color: Sphere base color (0-255 scale).
        floor_color: Plane base color (0-255 scale).
        checker_dim: Period of the floor checkerboard.
        floor_reflectivity: Mirror weight of the floor.
        light_color: Point light color (0-255 scale).
        light_intensity: Point light intensity.
        ambient_coeff: Scene ambient coefficient.
    """

    sphere_color: tuple[float, float, float] = (0.0, 0.0, 255.0)
    floor_color: tuple[float, float, float] = (100.0, 100.0, 100.0)
    checker_dim: float = 1.0
    floor_reflectivity: float = 1.0
    light_color: tuple[float, float, float] = (0.0, 255.0, 0.0)
    light_intensity: float = 2.0
    ambient_coeff: float = 0.1


def create_demo_camera() -> Camera:
    """Camera at (0, 2, -5) looking at (0, 1, 0) with a y-up world."""
    return Camera.from_lookat(pos=(0.0, 2.0, -5.0), lookat=(0.0, 1.0, 0.0), up=(0.0, 1.0, 0.0))


def create_demo_scene(params: DemoSceneParams | None = None) -> SceneManager:
    """Build the demonstration scene.

    Args:
        params: Optional scene parameters. Uses defaults if None.

    Returns:
        A SceneManager with surfaces, light, ambient term and camera set.
    """
    if params is None:
        params = DemoSceneParams()

    scene = SceneManager()

    sphere_material = Material(
        color=params.sphere_color,
        diffuse_coeff=0.3,
        specular_coeff=0.2,
        glossiness=20.0,
        reflectivity=0.0,
    )
    floor_material = Material(
        color=params.floor_color,
        diffuse_coeff=0.7,
        specular_coeff=0.0,
        glossiness=0.0,
        reflectivity=params.floor_reflectivity,
        texture=CheckerboardTexture(dim=params.checker_dim),
    )

    scene.add_sphere(center=(0.0, 1.0, 0.0), radius=1.0, material=sphere_material)
    scene.add_plane(point=(1.0, 0.0, 1.0), normal=(0.0, 1.0, 0.0), material=floor_material)

    scene.add_light(
        PointLight(pos=(3.0, 3.0, -4.0), color=params.light_color, intensity=params.light_intensity)
    )
    scene.set_ambient(params.ambient_coeff, (255.0, 255.0, 255.0))
    scene.set_camera(create_demo_camera())

    return scene
