"""Scene module: surfaces, lights and scene construction.

Components:
    intersection: Insertion-ordered surface table and nearest-hit queries
    lights: Point lights and the ambient term
    manager: SceneManager builder and JSON scene loader
    demo: The demonstration scene

Scene data lives in preallocated Taichi fields. Only one scene is live at
a time; constructing a SceneManager resets every registry.
"""

from .demo import DemoSceneParams, create_demo_camera, create_demo_scene
from .intersection import (
    MAX_SURFACES,
    HitInfo,
    SceneHit,
    SurfaceType,
    add_plane,
    add_sphere,
    cast_ray,
    clear_scene,
    get_surface_count,
    intersect_scene,
    intersect_surface,
)
from .lights import (
    MAX_LIGHTS,
    PointLight,
    add_point_light,
    clear_lights,
    get_ambient,
    get_light_count,
    set_ambient,
)
from .manager import MaterialInfo, SceneManager, SurfaceInfo, load_scene

__all__ = [
    # Intersection module
    "SceneHit",
    "HitInfo",
    "SurfaceType",
    "add_sphere",
    "add_plane",
    "clear_scene",
    "get_surface_count",
    "intersect_surface",
    "intersect_scene",
    "cast_ray",
    "MAX_SURFACES",
    # Lights module
    "PointLight",
    "add_point_light",
    "clear_lights",
    "get_light_count",
    "set_ambient",
    "get_ambient",
    "MAX_LIGHTS",
    # Manager module
    "SceneManager",
    "MaterialInfo",
    "SurfaceInfo",
    "load_scene",
    # Demo scene
    "DemoSceneParams",
    "create_demo_scene",
    "create_demo_camera",
]
