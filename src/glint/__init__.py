"""glint: a Whitted-style ray tracer built on Taichi.

Subpackages:
    core: Rays, vector utilities and the ray tracing integrator
    geometry: Sphere and plane primitives with ray intersection
    materials: Phong-style materials, textures and procedural noise maps
    scene: Surface table, lights, scene manager and the demo scene
    camera: Fixed field-of-view pinhole camera
    preview: Supersampling and PNG export

Modules that declare Taichi fields must be imported after ``ti.init()``.
"""

__version__ = "0.1.0"
