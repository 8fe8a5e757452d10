"""Pytest configuration for glint tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate the module-level fields of already imported modules.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear every registry before and after each test."""
    # Import here so the fields are created after ti.init
    from glint.camera.pinhole import clear_camera
    from glint.materials.material import clear_materials
    from glint.materials.noise import clear_noise_maps
    from glint.materials.texture import clear_textures
    from glint.scene.intersection import clear_scene
    from glint.scene.lights import clear_lights

    def _clear_all():
        clear_scene()
        clear_materials()
        clear_textures()
        clear_noise_maps()
        clear_lights()
        clear_camera()

    _clear_all()
    yield
    _clear_all()
