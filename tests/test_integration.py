"""Integration tests for end-to-end rendering.

These render small images of complete scenes and check properties of the
result rather than exact pixel dumps.
"""

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

SCENES_DIR = Path(__file__).resolve().parent.parent / "examples" / "scenes"

WIDTH = 32
HEIGHT = 24


class TestDemoScene:
    """Tests for the built-in demonstration scene."""

    def test_center_pixel_sees_sphere(self):
        """The sphere is blue and the light is green, so red stays 0."""
        from glint.core.integrator import render
        from glint.scene.demo import create_demo_scene

        image = render(create_demo_scene(), WIDTH, HEIGHT, max_reflection_depth=3)
        r, g, b = (int(c) for c in image[HEIGHT // 2, WIDTH // 2])
        assert r == 0
        # Ambient on the blue channel: 255 * 0.1 truncated
        assert b == 25

    def test_floor_red_channel_is_ambient(self):
        """Only ambient light puts red on the grey floor: 100 * 0.1."""
        from glint.core.integrator import render
        from glint.scene.demo import create_demo_scene

        image = render(create_demo_scene(), WIDTH, HEIGHT, max_reflection_depth=3)
        assert int(image[HEIGHT - 1, WIDTH // 2, 0]) == 10

    def test_image_is_not_blank(self):
        from glint.core.integrator import render
        from glint.scene.demo import create_demo_scene

        image = render(create_demo_scene(), WIDTH, HEIGHT)
        assert image.max() > 0
        # Sky above the sphere is background
        assert tuple(image[0, 0]) == (0, 0, 0)

    def test_reflection_depth_changes_image(self):
        """The mirror floor shows the sphere only when reflections are traced."""
        from glint.core.integrator import render
        from glint.scene.demo import create_demo_scene

        scene = create_demo_scene()
        flat = render(scene, WIDTH, HEIGHT, max_reflection_depth=0)
        mirrored = render(scene, WIDTH, HEIGHT, max_reflection_depth=1)
        assert not np.array_equal(flat, mirrored)

    def test_scene_file_matches_builder(self):
        """examples/scenes/demo.json describes the same scene as create_demo_scene."""
        from glint.core.integrator import render
        from glint.scene.demo import create_demo_scene
        from glint.scene.manager import load_scene

        built = render(create_demo_scene(), WIDTH, HEIGHT)
        loaded = render(load_scene(SCENES_DIR / "demo.json"), WIDTH, HEIGHT)
        np.testing.assert_array_equal(built, loaded)

    def test_serialized_scene_renders_identically(self):
        from glint.core.integrator import render
        from glint.scene.demo import create_demo_scene
        from glint.scene.manager import SceneManager

        scene = create_demo_scene()
        before = render(scene, WIDTH, HEIGHT)
        after = render(SceneManager.from_dict(scene.to_dict()), WIDTH, HEIGHT)
        np.testing.assert_array_equal(before, after)

    def test_custom_parameters(self):
        from glint.core.integrator import render
        from glint.scene.demo import DemoSceneParams, create_demo_scene

        params = DemoSceneParams(sphere_color=(255.0, 0.0, 0.0))
        image = render(create_demo_scene(params), WIDTH, HEIGHT)
        r, _, b = (int(c) for c in image[HEIGHT // 2, WIDTH // 2])
        assert r == 25
        assert b == 0


class TestNoiseScene:
    """Tests for a scene using normal and displacement maps."""

    def test_bumpy_scene_renders(self):
        from glint.core.integrator import render
        from glint.scene.manager import load_scene

        image = render(load_scene(SCENES_DIR / "bumpy.json"), WIDTH, HEIGHT, max_reflection_depth=2)
        assert image.shape == (HEIGHT, WIDTH, 3)
        assert image.max() > 0

    def test_normal_map_changes_shading(self):
        from glint.core.integrator import render
        from glint.scene.manager import SceneManager, load_scene

        bumpy = render(load_scene(SCENES_DIR / "bumpy.json"), WIDTH, HEIGHT)

        data = load_scene(SCENES_DIR / "bumpy.json").to_dict()
        for material in data["materials"].values():
            material.pop("normal_map", None)
            material.pop("displacement_map", None)
        smooth = render(SceneManager.from_dict(data), WIDTH, HEIGHT)

        assert not np.array_equal(bumpy, smooth)


class TestExportPipeline:
    """Tests for rendering straight to a PNG file."""

    @pytest.mark.parametrize("supersampling", [1, 2])
    def test_render_to_png(self, tmp_path, supersampling):
        from glint.preview.export import render_supersampled, save_png
        from glint.scene.demo import create_demo_scene

        path = tmp_path / f"demo_{supersampling}.png"
        image = render_supersampled(create_demo_scene(), WIDTH, HEIGHT, 1, supersampling)
        save_png(image, path)

        with Image.open(path) as png:
            assert png.size == (WIDTH, HEIGHT)
            assert png.mode == "RGB"
