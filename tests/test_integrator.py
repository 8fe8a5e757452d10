"""Unit tests for the Whitted integrator.

Tests cover:
- Ambient-only shading when there are no lights
- Diffuse contribution of an unoccluded light
- Shadow rays blocked only by occluders nearer than the light
- Mirror reflection and the depth limit
- Image shape, dtype and per-pixel consistency
- Argument validation
"""

import numpy as np
import pytest

BLUE = (0.0, 0.0, 255.0)


def _sphere_scene(ambient=0.1, light=None, material=None, ambient_color=(255.0, 255.0, 255.0)):
    """A unit sphere at the origin seen from (0, 0, -4)."""
    from glint.camera.pinhole import Camera
    from glint.materials.material import Material
    from glint.scene.manager import SceneManager

    scene = SceneManager()
    if material is None:
        material = Material(color=BLUE, diffuse_coeff=1.0)
    scene.add_sphere(center=(0.0, 0.0, 0.0), radius=1.0, material=material)
    if light is not None:
        scene.add_light(light)
    scene.set_ambient(ambient, ambient_color)
    scene.set_camera(
        Camera.from_lookat(pos=(0.0, 0.0, -4.0), lookat=(0.0, 0.0, 0.0), up=(0.0, 1.0, 0.0))
    )
    return scene


def _mirror_scene(floor_reflectivity=1.0):
    """A black mirror floor reflecting a red, ambient-lit sphere."""
    from glint.materials.material import Material
    from glint.scene.manager import SceneManager

    scene = SceneManager()
    floor = Material(color=(0.0, 0.0, 0.0), diffuse_coeff=0.0, reflectivity=floor_reflectivity)
    red = Material(color=(255.0, 0.0, 0.0), diffuse_coeff=0.0)
    scene.add_plane(point=(0.0, 0.0, 0.0), normal=(0.0, 1.0, 0.0), material=floor)
    scene.add_sphere(center=(0.0, 3.0, 3.0), radius=1.0, material=red)
    scene.set_ambient(1.0, (255.0, 255.0, 255.0))
    return scene


class TestLocalShading:
    """Tests for ambient and direct lighting."""

    def test_ambient_only_without_lights(self):
        """With no lights the color is exactly raw_color * ambient."""
        from glint.core.integrator import trace_single_ray
        from glint.materials.material import Material

        _sphere_scene(
            ambient=0.5,
            material=Material(color=(200.0, 100.0, 50.0)),
            ambient_color=(255.0, 0.0, 255.0),
        )

        color = trace_single_ray((0.0, 0.0, -4.0), (0.0, 0.0, 1.0))
        assert color == pytest.approx((100.0, 0.0, 25.0), abs=1e-3)

    def test_miss_is_black(self):
        from glint.core.integrator import trace_single_ray

        _sphere_scene()
        assert trace_single_ray((0.0, 5.0, -4.0), (0.0, 0.0, 1.0)) == (0.0, 0.0, 0.0)

    def test_diffuse_light_from_above(self):
        """Ambient 25.5 plus 255 * cos(theta) * intensity 2 with cos = 0.6."""
        from glint.core.integrator import trace_single_ray
        from glint.scene.lights import PointLight

        _sphere_scene(ambient=0.1, light=PointLight(pos=(4.0, 4.0, 0.0), intensity=2.0))
        color = trace_single_ray((0.0, 5.0, 0.0), (0.0, -1.0, 0.0))
        assert color[0] == pytest.approx(0.0, abs=1e-3)
        assert color[1] == pytest.approx(0.0, abs=1e-3)
        assert color[2] == pytest.approx(25.5 + 306.0, abs=0.1)

    def test_light_color_weights_channels(self):
        """Light color / 255 multiplies the shaded color per channel."""
        from glint.core.integrator import trace_single_ray
        from glint.materials.material import Material
        from glint.scene.lights import PointLight

        _sphere_scene(
            ambient=0.0,
            light=PointLight(pos=(0.0, 10.0, 0.0), color=(255.0, 0.0, 127.5), intensity=1.0),
            material=Material(color=(200.0, 200.0, 200.0), diffuse_coeff=1.0),
        )
        color = trace_single_ray((0.0, 5.0, 0.0), (0.0, -1.0, 0.0))
        assert color == pytest.approx((200.0, 0.0, 100.0), abs=0.05)


class TestShadows:
    """Tests for the distance-compared shadow test."""

    def _scene(self, light_pos):
        from glint.materials.material import Material
        from glint.scene.lights import PointLight

        scene = _sphere_scene(ambient=0.1, light=PointLight(pos=light_pos, intensity=1.0))
        scene.add_sphere(
            center=(0.0, 6.0, 0.0), radius=1.0, material=Material(color=BLUE, diffuse_coeff=1.0)
        )
        return scene

    def test_occluder_before_light_blocks(self):
        """A sphere between the hit and the light leaves only ambient."""
        from glint.core.integrator import trace_single_ray

        self._scene(light_pos=(0.0, 10.0, 0.0))
        color = trace_single_ray((0.0, 3.0, 0.0), (0.0, -1.0, 0.0))
        assert color == pytest.approx((0.0, 0.0, 25.5), abs=1e-3)

    def test_occluder_beyond_light_does_not_block(self):
        """A surface farther away than the light casts no shadow."""
        from glint.core.integrator import trace_single_ray

        self._scene(light_pos=(0.0, 4.0, 0.0))
        color = trace_single_ray((0.0, 3.0, 0.0), (0.0, -1.0, 0.0))
        assert color[2] == pytest.approx(25.5 + 255.0, abs=0.05)


class TestReflection:
    """Tests for mirror reflection and the depth limit."""

    ORIGIN = (0.0, 1.0, -1.0)
    DIRECTION = (0.0, -1.0, 1.0)

    def test_depth_zero_skips_reflection(self):
        from glint.core.integrator import trace_single_ray

        _mirror_scene()
        color = trace_single_ray(self.ORIGIN, self.DIRECTION, depth=0, max_depth=0)
        assert color == pytest.approx((0.0, 0.0, 0.0), abs=1e-3)

    def test_one_bounce_sees_sphere(self):
        from glint.core.integrator import trace_single_ray

        _mirror_scene()
        color = trace_single_ray(self.ORIGIN, self.DIRECTION, depth=0, max_depth=1)
        assert color == pytest.approx((255.0, 0.0, 0.0), abs=1e-3)

    def test_reflectivity_weights_reflection(self):
        from glint.core.integrator import trace_single_ray

        _mirror_scene(floor_reflectivity=0.5)
        color = trace_single_ray(self.ORIGIN, self.DIRECTION, depth=0, max_depth=3)
        assert color == pytest.approx((127.5, 0.0, 0.0), abs=1e-3)

    def test_at_max_depth_never_recurses(self):
        """depth == max_depth returns the local color only."""
        from glint.core.integrator import trace_single_ray

        _mirror_scene()
        color = trace_single_ray(self.ORIGIN, self.DIRECTION, depth=2, max_depth=2)
        assert color == pytest.approx((0.0, 0.0, 0.0), abs=1e-3)


class TestRender:
    """Tests for full-image rendering."""

    def test_shape_and_dtype(self):
        from glint.core.integrator import render

        scene = _sphere_scene()
        image = render(scene, 16, 8)
        assert image.shape == (8, 16, 3)
        assert image.dtype == np.uint8

    def test_center_pixel_regression(self):
        """Light (4, 4, 0) is behind the visible face, so only ambient shows."""
        from glint.core.integrator import render
        from glint.scene.lights import PointLight

        scene = _sphere_scene(ambient=0.1, light=PointLight(pos=(4.0, 4.0, 0.0), intensity=2.0))
        image = render(scene, 32, 32, max_reflection_depth=3)
        assert tuple(image[16, 16]) == (0, 0, 25)

    def test_corner_is_background(self):
        from glint.core.integrator import render

        scene = _sphere_scene()
        image = render(scene, 32, 32)
        assert tuple(image[0, 0]) == (0, 0, 0)

    def test_channels_clamp_at_255(self):
        """Overexposed channels saturate instead of wrapping."""
        from glint.core.integrator import render
        from glint.scene.lights import PointLight

        scene = _sphere_scene(ambient=0.0, light=PointLight(pos=(0.0, 0.0, -10.0), intensity=5.0))
        image = render(scene, 8, 8)
        assert tuple(image[4, 4]) == (0, 0, 255)

    def test_truncates_fractional_channels(self):
        """Light (0, 0, -5) with kd 0.4 gives 102 + 25.5 = 127.5, stored as 127."""
        from glint.core.integrator import render
        from glint.materials.material import Material
        from glint.scene.lights import PointLight

        scene = _sphere_scene(
            ambient=0.1,
            light=PointLight(pos=(0.0, 0.0, -5.0), intensity=1.0),
            material=Material(color=BLUE, diffuse_coeff=0.4),
        )
        image = render(scene, 8, 8)
        assert tuple(image[4, 4]) == (0, 0, 127)

    def test_render_pixel_matches_image(self):
        from glint.core.integrator import render, render_pixel
        from glint.scene.lights import PointLight

        scene = _sphere_scene(ambient=0.1, light=PointLight(pos=(-3.0, 2.0, -4.0), intensity=1.0))
        image = render(scene, 24, 16)
        for x, y in [(0, 0), (12, 8), (10, 6), (15, 9)]:
            assert render_pixel(x, y, 24, 16) == tuple(int(c) for c in image[y, x])

    def test_render_is_deterministic(self):
        from glint.core.integrator import render

        scene = _sphere_scene()
        np.testing.assert_array_equal(render(scene, 16, 16), render(scene, 16, 16))

    def test_earlier_scene_renders_its_own_contents(self):
        """Building a second scene does not change what the first one renders."""
        from glint.core.integrator import render
        from glint.materials.material import Material

        red = _sphere_scene(ambient=1.0, material=Material(color=(255.0, 0.0, 0.0)))
        red_image = render(red, 16, 16)
        assert tuple(red_image[8, 8]) == (255, 0, 0)

        green = _sphere_scene(ambient=1.0, material=Material(color=(0.0, 255.0, 0.0)))
        green.add_sphere(center=(3.0, 0.0, 0.0), radius=1.0, material=0)
        assert tuple(render(green, 16, 16)[8, 8]) == (0, 255, 0)

        np.testing.assert_array_equal(render(red, 16, 16), red_image)
        np.testing.assert_array_equal(render(green, 16, 16)[8, 8], (0, 255, 0))


class TestValidation:
    """Tests for argument checks."""

    @pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-1, 5), (10000, 10)])
    def test_bad_dimensions(self, width, height):
        from glint.core.integrator import render

        scene = _sphere_scene()
        with pytest.raises(ValueError):
            render(scene, width, height)

    def test_negative_depth(self):
        from glint.core.integrator import render

        scene = _sphere_scene()
        with pytest.raises(ValueError):
            render(scene, 4, 4, max_reflection_depth=-1)

    def test_scene_without_camera(self):
        from glint.core.integrator import render
        from glint.scene.manager import SceneManager

        with pytest.raises(RuntimeError):
            render(SceneManager(), 4, 4)

    def test_render_image_without_camera(self):
        from glint.core.integrator import render_image

        with pytest.raises(RuntimeError):
            render_image(4, 4)
