"""Unit tests for material registration and local shading."""

import pytest
import taichi as ti


def _shade(material_id, light_dir, camera_dir, normal, u=0.0, v=0.0):
    """Evaluate shade() for unit vectors given as tuples."""
    from glint.materials.material import shade, vec3

    result = ti.field(dtype=ti.math.vec3, shape=())

    @ti.kernel
    def test_kernel(m: ti.i32, l: vec3, d: vec3, n: vec3, su: ti.f32, sv: ti.f32):
        result[None] = shade(m, l.normalized(), d.normalized(), n.normalized(), su, sv)

    test_kernel(material_id, vec3(*light_dir), vec3(*camera_dir), vec3(*normal), u, v)
    return tuple(float(c) for c in result[None].to_numpy())


class TestMaterialRegistry:
    """Tests for adding materials."""

    def test_add_material_ids(self):
        from glint.materials.material import add_material, get_material_count

        first = add_material(color=(255.0, 0.0, 0.0))
        second = add_material(color=(0.0, 255.0, 0.0), reflectivity=0.5)
        assert (first, second) == (0, 1)
        assert get_material_count() == 2

    @pytest.mark.parametrize("reflectivity", [-0.1, 1.5])
    def test_reflectivity_out_of_range(self, reflectivity):
        from glint.materials.material import add_material

        with pytest.raises(ValueError):
            add_material(color=(255.0, 255.0, 255.0), reflectivity=reflectivity)

    def test_unknown_texture_id(self):
        from glint.materials.material import add_material

        with pytest.raises(ValueError):
            add_material(color=(255.0, 255.0, 255.0), texture_id=3)

    def test_unknown_noise_map_id(self):
        from glint.materials.material import add_material

        with pytest.raises(ValueError):
            add_material(color=(255.0, 255.0, 255.0), normal_map_id=0)
        with pytest.raises(ValueError):
            add_material(color=(255.0, 255.0, 255.0), displacement_map_id=2)

    def test_raw_color_and_reflectivity(self):
        from glint.materials.material import add_material, get_raw_color, get_reflectivity

        mid = add_material(color=(10.0, 20.0, 30.0), reflectivity=0.25)
        color = ti.field(dtype=ti.math.vec3, shape=())
        refl = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(m: ti.i32):
            color[None] = get_raw_color(m)
            refl[None] = get_reflectivity(m)

        test_kernel(mid)
        assert tuple(color[None].to_numpy()) == pytest.approx((10.0, 20.0, 30.0))
        assert refl[None] == pytest.approx(0.25)


class TestShade:
    """Tests for the diffuse and specular terms."""

    def test_diffuse_facing_light(self):
        """Light along the normal gives the full diffuse color."""
        from glint.materials.material import add_material

        mid = add_material(color=(0.0, 0.0, 255.0), diffuse_coeff=1.0)
        color = _shade(mid, (0.0, 0.0, -1.0), (0.0, 0.0, 1.0), (0.0, 0.0, -1.0))
        assert color == pytest.approx((0.0, 0.0, 255.0), abs=1e-3)

    def test_diffuse_cosine_falloff(self):
        """Diffuse scales with the cosine between normal and light."""
        from glint.materials.material import add_material

        mid = add_material(color=(200.0, 100.0, 0.0), diffuse_coeff=0.5)
        color = _shade(mid, (0.0, 1.0, -1.0), (0.0, 0.0, 1.0), (0.0, 0.0, -1.0))
        cos = 2.0**-0.5
        assert color == pytest.approx((100.0 * cos, 50.0 * cos, 0.0), abs=1e-3)

    def test_light_behind_surface(self):
        """A light behind the surface contributes no diffuse term."""
        from glint.materials.material import add_material

        mid = add_material(color=(255.0, 255.0, 255.0), diffuse_coeff=1.0)
        color = _shade(mid, (0.0, 0.0, 1.0), (1.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert color == pytest.approx((0.0, 0.0, 0.0), abs=1e-3)

    def test_specular_highlight(self):
        """Specular is white, weighted by (half . n) ** glossiness."""
        from glint.materials.material import add_material

        mid = add_material(
            color=(255.0, 0.0, 0.0), diffuse_coeff=1.0, specular_coeff=0.5, glossiness=2.0
        )
        # Light grazes the surface, so only the specular term remains
        color = _shade(mid, (1.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, 0.0, -1.0))
        assert color == pytest.approx((63.75, 63.75, 63.75), abs=1e-3)

    def test_checkerboard_tints_diffuse(self):
        """The texture multiplies the diffuse term by texture / 255."""
        from glint.materials.material import add_material
        from glint.materials.texture import add_checkerboard_texture

        tex = add_checkerboard_texture(dim=1.0)
        mid = add_material(color=(100.0, 100.0, 100.0), diffuse_coeff=1.0, texture_id=tex)

        white_tile = _shade(mid, (0.0, 1.0, 0.0), (0.0, -1.0, 0.0), (0.0, 1.0, 0.0), 0.25, 0.25)
        black_tile = _shade(mid, (0.0, 1.0, 0.0), (0.0, -1.0, 0.0), (0.0, 1.0, 0.0), 0.75, 0.25)
        assert white_tile == pytest.approx((100.0, 100.0, 100.0), abs=1e-3)
        assert black_tile == pytest.approx((0.0, 0.0, 0.0), abs=1e-3)


class TestPerturbHit:
    """Tests for applying noise maps to intersections."""

    def test_material_without_maps_is_unchanged(self):
        from glint.core.ray import Intersection
        from glint.materials.material import add_material, perturb_hit, vec3

        mid = add_material(color=(255.0, 255.0, 255.0))
        pos = ti.field(dtype=ti.math.vec3, shape=())
        normal = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel(m: ti.i32):
            rec = Intersection(
                hit=1,
                dist=2.0,
                pos=vec3(0.5, 0.25, 0.125),
                normal=vec3(0.0, 1.0, 0.0),
                u=0.0,
                v=0.0,
            )
            out = perturb_hit(m, rec)
            pos[None] = out.pos
            normal[None] = out.normal

        test_kernel(mid)
        assert tuple(pos[None].to_numpy()) == pytest.approx((0.5, 0.25, 0.125))
        assert tuple(normal[None].to_numpy()) == pytest.approx((0.0, 1.0, 0.0))
