"""Tests for the ray tracing engine."""

import numba
import numpy as np
import pytest

from raytracer.camera import Camera, ViewPort
from raytracer.exceptions import ConfigurationError
from raytracer.geometry import Ray, Sphere, InfinitePlane
from raytracer.material import Material, Opacity, Reflection, Refraction
from raytracer.math_utils import dot, normalize, reflect, interpolate_towards, seed_random
from raytracer.output import RenderTarget
from raytracer.render_params import RenderParams, Quality, DoF, MaxSamples, Ao
from raytracer.renderer import (render, trace, shade_split, incidence_steepness,
                                get_ray_count_for_intensity, sample_ray_cone,
                                ambient_occlusion, reflection_rays, refraction_ray,
                                refraction_rays)
from raytracer.scene import Scene
from raytracer.uv_mappers import StaticUvMapper

BLUE = (0.0, 0.0, 1.0)
RED = (1.0, 0.0, 0.0)
FACING_CAMERA = (-90.0, 0.0, 0.0)

FORWARD_RAY = Ray((0.0, 0.0, -5.0), (0.0, 0.0, 1.0))


def single_pixel(scene, camera, params):
    target = RenderTarget(1, 1)
    render(scene, camera, target, params, seed=1)
    return target.get_pixel(0, 0)


class TestRayCount:

    @pytest.mark.parametrize("n", [1, 2, 6, 17])
    def test_full_and_zero_intensity(self, n):
        assert get_ray_count_for_intensity(1.0, n) == n
        assert get_ray_count_for_intensity(0.0, n) == 1

    def test_rounds_to_nearest(self):
        # 1 + 0.5 * 5 = 3.5 -> 4
        assert get_ray_count_for_intensity(0.5, 6) == 4
        assert get_ray_count_for_intensity(0.1, 6) == 2


class TestShadeSplit:

    @pytest.mark.parametrize("mat", [
        Material.pure((1.0, 1.0, 1.0)),
        Material((1.0, 1.0, 1.0), Opacity(0.05, 1.0, 2.0), Reflection(1.0, 1.0, 1.0, 0.0),
                 Refraction(1.33)),
        Material((1.0, 1.0, 1.0), Opacity(0.1, 0.75, 3.0), Reflection(0.5, 0.5, 1.0, 0.0)),
        Material((1.0, 1.0, 1.0), Opacity(1.3, -0.2, 0.5), Reflection(-0.1, 0.8, 1.0, 20.0)),
    ])
    @pytest.mark.parametrize("steepness", [0.0, 0.3, 1.0])
    @pytest.mark.parametrize("intensity", [1.0, 0.37])
    def test_parts_sum_to_intensity(self, mat, steepness, intensity):
        parts = shade_split(mat.pack(), steepness, intensity)
        assert sum(parts) == pytest.approx(intensity)

    def test_edges_take_over_at_grazing_angle(self):
        mat = Material.opaque_reflective((1.0, 1.0, 1.0), Reflection(0.0, 1.0, 1.0, 0.0))
        color, reflection, refraction = shade_split(mat.pack(), 1.0, 1.0)
        assert color == pytest.approx(0.0)
        assert reflection == pytest.approx(1.0)
        assert refraction == pytest.approx(0.0)


class TestSteepness:

    def test_head_on_from_outside(self):
        s = incidence_steepness(np.array([0.0, 0.0, 1.0]), np.array([0.0, 0.0, -1.0]))
        assert s == pytest.approx(0.0)

    def test_head_on_from_inside(self):
        s = incidence_steepness(np.array([0.0, 0.0, 1.0]), np.array([0.0, 0.0, 1.0]))
        assert s == pytest.approx(0.0)

    def test_grazing(self):
        s = incidence_steepness(np.array([1.0, 0.0, 0.0]), np.array([0.0, 1.0, 0.0]))
        assert s == pytest.approx(1.0)

    def test_45_degrees(self):
        s = incidence_steepness(normalize(np.array([1.0, -1.0, 0.0])), np.array([0.0, 1.0, 0.0]))
        assert s == pytest.approx(0.5)


class TestConeSampling:

    def test_directions_stay_inside_cone(self):
        seed_random(7)
        axis = normalize(np.array([0.2, 1.0, -0.4]))
        directions, count = sample_ray_cone(axis, 10.0, 50, axis)

        assert 0 < count <= 50
        for d in directions[:count]:
            assert np.linalg.norm(d) == pytest.approx(1.0)
            assert np.degrees(np.arccos(min(dot(d, axis), 1.0))) <= 10.0 + 1e-6

    def test_cutoff_discards_rays_below_surface(self):
        seed_random(3)
        normal = np.array([0.0, 1.0, 0.0])
        axis = normalize(np.array([1.0, 0.05, 0.0]))
        directions, count = sample_ray_cone(axis, 30.0, 100, normal)

        assert count < 100
        for d in directions[:count]:
            assert dot(d, normal) > 0.0

    def test_zero_samples(self):
        axis = np.array([0.0, 0.0, 1.0])
        _, count = sample_ray_cone(axis, 5.0, 0, axis)
        assert count == 0


class TestRefractionRay:

    def test_snell_from_air(self):
        s = np.sqrt(0.5)
        direction = np.array([s, -s, 0.0])
        normal = np.array([0.0, 1.0, 0.0])
        origin, refracted, cutoff = refraction_ray(direction, np.zeros(3), normal, 1.5, 0.01)

        # sin(t) = sin(45) / 1.5
        assert refracted[0] == pytest.approx(s / 1.5)
        assert refracted[1] < 0.0
        assert np.linalg.norm(refracted) == pytest.approx(1.0)
        assert origin[1] == pytest.approx(-0.01)
        assert np.allclose(cutoff, [0.0, -1.0, 0.0])

    def test_ior_one_keeps_direction(self):
        direction = normalize(np.array([0.3, -1.0, 0.2]))
        _, refracted, _ = refraction_ray(direction, np.zeros(3), np.array([0.0, 1.0, 0.0]),
                                         1.0, 0.01)
        assert np.allclose(refracted, direction)

    def test_total_internal_reflection(self):
        # Луч изнутри стекла под 60 градусами к нормали
        direction = np.array([np.sin(np.radians(60.0)), np.cos(np.radians(60.0)), 0.0])
        normal = np.array([0.0, 1.0, 0.0])
        origin, reflected, cutoff = refraction_ray(direction, np.zeros(3), normal, 1.5, 0.01)

        assert reflected[1] == pytest.approx(-0.5)
        assert origin[1] == pytest.approx(-0.01)
        assert dot(reflected, cutoff) > 0.0


class TestBlurredRays:

    def test_glossy_axis_is_pulled_towards_normal(self):
        mat = Material.opaque_reflective((0.0, 0.0, 0.0), Reflection(1.0, 1.0, 1.0, 9.0)).pack()
        params = RenderParams(max_samples=MaxSamples(reflection=6)).pack()
        normal = np.array([0.0, 1.0, 0.0])
        ray_dir = normalize(np.array([1.0, -1.0, 0.0]))

        # 9 / 90 = 0.1 пути от идеального отражения к нормали
        axis = normalize(interpolate_towards(reflect(ray_dir, normal), normal, 0.1))
        n = get_ray_count_for_intensity(0.5, 6)

        seed_random(2)
        expected, expected_count = sample_ray_cone(axis, 9.0, n, normal)
        seed_random(2)
        origin, directions, count = reflection_rays(ray_dir, np.zeros(3), normal, mat, 0.5,
                                                    params)

        assert n == 4
        assert count == expected_count == n
        assert np.allclose(directions[:count], expected[:count])
        assert origin[1] == pytest.approx(0.01)

    def test_rough_refraction_drops_rays_above_surface(self):
        mat = Material((0.0, 0.0, 0.0), Opacity(0.0, 0.0, 1.0), Reflection(0.0, 0.0, 1.0, 0.0),
                       Refraction(1.0, 10.0)).pack()
        params = RenderParams(max_samples=MaxSamples(refraction=64)).pack()
        normal = np.array([0.0, 1.0, 0.0])
        # Почти скользящий луч: часть конуса уходит обратно над полом
        ray_dir = normalize(np.array([1.0, -0.05, 0.0]))

        seed_random(9)
        origin, directions, count = refraction_rays(ray_dir, np.zeros(3), normal, mat, 1.0,
                                                    params)

        assert 0 < count < 64
        assert origin[1] == pytest.approx(-0.01)
        for d in directions[:count]:
            assert d[1] < 0.0

    def test_rough_refraction_divides_by_surviving_rays(self):
        rough_glass = Material((0.0, 0.0, 0.0), Opacity(0.0, 0.0, 1.0),
                               Reflection(0.0, 0.0, 1.0, 0.0), Refraction(1.0, 10.0))
        scene = Scene(sky_color=(0.2, 0.4, 0.6))
        scene.add(InfinitePlane((0.0, 0.0, 0.0), StaticUvMapper(rough_glass)))
        params = RenderParams(dof=DoF(0.0, 1), max_samples=MaxSamples(refraction=64),
                              ao=Ao(0.0))

        seed_random(9)
        color = trace(scene, Ray((0.0, 1.0, 0.0), (1.0, -0.05, 0.0)), params)
        assert np.allclose(color, [0.2, 0.4, 0.6])

    def test_glossy_mirror_at_grazing_angle_keeps_sky(self):
        glossy = Material.opaque_reflective((0.0, 0.0, 0.0), Reflection(1.0, 1.0, 1.0, 40.0))
        scene = Scene(sky_color=BLUE)
        scene.add(InfinitePlane((0.0, 0.0, 0.0), StaticUvMapper(glossy)))
        params = RenderParams(dof=DoF(0.0, 1), max_samples=MaxSamples(reflection=64),
                              ao=Ao(0.0))

        seed_random(5)
        color = trace(scene, Ray((0.0, 1.0, -5.0), (0.0, -0.02, 1.0)), params)
        assert np.allclose(color, BLUE)

    def test_rough_glass_sphere_keeps_sky(self):
        rough_glass = Material((0.0, 0.0, 0.0), Opacity(0.0, 0.0, 1.0),
                               Reflection(0.0, 0.0, 1.0, 0.0), Refraction(1.3, 10.0))
        scene = Scene(sky_color=(0.2, 0.4, 0.6))
        scene.add(Sphere((0.0, 0.0, 0.0), 1.0, StaticUvMapper(rough_glass)))
        params = RenderParams(dof=DoF(0.0, 1), max_samples=MaxSamples(refraction=4),
                              ao=Ao(0.0))

        seed_random(3)
        assert np.allclose(trace(scene, FORWARD_RAY, params), [0.2, 0.4, 0.6])


class TestAmbientOcclusion:

    def test_open_sky_is_not_occluded(self, fast_params):
        scene = Scene().compile()
        factor = ambient_occlusion(np.zeros(3), np.array([0.0, 1.0, 0.0]), scene.data,
                                   fast_params.pack())
        assert factor == 1.0

    def test_ceiling_darkens_even_if_hidden_from_camera(self):
        scene = Scene()
        scene.add(InfinitePlane((0.0, 1.0, 0.0), StaticUvMapper(Material.pure(RED)),
                                rotation=(180.0, 0.0, 0.0), visible_to_camera=False))
        scene.compile()
        params = RenderParams(quality=Quality(bias=0.0), ao=Ao(1.0, 2.0, 16))

        seed_random(11)
        factor = ambient_occlusion(np.zeros(3), np.array([0.0, 1.0, 0.0]), scene.data,
                                   params.pack())
        # Ближайшее попадание не ближе 1, поэтому затемнение не больше 1/4
        assert 0.75 - 1e-9 <= factor < 1.0

    @pytest.mark.parametrize("seed", [1, 4, 9])
    def test_single_ray_darkening_follows_hit_distance(self, seed):
        scene = Scene()
        scene.add(InfinitePlane((0.0, 1.0, 0.0), StaticUvMapper(Material.pure(RED)),
                                rotation=(180.0, 0.0, 0.0)))
        scene.compile()
        params = RenderParams(quality=Quality(bias=0.0), ao=Ao(0.8, 5.0, 1)).pack()
        up = np.array([0.0, 1.0, 0.0])

        seed_random(seed)
        directions, count = sample_ray_cone(up, 90.0, 1, up)
        seed_random(seed)
        factor = ambient_occlusion(np.zeros(3), up, scene.data, params)

        # Потолок на высоте 1: расстояние вдоль луча 1 / cos
        assert count == 1
        distance = 1.0 / directions[0][1]
        expected = 1.0 - 0.8 * (1.0 - min(distance / 5.0, 1.0)) ** 2
        assert factor == pytest.approx(expected)

    def test_zero_strength_does_not_change_pixel(self, camera, red_material):
        scene = Scene(sky_color=BLUE)
        scene.add(Sphere((0.0, 0.0, 0.0), 1.0, StaticUvMapper(red_material)))
        scene.add(InfinitePlane((0.0, 0.0, 1.5), StaticUvMapper(red_material),
                                rotation=FACING_CAMERA))

        pixels = []
        for samples, distance in [(0, 0.0), (3, 2.0), (32, 100.0)]:
            params = RenderParams(dof=DoF(0.0, 1), ao=Ao(0.0, distance, samples))
            pixels.append(single_pixel(scene, camera, params))

        for pixel in pixels:
            assert np.array_equal(pixel, pixels[0])


class TestTrace:

    def test_opaque_hit_is_material_color(self, unit_sphere_scene, camera, fast_params):
        for sky in [(0.0, 0.0, 1.0), (1.0, 1.0, 1.0), (0.0, 0.0, 0.0)]:
            unit_sphere_scene.sky_color = np.array(sky)
            assert np.allclose(single_pixel(unit_sphere_scene, camera, fast_params), RED)

    def test_miss_returns_sky_times_intensity(self, unit_sphere_scene, fast_params):
        ray = Ray((0.0, 5.0, -5.0), (0.0, 0.0, 1.0))
        assert np.allclose(trace(unit_sphere_scene, ray, fast_params, intensity=0.5),
                           np.array(BLUE) * 0.5)

    def test_mirror_shows_sky(self, mirror_scene, camera, fast_params):
        assert np.allclose(single_pixel(mirror_scene, camera, fast_params), BLUE)

    def test_mirror_reflection_is_tinted(self, camera, fast_params):
        mirror = Material.opaque_reflective(
            (0.0, 0.0, 0.0), Reflection(1.0, 1.0, 1.0, 0.0, tint=(0.5, 0.5, 0.5)))
        scene = Scene(sky_color=BLUE)
        scene.add(InfinitePlane((0.0, 0.0, 5.0), StaticUvMapper(mirror), rotation=FACING_CAMERA))
        assert np.allclose(single_pixel(scene, camera, fast_params), [0.0, 0.0, 0.5])

    def test_zero_bounces_returns_only_own_color(self):
        mat = Material.opaque_reflective((0.2, 0.4, 0.8), Reflection(0.5, 0.5, 1.0, 0.0))
        scene = Scene(sky_color=BLUE)
        scene.add(Sphere((0.0, 0.0, 0.0), 1.0, StaticUvMapper(mat)))
        params = RenderParams(quality=Quality(max_bounces=0), ao=Ao(0.0))

        color = trace(scene, FORWARD_RAY, params, intensity=0.8)
        assert np.allclose(color, np.array([0.2, 0.4, 0.8]) * 0.5 * 0.8)

    def test_zero_bounces_mirror_is_black(self, mirror_scene):
        params = RenderParams(quality=Quality(max_bounces=0), ao=Ao(0.0))
        assert np.allclose(trace(mirror_scene, FORWARD_RAY, params), [0.0, 0.0, 0.0])

    def test_clear_sphere_lets_light_through(self, clear_material, fast_params):
        scene = Scene(sky_color=(0.2, 0.4, 0.6))
        scene.add(Sphere((0.0, 0.0, 0.0), 1.0, StaticUvMapper(clear_material)))
        assert np.allclose(trace(scene, FORWARD_RAY, fast_params), [0.2, 0.4, 0.6])

    def test_hidden_object_skipped_by_primary_rays(self, red_material, fast_params):
        scene = Scene(sky_color=BLUE)
        scene.add(Sphere((0.0, 0.0, 0.0), 1.0, StaticUvMapper(red_material),
                         visible_to_camera=False))
        assert np.allclose(trace(scene, FORWARD_RAY, fast_params), BLUE)

    def test_hidden_object_visible_in_mirror(self, red_material, camera, fast_params):
        mirror = Material.opaque_reflective((0.0, 0.0, 0.0), Reflection(1.0, 1.0, 1.0, 0.0))
        scene = Scene(sky_color=BLUE)
        scene.add(InfinitePlane((0.0, 0.0, 5.0), StaticUvMapper(mirror), rotation=FACING_CAMERA))
        # Сфера позади камеры, видна только в зеркале
        scene.add(Sphere((0.0, 0.0, -8.0), 1.0, StaticUvMapper(red_material),
                         visible_to_camera=False))
        assert np.allclose(single_pixel(scene, camera, fast_params), RED)


class TestRender:

    def test_render_fills_every_pixel(self, unit_sphere_scene, fast_params):
        camera = Camera(position=(0.0, 0.0, -5.0), viewport=ViewPort(1.0, 0.75), fov_h=30.0)
        target = RenderTarget(8, 6, clear_color=(0.5, 0.5, 0.5))
        render(unit_sphere_scene, camera, target, fast_params, seed=0)

        # Каждый пиксель - либо сфера, либо небо
        flat = target.pixels.reshape(-1, 3)
        is_red = np.all(np.isclose(flat, RED), axis=1)
        is_blue = np.all(np.isclose(flat, BLUE), axis=1)
        assert np.all(is_red | is_blue)
        assert is_red.any() and is_blue.any()

    def test_same_seed_same_image(self, unit_sphere_scene):
        camera = Camera(position=(0.0, 0.0, -5.0), fov_h=40.0)
        params = RenderParams(dof=DoF(2.0, 4), ao=Ao(0.8, 2.0, 3))

        images = []
        for _ in range(2):
            target = RenderTarget(6, 4)
            render(unit_sphere_scene, camera, target, params, seed=42)
            images.append(target.pixels)

        assert np.array_equal(images[0], images[1])

    @pytest.mark.skipif(numba.config.NUMBA_NUM_THREADS < 2,
                        reason="needs at least 2 numba threads")
    def test_thread_count_does_not_change_image(self, red_material):
        glossy = Material.opaque_reflective((0.2, 0.4, 0.8), Reflection(0.5, 0.5, 1.0, 20.0))
        scene = Scene(sky_color=BLUE)
        scene.add(Sphere((0.0, 0.0, 0.0), 1.0, StaticUvMapper(glossy)))
        scene.add(InfinitePlane((0.0, -1.0, 0.0), StaticUvMapper(red_material)))
        camera = Camera(position=(0.0, 0.5, -5.0), fov_h=40.0)
        params = RenderParams(dof=DoF(2.0, 4), ao=Ao(0.8, 2.0, 3))

        saved = numba.get_num_threads()
        images = []
        try:
            for threads in [1, 2]:
                numba.set_num_threads(threads)
                target = RenderTarget(8, 6)
                render(scene, camera, target, params, seed=42)
                images.append(target.pixels.copy())
        finally:
            numba.set_num_threads(saved)

        assert np.array_equal(images[0], images[1])

    def test_invalid_params_abort_before_render(self, unit_sphere_scene, camera):
        target = RenderTarget(2, 2, clear_color=(0.5, 0.5, 0.5))
        params = RenderParams(quality=Quality(min_intensity=2.0))

        with pytest.raises(ConfigurationError):
            render(unit_sphere_scene, camera, target, params)
        assert np.all(target.pixels == 0.5)

    def test_zero_dof_samples_render_black(self, unit_sphere_scene, camera):
        target = RenderTarget(2, 2, clear_color=(0.5, 0.5, 0.5))
        render(unit_sphere_scene, camera, target, RenderParams(dof=DoF(1.0, 0)), seed=0)
        assert np.all(target.pixels == 0.0)
