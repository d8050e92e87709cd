"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add the project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from raytracer.camera import Camera
from raytracer.geometry import Sphere, InfinitePlane
from raytracer.material import Material, Opacity, Reflection, Refraction
from raytracer.render_params import RenderParams, Quality, DoF, MaxSamples, Ao
from raytracer.scene import Scene
from raytracer.uv_mappers import StaticUvMapper

BLUE = (0.0, 0.0, 1.0)
RED = (1.0, 0.0, 0.0)

# Поворот плоскости, при котором нормаль смотрит на камеру (-Z)
FACING_CAMERA = (-90.0, 0.0, 0.0)


@pytest.fixture
def fast_params():
    """Без AO и глубины резкости - результат не зависит от случайных чисел."""
    return RenderParams(
        quality=Quality(min_intensity=0.03, max_bounces=4, bias=0.01),
        dof=DoF(max_angle=0.0, samples=1),
        max_samples=MaxSamples(reflection=4, refraction=1),
        ao=Ao(strength=0.0, distance=2.0, samples=3),
    )


@pytest.fixture
def red_material():
    return Material.pure(RED)


@pytest.fixture
def mirror_material():
    return Material.opaque_reflective((0.0, 0.0, 0.0), Reflection(1.0, 1.0, 1.0, 0.0))


@pytest.fixture
def clear_material():
    """Полностью прозрачный материал без преломления."""
    return Material((0.0, 0.0, 0.0), Opacity(0.0, 0.0, 1.0), Reflection(0.0, 0.0, 1.0, 0.0),
                    Refraction(1.0, 0.0))


@pytest.fixture
def unit_sphere_scene(red_material):
    """Красная единичная сфера в начале координат на синем небе."""
    scene = Scene(sky_color=BLUE)
    scene.add(Sphere((0.0, 0.0, 0.0), 1.0, StaticUvMapper(red_material)))
    return scene.compile()


@pytest.fixture
def mirror_scene(mirror_material):
    """Зеркальная плоскость z = 5, обращённая к камере, на синем небе."""
    scene = Scene(sky_color=BLUE)
    scene.add(InfinitePlane((0.0, 0.0, 5.0), StaticUvMapper(mirror_material),
                            rotation=FACING_CAMERA))
    return scene.compile()


@pytest.fixture
def camera():
    """Камера в (0, 0, -5), смотрит вдоль +Z."""
    return Camera(position=(0.0, 0.0, -5.0))
