"""
Демонстрационная сцена: комната из бесконечных плоскостей со сферами и кубом.
"""

from .camera import Camera, ViewPort
from .geometry import Sphere, InfinitePlane, Cube
from .material import Material, Opacity, Reflection, Refraction
from .render_params import RenderParams, Quality, DoF, MaxSamples, Ao
from .scene import Scene
from .uv_mappers import StaticUvMapper, CheckerboardUvMapper

# Повороты плоскости, переводящие нормаль UP в нужное направление
FACING_UP = (0.0, 0.0, 0.0)
FACING_DOWN = (180.0, 0.0, 0.0)
FACING_BACK = (-90.0, 0.0, 0.0)
FACING_RIGHT = (-90.0, -90.0, 0.0)
FACING_LEFT = (-90.0, 90.0, 0.0)


def create_scene(config: dict) -> Scene:
    """
    Создаёт сцену: пол в клетку, потолок, три стены и несколько объектов.
    Параметры настраиваются через словарь config.
    """
    scene = Scene(sky_color=config.get('sky_color', [1.0, 1.0, 1.0]))
    size = config.get('room_size', 15.0)

    # Цвета стен
    left_color = config.get('left_wall_color', [1.0, 0.6, 0.1])
    right_color = config.get('right_wall_color', [0.25, 0.75, 1.0])
    back_color = config.get('back_wall_color', [0.5, 0.5, 0.5])

    # Материалы
    mat_white_diffuse = Material.opaque_reflective(
        [1.0, 1.0, 1.0], Reflection(1.0, 1.0, 1.0, 90.0))
    mat_floor_dark = Material.opaque_reflective(
        [0.05, 0.05, 0.05], Reflection(0.35, 0.9, 1.0, 20.0))
    mat_mirror = Material.opaque_reflective(
        [1.0, 1.0, 1.0], Reflection(0.75, 1.0, 4.0, 0.0))
    mat_glass = Material(
        [1.0, 1.0, 1.0],
        Opacity(0.05, 1.0, 2.0),
        Reflection(1.0, 1.0, 1.0, 0.0),
        Refraction(config.get('glass_ior', 1.33), 0.0))
    mat_colored = Material.opaque_reflective(
        config.get('box_color', [0.45, 0.3, 0.45]), Reflection(0.15, 0.6, 3.0, 8.0))

    # Пол (шахматная доска)
    scene.add(InfinitePlane([0.0, 0.0, 0.0], CheckerboardUvMapper(mat_white_diffuse, mat_floor_dark),
                            rotation=FACING_UP, uv_scale=config.get('floor_uv_scale', 0.1)))

    # Потолок
    scene.add(InfinitePlane([0.0, size, 0.0], StaticUvMapper(mat_white_diffuse),
                            rotation=FACING_DOWN))

    # Задняя стена
    scene.add(InfinitePlane([0.0, 0.0, size + 5.0], StaticUvMapper(Material.pure(back_color)),
                            rotation=FACING_BACK))

    # Левая и правая стены
    scene.add(InfinitePlane([-size, 0.0, 0.0], StaticUvMapper(Material.pure(left_color)),
                            rotation=FACING_RIGHT))
    scene.add(InfinitePlane([size, 0.0, 0.0], StaticUvMapper(Material.pure(right_color)),
                            rotation=FACING_LEFT))

    # Стеклянная сфера (слева)
    r = config.get('glass_radius', 4.0)
    scene.add(Sphere([-6.0, r, 10.0], r, StaticUvMapper(mat_glass)))

    # Зеркальная сфера (справа)
    r = config.get('mirror_radius', 4.5)
    scene.add(Sphere([6.0, r, 12.0], r, StaticUvMapper(mat_mirror)))

    # Куб в центре
    half = config.get('box_size', 1.5)
    scene.add(Cube([0.0, half, 5.0], StaticUvMapper(mat_colored),
                   rotation=(0.0, config.get('box_rotation', 30.0), 0.0),
                   width=half, height=half, depth=half))

    scene.compile()
    return scene


def create_camera(config: dict) -> Camera:
    return Camera(
        position=config.get('camera_position', [0.0, 7.5, -10.0]),
        rotation=config.get('camera_rotation', [0.0, 0.0, 0.0]),
        viewport=ViewPort(*config.get('viewport', [16.0, 9.0])),
        fov_h=config.get('camera_fov', 40.0),
    )


def create_render_params(config: dict) -> RenderParams:
    return RenderParams(
        quality=Quality(config.get('min_intensity', 0.03), config.get('max_bounces', 10),
                        config.get('bias', 0.01)),
        dof=DoF(config.get('dof_max_angle', 0.1), config.get('dof_samples', 10)),
        max_samples=MaxSamples(config.get('max_reflection_samples', 6),
                               config.get('max_refraction_samples', 1)),
        ao=Ao(config.get('ao_strength', 0.4), config.get('ao_distance', 5.0),
              config.get('ao_samples', 3)),
    )
