"""
Геометрические примитивы: пересечение луча со сферой и плоскостями.

Каждый тест пересечения возвращает кортеж
    (hit, position, normal, u, v)
где hit - было ли пересечение, position - точка пересечения,
normal - единичная нормаль в этой точке, (u, v) - координаты развёртки.

Объекты сцены на Python (Sphere, InfinitePlane, Plane, Cube) описываются
набором примитивов: вид примитива + строка параметров float64.
Куб - это шесть ограниченных плоскостей.
"""

import numpy as np
from numba import njit

from .exceptions import ConfigurationError
from .math_utils import (dot, sqr_length, normalize, project_onto_plane, angle_on_plane,
                         get_random_90_deg_vector, rotate_euler, cross, vec3,
                         UP, RIGHT, LEFT, DOWN, FORWARD, BACK)

# Виды примитивов
SPHERE = 0
INFINITE_PLANE = 1
PLANE = 2

# Ширина строки параметров примитива
#   сфера:                центр(0..2), радиус(3), up(4..6), right(7..9)
#   бесконечная плоскость: начало(0..2), нормаль(3..5), right(6..8), forward(9..11), uv_scale(12)
#   плоскость:            начало(0..2), нормаль(3..5), right(6..8), forward(9..11),
#                         половина ширины(12), половина высоты(13)
PRIM_WIDTH = 14

# Луч почти параллелен плоскости
PLANE_EPSILON = 2.220446049250313e-16


class Ray:
    """Луч: начало и единичное направление."""

    def __init__(self, origin, direction):
        self.origin = vec3(origin)
        self.direction = normalize(vec3(direction))


class GeometryHitInfo:
    """Результат пересечения: точка, нормаль и UV-координаты."""

    def __init__(self, position, normal, uv):
        self.position = position
        self.normal = normal
        self.uv = uv

    def __repr__(self):
        return f"GeometryHitInfo(position={self.position}, normal={self.normal}, uv={self.uv})"


@njit(cache=True, fastmath=True)
def wrap01(x):
    """Дробная часть, всегда в [0, 1)."""
    r = x - np.floor(x)
    if r >= 1.0:
        r = 0.0
    return r


@njit(cache=True, fastmath=True)
def ray_plane_distance(ray_origin, ray_dir, origin, normal):
    """
    Расстояние вдоль луча до плоскости.

    Плоскость видна только с той стороны, куда смотрит нормаль.
    Возвращает (hit, distance).
    """
    cos_ray_to_plane = dot(normal, ray_dir)

    # Угол больше 90 градусов - луч смотрит на плоскость
    if cos_ray_to_plane < -PLANE_EPSILON:
        distance_to_plane = dot(ray_origin - origin, normal)

        # Начало луча не за плоскостью
        if distance_to_plane > 0.0:
            return True, distance_to_plane / -cos_ray_to_plane

    return False, 0.0


@njit(cache=True, fastmath=True)
def sphere_uv(normal, up, right):
    """Долгота и широта нормали относительно осей сферы up/right."""
    u = angle_on_plane(project_onto_plane(normal, up), right, up, False) / 360.0
    v = 1.0 - abs(angle_on_plane(project_onto_plane(normal, right), up, right, True)) / 180.0
    return wrap01(u), min(max(v, 0.0), 1.0)


@njit(cache=True, fastmath=True)
def ray_sphere_intersect(ray_origin, ray_dir, center, radius, up, right):
    """
    Пересечение луча со сферой.

    Если луч начинается внутри сферы, возвращается дальняя точка
    (пересечение с "задней стенкой").
    """
    rad_sqr = radius * radius
    orig_to_center = center - ray_origin

    starts_inside = sqr_length(orig_to_center) < rad_sqr

    # Проекция центра на направление луча
    t_mid = dot(orig_to_center, ray_dir)

    # Сфера целиком позади начала луча
    if not starts_inside and t_mid < 0.0:
        return False, np.zeros(3), np.zeros(3), 0.0, 0.0

    midpoint_to_center_sqr = sqr_length(ray_origin + ray_dir * t_mid - center)

    # Луч проходит мимо
    if not starts_inside and midpoint_to_center_sqr > rad_sqr:
        return False, np.zeros(3), np.zeros(3), 0.0, 0.0

    half_chord = np.sqrt(max(rad_sqr - midpoint_to_center_sqr, 0.0))

    if starts_inside:
        t = t_mid + half_chord
    else:
        t = t_mid - half_chord

    position = ray_origin + ray_dir * t
    normal = (position - center) / radius
    u, v = sphere_uv(normal, up, right)

    return True, position, normal, u, v


@njit(cache=True, fastmath=True)
def ray_infinite_plane_intersect(ray_origin, ray_dir, origin, normal, right, forward, uv_scale):
    """Пересечение с бесконечной плоскостью; UV повторяется с периодом 1/uv_scale."""
    hit, distance = ray_plane_distance(ray_origin, ray_dir, origin, normal)
    if not hit:
        return False, np.zeros(3), np.zeros(3), 0.0, 0.0

    position = ray_origin + ray_dir * distance
    to_hit = position - origin
    u = wrap01(dot(to_hit, right) * uv_scale)
    v = wrap01(dot(to_hit, forward) * uv_scale)

    return True, position, normal.copy(), u, v


@njit(cache=True, fastmath=True)
def ray_plane_intersect(ray_origin, ray_dir, origin, normal, right, forward,
                        half_width, half_height):
    """Пересечение с прямоугольником (половины ширины и высоты вдоль right/forward)."""
    hit, distance = ray_plane_distance(ray_origin, ray_dir, origin, normal)
    if not hit:
        return False, np.zeros(3), np.zeros(3), 0.0, 0.0

    position = ray_origin + ray_dir * distance
    to_hit = position - origin

    w_proj = dot(to_hit, right) / half_width
    if abs(w_proj) > 1.0:
        return False, np.zeros(3), np.zeros(3), 0.0, 0.0

    h_proj = dot(to_hit, forward) / half_height
    if abs(h_proj) > 1.0:
        return False, np.zeros(3), np.zeros(3), 0.0, 0.0

    return True, position, normal.copy(), w_proj / 2.0 + 0.5, h_proj / 2.0 + 0.5


@njit(cache=True)
def intersect_primitive(ray_origin, ray_dir, kind, p):
    """Пересечение луча с одним примитивом по его виду."""
    if kind == SPHERE:
        return ray_sphere_intersect(ray_origin, ray_dir, p[0:3], p[3], p[4:7], p[7:10])
    if kind == INFINITE_PLANE:
        return ray_infinite_plane_intersect(ray_origin, ray_dir, p[0:3], p[3:6],
                                            p[6:9], p[9:12], p[12])
    return ray_plane_intersect(ray_origin, ray_dir, p[0:3], p[3:6], p[6:9], p[9:12],
                               p[12], p[13])


@njit(cache=True)
def intersect_object(ray_origin, ray_dir, start, count, prim_kinds, prim_params):
    """
    Пересечение с объектом из нескольких примитивов.
    Выбирается ближайшее к началу луча пересечение.
    """
    found = False
    best_dist = 0.0
    best_position = np.zeros(3)
    best_normal = np.zeros(3)
    best_u = 0.0
    best_v = 0.0

    for i in range(start, start + count):
        hit, position, normal, u, v = intersect_primitive(ray_origin, ray_dir,
                                                          prim_kinds[i], prim_params[i])
        if hit:
            d = sqr_length(position - ray_origin)
            if not found or d < best_dist:
                found = True
                best_dist = d
                best_position = position
                best_normal = normal
                best_u = u
                best_v = v

    return found, best_position, best_normal, best_u, best_v


class Geometry:
    """
    Базовый класс объекта сцены.

    Параметры:
        uv_mapper: маппер материала поверхности
        visible_to_camera: если False, объект не виден первичным лучам,
                           но участвует в отражениях, преломлении и AO
    """

    def __init__(self, uv_mapper, visible_to_camera=True):
        self.uv_mapper = uv_mapper
        self.visible_to_camera = bool(visible_to_camera)

    def is_visible_to_camera(self):
        return self.visible_to_camera

    def primitives(self):
        """Список пар (вид примитива, строка параметров)."""
        raise NotImplementedError

    def pack(self):
        """Массивы видов и параметров примитивов объекта."""
        prims = self.primitives()
        kinds = np.array([kind for kind, _ in prims], dtype=np.int64)
        params = np.array([row for _, row in prims], dtype=np.float64)
        return kinds, params

    def test_intersection(self, ray):
        """Пересечение с лучом: GeometryHitInfo или None."""
        kinds, params = self.pack()
        hit, position, normal, u, v = intersect_object(
            ray.origin, ray.direction, 0, len(kinds), kinds, params
        )
        if not hit:
            return None
        return GeometryHitInfo(position, normal, (u, v))


def _check_perpendicular(a, b, what):
    if abs(float(np.dot(a, b))) > 1e-6:
        raise ConfigurationError(f"{what} must be at right angles")


class Sphere(Geometry):
    """
    Сфера.

    Параметры:
        center, radius: центр и радиус
        up, right: оси развёртки (должны быть перпендикулярны);
                   right по умолчанию строится детерминированно из up
    """

    def __init__(self, center, radius, uv_mapper, up=UP, right=None, visible_to_camera=True):
        super().__init__(uv_mapper, visible_to_camera)
        if not radius > 0.0:
            raise ConfigurationError(f"Sphere radius must be positive, got {radius}")
        self.center = vec3(center)
        self.radius = float(radius)
        self.up = normalize(vec3(up))
        if right is None:
            right = get_random_90_deg_vector(self.up)
        self.right = normalize(vec3(right))
        _check_perpendicular(self.up, self.right, "Sphere up and right axes")

    def primitives(self):
        row = np.zeros(PRIM_WIDTH)
        row[0:3] = self.center
        row[3] = self.radius
        row[4:7] = self.up
        row[7:10] = self.right
        return [(SPHERE, row)]


def plane_basis(rotation):
    """Нормаль, right и forward плоскости, повёрнутой на углы Эйлера rotation."""
    rotation = vec3(rotation)
    normal = normalize(rotate_euler(UP, rotation))
    right = normalize(rotate_euler(RIGHT, rotation))
    forward = normalize(cross(right, normal))
    return normal, right, forward


class InfinitePlane(Geometry):
    """
    Бесконечная плоскость.

    Без поворота нормаль смотрит вверх (+Y), right - вдоль +X.
    uv_scale = 1 - один период UV на единицу длины.
    """

    def __init__(self, origin, uv_mapper, rotation=(0.0, 0.0, 0.0), uv_scale=1.0,
                 visible_to_camera=True):
        super().__init__(uv_mapper, visible_to_camera)
        self.origin = vec3(origin)
        self.rotation = vec3(rotation)
        self.uv_scale = float(uv_scale)
        self.normal, self.right, self.forward = plane_basis(self.rotation)

    def primitives(self):
        row = np.zeros(PRIM_WIDTH)
        row[0:3] = self.origin
        row[3:6] = self.normal
        row[6:9] = self.right
        row[9:12] = self.forward
        row[12] = self.uv_scale
        return [(INFINITE_PLANE, row)]


class Plane(Geometry):
    """
    Ограниченная плоскость (прямоугольник).

    width и height - ПОЛОВИНЫ размеров вдоль right и forward.
    """

    def __init__(self, origin, uv_mapper, rotation=(0.0, 0.0, 0.0), width=1.0, height=1.0,
                 visible_to_camera=True):
        super().__init__(uv_mapper, visible_to_camera)
        if not (width > 0.0 and height > 0.0):
            raise ConfigurationError(f"Plane extents must be positive, got {width}x{height}")
        self.origin = vec3(origin)
        self.rotation = vec3(rotation)
        self.width = float(width)
        self.height = float(height)
        self.normal, self.right, self.forward = plane_basis(self.rotation)

    def primitives(self):
        row = np.zeros(PRIM_WIDTH)
        row[0:3] = self.origin
        row[3:6] = self.normal
        row[6:9] = self.right
        row[9:12] = self.forward
        row[12] = self.width
        row[13] = self.height
        return [(PLANE, row)]


class Cube(Geometry):
    """
    Параллелепипед из шести ограниченных плоскостей.

    width, height, depth - половины размеров по осям X, Y, Z до поворота.
    """

    def __init__(self, origin, uv_mapper, rotation=(0.0, 0.0, 0.0),
                 width=1.0, height=1.0, depth=1.0, visible_to_camera=True):
        super().__init__(uv_mapper, visible_to_camera)
        self.origin = vec3(origin)
        self.rotation = vec3(rotation)
        self.width = float(width)
        self.height = float(height)
        self.depth = float(depth)

        def face(axis, extent, extra_rotation, face_width, face_height):
            offset = rotate_euler(axis * extent, self.rotation)
            return Plane(self.origin + offset, uv_mapper,
                         rotation=self.rotation + np.array(extra_rotation, dtype=np.float64),
                         width=face_width, height=face_height,
                         visible_to_camera=visible_to_camera)

        # -X, +X, -Y, +Y, -Z, +Z
        self.planes = [
            face(LEFT, self.width, (-90.0, 90.0, 0.0), self.depth, self.height),
            face(RIGHT, self.width, (-90.0, -90.0, 0.0), self.depth, self.height),
            face(DOWN, self.height, (180.0, 0.0, 0.0), self.width, self.depth),
            face(UP, self.height, (0.0, 0.0, 0.0), self.width, self.depth),
            face(BACK, self.depth, (-90.0, 0.0, 0.0), self.width, self.height),
            face(FORWARD, self.depth, (-90.0, 180.0, 0.0), self.width, self.height),
        ]

    def primitives(self):
        prims = []
        for plane in self.planes:
            prims.extend(plane.primitives())
        return prims
