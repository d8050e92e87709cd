"""
Камера для рендеринга.
"""

import numpy as np
from numba import njit

from .exceptions import ConfigurationError
from .geometry import Ray
from .log import get_logger
from .math_utils import normalize, rotate_x, rotate_y, rotate_euler, vec3, is_in_range_exclusive

logger = get_logger(__name__)

# Раскладка упакованной камеры
CAM_POSITION = 0      # 0..2
CAM_ROTATION = 3      # 3..5, углы Эйлера в градусах
CAM_VIEWPORT_W = 6
CAM_VIEWPORT_H = 7
CAM_FOV_H = 8
CAM_WIDTH = 9


class ViewPort:
    """Размер окна просмотра в единицах мира."""

    def __init__(self, width=16.0, height=9.0):
        self.width = float(width)
        self.height = float(height)


class Camera:
    """
    Камера.

    Параметры:
        position: позиция камеры в пространстве
        rotation: ориентация, углы Эйлера в градусах (порядок X -> Y -> Z);
                  без поворота камера смотрит вдоль +Z
        viewport: размер окна просмотра (ViewPort); начала первичных лучей
                  распределены по этому окну
        fov_h: горизонтальный угол обзора в градусах
    """

    def __init__(self, position=(0.0, 0.0, 0.0), rotation=(0.0, 0.0, 0.0),
                 viewport=None, fov_h=60.0):
        self.position = vec3(position)
        self.rotation = vec3(rotation)
        self.viewport = viewport if viewport is not None else ViewPort()
        self.fov_h = float(fov_h)

    def validate(self):
        if not (np.all(np.isfinite(self.position)) and np.all(np.isfinite(self.rotation))):
            raise ConfigurationError("Camera position and rotation must be finite")

        if not (self.viewport.width > 0.0 and self.viewport.height > 0.0):
            raise ConfigurationError(
                f"Viewport must have positive size, got {self.viewport.width}x{self.viewport.height}")

        if not np.isfinite(self.fov_h):
            raise ConfigurationError("Camera fov_h must be finite")

        if not is_in_range_exclusive(self.fov_h, 0.0, 180.0):
            logger.warning("Camera fov_h=%s is outside the usual (0, 180) degree range",
                           self.fov_h)
        return True

    def pack(self):
        """Упаковка в массив float64 для ядер numba."""
        cam = np.zeros(CAM_WIDTH, dtype=np.float64)
        cam[CAM_POSITION:CAM_POSITION + 3] = self.position
        cam[CAM_ROTATION:CAM_ROTATION + 3] = self.rotation
        cam[CAM_VIEWPORT_W] = self.viewport.width
        cam[CAM_VIEWPORT_H] = self.viewport.height
        cam[CAM_FOV_H] = self.fov_h
        return cam

    def get_ray(self, x, y, width, height):
        """Первичный луч через пиксель (x, y) изображения width x height."""
        origin, direction = get_ray(x, y, width, height, self.pack())
        return Ray(origin, direction)


@njit(cache=True, fastmath=True)
def pixel_offsets(x, y, width, height, vp_width, vp_height, fov_h):
    """
    Смещение центра пикселя на окне просмотра и угловое смещение луча.

    Возвращает (vp_x, vp_y, angle_x, angle_y); vp_y растёт вверх,
    angle_y растёт вниз (положительный поворот вокруг X опускает луч).
    """
    fov_v = fov_h * vp_height / vp_width

    fx = (x + 0.5) / width - 0.5
    fy = (y + 0.5) / height - 0.5

    return fx * vp_width, -fy * vp_height, fx * fov_h, fy * fov_v


@njit(cache=True, fastmath=True)
def get_initial_ray_origin(position, rotation, vp_x, vp_y):
    """Начало первичного луча: точка окна просмотра с учётом ориентации камеры."""
    return rotate_euler(np.array([vp_x, vp_y, 0.0]), rotation) + position


@njit(cache=True)
def get_initial_ray_direction(rotation, angle_x, angle_y):
    """Направление первичного луча: сначала угол обзора, затем ориентация камеры."""
    direction = np.array([0.0, 0.0, 1.0])
    direction = rotate_y(direction, angle_x)
    direction = rotate_x(direction, angle_y)
    return normalize(rotate_euler(direction, rotation))


@njit(cache=True)
def get_ray(x, y, width, height, cam):
    """
    Генерирует первичный луч из камеры через пиксель (x, y).

    Возвращает:
        (origin, direction) - начало и направление луча
    """
    vp_x, vp_y, angle_x, angle_y = pixel_offsets(
        x, y, width, height, cam[CAM_VIEWPORT_W], cam[CAM_VIEWPORT_H], cam[CAM_FOV_H]
    )
    rotation = cam[CAM_ROTATION:CAM_ROTATION + 3]
    origin = get_initial_ray_origin(cam[CAM_POSITION:CAM_POSITION + 3], rotation, vp_x, vp_y)
    direction = get_initial_ray_direction(rotation, angle_x, angle_y)
    return origin, direction
