"""
Математические утилиты для работы с 3D векторами.
Оптимизировано с помощью numba для ускорения.

Вектор - массив numpy из трёх float64. Единичный вектор имеет тот же тип,
но создаётся только через normalize() или unit(), которые проверяют длину.
Все углы задаются в градусах.
"""

import numpy as np
from numba import njit

# Допуск для проверки единичной длины
UNIT_EPSILON = 1e-5


@njit(cache=True, fastmath=True)
def dot(a, b):
    """Скалярное произведение двух векторов."""
    return a[0]*b[0] + a[1]*b[1] + a[2]*b[2]


@njit(cache=True, fastmath=True)
def cross(a, b):
    """Векторное произведение двух векторов."""
    return np.array([
        a[1]*b[2] - a[2]*b[1],
        a[2]*b[0] - a[0]*b[2],
        a[0]*b[1] - a[1]*b[0]
    ])


@njit(cache=True, fastmath=True)
def sqr_length(v):
    """Квадрат длины вектора."""
    return v[0]**2 + v[1]**2 + v[2]**2


@njit(cache=True, fastmath=True)
def length(v):
    """Длина вектора."""
    return np.sqrt(v[0]**2 + v[1]**2 + v[2]**2)


@njit(cache=True)
def normalize(v):
    """
    Нормализация вектора (приведение к единичной длине).
    Нулевой вектор нормализовать нельзя - это ошибка программы.
    """
    if v[0] == 0.0 and v[1] == 0.0 and v[2] == 0.0:
        raise ValueError("Cannot normalize zero length vector")
    l = np.sqrt(v[0]**2 + v[1]**2 + v[2]**2)
    return np.array([v[0] / l, v[1] / l, v[2] / l])


@njit(cache=True)
def is_unit_length(v):
    """Проверка, что длина вектора равна 1 (с допуском)."""
    return abs(v[0]**2 + v[1]**2 + v[2]**2 - 1.0) < UNIT_EPSILON


@njit(cache=True)
def unit(x, y, z):
    """Единичный вектор из заранее известных компонент."""
    v = np.array([x, y, z], dtype=np.float64)
    if not is_unit_length(v):
        raise ValueError("Cannot construct normalized vector that is not unit length")
    return v


@njit(cache=True, fastmath=True)
def scale(v, s):
    """Умножение вектора на скаляр."""
    return np.array([v[0] * s, v[1] * s, v[2] * s])


@njit(cache=True, fastmath=True)
def reflect(direction, normal):
    """Зеркальное отражение вектора direction относительно нормали."""
    return direction - normal * (2.0 * dot(direction, normal))


@njit(cache=True, fastmath=True)
def interpolate_towards(v, target, t):
    """Линейное смешивание двух направлений: t=0 -> v, t=1 -> target."""
    return v * (1.0 - t) + target * t


@njit(cache=True, fastmath=True)
def rotate_x(v, deg):
    """Поворот вокруг оси X."""
    rad = np.radians(deg)
    c, s = np.cos(rad), np.sin(rad)
    return np.array([v[0], v[1]*c - v[2]*s, v[1]*s + v[2]*c])


@njit(cache=True, fastmath=True)
def rotate_y(v, deg):
    """Поворот вокруг оси Y."""
    rad = np.radians(deg)
    c, s = np.cos(rad), np.sin(rad)
    return np.array([v[0]*c + v[2]*s, v[1], -v[0]*s + v[2]*c])


@njit(cache=True, fastmath=True)
def rotate_z(v, deg):
    """Поворот вокруг оси Z."""
    rad = np.radians(deg)
    c, s = np.cos(rad), np.sin(rad)
    return np.array([v[0]*c - v[1]*s, v[0]*s + v[1]*c, v[2]])


@njit(cache=True, fastmath=True)
def rotate_euler(v, rotation):
    """Поворот на углы Эйлера (градусы) в порядке X -> Y -> Z."""
    return rotate_z(rotate_y(rotate_x(v, rotation[0]), rotation[1]), rotation[2])


@njit(cache=True, fastmath=True)
def rotate_around_axis(v, u, deg):
    """
    Поворот вектора v вокруг единичной оси u (формула Родрига).

    v' = v*cos + (u x v)*sin + u*(u.v)*(1 - cos)
    """
    rad = np.radians(deg)
    c, s = np.cos(rad), np.sin(rad)
    return v * c + cross(u, v) * s + u * (dot(u, v) * (1.0 - c))


@njit(cache=True)
def get_random_90_deg_vector(v):
    """
    Некоторый вектор, перпендикулярный v.

    Несмотря на название, результат детерминирован: одинаковый вход
    всегда даёт одинаковый выход. Результат не нормализован.
    """
    if v[0] != 0.0:
        return np.array([-(v[1] + v[2]) / v[0], 1.0, 1.0])
    elif v[1] != 0.0:
        return np.array([1.0, -(v[0] + v[2]) / v[1], 1.0])
    elif v[2] != 0.0:
        return np.array([1.0, 1.0, -(v[0] + v[1]) / v[2]])
    raise ValueError("Zero vector has no perpendicular direction")


@njit(cache=True, fastmath=True)
def project_onto_plane(v, plane_normal):
    """Проекция вектора на плоскость, проходящую через начало координат."""
    return v - plane_normal * dot(v, plane_normal)


@njit(cache=True, fastmath=True)
def angle_on_plane(a, b, n, allow_negative):
    """
    Угол от a до b (градусы), измеренный в плоскости с нормалью n.

    allow_negative=False даёт диапазон [0, 360),
    allow_negative=True - диапазон [-180, 180].
    """
    angle = np.degrees(np.arctan2(dot(n, cross(a, b)), dot(a, b)))
    if not allow_negative and angle < 0.0:
        angle += 360.0
    return angle


@njit(cache=True)
def seed_random(seed):
    """Инициализация генератора случайных чисел numba текущего потока."""
    np.random.seed(seed)


# Базисные единичные векторы (только для кода на Python, не для ядер numba)
UP = np.array([0.0, 1.0, 0.0])
DOWN = np.array([0.0, -1.0, 0.0])
RIGHT = np.array([1.0, 0.0, 0.0])
LEFT = np.array([-1.0, 0.0, 0.0])
FORWARD = np.array([0.0, 0.0, 1.0])
BACK = np.array([0.0, 0.0, -1.0])


def vec3(values):
    """Приведение тройки чисел к вектору float64."""
    v = np.array(values, dtype=np.float64)
    if v.shape != (3,):
        raise ValueError(f"Expected three components, got shape {v.shape}")
    return v


def is_in_range(value, lo, hi):
    """Проверка min <= value <= max для конечного значения."""
    return bool(np.isfinite(value)) and lo <= value <= hi


def is_in_range_exclusive(value, lo, hi):
    """Проверка min < value < max для конечного значения."""
    return bool(np.isfinite(value)) and lo < value < hi
