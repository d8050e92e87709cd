"""
Материалы: параметры затенения поверхности.

Материал состоит из цвета и трёх групп параметров:
    - непрозрачность (opacity) в центре и на краях объекта
    - отражение (reflection) в центре и на краях, плюс размытие отражения
    - преломление (refraction): показатель преломления и размытие

"Центр" - луч падает на поверхность перпендикулярно, "края" - по касательной.
power задаёт, насколько резко параметр переходит от центра к краям.

Для ядер numba материал упаковывается в строку float64 (см. MAT_* индексы).
"""

import numpy as np
from numba import njit

from .exceptions import ConfigurationError
from .log import get_logger
from .math_utils import is_in_range

logger = get_logger(__name__)

# Раскладка материала в строке массива
MAT_COLOR = 0              # 0..2 - RGB
MAT_OPACITY_CENTER = 3
MAT_OPACITY_EDGES = 4
MAT_OPACITY_POWER = 5
MAT_REFLECTION_CENTER = 6
MAT_REFLECTION_EDGES = 7
MAT_REFLECTION_POWER = 8
MAT_REFLECTION_MAX_ANGLE = 9
MAT_REFRACTION_IOR = 10
MAT_REFRACTION_MAX_ANGLE = 11
MAT_REFLECTION_TINT = 12   # 12..14
MAT_REFRACTION_TINT = 15   # 15..17
MATERIAL_WIDTH = 18

WHITE = (1.0, 1.0, 1.0)


class Opacity:
    """Непрозрачность: 1 - луч не проходит, 0 - полностью прозрачный материал."""

    def __init__(self, center=1.0, edges=1.0, power=1.0):
        self.center = float(center)
        self.edges = float(edges)
        self.power = float(power)


class Reflection:
    """
    Отражение.

    Параметры:
        center, edges: доля отражённого света в центре и на краях
        power: резкость перехода от центра к краям
        max_angle: максимальное отклонение отражённых лучей (градусы),
                   0 - идеальное зеркало
        tint: множитель цвета отражённых лучей
    """

    def __init__(self, center=0.0, edges=0.0, power=1.0, max_angle=0.0, tint=WHITE):
        self.center = float(center)
        self.edges = float(edges)
        self.power = float(power)
        self.max_angle = float(max_angle)
        self.tint = tuple(float(c) for c in tint)


class Refraction:
    """Преломление: показатель преломления (ior) и размытие (max_angle, градусы)."""

    def __init__(self, ior=1.0, max_angle=0.0, tint=WHITE):
        self.ior = float(ior)
        self.max_angle = float(max_angle)
        self.tint = tuple(float(c) for c in tint)


class Material:
    """Параметры затенения поверхности. После создания не изменяется."""

    def __init__(self, color, opacity=None, reflection=None, refraction=None):
        self.color = tuple(float(c) for c in color)
        self.opacity = opacity if opacity is not None else Opacity()
        self.reflection = reflection if reflection is not None else Reflection()
        self.refraction = refraction if refraction is not None else Refraction()

    @classmethod
    def pure(cls, color):
        """Непрозрачный материал без отражений - виден только его цвет."""
        return cls(color)

    @classmethod
    def opaque_reflective(cls, color, reflection):
        """Непрозрачный материал с заданным отражением."""
        return cls(color, reflection=reflection)

    def validate(self):
        """
        Проверка параметров.

        Значения center/edges вне [0, 1] допустимы (это может быть
        художественным решением), поэтому только логируются.
        """
        if len(self.color) != 3 or not all(np.isfinite(c) for c in self.color):
            raise ConfigurationError(f"Material color must be three finite values, got {self.color}")

        if not is_in_range(self.opacity.center, 0.0, 1.0) or \
                not is_in_range(self.opacity.edges, 0.0, 1.0):
            logger.warning("Opacity out of usual range 0-1. This can be desired, "
                           "but might look really weird.")

        if not is_in_range(self.reflection.center, 0.0, 1.0) or \
                not is_in_range(self.reflection.edges, 0.0, 1.0):
            logger.warning("Reflection out of usual range 0-1. This can be desired, "
                           "but might look really weird.")

        if not is_in_range(self.opacity.power, 0.0, np.inf):
            raise ConfigurationError("Opacity edge effect power must be 0 or positive")

        if not is_in_range(self.reflection.power, 0.0, np.inf):
            raise ConfigurationError("Reflection edge effect power must be 0 or positive")

        for name, value in (("reflection.max_angle", self.reflection.max_angle),
                            ("refraction.ior", self.refraction.ior),
                            ("refraction.max_angle", self.refraction.max_angle)):
            if not np.isfinite(value):
                raise ConfigurationError(f"Material {name} must be finite")

        if self.refraction.ior <= 0.0:
            raise ConfigurationError("Index of refraction must be positive")

        return True

    def pack(self):
        """Упаковка в строку float64 для ядер numba."""
        row = np.zeros(MATERIAL_WIDTH, dtype=np.float64)
        row[MAT_COLOR:MAT_COLOR + 3] = self.color
        row[MAT_OPACITY_CENTER] = self.opacity.center
        row[MAT_OPACITY_EDGES] = self.opacity.edges
        row[MAT_OPACITY_POWER] = self.opacity.power
        row[MAT_REFLECTION_CENTER] = self.reflection.center
        row[MAT_REFLECTION_EDGES] = self.reflection.edges
        row[MAT_REFLECTION_POWER] = self.reflection.power
        row[MAT_REFLECTION_MAX_ANGLE] = self.reflection.max_angle
        row[MAT_REFRACTION_IOR] = self.refraction.ior
        row[MAT_REFRACTION_MAX_ANGLE] = self.refraction.max_angle
        row[MAT_REFLECTION_TINT:MAT_REFLECTION_TINT + 3] = self.reflection.tint
        row[MAT_REFRACTION_TINT:MAT_REFRACTION_TINT + 3] = self.refraction.tint
        return row

    @classmethod
    def from_row(cls, row):
        """Обратное преобразование из строки массива."""
        return cls(
            color=row[MAT_COLOR:MAT_COLOR + 3],
            opacity=Opacity(row[MAT_OPACITY_CENTER], row[MAT_OPACITY_EDGES],
                            row[MAT_OPACITY_POWER]),
            reflection=Reflection(row[MAT_REFLECTION_CENTER], row[MAT_REFLECTION_EDGES],
                                  row[MAT_REFLECTION_POWER], row[MAT_REFLECTION_MAX_ANGLE],
                                  row[MAT_REFLECTION_TINT:MAT_REFLECTION_TINT + 3]),
            refraction=Refraction(row[MAT_REFRACTION_IOR], row[MAT_REFRACTION_MAX_ANGLE],
                                  row[MAT_REFRACTION_TINT:MAT_REFRACTION_TINT + 3]),
        )

    def __repr__(self):
        return (f"Material(color={self.color}, opacity=({self.opacity.center}, "
                f"{self.opacity.edges}), reflection=({self.reflection.center}, "
                f"{self.reflection.edges}), ior={self.refraction.ior})")


@njit(cache=True)
def pure_material_row(r, g, b):
    """Строка непрозрачного материала без отражений (аналог Material.pure)."""
    row = np.zeros(MATERIAL_WIDTH)
    row[0] = r
    row[1] = g
    row[2] = b
    row[MAT_OPACITY_CENTER] = 1.0
    row[MAT_OPACITY_EDGES] = 1.0
    row[MAT_OPACITY_POWER] = 1.0
    row[MAT_REFLECTION_POWER] = 1.0
    row[MAT_REFRACTION_IOR] = 1.0
    for i in range(3):
        row[MAT_REFLECTION_TINT + i] = 1.0
        row[MAT_REFRACTION_TINT + i] = 1.0
    return row
