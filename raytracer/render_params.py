"""
Параметры рендеринга: качество, глубина резкости, лимиты сэмплов и AO.
"""

import numpy as np

from .exceptions import ConfigurationError
from .log import get_logger
from .math_utils import is_in_range

logger = get_logger(__name__)

# Раскладка упакованных параметров (все значения - float64)
P_MIN_INTENSITY = 0
P_MAX_BOUNCES = 1
P_BIAS = 2
P_DOF_MAX_ANGLE = 3
P_DOF_SAMPLES = 4
P_MAX_REFLECTION_SAMPLES = 5
P_MAX_REFRACTION_SAMPLES = 6
P_AO_STRENGTH = 7
P_AO_DISTANCE = 8
P_AO_SAMPLES = 9
PARAMS_WIDTH = 10


class Quality:
    """
    Параметры качества.

    Параметры:
        min_intensity: диапазон 0-1. Луч с меньшим вкладом в пиксель
                       не порождает новых лучей
        max_bounces: максимальная глубина рекурсии; при 0 отражения
                     и преломления не видны совсем
        bias: смещение начала вторичных лучей от поверхности, убирает
              артефакты самопересечения из-за ошибок округления
    """

    def __init__(self, min_intensity=0.03, max_bounces=10, bias=0.01):
        self.min_intensity = float(min_intensity)
        self.max_bounces = int(max_bounces)
        self.bias = float(bias)


class DoF:
    """
    Глубина резкости.

    max_angle - максимальное отклонение первичного луча (градусы).
    При max_angle = 0 samples игнорируется и на пиксель идёт один луч.
    """

    def __init__(self, max_angle=0.1, samples=10):
        self.max_angle = float(max_angle)
        self.samples = int(samples)


class MaxSamples:
    """Максимальное число лучей при попадании в отражающую/преломляющую поверхность."""

    def __init__(self, reflection=6, refraction=1):
        self.reflection = int(reflection)
        self.refraction = int(refraction)


class Ao:
    """
    Ambient occlusion.

    Параметры:
        strength: 0-1, насколько тёмные тени AO (0 - AO выключен)
        distance: радиус затухания в единицах мира
        samples: число лучей для оценки AO
    """

    def __init__(self, strength=0.8, distance=2.0, samples=3):
        self.strength = float(strength)
        self.distance = float(distance)
        self.samples = int(samples)


class RenderParams:
    """Все настраиваемые параметры одного рендера."""

    def __init__(self, quality=None, dof=None, max_samples=None, ao=None):
        self.quality = quality if quality is not None else Quality()
        self.dof = dof if dof is not None else DoF()
        self.max_samples = max_samples if max_samples is not None else MaxSamples()
        self.ao = ao if ao is not None else Ao()

    def validate(self):
        """
        Проверка параметров.

        Недопустимые значения - ConfigurationError, подозрительные - предупреждение в лог.
        """
        # Качество
        if not is_in_range(self.quality.min_intensity, 0.0, 1.0):
            raise ConfigurationError("Minimum intensity needs to be within 0-1 range")

        if self.quality.max_bounces < 0:
            raise ConfigurationError("max_bounces must be 0 or positive")

        if self.quality.max_bounces == 0:
            logger.warning("Reflections won't work with 0 max_bounces")
        elif self.quality.max_bounces < 2:
            logger.warning("Refraction won't work properly with less than 2 max_bounces")

        if not is_in_range(self.quality.bias, 0.0, np.inf):
            raise ConfigurationError("Float correction bias must be 0 or positive")

        # Глубина резкости
        if not is_in_range(self.dof.max_angle, 0.0, 360.0):
            raise ConfigurationError("dof.max_angle needs to be between 0 and 360 degrees")

        if self.dof.samples < 0:
            raise ConfigurationError("dof.samples must be 0 or positive")

        if self.dof.max_angle != 0.0 and self.dof.samples == 0:
            logger.warning("Image will render black because of zero DoF samples, "
                           "but non-zero DoF max angle")

        # Лимиты сэмплов
        if self.max_samples.reflection < 0 or self.max_samples.refraction < 0:
            raise ConfigurationError("Sample limits must be 0 or positive")

        if self.max_samples.reflection == 0:
            logger.warning("Blurry reflections will not work when max_samples.reflection is 0")

        if self.max_samples.refraction == 0:
            logger.warning("Blurry refraction won't work when max_samples.refraction is 0")

        # AO
        if not is_in_range(self.ao.strength, 0.0, 1.0):
            raise ConfigurationError("AO strength must be in range 0-1")

        if not is_in_range(self.ao.distance, 0.0, np.inf):
            raise ConfigurationError("AO distance must be 0 or positive")

        if self.ao.samples < 0:
            raise ConfigurationError("AO samples must be 0 or positive")

        if self.ao.strength > 0.0:
            if self.ao.distance == 0.0:
                logger.warning("AO will not work if distance is 0")
            if self.ao.samples == 0:
                logger.warning("AO will not work if samples are 0")

        return True

    def pack(self):
        """Упаковка в массив float64 для ядер numba."""
        params = np.zeros(PARAMS_WIDTH, dtype=np.float64)
        params[P_MIN_INTENSITY] = self.quality.min_intensity
        params[P_MAX_BOUNCES] = self.quality.max_bounces
        params[P_BIAS] = self.quality.bias
        params[P_DOF_MAX_ANGLE] = self.dof.max_angle
        params[P_DOF_SAMPLES] = self.dof.samples
        params[P_MAX_REFLECTION_SAMPLES] = self.max_samples.reflection
        params[P_MAX_REFRACTION_SAMPLES] = self.max_samples.refraction
        params[P_AO_STRENGTH] = self.ao.strength
        params[P_AO_DISTANCE] = self.ao.distance
        params[P_AO_SAMPLES] = self.ao.samples
        return params
