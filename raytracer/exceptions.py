"""
Исключения трассировщика.

Ошибки конфигурации обнаруживаются до начала рендеринга.
Нарушения инвариантов внутри ядер numba (например, нормализация
нулевого вектора) поднимаются как ValueError и прерывают рендер целиком.
"""


class RaytracerError(Exception):
    """Базовое исключение пакета."""


class ConfigurationError(RaytracerError, ValueError):
    """Недопустимые параметры сцены, камеры, материала или рендера."""
