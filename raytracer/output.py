"""
Цель рендеринга и сохранение изображений.
"""

import numpy as np
from PIL import Image

from .exceptions import ConfigurationError
from .log import get_logger
from .math_utils import vec3

logger = get_logger(__name__)


class RenderTarget:
    """
    Буфер изображения, в который пишет рендерер.

    pixels - массив float64 формы (height, width, 3), строки сверху вниз.
    Значения цвета не ограничены; в [0, 1] они приводятся только при сохранении.
    """

    def __init__(self, width, height, clear_color=(0.0, 0.0, 0.0)):
        if int(width) <= 0 or int(height) <= 0:
            raise ConfigurationError(f"Render target must have positive size, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.pixels = np.empty((self.height, self.width, 3), dtype=np.float64)
        self.pixels[:, :] = vec3(clear_color)

    def set_pixel(self, x, y, color):
        self.pixels[y, x] = color

    def get_pixel(self, x, y):
        return self.pixels[y, x].copy()

    def to_8bit(self):
        """Отсечение в [0, 1] и перевод в uint8."""
        image = np.clip(self.pixels, 0.0, 1.0)
        return (image * 255.0 + 0.5).astype(np.uint8)


def _as_8bit(image):
    if isinstance(image, RenderTarget):
        return image.to_8bit()
    image = np.clip(np.asarray(image, dtype=np.float64), 0.0, 1.0)
    return (image * 255.0 + 0.5).astype(np.uint8)


def save_ppm(filename, image):
    """
    Сохранение в формате PPM (P3 - текстовый).

    Формат PPM:
    - P3 - магическое число (текстовый RGB)
    - ширина высота
    - максимальное значение (255)
    - RGB значения пикселей, по строке изображения на строку файла

    image - RenderTarget или массив (height, width, 3) в [0, 1].
    """
    image_8bit = _as_8bit(image)
    height, width = image_8bit.shape[:2]

    with open(filename, 'w') as f:
        f.write(f"P3\n{width} {height}\n255\n")
        for y in range(height):
            row = []
            for x in range(width):
                r, g, b = image_8bit[y, x]
                row.append(f"{r} {g} {b}")
            f.write(" ".join(row) + "\n")

    logger.info("Saved %s", filename)


def save_png(filename, image):
    """Сохранение в формате PNG через Pillow."""
    img = Image.fromarray(_as_8bit(image), 'RGB')
    img.save(filename)
    logger.info("Saved %s", filename)
