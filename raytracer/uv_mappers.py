"""
UV-мапперы: выбор материала по UV-координате точки пересечения.

Виды мапперов:
    - StaticUvMapper: один материал на всю поверхность
    - CheckerboardUvMapper: шахматная доска из двух материалов
    - TextureUvMapper: цвет берётся из текстуры, остальное - из базового материала
    - DebugUvMapper: цвет = (u, v, 0), удобно для проверки развёртки

Для ядер numba маппер упаковывается в несколько целых чисел
(вид, индексы материалов, индекс текстуры, способ выборки).
"""

import numpy as np
from numba import njit
from PIL import Image

from .exceptions import ConfigurationError
from .material import Material, pure_material_row, MAT_COLOR, MATERIAL_WIDTH

# Виды мапперов
UVM_STATIC = 0
UVM_CHECKERBOARD = 1
UVM_TEXTURE = 2
UVM_DEBUG = 3

# Способы выборки из текстуры
POINT = 0
BILINEAR = 1

# Раскладка упакованного маппера
UVM_KIND = 0
UVM_MAT_A = 1
UVM_MAT_B = 2
UVM_TEXTURE_INDEX = 3
UVM_SAMPLING = 4
UVM_WIDTH = 5

# Раскладка описания текстуры: смещение в общем массиве пикселей, ширина, высота
TEX_OFFSET = 0
TEX_WIDTH = 1
TEX_HEIGHT = 2


class UvMapper:
    """Базовый класс маппера."""

    kind = UVM_STATIC

    def materials(self):
        """Материалы, которые может вернуть маппер."""
        return []

    def validate(self):
        for mat in self.materials():
            mat.validate()
        return True

    def pack(self, materials, textures):
        """
        Упаковывает маппер, дописывая материалы и текстуры в общие списки сцены.

        Возвращает строку из UVM_WIDTH целых чисел.
        """
        row = np.full(UVM_WIDTH, -1, dtype=np.int64)
        row[UVM_KIND] = self.kind
        row[UVM_SAMPLING] = POINT
        for slot, mat in zip((UVM_MAT_A, UVM_MAT_B), self.materials()):
            materials.append(mat.pack())
            row[slot] = len(materials) - 1
        return row

    def get_material_at(self, hit):
        """Материал в точке пересечения hit (GeometryHitInfo)."""
        materials, textures = [], []
        row = self.pack(materials, textures)
        mat_table, tex_pixels, tex_info = pack_tables(materials, textures)
        mat_row = material_at(row, hit.uv[0], hit.uv[1], mat_table, tex_pixels, tex_info)
        return Material.from_row(mat_row)


class StaticUvMapper(UvMapper):
    """Всегда один и тот же материал."""

    kind = UVM_STATIC

    def __init__(self, material):
        self.material = material

    def materials(self):
        return [self.material]


class CheckerboardUvMapper(UvMapper):
    """Шахматная доска: even при (u > 0.5) XOR (v > 0.5), иначе odd."""

    kind = UVM_CHECKERBOARD

    def __init__(self, even, odd):
        self.even = even
        self.odd = odd

    def materials(self):
        return [self.even, self.odd]


class DebugUvMapper(UvMapper):
    """Отображает UV-координаты цветом."""

    kind = UVM_DEBUG


class TextureUvMapper(UvMapper):
    """
    Текстура поверх базового материала.

    Параметры:
        pixels: массив (width * height, 3) цветов в диапазоне [0, 1],
                строки идут сверху вниз
        width, height: размер текстуры
        base: базовый материал (всё, кроме цвета)
        sampling: POINT (ближайший пиксель) или BILINEAR
    """

    kind = UVM_TEXTURE

    def __init__(self, pixels, width, height, base, sampling=POINT):
        pixels = np.asarray(pixels, dtype=np.float64).reshape(-1, 3)
        if width <= 0 or height <= 0 or pixels.shape[0] != width * height:
            raise ConfigurationError(
                f"Texture of size {width}x{height} needs {width * height} pixels, "
                f"got {pixels.shape[0]}")
        if sampling not in (POINT, BILINEAR):
            raise ConfigurationError(f"Unknown sampling method: {sampling}")
        self.pixels = pixels
        self.width = int(width)
        self.height = int(height)
        self.base = base
        self.sampling = sampling

    @classmethod
    def from_image_array(cls, image, base, sampling=POINT):
        """Из массива (height, width, 3); uint8 переводится в [0, 1]."""
        image = np.asarray(image)
        height, width = image.shape[:2]
        if image.dtype == np.uint8:
            image = image.astype(np.float64) / 255.0
        return cls(image.reshape(-1, 3), width, height, base, sampling)

    @classmethod
    def from_png(cls, filename, base, sampling=POINT):
        """Загрузка 24-битной текстуры с диска (требует Pillow)."""
        with Image.open(filename) as img:
            image = np.asarray(img.convert("RGB"), dtype=np.uint8)
        return cls.from_image_array(image, base, sampling)

    def materials(self):
        return [self.base]

    def pack(self, materials, textures):
        row = super().pack(materials, textures)
        textures.append(self)
        row[UVM_TEXTURE_INDEX] = len(textures) - 1
        row[UVM_SAMPLING] = self.sampling
        return row


def pack_tables(materials, textures):
    """
    Собирает списки материалов и текстур в массивы для numba.

    Возвращает: (materials, tex_pixels, tex_info)
        materials: shape (n_materials, MATERIAL_WIDTH)
        tex_pixels: shape (sum(w * h), 3) - все текстуры подряд
        tex_info: shape (n_textures, 3) - смещение, ширина, высота
    """
    if materials:
        mat_table = np.array(materials, dtype=np.float64)
    else:
        mat_table = np.zeros((0, MATERIAL_WIDTH), dtype=np.float64)

    tex_info = np.zeros((len(textures), 3), dtype=np.int64)
    chunks = []
    offset = 0
    for i, tex in enumerate(textures):
        tex_info[i] = (offset, tex.width, tex.height)
        chunks.append(tex.pixels)
        offset += tex.pixels.shape[0]

    if chunks:
        tex_pixels = np.ascontiguousarray(np.concatenate(chunks), dtype=np.float64)
    else:
        tex_pixels = np.zeros((0, 3), dtype=np.float64)

    return mat_table, tex_pixels, tex_info


@njit(cache=True, fastmath=True)
def sample_texture(tex_pixels, offset, width, height, sampling, u, v):
    """
    Выборка цвета из текстуры.

    Ось v перевёрнута: v = 1 соответствует верхней строке изображения.
    """
    x = u * (width - 1)
    y = (1.0 - v) * (height - 1)

    if sampling == POINT:
        xi = min(max(int(np.floor(x + 0.5)), 0), width - 1)
        yi = min(max(int(np.floor(y + 0.5)), 0), height - 1)
        return tex_pixels[offset + xi + width * yi].copy()

    # Четыре соседних пикселя для билинейной интерполяции
    x_left = min(max(int(np.floor(x)), 0), width - 1)
    y_top = min(max(int(np.floor(y)), 0), height - 1)
    x_right = min(x_left + 1, width - 1)
    y_bottom = min(y_top + 1, height - 1)

    tl = tex_pixels[offset + x_left + y_top * width]
    tr = tex_pixels[offset + x_right + y_top * width]
    bl = tex_pixels[offset + x_left + y_bottom * width]
    br = tex_pixels[offset + x_right + y_bottom * width]

    th = min(max(x - x_left, 0.0), 1.0)
    tv = min(max(y - y_top, 0.0), 1.0)

    # Сначала по горизонтали, затем по вертикали
    top = tl * (1.0 - th) + tr * th
    bottom = bl * (1.0 - th) + br * th
    return top * (1.0 - tv) + bottom * tv


@njit(cache=True)
def material_at(uvm, u, v, materials, tex_pixels, tex_info):
    """Строка материала для упакованного маппера uvm в точке (u, v)."""
    kind = uvm[UVM_KIND]

    if kind == UVM_STATIC:
        return materials[uvm[UVM_MAT_A]].copy()

    if kind == UVM_CHECKERBOARD:
        if (u > 0.5) != (v > 0.5):
            return materials[uvm[UVM_MAT_A]].copy()
        return materials[uvm[UVM_MAT_B]].copy()

    if kind == UVM_TEXTURE:
        row = materials[uvm[UVM_MAT_A]].copy()
        tex = uvm[UVM_TEXTURE_INDEX]
        color = sample_texture(tex_pixels, tex_info[tex, TEX_OFFSET],
                               tex_info[tex, TEX_WIDTH], tex_info[tex, TEX_HEIGHT],
                               uvm[UVM_SAMPLING], u, v)
        for i in range(3):
            row[MAT_COLOR + i] = color[i]
        return row

    return pure_material_row(u, v, 0.0)
