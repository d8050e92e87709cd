"""
Сцена: хранение объектов, их материалов и цвета неба.
"""

import numpy as np
from numba import njit

from .exceptions import ConfigurationError
from .geometry import intersect_object, PRIM_WIDTH
from .log import get_logger
from .math_utils import sqr_length, vec3
from .uv_mappers import pack_tables, UVM_WIDTH

logger = get_logger(__name__)

# Раскладка таблицы объектов
OBJ_PRIM_START = 0   # индекс первого примитива
OBJ_PRIM_COUNT = 1   # число примитивов
OBJ_VISIBLE = 2      # виден ли объект камере (0/1)
OBJ_UVM = 3          # 3..7 - упакованный UV-маппер
OBJ_WIDTH = OBJ_UVM + UVM_WIDTH


class Scene:
    """
    Контейнер для 3D сцены.

    Хранит:
        - Объекты (геометрия + UV-маппер + флаг видимости камере)
        - Цвет неба, возвращаемый при промахе луча

    Перед рендерингом сцена компилируется в numpy массивы (compile()).
    """

    def __init__(self, sky_color=(1.0, 1.0, 1.0)):
        self.sky_color = vec3(sky_color)
        self.objects = []

        # Финальные numpy массивы (создаются при compile())
        self.prim_kinds = None   # shape: (n_prims,) - виды примитивов
        self.prim_params = None  # shape: (n_prims, PRIM_WIDTH) - параметры примитивов
        self.obj_table = None    # shape: (n_objects, OBJ_WIDTH) - объекты
        self.materials = None    # shape: (n_materials, MATERIAL_WIDTH)
        self.tex_pixels = None   # shape: (n_texels, 3) - все текстуры подряд
        self.tex_info = None     # shape: (n_textures, 3) - смещение, ширина, высота

    def add(self, obj):
        """Добавляет объект (Sphere, InfinitePlane, Plane или Cube)."""
        self.objects.append(obj)
        self.prim_kinds = None
        return obj

    def validate(self):
        """Проверяет цвет неба и материалы всех объектов."""
        if not np.all(np.isfinite(self.sky_color)):
            raise ConfigurationError(f"Sky color must be finite, got {self.sky_color}")
        for obj in self.objects:
            obj.uv_mapper.validate()
        return True

    @property
    def compiled(self):
        return self.prim_kinds is not None

    def compile(self):
        """
        Компилирует сцену в numpy массивы для быстрого доступа.
        Вызывать после добавления всех объектов.
        """
        kinds = []
        params = []
        obj_rows = []
        materials = []
        textures = []

        for obj in self.objects:
            obj_kinds, obj_params = obj.pack()
            row = np.zeros(OBJ_WIDTH, dtype=np.int64)
            row[OBJ_PRIM_START] = len(kinds)
            row[OBJ_PRIM_COUNT] = len(obj_kinds)
            row[OBJ_VISIBLE] = 1 if obj.is_visible_to_camera() else 0
            row[OBJ_UVM:OBJ_UVM + UVM_WIDTH] = obj.uv_mapper.pack(materials, textures)
            kinds.extend(obj_kinds)
            params.extend(obj_params)
            obj_rows.append(row)

        self.prim_kinds = np.array(kinds, dtype=np.int64)
        if params:
            self.prim_params = np.array(params, dtype=np.float64)
        else:
            self.prim_params = np.zeros((0, PRIM_WIDTH), dtype=np.float64)
        if obj_rows:
            self.obj_table = np.array(obj_rows, dtype=np.int64)
        else:
            self.obj_table = np.zeros((0, OBJ_WIDTH), dtype=np.int64)

        self.materials, self.tex_pixels, self.tex_info = pack_tables(materials, textures)

        logger.info("Scene: %d objects, %d primitives, %d materials, %d textures",
                    len(self.objects), len(kinds), len(materials), len(textures))
        return self

    @property
    def data(self):
        """Кортеж массивов сцены для ядер numba."""
        if not self.compiled:
            self.compile()
        return (self.prim_kinds, self.prim_params, self.obj_table, self.materials,
                self.tex_pixels, self.tex_info, self.sky_color)


@njit(cache=True)
def get_closest_hit(ray_origin, ray_dir, camera_only, scene):
    """
    Поиск ближайшего пересечения луча со сценой.

    Перебирает все объекты; ближайшим считается пересечение с минимальным
    квадратом расстояния до начала луча. При camera_only=True объекты,
    невидимые камере, пропускаются.

    Возвращает: (obj_index, position, normal, u, v)
        obj_index: индекс объекта (-1 если нет пересечения)
    """
    prim_kinds, prim_params, obj_table, materials, tex_pixels, tex_info, sky = scene

    hit_idx = -1
    closest = 0.0
    hit_position = np.zeros(3)
    hit_normal = np.zeros(3)
    hit_u = 0.0
    hit_v = 0.0

    for i in range(obj_table.shape[0]):
        if camera_only and obj_table[i, OBJ_VISIBLE] == 0:
            continue

        hit, position, normal, u, v = intersect_object(
            ray_origin, ray_dir,
            obj_table[i, OBJ_PRIM_START], obj_table[i, OBJ_PRIM_COUNT],
            prim_kinds, prim_params
        )
        if hit:
            d = sqr_length(position - ray_origin)
            if hit_idx < 0 or d < closest:
                hit_idx = i
                closest = d
                hit_position = position
                hit_normal = normal
                hit_u = u
                hit_v = v

    return hit_idx, hit_position, hit_normal, hit_u, hit_v
