"""
Ядро рендеринга методом рекурсивной трассировки лучей.

Каждый луч несёт "интенсивность" - долю, которую он вносит в итоговый
цвет пикселя. При попадании в поверхность интенсивность делится между
цветом материала, отражением и преломлением; вторичные лучи получают
свою часть и трассируются рекурсивно.
"""

import time

import numpy as np
from numba import njit, prange

from .camera import get_ray
from .log import get_logger
from .material import (MAT_COLOR, MAT_OPACITY_CENTER, MAT_OPACITY_EDGES, MAT_OPACITY_POWER,
                       MAT_REFLECTION_CENTER, MAT_REFLECTION_EDGES, MAT_REFLECTION_POWER,
                       MAT_REFLECTION_MAX_ANGLE, MAT_REFRACTION_IOR, MAT_REFRACTION_MAX_ANGLE,
                       MAT_REFLECTION_TINT, MAT_REFRACTION_TINT)
from .math_utils import (dot, length, normalize, scale, reflect, interpolate_towards,
                         rotate_around_axis, get_random_90_deg_vector)
from .render_params import (RenderParams, P_MIN_INTENSITY, P_MAX_BOUNCES, P_BIAS,
                            P_DOF_MAX_ANGLE, P_DOF_SAMPLES, P_MAX_REFLECTION_SAMPLES,
                            P_MAX_REFRACTION_SAMPLES, P_AO_STRENGTH, P_AO_DISTANCE,
                            P_AO_SAMPLES)
from .scene import get_closest_hit, OBJ_UVM
from .uv_mappers import material_at, UVM_WIDTH

logger = get_logger(__name__)


@njit(cache=True, fastmath=True)
def get_ray_count_for_intensity(intensity, max_rays):
    """
    Число стохастических лучей для ветви с заданной интенсивностью.

    Слабые ветви получают меньше лучей: round(1 + intensity * (max_rays - 1)),
    но не меньше 1 и не больше max_rays.
    """
    count = int(np.floor(1.0 + intensity * (max_rays - 1) + 0.5))
    return min(max(count, 1), max_rays)


@njit(cache=True)
def sample_ray_cone(axis, max_angle, n, cutoff_normal):
    """
    Случайные направления в конусе с осью axis и полууглом max_angle (градусы).

    Ось сначала отклоняется на случайный угол из [0, max_angle] вокруг
    фиксированного перпендикуляра, затем поворачивается на случайный угол
    из [0, 360) вокруг самой оси. Направления, смотрящие внутрь поверхности
    (dot(d, cutoff_normal) <= 0), отбрасываются.

    Возвращает: (directions, count) - первые count строк directions заполнены.
    """
    directions = np.empty((max(n, 0), 3))
    reference = normalize(get_random_90_deg_vector(axis))
    count = 0

    for _ in range(n):
        deviation = np.random.random() * max_angle
        spin = np.random.random() * 360.0
        d = rotate_around_axis(axis, reference, deviation)
        d = rotate_around_axis(d, axis, spin)

        # Отбрасываем лучи, уходящие внутрь геометрии
        if dot(d, cutoff_normal) > 0.0:
            directions[count] = normalize(d)
            count += 1

    return directions, count


@njit(cache=True, fastmath=True)
def incidence_steepness(ray_dir, normal):
    """
    Крутизна падения луча: 0 - перпендикулярно поверхности, 1 - по касательной.

    Учитывает, пришёл ли луч снаружи (нормаль навстречу лучу)
    или изнутри преломляющего объекта.
    """
    c = min(max(dot(ray_dir, normal), -1.0), 1.0)
    if c <= 0.0:
        angle = np.pi - np.arccos(c)
    else:
        angle = np.arccos(c)
    return angle / (np.pi / 2.0)


@njit(cache=True, fastmath=True)
def shade_split(mat, steepness, intensity):
    """
    Делит интенсивность луча между цветом материала, отражением и преломлением.

    Отражение и непрозрачность интерполируются между значениями center и edges
    с коэффициентом steepness ** power. Сумма трёх частей равна intensity.

    Возвращает: (mat_color_intensity, total_reflection_intensity,
                 total_refraction_intensity)
    """
    reflection_influence = steepness ** mat[MAT_REFLECTION_POWER]
    reflect_intensity = ((1.0 - reflection_influence) * mat[MAT_REFLECTION_CENTER] +
                         reflection_influence * mat[MAT_REFLECTION_EDGES])

    opacity_influence = steepness ** mat[MAT_OPACITY_POWER]
    opacity = ((1.0 - opacity_influence) * mat[MAT_OPACITY_CENTER] +
               opacity_influence * mat[MAT_OPACITY_EDGES])

    mat_color_intensity = opacity * (1.0 - reflect_intensity) * intensity
    total_reflection_intensity = opacity * reflect_intensity * intensity
    total_refraction_intensity = (1.0 - opacity) * intensity

    return mat_color_intensity, total_reflection_intensity, total_refraction_intensity


@njit(cache=True)
def ambient_occlusion(position, normal, scene, params):
    """
    Множитель интенсивности от ambient occlusion.

    Лучи пускаются в полусферу вокруг нормали; по ближайшему попаданию
    считается затемнение 1 - strength * (1 - d / distance)^2.
    Объекты, невидимые камере, тоже отбрасывают тень.
    """
    strength = params[P_AO_STRENGTH]
    max_distance = params[P_AO_DISTANCE]

    origin = position + scale(normal, params[P_BIAS])
    directions, count = sample_ray_cone(normal, 90.0, int(params[P_AO_SAMPLES]), normal)

    closest = -1.0
    for i in range(count):
        idx, hit_position, hit_normal, u, v = get_closest_hit(origin, directions[i], False, scene)
        if idx >= 0:
            d = length(hit_position - origin)
            if closest < 0.0 or d < closest:
                closest = d

    # Ничего рядом нет - нет и затемнения
    if closest < 0.0:
        return 1.0

    if max_distance > 0.0:
        distance_normalized = min(closest / max_distance, 1.0)
    else:
        distance_normalized = 1.0

    return 1.0 - strength * (1.0 - distance_normalized) ** 2


@njit(cache=True)
def reflection_rays(ray_dir, position, normal, mat, total_intensity, params):
    """
    Отражённые лучи.

    Идеальное направление сдвигается к нормали пропорционально
    max_angle / 90 (размытое отражение). При max_angle = 0 - один луч.

    Возвращает: (origin, directions, count)
    """
    origin = position + scale(normal, params[P_BIAS])
    max_angle = mat[MAT_REFLECTION_MAX_ANGLE]

    direction = normalize(interpolate_towards(reflect(ray_dir, normal), normal,
                                              max_angle / 90.0))

    # Идеальное зеркало: достаточно одного луча
    if max_angle == 0.0:
        directions = np.empty((1, 3))
        directions[0] = direction
        return origin, directions, 1

    n = get_ray_count_for_intensity(total_intensity, int(params[P_MAX_REFLECTION_SAMPLES]))
    directions, count = sample_ray_cone(direction, max_angle, n, normal)
    return origin, directions, count


@njit(cache=True)
def refraction_ray(ray_dir, position, normal, ior, bias):
    """
    Преломлённый луч по закону Снеллиуса.

    При полном внутреннем отражении вместо него возвращается отражённый луч.

    Возвращает: (origin, direction, cutoff_normal)
        cutoff_normal - нормаль со стороны, куда уходит луч
    """
    hit_cos = dot(ray_dir, normal)

    if hit_cos <= 0.0:
        # Из воздуха внутрь объекта
        ratio = 1.0 / ior
        n = normal
        cos_i = -hit_cos
    else:
        # Из объекта в воздух
        ratio = ior
        n = -normal
        cos_i = hit_cos

    k = 1.0 - ratio * ratio * (1.0 - cos_i * cos_i)

    if k < 0.0:
        # Полное внутреннее отражение: луч остаётся с той же стороны поверхности
        origin = position + n * bias
        direction = normalize(reflect(ray_dir, n))
        return origin, direction, n

    # Начало луча - по другую сторону поверхности
    origin = position - n * bias
    direction = normalize(ray_dir * ratio + n * (ratio * cos_i - np.sqrt(k)))
    return origin, direction, -n


@njit(cache=True)
def refraction_rays(ray_dir, position, normal, mat, total_intensity, params):
    """
    Преломлённые лучи: один при max_angle = 0, иначе выборка в конусе.

    Возвращает: (origin, directions, count)
    """
    origin, direction, cutoff_normal = refraction_ray(
        ray_dir, position, normal, mat[MAT_REFRACTION_IOR], params[P_BIAS]
    )
    max_angle = mat[MAT_REFRACTION_MAX_ANGLE]

    if max_angle == 0.0:
        directions = np.empty((1, 3))
        directions[0] = direction
        return origin, directions, 1

    n = get_ray_count_for_intensity(total_intensity, int(params[P_MAX_REFRACTION_SAMPLES]))
    directions, count = sample_ray_cone(direction, max_angle, n, cutoff_normal)
    return origin, directions, count


@njit
def trace_ray(ray_origin, ray_dir, bounces, intensity, scene, params):
    """
    Трассировка одного луча.

    Алгоритм:
    1. Находим ближайшее пересечение (на первом отскоке - только с объектами,
       видимыми камере)
    2. Промах - цвет неба, умноженный на интенсивность
    3. Иначе берём материал из UV-маппера и ослабляем интенсивность AO
    4. Делим интенсивность между цветом, отражением и преломлением
    5. Если лимит отскоков не достигнут, трассируем отражённые и
       преломлённые лучи, делящие свою часть интенсивности поровну

    Возвращает цвет, уже умноженный на интенсивность.
    """
    sky = scene[6]

    obj_idx, position, normal, u, v = get_closest_hit(ray_origin, ray_dir, bounces == 0, scene)

    # Луч ушёл в небо
    if obj_idx < 0:
        return sky * intensity

    obj_table = scene[2]
    mat = material_at(obj_table[obj_idx, OBJ_UVM:OBJ_UVM + UVM_WIDTH], u, v,
                      scene[3], scene[4], scene[5])

    # Ambient occlusion ослабляет интенсивность один раз на попадание
    if params[P_AO_STRENGTH] > 0.0:
        intensity = intensity * ambient_occlusion(position, normal, scene, params)

    steepness = incidence_steepness(ray_dir, normal)
    mat_color_intensity, reflection_intensity, refraction_intensity = shade_split(
        mat, steepness, intensity
    )

    # Вклад цвета материала (лучи, которые не отразились и не преломились)
    output = mat[MAT_COLOR:MAT_COLOR + 3] * mat_color_intensity

    # Жёсткий лимит рекурсии
    if bounces >= int(params[P_MAX_BOUNCES]):
        return output

    min_intensity = params[P_MIN_INTENSITY]

    # Отражение
    if reflection_intensity > min_intensity:
        origin, directions, count = reflection_rays(ray_dir, position, normal, mat,
                                                    reflection_intensity, params)
        if count > 0:
            ray_intensity = reflection_intensity / count
            reflected = np.zeros(3)
            for i in range(count):
                reflected = reflected + trace_ray(origin, directions[i], bounces + 1,
                                                  ray_intensity, scene, params)
            output = output + reflected * mat[MAT_REFLECTION_TINT:MAT_REFLECTION_TINT + 3]

    # Преломление
    if refraction_intensity > min_intensity:
        origin, directions, count = refraction_rays(ray_dir, position, normal, mat,
                                                    refraction_intensity, params)
        if count > 0:
            ray_intensity = refraction_intensity / count
            refracted = np.zeros(3)
            for i in range(count):
                refracted = refracted + trace_ray(origin, directions[i], bounces + 1,
                                                  ray_intensity, scene, params)
            output = output + refracted * mat[MAT_REFRACTION_TINT:MAT_REFRACTION_TINT + 3]

    return output


@njit
def render_pixel(x, y, width, height, cam, scene, params):
    """
    Цвет одного пикселя.

    Без глубины резкости - один луч с интенсивностью 1. Иначе dof.samples
    лучей, отклонённых не более чем на dof.max_angle, и их среднее.
    """
    origin, direction = get_ray(x, y, width, height, cam)
    dof_angle = params[P_DOF_MAX_ANGLE]

    if dof_angle == 0.0:
        return trace_ray(origin, direction, 0, 1.0, scene, params)

    directions, count = sample_ray_cone(direction, dof_angle, int(params[P_DOF_SAMPLES]),
                                        direction)
    color = np.zeros(3)
    for i in range(count):
        color = color + trace_ray(origin, directions[i], 0, 1.0, scene, params)
    if count > 0:
        color = color / count
    return color


@njit(parallel=True)
def render_image(pixels, cam, scene, params, row_seeds):
    """
    Рендеринг изображения в массив pixels формы (height, width, 3).

    Строки обрабатываются параллельно; каждая строка пишет только в свой
    срез pixels и перед началом заново инициализирует генератор случайных
    чисел своего потока собственным зерном.
    """
    height = pixels.shape[0]
    width = pixels.shape[1]

    # Параллельный цикл по строкам
    for y in prange(height):
        np.random.seed(row_seeds[y])
        for x in range(width):
            color = render_pixel(x, y, width, height, cam, scene, params)
            pixels[y, x, 0] = color[0]
            pixels[y, x, 1] = color[1]
            pixels[y, x, 2] = color[2]


def trace(scene, ray, params=None, bounces=0, intensity=1.0):
    """Цвет луча ray (geometry.Ray) в сцене scene, умноженный на intensity."""
    params = params if params is not None else RenderParams()
    return trace_ray(ray.origin, ray.direction, bounces, float(intensity),
                     scene.data, params.pack())


def render(scene, camera, target, params=None, seed=None):
    """
    Рендеринг сцены в target (output.RenderTarget).

    Все параметры проверяются до начала работы; ошибка внутри трассировки
    прерывает рендер целиком.

    Параметры:
        seed: зерно для воспроизводимого шума; None - энтропия системы
    """
    params = params if params is not None else RenderParams()

    params.validate()
    camera.validate()
    scene.validate()
    scene.compile()

    # Своё зерно для каждой строки изображения
    row_seeds = np.random.SeedSequence(seed).generate_state(target.height, dtype=np.uint32)
    row_seeds = row_seeds.astype(np.int64)

    logger.info("Rendering %dx%d, max_bounces=%d, dof samples=%d, ao samples=%d",
                target.width, target.height, params.quality.max_bounces,
                params.dof.samples if params.dof.max_angle != 0.0 else 1,
                params.ao.samples if params.ao.strength > 0.0 else 0)

    start_time = time.time()
    render_image(target.pixels, camera.pack(), scene.data, params.pack(), row_seeds)
    logger.info("Finished in %.2f s", time.time() - start_time)

    return target
