"""
Ray Tracer - Синтез изображений методом рекурсивной трассировки лучей.

Отражения, преломление, глубина резкости и ambient occlusion.

Запуск: python main.py
"""

import time

from raytracer.demo_scene import create_scene, create_camera, create_render_params
from raytracer.output import RenderTarget, save_ppm, save_png
from raytracer.renderer import render


# ==================== КОНФИГУРАЦИЯ ====================
# Параметры можно изменить для получения разных результатов

CONFIG = {
    # --- Параметры рендеринга ---
    'width': 480,                   # ширина изображения
    'height': 270,                  # высота изображения
    'seed': 0,                      # зерно шума (None - случайное)
    'min_intensity': 0.03,          # порог интенсивности для вторичных лучей
    'max_bounces': 10,              # максимальная глубина рекурсии
    'bias': 0.01,                   # смещение вторичных лучей от поверхности

    # --- Глубина резкости ---
    'dof_max_angle': 0.1,           # отклонение первичных лучей (градусы)
    'dof_samples': 10,              # лучей на пиксель

    # --- Размытые отражения / преломление ---
    'max_reflection_samples': 6,
    'max_refraction_samples': 1,

    # --- Ambient occlusion ---
    'ao_strength': 0.4,             # 0 - выключен
    'ao_distance': 5.0,             # радиус затухания
    'ao_samples': 3,

    # --- Камера ---
    'camera_position': [0.0, 7.5, -10.0],
    'camera_rotation': [0.0, 0.0, 0.0],   # углы Эйлера (градусы)
    'viewport': [16.0, 9.0],
    'camera_fov': 40,                      # горизонтальный угол обзора

    # --- Сцена ---
    'sky_color': [1.0, 1.0, 1.0],
    'room_size': 15.0,
    'left_wall_color': [1.0, 0.6, 0.1],    # оранжевая стена
    'right_wall_color': [0.25, 0.75, 1.0], # голубая стена
    'back_wall_color': [0.5, 0.5, 0.5],
    'glass_radius': 4.0,
    'glass_ior': 1.33,
    'mirror_radius': 4.5,
    'box_size': 1.5,
    'box_rotation': 30,
    'box_color': [0.45, 0.3, 0.45],

    # --- Результат ---
    'output_ppm': 'result.ppm',
    'output_png': 'result.png',
}


def main():
    """Основная функция рендеринга."""

    print("=" * 60)
    print("Ray Tracer - Трассировка лучей")
    print("=" * 60)

    # 1. Создаём сцену
    print("\n[1/4] Создание сцены...")
    scene = create_scene(CONFIG)

    # 2. Камера и параметры
    print("[2/4] Настройка камеры...")
    camera = create_camera(CONFIG)
    params = create_render_params(CONFIG)
    target = RenderTarget(CONFIG['width'], CONFIG['height'])

    # 3. Рендеринг
    print(f"[3/4] Рендеринг {CONFIG['width']}x{CONFIG['height']}...")

    start_time = time.time()
    render(scene, camera, target, params, seed=CONFIG['seed'])
    elapsed = time.time() - start_time
    print(f"      Завершено за {elapsed:.1f} секунд")

    # 4. Сохранение
    print("[4/4] Сохранение...")
    save_ppm(CONFIG['output_ppm'], target)
    save_png(CONFIG['output_png'], target)

    print("\n" + "=" * 60)
    print("Готово!")
    print("=" * 60)


if __name__ == "__main__":
    main()
