"""
Трассировщик лучей: рекурсивная трассировка с отражением, преломлением,
глубиной резкости и ambient occlusion.
"""

from .camera import Camera, ViewPort
from .exceptions import RaytracerError, ConfigurationError
from .geometry import Ray, GeometryHitInfo, Sphere, InfinitePlane, Plane, Cube
from .material import Material, Opacity, Reflection, Refraction
from .output import RenderTarget, save_ppm, save_png
from .render_params import RenderParams, Quality, DoF, MaxSamples, Ao
from .renderer import render, trace
from .scene import Scene
from .uv_mappers import (StaticUvMapper, CheckerboardUvMapper, TextureUvMapper, DebugUvMapper,
                         POINT, BILINEAR)

__all__ = [
    "Camera", "ViewPort",
    "RaytracerError", "ConfigurationError",
    "Ray", "GeometryHitInfo", "Sphere", "InfinitePlane", "Plane", "Cube",
    "Material", "Opacity", "Reflection", "Refraction",
    "RenderTarget", "save_ppm", "save_png",
    "RenderParams", "Quality", "DoF", "MaxSamples", "Ao",
    "render", "trace",
    "Scene",
    "StaticUvMapper", "CheckerboardUvMapper", "TextureUvMapper", "DebugUvMapper",
    "POINT", "BILINEAR",
]
