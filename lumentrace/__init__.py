"""
Lumentrace - A deterministic recursive ray tracer

Renders scenes of spheres, triangles and spherical lights with:
- Whitted-style recursion (diffuse, specular and refracted branches)
- Fresnel-free Snell refraction with total internal reflection
- Beer-Lambert absorption inside transmissive media
- Hard shadows from direct lighting
- Supersampled pinhole camera
- Tone mapping (Reinhard, Exposure, ACES Filmic) and PNG output
"""

__version__ = "0.1.0"
__author__ = "Lumentrace Team"

from .vec3 import Vec3, Point3, Color
from .ray import Ray
from .materials import Material
from .shapes import Surface, Intersection, Sphere, Triangle, solve_sphere
from .lights import Light, LIGHT_MATERIAL
from .camera import Camera
from .tracer import RayTracer, BranchKind, BranchedRay, beer_lambert_attenuation
from .tonemapping import (
    ToneMapper, ToneMappingOperator,
    ReinhardToneMapper, ExposureToneMapper, ACESFilmicToneMapper,
    create_tone_mapper
)
from .image import average_luminance, apply_exposure, to_rgb8, save_png
from .renderer import Renderer, RenderSettings
from .scene_parser import SceneParser, SceneParseError, load_scene, parse_scene
from .logging_config import setup_logging
