#!/usr/bin/env python3
"""
Lumentrace - A deterministic recursive ray tracer

Main entry point for rendering scenes.
"""

import argparse
import dataclasses
import logging
import sys
import time
from typing import List, Optional, Sequence, Tuple

from lumentrace.vec3 import Vec3, Color, Point3
from lumentrace.camera import Camera
from lumentrace.shapes import Sphere, Triangle, Surface
from lumentrace.materials import Material
from lumentrace.lights import Light
from lumentrace.renderer import Renderer, RenderSettings
from lumentrace.tonemapping import ToneMappingOperator
from lumentrace.scene_parser import SceneParseError, load_scene
from lumentrace.logging_config import setup_logging

logger = logging.getLogger("lumentrace.main")

DEMO_WIDTH = 480
DEMO_HEIGHT = 270


def create_demo_scene() -> Tuple[List[Surface], List[Light]]:
    """Create the demo scene: a mirror, three tinted glass spheres and a floor."""
    mirror = Material.mirror(Color.white(), 0.9)

    red_glass = Material(
        Color(0.7, 0.2, 0.2), 0.0, 0.1, 0.9, 1.5, Color(0.0, 0.01, 0.01)
    )
    green_glass = Material(
        Color(0.2, 0.7, 0.2), 0.0, 0.1, 0.9, 1.5, Color(0.01, 0.0, 0.01)
    )
    blue_glass = Material(
        Color(0.2, 0.2, 0.7), 0.0, 0.1, 0.9, 1.5, Color(0.01, 0.01, 0.0)
    )
    yellow_matte = Material(Color.white(), 0.2, 0.6, 0.2, 1.0, Color.black())

    surfaces: List[Surface] = [
        Sphere(Point3(-0.5, 1.5, 0.7), 0.7, mirror),
        Sphere(Point3(0, 0, 0.5), 0.5, red_glass),
        Sphere(Point3(-1.2, 0, 0.5), 0.5, blue_glass),
        Sphere(Point3(1.2, 0, 0.5), 0.5, green_glass),
        # Floor
        Triangle(Point3(3, 3, 0), Point3(3, -1, 0), Point3(-3, -1, 0), yellow_matte),
        Triangle(Point3(3, 3, 0), Point3(-3, -1, 0), Point3(-3, 3, 0), yellow_matte),
    ]

    lights = [
        Light(Point3(3, -3, 5), 3.0, Color(5, 5, 5)),
        Light(Point3(0, 0, 10), 2.0, Color(5.8, 5.8, 5.0)),
        Light(Point3(-10, -5, 5), 2.0, Color(9, 10, 9.5)),
    ]

    return surfaces, lights


def create_demo_camera(width: int = DEMO_WIDTH, height: int = DEMO_HEIGHT, subdivisions: int = 1) -> Camera:
    """Camera looking down at the demo scene from behind and above."""
    return Camera(
        position=Point3(0, -2, 2),
        direction=Vec3(0, 1, -1),
        up=Vec3(0, 0, 1),
        fov_degrees=90.0,
        width=width,
        height=height,
        subdivisions=subdivisions
    )


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive number, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Lumentrace - A deterministic recursive ray tracer',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  python main.py --output render.png
  python main.py --width 1920 --height 1080 --subdivisions 2 --output hd_render.png
  python main.py --scene scenes/glass.yaml --tone-mapping reinhard --exposure 1.5
        '''
    )

    parser.add_argument('--scene', type=str, default='demo',
                        help="'demo' or path to a YAML/JSON scene file (default: demo)")
    parser.add_argument('--width', type=_positive_int, default=None, help='Image width')
    parser.add_argument('--height', type=_positive_int, default=None, help='Image height')
    parser.add_argument('--subdivisions', type=_positive_int, default=None,
                        help='Samples per pixel along each axis')
    parser.add_argument('--depth', type=_positive_int, default=None, help='Max recursion depth')
    parser.add_argument('--min-weight', type=_positive_float, default=None,
                        help='Minimum branch weight worth tracing')
    parser.add_argument('--threads', type=int, default=None, help='Number of threads (0=auto)')
    parser.add_argument('--tone-mapping', type=str, default=None,
                        choices=[op.value for op in ToneMappingOperator],
                        help='Tone mapping operator')
    parser.add_argument('--exposure', type=float, default=None, help='Exposure multiplier')
    parser.add_argument('--output', type=str, default='output.png', help='Output PNG filename')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Logging level')
    parser.add_argument('--log-file', type=str, default=None, help='Also log to this file')

    return parser


def apply_overrides(
    camera: Camera,
    settings: RenderSettings,
    args: argparse.Namespace
) -> Tuple[Camera, RenderSettings]:
    """Apply command line overrides to a scene's camera and settings."""
    if args.width or args.height or args.subdivisions:
        camera = Camera(
            position=camera.position,
            direction=camera.direction,
            up=camera.up,
            fov_degrees=camera.fov_degrees,
            width=args.width or camera.width,
            height=args.height or camera.height,
            subdivisions=args.subdivisions or camera.subdivisions
        )

    overrides = {}
    if args.depth is not None:
        overrides['max_depth'] = args.depth
    if args.min_weight is not None:
        overrides['min_weight'] = args.min_weight
    if args.threads is not None:
        overrides['num_threads'] = args.threads
    if args.tone_mapping is not None:
        overrides['tone_mapping'] = ToneMappingOperator(args.tone_mapping)
    if args.exposure is not None:
        overrides['exposure'] = args.exposure
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    return camera, settings


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    if args.scene == 'demo':
        surfaces, lights = create_demo_scene()
        camera = create_demo_camera()
        settings = RenderSettings()
    else:
        try:
            surfaces, lights, camera, settings = load_scene(args.scene)
        except (SceneParseError, OSError) as e:
            logger.error(f"Failed to load scene: {e}")
            return 1

    camera, settings = apply_overrides(camera, settings, args)

    logger.info(f"Scene: {args.scene} ({len(surfaces)} surfaces, {len(lights)} lights)")
    logger.info(
        f"Resolution {camera.width}x{camera.height}, {camera.samples_per_pixel} samples/pixel, "
        f"max depth {settings.max_depth}, min weight {settings.min_weight}, "
        f"{settings.tone_mapping.value} tone mapping"
    )

    renderer = Renderer(settings)

    # Progress tracking
    last_progress = [0]

    def progress_callback(progress: float):
        pct = int(progress * 100)
        if pct > last_progress[0]:
            last_progress[0] = pct
            bar_len = 40
            filled = int(bar_len * progress)
            bar = '█' * filled + '░' * (bar_len - filled)
            print(f'\rRendering: [{bar}] {pct}%', end='', flush=True)

    renderer.set_progress_callback(progress_callback)

    start_time = time.time()
    image = renderer.render(camera, surfaces, lights)
    print()

    elapsed = time.time() - start_time
    primary_rays = camera.width * camera.height * camera.samples_per_pixel
    logger.info(f"Primary rays per second: {primary_rays / max(elapsed, 1e-9):.0f}")

    try:
        renderer.save_image(image, args.output)
    except OSError as e:
        logger.error(f"Failed to write {args.output}: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
