"""
Scene description parser.

Scenes are YAML or JSON documents with these sections:
- camera: position, direction, resolution and sampling grid
- render: tracer settings, threads and tone mapping
- materials: named material library
- objects: spheres and triangles referencing materials
- lights: spherical emitters

Example scene file:
```yaml
camera:
  position: [0, -2, 2]
  direction: [0, 1, -1]
  up: [0, 0, 1]
  fov: 90
  width: 320
  height: 180
  subdivisions: 2

render:
  max_depth: 8
  min_weight: 0.001
  background: [0, 0, 0]
  tone_mapping: aces_filmic

materials:
  mirror:
    preset: mirror
    albedo: [1, 1, 1]
    specular_rate: 0.9
  red_glass:
    albedo: [0.7, 0.2, 0.2]
    specular_rate: 0.1
    transmission_rate: 0.9
    refractive_index: 1.5
    absorption: [0, 0.01, 0.01]

objects:
  - type: sphere
    center: [-0.5, 1.5, 0.7]
    radius: 0.7
    material: mirror
  - type: triangle
    v0: [3, 3, 0]
    v1: [3, -1, 0]
    v2: [-3, -1, 0]
    material: {preset: diffuse_surface}

lights:
  - center: [0, 0, 10]
    radius: 2
    emission: [5.8, 5.8, 5.0]
```
"""

from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .vec3 import Vec3, Point3, Color
from .camera import Camera
from .materials import Material
from .shapes import Surface, Sphere, Triangle
from .lights import Light
from .renderer import RenderSettings
from .tonemapping import ToneMappingOperator

logger = logging.getLogger(__name__)

ParsedScene = Tuple[List[Surface], List[Light], Camera, RenderSettings]

MATERIAL_FIELDS = (
    'albedo', 'diffuse_rate', 'specular_rate', 'transmission_rate',
    'refractive_index', 'absorption'
)


class SceneParseError(Exception):
    """Error during scene parsing."""
    pass


class SceneParser:
    """Parser for scene description files."""

    def __init__(self):
        self._reset()

    def _reset(self) -> None:
        self.materials: Dict[str, Material] = {}
        self.surfaces: List[Surface] = []
        self.lights: List[Light] = []
        self.camera: Optional[Camera] = None
        self.settings: Optional[RenderSettings] = None

    def parse_file(self, filepath: str) -> ParsedScene:
        """Parse a scene file.

        Args:
            filepath: Path to the scene file (YAML or JSON)

        Returns:
            Tuple of (surfaces, lights, camera, settings)
        """
        path = Path(filepath)
        if not path.exists():
            raise SceneParseError(f"Scene file not found: {filepath}")

        try:
            content = path.read_text(encoding='utf-8')
        except UnicodeDecodeError as e:
            raise SceneParseError(f"Scene file {filepath} is not valid UTF-8: {e}") from e

        try:
            if path.suffix == '.json':
                data = json.loads(content)
            else:
                # YAML is a superset of JSON, so this covers unknown suffixes too
                data = yaml.safe_load(content)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise SceneParseError(f"Cannot parse scene file {filepath}: {e}") from e

        if not isinstance(data, dict):
            raise SceneParseError(f"Scene file must contain a mapping, got {type(data).__name__}")

        logger.info(f"Loading scene from {path}")
        return self.parse_dict(data)

    def parse_dict(self, data: Dict[str, Any]) -> ParsedScene:
        """Parse a scene from a dictionary.

        Args:
            data: Scene description dictionary

        Returns:
            Tuple of (surfaces, lights, camera, settings)
        """
        # Each call describes a whole scene
        self._reset()

        # Materials first, objects reference them
        if 'materials' in data:
            self._parse_materials(data['materials'])

        if 'objects' in data:
            self._parse_objects(data['objects'])

        if 'lights' in data:
            self._parse_lights(data['lights'])

        if 'camera' in data:
            self._parse_camera(data['camera'])
        else:
            self.camera = Camera(position=Point3(0, 0, 5), direction=Vec3(0, 0, -1))

        if 'render' in data:
            self._parse_settings(data['render'])
        else:
            self.settings = RenderSettings()

        logger.debug(
            f"Parsed scene: {len(self.materials)} materials, {len(self.surfaces)} surfaces, "
            f"{len(self.lights)} lights"
        )
        return self.surfaces, self.lights, self.camera, self.settings

    def _parse_vec3(self, data: Any) -> Vec3:
        """Parse a Vec3 from a 3-list or an {x, y, z} mapping."""
        try:
            if isinstance(data, (list, tuple)):
                if len(data) != 3:
                    raise SceneParseError(f"Vec3 must have 3 components, got {len(data)}")
                return Vec3(float(data[0]), float(data[1]), float(data[2]))
            elif isinstance(data, dict):
                return Vec3(
                    float(data.get('x', 0)),
                    float(data.get('y', 0)),
                    float(data.get('z', 0))
                )
        except (TypeError, ValueError) as e:
            raise SceneParseError(f"Cannot parse Vec3 from: {data}") from e
        raise SceneParseError(f"Cannot parse Vec3 from: {data}")

    def _parse_color(self, data: Any) -> Color:
        """Parse a Color from a 3-list, an {r, g, b} mapping or a hex string."""
        try:
            if isinstance(data, (list, tuple)):
                if len(data) != 3:
                    raise SceneParseError(f"Color must have 3 components, got {len(data)}")
                return Color(float(data[0]), float(data[1]), float(data[2]))
            elif isinstance(data, dict):
                return Color(
                    float(data.get('r', 0)),
                    float(data.get('g', 0)),
                    float(data.get('b', 0))
                )
            elif isinstance(data, str):
                hex_color = data[1:] if data.startswith('#') else ''
                if len(hex_color) == 6:
                    r = int(hex_color[0:2], 16) / 255.0
                    g = int(hex_color[2:4], 16) / 255.0
                    b = int(hex_color[4:6], 16) / 255.0
                    return Color(r, g, b)
                raise SceneParseError(f"Cannot parse color from string: {data}")
        except (TypeError, ValueError) as e:
            raise SceneParseError(f"Cannot parse Color from: {data}") from e
        raise SceneParseError(f"Cannot parse Color from: {data}")

    def _parse_float(self, data: Dict[str, Any], key: str, default: float) -> float:
        value = data.get(key, default)
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise SceneParseError(f"'{key}' must be a number, got {value!r}") from e

    def _parse_int(self, data: Dict[str, Any], key: str, default: int) -> int:
        value = data.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise SceneParseError(f"'{key}' must be an integer, got {value!r}") from e

    def _build_material(self, mat_data: Dict[str, Any]) -> Material:
        """Build a material from a preset and/or explicit coefficients.

        Explicit fields override the values produced by the preset.
        """
        if not isinstance(mat_data, dict):
            raise SceneParseError(f"Material must be a mapping, got: {mat_data}")

        unknown = set(mat_data) - set(MATERIAL_FIELDS) - {'preset'}
        if unknown:
            raise SceneParseError(f"Unknown material fields: {sorted(unknown)}")

        base = Material()
        preset = mat_data.get('preset')
        if preset is not None:
            base = self._preset_material(str(preset).lower(), mat_data)

        return Material(
            albedo=self._parse_color(mat_data['albedo']) if 'albedo' in mat_data else base.albedo,
            diffuse_rate=self._parse_float(mat_data, 'diffuse_rate', base.diffuse_rate),
            specular_rate=self._parse_float(mat_data, 'specular_rate', base.specular_rate),
            transmission_rate=self._parse_float(mat_data, 'transmission_rate', base.transmission_rate),
            refractive_index=self._parse_float(mat_data, 'refractive_index', base.refractive_index),
            absorption=(
                self._parse_color(mat_data['absorption']) if 'absorption' in mat_data else base.absorption
            )
        )

    def _preset_material(self, preset: str, mat_data: Dict[str, Any]) -> Material:
        albedo = self._parse_color(mat_data.get('albedo', [1, 1, 1]))

        if preset == 'matte':
            return Material.matte(albedo, self._parse_float(mat_data, 'diffuse_rate', 1.0))
        elif preset == 'mirror':
            return Material.mirror(albedo, self._parse_float(mat_data, 'specular_rate', 1.0))
        elif preset == 'transparent':
            return Material.transparent(
                albedo,
                self._parse_float(mat_data, 'transmission_rate', 1.0),
                self._parse_float(mat_data, 'refractive_index', 1.5)
            )
        elif preset == 'glass':
            return Material.glass(self._parse_float(mat_data, 'transmission_rate', 0.9))
        elif preset == 'metal':
            return Material.metal(
                albedo,
                self._parse_float(mat_data, 'specular_rate', 1.0),
                self._parse_float(mat_data, 'diffuse_rate', 0.0)
            )
        elif preset == 'diffuse_surface':
            return Material.diffuse_surface()
        elif preset == 'perfect_mirror':
            return Material.perfect_mirror()
        elif preset == 'perfect_metal':
            return Material.perfect_metal()
        elif preset == 'vacuum':
            return Material.vacuum()
        else:
            raise SceneParseError(f"Unknown material preset: {preset}")

    def _parse_materials(self, materials_data: Dict[str, Any]) -> None:
        """Parse materials section."""
        if not isinstance(materials_data, dict):
            raise SceneParseError("'materials' must be a mapping of name to material")

        for name, mat_data in materials_data.items():
            self.materials[name] = self._build_material(mat_data)

    def _get_material(self, mat_ref: Any) -> Material:
        """Get a material by name or inline definition."""
        if mat_ref is None:
            return Material.diffuse_surface()
        if isinstance(mat_ref, str):
            if mat_ref not in self.materials:
                raise SceneParseError(f"Unknown material: {mat_ref}")
            return self.materials[mat_ref]
        elif isinstance(mat_ref, dict):
            return self._build_material(mat_ref)
        else:
            raise SceneParseError(f"Invalid material reference: {mat_ref}")

    def _require_list(self, data: Any, section: str) -> list:
        if not isinstance(data, list):
            raise SceneParseError(f"'{section}' must be a list, got {type(data).__name__}")
        return data

    def _require_mapping(self, data: Any, section: str) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise SceneParseError(f"'{section}' entry must be a mapping, got: {data!r}")
        return data

    def _parse_objects(self, objects_data: list) -> None:
        """Parse objects section."""
        for obj_data in self._require_list(objects_data, 'objects'):
            obj_data = self._require_mapping(obj_data, 'objects')
            obj_type = str(obj_data.get('type', 'sphere')).lower()
            material = self._get_material(obj_data.get('material'))

            if obj_type == 'sphere':
                center = self._parse_vec3(obj_data.get('center', [0, 0, 0]))
                radius = self._parse_float(obj_data, 'radius', 1.0)
                self.surfaces.append(Sphere(center, radius, material))

            elif obj_type == 'triangle':
                try:
                    v0 = self._parse_vec3(obj_data['v0'])
                    v1 = self._parse_vec3(obj_data['v1'])
                    v2 = self._parse_vec3(obj_data['v2'])
                except KeyError as e:
                    raise SceneParseError(f"Triangle is missing vertex {e}") from e
                self.surfaces.append(Triangle(v0, v1, v2, material))

            else:
                raise SceneParseError(f"Unknown object type: {obj_type}")

    def _parse_lights(self, lights_data: list) -> None:
        """Parse lights section."""
        for light_data in self._require_list(lights_data, 'lights'):
            light_data = self._require_mapping(light_data, 'lights')
            center = self._parse_vec3(light_data.get('center', [0, 5, 0]))
            radius = self._parse_float(light_data, 'radius', 0.5)
            emission = self._parse_color(light_data.get('emission', [1, 1, 1]))
            self.lights.append(Light(center, radius, emission))

    def _parse_camera(self, camera_data: Dict[str, Any]) -> None:
        """Parse camera section."""
        camera_data = self._require_mapping(camera_data, 'camera')
        try:
            self.camera = Camera(
                position=self._parse_vec3(camera_data.get('position', [0, 0, 5])),
                direction=self._parse_vec3(camera_data.get('direction', [0, 0, -1])),
                up=self._parse_vec3(camera_data.get('up', [0, 1, 0])),
                fov_degrees=self._parse_float(camera_data, 'fov', 90.0),
                width=self._parse_int(camera_data, 'width', 320),
                height=self._parse_int(camera_data, 'height', 180),
                subdivisions=self._parse_int(camera_data, 'subdivisions', 1)
            )
        except ValueError as e:
            raise SceneParseError(f"Invalid camera: {e}") from e

    def _parse_settings(self, settings_data: Dict[str, Any]) -> None:
        """Parse render settings section."""
        settings_data = self._require_mapping(settings_data, 'render')
        tone_mapping = str(settings_data.get('tone_mapping', ToneMappingOperator.ACES_FILMIC.value)).lower()
        try:
            operator = ToneMappingOperator(tone_mapping)
        except ValueError as e:
            raise SceneParseError(f"Unknown tone mapping operator: {tone_mapping}") from e

        vacuum = Material.vacuum()
        if 'vacuum' in settings_data:
            vacuum = self._get_material(settings_data['vacuum'])

        try:
            self.settings = RenderSettings(
                max_depth=self._parse_int(settings_data, 'max_depth', 8),
                min_weight=self._parse_float(settings_data, 'min_weight', 1e-3),
                background_color=self._parse_color(settings_data.get('background', [0, 0, 0])),
                vacuum_material=vacuum,
                tile_size=self._parse_int(settings_data, 'tile_size', 32),
                num_threads=self._parse_int(settings_data, 'threads', 0),
                tone_mapping=operator,
                exposure=self._parse_float(settings_data, 'exposure', 1.0)
            )
        except ValueError as e:
            raise SceneParseError(f"Invalid render settings: {e}") from e


def load_scene(filepath: str) -> ParsedScene:
    """Convenience function to load a scene file.

    Args:
        filepath: Path to the scene file

    Returns:
        Tuple of (surfaces, lights, camera, settings)
    """
    parser = SceneParser()
    return parser.parse_file(filepath)


def parse_scene(data: Dict[str, Any]) -> ParsedScene:
    """Convenience function to parse a scene from a dictionary.

    Args:
        data: Scene description dictionary

    Returns:
        Tuple of (surfaces, lights, camera, settings)
    """
    parser = SceneParser()
    return parser.parse_dict(data)
