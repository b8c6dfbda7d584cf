"""
Light-transport engine.

Implements deterministic recursive ray tracing:
- Closest-hit search over surfaces and lights (linear scan)
- Direct Lambertian lighting with binary shadow rays
- Branching into diffuse, specular and refracted rays (Snell's law,
  with total internal reflection folded into the mirror branch)
- Beer's law absorption along each ray segment
- Termination by recursion depth and by accumulated ray weight
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple
import math

import numpy as np

from .vec3 import Color
from .ray import Ray
from .materials import Material
from .shapes import Intersection, Surface
from .lights import Light

# Hits closer than this are treated as self-intersections
INTERSECTION_EPSILON = 1e-5
# Spawned rays start this far off the surface
OFFSET_EPSILON = 1e-4
# Branches with a weight at or below this are not traced
BRANCH_EPSILON = 1e-5


class BranchKind(Enum):
    """The interaction that produced a branched ray."""
    DIFFUSE = "diffuse"
    TRANSMITTED = "transmitted"
    SPECULAR = "specular"


@dataclass(frozen=True)
class BranchedRay:
    """A secondary ray spawned at a surface hit.

    Attributes:
        ray: The new ray
        weight: Fraction of the incoming contribution it carries
        passing_material: The medium the new ray travels through
        kind: Which interaction spawned it
    """
    ray: Ray
    weight: float
    passing_material: Material
    kind: BranchKind


def beer_lambert_attenuation(absorption: Color, distance: float) -> Color:
    """Per-channel transmittance exp(-absorption * distance)."""
    return Color.from_array(np.exp(-absorption.to_array() * distance))


class RayTracer:
    """Recursive ray tracer over a flat list of surfaces and lights.

    The tracer holds only its configuration. Each `trace` call walks its
    own recursion tree over read-only scene data, so any number of rays
    may be traced concurrently.
    """

    def __init__(
        self,
        background_color: Color,
        max_depth: int,
        min_weight: float,
        vacuum_material: Material
    ):
        """Create a tracer.

        Args:
            background_color: Returned for rays that hit nothing or terminate
            max_depth: Maximum recursion depth (positive)
            min_weight: Rays whose accumulated weight drops below this stop
            vacuum_material: The ambient medium rays start in and exit to
        """
        if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth <= 0:
            raise ValueError(f"max_depth must be a positive integer, got {max_depth!r}")
        if not min_weight > 0:
            raise ValueError(f"min_weight must be positive, got {min_weight!r}")

        self.background_color = background_color
        self.max_depth = max_depth
        self.min_weight = float(min_weight)
        self.vacuum_material = vacuum_material

    def trace(self, ray: Ray, surfaces: Sequence[Surface], lights: Sequence[Light]) -> Color:
        """Compute the HDR color carried back along a primary ray.

        Args:
            ray: The ray to trace
            surfaces: Surfaces in the scene (may be empty)
            lights: Lights in the scene (may be empty)

        Returns:
            The color seen along the ray
        """
        return self._trace_recursive(ray, surfaces, lights, 0, 1.0, self.vacuum_material)

    def _trace_recursive(
        self,
        ray: Ray,
        surfaces: Sequence[Surface],
        lights: Sequence[Light],
        depth: int,
        weight: float,
        passing_material: Material
    ) -> Color:
        if depth >= self.max_depth or weight < self.min_weight:
            return self.background_color

        intersection = self.find_closest_intersection(ray, surfaces)
        light_hit = self.find_closest_light(ray, lights)

        if light_hit is not None:
            light, light_intersection = light_hit
            if intersection is None or light_intersection.t < intersection.t:
                attenuation = beer_lambert_attenuation(passing_material.absorption, light_intersection.t)
                return light.emission * attenuation * weight

        if intersection is None:
            return self.background_color

        # Absorption by the medium between the ray origin and the hit
        attenuation = beer_lambert_attenuation(passing_material.absorption, intersection.t)
        material = intersection.material

        direct_color = Color.black()
        for light in lights:
            direct_color = direct_color + self.direct_light(intersection, light, surfaces)

        indirect_color = Color.black()
        for branch in self.branch_rays(ray, intersection, passing_material):
            contribution = self._trace_recursive(
                branch.ray,
                surfaces,
                lights,
                depth + 1,
                weight * branch.weight,
                branch.passing_material
            )
            indirect_color = indirect_color + material.albedo * contribution * branch.weight

        return (direct_color + indirect_color) * attenuation

    def find_closest_intersection(self, ray: Ray, surfaces: Sequence[Surface]) -> Optional[Intersection]:
        """Find the nearest surface hit beyond the self-intersection epsilon."""
        closest: Optional[Intersection] = None
        closest_t = math.inf

        for surface in surfaces:
            hit = surface.intersect(ray)
            if hit is not None and INTERSECTION_EPSILON < hit.t < closest_t:
                closest = hit
                closest_t = hit.t

        return closest

    def find_closest_light(self, ray: Ray, lights: Sequence[Light]) -> Optional[Tuple[Light, Intersection]]:
        """Find the nearest light sphere hit, paired with the light itself."""
        closest: Optional[Tuple[Light, Intersection]] = None
        closest_t = math.inf

        for light in lights:
            hit = light.intersect(ray)
            if hit is not None and INTERSECTION_EPSILON < hit.t < closest_t:
                closest = (light, hit)
                closest_t = hit.t

        return closest

    def direct_light(self, intersection: Intersection, light: Light, surfaces: Sequence[Surface]) -> Color:
        """Lambertian contribution of one light at a hit point.

        Shadowing is binary: any surface between the point and the light
        center blocks the light entirely.
        """
        to_light_vec = light.center - intersection.point
        to_light = to_light_vec.normalize()

        cos_theta = to_light.dot(intersection.normal)
        if cos_theta <= 0.0:
            return Color.black()

        shadow_ray = Ray(intersection.point + to_light * OFFSET_EPSILON, to_light)
        dist_to_light = to_light_vec.length()

        for surface in surfaces:
            shadow_hit = surface.intersect(shadow_ray)
            if shadow_hit is not None and shadow_hit.t < dist_to_light - INTERSECTION_EPSILON:
                return Color.black()

        material = intersection.material
        return material.albedo * light.emission * (cos_theta * material.diffuse_rate)

    def branch_rays(
        self,
        ray: Ray,
        intersection: Intersection,
        incoming_material: Material
    ) -> Tuple[BranchedRay, ...]:
        """Spawn the secondary rays of a surface interaction.

        Args:
            ray: The incident ray
            intersection: Where it hit
            incoming_material: The medium the incident ray travelled through

        Returns:
            Up to three branches, in diffuse, transmitted, specular order
        """
        surface_material = intersection.material
        branches = []

        is_entering = ray.direction.dot(intersection.normal) < 0.0
        normal = intersection.normal if is_entering else -intersection.normal

        # Diffuse scattering is approximated by a single ray along the normal
        if surface_material.diffuse_rate > BRANCH_EPSILON:
            branches.append(BranchedRay(
                ray=Ray(intersection.point + normal * OFFSET_EPSILON, normal),
                weight=surface_material.diffuse_rate,
                passing_material=incoming_material,
                kind=BranchKind.DIFFUSE
            ))

        specular_weight = surface_material.specular_rate

        if surface_material.transmission_rate > BRANCH_EPSILON:
            if is_entering:
                ratio = incoming_material.refractive_index / surface_material.refractive_index
            else:
                ratio = surface_material.refractive_index / self.vacuum_material.refractive_index

            cos_i = -ray.direction.dot(normal)
            sin_t_sq = ratio * ratio * (1.0 - cos_i * cos_i)

            if sin_t_sq > 1.0:
                # Total internal reflection: the transmitted share is mirrored instead
                specular_weight += surface_material.transmission_rate
            else:
                cos_t = math.sqrt(1.0 - sin_t_sq)
                refracted = ray.direction * ratio + normal * (ratio * cos_i - cos_t)
                branches.append(BranchedRay(
                    ray=Ray(intersection.point - normal * OFFSET_EPSILON, refracted),
                    weight=surface_material.transmission_rate,
                    passing_material=surface_material if is_entering else self.vacuum_material,
                    kind=BranchKind.TRANSMITTED
                ))

        if specular_weight > BRANCH_EPSILON:
            branches.append(BranchedRay(
                ray=Ray(intersection.point + normal * OFFSET_EPSILON, ray.direction.reflect(normal)),
                weight=specular_weight,
                passing_material=incoming_material,
                kind=BranchKind.SPECULAR
            ))

        return tuple(branches)

    def __repr__(self) -> str:
        return (
            f"RayTracer(background_color={self.background_color}, max_depth={self.max_depth}, "
            f"min_weight={self.min_weight})"
        )
