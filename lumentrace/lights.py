"""
Spherical light sources.

A light plays two roles in the tracer:
- a point target for direct (Lambertian) lighting and shadow rays
- a visible sphere: a ray that reaches it before any surface returns
  its emission directly
"""

from __future__ import annotations
from typing import Optional
import math

from .vec3 import Vec3, Point3, Color
from .ray import Ray
from .shapes import Intersection, solve_sphere
from .materials import Material

# Lights are not shaded; hits carry this inert material
LIGHT_MATERIAL = Material(Color.black(), 0.0, 0.0, 0.0, 1.0, Color.black())


class Light:
    """A spherical emitter."""

    def __init__(self, center: Point3, radius: float, emission: Color):
        """Create a light.

        Args:
            center: Center of the light sphere
            radius: Radius of the visible sphere
            emission: HDR emitted color (may exceed 1.0)
        """
        self.center = center
        self.radius = radius
        self.emission = emission

    def intersect(self, ray: Ray) -> Optional[Intersection]:
        """Test ray intersection with the light sphere."""
        t = solve_sphere(ray, self.center, self.radius)
        if t is None:
            return None

        point = ray.at(t)
        return Intersection(t=t, point=point, normal=self.normal_at(point), material=LIGHT_MATERIAL)

    def normal_at(self, point: Point3) -> Vec3:
        return (point - self.center).normalize()

    def contains_point(self, point: Point3) -> bool:
        return (point - self.center).length_squared() <= self.radius * self.radius

    def surface_area(self) -> float:
        return 4.0 * math.pi * self.radius * self.radius

    def luminous_flux(self) -> float:
        """Mean emission over the channels times the surface area."""
        emission_magnitude = (self.emission.r + self.emission.g + self.emission.b) / 3.0
        return emission_magnitude * self.surface_area()

    def __repr__(self) -> str:
        return f"Light(center={self.center}, radius={self.radius}, emission={self.emission})"
