"""
Geometric surfaces for the ray tracer.

Each surface implements the Surface interface: an `intersect` method and
a read-only `material`. The tracer needs nothing else from a surface.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple
import math

from .vec3 import Vec3, Point3
from .ray import Ray
from .materials import Material

# Determinant threshold below which a ray is treated as parallel to a triangle
PARALLEL_EPSILON = 1e-8


@dataclass(frozen=True)
class Intersection:
    """A ray-surface hit.

    Attributes:
        t: Distance along the ray (always > 0)
        point: The intersection point in world space
        normal: Unit surface normal. Not flipped toward the ray; callers
            decide orientation from the incident direction.
        material: The material of the surface that was hit
    """
    t: float
    point: Point3
    normal: Vec3
    material: Material


class Surface(ABC):
    """Abstract base class for anything a ray can hit."""

    @abstractmethod
    def intersect(self, ray: Ray) -> Optional[Intersection]:
        """Return the nearest hit in front of the ray origin, or None."""

    @property
    @abstractmethod
    def material(self) -> Material:
        """The material of this surface."""


def solve_sphere(ray: Ray, center: Point3, radius: float) -> Optional[float]:
    """Solve |O + tD - C|^2 = r^2 for the nearest positive t.

    Expands to the quadratic a*t^2 + b*t + c = 0 with
    a = D.D, b = 2 D.(O-C), c = (O-C).(O-C) - r^2.

    Returns:
        The smaller positive root, else the larger positive root,
        else None (including a negative discriminant and a zero direction).
    """
    oc = ray.origin - center
    d = ray.direction

    a = d.dot(d)
    # A zero direction (e.g. spawned from a zero-radius sphere's normal) hits nothing
    if a == 0.0:
        return None
    b = 2.0 * oc.dot(d)
    c = oc.dot(oc) - radius * radius

    discriminant = b * b - 4.0 * a * c
    if discriminant < 0:
        return None

    sqrt_disc = math.sqrt(discriminant)
    t1 = (-b - sqrt_disc) / (2.0 * a)
    t2 = (-b + sqrt_disc) / (2.0 * a)

    if t1 > 0.0:
        return t1
    if t2 > 0.0:
        return t2
    return None


class Sphere(Surface):
    """A sphere defined by center and radius."""

    def __init__(self, center: Point3, radius: float, material: Material):
        """Create a sphere.

        Args:
            center: Center point of the sphere
            radius: Radius of the sphere
            material: Material for shading
        """
        self.center = center
        self.radius = radius
        self._material = material

    @property
    def material(self) -> Material:
        return self._material

    def intersect(self, ray: Ray) -> Optional[Intersection]:
        """Test ray-sphere intersection using the quadratic formula."""
        t = solve_sphere(ray, self.center, self.radius)
        if t is None:
            return None

        point = ray.at(t)
        return Intersection(t=t, point=point, normal=self.normal_at(point), material=self._material)

    def normal_at(self, point: Point3) -> Vec3:
        """Outward unit normal at a point on the surface."""
        return (point - self.center).normalize()

    def contains_point(self, point: Point3) -> bool:
        return (point - self.center).length_squared() <= self.radius * self.radius

    def surface_area(self) -> float:
        return 4.0 * math.pi * self.radius * self.radius

    def volume(self) -> float:
        return 4.0 / 3.0 * math.pi * self.radius ** 3

    def centroid(self) -> Point3:
        return self.center

    def bounds(self) -> Tuple[Point3, Point3]:
        """Axis-aligned (min, max) corners enclosing the sphere."""
        r = abs(self.radius)
        r_vec = Vec3(r, r, r)
        return self.center - r_vec, self.center + r_vec

    def __repr__(self) -> str:
        return f"Sphere(center={self.center}, radius={self.radius})"


class Triangle(Surface):
    """A single-sided-normal triangle defined by three vertices.

    The face normal follows the vertex winding: (v1 - v0) x (v2 - v0).
    """

    def __init__(self, v0: Point3, v1: Point3, v2: Point3, material: Material):
        """Create a triangle from three vertices.

        Args:
            v0, v1, v2: The three vertices; their order fixes the normal
            material: Material for shading
        """
        self.v0 = v0
        self.v1 = v1
        self.v2 = v2
        self._material = material

        # Pre-compute edges and normal
        self.e1 = v1 - v0
        self.e2 = v2 - v0
        self._normal = self.e1.cross(self.e2).normalize()

    @property
    def material(self) -> Material:
        return self._material

    def intersect(self, ray: Ray) -> Optional[Intersection]:
        """Test ray-triangle intersection using the Möller-Trumbore algorithm."""
        h = ray.direction.cross(self.e2)
        det = self.e1.dot(h)

        # Ray is parallel to the triangle plane (or the triangle is degenerate)
        if abs(det) < PARALLEL_EPSILON:
            return None

        inv_det = 1.0 / det
        s = ray.origin - self.v0
        u = inv_det * s.dot(h)

        if u < 0.0 or u > 1.0:
            return None

        q = s.cross(self.e1)
        v = inv_det * ray.direction.dot(q)

        if v < 0.0 or u + v > 1.0:
            return None

        t = inv_det * self.e2.dot(q)
        if t <= 0.0:
            return None

        return Intersection(t=t, point=ray.at(t), normal=self._normal, material=self._material)

    def normal_unnormalized(self) -> Vec3:
        """Cross product of the edges; its length is twice the area."""
        return self.e1.cross(self.e2)

    def normal(self) -> Vec3:
        return self._normal

    def area(self) -> float:
        return self.normal_unnormalized().length() * 0.5

    def centroid(self) -> Point3:
        return (self.v0 + self.v1 + self.v2) / 3.0

    def contains_point(self, point: Point3) -> bool:
        """Check whether a point on the triangle's plane lies within its edges."""
        normal = self._normal
        d0 = (self.v1 - self.v0).cross(point - self.v0).dot(normal)
        d1 = (self.v2 - self.v1).cross(point - self.v1).dot(normal)
        d2 = (self.v0 - self.v2).cross(point - self.v2).dot(normal)

        return (d0 >= 0 and d1 >= 0 and d2 >= 0) or (d0 <= 0 and d1 <= 0 and d2 <= 0)

    def bounds(self) -> Tuple[Point3, Point3]:
        """Axis-aligned (min, max) corners enclosing the triangle."""
        min_pt = Point3(
            min(self.v0.x, self.v1.x, self.v2.x),
            min(self.v0.y, self.v1.y, self.v2.y),
            min(self.v0.z, self.v1.z, self.v2.z)
        )
        max_pt = Point3(
            max(self.v0.x, self.v1.x, self.v2.x),
            max(self.v0.y, self.v1.y, self.v2.y),
            max(self.v0.z, self.v1.z, self.v2.z)
        )
        return min_pt, max_pt

    def __repr__(self) -> str:
        return f"Triangle(v0={self.v0}, v1={self.v1}, v2={self.v2})"
