"""
Material model.

A material is a bundle of coefficients describing how a surface
scatters, reflects, transmits and absorbs light:
- albedo: base color multiplied into diffuse and indirect light
- diffuse_rate: share of light scattered about the surface normal
- specular_rate: share of light mirrored
- transmission_rate: share of light refracted through the surface
- refractive_index: index of refraction used with Snell's law
- absorption: per-channel Beer's law coefficients of the medium

The three rates are independent; they are not required to sum to one
and are never renormalized.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .vec3 import Color


def _clamp_rate(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class Material:
    """Surface and medium coefficients.

    The rates are clamped to [0, 1] on construction; out-of-range values
    are accepted and clamped, never rejected. Instances are frozen, so a
    material shared between surfaces behaves as an independent copy.
    """

    albedo: Color = field(default_factory=Color.white)
    diffuse_rate: float = 0.0
    specular_rate: float = 0.0
    transmission_rate: float = 0.0
    refractive_index: float = 1.0
    absorption: Color = field(default_factory=Color.black)

    def __post_init__(self):
        object.__setattr__(self, 'diffuse_rate', _clamp_rate(self.diffuse_rate))
        object.__setattr__(self, 'specular_rate', _clamp_rate(self.specular_rate))
        object.__setattr__(self, 'transmission_rate', _clamp_rate(self.transmission_rate))
        object.__setattr__(self, 'refractive_index', float(self.refractive_index))

    @classmethod
    def matte(cls, albedo: Color, diffuse_rate: float) -> Material:
        """Purely diffuse material."""
        return cls(albedo, diffuse_rate, 0.0, 0.0, 1.0, Color.black())

    @classmethod
    def mirror(cls, albedo: Color, specular_rate: float) -> Material:
        """Purely specular material."""
        return cls(albedo, 0.0, specular_rate, 0.0, 1.0, Color.black())

    @classmethod
    def transparent(cls, albedo: Color, transmission_rate: float, refractive_index: float) -> Material:
        """Purely transmissive dielectric."""
        return cls(albedo, 0.0, 0.0, transmission_rate, refractive_index, Color.black())

    @classmethod
    def diffuse_surface(cls) -> Material:
        """White Lambertian surface."""
        return cls.matte(Color.white(), 0.8)

    @classmethod
    def perfect_mirror(cls) -> Material:
        return cls.mirror(Color.white(), 1.0)

    @classmethod
    def glass(cls, transmission_rate: float = 0.9) -> Material:
        """Clear glass (IOR 1.5) with a little reflection."""
        return cls(Color.white(), 0.0, 0.1, transmission_rate, 1.5, Color.black())

    @classmethod
    def metal(cls, albedo: Color, specular_rate: float, diffuse_rate: float = 0.0) -> Material:
        """Opaque metal, optionally with some diffuse response."""
        return cls(albedo, diffuse_rate, specular_rate, 0.0, 1.0, Color.black())

    @classmethod
    def perfect_metal(cls) -> Material:
        return cls.metal(Color.white(), 1.0, 0.0)

    @classmethod
    def vacuum(cls) -> Material:
        """The ambient medium: fully transmissive, IOR 1.0, no absorption."""
        return cls(Color.black(), 0.0, 0.0, 1.0, 1.0, Color.black())
