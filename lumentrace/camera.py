"""
Camera module for generating primary rays.

Supports:
- Perspective projection with a configurable vertical field of view
- Arbitrary orientation from a forward and an up vector
- Anti-aliasing with a regular subdivisions x subdivisions sample grid
"""

from __future__ import annotations
import math
from typing import List

from .vec3 import Vec3, Point3
from .ray import Ray


class Camera:
    """A pinhole camera that owns the image resolution and sampling grid."""

    def __init__(
        self,
        position: Point3,
        direction: Vec3,
        up: Vec3 = Vec3(0, 1, 0),
        fov_degrees: float = 90.0,
        width: int = 320,
        height: int = 180,
        subdivisions: int = 1
    ):
        """Create a camera.

        Args:
            position: Camera position in world space
            direction: Viewing direction (normalized here)
            up: World up vector (normalized here)
            fov_degrees: Vertical field of view in degrees
            width: Image width in pixels
            height: Image height in pixels
            subdivisions: Samples per pixel along each axis (2 = 2x2 grid)
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Image size must be positive, got {width}x{height}")
        if subdivisions <= 0:
            raise ValueError(f"subdivisions must be positive, got {subdivisions}")

        self.position = position
        self.direction = direction.normalize()
        self.up = up.normalize()
        self.fov_degrees = fov_degrees
        self.width = width
        self.height = height
        self.subdivisions = subdivisions

        if self.direction.length_squared() == 0.0:
            raise ValueError("Camera direction must be non-zero")
        if self.direction.cross(self.up).length_squared() == 0.0:
            raise ValueError(f"Camera up {up} must be non-zero and not parallel to direction {direction}")

        self.right, self.true_up, self.forward = self.build_basis()

        # View plane at distance 1 in front of the camera
        self.view_height = 2.0 * math.tan(math.radians(fov_degrees) / 2.0)
        self.view_width = self.view_height * width / height

    def build_basis(self) -> tuple[Vec3, Vec3, Vec3]:
        """Return the orthonormal (right, up, forward) camera basis."""
        forward = self.direction
        right = forward.cross(self.up).normalize()
        up = right.cross(forward).normalize()
        return right, up, forward

    @property
    def samples_per_pixel(self) -> int:
        return self.subdivisions * self.subdivisions

    def pixel_rays(self, x: int, y: int) -> List[Ray]:
        """Generate the sample rays for one pixel.

        Args:
            x: Column, 0 at the left edge
            y: Row, 0 at the top edge

        Returns:
            subdivisions^2 rays through the centers of the sub-pixel cells
        """
        sample_size = 1.0 / self.subdivisions
        rays = []

        for sy in range(self.subdivisions):
            for sx in range(self.subdivisions):
                offset_x = (sx + 0.5) * sample_size
                offset_y = (sy + 0.5) * sample_size

                # Image-plane coordinates in [-0.5, 0.5]
                u = (x + offset_x) / self.width - 0.5
                v = (y + offset_y) / self.height - 0.5

                direction = (
                    self.forward
                    + self.right * (u * self.view_width)
                    - self.true_up * (v * self.view_height)
                )
                rays.append(Ray(self.position, direction))

        return rays

    def generate_rays(self) -> List[List[List[Ray]]]:
        """Generate sample rays for the whole image, indexed [row][column][sample]."""
        return [
            [self.pixel_rays(x, y) for x in range(self.width)]
            for y in range(self.height)
        ]

    def __repr__(self) -> str:
        return (
            f"Camera(position={self.position}, direction={self.direction}, "
            f"{self.width}x{self.height}, subdivisions={self.subdivisions})"
        )
