"""Tests for the recursive ray tracer."""

import pytest
import math
import numpy as np

from lumentrace.vec3 import Vec3, Point3, Color
from lumentrace.ray import Ray
from lumentrace.materials import Material
from lumentrace.shapes import Sphere, Triangle, Intersection
from lumentrace.lights import Light
from lumentrace.tracer import (
    RayTracer, BranchKind, BranchedRay, beer_lambert_attenuation, OFFSET_EPSILON
)


def make_tracer(max_depth=8, min_weight=1e-3, background=None, vacuum=None):
    return RayTracer(
        background_color=background if background is not None else Color.black(),
        max_depth=max_depth,
        min_weight=min_weight,
        vacuum_material=vacuum if vacuum is not None else Material.vacuum()
    )


def big_floor(material, z=0.0):
    """Large triangle in the plane z with a +z normal."""
    return Triangle(Point3(-100, -100, z), Point3(100, -100, z), Point3(0, 100, z), material)


class TestRayTracerConfig:
    """Test tracer construction."""

    @pytest.mark.parametrize("max_depth", [0, -1, 2.5, True])
    def test_invalid_max_depth(self, max_depth):
        with pytest.raises(ValueError):
            make_tracer(max_depth=max_depth)

    @pytest.mark.parametrize("min_weight", [0, 0.0, -0.1])
    def test_invalid_min_weight(self, min_weight):
        with pytest.raises(ValueError):
            make_tracer(min_weight=min_weight)

    def test_valid_config(self):
        tracer = make_tracer(max_depth=1, min_weight=1e-6)
        assert tracer.max_depth == 1
        assert tracer.min_weight == 1e-6


class TestBeerLambert:
    """Test absorption along a segment."""

    def test_no_absorption(self):
        att = beer_lambert_attenuation(Color.black(), 100.0)
        assert att == Color(1, 1, 1)

    def test_per_channel(self):
        att = beer_lambert_attenuation(Color(0.1, 0.2, 0.3), 2.0)
        np.testing.assert_array_almost_equal(
            att.to_array(), [math.exp(-0.2), math.exp(-0.4), math.exp(-0.6)]
        )

    def test_returns_color(self):
        assert isinstance(beer_lambert_attenuation(Color(1, 1, 1), 1.0), Color)


class TestTraceBasics:
    """Test termination and light hits."""

    def test_empty_scene_returns_background(self):
        background = Color(0.1, 0.2, 0.3)
        tracer = make_tracer(background=background)
        result = tracer.trace(Ray(Point3(0, 0, 0), Vec3(0, 0, 1)), [], [])
        assert result == background

    def test_miss_returns_background(self):
        background = Color(0.5, 0.5, 0.5)
        tracer = make_tracer(background=background)
        sphere = Sphere(Point3(0, 0, 5), 1.0, Material.diffuse_surface())
        result = tracer.trace(Ray(Point3(0, 0, 0), Vec3(0, 0, -1)), [sphere], [])
        assert result == background

    def test_light_hit_returns_emission(self):
        tracer = make_tracer()
        light = Light(Point3(0, 0, 10), 1.0, Color(2, 3, 4))
        result = tracer.trace(Ray(Point3(0, 0, 0), Vec3(0, 0, 1)), [], [light])
        assert result == Color(2, 3, 4)

    def test_surface_in_front_of_light_hides_it(self):
        tracer = make_tracer()
        light = Light(Point3(0, 0, 10), 1.0, Color(2, 3, 4))
        inert = Material(Color.white(), 0.0, 0.0, 0.0, 1.0, Color.black())
        blocker = Sphere(Point3(0, 0, 5), 1.0, inert)
        result = tracer.trace(Ray(Point3(0, 0, 0), Vec3(0, 0, 1)), [blocker], [light])
        assert result == Color.black()

    def test_beer_law_on_light_hit(self):
        absorbing = Material(Color.black(), 0.0, 0.0, 1.0, 1.0, Color(0.1, 0.2, 0.3))
        tracer = make_tracer(vacuum=absorbing)
        light = Light(Point3(0, 0, 10), 1.0, Color(1, 1, 1))

        result = tracer.trace(Ray(Point3(0, 0, 0), Vec3(0, 0, 1)), [], [light])

        # Light surface is at t = 9
        np.testing.assert_array_almost_equal(
            result.to_array(), [math.exp(-0.9), math.exp(-1.8), math.exp(-2.7)]
        )

    def test_deterministic(self):
        tracer = make_tracer()
        glass = Material.glass()
        surfaces = [Sphere(Point3(0, 0, 0), 1.0, glass), big_floor(Material.diffuse_surface(), z=-1)]
        lights = [Light(Point3(0, 0, 10), 2.0, Color(5, 5, 5))]
        ray = Ray(Point3(0.3, -4, 2), Vec3(0, 1, -0.5))

        first = tracer.trace(ray, surfaces, lights)
        second = tracer.trace(ray, surfaces, lights)
        np.testing.assert_array_equal(first.to_array(), second.to_array())


class TestDirectLight:
    """Test Lambertian direct lighting and shadows."""

    @pytest.fixture
    def floor(self):
        return Triangle(
            Point3(-10, -10, 0), Point3(10, -10, 0), Point3(0, 10, 0),
            Material.matte(Color.white(), 1.0)
        )

    @pytest.fixture
    def light(self):
        return Light(Point3(0, 0, 10), 1.0, Color(2, 2, 2))

    def test_unshadowed(self, floor, light):
        # Depth 1 leaves only the direct term
        tracer = make_tracer(max_depth=1)
        result = tracer.trace(Ray(Point3(1, 0, 1), Vec3(0, 0, -1)), [floor], [light])

        expected = 2.0 * 10.0 / math.sqrt(101.0)
        np.testing.assert_array_almost_equal(result.to_array(), [expected] * 3)

    def test_shadowed(self, floor, light):
        tracer = make_tracer(max_depth=1)
        occluder = Sphere(Point3(0, 0, 5), 1.0, Material.diffuse_surface())
        result = tracer.trace(Ray(Point3(1, 0, 1), Vec3(0, 0, -1)), [floor, occluder], [light])
        assert result == Color.black()

    def test_direct_light_helper(self, floor, light):
        tracer = make_tracer()
        hit = floor.intersect(Ray(Point3(0, 0, 1), Vec3(0, 0, -1)))
        assert tracer.direct_light(hit, light, [floor]) == Color(2, 2, 2)

        occluder = Sphere(Point3(0, 0, 5), 1.0, Material.diffuse_surface())
        assert tracer.direct_light(hit, light, [floor, occluder]) == Color.black()

    def test_light_behind_surface(self, floor):
        tracer = make_tracer()
        below = Light(Point3(0, 0, -10), 1.0, Color(2, 2, 2))
        hit = floor.intersect(Ray(Point3(0, 0, 1), Vec3(0, 0, -1)))
        assert tracer.direct_light(hit, below, [floor]) == Color.black()

    def test_scaled_by_diffuse_rate_and_albedo(self, light):
        material = Material.matte(Color(0.5, 1.0, 0.25), 0.5)
        floor = Triangle(Point3(-10, -10, 0), Point3(10, -10, 0), Point3(0, 10, 0), material)
        tracer = make_tracer()
        hit = floor.intersect(Ray(Point3(0, 0, 1), Vec3(0, 0, -1)))
        assert tracer.direct_light(hit, light, [floor]) == Color(0.5, 1.0, 0.25)


class TestBranchRays:
    """Test secondary ray generation."""

    def test_diffuse_along_oriented_normal(self):
        tracer = make_tracer()
        matte = Material.matte(Color.white(), 0.8)
        hit = Intersection(t=1.0, point=Point3(0, 0, 0), normal=Vec3(0, 0, 1), material=matte)

        branches = tracer.branch_rays(Ray(Point3(1, 0, 1), Vec3(-1, 0, -1)), hit, Material.vacuum())

        assert len(branches) == 1
        branch = branches[0]
        assert isinstance(branch, BranchedRay)
        assert branch.kind == BranchKind.DIFFUSE
        assert branch.weight == pytest.approx(0.8)
        assert branch.ray.direction == Vec3(0, 0, 1)
        assert branch.ray.origin == Point3(0, 0, OFFSET_EPSILON)

    def test_refraction_at_normal_incidence(self):
        tracer = make_tracer()
        glass = Material.transparent(Color.white(), 1.0, 1.5)
        sphere = Sphere(Point3(0, 0, 0), 1.0, glass)
        ray = Ray(Point3(0, 0, -5), Vec3(0, 0, 1))
        hit = sphere.intersect(ray)

        branches = tracer.branch_rays(ray, hit, Material.vacuum())

        assert len(branches) == 1
        branch = branches[0]
        assert branch.kind == BranchKind.TRANSMITTED
        assert branch.weight == pytest.approx(1.0)
        assert branch.passing_material is glass
        np.testing.assert_array_almost_equal(branch.ray.direction.to_array(), [0, 0, 1])
        # Starts just inside the surface
        assert branch.ray.origin.z > -1.0

    def test_refraction_bends_toward_normal(self):
        tracer = make_tracer()
        glass = Material.transparent(Color.white(), 1.0, 1.5)
        hit = Intersection(t=1.0, point=Point3(0, 0, 0), normal=Vec3(0, 0, -1), material=glass)
        ray = Ray(Point3(-0.5, 0, -math.sqrt(3) / 2), Vec3(0.5, 0, math.sqrt(3) / 2))

        (branch,) = tracer.branch_rays(ray, hit, Material.vacuum())

        # Snell: sin(theta_t) = sin(30 deg) / 1.5
        assert branch.ray.direction.x == pytest.approx(1.0 / 3.0)
        assert branch.ray.direction.z > 0

    def test_exit_passes_vacuum(self):
        tracer = make_tracer()
        glass = Material.transparent(Color.white(), 1.0, 1.5)
        hit = Intersection(t=1.0, point=Point3(0, 0, 1), normal=Vec3(0, 0, 1), material=glass)

        (branch,) = tracer.branch_rays(Ray(Point3(0, 0, 0), Vec3(0, 0, 1)), hit, glass)

        assert branch.kind == BranchKind.TRANSMITTED
        assert branch.passing_material is tracer.vacuum_material
        np.testing.assert_array_almost_equal(branch.ray.direction.to_array(), [0, 0, 1])

    def test_total_internal_reflection_folds_into_specular(self):
        tracer = make_tracer()
        glass = Material(Color.white(), 0.0, 0.1, 0.9, 1.5, Color.black())
        hit = Intersection(t=1.0, point=Point3(0, 0, 0), normal=Vec3(0, 0, 1), material=glass)
        ray = Ray(Point3(-1, 0, -0.2), Vec3(1, 0, 0.2))

        branches = tracer.branch_rays(ray, hit, glass)

        assert len(branches) == 1
        branch = branches[0]
        assert branch.kind == BranchKind.SPECULAR
        assert branch.weight == pytest.approx(1.0)
        assert branch.passing_material is glass
        np.testing.assert_array_almost_equal(
            branch.ray.direction.to_array(), Vec3(1, 0, -0.2).normalize().to_array()
        )

    def test_branch_order(self):
        tracer = make_tracer()
        material = Material(Color.white(), 0.2, 0.3, 0.5, 1.5, Color.black())
        hit = Intersection(t=1.0, point=Point3(0, 0, 0), normal=Vec3(0, 0, 1), material=material)

        branches = tracer.branch_rays(Ray(Point3(0, 0, 1), Vec3(0, 0, -1)), hit, Material.vacuum())

        assert [b.kind for b in branches] == [
            BranchKind.DIFFUSE, BranchKind.TRANSMITTED, BranchKind.SPECULAR
        ]
        assert [b.weight for b in branches] == pytest.approx([0.2, 0.5, 0.3])

    def test_specular_reflects(self):
        tracer = make_tracer()
        mirror = Material.perfect_mirror()
        hit = Intersection(t=1.0, point=Point3(0, 0, 0), normal=Vec3(0, 0, 1), material=mirror)
        vacuum = Material.vacuum()

        (branch,) = tracer.branch_rays(Ray(Point3(-1, 0, 1), Vec3(1, 0, -1)), hit, vacuum)

        assert branch.kind == BranchKind.SPECULAR
        assert branch.passing_material is vacuum
        np.testing.assert_array_almost_equal(
            branch.ray.direction.to_array(), Vec3(1, 0, 1).normalize().to_array()
        )

    def test_negligible_rates_skipped(self):
        tracer = make_tracer()
        material = Material(Color.white(), 1e-6, 1e-6, 1e-6, 1.5, Color.black())
        hit = Intersection(t=1.0, point=Point3(0, 0, 0), normal=Vec3(0, 0, 1), material=material)
        assert tracer.branch_rays(Ray(Point3(0, 0, 1), Vec3(0, 0, -1)), hit, Material.vacuum()) == ()


class TestRecursion:
    """Test the recursive combination and termination rules."""

    def test_mirror_reflects_light(self):
        tracer = make_tracer()
        mirror = Material.mirror(Color(0.5, 0.5, 0.5), 1.0)
        light = Light(Point3(0, 0, 10), 1.0, Color(4, 4, 4))

        result = tracer.trace(Ray(Point3(0, 0, 1), Vec3(0, 0, -1)), [big_floor(mirror)], [light])

        # albedo * emission; no diffuse term
        np.testing.assert_array_almost_equal(result.to_array(), [2, 2, 2])

    def test_branch_weight_applied_twice(self):
        tracer = make_tracer()
        mirror = Material.mirror(Color.white(), 0.5)
        light = Light(Point3(0, 0, 10), 1.0, Color(4, 4, 4))

        result = tracer.trace(Ray(Point3(0, 0, 1), Vec3(0, 0, -1)), [big_floor(mirror)], [light])

        # Once through the accumulated weight, once when combining
        np.testing.assert_array_almost_equal(result.to_array(), [1, 1, 1])

    def test_depth_bounded_between_mirrors(self, monkeypatch):
        tracer = make_tracer(max_depth=5, min_weight=1e-9)
        mirror = Material.perfect_mirror()
        surfaces = [big_floor(mirror, z=0.0), big_floor(mirror, z=1.0)]

        depths = []
        original = tracer._trace_recursive

        def recording(ray, surfaces, lights, depth, weight, passing_material):
            depths.append(depth)
            return original(ray, surfaces, lights, depth, weight, passing_material)

        monkeypatch.setattr(tracer, "_trace_recursive", recording)
        result = tracer.trace(Ray(Point3(0, 0, 0.5), Vec3(0, 0, -1)), surfaces, [])

        assert result == Color.black()
        assert max(depths) == 5
        assert depths == [0, 1, 2, 3, 4, 5]

    def test_min_weight_stops_recursion(self, monkeypatch):
        tracer = make_tracer(max_depth=100, min_weight=0.1)
        mirror = Material.mirror(Color.white(), 0.5)
        surfaces = [big_floor(mirror, z=0.0), big_floor(mirror, z=1.0)]

        depths = []
        original = tracer._trace_recursive

        def recording(ray, surfaces, lights, depth, weight, passing_material):
            depths.append(depth)
            return original(ray, surfaces, lights, depth, weight, passing_material)

        monkeypatch.setattr(tracer, "_trace_recursive", recording)
        tracer.trace(Ray(Point3(0, 0, 0.5), Vec3(0, 0, -1)), surfaces, [])

        # Weights 1, 0.5, 0.25, 0.125, 0.0625
        assert max(depths) == 4

    def test_terminated_ray_returns_background(self):
        background = Color(0.2, 0.2, 0.2)
        tracer = make_tracer(max_depth=1, background=background)
        mirror = Material.perfect_mirror()

        result = tracer.trace(Ray(Point3(0, 0, 1), Vec3(0, 0, -1)), [big_floor(mirror)], [])

        # The reflected ray is cut off and contributes the background
        assert result == background

    def test_glass_sphere_transmits_light(self):
        tracer = make_tracer()
        glass = Material.transparent(Color.white(), 1.0, 1.5)
        sphere = Sphere(Point3(0, 0, 0), 1.0, glass)
        light = Light(Point3(0, 0, 10), 1.0, Color(3, 3, 3))

        result = tracer.trace(Ray(Point3(0, 0, -5), Vec3(0, 0, 1)), [sphere], [light])

        np.testing.assert_array_almost_equal(result.to_array(), [3, 3, 3])

    def test_absorbing_glass_attenuates(self):
        tracer = make_tracer()
        glass = Material(Color.white(), 0.0, 0.0, 1.0, 1.5, Color(0.5, 0.0, 0.0))
        sphere = Sphere(Point3(0, 0, 0), 1.0, glass)
        light = Light(Point3(0, 0, 10), 1.0, Color(3, 3, 3))

        result = tracer.trace(Ray(Point3(0, 0, -5), Vec3(0, 0, 1)), [sphere], [light])

        # Two units of glass along the axis
        assert result.r == pytest.approx(3 * math.exp(-1.0), rel=1e-3)
        assert result.g == pytest.approx(3.0, rel=1e-6)


class TestDegenerateGeometry:
    """Test that degenerate input resolves to ordinary misses."""

    def test_zero_radius_sphere(self):
        background = Color(0.1, 0.2, 0.3)
        tracer = make_tracer(background=background)
        point_sphere = Sphere(Point3(0, 0, 5), 0.0, Material.diffuse_surface())

        result = tracer.trace(Ray(Point3(0, 0, 0), Vec3(0, 0, 1)), [point_sphere], [])

        # The hit has no normal, so its only branch has no direction and misses
        np.testing.assert_array_almost_equal(result.to_array(), [0.08, 0.16, 0.24])

    def test_zero_radius_sphere_with_light(self):
        tracer = make_tracer()
        point_sphere = Sphere(Point3(0, 0, 5), 0.0, Material.diffuse_surface())
        light = Light(Point3(0, 0, 10), 1.0, Color(2, 2, 2))

        result = tracer.trace(Ray(Point3(0, 0, 0), Vec3(0, 0, 1)), [point_sphere], [light])

        assert np.all(np.isfinite(result.to_array()))

    def test_zero_area_triangle(self):
        tracer = make_tracer()
        sliver = Triangle(Point3(-1, 0, 0), Point3(0, 0, 0), Point3(1, 0, 0), Material.diffuse_surface())
        result = tracer.trace(Ray(Point3(0, 0, 1), Vec3(0, 0, -1)), [sliver], [])
        assert result == Color.black()
