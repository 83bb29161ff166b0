"""
Test suite for geodesic calculations.
Tests sphere and ellipsoid distance, bearing and destination point.
"""

import math

import numpy as np
import pytest

from geo_coordinates import Coordinate, CoordinateError
from geo_earth import EQUATORIAL_RADIUS, EarthModel, UnsupportedEarthModelError
from geo_formats import DD, DMS
from geo_geodesic import (
    ConvergenceError,
    GeodesicNotImplementedError,
    GeodesicResult,
    bearing,
    distance,
    distance_matrix,
    haversine_distance,
    haversine_vectorized,
    inverse,
    normalize_bearing,
    normalize_longitude,
    path_length,
    rhumb_bearing,
    translate,
    vincenty_inverse,
)

NEW_YORK = Coordinate(40.7128, -74.0060)
LOS_ANGELES = Coordinate(34.0522, -118.2437)

ONE_DEGREE = EQUATORIAL_RADIUS * math.pi / 180


@pytest.fixture
def flinders_peak():
    """Start point of the classic Vincenty test line."""
    return DMS.from_strings('37°57\'03.72030"S', '144°25\'29.52440"E').to_canonical()


@pytest.fixture
def buninyong():
    """End point of the classic Vincenty test line."""
    return DMS.from_strings('37°39\'10.15610"S', '143°55\'35.38390"E').to_canonical()


class TestNormalization:
    """Test suite for angle normalization."""

    def test_normalize_bearing(self):
        """Test bearings wrap into [0, 360)."""
        assert normalize_bearing(0.0) == 0.0
        assert normalize_bearing(360.0) == 0.0
        assert normalize_bearing(-90.0) == 270.0
        assert normalize_bearing(725.0) == pytest.approx(5.0)
        assert 0.0 <= normalize_bearing(-1e-17) < 360.0

    def test_normalize_longitude(self):
        """Test longitudes wrap into [-180, 180)."""
        assert normalize_longitude(190.0) == pytest.approx(-170.0)
        assert normalize_longitude(-190.0) == pytest.approx(170.0)
        assert normalize_longitude(45.0) == 45.0


class TestSphere:
    """Test suite for the spherical model."""

    def test_one_degree_of_latitude(self):
        """Test one degree along a meridian."""
        assert haversine_distance(Coordinate(0, 0), Coordinate(1, 0)) == pytest.approx(111319.49, abs=0.01)

    def test_one_degree_of_longitude_on_equator(self):
        """Test one degree along the equator."""
        assert distance(Coordinate(0, 0), Coordinate(0, 1), EarthModel.SPHERE) == pytest.approx(ONE_DEGREE)

    def test_coincident_points(self):
        """Test zero distance between identical points."""
        assert distance(NEW_YORK, NEW_YORK, 'SPHERE') == 0.0

    def test_symmetry(self):
        """Test distance does not depend on direction."""
        assert distance(NEW_YORK, LOS_ANGELES, 'SPHERE') == distance(LOS_ANGELES, NEW_YORK, 'SPHERE')

    def test_antipodal(self):
        """Test half the circumference between antipodes."""
        half = distance(Coordinate(0, 0), Coordinate(0, 180), 'SPHERE')
        assert half == pytest.approx(math.pi * EQUATORIAL_RADIUS)

    def test_rhumb_bearing_cardinal_directions(self):
        """Test bearings along meridians and the equator."""
        origin = Coordinate(0, 0)
        assert rhumb_bearing(origin, Coordinate(10, 0)) == pytest.approx(0.0)
        assert rhumb_bearing(origin, Coordinate(0, 10)) == pytest.approx(90.0)
        assert rhumb_bearing(origin, Coordinate(-10, 0)) == pytest.approx(180.0)
        assert rhumb_bearing(origin, Coordinate(0, -10)) == pytest.approx(270.0)

    def test_rhumb_bearing_antimeridian(self):
        """Test the shorter way across the antimeridian is taken."""
        assert bearing(Coordinate(0, 179), Coordinate(0, -179), 'SPHERE') == pytest.approx(90.0)
        assert bearing(Coordinate(0, -179), Coordinate(0, 179), 'SPHERE') == pytest.approx(270.0)

    def test_rhumb_bearing_from_pole(self):
        """Test bearing from a pole is finite."""
        result = bearing(Coordinate(-90, 0), Coordinate(0, 0), 'SPHERE')
        assert 0.0 <= result < 360.0

    def test_translate(self):
        """Test destination one degree east on the equator."""
        destination = translate(Coordinate(0, 0), 90, ONE_DEGREE, EarthModel.SPHERE)
        assert destination.latitude == pytest.approx(0.0, abs=1e-9)
        assert destination.longitude == pytest.approx(1.0)

    def test_translate_north(self):
        """Test destination one degree north."""
        destination = translate(Coordinate(10, 20), 0, ONE_DEGREE, 'SPHERE')
        assert destination.latitude == pytest.approx(11.0)
        assert destination.longitude == pytest.approx(20.0)

    def test_translate_negative_bearing(self):
        """Test bearings outside [0, 360) are normalized."""
        west = translate(Coordinate(0, 0), -90, ONE_DEGREE, 'SPHERE')
        assert west.longitude == pytest.approx(-1.0)

    def test_translate_across_antimeridian(self):
        """Test the destination longitude is wrapped."""
        destination = translate(Coordinate(0, 179.5), 90, ONE_DEGREE, 'SPHERE')
        assert destination.longitude == pytest.approx(-179.5)

    def test_translate_then_distance(self):
        """Test translated point lies at the requested distance."""
        destination = translate(NEW_YORK, 250.0, 500000.0, 'SPHERE')
        assert distance(NEW_YORK, destination, 'SPHERE') == pytest.approx(500000.0, rel=1e-9)

    def test_translate_default_model(self):
        """Test translation defaults to the sphere."""
        assert NEW_YORK.translate(45, 1000) == translate(NEW_YORK, 45, 1000, 'SPHERE')


class TestVincenty:
    """Test suite for the WGS84 ellipsoid model."""

    def test_reference_line(self, flinders_peak, buninyong):
        """Test the Flinders Peak to Buninyong reference line."""
        result = vincenty_inverse(flinders_peak, buninyong)
        assert result.distance == pytest.approx(54972.271, abs=0.01)
        assert result.bearing == pytest.approx(306.868158, abs=1e-5)
        assert result.iterations >= 1

    def test_new_york_los_angeles(self):
        """Test a long line against the spherical estimate."""
        ellipsoid = distance(NEW_YORK, LOS_ANGELES, EarthModel.WGS84)
        sphere = distance(NEW_YORK, LOS_ANGELES, EarthModel.SPHERE)
        assert 3930000 < ellipsoid < 3960000
        assert ellipsoid == pytest.approx(sphere, rel=0.005)

    def test_symmetry(self):
        """Test distance does not depend on direction."""
        forward = distance(NEW_YORK, LOS_ANGELES, 'WGS84')
        backward = distance(LOS_ANGELES, NEW_YORK, 'WGS84')
        assert forward == pytest.approx(backward, abs=1e-3)

    def test_coincident_points(self):
        """Test identical points have zero distance and bearing."""
        result = inverse(NEW_YORK, NEW_YORK, 'WGS84')
        assert result.distance == 0.0
        assert result.bearing == 0.0

    def test_equator(self):
        """Test a line along the equator."""
        result = vincenty_inverse(Coordinate(0, 0), Coordinate(0, 1))
        assert result.distance == pytest.approx(111319.49, abs=0.01)
        assert result.bearing == pytest.approx(90.0)

    def test_meridian(self):
        """Test a line along a meridian is shorter than on the sphere."""
        result = vincenty_inverse(Coordinate(0, 0), Coordinate(1, 0))
        assert result.bearing == pytest.approx(0.0)
        assert 110500 < result.distance < 110700

    def test_bearing_range(self):
        """Test bearings lie in [0, 360)."""
        for end in [Coordinate(-10, -10), Coordinate(10, -10), Coordinate(-10, 10), Coordinate(10, 10)]:
            result = bearing(Coordinate(0, 0), end, 'WGS84')
            assert 0.0 <= result < 360.0

        assert bearing(Coordinate(0, 0), Coordinate(0, -1), 'WGS84') == pytest.approx(270.0)

    def test_iteration_cap(self):
        """Test non-convergence is reported."""
        with pytest.raises(ConvergenceError) as excinfo:
            vincenty_inverse(NEW_YORK, LOS_ANGELES, max_iterations=1, tolerance=1e-15)

        assert excinfo.value.iterations == 1
        assert excinfo.value.start == NEW_YORK
        assert isinstance(excinfo.value, CoordinateError)

    def test_near_antipodal_terminates(self):
        """Test near-antipodal points either converge or raise."""
        try:
            result = vincenty_inverse(Coordinate(0, 0), Coordinate(0.5, 179.7))
        except ConvergenceError:
            return

        assert isinstance(result, GeodesicResult)

    def test_translate_not_implemented(self):
        """Test ellipsoid destination point is not available."""
        with pytest.raises(GeodesicNotImplementedError) as excinfo:
            translate(NEW_YORK, 45.0, 1000.0, EarthModel.WGS84)

        assert isinstance(excinfo.value, NotImplementedError)
        assert excinfo.value.earth_model is EarthModel.WGS84


class TestDispatch:
    """Test suite for model selection and inputs."""

    def test_unsupported_model(self):
        """Test unknown Earth models are rejected."""
        with pytest.raises(UnsupportedEarthModelError):
            distance(NEW_YORK, LOS_ANGELES, 'FLAT')

        with pytest.raises(UnsupportedEarthModelError):
            translate(NEW_YORK, 0, 10, 'FLAT')

    def test_default_model_is_ellipsoid(self):
        """Test distance defaults to WGS84."""
        assert NEW_YORK.distance_to(LOS_ANGELES) == vincenty_inverse(NEW_YORK, LOS_ANGELES).distance
        assert NEW_YORK.bearing_to(LOS_ANGELES) == vincenty_inverse(NEW_YORK, LOS_ANGELES).bearing

    def test_views_and_tuples(self):
        """Test views and (lat, lon) tuples are accepted."""
        expected = distance(NEW_YORK, LOS_ANGELES, 'SPHERE')
        assert distance(DD.from_canonical(NEW_YORK), (34.0522, -118.2437), 'SPHERE') == expected

    def test_inverse_sphere(self):
        """Test inverse on the sphere."""
        result = inverse(Coordinate(0, 0), Coordinate(0, 1), 'SPHERE')
        assert isinstance(result, GeodesicResult)
        assert result.distance == pytest.approx(ONE_DEGREE)
        assert result.bearing == pytest.approx(90.0)
        assert result.iterations == 0


class TestVectorized:
    """Test suite for array helpers."""

    def test_haversine_vectorized(self):
        """Test array distances match the scalar formula."""
        lats = np.array([0.0, 40.7128, -33.92487])
        lons = np.array([0.0, -74.0060, 18.42406])

        result = haversine_vectorized(lats, lons, np.roll(lats, 1), np.roll(lons, 1))
        assert result.shape == (3,)

        expected = haversine_distance(Coordinate(lats[1], lons[1]), Coordinate(lats[0], lons[0]))
        assert result[1] == pytest.approx(expected)

    def test_path_length_sphere(self):
        """Test path length along the equator."""
        points = [Coordinate(0, 0), Coordinate(0, 1), Coordinate(0, 2)]
        assert path_length(points, 'SPHERE') == pytest.approx(2 * ONE_DEGREE)

    def test_path_length_ellipsoid(self):
        """Test path length is the sum of the legs."""
        points = [NEW_YORK, Coordinate(39.9526, -75.1652), LOS_ANGELES]
        expected = distance(points[0], points[1], 'WGS84') + distance(points[1], points[2], 'WGS84')
        assert path_length(points, 'WGS84') == pytest.approx(expected)

    def test_path_length_short(self):
        """Test paths with fewer than two points."""
        assert path_length([], 'SPHERE') == 0.0
        assert path_length([NEW_YORK]) == 0.0

    @pytest.mark.parametrize('model', ['SPHERE', 'WGS84'])
    def test_distance_matrix(self, model):
        """Test the matrix is symmetric with a zero diagonal."""
        points = [NEW_YORK, LOS_ANGELES, Coordinate(51.2, 7.5)]
        matrix = distance_matrix(points, model)

        assert matrix.shape == (3, 3)
        assert np.allclose(np.diag(matrix), 0.0)
        assert np.allclose(matrix, matrix.T)
        assert matrix[0, 1] == pytest.approx(distance(NEW_YORK, LOS_ANGELES, model))
