"""
Geodesic calculations for the coordinate toolkit.
Distance, bearing and destination point on a sphere (haversine) and on
the WGS84 ellipsoid (Vincenty).
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Union

import numpy as np

from geo_config import get_config
from geo_coordinates import Coordinate, CoordinateError, CoordinateView
from geo_earth import (
    EQUATORIAL_RADIUS,
    FLATTENING,
    SEMI_MAJOR_AXIS,
    SEMI_MINOR_AXIS,
    EarthModel,
)

logger = logging.getLogger(__name__)

# Latitudes closer to a pole than this are clamped in the Mercator bearing
_POLE_EPSILON = 1e-12


class ConvergenceError(CoordinateError):
    """Raised when Vincenty's iteration does not converge."""

    def __init__(self, start: Coordinate, end: Coordinate, iterations: int, tolerance: float):
        self.start = start
        self.end = end
        self.iterations = iterations
        self.tolerance = tolerance
        super().__init__(
            f"Vincenty iteration from ({start}) to ({end}) did not converge "
            f"within {iterations} iterations (tolerance {tolerance})"
        )


class GeodesicNotImplementedError(CoordinateError, NotImplementedError):
    """Raised for geodesic operations not available on an Earth model."""

    def __init__(self, operation: str, earth_model: EarthModel):
        self.operation = operation
        self.earth_model = earth_model
        super().__init__(f"{operation} is not implemented for the {earth_model.value} Earth model")


@dataclass(frozen=True)
class GeodesicResult:
    """
    Result of an inverse geodesic calculation.

    Attributes:
        distance: Distance in metres
        bearing: Initial bearing in degrees [0, 360)
        iterations: Iterations used (0 for closed-form solutions)
    """
    distance: float
    bearing: float
    iterations: int = 0


PointLike = Union[Coordinate, CoordinateView, tuple]


def _as_coordinate(point: PointLike) -> Coordinate:
    """Get the canonical coordinate of a point, view or (lat, lon) tuple."""
    if isinstance(point, Coordinate):
        return point
    if isinstance(point, CoordinateView):
        return point.to_canonical()
    return Coordinate(*point)


def _resolve_model(earth_model, config_path: str, default: str) -> EarthModel:
    if earth_model is None:
        earth_model = get_config().get(config_path, default)
    return EarthModel.coerce(earth_model)


def normalize_bearing(bearing: float) -> float:
    """Normalize a bearing to [0, 360)."""
    bearing = bearing % 360.0
    # Tiny negative inputs round up to 360.0
    if bearing >= 360.0:
        bearing = 0.0
    return bearing


def normalize_longitude(longitude: float) -> float:
    """Normalize a longitude to [-180, 180)."""
    return (longitude + 180.0) % 360.0 - 180.0


def haversine_distance(start: Coordinate, end: Coordinate, radius: float = EQUATORIAL_RADIUS) -> float:
    """
    Calculate great circle distance using the haversine formula.

    Args:
        start: Start position
        end: End position
        radius: Sphere radius in metres

    Returns:
        Distance in metres
    """
    lat1, lon1 = start.to_radians()
    lat2, lon2 = end.to_radians()

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2)
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return radius * c


def _mercator_y(latitude_rad: float) -> float:
    limit = math.pi / 2 - _POLE_EPSILON
    latitude_rad = max(-limit, min(limit, latitude_rad))
    return math.log(math.tan(latitude_rad / 2 + math.pi / 4))


def rhumb_bearing(start: Coordinate, end: Coordinate) -> float:
    """
    Calculate the constant bearing (rhumb line) between two positions.

    Uses the Mercator projection of both latitudes, taking the shorter way
    around the antimeridian.

    Returns:
        Bearing in degrees [0, 360)
    """
    dlon = math.radians(end.longitude - start.longitude)
    dphi = _mercator_y(math.radians(end.latitude)) - _mercator_y(math.radians(start.latitude))

    if abs(dlon) > math.pi:
        dlon = -(2 * math.pi - dlon) if dlon > 0 else 2 * math.pi + dlon

    return normalize_bearing(math.degrees(math.atan2(dlon, dphi)))


def sphere_translate(origin: Coordinate, bearing: float, distance: float,
                     radius: float = EQUATORIAL_RADIUS) -> Coordinate:
    """
    Calculate the destination along a great circle.

    Args:
        origin: Start position
        bearing: Initial bearing in degrees
        distance: Distance in metres
        radius: Sphere radius in metres

    Returns:
        Destination position
    """
    heading = math.radians(normalize_bearing(bearing))
    lat1, lon1 = origin.to_radians()
    angular = distance / radius

    sin_lat2 = (math.sin(lat1) * math.cos(angular) +
                math.cos(lat1) * math.sin(angular) * math.cos(heading))
    lat2 = math.asin(max(-1.0, min(1.0, sin_lat2)))
    lon2 = lon1 + math.atan2(
        math.sin(heading) * math.sin(angular) * math.cos(lat1),
        math.cos(angular) - math.sin(lat1) * math.sin(lat2)
    )

    return Coordinate(math.degrees(lat2), normalize_longitude(math.degrees(lon2)))


def vincenty_inverse(start: Coordinate, end: Coordinate,
                     max_iterations: Optional[int] = None,
                     tolerance: Optional[float] = None) -> GeodesicResult:
    """
    Solve the inverse geodesic problem on the WGS84 ellipsoid.

    Iterates the longitude on the auxiliary sphere until it changes by no
    more than the tolerance.

    Args:
        start: Start position
        end: End position
        max_iterations: Iteration cap (configured default: 200)
        tolerance: Convergence tolerance in radians (configured default: 1e-12)

    Returns:
        GeodesicResult with distance in metres and initial bearing

    Raises:
        ConvergenceError: If the cap is reached, e.g. for near-antipodal points
    """
    config = get_config()
    if max_iterations is None:
        max_iterations = config.get('geodesy.vincenty_max_iterations', 200)
    if tolerance is None:
        tolerance = config.get('geodesy.vincenty_tolerance', 1e-12)

    a = SEMI_MAJOR_AXIS
    b = SEMI_MINOR_AXIS
    f = FLATTENING

    lon_diff = math.radians(normalize_longitude(end.longitude - start.longitude))

    # Reduced latitudes
    u1 = math.atan((1 - f) * math.tan(math.radians(start.latitude)))
    u2 = math.atan((1 - f) * math.tan(math.radians(end.latitude)))
    sin_u1, cos_u1 = math.sin(u1), math.cos(u1)
    sin_u2, cos_u2 = math.sin(u2), math.cos(u2)

    lam = lon_diff
    for iteration in range(1, max_iterations + 1):
        sin_lam = math.sin(lam)
        cos_lam = math.cos(lam)

        sin_sigma = math.sqrt((cos_u2 * sin_lam) ** 2 +
                              (cos_u1 * sin_u2 - sin_u1 * cos_u2 * cos_lam) ** 2)
        if sin_sigma == 0:
            # Coincident points
            return GeodesicResult(0.0, 0.0, iteration)

        cos_sigma = sin_u1 * sin_u2 + cos_u1 * cos_u2 * cos_lam
        sigma = math.atan2(sin_sigma, cos_sigma)
        sin_alpha = cos_u1 * cos_u2 * sin_lam / sin_sigma
        cos_sq_alpha = 1 - sin_alpha ** 2

        if cos_sq_alpha != 0:
            cos_2sigma_m = cos_sigma - 2 * sin_u1 * sin_u2 / cos_sq_alpha
        else:
            cos_2sigma_m = 0.0  # Equatorial line

        c = f / 16 * cos_sq_alpha * (4 + f * (4 - 3 * cos_sq_alpha))
        lam_prev = lam
        lam = lon_diff + (1 - c) * f * sin_alpha * (
            sigma + c * sin_sigma * (cos_2sigma_m + c * cos_sigma * (-1 + 2 * cos_2sigma_m ** 2))
        )

        if abs(lam - lam_prev) <= tolerance:
            break
    else:
        logger.warning(f"Vincenty did not converge between ({start}) and ({end}) "
                       f"after {max_iterations} iterations")
        raise ConvergenceError(start, end, max_iterations, tolerance)

    u_sq = cos_sq_alpha * (a ** 2 - b ** 2) / b ** 2
    big_a = 1 + u_sq / 16384 * (4096 + u_sq * (-768 + u_sq * (320 - 175 * u_sq)))
    big_b = u_sq / 1024 * (256 + u_sq * (-128 + u_sq * (74 - 47 * u_sq)))
    delta_sigma = big_b * sin_sigma * (
        cos_2sigma_m + big_b / 4 * (
            cos_sigma * (-1 + 2 * cos_2sigma_m ** 2)
            - big_b / 6 * cos_2sigma_m * (-3 + 4 * sin_sigma ** 2) * (-3 + 4 * cos_2sigma_m ** 2)
        )
    )

    distance = b * big_a * (sigma - delta_sigma)
    bearing = math.degrees(math.atan2(cos_u2 * sin_lam,
                                      cos_u1 * sin_u2 - sin_u1 * cos_u2 * cos_lam))

    logger.debug(f"Vincenty converged after {iteration} iterations")
    return GeodesicResult(distance, normalize_bearing(bearing), iteration)


def inverse(start: PointLike, end: PointLike, earth_model=None) -> GeodesicResult:
    """
    Calculate distance and initial bearing between two positions.

    Args:
        start: Start position
        end: End position
        earth_model: EarthModel or its name (configured default: WGS84)

    Returns:
        GeodesicResult

    Raises:
        UnsupportedEarthModelError: If the model is not SPHERE or WGS84
        ConvergenceError: If the WGS84 solution does not converge
    """
    start = _as_coordinate(start)
    end = _as_coordinate(end)
    model = _resolve_model(earth_model, 'geodesy.distance_model', 'WGS84')

    if model is EarthModel.SPHERE:
        return GeodesicResult(haversine_distance(start, end), rhumb_bearing(start, end))

    return vincenty_inverse(start, end)


def distance(start: PointLike, end: PointLike, earth_model=None) -> float:
    """
    Calculate distance in metres between two positions.

    Example:
        >>> round(distance(Coordinate(0, 0), Coordinate(1, 0), 'SPHERE'), 2)
        111319.49
    """
    start = _as_coordinate(start)
    end = _as_coordinate(end)
    model = _resolve_model(earth_model, 'geodesy.distance_model', 'WGS84')

    if model is EarthModel.SPHERE:
        return haversine_distance(start, end)

    return vincenty_inverse(start, end).distance


def bearing(start: PointLike, end: PointLike, earth_model=None) -> float:
    """Calculate initial bearing in degrees [0, 360) from start to end."""
    start = _as_coordinate(start)
    end = _as_coordinate(end)
    model = _resolve_model(earth_model, 'geodesy.distance_model', 'WGS84')

    if model is EarthModel.SPHERE:
        return rhumb_bearing(start, end)

    return vincenty_inverse(start, end).bearing


def translate(origin: PointLike, bearing: float, distance: float, earth_model=None) -> Coordinate:
    """
    Calculate the position reached from origin along a bearing.

    Args:
        origin: Start position
        bearing: Bearing in degrees
        distance: Distance in metres
        earth_model: EarthModel or its name (configured default: SPHERE)

    Returns:
        Destination position

    Raises:
        GeodesicNotImplementedError: For the WGS84 model
        UnsupportedEarthModelError: If the model is not SPHERE or WGS84
    """
    origin = _as_coordinate(origin)
    model = _resolve_model(earth_model, 'geodesy.translate_model', 'SPHERE')

    if model is EarthModel.WGS84:
        raise GeodesicNotImplementedError('Destination point', model)

    return sphere_translate(origin, bearing, distance)


def haversine_vectorized(lat1, lon1, lat2, lon2, radius: float = EQUATORIAL_RADIUS) -> np.ndarray:
    """
    Calculate haversine distances for arrays of positions.

    Args:
        lat1, lon1: Start latitudes and longitudes in degrees
        lat2, lon2: End latitudes and longitudes in degrees
        radius: Sphere radius in metres

    Returns:
        Array of distances in metres (broadcast shape of the inputs)
    """
    lat1, lon1, lat2, lon2 = (np.radians(np.asarray(v, dtype=float)) for v in (lat1, lon1, lat2, lon2))

    a = (np.sin((lat2 - lat1) / 2) ** 2 +
         np.cos(lat1) * np.cos(lat2) * np.sin((lon2 - lon1) / 2) ** 2)
    a = np.clip(a, 0.0, 1.0)

    return radius * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def path_length(points: Iterable[PointLike], earth_model=None) -> float:
    """
    Calculate the total length of a path through the given positions.

    Returns:
        Length in metres (0 for fewer than two positions)
    """
    coords = [_as_coordinate(p) for p in points]
    if len(coords) < 2:
        return 0.0

    model = _resolve_model(earth_model, 'geodesy.distance_model', 'WGS84')

    if model is EarthModel.SPHERE:
        lats = np.array([c.latitude for c in coords])
        lons = np.array([c.longitude for c in coords])
        return float(np.sum(haversine_vectorized(lats[:-1], lons[:-1], lats[1:], lons[1:])))

    return float(sum(vincenty_inverse(a, b).distance for a, b in zip(coords, coords[1:])))


def distance_matrix(points: Iterable[PointLike], earth_model=None) -> np.ndarray:
    """
    Calculate distances between every pair of positions.

    Returns:
        Symmetric (n, n) array of distances in metres
    """
    coords = [_as_coordinate(p) for p in points]
    model = _resolve_model(earth_model, 'geodesy.distance_model', 'WGS84')

    lats = np.array([c.latitude for c in coords], dtype=float)
    lons = np.array([c.longitude for c in coords], dtype=float)

    if model is EarthModel.SPHERE:
        return haversine_vectorized(lats[:, np.newaxis], lons[:, np.newaxis],
                                    lats[np.newaxis, :], lons[np.newaxis, :])

    size = len(coords)
    matrix = np.zeros((size, size))
    for i in range(size):
        for j in range(i + 1, size):
            matrix[i, j] = matrix[j, i] = vincenty_inverse(coords[i], coords[j]).distance
    return matrix
