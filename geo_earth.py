"""
Earth models for the coordinate toolkit.
Provides the WGS84 ellipsoid constants and the Earth model selector.
"""

from enum import Enum
from typing import Union

from geo_coordinates import CoordinateError


# WGS84 ellipsoid
EQUATORIAL_RADIUS = 6378137.0
SEMI_MAJOR_AXIS = 6378137.0
SEMI_MINOR_AXIS = 6356752.3142
FLATTENING = 1 / 298.257223563

# Derived eccentricities
ECCENTRICITY_SQUARED = FLATTENING * (2 - FLATTENING)
ECCENTRICITY = ECCENTRICITY_SQUARED ** 0.5
SECOND_ECCENTRICITY_SQUARED = ECCENTRICITY_SQUARED / (1 - ECCENTRICITY_SQUARED)


class UnsupportedEarthModelError(CoordinateError, ValueError):
    """Raised when an Earth model selector is not SPHERE or WGS84."""

    def __init__(self, model: object):
        self.model = model
        super().__init__(
            f"Unsupported Earth model {model!r}. Must be SPHERE or WGS84"
        )


class EarthModel(Enum):
    """
    Shape used for geodesic calculations.

    SPHERE uses the equatorial radius, WGS84 the full ellipsoid.
    """

    SPHERE = "SPHERE"
    WGS84 = "WGS84"

    @classmethod
    def coerce(cls, value: Union['EarthModel', str]) -> 'EarthModel':
        """
        Resolve an Earth model from an enum member or its name.

        Args:
            value: EarthModel member or name such as 'wgs84'

        Returns:
            EarthModel member

        Raises:
            UnsupportedEarthModelError: If the value names no model
        """
        if isinstance(value, cls):
            return value

        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass

        raise UnsupportedEarthModelError(value)
