"""
Canonical coordinate model for the coordinate toolkit.
Every coordinate format converts to every other format through the
latitude/longitude pair defined here.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Tuple, Type, TypeVar


# Metres per arc-minute of latitude (one nautical mile)
METRES_PER_MINUTE = 1852.0


class CoordinateError(Exception):
    """Base class for all coordinate conversion and geodesy errors."""
    pass


class OutOfRangeError(CoordinateError):
    """Raised when latitude or longitude fall outside their legal range."""

    def __init__(self, latitude: float, longitude: float, message: str = None):
        self.latitude = latitude
        self.longitude = longitude
        if message is None:
            message = (
                f"Position ({latitude}, {longitude}) exceeds valid range "
                f"latitude [-90, 90], longitude [-180, 180]"
            )
        super().__init__(message)


class CoordinateParseError(CoordinateError):
    """Raised when coordinate text cannot be parsed."""

    def __init__(self, text: str, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f"Invalid coordinate '{text}': {reason}")


@dataclass(frozen=True)
class Coordinate:
    """
    Geographic position in signed decimal degrees.

    Attributes:
        latitude: Latitude in [-90, 90], positive north
        longitude: Longitude in [-180, 180], positive east

    Example:
        >>> pos = Coordinate(40.7128, -74.0060)
        >>> pos.to_string('DMM')
        "N40°42.768' W074°00.360'"
    """

    latitude: float
    longitude: float

    def __post_init__(self):
        """Validate coordinate values after initialization."""
        try:
            latitude = float(self.latitude)
            longitude = float(self.longitude)
        except (TypeError, ValueError) as e:
            raise OutOfRangeError(
                self.latitude, self.longitude,
                f"Position ({self.latitude!r}, {self.longitude!r}) is not numeric: {e}"
            ) from e

        if not (CoordinateConverter.validate_latitude(latitude) and
                CoordinateConverter.validate_longitude(longitude)):
            raise OutOfRangeError(latitude, longitude)

        object.__setattr__(self, 'latitude', latitude)
        object.__setattr__(self, 'longitude', longitude)

    def to_radians(self) -> Tuple[float, float]:
        """Get (latitude, longitude) in radians."""
        return math.radians(self.latitude), math.radians(self.longitude)

    @classmethod
    def from_radians(cls, latitude: float, longitude: float) -> 'Coordinate':
        """Create Coordinate from latitude and longitude in radians."""
        return cls(math.degrees(latitude), math.degrees(longitude))

    def to_metres(self) -> Tuple[float, float]:
        """
        Project to a flat x/y plane in metres.

        Uses one nautical mile per arc-minute, with x shrunk by the
        cosine of the latitude. Only meaningful for small areas.

        Returns:
            Tuple of (x, y) in metres
        """
        x = self.longitude * METRES_PER_MINUTE * 60 * math.cos(math.radians(self.latitude))
        y = self.latitude * METRES_PER_MINUTE * 60
        return x, y

    @classmethod
    def from_metres(cls, x: float, y: float) -> 'Coordinate':
        """
        Create Coordinate from the flat x/y plane used by to_metres.

        Args:
            x: East offset in metres
            y: North offset in metres

        Returns:
            Coordinate instance
        """
        latitude = y / METRES_PER_MINUTE / 60
        longitude = x / METRES_PER_MINUTE / 60 / math.cos(math.radians(latitude))
        return cls(latitude, longitude)

    def to_view(self, fmt='DD') -> 'CoordinateView':
        """
        Convert to a coordinate format view.

        Args:
            fmt: CoordinateFormat member or name ('DD', 'DMM', 'DMS', 'UTM', 'MGRS')

        Returns:
            View of this position in the requested format
        """
        from geo_formats import CoordinateFormat

        return CoordinateFormat.coerce(fmt).view_class.from_canonical(self)

    def to_string(self, fmt='DD') -> str:
        """Format position in the requested coordinate format."""
        return self.to_view(fmt).format()

    def distance_to(self, other: 'Coordinate', earth_model=None) -> float:
        """
        Calculate geodesic distance to another position.

        Args:
            other: Target position
            earth_model: EarthModel to use (configured default: WGS84)

        Returns:
            Distance in metres
        """
        import geo_geodesic

        return geo_geodesic.distance(self, other, earth_model)

    def bearing_to(self, other: 'Coordinate', earth_model=None) -> float:
        """Calculate bearing in degrees [0, 360) to another position."""
        import geo_geodesic

        return geo_geodesic.bearing(self, other, earth_model)

    def translate(self, bearing: float, distance: float, earth_model=None) -> 'Coordinate':
        """
        Move this position along a bearing.

        Args:
            bearing: Bearing in degrees
            distance: Distance in metres
            earth_model: EarthModel to use (configured default: SPHERE)

        Returns:
            Destination position
        """
        import geo_geodesic

        return geo_geodesic.translate(self, bearing, distance, earth_model)

    def __str__(self) -> str:
        """String representation in decimal degrees."""
        return f"{self.latitude}, {self.longitude}"


V = TypeVar('V', bound='CoordinateView')


class CoordinateView(ABC):
    """
    Abstract coordinate format.

    A view is an immutable value that can be created from a canonical
    Coordinate or parsed from text, and turned back into either.
    """

    @abstractmethod
    def to_canonical(self) -> Coordinate:
        """Get the canonical latitude/longitude of this view."""
        pass

    @classmethod
    @abstractmethod
    def from_canonical(cls: Type[V], coordinate: Coordinate) -> V:
        """Create a view from a canonical coordinate."""
        pass

    @classmethod
    @abstractmethod
    def parse(cls: Type[V], text: str) -> V:
        """Create a view by parsing its text representation."""
        pass

    @abstractmethod
    def format(self) -> str:
        """Format the view as display text."""
        pass

    @property
    def latitude(self) -> float:
        """Latitude in decimal degrees."""
        return self.to_canonical().latitude

    @property
    def longitude(self) -> float:
        """Longitude in decimal degrees."""
        return self.to_canonical().longitude

    def __str__(self) -> str:
        """String representation."""
        return self.format()


class CoordinateConverter:
    """Utility class for sexagesimal conversions of a single axis."""

    @staticmethod
    def decimal_to_dmm(decimal: float) -> Tuple[int, float]:
        """
        Convert decimal degrees to degrees and decimal minutes.

        Args:
            decimal: Decimal degrees (sign is ignored)

        Returns:
            Tuple of (degrees, minutes)
        """
        abs_val = abs(decimal)
        degrees = int(math.floor(abs_val))
        minutes = (abs_val - degrees) * 60.0
        return degrees, minutes

    @staticmethod
    def decimal_to_dms(decimal: float) -> Tuple[int, int, float]:
        """
        Convert decimal degrees to degrees, minutes, seconds.

        Args:
            decimal: Decimal degrees (sign is ignored)

        Returns:
            Tuple of (degrees, minutes, seconds)
        """
        abs_val = abs(decimal)
        degrees = int(math.floor(abs_val))
        remaining = (abs_val - degrees) * 60.0
        minutes = int(remaining)
        seconds = (abs_val - degrees - minutes / 60.0) * 3600.0
        return degrees, minutes, seconds

    @staticmethod
    def dmm_to_decimal(degrees: int, minutes: float) -> float:
        """Convert degrees and decimal minutes to unsigned decimal degrees."""
        return degrees + minutes / 60.0

    @staticmethod
    def dms_to_decimal(degrees: int, minutes: int, seconds: float) -> float:
        """
        Convert degrees, minutes, seconds to unsigned decimal degrees.

        Args:
            degrees: Degrees
            minutes: Minutes
            seconds: Seconds

        Returns:
            Decimal degrees
        """
        return degrees + minutes / 60.0 + seconds / 3600.0

    @staticmethod
    def cardinal(decimal: float, is_latitude: bool) -> str:
        """Get the hemisphere letter for a signed value."""
        if is_latitude:
            return 'N' if decimal >= 0 else 'S'
        return 'E' if decimal >= 0 else 'W'

    @staticmethod
    def validate_latitude(lat: float) -> bool:
        """Check if latitude is in valid range."""
        return -90.0 <= lat <= 90.0

    @staticmethod
    def validate_longitude(lon: float) -> bool:
        """Check if longitude is in valid range."""
        return -180.0 <= lon <= 180.0
