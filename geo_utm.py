"""
Universal Transverse Mercator (UTM) coordinates.
Provides forward and inverse Transverse Mercator projection on the
WGS84 ellipsoid and the UTM coordinate view.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Tuple

from geo_coordinates import (
    Coordinate,
    CoordinateParseError,
    CoordinateView,
    OutOfRangeError,
)
from geo_earth import (
    ECCENTRICITY_SQUARED,
    EQUATORIAL_RADIUS,
    SECOND_ECCENTRICITY_SQUARED,
)

logger = logging.getLogger(__name__)

# Latitude bands, 8 degrees each from 80S; X is stretched to 84N
BAND_LETTERS = 'CDEFGHJKLMNPQRSTUVWX'
SOUTHERN_BANDS = 'CDEFGHJKLM'

# Grid letters used by MGRS (A-Z without I and O)
GRID_LETTERS = 'ABCDEFGHJKLMNPQRSTUVWXYZ'

K0 = 0.9996
FALSE_EASTING = 500000.0
FALSE_NORTHING = 10000000.0

MIN_LATITUDE = -80.0
MAX_LATITUDE = 84.0

_ZONE_TOKEN = re.compile(r'^(\d{1,2})([A-Z])$')


def zone_number(longitude: float) -> int:
    """Get the UTM zone number (1-60) for a longitude."""
    return min(int(math.floor((longitude + 180) / 6)) + 1, 60)


def zone_letter(latitude: float) -> str:
    """
    Get the latitude band letter for a latitude.

    Args:
        latitude: Latitude in decimal degrees

    Returns:
        Band letter C-X

    Raises:
        OutOfRangeError: If latitude is in the polar caps
    """
    if not MIN_LATITUDE <= latitude <= MAX_LATITUDE:
        raise OutOfRangeError(
            latitude, None,
            f"Latitude {latitude} is outside the UTM range [{MIN_LATITUDE}, {MAX_LATITUDE}]"
        )
    if latitude >= 72:
        return 'X'
    return BAND_LETTERS[int(math.floor((latitude + 80) / 8))]


def central_meridian(zone: int) -> float:
    """Get the central meridian longitude of a UTM zone."""
    return 6.0 * zone - 183.0


def meridional_arc(latitude_rad: float) -> float:
    """Arc length of the meridian from the equator to a latitude, in metres."""
    e2 = ECCENTRICITY_SQUARED
    e4 = e2 * e2
    e6 = e4 * e2

    return EQUATORIAL_RADIUS * (
        (1 - e2 / 4 - 3 * e4 / 64 - 5 * e6 / 256) * latitude_rad
        - (3 * e2 / 8 + 3 * e4 / 32 + 45 * e6 / 1024) * math.sin(2 * latitude_rad)
        + (15 * e4 / 256 + 45 * e6 / 1024) * math.sin(4 * latitude_rad)
        - (35 * e6 / 3072) * math.sin(6 * latitude_rad)
    )


def project(latitude: float, longitude: float) -> Tuple[int, str, float, float]:
    """
    Project a geographic position to UTM.

    Args:
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees

    Returns:
        Tuple of (zone number, zone letter, easting, northing)

    Example:
        >>> project(51.2, 7.5)
        (32, 'U', 395201.31..., 5673135.24...)
    """
    zone = zone_number(longitude)
    letter = zone_letter(latitude)

    ep2 = SECOND_ECCENTRICITY_SQUARED
    lat_rad = math.radians(latitude)
    sin_lat = math.sin(lat_rad)
    cos_lat = math.cos(lat_rad)
    tan_lat = math.tan(lat_rad)

    n = EQUATORIAL_RADIUS / math.sqrt(1 - ECCENTRICITY_SQUARED * sin_lat ** 2)
    t = tan_lat ** 2
    c = ep2 * cos_lat ** 2
    a = math.radians(longitude - central_meridian(zone)) * cos_lat
    m = meridional_arc(lat_rad)

    easting = K0 * n * (
        a
        + (1 - t + c) * a ** 3 / 6
        + (5 - 18 * t + t ** 2 + 72 * c - 58 * ep2) * a ** 5 / 120
    ) + FALSE_EASTING

    northing = K0 * (m + n * tan_lat * (
        a ** 2 / 2
        + (5 - t + 9 * c + 4 * c ** 2) * a ** 4 / 24
        + (61 - 58 * t + t ** 2 + 600 * c - 330 * ep2) * a ** 6 / 720
    ))

    if letter in SOUTHERN_BANDS:
        northing += FALSE_NORTHING

    return zone, letter, easting, northing


def unproject(zone: int, letter: str, easting: float, northing: float) -> Tuple[float, float]:
    """
    Recover the geographic position of a UTM coordinate.

    Args:
        zone: Zone number 1-60
        letter: Latitude band letter
        easting: Easting in metres
        northing: Northing in metres

    Returns:
        Tuple of (latitude, longitude) in decimal degrees
    """
    southern = letter in SOUTHERN_BANDS
    if southern:
        northing = FALSE_NORTHING - northing

    e2 = ECCENTRICITY_SQUARED
    ep2 = SECOND_ECCENTRICITY_SQUARED
    x = easting - FALSE_EASTING

    # Footpoint latitude
    mu = (northing / K0) / (EQUATORIAL_RADIUS * (1 - e2 / 4 - 3 * e2 ** 2 / 64 - 5 * e2 ** 3 / 256))
    e1 = (1 - math.sqrt(1 - e2)) / (1 + math.sqrt(1 - e2))
    phi1 = (mu
            + (3 * e1 / 2 - 27 * e1 ** 3 / 32) * math.sin(2 * mu)
            + (21 * e1 ** 2 / 16 - 55 * e1 ** 4 / 32) * math.sin(4 * mu)
            + (151 * e1 ** 3 / 96) * math.sin(6 * mu)
            + (1097 * e1 ** 4 / 512) * math.sin(8 * mu))

    sin1 = math.sin(phi1)
    cos1 = math.cos(phi1)
    tan1 = math.tan(phi1)

    n1 = EQUATORIAL_RADIUS / math.sqrt(1 - e2 * sin1 ** 2)
    r1 = EQUATORIAL_RADIUS * (1 - e2) / (1 - e2 * sin1 ** 2) ** 1.5
    t1 = tan1 ** 2
    c1 = ep2 * cos1 ** 2
    d = x / (n1 * K0)

    latitude = phi1 - (n1 * tan1 / r1) * (
        d ** 2 / 2
        - (5 + 3 * t1 + 10 * c1 - 4 * c1 ** 2 - 9 * ep2) * d ** 4 / 24
        + (61 + 90 * t1 + 298 * c1 + 45 * t1 ** 2 - 252 * ep2 - 3 * c1 ** 2) * d ** 6 / 720
    )

    delta_lon = (
        d
        - (1 + 2 * t1 + c1) * d ** 3 / 6
        + (5 - 2 * c1 + 28 * t1 - 3 * c1 ** 2 + 8 * ep2 + 24 * t1 ** 2) * d ** 5 / 120
    ) / cos1

    latitude = math.degrees(latitude)
    if southern:
        latitude = -latitude

    longitude = central_meridian(zone) + math.degrees(delta_lon)
    if longitude > 180:
        longitude -= 360
    elif longitude < -180:
        longitude += 360

    return latitude, longitude


@dataclass(frozen=True)
class UTM(CoordinateView):
    """
    Position in Universal Transverse Mercator format.

    Latitude and longitude are not stored; they are recomputed by inverse
    projection every time they are requested.

    Attributes:
        zone_number: Longitude zone 1-60
        zone_letter: Latitude band letter C-X
        easting: Metres east, including the 500 km false easting
        northing: Metres north, including the false northing south of the equator

    Example:
        >>> str(UTM.from_canonical(Coordinate(51.2, 7.5)))
        '32U 395201 5673135'
    """

    zone_number: int
    zone_letter: str
    easting: float
    northing: float

    def __post_init__(self):
        """Validate zone and offsets after initialization."""
        text = f"{self.zone_number}{self.zone_letter} {self.easting} {self.northing}"

        if not isinstance(self.zone_number, int) or not 1 <= self.zone_number <= 60:
            raise CoordinateParseError(text, f"zone number {self.zone_number!r} must be 1-60")

        if not isinstance(self.zone_letter, str) or self.zone_letter.upper() not in BAND_LETTERS \
                or len(self.zone_letter) != 1:
            raise CoordinateParseError(text, f"zone letter {self.zone_letter!r} must be one of {BAND_LETTERS}")

        try:
            easting = float(self.easting)
            northing = float(self.northing)
        except (TypeError, ValueError) as e:
            raise CoordinateParseError(text, f"easting and northing must be numeric: {e}") from e

        if not (math.isfinite(easting) and math.isfinite(northing)):
            raise CoordinateParseError(text, "easting and northing must be finite")

        object.__setattr__(self, 'zone_letter', self.zone_letter.upper())
        object.__setattr__(self, 'easting', easting)
        object.__setattr__(self, 'northing', northing)

    @classmethod
    def from_canonical(cls, coordinate: Coordinate) -> 'UTM':
        """
        Create UTM coordinate by forward projection.

        Raises:
            OutOfRangeError: If the position lies beyond 80S or 84N
        """
        if not MIN_LATITUDE <= coordinate.latitude <= MAX_LATITUDE:
            raise OutOfRangeError(
                coordinate.latitude, coordinate.longitude,
                f"Latitude {coordinate.latitude} is outside the UTM range "
                f"[{MIN_LATITUDE}, {MAX_LATITUDE}]"
            )

        zone, letter, easting, northing = project(coordinate.latitude, coordinate.longitude)
        return cls(zone, letter, easting, northing)

    @classmethod
    def parse(cls, text: str) -> 'UTM':
        """
        Parse UTM text.

        Accepts '<zone><letter> <easting> <northing>' or
        '<zone> <letter> <easting> <northing>'.

        Raises:
            CoordinateParseError: If the text is malformed
        """
        if not isinstance(text, str):
            raise CoordinateParseError(str(text), "UTM coordinate must be text")

        tokens = text.strip().upper().split()

        if len(tokens) == 4:
            zone_text, letter, easting_text, northing_text = tokens
        elif len(tokens) == 3:
            match = _ZONE_TOKEN.match(tokens[0])
            if not match:
                raise CoordinateParseError(text, f"invalid grid zone '{tokens[0]}'")
            zone_text, letter = match.groups()
            easting_text, northing_text = tokens[1], tokens[2]
        else:
            raise CoordinateParseError(text, f"expected 3 or 4 fields, got {len(tokens)}")

        try:
            zone = int(zone_text)
            easting = float(easting_text.replace(',', '.'))
            northing = float(northing_text.replace(',', '.'))
        except ValueError as e:
            raise CoordinateParseError(text, f"non-numeric zone, easting or northing: {e}") from e

        return cls(zone, letter, easting, northing)

    @property
    def hemisphere(self) -> str:
        """Hemisphere letter ('N' or 'S') implied by the zone letter."""
        return 'S' if self.zone_letter in SOUTHERN_BANDS else 'N'

    @property
    def central_meridian(self) -> float:
        """Longitude of the zone's central meridian."""
        return central_meridian(self.zone_number)

    def to_canonical(self) -> Coordinate:
        """Recover latitude/longitude by inverse projection."""
        latitude, longitude = unproject(self.zone_number, self.zone_letter, self.easting, self.northing)
        return Coordinate(latitude, longitude)

    def to_mgrs(self, precision: int = None):
        """Encode as MGRS with the given number of digits per axis."""
        from geo_mgrs import MGRS

        return MGRS.from_utm(self, precision)

    @property
    def grid_zone(self) -> str:
        """Grid zone designator, e.g. '32U'."""
        return f"{self.zone_number:02d}{self.zone_letter}"

    def format(self) -> str:
        """Format as '<zone><letter> <easting> <northing>' in whole metres."""
        return f"{self.grid_zone} {int(round(self.easting))} {int(round(self.northing))}"
