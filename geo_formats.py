"""
Textual coordinate formats and format dispatch.
Provides decimal degree (DD), degree decimal minute (DMM) and
degree minute second (DMS) views, plus conversion between all formats.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple, Type, Union

import pynmea2

from geo_config import get_config
from geo_coordinates import (
    Coordinate,
    CoordinateConverter,
    CoordinateParseError,
    CoordinateView,
)
from geo_mgrs import MGRS, InvalidGridReferenceError
from geo_utm import UTM

logger = logging.getLogger(__name__)

# Look-alike symbols mapped to degree, minute and second marks
_SYMBOL_REPLACEMENTS = (
    ('º', '°'),
    ('˚', '°'),
    ('´', "'"),
    ('’', "'"),
    ('‘', "'"),
    ('′', "'"),
    ('″', '"'),
    ('“', '"'),
    ('”', '"'),
    ("''", '"'),
)

_NUMBER = r'\d+(?:[.,]\d+)?'

_DD_AXIS = re.compile(
    r'^(?P<prefix>[NSEW])?\s*(?P<sign>[-+])?\s*'
    r'(?P<degrees>' + _NUMBER + r')\s*°?\s*'
    r'(?P<suffix>[NSEW])?$'
)

_DMM_AXIS = re.compile(
    r'^(?P<prefix>[NSEW])?\s*(?P<sign>[-+])?\s*'
    r'(?P<degrees>\d+)(?:\s*°\s*|\s+)'
    r"(?P<minutes>" + _NUMBER + r")\s*'?\s*"
    r'(?P<suffix>[NSEW])?$'
)

_DMS_AXIS = re.compile(
    r'^(?P<prefix>[NSEW])?\s*(?P<sign>[-+])?\s*'
    r'(?P<degrees>\d+)(?:\s*°\s*|\s+)'
    r"(?P<minutes>\d+)(?:\s*'\s*|\s+)"
    r'(?P<seconds>' + _NUMBER + r')\s*"?\s*'
    r'(?P<suffix>[NSEW])?$'
)

# Candidate places to split a position into latitude and longitude.
# Without whitespace, the longitude may start right after a mark or a
# hemisphere letter, e.g. "N40°42.768'W074°00.360'".
_SEPARATOR = re.compile(
    r'\s*;\s*|\s*,\s*|\s+'
    r"|(?<=[°'\"])(?=[NSEW])"
    r'|(?<=[NSEW])(?=[-+\d])'
)


def normalize_text(text: str) -> str:
    """
    Normalize coordinate text for parsing.

    Upper-cases hemisphere letters and maps look-alike symbols to the
    plain degree, minute and second marks.
    """
    if not isinstance(text, str):
        raise CoordinateParseError(str(text), "coordinate must be text")

    text = text.strip().upper()
    for old, new in _SYMBOL_REPLACEMENTS:
        text = text.replace(old, new)
    return text


def _to_float(value: str) -> float:
    return float(value.replace(',', '.'))


def _apply_hemisphere(match: re.Match, value: float, is_latitude: bool, text: str) -> float:
    """Sign an unsigned axis value from its hemisphere letter or sign."""
    letters = {match.group('prefix'), match.group('suffix')} - {None}
    if len(letters) > 1:
        raise CoordinateParseError(text, "conflicting hemisphere letters")

    letter = letters.pop() if letters else None
    allowed = 'NS' if is_latitude else 'EW'
    if letter is not None and letter not in allowed:
        axis = 'latitude' if is_latitude else 'longitude'
        raise CoordinateParseError(text, f"hemisphere '{letter}' is not valid for {axis}")

    sign = match.group('sign')
    if letter is not None and sign is not None:
        raise CoordinateParseError(text, "use either a sign or a hemisphere letter, not both")

    if letter in ('S', 'W') or sign == '-':
        return -value
    return value


def parse_dd_axis(text: str, is_latitude: bool) -> float:
    """Parse one decimal degree axis, e.g. '40.7128' or '74,006 W'."""
    normalized = normalize_text(text)
    match = _DD_AXIS.match(normalized)
    if not match:
        raise CoordinateParseError(text, "expected decimal degrees")

    return _apply_hemisphere(match, _to_float(match.group('degrees')), is_latitude, text)


def parse_dmm_axis(text: str, is_latitude: bool) -> float:
    """Parse one degree decimal minute axis, e.g. "N40°42.768'"."""
    normalized = normalize_text(text)
    match = _DMM_AXIS.match(normalized)
    if not match:
        raise CoordinateParseError(text, "expected degrees and decimal minutes")

    minutes = _to_float(match.group('minutes'))
    if minutes >= 60:
        raise CoordinateParseError(text, f"minutes {minutes} must be below 60")

    value = CoordinateConverter.dmm_to_decimal(int(match.group('degrees')), minutes)
    return _apply_hemisphere(match, value, is_latitude, text)


def parse_dms_axis(text: str, is_latitude: bool) -> float:
    """Parse one degree minute second axis, e.g. '5°30\\'30"S'."""
    normalized = normalize_text(text)
    match = _DMS_AXIS.match(normalized)
    if not match:
        raise CoordinateParseError(text, "expected degrees, minutes and seconds")

    minutes = int(match.group('minutes'))
    seconds = _to_float(match.group('seconds'))
    if minutes >= 60 or seconds >= 60:
        raise CoordinateParseError(text, "minutes and seconds must be below 60")

    value = CoordinateConverter.dms_to_decimal(int(match.group('degrees')), minutes, seconds)
    return _apply_hemisphere(match, value, is_latitude, text)


def _split_position(text: str, parse_axis: Callable[[str, bool], float]) -> Tuple[float, float]:
    """
    Split a position into latitude and longitude and parse both.

    Every candidate separator is tried in turn and the first split where
    both halves parse wins. Candidates are semicolons, commas, whitespace
    and the boundary before a hemisphere letter or after a trailing one.
    A comma between two digits is a decimal comma, not a separator.
    """
    normalized = normalize_text(text)

    for separator in _SEPARATOR.finditer(normalized):
        start, end = separator.span()
        if start == 0 or end == len(normalized):
            continue

        if separator.group() == ',' and normalized[start - 1].isdigit() and normalized[end].isdigit():
            continue

        try:
            latitude = parse_axis(normalized[:start], True)
            longitude = parse_axis(normalized[end:], False)
        except CoordinateParseError:
            continue

        return latitude, longitude

    raise CoordinateParseError(text, "could not split into latitude and longitude")


def _resolve_decimals(decimals: Optional[int], path: str, default: int) -> int:
    if decimals is None:
        decimals = get_config().get(path, default)
    return decimals


def _number_width(decimals: int) -> int:
    """Width of a zero padded two-digit number with decimals."""
    return 2 if decimals == 0 else 3 + decimals


@dataclass(frozen=True)
class DD(CoordinateView):
    """
    Position in decimal degrees.

    Example:
        >>> str(DD.parse('40.7128, -74.0060'))
        '40.7128, -74.006'
    """

    coordinate: Coordinate

    @classmethod
    def from_canonical(cls, coordinate: Coordinate) -> 'DD':
        """Create DD view of a canonical coordinate."""
        return cls(coordinate)

    @classmethod
    def from_values(cls, latitude: float, longitude: float) -> 'DD':
        """Create DD view from signed decimal degrees."""
        return cls(Coordinate(latitude, longitude))

    @classmethod
    def parse(cls, text: str) -> 'DD':
        """Parse 'lat, lon' decimal degrees."""
        latitude, longitude = _split_position(text, parse_dd_axis)
        return cls(Coordinate(latitude, longitude))

    @classmethod
    def from_strings(cls, latitude: str, longitude: str) -> 'DD':
        """Parse latitude and longitude given as separate strings."""
        return cls(Coordinate(parse_dd_axis(latitude, True), parse_dd_axis(longitude, False)))

    def to_canonical(self) -> Coordinate:
        """Get the canonical coordinate."""
        return self.coordinate

    @property
    def latitude_string(self) -> str:
        return str(self.coordinate.latitude)

    @property
    def longitude_string(self) -> str:
        return str(self.coordinate.longitude)

    def format(self) -> str:
        """Format as 'lat, lon'."""
        return f"{self.latitude_string}, {self.longitude_string}"


@dataclass(frozen=True)
class DMM(CoordinateView):
    """
    Position in degrees and decimal minutes.

    The canonical coordinate is authoritative; hemisphere, degrees and
    minutes are derived from it on access.

    Example:
        >>> str(DMM.from_values(40.7128, -74.0060))
        "N40°42.768' W074°00.360'"
    """

    coordinate: Coordinate

    @classmethod
    def from_canonical(cls, coordinate: Coordinate) -> 'DMM':
        """Create DMM view of a canonical coordinate."""
        return cls(coordinate)

    @classmethod
    def from_values(cls, latitude: float, longitude: float) -> 'DMM':
        """Create DMM view from signed decimal degrees."""
        return cls(Coordinate(latitude, longitude))

    @classmethod
    def parse(cls, text: str) -> 'DMM':
        """Parse a position such as "N40°42.768' W074°00.360'"."""
        latitude, longitude = _split_position(text, parse_dmm_axis)
        return cls(Coordinate(latitude, longitude))

    @classmethod
    def from_strings(cls, latitude: str, longitude: str) -> 'DMM':
        """
        Parse latitude and longitude given as separate strings.

        Example:
            >>> DMM.from_strings("5°30.5'S", "55°30.25'W").latitude
            -5.508333333333334
        """
        return cls(Coordinate(parse_dmm_axis(latitude, True), parse_dmm_axis(longitude, False)))

    @classmethod
    def from_nmea(cls, lat_value: str, lat_dir: str, lon_value: str, lon_dir: str) -> 'DMM':
        """
        Create DMM view from NMEA position fields (DDMM.MMMM / DDDMM.MMMM).

        Args:
            lat_value: Latitude in NMEA format
            lat_dir: Latitude direction (N/S)
            lon_value: Longitude in NMEA format
            lon_dir: Longitude direction (E/W)

        Returns:
            DMM instance

        Example:
            >>> DMM.from_nmea('4807.038', 'N', '01131.000', 'E').latitude
            48.1173
        """
        raw = f"{lat_value},{lat_dir},{lon_value},{lon_dir}"
        values = []

        for value, direction, allowed in ((lat_value, lat_dir, 'NS'), (lon_value, lon_dir, 'EW')):
            direction = (direction or '').strip().upper()
            if direction not in ('N', 'S', 'E', 'W') or direction not in allowed:
                raise CoordinateParseError(raw, f"invalid NMEA direction '{direction}'")

            try:
                number = float(value)
            except (ValueError, TypeError) as e:
                raise CoordinateParseError(raw, f"invalid NMEA value '{value}': {e}") from e

            # Degrees are everything before the last 2 digits of the integer part
            degrees = int(number / 100)
            minutes = number - degrees * 100
            if minutes >= 60:
                raise CoordinateParseError(raw, f"minutes {minutes} must be below 60")

            decimal = CoordinateConverter.dmm_to_decimal(degrees, minutes)
            values.append(-decimal if direction in ('S', 'W') else decimal)

        return cls(Coordinate(values[0], values[1]))

    @classmethod
    def from_nmea_sentence(cls, sentence: str) -> 'DMM':
        """
        Create DMM view from a full NMEA sentence carrying a position.

        Args:
            sentence: NMEA sentence such as GGA, RMC or GLL

        Returns:
            DMM instance

        Raises:
            CoordinateParseError: If the sentence is invalid or has no position
        """
        try:
            parsed = pynmea2.parse(sentence.strip())
        except (pynmea2.ParseError, AttributeError) as e:
            raise CoordinateParseError(sentence, f"NMEA parse error: {e}") from e

        fields = [getattr(parsed, name, None) for name in ('lat', 'lat_dir', 'lon', 'lon_dir')]
        if not all(fields):
            raise CoordinateParseError(sentence, "NMEA sentence carries no position")

        logger.debug(f"Parsed {parsed.sentence_type} position: {fields}")
        return cls.from_nmea(*fields)

    def to_nmea(self) -> Tuple[str, str, str, str]:
        """
        Format as NMEA position fields.

        Returns:
            Tuple of (latitude DDMM.MMMM, N/S, longitude DDDMM.MMMM, E/W)
        """
        fields = []
        for value, is_latitude in ((self.coordinate.latitude, True), (self.coordinate.longitude, False)):
            degrees, minutes = CoordinateConverter.decimal_to_dmm(value)
            minutes = round(minutes, 4)
            if minutes >= 60:
                degrees += 1
                minutes -= 60
            width = 2 if is_latitude else 3
            fields.append(f"{degrees:0{width}d}{minutes:07.4f}")
            fields.append(CoordinateConverter.cardinal(value, is_latitude))
        return tuple(fields)

    def to_canonical(self) -> Coordinate:
        """Get the canonical coordinate."""
        return self.coordinate

    @property
    def latitude_cardinal(self) -> str:
        return CoordinateConverter.cardinal(self.coordinate.latitude, True)

    @property
    def latitude_degrees(self) -> int:
        return CoordinateConverter.decimal_to_dmm(self.coordinate.latitude)[0]

    @property
    def latitude_minutes(self) -> float:
        return CoordinateConverter.decimal_to_dmm(self.coordinate.latitude)[1]

    @property
    def longitude_cardinal(self) -> str:
        return CoordinateConverter.cardinal(self.coordinate.longitude, False)

    @property
    def longitude_degrees(self) -> int:
        return CoordinateConverter.decimal_to_dmm(self.coordinate.longitude)[0]

    @property
    def longitude_minutes(self) -> float:
        return CoordinateConverter.decimal_to_dmm(self.coordinate.longitude)[1]

    @staticmethod
    def format_axis(value: float, is_latitude: bool, decimals: int = 3) -> str:
        """Format one axis as e.g. "N40°42.768'"."""
        degrees, minutes = CoordinateConverter.decimal_to_dmm(value)
        minutes = round(minutes, decimals)
        if minutes >= 60:
            degrees += 1
            minutes -= 60

        degree_width = 2 if is_latitude else 3
        cardinal = CoordinateConverter.cardinal(value, is_latitude)
        return f"{cardinal}{degrees:0{degree_width}d}°{minutes:0{_number_width(decimals)}.{decimals}f}'"

    @property
    def latitude_string(self) -> str:
        decimals = _resolve_decimals(None, 'formats.dmm_minute_decimals', 3)
        return self.format_axis(self.coordinate.latitude, True, decimals)

    @property
    def longitude_string(self) -> str:
        decimals = _resolve_decimals(None, 'formats.dmm_minute_decimals', 3)
        return self.format_axis(self.coordinate.longitude, False, decimals)

    def format(self, decimals: int = None) -> str:
        """
        Format as "N40°42.768' W074°00.360'".

        Args:
            decimals: Decimals of the minutes (configured default: 3)
        """
        decimals = _resolve_decimals(decimals, 'formats.dmm_minute_decimals', 3)
        return (f"{self.format_axis(self.coordinate.latitude, True, decimals)} "
                f"{self.format_axis(self.coordinate.longitude, False, decimals)}")


@dataclass(frozen=True)
class DMS(CoordinateView):
    """
    Position in degrees, minutes and seconds.

    The canonical coordinate is authoritative; hemisphere, degrees,
    minutes and seconds are derived from it on access.

    Example:
        >>> str(DMS.from_values(40.7128, -74.0060))
        'N40°42\\'46" W074°00\\'22"'
    """

    coordinate: Coordinate

    @classmethod
    def from_canonical(cls, coordinate: Coordinate) -> 'DMS':
        """Create DMS view of a canonical coordinate."""
        return cls(coordinate)

    @classmethod
    def from_values(cls, latitude: float, longitude: float) -> 'DMS':
        """Create DMS view from signed decimal degrees."""
        return cls(Coordinate(latitude, longitude))

    @classmethod
    def parse(cls, text: str) -> 'DMS':
        """Parse a position such as 'N40°42\\'46" W074°00\\'22"'."""
        latitude, longitude = _split_position(text, parse_dms_axis)
        return cls(Coordinate(latitude, longitude))

    @classmethod
    def from_strings(cls, latitude: str, longitude: str) -> 'DMS':
        """Parse latitude and longitude given as separate strings."""
        return cls(Coordinate(parse_dms_axis(latitude, True), parse_dms_axis(longitude, False)))

    def to_canonical(self) -> Coordinate:
        """Get the canonical coordinate."""
        return self.coordinate

    @property
    def latitude_cardinal(self) -> str:
        return CoordinateConverter.cardinal(self.coordinate.latitude, True)

    @property
    def latitude_degrees(self) -> int:
        return CoordinateConverter.decimal_to_dms(self.coordinate.latitude)[0]

    @property
    def latitude_minutes(self) -> int:
        return CoordinateConverter.decimal_to_dms(self.coordinate.latitude)[1]

    @property
    def latitude_seconds(self) -> float:
        return CoordinateConverter.decimal_to_dms(self.coordinate.latitude)[2]

    @property
    def longitude_cardinal(self) -> str:
        return CoordinateConverter.cardinal(self.coordinate.longitude, False)

    @property
    def longitude_degrees(self) -> int:
        return CoordinateConverter.decimal_to_dms(self.coordinate.longitude)[0]

    @property
    def longitude_minutes(self) -> int:
        return CoordinateConverter.decimal_to_dms(self.coordinate.longitude)[1]

    @property
    def longitude_seconds(self) -> float:
        return CoordinateConverter.decimal_to_dms(self.coordinate.longitude)[2]

    @staticmethod
    def format_axis(value: float, is_latitude: bool, decimals: int = 0) -> str:
        """Format one axis as e.g. 'N40°42\\'46"'."""
        degrees, minutes, seconds = CoordinateConverter.decimal_to_dms(value)
        seconds = round(seconds, decimals)
        if seconds >= 60:
            minutes += 1
            seconds -= 60
        if minutes >= 60:
            degrees += 1
            minutes -= 60

        degree_width = 2 if is_latitude else 3
        cardinal = CoordinateConverter.cardinal(value, is_latitude)
        return (f"{cardinal}{degrees:0{degree_width}d}°{minutes:02d}'"
                f"{seconds:0{_number_width(decimals)}.{decimals}f}\"")

    @property
    def latitude_string(self) -> str:
        decimals = _resolve_decimals(None, 'formats.dms_second_decimals', 0)
        return self.format_axis(self.coordinate.latitude, True, decimals)

    @property
    def longitude_string(self) -> str:
        decimals = _resolve_decimals(None, 'formats.dms_second_decimals', 0)
        return self.format_axis(self.coordinate.longitude, False, decimals)

    def format(self, decimals: int = None) -> str:
        """
        Format as 'N40°42\\'46" W074°00\\'22"'.

        Args:
            decimals: Decimals of the seconds (configured default: 0)
        """
        decimals = _resolve_decimals(decimals, 'formats.dms_second_decimals', 0)
        return (f"{self.format_axis(self.coordinate.latitude, True, decimals)} "
                f"{self.format_axis(self.coordinate.longitude, False, decimals)}")


class CoordinateFormat(Enum):
    """Supported coordinate formats."""

    DD = 'DD'
    DMM = 'DMM'
    DMS = 'DMS'
    UTM = 'UTM'
    MGRS = 'MGRS'

    @property
    def view_class(self) -> Type[CoordinateView]:
        """View class implementing this format."""
        return _VIEW_CLASSES[self]

    @classmethod
    def coerce(cls, value: Union['CoordinateFormat', str]) -> 'CoordinateFormat':
        """Resolve a format from an enum member or its name."""
        if isinstance(value, cls):
            return value

        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise CoordinateParseError(str(value), "unknown coordinate format")


_VIEW_CLASSES = {
    CoordinateFormat.DD: DD,
    CoordinateFormat.DMM: DMM,
    CoordinateFormat.DMS: DMS,
    CoordinateFormat.UTM: UTM,
    CoordinateFormat.MGRS: MGRS,
}

# Most specific first, so a DMS string is not taken for DD
_DETECTION_ORDER = (
    CoordinateFormat.MGRS,
    CoordinateFormat.UTM,
    CoordinateFormat.DMS,
    CoordinateFormat.DMM,
    CoordinateFormat.DD,
)


def parse_coordinate(text: str, fmt: Union[CoordinateFormat, str, None] = None) -> CoordinateView:
    """
    Parse coordinate text in the given format.

    Args:
        text: Coordinate text
        fmt: Format of the text; detected when None

    Returns:
        View in the parsed format

    Raises:
        CoordinateParseError: If the text matches no format
    """
    if fmt is not None:
        return CoordinateFormat.coerce(fmt).view_class.parse(text)

    for candidate in _DETECTION_ORDER:
        try:
            view = candidate.view_class.parse(text)
        except (CoordinateParseError, InvalidGridReferenceError):
            continue

        logger.debug(f"Detected {candidate.value} format for '{text}'")
        return view

    raise CoordinateParseError(text, "text matches no supported coordinate format")


def convert(view: CoordinateView, fmt: Union[CoordinateFormat, str]) -> CoordinateView:
    """
    Convert a view to another format through its canonical coordinate.

    Example:
        >>> convert(DD.parse('40.7128, -74.0060'), 'DMM').format()
        "N40°42.768' W074°00.360'"
    """
    return CoordinateFormat.coerce(fmt).view_class.from_canonical(view.to_canonical())


def format_coordinate(coordinate: Coordinate, fmt: Union[CoordinateFormat, str] = CoordinateFormat.DD) -> str:
    """Format a canonical coordinate in the given format."""
    return CoordinateFormat.coerce(fmt).view_class.from_canonical(coordinate).format()
