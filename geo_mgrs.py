"""
Military Grid Reference System (MGRS) coordinates.
Builds on UTM and adds the 100 km grid square letters.
"""

import logging
import re
from dataclasses import dataclass

from geo_config import get_config
from geo_coordinates import (
    Coordinate,
    CoordinateError,
    CoordinateParseError,
    CoordinateView,
)
from geo_utm import GRID_LETTERS, UTM

logger = logging.getLogger(__name__)

COLUMN_LETTERS = GRID_LETTERS
ROW_LETTERS = 'ABCDEFGHJKLMNPQRSTUV'

# Letters at the origin of each of the six repeating 100 km square sets
SET_ORIGIN_COLUMN_LETTERS = 'AJSAJS'
SET_ORIGIN_ROW_LETTERS = 'AFAFAF'
NUM_100K_SETS = 6

SQUARE_SIZE = 100000
COLUMNS_PER_ZONE = 8
ROW_CYCLE = 2000000

# Lowest northing of each latitude band, rounded down to 100 km
MIN_NORTHING = {
    'C': 1100000.0,
    'D': 2000000.0,
    'E': 2800000.0,
    'F': 3700000.0,
    'G': 4600000.0,
    'H': 5500000.0,
    'J': 6400000.0,
    'K': 7300000.0,
    'L': 8200000.0,
    'M': 9100000.0,
    'N': 0.0,
    'P': 800000.0,
    'Q': 1700000.0,
    'R': 2600000.0,
    'S': 3500000.0,
    'T': 4400000.0,
    'U': 5300000.0,
    'V': 6200000.0,
    'W': 7000000.0,
    'X': 7900000.0,
}

_MGRS_PATTERN = re.compile(r'^(?P<zone>\d{1,2})(?P<band>[A-Z])(?P<square>[A-Z]{2})(?P<digits>.*)$')
_DIGITS = re.compile(r'^[0-9]+$')


class InvalidGridReferenceError(CoordinateError):
    """Raised when an MGRS zone, band or grid square letter is invalid."""

    def __init__(self, reference: str, reason: str):
        self.reference = reference
        self.reason = reason
        super().__init__(f"Invalid grid reference '{reference}': {reason}")


class InvalidPrecisionError(CoordinateError, ValueError):
    """Raised when an MGRS precision is not a whole number of digits 1-5."""

    def __init__(self, precision):
        self.precision = precision
        super().__init__(f"MGRS precision must be 1-5 digits, got {precision!r}")


def get_100k_set_for_zone(zone: int) -> int:
    """Get the 100 km square letter set (1-6) used by a UTM zone."""
    set_number = zone % NUM_100K_SETS
    if set_number == 0:
        set_number = NUM_100K_SETS
    return set_number


def calculate_digraph(zone: int, easting: float, northing: float) -> str:
    """
    Get the two letters naming the 100 km square of a UTM position.

    Args:
        zone: UTM zone number
        easting: Easting in metres
        northing: Northing in metres

    Returns:
        Column letter followed by row letter
    """
    column = ((zone - 1) * COLUMNS_PER_ZONE + int(easting // SQUARE_SIZE) - 1) % len(COLUMN_LETTERS)

    row = int(northing // SQUARE_SIZE)
    # Even zones have their row letters offset by five
    if zone % 2 == 0:
        row += 5
    row %= len(ROW_LETTERS)

    return COLUMN_LETTERS[column] + ROW_LETTERS[row]


def get_easting_from_char(letter: str, set_number: int, reference: str = '') -> float:
    """
    Get the easting of the western edge of a 100 km column.

    Walks the column letters from the set's origin letter, counting
    100 km per step.

    Raises:
        InvalidGridReferenceError: If the letter is not a column of the set
    """
    if letter not in COLUMN_LETTERS:
        raise InvalidGridReferenceError(reference, f"'{letter}' is not a column letter")

    index = COLUMN_LETTERS.index(SET_ORIGIN_COLUMN_LETTERS[set_number - 1])
    easting = float(SQUARE_SIZE)
    wrapped = False

    while COLUMN_LETTERS[index] != letter:
        index += 1
        if index == len(COLUMN_LETTERS):
            if wrapped:
                raise InvalidGridReferenceError(reference, f"column letter '{letter}' not found")
            index = 0
            wrapped = True
        easting += SQUARE_SIZE

    if easting > COLUMNS_PER_ZONE * SQUARE_SIZE:
        raise InvalidGridReferenceError(
            reference, f"column letter '{letter}' does not belong to 100 km set {set_number}"
        )

    return easting


def get_northing_from_char(letter: str, set_number: int, reference: str = '') -> float:
    """
    Get the northing of the southern edge of a 100 km row, modulo 2000 km.

    Raises:
        InvalidGridReferenceError: If the letter is not a row letter
    """
    if letter not in ROW_LETTERS:
        raise InvalidGridReferenceError(reference, f"'{letter}' is not a row letter")

    index = ROW_LETTERS.index(SET_ORIGIN_ROW_LETTERS[set_number - 1])
    northing = 0.0
    wrapped = False

    while ROW_LETTERS[index] != letter:
        index += 1
        if index == len(ROW_LETTERS):
            if wrapped:
                raise InvalidGridReferenceError(reference, f"row letter '{letter}' not found")
            index = 0
            wrapped = True
        northing += SQUARE_SIZE

    return northing


def get_min_northing(zone_letter: str, reference: str = '') -> float:
    """
    Get the minimum northing of a latitude band.

    Raises:
        InvalidGridReferenceError: If the band letter has no entry
    """
    try:
        return MIN_NORTHING[zone_letter]
    except KeyError:
        raise InvalidGridReferenceError(reference, f"'{zone_letter}' is not a latitude band letter")


def _resolve_precision(precision) -> int:
    if precision is None:
        precision = get_config().get('formats.mgrs_precision', 5)
    if isinstance(precision, bool) or not isinstance(precision, int) or not 1 <= precision <= 5:
        raise InvalidPrecisionError(precision)
    return precision


@dataclass(frozen=True)
class MGRS(CoordinateView):
    """
    Position in Military Grid Reference System format.

    The easting and northing numerals are kept as text since their length
    carries the precision: 1 digit is 10 km, 5 digits is 1 m.

    Attributes:
        zone_number: UTM zone 1-60
        zone_letter: Latitude band letter C-X
        digraph: 100 km square letters (column, row)
        easting_text: Easting within the square, zero padded
        northing_text: Northing within the square, zero padded

    Example:
        >>> MGRS.parse('21M SQ 67286 46576').to_canonical()
        Coordinate(latitude=-5.0..., longitude=-60.0...)
    """

    zone_number: int
    zone_letter: str
    digraph: str
    easting_text: str
    northing_text: str

    def __post_init__(self):
        """Validate grid zone, square letters and numerals."""
        reference = f"{self.zone_number}{self.zone_letter} {self.digraph} {self.easting_text} {self.northing_text}"

        if not isinstance(self.zone_number, int) or not 1 <= self.zone_number <= 60:
            raise InvalidGridReferenceError(reference, f"zone number {self.zone_number!r} must be 1-60")

        get_min_northing(self.zone_letter, reference)

        if not isinstance(self.digraph, str) or len(self.digraph) != 2:
            raise InvalidGridReferenceError(reference, "100 km square must be two letters")

        set_number = get_100k_set_for_zone(self.zone_number)
        get_easting_from_char(self.digraph[0], set_number, reference)
        get_northing_from_char(self.digraph[1], set_number, reference)

        for numerals in (self.easting_text, self.northing_text):
            if not isinstance(numerals, str) or not _DIGITS.match(numerals):
                raise CoordinateParseError(reference, f"numerals {numerals!r} must be digits")

        if len(self.easting_text) != len(self.northing_text):
            raise CoordinateParseError(reference, "easting and northing must have the same number of digits")

        if not 1 <= len(self.easting_text) <= 5:
            raise CoordinateParseError(reference, "easting and northing must have 1 to 5 digits")

    @classmethod
    def from_utm(cls, utm: UTM, precision: int = None) -> 'MGRS':
        """
        Encode a UTM coordinate as MGRS.

        Args:
            utm: UTM coordinate
            precision: Digits per axis, 1-5 (configured default: 5)

        Returns:
            MGRS instance
        """
        precision = _resolve_precision(precision)

        # Whole metres, so the square letters and the numerals agree
        easting = int(round(utm.easting))
        northing = int(round(utm.northing))

        digraph = calculate_digraph(utm.zone_number, easting, northing)
        easting_text = f"{easting % SQUARE_SIZE:05d}"[:precision]
        northing_text = f"{northing % SQUARE_SIZE:05d}"[:precision]

        return cls(utm.zone_number, utm.zone_letter, digraph, easting_text, northing_text)

    @classmethod
    def from_canonical(cls, coordinate: Coordinate, precision: int = None) -> 'MGRS':
        """
        Create MGRS coordinate by forward projection.

        Raises:
            OutOfRangeError: If the position lies beyond 80S or 84N
        """
        return cls.from_utm(UTM.from_canonical(coordinate), precision)

    @classmethod
    def parse(cls, text: str) -> 'MGRS':
        """
        Parse MGRS text such as '21M SQ 67286 46576'.

        Whitespace is ignored and letters are upper-cased.

        Raises:
            InvalidGridReferenceError: If zone, band or square letters are invalid
            CoordinateParseError: If the numerals are malformed
        """
        if not isinstance(text, str):
            raise CoordinateParseError(str(text), "MGRS reference must be text")

        cleaned = re.sub(r'\s+', '', text).upper()
        match = _MGRS_PATTERN.match(cleaned)

        if not match:
            raise InvalidGridReferenceError(
                text, "expected a grid zone designator followed by two square letters"
            )

        digits = match.group('digits')
        if not _DIGITS.match(digits) or len(digits) % 2 != 0:
            raise CoordinateParseError(text, "expected an even number of digits after the square letters")

        half = len(digits) // 2
        return cls(
            int(match.group('zone')),
            match.group('band'),
            match.group('square'),
            digits[:half],
            digits[half:]
        )

    @property
    def precision(self) -> int:
        """Digits per axis (1 = 10 km ... 5 = 1 m)."""
        return len(self.easting_text)

    @property
    def resolution(self) -> float:
        """Side length in metres of the grid cell this reference names."""
        return SQUARE_SIZE / 10 ** self.precision

    def with_precision(self, precision: int) -> 'MGRS':
        """
        Get the same reference with a different number of digits.

        Digits are truncated when reducing precision and zero padded when
        increasing it.
        """
        precision = _resolve_precision(precision)
        return MGRS(
            self.zone_number,
            self.zone_letter,
            self.digraph,
            self.easting_text[:precision].ljust(precision, '0'),
            self.northing_text[:precision].ljust(precision, '0')
        )

    def to_utm(self) -> UTM:
        """
        Recover the UTM coordinate of the south-west corner of the cell.

        The row letters repeat every 2000 km, so the northing is raised in
        2000 km steps until it reaches the band's minimum northing.
        """
        reference = self.format()
        set_number = get_100k_set_for_zone(self.zone_number)

        east100k = get_easting_from_char(self.digraph[0], set_number, reference)
        north100k = get_northing_from_char(self.digraph[1], set_number, reference)

        min_northing = get_min_northing(self.zone_letter, reference)
        while north100k < min_northing:
            north100k += ROW_CYCLE

        scale = self.resolution
        easting = int(self.easting_text) * scale + east100k
        northing = int(self.northing_text) * scale + north100k

        return UTM(self.zone_number, self.zone_letter, easting, northing)

    def to_canonical(self) -> Coordinate:
        """Recover latitude/longitude through UTM inverse projection."""
        return self.to_utm().to_canonical()

    @property
    def easting(self) -> float:
        """Absolute UTM easting in metres."""
        return self.to_utm().easting

    @property
    def northing(self) -> float:
        """Absolute UTM northing in metres."""
        return self.to_utm().northing

    def format(self) -> str:
        """Format as '<zone><letter> <digraph> <easting> <northing>'."""
        return f"{self.zone_number:02d}{self.zone_letter} {self.digraph} {self.easting_text} {self.northing_text}"
