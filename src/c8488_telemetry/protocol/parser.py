"""Decoding of the human-readable SI record (message type 0xFE).

The body is a single line of space-separated tokens::

    <marker> <date> <time> <in temp> <in hum> <out temp> <out hum>
    <rain day> <rain hour> <wind> <gust> <dir> <octant> <rel pres>
    <abs pres> <uv> <dew point> <unknown> (<aux temp> <aux hum>) x 7

Fields are purely positional.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Callable, Iterator

from ..models.readings import AUX_SENSOR_COUNT, Readings, Sensor

PLACEHOLDER_CHARS = frozenset("-.")
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"
FLOAT_PATTERN = re.compile(
    r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|[+-]?(?:inf|infinity|nan)",
    re.IGNORECASE | re.ASCII,
)


class ReadingsError(ValueError):
    """The body could not be decoded."""


class TruncatedMessage(ReadingsError):
    """The body ended before every field was read."""


class InvalidFieldFormat(ReadingsError):
    """A token could not be parsed as its field's type."""


def is_placeholder(token: str) -> bool:
    """True for tokens made only of ``-`` and ``.`` (sensor absent).

    The empty token left by doubled spaces counts as a placeholder too.
    """
    return set(token) <= PLACEHOLDER_CHARS


def parse_float(token: str) -> float:
    """Plain ASCII decimal, exponent or inf/nan; no underscores or padding."""
    if not FLOAT_PATTERN.fullmatch(token):
        raise ValueError(f"not a number: {token!r}")
    return float(token)


def parse_uint8(token: str) -> int:
    if not (token.isascii() and token.isdigit()):
        raise ValueError(f"not an unsigned integer: {token!r}")
    value = int(token)
    if value > 0xFF:
        raise ValueError(f"out of range for a byte: {token!r}")
    return value


class _Tokens:
    """Left-to-right cursor over the body tokens."""

    def __init__(self, body: str) -> None:
        self._iter: Iterator[str] = iter(body.split(" "))
        self.position = 0

    def next(self, name: str) -> str:
        try:
            token = next(self._iter)
        except StopIteration:
            raise TruncatedMessage(
                f"Message ended at token {self.position} while reading {name}"
            ) from None
        self.position += 1
        return token

    def pop(self, name: str, convert: Callable[[str], object] = parse_float):
        """Next token converted, or ``None`` for a placeholder."""
        token = self.next(name)
        if is_placeholder(token):
            return None
        try:
            return convert(token)
        except ValueError:
            raise InvalidFieldFormat(
                f"Invalid {name} {token!r} at token {self.position - 1}"
            ) from None

    def sensor(self, name: str) -> Sensor:
        return Sensor(
            temperature=self.pop(f"{name} temperature"),
            humidity=self.pop(f"{name} humidity"),
        )


def parse_readings(body: str) -> Readings:
    """Parse a 0xFE message body into :class:`Readings`.

    Raises:
        TruncatedMessage: Fewer tokens than the record needs.
        InvalidFieldFormat: A token is not valid for its field.
    """
    tokens = _Tokens(body)

    marker = tokens.pop("marker", parse_uint8)
    if marker is None:
        raise InvalidFieldFormat("Marker field cannot be empty")

    stamp = f"{tokens.next('date')} {tokens.next('time')}"
    try:
        timestamp = datetime.strptime(stamp, TIMESTAMP_FORMAT)
    except ValueError:
        raise InvalidFieldFormat(f"Invalid timestamp {stamp!r}") from None

    indoor = tokens.sensor("indoor")
    outdoor = tokens.sensor("outdoor")
    rain_day = tokens.pop("rain day")
    rain_hour = tokens.pop("rain hour")
    wind_speed = tokens.pop("wind speed")
    wind_gust = tokens.pop("wind gust")
    wind_direction = tokens.pop("wind direction")
    # Compass abbreviation, kept verbatim.
    wind_octant = tokens.next("wind octant")
    pressure_relative = tokens.pop("relative pressure")
    pressure_absolute = tokens.pop("absolute pressure")
    uv_index = tokens.pop("UV index", parse_uint8)
    dew_point = tokens.pop("dew point")
    unknown = tokens.pop("unknown")
    sensors = tuple(
        tokens.sensor(f"sensor {i}") for i in range(1, AUX_SENSOR_COUNT + 1)
    )

    return Readings(
        marker=marker,
        timestamp=timestamp,
        indoor=indoor,
        outdoor=outdoor,
        rain_day=rain_day,
        rain_hour=rain_hour,
        wind_speed=wind_speed,
        wind_gust=wind_gust,
        wind_direction=wind_direction,
        wind_octant=wind_octant,
        pressure_relative=pressure_relative,
        pressure_absolute=pressure_absolute,
        uv_index=uv_index,
        dew_point=dew_point,
        unknown=unknown,
        sensors=sensors,
        raw=body,
    )
