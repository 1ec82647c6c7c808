"""Re-encoding of the SI record as a line-protocol string.

Output format::

    <measurement>,station=<id> <key>=<token>,<key>=<token>,...

Values are the original tokens, unconverted. Placeholder tokens are left
out, the wind octant is emitted as a quoted string, and no timestamp is
appended.
"""

from __future__ import annotations

from ..models.readings import AUX_SENSOR_COUNT, Readings
from .parser import is_placeholder

DEFAULT_MEASUREMENT = "weather"
DEFAULT_STATION = "c8488"
STATION_TAG = "station"

# One entry per body token; None marks positions that are not emitted.
FIELD_KEYS: tuple[str | None, ...] = (
    None,  # marker
    None,  # date
    None,  # time
    "indoor_temperature",
    "indoor_humidity",
    "outdoor_temperature",
    "outdoor_humidity",
    "rain_day",
    "rain_hour",
    "wind_speed",
    "wind_gust",
    "wind_direction",
    "wind_octant",
    "pressure_relative",
    "pressure_absolute",
    "uv_index",
    "dew_point",
    "unknown",
) + tuple(
    f"sensor{i}_{kind}"
    for i in range(1, AUX_SENSOR_COUNT + 1)
    for kind in ("temperature", "humidity")
)

STRING_FIELDS = frozenset({"wind_octant"})


def _escape_tag(value: str) -> str:
    return value.replace(",", r"\,").replace("=", r"\=").replace(" ", r"\ ")


def _escape_measurement(value: str) -> str:
    return value.replace(",", r"\,").replace(" ", r"\ ")


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def encode_fields(body: str) -> list[str]:
    """Return the ``key=value`` pairs for a body, in wire order."""
    fields = []
    for key, token in zip(FIELD_KEYS, body.split(" ")):
        if key is None or is_placeholder(token):
            continue
        value = _quote(token) if key in STRING_FIELDS else token
        fields.append(f"{key}={value}")
    return fields


def encode_line(
    body: str,
    station: str,
    measurement: str = DEFAULT_MEASUREMENT,
) -> str:
    """Render a 0xFE body as one line-protocol record.

    Args:
        body: Reassembled message text.
        station: Value of the ``station`` tag.
        measurement: Measurement name.

    Raises:
        ValueError: If no field in the body has a value.
    """
    fields = encode_fields(body)
    if not fields:
        raise ValueError("Message has no fields with values")
    head = f"{_escape_measurement(measurement)},{STATION_TAG}={_escape_tag(station)}"
    return head + " " + ",".join(fields)


def encode_readings(
    readings: Readings,
    station: str,
    measurement: str = DEFAULT_MEASUREMENT,
) -> str:
    """Render decoded readings, reusing the source tokens verbatim.

    Only readings produced by :func:`parse_readings` carry the source text
    in ``raw``; records built without it cannot be encoded.

    Raises:
        ValueError: If ``readings.raw`` is empty or has no field values.
    """
    if not readings.raw:
        raise ValueError("Readings have no source text to encode")
    return encode_line(readings.raw, station, measurement)
