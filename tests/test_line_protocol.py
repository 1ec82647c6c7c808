"""Tests for line-protocol encoding."""

from datetime import datetime

import pytest

from c8488_telemetry.models.readings import Readings
from c8488_telemetry.protocol.line_protocol import (
    FIELD_KEYS,
    encode_fields,
    encode_line,
    encode_readings,
)
from c8488_telemetry.protocol.parser import parse_readings

BODY = (
    "1 2023-05-01 12:30 "
    "21.0 45 12.5 80 1.2 0.3 3.4 5.6 270 WSW 1013.2 1009.8 3 9.1 --.- "
    "19.5 50 " + " ".join(["--.-", "--"] * 6)
)


def test_short_body_example():
    """Placeholder temperature is dropped; marker, date and time are not fields."""
    assert encode_line("0 2023-05-01 12:30 -.- 45", "s1") == "weather,station=s1 indoor_humidity=45"


def test_field_table_matches_record_shape():
    """One key per body token, with the three leading positions suppressed."""
    assert len(FIELD_KEYS) == 32
    assert FIELD_KEYS[:4] == (None, None, None, "indoor_temperature")
    assert FIELD_KEYS[12] == "wind_octant"
    assert FIELD_KEYS[-2:] == ("sensor7_temperature", "sensor7_humidity")


def test_full_record():
    line = encode_line(BODY, "home")
    measurement, fields = line.split(" ", 1)
    assert measurement == "weather,station=home"
    assert fields == (
        "indoor_temperature=21.0,indoor_humidity=45,"
        "outdoor_temperature=12.5,outdoor_humidity=80,"
        "rain_day=1.2,rain_hour=0.3,"
        "wind_speed=3.4,wind_gust=5.6,wind_direction=270,wind_octant=\"WSW\","
        "pressure_relative=1013.2,pressure_absolute=1009.8,"
        "uv_index=3,dew_point=9.1,"
        "sensor1_temperature=19.5,sensor1_humidity=50"
    )


def test_no_trailing_separator():
    line = encode_line(BODY, "home")
    assert not line.endswith(",")
    assert not line.endswith("\n")


def test_tokens_emitted_verbatim():
    """Numbers are not reformatted."""
    line = encode_line("0 2023-05-01 12:30 021.50 45.0", "s1")
    assert line.endswith("indoor_temperature=021.50,indoor_humidity=45.0")


def test_only_octant_quoted():
    fields = encode_fields(BODY)
    quoted = [f for f in fields if '"' in f]
    assert quoted == ['wind_octant="WSW"']


def test_placeholder_octant_omitted():
    body = BODY.replace(" WSW ", " --- ", 1)
    assert "wind_octant" not in encode_line(body, "s1")


def test_roundtrip_omits_exactly_placeholder_fields():
    """Encoding decoded readings drops exactly the absent fields."""
    readings = parse_readings(BODY)
    line = encode_readings(readings, "s1")
    emitted = {pair.split("=", 1)[0] for pair in line.split(" ", 1)[1].split(",")}
    tokens = BODY.split(" ")
    expected = {
        key
        for key, token in zip(FIELD_KEYS, tokens)
        if key is not None and set(token) - set("-.")
    }
    assert emitted == expected
    assert "unknown" not in emitted
    assert "sensor2_temperature" not in emitted


def test_custom_measurement():
    line = encode_line("0 2023-05-01 12:30 20 45", "s1", measurement="console")
    assert line.startswith("console,station=s1 ")


def test_tag_escaping():
    line = encode_line("0 2023-05-01 12:30 20", "back yard,1")
    assert line.startswith(r"weather,station=back\ yard\,1 ")


def test_extra_tokens_ignored():
    line = encode_line(BODY + " 1 2 3", "s1")
    assert line == encode_line(BODY, "s1")


def test_no_fields_raises():
    with pytest.raises(ValueError):
        encode_line("0 2023-05-01 12:30 -.- --", "s1")


def test_encode_readings_needs_source_text():
    """Readings built in code have no tokens to re-emit."""
    readings = Readings(marker=0, timestamp=datetime(2023, 5, 1, 12, 30))
    with pytest.raises(ValueError, match="source text"):
        encode_readings(readings, "s1")
