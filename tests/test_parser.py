"""Tests for decoding the human-readable SI record."""

from datetime import datetime

import pytest

from c8488_telemetry.protocol.parser import (
    InvalidFieldFormat,
    ReadingsError,
    TruncatedMessage,
    is_placeholder,
    parse_float,
    parse_readings,
    parse_uint8,
)

HEAD = "1 2023-05-01 12:30"
NAMED = "21.0 45 12.5 80 1.2 0.3 3.4 5.6 270 WSW 1013.2 1009.8 3 9.1 --.-"
AUX = "19.5 50 " + " ".join(["--.-", "--"] * 6)
BODY = f"{HEAD} {NAMED} {AUX}"


def test_full_record():
    """Every named field is decoded from its position."""
    r = parse_readings(BODY)
    assert r.marker == 1
    assert r.timestamp == datetime(2023, 5, 1, 12, 30)
    assert r.indoor.temperature == 21.0
    assert r.indoor.humidity == 45.0
    assert r.outdoor.temperature == 12.5
    assert r.outdoor.humidity == 80.0
    assert r.rain_day == 1.2
    assert r.rain_hour == 0.3
    assert r.wind_speed == 3.4
    assert r.wind_gust == 5.6
    assert r.wind_direction == 270.0
    assert r.wind_octant == "WSW"
    assert r.pressure_relative == 1013.2
    assert r.pressure_absolute == 1009.8
    assert r.uv_index == 3
    assert isinstance(r.uv_index, int)
    assert r.dew_point == 9.1
    assert r.unknown is None
    assert r.raw == BODY


def test_aux_sensors():
    """Seven auxiliary pairs follow the named fields."""
    r = parse_readings(BODY)
    assert len(r.sensors) == 7
    assert r.sensors[0].temperature == 19.5
    assert r.sensors[0].humidity == 50.0
    for sensor in r.sensors[1:]:
        assert sensor.temperature is None
        assert sensor.humidity is None
        assert not sensor.present


@pytest.mark.parametrize("token", ["-", ".", "--.-", "---", ""])
def test_placeholder_tokens(token):
    assert is_placeholder(token)


@pytest.mark.parametrize("token", ["0", "-1", "1.", "-.5", "N", "1-"])
def test_non_placeholder_tokens(token):
    assert not is_placeholder(token)


@pytest.mark.parametrize("token", ["-", ".", "--.-"])
def test_placeholder_decodes_to_none(token):
    """Placeholders mean 'no value', never zero or an error."""
    body = BODY.replace("21.0 45", f"{token} 45", 1)
    r = parse_readings(body)
    assert r.indoor.temperature is None
    assert r.indoor.humidity == 45.0


def test_negative_values_are_numbers():
    body = BODY.replace("12.5 80", "-3.5 80", 1)
    assert parse_readings(body).outdoor.temperature == -3.5


def test_truncated_named_fields():
    with pytest.raises(TruncatedMessage):
        parse_readings(f"{HEAD} 21.0 45")


def test_truncated_aux_sensors():
    """Missing the last aux humidity is still truncation."""
    body = BODY.rsplit(" ", 1)[0]
    with pytest.raises(TruncatedMessage):
        parse_readings(body)


def test_truncated_before_time():
    with pytest.raises(TruncatedMessage):
        parse_readings("1 2023-05-01")


def test_extra_tokens_ignored():
    r = parse_readings(BODY + " 99 extra tokens")
    assert r.sensors[-1].humidity is None


def test_invalid_number():
    body = BODY.replace("21.0 45", "21,0 45", 1)
    with pytest.raises(InvalidFieldFormat):
        parse_readings(body)


def test_invalid_uv_index():
    body = BODY.replace(" 3 9.1 ", " 3.5 9.1 ", 1)
    with pytest.raises(InvalidFieldFormat):
        parse_readings(body)


def test_placeholder_uv_index():
    body = BODY.replace(" 3 9.1 ", " - 9.1 ", 1)
    assert parse_readings(body).uv_index is None


def test_invalid_timestamp():
    with pytest.raises(InvalidFieldFormat):
        parse_readings(BODY.replace("12:30", "12h30", 1))


def test_placeholder_marker_is_invalid():
    with pytest.raises(InvalidFieldFormat):
        parse_readings("-" + BODY[1:])


def test_octant_taken_verbatim():
    """The octant is not subject to the placeholder rule."""
    body = BODY.replace(" WSW ", " --- ", 1)
    assert parse_readings(body).wind_octant == "---"


def test_errors_are_value_errors():
    assert issubclass(TruncatedMessage, ReadingsError)
    assert issubclass(InvalidFieldFormat, ReadingsError)
    assert issubclass(ReadingsError, ValueError)


def test_parse_uint8_bounds():
    assert parse_uint8("255") == 255
    with pytest.raises(ValueError):
        parse_uint8("256")
    with pytest.raises(ValueError):
        parse_uint8("-1")


def test_to_dict_serializable():
    d = parse_readings(BODY).to_dict()
    assert d["timestamp"] == "2023-05-01T12:30:00"
    assert d["wind"]["octant"] == "WSW"
    assert d["pressure"]["relative"] == 1013.2
    assert list(d["sensors"]) == ["1"]


@pytest.mark.parametrize("token", ["2_1.0", "٢١", "21.0\t", "21.0\r", "1e", "0x10", "+-1"])
def test_malformed_numbers_rejected(token):
    """Underscores, non-ASCII digits and padding are not numbers."""
    body = BODY.replace("21.0 45", f"{token} 45", 1)
    with pytest.raises(InvalidFieldFormat):
        parse_readings(body)


@pytest.mark.parametrize(
    "token, expected",
    [("21", 21.0), ("+21.5", 21.5), ("21.", 21.0), (".5", 0.5), ("-1e2", -100.0), ("2E-1", 0.2)],
)
def test_parse_float_accepts_plain_decimals(token, expected):
    assert parse_float(token) == expected


def test_parse_float_accepts_inf():
    assert parse_float("inf") == float("inf")
