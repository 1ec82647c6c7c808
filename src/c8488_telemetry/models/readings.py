"""Sensor reading models for the human-readable SI record.

Every measurement is optional: the console sends a run of ``-`` and
``.`` characters for sensors that are not connected, which is kept as
``None`` rather than zero.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

AUX_SENSOR_COUNT = 7


@dataclass
class Sensor:
    """A temperature/humidity pair."""

    temperature: float | None = None
    humidity: float | None = None

    def to_dict(self) -> dict:
        return {"temperature": self.temperature, "humidity": self.humidity}

    @property
    def present(self) -> bool:
        return self.temperature is not None or self.humidity is not None


@dataclass
class Readings:
    """One decoded ``0xFE`` record, fields in wire order."""

    marker: int
    timestamp: datetime
    indoor: Sensor = field(default_factory=Sensor)
    outdoor: Sensor = field(default_factory=Sensor)
    rain_day: float | None = None
    rain_hour: float | None = None
    wind_speed: float | None = None
    wind_gust: float | None = None
    wind_direction: float | None = None
    wind_octant: str = ""
    pressure_relative: float | None = None
    pressure_absolute: float | None = None
    uv_index: int | None = None
    dew_point: float | None = None
    unknown: float | None = None
    sensors: tuple[Sensor, ...] = field(
        default_factory=lambda: tuple(Sensor() for _ in range(AUX_SENSOR_COUNT))
    )
    # Source body; line-protocol encoding re-emits its tokens.
    raw: str = ""

    def to_dict(self) -> dict:
        """Convert readings to a JSON-serializable dictionary."""
        return {
            "marker": self.marker,
            "timestamp": self.timestamp.isoformat(),
            "indoor": self.indoor.to_dict(),
            "outdoor": self.outdoor.to_dict(),
            "rain": {"day": self.rain_day, "hour": self.rain_hour},
            "wind": {
                "speed": self.wind_speed,
                "gust": self.wind_gust,
                "direction": self.wind_direction,
                "octant": self.wind_octant,
            },
            "pressure": {
                "relative": self.pressure_relative,
                "absolute": self.pressure_absolute,
            },
            "uv_index": self.uv_index,
            "dew_point": self.dew_point,
            "unknown": self.unknown,
            "sensors": {
                str(i): sensor.to_dict()
                for i, sensor in enumerate(self.sensors, start=1)
                if sensor.present
            },
        }

    def __repr__(self) -> str:
        return (
            f"Readings(timestamp={self.timestamp:%Y-%m-%d %H:%M}, "
            f"indoor={self.indoor.temperature}, outdoor={self.outdoor.temperature})"
        )
