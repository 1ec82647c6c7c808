"""Data models for decoded station readings."""

from .readings import Readings, Sensor
