"""Telemetry decoder for USB HID weather station consoles."""

__version__ = "0.1.0"
