"""Real-time activity classification from a phone's accelerometer stream."""

__version__ = "0.1.0"
