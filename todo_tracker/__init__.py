"""Personal task tracker with date-window classification."""

__version__ = "0.1.0"
