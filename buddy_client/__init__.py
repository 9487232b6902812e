"""Client for the ML dynamic-prediction buddy allocation service."""

__version__ = "1.0.0"
