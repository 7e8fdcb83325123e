"""AI processing service for the recruiting platform."""

__version__ = "0.1.0"
