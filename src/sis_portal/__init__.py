"""SIS Portal: School Information System admin console backend."""

__version__ = "1.0.0"
