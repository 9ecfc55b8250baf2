"""UniFi controller metrics collector."""

__version__ = "1.0.0"
