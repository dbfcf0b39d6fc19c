"""soakgen: rate-controlled soak test load generator."""

__version__ = "1.0.0"
