# soakgen/config/exceptions.py

class ConfigurationError(ValueError):
    """Raised when a soak test configuration is invalid or incomplete"""
    pass
