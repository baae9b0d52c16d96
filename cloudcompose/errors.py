class ConfigurationError(ValueError):
    """Raised when composer options cannot produce a valid resource graph."""
