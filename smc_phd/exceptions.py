"""
Exceptions raised by the SMC-PHD filter.

All configuration problems derive from ValueError so callers that already
catch ValueError for bad options keep working.
"""


class ConfigurationError(ValueError):
    """Invalid filter configuration."""


class MissingDependencyError(ConfigurationError):
    """A required model capability (function handle) is not available."""


class SizeMismatchError(ConfigurationError):
    """Supplied arrays disagree with the declared sizes."""


class UnsupportedOptionError(ConfigurationError):
    """Unknown mode, birth strategy or resampling method."""
