"""Custom exceptions for Lighterceptor."""


class LighterceptorError(Exception):
    """Base exception for all Lighterceptor errors."""


class ConfigError(LighterceptorError):
    """Raised when configuration is invalid or cannot be loaded."""


class RenderingEnvironmentError(LighterceptorError):
    """Raised when the rendering environment cannot parse or execute markup.

    Fatal for the discovery run: once tree construction itself has failed,
    no partial request log can be trusted.
    """


class OutputError(LighterceptorError):
    """Raised when a discovery result cannot be written to disk."""
