"""Error taxonomy for the StatsD client.

Transport failures are deliberately absent: they are plain ``OSError`` and
never leave the emitter (see ``transport.policy``).
"""


class StatsDError(Exception):
    """Base class for every error raised by statsd_instrument."""


class ConfigurationError(StatsDError, ValueError):
    """Raised at bind/configure time: duplicate binding, missing method, bad settings."""


class InvalidArgument(StatsDError, ValueError):
    """Raised synchronously from an emission call with malformed input."""


class UnsupportedOperation(StatsDError, NotImplementedError):
    """Raised when the configured dialect cannot express the requested metric."""
