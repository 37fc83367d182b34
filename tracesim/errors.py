from __future__ import annotations


class TraceSimError(Exception):
    """Base class for every error raised by tracesim."""


class ConfigError(TraceSimError, ValueError):
    """A simulation configuration that cannot be run as given."""


class TraceError(TraceSimError):
    pass


class TraceReadError(TraceError):
    """Reading or decompressing a trace stream failed."""


class TraceNotFoundError(TraceError):
    pass


class TraceFormatError(TraceError):
    """Trace metadata or raw capture files are unusable."""
