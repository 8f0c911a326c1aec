"""
Exception types for probing, registry access and cache lookups.
"""

from typing import Optional


class NodeMonitorError(Exception):
    """Base class for node monitor errors."""


class ProbeError(NodeMonitorError):
    """A probe could not produce a version answer."""


class ConfigurationError(ProbeError):
    """The node has no usable endpoint; no request was attempted."""


class TransportError(ProbeError):
    """Connection refused, name not resolved or another network failure."""


class ProbeTimeoutError(ProbeError):
    """The request did not complete within the probe timeout."""


class ProtocolError(ProbeError):
    """The node answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RegistryError(NodeMonitorError):
    """The node registry could not be read."""


class CacheMiss(LookupError):
    """No valid cache entry exists for a key."""
