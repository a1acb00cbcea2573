"""Error taxonomy shared by the core and its adapters.

Adapters translate integration-specific failures (HTTP, sqlite3, Telegram)
into these types so callers only need to know about the core.
"""

from __future__ import annotations


class CargoscopeError(Exception):
    """Base class for all expected, recoverable failures."""


class NotFoundError(CargoscopeError):
    """An operation referenced a load, entry or topic that is not there."""


class ConflictError(CargoscopeError):
    """A unique key (actor id, topic id) is already registered."""


class UpstreamUnavailableError(CargoscopeError):
    """The marketplace feed could not be read (network, auth, rate limit, timeout)."""


class StorageFailureError(CargoscopeError):
    """The durable store failed to read or write."""


class DeliveryError(CargoscopeError):
    """A load could not be delivered to the Telegram chat."""


class ConfigurationError(CargoscopeError):
    """Settings or credentials needed to start a component are missing or invalid."""
