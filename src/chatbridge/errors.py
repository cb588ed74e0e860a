"""Exception hierarchy for the bridge.

Startup failures (:class:`ConfigError`, :class:`StartupError`) are fatal and
abort the process.  :class:`ConnectionClosed` ends a single relay worker,
while :class:`ReceiveError` is logged and the worker keeps listening.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for all bridge errors."""


class ConfigError(BridgeError):
    """The configuration file could not be read or decoded."""


class StartupError(BridgeError):
    """A network connection failed to establish or authenticate."""


class ConnectionClosed(BridgeError):
    """The underlying network connection was closed for good."""


class ReceiveError(BridgeError):
    """A recoverable failure while waiting for the next event."""
