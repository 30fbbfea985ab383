"""Exception hierarchy for director access."""

from __future__ import annotations


class DirectorError(Exception):
    """Base exception for all director access errors."""


class AuthError(DirectorError):
    """Token issuer unreachable or the client-credentials grant was rejected."""


class DirectorTransportError(DirectorError):
    """A request to the director could not be transmitted."""


class ConfigurationError(DirectorError):
    """Director access is misconfigured (e.g. missing CA certificate)."""
