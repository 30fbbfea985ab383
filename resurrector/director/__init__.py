"""Director access — auth, endpoint status probing, remediation dispatch."""

from resurrector.director.auth import AuthProvider
from resurrector.director.dispatcher import (
    DISABLED_TITLE,
    MELTDOWN_TITLE,
    RemediationDispatcher,
    build_escalation,
)
from resurrector.director.exceptions import (
    AuthError,
    ConfigurationError,
    DirectorError,
    DirectorTransportError,
)
from resurrector.director.files import FileAccess, LocalFileAccess
from resurrector.director.status import EndpointStatusTracker

__all__ = [
    "DISABLED_TITLE",
    "MELTDOWN_TITLE",
    "AuthError",
    "AuthProvider",
    "ConfigurationError",
    "DirectorError",
    "DirectorTransportError",
    "EndpointStatusTracker",
    "FileAccess",
    "LocalFileAccess",
    "RemediationDispatcher",
    "build_escalation",
]
