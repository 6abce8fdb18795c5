"""Exceptions for route-registry.

Every error here is fatal to the build pass that raised it. A misconfigured
handler is never skipped, because a dropped route is a silent regression.
"""

from typing import Optional


def _where(location) -> str:
    if location is None:
        return ""
    return f" ({location.path}:{location.line})"


class RegistryError(Exception):
    """Base exception for registry-related errors."""
    pass


class DiscoveryError(RegistryError):
    """Exception raised when a source file cannot be scanned or imported."""
    pass


class MissingScopeArgument(RegistryError):
    """A handler declaration omitted its scope string."""

    def __init__(self, handler_name: str, location=None):
        self.handler_name = handler_name
        self.location = location
        super().__init__(
            f"Handler '{handler_name}'{_where(location)} is missing its scope argument: "
            f"expected a non-empty string literal such as @auto_register(\"/events\")"
        )


class MissingRouteMetadata(RegistryError):
    """A handler declaration has no usable verb/path marker."""

    def __init__(self, handler_name: str, reason: str, location=None):
        self.handler_name = handler_name
        self.reason = reason
        self.location = location
        super().__init__(
            f"Handler '{handler_name}'{_where(location)} {reason}: "
            f"exactly one verb marker with a path string is required, e.g. @get(\"/search\")"
        )


class InvalidSynthesizerArguments(RegistryError):
    """The service registration synthesizer was called with bad arguments."""
    pass


class LockAcquisitionFailure(RegistryError):
    """The registry lock could not be acquired."""

    def __init__(self, operation: str, timeout: Optional[float]):
        self.operation = operation
        self.timeout = timeout
        super().__init__(
            f"Failed to acquire {operation} lock on the route registry "
            f"within {timeout} seconds"
        )
