"""
route-registry: build-time discovery and registration of routed handlers.

Handlers declare their scope, verb and path with decorators. The package
collects those declarations into a registry and synthesizes a single
registration routine for the hosting framework plus a route listing routine.
"""

__version__ = "0.1.0"

from .core import (
    HTTP_VERBS,
    RegistrationEntry,
    Registry,
    RegistryConfig,
    SourceLocation,
    get_default_registry,
    reset_default_registry,
)
from .processor import MISSING, NOT_LITERAL, AnnotationProcessor, HandlerDeclaration, VerbMarker
from .markers import auto_register, get, post, put, delete, patch
from .discovery import discover_handler_modules, scan_file, scan_paths, scan_source
from .synthesis import GeneratedRoutine, route_rows, synthesize_list_routes, synthesize_register_service
from .build import BuildPass, GeneratedModule, Manifest
from .exceptions import (
    RegistryError,
    DiscoveryError,
    MissingScopeArgument,
    MissingRouteMetadata,
    InvalidSynthesizerArguments,
    LockAcquisitionFailure,
)

__all__ = [
    # Core
    "HTTP_VERBS",
    "RegistrationEntry",
    "Registry",
    "RegistryConfig",
    "SourceLocation",
    "get_default_registry",
    "reset_default_registry",
    # Processing
    "MISSING",
    "NOT_LITERAL",
    "AnnotationProcessor",
    "HandlerDeclaration",
    "VerbMarker",
    # Markers
    "auto_register",
    "get",
    "post",
    "put",
    "delete",
    "patch",
    # Discovery
    "discover_handler_modules",
    "scan_file",
    "scan_paths",
    "scan_source",
    # Synthesis
    "GeneratedRoutine",
    "route_rows",
    "synthesize_list_routes",
    "synthesize_register_service",
    # Build
    "BuildPass",
    "GeneratedModule",
    "Manifest",
    # Exceptions
    "RegistryError",
    "DiscoveryError",
    "MissingScopeArgument",
    "MissingRouteMetadata",
    "InvalidSynthesizerArguments",
    "LockAcquisitionFailure",
]
