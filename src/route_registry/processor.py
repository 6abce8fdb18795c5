"""
Annotation processing for handler declarations.

A HandlerDeclaration is the raw metadata attached to one handler: its scope
argument and the verb markers found among its decorators. The processor
validates it, builds a RegistrationEntry and files it in a registry. The
handler itself is never touched.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from .core import RegistrationEntry, Registry, RegistryConfig, SourceLocation, get_default_registry
from .exceptions import MissingRouteMetadata, MissingScopeArgument

logger = logging.getLogger(__name__)


class _Sentinel:
    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name


# Argument was not given at all
MISSING = _Sentinel("MISSING")
# Argument was given but is not a string literal
NOT_LITERAL = _Sentinel("NOT_LITERAL")


@dataclass(frozen=True)
class VerbMarker:
    """One verb decorator seen on a handler, e.g. ``get("/search")``."""
    name: str
    args: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class HandlerDeclaration:
    """
    Unvalidated registration metadata for one handler.

    Attributes:
        name: Handler function name
        scope: Raw scope argument (MISSING or NOT_LITERAL when unusable)
        markers: Decorators that may carry verb/path metadata
        module: Dotted module of the handler, if known
        location: Source location of the declaration, if known
    """
    name: str
    scope: Any = MISSING
    markers: Tuple[VerbMarker, ...] = ()
    module: Optional[str] = None
    location: Optional[SourceLocation] = None


class AnnotationProcessor:
    """Validate declarations and insert one entry per declaration."""

    def __init__(self, registry: Optional[Registry] = None, config: Optional[RegistryConfig] = None):
        self.registry = registry if registry is not None else get_default_registry()
        self.config = config or self.registry.config
        self._verbs = {verb.lower() for verb in self.config.verbs}

    def process(self, declaration: HandlerDeclaration) -> RegistrationEntry:
        """
        Validate a declaration and file its entry under the declared scope.

        Raises:
            MissingScopeArgument: scope absent, not a string, or empty
            MissingRouteMetadata: no single verb marker with a path string
        """
        scope = self._extract_scope(declaration)
        verb, path = self._extract_route(declaration)

        entry = RegistrationEntry(
            scope=scope,
            handler_name=declaration.name,
            path=path,
            verb=verb,
            module=declaration.module,
            location=declaration.location,
        )
        self.registry.insert(scope, entry)

        if self.config.log_registration:
            logger.debug(
                f"Registered {self.config.registry_name} {verb} {scope!r} {path!r} -> {declaration.name}"
            )
        return entry

    @staticmethod
    def _extract_scope(declaration: HandlerDeclaration) -> str:
        scope = declaration.scope
        if not isinstance(scope, str) or not scope:
            raise MissingScopeArgument(declaration.name, declaration.location)
        return scope

    def _extract_route(self, declaration: HandlerDeclaration) -> Tuple[str, str]:
        recognized = [m for m in declaration.markers if m.name.lower() in self._verbs]

        if not recognized:
            raise MissingRouteMetadata(
                declaration.name, "has no verb marker", declaration.location
            )
        if len(recognized) > 1:
            names = ", ".join(m.name for m in recognized)
            raise MissingRouteMetadata(
                declaration.name, f"has several verb markers ({names})", declaration.location
            )

        marker = recognized[0]
        if len(marker.args) != 1 or not isinstance(marker.args[0], str):
            raise MissingRouteMetadata(
                declaration.name,
                f"has a '{marker.name}' marker without a path string",
                declaration.location,
            )
        return marker.name.upper(), marker.args[0]
