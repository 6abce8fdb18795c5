"""Tests for route_registry.processor module."""

import logging

import pytest

from route_registry import (
    MISSING,
    NOT_LITERAL,
    AnnotationProcessor,
    HandlerDeclaration,
    RegistrationEntry,
    RegistryConfig,
    Registry,
    SourceLocation,
    VerbMarker,
    get_default_registry,
)
from route_registry.exceptions import MissingRouteMetadata, MissingScopeArgument


def declare(name="search_events", scope="/events", markers=(VerbMarker("get", ("/search",)),), **kwargs):
    return HandlerDeclaration(name=name, scope=scope, markers=tuple(markers), **kwargs)


class TestAnnotationProcessor:
    """Test validation and insertion."""

    def test_basic_declaration(self, registry):
        """scope "/events" + get("/search") on search_events."""
        entry = AnnotationProcessor(registry).process(declare())

        assert entry == RegistrationEntry(
            scope="/events", handler_name="search_events", path="/search", verb="GET"
        )
        assert registry.snapshot_for("/events") == [entry]

    @pytest.mark.parametrize("marker,verb", [
        ("get", "GET"),
        ("post", "POST"),
        ("put", "PUT"),
        ("delete", "DELETE"),
        ("patch", "PATCH"),
        ("Post", "POST"),
    ])
    def test_verb_normalized(self, registry, marker, verb):
        entry = AnnotationProcessor(registry).process(declare(markers=[VerbMarker(marker, ("/x",))]))
        assert entry.verb == verb

    def test_empty_path_is_scope_root(self, registry):
        entry = AnnotationProcessor(registry).process(declare(markers=[VerbMarker("get", ("",))]))
        assert entry.path == ""

    def test_module_and_location_carried(self, registry):
        location = SourceLocation("app/events.py", 7)
        entry = AnnotationProcessor(registry).process(
            declare(module="app.events", location=location)
        )
        assert entry.module == "app.events"
        assert entry.location == location

    def test_unrecognized_markers_ignored(self, registry):
        markers = [VerbMarker("cached", ()), VerbMarker("get", ("/search",)), VerbMarker("auth", ("admin",))]
        entry = AnnotationProcessor(registry).process(declare(markers=markers))
        assert (entry.verb, entry.path) == ("GET", "/search")

    def test_n_declarations_same_scope(self, registry):
        processor = AnnotationProcessor(registry)
        expected = [processor.process(declare(name=f"h{i}", markers=[VerbMarker("get", (f"/{i}",))]))
                    for i in range(5)]

        assert registry.snapshot_for("/events") == expected
        assert registry.snapshot_for("/events") == registry.snapshot_for("/events")

    def test_uses_default_registry(self):
        AnnotationProcessor().process(declare())
        assert len(get_default_registry()) == 1

    def test_custom_verbs(self):
        registry = Registry(RegistryConfig(verbs=("get", "options")))
        entry = AnnotationProcessor(registry).process(declare(markers=[VerbMarker("options", ("/",))]))
        assert entry.verb == "OPTIONS"

    def test_logs_registration(self, registry, caplog):
        with caplog.at_level(logging.DEBUG, logger="route_registry.processor"):
            AnnotationProcessor(registry).process(declare())
        assert "search_events" in caplog.text

    def test_logging_disabled(self, caplog):
        registry = Registry(RegistryConfig(log_registration=False))
        with caplog.at_level(logging.DEBUG, logger="route_registry.processor"):
            AnnotationProcessor(registry).process(declare())
        assert "search_events" not in caplog.text


class TestScopeValidation:
    """Declarations without a usable scope."""

    @pytest.mark.parametrize("scope", [MISSING, NOT_LITERAL, None, 42, ""])
    def test_rejected(self, registry, scope):
        with pytest.raises(MissingScopeArgument, match="search_events"):
            AnnotationProcessor(registry).process(declare(scope=scope))
        assert len(registry) == 0

    def test_scope_checked_before_route(self, registry):
        with pytest.raises(MissingScopeArgument):
            AnnotationProcessor(registry).process(declare(scope=MISSING, markers=[]))


class TestRouteValidation:
    """Declarations without a usable verb marker."""

    def test_no_marker(self, registry):
        with pytest.raises(MissingRouteMetadata, match="has no verb marker"):
            AnnotationProcessor(registry).process(declare(markers=[]))
        assert len(registry) == 0

    def test_only_unrecognized_markers(self, registry):
        with pytest.raises(MissingRouteMetadata, match="search_events"):
            AnnotationProcessor(registry).process(declare(markers=[VerbMarker("head", ("/x",))]))

    @pytest.mark.parametrize("args", [(), (NOT_LITERAL,), (3,), ("/a", "/b")])
    def test_marker_without_path_string(self, registry, args):
        with pytest.raises(MissingRouteMetadata, match="'get' marker without a path string"):
            AnnotationProcessor(registry).process(declare(markers=[VerbMarker("get", args)]))
        assert len(registry) == 0

    def test_several_markers(self, registry):
        markers = [VerbMarker("get", ("/a",)), VerbMarker("post", ("/a",))]
        with pytest.raises(MissingRouteMetadata, match="several verb markers"):
            AnnotationProcessor(registry).process(declare(markers=markers))
        assert len(registry) == 0

    def test_error_carries_location(self, registry):
        location = SourceLocation("app/events.py", 3)
        with pytest.raises(MissingRouteMetadata) as exc_info:
            AnnotationProcessor(registry).process(declare(markers=[], location=location))
        assert exc_info.value.location == location
        assert "app/events.py:3" in str(exc_info.value)
