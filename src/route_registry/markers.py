"""Decorators for declaring routed handlers.

``@get("/path")`` and its siblings only attach a marker to the function.
``@auto_register("/scope")`` must sit above them: it collects the markers,
runs the annotation processor and returns the function unchanged::

    @auto_register("/events")
    @get("/search")
    def search_events(request):
        ...
"""

from typing import Any, Callable, Optional

from .core import Registry, SourceLocation
from .processor import MISSING, AnnotationProcessor, HandlerDeclaration, VerbMarker

MARKERS_ATTR = "__route_markers__"


def _location_of(func: Callable) -> Optional[SourceLocation]:
    code = getattr(func, "__code__", None)
    if code is None:
        return None
    return SourceLocation(code.co_filename, code.co_firstlineno)


def _module_of(func: Callable) -> Optional[str]:
    # Only module-level functions can be imported back by name
    if "." in getattr(func, "__qualname__", ""):
        return None
    return getattr(func, "__module__", None)


def _declaration_for(func: Callable, scope: Any) -> HandlerDeclaration:
    return HandlerDeclaration(
        name=getattr(func, "__name__", repr(func)),
        scope=scope,
        markers=tuple(getattr(func, MARKERS_ATTR, ())),
        module=_module_of(func),
        location=_location_of(func),
    )


def auto_register(scope: Any = MISSING, *, registry: Optional[Registry] = None) -> Callable:
    """
    Register the decorated handler under ``scope``.

    Args:
        scope: Scope/prefix string, e.g. ``"/events"``
        registry: Registry to file the entry in (defaults to the process-wide one)

    Raises:
        MissingScopeArgument: used bare or with a non-string scope
        MissingRouteMetadata: the handler has no usable verb marker
    """
    if callable(scope):
        # Bare @auto_register: the "scope" is the handler itself
        AnnotationProcessor(registry).process(_declaration_for(scope, MISSING))

    def decorator(func: Callable) -> Callable:
        AnnotationProcessor(registry).process(_declaration_for(func, scope))
        return func

    return decorator


def _verb_marker(verb: str) -> Callable:
    def marker(*paths: Any, path: Any = MISSING) -> Callable:
        if path is not MISSING:
            paths += (path,)

        def decorator(func: Callable) -> Callable:
            args = tuple(paths)
            markers = list(getattr(func, MARKERS_ATTR, []))
            # Decorators apply bottom-up; prepend to keep source order
            markers.insert(0, VerbMarker(verb, args))
            setattr(func, MARKERS_ATTR, markers)
            return func

        if len(paths) == 1 and callable(paths[0]):
            # Bare @get: marker without a path
            func, paths = paths[0], ()
            return decorator(func)
        return decorator

    marker.__name__ = verb
    marker.__qualname__ = verb
    marker.__doc__ = f"Mark a handler as serving {verb.upper()} requests on ``path``."
    return marker


get = _verb_marker("get")
post = _verb_marker("post")
put = _verb_marker("put")
delete = _verb_marker("delete")
patch = _verb_marker("patch")
