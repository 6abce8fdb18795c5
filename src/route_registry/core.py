"""
Registry infrastructure for build-time route registration.

Handler declarations are validated by the annotation processor and filed here
as immutable RegistrationEntry records, keyed by scope. The synthesizers read
snapshots of a registry and emit code that no longer depends on it.

Architecture:
------------
1. RegistryConfig defines naming, marker and locking behavior
2. Registry stores entries per scope behind a readers-writer lock
3. A process-wide default registry backs the import-time decorators;
   build passes create their own registry instead

Lifecycle:
---------
A registry is created empty, only appended to, read by the synthesizers and
then discarded. Nothing is persisted between build passes.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple

from .exceptions import LockAcquisitionFailure

logger = logging.getLogger(__name__)

HTTP_VERBS = ("get", "post", "put", "delete", "patch")
DEFAULT_BANNER = "List of automatically generated routes"


class SourceLocation(NamedTuple):
    """File path and line number of a handler declaration."""
    path: str
    line: int


@dataclass(frozen=True)
class RegistrationEntry:
    """
    Validated metadata for one discovered handler.

    Attributes:
        scope: Grouping key the entry is filed under; also the handler's prefix
        handler_name: Identifier of the handler function
        path: Route path fragment; "" denotes the scope root
        verb: Uppercase HTTP method
        module: Dotted module of the handler, used to import it in generated code
        location: Where the declaration was found (not part of equality)
    """
    scope: str
    handler_name: str
    path: str
    verb: str
    module: Optional[str] = None
    location: Optional[SourceLocation] = field(default=None, compare=False)

    def as_row(self) -> Tuple[str, str, str, str]:
        """Return the (scope, path, handler_name, verb) listing row."""
        return (self.scope, self.path, self.handler_name, self.verb)


@dataclass(frozen=True)
class RegistryConfig:
    """
    Configuration for registration and synthesis behavior.

    Attributes:
        registry_name: Human-readable name for logging
        decorator_name: Name of the registering decorator recognized by the static scan
        verbs: Recognized verb marker names (lowercase)
        lock_timeout: Seconds to wait for the registry lock; None waits forever
        log_registration: If True, log a debug message per registered handler
        register_function_name: Name of the generated registration routine
        list_function_name: Name of the generated listing routine
        banner: First line printed by the listing routine

    Examples:
        # Registry that gives up on a stuck lock after five seconds
        RegistryConfig(lock_timeout=5.0)

        # Project using a custom decorator name and generated function names
        RegistryConfig(
            decorator_name='route',
            register_function_name='configure_routes',
            list_function_name='print_routes',
        )
    """
    registry_name: str = "route"
    decorator_name: str = "auto_register"
    verbs: Tuple[str, ...] = HTTP_VERBS
    lock_timeout: Optional[float] = 30.0
    log_registration: bool = True
    register_function_name: str = "register_service"
    list_function_name: str = "list_routes"
    banner: str = DEFAULT_BANNER


DEFAULT_CONFIG = RegistryConfig()


class _ReadWriteLock:
    """Many concurrent readers or a single writer."""

    def __init__(self, timeout: Optional[float] = None):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._timeout = timeout

    def _acquire(self, operation: str) -> None:
        # Condition.acquire takes -1 to mean "wait forever"
        timeout = -1 if self._timeout is None else self._timeout
        if not self._cond.acquire(timeout=timeout):
            raise LockAcquisitionFailure(operation, self._timeout)

    def _wait(self, predicate, operation: str) -> None:
        if not self._cond.wait_for(predicate, timeout=self._timeout):
            self._cond.release()
            raise LockAcquisitionFailure(operation, self._timeout)

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self._acquire("read")
        self._wait(lambda: not self._writer, "read")
        self._readers += 1
        self._cond.release()
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self._acquire("write")
        self._wait(lambda: not self._writer and self._readers == 0, "write")
        self._writer = True
        self._cond.release()
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class Registry:
    """
    Concurrency-safe store of registration entries grouped by scope.

    Inserts are mutually exclusive with every other operation; snapshots may
    run together. Scopes and the entries within each scope keep insertion
    order.
    """

    def __init__(self, config: Optional[RegistryConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self._entries: Dict[str, List[RegistrationEntry]] = {}
        self._lock = _ReadWriteLock(self.config.lock_timeout)

    def insert(self, scope: str, entry: RegistrationEntry) -> None:
        """Append entry to the sequence for scope, creating it if absent."""
        with self._lock.write_locked():
            self._entries.setdefault(scope, []).append(entry)

    def snapshot_for(self, scope: str) -> List[RegistrationEntry]:
        """Return a copy of the entries filed under scope (empty if none)."""
        with self._lock.read_locked():
            return list(self._entries.get(scope, ()))

    def snapshot_all(self) -> Dict[str, List[RegistrationEntry]]:
        """Return a copy of the whole scope -> entries mapping."""
        with self._lock.read_locked():
            return {scope: list(entries) for scope, entries in self._entries.items()}

    def scopes(self) -> List[str]:
        with self._lock.read_locked():
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return sum(len(entries) for entries in self._entries.values())

    def __repr__(self) -> str:
        return f"<Registry {self.config.registry_name!r} entries={len(self)}>"


# Process-wide registry fed by the import-time decorators
_default_registry = Registry()


def get_default_registry() -> Registry:
    """Return the process-wide registry used by @auto_register."""
    return _default_registry


def reset_default_registry(config: Optional[RegistryConfig] = None) -> Registry:
    """Discard the process-wide registry and start a new, empty one."""
    global _default_registry
    _default_registry = Registry(config)
    logger.debug("Reset default route registry")
    return _default_registry
