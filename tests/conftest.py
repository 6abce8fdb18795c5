"""Pytest configuration and fixtures for route_registry tests."""

import sys
import textwrap

import pytest

from route_registry import Registry, reset_default_registry


@pytest.fixture(autouse=True)
def reset_registries():
    """
    Reset the process-wide registry between tests.

    This prevents test pollution where one test's decorated handlers
    show up in another test's registry.
    """
    reset_default_registry()
    yield
    reset_default_registry()
    # Remove any test modules from sys.modules
    to_remove = [key for key in sys.modules.keys() if 'handlers_pkg' in key]
    for key in to_remove:
        del sys.modules[key]


@pytest.fixture
def registry():
    """A fresh, private registry."""
    return Registry()


class RecordingScope:
    """Scope builder of a fake hosting framework."""

    def __init__(self, prefix):
        self.prefix = prefix
        self.services = []

    def service(self, handler):
        self.services.append(handler)
        return self


class RecordingServiceConfig:
    """Fake hosting framework config handle recording every registration."""

    def __init__(self):
        self.scopes = []

    def scope(self, prefix):
        return RecordingScope(prefix)

    def service(self, scope):
        self.scopes.append(scope)

    @property
    def registered(self):
        return [(s.prefix, [h.__name__ for h in s.services]) for s in self.scopes]


@pytest.fixture
def host_config():
    return RecordingServiceConfig()


@pytest.fixture
def write_package(tmp_path, monkeypatch):
    """
    Create an importable package from a mapping of module name to source.

    Returns the package directory path.
    """
    monkeypatch.syspath_prepend(str(tmp_path))

    def write(name, modules):
        pkg_dir = tmp_path / name
        pkg_dir.mkdir()
        (pkg_dir / "__init__.py").write_text("")
        for module_name, source in modules.items():
            (pkg_dir / f"{module_name}.py").write_text(textwrap.dedent(source))
        return pkg_dir

    return write
