"""
Handler declaration discovery.

Two ways to find declarations:

- Static scan: parse source files with ``ast`` without importing them. Only
  literal decorator arguments count, the way a compile step sees them.
- Import discovery: import every module of a package (pkgutil + importlib) so
  the ``@auto_register`` decorators run and fill the default registry.

Discovery never skips a module it cannot read or import; that would silently
drop its routes. Such failures raise DiscoveryError.
"""

import ast
import importlib
import logging
import pkgutil
from collections.abc import Iterable
from pathlib import Path
from typing import List, Optional, Set, Union

from .core import DEFAULT_CONFIG, RegistryConfig, SourceLocation
from .exceptions import DiscoveryError, RegistryError
from .processor import MISSING, NOT_LITERAL, HandlerDeclaration, VerbMarker

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _callee_name(node: ast.expr) -> Optional[str]:
    """Name of a decorator: ``get``, ``routes.get``, ``get(...)`` all give 'get'."""
    if isinstance(node, ast.Call):
        node = node.func
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


def _literal(node: ast.expr):
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return NOT_LITERAL


def _scope_argument(decorator: ast.expr):
    if not isinstance(decorator, ast.Call):
        return MISSING
    if decorator.args:
        return _literal(decorator.args[0])
    for keyword in decorator.keywords:
        if keyword.arg == "scope":
            return _literal(keyword.value)
    return MISSING


def _verb_marker(decorator: ast.expr, name: str) -> VerbMarker:
    if not isinstance(decorator, ast.Call):
        return VerbMarker(name)
    args = [_literal(arg) for arg in decorator.args]
    args.extend(_literal(kw.value) for kw in decorator.keywords if kw.arg == "path")
    return VerbMarker(name, tuple(args))


def scan_source(
    source: str,
    module: Optional[str] = None,
    filename: str = "<string>",
    config: Optional[RegistryConfig] = None,
) -> List[HandlerDeclaration]:
    """
    Extract handler declarations from Python source text.

    Every module-level function (sync or async) carrying the registering
    decorator becomes a declaration, in source order. Validation is left to
    the annotation processor.

    Args:
        source: Python source code
        module: Dotted module name the source belongs to, if any
        filename: File name used in locations and syntax errors
        config: Registry configuration (decorator and verb names)

    Returns:
        Declarations in source order

    Raises:
        DiscoveryError: If the source does not parse
    """
    config = config or DEFAULT_CONFIG
    verbs = {verb.lower() for verb in config.verbs}

    try:
        tree = ast.parse(source, filename=filename)
    except SyntaxError as e:
        raise DiscoveryError(f"Cannot parse {filename}: {e}") from e

    declarations = []
    for node in tree.body:
        if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            continue

        scope = None
        markers = []
        for decorator in node.decorator_list:
            name = _callee_name(decorator)
            if name == config.decorator_name:
                scope = _scope_argument(decorator)
            elif name is not None and name.lower() in verbs:
                markers.append(_verb_marker(decorator, name))

        if scope is None:
            continue

        declarations.append(HandlerDeclaration(
            name=node.name,
            scope=scope,
            markers=tuple(markers),
            module=module,
            location=SourceLocation(filename, node.lineno),
        ))

    return declarations


def scan_file(
    path: PathLike,
    module: Optional[str] = None,
    config: Optional[RegistryConfig] = None,
) -> List[HandlerDeclaration]:
    """Read one file and scan it. Unreadable files raise DiscoveryError."""
    path = Path(path)
    try:
        source = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DiscoveryError(f"Cannot read {path}: {e}") from e

    declarations = scan_source(source, module=module, filename=str(path), config=config)
    logger.debug(f"Scanned {path} ({module or 'no module'}): {len(declarations)} declarations")
    return declarations


def module_name_for(path: PathLike) -> str:
    """
    Derive the dotted module name of a source file from its package chain.

    ``src/app/api/events.py`` with ``app/__init__.py`` and
    ``app/api/__init__.py`` present gives ``app.api.events``.
    """
    path = Path(path).resolve()
    parts = [] if path.name == "__init__.py" else [path.stem]
    parent = path.parent
    while (parent / "__init__.py").exists():
        parts.insert(0, parent.name)
        parent = parent.parent
    return ".".join(parts)


def _iter_source_files(paths: Iterable[PathLike]) -> List[Path]:
    files = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            files.extend(p for p in path.rglob("*.py") if "__pycache__" not in p.parts)
        elif path.is_file():
            files.append(path)
        else:
            raise DiscoveryError(f"Source path does not exist: {path}")
    # Sorted and de-duplicated so every build pass sees the same order
    return sorted(set(files))


def scan_paths(
    paths: Iterable[PathLike],
    exclude_modules: Optional[Set[str]] = None,
    config: Optional[RegistryConfig] = None,
) -> List[HandlerDeclaration]:
    """
    Scan files and directories for handler declarations.

    Args:
        paths: Python files and/or directories to walk recursively
        exclude_modules: Module name substrings to skip (e.g. {'tests'})
        config: Registry configuration

    Returns:
        Declarations ordered by file path, then by line
    """
    exclude_modules = exclude_modules or set()
    declarations = []

    for file_path in _iter_source_files(paths):
        module = module_name_for(file_path)
        if any(excluded in module for excluded in exclude_modules):
            logger.debug(f"Skipping excluded module: {module}")
            continue
        declarations.extend(scan_file(file_path, module=module, config=config))

    logger.info(f"Discovered {len(declarations)} handler declarations")
    return declarations


def _raise_walk_error(name: str) -> None:
    # walk_packages ignores broken subpackages unless told otherwise
    raise DiscoveryError(f"Could not import handler package {name}")


def discover_handler_modules(
    package_path: Iterable[str],
    package_prefix: str,
    exclude_modules: Optional[Set[str]] = None,
    recursive: bool = False,
) -> List[str]:
    """
    Import every module of a package so its handler decorators run.

    Args:
        package_path: Package __path__ attribute to scan (e.g., app.api.__path__)
        package_prefix: Module prefix for importlib (e.g., "app.api.")
        exclude_modules: Set of module name substrings to skip
        recursive: If True, walk subpackages as well

    Returns:
        Names of the imported modules

    Raises:
        DiscoveryError: If a module cannot be imported
        RegistryError: If a handler in an imported module is misdeclared

    Example:
        >>> import app.api
        >>> discover_handler_modules(app.api.__path__, "app.api.", exclude_modules={'schemas'})
        ['app.api.events', 'app.api.users']
    """
    exclude_modules = exclude_modules or set()
    if recursive:
        modules = pkgutil.walk_packages(package_path, package_prefix, onerror=_raise_walk_error)
    else:
        modules = pkgutil.iter_modules(package_path, package_prefix)
    imported = []

    logger.debug(
        f"Importing handler modules: prefix={package_prefix}, "
        f"recursive={recursive}, exclude={exclude_modules}"
    )

    for _, module_name, ispkg in modules:
        if ispkg and not recursive:
            continue

        if any(excluded in module_name for excluded in exclude_modules):
            logger.debug(f"Skipping excluded module: {module_name}")
            continue

        try:
            importlib.import_module(module_name)
        except RegistryError:
            raise
        except Exception as e:
            raise DiscoveryError(f"Could not import handler module {module_name}: {e}") from e

        logger.debug(f"Imported handler module: {module_name}")
        imported.append(module_name)

    logger.info(f"Imported {len(imported)} handler modules under {package_prefix}")
    return imported
