"""
Code synthesis from registry snapshots.

Two generators read a registry (or a build Manifest) once and emit Python
source that carries every value it needs as literals:

- ``synthesize_register_service`` emits ``register_service(cfg)``, which
  registers the handlers filed under one module key with the hosting
  framework, one scope block per scope.
- ``synthesize_list_routes`` emits ``list_routes(console=None)``, which prints
  every route as a rich table.

Host contract for the registration routine: ``cfg.scope(prefix)`` returns a
scope builder whose ``.service(handler)`` returns the builder, and
``cfg.service(scope)`` registers the finished scope.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple

from .core import DEFAULT_CONFIG, RegistrationEntry, RegistryConfig, get_default_registry
from .exceptions import InvalidSynthesizerArguments
from .processor import MISSING

logger = logging.getLogger(__name__)

_INDENT = "    "
_LISTING_IMPORTS = (
    "from rich.console import Console",
    "from rich.table import Table",
    "from rich.text import Text",
)
_LISTING_COLUMNS = ("Scope", "Path", "Handler", "Verb")


@dataclass(frozen=True)
class GeneratedRoutine:
    """
    Source of one generated function plus the imports it needs.

    Attributes:
        name: Function name defined by ``source``
        source: The ``def`` block
        imports: Import lines the function relies on
    """
    name: str
    source: str
    imports: Tuple[str, ...] = ()

    def render(self) -> str:
        """Return standalone module source defining the routine."""
        return render_module([self])

    def compile(self, namespace: Optional[Dict[str, Any]] = None) -> Callable:
        """
        Execute the rendered source and return the generated function.

        Args:
            namespace: Globals to execute in; handlers without a module must
                already be bound here under their names
        """
        namespace = dict(namespace or {})
        code = compile(self.render(), f"<generated {self.name}>", "exec")
        exec(code, namespace)
        return namespace[self.name]


def render_module(routines: Sequence[GeneratedRoutine], header: Optional[str] = None) -> str:
    """Join routines into one module: header, de-duplicated imports, then functions."""
    parts = []
    if header:
        parts.append(header.rstrip() + "\n")

    imports = sorted({line for routine in routines for line in routine.imports})
    if imports:
        parts.append("\n".join(imports) + "\n")

    parts.extend(routine.source for routine in routines)
    return "\n\n".join(parts)


def _reserved_names(config: RegistryConfig) -> Set[str]:
    # Names the rendered module binds itself
    return {
        config.register_function_name,
        config.list_function_name,
        "cfg",
        *(line.rsplit(" ", 1)[-1] for line in _LISTING_IMPORTS),
    }


def _handler_aliases(
    entries: Sequence[RegistrationEntry], reserved: Set[str] = frozenset()
) -> Dict[Tuple[Optional[str], str], str]:
    """Map (module, handler_name) to the name used in generated code."""
    modules_by_name = defaultdict(set)
    for entry in entries:
        modules_by_name[entry.handler_name].add(entry.module)

    aliases = {}
    for entry in entries:
        key = (entry.module, entry.handler_name)
        if key in aliases:
            continue
        clashes = len(modules_by_name[entry.handler_name]) > 1 or entry.handler_name in reserved
        if entry.module is None or not clashes:
            aliases[key] = entry.handler_name
        else:
            # Same name imported from several modules, or bound by the generated code
            aliases[key] = f"{entry.module.replace('.', '_')}__{entry.handler_name}"
    return aliases


def _import_lines(aliases: Dict[Tuple[Optional[str], str], str]) -> Tuple[str, ...]:
    lines = set()
    for (module, name), alias in aliases.items():
        if module is None:
            continue
        if alias == name:
            lines.add(f"from {module} import {name}")
        else:
            lines.add(f"from {module} import {name} as {alias}")
    return tuple(sorted(lines))


def group_by_scope(entries: Sequence[RegistrationEntry]) -> Dict[str, List[RegistrationEntry]]:
    """Regroup entries by their own scope, keeping first-appearance order."""
    groups: Dict[str, List[RegistrationEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.scope, []).append(entry)
    return groups


def synthesize_register_service(
    module_key: Any = MISSING,
    use_scope: Any = False,
    *,
    source=None,
    config: Optional[RegistryConfig] = None,
) -> GeneratedRoutine:
    """
    Generate the routine registering every handler filed under ``module_key``.

    Args:
        module_key: Registry key whose entries are aggregated
        use_scope: If True each block uses its scope string as routing prefix,
            otherwise every block is registered under the root prefix ""
        source: Registry or Manifest to read (defaults to the process-wide registry)
        config: Naming configuration (defaults to the source's config)

    Returns:
        GeneratedRoutine defining ``register_service(cfg)``

    Raises:
        InvalidSynthesizerArguments: module_key missing or not a string,
            or use_scope not a bool
    """
    if module_key is MISSING or not isinstance(module_key, str):
        raise InvalidSynthesizerArguments(
            f"register service synthesis needs a module key string, got {module_key!r}"
        )
    if not isinstance(use_scope, bool):
        raise InvalidSynthesizerArguments(
            f"register service synthesis for {module_key!r}: use_scope must be a bool, "
            f"got {use_scope!r}"
        )

    source = source if source is not None else get_default_registry()
    config = config or getattr(source, "config", None) or DEFAULT_CONFIG

    entries = source.snapshot_for(module_key)
    groups = group_by_scope(entries)
    aliases = _handler_aliases(entries, _reserved_names(config))

    lines = [
        f"def {config.register_function_name}(cfg):",
        f"{_INDENT}# module key: {module_key!r}",
    ]
    if not groups:
        lines.append(f"{_INDENT}pass")
    for scope, group in groups.items():
        prefix = scope if use_scope else ""
        lines.append(f"{_INDENT}cfg.service(")
        lines.append(f"{_INDENT * 2}cfg.scope({prefix!r})")
        for entry in group:
            lines.append(f"{_INDENT * 2}.service({aliases[(entry.module, entry.handler_name)]})")
        lines.append(f"{_INDENT})")

    logger.info(
        f"Synthesized {config.register_function_name} for {module_key!r}: "
        f"{len(entries)} handlers in {len(groups)} scopes (use_scope={use_scope})"
    )
    return GeneratedRoutine(
        name=config.register_function_name,
        source="\n".join(lines) + "\n",
        imports=_import_lines(aliases),
    )


def route_rows(source=None) -> List[Tuple[str, str, str, str]]:
    """Return one (scope, path, handler, verb) row per entry, scope by scope."""
    source = source if source is not None else get_default_registry()
    return [
        entry.as_row()
        for entries in source.snapshot_all().values()
        for entry in entries
    ]


def synthesize_list_routes(*, source=None, config: Optional[RegistryConfig] = None) -> GeneratedRoutine:
    """Generate ``list_routes(console=None)`` printing every route as a table."""
    source = source if source is not None else get_default_registry()
    config = config or getattr(source, "config", None) or DEFAULT_CONFIG
    rows = route_rows(source)

    lines = [
        f"def {config.list_function_name}(console=None):",
        f"{_INDENT}rows = [",
    ]
    lines.extend(f"{_INDENT * 2}{row!r}," for row in rows)
    lines.extend([
        f"{_INDENT}]",
        f"{_INDENT}if console is None:",
        f"{_INDENT * 2}console = Console(stderr=True)",
        f"{_INDENT}console.print(Text({config.banner!r}))",
        f"{_INDENT}table = Table({', '.join(repr(c) for c in _LISTING_COLUMNS)})",
        f"{_INDENT}for row in rows:",
        f"{_INDENT * 2}table.add_row(*(Text(cell) for cell in row))",
        f"{_INDENT}console.print(table)",
        f"{_INDENT}return rows",
    ])

    logger.info(f"Synthesized {config.list_function_name}: {len(rows)} routes")
    return GeneratedRoutine(
        name=config.list_function_name,
        source="\n".join(lines) + "\n",
        imports=_LISTING_IMPORTS,
    )
