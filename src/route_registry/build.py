"""
Two-phase build pipeline.

A build pass scans declarations, processes all of them into a fresh registry
and freezes the result into a Manifest before any synthesis runs. The
synthesizers then read the manifest by value, so "every scan finishes before
any synthesis" is a pipeline step rather than a timing assumption.

Manifest order is stable across runs: scopes sorted by key, entries sorted by
declaration location (file, line). Entries without a location keep their
insertion order after the located ones.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .core import DEFAULT_CONFIG, RegistrationEntry, Registry, RegistryConfig
from .discovery import PathLike, scan_paths
from .processor import AnnotationProcessor, HandlerDeclaration
from .synthesis import (
    GeneratedRoutine,
    render_module,
    synthesize_list_routes,
    synthesize_register_service,
)

logger = logging.getLogger(__name__)

MODULE_HEADER = '"""Route registration generated by route-registry. Do not edit."""'


def _location_key(entry: RegistrationEntry):
    if entry.location is None:
        return (1, "", 0)
    return (0, entry.location.path, entry.location.line)


@dataclass(frozen=True)
class Manifest:
    """
    Immutable, ordered snapshot of one build pass's registrations.

    Offers the same read methods as Registry so either can feed the
    synthesizers.
    """
    scopes: Tuple[Tuple[str, Tuple[RegistrationEntry, ...]], ...] = ()
    config: RegistryConfig = field(default=DEFAULT_CONFIG, compare=False)

    @classmethod
    def from_registry(cls, registry: Registry) -> "Manifest":
        snapshot = registry.snapshot_all()
        scopes = tuple(
            (scope, tuple(sorted(snapshot[scope], key=_location_key)))
            for scope in sorted(snapshot)
        )
        return cls(scopes=scopes, config=registry.config)

    def snapshot_for(self, scope: str) -> List[RegistrationEntry]:
        for key, entries in self.scopes:
            if key == scope:
                return list(entries)
        return []

    def snapshot_all(self) -> Dict[str, List[RegistrationEntry]]:
        return {scope: list(entries) for scope, entries in self.scopes}

    def entries(self) -> List[RegistrationEntry]:
        return [entry for _, entries in self.scopes for entry in entries]

    def __len__(self) -> int:
        return sum(len(entries) for _, entries in self.scopes)


@dataclass(frozen=True)
class GeneratedModule:
    """Registration and listing routines synthesized from one manifest."""
    register_service: GeneratedRoutine
    list_routes: GeneratedRoutine

    def render(self) -> str:
        return render_module([self.register_service, self.list_routes], header=MODULE_HEADER)


class BuildPass:
    """
    One scan -> process -> synthesize run over a private registry.

    Usage:
        build = BuildPass(max_workers=4)
        module = build.run(["src/app"], module_key="/events", use_scope=True)
        Path("app/_routes.py").write_text(module.render())
    """

    def __init__(self, config: Optional[RegistryConfig] = None, max_workers: Optional[int] = None):
        self.config = config or DEFAULT_CONFIG
        self.max_workers = max_workers

    def scan(self, paths: Iterable[PathLike], exclude_modules: Optional[Set[str]] = None) -> List[HandlerDeclaration]:
        return scan_paths(paths, exclude_modules=exclude_modules, config=self.config)

    def process(self, declarations: Sequence[HandlerDeclaration]) -> Manifest:
        """
        Process every declaration into a fresh registry and freeze it.

        The first invalid declaration (in declaration order) aborts the pass;
        no manifest is returned.
        """
        registry = Registry(self.config)
        processor = AnnotationProcessor(registry, self.config)

        if self.max_workers and self.max_workers > 1 and len(declarations) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [executor.submit(processor.process, d) for d in declarations]
                wait(futures)
            # Report the earliest invalid declaration, as the sequential path does
            for future in futures:
                if future.exception() is not None:
                    raise future.exception()
        else:
            for declaration in declarations:
                processor.process(declaration)

        manifest = Manifest.from_registry(registry)
        logger.info(
            f"Processed {len(manifest)} {self.config.registry_name}s "
            f"in {len(manifest.scopes)} scopes"
        )
        return manifest

    def synthesize(self, manifest: Manifest, module_key: str, use_scope: bool = False) -> GeneratedModule:
        return GeneratedModule(
            register_service=synthesize_register_service(
                module_key, use_scope, source=manifest, config=self.config
            ),
            list_routes=synthesize_list_routes(source=manifest, config=self.config),
        )

    def run(
        self,
        paths: Iterable[PathLike],
        module_key: str,
        use_scope: bool = False,
        exclude_modules: Optional[Set[str]] = None,
    ) -> GeneratedModule:
        declarations = self.scan(paths, exclude_modules=exclude_modules)
        manifest = self.process(declarations)
        return self.synthesize(manifest, module_key, use_scope)
