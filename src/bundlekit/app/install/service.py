"""Recursive bundle installation."""

from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Sequence

from bundlekit.app.acquire import BundleAcquirer
from bundlekit.app.resolver import DescriptorResolver
from bundlekit.domain.bundle import BundleDescriptor, RawBundle
from bundlekit.domain.errors import InstallCycleError, InstallerBusy
from bundlekit.domain.manifest import ManifestStore
from bundlekit.ports.build import BuildLoader, RuleEngine
from bundlekit.settings import RuntimeSettings

from .project import (
    PHASE_BUILD,
    PHASE_INSTALL,
    PHASE_INSTALL_DEPS,
    PROJECT_FILENAME,
    BuildDescription,
    BundleOrigin,
    HostBindings,
    load_build_description,
)
from .rules import run_targets

logger = logging.getLogger(__name__)

PHASES = (PHASE_INSTALL_DEPS, PHASE_BUILD, PHASE_INSTALL)
PHASES_SKIP_DEPS = (PHASE_BUILD, PHASE_INSTALL)


@contextmanager
def working_directory(path: Path) -> Iterator[Path]:
    """Change the process working directory, restoring it on every exit path."""
    previous = os.getcwd()
    os.chdir(path)
    try:
        yield path
    finally:
        os.chdir(previous)


class Installer:
    """Visit a bundle and, through its ``install-deps`` rules, its dependencies.

    The working directory is process-wide, so one traversal may be in flight
    per process. Nested calls from the same thread (dependencies, the package
    index) are part of that traversal; another thread gets ``InstallerBusy``.
    """

    def __init__(
        self,
        settings: RuntimeSettings,
        *,
        resolver: DescriptorResolver | None = None,
        acquirer: BundleAcquirer | None = None,
        manifests: ManifestStore | None = None,
        rule_engine: RuleEngine = run_targets,
        loader: BuildLoader = load_build_description,
    ) -> None:
        self._settings = settings
        self._resolver = resolver or DescriptorResolver(settings)
        self._resolver.bind_index_installer(self.install)
        self._acquirer = acquirer or BundleAcquirer(settings)
        self._manifests = manifests or ManifestStore(settings.manifest_dir)
        self._run_targets = rule_engine
        self._load = loader
        self._lock = threading.Lock()
        self._owner: int | None = None
        self._depth = 0
        self._in_progress: List[BundleDescriptor] = []

    @property
    def resolver(self) -> DescriptorResolver:
        return self._resolver

    @property
    def acquirer(self) -> BundleAcquirer:
        return self._acquirer

    @property
    def manifests(self) -> ManifestStore:
        return self._manifests

    def install(self, bundle: RawBundle, *, skip_deps: bool = False) -> BuildDescription:
        with self._traversal():
            descriptor = self._resolver.resolve(bundle)
            with self._visiting(descriptor):
                source_dir = self._acquirer.acquire(descriptor)
                origin = BundleOrigin(
                    repo=descriptor.repo,
                    sha=self._acquirer.revision(descriptor, source_dir),
                    type=descriptor.type,
                )
                return self._install_tree(source_dir, origin, PHASES_SKIP_DEPS if skip_deps else PHASES)

    def install_local(self, path: Path | str = ".", *, skip_deps: bool = False) -> BuildDescription:
        """Install a project from a local directory; nothing is pinned."""
        with self._traversal():
            return self._install_tree(Path(path).resolve(), None, PHASES_SKIP_DEPS if skip_deps else PHASES)

    def install_dependencies(self, path: Path | str = ".") -> BuildDescription:
        with self._traversal():
            return self._install_tree(Path(path).resolve(), None, (PHASE_INSTALL_DEPS,))

    def _install_tree(
        self,
        source_dir: Path,
        origin: BundleOrigin | None,
        phases: Sequence[str],
    ) -> BuildDescription:
        roots = self._settings.install_roots().absolute(Path.cwd())
        with working_directory(source_dir), self._manifests.ledger.scope():
            bindings = HostBindings(
                roots=roots,
                manifests=self._manifests,
                install_dependency=self._install_dependency,
                resolve=self._resolver.resolve,
                origin=origin,
                workers=self._settings.workers,
            )
            description = self._load(source_dir / PROJECT_FILENAME, bindings)
            for phase in phases:
                logger.info("%s: %s", description.name, phase)
                self._run_targets(description.rules, [phase], self._settings.workers)
        return description

    def _install_dependency(self, dependency: RawBundle) -> None:
        self.install(dependency)

    @contextmanager
    def _traversal(self) -> Iterator[None]:
        ident = threading.get_ident()
        with self._lock:
            if self._owner is not None and self._owner != ident:
                raise InstallerBusy("another install traversal is already running in this process")
            self._owner = ident
            self._depth += 1
        try:
            yield
        finally:
            with self._lock:
                self._depth -= 1
                if self._depth == 0:
                    self._owner = None

    @contextmanager
    def _visiting(self, descriptor: BundleDescriptor) -> Iterator[None]:
        for index, active in enumerate(self._in_progress):
            if active.same_bundle(descriptor):
                chain = [item.repo for item in self._in_progress[index:]] + [descriptor.repo]
                raise InstallCycleError("dependency cycle: " + " -> ".join(chain))
        self._in_progress.append(descriptor)
        try:
            yield
        finally:
            self._in_progress.pop()


__all__ = ["Installer", "PHASES", "PHASES_SKIP_DEPS", "working_directory"]
