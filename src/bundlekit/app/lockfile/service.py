"""Build lockfiles from installed manifests and replay them."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from bundlekit.domain.bundle import BundleType
from bundlekit.domain.errors import BundleError, LockfileError
from bundlekit.domain.lockfile import LockEntry, LockPackage, dumps, loads, order_packages
from bundlekit.domain.manifest import ManifestStore

logger = logging.getLogger(__name__)


class LockfileService:
    def __init__(self, manifests: ManifestStore, installer=None) -> None:
        self._manifests = manifests
        self._installer = installer

    def build(self) -> List[LockEntry]:
        packages: List[LockPackage] = []
        for manifest in self._manifests.list():
            if not manifest.pinned:
                logger.warning("cannot add local or malformed package %s to lockfile, skipping", manifest.name)
                continue
            packages.append(
                LockPackage(
                    repo=manifest.repo,  # type: ignore[arg-type]
                    sha=manifest.sha,  # type: ignore[arg-type]
                    type=BundleType.parse(manifest.type or BundleType.VCS),
                    dependencies=tuple(manifest.dependency_repos()),
                )
            )
        return order_packages(packages)

    def write(self, path: Path) -> List[LockEntry]:
        entries = self.build()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dumps(entries), encoding="utf-8")
        return entries

    def read(self, path: Path) -> List[LockEntry]:
        if not path.is_file():
            raise LockfileError(f"lockfile {path} not found")
        return loads(path.read_text(encoding="utf-8"))

    def load(self, path: Path) -> List[LockEntry]:
        """Install every entry in file order; dependencies are not re-discovered."""
        if self._installer is None:
            raise BundleError("lockfile replay needs an installer")
        entries = self.read(path)
        for entry in entries:
            logger.info("installing %s at %s", entry.repo, entry.sha)
            self._installer.install(entry.to_descriptor(), skip_deps=True)
        return entries


__all__ = ["LockfileService"]
