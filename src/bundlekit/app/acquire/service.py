"""Fetch bundle source trees into the shared cache."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from bundlekit.adapters.archive_transport import TarArchiveTransport
from bundlekit.adapters.git_transport import GitTransport
from bundlekit.domain.bundle import BundleDescriptor, BundleType
from bundlekit.domain.errors import OfflineCacheMiss
from bundlekit.ports.transport import ArchiveTransport, VcsTransport
from bundlekit.settings import RuntimeSettings

logger = logging.getLogger(__name__)


class BundleAcquirer:
    """Return a cache directory holding a bundle at the state its descriptor pins."""

    def __init__(
        self,
        settings: RuntimeSettings,
        vcs: VcsTransport | None = None,
        archives: ArchiveTransport | None = None,
    ) -> None:
        self._settings = settings
        self._vcs = vcs or GitTransport()
        self._archives = archives or TarArchiveTransport()

    @property
    def cache_root(self) -> Path:
        return self._settings.cache_dir

    def cache_path(self, descriptor: BundleDescriptor) -> Path:
        return self._settings.cache_dir / descriptor.cache_id()

    def acquire(self, descriptor: BundleDescriptor) -> Path:
        if descriptor.type is BundleType.ARCHIVE:
            return self._acquire_archive(descriptor)
        return self._acquire_vcs(descriptor)

    def revision(self, descriptor: BundleDescriptor, bundle_dir: Path) -> str | None:
        """Pin recorded for an acquired bundle: commit id or archive sha256."""
        if descriptor.type is BundleType.VCS:
            return self._vcs.revision(bundle_dir)
        archive = self._archive_location(descriptor, bundle_dir)
        if not archive.is_file():
            return None
        return self._archives.digest(archive)

    def clear_cache(self) -> bool:
        if not self._settings.cache_dir.exists():
            return False
        shutil.rmtree(self._settings.cache_dir)
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _acquire_vcs(self, descriptor: BundleDescriptor) -> Path:
        bundle_dir = self.cache_path(descriptor)
        offline = self._settings.offline
        fresh = False
        if offline:
            if not self._vcs.is_working_tree(bundle_dir):
                raise OfflineCacheMiss(
                    f"offline mode: no cached working tree for {descriptor.repo} at {bundle_dir}"
                )
        elif not self._vcs.is_working_tree(bundle_dir):
            if bundle_dir.exists():
                logger.warning("discarding incomplete cache entry %s", bundle_dir)
                shutil.rmtree(bundle_dir)
            logger.info("cloning %s into %s", descriptor.repo, bundle_dir)
            self._vcs.clone(descriptor.repo, bundle_dir)
            fresh = True
        if not offline and not fresh:
            self._vcs.sync(bundle_dir, descriptor.tag)
        self._vcs.reset(bundle_dir, descriptor.tag)
        if not offline:
            self._vcs.update_submodules(bundle_dir)
        return bundle_dir

    def _acquire_archive(self, descriptor: BundleDescriptor) -> Path:
        bundle_dir = self.cache_path(descriptor)
        if self._settings.offline_archives:
            if not bundle_dir.is_dir() or not any(bundle_dir.iterdir()):
                raise OfflineCacheMiss(
                    f"offline archive mode: no cached copy of {descriptor.repo} at {bundle_dir}"
                )
            return bundle_dir
        bundle_dir.mkdir(parents=True, exist_ok=True)
        if self._archives.is_remote(descriptor.repo):
            archive = self._archives.fetch(descriptor.repo, bundle_dir)
        else:
            archive = self._archive_location(descriptor, bundle_dir)
        self._archives.extract(archive, bundle_dir, strip_top_level=True)
        return bundle_dir

    def _archive_location(self, descriptor: BundleDescriptor, bundle_dir: Path) -> Path:
        if self._archives.is_remote(descriptor.repo):
            return self._archives.stored_archive(descriptor.repo, bundle_dir)
        return Path(descriptor.repo).expanduser()


__all__ = ["BundleAcquirer"]
