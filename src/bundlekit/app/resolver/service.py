"""Turn raw bundle references (strings, records, short names) into descriptors."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict

import yaml

from bundlekit.domain.bundle import BundleDescriptor, RawBundle, is_short_name, parse_descriptor
from bundlekit.domain.errors import BundleNotFound, MalformedDescriptor
from bundlekit.settings import RuntimeSettings

logger = logging.getLogger(__name__)

INDEX_FILENAME = "packages.yaml"

IndexInstaller = Callable[[BundleDescriptor], None]


class PackageIndex:
    """``name -> bundle reference`` mapping installed into the module root."""

    def __init__(self, modpath: Path) -> None:
        self._path = modpath / INDEX_FILENAME

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def packages(self) -> Dict[str, Any]:
        if not self.exists():
            return {}
        data = yaml.safe_load(self._path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise MalformedDescriptor(f"package index {self._path} must map names to bundles")
        packages = data.get("packages", data)
        if not isinstance(packages, dict):
            raise MalformedDescriptor(f"package index {self._path}: 'packages' is not a mapping")
        return {str(name): value for name, value in packages.items()}

    def lookup(self, name: str) -> Any | None:
        return self.packages().get(name)


class DescriptorResolver:
    def __init__(
        self,
        settings: RuntimeSettings,
        index_installer: IndexInstaller | None = None,
        index: PackageIndex | None = None,
    ) -> None:
        self._settings = settings
        self._index_installer = index_installer
        self._index = index or PackageIndex(settings.modpath)

    @property
    def index(self) -> PackageIndex:
        return self._index

    def bind_index_installer(self, installer: IndexInstaller) -> None:
        self._index_installer = installer

    def index_descriptor(self) -> BundleDescriptor:
        return parse_descriptor(self._settings.index_url)

    def resolve(self, raw: RawBundle) -> BundleDescriptor:
        if isinstance(raw, str) and is_short_name(raw.strip()):
            return self._resolve_short_name(raw.strip())
        return parse_descriptor(raw)

    def update_index(self) -> None:
        if self._index_installer is None:
            raise BundleNotFound("no installer is available to fetch the package index")
        descriptor = self.index_descriptor()
        logger.info("installing package index from %s", descriptor.repo)
        self._index_installer(descriptor)

    def _resolve_short_name(self, name: str) -> BundleDescriptor:
        if not self._index.exists():
            self.update_index()
        entry = self._index.lookup(name) if self._index.exists() else None
        if entry is None:
            raise BundleNotFound(f"bundle {name!r} not found in package index {self._index.path}")
        if isinstance(entry, str) and is_short_name(entry.strip()):
            raise MalformedDescriptor(f"package index entry {name!r} points at another short name {entry!r}")
        if not isinstance(entry, (str, dict)):
            raise MalformedDescriptor(f"package index entry {name!r} is not a bundle reference: {entry!r}")
        return parse_descriptor(entry)


__all__ = ["DescriptorResolver", "PackageIndex", "INDEX_FILENAME"]
