"""Filesystem persistence for installed-bundle manifests."""

from __future__ import annotations

import json
import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List

from bundlekit.domain.errors import ManifestNotFound

from .ledger import PathLedger
from .value_objects import InstalledManifest

logger = logging.getLogger(__name__)

MANIFEST_SUFFIX = ".json"
_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


@dataclass(frozen=True)
class RemovalRecord:
    path: str
    status: str  # "removed" | "missing"


class ManifestStore:
    """One JSON file per installed bundle under the manifest directory."""

    def __init__(self, manifest_dir: Path, ledger: PathLedger | None = None) -> None:
        self._dir = manifest_dir
        self._ledger = ledger or PathLedger()

    @property
    def directory(self) -> Path:
        return self._dir

    @property
    def ledger(self) -> PathLedger:
        return self._ledger

    def record_installed_path(self, path: Path | str) -> None:
        self._ledger.record(path)

    def installed_paths(self) -> List[str]:
        return self._ledger.current()

    def path_for(self, name: str) -> Path:
        if not _NAME_RE.match(name):
            raise ValueError(f"invalid bundle name {name!r}")
        return self._dir / f"{name}{MANIFEST_SUFFIX}"

    def exists(self, name: str) -> bool:
        return _NAME_RE.match(name) is not None and self.path_for(name).is_file()

    def find(self, name: str) -> InstalledManifest:
        if not self.exists(name):
            raise ManifestNotFound(f"bundle {name!r} is not installed (no manifest in {self._dir})")
        return self._read(self.path_for(name))

    def list(self) -> List[InstalledManifest]:
        """Every readable manifest, in file-name order; unreadable ones are skipped."""
        if not self._dir.is_dir():
            return []
        manifests: List[InstalledManifest] = []
        for path in sorted(self._dir.glob(f"*{MANIFEST_SUFFIX}")):
            try:
                manifests.append(self._read(path))
            except ValueError as exc:
                logger.warning("skipping malformed manifest %s: %s", path, exc)
        return manifests

    def write(self, manifest: InstalledManifest) -> Path:
        path = self.path_for(manifest.name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(manifest.to_dict(), ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
        return path

    def remove(self, name: str) -> List[RemovalRecord]:
        """Delete every path the bundle installed, then its manifest.

        Removal is best effort and not transactional: a path that is already
        gone is reported and skipped, and an interrupted removal leaves the
        manifest pointing at partially deleted paths.
        """
        manifest = self.find(name)
        records: List[RemovalRecord] = []
        for raw in manifest.paths:
            target = Path(raw)
            if target.is_symlink() or target.is_file():
                target.unlink()
            elif target.is_dir():
                shutil.rmtree(target)
            else:
                logger.warning("path %s listed by %s is already gone", raw, name)
                records.append(RemovalRecord(path=raw, status="missing"))
                continue
            logger.info("removed %s", raw)
            records.append(RemovalRecord(path=raw, status="removed"))
        self.path_for(name).unlink()
        return records

    def clear(self) -> int:
        """Forget every manifest without touching installed files."""
        if not self._dir.is_dir():
            return 0
        count = 0
        for path in self._dir.glob(f"*{MANIFEST_SUFFIX}"):
            path.unlink()
            count += 1
        return count

    def _read(self, path: Path) -> InstalledManifest:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"{exc.msg} (line {exc.lineno} column {exc.colno})") from exc
        if not isinstance(data, dict):
            raise ValueError("manifest root must be a JSON object")
        return InstalledManifest.from_dict(data)


__all__ = ["ManifestStore", "RemovalRecord"]
