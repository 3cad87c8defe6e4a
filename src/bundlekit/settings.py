"""Runtime settings for bundlekit."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from bundlekit import __version__

DEFAULT_INDEX_URL = "https://github.com/bundlekit/bundle-index.git"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class InstallRoots:
    """Absolute install destinations handed to a bundle's rules."""

    modpath: Path
    headerpath: Path
    libpath: Path
    binpath: Path

    def absolute(self, base: Path) -> "InstallRoots":
        return InstallRoots(
            modpath=(base / self.modpath).resolve(),
            headerpath=(base / self.headerpath).resolve(),
            libpath=(base / self.libpath).resolve(),
            binpath=(base / self.binpath).resolve(),
        )

    def environment(self) -> dict[str, str]:
        return {
            "BUNDLEKIT_MODPATH": str(self.modpath),
            "BUNDLEKIT_HEADERPATH": str(self.headerpath),
            "BUNDLEKIT_LIBPATH": str(self.libpath),
            "BUNDLEKIT_BINPATH": str(self.binpath),
        }


@dataclass(frozen=True)
class RuntimeSettings:
    home_dir: Path
    cache_dir: Path
    manifest_dir: Path
    log_dir: Path
    modpath: Path
    headerpath: Path
    libpath: Path
    binpath: Path
    index_url: str = DEFAULT_INDEX_URL
    offline: bool = False
    offline_archives: bool = False
    workers: int | None = None
    cli_version: str = __version__

    def install_roots(self) -> InstallRoots:
        return InstallRoots(
            modpath=self.modpath,
            headerpath=self.headerpath,
            libpath=self.libpath,
            binpath=self.binpath,
        )

    @classmethod
    def under(cls, home: Path, **overrides: object) -> "RuntimeSettings":
        """Lay out every directory below ``home``."""
        home = home.expanduser().resolve()
        values: dict[str, object] = {
            "home_dir": home,
            "cache_dir": home / "cache",
            "manifest_dir": home / "manifests",
            "log_dir": home / "logs",
            "modpath": home / "modules",
            "headerpath": home / "include",
            "libpath": home / "lib",
            "binpath": home / "bin",
        }
        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]


def _truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in _TRUTHY


def _default_home_dir() -> Path:
    return Path(os.environ.get("BUNDLEKIT_HOME", Path.home() / ".bundlekit"))


def _env_path(name: str, default: Path) -> Path:
    value = os.environ.get(name)
    if not value:
        return default
    return Path(value).expanduser().resolve()


def _env_workers() -> int | None:
    value = os.environ.get("BUNDLEKIT_WORKERS", "").strip()
    if not value:
        return None
    try:
        workers = int(value)
    except ValueError as exc:
        raise ValueError(f"BUNDLEKIT_WORKERS must be an integer, got {value!r}") from exc
    return workers if workers > 0 else None


def load_settings() -> RuntimeSettings:
    base = RuntimeSettings.under(_default_home_dir())
    return RuntimeSettings(
        home_dir=base.home_dir,
        cache_dir=_env_path("BUNDLEKIT_CACHE_DIR", base.cache_dir),
        manifest_dir=_env_path("BUNDLEKIT_MANIFEST_DIR", base.manifest_dir),
        log_dir=_env_path("BUNDLEKIT_LOG_DIR", base.log_dir),
        modpath=_env_path("BUNDLEKIT_MODPATH", base.modpath),
        headerpath=_env_path("BUNDLEKIT_HEADERPATH", base.headerpath),
        libpath=_env_path("BUNDLEKIT_LIBPATH", base.libpath),
        binpath=_env_path("BUNDLEKIT_BINPATH", base.binpath),
        index_url=os.environ.get("BUNDLEKIT_INDEX_URL") or DEFAULT_INDEX_URL,
        offline=_truthy(os.environ.get("BUNDLEKIT_OFFLINE")),
        offline_archives=_truthy(os.environ.get("BUNDLEKIT_OFFLINE_ARCHIVES")),
        workers=_env_workers(),
    )


SETTINGS = load_settings()
