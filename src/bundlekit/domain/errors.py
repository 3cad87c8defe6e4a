"""Error kinds raised while resolving, fetching and installing bundles."""

from __future__ import annotations

from typing import Iterable


class BundleError(RuntimeError):
    """Base class for every failure bundlekit reports to its caller."""


class MalformedDescriptor(BundleError):
    """Raised when a bundle reference cannot be parsed."""


class BundleNotFound(BundleError):
    """Raised when a short name is not present in the package index."""


class OfflineCacheMiss(BundleError):
    """Raised when offline mode needs a cache entry that does not exist."""


class RefNotFound(BundleError):
    """Raised when the pinned tag or commit cannot be checked out."""


class TransportError(BundleError):
    """Raised when a VCS command or archive download fails."""


class ManifestNotFound(BundleError):
    """Raised when uninstalling a bundle that was never installed."""


class BuildDescriptionError(BundleError):
    """Raised when a bundle's build description is missing or invalid."""


class RuleError(BundleError):
    """Raised when a rule cannot run (prerequisite cycle) or one of its steps fails."""


class InstallCycleError(BundleError):
    """Raised when a bundle transitively depends on itself during one install."""


class InstallerBusy(BundleError):
    """Raised when a second thread enters an install traversal already in flight."""


class LockfileError(BundleError):
    """Raised when lockfile text is not a sequence of lock records."""


class UnresolvableOrder(BundleError):
    """Raised when installed packages cannot be put in dependency order."""

    def __init__(self, unresolved: Iterable[str]) -> None:
        self.unresolved = sorted(unresolved)
        super().__init__(
            "could not resolve package order for: " + ", ".join(self.unresolved)
        )


__all__ = [
    "BundleError",
    "BundleNotFound",
    "BuildDescriptionError",
    "InstallCycleError",
    "InstallerBusy",
    "LockfileError",
    "MalformedDescriptor",
    "ManifestNotFound",
    "OfflineCacheMiss",
    "RefNotFound",
    "RuleError",
    "TransportError",
    "UnresolvableOrder",
]
