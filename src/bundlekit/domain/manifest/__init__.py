"""Installed-manifest domain exports."""

from .ledger import PathLedger
from .store import ManifestStore, RemovalRecord
from .value_objects import InstalledManifest

__all__ = [
    "InstalledManifest",
    "ManifestStore",
    "PathLedger",
    "RemovalRecord",
]
