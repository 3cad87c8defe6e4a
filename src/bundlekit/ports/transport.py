"""Port definitions for bundle transports."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class VcsTransport(ABC):
    """Version-controlled working trees (clone, sync, reset)."""

    @abstractmethod
    def is_working_tree(self, directory: Path) -> bool:
        """Return True when ``directory`` holds a usable working tree."""

    @abstractmethod
    def clone(self, url: str, directory: Path) -> None:
        """Clone ``url`` into ``directory``."""

    @abstractmethod
    def sync(self, directory: Path, ref: str) -> bool:
        """Fast-forward ``directory`` to the remote ``ref``; False on failure."""

    @abstractmethod
    def reset(self, directory: Path, ref: str) -> None:
        """Hard-reset the working tree to ``ref``; raise RefNotFound if unreachable."""

    @abstractmethod
    def update_submodules(self, directory: Path) -> None:
        """Recursively initialise and update nested trees."""

    @abstractmethod
    def revision(self, directory: Path) -> str:
        """Return the commit currently checked out."""


class ArchiveTransport(ABC):
    """Archives fetched once and unpacked into a directory."""

    @abstractmethod
    def is_remote(self, location: str) -> bool:
        """Return True when ``location`` must be downloaded."""

    @abstractmethod
    def fetch(self, url: str, directory: Path) -> Path:
        """Download ``url`` into ``directory`` and return the archive path."""

    @abstractmethod
    def stored_archive(self, url: str, directory: Path) -> Path:
        """Where ``fetch`` places the download of ``url`` inside ``directory``."""

    @abstractmethod
    def extract(self, archive: Path, directory: Path, *, strip_top_level: bool = True) -> None:
        """Unpack ``archive`` into ``directory``."""

    @abstractmethod
    def digest(self, archive: Path) -> str:
        """Content hash used as the archive's pin."""
