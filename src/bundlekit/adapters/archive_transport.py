"""Tarball transport: download over HTTP(S) and unpack with the top directory stripped."""

from __future__ import annotations

import hashlib
import logging
import shutil
import tarfile
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

import requests

from bundlekit.domain.errors import TransportError
from bundlekit.ports.transport import ArchiveTransport

logger = logging.getLogger(__name__)

ARCHIVE_BASENAME = ".bundle-archive"
SOURCE_MARKER = ".bundle-archive-url"
REMOTE_SCHEMES = {"http", "https", "ftp"}
COMPRESSION_SUFFIXES = {
    ".tar.gz": "gz",
    ".tgz": "gz",
    ".tar.bz2": "bz2",
    ".tbz2": "bz2",
    ".tar.xz": "xz",
    ".txz": "xz",
}
CHUNK_SIZE = 64 * 1024


def archive_suffix(name: str) -> str:
    lowered = name.lower()
    for suffix in COMPRESSION_SUFFIXES:
        if lowered.endswith(suffix):
            return suffix
    return ".tar"


def compression_for(name: str) -> str:
    """Return the tarfile compression for a file name ('' for plain tar)."""
    return COMPRESSION_SUFFIXES.get(archive_suffix(name), "")


class TarArchiveTransport(ArchiveTransport):
    def __init__(self, session: requests.Session | None = None) -> None:
        self._session = session or requests.Session()

    def is_remote(self, location: str) -> bool:
        return urlparse(location).scheme.lower() in REMOTE_SCHEMES

    def stored_archive(self, url: str, directory: Path) -> Path:
        return directory / (ARCHIVE_BASENAME + archive_suffix(urlparse(url).path))

    def fetch(self, url: str, directory: Path) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        target = self.stored_archive(url, directory)
        logger.info("downloading %s", url)
        try:
            with self._session.get(url, stream=True) as response:
                response.raise_for_status()
                with target.open("wb") as handle:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            handle.write(chunk)
        except requests.RequestException as exc:
            target.unlink(missing_ok=True)
            raise TransportError(f"Failed to download {url}: {exc}") from exc
        (directory / SOURCE_MARKER).write_text(url + "\n", encoding="utf-8")
        return target

    def extract(self, archive: Path, directory: Path, *, strip_top_level: bool = True) -> None:
        if not archive.is_file():
            raise TransportError(f"archive {archive} does not exist")
        directory.mkdir(parents=True, exist_ok=True)
        root = directory.resolve()
        mode = f"r:{compression_for(archive.name)}" if compression_for(archive.name) else "r:"
        try:
            with tarfile.open(archive, mode) as tar:
                for member in tar.getmembers():
                    relative = _member_path(member.name, strip_top_level)
                    if relative is None:
                        continue
                    destination = (root / relative).resolve()
                    if not _inside(root, destination):
                        raise TransportError(f"archive member {member.name!r} escapes {directory}")
                    _extract_member(tar, member, destination, root, strip_top_level)
        except tarfile.TarError as exc:
            raise TransportError(f"Failed to extract {archive}: {exc}") from exc

    def digest(self, archive: Path) -> str:
        sha = hashlib.sha256()
        with archive.open("rb") as handle:
            for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
                sha.update(chunk)
        return sha.hexdigest()


def _member_path(name: str, strip_top_level: bool) -> PurePosixPath | None:
    parts = [part for part in PurePosixPath(name).parts if part not in ("", ".")]
    if strip_top_level:
        parts = parts[1:]
    if not parts:
        return None
    return PurePosixPath(*parts)


def _inside(root: Path, path: Path) -> bool:
    return path == root or root in path.parents


def _extract_member(
    tar: tarfile.TarFile,
    member: tarfile.TarInfo,
    destination: Path,
    root: Path,
    strip_top_level: bool,
) -> None:
    if member.isdir():
        destination.mkdir(parents=True, exist_ok=True)
        return
    if member.issym():
        if not _inside(root, (destination.parent / member.linkname).resolve()):
            raise TransportError(f"archive link {member.name!r} points outside {root}")
        destination.parent.mkdir(parents=True, exist_ok=True)
        if destination.exists() or destination.is_symlink():
            destination.unlink()
        destination.symlink_to(member.linkname)
        return
    if member.islnk():
        linked = _member_path(member.linkname, strip_top_level)
        source = (root / linked).resolve() if linked is not None else None
        if source is None or not _inside(root, source) or not source.is_file():
            raise TransportError(f"archive hard link {member.name!r} has no target inside {root}")
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
        return
    if not member.isfile():
        return
    source = tar.extractfile(member)
    if source is None:
        return
    destination.parent.mkdir(parents=True, exist_ok=True)
    with source, destination.open("wb") as handle:
        shutil.copyfileobj(source, handle)
    destination.chmod(member.mode & 0o777 or 0o644)


__all__ = ["TarArchiveTransport", "archive_suffix", "compression_for"]
