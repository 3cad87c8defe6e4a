"""Domain model for bundle descriptors."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from hashlib import sha256
from typing import Any, Mapping, Union

from .errors import MalformedDescriptor

SEPARATOR = "::"
DEFAULT_TAG = "main"

RawBundle = Union[str, Mapping[str, Any], "BundleDescriptor"]

_SLUG_RE = re.compile(r"[^A-Za-z0-9._-]+")
_SLUG_LIMIT = 48


class BundleType(str, Enum):
    VCS = "git"
    ARCHIVE = "tar"

    @classmethod
    def parse(cls, value: Any, *, raw: Any = None) -> "BundleType":
        if isinstance(value, BundleType):
            return value
        for member in cls:
            if value == member.value:
                return member
        raise MalformedDescriptor(f"unknown bundle type {value!r} in bundle {raw if raw is not None else value!r}")


@dataclass(frozen=True)
class BundleDescriptor:
    """Normalized ``{repo, tag, type}`` identifying one bundle."""

    repo: str
    tag: str = DEFAULT_TAG
    type: BundleType = BundleType.VCS

    def same_bundle(self, other: "BundleDescriptor") -> bool:
        return self.repo == other.repo

    def cache_id(self) -> str:
        return cache_id(self.repo)

    def to_ref(self, parts: int = 3) -> str:
        """Format as a ``type::repo::tag`` reference with 1, 2 or 3 parts."""
        if parts == 1:
            return self.repo
        if parts == 2:
            return SEPARATOR.join((self.type.value, self.repo))
        if parts == 3:
            return SEPARATOR.join((self.type.value, self.repo, self.tag))
        raise ValueError(f"reference must have 1, 2 or 3 parts, not {parts}")

    def to_dict(self) -> dict[str, str]:
        return {"repo": self.repo, "tag": self.tag, "type": self.type.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BundleDescriptor":
        repo = data.get("repo")
        if not isinstance(repo, str) or not repo.strip():
            raise MalformedDescriptor(f"bundle record has no repo: {dict(data)!r}")
        tag = data.get("tag")
        if tag is not None and not isinstance(tag, str):
            raise MalformedDescriptor(f"bundle tag must be a string: {dict(data)!r}")
        bundle_type = BundleType.parse(data.get("type") or BundleType.VCS, raw=dict(data))
        return cls(repo=repo.strip(), tag=tag or DEFAULT_TAG, type=bundle_type)


def is_short_name(raw: str) -> bool:
    """Return True for index aliases: no scheme marker, no path separator."""
    if not raw or ":" in raw or "/" in raw or "\\" in raw:
        return False
    return not raw.startswith((".", "~"))


def parse_descriptor(raw: RawBundle) -> BundleDescriptor:
    """Parse a record or a ``type::repo::tag`` string, without index lookups."""
    if isinstance(raw, BundleDescriptor):
        return raw
    if isinstance(raw, Mapping):
        return BundleDescriptor.from_dict(raw)
    if not isinstance(raw, str):
        raise MalformedDescriptor(f"unable to parse bundle {raw!r}")
    parts = raw.split(SEPARATOR)
    if any(not part.strip() for part in parts):
        raise MalformedDescriptor(f"unable to parse bundle string {raw!r}")
    if len(parts) == 1:
        return BundleDescriptor(repo=parts[0].strip())
    if len(parts) == 2:
        return BundleDescriptor(repo=parts[1].strip(), type=BundleType.parse(parts[0], raw=raw))
    if len(parts) == 3:
        return BundleDescriptor(
            repo=parts[1].strip(),
            tag=parts[2].strip(),
            type=BundleType.parse(parts[0], raw=raw),
        )
    raise MalformedDescriptor(f"unable to parse bundle string {raw!r}")


def dependency_repo(raw: RawBundle) -> str:
    """Bare repo identifier of a dependency entry (string or record)."""
    if isinstance(raw, Mapping):
        repo = raw.get("repo")
        if not isinstance(repo, str):
            raise MalformedDescriptor(f"dependency record has no repo: {dict(raw)!r}")
        return repo
    return parse_descriptor(raw).repo


def cache_id(repo: str) -> str:
    """Deterministic, filesystem-safe directory name for a repo string."""
    digest = sha256(repo.encode("utf-8")).hexdigest()[:16]
    slug = _SLUG_RE.sub("_", repo)[-_SLUG_LIMIT:].strip("_.-")
    return f"{slug}-{digest}" if slug else digest


__all__ = [
    "BundleDescriptor",
    "BundleType",
    "DEFAULT_TAG",
    "RawBundle",
    "SEPARATOR",
    "cache_id",
    "dependency_repo",
    "is_short_name",
    "parse_descriptor",
]
