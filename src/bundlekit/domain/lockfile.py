"""Lockfile entries, dependency ordering and the line-oriented lockfile codec."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence

from bundlekit.utils.schema import schema_errors

from .bundle import BundleDescriptor, BundleType
from .errors import LockfileError, UnresolvableOrder

SCHEMA_RESOURCE = "lockfile.schema.json"
DEFAULT_LOCKFILE = "lockfile.json"


@dataclass(frozen=True)
class LockEntry:
    repo: str
    sha: str
    type: BundleType = BundleType.VCS

    def to_dict(self) -> Dict[str, str]:
        payload = {"repo": self.repo, "sha": self.sha}
        if self.type is not BundleType.VCS:
            payload["type"] = self.type.value
        return payload

    def to_descriptor(self) -> BundleDescriptor:
        return BundleDescriptor(repo=self.repo, tag=self.sha, type=self.type)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LockEntry":
        return cls(
            repo=data["repo"],
            sha=data["sha"],
            type=BundleType.parse(data.get("type") or BundleType.VCS),
        )


@dataclass(frozen=True)
class LockPackage:
    """An installed, pinned package and the repos it depends on."""

    repo: str
    sha: str
    type: BundleType = BundleType.VCS
    dependencies: Sequence[str] = field(default_factory=tuple)

    def entry(self) -> LockEntry:
        return LockEntry(repo=self.repo, sha=self.sha, type=self.type)


def order_packages(packages: Iterable[LockPackage]) -> List[LockEntry]:
    """Order packages so each one follows every package it depends on.

    Each pass places every package whose dependencies were placed by earlier
    passes; packages eligible in the same pass are placed in repo order. A
    pass that places nothing means a cycle or a dependency that is not
    installed.
    """
    by_repo: Dict[str, LockPackage] = {}
    for package in packages:
        by_repo[package.repo] = package
    remaining = sorted(by_repo)
    placed: set[str] = set()
    ordered: List[LockEntry] = []
    while remaining:
        eligible = [repo for repo in remaining if all(dep in placed for dep in by_repo[repo].dependencies)]
        if not eligible:
            raise UnresolvableOrder(remaining)
        for repo in eligible:
            ordered.append(by_repo[repo].entry())
        placed.update(eligible)
        remaining = [repo for repo in remaining if repo not in placed]
    return ordered


def dumps(entries: Sequence[LockEntry]) -> str:
    """Serialize one record per line so regenerated lockfiles diff cleanly."""
    lines = ["["]
    last = len(entries) - 1
    for index, entry in enumerate(entries):
        suffix = "," if index < last else ""
        lines.append("  " + json.dumps(entry.to_dict(), ensure_ascii=False) + suffix)
    lines.append("]")
    return "\n".join(lines) + "\n"


def loads(text: str) -> List[LockEntry]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise LockfileError(f"lockfile is not valid JSON: {exc.msg} (line {exc.lineno} column {exc.colno})") from exc
    errors = schema_errors(SCHEMA_RESOURCE, data)
    if errors:
        raise LockfileError("lockfile schema violation: " + "; ".join(errors))
    return [LockEntry.from_dict(item) for item in data]


__all__ = [
    "DEFAULT_LOCKFILE",
    "LockEntry",
    "LockPackage",
    "dumps",
    "loads",
    "order_packages",
]
