"""Value objects describing installed bundles."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from bundlekit.domain.bundle import dependency_repo
from bundlekit.utils.schema import schema_errors

SCHEMA_RESOURCE = "manifest.schema.json"


@dataclass(frozen=True)
class InstalledManifest:
    """Record of one installed bundle: its pin and the paths it placed on disk."""

    name: str
    paths: List[str] = field(default_factory=list)
    repo: str | None = None
    sha: str | None = None
    type: str | None = None
    version: str | None = None
    dependencies: List[Any] = field(default_factory=list)

    @property
    def pinned(self) -> bool:
        return bool(self.repo) and bool(self.sha)

    def dependency_repos(self) -> List[str]:
        return [dependency_repo(item) for item in self.dependencies]

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"name": self.name}
        if self.version is not None:
            payload["version"] = self.version
        if self.repo is not None:
            payload["repo"] = self.repo
            payload["sha"] = self.sha
            payload["type"] = self.type
            payload["dependencies"] = list(self.dependencies)
        elif self.dependencies:
            payload["dependencies"] = list(self.dependencies)
        payload["paths"] = list(self.paths)
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InstalledManifest":
        errors = schema_errors(SCHEMA_RESOURCE, data)
        if errors:
            raise ValueError("manifest schema violation: " + "; ".join(errors))
        return cls(
            name=data["name"],
            paths=list(data.get("paths", [])),
            repo=data.get("repo"),
            sha=data.get("sha"),
            type=data.get("type"),
            version=data.get("version"),
            dependencies=list(data.get("dependencies", [])),
        )


__all__ = ["InstalledManifest"]
