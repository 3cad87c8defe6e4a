"""Ports for the collaborators that evaluate and run a bundle's rules."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Protocol

if TYPE_CHECKING:  # pragma: no cover
    from bundlekit.app.install.project import BuildDescription, HostBindings
    from bundlekit.app.install.rules import RuleSet


class RuleEngine(Protocol):  # pragma: no cover
    def __call__(self, rules: "RuleSet", targets: Iterable[str], workers: int | None = None) -> None:
        ...


class BuildLoader(Protocol):  # pragma: no cover
    def __call__(self, path: Path, bindings: "HostBindings") -> "BuildDescription":
        ...
