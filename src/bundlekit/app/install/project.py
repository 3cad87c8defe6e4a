"""Load a bundle's ``project.yaml`` into a rule set.

The build description is data only (``yaml.safe_load``), so evaluating it
cannot run code in the host process. Everything the resulting rules may touch
is passed in through :class:`HostBindings`: install roots, the manifest
store, and callbacks into the installer for dependencies.
"""

from __future__ import annotations

import os
import shutil
import stat
import subprocess
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, List

import yaml
from packaging.version import InvalidVersion, Version

from bundlekit.domain.bundle import BundleDescriptor, BundleType, RawBundle
from bundlekit.domain.errors import BuildDescriptionError, RuleError
from bundlekit.domain.manifest import InstalledManifest, ManifestStore
from bundlekit.settings import InstallRoots
from bundlekit.utils.schema import schema_errors

from .rules import RuleSet

PROJECT_FILENAME = "project.yaml"
SCHEMA_RESOURCE = "project.schema.json"

PHASE_INSTALL_DEPS = "install-deps"
PHASE_BUILD = "build"
PHASE_INSTALL = "install"

INSTALL_KINDS = ("modules", "headers", "libraries", "binaries")


@dataclass(frozen=True)
class BundleOrigin:
    """Where an installed bundle came from; absent for local installs."""

    repo: str
    sha: str | None
    type: BundleType = BundleType.VCS


@dataclass(frozen=True)
class HostBindings:
    roots: InstallRoots
    manifests: ManifestStore
    install_dependency: Callable[[RawBundle], None]
    resolve: Callable[[RawBundle], BundleDescriptor]
    origin: BundleOrigin | None = None
    workers: int | None = None

    def environment(self) -> Dict[str, str]:
        env = dict(os.environ)
        env.update(self.roots.environment())
        return env

    def destination(self, kind: str) -> Path:
        return {
            "modules": self.roots.modpath,
            "headers": self.roots.headerpath,
            "libraries": self.roots.libpath,
            "binaries": self.roots.binpath,
        }[kind]


@dataclass
class BuildDescription:
    name: str
    root: Path
    rules: RuleSet
    version: str | None = None
    description: str = ""
    dependencies: List[Any] = field(default_factory=list)


def load_build_description(path: Path, bindings: HostBindings) -> BuildDescription:
    data = _read(path)
    root = path.parent.resolve()
    name = data["name"]
    version = data.get("version")
    if version is not None:
        try:
            version = str(Version(version))
        except InvalidVersion as exc:
            raise BuildDescriptionError(f"{path}: invalid version {version!r}") from exc
    dependencies = list(data.get("dependencies", []))

    rules = RuleSet()
    rules.rule(PHASE_INSTALL_DEPS)
    for dependency in dependencies:
        rules.add_action(PHASE_INSTALL_DEPS, partial(bindings.install_dependency, dependency))

    rules.rule(PHASE_BUILD)
    for index, step in enumerate(data.get("build", [])):
        rules.add_action(PHASE_BUILD, partial(_run_step, step, f"build-step{index}", root, bindings))

    rules.rule(PHASE_INSTALL)
    install = data.get("install", {})
    for kind in INSTALL_KINDS:
        for item in install.get(kind, []):
            source = _inside_root(root, item, path)
            rules.add_action(
                PHASE_INSTALL,
                partial(_install_path, source, bindings.destination(kind), bindings, kind == "binaries"),
            )

    for rule_name, body in data.get("rules", {}).items():
        rules.rule(rule_name, body.get("prerequisites", []))
        for index, step in enumerate(body.get("steps", [])):
            rules.add_action(rule_name, partial(_run_step, step, f"{rule_name}-step{index}", root, bindings))

    rules.add_action(PHASE_INSTALL, partial(_write_manifest, name, version, dependencies, bindings))
    return BuildDescription(
        name=name,
        root=root,
        rules=rules,
        version=version,
        description=data.get("description", ""),
        dependencies=dependencies,
    )


def _read(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise BuildDescriptionError(f"build description {path} not found")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise BuildDescriptionError(f"{path}: invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise BuildDescriptionError(f"{path}: build description must be a mapping")
    errors = schema_errors(SCHEMA_RESOURCE, data)
    if errors:
        raise BuildDescriptionError(f"{path}: " + "; ".join(errors))
    return data


def _inside_root(root: Path, relative: str, description: Path) -> Path:
    candidate = (root / relative).resolve()
    if candidate != root and root not in candidate.parents:
        raise BuildDescriptionError(f"{description}: install path {relative!r} leaves the bundle root")
    return candidate


def _run_step(step: Dict[str, Any], default_name: str, root: Path, bindings: HostBindings) -> None:
    args = list(step["exec"])
    step_name = step.get("name", default_name)
    try:
        result = subprocess.run(args, cwd=root, env=bindings.environment())
    except FileNotFoundError as exc:
        raise RuleError(f"step {step_name}: executable {args[0]!r} not found") from exc
    if result.returncode != 0:
        raise RuleError(f"step {step_name} failed with exit code {result.returncode}")


def _install_path(source: Path, destination_dir: Path, bindings: HostBindings, executable: bool) -> None:
    if not source.exists():
        raise RuleError(f"cannot install {source}: no such file or directory")
    destination_dir.mkdir(parents=True, exist_ok=True)
    target = destination_dir / source.name
    if source.is_dir():
        if target.exists():
            shutil.rmtree(target)
        shutil.copytree(source, target)
    else:
        shutil.copy2(source, target)
        if executable:
            target.chmod(target.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    bindings.manifests.record_installed_path(target)


def _write_manifest(name: str, version: str | None, dependencies: List[Any], bindings: HostBindings) -> None:
    origin = bindings.origin
    manifest = InstalledManifest(
        name=name,
        paths=bindings.manifests.installed_paths(),
        repo=origin.repo if origin else None,
        sha=origin.sha if origin else None,
        type=origin.type.value if origin else None,
        version=version,
        dependencies=[bindings.resolve(dependency).to_dict() for dependency in dependencies],
    )
    bindings.manifests.write(manifest)


__all__ = [
    "BuildDescription",
    "BundleOrigin",
    "HostBindings",
    "PHASE_BUILD",
    "PHASE_INSTALL",
    "PHASE_INSTALL_DEPS",
    "PROJECT_FILENAME",
    "load_build_description",
]
