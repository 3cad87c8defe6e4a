#!/usr/bin/env python3
"""Entry point for the bundlekit CLI."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import dataclass, replace
from pathlib import Path
from textwrap import dedent
from typing import Any, Dict

from bundlekit import __version__
from bundlekit.app.acquire import BundleAcquirer
from bundlekit.app.install import Installer
from bundlekit.app.lockfile import LockfileService
from bundlekit.app.resolver import DescriptorResolver
from bundlekit.domain.errors import BundleError
from bundlekit.domain.lockfile import DEFAULT_LOCKFILE
from bundlekit.domain.manifest import ManifestStore
from bundlekit.settings import SETTINGS, RuntimeSettings
from bundlekit.utils.telemetry import record_event

HELP_OVERVIEW = dedent(
    """
    Install bundles from git repositories and tarballs, track what they
    installed, and pin the result in a lockfile.

    Bundle references:
      - git::URL::TAG, tar::URL, git::URL or a bare URL (git, tag main)
      - a short name looked up in the package index (see update-pkgs)
    """
)


@dataclass
class Services:
    settings: RuntimeSettings
    manifests: ManifestStore
    resolver: DescriptorResolver
    acquirer: BundleAcquirer
    installer: Installer
    lockfiles: LockfileService


def _settings_from_args(args: argparse.Namespace) -> RuntimeSettings:
    overrides: Dict[str, Any] = {}
    for field_name in ("cache_dir", "manifest_dir", "modpath", "headerpath", "libpath", "binpath"):
        value = getattr(args, field_name, None)
        if value:
            overrides[field_name] = Path(value).expanduser().resolve()
    if getattr(args, "index_url", None):
        overrides["index_url"] = args.index_url
    if getattr(args, "offline", False):
        overrides["offline"] = True
    if getattr(args, "offline_archives", False):
        overrides["offline_archives"] = True
    if getattr(args, "workers", None) is not None:
        overrides["workers"] = args.workers if args.workers > 0 else None
    return replace(SETTINGS, **overrides)


def _build_services(settings: RuntimeSettings) -> Services:
    manifests = ManifestStore(settings.manifest_dir)
    resolver = DescriptorResolver(settings)
    acquirer = BundleAcquirer(settings)
    installer = Installer(settings, resolver=resolver, acquirer=acquirer, manifests=manifests)
    return Services(
        settings=settings,
        manifests=manifests,
        resolver=resolver,
        acquirer=acquirer,
        installer=installer,
        lockfiles=LockfileService(manifests, installer),
    )


def _fail(settings: RuntimeSettings, event: str, exc: Exception, payload: Dict[str, Any], start: float) -> int:
    record_event(
        settings,
        event,
        payload | {"error": str(exc)},
        level="error",
        status="error",
        duration_ms=(time.perf_counter() - start) * 1000,
    )
    print(str(exc), file=sys.stderr)
    return 1


def _install_cmd(args: argparse.Namespace) -> int:
    services = _build_services(_settings_from_args(args))
    bundles = list(args.bundles)
    payload: Dict[str, Any] = {"bundles": bundles or ["."], "skip_deps": args.skip_deps}
    start = time.perf_counter()
    try:
        if not bundles:
            description = services.installer.install_local(Path.cwd(), skip_deps=args.skip_deps)
            print(f"installed {description.name}")
        for bundle in bundles:
            description = services.installer.install(bundle, skip_deps=args.skip_deps)
            print(f"installed {description.name}")
    except BundleError as exc:
        return _fail(services.settings, "bundle.install", exc, payload, start)
    record_event(
        services.settings,
        "bundle.install",
        payload,
        status="success",
        duration_ms=(time.perf_counter() - start) * 1000,
    )
    return 0


def _deps_cmd(args: argparse.Namespace) -> int:
    services = _build_services(_settings_from_args(args))
    try:
        description = services.installer.install_dependencies(Path.cwd())
    except BundleError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(f"installed dependencies of {description.name}")
    return 0


def _uninstall_cmd(args: argparse.Namespace) -> int:
    services = _build_services(_settings_from_args(args))
    payload: Dict[str, Any] = {"names": list(args.names)}
    start = time.perf_counter()
    missing = 0
    try:
        for name in args.names:
            records = services.manifests.remove(name)
            missing += sum(1 for record in records if record.status == "missing")
            print(f"uninstalled {name} ({len(records)} paths)")
    except BundleError as exc:
        return _fail(services.settings, "bundle.uninstall", exc, payload, start)
    record_event(
        services.settings,
        "bundle.uninstall",
        payload | {"missing": missing},
        status="success",
        duration_ms=(time.perf_counter() - start) * 1000,
    )
    return 0


def _list_installed_cmd(args: argparse.Namespace) -> int:
    services = _build_services(_settings_from_args(args))
    manifests = services.manifests.list()
    if args.json:
        print(json.dumps([manifest.to_dict() for manifest in manifests], ensure_ascii=False, indent=2))
        return 0
    if not manifests:
        print("no bundles installed")
        return 0
    for manifest in manifests:
        pin = f"{manifest.repo}@{manifest.sha}" if manifest.pinned else "local"
        version = f" {manifest.version}" if manifest.version else ""
        print(f"{manifest.name}{version}  {pin}")
    return 0


def _show_manifest_cmd(args: argparse.Namespace) -> int:
    services = _build_services(_settings_from_args(args))
    try:
        manifest = services.manifests.find(args.name)
    except BundleError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(json.dumps(manifest.to_dict(), ensure_ascii=False, indent=2))
    return 0


def _list_pkgs_cmd(args: argparse.Namespace) -> int:
    services = _build_services(_settings_from_args(args))
    try:
        packages = services.resolver.index.packages()
    except BundleError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    if args.json:
        print(json.dumps(packages, ensure_ascii=False, indent=2, sort_keys=True))
        return 0
    if not packages:
        print("package index not installed; run update-pkgs", file=sys.stderr)
        return 0
    for name in sorted(packages):
        print(name)
    return 0


def _update_pkgs_cmd(args: argparse.Namespace) -> int:
    services = _build_services(_settings_from_args(args))
    try:
        services.resolver.update_index()
    except BundleError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(f"package index updated from {services.settings.index_url}")
    return 0


def _show_paths_cmd(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    paths = {
        "home": str(settings.home_dir),
        "cache": str(settings.cache_dir),
        "manifests": str(settings.manifest_dir),
        "logs": str(settings.log_dir),
        "modpath": str(settings.modpath),
        "headerpath": str(settings.headerpath),
        "libpath": str(settings.libpath),
        "binpath": str(settings.binpath),
    }
    if args.json:
        print(json.dumps(paths, indent=2))
        return 0
    for key, value in paths.items():
        print(f"{key}: {value}")
    return 0


def _clear_cache_cmd(args: argparse.Namespace) -> int:
    services = _build_services(_settings_from_args(args))
    removed = services.acquirer.clear_cache()
    record_event(services.settings, "cache.clear", {"removed": removed}, status="success")
    print("cache cleared" if removed else "cache already empty")
    return 0


def _clear_manifest_cmd(args: argparse.Namespace) -> int:
    services = _build_services(_settings_from_args(args))
    count = services.manifests.clear()
    print(f"removed {count} manifests")
    return 0


def _make_lockfile_cmd(args: argparse.Namespace) -> int:
    services = _build_services(_settings_from_args(args))
    path = Path(args.file)
    payload: Dict[str, Any] = {"path": str(path)}
    start = time.perf_counter()
    try:
        entries = services.lockfiles.write(path)
    except BundleError as exc:
        return _fail(services.settings, "lockfile.make", exc, payload, start)
    record_event(
        services.settings,
        "lockfile.make",
        payload | {"entries": len(entries)},
        status="success",
        duration_ms=(time.perf_counter() - start) * 1000,
    )
    print(f"wrote {len(entries)} entries to {path}")
    return 0


def _load_lockfile_cmd(args: argparse.Namespace) -> int:
    services = _build_services(_settings_from_args(args))
    path = Path(args.file)
    payload: Dict[str, Any] = {"path": str(path)}
    start = time.perf_counter()
    try:
        entries = services.lockfiles.load(path)
    except BundleError as exc:
        return _fail(services.settings, "lockfile.load", exc, payload, start)
    record_event(
        services.settings,
        "lockfile.load",
        payload | {"entries": len(entries)},
        status="success",
        duration_ms=(time.perf_counter() - start) * 1000,
    )
    print(f"installed {len(entries)} bundles from {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bundlekit",
        description=HELP_OVERVIEW,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"bundlekit {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    parser.add_argument("--offline", action="store_true", help="Never touch the network for git bundles")
    parser.add_argument(
        "--offline-archives",
        action="store_true",
        help="Serve tar bundles only from the cache",
    )
    parser.add_argument("--workers", type=int, help="Parallel rule workers (default: sequential)")
    parser.add_argument("--cache-dir", help="Bundle cache directory")
    parser.add_argument("--manifest-dir", help="Installed manifest directory")
    parser.add_argument("--modpath", help="Module install root")
    parser.add_argument("--headerpath", help="Header install root")
    parser.add_argument("--libpath", help="Library install root")
    parser.add_argument("--binpath", help="Binary install root")
    parser.add_argument("--index-url", help="Package index bundle")

    sub = parser.add_subparsers(dest="command", required=True)

    install_cmd = sub.add_parser("install", help="Install bundles (default: the current directory)")
    install_cmd.add_argument("bundles", nargs="*", help="Bundle references or short names")
    install_cmd.add_argument("--skip-deps", action="store_true", help="Do not install dependencies")
    install_cmd.set_defaults(func=_install_cmd)

    deps_cmd = sub.add_parser("deps", help="Install dependencies of the current directory")
    deps_cmd.set_defaults(func=_deps_cmd)

    uninstall_cmd = sub.add_parser("uninstall", help="Remove installed bundles by name")
    uninstall_cmd.add_argument("names", nargs="+")
    uninstall_cmd.set_defaults(func=_uninstall_cmd)

    list_installed_cmd = sub.add_parser("list-installed", help="List installed bundles")
    list_installed_cmd.add_argument("--json", action="store_true", help="Emit manifests as JSON")
    list_installed_cmd.set_defaults(func=_list_installed_cmd)

    show_manifest_cmd = sub.add_parser("show-manifest", help="Print the manifest of an installed bundle")
    show_manifest_cmd.add_argument("name")
    show_manifest_cmd.set_defaults(func=_show_manifest_cmd)

    list_pkgs_cmd = sub.add_parser("list-pkgs", help="List short names in the package index")
    list_pkgs_cmd.add_argument("--json", action="store_true", help="Emit the index as JSON")
    list_pkgs_cmd.set_defaults(func=_list_pkgs_cmd)

    update_pkgs_cmd = sub.add_parser("update-pkgs", help="Install or refresh the package index")
    update_pkgs_cmd.set_defaults(func=_update_pkgs_cmd)

    show_paths_cmd = sub.add_parser("show-paths", help="Print configured directories")
    show_paths_cmd.add_argument("--json", action="store_true")
    show_paths_cmd.set_defaults(func=_show_paths_cmd)

    clear_cache_cmd = sub.add_parser("clear-cache", help="Delete the bundle cache")
    clear_cache_cmd.set_defaults(func=_clear_cache_cmd)

    clear_manifest_cmd = sub.add_parser("clear-manifest", help="Forget installed manifests, keeping files")
    clear_manifest_cmd.set_defaults(func=_clear_manifest_cmd)

    make_lockfile_cmd = sub.add_parser("make-lockfile", help="Pin installed bundles in a lockfile")
    make_lockfile_cmd.add_argument("file", nargs="?", default=DEFAULT_LOCKFILE)
    make_lockfile_cmd.set_defaults(func=_make_lockfile_cmd)

    load_lockfile_cmd = sub.add_parser("load-lockfile", help="Install every bundle pinned in a lockfile")
    load_lockfile_cmd.add_argument("file", nargs="?", default=DEFAULT_LOCKFILE)
    load_lockfile_cmd.set_defaults(func=_load_lockfile_cmd)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
