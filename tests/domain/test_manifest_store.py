from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from bundlekit.domain.errors import ManifestNotFound
from bundlekit.domain.manifest import InstalledManifest, ManifestStore, PathLedger


def test_remove_deletes_paths_and_manifest(tmp_path: Path) -> None:
    store = ManifestStore(tmp_path / "manifests")
    module = tmp_path / "modules" / "foo"
    module.mkdir(parents=True)
    (module / "init.txt").write_text("x", encoding="utf-8")
    tool = tmp_path / "bin" / "foo"
    tool.parent.mkdir()
    tool.write_text("#!/bin/sh\n", encoding="utf-8")
    store.write(InstalledManifest(name="foo", paths=[str(module), str(tool)]))

    records = store.remove("foo")

    assert [record.status for record in records] == ["removed", "removed"]
    assert not module.exists()
    assert not tool.exists()
    assert not store.exists("foo")


def test_remove_reports_missing_paths(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    store = ManifestStore(tmp_path / "manifests")
    gone = tmp_path / "gone.txt"
    store.write(InstalledManifest(name="foo", paths=[str(gone)]))

    with caplog.at_level(logging.WARNING):
        records = store.remove("foo")

    assert records[0].status == "missing"
    assert "already gone" in caplog.text
    assert not store.exists("foo")


def test_remove_unknown_bundle(tmp_path: Path) -> None:
    store = ManifestStore(tmp_path / "manifests")
    with pytest.raises(ManifestNotFound):
        store.remove("nothing")


def test_list_skips_malformed(tmp_path: Path) -> None:
    store = ManifestStore(tmp_path / "manifests")
    store.write(InstalledManifest(name="good", repo="r", sha="s", type="git"))
    (tmp_path / "manifests" / "bad.json").write_text("{", encoding="utf-8")
    (tmp_path / "manifests" / "worse.json").write_text(json.dumps({"paths": []}), encoding="utf-8")

    assert [manifest.name for manifest in store.list()] == ["good"]


def test_manifest_round_trip(tmp_path: Path) -> None:
    store = ManifestStore(tmp_path / "manifests")
    manifest = InstalledManifest(
        name="foo",
        paths=["/x/y"],
        repo="https://example.com/foo.git",
        sha="abc",
        type="git",
        version="1.0",
        dependencies=[{"repo": "https://example.com/dep.git", "tag": "main", "type": "git"}],
    )
    store.write(manifest)
    assert store.find("foo") == manifest
    assert store.find("foo").dependency_repos() == ["https://example.com/dep.git"]


def test_local_manifest_is_not_pinned(tmp_path: Path) -> None:
    manifest = InstalledManifest(name="local")
    assert not manifest.pinned
    assert "repo" not in manifest.to_dict()


def test_clear_keeps_installed_files(tmp_path: Path) -> None:
    store = ManifestStore(tmp_path / "manifests")
    kept = tmp_path / "kept.txt"
    kept.write_text("x", encoding="utf-8")
    store.write(InstalledManifest(name="a", paths=[str(kept)]))
    store.write(InstalledManifest(name="b"))

    assert store.clear() == 2
    assert store.list() == []
    assert kept.exists()


def test_invalid_names_are_rejected(tmp_path: Path) -> None:
    store = ManifestStore(tmp_path / "manifests")
    with pytest.raises(ValueError):
        store.path_for("../escape")
    assert not store.exists("../escape")


def test_ledger_scopes_nest() -> None:
    ledger = PathLedger()
    ledger.record("/outer")
    with ledger.scope():
        ledger.record("/a")
        with ledger.scope():
            ledger.record("/b")
            assert ledger.current() == ["/b"]
            assert ledger.depth == 2
        assert ledger.current() == ["/a"]
    assert ledger.current() == ["/outer"]
    assert ledger.depth == 0
