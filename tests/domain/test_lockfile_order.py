from __future__ import annotations

import json

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from bundlekit.domain.bundle import BundleType
from bundlekit.domain.errors import LockfileError, UnresolvableOrder
from bundlekit.domain.lockfile import LockEntry, LockPackage, dumps, loads, order_packages


def test_dependency_comes_first() -> None:
    packages = [
        LockPackage(repo="B", sha="s2", dependencies=("A",)),
        LockPackage(repo="A", sha="s1"),
    ]
    assert [entry.repo for entry in order_packages(packages)] == ["A", "B"]


def test_ties_are_lexicographic() -> None:
    packages = [LockPackage(repo=name, sha="x") for name in ("c", "a", "b")]
    assert [entry.repo for entry in order_packages(packages)] == ["a", "b", "c"]


def test_cycle_reports_unresolved_repos() -> None:
    packages = [
        LockPackage(repo="A", sha="1", dependencies=("B",)),
        LockPackage(repo="B", sha="2", dependencies=("A",)),
        LockPackage(repo="C", sha="3"),
    ]
    with pytest.raises(UnresolvableOrder) as excinfo:
        order_packages(packages)
    assert excinfo.value.unresolved == ["A", "B"]


def test_missing_dependency_is_unresolvable() -> None:
    with pytest.raises(UnresolvableOrder):
        order_packages([LockPackage(repo="A", sha="1", dependencies=("ghost",))])


def test_empty_store_gives_empty_lockfile() -> None:
    assert order_packages([]) == []
    assert loads(dumps([])) == []


def test_dumps_one_record_per_line() -> None:
    entries = [
        LockEntry(repo="A", sha="1"),
        LockEntry(repo="B", sha="2", type=BundleType.ARCHIVE),
    ]
    text = dumps(entries)
    lines = text.splitlines()
    assert lines[0] == "["
    assert lines[-1] == "]"
    assert lines[1].endswith(",")
    assert not lines[2].endswith(",")
    assert json.loads(lines[1].rstrip(",")) == {"repo": "A", "sha": "1"}
    assert json.loads(lines[2]) == {"repo": "B", "sha": "2", "type": "tar"}
    assert loads(text) == entries


@pytest.mark.parametrize("text", ["not json", '{"repo": "A"}', '[{"repo": "A"}]', '[{"repo": "A", "sha": "1", "tag": "x"}]'])
def test_loads_rejects_bad_documents(text: str) -> None:
    with pytest.raises(LockfileError):
        loads(text)


def test_lock_entry_descriptor_pins_sha() -> None:
    descriptor = LockEntry(repo="A", sha="abc123").to_descriptor()
    assert descriptor.tag == "abc123"
    assert descriptor.type is BundleType.VCS


@st.composite
def acyclic_packages(draw: st.DrawFn) -> list[LockPackage]:
    count = draw(st.integers(min_value=1, max_value=8))
    names = [f"repo{index}" for index in range(count)]
    packages = []
    for index, name in enumerate(names):
        deps = draw(st.lists(st.sampled_from(names[:index]), unique=True)) if index else []
        packages.append(LockPackage(repo=name, sha=f"sha{index}", dependencies=tuple(deps)))
    return draw(st.permutations(packages))


@settings(max_examples=50)
@given(packages=acyclic_packages())
def test_every_package_follows_its_dependencies(packages: list[LockPackage]) -> None:
    ordered = [entry.repo for entry in order_packages(packages)]
    assert sorted(ordered) == sorted(package.repo for package in packages)
    position = {repo: index for index, repo in enumerate(ordered)}
    for package in packages:
        for dependency in package.dependencies:
            assert position[dependency] < position[package.repo]
