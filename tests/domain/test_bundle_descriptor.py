from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from bundlekit.domain.bundle import (
    DEFAULT_TAG,
    BundleDescriptor,
    BundleType,
    cache_id,
    dependency_repo,
    is_short_name,
    parse_descriptor,
)
from bundlekit.domain.errors import MalformedDescriptor


def test_three_part_string() -> None:
    descriptor = parse_descriptor("git::https://example.com/a.git::v1.0")
    assert descriptor == BundleDescriptor(repo="https://example.com/a.git", tag="v1.0", type=BundleType.VCS)


def test_two_part_string_uses_default_tag() -> None:
    descriptor = parse_descriptor("tar::https://example.com/a.tar.gz")
    assert descriptor.type is BundleType.ARCHIVE
    assert descriptor.tag == DEFAULT_TAG


def test_bare_repo_defaults() -> None:
    descriptor = parse_descriptor("https://example.com/a.git")
    assert descriptor.type is BundleType.VCS
    assert descriptor.tag == DEFAULT_TAG


def test_record_is_normalized() -> None:
    descriptor = parse_descriptor({"repo": "https://example.com/a.git", "tag": "v2"})
    assert descriptor.to_dict() == {"repo": "https://example.com/a.git", "tag": "v2", "type": "git"}


@pytest.mark.parametrize(
    "raw",
    [
        "git::a::b::c",
        "git::::v1",
        "",
        "svn::https://example.com/a::v1",
        {"tag": "v1"},
        42,
    ],
)
def test_malformed_references(raw: object) -> None:
    with pytest.raises(MalformedDescriptor):
        parse_descriptor(raw)  # type: ignore[arg-type]


def test_malformed_message_names_input() -> None:
    with pytest.raises(MalformedDescriptor, match="a::b::c::d"):
        parse_descriptor("a::b::c::d")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("json", True),
        ("spork-utils", True),
        ("https://example.com/a.git", False),
        ("./local", False),
        ("~/src/thing", False),
        ("git::x", False),
    ],
)
def test_short_names(raw: str, expected: bool) -> None:
    assert is_short_name(raw) is expected


def test_dependency_repo_accepts_records_and_strings() -> None:
    assert dependency_repo({"repo": "r1", "tag": "x"}) == "r1"
    assert dependency_repo("git::r2::v1") == "r2"


def test_cache_id_ignores_tag_and_type() -> None:
    a = BundleDescriptor(repo="https://example.com/a.git", tag="v1")
    b = BundleDescriptor(repo="https://example.com/a.git", tag="v2", type=BundleType.ARCHIVE)
    assert a.cache_id() == b.cache_id()
    assert "/" not in a.cache_id()


_repo = st.text(
    alphabet=st.characters(blacklist_characters=":", blacklist_categories=("Cs", "Cc", "Z")),
    min_size=1,
    max_size=40,
)
_tag = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789.-_", min_size=1, max_size=12)


@settings(max_examples=50)
@given(repo=_repo, tag=_tag, bundle_type=st.sampled_from(list(BundleType)))
def test_three_part_reference_round_trips(repo: str, tag: str, bundle_type: BundleType) -> None:
    descriptor = BundleDescriptor(repo=repo, tag=tag, type=bundle_type)
    assert parse_descriptor(descriptor.to_ref(3)) == descriptor


@settings(max_examples=50)
@given(first=_repo, second=_repo)
def test_cache_id_is_deterministic_and_distinct(first: str, second: str) -> None:
    assert cache_id(first) == cache_id(first)
    if first != second:
        assert cache_id(first) != cache_id(second)
    for part in ("/", "\\", ":"):
        assert part not in cache_id(first)


@settings(max_examples=50)
@given(repo=_repo)
def test_one_part_reference_round_trips(repo: str) -> None:
    descriptor = BundleDescriptor(repo=repo)
    ref = descriptor.to_ref(1)
    assert parse_descriptor(ref).to_ref(1) == ref
    assert parse_descriptor(ref) == descriptor


@settings(max_examples=50)
@given(repo=_repo, bundle_type=st.sampled_from(list(BundleType)))
def test_two_part_reference_round_trips(repo: str, bundle_type: BundleType) -> None:
    descriptor = BundleDescriptor(repo=repo, type=bundle_type)
    ref = descriptor.to_ref(2)
    assert parse_descriptor(ref).to_ref(2) == ref
    assert parse_descriptor(ref) == descriptor


def test_same_bundle_compares_repo_only() -> None:
    pinned = BundleDescriptor(repo="https://example.com/a.git", tag="v1")
    assert pinned.same_bundle(BundleDescriptor(repo="https://example.com/a.git", tag="v2"))
    assert not pinned.same_bundle(BundleDescriptor(repo="https://example.com/b.git", tag="v1"))
