from __future__ import annotations

import pytest

from bundlekit.cli import main as cli_main
from bundlekit.domain.bundle import parse_descriptor
from bundlekit.domain.errors import MalformedDescriptor


@pytest.mark.parametrize(
    "raw",
    [
        "git::https://example.com/x.git::v1.0",
        "tar::https://example.com/x.tar.gz",
        "git::https://example.com/x.git",
        "https://example.com/x.git",
    ],
)
def test_documented_reference_forms_parse(raw: str) -> None:
    assert parse_descriptor(raw).repo.startswith("https://example.com/x")


def test_help_does_not_offer_repo_tag_pairs() -> None:
    help_text = cli_main.build_parser().format_help()
    assert "git::URL or a bare URL" in help_text
    assert ", URL::TAG" not in help_text
    with pytest.raises(MalformedDescriptor):
        parse_descriptor("https://example.com/x.git::v1.0")
