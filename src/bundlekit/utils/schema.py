"""Schema helpers for bundlekit documents (build descriptions, manifests, lockfiles)."""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from typing import Any, Iterator, Tuple

from jsonschema import Draft202012Validator

_SCHEMA_PACKAGE = "bundlekit.resources"


@lru_cache(maxsize=None)
def _load_schema(resource_name: str) -> dict[str, Any]:
    resource = resources.files(_SCHEMA_PACKAGE) / resource_name
    with resource.open("r", encoding="utf-8") as handle:
        return json.load(handle)


@lru_cache(maxsize=None)
def _validator(resource_name: str) -> Draft202012Validator:
    return Draft202012Validator(_load_schema(resource_name))


def iter_schema_errors(resource_name: str, document: Any) -> Iterator[Tuple[str, str]]:
    """Yield (path, message) pairs for schema issues in the document."""
    validator = _validator(resource_name)
    for error in validator.iter_errors(document):
        path = ".".join(str(item) for item in error.absolute_path)
        yield path, error.message


def schema_errors(resource_name: str, document: Any) -> list[str]:
    return [f"{path or '<root>'}: {message}" for path, message in iter_schema_errors(resource_name, document)]


__all__ = ["iter_schema_errors", "schema_errors"]
