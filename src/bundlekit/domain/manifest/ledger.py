"""Process-wide accumulator of paths placed on disk by install rules."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List


class PathLedger:
    """Append-only path lists, one per bundle currently being installed.

    Installs nest (a bundle's ``install-deps`` phase installs its
    dependencies), so the ledger keeps a stack of scopes and records into the
    innermost one.
    """

    def __init__(self) -> None:
        self._scopes: List[List[str]] = [[]]

    @contextmanager
    def scope(self) -> Iterator[List[str]]:
        paths: List[str] = []
        self._scopes.append(paths)
        try:
            yield paths
        finally:
            self._scopes.pop()

    def record(self, path: Path | str) -> None:
        self._scopes[-1].append(str(path))

    def current(self) -> List[str]:
        return list(self._scopes[-1])

    @property
    def depth(self) -> int:
        return len(self._scopes) - 1


__all__ = ["PathLedger"]
