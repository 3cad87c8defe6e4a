"""Git-backed VCS transport."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Sequence

from bundlekit.domain.errors import RefNotFound, TransportError
from bundlekit.ports.transport import VcsTransport

logger = logging.getLogger(__name__)


class GitTransport(VcsTransport):
    def __init__(self, executable: str = "git") -> None:
        self._git = executable

    def is_working_tree(self, directory: Path) -> bool:
        return (directory / ".git").exists()

    def clone(self, url: str, directory: Path) -> None:
        directory.parent.mkdir(parents=True, exist_ok=True)
        self._run(["clone", url, str(directory)], error=f"Failed to clone {url}")

    def sync(self, directory: Path, ref: str) -> bool:
        """Fetch branches and tags, then fast-forward the checkout to ``ref``.

        Tags published after the clone become local refs here, so the reset
        that follows can resolve them even when the fast-forward fails.
        """
        result = self._git_in(directory, ["fetch", "--tags", "--force", "origin"], check=False)
        if result.returncode != 0:
            return self._sync_failed(directory, ref, result)
        if self._resolve(directory, ref) is None:
            # Commit ids are not covered by the default refspec.
            result = self._git_in(directory, ["fetch", "origin", ref], check=False)
            if result.returncode != 0:
                return self._sync_failed(directory, ref, result)
        commit = self._resolve(directory, ref)
        if commit is None:
            logger.warning("%s does not name a commit in %s after fetching", ref, directory)
            return False
        result = self._git_in(directory, ["merge", "--ff-only", "--quiet", commit], check=False)
        if result.returncode != 0:
            return self._sync_failed(directory, ref, result)
        return True

    def reset(self, directory: Path, ref: str) -> None:
        commit = self._resolve(directory, ref)
        if commit is None:
            raise RefNotFound(f"ref {ref!r} not found in {directory}")
        self._git_in(directory, ["reset", "--hard", commit], error=f"Failed to reset {directory} to {ref}")

    def update_submodules(self, directory: Path) -> None:
        self._git_in(
            directory,
            ["submodule", "update", "--init", "--recursive"],
            error=f"Failed to update submodules in {directory}",
        )

    def revision(self, directory: Path) -> str:
        result = self._git_in(directory, ["rev-parse", "HEAD"], error=f"Failed to read HEAD of {directory}")
        return result.stdout.strip()

    def _resolve(self, directory: Path, ref: str) -> str | None:
        # Remote-tracking branches first so branch pins follow the last sync.
        for candidate in (f"origin/{ref}", ref):
            result = self._git_in(
                directory,
                ["rev-parse", "--verify", "--quiet", f"{candidate}^{{commit}}"],
                check=False,
            )
            if result.returncode == 0:
                return result.stdout.strip()
        return None

    def _sync_failed(self, directory: Path, ref: str, result: subprocess.CompletedProcess[str]) -> bool:
        logger.warning(
            "fast-forward of %s to %s failed, falling back to hard reset: %s",
            directory,
            ref,
            _output(result) or f"exit code {result.returncode}",
        )
        return False

    def _git_in(
        self,
        directory: Path,
        args: Sequence[str],
        *,
        check: bool = True,
        error: str = "git command failed",
    ) -> subprocess.CompletedProcess[str]:
        return self._run(["-C", str(directory), *args], check=check, error=error)

    def _run(
        self,
        args: Sequence[str],
        *,
        check: bool = True,
        error: str = "git command failed",
    ) -> subprocess.CompletedProcess[str]:
        command = [self._git, *args]
        logger.debug("running %s", " ".join(command))
        try:
            result = subprocess.run(command, capture_output=True, text=True)
        except FileNotFoundError as exc:
            raise TransportError(f"{error}: git executable {self._git!r} not found") from exc
        if check and result.returncode != 0:
            raise TransportError(f"{error}: {_output(result)}")
        return result


def _output(result: subprocess.CompletedProcess[str]) -> str:
    return (result.stderr or "").strip() or (result.stdout or "").strip()


__all__ = ["GitTransport"]
