from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from bundlekit.adapters.git_transport import GitTransport
from bundlekit.domain.errors import RefNotFound, TransportError

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")

_IDENTITY = ["-c", "user.email=dev@example.com", "-c", "user.name=dev", "-c", "commit.gpgsign=false"]


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(["git", *_IDENTITY, *args], cwd=cwd, capture_output=True, text=True, check=True)
    return result.stdout.strip()


def _commit(repo: Path, name: str, content: str) -> str:
    (repo / name).write_text(content, encoding="utf-8")
    _git(repo, "add", name)
    _git(repo, "commit", "-q", "-m", f"add {name}")
    return _git(repo, "rev-parse", "HEAD")


@pytest.fixture()
def upstream(tmp_path: Path) -> Path:
    repo = tmp_path / "upstream"
    repo.mkdir()
    subprocess.run(["git", "-c", "init.defaultBranch=main", "init", "-q", str(repo)], check=True)
    _commit(repo, "project.yaml", "name: demo\n")
    _git(repo, "tag", "v1.0")
    _commit(repo, "later.txt", "later\n")
    return repo


def test_clone_and_reset_to_tag(tmp_path: Path, upstream: Path) -> None:
    transport = GitTransport()
    work = tmp_path / "cache" / "demo"

    transport.clone(str(upstream), work)
    assert transport.is_working_tree(work)

    transport.reset(work, "v1.0")
    assert transport.revision(work) == _git(upstream, "rev-parse", "v1.0^{commit}")
    assert not (work / "later.txt").exists()


def test_sync_follows_branch(tmp_path: Path, upstream: Path) -> None:
    transport = GitTransport()
    work = tmp_path / "work"
    transport.clone(str(upstream), work)
    head = _commit(upstream, "newest.txt", "new\n")

    assert transport.sync(work, "main") is True
    transport.reset(work, "main")

    assert transport.revision(work) == head
    transport.update_submodules(work)


def test_sync_failure_is_reported_not_raised(tmp_path: Path, upstream: Path) -> None:
    transport = GitTransport()
    work = tmp_path / "work"
    transport.clone(str(upstream), work)
    assert transport.sync(work, "no-such-branch") is False


def test_unknown_ref(tmp_path: Path, upstream: Path) -> None:
    transport = GitTransport()
    work = tmp_path / "work"
    transport.clone(str(upstream), work)
    with pytest.raises(RefNotFound):
        transport.reset(work, "v9.9")


def test_clone_failure(tmp_path: Path) -> None:
    with pytest.raises(TransportError):
        GitTransport().clone(str(tmp_path / "missing"), tmp_path / "work")


def test_missing_executable(tmp_path: Path) -> None:
    with pytest.raises(TransportError, match="not found"):
        GitTransport(executable="definitely-not-git").clone("x", tmp_path / "work")


def test_tag_published_after_clone(tmp_path: Path, upstream: Path) -> None:
    transport = GitTransport()
    work = tmp_path / "work"
    transport.clone(str(upstream), work)
    transport.reset(work, "v1.0")
    _commit(upstream, "release.txt", "2.0\n")
    _git(upstream, "tag", "v2.0")

    assert transport.sync(work, "v2.0") is True
    transport.reset(work, "v2.0")

    assert transport.revision(work) == _git(upstream, "rev-parse", "v2.0^{commit}")
    assert (work / "release.txt").is_file()


def test_tag_on_side_branch_still_resets(tmp_path: Path, upstream: Path) -> None:
    transport = GitTransport()
    work = tmp_path / "work"
    transport.clone(str(upstream), work)
    transport.reset(work, "main")
    _git(upstream, "checkout", "-q", "-b", "maint", "v1.0")
    _commit(upstream, "patch.txt", "1.1\n")
    _git(upstream, "tag", "v1.1")
    _git(upstream, "checkout", "-q", "main")

    assert transport.sync(work, "v1.1") is False
    transport.reset(work, "v1.1")

    assert transport.revision(work) == _git(upstream, "rev-parse", "v1.1^{commit}")
    assert not (work / "later.txt").exists()


def test_commit_id_published_after_clone(tmp_path: Path, upstream: Path) -> None:
    transport = GitTransport()
    work = tmp_path / "work"
    transport.clone(str(upstream), work)
    head = _commit(upstream, "more.txt", "more\n")

    transport.sync(work, head)
    transport.reset(work, head)

    assert transport.revision(work) == head
