import shutil
import subprocess
from pathlib import Path
from types import SimpleNamespace

import pytest


def _git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=repo, check=True, capture_output=True, text=True
    )
    return result.stdout.strip()


@pytest.fixture
def git_repo(tmp_path):
    """Repository with three commits: create, modify + rename, delete"""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "-q")
    _git(repo, "config", "user.name", "Test User")
    _git(repo, "config", "user.email", "test@example.com")
    _git(repo, "config", "commit.gpgsign", "false")
    _git(repo, "config", "core.autocrlf", "false")

    (repo / "hello.txt").write_text("hello\nworld\n", encoding="utf-8")
    (repo / "a.py").write_text("x = 1\ny = 2\nz = 3\n", encoding="utf-8")
    _git(repo, "add", ".")
    _git(repo, "commit", "-q", "-m", "first")
    first = _git(repo, "rev-parse", "HEAD")

    (repo / "hello.txt").write_text("hello\nthere\nworld\n", encoding="utf-8")
    _git(repo, "mv", "a.py", "b.py")
    _git(repo, "commit", "-q", "-am", "second")
    second = _git(repo, "rev-parse", "HEAD")

    _git(repo, "rm", "-q", "hello.txt")
    _git(repo, "commit", "-q", "-m", "third")
    third = _git(repo, "rev-parse", "HEAD")

    return SimpleNamespace(path=repo, first=first, second=second, third=third)
