import io
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
from unittest.mock import MagicMock

import git
import pytest
from rich.console import Console

from gitdiffy.api import GenerationClient
from gitdiffy.config import Config
from gitdiffy.errors import VcsOperationError
from gitdiffy.models import StatusEntry
from gitdiffy.vcs import VcsAdapter

MUTATING_OPERATIONS = {
    "stage_all",
    "unstage_all",
    "stage",
    "commit",
    "create_and_switch_branch",
    "push",
}


class FakeVcs(VcsAdapter):
    """In-memory repository: a set of changed paths, an index and a commit log."""

    def __init__(self, changes: Sequence[str] = (), branch: str = "main") -> None:
        self.changes: List[str] = list(changes)
        self.staged: List[str] = []
        self.branch = branch
        self.branches: List[str] = [branch]
        self.commits: List[Tuple[str, Tuple[str, ...]]] = []
        self.pushes: List[Tuple[str, str]] = []
        self.calls: List[str] = []
        self.failures: Dict[str, VcsOperationError] = {}
        self.failing_commit_messages: set = set()

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    @property
    def mutations(self) -> List[str]:
        return [name for name in self.calls if name in MUTATING_OPERATIONS]

    def has_pending_changes(self) -> bool:
        self.calls.append("has_pending_changes")
        return bool(self.changes or self.staged)

    def status_entries(self) -> List[StatusEntry]:
        self._call("status_entries")
        return [StatusEntry(code="M", path=path) for path in self.changes]

    def stage_all(self) -> None:
        self._call("stage_all")
        self.staged = list(self.changes)

    def staged_diff(self) -> str:
        self._call("staged_diff")
        return "".join(
            f"diff --git a/{path} b/{path}\n--- a/{path}\n+++ b/{path}\n@@ -1 +1 @@\n-old\n+new\n"
            for path in self.staged
        )

    def unstage_all(self) -> None:
        self._call("unstage_all")
        self.staged = []

    def stage(self, files: Sequence[str]) -> None:
        self._call("stage")
        missing = [path for path in files if path not in self.changes]
        if missing:
            raise VcsOperationError(f"pathspec did not match: {', '.join(missing)}")
        self.staged = list(files)

    def commit(self, message: str) -> None:
        self._call("commit")
        if message in self.failing_commit_messages:
            raise VcsOperationError(f"commit rejected: {message}")
        if not self.staged:
            raise VcsOperationError("nothing to commit")
        self.commits.append((message, tuple(self.staged)))
        self.changes = [path for path in self.changes if path not in self.staged]
        self.staged = []

    def current_branch_name(self) -> str:
        self._call("current_branch_name")
        return self.branch

    def create_and_switch_branch(self, name: str) -> None:
        self._call("create_and_switch_branch")
        if name in self.branches:
            raise VcsOperationError(f"branch {name} already exists")
        self.branches.append(name)
        self.branch = name

    def push(self, remote: str, branch: str) -> None:
        self._call("push")
        self.pushes.append((remote, branch))


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def quiet_console() -> Console:
    """Console that writes to memory instead of the terminal."""
    return Console(file=io.StringIO(), force_terminal=False, width=120)


@pytest.fixture
def config() -> Config:
    return Config(license="test-license", max_work_duration=timedelta(minutes=10))


@pytest.fixture
def fake_vcs() -> FakeVcs:
    return FakeVcs(changes=["a.go", "b.go", "README.md"])


@pytest.fixture
def fake_client() -> MagicMock:
    client = MagicMock(spec=GenerationClient)
    client.generate.return_value = []
    return client


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def temp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary Git repository with one initial commit."""
    repo_dir = tmp_path / "git_repo"
    repo_dir.mkdir()
    repo = git.Repo.init(repo_dir)

    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")
        writer.set_value("commit", "gpgsign", "false")

    (repo_dir / "main.py").write_text("def main():\n    return 0\n")
    (repo_dir / "README.md").write_text("# Test repository\n")
    repo.index.add(["main.py", "README.md"])
    repo.index.commit("Initial commit")
    return repo_dir


@pytest.fixture
def git_repo(temp_git_repo: Path) -> git.Repo:
    return git.Repo(temp_git_repo)
