"""Git integration for gitdiffy.

Every repository mutation goes through a :class:`VcsAdapter` so the planner,
the applicator and the watch monitor can be exercised against an in-memory
fake. :class:`GitAdapter` is the real implementation, shelling out to the
``git`` binary with an explicit timeout on every call.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence, Union

from gitdiffy.errors import VcsOperationError
from gitdiffy.models import StatusEntry, parse_porcelain_status
from gitdiffy.utils import SubprocessHandler

__all__ = ["VcsAdapter", "GitAdapter"]

logger = logging.getLogger(__name__)


class VcsAdapter(ABC):
    """Atomic version-control operations used by gitdiffy.

    Every method except :meth:`has_pending_changes` raises
    :class:`VcsOperationError` on failure.
    """

    @abstractmethod
    def has_pending_changes(self) -> bool:
        """Return True if the working tree or index has uncommitted changes."""

    @abstractmethod
    def status_entries(self) -> List[StatusEntry]:
        """Return the short status of the working tree."""

    @abstractmethod
    def stage_all(self) -> None:
        """Stage every working-tree change, including untracked files."""

    @abstractmethod
    def staged_diff(self) -> str:
        """Return the unified diff of the index against HEAD."""

    @abstractmethod
    def unstage_all(self) -> None:
        """Remove every change from the index, leaving the working tree alone."""

    @abstractmethod
    def stage(self, files: Sequence[str]) -> None:
        """Stage exactly the given repository-relative paths."""

    @abstractmethod
    def commit(self, message: str) -> None:
        """Commit the index with the given message."""

    @abstractmethod
    def current_branch_name(self) -> str:
        """Return the name of the checked-out branch."""

    @abstractmethod
    def create_and_switch_branch(self, name: str) -> None:
        """Create a branch at HEAD and check it out."""

    @abstractmethod
    def push(self, remote: str, branch: str) -> None:
        """Push the branch to the remote, setting it as upstream."""


class GitAdapter(VcsAdapter):
    """VcsAdapter backed by the git command-line tool."""

    def __init__(self, repo_path: Union[str, Path, None] = None, timeout: float = 30.0,
                 handler: Optional[SubprocessHandler] = None) -> None:
        """Initialize the adapter.

        Args:
            repo_path: Repository to operate on, defaults to the current directory.
            timeout: Seconds to wait for each git command before killing it.
            handler: Subprocess runner, mainly for tests.
        """
        self.repo_path = str(repo_path) if repo_path is not None else None
        self.handler = handler or SubprocessHandler(timeout=timeout)

    def _run_git(self, args: List[str]) -> str:
        """Run a git command and return its stdout.

        Raises:
            VcsOperationError: If git cannot be started, times out or exits non-zero.
        """
        cmd = ["git", *args]
        logger.debug("Running git command: %s", " ".join(cmd))
        try:
            stdout, stderr, code = self.handler.run_command(cmd, cwd=self.repo_path)
        except TimeoutError as exc:
            raise VcsOperationError(str(exc), command=cmd) from exc
        except OSError as exc:
            raise VcsOperationError(f"failed to execute git: {exc}", command=cmd) from exc

        if code != 0:
            logger.debug("git stderr: %s", stderr)
            raise VcsOperationError(f"git command failed: {' '.join(cmd)}",
                                    command=cmd, stderr=stderr)
        return stdout

    def has_pending_changes(self) -> bool:
        try:
            output = self._run_git(["status", "--porcelain"])
        except VcsOperationError as exc:
            # Treated as "no changes" so a flaky status call only resets the work window.
            logger.error("git status error: %s", exc)
            return False
        return bool(output.strip())

    def status_entries(self) -> List[StatusEntry]:
        return parse_porcelain_status(self._run_git(["status", "--porcelain"]))

    def stage_all(self) -> None:
        self._run_git(["add", "."])

    def staged_diff(self) -> str:
        return self._run_git(["diff", "--cached"])

    def unstage_all(self) -> None:
        # `restore --staged` needs HEAD; fall back to emptying the index in a
        # repository without commits.
        try:
            self._run_git(["restore", "--staged", "."])
        except VcsOperationError:
            if self._has_head():
                raise
            self._run_git(["rm", "-r", "--cached", "--quiet", "--ignore-unmatch", "."])

    def _has_head(self) -> bool:
        try:
            self._run_git(["rev-parse", "--verify", "--quiet", "HEAD"])
        except VcsOperationError:
            return False
        return True

    def stage(self, files: Sequence[str]) -> None:
        if not files:
            raise VcsOperationError("no files given to stage")
        # -A so deleted paths are staged as removals.
        self._run_git(["add", "-A", "--", *files])

    def commit(self, message: str) -> None:
        self._run_git(["commit", "-m", message])

    def current_branch_name(self) -> str:
        return self._run_git(["rev-parse", "--abbrev-ref", "HEAD"]).strip()

    def create_and_switch_branch(self, name: str) -> None:
        self._run_git(["checkout", "-b", name])

    def push(self, remote: str, branch: str) -> None:
        self._run_git(["push", "-u", remote, branch])
