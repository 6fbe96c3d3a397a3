"""Turns the working tree's pending changes into a commit plan.

The planner stages everything to obtain a single diff, asks the generation
service for proposals and unstages everything again before returning, so the
applicator always starts from a clean index.
"""

import logging
from typing import Callable, List, Optional

from rich.console import Console

from gitdiffy.api import GenerationClient
from gitdiffy.errors import NoChangesError, VcsOperationError
from gitdiffy.models import CommitPlan, StatusEntry, as_plan
from gitdiffy.utils import console as default_console
from gitdiffy.vcs import VcsAdapter

__all__ = ["CommitPlanner", "print_staged_files"]

logger = logging.getLogger(__name__)


def print_staged_files(entries: List[StatusEntry], console: Console = default_console) -> None:
    if not entries:
        return
    console.print("🗂 Files staged for commit:")
    for entry in entries:
        console.print(f"  {entry.icon} {entry.path}", markup=False, highlight=False)


class CommitPlanner:
    """Produces a CommitPlan from the current working tree."""

    def __init__(self, vcs: VcsAdapter, client: GenerationClient,
                 console: Console = default_console,
                 on_staged: Optional[Callable[[List[StatusEntry]], None]] = None) -> None:
        """Initialize the planner.

        Args:
            vcs: Repository the plan is computed for.
            client: Message generation service client.
            console: Console used for the progress spinner.
            on_staged: Called with the staged status entries once everything
                has been staged, before the diff is sent.
        """
        self.vcs = vcs
        self.client = client
        self.console = console
        self.on_staged = on_staged

    def plan(self) -> CommitPlan:
        """Stage, diff, generate proposals, unstage.

        The index is unstaged again on every exit path, including failures.

        Returns:
            CommitPlan: Proposals in the order the service returned them,
            possibly empty.

        Raises:
            NoChangesError: If nothing is staged after staging everything.
            TransportError: If the generation service cannot be reached.
            GenerationError: If the generation service reports an error.
            VcsOperationError: If staging, diffing or unstaging fails.
        """
        try:
            self.vcs.stage_all()
            if self.on_staged is not None:
                self.on_staged(self.vcs.status_entries())

            diff = self.vcs.staged_diff()
            if not diff.strip():
                raise NoChangesError()

            logger.info("Requesting commit proposals for %d lines of diff", len(diff.splitlines()))
            with self.console.status("Generating commit messages...", spinner="dots"):
                proposals = self.client.generate(diff)
        except BaseException:
            self._unstage_quietly()
            raise

        self.vcs.unstage_all()
        return as_plan(proposals)

    def _unstage_quietly(self) -> None:
        # Keeps the original failure as the one reported to the caller.
        try:
            self.vcs.unstage_all()
        except VcsOperationError as exc:
            logger.error("Failed to unstage changes after an aborted plan: %s", exc)
