"""Applies a commit plan to the repository, one proposal at a time."""

import logging
from typing import Callable, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from gitdiffy.errors import VcsOperationError
from gitdiffy.models import (
    AppliedResult,
    ApplyMode,
    CommitPlan,
    CommitProposal,
    OutcomeStatus,
)
from gitdiffy.utils import console as default_console
from gitdiffy.vcs import VcsAdapter

__all__ = ["CommitApplicator", "prompt_confirmation"]

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[CommitProposal], bool]


def prompt_confirmation(proposal: CommitProposal, console: Console = default_console) -> bool:
    """Ask the user whether to commit a proposal. Only "y"/"yes" accepts."""
    try:
        answer = console.input("✅ Do you want to commit this? (y/N): ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


class CommitApplicator:
    """Applies proposals in order, recording an outcome for each.

    A failure on one proposal never stops the remaining ones, and commits that
    already succeeded are kept.
    """

    def __init__(self, vcs: VcsAdapter, console: Console = default_console,
                 confirm: Optional[ConfirmFn] = None) -> None:
        self.vcs = vcs
        self.console = console
        self.confirm = confirm or (lambda proposal: prompt_confirmation(proposal, self.console))

    def apply(self, plan: CommitPlan, mode: ApplyMode) -> AppliedResult:
        result = AppliedResult()
        for proposal in plan:
            self._display(proposal, mode)

            if mode is ApplyMode.INTERACTIVE and not self.confirm(proposal):
                self.console.print("⏭ Skipping commit.")
                result.record(proposal, OutcomeStatus.SKIPPED)
                continue

            try:
                self.vcs.stage(proposal.files)
                self.vcs.commit(proposal.message)
            except VcsOperationError as exc:
                logger.warning("Commit %r failed: %s", proposal.message, exc)
                self.console.print(f"[red]❌ Failed to commit: {escape(str(exc))}[/red]")
                result.record(proposal, OutcomeStatus.FAILED, cause=str(exc))
                self._clear_index()
                continue

            self.console.print("[green]✅ Commit done.[/green]")
            result.record(proposal, OutcomeStatus.COMMITTED)

        logger.info("Applied plan: %d committed, %d skipped, %d failed",
                    result.committed, result.skipped, result.failed)
        return result

    def _display(self, proposal: CommitProposal, mode: ApplyMode) -> None:
        files = ", ".join(proposal.files)
        if mode is ApplyMode.AUTOMATIC:
            self.console.print(f"📦 {proposal.message} (files: {files})",
                               markup=False, highlight=False)
            return
        self.console.print(Panel(
            Text(f"{proposal.message}\n\n🗂 Affected files: {files}"),
            title="📦 Proposed commit message",
            title_align="left",
            border_style="blue",
        ))

    def _clear_index(self) -> None:
        # Whatever a failed proposal staged must not leak into the next commit.
        try:
            self.vcs.unstage_all()
        except VcsOperationError as exc:
            logger.error("Failed to clear the index after a failed commit: %s", exc)
