"""Watch mode: accumulate continuous work time and commit automatically.

The monitor polls the repository at a fixed interval. Every tick that sees
pending changes extends the current work window; any tick without changes
clears it. Once the window has lasted ``max_work_duration`` the monitor runs
one commit cycle (plan, branch, apply, push) and starts over from an empty
window, whether the cycle succeeded or not.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from rich.console import Console
from rich.markup import escape

from gitdiffy.applicator import CommitApplicator
from gitdiffy.config import Config
from gitdiffy.errors import GitdiffyError, NoChangesError, VcsOperationError
from gitdiffy.models import (
    AppliedResult,
    ApplyMode,
    BranchTarget,
    CommitPlan,
    compute_branch_target,
)
from gitdiffy.planner import CommitPlanner
from gitdiffy.utils import console as default_console
from gitdiffy.vcs import VcsAdapter

__all__ = ["CycleResult", "MonitorState", "WorkMonitor", "WorkWindow", "format_duration"]

logger = logging.getLogger(__name__)

FALLBACK_BRANCH = "main"
WAITING_MESSAGE = "Waiting for enough changes..."


class MonitorState(Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    TRIGGERING = "triggering"


@dataclass
class WorkWindow:
    """Start of the current uninterrupted run of observed changes."""

    first_change: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.first_change is not None

    def open(self, now: datetime) -> None:
        if self.first_change is None:
            self.first_change = now

    def reset(self) -> None:
        self.first_change = None

    def elapsed(self, now: datetime) -> timedelta:
        if self.first_change is None:
            return timedelta(0)
        return now - self.first_change


@dataclass
class CycleResult:
    """What one auto commit cycle did. ``error`` is set when it aborted."""

    plan: Optional[CommitPlan] = None
    branch: Optional[BranchTarget] = None
    applied: Optional[AppliedResult] = None
    pushed: bool = False
    error: Optional[GitdiffyError] = None


def format_duration(value: timedelta) -> str:
    """Format a duration truncated to whole seconds, e.g. ``9m59s``."""
    total = max(int(value.total_seconds()), 0)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


class WorkMonitor:
    """Polling state machine that triggers automatic commit cycles.

    Everything runs on the caller's thread: while a cycle is in progress no
    polling happens. :meth:`stop` may be called from another thread or a
    signal handler; it is honoured between ticks and between cycle phases.
    """

    def __init__(self, config: Config, vcs: VcsAdapter, planner: CommitPlanner,
                 applicator: CommitApplicator, console: Console = default_console,
                 clock: Callable[[], datetime] = datetime.now,
                 sleep: Optional[Callable[[float], object]] = None) -> None:
        """Initialize the monitor.

        Args:
            config: Threshold, branch prefix, push remote and poll interval.
            vcs: Repository being watched.
            planner: Builds the commit plan for a cycle.
            applicator: Applies the plan without asking for confirmation.
            console: Console for status output.
            clock: Returns the current time; injectable for tests.
            sleep: Waits between ticks; defaults to an interruptible wait.
        """
        self.config = config
        self.vcs = vcs
        self.planner = planner
        self.applicator = applicator
        self.console = console
        self.clock = clock
        self.window = WorkWindow()
        self.state = MonitorState.IDLE
        self.last_cycle: Optional[CycleResult] = None
        self._stop_event = threading.Event()
        self.sleep = sleep or self._stop_event.wait

    @property
    def threshold(self) -> timedelta:
        return self.config.max_work_duration

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def remaining(self, now: datetime) -> timedelta:
        return max(self.threshold - self.window.elapsed(now), timedelta(0))

    def tick(self, now: Optional[datetime] = None) -> MonitorState:
        """Run one poll: check for changes and trigger a cycle if due.

        Returns:
            MonitorState: The state this tick evaluated to. A tick that ran a
            cycle returns TRIGGERING; ``self.state`` is IDLE again afterwards.
        """
        now = now or self.clock()

        if not self.vcs.has_pending_changes():
            self.window.reset()
            self.state = MonitorState.IDLE
            return self.state

        self.window.open(now)
        if self.window.elapsed(now) < self.threshold:
            self.state = MonitorState.ACCUMULATING
            return self.state

        self.state = MonitorState.TRIGGERING
        logger.info("Work window of %s reached, triggering commit cycle",
                    format_duration(self.window.elapsed(now)))
        try:
            self.last_cycle = self.run_cycle()
        finally:
            # No retry after a failed cycle: accumulation restarts from zero.
            self.window.reset()
            self.state = MonitorState.IDLE
        return MonitorState.TRIGGERING

    def run_cycle(self) -> CycleResult:
        """Plan, pick a branch, apply every proposal and push.

        Planner and VCS failures abort this cycle only; they are reported and
        returned in the result instead of being raised. The branch is pushed
        when at least one proposal committed, even if others failed.
        """
        result = CycleResult()
        self.console.print("⏱ Triggering commit after work duration exceeded...")

        try:
            result.plan = self.planner.plan()
        except NoChangesError as exc:
            logger.info("Nothing to commit: %s", exc)
            self.console.print(f"ℹ️ {escape(str(exc))}")
            result.error = exc
            return result
        except GitdiffyError as exc:
            self._report(exc)
            result.error = exc
            return result

        if not result.plan:
            self.console.print("ℹ️ No commits were proposed for the current changes.")
            return result

        if self.stopped:
            logger.info("Stop requested, abandoning commit plan")
            return result

        try:
            result.branch = self._resolve_branch()
        except VcsOperationError as exc:
            self._report(exc)
            result.error = exc
            return result

        result.applied = self.applicator.apply(result.plan, ApplyMode.AUTOMATIC)

        if result.applied.committed == 0:
            self.console.print("[yellow]No commits were created; skipping push.[/yellow]")
            return result

        try:
            self.vcs.push(self.config.push_remote, result.branch.name)
        except VcsOperationError as exc:
            self._report(exc)
            result.error = exc
            return result

        result.pushed = True
        self.console.print(
            f"[green]✅ Commit and push complete to branch: {escape(result.branch.name)}[/green]"
        )
        return result

    def _resolve_branch(self) -> BranchTarget:
        try:
            current = self.vcs.current_branch_name()
        except VcsOperationError as exc:
            logger.warning("Failed to get current branch, assuming %s: %s", FALLBACK_BRANCH, exc)
            self.console.print(f"[red]❌ failed to get current branch: {escape(str(exc))}[/red]")
            current = FALLBACK_BRANCH

        target = compute_branch_target(current, self.config.branch_prefix, self.clock())
        if target.is_new:
            logger.info("Creating branch %s", target.name)
            self.vcs.create_and_switch_branch(target.name)
        return target

    def _report(self, exc: GitdiffyError) -> None:
        logger.warning("Commit cycle aborted: %s", exc)
        self.console.print(f"[red]❌ {escape(str(exc))}[/red]")

    def run(self, max_ticks: Optional[int] = None) -> None:
        """Poll until :meth:`stop` is called or ``max_ticks`` ticks have run."""
        self.console.print(
            f"🔁 Monitoring repo. Commit will be triggered after "
            f"{format_duration(self.threshold)} of continuous work."
        )
        status = self.console.status(WAITING_MESSAGE, spinner="dots")
        status.start()
        ticks = 0
        try:
            while not self.stopped and (max_ticks is None or ticks < max_ticks):
                self.sleep(self.config.poll_interval)
                if self.stopped:
                    break
                ticks += 1

                now = self.clock()
                if self._trigger_due(now):
                    # The cycle prints and spins on its own.
                    status.stop()
                    try:
                        self.tick(now)
                    finally:
                        status.start()
                else:
                    self.tick(now)

                if self.window.is_open:
                    status.update(f"⏳ Next auto commit in {format_duration(self.remaining(now))}...")
                else:
                    status.update(WAITING_MESSAGE)
        finally:
            status.stop()

    def _trigger_due(self, now: datetime) -> bool:
        # rich allows one live display at a time; the planner spins its own.
        if self.threshold <= timedelta(0):
            return True
        return self.window.is_open and self.window.elapsed(now) >= self.threshold
