"""Data types shared by the planner, the applicator and the watch monitor."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence, Tuple

__all__ = [
    "BRANCH_TIMESTAMP_FORMAT",
    "AppliedResult",
    "ApplyMode",
    "BranchTarget",
    "CommitPlan",
    "CommitProposal",
    "OutcomeStatus",
    "ProposalOutcome",
    "StatusEntry",
    "as_plan",
    "compute_branch_target",
    "parse_porcelain_status",
]

BRANCH_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


@dataclass(frozen=True)
class CommitProposal:
    """A commit message bound to the files it should cover."""

    message: str
    files: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.message, str) or not self.message.strip():
            raise ValueError("commit proposal message must be non-empty")
        files = tuple(self.files)
        if not files or not all(isinstance(path, str) and path for path in files):
            raise ValueError("commit proposal must name at least one file")
        object.__setattr__(self, "files", files)


# Ordered; later proposals may rely on earlier ones being committed.
CommitPlan = Tuple[CommitProposal, ...]


@dataclass(frozen=True)
class BranchTarget:
    name: str
    is_new: bool


def compute_branch_target(current_branch: str, prefix: str,
                          now: Optional[datetime] = None) -> BranchTarget:
    """Decide which branch an auto commit cycle should land on.

    Branches already carrying the prefix are reused as they are; anything
    else gets a fresh ``<prefix>-<timestamp>`` branch.
    """
    if current_branch.startswith(prefix):
        return BranchTarget(name=current_branch, is_new=False)
    stamp = (now or datetime.now()).strftime(BRANCH_TIMESTAMP_FORMAT)
    return BranchTarget(name=f"{prefix}-{stamp}", is_new=True)


class ApplyMode(Enum):
    INTERACTIVE = "interactive"
    AUTOMATIC = "automatic"


class OutcomeStatus(Enum):
    COMMITTED = "committed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ProposalOutcome:
    proposal: CommitProposal
    status: OutcomeStatus
    cause: Optional[str] = None


@dataclass
class AppliedResult:
    """Per-proposal outcomes of one applicator run, in plan order."""

    outcomes: List[ProposalOutcome] = field(default_factory=list)

    def record(self, proposal: CommitProposal, status: OutcomeStatus,
               cause: Optional[str] = None) -> ProposalOutcome:
        outcome = ProposalOutcome(proposal=proposal, status=status, cause=cause)
        self.outcomes.append(outcome)
        return outcome

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def committed(self) -> int:
        return self._count(OutcomeStatus.COMMITTED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0


@dataclass(frozen=True)
class StatusEntry:
    """One line of ``git status --porcelain`` output."""

    code: str
    path: str

    @property
    def icon(self) -> str:
        if self.code.startswith("A"):
            return "🟢"
        if self.code.startswith("M"):
            return "🟡"
        if self.code.startswith("D"):
            return "🔴"
        if self.code.startswith("??"):
            return "✨"
        return "📄"


def parse_porcelain_status(output: str) -> List[StatusEntry]:
    """Parse short/porcelain status lines into StatusEntry values.

    Renames are reported under their new path.
    """
    entries: List[StatusEntry] = []
    for line in output.splitlines():
        if len(line) < 4:
            continue
        code = line[:2].strip()
        path = line[3:].strip()
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        entries.append(StatusEntry(code=code, path=path.strip('"')))
    return entries


def as_plan(proposals: Sequence[CommitProposal]) -> CommitPlan:
    return tuple(proposals)
