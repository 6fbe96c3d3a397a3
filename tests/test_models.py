from datetime import datetime

import pytest

from gitdiffy.models import (
    AppliedResult,
    BranchTarget,
    CommitProposal,
    OutcomeStatus,
    StatusEntry,
    compute_branch_target,
    parse_porcelain_status,
)


def test_commit_proposal_normalizes_files_to_tuple():
    proposal = CommitProposal(message="fix bug", files=["a.go", "b.go"])
    assert proposal.files == ("a.go", "b.go")


@pytest.mark.parametrize(
    "message,files",
    [
        ("", ("a.go",)),
        ("   ", ("a.go",)),
        ("fix bug", ()),
        ("fix bug", ("",)),
    ],
)
def test_commit_proposal_rejects_empty_fields(message, files):
    with pytest.raises(ValueError):
        CommitProposal(message=message, files=files)


def test_commit_proposal_is_immutable():
    proposal = CommitProposal(message="fix bug", files=("a.go",))
    with pytest.raises(AttributeError):
        proposal.message = "other"


def test_branch_target_for_unprefixed_branch():
    now = datetime(2024, 3, 5, 14, 7, 9)
    target = compute_branch_target("main", "gitdiffy", now)
    assert target == BranchTarget(name="gitdiffy-20240305-140709", is_new=True)


def test_branch_target_reuses_prefixed_branch():
    target = compute_branch_target("gitdiffy-20240101-000000", "gitdiffy")
    assert target == BranchTarget(name="gitdiffy-20240101-000000", is_new=False)


def test_branch_target_uses_current_time_by_default():
    target = compute_branch_target("develop", "auto")
    assert target.is_new
    assert target.name.startswith("auto-")
    datetime.strptime(target.name[len("auto-"):], "%Y%m%d-%H%M%S")


def test_applied_result_counters():
    result = AppliedResult()
    first = CommitProposal("one", ("a",))
    second = CommitProposal("two", ("b",))
    third = CommitProposal("three", ("c",))
    result.record(first, OutcomeStatus.COMMITTED)
    result.record(second, OutcomeStatus.FAILED, cause="boom")
    result.record(third, OutcomeStatus.SKIPPED)

    assert (result.committed, result.failed, result.skipped) == (1, 1, 1)
    assert not result.all_succeeded
    assert [o.proposal for o in result.outcomes] == [first, second, third]
    assert result.outcomes[1].cause == "boom"


def test_parse_porcelain_status():
    output = " M src/app.py\nA  new.py\n D gone.py\n?? notes.txt\nR  old.py -> renamed.py\n"
    entries = parse_porcelain_status(output)
    assert entries == [
        StatusEntry("M", "src/app.py"),
        StatusEntry("A", "new.py"),
        StatusEntry("D", "gone.py"),
        StatusEntry("??", "notes.txt"),
        StatusEntry("R", "renamed.py"),
    ]
    assert [entry.icon for entry in entries] == ["🟡", "🟢", "🔴", "✨", "📄"]
