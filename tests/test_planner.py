"""Tests for the commit planner."""

import pytest

from conftest import FakeVcs
from gitdiffy.errors import GenerationError, NoChangesError, TransportError, VcsOperationError
from gitdiffy.models import CommitProposal
from gitdiffy.planner import CommitPlanner, print_staged_files


@pytest.fixture
def planner(fake_vcs, fake_client, quiet_console):
    return CommitPlanner(fake_vcs, fake_client, console=quiet_console)


def test_plan_returns_proposals_and_unstages(planner, fake_vcs, fake_client):
    proposals = [
        CommitProposal("add feature", ("a.go", "b.go")),
        CommitProposal("update docs", ("README.md",)),
    ]
    fake_client.generate.return_value = proposals

    plan = planner.plan()

    assert plan == tuple(proposals)
    assert fake_vcs.staged == []
    assert fake_vcs.mutations == ["stage_all", "unstage_all"]
    diff = fake_client.generate.call_args.args[0]
    assert "a/a.go" in diff and "a/README.md" in diff


def test_empty_proposal_list_is_a_valid_plan(planner, fake_client):
    fake_client.generate.return_value = []
    assert planner.plan() == ()


def test_no_changes_raises_and_leaves_index_clean(fake_client, quiet_console):
    vcs = FakeVcs(changes=[])
    planner = CommitPlanner(vcs, fake_client, console=quiet_console)

    with pytest.raises(NoChangesError):
        planner.plan()

    fake_client.generate.assert_not_called()
    assert vcs.staged == []
    assert vcs.mutations[-1] == "unstage_all"


@pytest.mark.parametrize(
    "error",
    [GenerationError("API error: rate limited"), TransportError("network error: refused")],
)
def test_generation_failure_propagates_after_unstaging(planner, fake_vcs, fake_client, error):
    fake_client.generate.side_effect = error

    with pytest.raises(type(error)) as excinfo:
        planner.plan()

    assert excinfo.value is error
    assert fake_vcs.staged == []
    assert fake_vcs.mutations == ["stage_all", "unstage_all"]


def test_unstage_failure_after_generation_error_keeps_original_error(
        planner, fake_vcs, fake_client):
    fake_client.generate.side_effect = GenerationError("API error: boom")
    fake_vcs.failures["unstage_all"] = VcsOperationError("index locked")

    with pytest.raises(GenerationError, match="boom"):
        planner.plan()


def test_stage_failure_propagates(planner, fake_vcs, fake_client):
    fake_vcs.failures["stage_all"] = VcsOperationError("git add failed")

    with pytest.raises(VcsOperationError, match="git add failed"):
        planner.plan()

    fake_client.generate.assert_not_called()


def test_unstage_failure_on_success_path_is_raised(planner, fake_vcs, fake_client):
    fake_client.generate.return_value = [CommitProposal("x", ("a.go",))]
    fake_vcs.failures["unstage_all"] = VcsOperationError("index locked")

    with pytest.raises(VcsOperationError, match="index locked"):
        planner.plan()


def test_on_staged_callback_receives_status(fake_vcs, fake_client, quiet_console):
    seen = []
    planner = CommitPlanner(fake_vcs, fake_client, console=quiet_console, on_staged=seen.append)

    planner.plan()

    assert [entry.path for entry in seen[0]] == ["a.go", "b.go", "README.md"]


def test_print_staged_files(fake_vcs, quiet_console):
    print_staged_files(fake_vcs.status_entries(), console=quiet_console)
    output = quiet_console.file.getvalue()
    assert "Files staged for commit" in output
    assert "🟡 README.md" in output
