"""Tests for the ref choreography around protected base branches."""

import logging
from typing import List

import pytest

from pypancake.github import GitHubClient
from pypancake.submit.choreography import HEAD_PUBLISH, RefChoreographer
from pypancake.submit.planner import SubmissionIntent, SubmitOptions, plan_submission
from pypancake.submit.reconcile import RemoteReconciler
from pypancake.tests.fakes import FakeGithub, FakeStack, PushCall
from pypancake.typing import CommitSha, ConflictError, PreconditionError, PushFailedError

NEW_B = "c" * 40


def dests(call: PushCall) -> List[str]:
    return [op.dest[len("refs/heads/"):] for op in call.ops]


@pytest.fixture
def submitted(stack: FakeStack, fake_github: FakeGithub) -> FakeStack:
    """Both branches already have open PRs; b has a new local commit."""
    stack.remote_refs.update({"a": "a" * 40, "mq/a": "m" * 40, "b": "b" * 40, "mq/b": "a" * 40})
    fake_github.add_pull("a", "mq/a", title="Add a")
    fake_github.add_pull("b", "mq/b", title="Add b")
    stack.upsert_pr_info("a", number=1, base="mq/a")
    stack.upsert_pr_info("b", number=2, base="mq/b")
    stack.local["b"] = NEW_B
    return stack


def choreographer(stack: FakeStack, github: GitHubClient, force_push: bool = False) -> RefChoreographer:
    return RefChoreographer(stack, RemoteReconciler(stack, github), force_push=force_push)


class TestNewStack:
    """Submitting branches that have no PRs yet."""

    def test_bases_and_heads_go_out_in_one_push(self, stack: FakeStack, github: GitHubClient,
                                                fake_github: FakeGithub) -> None:
        intents = plan_submission(stack, ["a", "b"], SubmitOptions())
        results = choreographer(stack, github).run(intents)

        assert [r.status for r in results] == ["created", "created"]
        publish, cleanup = stack.real_pushes()
        assert dests(publish) == ["a", "mq/a", "temp-mq/a", "b", "mq/b", "temp-mq/b"]
        assert dests(cleanup) == ["temp-mq/a", "temp-mq/b"]
        assert all(op.is_delete for op in cleanup.ops)

        assert stack.remote_refs["mq/a"] == "m" * 40
        assert stack.remote_refs["mq/b"] == "a" * 40
        assert "temp-mq/a" not in stack.remote_refs
        assert [pr.base.ref for pr in fake_github.pulls.values()] == ["mq/a", "mq/b"]
        assert all(pr.state == "open" for pr in fake_github.pulls.values())

    def test_no_preflight_without_existing_prs(self, stack: FakeStack, github: GitHubClient) -> None:
        choreographer(stack, github).run(plan_submission(stack, ["a"], SubmitOptions()))
        assert not any(p.dry_run for p in stack.pushes)


class TestExistingStack:
    """Rewriting bases under open PRs."""

    def test_push_order(self, submitted: FakeStack, github: GitHubClient) -> None:
        intents = plan_submission(submitted, ["a", "b"], SubmitOptions(always=True))
        choreographer(submitted, github).run(intents)

        preflight = submitted.pushes[0]
        assert preflight.dry_run
        assert dests(preflight) == ["a", "b"]

        indirection, delete_bases, publish, cleanup = submitted.real_pushes()
        assert dests(indirection) == ["temp-mq/a", "temp-mq/b"]
        assert [op.src for op in indirection.ops] == ["refs/remotes/origin/mq/a", "refs/remotes/origin/mq/b"]
        assert dests(delete_bases) == ["mq/a", "mq/b"]
        assert all(op.is_delete for op in delete_bases.ops)
        assert dests(publish) == ["a", "mq/a", "temp-mq/a", "b", "mq/b", "temp-mq/b"]
        assert dests(cleanup) == ["temp-mq/a", "temp-mq/b"]

    def test_prs_survive_base_deletion(self, submitted: FakeStack, github: GitHubClient,
                                       fake_github: FakeGithub) -> None:
        bases_when_deleted = {}

        def record(stack: FakeStack) -> None:
            if "mq/b" not in stack.remote_refs and not bases_when_deleted:
                bases_when_deleted.update({n: pr.base.ref for n, pr in fake_github.pulls.items()})
        submitted.after_push.insert(0, record)

        intents = plan_submission(submitted, ["a", "b"], SubmitOptions(always=True))
        choreographer(submitted, github).run(intents)

        assert bases_when_deleted == {1: "temp-mq/a", 2: "temp-mq/b"}
        for pr in fake_github.pulls.values():
            assert pr.state == "open"
            assert pr.base.ref == f"mq/{pr.head.ref}"
        assert submitted.remote_refs["b"] == NEW_B
        assert not [ref for ref in submitted.remote_refs if ref.startswith("temp-mq/")]

    def test_mixed_create_and_update(self, submitted: FakeStack, github: GitHubClient,
                                     fake_github: FakeGithub) -> None:
        submitted.add("c", "b", "d" * 40, "Add c")
        intents = plan_submission(submitted, ["a", "b", "c"], SubmitOptions())

        results = choreographer(submitted, github).run(intents)

        assert [(r.head, r.status) for r in results] == [("b", "updated"), ("c", "created")]
        indirection = submitted.real_pushes()[0]
        assert dests(indirection) == ["temp-mq/b"]
        assert fake_github.pulls[3].base.ref == "mq/c"
        assert submitted.remote_refs["mq/c"] == NEW_B

    def test_stale_temp_branches_are_deleted_first(self, submitted: FakeStack, github: GitHubClient) -> None:
        submitted.remote_refs["temp-mq/b"] = "0" * 40
        intents = plan_submission(submitted, ["a", "b"], SubmitOptions())
        choreographer(submitted, github).run(intents)

        first = submitted.real_pushes()[0]
        assert dests(first) == ["temp-mq/b"]
        assert first.ops[0].is_delete


class TestFailures:
    """Aborting before or during the pushes."""

    def test_moved_remote_aborts_before_any_change(self, submitted: FakeStack, github: GitHubClient,
                                                   fake_github: FakeGithub) -> None:
        submitted.moved.add("b")
        intents = plan_submission(submitted, ["a", "b"], SubmitOptions())

        with pytest.raises(ConflictError) as exc_info:
            choreographer(submitted, github).run(intents)

        assert exc_info.value.branches == ["b"]
        assert "--force" in str(exc_info.value)
        assert submitted.real_pushes() == []
        assert fake_github.writes() == []

    def test_force_overwrites_moved_remote(self, submitted: FakeStack, github: GitHubClient) -> None:
        submitted.moved.add("b")
        intents = plan_submission(submitted, ["a", "b"], SubmitOptions(force_push=True))

        results = choreographer(submitted, github, force_push=True).run(intents)

        assert [r.head for r in results] == ["b"]
        assert all(p.force_push for p in submitted.pushes)
        assert submitted.remote_refs["b"] == NEW_B

    def test_failed_push_names_phase_and_warns(self, submitted: FakeStack, github: GitHubClient,
                                               caplog: pytest.LogCaptureFixture) -> None:
        submitted.fail_phase_on = lambda call: not call.dry_run and "b" in dests(call)
        intents = plan_submission(submitted, ["a", "b"], SubmitOptions())

        with caplog.at_level(logging.WARNING), pytest.raises(PushFailedError) as exc_info:
            choreographer(submitted, github).run(intents)

        assert exc_info.value.phase == HEAD_PUBLISH
        assert "temp-mq/b" in caplog.text
        # The base was deleted but the PR is still parked on its temp copy
        assert "mq/b" not in submitted.remote_refs
        assert "temp-mq/b" in submitted.remote_refs

    def test_missing_shas_are_rejected(self, stack: FakeStack, github: GitHubClient) -> None:
        intent = SubmissionIntent(action="create", head="a", head_sha=CommitSha(""), base="mq/a",
                                  base_sha=CommitSha("m" * 40))
        with pytest.raises(PreconditionError):
            choreographer(stack, github).run([intent])
        assert stack.pushes == []
