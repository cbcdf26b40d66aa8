"""Ref choreography for rewriting protected `mq/` base branches.

The `mq/<branch>` bases have branch protection rules that reject direct pushes, so the
only way to move one is to delete it and push it again. Deleting the base of an open
pull request closes the pull request, so existing PRs are first moved onto a
`temp-mq/<branch>` copy of their current base and moved back once the real base has been
recreated.

Each step is a single bulk push. The remote applies the refs inside one push
independently; safety comes from the order of the steps.
"""

import logging
from typing import List, Sequence

from ..git import GitError, StaleInfoError, base_branch_name, remote_dest, temp_base_branch_name
from ..typing import ConflictError, PreconditionError, PushFailedError, RefPushOp, StackGraph
from .planner import SubmissionIntent
from .reconcile import RemoteReconciler, SubmitResult

logger = logging.getLogger(__name__)

PREFLIGHT = "pre-flight check"
INDIRECTION = "indirection setup"
BASE_REWRITE = "base rewrite"
HEAD_PUBLISH = "base rewrite and head publish"
CLEANUP = "cleanup"

STALE_INFO_MESSAGE = "\n".join([
    "Force-with-lease push of {branches} failed due to external changes to the remote branch.",
    "Someone else may have pushed to it. Collaborating on stacks is not well supported; you can "
    "manually pull in the remote changes, but proceed with caution.",
    "Alternatively, use the `--force` option of this command to overwrite the remote branch.",
])

class RefChoreographer:
    """Runs the push / reconcile / cleanup sequence for a set of intents."""

    def __init__(self, graph: StackGraph, reconciler: RemoteReconciler, force_push: bool = False):
        self.graph = graph
        self.reconciler = reconciler
        self.force_push = force_push

    def _remote_ref(self, branch: str) -> str:
        return f"refs/remotes/{self.graph.remote}/{branch}"

    def _push(self, phase: str, branches: Sequence[RefPushOp], dry_run: bool = False) -> None:
        if not branches:
            logger.debug(f"{phase}: nothing to push")
            return
        try:
            self.graph.push_bulk(branches, dry_run=dry_run, force_push=self.force_push)
        except GitError as e:
            raise PushFailedError(phase, str(e)) from e

    def _deletions(self, branch_names: Sequence[str]) -> List[RefPushOp]:
        # Deleting a ref the remote doesn't have fails the whole push
        return [RefPushOp("", remote_dest(name)) for name in branch_names
                if self.graph.remote_sha(name) is not None]

    @staticmethod
    def _updates(intents: Sequence[SubmissionIntent]) -> List[SubmissionIntent]:
        return [intent for intent in intents if intent.action == 'update']

    @staticmethod
    def check_shas(intents: Sequence[SubmissionIntent]) -> None:
        for intent in intents:
            if not intent.head_sha:
                raise PreconditionError(f"Head SHA is required to submit {intent.head}")
            if not intent.base_sha:
                raise PreconditionError(f"Base SHA is required to submit {intent.head}")

    def preflight(self, intents: Sequence[SubmissionIntent]) -> None:
        """Dry-run the head pushes of existing PRs so a moved remote aborts before anything changes."""
        heads = [RefPushOp(intent.head_sha, remote_dest(intent.head)) for intent in self._updates(intents)]
        if not heads:
            return
        try:
            self.graph.push_bulk(heads, dry_run=True, force_push=self.force_push)
        except StaleInfoError as e:
            raise ConflictError(e.branches, STALE_INFO_MESSAGE.format(branches=", ".join(e.branches))) from e
        except GitError as e:
            raise PushFailedError(PREFLIGHT, str(e)) from e

    def setup_indirection(self, intents: Sequence[SubmissionIntent]) -> None:
        """Copy each existing PR's current base to `temp-mq/` and point the PR at the copy."""
        updates = self._updates(intents)
        if not updates:
            return
        self._push(INDIRECTION, self._deletions([temp_base_branch_name(i.head) for i in updates]))
        self._push(INDIRECTION, [
            RefPushOp(self._remote_ref(base_branch_name(i.head)), remote_dest(temp_base_branch_name(i.head)))
            for i in updates
        ])
        for intent in updates:
            self.reconciler.repoint_base(intent, temp_base_branch_name(intent.head))

    def rewrite_bases(self, intents: Sequence[SubmissionIntent]) -> None:
        """Recreate every `mq/` base at its new commit and publish the heads with it."""
        self._push(BASE_REWRITE, self._deletions([base_branch_name(i.head) for i in intents]))
        ops: List[RefPushOp] = []
        for intent in intents:
            ops.append(RefPushOp(intent.head_sha, remote_dest(intent.head)))
            ops.append(RefPushOp(intent.base_sha, remote_dest(base_branch_name(intent.head))))
            # PRs still based on the temp branch then show only the desired diff
            ops.append(RefPushOp(intent.base_sha, remote_dest(temp_base_branch_name(intent.head))))
        self._push(HEAD_PUBLISH, ops)

    def reconcile(self, intents: Sequence[SubmissionIntent]) -> List[SubmitResult]:
        return [self.reconciler.submit_and_record(intent) for intent in intents]

    def cleanup(self, intents: Sequence[SubmissionIntent]) -> None:
        self._push(CLEANUP, self._deletions([temp_base_branch_name(i.head) for i in intents]))

    def run(self, intents: Sequence[SubmissionIntent]) -> List[SubmitResult]:
        """Run every step in order, stopping at the first failure."""
        if not intents:
            return []
        self.check_shas(intents)
        self.preflight(intents)
        try:
            self.setup_indirection(intents)
            self.rewrite_bases(intents)
            results = self.reconcile(intents)
            self.cleanup(intents)
        except Exception:
            leftovers = ", ".join(temp_base_branch_name(i.head) for i in intents)
            logger.warning(f"Submission stopped partway; temporary branches may remain on "
                           f"{self.graph.remote}: {leftovers}")
            raise
        return results
