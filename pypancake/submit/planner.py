"""Decide, per branch, whether a pull request is created, updated or skipped."""

import logging
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Sequence, Tuple

from ..git import base_branch_name
from ..typing import CommitSha, PreconditionError, StackGraph

logger = logging.getLogger(__name__)

SubmitAction = Literal['create', 'update']

@dataclass
class SubmitOptions:
    """Options for one submission."""
    draft: bool = False
    publish: bool = False
    update_only: bool = False
    reviewers: List[str] = field(default_factory=list)
    always: bool = False
    force_push: bool = False
    dry_run: bool = False

    def validate(self) -> None:
        if self.draft and self.publish:
            raise PreconditionError("Can't use both --publish and --draft flags in one command")

@dataclass
class SubmissionIntent:
    """What to do for one branch. Built fresh for every submission."""
    action: SubmitAction
    head: str
    head_sha: CommitSha
    base: str
    base_sha: CommitSha
    title: Optional[str] = None
    body: Optional[str] = None
    draft: Optional[bool] = None
    pr_number: Optional[int] = None
    reviewers: List[str] = field(default_factory=list)

def split_commit_message(message: str) -> Tuple[str, str]:
    """Split a commit message into (subject, body)."""
    subject, _, body = message.strip().partition("\n")
    return subject.strip(), body.strip()

def _draft_for(action: SubmitAction, options: SubmitOptions) -> Optional[bool]:
    if action == 'create':
        # New PRs open as drafts unless explicitly published
        return not options.publish
    if options.draft:
        return True
    if options.publish:
        return False
    return None

def _is_up_to_date(graph: StackGraph, branch: str, head_sha: str, base_sha: str,
                   options: SubmitOptions) -> bool:
    pr_info = graph.get_pr_info(branch)
    base = base_branch_name(branch)
    draft = _draft_for('update', options)
    return (pr_info is not None
            and pr_info.base == base
            and (draft is None or pr_info.is_draft == draft)
            and graph.remote_sha(branch) == head_sha
            and graph.remote_sha(base) == base_sha)

def plan_branch(graph: StackGraph, branch: str, options: SubmitOptions) -> Optional[SubmissionIntent]:
    """Build the intent for a single branch, or None when it should be skipped."""
    pr_info = graph.get_pr_info(branch)
    has_pr = pr_info is not None and pr_info.number is not None
    if options.update_only and not has_pr:
        logger.info(f"{branch}: skipping, no PR exists and --update-only is set")
        return None

    head_sha = graph.branch_sha(branch)
    if not head_sha:
        raise PreconditionError(f"Cannot submit {branch}: its head commit could not be resolved")
    parent = graph.parent(branch)
    if parent is None:
        raise PreconditionError(f"Cannot submit {branch}: it has no parent branch")
    base_sha = graph.branch_sha(parent)
    if not base_sha:
        raise PreconditionError(f"Cannot submit {branch}: the head commit of its parent {parent} could not be resolved")

    if has_pr and not options.always and _is_up_to_date(graph, branch, head_sha, base_sha, options):
        logger.info(f"{branch}: no changes, skipping")
        return None

    action: SubmitAction = 'update' if has_pr else 'create'
    intent = SubmissionIntent(
        action=action,
        head=branch,
        head_sha=CommitSha(head_sha),
        base=base_branch_name(branch),
        base_sha=CommitSha(base_sha),
        draft=_draft_for(action, options),
    )
    if action == 'update':
        assert pr_info is not None
        intent.pr_number = pr_info.number
    else:
        messages = graph.commit_messages(branch)
        if messages:
            intent.title, intent.body = split_commit_message(messages[0])
        if not intent.title:
            intent.title = branch
        intent.body = intent.body or ""
        intent.reviewers = list(options.reviewers)
    logger.debug(f"Planned {intent.action} for {branch}: head={head_sha[:8]} base={base_sha[:8]}")
    return intent

def plan_submission(graph: StackGraph, branch_names: Sequence[str],
                    options: SubmitOptions) -> List[SubmissionIntent]:
    """Plan every branch in `branch_names` (trunk already excluded), keeping their order."""
    intents: List[SubmissionIntent] = []
    for branch in branch_names:
        intent = plan_branch(graph, branch, options)
        if intent is not None:
            intents.append(intent)
    return intents
