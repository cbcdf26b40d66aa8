"""Create or patch pull requests and fold the results back into the stack graph."""

import logging
from dataclasses import dataclass
from typing import Literal, Optional

from ..github import GitHubClient, GitHubPullRequestProtocol, parse_api_error
from ..typing import PreconditionError, RemoteAPIError, StackGraph
from .planner import SubmissionIntent

logger = logging.getLogger(__name__)

SubmitStatus = Literal['created', 'updated', 'noop']

@dataclass
class SubmitResult:
    """Outcome of reconciling one intent."""
    head: str
    pr_number: int
    pr_url: str
    status: SubmitStatus

def pr_needs_update(intent: SubmissionIntent, pr: GitHubPullRequestProtocol) -> bool:
    """True when the intent asks for a title, body or base the remote doesn't have."""
    if intent.title is not None and pr.title != intent.title:
        return True
    if intent.body is not None and (pr.body or "") != intent.body:
        return True
    return pr.base.ref != intent.base

class RemoteReconciler:
    """Applies SubmissionIntents to GitHub one pull request at a time."""

    def __init__(self, graph: StackGraph, github: GitHubClient):
        self.graph = graph
        self.github = github

    def submit(self, intent: SubmissionIntent, phase: str = "submit") -> SubmitResult:
        """Create or update the PR for `intent` without touching the stack graph."""
        try:
            if intent.action == 'create':
                return self._create(intent)
            return self._update(intent)
        except (RemoteAPIError, PreconditionError):
            raise
        except Exception as e:
            raise RemoteAPIError(intent.head, phase, parse_api_error(e)) from e

    def _create(self, intent: SubmissionIntent) -> SubmitResult:
        pr = self.github.create_pull(
            head=intent.head,
            base=intent.base,
            title=intent.title or intent.head,
            body=intent.body or "",
            draft=bool(intent.draft),
        )
        if intent.reviewers:
            self.github.add_reviewers(pr, intent.reviewers)
        return SubmitResult(intent.head, pr.number, pr.html_url, 'created')

    def _update(self, intent: SubmissionIntent) -> SubmitResult:
        if intent.pr_number is None:
            raise RemoteAPIError(intent.head, "update", "no PR number to update")
        pr = self.github.get_pull(intent.pr_number)
        status: SubmitStatus = 'noop'
        if pr_needs_update(intent, pr):
            self.github.edit_pull(pr, title=intent.title, body=intent.body, base=intent.base)
            status = 'updated'
        if intent.draft is not None and pr.draft != intent.draft:
            self.github.set_draft(pr, intent.draft)
            status = 'updated'
        if status == 'noop':
            logger.debug(f"#{pr.number} already up to date")
        return SubmitResult(intent.head, pr.number, pr.html_url, status)

    def submit_and_record(self, intent: SubmissionIntent) -> SubmitResult:
        """Submit `intent` and write the confirmed PR metadata back to the stack graph."""
        result = self.submit(intent)
        fields = {
            'number': result.pr_number,
            'url': result.pr_url,
            'base': intent.base,
            # Submit succeeded, so the PR is neither closed nor merged
            'state': 'OPEN',
        }
        if intent.action == 'create':
            fields.update(title=intent.title, body=intent.body, review_decision='REVIEW_REQUIRED')
        if intent.draft is not None:
            fields['is_draft'] = intent.draft
        self.graph.upsert_pr_info(intent.head, **fields)
        logger.info(f"{result.head}: {result.pr_url} ({result.status})")
        return result

    def repoint_base(self, intent: SubmissionIntent, base: str) -> Optional[SubmitResult]:
        """Point an existing PR at `base` without changing anything else."""
        if intent.action != 'update':
            return None
        repoint = SubmissionIntent(
            action='update',
            head=intent.head,
            head_sha=intent.head_sha,
            base=base,
            base_sha=intent.base_sha,
            pr_number=intent.pr_number,
        )
        return self.submit(repoint, phase="indirection")
