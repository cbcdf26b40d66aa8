"""Refresh recorded PR metadata from GitHub."""

import logging
from typing import Dict, List, Optional, Sequence

from ..github import GitHubClient, GitHubPullRequestProtocol, GitHubReviewProtocol, parse_api_error
from ..models import PRState, ReviewDecision
from ..typing import RemoteAPIError, StackGraph

logger = logging.getLogger(__name__)

def pr_state(pr: GitHubPullRequestProtocol) -> PRState:
    if pr.merged:
        return 'MERGED'
    if pr.state == 'closed':
        return 'CLOSED'
    return 'OPEN'

def review_decision(reviews: Sequence[GitHubReviewProtocol]) -> ReviewDecision:
    """Summarise reviews using each reviewer's latest approving/blocking review."""
    latest: Dict[str, str] = {}
    for review in reviews:
        if review.state in ('APPROVED', 'CHANGES_REQUESTED', 'DISMISSED'):
            latest[review.user.login] = review.state
    states = set(latest.values())
    if 'CHANGES_REQUESTED' in states:
        return 'CHANGES_REQUESTED'
    if 'APPROVED' in states:
        return 'APPROVED'
    return 'REVIEW_REQUIRED'

def sync_pr_info(graph: StackGraph, github: GitHubClient, branch_names: Sequence[str]) -> List[str]:
    """Pull fresh data for every branch with a known PR. Returns the branches refreshed.

    The base is deliberately left alone: PRs are based on `mq/<branch>`, which is not
    the branch's parent.
    """
    refreshed: List[str] = []
    for branch in branch_names:
        pr_info = graph.get_pr_info(branch)
        number: Optional[int] = pr_info.number if pr_info else None
        if number is None:
            continue
        try:
            pr = github.get_pull(number)
            decision = review_decision(pr.get_reviews())
        except Exception as e:
            raise RemoteAPIError(branch, "sync", parse_api_error(e)) from e
        graph.upsert_pr_info(
            branch,
            number=pr.number,
            title=pr.title,
            body=pr.body,
            state=pr_state(pr),
            review_decision=decision,
            url=pr.html_url,
            is_draft=pr.draft,
        )
        logger.debug(f"Synced {branch} with #{pr.number}")
        refreshed.append(branch)
    return refreshed
