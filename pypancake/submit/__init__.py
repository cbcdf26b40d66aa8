"""Submission pipeline: plan, push, create/update PRs, clean up, comment."""

import logging
from typing import List, Sequence

from ..github import GitHubClient
from ..typing import StackGraph
from .choreography import RefChoreographer
from .comment import COMMENT_MARKER, comment_stack_on_prs, generate_stack_comment
from .planner import SubmissionIntent, SubmitOptions, plan_submission
from .reconcile import RemoteReconciler, SubmitResult

logger = logging.getLogger(__name__)

__all__ = [
    "COMMENT_MARKER",
    "RefChoreographer",
    "RemoteReconciler",
    "SubmissionIntent",
    "SubmitOptions",
    "SubmitResult",
    "comment_stack_on_prs",
    "generate_stack_comment",
    "plan_submission",
    "submit_stack",
]

def submit_stack(graph: StackGraph, github: GitHubClient, branch_names: Sequence[str],
                 options: SubmitOptions) -> List[SubmitResult]:
    """Submit `branch_names` (ordered trunk-first) and refresh their stack comments.

    Any error aborts the whole submission. Pull requests created or updated before the
    failure stay recorded in the graph.
    """
    options.validate()
    # Owner and name must be known before anything is pushed
    logger.debug(f"Submitting to {github.full_name}")
    branch_names = [b for b in branch_names if not graph.is_trunk(b)]

    intents = plan_submission(graph, branch_names, options)
    for intent in intents:
        logger.info(f"{intent.head}: {intent.action}" + (f" #{intent.pr_number}" if intent.pr_number else ""))

    if options.dry_run:
        logger.info("Dry run complete. No branches were pushed and no PRs were opened or updated.")
        return []
    if not intents:
        logger.info("All PRs up to date.")
        return []

    reconciler = RemoteReconciler(graph, github)
    results = RefChoreographer(graph, reconciler, force_push=options.force_push).run(intents)
    comment_stack_on_prs(graph, github, branch_names)
    return results
