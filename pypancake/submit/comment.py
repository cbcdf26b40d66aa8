"""Stack topology comments posted on every pull request of a stack."""

import logging
from typing import List, Optional, Sequence

from ..github import GitHubClient, GitHubIssueCommentProtocol, parse_api_error
from ..typing import RemoteAPIError, StackGraph

logger = logging.getLogger(__name__)

COMMENT_MARKER = "This comment was autogenerated by Pancake."
POINTER = " 👈"

class StackCommentRenderer:
    """Renders the stack around one branch as a markdown list.

    The list runs from the highest descendant reachable without crossing a fan-out point
    down to the trunk. Above a branch with several children the order is ambiguous, so
    the walk stops there and lists the children on that branch's line instead.
    """

    def __init__(self, graph: StackGraph, pull_url_prefix: str):
        self.graph = graph
        self.pull_url_prefix = pull_url_prefix.rstrip("/")

    def _pr_number(self, branch: str) -> Optional[int]:
        pr_info = self.graph.get_pr_info(branch)
        return pr_info.number if pr_info else None

    def _child_link(self, branch: str) -> str:
        number = self._pr_number(branch)
        if number is None:
            return f"Branch _{branch}_"
        return f"[#{number}]({self.pull_url_prefix}/{number})"

    def _line(self, branch: str, for_branch: str) -> str:
        number = self._pr_number(branch)
        if number is None:
            line = f"Branch _{branch}_"
        else:
            line = f"**#{number}**"
            children = self.graph.children(branch)
            if len(children) > 1:
                links = ", ".join(self._child_link(c) for c in children if c != for_branch)
                if for_branch in children:
                    line += f" Other dependent PRs: ({links})"
                else:
                    line += f" Dependent PRs: ({links})"
        if branch == for_branch:
            line += POINTER
        return line

    def render(self, for_branch: str) -> str:
        lines: List[str] = []

        # Up the stack from the branch until the chain forks
        current: Optional[str] = for_branch
        while current is not None:
            lines.insert(0, self._line(current, for_branch))
            children = self.graph.children(current)
            if len(children) != 1:
                break
            current = children[0]

        # Down the stack to the trunk
        current = self.graph.parent(for_branch)
        while current is not None and not self.graph.is_trunk(current):
            lines.append(self._line(current, for_branch))
            current = self.graph.parent(current)
        lines.append(f"`{self.graph.trunk}`")

        return "\n".join([f"* {line}" for line in lines] + ["", COMMENT_MARKER])

def generate_stack_comment(graph: StackGraph, for_branch: str, pull_url_prefix: str) -> str:
    return StackCommentRenderer(graph, pull_url_prefix).render(for_branch)

def find_stack_comment(comments: Sequence[GitHubIssueCommentProtocol]) -> Optional[GitHubIssueCommentProtocol]:
    for comment in comments:
        if comment.body and COMMENT_MARKER in comment.body:
            return comment
    return None

def comment_stack_on_prs(graph: StackGraph, github: GitHubClient, branch_names: Sequence[str]) -> None:
    """Create or refresh the stack comment on the PR of every branch that has one."""
    renderer = StackCommentRenderer(graph, github.pull_url_prefix)
    for branch in branch_names:
        pr_info = graph.get_pr_info(branch)
        if pr_info is None or pr_info.number is None:
            continue
        body = renderer.render(branch)
        try:
            existing = find_stack_comment(github.list_issue_comments(pr_info.number))
            if existing is None:
                github.create_issue_comment(pr_info.number, body)
            elif existing.body != body:
                github.edit_issue_comment(pr_info.number, existing, body)
            else:
                logger.debug(f"Stack comment on #{pr_info.number} is up to date")
        except Exception as e:
            raise RemoteAPIError(branch, "stack comment", parse_api_error(e)) from e
