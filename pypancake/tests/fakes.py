"""In-memory fakes for the stack graph, the git remote and GitHub."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from github import GithubException

from pypancake.git import GitError, StaleInfoError
from pypancake.models import PRInfo
from pypancake.typing import RefPushOp

logger = logging.getLogger(__name__)

REMOTE_PREFIX = "refs/remotes/origin/"
HEADS_PREFIX = "refs/heads/"

@dataclass
class PushCall:
    """One recorded push_bulk call."""
    ops: List[RefPushOp]
    dry_run: bool
    force_push: bool

class FakeStack:
    """StackGraph over dicts, with a fake remote that applies bulk pushes."""

    def __init__(self, trunk: str = "main"):
        self._trunk = trunk
        self.parents: Dict[str, Optional[str]] = {trunk: None}
        self.order: List[str] = [trunk]
        self.local: Dict[str, str] = {}
        self.remote_refs: Dict[str, str] = {}
        self.pr_infos: Dict[str, PRInfo] = {}
        self.messages: Dict[str, List[str]] = {}
        self.pushes: List[PushCall] = []
        # Branches whose remote moved since we last observed it
        self.moved: set = set()
        self.fail_phase_on: Optional[Callable[[PushCall], bool]] = None
        self.after_push: List[Callable[[FakeStack], None]] = []

    def add(self, branch: str, parent: str, sha: str, message: str = "") -> "FakeStack":
        self.parents[branch] = parent
        self.order.append(branch)
        self.local[branch] = sha
        if message:
            self.messages[branch] = [message]
        return self

    # StackGraph

    @property
    def trunk(self) -> str:
        return self._trunk

    @property
    def remote(self) -> str:
        return "origin"

    def parent(self, branch: str) -> Optional[str]:
        return self.parents.get(branch)

    def children(self, branch: str) -> List[str]:
        return [b for b in self.order if self.parents.get(b) == branch]

    def is_trunk(self, branch: str) -> bool:
        return branch == self._trunk

    def branch_sha(self, branch: str) -> Optional[str]:
        return self.local.get(branch)

    def remote_sha(self, branch: str) -> Optional[str]:
        return self.remote_refs.get(branch)

    def commit_messages(self, branch: str) -> List[str]:
        return list(self.messages.get(branch, []))

    def get_pr_info(self, branch: str) -> Optional[PRInfo]:
        return self.pr_infos.get(branch)

    def upsert_pr_info(self, branch: str, **fields: object) -> None:
        current = self.pr_infos[branch].model_dump() if branch in self.pr_infos else {}
        current.update(fields)
        self.pr_infos[branch] = PRInfo.model_validate(current)

    def _resolve(self, src: str) -> str:
        if src.startswith(REMOTE_PREFIX):
            name = src[len(REMOTE_PREFIX):]
            if name not in self.remote_refs:
                raise GitError(f"Git command failed: src refspec {src} does not match any")
            return self.remote_refs[name]
        return src

    def push_bulk(self, branches: Sequence[RefPushOp], dry_run: bool = False,
                  force_push: bool = False) -> None:
        call = PushCall(list(branches), dry_run, force_push)
        self.pushes.append(call)
        if self.fail_phase_on is not None and self.fail_phase_on(call):
            raise GitError("Git command failed: remote hung up unexpectedly")
        if not force_push:
            stale = [op.dest[len(HEADS_PREFIX):] for op in branches
                     if op.dest[len(HEADS_PREFIX):] in self.moved]
            if stale:
                lines = "\n".join(f" ! [rejected]        {b} -> {b} (stale info)" for b in stale)
                raise StaleInfoError(f"Git command failed: {lines}", stale)
        if dry_run:
            return
        for op in branches:
            name = op.dest[len(HEADS_PREFIX):]
            if op.is_delete:
                if name not in self.remote_refs:
                    raise GitError(f"Git command failed: unable to delete '{name}': remote ref does not exist")
                del self.remote_refs[name]
            else:
                self.remote_refs[name] = self._resolve(op.src)
        for hook in self.after_push:
            hook(self)

    # Helpers for assertions

    def real_pushes(self) -> List[PushCall]:
        return [p for p in self.pushes if not p.dry_run]

@dataclass
class FakeUser:
    login: str

@dataclass
class FakeRef:
    ref: str
    sha: str = ""

@dataclass
class FakeReview:
    state: str
    user: FakeUser

@dataclass
class FakeIssueComment:
    id: int
    body: str
    calls: List[Tuple[str, object]] = field(default_factory=list, repr=False)

    def edit(self, body: str) -> None:
        self.calls.append(("edit_comment", self.id))
        self.body = body

@dataclass
class FakePullRequest:
    """API object for a pull request, backed by the fake's own state."""
    number: int
    title: str
    body: Optional[str]
    base: FakeRef
    head: FakeRef
    draft: bool = False
    state: str = "open"
    merged: bool = False
    html_url: str = ""
    comments: List[FakeIssueComment] = field(default_factory=list)
    reviews: List[FakeReview] = field(default_factory=list)
    review_requests: List[str] = field(default_factory=list)
    github_ref: Optional["FakeGithub"] = field(default=None, repr=False)

    def _record(self, name: str, payload: object = None) -> None:
        if self.github_ref is not None:
            self.github_ref.calls.append((name, self.number, payload))

    def edit(self, title: Optional[str] = None, body: Optional[str] = None,
             base: Optional[str] = None) -> None:
        payload = {k: v for k, v in (("title", title), ("body", body), ("base", base)) if v is not None}
        self._record("edit", payload)
        if self.github_ref is not None:
            self.github_ref.maybe_fail("edit")
            if base is not None:
                self.github_ref.check_branch(base)
        if title is not None:
            self.title = title
        if body is not None:
            self.body = body
        if base is not None:
            self.base = FakeRef(base)

    def convert_to_draft(self) -> None:
        self._record("convert_to_draft")
        self.draft = True

    def mark_ready_for_review(self) -> None:
        self._record("mark_ready_for_review")
        self.draft = False

    def create_review_request(self, reviewers: List[str]) -> None:
        self._record("create_review_request", list(reviewers))
        self.review_requests.extend(reviewers)

    def get_reviews(self) -> List[FakeReview]:
        return list(self.reviews)

    def get_issue_comments(self) -> List[FakeIssueComment]:
        self._record("get_issue_comments")
        return list(self.comments)

    def create_issue_comment(self, body: str) -> FakeIssueComment:
        self._record("create_issue_comment")
        assert self.github_ref is not None
        comment = FakeIssueComment(self.github_ref.next_comment_id(), body, self.github_ref.comment_calls)
        self.comments.append(comment)
        return comment

class FakeGithub:
    """Fake PyGithub: one repository, pull requests keyed by number."""

    def __init__(self, stack: Optional[FakeStack] = None, login: str = "me"):
        self.stack = stack
        self.login = login
        self.pulls: Dict[int, FakePullRequest] = {}
        self.calls: List[Tuple[str, object, object]] = []
        self.comment_calls: List[Tuple[str, object]] = []
        self.failures: Dict[str, Exception] = {}
        self._comment_id = 1000
        if stack is not None:
            stack.after_push.append(self._close_orphaned_prs)

    # PyGithubProtocol

    def get_repo(self, full_name_or_id: str) -> "FakeGithub":
        self.full_name = full_name_or_id
        return self

    def get_user(self, login: Optional[str] = None) -> FakeUser:
        return FakeUser(login or self.login)

    # GitHubRepoProtocol

    def get_pull(self, number: int) -> FakePullRequest:
        self.calls.append(("get_pull", number, None))
        self.maybe_fail("get_pull")
        if number not in self.pulls:
            raise GithubException(404, {"message": "Not Found"}, None)
        return self.pulls[number]

    def create_pull(self, title: str, body: str, base: str, head: str,
                    draft: bool = False) -> FakePullRequest:
        self.calls.append(("create_pull", head, {"base": base, "title": title, "draft": draft}))
        self.maybe_fail("create_pull")
        self.check_branch(base)
        self.check_branch(head)
        number = len(self.pulls) + 1
        pr = FakePullRequest(number, title, body, FakeRef(base), FakeRef(head), draft=draft,
                             html_url=f"https://github.com/acme/widgets/pull/{number}", github_ref=self)
        self.pulls[number] = pr
        return pr

    # Test helpers

    def add_pull(self, head: str, base: str, title: str = "", body: str = "",
                 draft: bool = False) -> FakePullRequest:
        number = len(self.pulls) + 1
        pr = FakePullRequest(number, title or head, body, FakeRef(base), FakeRef(head), draft=draft,
                             html_url=f"https://github.com/acme/widgets/pull/{number}", github_ref=self)
        self.pulls[number] = pr
        return pr

    def next_comment_id(self) -> int:
        self._comment_id += 1
        return self._comment_id

    def maybe_fail(self, method: str) -> None:
        if method in self.failures:
            raise self.failures.pop(method)

    def check_branch(self, branch: str) -> None:
        if self.stack is not None and branch not in self.stack.remote_refs:
            raise GithubException(422, {
                "message": "Validation Failed",
                "errors": [{"resource": "PullRequest", "field": "base", "code": "invalid",
                            "message": f"branch {branch} does not exist"}],
            }, None)

    def writes(self) -> List[Tuple[str, object, object]]:
        return [c for c in self.calls if c[0] not in ("get_pull", "get_issue_comments")]

    def _close_orphaned_prs(self, stack: FakeStack) -> None:
        # GitHub closes a pull request when its base branch is deleted
        for pr in self.pulls.values():
            if pr.state == "open" and pr.base.ref not in stack.remote_refs:
                logger.debug(f"Closing #{pr.number}: base {pr.base.ref} was deleted")
                pr.state = "closed"
