"""Adapter classes to wrap PyGithub objects with our protocol interfaces."""

from typing import List, Optional, Union
import logging

from github import Github
from github.AuthenticatedUser import AuthenticatedUser
from github.GithubObject import NotSet
from github.IssueComment import IssueComment
from github.NamedUser import NamedUser
from github.PullRequest import PullRequest as PyGithubPullRequest
from github.PullRequestReview import PullRequestReview
from github.Repository import Repository

from . import (
    GitHubIssueCommentProtocol,
    GitHubPullRequestProtocol,
    GitHubRefProtocol,
    GitHubRepoProtocol,
    GitHubReviewProtocol,
    GitHubUserProtocol,
    PyGithubProtocol,
)

logger = logging.getLogger(__name__)


class PyGithubUserAdapter(GitHubUserProtocol):
    """Adapter for PyGithub NamedUser or AuthenticatedUser objects."""

    def __init__(self, user: Union[NamedUser, AuthenticatedUser]) -> None:
        self._user = user

    @property
    def login(self) -> str:
        return self._user.login


class PyGithubReviewAdapter(GitHubReviewProtocol):
    """Adapter for PyGithub PullRequestReview objects."""

    def __init__(self, review: PullRequestReview) -> None:
        self._review = review

    @property
    def state(self) -> str:
        return self._review.state

    @property
    def user(self) -> GitHubUserProtocol:
        return PyGithubUserAdapter(self._review.user)


class PyGithubIssueCommentAdapter(GitHubIssueCommentProtocol):
    """Adapter for PyGithub IssueComment objects."""

    def __init__(self, comment: IssueComment) -> None:
        self._comment = comment

    @property
    def id(self) -> int:
        return self._comment.id

    @property
    def body(self) -> str:
        return self._comment.body or ""

    def edit(self, body: str) -> None:
        self._comment.edit(body)


class PyGithubPullRequestAdapter(GitHubPullRequestProtocol):
    """Adapter for PyGithub PullRequest objects."""

    def __init__(self, pr: PyGithubPullRequest) -> None:
        self._pr = pr

    @property
    def number(self) -> int:
        return self._pr.number

    @property
    def title(self) -> str:
        return self._pr.title

    @property
    def body(self) -> Optional[str]:
        return self._pr.body

    @property
    def state(self) -> str:
        return self._pr.state

    @property
    def merged(self) -> bool:
        return self._pr.merged

    @property
    def draft(self) -> bool:
        return bool(self._pr.draft)

    @property
    def html_url(self) -> str:
        return self._pr.html_url

    @property
    def base(self) -> GitHubRefProtocol:
        return self._pr.base

    @property
    def head(self) -> GitHubRefProtocol:
        return self._pr.head

    def edit(self, title: Optional[str] = None, body: Optional[str] = None,
             base: Optional[str] = None) -> None:
        """Edit the pull request."""
        # Convert None to NotSet for PyGithub so unset fields aren't sent
        self._pr.edit(
            title=title if title is not None else NotSet,
            body=body if body is not None else NotSet,
            base=base if base is not None else NotSet,
        )

    def convert_to_draft(self) -> None:
        self._pr.convert_to_draft()

    def mark_ready_for_review(self) -> None:
        self._pr.mark_ready_for_review()

    def create_review_request(self, reviewers: List[str]) -> None:
        self._pr.create_review_request(reviewers=reviewers)

    def get_reviews(self) -> List[GitHubReviewProtocol]:
        return [PyGithubReviewAdapter(r) for r in self._pr.get_reviews()]

    def get_issue_comments(self) -> List[GitHubIssueCommentProtocol]:
        return [PyGithubIssueCommentAdapter(c) for c in self._pr.get_issue_comments()]

    def create_issue_comment(self, body: str) -> GitHubIssueCommentProtocol:
        return PyGithubIssueCommentAdapter(self._pr.create_issue_comment(body))


class PyGithubRepoAdapter(GitHubRepoProtocol):
    """Adapter for PyGithub Repository objects."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def get_pull(self, number: int) -> GitHubPullRequestProtocol:
        return PyGithubPullRequestAdapter(self._repo.get_pull(number))

    def create_pull(self, title: str, body: str, base: str, head: str,
                    draft: bool = False) -> GitHubPullRequestProtocol:
        pr = self._repo.create_pull(base=base, head=head, title=title, body=body, draft=draft)
        return PyGithubPullRequestAdapter(pr)


class PyGithubAdapter(PyGithubProtocol):
    """Adapter for the main PyGithub object."""

    def __init__(self, github: Github) -> None:
        self._github = github

    def get_repo(self, full_name_or_id: str) -> GitHubRepoProtocol:
        return PyGithubRepoAdapter(self._github.get_repo(full_name_or_id))

    def get_user(self, login: Optional[str] = None) -> Optional[GitHubUserProtocol]:
        """Get a user by login or the authenticated user if login is None."""
        if login is None:
            user = self._github.get_user()
        else:
            user = self._github.get_user(login)
        return PyGithubUserAdapter(user) if user else None
