"""GitHub interfaces and implementation."""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import yaml
from github import GithubException

from ..config.models import PancakeConfig
from ..typing import PreconditionError

# Get module logger
logger = logging.getLogger(__name__)

# Define protocols for GitHub objects
@runtime_checkable
class GitHubUserProtocol(Protocol):
    """Protocol for GitHub user objects (real or fake)."""
    @property
    def login(self) -> str:
        ...

@runtime_checkable
class GitHubRefProtocol(Protocol):
    """Protocol for the head/base refs of a pull request."""
    @property
    def ref(self) -> str:
        ...

    @property
    def sha(self) -> str:
        ...

@runtime_checkable
class GitHubReviewProtocol(Protocol):
    """Protocol for pull request reviews."""
    @property
    def state(self) -> str:
        ...

    @property
    def user(self) -> GitHubUserProtocol:
        ...

@runtime_checkable
class GitHubIssueCommentProtocol(Protocol):
    """Protocol for issue comments."""
    @property
    def id(self) -> int:
        ...

    @property
    def body(self) -> str:
        ...

    def edit(self, body: str) -> None:
        ...

@runtime_checkable
class GitHubPullRequestProtocol(Protocol):
    """Protocol for GitHub pull request objects (real or fake)."""
    @property
    def number(self) -> int:
        ...

    @property
    def title(self) -> str:
        ...

    @property
    def body(self) -> Optional[str]:
        ...

    @property
    def state(self) -> str:
        ...

    @property
    def merged(self) -> bool:
        ...

    @property
    def draft(self) -> bool:
        ...

    @property
    def html_url(self) -> str:
        ...

    @property
    def base(self) -> GitHubRefProtocol:
        ...

    @property
    def head(self) -> GitHubRefProtocol:
        ...

    def edit(self, title: Optional[str] = None, body: Optional[str] = None,
             base: Optional[str] = None) -> None:
        """Patch the pull request. Fields left as None are not sent."""
        ...

    def convert_to_draft(self) -> None:
        ...

    def mark_ready_for_review(self) -> None:
        ...

    def create_review_request(self, reviewers: List[str]) -> None:
        ...

    def get_reviews(self) -> List[GitHubReviewProtocol]:
        ...

    def get_issue_comments(self) -> List[GitHubIssueCommentProtocol]:
        ...

    def create_issue_comment(self, body: str) -> GitHubIssueCommentProtocol:
        ...

@runtime_checkable
class GitHubRepoProtocol(Protocol):
    """Protocol for GitHub repository objects (real or fake)."""
    def get_pull(self, number: int) -> GitHubPullRequestProtocol:
        ...

    def create_pull(self, title: str, body: str, base: str, head: str,
                    draft: bool = False) -> GitHubPullRequestProtocol:
        ...

@runtime_checkable
class PyGithubProtocol(Protocol):
    """Protocol for PyGithub implementations (real or fake)."""
    def get_repo(self, full_name_or_id: str) -> GitHubRepoProtocol:
        ...

    def get_user(self, login: Optional[str] = None) -> Optional[GitHubUserProtocol]:
        ...

NO_TOKEN_MESSAGE = (
    "No GitHub token found. Try one of:\n"
    "1. Set GITHUB_TOKEN env var\n"
    "2. Run `pc auth --token <YOUR_GITHUB_TOKEN>`\n"
    "3. Log in with `gh auth login`"
)

def find_github_token(config: PancakeConfig, host: str = "github.com") -> Optional[str]:
    """Find GitHub token from env var, user config, or gh CLI config."""
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    if config.user.auth_token:
        return config.user.auth_token

    gh_config_path = Path.home() / ".config" / "gh" / "hosts.yml"
    try:
        with open(gh_config_path, "r") as f:
            gh_config = yaml.safe_load(f)
    except FileNotFoundError:
        return None
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error reading gh CLI config: {e}")
        return None
    if isinstance(gh_config, dict) and isinstance(gh_config.get(host), dict):
        token = gh_config[host].get("oauth_token")
        if isinstance(token, str) and token:
            return token
    return None

def require_github_token(config: PancakeConfig) -> str:
    token = find_github_token(config, config.repo.github_host)
    if not token:
        raise PreconditionError(NO_TOKEN_MESSAGE)
    return token

def parse_api_error(error: Exception) -> str:
    """Pull the human readable message out of a GitHub API error.

    PyGithub keeps the decoded response payload on `GithubException.data`; other
    errors may carry a JSON document shaped like `{"response": {"data": {"message": ...}}}`.
    Anything else is passed through verbatim.
    """
    if isinstance(error, GithubException) and isinstance(error.data, dict):
        data: Dict[str, Any] = error.data
        message = data.get("message")
        if message:
            details = [e.get("message") for e in data.get("errors") or []
                       if isinstance(e, dict) and e.get("message")]
            if details:
                return f"{message}: {'; '.join(details)}"
            return str(message)
    raw = str(error)
    try:
        payload = json.loads(raw)
    except ValueError:
        return raw
    response = payload.get("response") if isinstance(payload, dict) else None
    data = response.get("data") if isinstance(response, dict) else None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return raw

class GitHubClient:
    """Thin wrapper over the pull request calls the submit pipeline makes."""

    def __init__(self, config: PancakeConfig, github_client: PyGithubProtocol):
        self.config = config
        self.client = github_client
        self._repo: Optional[GitHubRepoProtocol] = None

    def _required(self, key: str) -> str:
        value = getattr(self.config.repo, key)
        if not value:
            raise PreconditionError(f"{key} is not configured and could not be read from the git remote")
        return value

    @property
    def owner(self) -> str:
        return self._required("github_repo_owner")

    @property
    def name(self) -> str:
        return self._required("github_repo_name")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def host(self) -> str:
        return self.config.repo.github_host

    @property
    def repo(self) -> GitHubRepoProtocol:
        if self._repo is None:
            self._repo = self.client.get_repo(self.full_name)
        return self._repo

    @property
    def pull_url_prefix(self) -> str:
        return f"https://{self.host}/{self.owner}/{self.name}/pull"

    def get_pull(self, number: int) -> GitHubPullRequestProtocol:
        logger.debug(f"> github get #{number}")
        return self.repo.get_pull(number)

    def create_pull(self, head: str, base: str, title: str, body: str,
                    draft: bool = False) -> GitHubPullRequestProtocol:
        logger.info(f"> github create {head} -> {base} : {title}")
        return self.repo.create_pull(title=title, body=body, base=base, head=head, draft=draft)

    def edit_pull(self, pr: GitHubPullRequestProtocol, title: Optional[str] = None,
                  body: Optional[str] = None, base: Optional[str] = None) -> None:
        fields = [name for name, value in (("title", title), ("body", body), ("base", base)) if value is not None]
        logger.info(f"> github update #{pr.number} : {', '.join(fields)}")
        pr.edit(title=title, body=body, base=base)

    def set_draft(self, pr: GitHubPullRequestProtocol, draft: bool) -> None:
        if draft:
            logger.info(f"> github convert to draft #{pr.number}")
            pr.convert_to_draft()
        else:
            logger.info(f"> github ready for review #{pr.number}")
            pr.mark_ready_for_review()

    def add_reviewers(self, pr: GitHubPullRequestProtocol, reviewers: List[str]) -> None:
        """Request reviews, filtering out the authenticated user."""
        me = self.client.get_user()
        current_user = me.login.lower() if me else ""
        filtered = [r for r in reviewers if r.lower() != current_user]
        if not filtered:
            logger.debug(f"No valid reviewers for PR #{pr.number} after filtering self-review")
            return
        logger.info(f"> github add reviewers #{pr.number} : {filtered}")
        pr.create_review_request(reviewers=filtered)

    def list_issue_comments(self, number: int) -> List[GitHubIssueCommentProtocol]:
        return list(self.get_pull(number).get_issue_comments())

    def create_issue_comment(self, number: int, body: str) -> GitHubIssueCommentProtocol:
        logger.info(f"> github add comment #{number}")
        return self.get_pull(number).create_issue_comment(body)

    def edit_issue_comment(self, number: int, comment: GitHubIssueCommentProtocol, body: str) -> None:
        logger.info(f"> github update comment #{number} ({comment.id})")
        comment.edit(body)

def create_github_client(config: PancakeConfig) -> GitHubClient:
    """Build a client talking to the real GitHub API."""
    from github import Auth, Github
    from .adapters import PyGithubAdapter

    token = require_github_token(config)
    if config.repo.github_host == "github.com":
        real_github = Github(auth=Auth.Token(token))
    else:
        real_github = Github(auth=Auth.Token(token), base_url=f"https://{config.repo.github_host}/api/v3")
    client = GitHubClient(config, PyGithubAdapter(real_github))
    logger.debug(f"> github repo {client.full_name}")
    return client
