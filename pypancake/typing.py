"""Common types used across the codebase."""

from dataclasses import dataclass
from typing import List, NewType, Optional, Protocol, Sequence

from .models import PRInfo

CommitSha = NewType('CommitSha', str)

@dataclass(frozen=True)
class RefPushOp:
    """One ref update in a bulk push. An empty `src` deletes `dest`."""
    src: str
    dest: str

    def refspec(self) -> str:
        return f"{self.src}:{self.dest}"

    @property
    def is_delete(self) -> bool:
        return self.src == ""

class GitInterface(Protocol):
    """Protocol for running git commands."""
    def run_cmd(self, command: str) -> str:
        ...

    def must_git(self, command: str) -> str:
        ...

class StackGraph(Protocol):
    """What the submission pipeline needs from the branch stack store."""
    @property
    def trunk(self) -> str:
        ...

    @property
    def remote(self) -> str:
        ...

    def parent(self, branch: str) -> Optional[str]:
        ...

    def children(self, branch: str) -> List[str]:
        ...

    def is_trunk(self, branch: str) -> bool:
        ...

    def branch_sha(self, branch: str) -> Optional[str]:
        """Local tip of `branch`, None if it doesn't resolve."""
        ...

    def remote_sha(self, branch: str) -> Optional[str]:
        """Last observed remote tip of `branch`, None if the remote has no such branch."""
        ...

    def commit_messages(self, branch: str) -> List[str]:
        """Full messages of the commits between the parent and `branch`, oldest first."""
        ...

    def get_pr_info(self, branch: str) -> Optional[PRInfo]:
        ...

    def upsert_pr_info(self, branch: str, **fields: object) -> None:
        ...

    def push_bulk(self, branches: Sequence[RefPushOp], dry_run: bool = False,
                  force_push: bool = False) -> None:
        ...

class PancakeError(Exception):
    """Base class for errors that abort a command."""

class PreconditionError(PancakeError):
    """A precondition failed before anything was changed on the remote."""

class ConflictError(PancakeError):
    """The remote moved since we last observed it."""
    def __init__(self, branches: Sequence[str], message: str):
        self.branches = list(branches)
        super().__init__(message)

class RemoteAPIError(PancakeError):
    """A GitHub API call failed for a branch."""
    def __init__(self, branch: str, phase: str, message: str):
        self.branch = branch
        self.phase = phase
        super().__init__(f"Failed to submit PR for {branch} ({phase}): {message}")

class PushFailedError(PancakeError):
    """A bulk push failed partway through the choreography."""
    def __init__(self, phase: str, message: str):
        self.phase = phase
        super().__init__(f"Push failed during {phase}: {message}")
