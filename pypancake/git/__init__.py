"""Git interfaces and implementation."""

import os
import re
import shlex
import logging
from typing import List, Optional, Sequence
import git
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from ..typing import GitInterface, RefPushOp
from ..config.models import PancakeConfig

# Get module logger
logger = logging.getLogger(__name__)

BASE_BRANCH_PREFIX = "mq/"
TEMP_BASE_BRANCH_PREFIX = "temp-mq/"
RESERVED_PREFIXES = (BASE_BRANCH_PREFIX, TEMP_BASE_BRANCH_PREFIX)

class GitError(Exception):
    """A git command failed."""

class StaleInfoError(GitError):
    """A lease-checked push was rejected because the remote ref moved."""
    def __init__(self, message: str, branches: Sequence[str]):
        super().__init__(message)
        self.branches = list(branches)

def base_branch_name(branch: str) -> str:
    """Protected remote base branch for a stack branch."""
    return f"{BASE_BRANCH_PREFIX}{branch}"

def temp_base_branch_name(branch: str) -> str:
    """Transient indirection branch used while the protected base is rewritten."""
    return f"{TEMP_BASE_BRANCH_PREFIX}{branch}"

def remote_dest(branch: str) -> str:
    return f"refs/heads/{branch}"

def is_reserved_branch_name(branch: str) -> bool:
    return branch.startswith(RESERVED_PREFIXES)

def stale_branches_from_output(output: str) -> List[str]:
    """Branch names git reported as `(stale info)` in push output."""
    return re.findall(r'->\s+(\S+)\s+\(stale info\)', output)

def push_bulk(git_cmd: GitInterface, remote: str, branches: Sequence[RefPushOp],
              dry_run: bool = False, force_push: bool = False, no_verify: bool = False) -> None:
    """Push all `branches` in one `git push`.

    Without `force_push` the push uses --force-with-lease, so a ref that moved on the
    remote since we last fetched it is rejected rather than overwritten.
    """
    if not branches:
        return
    force_option = "--force" if force_push else "--force-with-lease"
    args = ["push", remote, force_option]
    args.extend(op.refspec() for op in branches)
    if no_verify:
        args.append("--no-verify")
    if dry_run:
        args.append("--dry-run")
    try:
        git_cmd.must_git(" ".join(shlex.quote(a) for a in args))
    except GitError as e:
        message = str(e)
        if "stale info" in message:
            stale = stale_branches_from_output(message)
            if not stale:
                stale = [op.dest.replace("refs/heads/", "", 1) for op in branches]
            raise StaleInfoError(message, stale) from e
        raise

def get_git_dir(git_cmd: GitInterface) -> str:
    """Absolute path of the repository's git dir."""
    return git_cmd.must_git("rev-parse --absolute-git-dir").strip()

class RealGit:
    """Real Git implementation."""
    def __init__(self, config: PancakeConfig, path: Optional[str] = None):
        """Initialize with config."""
        self.config: PancakeConfig = config
        self.path = path or os.getcwd()

    def _repo(self) -> git.Repo:
        return git.Repo(self.path, search_parent_directories=True)

    def run_cmd(self, command: str) -> str:
        """Run git command."""
        cmd_str = command.strip()
        logger.info(f"> git {cmd_str}")
        try:
            repo = self._repo()
        except (InvalidGitRepositoryError, NoSuchPathError):
            raise GitError("Not in a git repository")
        cmd_parts = shlex.split(cmd_str)
        method = getattr(repo.git, cmd_parts[0].replace('-', '_'))
        try:
            result = method(*cmd_parts[1:])
        except GitCommandError as e:
            raise GitError(f"Git command failed: {e}") from e
        return result if isinstance(result, str) else str(result)

    def must_git(self, command: str) -> str:
        """Run git command, failing on error."""
        return self.run_cmd(command)
