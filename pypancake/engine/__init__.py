"""Branch stack store backed by a YAML file in the git dir."""

import os
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence
import yaml

from ..config.models import PancakeConfig
from ..git import GitError, get_git_dir, is_reserved_branch_name, push_bulk
from ..models import BranchRecord, PRInfo, StackState
from ..typing import GitInterface, PreconditionError, RefPushOp

logger = logging.getLogger(__name__)

class StackStore:
    """Reads and writes StackState at <git-dir>/pancake/stack.yaml."""

    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def for_repo(cls, git_cmd: GitInterface) -> 'StackStore':
        return cls(Path(get_git_dir(git_cmd)) / "pancake" / "stack.yaml")

    def load(self, trunk: str) -> StackState:
        try:
            with open(self.path, 'r') as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            logger.debug(f"No stack state at {self.path}, starting empty")
            return StackState(trunk=trunk)
        return StackState.model_validate(data or {'trunk': trunk})

    def save(self, state: StackState) -> None:
        os.makedirs(self.path.parent, exist_ok=True)
        with open(self.path, 'w') as f:
            yaml.safe_dump(state.model_dump(exclude_none=True), f, default_flow_style=False, sort_keys=False)

class StackEngine:
    """The branch tree plus the git operations the submit pipeline needs.

    Branches live in an arena (`self.state.branches`); a record's parent is the index of
    another record, so the tree never holds object cycles. The trunk is always a record
    with no parent.
    """

    def __init__(self, config: PancakeConfig, git_cmd: GitInterface, state: StackState,
                 store: Optional[StackStore] = None):
        self.config = config
        self.git_cmd = git_cmd
        self.state = state
        self.store = store
        self._index: Dict[str, int] = {}
        for i, record in enumerate(state.branches):
            self._index[record.name] = i
        if state.trunk not in self._index:
            self._add_record(BranchRecord(name=state.trunk))

    @classmethod
    def load(cls, config: PancakeConfig, git_cmd: GitInterface) -> 'StackEngine':
        store = StackStore.for_repo(git_cmd)
        return cls(config, git_cmd, store.load(config.repo.github_branch), store)

    def save(self) -> None:
        if self.store is not None:
            self.store.save(self.state)

    def _add_record(self, record: BranchRecord) -> int:
        self.state.branches.append(record)
        index = len(self.state.branches) - 1
        self._index[record.name] = index
        return index

    def _record(self, branch: str) -> Optional[BranchRecord]:
        index = self._index.get(branch)
        return None if index is None else self.state.branches[index]

    # Tree reads

    @property
    def trunk(self) -> str:
        return self.state.trunk

    @property
    def remote(self) -> str:
        return self.config.repo.github_remote

    def is_trunk(self, branch: str) -> bool:
        return branch == self.state.trunk

    def is_tracked(self, branch: str) -> bool:
        return self.is_trunk(branch) or self.parent(branch) is not None

    def parent(self, branch: str) -> Optional[str]:
        record = self._record(branch)
        if record is None or record.parent is None:
            return None
        return self.state.branches[record.parent].name

    def children(self, branch: str) -> List[str]:
        index = self._index.get(branch)
        if index is None:
            return []
        return [r.name for r in self.state.branches if r.parent == index]

    def get_relative_stack(self, branch: str, include_descendants: bool = False) -> List[str]:
        """Ancestors trunk-first, then `branch`, then optionally its descendants depth-first."""
        if not self.is_tracked(branch):
            raise PreconditionError(f"Branch {branch} is not tracked. Run `pc track {branch} --parent <branch>` first.")
        ancestors: List[str] = []
        current = self.parent(branch)
        while current is not None:
            ancestors.insert(0, current)
            current = self.parent(current)
        result = ancestors + [branch]
        if include_descendants:
            pending = list(reversed(self.children(branch)))
            while pending:
                child = pending.pop()
                result.append(child)
                pending.extend(reversed(self.children(child)))
        return result

    # Tree writes

    def track(self, branch: str, parent: str) -> None:
        """Record `parent` as the parent of `branch`."""
        if is_reserved_branch_name(branch):
            raise PreconditionError(f"Branch names starting with mq/ or temp-mq/ are reserved: {branch}")
        if self.is_trunk(branch):
            raise PreconditionError(f"Cannot give the trunk branch {branch} a parent")
        if not self.is_tracked(parent):
            raise PreconditionError(f"Parent {parent} is not tracked")
        current: Optional[str] = parent
        while current is not None:
            if current == branch:
                raise PreconditionError(f"Tracking {branch} on {parent} would create a cycle")
            current = self.parent(current)
        parent_index = self._index[parent]
        record = self._record(branch)
        if record is None:
            self._add_record(BranchRecord(name=branch, parent=parent_index))
        else:
            record.parent = parent_index
        logger.info(f"Tracked {branch} on {parent}")

    # PR metadata

    def get_pr_info(self, branch: str) -> Optional[PRInfo]:
        record = self._record(branch)
        return None if record is None else record.pr_info

    def upsert_pr_info(self, branch: str, **fields: object) -> None:
        record = self._record(branch)
        if record is None:
            raise PreconditionError(f"Branch {branch} is not tracked")
        current = record.pr_info.model_dump() if record.pr_info else {}
        current.update(fields)
        record.pr_info = PRInfo.model_validate(current)

    # Commits

    def _resolve(self, ref: str) -> Optional[str]:
        try:
            return self.git_cmd.must_git(f"rev-parse --verify --quiet {ref}^{{commit}}").strip() or None
        except GitError:
            return None

    def branch_sha(self, branch: str) -> Optional[str]:
        return self._resolve(f"refs/heads/{branch}")

    def remote_sha(self, branch: str) -> Optional[str]:
        return self._resolve(f"refs/remotes/{self.remote}/{branch}")

    def commit_messages(self, branch: str) -> List[str]:
        parent = self.parent(branch)
        if parent is None:
            return []
        revs = self.git_cmd.must_git(f"rev-list --reverse refs/heads/{parent}..refs/heads/{branch}").split()
        return [self.git_cmd.must_git(f"log -1 --format=%B {rev}").strip() for rev in revs]

    def push_bulk(self, branches: Sequence[RefPushOp], dry_run: bool = False,
                  force_push: bool = False) -> None:
        push_bulk(self.git_cmd, self.remote, branches, dry_run=dry_run,
                  force_push=force_push, no_verify=self.config.user.no_verify)
