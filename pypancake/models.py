"""Pydantic models for branch stack metadata."""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field

PRState = Literal['OPEN', 'CLOSED', 'MERGED']
ReviewDecision = Literal['APPROVED', 'CHANGES_REQUESTED', 'REVIEW_REQUIRED']

class PRInfo(BaseModel):
    """Remote pull request metadata attached to a branch."""
    number: Optional[int] = None
    url: Optional[str] = None
    base: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None
    state: Optional[PRState] = None
    review_decision: Optional[ReviewDecision] = None
    is_draft: Optional[bool] = None

class BranchRecord(BaseModel):
    """A tracked branch. `parent` indexes into the owning record list."""
    name: str
    parent: Optional[int] = None
    pr_info: Optional[PRInfo] = None

class StackState(BaseModel):
    """Everything persisted about the stacks of one repository."""
    trunk: str = "main"
    branches: List[BranchRecord] = Field(default_factory=list)
