"""Pydantic models for config types."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class RepoConfig(BaseModel):
    """Repository configuration."""
    model_config = ConfigDict(extra="allow")

    github_remote: str = "origin"
    github_branch: str = "main"
    github_repo_owner: Optional[str] = None
    github_repo_name: Optional[str] = None
    github_host: str = "github.com"

class UserConfig(BaseModel):
    """User configuration."""
    model_config = ConfigDict(extra="allow")

    auth_token: Optional[str] = None
    no_verify: bool = False

class PancakeConfig(BaseModel):
    """Full pypancake configuration."""
    model_config = ConfigDict(extra="allow")

    repo: RepoConfig = Field(default_factory=RepoConfig)
    user: UserConfig = Field(default_factory=UserConfig)
