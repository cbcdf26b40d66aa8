"""Configuration for pytest."""

import logging
import pytest

from pypancake.config import Config
from pypancake.github import GitHubClient
from pypancake.tests.fakes import FakeGithub, FakeStack

logger = logging.getLogger(__name__)

@pytest.fixture
def config() -> Config:
    return Config({
        'repo': {
            'github_remote': 'origin',
            'github_branch': 'main',
            'github_repo_owner': 'acme',
            'github_repo_name': 'widgets',
        },
        'user': {},
    })

@pytest.fixture
def stack() -> FakeStack:
    """main <- a <- b, with main already on the remote."""
    fake = FakeStack("main")
    fake.local["main"] = "m" * 40
    fake.remote_refs["main"] = "m" * 40
    fake.add("a", "main", "a" * 40, "Add a\n\nBody of a")
    fake.add("b", "a", "b" * 40, "Add b")
    return fake

@pytest.fixture
def fake_github(stack: FakeStack) -> FakeGithub:
    return FakeGithub(stack)

@pytest.fixture
def github(config: Config, fake_github: FakeGithub) -> GitHubClient:
    return GitHubClient(config, fake_github)
