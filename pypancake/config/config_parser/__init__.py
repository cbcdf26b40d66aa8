"""Config parser logic."""

from pathlib import Path
from typing import Dict, Any, Optional, Tuple
import logging
import re
import yaml

from ...typing import GitInterface

# Get module logger
logger = logging.getLogger(__name__)

RepoConfig = Dict[str, Any]  # Use Any since yaml can return various types
Config = Dict[str, RepoConfig]

REPO_CONFIG_FILE = ".pancake.yaml"

def user_config_path() -> Path:
    """Get path to the user config file."""
    return Path.home() / ".pancake.yml"

def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    if not isinstance(data, dict):
        return {}
    return data

def parse_remote_url(remote_url: str) -> Optional[Tuple[str, str]]:
    """Extract (owner, name) from an SSH or HTTPS remote URL."""
    match = re.search(r'[:/]([^/:]+)/([^/]+?)(?:\.git)?/?$', remote_url.strip())
    if not match:
        return None
    return match.group(1), match.group(2)

def parse_config(git_cmd: GitInterface, repo_root: Optional[Path] = None) -> Config:
    """Parse config from repository and user config files."""
    config: Config = {
        'repo': {
            'github_remote': 'origin',
            'github_branch': 'main',
            'github_host': 'github.com',
        },
        'user': {},
    }

    repo_file = (repo_root or Path.cwd()) / REPO_CONFIG_FILE
    repo_config = _load_yaml(repo_file)
    if repo_config:
        logger.info(f"Loaded {repo_file}")
        if isinstance(repo_config.get('repo'), dict):
            config['repo'].update(repo_config['repo'])
        if isinstance(repo_config.get('user'), dict):
            config['user'].update(repo_config['user'])
    else:
        logger.debug(f"No {REPO_CONFIG_FILE} found, using defaults")

    # User config wins over repo config for user settings
    user_config = _load_yaml(user_config_path())
    config['user'].update(user_config)

    if not config['repo'].get('github_repo_owner') or not config['repo'].get('github_repo_name'):
        remote = config['repo']['github_remote']
        try:
            remote_url = git_cmd.run_cmd(f"remote get-url {remote}")
        except Exception as e:
            logger.error(f"Failed to read url of remote {remote}: {e}")
        else:
            parsed = parse_remote_url(remote_url)
            if parsed:
                owner, name = parsed
                if not config['repo'].get('github_repo_owner'):
                    config['repo']['github_repo_owner'] = owner
                if not config['repo'].get('github_repo_name'):
                    config['repo']['github_repo_name'] = name
            else:
                logger.error(f"Could not parse owner/name from remote url: {remote_url}")

    return config

def save_user_config(updates: Dict[str, Any]) -> Path:
    """Merge `updates` into the user config file and write it back."""
    path = user_config_path()
    data = _load_yaml(path)
    data.update(updates)
    with open(path, 'w') as f:
        yaml.safe_dump(data, f, default_flow_style=False)
    path.chmod(0o600)
    return path
