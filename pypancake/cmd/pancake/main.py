"""CLI entry point."""

import os
import sys
import click
import logging
from typing import Any, Dict, List, NoReturn, Optional, Tuple
from click import Context

from ... import setup_logging
from ...config import Config, default_config
from ...config.config_parser import parse_config, save_user_config
from ...engine import StackEngine
from ...git import GitError, RealGit
from ...github import create_github_client
from ...pretty import print_header, print_results
from ...submit import SubmitOptions, submit_stack
from ...sync import sync_pr_info
from ...typing import PancakeError

# Get module logger
logger = logging.getLogger(__name__)

class AliasedGroup(click.Group):
    """Command group with support for aliases."""

    def __init__(self, name: Optional[str] = None, commands: Optional[Dict[str, click.Command]] = None, **attrs: Any) -> None:
        super().__init__(name, commands, **attrs)
        self.aliases: Dict[str, str] = {}

    def get_command(self, ctx: Context, cmd_name: str) -> Optional[click.Command]:
        """Get a command by name, supporting aliases."""
        if cmd_name in self.aliases:
            cmd_name = self.aliases[cmd_name]
        return super().get_command(ctx, cmd_name)

@click.group(cls=AliasedGroup)
@click.pass_context
def cli(ctx: Context) -> None:
    """Pancake - stacked branches as pull requests on GitHub."""
    ctx.obj = {}

cli.aliases['ss'] = 'submit'

def fail(err: Exception) -> NoReturn:
    """Log a terminating error and exit."""
    logger.error(f"{err}")
    sys.exit(1)

def setup_git(directory: Optional[str] = None) -> Tuple[Config, RealGit]:
    """Setup Git command and config."""
    if directory:
        os.chdir(directory)

    git_cmd = RealGit(default_config())
    try:
        git_cmd.run_cmd("rev-parse --git-dir")
    except GitError as e:
        fail(e)

    config = Config(parse_config(git_cmd))
    return config, RealGit(config)

def current_branch(git_cmd: RealGit) -> str:
    return git_cmd.must_git("rev-parse --abbrev-ref HEAD").strip()

def directory_option(f: Any) -> Any:
    return click.option('-C', '--directory', type=click.Path(exists=True, file_okay=False, dir_okay=True),
                        help='Run as if pc was started in DIRECTORY instead of the current working directory')(f)

def verbose_option(f: Any) -> Any:
    return click.option('-v', '--verbose', count=True,
                        help="Increase verbosity (can be used multiple times for more verbosity)")(f)

@cli.command(name="submit", help="Push the current stack and create or update its pull requests")
@directory_option
@click.option('--draft', is_flag=True, help="Create new PRs as drafts and convert existing ones to drafts")
@click.option('--publish', is_flag=True, help="Create new PRs ready for review and publish existing drafts")
@click.option('--update-only', '-u', is_flag=True, help="Only update branches that already have PRs")
@click.option('--reviewer', '-r', multiple=True, help="Request a review from REVIEWER on newly created PRs")
@click.option('--force', '-f', 'force_push', is_flag=True,
              help="Force push, overwriting remote changes made by someone else")
@click.option('--dry-run', is_flag=True, help="Show what would be submitted without pushing or touching PRs")
@click.option('--always', is_flag=True, help="Update PRs even when their branches have not changed")
@click.option('--no-verify', is_flag=True, help="Skip git push hooks")
@click.option('--stack', '-s', is_flag=True, help="Also submit the descendants of the current branch")
@verbose_option
@click.pass_context
def submit(ctx: Context, directory: Optional[str], draft: bool, publish: bool, update_only: bool,
           reviewer: List[str], force_push: bool, dry_run: bool, always: bool, no_verify: bool,
           stack: bool, verbose: int) -> None:
    """Submit command."""
    setup_logging(verbose)
    options = SubmitOptions(draft=draft, publish=publish, update_only=update_only,
                            reviewers=list(reviewer), always=always, force_push=force_push,
                            dry_run=dry_run)
    try:
        options.validate()
    except PancakeError as e:
        fail(e)

    config, git_cmd = setup_git(directory)
    if no_verify:
        config.user.no_verify = True

    try:
        engine = StackEngine.load(config, git_cmd)
    except GitError as e:
        fail(e)
    try:
        github = create_github_client(config)
        branch_names = engine.get_relative_stack(current_branch(git_cmd), include_descendants=stack)
        print_header("Submitting stack" + (" (dry run)" if dry_run else ""))
        results = submit_stack(engine, github, branch_names, options)
    except (PancakeError, GitError) as e:
        engine.save()
        fail(e)
    engine.save()
    print_results(results)

@cli.command(name="sync", help="Refresh PR titles, states and review decisions from GitHub")
@directory_option
@verbose_option
@click.pass_context
def sync(ctx: Context, directory: Optional[str], verbose: int) -> None:
    """Sync command."""
    setup_logging(verbose)
    config, git_cmd = setup_git(directory)
    try:
        engine = StackEngine.load(config, git_cmd)
        branches = [r.name for r in engine.state.branches if not engine.is_trunk(r.name)]
        refreshed = sync_pr_info(engine, create_github_client(config), branches)
    except (PancakeError, GitError) as e:
        fail(e)
    engine.save()
    click.echo(f"Refreshed {len(refreshed)} PR(s)")

@cli.command(name="track", help="Stack BRANCH on top of a parent branch")
@click.argument('branch', required=False)
@click.option('--parent', '-p', help="Parent branch (defaults to the trunk)")
@directory_option
@verbose_option
@click.pass_context
def track(ctx: Context, branch: Optional[str], parent: Optional[str], directory: Optional[str],
          verbose: int) -> None:
    """Track command."""
    setup_logging(verbose)
    config, git_cmd = setup_git(directory)
    try:
        engine = StackEngine.load(config, git_cmd)
        engine.track(branch or current_branch(git_cmd), parent or engine.trunk)
    except (PancakeError, GitError) as e:
        fail(e)
    engine.save()

@cli.command(name="auth", help="Save a GitHub token for pc to use")
@click.option('--token', '-t', required=True, help="GitHub personal access token")
def auth(token: str) -> None:
    """Auth command."""
    path = save_user_config({'auth_token': token})
    click.echo(f"Saved auth token to {path}")

def main() -> None:
    """Main entry point."""
    cli(obj={})

if __name__ == "__main__":
    main()
