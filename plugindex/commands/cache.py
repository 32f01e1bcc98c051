"""
Cache commands: inspect and clear the plugindex cache.
"""

import click

from ..cli_utils import load_checked_config, standard_command
from ..context import StoreContext
from ..exit_codes import PERMISSION_ERROR, CommandError
from ..services.readme_service import validate_repo_name


@click.group("cache")
def cache_cmd():
    """Cache management commands."""
    pass


@cache_cmd.command("clear")
@click.option("--readme", "repo", help="Only drop the cached README of this owner/name")
@standard_command
def clear_cache(repo):
    """
    Delete cached plugin data, READMEs and install catalogues.

    \b
    Examples:
        plugindex cache clear
        plugindex cache clear --readme folke/lazy.nvim
    """
    config = load_checked_config()
    with StoreContext.create(config) as context:
        if repo:
            error = validate_repo_name(repo)
            if error is not None:
                raise error
            cleared = context.readme_cache.clear(repo)
        else:
            cleared = context.clear_caches()

    if not cleared:
        raise CommandError("Some cache files could not be removed", PERMISSION_ERROR)
    return {'cleared': repo or 'all', 'cache_dir': str(config.cache_path)}


@cache_cmd.command("path")
@standard_command
def cache_path():
    """Show the cache directory."""
    config = load_checked_config()
    return {'cache_dir': str(config.cache_path)}
