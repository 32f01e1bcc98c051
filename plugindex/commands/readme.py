"""
Readme command: show a plugin's sanitized README.
"""

import logging

import click

from ..cli_utils import add_common_options, load_checked_config, standard_command
from ..config import READMES_FROM_RAW
from ..context import StoreContext
from ..render import render_readme
from ..services import CatalogueClient, ReadmeFetcher

logger = logging.getLogger(__name__)


@click.command("readme")
@click.argument("repo")
@add_common_options('refresh', 'pretty', 'format')
@standard_command
def readme_handler(repo, refresh, pretty, format):
    """
    Show the README of REPO (owner/name).

    \b
    Examples:
        plugindex readme folke/lazy.nvim --pretty
        plugindex readme nvim-lua/plenary.nvim --refresh
    """
    config = load_checked_config()

    with StoreContext.create(config) as context:
        readme_ref = None
        if config.readme_source == READMES_FROM_RAW:
            # The raw endpoint needs the README path recorded by the crawler
            catalogue = CatalogueClient(context).fetch_plugin_list()
            plugin = catalogue.value.find(repo) if catalogue.ok else None
            if plugin is not None:
                readme_ref = plugin.readme
            else:
                logger.debug(f"No README reference for {repo}, using the default path")

        lines = ReadmeFetcher(context).fetch(repo, force_refresh=refresh,
                                             readme_ref=readme_ref).unwrap()

    if pretty:
        render_readme(repo, lines)
        return None
    return {'full_name': repo, 'lines': lines}
