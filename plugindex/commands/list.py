"""
List command: browse, filter and sort the plugin catalogue.
"""

import click

from ..cli_utils import (
    add_common_options, load_checked_config, read_installed_file, standard_command,
)
from ..context import StoreContext
from ..exit_codes import NoPluginsFoundError
from ..render import render_plugin_table
from ..services import StoreSession
from ..sorting import SORT_KEYS, SortKey, is_installed


@click.command("list")
@click.argument("query", required=False, default="")
@click.option("-s", "--sort", "sort_key", type=click.Choice(SORT_KEYS), default="default",
              show_default=True, help="Sort order")
@click.option("-n", "--limit", type=int, help="Show at most this many plugins")
@click.option("--installed", "installed_path", type=click.Path(dir_okay=False),
              help="JSON file keyed by installed plugin name (e.g. lazy-lock.json)")
@add_common_options('refresh', 'pretty', 'format', 'fields')
@standard_command
def list_handler(query, sort_key, limit, installed_path, refresh, pretty, format, fields):
    """
    List plugins matching QUERY.

    \b
    QUERY is a ';'-separated list of criteria. A bare term searches the
    full name; field:value searches one field. Fields: full_name, author,
    name, description, tags, homepage. tags:a,b matches either tag.

    \b
    Examples:
        plugindex list telescope
        plugindex list "author:folke;tags:ui,colorscheme" --sort most_stars
        plugindex list --installed ~/.config/nvim/lazy-lock.json --sort installed --pretty
    """
    config = load_checked_config()
    provider = read_installed_file(installed_path) if installed_path else None

    with StoreContext.create(config, background=True) as context:
        session = StoreSession(context, installed_provider=provider)
        report = session.load(force_refresh=refresh)
        for warning in report.warnings:
            click.echo(f"Warning: {warning}", err=True)
        if not report.ok:
            raise report.plugins.error

        plugins = session.view(query, sort_key).unwrap()
        if not plugins:
            raise NoPluginsFoundError(f"No plugins match '{query}'")
        if limit is not None:
            plugins = plugins[:limit]

        if pretty:
            render_plugin_table(
                plugins,
                title=f"Plugins ({SortKey.lookup(sort_key).label})",
                installed=session.installed,
                installable=session.installable_count(plugins),
            )
            return None

        records = []
        for plugin in plugins:
            record = plugin.to_dict()
            record['installed'] = is_installed(plugin, session.installed)
            record['installable'] = (plugin.full_name in session.install_catalogue
                                     or plugin.snippet_for(session.variant) is not None)
            records.append(record)
        return records
