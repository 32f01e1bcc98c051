"""
Install command: write a plugin spec file for a package manager.
"""

import click

from ..cli_utils import add_common_options, load_checked_config, standard_command
from ..context import StoreContext
from ..domain import MANAGER_VARIANTS
from ..exit_codes import NoPluginsFoundError
from ..render import console, render_install_plan
from ..services import PluginFileWriter, StoreSession


@click.command("install")
@click.argument("repo")
@click.option("-m", "--manager", type=click.Choice(MANAGER_VARIANTS),
              help="Package manager (default: plugin_manager from config, else lazy.nvim)")
@click.option("--path", "target", type=click.Path(dir_okay=False),
              help="Write to this file instead of the proposed one")
@click.option("--dry-run", is_flag=True, help="Show the plan without writing anything")
@add_common_options('refresh', 'pretty', 'format')
@standard_command
def install_handler(repo, manager, target, dry_run, refresh, pretty, format):
    """
    Create the plugin file for REPO (owner/name).

    The file is never overwritten if it already exists.

    \b
    Examples:
        plugindex install folke/trouble.nvim --dry-run --pretty
        plugindex install echasnovski/mini.nvim --manager vim.pack
    """
    config = load_checked_config()

    with StoreContext.create(config, background=True) as context:
        session = StoreSession(context)
        report = session.load(force_refresh=refresh)
        if not report.ok:
            raise report.plugins.error

        plugin = session.find(repo)
        if plugin is None:
            raise NoPluginsFoundError(f"Plugin '{repo}' is not in the catalogue")

        plan = session.prepare_install(plugin, manager).unwrap()

    record = plan.to_dict()
    if target:
        record['target_path'] = target

    if not dry_run:
        written = PluginFileWriter().write(plan, path=target).unwrap()
        record['written'] = str(written)

    if pretty:
        render_install_plan(record)
        if not dry_run:
            console.print(f"[green]Created {record['written']}[/green]")
        return None
    return record
