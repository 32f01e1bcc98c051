"""
Rendering functions for plugindex output.

This module handles all pretty-printing. Commands produce data; this module
makes it human-readable with rich.
"""

from typing import Iterable, List, Mapping, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from .domain import Plugin
from .format_utils import format_number
from .sorting import is_installed

console = Console()


def _date(plugin: Plugin, key: str) -> str:
    if plugin.pretty.get(key):
        return plugin.pretty[key]
    value = getattr(plugin, key)
    return value.strftime('%Y-%m-%d') if value else ""


def render_plugin_table(
    plugins: List[Plugin],
    title: Optional[str] = None,
    installed: Optional[Mapping[str, object]] = None,
    installable: int = 0,
) -> None:
    """
    Render plugins as a table.

    Args:
        plugins: Plugins in display order
        title: Table title
        installed: Installed lookup, marks installed rows
        installable: Number of installable plugins shown in the caption
    """
    if not plugins:
        console.print("[yellow]No plugins found.[/yellow]")
        return

    table = Table(
        title=title,
        caption=f"{len(plugins)} plugins, {installable} installable",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Plugin", style="cyan", no_wrap=True)
    table.add_column("Stars", justify="right", style="yellow")
    table.add_column("Issues", justify="right")
    table.add_column("Updated", style="dim")
    table.add_column("Description")

    for plugin in plugins:
        name = escape(plugin.full_name)
        if is_installed(plugin, installed):
            name = f"[green]✓[/green] {name}"
        table.add_row(
            name,
            plugin.pretty.get('stars') or format_number(plugin.stars),
            plugin.pretty.get('issues') or format_number(plugin.issues),
            _date(plugin, 'updated_at'),
            escape(plugin.description or ""),
        )

    console.print(table)


def render_readme(full_name: str, lines: Iterable[str]) -> None:
    """Print sanitized README lines under a header rule."""
    console.rule(f"[bold cyan]{escape(full_name)}[/bold cyan]")
    for line in lines:
        console.print(line, markup=False, highlight=False)


def render_install_plan(plan_dict: Mapping[str, str]) -> None:
    """Show the snippet and target file of an install plan."""
    syntax = Syntax(plan_dict['snippet'], "lua", theme="ansi_dark", word_wrap=True)
    subtitle = f"{plan_dict['variant']} | {plan_dict['provenance']}"
    console.print(Panel(
        syntax,
        title=f"[bold]{escape(plan_dict['full_name'])}[/bold]",
        subtitle=escape(subtitle),
        box=box.ROUNDED,
    ))
    console.print(f"Install to: [cyan]{escape(plan_dict['target_path'])}[/cyan]")


def render_config_issues(issues: Iterable[object]) -> None:
    table = Table(title="Configuration problems", box=box.ROUNDED, header_style="bold red")
    table.add_column("Key", style="cyan")
    table.add_column("Problem")
    for issue in issues:
        table.add_row(escape(issue.key), escape(issue.message))
    console.print(table)
