"""
Config commands: show, validate and create the configuration file.
"""

import json
from pathlib import Path

import click

from ..cli_utils import standard_command
from ..config import default_config, get_config_path, load_config, save_config, validate_config
from ..exit_codes import ConfigError, USAGE_ERROR, CommandError
from ..render import render_config_issues


@click.group("config")
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command("show")
@click.option("--pretty", is_flag=True, help="Display as formatted JSON instead of single-line JSONL")
@click.option("--path", is_flag=True, help="Show the config file path being used")
def show_config(pretty, path):
    """Show the current configuration with all merges applied.

    By default, outputs single-line JSON (JSONL format).
    Use --pretty for human-readable formatted output.
    Use --path to see which config file is being used.
    """
    if path:
        print(json.dumps({"config_path": str(get_config_path())}))
        return

    data = load_config().to_dict()
    if data.get('github_token'):
        data['github_token'] = '***'

    if pretty:
        print(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        print(json.dumps(data, ensure_ascii=False))


@config_cmd.command("validate")
@click.option("--pretty", is_flag=True, help="Show problems as a table")
@standard_command
def validate(pretty):
    """Check the configuration and report every problem found."""
    config_path = get_config_path()
    issues = validate_config(load_config(config_path))
    if not issues:
        return {'config_path': str(config_path), 'valid': True}

    if pretty:
        render_config_issues(issues)
    raise ConfigError(
        f"{len(issues)} problem(s) in {config_path}",
        issues=[str(issue) for issue in issues],
    )


@config_cmd.command("init")
@click.option("--path", "path", type=click.Path(dir_okay=False),
              help="Where to write (suffix .json, .toml, .yaml or .yml picks the format)")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
@standard_command
def init(path, force):
    """Write a configuration file with every default filled in."""
    config_path = Path(path).expanduser() if path else get_config_path()
    if config_path.exists() and not force:
        raise CommandError(f"{config_path} already exists (use --force to overwrite)", USAGE_ERROR)
    save_config(default_config(), config_path)
    return {'config_path': str(config_path), 'created': True}
