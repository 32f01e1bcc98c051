"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import logging
import sys
from functools import wraps
from typing import Any, Generator

import click

from .config import load_config, validate_config
from .exit_codes import (
    SUCCESS, INTERRUPTED, CommandError, ConfigError,
    get_exit_code_for_exception,
)
from .format_utils import FORMATS, format_output, get_format_from_env

logger = logging.getLogger(__name__)


def load_checked_config():
    """
    Load configuration and refuse to continue when it is invalid.

    Raises:
        ConfigError: listing every problem found
    """
    config = load_config()
    issues = validate_config(config)
    if issues:
        raise ConfigError(
            "Invalid configuration: " + "; ".join(str(issue) for issue in issues),
            issues=[str(issue) for issue in issues],
        )
    return config


def emit(result: Any, output_format: str, fields=None) -> None:
    if isinstance(result, dict):
        result = [result]
    for line in format_output(iter(result), output_format, fields):
        print(line, flush=True)


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Clean data output on stdout, diagnostics on stderr
    - --format and --fields handling for returned records
    - CommandError exit codes, with a JSON error object on stdout

    The wrapped command returns records (dict, list or generator) or None
    when it printed its own output.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        output_format = kwargs.get('format') or get_format_from_env('jsonl')
        fields_str = kwargs.get('fields')
        fields = fields_str.split(',') if fields_str else None

        try:
            result = func(*args, **kwargs)
            if result is not None:
                if isinstance(result, Generator):
                    result = list(result)
                emit(result, output_format, fields)
            sys.exit(SUCCESS)

        except KeyboardInterrupt:
            click.echo("Interrupted by user", err=True)
            sys.exit(INTERRUPTED)
        except click.ClickException:
            raise
        except CommandError as e:
            click.echo(f"Error: {e}", err=True)
            error_obj = {
                "error": str(e),
                "type": type(e).__name__,
                "exit_code": e.exit_code,
            }
            status = getattr(e, 'status', None)
            if status is not None:
                error_obj['status'] = status
            print(json.dumps(error_obj, ensure_ascii=False), flush=True)
            sys.exit(e.exit_code)
        except Exception as e:
            logger.debug("Unhandled error", exc_info=True)
            click.echo(f"Command failed: {e}", err=True)
            print(json.dumps({"error": str(e), "type": type(e).__name__},
                             ensure_ascii=False), flush=True)
            sys.exit(get_exit_code_for_exception(e))

    return wrapper


# Standard options that many commands share
common_options = {
    'pretty': click.option('--pretty', is_flag=True,
                           help='Display rich formatted output instead of data'),
    'refresh': click.option('--refresh', is_flag=True,
                            help='Bypass the cache and download again'),
    'format': click.option('-f', '--format', type=click.Choice(FORMATS),
                           help='Output format (default: jsonl, or from PLUGINDEX_FORMAT env)'),
    'fields': click.option('--fields',
                           help='Comma-separated list of fields to include'),
}


def add_common_options(*option_names):
    """
    Decorator to add common options to a command.

    Example:
        @add_common_options('pretty', 'format')
        def my_command(pretty, format):
            ...
    """
    def decorator(func):
        for name in reversed(option_names):
            if name in common_options:
                func = common_options[name](func)
        return func
    return decorator


def read_installed_file(path):
    """
    Installed lookup from a JSON object keyed by plugin name, such as a
    lazy-lock.json file. Only the keys are used.
    """
    def provider():
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a JSON object")
        return {name: True for name in data}
    return provider
