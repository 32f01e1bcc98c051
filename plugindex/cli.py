#!/usr/bin/env python3

import click

from plugindex.config import configure_logging, load_config
from plugindex.commands.list import list_handler
from plugindex.commands.readme import readme_handler
from plugindex.commands.install import install_handler
from plugindex.commands.cache import cache_cmd
from plugindex.commands.config import config_cmd


@click.group()
@click.version_option(package_name="plugindex")
@click.option("--debug", is_flag=True, help="Log debug messages to stderr")
def cli(debug):
    """plugindex - Browse, search and install Neovim plugins.

    Reads a crawled catalogue of editor plugins, caches it locally and lets
    you filter, sort, read READMEs and create plugin spec files.
    """
    configure_logging(load_config(), debug=debug)


cli.add_command(list_handler)
cli.add_command(readme_handler)
cli.add_command(install_handler)
cli.add_command(cache_cmd)
cli.add_command(config_cmd)


def main():
    cli()


if __name__ == "__main__":
    main()
