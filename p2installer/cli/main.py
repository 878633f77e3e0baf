"""CLI main entry point"""

import click

from p2installer import __version__
from p2installer.cli.install import inspect_cmd, install_cmd


@click.group()
@click.version_option(version=__version__, prog_name="p2install")
def cli():
    """p2install - install OSGi plugins and features into Eclipse dropins"""
    pass


cli.add_command(install_cmd, name="install")
cli.add_command(inspect_cmd, name="inspect")


if __name__ == "__main__":
    cli()
