#!/usr/bin/env python3

import json
import sys

import click

from buildsource import __version__
from buildsource.config import load_config, setup_logging
from buildsource.exit_codes import ConfigError
from buildsource.commands.fetch import fetch_handler, bind_handler
from buildsource.commands.history import history_handler, timestamp_handler
from buildsource.commands.config import config_cmd


@click.group()
@click.version_option(version=__version__, prog_name="buildsource")
@click.option('-v', '--verbose', is_flag=True, help='Log git commands and other debug output')
@click.pass_context
def cli(ctx, verbose):
    """buildsource - Git source mirrors and changelogs for package builds.

    Prepares pinned git source trees for bind mounting into a build
    sandbox, and reconstructs a package's changelog from the tags of its
    recipe repository.
    """
    try:
        config = load_config()
    except ConfigError as e:
        setup_logging(verbose=verbose)
        click.echo(json.dumps({"error": str(e), "type": type(e).__name__,
                               "exit_code": e.exit_code}), err=True)
        ctx.exit(e.exit_code)

    setup_logging(config, verbose=verbose)
    ctx.obj = {'config': config}


cli.add_command(fetch_handler, name='fetch')
cli.add_command(bind_handler, name='bind')
cli.add_command(history_handler, name='history')
cli.add_command(timestamp_handler, name='timestamp')
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    sys.exit(main() or 0)
