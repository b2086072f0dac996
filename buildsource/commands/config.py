import click
import json
import os

from ..config import get_config_path, get_default_config, save_config
from ..exit_codes import ConfigError
from ..cli_utils import get_config


@click.group("config")
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command("show")
@click.option("--pretty", is_flag=True, help="Display as formatted JSON instead of single-line JSONL")
@click.option("--path", is_flag=True, help="Show the config file path being used")
@click.pass_context
def show_config(ctx, pretty, path):
    """Show the current configuration with all merges applied.

    By default, outputs single-line JSON (JSONL format).
    Use --pretty for human-readable formatted output.
    Use --path to see which config file is being used.
    """
    if path:
        print(json.dumps({"config_path": str(get_config_path())}))
        return

    config = get_config(ctx)

    if pretty:
        print(json.dumps(config, indent=2, ensure_ascii=False))
    else:
        print(json.dumps(config, ensure_ascii=False))


@config_cmd.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file")
@click.argument("path", required=False, type=click.Path(dir_okay=False))
def init_config(force, path):
    """Write the default configuration to PATH.

    PATH defaults to the active config location. The format follows the
    suffix (.json, .toml, .yaml).
    """
    config_path = path or str(get_config_path())
    if os.path.exists(config_path) and not force:
        raise click.ClickException(f"{config_path} already exists (use --force to overwrite)")

    try:
        written = save_config(get_default_config(), config_path)
    except ConfigError as e:
        raise click.ClickException(str(e))
    click.echo(f"Default configuration written to {written}")
