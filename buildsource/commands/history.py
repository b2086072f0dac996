"""
Handles the 'history' and 'timestamp' commands.

Both mine the tag history of the recipe repository that holds MANIFEST.
"""

import click
import os
from typing import Dict, Any, Generator, Optional

from ..cli_utils import standard_command, add_common_options, get_config
from ..domain.history import PackageHistory
from ..infra.git_client import GitClient
from ..render import render_history_table
from ..services.changelog_service import write_history_xml
from ..services.history_service import HistoryMiner


def mine_history(config: Dict[str, Any], manifest: str,
                 max_entries: Optional[int] = None) -> PackageHistory:
    """Run the history miner with settings from config."""
    git_config = config.get('git', {})
    miner = HistoryMiner(
        git_client=GitClient(
            executable=git_config.get('executable', 'git'),
            timeout=git_config.get('timeout'),
        ),
        max_entries=max_entries or config['history']['max_entries'],
    )
    return miner.mine(manifest)


def resolve_manifest(config: Dict[str, Any], manifest: str) -> str:
    """Accept either the manifest file or the recipe directory."""
    if os.path.isdir(manifest):
        return os.path.join(manifest, config['history']['manifest_name'])
    return manifest


@click.command("history")
@click.argument("manifest", type=click.Path())
@click.option("-o", "--output", type=click.Path(dir_okay=False),
              help="Write history.xml to this file")
@click.option("--max-entries", type=click.IntRange(min=1),
              help="Maximum number of changelog entries (default: history.max_entries)")
@add_common_options('quiet', 'pretty', 'format')
@click.pass_context
@standard_command
def history_handler(ctx, manifest: str, output: Optional[str], max_entries: Optional[int],
                    quiet: bool, pretty: bool,
                    format: Optional[str]) -> Optional[Generator[Dict[str, Any], None, None]]:
    """Build the changelog of a package from its recipe tags.

    MANIFEST is the recipe file (or its directory) at the top level of
    the recipe's git repository.

    \b
    Examples:
        buildsource history packages/n/nano/package.yml
        buildsource history packages/n/nano -o /tmp/history.xml
    """
    config = get_config(ctx)
    history = mine_history(config, resolve_manifest(config, manifest), max_entries)

    if output:
        write_history_xml(history, output)

    updates = (update.to_dict() for update in history.updates)
    if pretty and not quiet:
        render_history_table(list(updates), title=history.manifest_path)
        return None
    return updates


@click.command("timestamp")
@click.argument("manifest", type=click.Path())
@add_common_options('quiet', 'format')
@click.pass_context
@standard_command
def timestamp_handler(ctx, manifest: str, quiet: bool, format: Optional[str]) -> Dict[str, Any]:
    """Print the reproducible build timestamp of a package.

    This is the time of the last version change, so release-only bumps
    keep the same timestamp.
    """
    config = get_config(ctx)
    history = mine_history(config, resolve_manifest(config, manifest))
    newest = history.updates[0]
    return {
        'timestamp': history.last_version_timestamp(),
        'version': newest.version,
        'release': newest.release,
    }
