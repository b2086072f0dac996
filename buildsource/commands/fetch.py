"""
Handles the 'fetch' and 'bind' commands for git source mirrors.

Default output is JSONL; --pretty renders a table.
"""

import click
from typing import Dict, Any, Optional

from ..cli_utils import standard_command, add_common_options, get_config
from ..render import render_source_table
from ..services.source_service import GitSourceResolver


@click.command("fetch")
@click.argument("uri")
@click.argument("ref")
@add_common_options('quiet', 'pretty', 'format')
@click.pass_context
@standard_command
def fetch_handler(ctx, uri: str, ref: str, quiet: bool, pretty: bool,
                  format: Optional[str]) -> Optional[Dict[str, Any]]:
    """Clone or update the mirror of URI and check out REF.

    REF is a full commit id, or a branch, tag or other revision.

    \b
    Examples:
        buildsource fetch https://github.com/getsolus/solbuild.git v1.5.0
        buildsource fetch https://git.example.org/lib/foo master --pretty
    """
    resolver = GitSourceResolver.from_uri(uri, ref, config=get_config(ctx))
    if not resolver.is_fetched():
        resolver.fetch()

    result = resolver.to_dict()
    if pretty and not quiet:
        render_source_table(result)
        return None
    return result


@click.command("bind")
@click.argument("uri")
@click.argument("ref")
@click.argument("sandbox_dir", required=False)
@add_common_options('quiet', 'format')
@click.pass_context
@standard_command
def bind_handler(ctx, uri: str, ref: str, sandbox_dir: Optional[str], quiet: bool,
                 format: Optional[str]) -> Dict[str, Any]:
    """Show how the mirror of URI is mounted into the sandbox.

    SANDBOX_DIR defaults to the configured sources.sandbox_source_dir.
    Nothing is fetched or mounted.
    """
    config = get_config(ctx)
    resolver = GitSourceResolver.from_uri(uri, ref, config=config)
    sandbox_dir = sandbox_dir or config['sources']['sandbox_source_dir']

    result = resolver.get_bind_configuration(sandbox_dir).to_dict()
    result['identifier'] = resolver.get_identifier()
    return result
