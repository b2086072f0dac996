"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import logging
import sys
import click
from functools import wraps
from typing import Any, Dict, Generator, Iterator, Optional

import yaml

from .exit_codes import (
    SUCCESS, INTERRUPTED,
    get_exit_code_for_exception, CommandError
)

logger = logging.getLogger(__name__)


def format_output(data: Iterator[Dict[str, Any]], format: str) -> Iterator[str]:
    """
    Format data according to the specified format.

    Args:
        data: Iterator of dictionaries to format
        format: Output format (json, jsonl, yaml)

    Yields:
        Formatted strings for output
    """
    if format == "jsonl":
        for item in data:
            yield json.dumps(item, ensure_ascii=False)
    elif format == "json":
        # Collect all data (needed for JSON array)
        yield json.dumps(list(data), ensure_ascii=False, indent=2)
    elif format == "yaml":
        yield yaml.dump(list(data), default_flow_style=False, allow_unicode=True, sort_keys=False)
    else:
        raise ValueError(f"Unknown format: {format}")


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Clean data output on stdout (JSONL by default)
    - Automatic --quiet/-q handling to suppress data output
    - Consistent error handling and exit codes

    The wrapped command returns a dict, a list or a generator of dicts,
    or None when it handled its own output (e.g. --pretty tables).
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        quiet = kwargs.get('quiet', False)
        output_format = kwargs.get('format') or 'jsonl'

        try:
            result = func(*args, **kwargs)

            if result is None:
                # Command handles its own output
                pass
            elif quiet:
                # In quiet mode, consume the generator but don't output
                if isinstance(result, Generator):
                    for _ in result:
                        pass
            else:
                if isinstance(result, dict):
                    result = [result]
                for line in format_output(iter(result), output_format):
                    print(line, flush=True)

            sys.exit(SUCCESS)

        except KeyboardInterrupt:
            logger.error("Interrupted by user")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except CommandError as e:
            logger.error(str(e))
            if not quiet:
                error_obj = {
                    "error": str(e),
                    "type": type(e).__name__,
                    "exit_code": e.exit_code
                }
                print(json.dumps(error_obj, ensure_ascii=False), flush=True)
            sys.exit(e.exit_code)
        except Exception as e:
            logger.error(f"Command failed: {e}")
            if not quiet:
                error_obj = {
                    "error": str(e),
                    "type": type(e).__name__
                }
                print(json.dumps(error_obj, ensure_ascii=False), flush=True)
            sys.exit(get_exit_code_for_exception(e))

    return wrapper


# Standard options that many commands share
common_options = {
    'quiet': click.option('-q', '--quiet', is_flag=True,
                         help='Suppress data output, show only logs'),
    'pretty': click.option('--pretty', is_flag=True,
                          help='Render a table instead of JSON lines'),
    'format': click.option('-f', '--format',
                         type=click.Choice(['json', 'jsonl', 'yaml']),
                         help='Output format (default: jsonl)'),
}


def add_common_options(*option_names: str):
    """
    Decorator to add common options to a command.

    Example:
        @add_common_options('quiet', 'pretty')
        def my_command(quiet, pretty):
            ...
    """
    def decorator(func):
        for name in reversed(option_names):
            if name in common_options:
                func = common_options[name](func)
        return func
    return decorator


def get_config(ctx: Optional[click.Context]) -> Dict[str, Any]:
    """Configuration loaded by the top-level group."""
    ctx = ctx or click.get_current_context()
    return ctx.find_root().obj['config']
