#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path

import logging
import sys

import toml
import yaml

from .exit_codes import ConfigError

logger = logging.getLogger("buildsource")

CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. BUILDSOURCE_CONFIG environment variable
    2. ~/.buildsource/ directory
    3. /etc/buildsource/ directory (builds usually run as root)
    """
    # Check for environment variable override
    if 'BUILDSOURCE_CONFIG' in os.environ:
        path = Path(os.environ['BUILDSOURCE_CONFIG'])
        if path.exists():
            return path

    user_dir = Path.home() / '.buildsource'
    for filename in CONFIG_FILENAMES:
        path = user_dir / filename
        if path.exists():
            return path

    system_dir = Path('/etc/buildsource')
    for filename in CONFIG_FILENAMES:
        path = system_dir / filename
        if path.exists():
            return path

    # If no file exists, return default path for saving
    return user_dir / 'config.json'


def read_config_file(config_path: Path) -> dict:
    """Read one configuration file, choosing the format by suffix."""
    suffix = config_path.suffix.lower()
    try:
        if suffix == '.toml':
            with open(config_path, 'rb') as f:
                file_config = tomllib.load(f)
        elif suffix in ['.yaml', '.yml']:
            with open(config_path, 'r') as f:
                file_config = yaml.safe_load(f)
        else:
            # Default to JSON format
            with open(config_path, 'r') as f:
                file_config = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Error loading config from {config_path}: {e}") from e

    if file_config is None:
        return {}
    if not isinstance(file_config, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    return file_config


def load_config():
    """Load configuration from file."""
    config_path = get_config_path()

    # Start with default config
    config = get_default_config()

    # Load from file if it exists
    if config_path.exists():
        config = merge_configs(config, read_config_file(config_path))
        logger.debug(f"Loaded configuration from {config_path}")

    # Apply environment variable overrides
    config = apply_env_overrides(config)

    return config


def save_config(config, config_path=None):
    """Save configuration to file."""
    config_path = Path(config_path) if config_path else get_config_path()

    try:
        # Create directory if it doesn't exist
        config_path.parent.mkdir(parents=True, exist_ok=True)

        if config_path.suffix.lower() in ['.toml']:
            # tomllib is read-only
            with open(config_path, 'w') as f:
                toml.dump(_without_none(config), f)
        elif config_path.suffix.lower() in ['.yaml', '.yml']:
            with open(config_path, 'w') as f:
                yaml.safe_dump(config, f, default_flow_style=False)
        else:
            # Default to JSON format
            with open(config_path, 'w') as f:
                json.dump(config, f, indent=2)
    except OSError as e:
        raise ConfigError(f"Error saving config to {config_path}: {e}") from e

    logger.info(f"Configuration saved to {config_path}")
    return config_path


def _without_none(config):
    # TOML has no null
    return {
        key: _without_none(value) if isinstance(value, dict) else value
        for key, value in config.items()
        if value is not None
    }


def get_default_config():
    """Get default configuration."""
    return {
        "sources": {
            "mirror_root": "/var/lib/solbuild/sources/git",
            "sandbox_source_dir": "/home/build/YPKG/sources",
        },
        "git": {
            "executable": "git",
            "timeout": None,
        },
        "history": {
            "max_entries": 10,
            "manifest_name": "package.yml",
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        },
    }


def setup_logging(config=None, verbose=False):
    """Configure the root logger to stderr from the logging section."""
    config = config or get_default_config()
    log_config = config.get("logging", {})
    level = "DEBUG" if verbose else str(log_config.get("level", "INFO")).upper()

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=log_config.get("format", "%(levelname)s: %(message)s"),
        handlers=[
            logging.StreamHandler(sys.stderr)
        ],
        force=True,
    )


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            # Recursively merge nested dictionaries
            merged[key] = merge_configs(merged[key], value)
        else:
            # Override or add new key
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: BUILDSOURCE_SECTION_KEY
    For example: BUILDSOURCE_HISTORY_MAX_ENTRIES=5
    """
    env_prefix = "BUILDSOURCE_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix) or env_key == "BUILDSOURCE_CONFIG":
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        # Convert value
        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts_from_key = config_key.split('_')
                if key_parts[i : i + len(config_key_parts_from_key)] == config_key_parts_from_key:
                    if len(config_key_parts_from_key) > best_match_len:
                        best_match_len = len(config_key_parts_from_key)
                        matched_key = config_key

            if matched_key:
                # If we are at the end of the env var, we have found the key to set
                if i + best_match_len == len(key_parts):
                    current_level[matched_key] = typed_value
                    break

                # Otherwise, we descend into the dictionary
                if isinstance(current_level[matched_key], dict):
                    current_level = current_level[matched_key]
                    i += best_match_len
                else:
                    # Path conflict, e.g., env var is longer but we found a non-dict value
                    break
            else:
                # No match found
                break

    return config
