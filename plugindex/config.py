#!/usr/bin/env python3
"""
Configuration for plugindex.

Configuration is read from a JSON, TOML or YAML file, merged over the
defaults, overridden by ``PLUGINDEX_*`` environment variables and finally
converted into a typed ``StoreConfig``. ``default_config()`` is the single
place defaults are defined.
"""

import os
import json
import tomllib
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

import logging
import sys

import toml
import yaml

logger = logging.getLogger("plugindex")

ENV_PREFIX = "PLUGINDEX_"

DEFAULT_DATA_SOURCE_URL = (
    "https://gist.githubusercontent.com/alex-popov-tech/"
    "93dcd3ce38cbc7a0b3245b9b59b56c9b/raw/store.nvim-repos.json"
)

DAY = 24 * 60 * 60

READMES_FROM_API = "api"
READMES_FROM_RAW = "raw"
README_SOURCES = (READMES_FROM_API, READMES_FROM_RAW)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class CachePolicy:
    """Max age in seconds for each cache tier of one resource class."""
    memory_max_age: int = DAY
    disk_max_age: int = DAY


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "%(levelname)s: %(message)s"
    file: Optional[str] = None


@dataclass
class StoreConfig:
    """Typed plugindex configuration. Build it with ``default_config()``."""
    data_source_url: str = DEFAULT_DATA_SOURCE_URL
    install_catalogue_urls: Dict[str, str] = field(default_factory=dict)
    plugin_manager: Optional[str] = None
    github_token: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    raw_content_url: str = "https://raw.githubusercontent.com"
    readme_source: str = READMES_FROM_API
    cache_dir: str = ""
    plugins_cache: CachePolicy = field(default_factory=CachePolicy)
    readme_cache: CachePolicy = field(default_factory=CachePolicy)
    install_cache: CachePolicy = field(default_factory=CachePolicy)
    validate_with_head: bool = True
    request_timeout: float = 10.0
    head_timeout: float = 5.0
    debounce_delay: float = 0.15
    max_workers: int = 4
    install_dir: str = "~/.config/nvim"
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def cache_path(self) -> Path:
        return Path(self.cache_dir).expanduser()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StoreConfig':
        """
        Build a config from a (merged) dictionary.

        Unknown keys are ignored with a warning. Values are not validated
        here; call ``validate_config`` for that.
        """
        config = default_config()
        nested = {
            'plugins_cache': CachePolicy,
            'readme_cache': CachePolicy,
            'install_cache': CachePolicy,
            'logging': LoggingConfig,
        }
        for key, value in data.items():
            if not hasattr(config, key):
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            if key in nested and isinstance(value, dict):
                current = asdict(getattr(config, key))
                known = {k: v for k, v in value.items() if k in current}
                for unknown in set(value) - set(current):
                    logger.warning(f"Ignoring unknown config key: {key}.{unknown}")
                current.update(known)
                value = nested[key](**current)
            setattr(config, key, value)
        return config


@dataclass(frozen=True)
class ConfigIssue:
    """One validation problem: dotted key path and message."""
    key: str
    message: str

    def __str__(self) -> str:
        return f"{self.key}: {self.message}"


def default_cache_dir() -> Path:
    base = os.environ.get('XDG_CACHE_HOME') or str(Path.home() / '.cache')
    return Path(base) / 'plugindex'


def default_config() -> StoreConfig:
    """Return the default configuration."""
    return StoreConfig(cache_dir=str(default_cache_dir()))


def get_default_config() -> Dict[str, Any]:
    """Default configuration as a plain dictionary."""
    return default_config().to_dict()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: StoreConfig) -> List[ConfigIssue]:
    """
    Check a configuration.

    Returns:
        List of issues; empty when the configuration is usable
    """
    issues: List[ConfigIssue] = []

    def check(condition: bool, key: str, message: str) -> None:
        if not condition:
            issues.append(ConfigIssue(key, message))

    for key in ('data_source_url', 'github_api_url', 'raw_content_url'):
        value = getattr(config, key)
        check(isinstance(value, str) and value.startswith(('http://', 'https://')),
              key, f"must be an http(s) URL, got {value!r}")

    urls = config.install_catalogue_urls
    if not isinstance(urls, dict):
        issues.append(ConfigIssue('install_catalogue_urls', "must be a mapping of manager to URL"))
    else:
        for variant, url in urls.items():
            check(isinstance(url, str) and url.startswith(('http://', 'https://')),
                  f"install_catalogue_urls.{variant}", f"must be an http(s) URL, got {url!r}")

    check(config.plugin_manager is None or isinstance(config.plugin_manager, str),
          'plugin_manager', "must be a string or null")
    check(config.github_token is None or isinstance(config.github_token, str),
          'github_token', "must be a string or null")
    check(config.readme_source in README_SOURCES,
          'readme_source', f"must be one of {', '.join(README_SOURCES)}")
    check(isinstance(config.cache_dir, str) and bool(config.cache_dir),
          'cache_dir', "must be a non-empty path")
    check(isinstance(config.install_dir, str) and bool(config.install_dir),
          'install_dir', "must be a non-empty path")

    for name in ('plugins_cache', 'readme_cache', 'install_cache'):
        policy = getattr(config, name)
        for tier in ('memory_max_age', 'disk_max_age'):
            value = getattr(policy, tier, None)
            check(_is_number(value) and value >= 0, f"{name}.{tier}",
                  f"must be a non-negative number of seconds, got {value!r}")

    check(isinstance(config.validate_with_head, bool),
          'validate_with_head', "must be a boolean")
    for key in ('request_timeout', 'head_timeout'):
        value = getattr(config, key)
        check(_is_number(value) and value > 0, key, f"must be a positive number, got {value!r}")
    check(_is_number(config.debounce_delay) and config.debounce_delay >= 0,
          'debounce_delay', f"must be a non-negative number, got {config.debounce_delay!r}")
    check(isinstance(config.max_workers, int) and not isinstance(config.max_workers, bool)
          and config.max_workers >= 1,
          'max_workers', f"must be a positive integer, got {config.max_workers!r}")

    if isinstance(config.logging, LoggingConfig):
        level = config.logging.level
        check(isinstance(level, str) and level.upper() in LOG_LEVELS,
              'logging.level', f"must be one of {', '.join(LOG_LEVELS)}")
    else:
        issues.append(ConfigIssue('logging', "must be a mapping"))

    return issues


def get_config_path() -> Path:
    """Get the path to the configuration file.

    Checks in order:
    1. PLUGINDEX_CONFIG environment variable
    2. ~/.plugindex/config.{json,toml,yaml,yml}
    """
    if 'PLUGINDEX_CONFIG' in os.environ:
        return Path(os.environ['PLUGINDEX_CONFIG']).expanduser()

    config_dir = Path.home() / '.plugindex'
    for filename in ['config.json', 'config.toml', 'config.yaml', 'config.yml']:
        path = config_dir / filename
        if path.exists():
            return path

    # If no file exists, return default path for saving
    return config_dir / 'config.json'


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    suffix = config_path.suffix.lower()
    if suffix == '.toml':
        with open(config_path, 'rb') as f:
            return tomllib.load(f)
    if suffix in ('.yaml', '.yml'):
        with open(config_path, 'r') as f:
            return yaml.safe_load(f) or {}
    with open(config_path, 'r') as f:
        return json.load(f)


def load_config_dict(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the merged configuration dictionary (defaults, file, environment)."""
    config_path = config_path or get_config_path()
    config = get_default_config()

    if config_path.exists():
        try:
            file_config = _read_config_file(config_path)
            if isinstance(file_config, dict):
                config = merge_configs(config, file_config)
            else:
                logger.error(f"Ignoring {config_path}: top level must be a mapping")
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Error loading config from {config_path}: {e}")

    return apply_env_overrides(config)


def load_config(config_path: Optional[Path] = None) -> StoreConfig:
    """Load configuration from file and environment."""
    return StoreConfig.from_dict(load_config_dict(config_path))


def save_config(config: StoreConfig, config_path: Optional[Path] = None) -> Path:
    """Save configuration to file, in the format implied by its suffix."""
    config_path = config_path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    data = config.to_dict()
    suffix = config_path.suffix.lower()

    if suffix == '.toml':
        # toml cannot represent None
        with open(config_path, 'w') as f:
            toml.dump(_drop_none(data), f)
    elif suffix in ('.yaml', '.yml'):
        with open(config_path, 'w') as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    else:
        with open(config_path, 'w') as f:
            json.dump(data, f, indent=2)

    logger.info(f"Configuration saved to {config_path}")
    return config_path


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    result = {}
    for key, value in data.items():
        if value is None:
            continue
        result[key] = _drop_none(value) if isinstance(value, dict) else value
    return result


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
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def _typed_env_value(value: str) -> Any:
    if value.lower() in ('true', 'yes', 'on'):
        return True
    if value.lower() in ('false', 'no', 'off'):
        return False
    if value.isdigit():
        return int(value)
    try:
        return float(value)
    except ValueError:
        return value


def apply_env_overrides(config, environ=None):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: PLUGINDEX_SECTION_KEY
    For example: PLUGINDEX_README_CACHE_DISK_MAX_AGE=3600
    """
    environ = os.environ if environ is None else environ

    for env_key, value in environ.items():
        if not env_key.startswith(ENV_PREFIX) or env_key == 'PLUGINDEX_CONFIG':
            continue

        key_parts = env_key[len(ENV_PREFIX):].lower().split('_')
        typed_value = _typed_env_value(value)

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts = config_key.split('_')
                if key_parts[i:i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if matched_key is None:
                break

            if i + best_match_len == len(key_parts):
                current = current_level[matched_key]
                # Optional settings are all strings; tokens can look numeric
                if isinstance(current, str) or current is None:
                    current_level[matched_key] = value
                else:
                    current_level[matched_key] = typed_value
                break

            if isinstance(current_level[matched_key], dict):
                current_level = current_level[matched_key]
                i += best_match_len
            else:
                break

    return config


def configure_logging(config: Optional[StoreConfig] = None, debug: bool = False) -> None:
    """Configure the ``plugindex`` logger from the logging section."""
    settings = config.logging if config and isinstance(config.logging, LoggingConfig) else LoggingConfig()
    level = logging.DEBUG if debug else getattr(logging, str(settings.level).upper(), logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.file:
        log_path = Path(settings.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    root = logging.getLogger("plugindex")
    for handler in list(root.handlers):
        root.removeHandler(handler)
    formatter = logging.Formatter(settings.format)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
