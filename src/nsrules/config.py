"""
nsrules Configuration

Loads the policy file (ns-rules.yaml by default) and applies environment
variable overrides.

    src-dirs:
      - src
    context-lines: 4
    rules:
      shipping.entity.*:
        restrict-to: [shipping.entity.*]
      shipping.use-case.*:
        restrict-to: [shipping.entity.*, shipping.service.*]

Source directories are resolved relative to the directory holding the file.
Rule patterns are only collected here; nsrules.rules.policy compiles them.
"""

from __future__ import annotations

import os
from collections.abc import Hashable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

CONFIG_FILENAME = "ns-rules.yaml"
DEFAULT_CONTEXT_LINES = 4

SRC_DIRS_KEY = "src-dirs"
RULES_KEY = "rules"
CONTEXT_LINES_KEY = "context-lines"

ENV_CONFIG_PATH = "NSRULES_CONFIG"
ENV_CONTEXT_LINES = "NSRULES_CONTEXT_LINES"


class ConfigError(Exception):
    """The configuration file cannot be used. Fatal to the whole run."""
    def __init__(self, path: Optional[Path], problem: str):
        self.path = path
        self.problem = problem
        where = f" {path}" if path is not None else ""
        super().__init__(f"there was a problem loading the configuration file{where}: {problem}")


class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that rejects a key repeated in one mapping."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            # merge keys (<<) are expanded by SafeLoader itself
            if key_node.tag == "tag:yaml.org,2002:merge":
                continue
            key = self.construct_object(key_node, deep=deep)
            if not isinstance(key, Hashable):
                continue
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping", node.start_mark,
                    f"found duplicate key {key!r}", key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


@dataclass(frozen=True)
class Config:
    """Configuration for a check run."""
    source_dirs: tuple[Path, ...]
    rules: tuple[tuple[Any, Any], ...]
    context_lines: int = DEFAULT_CONTEXT_LINES
    path: Optional[Path] = None


def resolve_config_path(explicit_path: Optional[Path | str] = None) -> Path:
    """Explicit path, then $NSRULES_CONFIG, then ./ns-rules.yaml."""
    if explicit_path:
        return Path(explicit_path)
    if os.environ.get(ENV_CONFIG_PATH):
        return Path(os.environ[ENV_CONFIG_PATH])
    return Path(CONFIG_FILENAME)


def _parse_context_lines(value: Any, path: Optional[Path], origin: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(path, f"{origin} must be a non-negative integer")
    try:
        lines = int(value)
    except (TypeError, ValueError):
        raise ConfigError(path, f"{origin} must be a non-negative integer") from None
    if lines < 0:
        raise ConfigError(path, f"{origin} must be a non-negative integer")
    return lines


def _parse_source_dirs(value: Any, path: Optional[Path], base_dir: Path) -> tuple[Path, ...]:
    if value is None:
        raise ConfigError(path, f"the required key '{SRC_DIRS_KEY}' is missing")
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(d, str) for d in value):
        raise ConfigError(path, f"'{SRC_DIRS_KEY}' must be a list of strings")
    if not value:
        raise ConfigError(path, f"'{SRC_DIRS_KEY}' must contain at least 1 directory")
    return tuple(base_dir / d for d in value)


def _parse_rules(value: Any, path: Optional[Path]) -> tuple[tuple[Any, Any], ...]:
    if value is None:
        raise ConfigError(path, f"the required key '{RULES_KEY}' is missing")
    if not isinstance(value, dict):
        raise ConfigError(path, f"'{RULES_KEY}' must be a map from namespace pattern to rule")
    # YAML mappings keep file order
    return tuple(value.items())


def parse_config(data: Any, path: Optional[Path] = None, base_dir: Optional[Path] = None) -> Config:
    """Build a Config from already-loaded YAML data."""
    if not isinstance(data, dict):
        raise ConfigError(path, "the top level form must be a map")
    if base_dir is None:
        base_dir = path.parent if path is not None else Path(".")

    context_lines = DEFAULT_CONTEXT_LINES
    if data.get(CONTEXT_LINES_KEY) is not None:
        context_lines = _parse_context_lines(data[CONTEXT_LINES_KEY], path, f"'{CONTEXT_LINES_KEY}'")

    return Config(
        source_dirs=_parse_source_dirs(data.get(SRC_DIRS_KEY), path, base_dir),
        rules=_parse_rules(data.get(RULES_KEY), path),
        context_lines=context_lines,
        path=path,
    )


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides."""
    raw = os.environ.get(ENV_CONTEXT_LINES)
    if raw is None or raw == "":
        return config
    context_lines = _parse_context_lines(raw, config.path, ENV_CONTEXT_LINES)
    return Config(config.source_dirs, config.rules, context_lines, config.path)


def load_config(path: Optional[Path | str] = None) -> Config:
    """
    Load configuration from a YAML file.

    Raises:
        ConfigError: the file is missing, unreadable, not valid YAML or malformed
    """
    config_path = resolve_config_path(path)
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.load(f, Loader=_UniqueKeyLoader)
    except OSError as e:
        raise ConfigError(config_path, f"the file could not be read ({e.strerror or e})") from e
    except yaml.YAMLError as e:
        raise ConfigError(config_path, f"the file does not contain valid YAML ({e})") from e

    return _apply_env_overrides(parse_config(data, config_path))
