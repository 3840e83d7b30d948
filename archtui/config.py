"""
Configuration file loading.

A configuration file pre-answers the installer's questions. Two formats
are accepted:

  * shell style ``KEY=value`` lines (``#`` comments, shell quoting and an
    optional leading ``export``), the format of the classic install.conf
  * a JSON object with the same keys, in upper or lower case

Anything left out is asked for interactively when its stage runs.
"""

from __future__ import annotations

import json
import logging
import shlex
from dataclasses import fields
from pathlib import Path

from archtui.exceptions import ConfigError
from archtui.types import Bootloader, Filesystem, InstallConfig
from archtui.validations import validate_config

logger = logging.getLogger(__name__)

TRUE_VALUES = ("1", "true", "yes", "y", "on")
FALSE_VALUES = ("0", "false", "no", "n", "off")

BOOLEAN_FIELDS = ("install_wifi", "install_base_devel", "enable_multilib", "install_extras", "enable_ssh")
KNOWN_KEYS = tuple(f.name for f in fields(InstallConfig))


def parse_bool(value: object) -> bool | None:
  if isinstance(value, bool):
    return value

  text = str(value).strip().lower()
  if text in TRUE_VALUES:
    return True
  if text in FALSE_VALUES:
    return False
  return None


def parse_shell_config(text: str) -> dict[str, str]:
  """Parse KEY=value assignments; lines that are not assignments are skipped."""
  values: dict[str, str] = {}
  for number, line in enumerate(text.splitlines(), start=1):
    try:
      tokens = shlex.split(line, comments=True)
    except ValueError as e:
      raise ConfigError([f"Line {number}: {e}"]) from e

    if tokens and tokens[0] == "export":
      tokens = tokens[1:]

    for token in tokens:
      key, sep, value = token.partition("=")
      if not sep or not key:
        logger.warning("Ignoring line %d: %s", number, line.strip())
        break
      values[key] = value

  return values


def _read(path: Path) -> dict[str, object]:
  try:
    text = path.read_text(encoding="utf-8")
  except OSError as e:
    raise ConfigError([f"Failed to read configuration file: {e}"]) from e

  if path.suffix.lower() != ".json":
    return dict(parse_shell_config(text))

  try:
    data = json.loads(text)
  except json.JSONDecodeError as e:
    raise ConfigError([f"Invalid JSON in configuration file: {e}"]) from e

  if not isinstance(data, dict):
    raise ConfigError(["Configuration JSON must be an object"])
  return data


def config_from_dict(data: dict[str, object]) -> InstallConfig:
  """
  Build an InstallConfig from raw key/value pairs.

  Raises:
      ConfigError: listing every invalid value
  """
  config = InstallConfig()
  issues: list[str] = []

  for raw_key, raw_value in data.items():
    key = str(raw_key).lower()
    if key not in KNOWN_KEYS:
      logger.warning("Unknown configuration key ignored: %s", raw_key)
      continue

    if raw_value is None or raw_value == "":
      continue

    if key in BOOLEAN_FIELDS:
      flag = parse_bool(raw_value)
      if flag is None:
        issues.append(f"{raw_key}: expected yes/no, got {raw_value!r}")
      setattr(config, key, flag)

    elif key == "root_fs":
      try:
        config.root_fs = Filesystem(str(raw_value).lower())
      except ValueError:
        issues.append(f"{raw_key}: unsupported filesystem {raw_value!r}")
        continue
      if config.root_fs not in Filesystem.root_choices():
        issues.append(f"{raw_key}: {raw_value!r} cannot hold the root filesystem")

    elif key == "bootloader":
      try:
        config.bootloader = Bootloader(str(raw_value).lower())
      except ValueError:
        issues.append(f"{raw_key}: unsupported bootloader {raw_value!r}")

    else:
      setattr(config, key, str(raw_value))

  issues += validate_config(config)
  if issues:
    raise ConfigError(issues)
  return config


def load_config(path: str | Path) -> InstallConfig:
  """Load and validate a configuration file."""
  source = Path(path)
  if not source.exists():
    raise ConfigError([f"Configuration file not found: {source}"])

  config = config_from_dict(_read(source))
  logger.info("Configuration loaded from %s", source)
  return config


def apply_overrides(config: InstallConfig, **overrides: str | None) -> InstallConfig:
  """Command line values win over the configuration file."""
  for key, value in overrides.items():
    if value is not None:
      setattr(config, key, value)
  return config
