"""
Validation functions for archtui.

This module contains the validators used for operator input and for values
coming from a configuration file or the command line.
"""

import re

from archtui.exceptions import ValidationError
from archtui.planner import parse_size
from archtui.types import InstallConfig

USERNAME_MAX_LEN = 32
USERNAME_PATTERN = re.compile(rf"^[a-z_][a-z0-9_-]{{0,{USERNAME_MAX_LEN - 1}}}$")
HOSTNAME_MAX_LEN = 253
HOSTNAME_LABEL = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?")
LOCALE_PATTERN = re.compile(r"[a-z]{2,3}(?:_[A-Z]{2})?(?:\.[A-Za-z0-9_-]+)?(?:@[A-Za-z0-9_-]+)?")
PLAIN_LOCALES = ("C", "POSIX", "C.UTF-8")


# =============================================================================
# Validation Functions
# =============================================================================
# Functions that validate data and return boolean or list of issues


def validate_username(username: str) -> bool:
  """POSIX portable user name: lowercase letter or underscore first."""
  if not username:
    return False
  return bool(USERNAME_PATTERN.fullmatch(username))


def validate_password(password: str) -> bool:
  return bool(password and password.strip())


def validate_keymap(keymap: str) -> bool:
  return bool(keymap) and not any(c.isspace() for c in keymap)


def validate_timezone(timezone: str) -> bool:
  """Validate timezone against Region/City (optionally Region/Area/City)."""
  if timezone == "UTC":
    return True

  parts = timezone.split("/")
  if len(parts) not in (2, 3):
    return False

  return all(part and re.fullmatch(r"[A-Za-z][A-Za-z0-9_+-]*", part) for part in parts)


def validate_locale(locale: str) -> bool:
  """language[_TERRITORY][.charset][@modifier], or one of the C/POSIX locales."""
  return locale in PLAIN_LOCALES or bool(LOCALE_PATTERN.fullmatch(locale))


def validate_hostname(hostname: str) -> bool:
  """RFC 1123 host name: dot separated labels of letters, digits and inner hyphens."""
  if not hostname or len(hostname) > HOSTNAME_MAX_LEN:
    return False
  return all(HOSTNAME_LABEL.fullmatch(label) for label in hostname.split("."))


def validate_swap_size(size: str) -> bool:
  """Accept 'auto' or a positive size such as 8G, 512M, 2048MiB."""
  if size.strip().lower() in ("", "auto"):
    return True

  try:
    _ = parse_size(size)
  except ValueError:
    return False
  return True


def validate_disk(disk: str) -> bool:
  return disk.startswith("/dev/") and len(disk) > len("/dev/")


# =============================================================================
# Raising wrappers
# =============================================================================
# Used by the prompt loops: a ValidationError is shown and the question asked again


def require(valid: bool, message: str) -> None:
  if not valid:
    raise ValidationError(message)


def require_username(username: str) -> str:
  require(
    validate_username(username),
    "Invalid username - start with a lowercase letter or underscore, then use lowercase letters, digits, - and _.",
  )
  return username


def require_keymap(keymap: str) -> str:
  require(bool(keymap), "Keyboard layout cannot be empty.")
  require(validate_keymap(keymap), f"Invalid keymap: {keymap}")
  return keymap


def require_timezone(timezone: str) -> str:
  require(validate_timezone(timezone), f"Invalid timezone: {timezone} (expected format: Region/City)")
  return timezone


def require_locale(locale: str) -> str:
  require(validate_locale(locale), f"Invalid locale: {locale} (expected format: language[_COUNTRY][.encoding])")
  return locale


def require_hostname(hostname: str) -> str:
  require(validate_hostname(hostname), "Invalid hostname - must follow RFC 1123 (letters, digits, hyphens).")
  return hostname


def require_swap_size(size: str) -> str:
  require(validate_swap_size(size), f"Invalid swap size: {size} (e.g. 8G, 4096M or auto)")
  return size.strip() or "auto"


def validate_config(config: InstallConfig) -> list[str]:
  """
  Validate pre-supplied configuration values and return list of error messages.

  Unset values are not checked; they are prompted for later.
  """
  validators = [
    (config.hostname, validate_hostname, "Invalid hostname: {} (must follow RFC 1123 format)"),
    (config.timezone, validate_timezone, "Invalid timezone: {} (expected format: Region/City)"),
    (config.locale, validate_locale, "Invalid locale: {} (expected format: language[_COUNTRY][.encoding])"),
    (config.keymap, validate_keymap, "Invalid keymap: {}"),
    (config.target_disk, validate_disk, "Invalid target disk: {} (expected a /dev path)"),
    (config.swap_size, validate_swap_size, "Invalid swap size: {}"),
    (config.username, validate_username, "Invalid username: {}"),
  ]

  return [message.format(value) for value, check, message in validators if value is not None and not check(value)]
