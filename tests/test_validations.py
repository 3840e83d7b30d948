import pytest

from archtui.exceptions import ValidationError
from archtui.types import InstallConfig
from archtui.validations import (
  require_swap_size,
  require_username,
  validate_config,
  validate_hostname,
  validate_locale,
  validate_swap_size,
  validate_timezone,
  validate_username,
)


@pytest.mark.parametrize("username", ["bob", "_user-1", "a", "x" * 32])
def test_valid_usernames(username: str) -> None:
  assert validate_username(username)


@pytest.mark.parametrize("username", ["Bob", "1user", "", "x" * 33, "bob smith", "-bob"])
def test_invalid_usernames(username: str) -> None:
  assert not validate_username(username)


def test_require_username_raises() -> None:
  with pytest.raises(ValidationError):
    _ = require_username("Bob")
  assert require_username("bob") == "bob"


@pytest.mark.parametrize("timezone", ["UTC", "Europe/Berlin", "America/Argentina/Buenos_Aires", "Etc/GMT+2"])
def test_valid_timezones(timezone: str) -> None:
  assert validate_timezone(timezone)


@pytest.mark.parametrize("timezone", ["", "Berlin", "Europe/", "/Berlin", "A/B/C/D"])
def test_invalid_timezones(timezone: str) -> None:
  assert not validate_timezone(timezone)


@pytest.mark.parametrize("locale", ["C", "POSIX", "en_US", "en_US.UTF-8", "de_DE.ISO-8859-1@euro"])
def test_valid_locales(locale: str) -> None:
  assert validate_locale(locale)


@pytest.mark.parametrize("locale", ["", "english", "en-US", "EN_us"])
def test_invalid_locales(locale: str) -> None:
  assert not validate_locale(locale)


@pytest.mark.parametrize("hostname", ["archlinux", "my-host", "host.example.org"])
def test_valid_hostnames(hostname: str) -> None:
  assert validate_hostname(hostname)


@pytest.mark.parametrize("hostname", ["", "-host", "host-", "my_host", "a" * 64])
def test_invalid_hostnames(hostname: str) -> None:
  assert not validate_hostname(hostname)


def test_swap_size_values() -> None:
  assert validate_swap_size("auto")
  assert validate_swap_size("8G")
  assert validate_swap_size("2048MiB")
  assert not validate_swap_size("0")
  assert not validate_swap_size("big")
  assert not validate_swap_size("4096B")
  assert validate_swap_size("8GB")
  assert require_swap_size("  ") == "auto"


def test_validate_config_skips_unset_fields() -> None:
  assert validate_config(InstallConfig()) == []


def test_validate_config_collects_all_problems() -> None:
  config = InstallConfig(hostname="bad_host", username="Bob", target_disk="sda", timezone="Europe/Berlin")

  issues = validate_config(config)

  assert len(issues) == 3
  assert any("hostname" in issue for issue in issues)
  assert any("username" in issue for issue in issues)
  assert any("disk" in issue for issue in issues)
