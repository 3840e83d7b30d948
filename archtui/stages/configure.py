"""Timezone, locale, console keymap, hostname, pacman tuning and initramfs"""

import re

from archtui.context import InstallationSession
from archtui.exceptions import CollaboratorFailure
from archtui.input import TogglePrompt, ValidatedPrompt
from archtui.stages import Collaborators
from archtui.stages.keyboard import DEFAULT_KEYMAP
from archtui.types import CommandResult, StageId, StageOutcome
from archtui.utils import read, write
from archtui.validations import require_hostname, require_locale, require_timezone

DEFAULT_TIMEZONE = "Europe/Berlin"
DEFAULT_LOCALE = "en_US.UTF-8"
DEFAULT_HOSTNAME = "archlinux"
PARALLEL_DOWNLOADS = 5


def _require(result: CommandResult, step: str) -> None:
  if not result.ok:
    raise CollaboratorFailure(step, result)


def locale_charset(locale: str) -> str:
  if "." not in locale:
    return "UTF-8"
  return locale.split(".", 1)[1].split("@", 1)[0]


def add_locale(text: str, locale: str) -> str:
  """Enable a locale in locale.gen content; appends only when missing."""
  entry = f"{locale} {locale_charset(locale)}"
  lines = text.splitlines()
  if entry in (line.strip() for line in lines):
    return text
  return "\n".join([*lines, entry]) + "\n"


def hosts_lines(hostname: str) -> list[str]:
  return [
    "127.0.0.1   localhost",
    "::1         localhost",
    f"127.0.1.1   {hostname}.localdomain {hostname}",
  ]


def tune_pacman_conf(text: str, multilib: bool, parallel_downloads: int = PARALLEL_DOWNLOADS) -> str:
  """Enable colour output, parallel downloads and optionally [multilib]."""
  text = re.sub(r"^#\s*Color\s*$", "Color", text, flags=re.MULTILINE)
  text = re.sub(
    r"^#?\s*ParallelDownloads\b.*$",
    f"ParallelDownloads = {parallel_downloads}",
    text,
    flags=re.MULTILINE,
  )
  if multilib:
    text = re.sub(r"^#\s*\[multilib\]\s*\n#\s*(Include[^\n]*)", r"[multilib]\n\1", text, flags=re.MULTILINE)
  return text


def run(session: InstallationSession, collab: Collaborators) -> StageOutcome:
  session.stages.check(StageId.CONFIGURE, session)

  config = session.config
  dialogs = collab.dialogs
  runner = collab.runner
  dry = session.dry_run

  # Timezone
  config.timezone = config.timezone or ValidatedPrompt.ask(
    dialogs,
    "Timezone",
    "Enter timezone (e.g., Europe/Berlin, America/New_York):",
    require_timezone,
    default=DEFAULT_TIMEZONE,
  )
  _require(
    runner.run(runner.chroot("ln", "-sf", f"/usr/share/zoneinfo/{config.timezone}", "/etc/localtime")),
    "Setting timezone",
  )
  _require(runner.run(runner.chroot("hwclock", "--systohc")), "Syncing hardware clock")

  # Locale
  config.locale = config.locale or ValidatedPrompt.ask(
    dialogs, "Locale", "Enter locale:", require_locale, default=DEFAULT_LOCALE
  )
  locale_gen = session.target("/etc/locale.gen")
  write(add_locale(read(locale_gen), config.locale).splitlines(), locale_gen, dry)
  _require(runner.run(runner.chroot("locale-gen")), "Generating locales")
  write([f"LANG={config.locale}"], session.target("/etc/locale.conf"), dry)

  # Console keymap
  write([f"KEYMAP={config.keymap or DEFAULT_KEYMAP}"], session.target("/etc/vconsole.conf"), dry)

  # Hostname
  config.hostname = config.hostname or ValidatedPrompt.ask(
    dialogs, "Hostname", "Enter hostname:", require_hostname, default=DEFAULT_HOSTNAME
  )
  write([config.hostname], session.target("/etc/hostname"), dry)
  write(hosts_lines(config.hostname), session.target("/etc/hosts"), dry)

  # Package manager
  config.enable_multilib = TogglePrompt.ask(
    dialogs, config.enable_multilib, "Multilib", "Enable multilib repository? (32-bit support)"
  )
  pacman_conf = session.target("/etc/pacman.conf")
  write(tune_pacman_conf(read(pacman_conf), config.enable_multilib).splitlines(), pacman_conf, dry)

  # Must stay last: hooks may embed locale and hostname artifacts
  _require(runner.run(runner.chroot("mkinitcpio", "-P"), stream=True), "Generating initramfs")

  dialogs.message(
    "Success",
    f"System configured!\n\nTimezone: {config.timezone}\nLocale: {config.locale}\nHostname: {config.hostname}",
    style="success",
  )
  return StageOutcome(True, f"{config.hostname} {config.timezone} {config.locale}")
