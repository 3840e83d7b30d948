import argparse
import logging
import sys
from argparse import Namespace
from textwrap import dedent
from typing import override

from rich.console import Console

from archtui.commands import CommandRunner
from archtui.config import apply_overrides, load_config
from archtui.context import InstallationSession
from archtui.controller import SessionController
from archtui.exceptions import ConfigError, PrivilegeError
from archtui.stages import Collaborators
from archtui.transcript import close_transcript, configure_transcript
from archtui.tui import TUI
from archtui.types import InstallConfig
from archtui.utils import detect_firmware, has_root_privileges
from archtui.validations import validate_config

__version__ = "0.1.0"

console = Console()
logger = logging.getLogger(__name__)


class IndentedHelpFormatter(argparse.RawDescriptionHelpFormatter):
  def __init__(self, prog: str, **kwargs) -> None:
    super().__init__(prog, max_help_position=30, width=80, **kwargs)

  @override
  def _format_action_invocation(self, action: argparse.Action) -> str:
    options = action.option_strings
    if not options:
      return super()._format_action_invocation(action)

    invocation = f"{'':4}{options[0]}" if len(options) == 1 else ", ".join(options)
    if action.nargs != 0:
      invocation += f" {self._format_args(action, self._get_default_metavar_for_optional(action))}"

    return invocation


def _create_argument_parser() -> argparse.ArgumentParser:
  """Create and configure the argument parser."""
  parser = argparse.ArgumentParser(
    prog="install.py",
    formatter_class=IndentedHelpFormatter,
    description=dedent("""
      An interactive, menu driven Arch Linux installer.

      Stages can be run in any order once their prerequisites are met,
      and re-run after a failure. Every command and answer is written
      to a transcript file.
    """),
    epilog=dedent("""
      Examples:
        %(prog)s                                # Interactive installation
        %(prog)s install.conf                   # Pre-answer questions from a file
        %(prog)s --dry                          # Preview without changing anything
        %(prog)s -k de --timezone Europe/Berlin # Custom keymap and timezone
    """),
  )

  _ = parser.add_argument(
    "config",
    metavar="CONFIG",
    nargs="?",
    help="configuration file (KEY=value lines or a JSON object)",
  )

  _ = parser.add_argument(
    "-d",
    "--dry",
    action="store_true",
    help="preview installation steps without executing commands or writing files",
    dest="dry",
  )

  _ = parser.add_argument(
    "-k",
    "--keymap",
    metavar="KEYMAP",
    type=str,
    help="keyboard layout for the live environment and the new system",
    dest="keymap",
  )

  _ = parser.add_argument(
    "-t",
    "--timezone",
    metavar="TIMEZONE",
    type=str,
    help="system timezone in Region/City format",
    dest="timezone",
  )

  _ = parser.add_argument(
    "--locale",
    metavar="LOCALE",
    type=str,
    help="system locale (e.g., en_US.UTF-8)",
    dest="locale",
  )

  _ = parser.add_argument(
    "--hostname",
    metavar="HOSTNAME",
    type=str,
    help="system hostname",
    dest="hostname",
  )

  _ = parser.add_argument(
    "--log-dir",
    metavar="DIR",
    type=str,
    default=".",
    help="directory for the session transcript [default: %(default)s]",
    dest="log_dir",
  )

  _ = parser.add_argument("--version", action="version", version=f"archtui {__version__}")

  return parser


def _check_system_requirements() -> None:
  if not has_root_privileges():
    raise PrivilegeError("Root privileges are required. Please re-run the installer as root.")


def _build_config(args: Namespace) -> InstallConfig:
  """Configuration file first, then command line values on top."""
  config = load_config(args.config) if args.config else InstallConfig()
  config = apply_overrides(
    config,
    keymap=args.keymap,
    timezone=args.timezone,
    locale=args.locale,
    hostname=args.hostname,
  )

  issues = validate_config(config)
  if issues:
    raise ConfigError(issues)
  return config


def main(argv: list[str] | None = None) -> int:
  """Main entry point for the installer."""
  args = _create_argument_parser().parse_args(argv)

  try:
    if not args.dry:
      _check_system_requirements()
    config = _build_config(args)

  except PrivilegeError as e:
    console.print(f"\n[prompt.invalid]{e}[/]")
    return 1

  except ConfigError as e:
    console.print(f"\n[prompt.invalid]Invalid configuration: {e}[/]")
    console.print("\n".join(f" • {issue}" for issue in e.issues))
    console.print("\n[yellow]Use --help for valid options[/]")
    return 1

  log_path = configure_transcript(args.log_dir)
  firmware = detect_firmware()
  logger.info("archtui %s starting, boot mode %s, dry run %s", __version__, firmware.value, args.dry)

  session = InstallationSession(config, firmware, log_path=log_path, dry_run=args.dry)
  collab = Collaborators(
    runner=CommandRunner(dry_run=args.dry, mount_root=session.mount_root, console=console),
    dialogs=TUI(console=console, boot_mode=firmware.value),
  )
  controller = SessionController(session, collab)

  try:
    controller.welcome(args.config)
    controller.hydrate()
    return controller.run()

  except KeyboardInterrupt:
    logger.warning("Interrupted by operator")
    console.print("\n\n[prompt.invalid]Installation interrupted by user. Exiting...[/]")
    return 130

  except Exception as e:
    logger.exception("Fatal error")
    console.print(f"\n[prompt.invalid]Fatal error: {e}[/]")
    return 1

  finally:
    close_transcript()


def run() -> None:
  sys.exit(main())
