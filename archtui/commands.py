"""
Command executor.

All external utilities are invoked through CommandRunner. Failures are
returned as CommandResult values; deciding whether a non-zero exit is fatal
is left to the calling stage. Output that is not valid UTF-8 is decoded with
replacement characters. Every invocation is written to the transcript.
"""

import logging
import shlex
import subprocess
from collections.abc import Iterable, Sequence

from rich.console import Console
from rich.markup import escape

from archtui.types import CommandResult

logger = logging.getLogger(__name__)

REDACTED = "********"
MISSING_BINARY = 127


def format_command(args: Sequence[str], redact: Iterable[str] = ()) -> str:
  hidden = {value for value in redact if value}
  return " ".join(REDACTED if arg in hidden else shlex.quote(arg) for arg in args)


def _mask(text: str, redact: Iterable[str]) -> str:
  for value in redact:
    if value:
      text = text.replace(value, REDACTED)
  return text


class CommandRunner:
  def __init__(self, dry_run: bool = False, mount_root: str = "/mnt", console: Console | None = None) -> None:
    self.dry_run: bool = dry_run
    self.mount_root: str = mount_root
    self.console: Console = console or Console()

  def chroot(self, *args: str) -> list[str]:
    """Build a command line that runs inside the mounted target system."""
    return ["arch-chroot", self.mount_root, *args]

  def _dry(self, shown: str, with_stdin: bool) -> None:
    suffix = " (with stdin data)" if with_stdin else ""
    logger.info("DRY RUN %s%s", shown, suffix)
    self.console.print(f"[bold green][dim][DRY RUN] {escape(shown)}{suffix}[/][/]")

  def _log_result(self, result: CommandResult, redact: Iterable[str]) -> None:
    redact = tuple(redact)
    for line in _mask(result.stdout, redact).splitlines():
      if line.strip():
        logger.debug("stdout | %s", line)
    for line in _mask(result.stderr, redact).splitlines():
      if line.strip():
        logger.debug("stderr | %s", line)
    level = logging.INFO if result.ok else logging.WARNING
    logger.log(level, "exit %d: %s", result.returncode, format_command(result.args, redact))

  def _stream(self, argv: tuple[str, ...], input_text: str | None) -> CommandResult:
    lines: list[str] = []
    with subprocess.Popen(
      argv,
      stdin=subprocess.PIPE if input_text is not None else None,
      stdout=subprocess.PIPE,
      stderr=subprocess.STDOUT,
      text=True,
      errors="replace",
    ) as process:
      if input_text is not None and process.stdin is not None:
        _ = process.stdin.write(input_text)
        process.stdin.close()

      assert process.stdout is not None
      for line in process.stdout:
        lines.append(line)
        self.console.print(line.rstrip("\n"), markup=False, highlight=False)

    return CommandResult(argv, process.returncode, "".join(lines), "")

  def run(
    self,
    args: Sequence[str],
    *,
    input_text: str | None = None,
    redact: Iterable[str] = (),
    stream: bool = False,
  ) -> CommandResult:
    """
    Run a command and capture its output.

    Args:
        args: Command line, program first
        input_text: Data fed to stdin; never written to the transcript
        redact: Values masked in the transcript (e.g. passphrases on argv)
        stream: Echo output to the console while capturing it

    Returns:
        CommandResult; a missing program is reported with returncode 127
    """
    argv = tuple(args)
    redact = tuple(redact)
    shown = format_command(argv, redact)

    if self.dry_run:
      self._dry(shown, input_text is not None)
      return CommandResult(argv, 0)

    logger.info("CMD %s%s", shown, " (with stdin data)" if input_text is not None else "")
    try:
      if stream:
        result = self._stream(argv, input_text)

      else:
        process = subprocess.run(argv, input=input_text, capture_output=True, text=True, errors="replace", check=False)
        result = CommandResult(argv, process.returncode, process.stdout, process.stderr)

    except OSError as e:
      result = CommandResult(argv, MISSING_BINARY, "", str(e))

    self._log_result(result, redact)
    return result

  def run_interactive(self, args: Sequence[str]) -> CommandResult:
    """Run a command attached to the terminal, without capturing output."""
    argv = tuple(args)
    shown = format_command(argv)

    if self.dry_run:
      self._dry(shown, False)
      return CommandResult(argv, 0)

    logger.info("CMD (interactive) %s", shown)
    try:
      returncode = subprocess.run(argv, check=False).returncode
    except OSError as e:
      logger.warning("Unable to start %s: %s", shown, e)
      return CommandResult(argv, MISSING_BINARY, "", str(e))

    result = CommandResult(argv, returncode)
    self._log_result(result, ())
    return result

  def run_background(self, args: Sequence[str]) -> CommandResult:
    """Start a command and return without waiting for it."""
    argv = tuple(args)
    shown = format_command(argv)

    if self.dry_run:
      self._dry(shown, False)
      return CommandResult(argv, 0)

    try:
      process = subprocess.Popen(
        argv,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
      )
    except OSError as e:
      logger.warning("Unable to start %s: %s", shown, e)
      return CommandResult(argv, MISSING_BINARY, "", str(e))

    logger.info("CMD (background, pid %d) %s", process.pid, shown)
    return CommandResult(argv, 0)

  def query(self, args: Sequence[str], *, dry_value: str | None = None) -> str:
    """
    Read-only introspection. Returns stripped stdout, or "" on failure.

    Queries run for real in dry-run mode unless a dry_value is supplied.
    """
    argv = tuple(args)
    if self.dry_run and dry_value is not None:
      logger.info("DRY RUN query %s -> %r", format_command(argv), dry_value)
      return dry_value

    logger.info("QUERY %s", format_command(argv))
    try:
      process = subprocess.run(argv, capture_output=True, text=True, errors="replace", check=False)
      result = CommandResult(argv, process.returncode, process.stdout, process.stderr)
    except OSError as e:
      result = CommandResult(argv, MISSING_BINARY, "", str(e))

    self._log_result(result, ())
    return result.stdout.strip() if result.ok else ""

  def check(self, args: Sequence[str], *, dry_value: bool | None = None) -> bool:
    """Read-only status probe (ping, mountpoint, pacman -Q). True on exit 0."""
    argv = tuple(args)
    if self.dry_run and dry_value is not None:
      logger.info("DRY RUN check %s -> %s", format_command(argv), dry_value)
      return dry_value

    logger.info("CHECK %s", format_command(argv))
    try:
      process = subprocess.run(argv, capture_output=True, text=True, errors="replace", check=False)
      result = CommandResult(argv, process.returncode, process.stdout, process.stderr)
    except OSError as e:
      result = CommandResult(argv, MISSING_BINARY, "", str(e))

    self._log_result(result, ())
    return result.ok
