import logging
import os
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from archtui.commands import CommandRunner
from archtui.types import CpuVendor, FirmwareMode

logger = logging.getLogger(__name__)
console = Console()

EFIVARS_PATH = "/sys/firmware/efi/efivars"


def _dry_preview(action: str, path: str | Path, lines: list[str]) -> None:
  logger.info("DRY RUN %s %s", action, path)
  console.print(f"[bold green][dim][DRY RUN] {action} {escape(str(path))}:[/][/]")
  for line in lines:
    logger.info("DRY RUN | %s", line)
    console.print(f"[dim]{escape(line)}[/]")


def write(lines: list[str], path: str | Path, dry_run: bool, mode: int | None = None) -> None:
  """Replace a file in the target system with the given lines."""
  assert isinstance(lines, list)
  if dry_run:
    _dry_preview("Writing to", path, lines)
    return

  target = Path(path)
  target.parent.mkdir(parents=True, exist_ok=True)
  if mode is not None:
    # The previous copy may be read-only
    target.unlink(missing_ok=True)
  with open(target, "w", encoding="utf-8") as f:
    for line in lines:
      print(line, file=f)

  if mode is not None:
    os.chmod(target, mode)
  logger.info("Wrote %d line(s) to %s", len(lines), target)


def append(lines: list[str], path: str | Path, dry_run: bool) -> None:
  assert isinstance(lines, list)
  if dry_run:
    _dry_preview("Appending to", path, lines)
    return

  target = Path(path)
  target.parent.mkdir(parents=True, exist_ok=True)
  with open(target, "a", encoding="utf-8") as f:
    for line in lines:
      print(line, file=f)
  logger.info("Appended %d line(s) to %s", len(lines), target)


def read(path: str | Path) -> str:
  target = Path(path)
  return target.read_text(encoding="utf-8") if target.exists() else ""


def target_path(mount_root: str, path: str) -> Path:
  """Map an absolute path of the installed system under the mount root."""
  return Path(mount_root) / path.lstrip("/")


def detect_firmware(efivars: str = EFIVARS_PATH) -> FirmwareMode:
  return FirmwareMode.UEFI if Path(efivars).is_dir() else FirmwareMode.BIOS


def detect_cpu_vendor(runner: CommandRunner) -> CpuVendor:
  """Read the vendor_id of the first CPU from /proc/cpuinfo."""
  output = runner.query(["grep", "-m1", "vendor_id", "/proc/cpuinfo"])
  _, _, vendor_id = output.partition(":")
  return CpuVendor.from_vendor_id(vendor_id.strip())


def has_root_privileges() -> bool:
  return os.geteuid() == 0
