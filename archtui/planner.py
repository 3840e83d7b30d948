"""
Disk layout planning.

Everything here is a pure computation except list_candidate_disks and
total_ram_bytes (read-only queries) and materialize, which is the only
operation that touches the disk.
"""

import logging
import re
import time
from collections.abc import Callable

from archtui.commands import CommandRunner
from archtui.exceptions import CollaboratorFailure
from archtui.tui import Dialogs
from archtui.types import (
  GIB,
  MIB,
  DiskCandidate,
  DiskLayout,
  Filesystem,
  FirmwareMode,
  Partition,
  PartitionRole,
)

logger = logging.getLogger(__name__)

EFI_SIZE_BYTES = 512 * MIB
AUTO = "auto"

SIZE_UNITS = {"": MIB, "K": 1024, "M": MIB, "G": GIB, "T": 1024 * GIB}
SIZE_PATTERN = re.compile(r"^\s*(\d+)\s*(?:([KMGT])(?:I?B)?)?\s*$", re.IGNORECASE)

GPT_TYPE_CODES = {
  PartitionRole.EFI: "ef00",
  PartitionRole.SWAP: "8200",
  PartitionRole.ROOT: "8300",
}

MBR_SWAP_TYPE = "82"

MKFS_COMMANDS: dict[Filesystem, list[str]] = {
  Filesystem.FAT32: ["mkfs.fat", "-F32"],
  Filesystem.EXT4: ["mkfs.ext4", "-F"],
  Filesystem.BTRFS: ["mkfs.btrfs", "-f"],
  Filesystem.XFS: ["mkfs.xfs", "-f"],
}


def list_candidate_disks(runner: CommandRunner) -> list[DiskCandidate]:
  """List whole disks as reported by lsblk. Does not modify anything."""
  output = runner.query(["lsblk", "-dno", "NAME,SIZE,TYPE"])
  disks: list[DiskCandidate] = []
  for line in output.splitlines():
    fields = line.split()
    if len(fields) >= 3 and fields[-1] == "disk":
      disks.append(DiskCandidate(device=f"/dev/{fields[0]}", size=fields[1]))
  return disks


def total_ram_bytes(runner: CommandRunner) -> int:
  output = runner.query(["free", "-b"])
  for line in output.splitlines():
    fields = line.split()
    if fields and fields[0] == "Mem:" and len(fields) > 1 and fields[1].isdigit():
      return int(fields[1])
  raise CollaboratorFailure("Reading RAM size")


def parse_size(text: str) -> int:
  """
  Parse a size such as '8G', '512M', '2048MiB' or '4096' into bytes.

  A bare number is taken as MiB. A unit letter is required before a B
  suffix, so '4096B' is rejected rather than read as MiB.

  Raises:
      ValueError: If the text is not a positive size
  """
  match = SIZE_PATTERN.match(text)
  if not match or int(match.group(1)) <= 0:
    raise ValueError(f"Invalid size: {text!r}")
  return int(match.group(1)) * SIZE_UNITS[(match.group(2) or "").upper()]


def is_auto(override: str | None) -> bool:
  return override is None or override.strip().lower() in ("", AUTO)


def compute_swap_size(ram_bytes: int, override: str | None = AUTO) -> int:
  """
  Swap size in bytes.

  An explicit override always wins. Otherwise: less than 2 GiB of RAM gets
  twice the RAM, up to 8 GiB gets the same amount, beyond that half.
  """
  if not is_auto(override):
    assert override is not None
    return parse_size(override)

  if ram_bytes < 2 * GIB:
    return 2 * ram_bytes
  if ram_bytes < 8 * GIB:
    return ram_bytes
  return ram_bytes // 2


def partition_prefix(disk: str) -> str:
  """Device names ending in a digit (nvme0n1, mmcblk0) separate partitions with 'p'."""
  name = disk.rstrip("/").rsplit("/", 1)[-1]
  return f"{disk}p" if name[-1:].isdigit() else disk


def partition_device(disk: str, number: int) -> str:
  return f"{partition_prefix(disk)}{number}"


def plan_layout(
  disk: str,
  firmware: FirmwareMode,
  swap_size_bytes: int,
  root_fs: Filesystem = Filesystem.EXT4,
) -> DiskLayout:
  """
  Compute the partition layout for a disk. No I/O.

  UEFI systems get a 512 MiB EFI system partition first. Swap follows and
  the root partition spans the rest of the disk.
  """
  if swap_size_bytes <= 0:
    raise ValueError("Swap size must be positive")
  if root_fs not in Filesystem.root_choices():
    raise ValueError(f"{root_fs.value} cannot be used for the root filesystem")

  roles: list[tuple[PartitionRole, Filesystem, int | None]] = []
  if firmware is FirmwareMode.UEFI:
    roles.append((PartitionRole.EFI, Filesystem.FAT32, EFI_SIZE_BYTES))
  roles.append((PartitionRole.SWAP, Filesystem.SWAP, swap_size_bytes))
  roles.append((PartitionRole.ROOT, root_fs, None))

  partitions = tuple(
    Partition(role=role, number=number, device=partition_device(disk, number), filesystem=fs, size_bytes=size)
    for number, (role, fs, size) in enumerate(roles, start=1)
  )

  return DiskLayout(
    target_disk=disk,
    partition_prefix=partition_prefix(disk),
    firmware=firmware,
    swap_size_bytes=swap_size_bytes,
    root_fs=root_fs,
    partitions=partitions,
  )


def _fdisk_script(layout: DiskLayout) -> str:
  lines = ["o"]
  for part in layout.partitions:
    size = f"+{part.size_mib}M" if part.size_mib is not None else ""
    lines += ["n", "p", str(part.number), "", size]
    if part.role is PartitionRole.SWAP:
      # fdisk only asks for the partition number once more than one exists
      lines += ["t"] + ([str(part.number)] if part.number > 1 else []) + [MBR_SWAP_TYPE]
  lines.append("w")
  return "\n".join(lines) + "\n"


def partition_commands(layout: DiskLayout) -> list[tuple[str, list[str], str | None]]:
  """Commands creating the partition table: (description, argv, stdin)."""
  disk = layout.target_disk

  if layout.firmware is FirmwareMode.BIOS:
    return [("Creating MBR partitions", ["fdisk", disk], _fdisk_script(layout))]

  commands: list[tuple[str, list[str], str | None]] = []
  for part in layout.partitions:
    end = f"+{part.size_mib}M" if part.size_mib is not None else "0"
    n = part.number
    argv = ["sgdisk", "-n", f"{n}:0:{end}", "-t", f"{n}:{GPT_TYPE_CODES[part.role]}", "-c", f"{n}:{part.role.value}", disk]
    commands.append((f"Creating {part.role.value} partition", argv, None))
  return commands


def materialize(
  layout: DiskLayout,
  runner: CommandRunner,
  *,
  mount_root: str = "/mnt",
  sleep: Callable[[float], None] = time.sleep,
) -> None:
  """
  Turn a layout into partitions, filesystems and mounts.

  Fails fast: the first failing sub-step raises CollaboratorFailure. Nothing
  is rolled back, the disk has to be wiped again before a retry.
  """

  def step(description: str, argv: list[str], input_text: str | None = None) -> None:
    logger.info("Partitioning: %s", description)
    result = runner.run(argv, input_text=input_text)
    if not result.ok:
      raise CollaboratorFailure(description, result)

  disk = layout.target_disk
  step("Wiping disk signatures", ["wipefs", "-af", disk])
  step("Clearing partition table", ["sgdisk", "--zap-all", disk])

  for description, argv, stdin in partition_commands(layout):
    step(description, argv, stdin)

  sleep(2)
  step("Waiting for kernel to re-read the partition table", ["partprobe", disk])
  sleep(1)

  for part in layout.partitions:
    if part.filesystem is Filesystem.SWAP:
      step(f"Creating swap on {part.device}", ["mkswap", part.device])
      step(f"Enabling swap on {part.device}", ["swapon", part.device])
    else:
      step(f"Formatting {part.device} as {part.filesystem.value}", [*MKFS_COMMANDS[part.filesystem], part.device])

  step(f"Mounting {layout.root.device}", ["mount", layout.root.device, mount_root])

  efi = layout.efi
  if efi is not None:
    boot = f"{mount_root.rstrip('/')}/boot"
    step(f"Creating {boot}", ["mkdir", "-p", boot])
    step(f"Mounting {efi.device}", ["mount", efi.device, boot])


def confirm_destruction(dialogs: Dialogs, disk: str, details: str = "") -> bool:
  """
  Double confirmation gate in front of materialize.

  The operator first accepts the warning, then has to type the disk path.
  """
  warning = f"Selected disk: {disk}\n\n{details}\n\nALL DATA WILL BE DESTROYED!\n\nContinue?"
  if not dialogs.confirm("Confirm Disk", warning, default=False):
    return False

  typed = dialogs.ask("Final Confirmation", f"Type {disk} to erase it:")
  if typed.strip() != disk:
    dialogs.message("Cancelled", "Disk path did not match. Nothing was changed.", style="warning")
    return False
  return True
