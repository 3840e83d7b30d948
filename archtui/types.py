"""
Type definitions for archtui.

This module contains the enums and records shared by the planner, the stage
executors and the session controller.
"""

from dataclasses import dataclass, field
from enum import Enum

MIB = 1024 * 1024
GIB = 1024 * MIB


class FirmwareMode(Enum):
  """Boot environment of the running system."""

  UEFI = "UEFI"
  BIOS = "BIOS"


class Filesystem(Enum):
  """Filesystems the installer knows how to create."""

  FAT32 = "fat32"
  SWAP = "swap"
  EXT4 = "ext4"
  BTRFS = "btrfs"
  XFS = "xfs"

  @classmethod
  def root_choices(cls) -> list["Filesystem"]:
    return [cls.EXT4, cls.BTRFS, cls.XFS]


class Bootloader(Enum):
  SYSTEMD_BOOT = "systemd-boot"
  GRUB = "grub"


class CpuVendor(Enum):
  INTEL = "GenuineIntel"
  AMD = "AuthenticAMD"
  UNKNOWN = "unknown"

  @classmethod
  def from_vendor_id(cls, vendor_id: str) -> "CpuVendor":
    for vendor in (cls.INTEL, cls.AMD):
      if vendor_id == vendor.value:
        return vendor
    return cls.UNKNOWN


class PartitionRole(Enum):
  EFI = "EFI"
  SWAP = "SWAP"
  ROOT = "ROOT"


class StageId(Enum):
  """The eight installation stages, in display order."""

  KEYBOARD = 1
  NETWORK = 2
  PARTITIONING = 3
  BASE_INSTALL = 4
  CONFIGURE = 5
  USERS = 6
  PACKAGES = 7
  BOOTLOADER = 8

  @property
  def title(self) -> str:
    return STAGE_TITLES[self]


STAGE_TITLES: dict[StageId, str] = {
  StageId.KEYBOARD: "Keyboard Layout",
  StageId.NETWORK: "Network Configuration",
  StageId.PARTITIONING: "Disk Partitioning",
  StageId.BASE_INSTALL: "Base System Installation",
  StageId.CONFIGURE: "System Configuration",
  StageId.USERS: "Users & Passwords",
  StageId.PACKAGES: "Additional Packages",
  StageId.BOOTLOADER: "Bootloader",
}


@dataclass
class InstallConfig:
  """Operator or config-file supplied values. None means "ask when needed"."""

  hostname: str | None = None
  timezone: str | None = None
  locale: str | None = None
  keymap: str | None = None
  target_disk: str | None = None
  swap_size: str | None = None
  root_fs: Filesystem | None = None
  bootloader: Bootloader | None = None
  username: str | None = None
  user_password: str | None = None
  root_password: str | None = None
  install_wifi: bool | None = None
  install_base_devel: bool | None = None
  enable_multilib: bool | None = None
  install_extras: bool | None = None
  enable_ssh: bool | None = None


@dataclass(frozen=True)
class CommandResult:
  """Outcome of one external command."""

  args: tuple[str, ...]
  returncode: int
  stdout: str = ""
  stderr: str = ""

  @property
  def ok(self) -> bool:
    return self.returncode == 0


@dataclass(frozen=True)
class DiskCandidate:
  device: str
  size: str


@dataclass(frozen=True)
class Partition:
  """One planned partition. size_bytes=None spans the remaining space."""

  role: PartitionRole
  number: int
  device: str
  filesystem: Filesystem
  size_bytes: int | None = None

  @property
  def size_mib(self) -> int | None:
    if self.size_bytes is None:
      return None
    return max(1, self.size_bytes // MIB)

  @property
  def size_spec(self) -> str:
    """Human readable size, e.g. '512MiB' or 'remainder'."""
    mib = self.size_mib
    return "remainder" if mib is None else f"{mib}MiB"


@dataclass(frozen=True)
class DiskLayout:
  target_disk: str
  partition_prefix: str
  firmware: FirmwareMode
  swap_size_bytes: int
  root_fs: Filesystem
  partitions: tuple[Partition, ...] = field(default_factory=tuple)

  def get(self, role: PartitionRole) -> Partition | None:
    return next((p for p in self.partitions if p.role is role), None)

  @property
  def root(self) -> Partition:
    part = self.get(PartitionRole.ROOT)
    assert part is not None
    return part

  @property
  def swap(self) -> Partition:
    part = self.get(PartitionRole.SWAP)
    assert part is not None
    return part

  @property
  def efi(self) -> Partition | None:
    return self.get(PartitionRole.EFI)


@dataclass(frozen=True)
class StageOutcome:
  completed: bool
  summary: str = ""


@dataclass(frozen=True)
class StageProgress:
  stage_id: StageId
  title: str
  completed: bool
