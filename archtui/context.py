from __future__ import annotations

from pathlib import Path

from archtui.tracker import StageTracker
from archtui.types import DiskLayout, FirmwareMode, InstallConfig
from archtui.utils import target_path


class InstallationSession:
  """
  Holds the state and configuration for one installation run.

  A single session object is passed explicitly to every stage executor; it
  carries the operator's choices, the firmware mode detected at start-up,
  the stage tracker and the facts the stages learn about the target system.
  """

  def __init__(
    self,
    config: InstallConfig,
    firmware: FirmwareMode,
    *,
    log_path: Path | None = None,
    mount_root: str = "/mnt",
    dry_run: bool = False,
  ) -> None:
    self.config: InstallConfig = config
    self._firmware: FirmwareMode = firmware
    self.stages: StageTracker = StageTracker()
    self.log_path: Path | None = log_path
    self.mount_root: str = mount_root
    self.dry_run: bool = dry_run

    # Learned while stages run
    self.layout: DiskLayout | None = None
    self.root_mounted: bool = False
    self.root_device: str | None = None
    self.online: bool | None = None
    self.microcode: str | None = None

  @property
  def firmware(self) -> FirmwareMode:
    """Detected once at start-up, never changes."""
    return self._firmware

  @property
  def uefi(self) -> bool:
    return self._firmware is FirmwareMode.UEFI

  @property
  def target_disk(self) -> str | None:
    return self.layout.target_disk if self.layout else self.config.target_disk

  def target(self, path: str) -> Path:
    """Path inside the mounted target system."""
    return target_path(self.mount_root, path)
