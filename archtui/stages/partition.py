"""Disk selection, layout planning and materialization"""

from archtui.context import InstallationSession
from archtui.exceptions import CollaboratorFailure
from archtui.input import ValidatedPrompt
from archtui.planner import (
  compute_swap_size,
  confirm_destruction,
  list_candidate_disks,
  materialize,
  plan_layout,
  total_ram_bytes,
)
from archtui.stages import Collaborators
from archtui.types import MIB, Filesystem, StageOutcome
from archtui.validations import require_swap_size

FILESYSTEM_DESCRIPTIONS = {
  Filesystem.EXT4: "Stable, reliable",
  Filesystem.BTRFS: "Advanced features",
  Filesystem.XFS: "High performance",
}


def _select_disk(session: InstallationSession, collab: Collaborators) -> str | None:
  if session.config.target_disk:
    return session.config.target_disk

  disks = list_candidate_disks(collab.runner)
  if not disks:
    raise CollaboratorFailure("Listing disks")

  return collab.dialogs.choose(
    "Select Disk",
    "WARNING: Selected disk will be WIPED! Choose installation disk:",
    [(disk.device, disk.size) for disk in disks],
  )


def _select_filesystem(session: InstallationSession, collab: Collaborators) -> Filesystem:
  if session.config.root_fs in Filesystem.root_choices():
    assert session.config.root_fs is not None
    return session.config.root_fs

  choice = collab.dialogs.choose(
    "Filesystem",
    "Choose root filesystem:",
    [(fs.value, FILESYSTEM_DESCRIPTIONS[fs]) for fs in Filesystem.root_choices()],
    default=Filesystem.EXT4.value,
  )
  return Filesystem(choice)


def run(session: InstallationSession, collab: Collaborators) -> StageOutcome:
  disk = _select_disk(session, collab)
  if not disk:
    collab.dialogs.message("Error", "No disk selected!", style="error")
    return StageOutcome(False, "No disk selected")

  details = collab.runner.query(["lsblk", disk])
  if not confirm_destruction(collab.dialogs, disk, details):
    return StageOutcome(False, "Cancelled")

  swap_spec = session.config.swap_size or ValidatedPrompt.ask(
    collab.dialogs,
    "Swap Size",
    "Enter swap size (e.g., 8G, 4G, or 'auto'):",
    require_swap_size,
    default="auto",
  )
  root_fs = _select_filesystem(session, collab)

  ram = total_ram_bytes(collab.runner)
  swap_bytes = compute_swap_size(ram, swap_spec)
  layout = plan_layout(disk, session.firmware, swap_bytes, root_fs)

  session.config.target_disk = disk
  session.config.swap_size = swap_spec
  session.config.root_fs = root_fs

  # A new attempt invalidates whatever was mounted before
  session.layout = None
  session.root_mounted = False
  session.root_device = None

  materialize(layout, collab.runner, mount_root=session.mount_root, sleep=collab.sleep)

  session.layout = layout
  session.root_mounted = True
  session.root_device = layout.root.device

  lines = [
    f"Root: {layout.root.device} ({root_fs.value})",
    f"Swap: {layout.swap.device} ({swap_bytes // MIB}MiB)",
  ]
  if layout.efi is not None:
    lines.append(f"EFI: {layout.efi.device}")

  collab.dialogs.message(
    "Success",
    "Disk partitioned and mounted successfully!\n\n" + "\n".join(lines),
    style="success",
  )
  return StageOutcome(True, ", ".join(lines))
