"""
Bootloader installation.

Legacy BIOS always gets GRUB. Under UEFI the operator chooses between
systemd-boot and GRUB.
"""

from archtui.context import InstallationSession
from archtui.exceptions import CollaboratorFailure, PreconditionError
from archtui.registry import MICROCODE_PACKAGES
from archtui.stages import Collaborators
from archtui.types import Bootloader, CommandResult, FirmwareMode, StageId, StageOutcome
from archtui.utils import write

LOADER_TIMEOUT = 3
DISTRO_TITLE = "Arch Linux"

BOOTLOADER_DESCRIPTIONS = {
  Bootloader.SYSTEMD_BOOT: "Simple, fast",
  Bootloader.GRUB: "Feature-rich",
}


def _require(result: CommandResult, step: str) -> None:
  if not result.ok:
    raise CollaboratorFailure(step, result)


def choose_bootloader(firmware: FirmwareMode, preferred: Bootloader | None) -> Bootloader | None:
  """GRUB is mandatory under BIOS; under UEFI the preference (if any) stands."""
  if firmware is FirmwareMode.BIOS:
    return Bootloader.GRUB
  return preferred


def loader_conf_lines() -> list[str]:
  return [
    "default arch.conf",
    f"timeout {LOADER_TIMEOUT}",
    "console-mode auto",
    "editor no",
  ]


def boot_entry_lines(root_uuid: str, microcode: str | None, fallback: bool = False) -> list[str]:
  """Render a systemd-boot entry; the microcode initrd must precede the main one."""
  suffix = "-fallback" if fallback else ""
  title = f"{DISTRO_TITLE} (fallback)" if fallback else DISTRO_TITLE
  lines = [
    f"title   {title}",
    "linux   /vmlinuz-linux",
  ]
  if microcode:
    lines.append(f"initrd  /{microcode}.img")
  lines += [
    f"initrd  /initramfs-linux{suffix}.img",
    f"options root=UUID={root_uuid} rw",
  ]
  return lines


def installed_microcode(session: InstallationSession, collab: Collaborators) -> str | None:
  """Microcode pacstrapped this session, else whatever the target already has."""
  if session.microcode:
    return session.microcode

  runner = collab.runner
  for package in MICROCODE_PACKAGES.values():
    if runner.check(runner.chroot("pacman", "-Q", package), dry_value=False):
      return package
  return None


def _install_systemd_boot(session: InstallationSession, collab: Collaborators) -> None:
  runner = collab.runner
  _require(runner.run(runner.chroot("bootctl", "install")), "Installing systemd-boot")

  write(loader_conf_lines(), session.target("/boot/loader/loader.conf"), session.dry_run)

  assert session.root_device is not None
  root_uuid = runner.query(["blkid", "-s", "UUID", "-o", "value", session.root_device], dry_value="DRY-RUN-ROOT-UUID")
  if not root_uuid:
    raise CollaboratorFailure(f"Reading UUID of {session.root_device}")

  microcode = installed_microcode(session, collab)
  entries = session.target("/boot/loader/entries")
  write(boot_entry_lines(root_uuid, microcode), entries / "arch.conf", session.dry_run)
  write(boot_entry_lines(root_uuid, microcode, fallback=True), entries / "arch-fallback.conf", session.dry_run)


def _install_grub(session: InstallationSession, collab: Collaborators) -> None:
  runner = collab.runner

  if session.uefi:
    _require(runner.run(runner.chroot("pacman", "-S", "--noconfirm", "grub", "efibootmgr"), stream=True), "Installing GRUB")
    _require(
      runner.run(
        runner.chroot("grub-install", "--target=x86_64-efi", "--efi-directory=/boot", "--bootloader-id=GRUB")
      ),
      "Running grub-install",
    )
  else:
    disk = session.target_disk
    if not disk:
      raise PreconditionError("Target disk unknown!\n\nPlease complete partitioning first.")
    _require(runner.run(runner.chroot("pacman", "-S", "--noconfirm", "grub"), stream=True), "Installing GRUB")
    _require(runner.run(runner.chroot("grub-install", "--target=i386-pc", disk)), "Running grub-install")

  _require(runner.run(runner.chroot("grub-mkconfig", "-o", "/boot/grub/grub.cfg")), "Generating GRUB configuration")


def run(session: InstallationSession, collab: Collaborators) -> StageOutcome:
  session.stages.check(StageId.BOOTLOADER, session)
  dialogs = collab.dialogs

  bootloader = choose_bootloader(session.firmware, session.config.bootloader)
  if session.firmware is FirmwareMode.BIOS:
    dialogs.message("Bootloader", "BIOS mode detected.\n\nUsing GRUB bootloader.")
  elif bootloader is None:
    choice = dialogs.choose(
      "Bootloader",
      "Choose bootloader (UEFI):",
      [(kind.value, BOOTLOADER_DESCRIPTIONS[kind]) for kind in Bootloader],
      default=Bootloader.SYSTEMD_BOOT.value,
    )
    bootloader = Bootloader(choice)

  assert bootloader is not None
  if session.firmware is FirmwareMode.UEFI:
    session.config.bootloader = bootloader

  match bootloader:
    case Bootloader.SYSTEMD_BOOT:
      _install_systemd_boot(session, collab)
    case Bootloader.GRUB:
      _install_grub(session, collab)

  dialogs.message("Success", f"{bootloader.value} installed successfully!", style="success")
  return StageOutcome(True, bootloader.value)
