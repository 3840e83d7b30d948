import io
from pathlib import Path

import pytest
from rich.console import Console

from archtui.commands import CommandRunner
from archtui.exceptions import CollaboratorFailure, PreconditionError
from archtui.stages import Collaborators, bootloader
from archtui.types import Bootloader, FirmwareMode, StageId
from fakes import FakeRunner, ScriptedDialogs, complete, mounted

ROOT_UUID = "0a1b2c3d-1111-2222-3333-444455556666"


def ready(session, root_device: str = "/dev/sda3"):
  complete(session, StageId.BASE_INSTALL, StageId.CONFIGURE)
  return mounted(session, root_device)


@pytest.fixture
def blkid(runner: FakeRunner) -> FakeRunner:
  runner.respond("blkid", stdout=f"{ROOT_UUID}\n")
  runner.respond(*runner.chroot("pacman", "-Q"), returncode=1)
  return runner


def test_boot_entry_with_microcode() -> None:
  assert bootloader.boot_entry_lines(ROOT_UUID, "intel-ucode") == [
    "title   Arch Linux",
    "linux   /vmlinuz-linux",
    "initrd  /intel-ucode.img",
    "initrd  /initramfs-linux.img",
    f"options root=UUID={ROOT_UUID} rw",
  ]


def test_fallback_entry_without_microcode() -> None:
  lines = bootloader.boot_entry_lines(ROOT_UUID, None, fallback=True)

  assert lines[0] == "title   Arch Linux (fallback)"
  assert "initrd  /initramfs-linux-fallback.img" in lines
  assert not any("ucode" in line for line in lines)


def test_bios_forces_grub_over_preference() -> None:
  assert bootloader.choose_bootloader(FirmwareMode.BIOS, Bootloader.SYSTEMD_BOOT) is Bootloader.GRUB
  assert bootloader.choose_bootloader(FirmwareMode.UEFI, Bootloader.SYSTEMD_BOOT) is Bootloader.SYSTEMD_BOOT
  assert bootloader.choose_bootloader(FirmwareMode.UEFI, None) is None


def test_systemd_boot(session, collab, blkid: FakeRunner, dialogs: ScriptedDialogs, mount_root: Path) -> None:
  ready(session)
  blkid.respond(*blkid.chroot("pacman", "-Q", "amd-ucode"), returncode=0)
  dialogs.queue("systemd-boot")

  outcome = bootloader.run(session, collab)

  assert outcome.completed
  assert blkid.called(*blkid.chroot("bootctl", "install"))
  assert blkid.called("blkid", "-s", "UUID", "-o", "value", "/dev/sda3")

  boot = mount_root / "boot" / "loader"
  assert (boot / "loader.conf").read_text().splitlines() == [
    "default arch.conf",
    "timeout 3",
    "console-mode auto",
    "editor no",
  ]
  entry = (boot / "entries" / "arch.conf").read_text()
  assert "initrd  /amd-ucode.img\ninitrd  /initramfs-linux.img\n" in entry
  assert f"options root=UUID={ROOT_UUID} rw" in entry
  assert "initramfs-linux-fallback.img" in (boot / "entries" / "arch-fallback.conf").read_text()
  assert not blkid.called(*blkid.chroot("grub-install"))


def test_missing_uuid_is_a_failure(session, collab, runner: FakeRunner) -> None:
  ready(session)
  session.config.bootloader = Bootloader.SYSTEMD_BOOT
  runner.respond("blkid", returncode=2)

  with pytest.raises(CollaboratorFailure, match="UUID"):
    _ = bootloader.run(session, collab)


def test_grub_uefi(session, collab, blkid: FakeRunner, dialogs: ScriptedDialogs) -> None:
  ready(session)
  dialogs.queue("grub")

  outcome = bootloader.run(session, collab)

  assert outcome.completed
  assert blkid.called(*blkid.chroot("pacman", "-S", "--noconfirm", "grub", "efibootmgr"))
  assert blkid.called(
    *blkid.chroot("grub-install", "--target=x86_64-efi", "--efi-directory=/boot", "--bootloader-id=GRUB")
  )
  assert blkid.calls[-1] == tuple(blkid.chroot("grub-mkconfig", "-o", "/boot/grub/grub.cfg"))
  assert session.config.bootloader is Bootloader.GRUB


def test_bios_installs_grub_on_disk(bios_session, collab, blkid: FakeRunner, dialogs: ScriptedDialogs) -> None:
  ready(bios_session, "/dev/vda2")
  bios_session.config.target_disk = "/dev/vda"
  bios_session.config.bootloader = Bootloader.SYSTEMD_BOOT

  outcome = bootloader.run(bios_session, collab)

  assert outcome.completed
  assert dialogs.questions == []
  assert "BIOS mode detected" in dialogs.texts()
  assert blkid.called(*blkid.chroot("grub-install", "--target=i386-pc", "/dev/vda"))
  assert not blkid.called(*blkid.chroot("pacman", "-S", "--noconfirm", "grub", "efibootmgr"))
  assert not blkid.called(*blkid.chroot("bootctl"))


def test_bios_without_disk(bios_session, collab, blkid: FakeRunner) -> None:
  ready(bios_session)

  with pytest.raises(PreconditionError):
    _ = bootloader.run(bios_session, collab)


def test_grub_install_failure(session, collab, blkid: FakeRunner) -> None:
  ready(session)
  session.config.bootloader = Bootloader.GRUB
  blkid.respond(*blkid.chroot("grub-install"), returncode=1, stderr="grub-install: error: cannot find EFI directory.")

  with pytest.raises(CollaboratorFailure, match="EFI directory"):
    _ = bootloader.run(session, collab)

  assert not blkid.called(*blkid.chroot("grub-mkconfig"))


def test_requires_configuration(session, collab, runner: FakeRunner) -> None:
  complete(session, StageId.BASE_INSTALL)
  mounted(session)

  with pytest.raises(PreconditionError):
    _ = bootloader.run(session, collab)
  assert runner.calls == []


def test_microcode_recorded_by_base_install(session, collab, runner: FakeRunner) -> None:
  session.microcode = "intel-ucode"

  assert bootloader.installed_microcode(session, collab) == "intel-ucode"
  assert runner.calls == []


def test_microcode_detected_on_target(session, collab, runner: FakeRunner) -> None:
  runner.respond(*runner.chroot("pacman", "-Q"), returncode=1)
  runner.respond(*runner.chroot("pacman", "-Q", "amd-ucode"))

  assert bootloader.installed_microcode(session, collab) == "amd-ucode"


def test_microcode_not_probed_in_dry_run(session, dialogs: ScriptedDialogs, monkeypatch: pytest.MonkeyPatch) -> None:
  def refuse(*_args, **_kwargs):
    raise AssertionError("command executed during a dry run")

  monkeypatch.setattr("archtui.commands.subprocess.run", refuse)
  dry = Collaborators(runner=CommandRunner(dry_run=True, console=Console(file=io.StringIO())), dialogs=dialogs)

  assert bootloader.installed_microcode(session, dry) is None
