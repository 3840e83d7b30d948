import pytest

from archtui.exceptions import CollaboratorFailure
from archtui.stages import base
from fakes import FakeRunner, ScriptedDialogs, mounted

FSTAB = "# /dev/sda3\nUUID=1234 / ext4 rw,relatime 0 1\n"


@pytest.fixture
def intel(runner: FakeRunner) -> FakeRunner:
  runner.respond("grep", "-m1", "vendor_id", stdout="vendor_id\t: GenuineIntel")
  runner.respond("genfstab", stdout=FSTAB)
  return runner


def test_pacstrap_with_microcode(session, collab, intel: FakeRunner, dialogs: ScriptedDialogs, mount_root) -> None:
  mounted(session)
  dialogs.queue(True, False)

  outcome = base.run(session, collab)

  assert outcome.completed
  pacstrap = next(call for call in intel.calls if call[0] == "pacstrap")
  assert pacstrap[1] == str(mount_root)
  assert "base-devel" in pacstrap
  assert "iw" not in pacstrap
  assert pacstrap[-1] == "intel-ucode"
  assert session.microcode == "intel-ucode"
  assert (mount_root / "etc" / "fstab").read_text() == FSTAB


def test_rerun_does_not_duplicate_fstab(session, collab, intel: FakeRunner, mount_root) -> None:
  mounted(session)
  session.config.install_base_devel = True
  session.config.install_wifi = True

  _ = base.run(session, collab)
  _ = base.run(session, collab)

  assert (mount_root / "etc" / "fstab").read_text() == FSTAB


def test_pacstrap_failure(session, collab, intel: FakeRunner) -> None:
  mounted(session)
  session.config.install_base_devel = False
  session.config.install_wifi = False
  intel.respond("pacstrap", returncode=1, stderr="error: failed to install packages to new root")

  with pytest.raises(CollaboratorFailure, match="failed to install"):
    _ = base.run(session, collab)

  assert not intel.called("genfstab")
  assert session.microcode is None
