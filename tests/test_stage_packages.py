from pathlib import Path

import pytest

from archtui.exceptions import CollaboratorFailure, PreconditionError
from archtui.registry import EXTRA_PACKAGES
from archtui.stages import packages
from archtui.types import StageId
from fakes import FakeRunner, ScriptedDialogs, complete, mounted


@pytest.fixture
def with_user(session, mount_root: Path):
  complete(session, StageId.BASE_INSTALL, StageId.USERS)
  mounted(session)
  session.config.username = "bob"
  (mount_root / "home" / "bob").mkdir(parents=True)
  return session


def test_requires_user_stage(session, collab, runner: FakeRunner) -> None:
  complete(session, StageId.BASE_INSTALL)
  mounted(session)

  with pytest.raises(PreconditionError):
    _ = packages.run(session, collab)
  assert runner.calls == []


def test_extras_and_services(with_user, collab, runner: FakeRunner, dialogs: ScriptedDialogs, mount_root: Path) -> None:
  dialogs.queue(True, True)

  outcome = packages.run(with_user, collab)

  assert outcome.completed
  assert runner.called(*runner.chroot("pacman", "-S", "--noconfirm", *EXTRA_PACKAGES))
  assert runner.called(*runner.chroot("systemctl", "enable", "NetworkManager"))
  assert runner.called(*runner.chroot("systemctl", "enable", "sshd"))
  assert runner.called(*runner.chroot("chown", "-R", "bob:bob", "/home/bob"))
  assert runner.calls[-1] == tuple(runner.chroot("systemctl", "enable", "systemd-timesyncd"))
  assert "alias ll='ls -lah'" in (mount_root / "home" / "bob" / ".bashrc").read_text()


def test_failed_extras_are_only_a_warning(with_user, collab, runner: FakeRunner, dialogs: ScriptedDialogs) -> None:
  runner.respond(*runner.chroot("pacman", "-S"), returncode=1)
  dialogs.queue(True)

  outcome = packages.run(with_user, collab)

  assert outcome.completed
  assert "warning" in dialogs.styles()
  assert not runner.called(*runner.chroot("systemctl", "enable", "NetworkManager"))
  assert runner.called(*runner.chroot("systemctl", "enable", "systemd-timesyncd"))


def test_bashrc_block_added_once(with_user, collab, dialogs: ScriptedDialogs, mount_root: Path) -> None:
  with_user.config.install_extras = False

  _ = packages.run(with_user, collab)
  _ = packages.run(with_user, collab)

  bashrc = (mount_root / "home" / "bob" / ".bashrc").read_text()
  assert bashrc.count(packages.BASHRC_MARKER) == 1
  assert dialogs.questions == []


def test_chown_failure_is_hard(with_user, collab, runner: FakeRunner) -> None:
  with_user.config.install_extras = False
  runner.respond(*runner.chroot("chown"), returncode=1, stderr="chown: invalid user: 'bob:bob'")

  with pytest.raises(CollaboratorFailure, match="invalid user"):
    _ = packages.run(with_user, collab)
