from pathlib import Path

import pytest

from archtui.context import InstallationSession
from archtui.stages import Collaborators
from archtui.types import FirmwareMode, InstallConfig
from fakes import FakeRunner, ScriptedDialogs


@pytest.fixture
def mount_root(tmp_path: Path) -> Path:
  root = tmp_path / "mnt"
  root.mkdir()
  return root


@pytest.fixture
def runner(mount_root: Path) -> FakeRunner:
  return FakeRunner(mount_root=str(mount_root))


@pytest.fixture
def dialogs() -> ScriptedDialogs:
  return ScriptedDialogs()


@pytest.fixture
def sleeps() -> list[float]:
  return []


@pytest.fixture
def collab(runner: FakeRunner, dialogs: ScriptedDialogs, sleeps: list[float]) -> Collaborators:
  return Collaborators(runner=runner, dialogs=dialogs, sleep=sleeps.append)


def _session(tmp_path: Path, mount_root: Path, firmware: FirmwareMode) -> InstallationSession:
  return InstallationSession(InstallConfig(), firmware, log_path=tmp_path / "install.log", mount_root=str(mount_root))


@pytest.fixture
def session(tmp_path: Path, mount_root: Path) -> InstallationSession:
  return _session(tmp_path, mount_root, FirmwareMode.UEFI)


@pytest.fixture
def bios_session(tmp_path: Path, mount_root: Path) -> InstallationSession:
  return _session(tmp_path, mount_root, FirmwareMode.BIOS)
