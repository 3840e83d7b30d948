"""Base system installation with pacstrap"""

from archtui.context import InstallationSession
from archtui.exceptions import CollaboratorFailure
from archtui.input import TogglePrompt
from archtui.registry import base_packages, microcode_package
from archtui.stages import Collaborators
from archtui.types import StageId, StageOutcome
from archtui.utils import detect_cpu_vendor, write


def run(session: InstallationSession, collab: Collaborators) -> StageOutcome:
  session.stages.check(StageId.BASE_INSTALL, session)

  config = session.config
  dialogs = collab.dialogs

  config.install_base_devel = TogglePrompt.ask(
    dialogs,
    config.install_base_devel,
    "Base Devel",
    "Install base-devel group? (Compilers and build tools - recommended)",
  )
  config.install_wifi = TogglePrompt.ask(dialogs, config.install_wifi, "WiFi Support", "Install wireless tools?")

  vendor = detect_cpu_vendor(collab.runner)
  packages = base_packages(vendor, config.install_base_devel, config.install_wifi)

  dialogs.message(
    "Installing",
    f"Installing base system...\n\nPackages: {' '.join(packages)}\n\nThis may take several minutes.",
  )

  result = collab.runner.run(["pacstrap", session.mount_root, *packages], stream=True)
  if not result.ok:
    raise CollaboratorFailure("Base system installation", result)

  session.microcode = microcode_package(vendor)

  fstab = collab.runner.run(["genfstab", "-U", session.mount_root])
  if not fstab.ok:
    raise CollaboratorFailure("Generating fstab", fstab)
  # Replaced rather than appended so a re-run does not duplicate entries
  write(fstab.stdout.splitlines(), session.target("/etc/fstab"), session.dry_run)

  dialogs.message("Success", "Base system installed successfully!", style="success")
  return StageOutcome(True, " ".join(packages))
