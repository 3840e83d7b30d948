"""Extra packages, services and the new user's shell profile"""

import logging
from textwrap import dedent

from archtui.context import InstallationSession
from archtui.exceptions import CollaboratorFailure
from archtui.input import TogglePrompt
from archtui.registry import EXTRA_PACKAGES
from archtui.stages import Collaborators
from archtui.types import StageId, StageOutcome
from archtui.utils import append, read

logger = logging.getLogger(__name__)

BASHRC_MARKER = "# archtui defaults"

BASHRC_BLOCK = dedent(f"""\

  {BASHRC_MARKER}
  alias ll='ls -lah'
  alias update='sudo pacman -Syu'
  alias install='sudo pacman -S'
  alias ls='ls --color=auto'
  PS1='\\[\\033[01;32m\\]\\u@\\h\\[\\033[00m\\]:\\[\\033[01;34m\\]\\w\\[\\033[00m\\]\\$ '
""")


def _enable(collab: Collaborators, service: str) -> bool:
  result = collab.runner.run(collab.runner.chroot("systemctl", "enable", service))
  if not result.ok:
    logger.warning("Could not enable %s", service)
  return result.ok


def _install_extras(session: InstallationSession, collab: Collaborators) -> None:
  config = session.config
  dialogs = collab.dialogs

  config.install_extras = TogglePrompt.ask(
    dialogs,
    config.install_extras,
    "Additional Packages",
    f"Install additional packages? ({' '.join(EXTRA_PACKAGES)})",
  )
  if not config.install_extras:
    return

  dialogs.message("Installing", "Installing packages...")
  result = collab.runner.run(collab.runner.chroot("pacman", "-S", "--noconfirm", *EXTRA_PACKAGES), stream=True)
  if not result.ok:
    dialogs.message("Warning", "Some packages failed to install.\n\nContinuing anyway...", style="warning")
    return

  _ = _enable(collab, "NetworkManager")
  config.enable_ssh = TogglePrompt.ask(dialogs, config.enable_ssh, "SSH", "Enable SSH service?", default=False)
  if config.enable_ssh:
    _ = _enable(collab, "sshd")

  dialogs.message("Success", "Packages installed successfully!", style="success")


def run(session: InstallationSession, collab: Collaborators) -> StageOutcome:
  session.stages.check(StageId.PACKAGES, session)
  username = session.config.username
  assert username is not None

  _install_extras(session, collab)

  bashrc = session.target(f"/home/{username}/.bashrc")
  if BASHRC_MARKER not in read(bashrc):
    append(BASHRC_BLOCK.splitlines(), bashrc, session.dry_run)

  result = collab.runner.run(collab.runner.chroot("chown", "-R", f"{username}:{username}", f"/home/{username}"))
  if not result.ok:
    raise CollaboratorFailure(f"Fixing ownership of /home/{username}", result)

  _ = _enable(collab, "systemd-timesyncd")

  return StageOutcome(True, "Packages and services configured")
