"""
Session controller.

Presents the main menu, dispatches the chosen stage, records its outcome and
returns to the menu until the operator finishes or exits.
"""

import logging
from collections.abc import Callable
from enum import Enum, auto

from archtui.context import InstallationSession
from archtui.exceptions import InstallerError, PreconditionError
from archtui.stages import Collaborators, StageModule, get_stage
from archtui.types import StageId

logger = logging.getLogger(__name__)

FINISH_KEY = "9"
EXIT_KEY = "0"
REBOOT_DELAY_SECONDS = 5


class ControllerState(Enum):
  MAIN_MENU = auto()
  RUNNING_STAGE = auto()
  CONFIRM_FINISH = auto()
  EXITED = auto()


class SessionController:
  def __init__(
    self,
    session: InstallationSession,
    collab: Collaborators,
    stage_loader: Callable[[StageId], StageModule] = get_stage,
  ) -> None:
    self.session: InstallationSession = session
    self.collab: Collaborators = collab
    self.stage_loader: Callable[[StageId], StageModule] = stage_loader
    self.state: ControllerState = ControllerState.MAIN_MENU
    self.exit_code: int = 0

  def menu_options(self) -> list[tuple[str, str]]:
    options: list[tuple[str, str]] = []
    for stage in self.session.stages:
      mark = "✓" if stage.completed else " "
      options.append((str(stage.stage_id.value), f"[{mark}] {stage.stage_id.title}"))
    options.append((FINISH_KEY, "Finish & Reboot"))
    options.append((EXIT_KEY, "Exit"))
    return options

  def welcome(self, config_source: str | None = None) -> None:
    session = self.session
    lines = [
      "Welcome to the Arch Linux installer!",
      "",
      f"Boot mode: {session.firmware.value}",
    ]
    if session.log_path is not None:
      lines.append(f"Log file: {session.log_path}")
    if session.dry_run:
      lines += ["", "DRY RUN MODE - no changes will be made to your system"]
    self.collab.dialogs.message("Arch Linux Installer", "\n".join(lines))

    if config_source:
      self.collab.dialogs.message("Configuration", f"Configuration loaded from {config_source}", style="success")

  def hydrate(self) -> None:
    """Pick up a root filesystem left mounted by an earlier session."""
    session = self.session
    runner = self.collab.runner
    if not runner.check(["mountpoint", "-q", session.mount_root], dry_value=False):
      return

    session.root_mounted = True
    session.root_device = runner.query(["findmnt", "-no", "SOURCE", session.mount_root]) or None
    logger.info("Found %s already mounted from %s", session.mount_root, session.root_device or "unknown device")

  def run_stage(self, stage_id: StageId) -> bool:
    """Run one stage, record the outcome and report whether it completed."""
    session = self.session
    dialogs = self.collab.dialogs
    self.state = ControllerState.RUNNING_STAGE
    logger.info("Running stage %d: %s", stage_id.value, stage_id.title)

    try:
      session.stages.check(stage_id, session)
      outcome = self.stage_loader(stage_id).run(session, self.collab)

    except PreconditionError as e:
      dialogs.message("Error", str(e), style="error")
      self.state = ControllerState.MAIN_MENU
      return False

    except (InstallerError, OSError) as e:
      logger.exception("Stage %s failed", stage_id.title)
      message = f"{stage_id.title} failed:\n\n{e}"
      if session.log_path is not None:
        message += f"\n\nCheck log: {session.log_path}"
      dialogs.message("Error", message, style="error")
      session.stages.mark_failed(stage_id)
      self.state = ControllerState.MAIN_MENU
      return False

    if outcome.completed:
      session.stages.mark_complete(stage_id)
    else:
      session.stages.mark_failed(stage_id)

    self.state = ControllerState.MAIN_MENU
    return outcome.completed

  def finish(self) -> None:
    session = self.session
    dialogs = self.collab.dialogs
    runner = self.collab.runner

    if not session.stages.is_complete(StageId.BOOTLOADER):
      dialogs.message(
        "Warning",
        "Installation not complete!\n\nPlease install the bootloader before rebooting.",
        style="warning",
      )
      return

    self.state = ControllerState.CONFIRM_FINISH
    if not dialogs.confirm("Finish", "Installation complete! Reboot now?", default=True):
      self.state = ControllerState.MAIN_MENU
      return

    _ = runner.run(["sync"])
    _ = runner.run(["umount", "-R", session.mount_root])
    _ = runner.run(["swapoff", "-a"])
    session.root_mounted = False

    dialogs.message("Rebooting", f"Rebooting in {REBOOT_DELAY_SECONDS} seconds...", style="success")
    self.collab.sleep(REBOOT_DELAY_SECONDS)
    _ = runner.run(["reboot"])
    self.state = ControllerState.EXITED

  def exit(self) -> None:
    if self.collab.dialogs.confirm("Exit", "Exit installer?", default=False):
      self.state = ControllerState.EXITED

  def step(self) -> None:
    """Show the menu once and handle a single choice."""
    dialogs = self.collab.dialogs
    dialogs.show_progress("Arch Linux Installer", self.session.stages.progress_summary())
    choice = dialogs.choose("Main Menu", "Select an option:", self.menu_options())

    if choice == FINISH_KEY:
      self.finish()
    elif choice == EXIT_KEY:
      self.exit()
    elif choice.isdigit() and int(choice) in {stage_id.value for stage_id in StageId}:
      _ = self.run_stage(StageId(int(choice)))
    else:
      dialogs.message("Error", f"Invalid choice: {choice}", style="error")

  def run(self) -> int:
    while self.state is not ControllerState.EXITED:
      self.step()
    logger.info("Session ended with exit code %d", self.exit_code)
    return self.exit_code
