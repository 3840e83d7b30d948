"""Keyboard layout for the live environment"""

from archtui.commands import MISSING_BINARY
from archtui.context import InstallationSession
from archtui.exceptions import CollaboratorFailure
from archtui.input import ValidatedPrompt
from archtui.stages import Collaborators
from archtui.types import StageOutcome
from archtui.validations import require_keymap

DEFAULT_KEYMAP = "us"


def run(session: InstallationSession, collab: Collaborators) -> StageOutcome:
  # The only stage that loops until the collaborator accepts the value
  while True:
    keymap = session.config.keymap or ValidatedPrompt.ask(
      collab.dialogs,
      "Keyboard Layout",
      "Enter keyboard layout (e.g., us, de, fr, es):",
      require_keymap,
      default=DEFAULT_KEYMAP,
    )

    result = collab.runner.run(["loadkeys", keymap])
    if result.ok:
      session.config.keymap = keymap
      collab.dialogs.message("Success", f"Keymap '{keymap}' loaded successfully!", style="success")
      return StageOutcome(True, f"Keymap {keymap}")

    if result.returncode == MISSING_BINARY:
      raise CollaboratorFailure("Loading keymap", result)

    session.config.keymap = None
    collab.dialogs.message("Error", f"Invalid keymap: {keymap}\n\nPlease try again.", style="error")
