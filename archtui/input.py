from collections.abc import Callable

from archtui.exceptions import ValidationError
from archtui.tui import Dialogs
from archtui.validations import require, validate_password


class ValidatedPrompt:
  """Ask until the answer passes a raising validator."""

  @classmethod
  def ask(
    cls,
    dialogs: Dialogs,
    title: str,
    message: str,
    check: Callable[[str], str],
    default: str | None = None,
  ) -> str:
    while True:
      value = dialogs.ask(title, message, default=default).strip()
      try:
        return check(value)
      except ValidationError as e:
        dialogs.message("Error", f"{e}\n\nPlease try again.", style="error")


class PasswordPrompt:
  """Ask twice, loop until both entries match and are non-empty."""

  @classmethod
  def ask(cls, dialogs: Dialogs, title: str, message: str, confirm_message: str = "Confirm password:") -> str:
    while True:
      first = dialogs.ask(title, message, password=True)
      second = dialogs.ask(title, confirm_message, password=True)
      try:
        require(first == second and validate_password(first), "Passwords don't match or are empty!")
        return first
      except ValidationError as e:
        dialogs.message("Error", f"{e}\n\nPlease try again.", style="error")


class TogglePrompt:
  """Yes/no question answered once; a pre-supplied value skips the prompt."""

  @classmethod
  def ask(cls, dialogs: Dialogs, current: bool | None, title: str, question: str, default: bool = True) -> bool:
    if current is not None:
      return current
    return dialogs.confirm(title, question, default=default)
