from archtui.types import CommandResult


class InstallerError(Exception):
  pass


class ValidationError(InstallerError):
  """Malformed operator input. Always re-prompted, never fatal."""


class PreconditionError(InstallerError):
  """A stage was selected before the state it depends on exists."""


class CollaboratorFailure(InstallerError):
  """An external command exited non-zero during a stage."""

  def __init__(self, step: str, result: CommandResult | None = None) -> None:
    self.step = step
    self.result = result
    message = f"{step} failed"
    if result is not None:
      message += f" (exit {result.returncode})"
      if result.stderr.strip():
        message += f": {result.stderr.strip().splitlines()[-1]}"
    super().__init__(message)


class PrivilegeError(InstallerError):
  pass


class ConfigError(InstallerError):
  def __init__(self, issues: list[str]) -> None:
    self.issues = issues
    super().__init__(f"Configuration contains {len(issues)} error(s)")
