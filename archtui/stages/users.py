"""Root password, user account and sudo access"""

from archtui.context import InstallationSession
from archtui.exceptions import CollaboratorFailure
from archtui.input import PasswordPrompt, ValidatedPrompt
from archtui.registry import ADMIN_GROUP, USER_GROUPS
from archtui.stages import Collaborators
from archtui.types import StageId, StageOutcome
from archtui.utils import write
from archtui.validations import require_username, validate_password, validate_username

DEFAULT_USERNAME = "user"
SUDOERS_MODE = 0o440


def _set_password(collab: Collaborators, account: str, password: str) -> None:
  # Sent on stdin so the password never reaches the process list or transcript
  result = collab.runner.run(collab.runner.chroot("chpasswd"), input_text=f"{account}:{password}\n")
  if not result.ok:
    raise CollaboratorFailure(f"Setting password for {account}", result)


def _create_user(collab: Collaborators, username: str) -> None:
  runner = collab.runner
  groups = ",".join(USER_GROUPS)

  if runner.check(runner.chroot("id", "-u", username), dry_value=False):
    result = runner.run(runner.chroot("usermod", "-aG", groups, username))
  else:
    result = runner.run(runner.chroot("useradd", "-m", "-G", groups, "-s", "/bin/bash", username))

  if not result.ok:
    raise CollaboratorFailure(f"Creating user {username}", result)


def run(session: InstallationSession, collab: Collaborators) -> StageOutcome:
  session.stages.check(StageId.USERS, session)

  config = session.config
  dialogs = collab.dialogs

  root_password = config.root_password
  if not (root_password and validate_password(root_password)):
    root_password = PasswordPrompt.ask(dialogs, "Root Password", "Enter root password:", "Confirm root password:")
  _set_password(collab, "root", root_password)
  config.root_password = root_password

  username = config.username
  if not (username and validate_username(username)):
    username = ValidatedPrompt.ask(dialogs, "Username", "Enter username:", require_username, default=DEFAULT_USERNAME)
  config.username = username

  _create_user(collab, username)

  user_password = config.user_password
  if not (user_password and validate_password(user_password)):
    user_password = PasswordPrompt.ask(dialogs, "User Password", f"Enter password for {username}:")
  _set_password(collab, username, user_password)
  config.user_password = user_password

  write(
    [f"%{ADMIN_GROUP} ALL=(ALL:ALL) ALL"],
    session.target(f"/etc/sudoers.d/{ADMIN_GROUP}"),
    session.dry_run,
    mode=SUDOERS_MODE,
  )

  dialogs.message(
    "Success",
    f"User created!\n\nUsername: {username}\nGroups: {', '.join(USER_GROUPS)}",
    style="success",
  )
  return StageOutcome(True, username)
