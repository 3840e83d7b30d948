"""
Stage state tracking.

The tracker owns the eight stage records. Stage order is for display only:
any stage whose precondition holds may run, and re-running a completed
stage simply executes it again.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from archtui.exceptions import PreconditionError
from archtui.types import StageId, StageProgress

if TYPE_CHECKING:
  from archtui.context import InstallationSession

logger = logging.getLogger(__name__)

Precondition = Callable[["InstallationSession"], bool]


def _always(_session: InstallationSession) -> bool:
  return True


def _root_mounted(session: InstallationSession) -> bool:
  return session.root_mounted


def _base_installed(session: InstallationSession) -> bool:
  return session.root_mounted and session.stages.is_complete(StageId.BASE_INSTALL)


def _user_created(session: InstallationSession) -> bool:
  return _base_installed(session) and session.stages.is_complete(StageId.USERS)


def _bootable(session: InstallationSession) -> bool:
  return (
    _base_installed(session)
    and session.stages.is_complete(StageId.CONFIGURE)
    and session.root_device is not None
  )


NEEDS_MOUNT = "Root partition not mounted!\n\nPlease complete partitioning first."
NEEDS_BASE = (
  "Base system not installed or root not mounted!\n\n"
  "Please complete partitioning and the base installation first."
)
NEEDS_USER = "No user account yet or root not mounted!\n\nPlease complete partitioning and the users step first."
NEEDS_CONFIG = (
  "System not configured, root not mounted or root partition unknown!\n\n"
  "Please complete partitioning and configuration first."
)

PRECONDITIONS: dict[StageId, tuple[Precondition, str]] = {
  StageId.KEYBOARD: (_always, ""),
  StageId.NETWORK: (_always, ""),
  StageId.PARTITIONING: (_always, ""),
  StageId.BASE_INSTALL: (_root_mounted, NEEDS_MOUNT),
  StageId.CONFIGURE: (_base_installed, NEEDS_BASE),
  StageId.USERS: (_base_installed, NEEDS_BASE),
  StageId.PACKAGES: (_user_created, NEEDS_USER),
  StageId.BOOTLOADER: (_bootable, NEEDS_CONFIG),
}


@dataclass
class Stage:
  stage_id: StageId
  precondition: Precondition
  blocked_reason: str
  completed: bool = False


class StageTracker:
  def __init__(self) -> None:
    self._stages: dict[StageId, Stage] = {
      stage_id: Stage(stage_id, *PRECONDITIONS[stage_id]) for stage_id in StageId
    }

  def __iter__(self):
    return iter(self._stages.values())

  def __len__(self) -> int:
    return len(self._stages)

  def is_complete(self, stage_id: StageId) -> bool:
    return self._stages[stage_id].completed

  def can_run(self, stage_id: StageId, session: InstallationSession) -> bool:
    return self._stages[stage_id].precondition(session)

  def check(self, stage_id: StageId, session: InstallationSession) -> None:
    """Raise PreconditionError when the stage may not run yet."""
    if not self.can_run(stage_id, session):
      raise PreconditionError(self._stages[stage_id].blocked_reason)

  def mark_complete(self, stage_id: StageId) -> None:
    self._stages[stage_id].completed = True
    logger.info("Stage %s completed", stage_id.title)

  def mark_failed(self, stage_id: StageId) -> None:
    self._stages[stage_id].completed = False
    logger.info("Stage %s not completed", stage_id.title)

  def progress_summary(self) -> list[StageProgress]:
    return [StageProgress(stage.stage_id, stage.stage_id.title, stage.completed) for stage in self._stages.values()]
