"""Stage executor registry"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from importlib import import_module
from typing import TYPE_CHECKING, Protocol, cast

from archtui.commands import CommandRunner
from archtui.tui import Dialogs
from archtui.types import StageId, StageOutcome

if TYPE_CHECKING:
  from archtui.context import InstallationSession

__all__ = ["Collaborators", "StageModule", "get_stage", "STAGE_MODULES"]

STAGE_MODULES: dict[StageId, str] = {
  StageId.KEYBOARD: "keyboard",
  StageId.NETWORK: "network",
  StageId.PARTITIONING: "partition",
  StageId.BASE_INSTALL: "base",
  StageId.CONFIGURE: "configure",
  StageId.USERS: "users",
  StageId.PACKAGES: "packages",
  StageId.BOOTLOADER: "bootloader",
}


@dataclass
class Collaborators:
  """External collaborators handed to every stage."""

  runner: CommandRunner
  dialogs: Dialogs
  sleep: Callable[[float], None] = field(default=time.sleep)


class StageModule(Protocol):
  def run(self, session: "InstallationSession", collab: Collaborators) -> StageOutcome: ...


def get_stage(stage_id: StageId) -> StageModule:
  """
  Load and return the executor module for a stage.

  Each stage module exposes run(session, collaborators) -> StageOutcome.
  """
  module = import_module(f"archtui.stages.{STAGE_MODULES[stage_id]}")
  # Double cast needed: ModuleType -> object -> StageModule
  return cast(StageModule, cast(object, module))
