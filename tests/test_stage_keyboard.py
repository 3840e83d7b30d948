import pytest

from archtui.exceptions import CollaboratorFailure
from archtui.stages import keyboard
from fakes import FakeRunner, ScriptedDialogs


def test_default_keymap(session, collab, runner: FakeRunner, dialogs: ScriptedDialogs) -> None:
  dialogs.queue(None)

  outcome = keyboard.run(session, collab)

  assert outcome.completed
  assert runner.calls == [("loadkeys", "us")]
  assert session.config.keymap == "us"


def test_configured_keymap_skips_prompt(session, collab, runner: FakeRunner, dialogs: ScriptedDialogs) -> None:
  session.config.keymap = "de"

  outcome = keyboard.run(session, collab)

  assert outcome.completed
  assert dialogs.questions == []
  assert runner.calls == [("loadkeys", "de")]


def test_rejected_keymap_is_asked_again(session, collab, runner: FakeRunner, dialogs: ScriptedDialogs) -> None:
  runner.respond("loadkeys", "xx", returncode=1, stderr="cannot open file xx")
  dialogs.queue("xx", "fr")

  outcome = keyboard.run(session, collab)

  assert outcome.completed
  assert runner.calls == [("loadkeys", "xx"), ("loadkeys", "fr")]
  assert session.config.keymap == "fr"
  assert "error" in dialogs.styles()


def test_empty_keymap_is_reprompted(session, collab, runner: FakeRunner, dialogs: ScriptedDialogs) -> None:
  dialogs.queue("", "us")

  outcome = keyboard.run(session, collab)

  assert outcome.completed
  assert runner.calls == [("loadkeys", "us")]


def test_missing_loadkeys_is_a_hard_failure(session, collab, runner: FakeRunner, dialogs: ScriptedDialogs) -> None:
  runner.respond("loadkeys", returncode=127, stderr="No such file or directory")
  dialogs.queue("us")

  with pytest.raises(CollaboratorFailure):
    _ = keyboard.run(session, collab)
