import io
import logging

import pytest
from rich.console import Console

from archtui.commands import MISSING_BINARY, REDACTED, CommandRunner, format_command


@pytest.fixture
def quiet() -> Console:
  return Console(file=io.StringIO(), width=120)


def test_success_captures_output(quiet: Console) -> None:
  result = CommandRunner(console=quiet).run(["echo", "hello"])

  assert result.ok
  assert result.stdout == "hello\n"
  assert result.args == ("echo", "hello")


def test_failure_is_returned_not_raised(quiet: Console) -> None:
  result = CommandRunner(console=quiet).run(["false"])

  assert not result.ok
  assert result.returncode == 1


def test_missing_binary(quiet: Console) -> None:
  result = CommandRunner(console=quiet).run(["archtui-no-such-program"])

  assert result.returncode == MISSING_BINARY
  assert result.stderr


def test_stdin_is_passed(quiet: Console) -> None:
  result = CommandRunner(console=quiet).run(["cat"], input_text="root:secret\n")

  assert result.stdout == "root:secret\n"


def test_stream_echoes_and_captures(quiet: Console) -> None:
  result = CommandRunner(console=quiet).run(["printf", "one\\ntwo\\n"], stream=True)

  assert result.stdout == "one\ntwo\n"
  assert "two" in quiet.file.getvalue()


def test_query_and_check(quiet: Console) -> None:
  runner = CommandRunner(console=quiet)

  assert runner.query(["echo", "  value  "]) == "value"
  assert runner.query(["false"]) == ""
  assert runner.check(["true"])
  assert not runner.check(["false"])


@pytest.mark.parametrize("stream", [False, True])
def test_undecodable_output_is_replaced(quiet: Console, stream: bool) -> None:
  result = CommandRunner(console=quiet).run(["printf", "\\377abc"], stream=stream)

  assert result.ok
  assert result.stdout == "�abc"


def test_undecodable_query_and_check(quiet: Console) -> None:
  runner = CommandRunner(console=quiet)

  assert runner.query(["printf", "\\377abc"]) == "�abc"
  assert runner.check(["printf", "\\377"])


def test_dry_run_executes_nothing(quiet: Console, tmp_path) -> None:
  marker = tmp_path / "created"
  runner = CommandRunner(dry_run=True, console=quiet)

  result = runner.run(["touch", str(marker)])

  assert result.ok
  assert not marker.exists()
  assert "[DRY RUN]" in quiet.file.getvalue()
  assert runner.query(["lsblk"], dry_value="sda 8G disk") == "sda 8G disk"
  assert runner.check(["mountpoint", "-q", "/mnt"], dry_value=False) is False


def test_chroot_prefix() -> None:
  assert CommandRunner(mount_root="/target").chroot("locale-gen") == ["arch-chroot", "/target", "locale-gen"]


def test_redaction() -> None:
  assert format_command(["iwctl", "--passphrase", "hunter2"], redact=["hunter2"]) == f"iwctl --passphrase {REDACTED}"
  assert format_command(["echo", "two words"]) == "echo 'two words'"


def test_secrets_never_reach_the_log(
  quiet: Console, caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
  monkeypatch.setattr(logging.getLogger("archtui"), "propagate", True)
  caplog.set_level(logging.DEBUG, logger="archtui")

  _ = CommandRunner(console=quiet).run(["echo", "hunter2"], redact=["hunter2"])
  _ = CommandRunner(console=quiet).run(["cat"], input_text="root:topsecret\n", redact=["topsecret"])

  assert "hunter2" not in caplog.text
  assert "topsecret" not in caplog.text
  assert REDACTED in caplog.text
