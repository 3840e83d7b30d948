import logging
from collections.abc import Sequence
from typing import Protocol

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text

from archtui.types import StageProgress

logger = logging.getLogger(__name__)

STYLES = {
  "info": {"prefix": "[INFO] ", "border": "blue", "level": logging.INFO},
  "success": {"prefix": "[✓] ", "border": "green", "level": logging.INFO},
  "warning": {"prefix": "[!] ", "border": "yellow", "level": logging.WARNING},
  "error": {"prefix": "[✗] ", "border": "red", "level": logging.ERROR},
}

MODE_COLORS = {
  "UEFI": {"text": "bold blue", "border": "blue"},
  "BIOS": {"text": "bold yellow", "border": "yellow"},
}


class Dialogs(Protocol):
  """Operator-facing dialogs used by the stages and the controller."""

  def message(self, title: str, text: str, style: str = "info") -> None: ...

  def confirm(self, title: str, question: str, default: bool = False) -> bool: ...

  def ask(self, title: str, prompt: str, default: str | None = None, password: bool = False) -> str: ...

  def choose(
    self,
    title: str,
    prompt: str,
    options: Sequence[tuple[str, str]],
    default: str | None = None,
  ) -> str: ...

  def show_progress(self, title: str, progress: Sequence[StageProgress]) -> None: ...


def progress_lines(progress: Sequence[StageProgress]) -> list[str]:
  return [f"[{'✓' if item.completed else ' '}] {item.stage_id.value}. {item.title}" for item in progress]


class TUI:
  """Rich based dialogs. Every line shown is also written to the transcript."""

  def __init__(self, console: Console | None = None, boot_mode: str = "UEFI") -> None:
    self.console: Console = console or Console()
    self.colors = MODE_COLORS.get(boot_mode, MODE_COLORS["BIOS"])

  def _create_panel(self, title: str, body: Text, border: str) -> Panel:
    return Panel(
      body,
      border_style=border,
      padding=(0, 1),
      expand=False,
      box=box.SQUARE,
      title=escape(title),
      title_align="left",
    )

  def message(self, title: str, text: str, style: str = "info") -> None:
    settings = STYLES.get(style, STYLES["info"])
    for line in text.splitlines() or [""]:
      logger.log(settings["level"], "%s%s: %s", settings["prefix"], title, line)
    self.console.print(self._create_panel(title, Text(text), settings["border"]))

  def confirm(self, title: str, question: str, default: bool = False) -> bool:
    logger.info("%s: %s", title, question)
    answer = Confirm.ask(f"[bold]{escape(title)}[/] {escape(question)}", default=default, console=self.console)
    logger.info("answer: %s", "yes" if answer else "no")
    return answer

  def ask(self, title: str, prompt: str, default: str | None = None, password: bool = False) -> str:
    logger.info("%s: %s", title, prompt)
    question = f"[bold]{escape(title)}[/] {escape(prompt)}"
    if default is not None and not password:
      value = Prompt.ask(question, default=default, console=self.console)
    else:
      value = Prompt.ask(question, password=password, console=self.console)
    logger.info("answer: %s", "(hidden)" if password else value)
    return value

  def choose(
    self,
    title: str,
    prompt: str,
    options: Sequence[tuple[str, str]],
    default: str | None = None,
  ) -> str:
    table = Table(box=box.SIMPLE, show_header=False, title=escape(title), title_justify="left")
    table.add_column("key", style=self.colors["text"])
    table.add_column("description")
    for key, description in options:
      table.add_row(escape(key), escape(description))
    self.console.print(table)

    logger.info("%s: %s", title, prompt)
    for key, description in options:
      logger.info("  %s  %s", key, description)

    choices = [key for key, _ in options]
    if default is not None and default in choices:
      answer = Prompt.ask(escape(prompt), choices=choices, default=default, show_choices=False, console=self.console)
    else:
      answer = Prompt.ask(escape(prompt), choices=choices, show_choices=False, console=self.console)
    logger.info("answer: %s", answer)
    return answer

  def show_progress(self, title: str, progress: Sequence[StageProgress]) -> None:
    lines = progress_lines(progress)
    logger.info("%s", title)
    for line in lines:
      logger.info("  %s", line)

    body = Text("Installation Progress:\n\n", style=self.colors["text"])
    body.append("\n".join(lines))
    self.console.print(self._create_panel(title, body, self.colors["border"]))
