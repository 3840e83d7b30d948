"""
Session transcript.

Every line shown to the operator and everything captured from invoked
commands is appended to a single log file opened at start-up. The file is
never rotated within a run.
"""

import logging
from datetime import datetime
from pathlib import Path

LOGGER_NAME = "archtui"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def transcript_name(now: datetime | None = None) -> str:
  stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
  return f"install-{stamp}.log"


def configure_transcript(log_dir: str | Path = ".", now: datetime | None = None) -> Path:
  """
  Attach an append-only file handler to the package logger.

  Calling it again returns the already configured path instead of opening
  a second file.

  Returns:
      Path of the transcript file
  """
  logger = logging.getLogger(LOGGER_NAME)
  existing = getattr(logger, "_archtui_transcript", None)
  if existing is not None:
    return existing

  directory = Path(log_dir)
  directory.mkdir(parents=True, exist_ok=True)
  path = directory / transcript_name(now)

  handler = logging.FileHandler(path, mode="a", encoding="utf-8")
  handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))

  logger.setLevel(logging.DEBUG)
  logger.addHandler(handler)
  logger.propagate = False
  setattr(logger, "_archtui_transcript", path)

  logger.info("Transcript started at %s", path)
  return path


def close_transcript() -> None:
  logger = logging.getLogger(LOGGER_NAME)
  for handler in list(logger.handlers):
    if isinstance(handler, logging.FileHandler):
      handler.close()
      logger.removeHandler(handler)
  logger.propagate = True
  if hasattr(logger, "_archtui_transcript"):
    delattr(logger, "_archtui_transcript")
