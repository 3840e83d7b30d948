"""
Network configuration.

Network absence is a soft failure: the outcome is recorded on the session
and a warning shown, but no other stage depends on it.
"""

import logging
import re

from archtui.commands import CommandRunner
from archtui.context import InstallationSession
from archtui.stages import Collaborators
from archtui.types import StageOutcome

logger = logging.getLogger(__name__)

PROBE_HOST = "archlinux.org"
PROBE_COMMAND = ["ping", "-c", "1", "-W", "2", PROBE_HOST]
LEASE_GRACE_SECONDS = 3
ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")

METHODS = [
  ("1", "Ethernet (DHCP)"),
  ("2", "WiFi (iwctl)"),
  ("3", "Skip (no internet)"),
  ("4", "Test connection"),
]


def is_online(runner: CommandRunner) -> bool:
  """Single reachability probe with a 2 second timeout."""
  return runner.check(PROBE_COMMAND)


def list_interfaces(runner: CommandRunner) -> list[str]:
  output = runner.query(["ip", "-br", "link"])
  names = [line.split()[0].split("@")[0] for line in output.splitlines() if line.strip()]
  return [name for name in names if not name.startswith("lo")]


def ethernet_interfaces(runner: CommandRunner) -> list[str]:
  return [name for name in list_interfaces(runner) if not name.startswith("wl")]


def wireless_interfaces(runner: CommandRunner) -> list[str]:
  return [name for name in list_interfaces(runner) if name.startswith("wl")]


def parse_networks(output: str) -> list[str]:
  """Extract network names from `iwctl station <if> get-networks` output."""
  networks: list[str] = []
  for line in ANSI_ESCAPE.sub("", output).splitlines()[4:]:
    entry = line.strip().lstrip(">").strip()
    if not entry or entry.startswith("-"):
      continue
    name = re.split(r"\s{2,}", entry)[0]
    if name and name not in networks:
      networks.append(name)
  return networks


def _sync_clock(runner: CommandRunner) -> None:
  result = runner.run(["timedatectl", "set-ntp", "true"])
  if not result.ok:
    logger.warning("Could not enable NTP time synchronization")


def _after_setup(session: InstallationSession, collab: Collaborators, success: str, failure: str) -> StageOutcome:
  session.online = is_online(collab.runner)
  if session.online:
    _sync_clock(collab.runner)
    collab.dialogs.message("Success", success, style="success")
    return StageOutcome(True, "Online")

  collab.dialogs.message("Error", failure, style="warning")
  return StageOutcome(False, "Offline")


def _ethernet(session: InstallationSession, collab: Collaborators) -> StageOutcome:
  interfaces = ethernet_interfaces(collab.runner)
  if not interfaces:
    collab.dialogs.message("Error", "No ethernet interfaces found!", style="warning")
    return StageOutcome(False, "No ethernet interface")

  iface = collab.dialogs.choose(
    "Select Interface",
    "Choose ethernet interface:",
    [(name, "Ethernet") for name in interfaces],
    default=interfaces[0],
  )

  _ = collab.runner.run(["ip", "link", "set", iface, "up"])
  # The lease request is not awaited, only given a fixed grace period
  _ = collab.runner.run_background(["dhcpcd", iface])
  collab.sleep(LEASE_GRACE_SECONDS)

  return _after_setup(session, collab, "Network configured successfully!", "Failed to get internet connection.")


def _wifi(session: InstallationSession, collab: Collaborators) -> StageOutcome:
  runner = collab.runner
  interfaces = wireless_interfaces(runner)
  if not interfaces:
    collab.dialogs.message("Error", "No wireless interfaces found!", style="warning")
    return StageOutcome(False, "No wireless interface")

  iface = interfaces[0]
  _ = runner.run(["ip", "link", "set", iface, "up"])
  collab.sleep(2)

  _ = runner.run(["iwctl", "station", iface, "scan"])
  collab.sleep(3)

  networks = parse_networks(runner.query(["iwctl", "station", iface, "get-networks"]))
  if not networks:
    collab.dialogs.message("Error", "No networks found!", style="warning")
    return StageOutcome(False, "No networks")

  ssid = collab.dialogs.choose("Select Network", "Choose WiFi network:", [(name, "WiFi") for name in networks])
  passphrase = collab.dialogs.ask("WiFi Password", f"Enter password for '{ssid}':", password=True)

  result = runner.run(
    ["iwctl", "--passphrase", passphrase, "station", iface, "connect", ssid],
    redact=[passphrase],
  )
  if not result.ok:
    logger.warning("iwctl connect returned %d", result.returncode)
  collab.sleep(5)

  return _after_setup(session, collab, "WiFi connected successfully!", "Failed to connect to WiFi.")


def _skip(session: InstallationSession, collab: Collaborators) -> StageOutcome:
  if collab.dialogs.confirm("Skip Network", "Continue without internet?\n\nSome features may not work.", default=False):
    session.online = False
    return StageOutcome(True, "Skipped")
  return StageOutcome(False, "Not configured")


def _test(session: InstallationSession, collab: Collaborators) -> StageOutcome:
  result = collab.runner.run(["ping", "-c", "3", PROBE_HOST])
  session.online = result.ok
  if result.ok:
    collab.dialogs.message("Connection Test", "Internet connection is working!", style="success")
  else:
    collab.dialogs.message("Connection Test", "No internet connection detected.", style="warning")
  return StageOutcome(False, "Connection tested")


HANDLERS = {
  "1": _ethernet,
  "2": _wifi,
  "3": _skip,
  "4": _test,
}


def run(session: InstallationSession, collab: Collaborators) -> StageOutcome:
  if is_online(collab.runner):
    session.online = True
    if collab.dialogs.confirm("Network Status", "Internet connection detected!\n\nConnection is working. Continue?", default=True):
      _sync_clock(collab.runner)
      return StageOutcome(True, "Online")

  choice = collab.dialogs.choose("Network Configuration", "Choose network setup method:", METHODS)
  return HANDLERS[choice](session, collab)
