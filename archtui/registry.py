"""
Embedded package sets.

Package names are stored as constants so the stages never build package
lists from ad hoc strings.
"""

from typing import Final

from archtui.types import CpuVendor

CORE_PACKAGES: Final[list[str]] = ["base", "linux", "linux-firmware"]

BASE_DEVEL_PACKAGES: Final[list[str]] = ["base-devel"]

WIFI_PACKAGES: Final[list[str]] = ["wpa_supplicant", "wireless_tools", "iw"]

EXTRA_PACKAGES: Final[list[str]] = [
  "networkmanager",
  "vim",
  "nano",
  "tmux",
  "htop",
  "git",
  "openssh",
]

MICROCODE_PACKAGES: Final[dict[CpuVendor, str]] = {
  CpuVendor.INTEL: "intel-ucode",
  CpuVendor.AMD: "amd-ucode",
}

USER_GROUPS: Final[list[str]] = ["wheel", "audio", "video", "storage", "optical", "power"]

ADMIN_GROUP: Final[str] = "wheel"


def microcode_package(vendor: CpuVendor) -> str | None:
  return MICROCODE_PACKAGES.get(vendor)


def base_packages(vendor: CpuVendor, base_devel: bool, wifi: bool) -> list[str]:
  """
  Assemble the package set handed to pacstrap.

  Args:
      vendor: Detected CPU vendor, selects the microcode package
      base_devel: Include the base-devel group
      wifi: Include wireless tools

  Returns:
      Ordered list without duplicates
  """
  packages = list(CORE_PACKAGES)
  if base_devel:
    packages += BASE_DEVEL_PACKAGES
  if wifi:
    packages += WIFI_PACKAGES

  ucode = microcode_package(vendor)
  if ucode:
    packages.append(ucode)

  return list(dict.fromkeys(packages))
