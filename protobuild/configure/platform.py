# SPDX-License-Identifier: MIT
"""Host platform detection."""

from __future__ import annotations

import platform
import sys
from dataclasses import dataclass
from functools import cache

_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "aarch64": "arm64",
}


@dataclass(frozen=True)
class Platform:
    """The platform protobuild is running on.

    Attributes:
        os: Operating system name ('linux', 'darwin', 'windows', ...).
        arch: Normalized machine architecture ('x86_64', 'arm64', ...).
    """

    os: str
    arch: str

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def exe_suffix(self) -> str:
        return ".exe" if self.is_windows else ""


@cache
def get_platform() -> Platform:
    """Detect the host platform."""
    os_name = "windows" if sys.platform.startswith("win") else sys.platform
    if os_name.startswith("linux"):
        os_name = "linux"
    machine = platform.machine().lower()
    return Platform(os=os_name, arch=_ARCH_ALIASES.get(machine, machine))
