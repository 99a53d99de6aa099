# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from .locator import ProcessLocator
from .platforms import (
    DarwinProbe,
    PlatformProbe,
    UnixProbe,
    WindowsProbe,
    select_platform_probe,
)
from .port_scanner import PortScanner

__all__ = [
    "ProcessLocator",
    "PortScanner",
    "PlatformProbe",
    "UnixProbe",
    "DarwinProbe",
    "WindowsProbe",
    "select_platform_probe",
]
