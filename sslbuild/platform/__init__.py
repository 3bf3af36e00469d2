"""
Target platform detection
"""

import os
import sys
import platform
import re
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class TargetPlatform:
    """OS, CPU architecture and byte order of the build target"""

    os: str
    arch: str
    endian: str = "little"

    def __str__(self) -> str:
        return f"{self.os}-{self.arch} ({self.endian}-endian)"


# Normalized names follow cargo's target_os / target_arch spelling
_OS_ALIASES = {
    "darwin": "macos",
    "macosx": "macos",
    "macos": "macos",
    "ios": "ios",
    "linux": "linux",
    "windows": "windows",
    "win32": "windows",
}

_ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
    "i386": "x86",
    "i586": "x86",
    "i686": "x86",
    "x86": "x86",
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "aarch64_be": "aarch64",
    "ppc64le": "powerpc64",
    "ppc64": "powerpc64",
    "powerpc64le": "powerpc64",
    "powerpc64": "powerpc64",
}


def normalize_os(name: str) -> str:
    name = name.lower()
    return _OS_ALIASES.get(name, name)


def normalize_arch(name: str) -> str:
    name = name.lower()
    if name in _ARCH_ALIASES:
        return _ARCH_ALIASES[name]
    if name.startswith("arm") or name.startswith("thumb"):
        return "arm"
    return name


class PlatformDetector:
    """Detects the platform the native libraries are being built for"""

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        """
        Initialize detector

        Args:
            environ: Environment to inspect (defaults to os.environ)
        """
        self.environ = os.environ if environ is None else environ

    def detect(self) -> TargetPlatform:
        """
        Detect the build target

        Cargo passes the target to build scripts through CARGO_CFG_TARGET_*;
        a bare TARGET triple is the next best thing, and the host is used
        when neither is set.
        """
        target = self._from_cargo_cfg()
        if target is None:
            target = self._from_triple(self.environ.get("TARGET", ""))
        if target is None:
            target = self._from_host()
        return target

    def _from_cargo_cfg(self) -> Optional[TargetPlatform]:
        target_os = self.environ.get("CARGO_CFG_TARGET_OS")
        target_arch = self.environ.get("CARGO_CFG_TARGET_ARCH")
        if not target_os or not target_arch:
            return None
        endian = self.environ.get("CARGO_CFG_TARGET_ENDIAN", "little")
        return TargetPlatform(normalize_os(target_os), normalize_arch(target_arch), endian)

    def _from_triple(self, triple: str) -> Optional[TargetPlatform]:
        """Parse triples like x86_64-unknown-linux-gnu or aarch64-apple-ios"""
        if not triple:
            return None
        parts = triple.lower().split("-")
        if len(parts) < 2:
            return None

        arch_part = parts[0]
        arch = normalize_arch(arch_part)
        endian = "big" if re.search(r"(eb|be)$", arch_part) or arch_part in ("powerpc64", "ppc64") \
            else "little"

        rest = parts[1:]
        if any(part.startswith("android") for part in rest):
            target_os = "android"
        elif "ios" in rest:
            target_os = "ios"
        elif "darwin" in rest:
            target_os = "macos"
        elif "windows" in rest:
            target_os = "windows"
        elif "linux" in rest:
            target_os = "linux"
        else:
            target_os = rest[-1]
        return TargetPlatform(target_os, arch, endian)

    def _from_host(self) -> TargetPlatform:
        """Use the running interpreter as the target"""
        system = sys.platform if sys.platform == "ios" else platform.system()
        machine = platform.machine()

        arch = normalize_arch(machine) if machine else "unknown"
        # A 32-bit interpreter on a 64-bit x86 host builds 32-bit code
        python_bits = 64 if sys.maxsize > 2**32 else 32
        if python_bits == 32 and arch == "x86_64":
            arch = "x86"

        return TargetPlatform(normalize_os(system), arch, sys.byteorder)


__all__ = ["PlatformDetector", "TargetPlatform", "normalize_arch", "normalize_os"]
