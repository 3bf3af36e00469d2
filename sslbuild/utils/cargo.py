"""
Cargo build-script metadata
"""

from pathlib import Path
from typing import Iterable, List

from ..platform import TargetPlatform

APPLE_OSES = ("macos", "ios")


def cxx_runtime(target: TargetPlatform) -> str:
    """C++ standard library the protocol archive needs at link time"""
    return "c++" if target.os in APPLE_OSES else "stdc++"


def metadata_lines(out_dir: Path,
                   libraries: Iterable[str],
                   target: TargetPlatform,
                   watched: Iterable[Path]) -> List[str]:
    """
    Lines telling cargo how to link the archives

    Args:
        out_dir: Directory holding the archives
        libraries: Library names, in link order
        target: Target platform
        watched: Inputs whose change should rerun the build

    Returns:
        cargo: directives, one per line
    """
    lines = [f"cargo:rustc-link-search=native={out_dir}"]
    lines.extend(f"cargo:rustc-link-lib=static={name}" for name in libraries)
    if target.os != "windows":
        lines.append(f"cargo:rustc-link-lib={cxx_runtime(target)}")
    lines.extend(f"cargo:rerun-if-changed={path}" for path in watched)
    return lines
