"""
Library units: one logical native library with its resolved sources and flags
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Tuple


class Dialect(Enum):
    """Language dialect a library is compiled as"""

    C = "c"
    CXX = "c++"

    @classmethod
    def from_name(cls, name: str) -> "Dialect":
        aliases = {"c": cls.C, "c11": cls.C, "c++": cls.CXX, "cxx": cls.CXX, "cpp": cls.CXX, "c++11": cls.CXX}
        try:
            return aliases[str(name).lower()]
        except KeyError:
            raise ValueError(f"Unknown dialect: {name}") from None

    def std_flag(self, compiler_type: str) -> str:
        """Standard-selection flag for this dialect on the given compiler family"""
        if compiler_type == "msvc":
            # MSVC has no C++11 switch; c++14 is its oldest
            return "/std:c11" if self is Dialect.C else "/std:c++14"
        return "-std=c11" if self is Dialect.C else "-std=c++11"


@dataclass(frozen=True)
class LibraryUnit:
    """Everything needed to compile one static archive"""

    name: str
    dialect: Dialect
    sources: Tuple[Path, ...]
    include_dirs: Tuple[Path, ...] = ()
    defines: Tuple[Tuple[str, Optional[str]], ...] = ()
    warnings: bool = False


def unique_in_order(paths: Iterable[str]) -> List[str]:
    """Drop repeated entries, keeping the first occurrence"""
    seen = set()
    result = []
    for path in paths:
        if path not in seen:
            seen.add(path)
            result.append(path)
    return result


def make_units(resolved, config) -> Tuple[LibraryUnit, LibraryUnit]:
    """
    Build the core and protocol units for a resolved manifest

    Args:
        resolved: ResolvedManifest for the active target
        config: BuildConfig

    Returns:
        (core_unit, protocol_unit)
    """
    core_spec = config.library("core")
    protocol_spec = config.library("protocol")

    core_files = unique_in_order(
        list(resolved.core_sources) + list(resolved.fragment_sources) + list(resolved.asm_sources)
    )
    protocol_files = unique_in_order(resolved.protocol_sources)

    def unit(spec, files):
        return LibraryUnit(
            name=spec.name,
            dialect=spec.dialect,
            sources=tuple(config.source_root / f for f in files),
            include_dirs=config.include_dirs,
            defines=spec.defines,
            warnings=config.warnings,
        )

    return unit(core_spec, core_files), unit(protocol_spec, protocol_files)


__all__ = ["Dialect", "LibraryUnit", "make_units", "unique_in_order"]
