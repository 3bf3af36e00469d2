"""
Build orchestrator that compiles the library units in order
"""

from pathlib import Path
from typing import Any, Dict, Iterable

from .base_builder import BaseBuilder
from .c_builder import CBuilder
from .cxx_builder import CxxBuilder
from .library_unit import Dialect, LibraryUnit


class BuildOrchestrator:
    """Orchestrates compilation of every library unit"""

    # Map dialects to builder classes
    BUILDER_MAP = {
        Dialect.C: CBuilder,
        Dialect.CXX: CxxBuilder,
    }

    def __init__(self,
                 build_dir: Path,
                 logger: Any):
        """
        Initialize build orchestrator

        Args:
            build_dir: Directory receiving objects and archives
            logger: Logger instance
        """
        self.build_dir = Path(build_dir)
        self.logger = logger

        self.build_dir.mkdir(parents=True, exist_ok=True)

    def get_builder(self, unit: LibraryUnit) -> BaseBuilder:
        """
        Get appropriate builder for a library unit

        Args:
            unit: Library unit

        Returns:
            Builder instance
        """
        builder_class = self.BUILDER_MAP.get(unit.dialect)
        if not builder_class:
            raise ValueError(f"Unknown dialect: {unit.dialect}")

        return builder_class(unit=unit, build_dir=self.build_dir, logger=self.logger)

    def build(self, unit: LibraryUnit) -> Path:
        """
        Build one library unit

        Returns:
            Path of the produced archive
        """
        archive = self.get_builder(unit).compile()
        self.logger.success(f"Built {archive.name}")
        return archive

    def build_all(self, units: Iterable[LibraryUnit]) -> Dict[str, Path]:
        """
        Build units sequentially, stopping at the first failure

        Returns:
            Mapping of unit name to archive path, in build order
        """
        archives: Dict[str, Path] = {}
        for unit in units:
            archives[unit.name] = self.build(unit)
        return archives

