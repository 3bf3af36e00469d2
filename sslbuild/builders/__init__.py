"""
Builder components for the native libraries
"""

from .base_builder import BaseBuilder
from .c_builder import CBuilder
from .cxx_builder import CxxBuilder
from .library_unit import Dialect, LibraryUnit, make_units
from .orchestrator import BuildOrchestrator

__all__ = [
    "BaseBuilder",
    "CBuilder",
    "CxxBuilder",
    "Dialect",
    "LibraryUnit",
    "make_units",
    "BuildOrchestrator",
]
