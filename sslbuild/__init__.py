"""
sslbuild
Build orchestrator for the vendored BoringSSL libraries and their FFI bindings
"""

__version__ = "1.0.0"

from .main import BuildArtifacts, BuildSystem

__all__ = ["BuildArtifacts", "BuildSystem", "__version__"]
