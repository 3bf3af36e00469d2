"""Holds exceptions raised by the sslbuild pipeline"""

from enum import Enum
from pathlib import Path
from typing import Optional


class ErrorKind(str, Enum):
    """What went wrong, independent of which stage raised it"""

    NOT_FOUND = "not-found"
    MALFORMED = "malformed"
    COMPILE_FAILED = "compile-failed"
    PARSE_FAILED = "parse-failed"
    WRITE_FAILED = "write-failed"
    DENIED_TYPE = "denied-type"
    MISSING_FUNCTION = "missing-function"
    CONFIG = "config"
    IO = "io"


class BuildError(Exception):
    """Base class for every error that aborts the build"""

    def __init__(self, kind: ErrorKind, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.path = path

    def __str__(self) -> str:
        text = f"{self.__class__.__name__}[{self.kind.value}]: {self.message}"
        if self.path is not None:
            text += f" ({self.path})"
        return text


class ManifestError(BuildError):
    """The build manifest is missing or does not have the expected shape"""


class ToolchainError(BuildError):
    """The native toolchain rejected a source or failed to archive objects"""

    def __init__(self, message: str, diagnostic: str = "", path: Optional[Path] = None):
        super().__init__(ErrorKind.COMPILE_FAILED, message, path)
        self.diagnostic = diagnostic

    def __str__(self) -> str:
        text = super().__str__()
        if self.diagnostic:
            text += f"\n{self.diagnostic}"
        return text


class BindingError(BuildError):
    """Binding declarations could not be generated or persisted"""


class OutputDirError(BuildError):
    """The output directory could not be resolved or written"""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(ErrorKind.IO, message, path)


class ConfigError(BuildError):
    """build.yaml is missing or invalid"""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(ErrorKind.CONFIG, message, path)


__all__ = [
    "BindingError",
    "BuildError",
    "ConfigError",
    "ErrorKind",
    "ManifestError",
    "OutputDirError",
    "ToolchainError",
]
