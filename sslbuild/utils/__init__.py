"""
Utility modules for the build
"""

import logging
import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..errors import OutputDirError


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for terminal output"""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'SUCCESS': '\033[92m',  # Bright Green
        'RESET': '\033[0m'
    }

    def format(self, record):
        if getattr(record, 'raw', False):
            return record.getMessage()

        if sys.stdout.isatty():
            color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
            reset = self.COLORS['RESET']

            record.levelname = f"{color}{record.levelname}{reset}"
            record.msg = f"{color}{record.msg}{reset}"

        return super().format(record)


class Logger:
    """Build logger"""

    SUCCESS = 25  # Between INFO and WARNING

    def __init__(self, verbose: bool = False, log_file: Optional[str] = None):
        """
        Initialize logger

        Args:
            verbose: Enable verbose output
            log_file: Optional log file path
        """
        self.verbose = verbose

        logging.addLevelName(self.SUCCESS, "SUCCESS")

        self.logger = logging.getLogger("sslbuild")
        self.logger.setLevel(logging.DEBUG if verbose else logging.INFO)
        self.logger.propagate = False

        # Remove existing handlers
        self.logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

        if verbose:
            fmt = "%(asctime)s [%(levelname)s] %(message)s"
        else:
            fmt = "[%(levelname)s] %(message)s"

        console_handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S"))
        self.logger.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s [%(levelname)s] %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            ))
            self.logger.addHandler(file_handler)

    def debug(self, msg: str):
        """Log debug message"""
        self.logger.debug(msg)

    def info(self, msg: str):
        """Log info message"""
        self.logger.info(msg)

    def warning(self, msg: str):
        """Log warning message"""
        self.logger.warning(msg)

    def error(self, msg: str):
        """Log error message"""
        self.logger.error(msg)

    def critical(self, msg: str):
        """Log critical message"""
        self.logger.critical(msg)

    def success(self, msg: str):
        """Log success message"""
        self.logger.log(self.SUCCESS, msg)

    def raw(self, msg: str):
        """Log raw message without formatting"""
        record = self.logger.makeRecord(
            self.logger.name, logging.INFO, "", 0, msg, (), None
        )
        record.raw = True
        self.logger.handle(record)


def resolve_out_dir(environ: Optional[Dict[str, str]] = None) -> Path:
    """
    Return OUT_DIR as an existing, writable directory

    Raises:
        OutputDirError: if OUT_DIR is unset, empty, missing or read-only
    """
    environ = os.environ if environ is None else environ
    value = environ.get("OUT_DIR", "")
    if not value:
        raise OutputDirError("OUT_DIR is not set")

    out_dir = Path(value)
    if not out_dir.is_dir():
        raise OutputDirError("OUT_DIR is not a directory", out_dir)
    if not os.access(out_dir, os.W_OK):
        raise OutputDirError("OUT_DIR is not writable", out_dir)
    return out_dir


class StagingArea:
    """
    Scratch directory inside the output directory

    Artifacts are built here and only moved next to it once every stage has
    succeeded, so a failed run leaves the output directory untouched.
    """

    PREFIX = ".sslbuild-"

    def __init__(self, out_dir: Path, logger: Logger):
        self.out_dir = Path(out_dir)
        self.logger = logger
        try:
            self.path = Path(tempfile.mkdtemp(prefix=self.PREFIX, dir=self.out_dir))
        except OSError as e:
            raise OutputDirError(f"Cannot create staging directory: {e}", self.out_dir) from e
        self.logger.debug(f"Staging in {self.path}")

    def __enter__(self) -> "StagingArea":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.discard()

    def promote(self, artifacts: Iterable[Path]) -> List[Path]:
        """
        Move artifacts from the staging directory into the output directory

        Returns:
            Final paths, in the order given
        """
        artifacts = [Path(a) for a in artifacts]
        missing = [a for a in artifacts if not a.is_file()]
        if missing:
            raise OutputDirError(
                f"Staged artifacts missing: {', '.join(a.name for a in missing)}", self.path
            )

        promoted = []
        for artifact in artifacts:
            destination = self.out_dir / artifact.name
            try:
                os.replace(artifact, destination)
            except OSError as e:
                raise OutputDirError(f"Cannot move {artifact.name} into place: {e}", destination) from e
            self.logger.debug(f"  {destination}")
            promoted.append(destination)
        return promoted

    def discard(self):
        """Remove the staging directory and everything left in it"""
        shutil.rmtree(self.path, ignore_errors=True)


__all__ = ["ColoredFormatter", "Logger", "StagingArea", "resolve_out_dir"]
