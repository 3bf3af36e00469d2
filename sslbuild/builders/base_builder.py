"""
Base builder class that all builders inherit from
"""

import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional

import setuptools  # noqa: F401  (provides distutils on 3.12+)
from distutils.ccompiler import CCompiler, new_compiler
from distutils.errors import CCompilerError, DistutilsExecError, DistutilsPlatformError
from distutils.sysconfig import customize_compiler

from ..errors import ToolchainError
from ..platform import PlatformDetector
from .library_unit import LibraryUnit


class BaseBuilder(ABC):
    """Compiles one LibraryUnit into a static archive"""

    ASM_EXTENSIONS = [".S", ".s", ".asm"]

    def __init__(self,
                 unit: LibraryUnit,
                 build_dir: Path,
                 logger: Any):
        """
        Initialize base builder

        Args:
            unit: Library unit to compile
            build_dir: Directory receiving objects and the archive
            logger: Logger instance
        """
        self.unit = unit
        self.name = unit.name
        self.build_dir = Path(build_dir)
        self.object_dir = self.build_dir / "obj" / unit.name
        self.logger = logger

    def _detect_cross_compilation(self) -> Optional[str]:
        """
        Return the target triplet implied by CC, if any

        customize_compiler() already honours CC/CXX/AR, so this is only used
        to report what the toolchain will do.
        """
        cc = os.environ.get("CC", "")
        if not cc:
            return None
        cc_base = cc.split()[-1]  # Handle 'ccache aarch64-...-gcc'
        match = re.match(r"([a-z0-9_]+(?:-[a-z0-9_]+){1,3})-(?:gcc|g\+\+|clang)", cc_base, re.IGNORECASE)
        return match.group(1) if match else None

    def create_compiler(self) -> CCompiler:
        """Create a compiler configured from the environment (CC, CFLAGS, AR, ...)"""
        compiler = new_compiler()
        customize_compiler(compiler)
        compiler.src_extensions = list(compiler.src_extensions) + [
            ext for ext in self.ASM_EXTENSIONS if ext not in compiler.src_extensions
        ]
        return compiler

    def _nasm_format(self) -> str:
        """Object format for the target nasm should produce on Windows"""
        target = PlatformDetector(os.environ).detect()
        return "win64" if target.arch == "x86_64" else "win32"

    def assemble(self, compiler: CCompiler, sources: List[str]) -> List[str]:
        """
        Assemble nasm sources, which the MSVC driver cannot compile

        The assembler comes from $NASM, defaulting to nasm on PATH.

        Returns:
            Object files, in source order
        """
        if not sources:
            return []
        nasm = os.environ.get("NASM", "nasm")
        output_format = self._nasm_format()
        self.logger.info(f"Assembling {len(sources)} sources for {self.name} with {nasm} ({output_format})")

        if not getattr(compiler, "initialized", True):
            # spawn() runs with the PATH found by initialize()
            compiler.initialize()

        objects = compiler.object_filenames(sources, output_dir=str(self.object_dir))
        for source, obj in zip(sources, objects):
            Path(obj).parent.mkdir(parents=True, exist_ok=True)
            command = [nasm, "-f", output_format]
            for include_dir in self.unit.include_dirs:
                # nasm concatenates -I prefixes with file names
                command.extend(["-I", os.path.join(str(include_dir), "")])
            command.extend(["-o", obj, source])
            compiler.spawn(command)
        return objects

    @abstractmethod
    def compile_args(self, compiler: CCompiler) -> List[str]:
        """Flags passed ahead of every source for this dialect"""

    def warning_args(self, compiler: CCompiler) -> List[str]:
        if self.unit.warnings:
            return []
        return ["/w"] if compiler.compiler_type == "msvc" else ["-w"]

    def compile(self) -> Path:
        """
        Compile every source and archive the objects

        Returns:
            Path of the static archive

        Raises:
            ToolchainError: if any source fails to compile or archiving fails
        """
        sources = [str(s) for s in self.unit.sources]
        if not sources:
            self.logger.warning(f"{self.name}: no sources resolved, archive will be empty")

        cross_target = self._detect_cross_compilation()
        if cross_target:
            self.logger.debug(f"{self.name}: cross-compiling for {cross_target}")

        try:
            compiler = self.create_compiler()
            args = self.compile_args(compiler) + self.warning_args(compiler)
            self.logger.info(f"Compiling {len(sources)} sources for {self.name} ({self.unit.dialect.value})")
            self.logger.debug(f"  flags: {' '.join(args)}")
            self.logger.debug(f"  include: {', '.join(str(d) for d in self.unit.include_dirs)}")

            assembled = []
            if compiler.compiler_type == "msvc":
                nasm_sources = [s for s in sources if Path(s).suffix == ".asm"]
                sources = [s for s in sources if Path(s).suffix != ".asm"]
                assembled = self.assemble(compiler, nasm_sources)

            self.object_dir.mkdir(parents=True, exist_ok=True)
            objects = compiler.compile(
                sources,
                output_dir=str(self.object_dir),
                macros=list(self.unit.defines),
                include_dirs=[str(d) for d in self.unit.include_dirs],
                extra_preargs=args,
            ) + assembled

            self.logger.debug(f"Archiving {len(objects)} objects into {self.name}")
            compiler.create_static_lib(objects, self.name, output_dir=str(self.build_dir))
            archive = self.build_dir / compiler.library_filename(self.name)
        except (CCompilerError, DistutilsExecError, DistutilsPlatformError) as e:
            self.logger.error(f"Build failed for {self.name}")
            raise ToolchainError(f"Failed to build {self.name}", diagnostic=str(e)) from e

        return archive
