"""
C11 builder for the core library
"""

from distutils.ccompiler import CCompiler
from typing import List

from .base_builder import BaseBuilder


class CBuilder(BaseBuilder):
    """Builds C sources (and assembly) as C11"""

    def compile_args(self, compiler: CCompiler) -> List[str]:
        return [self.unit.dialect.std_flag(compiler.compiler_type)]
