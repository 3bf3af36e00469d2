"""
C++11 builder for the protocol library
"""

from distutils.ccompiler import CCompiler
from typing import List

from .base_builder import BaseBuilder


class CxxBuilder(BaseBuilder):
    """Builds C++ sources as C++11"""

    def compile_args(self, compiler: CCompiler) -> List[str]:
        args = [self.unit.dialect.std_flag(compiler.compiler_type)]
        if compiler.compiler_type == "msvc":
            args.append("/EHsc")
        return args
