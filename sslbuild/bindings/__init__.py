"""
FFI binding generation for the allow-listed API surface
"""

from .generator import BindingSource, clang_args, generate_bindings, load_libclang, write_bindings
from .symbol_filter import SymbolFilter

__all__ = [
    "BindingSource",
    "SymbolFilter",
    "clang_args",
    "generate_bindings",
    "load_libclang",
    "write_bindings",
]
