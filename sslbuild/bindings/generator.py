"""
Binding generation for the allow-listed functions

The umbrella header is parsed with libclang. Every allow-listed function is
emitted together with the typedefs, records and enums its signature needs,
rendered as a cffi cdef fragment.
"""

import itertools
import logging
import os
import shlex
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from cffi import FFI, CDefError, FFIError
from cffi.commontypes import COMMON_TYPES
from clang.cindex import (
    Config,
    CursorKind,
    Diagnostic,
    Index,
    LibclangError,
    TranslationUnitLoadError,
    TypeKind,
)

from ..errors import BindingError, ErrorKind
from .symbol_filter import SymbolFilter

LOGGER_NAME = "sslbuild"

ARRAY_KINDS = (
    TypeKind.CONSTANTARRAY,
    TypeKind.INCOMPLETEARRAY,
    TypeKind.VARIABLEARRAY,
    TypeKind.DEPENDENTSIZEDARRAY,
)


@dataclass(frozen=True)
class BindingSource:
    """Rendered declarations ready to be written out"""

    text: str
    functions: Tuple[str, ...]
    header: Path


class _DeniedType(Exception):
    def __init__(self, type_name: str):
        super().__init__(type_name)
        self.type_name = type_name


def _is_unnamed(spelling: str) -> bool:
    # libclang spells anonymous tags as "" or "(unnamed struct at ...)"
    return not spelling or "(" in spelling


def _is_anonymous_tag(decl) -> bool:
    """True for `struct { ... }` style declarations, whatever libclang calls them"""
    if _is_unnamed(decl.spelling):
        return True
    tokens = [token.spelling for token in itertools.islice(decl.get_tokens(), 2)]
    return len(tokens) == 2 and tokens[1] == "{"


def _strip_elaborated(ctype):
    while ctype.kind == TypeKind.ELABORATED:
        ctype = ctype.get_named_type()
    return ctype


def _declarator(spelling: str, name: str) -> str:
    """Place name inside a type spelling, e.g. "int (*)(int)" -> "int (*cb)(int)" """
    marker = spelling.find("(*")
    if marker != -1:
        return f"{spelling[:marker + 2]}{name}{spelling[marker + 2:]}"
    bracket = spelling.find("[")
    if bracket != -1:
        return f"{spelling[:bracket].rstrip()} {name}{spelling[bracket:]}"
    if spelling.endswith("*"):
        return f"{spelling}{name}"
    return f"{spelling} {name}"


def _block(lines: Iterable[str], separator: str = "") -> str:
    lines = list(lines)
    body = "\n".join(
        line + (separator if separator and i < len(lines) - 1 else "")
        for i, line in enumerate(lines)
    )
    return "{\n" + textwrap.indent(body, "    ") + "\n}"


class _DeclarationCollector:
    """Walks clang types and emits each declaration once, dependencies first"""

    def __init__(self, symbol_filter: SymbolFilter):
        self.symbol_filter = symbol_filter
        self.declarations: List[str] = []
        self._seen: Set[str] = set()
        self._opaque: Set[str] = set()
        self._denied: Dict[str, str] = {}
        self._declared_tags: Set[str] = set()

    def _emit(self, text: str):
        self.declarations.append(text)

    def _check(self, name: str):
        if name and self.symbol_filter.denies_type(name):
            raise _DeniedType(name)

    def require(self, ctype) -> bool:
        """
        Emit everything ctype needs

        Returns:
            False when the type's layout is unknown (opaque or only declared)

        Raises:
            _DeniedType: if a denied type name is reached
        """
        kind = ctype.kind
        if kind == TypeKind.ELABORATED:
            return self.require(ctype.get_named_type())
        if kind in (TypeKind.POINTER, TypeKind.BLOCKPOINTER):
            self.require(ctype.get_pointee())
            return True
        if kind in ARRAY_KINDS:
            return self.require(ctype.get_array_element_type())
        if kind == TypeKind.FUNCTIONPROTO:
            self.require(ctype.get_result())
            for arg in ctype.argument_types():
                self.require(arg)
            return True
        if kind == TypeKind.FUNCTIONNOPROTO:
            self.require(ctype.get_result())
            return True
        if kind == TypeKind.TYPEDEF:
            return self._typedef(ctype.get_declaration())
        if kind == TypeKind.RECORD:
            return self._record(ctype.get_declaration())
        if kind == TypeKind.ENUM:
            return self._enum(ctype.get_declaration())
        return True

    def _typedef(self, decl) -> bool:
        name = decl.spelling
        self._check(name)
        if name in COMMON_TYPES:
            return True

        key = f"typedef {name}"
        if key in self._denied:
            raise _DeniedType(self._denied[key])
        if key in self._seen:
            return key not in self._opaque
        self._seen.add(key)

        try:
            return self._typedef_body(decl, name, key)
        except _DeniedType as e:
            # Every later use of this typedef hits the same denied type
            self._denied[key] = e.type_name
            raise

    def _typedef_body(self, decl, name: str, key: str) -> bool:
        underlying = decl.underlying_typedef_type
        target = _strip_elaborated(underlying)
        target_decl = target.get_declaration()

        if target.kind in (TypeKind.RECORD, TypeKind.ENUM) and _is_anonymous_tag(target_decl):
            keyword, body = self._inline_tag(target_decl)
            if body is None:
                self._opaque.add(key)
                self._emit(f"typedef ... {name};")
                return False
            self._emit(f"typedef {keyword} {body} {name};")
            return True

        if target.kind == TypeKind.RECORD:
            # Declare the typedef ahead of the body so fields may refer to it
            self._check(target_decl.spelling)
            tag_key = f"{self._record_keyword(target_decl)} {target_decl.spelling}"
            self._emit(f"typedef {underlying.spelling} {name};")
            self._declared_tags.add(tag_key)
            complete = self._record(target_decl)
        else:
            complete = self.require(underlying)
            self._emit(f"typedef {_declarator(underlying.spelling, name)};")

        if not complete:
            self._opaque.add(key)
        return complete

    @staticmethod
    def _record_keyword(decl) -> str:
        return "union" if decl.kind == CursorKind.UNION_DECL else "struct"

    def _record(self, decl) -> bool:
        tag = decl.spelling
        self._check(tag)
        key = f"{self._record_keyword(decl)} {tag}"
        if key in self._seen:
            return key not in self._opaque
        self._seen.add(key)

        definition = decl.get_definition()
        body = self._record_body(definition) if definition is not None else None
        if body is None:
            self._opaque.add(key)
            if key not in self._declared_tags:
                self._emit(f"{key};")
                self._declared_tags.add(key)
            return False

        self._emit(f"{key} {body};")
        return True

    def _record_body(self, decl) -> Optional[str]:
        """Render a record's fields, or None if it has to stay opaque"""
        lines = []
        for field in decl.type.get_fields():
            try:
                line = self._field(field)
            except _DeniedType:
                return None
            if line is None:
                return None
            lines.append(line)
        if not lines:
            return None
        return _block(lines)

    def _field(self, field) -> Optional[str]:
        name = field.spelling
        ftype = field.type
        target = _strip_elaborated(ftype)

        if target.kind in (TypeKind.RECORD, TypeKind.ENUM) and _is_anonymous_tag(target.get_declaration()):
            keyword, body = self._inline_tag(target.get_declaration())
            if body is None:
                return None
            if _is_unnamed(name):
                return f"{keyword} {body};"
            return f"{keyword} {body} {name};"

        if not self.require(ftype):
            return None
        if field.is_bitfield():
            return f"{ftype.spelling} {name} : {field.get_bitfield_width()};"
        return f"{_declarator(ftype.spelling, name)};"

    def _inline_tag(self, decl) -> Tuple[str, Optional[str]]:
        if decl.kind == CursorKind.ENUM_DECL:
            return "enum", self._enum_body(decl)
        definition = decl.get_definition()
        body = self._record_body(definition) if definition is not None else None
        return self._record_keyword(decl), body

    def _enum(self, decl) -> bool:
        tag = decl.spelling
        self._check(tag)
        key = f"enum {tag}"
        if key in self._seen:
            return True
        self._seen.add(key)
        self._emit(f"{key} {self._enum_body(decl)};")
        return True

    @staticmethod
    def _enum_body(decl) -> str:
        constants = [
            f"{child.spelling} = {child.enum_value}"
            for child in decl.get_children()
            if child.kind == CursorKind.ENUM_CONSTANT_DECL
        ]
        return _block(constants, separator=",")


def _render_function(cursor) -> str:
    params = []
    for arg in cursor.get_arguments():
        spelling = arg.type.spelling
        params.append(_declarator(spelling, arg.spelling) if arg.spelling else spelling)
    if cursor.type.kind == TypeKind.FUNCTIONPROTO and cursor.type.is_function_variadic():
        params.append("...")
    signature = f"{cursor.spelling}({', '.join(params) or 'void'})"
    return f"{_declarator(cursor.result_type.spelling, signature)};"


def load_libclang(environ: Optional[Mapping[str, str]] = None):
    """Point clang.cindex at LIBCLANG_PATH (a file or a directory) if set"""
    environ = os.environ if environ is None else environ
    location = environ.get("LIBCLANG_PATH")
    if not location or Config.loaded:
        return
    if Path(location).is_dir():
        Config.set_library_path(location)
    else:
        Config.set_library_file(location)


def clang_args(include_paths: Iterable[Path],
               environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Arguments used to parse the umbrella header"""
    environ = os.environ if environ is None else environ
    args = ["-x", "c", "-std=c11"]
    args.extend(f"-I{path}" for path in include_paths)
    args.extend(shlex.split(environ.get("SSLBUILD_EXTRA_CLANG_ARGS", "")))
    return args


def _parse(header: Path, args: List[str]):
    if not header.is_file():
        raise BindingError(ErrorKind.PARSE_FAILED, "Umbrella header not found", header)

    try:
        tu = Index.create().parse(str(header), args=args)
    except (LibclangError, TranslationUnitLoadError) as e:
        raise BindingError(ErrorKind.PARSE_FAILED, f"libclang could not parse header: {e}", header) from e

    errors = [d for d in tu.diagnostics if d.severity >= Diagnostic.Error]
    if errors:
        details = "; ".join(
            f"{d.location.file}:{d.location.line}: {d.spelling}" if d.location.file else d.spelling
            for d in errors
        )
        raise BindingError(ErrorKind.PARSE_FAILED, f"Header has errors: {details}", header)
    return tu


def generate_bindings(header: Path,
                      symbol_filter: SymbolFilter,
                      include_paths: Iterable[Path] = (),
                      environ: Optional[Mapping[str, str]] = None,
                      logger: Any = None) -> BindingSource:
    """
    Generate declarations for the allow-listed functions in header

    Args:
        header: Umbrella header to parse
        symbol_filter: Functions to expose and type names to refuse
        include_paths: Include directories, the same ones used to compile
        environ: Environment for LIBCLANG_PATH and SSLBUILD_EXTRA_CLANG_ARGS
        logger: Logger instance

    Returns:
        BindingSource with the rendered fragment

    Raises:
        BindingError: PARSE_FAILED, MISSING_FUNCTION or DENIED_TYPE
    """
    logger = logger or logging.getLogger(LOGGER_NAME)
    header = Path(header)

    load_libclang(environ)
    args = clang_args(include_paths, environ)
    logger.debug(f"Parsing {header} with: {' '.join(args)}")
    tu = _parse(header, args)

    found: Dict[str, Any] = {}
    for cursor in tu.cursor.get_children():
        if cursor.kind != CursorKind.FUNCTION_DECL:
            continue
        if symbol_filter.allows_function(cursor.spelling) and cursor.spelling not in found:
            found[cursor.spelling] = cursor

    missing = sorted(symbol_filter.allow_functions - found.keys())
    if missing:
        raise BindingError(
            ErrorKind.MISSING_FUNCTION,
            f"Allow-listed functions not declared: {', '.join(missing)}",
            header,
        )

    collector = _DeclarationCollector(symbol_filter)
    functions = []
    for name, cursor in found.items():
        try:
            collector.require(cursor.result_type)
            for arg in cursor.get_arguments():
                collector.require(arg.type)
        except _DeniedType as denied:
            raise BindingError(
                ErrorKind.DENIED_TYPE,
                f"{name} requires denied type '{denied.type_name}'",
                header,
            ) from None
        functions.append(_render_function(cursor))

    text = "\n\n".join(
        [f"/* Generated by sslbuild from {header.name}. Do not edit. */"]
        + collector.declarations
        + ["\n".join(functions)]
    ) + "\n"

    try:
        FFI().cdef(text)
    except (CDefError, FFIError) as e:
        raise BindingError(ErrorKind.PARSE_FAILED, f"Generated declarations rejected by cffi: {e}", header) from e

    logger.debug(f"Emitted {len(collector.declarations)} type declarations for {len(functions)} functions")
    return BindingSource(text=text, functions=tuple(found), header=header)


def write_bindings(source: BindingSource, path: Path) -> Path:
    """
    Write the fragment verbatim

    Raises:
        BindingError: WRITE_FAILED if the file cannot be created
    """
    path = Path(path)
    try:
        path.write_text(source.text, encoding="utf-8")
    except OSError as e:
        raise BindingError(ErrorKind.WRITE_FAILED, f"Cannot write bindings: {e}", path) from e
    return path
