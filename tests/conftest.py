import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from sslbuild.bindings import SymbolFilter
from sslbuild.builders import Dialect
from sslbuild.config import BuildConfig, LibrarySpec
from sslbuild.manifest import ManifestFields

from distutils.errors import CompileError, DistutilsExecError

ALLOWED = [
    "SSL_CTX_new",
    "SSL_CTX_set_cipher_list",
    "SSL_CTX_set_ciphersuites",
    "SSL_CTX_set_default_verify_paths",
    "SSL_CTX_set_tlsext_servername_callback",
    "SSL_CTX_use_PrivateKey",
    "TLS_method",
]
DENIED = ["^_+darwin_.*", "^_+opaque_.*", "pthread_rwlock_t"]


def _recorder(level):
    def log(self, msg):
        self.messages.append((level, msg))
    return log


class RecordingLogger:
    """Logger stand-in that keeps every message."""

    def __init__(self):
        self.messages = []
        self.verbose = False

    debug = _recorder("debug")
    info = _recorder("info")
    warning = _recorder("warning")
    error = _recorder("error")
    success = _recorder("success")
    raw = _recorder("raw")

    def at(self, level):
        return [msg for lvl, msg in self.messages if lvl == level]


class FakeCompiler:
    """Minimal CCompiler: writes placeholder objects and archives."""

    def __init__(self, toolchain):
        self.toolchain = toolchain
        self.compiler_type = toolchain.compiler_type
        self.src_extensions = [".c", ".cc", ".cpp", ".cxx"]
        self.compile_calls = []
        self.archives = []
        self.spawn_calls = []

    def compile(self, sources, output_dir=None, macros=None, include_dirs=None,
                extra_preargs=None, **kwargs):
        self.compile_calls.append({
            "sources": list(sources),
            "macros": list(macros or []),
            "include_dirs": list(include_dirs or []),
            "extra_preargs": list(extra_preargs or []),
        })
        objects = []
        for index, source in enumerate(sources):
            if self.toolchain.fail_on and Path(source).name == self.toolchain.fail_on:
                raise CompileError(f"{source}:1:1: error: expected ';'")
            obj = Path(output_dir) / f"{index}-{Path(source).stem}.o"
            obj.write_text(source)
            objects.append(str(obj))
        return objects

    def object_filenames(self, sources, output_dir=None, **kwargs):
        extension = ".obj" if self.compiler_type == "msvc" else ".o"
        return [str(Path(output_dir) / f"{Path(source).stem}{extension}") for source in sources]

    def spawn(self, command):
        self.spawn_calls.append(list(command))
        source = command[-1]
        if self.toolchain.fail_on and Path(source).name == self.toolchain.fail_on:
            raise DistutilsExecError(f"command '{command[0]}' failed with exit code 1")
        Path(command[command.index("-o") + 1]).write_text(source)

    def create_static_lib(self, objects, output_libname, output_dir=None, **kwargs):
        archive = Path(output_dir) / self.library_filename(output_libname)
        archive.write_text("\n".join(objects))
        self.archives.append(archive)

    def library_filename(self, libname):
        if self.compiler_type == "msvc":
            return f"{libname}.lib"
        return f"lib{libname}.a"


class FakeToolchain:
    def __init__(self):
        self.compiler_type = "unix"
        self.fail_on = None
        self.compilers = []

    def new_compiler(self, *args, **kwargs):
        compiler = FakeCompiler(self)
        self.compilers.append(compiler)
        return compiler


@pytest.fixture
def fake_toolchain(monkeypatch):
    toolchain = FakeToolchain()
    monkeypatch.setattr("sslbuild.builders.base_builder.new_compiler", toolchain.new_compiler)
    monkeypatch.setattr("sslbuild.builders.base_builder.customize_compiler", lambda compiler: None)
    return toolchain


@pytest.fixture
def logger():
    return RecordingLogger()


def make_config(root: Path, fields: ManifestFields = None, **overrides) -> BuildConfig:
    defines = (("BORINGSSL_IMPLEMENTATION", None),)
    values = dict(
        source_root=root / "third_party" / "boringssl",
        manifest_path=root / "third_party" / "boringssl" / "BUILD.generated.bzl",
        header_path=root / "wrapper.h",
        bindings_file="bindings.h",
        include_dirs=(root / "third_party" / "boringssl" / "src" / "include",),
        manifest_fields=fields or ManifestFields(),
        libraries=(
            LibrarySpec(name="crypto", role="core", dialect=Dialect.C, defines=defines),
            LibrarySpec(name="ssl", role="protocol", dialect=Dialect.CXX, defines=defines),
        ),
        symbol_filter=SymbolFilter.from_lists(ALLOWED, DENIED),
    )
    values.update(overrides)
    return BuildConfig(**values)
