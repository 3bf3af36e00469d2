import pytest

from sslbuild.builders import Dialect
from sslbuild.config import DEFAULT_CONFIG_FILE, ConfigLoader
from sslbuild.errors import ConfigError, ErrorKind

MINIMAL = """\
paths:
  source_root: vendor/boringssl
  manifest: vendor/boringssl/BUILD.generated.bzl
  header: include/wrapper.h
  include_dirs:
    - vendor/boringssl/src/include
libraries:
  - name: crypto
    role: core
    dialect: c
    defines: [BORINGSSL_IMPLEMENTATION, OPENSSL_SMALL=1]
  - name: ssl
    role: protocol
    dialect: c++
bindings:
  allow_functions: [TLS_method]
  deny_types: ["^_+darwin_.*"]
"""


def _write(tmp_path, text):
    path = tmp_path / "build.yaml"
    path.write_text(text)
    return path


def test_packaged_config_builds(monkeypatch, tmp_path):
    monkeypatch.delenv("SSLBUILD_CONFIG", raising=False)

    config = ConfigLoader().build_config(tmp_path)

    assert config.source_root == tmp_path / "third_party" / "boringssl"
    assert config.manifest_path == tmp_path / "third_party" / "boringssl" / "BUILD.generated.bzl"
    assert config.header_path == tmp_path / "wrapper.h"
    assert config.include_dirs == (tmp_path / "third_party" / "boringssl" / "src" / "include",)
    assert config.library("core").name == "crypto"
    assert config.library("core").dialect is Dialect.C
    assert config.library("protocol").dialect is Dialect.CXX
    assert config.library("core").defines == (("BORINGSSL_IMPLEMENTATION", None),)
    assert config.warnings is False
    assert config.emit_cargo_metadata is True


def test_environment_selects_config(monkeypatch, tmp_path):
    monkeypatch.setenv("SSLBUILD_CONFIG", str(_write(tmp_path, MINIMAL)))

    loader = ConfigLoader()

    assert loader.config_file == tmp_path / "build.yaml"
    assert loader.config_file != DEFAULT_CONFIG_FILE


def test_given_environment_overrides_process_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("SSLBUILD_CONFIG", str(tmp_path / "absent.yaml"))
    config_file = _write(tmp_path, MINIMAL)

    loader = ConfigLoader(environ={"SSLBUILD_CONFIG": str(config_file)})

    assert loader.config_file == config_file


def test_empty_environment_uses_packaged_config(monkeypatch, tmp_path):
    monkeypatch.setenv("SSLBUILD_CONFIG", str(tmp_path / "absent.yaml"))

    assert ConfigLoader(environ={}).config_file == DEFAULT_CONFIG_FILE


def test_defines_with_values(tmp_path):
    config = ConfigLoader(_write(tmp_path, MINIMAL)).build_config(tmp_path)

    assert config.library("core").defines == (
        ("BORINGSSL_IMPLEMENTATION", None),
        ("OPENSSL_SMALL", "1"),
    )
    assert config.library("protocol").defines == ()
    assert config.bindings_file == "bindings.h"


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError) as excinfo:
        ConfigLoader(tmp_path / "absent.yaml")
    assert excinfo.value.kind is ErrorKind.CONFIG


def test_invalid_yaml(tmp_path):
    with pytest.raises(ConfigError):
        ConfigLoader(_write(tmp_path, "paths: [unclosed\n"))


def test_library_roles_must_be_unique(tmp_path):
    text = MINIMAL.replace("role: protocol", "role: core")
    with pytest.raises(ConfigError):
        ConfigLoader(_write(tmp_path, text)).build_config(tmp_path)


def test_unknown_dialect(tmp_path):
    text = MINIMAL.replace("dialect: c++", "dialect: rust")
    with pytest.raises(ConfigError):
        ConfigLoader(_write(tmp_path, text)).build_config(tmp_path)


def test_bad_deny_pattern(tmp_path):
    text = MINIMAL.replace('"^_+darwin_.*"', '"(unclosed"')
    with pytest.raises(ConfigError):
        ConfigLoader(_write(tmp_path, text)).get_symbol_filter()


def test_missing_path_entry(tmp_path):
    text = MINIMAL.replace("  header: include/wrapper.h\n", "")
    with pytest.raises(ConfigError) as excinfo:
        ConfigLoader(_write(tmp_path, text)).build_config(tmp_path)
    assert "header" in str(excinfo.value)


def test_default_manifest_fields(tmp_path):
    fields = ConfigLoader(_write(tmp_path, MINIMAL)).get_manifest_fields()

    assert fields.required == ("crypto_sources", "ssl_sources", "fips_fragments")
    assert fields.asm_field("linux_x86_64") == "crypto_sources_linux_x86_64"
