import sys

import pytest

from sslbuild.manifest import match_variant
from sslbuild.platform import PlatformDetector, TargetPlatform, normalize_arch, normalize_os


@pytest.mark.parametrize("environ,expected", [
    ({"CARGO_CFG_TARGET_OS": "linux", "CARGO_CFG_TARGET_ARCH": "x86_64"},
     TargetPlatform("linux", "x86_64", "little")),
    ({"CARGO_CFG_TARGET_OS": "macos", "CARGO_CFG_TARGET_ARCH": "aarch64"},
     TargetPlatform("macos", "aarch64", "little")),
    ({"CARGO_CFG_TARGET_OS": "linux", "CARGO_CFG_TARGET_ARCH": "powerpc64", "CARGO_CFG_TARGET_ENDIAN": "big"},
     TargetPlatform("linux", "powerpc64", "big")),
])
def test_cargo_cfg_wins(environ, expected):
    environ = dict(environ, TARGET="i686-pc-windows-msvc")
    assert PlatformDetector(environ).detect() == expected


@pytest.mark.parametrize("triple,expected", [
    ("x86_64-unknown-linux-gnu", TargetPlatform("linux", "x86_64", "little")),
    ("i686-unknown-linux-gnu", TargetPlatform("linux", "x86", "little")),
    ("armv7-unknown-linux-gnueabihf", TargetPlatform("linux", "arm", "little")),
    ("aarch64-apple-ios", TargetPlatform("ios", "aarch64", "little")),
    ("armv7s-apple-ios", TargetPlatform("ios", "arm", "little")),
    ("x86_64-apple-darwin", TargetPlatform("macos", "x86_64", "little")),
    ("i686-pc-windows-msvc", TargetPlatform("windows", "x86", "little")),
    ("powerpc64le-unknown-linux-gnu", TargetPlatform("linux", "powerpc64", "little")),
    ("powerpc64-unknown-linux-gnu", TargetPlatform("linux", "powerpc64", "big")),
    ("aarch64_be-unknown-linux-gnu", TargetPlatform("linux", "aarch64", "big")),
    ("riscv64gc-unknown-freebsd", TargetPlatform("freebsd", "riscv64gc", "little")),
    ("armv7-linux-androideabi", TargetPlatform("android", "arm", "little")),
    ("aarch64-linux-android", TargetPlatform("android", "aarch64", "little")),
])
def test_target_triples(triple, expected):
    assert PlatformDetector({"TARGET": triple}).detect() == expected


def test_host_is_the_fallback():
    target = PlatformDetector({}).detect()

    assert target.endian == sys.byteorder
    assert target.os == normalize_os(target.os)


def test_incomplete_cargo_cfg_falls_through_to_triple():
    environ = {"CARGO_CFG_TARGET_OS": "linux", "TARGET": "x86_64-pc-windows-gnu"}
    assert PlatformDetector(environ).detect() == TargetPlatform("windows", "x86_64", "little")


@pytest.mark.parametrize("name,expected", [
    ("AMD64", "x86_64"), ("arm64", "aarch64"), ("i386", "x86"), ("thumbv7neon", "arm"), ("ppc64le", "powerpc64"),
])
def test_arch_aliases(name, expected):
    assert normalize_arch(name) == expected


@pytest.mark.parametrize("name,expected", [("Darwin", "macos"), ("Windows", "windows"), ("win32", "windows")])
def test_os_aliases(name, expected):
    assert normalize_os(name) == expected


def test_android_triple_selects_no_linux_assembly():
    target = PlatformDetector({"TARGET": "armv7-linux-androideabi"}).detect()

    assert target.os == "android"
    assert match_variant(target) is None
