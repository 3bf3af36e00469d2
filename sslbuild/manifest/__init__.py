"""
Build manifest loading and per-target resolution

The manifest is the generated Bazel source list of the vendored library. It
happens to be valid TOML; hand-written manifests may also be YAML. Either way
the loader only cares that the document is a mapping of field name to a list
of relative paths.
"""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from ..errors import ErrorKind, ManifestError
from ..platform import TargetPlatform

# (os, arch, endian, variant). endian=None matches either byte order.
PLATFORM_VARIANTS: Tuple[Tuple[str, str, Optional[str], str], ...] = (
    ("ios", "aarch64", None, "ios_aarch64"),
    ("ios", "arm", None, "ios_arm"),
    ("linux", "aarch64", None, "linux_aarch64"),
    ("linux", "arm", None, "linux_arm"),
    ("linux", "powerpc64", "little", "linux_ppc64le"),
    ("linux", "x86", None, "linux_x86"),
    ("linux", "x86_64", None, "linux_x86_64"),
    ("macos", "x86", None, "mac_x86"),
    ("macos", "x86_64", None, "mac_x86_64"),
    ("windows", "x86", None, "win_x86"),
    ("windows", "x86_64", None, "win_x86_64"),
)


@dataclass(frozen=True)
class ManifestFields:
    """Names of the logical manifest fields"""

    core: str = "crypto_sources"
    protocol: str = "ssl_sources"
    fragments: str = "fips_fragments"
    asm_prefix: str = "crypto_sources_"

    @property
    def required(self) -> Tuple[str, ...]:
        return (self.core, self.protocol, self.fragments)

    def asm_field(self, variant: str) -> str:
        return f"{self.asm_prefix}{variant}"

    def asm_fields(self) -> Tuple[str, ...]:
        return tuple(self.asm_field(entry[3]) for entry in PLATFORM_VARIANTS)


@dataclass(frozen=True)
class BuildManifest:
    """Parsed manifest: field name -> ordered relative paths"""

    path: Path
    entries: Mapping[str, Tuple[str, ...]]

    def get(self, name: str) -> Optional[Tuple[str, ...]]:
        return self.entries.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self.entries


@dataclass(frozen=True)
class ResolvedManifest:
    """Target-specific view of a BuildManifest"""

    target: TargetPlatform
    core_sources: Tuple[str, ...]
    fragment_sources: Tuple[str, ...]
    asm_sources: Tuple[str, ...]
    protocol_sources: Tuple[str, ...]
    variant: Optional[str] = None
    asm_field: Optional[str] = field(default=None)


def _parse_document(path: Path, text: str) -> Dict[str, Any]:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as toml_error:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as yaml_error:
            raise ManifestError(
                ErrorKind.MALFORMED,
                f"Not a TOML or YAML document (toml: {toml_error}; yaml: {yaml_error})",
                path,
            ) from yaml_error

    if not isinstance(data, dict):
        raise ManifestError(ErrorKind.MALFORMED, "Manifest must be a mapping of field to file list", path)
    return data


def _is_path_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def load_manifest(path: Path, fields: Optional[ManifestFields] = None) -> BuildManifest:
    """
    Load and validate a build manifest

    Args:
        path: Manifest file
        fields: Field names to validate against

    Returns:
        BuildManifest holding every list-of-paths field in the document

    Raises:
        ManifestError: NOT_FOUND if the file does not exist, MALFORMED if it
            cannot be parsed or lacks a required field
    """
    fields = fields or ManifestFields()
    path = Path(path)

    if not path.is_file():
        raise ManifestError(ErrorKind.NOT_FOUND, "Build manifest not found", path)

    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ManifestError(ErrorKind.MALFORMED, f"Manifest is not UTF-8: {e}", path) from e

    data = _parse_document(path, text)

    for name in fields.required:
        if name not in data:
            raise ManifestError(ErrorKind.MALFORMED, f"Missing required field '{name}'", path)

    known = set(fields.required) | set(fields.asm_fields())
    entries: Dict[str, Tuple[str, ...]] = {}
    for key, value in data.items():
        if _is_path_list(value):
            entries[key] = tuple(value)
        elif key in known:
            raise ManifestError(ErrorKind.MALFORMED, f"Field '{key}' must be a list of paths", path)

    return BuildManifest(path=path, entries=MappingProxyType(entries))


def match_variant(target: TargetPlatform) -> Optional[str]:
    """Return the asm variant name for a target, or None when it has none"""
    for os_name, arch, endian, variant in PLATFORM_VARIANTS:
        if target.os != os_name or target.arch != arch:
            continue
        if endian is not None and target.endian != endian:
            continue
        return variant
    return None


def resolve_manifest(manifest: BuildManifest,
                     target: TargetPlatform,
                     fields: Optional[ManifestFields] = None) -> ResolvedManifest:
    """
    Select the file lists that apply to one target

    Exactly one asm field is consulted. Targets outside PLATFORM_VARIANTS and
    variants missing from the manifest both resolve to no asm sources.
    """
    fields = fields or ManifestFields()
    variant = match_variant(target)

    asm_field = fields.asm_field(variant) if variant else None
    asm_sources = (manifest.get(asm_field) or ()) if asm_field else ()

    return ResolvedManifest(
        target=target,
        core_sources=manifest.get(fields.core) or (),
        fragment_sources=manifest.get(fields.fragments) or (),
        asm_sources=asm_sources,
        protocol_sources=manifest.get(fields.protocol) or (),
        variant=variant,
        asm_field=asm_field,
    )


load = load_manifest
resolve = resolve_manifest

__all__ = [
    "BuildManifest",
    "ManifestFields",
    "PLATFORM_VARIANTS",
    "ResolvedManifest",
    "load",
    "load_manifest",
    "match_variant",
    "resolve",
    "resolve_manifest",
]
