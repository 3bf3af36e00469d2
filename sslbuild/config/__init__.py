"""
Configuration management for sslbuild
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from ..bindings.symbol_filter import SymbolFilter
from ..builders.library_unit import Dialect
from ..errors import ConfigError
from ..manifest import ManifestFields

DEFAULT_CONFIG_FILE = Path(__file__).parent / "build.yaml"

ROLES = ("core", "protocol")


@dataclass(frozen=True)
class LibrarySpec:
    """One logical library as declared in build.yaml"""

    name: str
    role: str
    dialect: Dialect
    defines: Tuple[Tuple[str, Optional[str]], ...] = ()


@dataclass(frozen=True)
class BuildConfig:
    """Validated build configuration"""

    source_root: Path
    manifest_path: Path
    header_path: Path
    bindings_file: str
    include_dirs: Tuple[Path, ...]
    manifest_fields: ManifestFields
    libraries: Tuple[LibrarySpec, ...]
    symbol_filter: SymbolFilter
    warnings: bool = False
    emit_cargo_metadata: bool = True

    def library(self, role: str) -> LibrarySpec:
        for spec in self.libraries:
            if spec.role == role:
                return spec
        raise ConfigError(f"No library with role '{role}'")


class ConfigLoader:
    """Loads and validates the build configuration"""

    def __init__(self,
                 config_file: Optional[Path] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """
        Initialize configuration loader

        Args:
            config_file: Path to build.yaml. Defaults to $SSLBUILD_CONFIG,
                then the copy shipped with the package.
            environ: Environment to read SSLBUILD_CONFIG from (defaults to os.environ)
        """
        if config_file is None:
            environ = os.environ if environ is None else environ
            env_value = environ.get("SSLBUILD_CONFIG")
            config_file = Path(env_value) if env_value else DEFAULT_CONFIG_FILE
        self.config_file = Path(config_file)

        if not self.config_file.exists():
            raise ConfigError("Build config not found", self.config_file)

        try:
            with open(self.config_file, "r") as f:
                self.raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Cannot parse build config: {e}", self.config_file) from e

        if not isinstance(self.raw, dict):
            raise ConfigError("Build config must be a mapping", self.config_file)

    def get_section(self, name: str) -> Dict[str, Any]:
        """
        Get a top-level section of the configuration

        Args:
            name: Section name

        Returns:
            Section dictionary (empty if absent)
        """
        section = self.raw.get(name, {})
        if not isinstance(section, dict):
            raise ConfigError(f"Section '{name}' must be a mapping", self.config_file)
        return section

    def get_option(self, key: str, default: Any = None) -> Any:
        """
        Get a build option

        Args:
            key: Option key
            default: Default value if not found

        Returns:
            Option value
        """
        return self.get_section("build_options").get(key, default)

    def get_libraries(self) -> List[LibrarySpec]:
        """Get the library table, one entry per role"""
        entries = self.raw.get("libraries", [])
        if not isinstance(entries, list):
            raise ConfigError("'libraries' must be a list", self.config_file)

        specs = []
        for entry in entries:
            try:
                name = entry["name"]
                role = entry["role"]
                dialect = Dialect.from_name(entry["dialect"])
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigError(f"Invalid library entry {entry!r}: {e}", self.config_file) from e
            if role not in ROLES:
                raise ConfigError(f"Unknown library role '{role}'", self.config_file)
            defines = tuple(_parse_define(d) for d in entry.get("defines", []))
            specs.append(LibrarySpec(name=name, role=role, dialect=dialect, defines=defines))

        roles = sorted(spec.role for spec in specs)
        if roles != sorted(ROLES):
            raise ConfigError(
                f"Expected exactly one library per role {ROLES}, got {roles}",
                self.config_file,
            )
        return specs

    def get_symbol_filter(self) -> SymbolFilter:
        """Build the binding symbol filter from the 'bindings' section"""
        section = self.get_section("bindings")
        allow = section.get("allow_functions", [])
        deny = section.get("deny_types", [])
        if not _is_str_list(allow) or not _is_str_list(deny):
            raise ConfigError("bindings.allow_functions and bindings.deny_types must be string lists",
                              self.config_file)
        try:
            return SymbolFilter.from_lists(allow, deny)
        except ValueError as e:
            raise ConfigError(str(e), self.config_file) from e

    def get_manifest_fields(self) -> ManifestFields:
        """Get manifest field names, falling back to the generated-file defaults"""
        section = self.get_section("manifest_fields")
        defaults = ManifestFields()
        return ManifestFields(
            core=section.get("core", defaults.core),
            protocol=section.get("protocol", defaults.protocol),
            fragments=section.get("fragments", defaults.fragments),
            asm_prefix=section.get("asm_prefix", defaults.asm_prefix),
        )

    def build_config(self, root_dir: Path) -> BuildConfig:
        """
        Validate everything and resolve paths against the project root

        Args:
            root_dir: Project root directory

        Returns:
            Frozen BuildConfig
        """
        paths = self.get_section("paths")
        try:
            source_root = root_dir / paths["source_root"]
            manifest_path = root_dir / paths["manifest"]
            header_path = root_dir / paths["header"]
        except KeyError as e:
            raise ConfigError(f"Missing paths.{e.args[0]}", self.config_file) from e

        include_dirs = paths.get("include_dirs", [])
        if not _is_str_list(include_dirs):
            raise ConfigError("paths.include_dirs must be a string list", self.config_file)

        return BuildConfig(
            source_root=source_root,
            manifest_path=manifest_path,
            header_path=header_path,
            bindings_file=paths.get("bindings_file", "bindings.h"),
            include_dirs=tuple(root_dir / d for d in include_dirs),
            manifest_fields=self.get_manifest_fields(),
            libraries=tuple(self.get_libraries()),
            symbol_filter=self.get_symbol_filter(),
            warnings=bool(self.get_option("warnings", False)),
            emit_cargo_metadata=bool(self.get_option("emit_cargo_metadata", True)),
        )


def _parse_define(value: str) -> Tuple[str, Optional[str]]:
    name, sep, macro_value = str(value).partition("=")
    return name, (macro_value if sep else None)


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


__all__ = ["BuildConfig", "ConfigLoader", "LibrarySpec", "DEFAULT_CONFIG_FILE"]
