#!/usr/bin/env python3
"""
Main entry point for sslbuild

Compiles the vendored crypto and ssl libraries into static archives and
generates FFI declarations for the exposed API. Everything is driven by the
environment (OUT_DIR, CARGO_CFG_TARGET_*, ...); there are no command-line
options.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from .bindings import generate_bindings, write_bindings
from .builders import BuildOrchestrator, make_units
from .config import ConfigLoader
from .errors import BuildError
from .manifest import load_manifest, resolve_manifest
from .platform import PlatformDetector
from .utils import Logger, StagingArea, resolve_out_dir
from .utils.cargo import metadata_lines


@dataclass(frozen=True)
class BuildArtifacts:
    """Archives and binding file promoted into the output directory"""

    core_archive: Path
    protocol_archive: Path
    bindings: Path

    def paths(self) -> List[Path]:
        return [self.core_archive, self.protocol_archive, self.bindings]


class BuildSystem:
    """Main build system class"""

    def __init__(self,
                 root_dir: Optional[Path] = None,
                 environ: Optional[Dict[str, str]] = None,
                 config_file: Optional[Path] = None,
                 logger: Optional[Logger] = None):
        """
        Initialize the build system

        Args:
            root_dir: Project root directory
            environ: Environment to read (defaults to os.environ)
            config_file: build.yaml to use instead of the packaged one
            logger: Logger instance
        """
        self.root_dir = Path(root_dir) if root_dir else Path.cwd()
        self.environ = dict(os.environ if environ is None else environ)
        self.verbose = self.environ.get("SSLBUILD_VERBOSE", "") not in ("", "0")
        self.logger = logger or Logger(verbose=self.verbose)

        self.config_file = config_file

    def run(self) -> BuildArtifacts:
        """
        Run every stage and promote the artifacts

        Returns:
            BuildArtifacts pointing into OUT_DIR

        Raises:
            BuildError: on the first failing stage
        """
        out_dir = resolve_out_dir(self.environ)
        config = ConfigLoader(self.config_file, self.environ).build_config(self.root_dir)

        target = PlatformDetector(self.environ).detect()
        self.logger.info(f"Target: {target}")

        self.logger.info(f"Loading manifest {config.manifest_path}")
        manifest = load_manifest(config.manifest_path, config.manifest_fields)
        resolved = resolve_manifest(manifest, target, config.manifest_fields)
        if resolved.variant is None:
            self.logger.debug(f"No assembly variant for {target}")
        elif not resolved.asm_sources:
            self.logger.debug(f"Manifest has no '{resolved.asm_field}' field")

        core_unit, protocol_unit = make_units(resolved, config)

        with StagingArea(out_dir, self.logger) as staging:
            orchestrator = BuildOrchestrator(staging.path, self.logger)
            archives = orchestrator.build_all([core_unit, protocol_unit])

            self.logger.info(f"Generating bindings from {config.header_path}")
            source = generate_bindings(
                config.header_path,
                config.symbol_filter,
                config.include_dirs,
                environ=self.environ,
                logger=self.logger,
            )
            bindings = write_bindings(source, staging.path / config.bindings_file)

            self.logger.info(f"Promoting artifacts into {out_dir}")
            artifacts = BuildArtifacts(*staging.promote(
                [archives[core_unit.name], archives[protocol_unit.name], bindings]
            ))

        self.logger.success(f"Built {', '.join(p.name for p in artifacts.paths())}")

        if config.emit_cargo_metadata:
            # ssl before crypto so static linking resolves ssl's references
            libraries = [protocol_unit.name, core_unit.name]
            for line in metadata_lines(out_dir, libraries, target,
                                       [config.manifest_path, config.header_path]):
                self.logger.raw(line)

        return artifacts


def main():
    """Command-line interface"""
    build_system = None
    try:
        build_system = BuildSystem()
        build_system.run()
    except BuildError as e:
        logger = build_system.logger if build_system else Logger()
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nBuild interrupted by user")
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
