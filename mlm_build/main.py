#!/usr/bin/env python3
"""
Main entry point for the mlm build system
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Callable, Dict, IO, List, Optional

from .config import BuildConfig, ConfigLoader
from .exceptions import BuildSystemError, UnknownOperationError
from .operations import BaseOperation, OperationCatalogue, ToolProvisioner
from .platform import LibraryDetector, LibraryResolution, build_environment
from .utils import CommandRunner, Logger, exit_status


class Dispatcher:
    """Runs one catalogue operation with the resolved library environment"""

    def __init__(self,
                 config: BuildConfig,
                 loader: ConfigLoader,
                 logger: Optional[Logger] = None,
                 runner: Optional[CommandRunner] = None,
                 provisioner: Optional[ToolProvisioner] = None,
                 exists: Callable[[str], bool] = os.path.exists,
                 out: Optional[IO] = None):
        """
        Initialize the dispatcher

        Args:
            config: Invocation configuration
            loader: Configuration loader holding the catalogue
            logger: Logger instance
            runner: Command runner (default: subprocess backed)
            provisioner: Installer for helper tools
            exists: Existence predicate used by the library lookup
            out: Stream for operation output
        """
        self.config = config
        self.logger = logger or Logger(verbose=config.verbose)
        self.runner = runner or CommandRunner(self.logger, dry_run=config.dry_run, out=out)
        self.detector = LibraryDetector(config.library, exists=exists)
        self.catalogue = OperationCatalogue(
            loader=loader,
            config=config,
            runner=self.runner,
            logger=self.logger,
            provisioner=provisioner,
            out=out
        )
        self.resolution: Optional[LibraryResolution] = None

    def resolve_library(self) -> LibraryResolution:
        """Look up the system library, once per dispatch"""
        self.resolution = self.detector.resolve(self.config.use_system_library)
        return self.resolution

    def environment_for(self,
                        operation: BaseOperation,
                        resolution: Optional[LibraryResolution] = None) -> Dict[str, str]:
        """
        Environment handed to an operation

        Args:
            operation: Operation about to run
            resolution: Library lookup result, looked up now when omitted

        Returns:
            Augmented environment for build operations, a plain copy otherwise
        """
        if not operation.uses_build_env:
            return dict(self.config.base_env)

        if resolution is None:
            resolution = self.resolve_library()
        return build_environment(self.config.base_env, resolution)

    def dispatch(self, name: str) -> int:
        """
        Run a single operation

        Args:
            name: Operation name or alias

        Returns:
            Exit status of the forwarded invocation
        """
        if not self.catalogue.has_operation(name):
            raise UnknownOperationError(name, self.catalogue.names())

        operation = self.catalogue.get_operation(name)
        self.resolution = None
        env = self.environment_for(operation)

        if self.resolution is not None:
            self.logger.debug(f"Native library: {self.resolution.describe()}")

        return operation.execute(env)

    def show_operations(self, out: Optional[IO] = None) -> None:
        """Print the operation catalogue"""
        out = out or sys.stdout
        from . import __version__

        out.write(f"\nmlm build system v{__version__}\n")
        out.write(f"{'='*50}\n")
        out.write(f"Toolchain: {self.config.toolchain}\n")
        out.write(f"Root Directory: {self.config.root_dir}\n")
        out.write("\nOperations:\n")
        for name, aliases, description in self.catalogue.describe():
            label = ", ".join((name,) + tuple(aliases))
            out.write(f"  {label:20} {description}\n")


def build_parser(operations: List[str]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mlm-build",
        description="mlm build system - links system RocksDB when present, "
                    "otherwise builds the bundled copy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s test                     # Run tests, TracePoint lines hidden
  %(prog)s build                    # Release build
  %(prog)s --bundled check          # Ignore any system RocksDB
  %(prog)s --list                   # Show all operations
        """
    )

    parser.add_argument(
        "operation",
        nargs="?",
        choices=operations,
        help="Operation to execute"
    )

    parser.add_argument(
        "--root-dir",
        type=Path,
        help="Directory the toolchain runs in (default: current directory)"
    )

    parser.add_argument(
        "--bundled",
        action="store_true",
        help="Always build the bundled native library"
    )

    parser.add_argument(
        "--list",
        action="store_true",
        help="List available operations and exit"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log toolchain commands without running them"
    )

    parser.add_argument(
        "--log-file",
        help="Also write log output to this file"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Command-line interface"""
    try:
        loader = ConfigLoader()
    except (OSError, BuildSystemError) as e:
        print(f"Error loading build configuration: {e}", file=sys.stderr)
        sys.exit(1)

    parser = build_parser(loader.get_operation_names())
    args = parser.parse_args(argv)

    if not args.list and not args.operation:
        parser.error("an operation is required")

    # Initialize build system
    try:
        config = BuildConfig.from_environment(
            loader,
            os.environ,
            root_dir=args.root_dir,
            dry_run=args.dry_run,
            verbose=args.verbose,
            force_bundled=args.bundled
        )
        logger = Logger(verbose=config.verbose, log_file=args.log_file)
        dispatcher = Dispatcher(config, loader, logger=logger)
    except Exception as e:
        print(f"Error initializing build system: {e}", file=sys.stderr)
        sys.exit(1)

    if args.list:
        dispatcher.show_operations()
        sys.exit(0)

    # Execute operation
    try:
        sys.exit(exit_status(dispatcher.dispatch(args.operation)))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        logging.getLogger(Logger.NAME).error(f"Build system error: {e}")
        if config.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
