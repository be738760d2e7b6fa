"""
Configuration management for the build system
"""

import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Any, Mapping, Optional, Tuple

from ..exceptions import ConfigurationError

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent

OPERATION_KINDS = ("forward", "helper", "info")


@dataclass(frozen=True)
class LibrarySettings:
    """Where and how to look for the system copy of the native library"""
    name: str
    filename: str
    candidate_dirs: Tuple[str, ...]
    search_path_var: str
    override_var: str


@dataclass(frozen=True)
class HelperToolSpec:
    """Optional toolchain plugin needed by a single operation"""
    name: str
    check_args: Tuple[str, ...]
    install_args: Tuple[str, ...]


@dataclass(frozen=True)
class OperationSpec:
    """One entry of the operation catalogue"""
    name: str
    kind: str
    description: str = ""
    args: Tuple[str, ...] = ()
    uses_build_env: bool = False
    channel: Optional[str] = None
    output_filter: Optional[str] = None
    aliases: Tuple[str, ...] = ()
    helper: Optional[HelperToolSpec] = None


@dataclass
class BuildConfig:
    """
    Everything a single invocation needs, gathered once at the entry point.

    Nothing downstream reads os.environ; the environment travels in
    base_env and is copied before any augmentation.
    """
    root_dir: Path
    toolchain: str
    library: LibrarySettings
    base_env: Dict[str, str] = field(default_factory=dict)
    use_system_library: bool = True
    dry_run: bool = False
    verbose: bool = False

    @classmethod
    def from_environment(cls,
                         loader: "ConfigLoader",
                         environ: Mapping[str, str],
                         root_dir: Optional[Path] = None,
                         dry_run: bool = False,
                         verbose: bool = False,
                         force_bundled: bool = False) -> "BuildConfig":
        """
        Build the invocation config from an explicit environment mapping

        Args:
            loader: Loaded configuration files
            environ: Environment of the invoking process
            root_dir: Directory the toolchain runs in (default: cwd)
            dry_run: Log commands instead of running them
            verbose: Enable verbose output
            force_bundled: Skip the system library lookup

        Returns:
            BuildConfig instance
        """
        base_env = dict(environ)
        library = loader.get_library_settings()

        toolchain = base_env.get(loader.get_toolchain_env()) or loader.get_toolchain()

        # Presence is the switch, the value is never interpreted
        use_system_library = not force_bundled and library.override_var not in base_env

        verbose_env = loader.get_verbose_env()
        if verbose_env and verbose_env in base_env:
            verbose = True

        return cls(
            root_dir=Path(root_dir) if root_dir else Path.cwd(),
            toolchain=toolchain,
            library=library,
            base_env=base_env,
            use_system_library=use_system_library,
            dry_run=dry_run,
            verbose=verbose,
        )


def _require(section: Dict[str, Any], key: str, where: str) -> Any:
    if not isinstance(section, dict) or key not in section:
        raise ConfigurationError(f"Missing '{key}' in {where}")
    return section[key]


def _string_tuple(value: Any, where: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ConfigurationError(f"Expected a list for {where}, got {type(value).__name__}")
    return tuple(str(v) for v in value)


class ConfigLoader:
    """Loads and manages build system configuration"""

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize configuration loader

        Args:
            config_dir: Directory containing configuration files
        """
        self.config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR

        # Load toolchain configuration
        toolchain_file = self.config_dir / "toolchain.yaml"
        if not toolchain_file.exists():
            raise FileNotFoundError(f"Toolchain config not found: {toolchain_file}")

        with open(toolchain_file, 'r') as f:
            self.toolchain_config = yaml.safe_load(f) or {}

        # Load operation catalogue
        operations_file = self.config_dir / "operations.yaml"
        if not operations_file.exists():
            raise FileNotFoundError(f"Operations config not found: {operations_file}")

        with open(operations_file, 'r') as f:
            self.operations_config = yaml.safe_load(f) or {}

        self._operations = self._parse_operations()
        self._library = self._parse_library()

    def _parse_library(self) -> LibrarySettings:
        library = _require(self.toolchain_config, "library", "toolchain.yaml")
        candidates = _string_tuple(
            _require(library, "candidate_dirs", "library"), "library.candidate_dirs")
        if not candidates:
            raise ConfigurationError("library.candidate_dirs must not be empty")

        return LibrarySettings(
            name=str(library.get("name", "native library")),
            filename=str(_require(library, "filename", "library")),
            candidate_dirs=candidates,
            search_path_var=str(_require(library, "search_path_var", "library")),
            override_var=str(_require(library, "override_var", "library")),
        )

    def _parse_operations(self) -> Dict[str, OperationSpec]:
        entries = _require(self.operations_config, "operations", "operations.yaml")
        if not isinstance(entries, dict) or not entries:
            raise ConfigurationError("operations.yaml defines no operations")

        operations: Dict[str, OperationSpec] = {}
        for name, entry in entries.items():
            where = f"operation '{name}'"
            kind = _require(entry, "kind", where)
            if kind not in OPERATION_KINDS:
                raise ConfigurationError(
                    f"Unknown kind '{kind}' for {where}. "
                    f"Supported: {', '.join(OPERATION_KINDS)}")

            helper = None
            if kind == "helper":
                helper_entry = _require(entry, "helper", where)
                helper = HelperToolSpec(
                    name=str(_require(helper_entry, "name", f"{where} helper")),
                    check_args=_string_tuple(
                        _require(helper_entry, "check_args", f"{where} helper"),
                        f"{where} helper.check_args"),
                    install_args=_string_tuple(
                        _require(helper_entry, "install_args", f"{where} helper"),
                        f"{where} helper.install_args"),
                )

            args = _string_tuple(entry.get("args"), f"{where} args")
            if kind != "info" and not args:
                raise ConfigurationError(f"No args specified for {where}")

            spec = OperationSpec(
                name=str(name),
                kind=kind,
                description=str(entry.get("description", "")),
                args=args,
                uses_build_env=bool(entry.get("uses_build_env", False)),
                channel=entry.get("channel"),
                output_filter=entry.get("output_filter"),
                aliases=_string_tuple(entry.get("aliases"), f"{where} aliases"),
                helper=helper,
            )

            for key in (spec.name,) + spec.aliases:
                if key in operations:
                    raise ConfigurationError(f"Duplicate operation name: {key}")
                operations[key] = spec

        return operations

    def get_toolchain(self) -> str:
        """Get the toolchain program name"""
        toolchain = _require(self.toolchain_config, "toolchain", "toolchain.yaml")
        return str(_require(toolchain, "program", "toolchain"))

    def get_toolchain_env(self) -> Optional[str]:
        """Get the environment variable that replaces the toolchain program"""
        return self.toolchain_config.get("toolchain", {}).get("program_env")

    def get_verbose_env(self) -> Optional[str]:
        """Get the environment variable that enables verbose output"""
        return self.toolchain_config.get("logging", {}).get("verbose_env")

    def get_library_settings(self) -> LibrarySettings:
        """Get native library lookup settings"""
        return self._library

    def get_operation_names(self) -> List[str]:
        """Get all operation names, aliases included, in catalogue order"""
        return list(self._operations.keys())

    def has_operation(self, name: str) -> bool:
        """Check if operation exists"""
        return name in self._operations

    def get_operation_spec(self, name: str) -> OperationSpec:
        """
        Get the catalogue entry for an operation

        Args:
            name: Operation name or alias

        Returns:
            OperationSpec for the operation
        """
        if name not in self._operations:
            raise ValueError(f"Unknown operation: {name}")
        return self._operations[name]


__all__ = [
    "BuildConfig",
    "ConfigLoader",
    "HelperToolSpec",
    "LibrarySettings",
    "OperationSpec",
    "OPERATION_KINDS",
]
