"""
Operation catalogue that maps names to operation instances
"""

from typing import Any, Dict, IO, List, Optional, Tuple

from .base_operation import BaseOperation
from .toolchain_operation import ToolchainOperation
from .helper_operation import HelperToolOperation, ToolProvisioner
from .info_operation import InfoOperation
from ..config import BuildConfig, ConfigLoader
from ..exceptions import UnknownOperationError
from ..utils import CommandRunner


class OperationCatalogue:
    """Fixed catalogue of named operations"""

    # Map operation kinds to operation classes
    OPERATION_MAP = {
        "forward": ToolchainOperation,
        "helper": HelperToolOperation,
        "info": InfoOperation,
    }

    def __init__(self,
                 loader: ConfigLoader,
                 config: BuildConfig,
                 runner: CommandRunner,
                 logger: Any,
                 provisioner: Optional[ToolProvisioner] = None,
                 out: Optional[IO] = None):
        """
        Initialize operation catalogue

        Args:
            loader: Configuration loader holding the catalogue entries
            config: Invocation configuration
            runner: Command runner shared by all operations
            logger: Logger instance
            provisioner: Installer for helper tools (default: toolchain install)
            out: Stream for operation output
        """
        self.loader = loader
        self.config = config
        self.runner = runner
        self.logger = logger
        self.provisioner = provisioner
        self.out = out
        self._instances: Dict[str, BaseOperation] = {}

    def names(self) -> List[str]:
        """All names accepted by get_operation, aliases included"""
        return self.loader.get_operation_names()

    def has_operation(self, name: str) -> bool:
        return self.loader.has_operation(name)

    def get_operation(self, name: str) -> BaseOperation:
        """
        Get the operation for a name or alias

        Aliases resolve to the same instance as their primary name.

        Args:
            name: Operation name

        Returns:
            Operation instance
        """
        if not self.loader.has_operation(name):
            raise UnknownOperationError(name, self.names())

        spec = self.loader.get_operation_spec(name)
        if spec.name in self._instances:
            return self._instances[spec.name]

        operation_class = self.OPERATION_MAP.get(spec.kind)
        if not operation_class:
            raise ValueError(f"Unknown operation kind: {spec.kind}")

        kwargs = dict(
            spec=spec,
            config=self.config,
            runner=self.runner,
            logger=self.logger,
            out=self.out
        )
        if spec.kind == "helper":
            kwargs["provisioner"] = self.provisioner

        operation = operation_class(**kwargs)
        self._instances[spec.name] = operation
        return operation

    def describe(self) -> List[Tuple[str, Tuple[str, ...], str]]:
        """(name, aliases, description) for every primary operation"""
        seen = []
        rows = []
        for name in self.names():
            spec = self.loader.get_operation_spec(name)
            if spec.name in seen:
                continue
            seen.append(spec.name)
            rows.append((spec.name, spec.aliases, spec.description))
        return rows
