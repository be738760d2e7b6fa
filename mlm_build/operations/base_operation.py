"""
Base operation class that all catalogue operations inherit from
"""

import sys
from abc import ABC, abstractmethod
from typing import Any, Dict, IO, List, Optional

from ..config import BuildConfig, OperationSpec
from ..utils import CommandRunner


class BaseOperation(ABC):
    """Abstract base class for all operations"""

    def __init__(self,
                 spec: OperationSpec,
                 config: BuildConfig,
                 runner: CommandRunner,
                 logger: Any,
                 out: Optional[IO] = None):
        """
        Initialize base operation

        Args:
            spec: Catalogue entry for this operation
            config: Invocation configuration
            runner: Command runner
            logger: Logger instance
            out: Stream for operation output (default: stdout at call time)
        """
        self.spec = spec
        self.config = config
        self.runner = runner
        self.logger = logger
        self._out = out

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def uses_build_env(self) -> bool:
        return self.spec.uses_build_env

    @property
    def out(self) -> IO:
        return self._out or sys.stdout

    def command(self, *args: str) -> List[str]:
        """Toolchain command line, with the channel selector when one is set"""
        cmd = [self.config.toolchain]
        if self.spec.channel:
            cmd.append(f"+{self.spec.channel}")
        cmd.extend(args)
        return cmd

    @abstractmethod
    def execute(self, env: Dict[str, str]) -> int:
        """
        Run the operation

        Args:
            env: Complete environment for any child process

        Returns:
            Exit status to report for the invocation
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
