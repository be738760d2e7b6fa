"""
Operations that depend on an optional toolchain plugin

The plugin is looked up with a version check first and installed only
when that check fails. Installation is attempted once.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .base_operation import BaseOperation
from ..config import HelperToolSpec
from ..utils import CommandRunner, format_command


class ToolProvisioner(ABC):
    """Installs a missing helper tool"""

    @abstractmethod
    def provision(self, helper: HelperToolSpec, env: Dict[str, str]) -> int:
        """
        Install the helper tool

        Args:
            helper: Helper tool description
            env: Environment for the install command

        Returns:
            Exit status of the installation
        """
        pass


class CommandProvisioner(ToolProvisioner):
    """Installs helper tools through the toolchain's own install command"""

    def __init__(self, toolchain: str, runner: CommandRunner, logger: Any, cwd=None):
        self.toolchain = toolchain
        self.runner = runner
        self.logger = logger
        self.cwd = cwd

    def provision(self, helper: HelperToolSpec, env: Dict[str, str]) -> int:
        cmd = [self.toolchain, *helper.install_args]
        self.logger.info(f"Installing {helper.name}: {format_command(cmd)}")
        code = self.runner.run(cmd, env, self.cwd)
        if code != 0:
            self.logger.error(f"Installation of {helper.name} failed with exit code {code}")
        else:
            self.logger.success(f"Installed {helper.name}")
        return code


class HelperToolOperation(BaseOperation):
    """Check for the helper tool, install it if missing, then run it"""

    def __init__(self, *args, provisioner: Optional[ToolProvisioner] = None, **kwargs):
        super().__init__(*args, **kwargs)

        if self.spec.helper is None:
            raise ValueError(f"No helper tool configured for {self.name}")
        self.helper = self.spec.helper
        self.provisioner = provisioner or CommandProvisioner(
            toolchain=self.config.toolchain,
            runner=self.runner,
            logger=self.logger,
            cwd=self.config.root_dir
        )

    def is_available(self, env: Dict[str, str]) -> bool:
        """Best-effort version check, output discarded"""
        cmd = self.command(*self.helper.check_args)
        self.logger.debug(f"Checking for {self.helper.name}: {format_command(cmd)}")
        return self.runner.run(cmd, env, self.config.root_dir, quiet=True) == 0

    def execute(self, env: Dict[str, str]) -> int:
        if not self.is_available(env):
            self.logger.info(f"{self.helper.name} not found")
            code = self.provisioner.provision(self.helper, env)
            if code != 0:
                return code
        else:
            self.logger.debug(f"{self.helper.name} already installed")

        cmd = self.command(*self.spec.args)
        self.logger.info(f"{self.name}: {format_command(cmd)}")
        code = self.runner.run(cmd, env, self.config.root_dir)
        if code != 0:
            self.logger.error(f"{self.name} failed with exit code {code}")
        return code
