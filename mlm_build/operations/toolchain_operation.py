"""
Forwarded toolchain operation
"""

from typing import Dict

from .base_operation import BaseOperation
from ..utils import TaggedLineFilter, format_command


class ToolchainOperation(BaseOperation):
    """Forwards to a single toolchain invocation with fixed arguments"""

    def execute(self, env: Dict[str, str]) -> int:
        cmd = self.command(*self.spec.args)
        self.logger.info(f"{self.name}: {format_command(cmd)}")

        if self.spec.output_filter:
            line_filter = TaggedLineFilter(self.spec.output_filter)
            code = self.runner.stream(cmd, env, self.config.root_dir, line_filter)
            self.logger.debug(f"Dropped {line_filter.dropped} lines tagged "
                              f"{self.spec.output_filter}")
        else:
            code = self.runner.run(cmd, env, self.config.root_dir)

        if code != 0:
            self.logger.error(f"{self.name} failed with exit code {code}")
        return code
