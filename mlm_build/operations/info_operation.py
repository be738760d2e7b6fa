"""
Ambient diagnostics for CI logs
"""

from datetime import datetime
from typing import Dict

from .base_operation import BaseOperation


class InfoOperation(BaseOperation):
    """Prints the date, the working directory and the full environment"""

    @staticmethod
    def clock() -> datetime:
        return datetime.now().astimezone()

    def execute(self, env: Dict[str, str]) -> int:
        out = self.out
        now = self.clock()
        # date(1) pads the day with a space
        out.write(f"{now:%a %b} {now.day:2d} {now:%H:%M:%S %Z %Y}\n")
        out.write(f"{self.config.root_dir}\n")
        for key, value in env.items():
            out.write(f"{key}={value}\n")
        out.flush()
        return 0
