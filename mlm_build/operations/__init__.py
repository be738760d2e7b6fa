"""
Operations exposed by the build system
"""

from .base_operation import BaseOperation
from .toolchain_operation import ToolchainOperation
from .helper_operation import CommandProvisioner, HelperToolOperation, ToolProvisioner
from .info_operation import InfoOperation
from .catalogue import OperationCatalogue

__all__ = [
    "BaseOperation",
    "ToolchainOperation",
    "HelperToolOperation",
    "ToolProvisioner",
    "CommandProvisioner",
    "InfoOperation",
    "OperationCatalogue"
]
