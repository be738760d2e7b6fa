"""Holds exceptions used by the mlm build system"""


class BuildSystemError(Exception):
    """Base class for build system errors"""
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(BuildSystemError):
    """Raised when a configuration file is malformed"""


class UnknownOperationError(BuildSystemError):
    """Raised when dispatch is attempted for a name not in the catalogue"""
    def __init__(self, name: str, available: list):
        super().__init__(f"Unknown operation: {name}. "
                         f"Available: {', '.join(available)}")
        self.name = name
        self.available = list(available)
