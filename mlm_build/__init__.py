"""
mlm build system
Links the engine against a system RocksDB when one is installed,
otherwise lets the bundled copy build, and runs the developer operations
"""

__version__ = "1.0.0"

from .main import Dispatcher, main

__all__ = ["Dispatcher", "main", "__version__"]
