"""
Native library detection

Decides whether the build links against a system installed copy of the
native library or falls back to the copy bundled with the crate.
"""

import os
import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Sequence

from ..config import LibrarySettings

logger = logging.getLogger(__name__)

ExistsPredicate = Callable[[str], bool]


class LibraryLocation(Enum):
    """Where the native library will come from"""
    UNDETERMINED = "undetermined"
    SYSTEM_PRIMARY = "system-primary"
    SYSTEM_SECONDARY = "system-secondary"
    BUNDLED = "bundled"

    @property
    def is_system(self) -> bool:
        return self in (LibraryLocation.SYSTEM_PRIMARY, LibraryLocation.SYSTEM_SECONDARY)


def find_library_dir(candidates: Sequence[str],
                     filename: str,
                     exists: ExistsPredicate = os.path.exists) -> Optional[str]:
    """
    Return the first candidate directory holding filename

    Args:
        candidates: Directories to search, in priority order
        filename: Library file to look for
        exists: Existence predicate, injectable for tests

    Returns:
        Selected directory or None
    """
    for directory in candidates:
        if exists(os.path.join(directory, filename)):
            return directory
    return None


class LibraryResolution:
    """Outcome of a single library lookup"""

    def __init__(self,
                 location: LibraryLocation,
                 directory: Optional[str],
                 search_path_var: str):
        self.location = location
        self.directory = directory
        self.search_path_var = search_path_var

    @property
    def uses_system_library(self) -> bool:
        return self.location.is_system and self.directory is not None

    def env_overrides(self) -> Dict[str, str]:
        """Variables to add to the toolchain environment"""
        if not self.uses_system_library:
            return {}
        return {self.search_path_var: self.directory}

    def describe(self) -> str:
        if self.uses_system_library:
            return f"system library in {self.directory}"
        if self.location is LibraryLocation.BUNDLED:
            return "bundled library"
        return "undetermined"

    def __repr__(self) -> str:
        return (f"LibraryResolution(location={self.location.value!r}, "
                f"directory={self.directory!r})")


class LibraryDetector:
    """Searches the conventional system locations for the native library"""

    # Candidate index -> location, anything past the second is still a system hit
    _LOCATIONS = (LibraryLocation.SYSTEM_PRIMARY, LibraryLocation.SYSTEM_SECONDARY)

    def __init__(self, settings: LibrarySettings, exists: ExistsPredicate = os.path.exists):
        """
        Initialize library detector

        Args:
            settings: Library lookup settings
            exists: Existence predicate, injectable for tests
        """
        self.settings = settings
        self.exists = exists

    def resolve(self, use_system_library: bool = True) -> LibraryResolution:
        """
        Decide the linkage strategy. Never raises; absence selects the bundled copy.

        Args:
            use_system_library: False when the override switch is set

        Returns:
            LibraryResolution for this invocation
        """
        if not use_system_library:
            logger.info(f"System {self.settings.name} disabled by "
                        f"{self.settings.override_var}, using bundled build")
            return LibraryResolution(LibraryLocation.BUNDLED, None,
                                     self.settings.search_path_var)

        directory = find_library_dir(self.settings.candidate_dirs,
                                     self.settings.filename,
                                     self.exists)
        if directory is None:
            logger.debug(f"{self.settings.filename} not found in "
                         f"{', '.join(self.settings.candidate_dirs)}, using bundled build")
            return LibraryResolution(LibraryLocation.BUNDLED, None,
                                     self.settings.search_path_var)

        index = list(self.settings.candidate_dirs).index(directory)
        location = self._LOCATIONS[min(index, len(self._LOCATIONS) - 1)]
        logger.info(f"Using system {self.settings.name}: "
                    f"{Path(directory) / self.settings.filename}")
        return LibraryResolution(location, directory, self.settings.search_path_var)


def build_environment(base_env: Mapping[str, str],
                      resolution: LibraryResolution) -> Dict[str, str]:
    """
    Return a copy of base_env with the library search path applied

    Args:
        base_env: Environment of the invocation, left untouched
        resolution: Result of the library lookup

    Returns:
        New environment mapping
    """
    env = dict(base_env)
    env.update(resolution.env_overrides())
    return env


__all__ = [
    "LibraryLocation",
    "LibraryResolution",
    "LibraryDetector",
    "build_environment",
    "find_library_dir",
]
