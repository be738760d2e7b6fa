"""
Utility modules for the build system
"""

import io
import sys
import logging
import subprocess
from pathlib import Path
from typing import Callable, Dict, IO, List, Optional, Sequence, Union

from ..exceptions import BuildSystemError

# Exit status a shell reports for a missing executable
COMMAND_NOT_FOUND = 127


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for terminal output"""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'SUCCESS': '\033[92m',  # Bright Green
        'RESET': '\033[0m'
    }

    def __init__(self, fmt: str, datefmt: Optional[str] = None, stream: Optional[IO] = None):
        super().__init__(fmt, datefmt=datefmt)
        self.stream = stream

    def _use_color(self) -> bool:
        stream = self.stream or sys.stderr
        return hasattr(stream, "isatty") and stream.isatty()

    def format(self, record):
        if not self._use_color():
            return super().format(record)

        # Color a copy so other handlers keep the plain record
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']
        record.levelname = f"{color}{record.levelname}{reset}"
        record.msg = f"{color}{record.msg}{reset}"

        return super().format(record)


class Logger:
    """Build system logger"""

    SUCCESS = 25  # Between INFO and WARNING
    NAME = "mlm_build"

    def __init__(self,
                 verbose: bool = False,
                 log_file: Optional[str] = None,
                 stream: Optional[IO] = None):
        """
        Initialize logger

        Args:
            verbose: Enable verbose output
            log_file: Optional log file path
            stream: Console stream (default: stderr, stdout carries toolchain output)
        """
        self.verbose = verbose

        # Add SUCCESS level
        logging.addLevelName(self.SUCCESS, "SUCCESS")

        # Module loggers under mlm_build.* propagate here
        self.logger = logging.getLogger(self.NAME)
        self.logger.setLevel(logging.DEBUG if verbose else logging.INFO)
        self.logger.propagate = False

        # Remove existing handlers
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        # Console handler
        console_stream = stream or sys.stderr
        console_handler = logging.StreamHandler(console_stream)
        console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

        # Format
        if verbose:
            fmt = "%(asctime)s [%(levelname)s] %(message)s"
        else:
            fmt = "[%(levelname)s] %(message)s"

        console_formatter = ColoredFormatter(fmt, datefmt="%H:%M:%S", stream=console_stream)
        console_handler.setFormatter(console_formatter)
        self.logger.addHandler(console_handler)

        # File handler
        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(logging.DEBUG)
            file_formatter = logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def debug(self, msg: str):
        """Log debug message"""
        self.logger.debug(msg)

    def info(self, msg: str):
        """Log info message"""
        self.logger.info(msg)

    def warning(self, msg: str):
        """Log warning message"""
        self.logger.warning(msg)

    def error(self, msg: str):
        """Log error message"""
        self.logger.error(msg)

    def success(self, msg: str):
        """Log success message"""
        self.logger.log(self.SUCCESS, msg)


class TaggedLineFilter:
    """Keeps output lines that do not contain a diagnostic tag. Accepts str or bytes lines."""

    def __init__(self, tag: str):
        self.tag = tag
        self._tag_bytes = tag.encode()
        self.dropped = 0

    def __call__(self, line: Union[str, bytes]) -> bool:
        tag = self._tag_bytes if isinstance(line, bytes) else self.tag
        if tag in line:
            self.dropped += 1
            return False
        return True


def format_command(cmd: Sequence[str]) -> str:
    return " ".join(str(c) for c in cmd)


def exit_status(code: int) -> int:
    """Map a signal death (negative returncode) to the shell's 128+N status"""
    if code < 0:
        return 128 - code
    return code


def _write_line(out: IO, line: bytes) -> None:
    # Text streams backed by a binary buffer get the raw bytes
    buffer = getattr(out, "buffer", None)
    if buffer is not None:
        out.flush()
        buffer.write(line)
        buffer.flush()
    elif isinstance(out, io.TextIOBase):
        out.write(line.decode(errors="replace"))
        out.flush()
    else:
        out.write(line)
        out.flush()


class CommandRunner:
    """Runs toolchain commands and reports their exit status"""

    def __init__(self, logger: Logger, dry_run: bool = False, out: Optional[IO] = None):
        """
        Initialize command runner

        Args:
            logger: Logger instance
            dry_run: If True, don't actually run commands
            out: Stream for filtered output (default: stdout at call time)
        """
        self.logger = logger
        self.dry_run = dry_run
        self.out = out

    def run(self,
            cmd: List[str],
            env: Dict[str, str],
            cwd: Optional[Path] = None,
            quiet: bool = False) -> int:
        """
        Run a command to completion with inherited output

        Args:
            cmd: Command and arguments
            env: Complete environment for the child
            cwd: Working directory
            quiet: Discard the command's output

        Returns:
            Exit status of the command
        """
        cmd_str = format_command(cmd)
        self.logger.debug(f"Running: {cmd_str}")
        if cwd is not None:
            self.logger.debug(f"  in: {cwd}")

        if self.dry_run:
            self.logger.info(f"[DRY RUN] Would run: {cmd_str}")
            return 0

        self._check_cwd(cwd)
        output = subprocess.DEVNULL if quiet else None
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                env=env,
                check=False,
                stdout=output,
                stderr=output
            )
        except FileNotFoundError:
            if not quiet:
                self.logger.error(f"Command not found: {cmd[0]}")
            return COMMAND_NOT_FOUND

        return result.returncode

    def stream(self,
               cmd: List[str],
               env: Dict[str, str],
               cwd: Optional[Path],
               keep: Callable[[bytes], bool]) -> int:
        """
        Run a command, passing each stdout line through keep before display.
        Kept lines are written byte for byte. Stderr is inherited unfiltered.

        Args:
            cmd: Command and arguments
            env: Complete environment for the child
            cwd: Working directory
            keep: Predicate deciding whether a line is shown

        Returns:
            Exit status of the command, not of the filter
        """
        cmd_str = format_command(cmd)
        self.logger.debug(f"Running (filtered): {cmd_str}")

        if self.dry_run:
            self.logger.info(f"[DRY RUN] Would run: {cmd_str}")
            return 0

        self._check_cwd(cwd)
        out = self.out or sys.stdout
        try:
            with subprocess.Popen(
                cmd,
                cwd=cwd,
                env=env,
                stdout=subprocess.PIPE
            ) as proc:
                for line in proc.stdout:
                    if keep(line):
                        _write_line(out, line)
                return proc.wait()
        except FileNotFoundError:
            self.logger.error(f"Command not found: {cmd[0]}")
            return COMMAND_NOT_FOUND

    @staticmethod
    def _check_cwd(cwd: Optional[Path]) -> None:
        # subprocess reports a missing cwd as FileNotFoundError too
        if cwd is not None and not Path(cwd).is_dir():
            raise BuildSystemError(f"Working directory not found: {cwd}")


__all__ = [
    "COMMAND_NOT_FOUND",
    "ColoredFormatter",
    "CommandRunner",
    "Logger",
    "TaggedLineFilter",
    "exit_status",
    "format_command",
]
