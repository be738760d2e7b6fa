import io
import logging
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from mlm_build.config import BuildConfig, ConfigLoader
from mlm_build.utils import Logger


class FakeRunner:
    """Records commands instead of running them"""

    def __init__(self, results=None, lines=()):
        self.results = dict(results or {})
        self.lines = list(lines)
        self.calls = []
        self.shown = []

    def _code(self, cmd):
        return self.results.get(tuple(cmd), 0)

    def run(self, cmd, env, cwd=None, quiet=False):
        self.calls.append({"cmd": list(cmd), "env": dict(env), "cwd": cwd,
                           "quiet": quiet, "mode": "run"})
        return self._code(cmd)

    def stream(self, cmd, env, cwd, keep):
        self.calls.append({"cmd": list(cmd), "env": dict(env), "cwd": cwd,
                           "quiet": False, "mode": "stream"})
        self.shown.extend(line for line in self.lines if keep(line))
        return self._code(cmd)

    @property
    def commands(self):
        return [call["cmd"] for call in self.calls]


class FakeFilesystem:
    """Existence predicate over a fixed set of paths"""

    def __init__(self, *paths):
        self.paths = set(paths)
        self.checked = []

    def __call__(self, path):
        self.checked.append(path)
        return path in self.paths


@pytest.fixture(autouse=True)
def _reset_build_logger():
    yield
    build_logger = logging.getLogger(Logger.NAME)
    for handler in list(build_logger.handlers):
        build_logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def loader():
    return ConfigLoader()


@pytest.fixture
def logger():
    return Logger(verbose=True, stream=io.StringIO())


@pytest.fixture
def make_config(loader, tmp_path):
    def _make(environ=None, **kwargs):
        kwargs.setdefault("root_dir", tmp_path)
        return BuildConfig.from_environment(loader, environ or {"PATH": "/usr/bin"}, **kwargs)
    return _make
