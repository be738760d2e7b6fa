import io
import subprocess

import pytest

from mlm_build.exceptions import UnknownOperationError
from mlm_build.main import Dispatcher, main
from mlm_build.operations import ToolProvisioner

from conftest import FakeFilesystem, FakeRunner

PRIMARY = "/usr/lib/librocksdb.so"
SECONDARY = "/usr/lib64/librocksdb.so"


class FailingProvisioner(ToolProvisioner):
    def __init__(self):
        self.calls = 0

    def provision(self, helper, env):
        self.calls += 1
        return 1


def _dispatcher(loader, config, logger, runner, fs=None, provisioner=None, out=None):
    return Dispatcher(config, loader, logger=logger, runner=runner,
                      provisioner=provisioner, exists=fs or FakeFilesystem(), out=out)


def test_check_uses_secondary_location(loader, make_config, logger):
    runner = FakeRunner()
    dispatcher = _dispatcher(loader, make_config(), logger, runner, FakeFilesystem(SECONDARY))

    assert dispatcher.dispatch("check") == 0
    assert runner.calls[0]["cmd"] == ["cargo", "check"]
    assert runner.calls[0]["env"]["ROCKSDB_LIB_DIR"] == "/usr/lib64"


def test_primary_location_wins(loader, make_config, logger):
    runner = FakeRunner()
    dispatcher = _dispatcher(loader, make_config(), logger, runner, FakeFilesystem(PRIMARY, SECONDARY))

    dispatcher.dispatch("build")

    assert runner.calls[0]["env"]["ROCKSDB_LIB_DIR"] == "/usr/lib"


def test_build_without_system_library_is_unaugmented(loader, make_config, logger):
    runner = FakeRunner()
    config = make_config({"PATH": "/usr/bin"})
    dispatcher = _dispatcher(loader, config, logger, runner)

    assert dispatcher.dispatch("build") == 0
    assert runner.calls[0]["env"] == {"PATH": "/usr/bin"}
    assert config.base_env == {"PATH": "/usr/bin"}


def test_override_ignores_installed_library(loader, make_config, logger):
    runner = FakeRunner()
    fs = FakeFilesystem(PRIMARY, SECONDARY)
    config = make_config({"PATH": "/usr/bin", "MLM_BUNDLED_ROCKSDB": ""})
    dispatcher = _dispatcher(loader, config, logger, runner, fs)

    for name in ("test", "check", "build", "lint", "doc"):
        dispatcher.dispatch(name)

    assert all("ROCKSDB_LIB_DIR" not in call["env"] for call in runner.calls)
    assert fs.checked == []


def test_build_and_prod_are_identical(loader, make_config, logger):
    build_runner = FakeRunner(results={("cargo", "build", "--release"): 101})
    prod_runner = FakeRunner(results={("cargo", "build", "--release"): 101})
    fs = FakeFilesystem(PRIMARY)

    build_code = _dispatcher(loader, make_config(), logger, build_runner, fs).dispatch("build")
    prod_code = _dispatcher(loader, make_config(), logger, prod_runner, fs).dispatch("prod")

    assert build_code == prod_code == 101
    assert build_runner.calls == prod_runner.calls


def test_library_lookup_reruns_for_each_dispatch(loader, make_config, logger):
    runner = FakeRunner()
    fs = FakeFilesystem()
    dispatcher = _dispatcher(loader, make_config(), logger, runner, fs)

    dispatcher.dispatch("check")
    fs.paths.add(PRIMARY)
    dispatcher.dispatch("check")

    assert "ROCKSDB_LIB_DIR" not in runner.calls[0]["env"]
    assert runner.calls[1]["env"]["ROCKSDB_LIB_DIR"] == "/usr/lib"


def test_non_build_operations_get_plain_environment(loader, make_config, logger):
    runner = FakeRunner()
    fs = FakeFilesystem(PRIMARY)
    dispatcher = _dispatcher(loader, make_config(), logger, runner, fs,
                             provisioner=FailingProvisioner())

    dispatcher.dispatch("fmt")
    dispatcher.dispatch("security-audit")

    assert all("ROCKSDB_LIB_DIR" not in call["env"] for call in runner.calls)
    assert fs.checked == []


def test_unknown_operation_runs_nothing(loader, make_config, logger):
    runner = FakeRunner()
    fs = FakeFilesystem(PRIMARY)
    dispatcher = _dispatcher(loader, make_config(), logger, runner, fs)

    with pytest.raises(UnknownOperationError):
        dispatcher.dispatch("deploy")

    assert runner.calls == []
    assert fs.checked == []


def test_stats_install_failure_never_runs_statistics(loader, make_config, logger):
    runner = FakeRunner(results={("cargo", "count", "--version"): 101})
    provisioner = FailingProvisioner()
    dispatcher = _dispatcher(loader, make_config(), logger, runner, provisioner=provisioner)

    assert dispatcher.dispatch("stats") != 0
    assert provisioner.calls == 1
    assert runner.commands == [["cargo", "count", "--version"]]


def test_info_dumps_unaugmented_environment(loader, make_config, logger):
    out = io.StringIO()
    config = make_config({"PATH": "/usr/bin", "CI": "true"})
    dispatcher = _dispatcher(loader, config, logger, FakeRunner(), FakeFilesystem(PRIMARY), out=out)

    assert dispatcher.dispatch("info") == 0
    lines = out.getvalue().splitlines()
    assert lines[1] == str(config.root_dir)
    assert lines[2:] == ["PATH=/usr/bin", "CI=true"]


def test_show_operations_lists_catalogue(loader, make_config, logger):
    out = io.StringIO()
    _dispatcher(loader, make_config(), logger, FakeRunner()).show_operations(out)

    text = out.getvalue()
    for name in ("test", "prod-test", "check", "build, prod", "doc-deps", "fmt",
                 "lint", "info", "stats", "security-audit"):
        assert name in text


def test_cli_rejects_unknown_operation(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["deploy"])

    assert excinfo.value.code == 2
    assert "invalid choice" in capsys.readouterr().err


def test_cli_requires_operation(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 2


def test_cli_list(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--list"])

    assert excinfo.value.code == 0
    assert "security-audit" in capsys.readouterr().out


def test_cli_propagates_toolchain_exit_code(monkeypatch, tmp_path):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append((cmd, kwargs))
        return subprocess.CompletedProcess(cmd, 101)

    monkeypatch.setattr(subprocess, "run", fake_run)
    monkeypatch.setenv("MLM_BUNDLED_ROCKSDB", "1")
    monkeypatch.delenv("ROCKSDB_LIB_DIR", raising=False)
    monkeypatch.delenv("MLM_BUILD_TOOLCHAIN", raising=False)

    with pytest.raises(SystemExit) as excinfo:
        main(["check", "--root-dir", str(tmp_path)])

    assert excinfo.value.code == 101
    cmd, kwargs = calls[0]
    assert cmd == ["cargo", "check"]
    assert kwargs["cwd"] == tmp_path
    assert "ROCKSDB_LIB_DIR" not in kwargs["env"]


def test_cli_bundled_flag(monkeypatch, tmp_path):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(kwargs["env"])
        return subprocess.CompletedProcess(cmd, 0)

    monkeypatch.setattr(subprocess, "run", fake_run)
    monkeypatch.delenv("MLM_BUNDLED_ROCKSDB", raising=False)
    monkeypatch.delenv("ROCKSDB_LIB_DIR", raising=False)

    with pytest.raises(SystemExit) as excinfo:
        main(["--bundled", "build", "--root-dir", str(tmp_path)])

    assert excinfo.value.code == 0
    assert "ROCKSDB_LIB_DIR" not in calls[0]


def test_cli_dry_run_spawns_nothing(monkeypatch, tmp_path):
    def fail(*args, **kwargs):
        raise AssertionError("subprocess should not run")

    monkeypatch.setattr(subprocess, "run", fail)
    monkeypatch.setattr(subprocess, "Popen", fail)

    with pytest.raises(SystemExit) as excinfo:
        main(["--dry-run", "test", "--root-dir", str(tmp_path)])

    assert excinfo.value.code == 0


def test_cli_log_file(monkeypatch, tmp_path):
    monkeypatch.setattr(subprocess, "run", lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 0))
    log_file = tmp_path / "logs" / "build.log"

    with pytest.raises(SystemExit):
        main(["--bundled", "check", "--root-dir", str(tmp_path), "--log-file", str(log_file)])

    assert "check: cargo check" in log_file.read_text()


def test_cli_missing_root_dir_is_not_reported_as_missing_command(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("MLM_BUNDLED_ROCKSDB", "1")

    with pytest.raises(SystemExit) as excinfo:
        main(["check", "--root-dir", str(tmp_path / "nope")])

    err = capsys.readouterr().err
    assert excinfo.value.code == 1
    assert "Working directory not found" in err
    assert "Command not found" not in err


def test_cli_reports_signal_death_as_128_plus_signal(monkeypatch, tmp_path):
    monkeypatch.setattr(subprocess, "run", lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, -9))
    monkeypatch.setenv("MLM_BUNDLED_ROCKSDB", "1")

    with pytest.raises(SystemExit) as excinfo:
        main(["build", "--root-dir", str(tmp_path)])

    assert excinfo.value.code == 137
