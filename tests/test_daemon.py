"""Tests for the background daemon process."""

import asyncio
import logging
import os
import signal
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from git_light import daemon
from git_light.config import Config, SyncConfig
from git_light.scheduler import SchedulerState


@pytest.fixture(autouse=True)
def restore_handlers() -> Any:
    """Removes any handlers a test installs on the application logger."""
    before = list(daemon.logger.handlers)
    yield
    for handler in list(daemon.logger.handlers):
        if handler not in before:
            daemon.logger.removeHandler(handler)
            handler.close()


def test_setup_logging_daemon_mode(tmp_path: Path, mocker: MagicMock) -> None:
    """Verifies file rotation in daemon mode and that repeated calls do not stack.

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
        mocker (MagicMock): Pytest fixture for mocking.
    """
    log_file = tmp_path / "daemon.log"
    mocker.patch("git_light.daemon.LOG_FILE", log_file)

    daemon.setup_logging(interactive=False, max_log_size=1024)
    daemon.setup_logging(interactive=False, max_log_size=1024)

    handlers = daemon.logger.handlers
    assert len(handlers) == 2
    rotating = [h for h in handlers if isinstance(h, RotatingFileHandler)]
    assert len(rotating) == 1
    assert rotating[0].maxBytes == 1024

    daemon.logger.info("hello")
    assert "INFO: hello" in log_file.read_text()


def test_setup_logging_interactive_has_no_file(mocker: MagicMock) -> None:
    """Verifies that interactive mode logs to a stream only."""
    daemon.setup_logging(interactive=True)

    assert len(daemon.logger.handlers) == 1
    assert not isinstance(daemon.logger.handlers[0], RotatingFileHandler)


def test_serve_runs_startup_sync_and_stops() -> None:
    """Verifies that serve performs the startup run and shuts down on request."""
    notifier = MagicMock()

    async def scenario() -> Any:
        stop = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, stop.set)
        return await daemon.serve(Config(), notifier, stop, install_signals=False)

    scheduler = asyncio.run(scenario())

    assert scheduler.state is SchedulerState.STOPPED
    assert not scheduler.has_timer
    notifier.notify_failure.assert_called_once()
    assert "not configured" in notifier.notify_failure.call_args.args[0]


def test_serve_handles_reload_and_terminate_signals(mocker: MagicMock) -> None:
    """Verifies that SIGHUP reloads the config and SIGTERM stops the service."""
    reloaded = Config(sync=SyncConfig(interval=0, working_dir="/srv/reloaded"))
    mock_load = mocker.patch("git_light.daemon.Config.load", return_value=reloaded)

    async def scenario() -> Any:
        loop = asyncio.get_running_loop()
        loop.call_later(0.02, os.kill, os.getpid(), signal.SIGHUP)
        loop.call_later(0.08, os.kill, os.getpid(), signal.SIGTERM)
        try:
            return await daemon.serve(Config(), MagicMock())
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM, signal.SIGHUP):
                loop.remove_signal_handler(sig)

    scheduler = asyncio.run(scenario())

    mock_load.assert_called_once()
    assert scheduler.config.working_dir == "/srv/reloaded"
    assert scheduler.state is SchedulerState.STOPPED


def test_write_pid_file(tmp_path: Path, mocker: MagicMock) -> None:
    """Verifies that the PID file is written and cleanup is registered."""
    pid_file = tmp_path / "daemon.pid"
    mocker.patch("git_light.daemon.PID_FILE", pid_file)
    mock_register = mocker.patch("atexit.register")

    daemon.write_pid_file()

    assert pid_file.read_text() == str(os.getpid())
    cleanup = mock_register.call_args.args[0]
    cleanup()
    assert not pid_file.exists()


def test_main_warns_when_unconfigured(
    mocker: MagicMock, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that main wires config, logging and the notifier into serve."""
    caplog.set_level(logging.WARNING)
    mocker.patch("git_light.daemon.Config.load", return_value=Config())
    mock_setup = mocker.patch("git_light.daemon.setup_logging")
    mock_pid = mocker.patch("git_light.daemon.write_pid_file")
    mock_serve = mocker.patch("git_light.daemon.serve", new=MagicMock())
    mocker.patch("git_light.daemon.asyncio.run")

    daemon.main()

    mock_setup.assert_called_once_with(False, Config().limits.max_log_size)
    mock_pid.assert_called_once()
    mock_serve.assert_called_once()
    assert "No working_dir configured" in caplog.text
