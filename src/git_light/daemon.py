import asyncio
import atexit
import logging
import os
import signal
import sys
from logging.handlers import RotatingFileHandler

from .config import Config
from .constants import APP_NAME, LOG_FILE, PID_FILE
from .notify import Notifier, get_notifier
from .scheduler import SyncScheduler

logger = logging.getLogger(APP_NAME)
logger.setLevel(logging.INFO)


def setup_logging(interactive: bool, max_log_size: int | None = None) -> None:
    """Configures the logging subsystem.

    Calling it again replaces the handlers installed by a previous call.

    Args:
        interactive (bool): If True, logs to stdout. If False, logs to file/stderr
                            with rotation enabled.
        max_log_size (int | None, optional): Bytes before the log file rotates.
                                             Defaults to the configured limit.
    """
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )

    # Always log to a stream (stderr is captured by systemd/launchd).
    stream_handler = logging.StreamHandler(
        sys.stderr if not interactive else sys.stdout
    )
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if not interactive:
        if max_log_size is None:
            max_log_size = Config.load().limits.max_log_size
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=max_log_size,
            backupCount=5,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


async def serve(
    config: Config,
    notifier: Notifier,
    stop_event: asyncio.Event | None = None,
    install_signals: bool = True,
) -> SyncScheduler:
    """Runs the sync scheduler until asked to stop.

    SIGINT/SIGTERM set the stop event; SIGHUP re-reads the configuration file
    and hands the new sync settings to the scheduler.

    Args:
        config (Config): The initial configuration.
        notifier (Notifier): The notification sink for run outcomes.
        stop_event (asyncio.Event | None, optional): Set to end the service.
        install_signals (bool, optional): Whether to register signal handlers.
                                          Defaults to True.

    Returns:
        SyncScheduler: The stopped scheduler.
    """
    stop_event = stop_event or asyncio.Event()
    scheduler = SyncScheduler(config.sync, notifier)

    if install_signals:
        loop = asyncio.get_running_loop()

        def reload() -> None:
            logger.info("RELOAD: Re-reading configuration.")
            scheduler.reconfigure(Config.load().sync)

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)
        loop.add_signal_handler(signal.SIGHUP, reload)

    await scheduler.start()
    if scheduler.config.interval <= 0:
        logger.info("Automatic sync disabled (interval is 0).")

    await stop_event.wait()
    logger.info("Shutting down.")
    scheduler.stop()
    await scheduler.join()
    return scheduler


def write_pid_file() -> None:
    """Records the daemon's PID and schedules its removal at exit."""
    try:
        with open(PID_FILE, "w") as f:
            f.write(str(os.getpid()))
        atexit.register(lambda: PID_FILE.unlink(missing_ok=True))
    except OSError as e:
        logger.warning(f"Could not write PID file: {e}")


def main(interactive: bool = False) -> None:
    """The daemon entry point.

    Args:
        interactive (bool, optional): Whether to report to the terminal instead
                                      of desktop notifications. Defaults to False.
    """
    config = Config.load()
    setup_logging(interactive, config.limits.max_log_size)

    if not config.sync.is_configured:
        logger.warning("No working_dir configured; every sync will fail.")

    if not interactive:
        write_pid_file()

    asyncio.run(serve(config, get_notifier(interactive)))


if __name__ == "__main__":
    main()
