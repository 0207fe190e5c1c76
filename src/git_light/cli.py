import argparse
import asyncio
import datetime
import logging
import os
import subprocess
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import daemon
from .config import Config
from .constants import APP_NAME, CONFIG_FILE, LOG_FILE, PID_FILE
from .notify import ConsoleNotifier
from .pipeline import check_working_dir
from .scheduler import SyncScheduler

logger = logging.getLogger(APP_NAME)
console = Console()

CONFIG_TEMPLATE = (
    "# GitLight Configuration\n\n"
    "[sync]\n"
    "# Seconds between syncs ('30m', '1hr', 3600). 0 disables the timer.\n"
    'interval = "1hr"\n'
    "# Absolute path to the git working directory to keep in sync.\n"
    'working_dir = ""\n'
)


def _analyze_logs(seconds: int = 86400) -> list[str]:
    """
    Scans the daemon log for error messages that occurred within a recent time window.

    Args:
        seconds (int, optional): The number of seconds to look back. Defaults to 86400 (24h).

    Returns:
        list[str]: A list of error or critical log lines found within the time window.
    """
    if not LOG_FILE.exists():
        return []

    errors = []
    threshold = datetime.datetime.now() - datetime.timedelta(seconds=seconds)

    try:
        # Only the tail of the file is relevant for recent errors.
        file_size = LOG_FILE.stat().st_size
        read_size = min(file_size, 50 * 1024)

        with open(LOG_FILE) as f:
            if file_size > read_size:
                f.seek(file_size - read_size)
            lines = f.readlines()

        for line in lines:
            if "ERROR" not in line and "CRITICAL" not in line:
                continue
            try:
                if line.startswith("["):
                    line_dt = datetime.datetime.strptime(
                        line[1:20], "%Y-%m-%d %H:%M:%S"
                    )
                    if line_dt < threshold:
                        continue
                errors.append(line.strip())
            except ValueError:
                pass
    except OSError as e:
        return [f"Error reading log file: {e}"]

    return errors


def _daemon_running() -> bool:
    if not PID_FILE.exists():
        return False
    try:
        with open(PID_FILE) as f:
            pid = int(f.read().strip())
        os.kill(pid, 0)
        return True
    except (ValueError, OSError):
        return False


def sync_now() -> bool:
    """Runs one manual sync in the foreground and reports it to the terminal.

    Returns:
        bool: True if the sync succeeded.
    """
    config = Config.load()
    scheduler = SyncScheduler(config.sync, ConsoleNotifier(console))

    async def _run() -> bool | None:
        try:
            return await scheduler.trigger_now()
        finally:
            scheduler.stop()

    with console.status("Syncing...", spinner="dots"):
        ok = asyncio.run(_run())
    return bool(ok)


def show_status() -> None:
    """Displays the daemon state and the configured sync target."""
    conf = Config.load()

    content = Text()
    content.append("Daemon:    ", style="bold")
    if _daemon_running():
        content.append("Active (Running)\n", style="bold green")
    else:
        content.append("Stopped\n", style="bold red")

    content.append("Interval:  ", style="bold")
    if conf.sync.interval > 0:
        content.append(f"every {conf.sync.interval}s\n")
    else:
        content.append("manual only\n", style="yellow")

    content.append("Directory: ", style="bold")
    problem = check_working_dir(conf.sync.working_dir)
    if problem:
        content.append(problem, style="bold yellow")
    else:
        content.append(conf.sync.working_dir, style="green")

    console.print(Panel(content, title="GitLight Status", expand=False))

    errors = _analyze_logs()
    if errors:
        console.print(
            Panel(
                Text("\n".join(errors[-10:])),
                title=f"Recent Errors ({len(errors)} in 24h)",
                border_style="red",
                expand=False,
            )
        )


def open_config() -> None:
    """Opens the configuration file in the system default editor."""
    if not CONFIG_FILE.exists():
        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_FILE.write_text(CONFIG_TEMPLATE)

    editor = os.environ.get("EDITOR")
    if not editor:
        editor = "open" if sys.platform == "darwin" else "nano"

    console.print(f"Opening [cyan]{CONFIG_FILE}[/cyan]...")
    try:
        subprocess.run([editor, str(CONFIG_FILE)])
    except OSError as e:
        console.print(f"[red]Could not open editor: {e}[/red]")


def show_config_reference() -> None:
    """Displays a formatted table of all available configuration options."""
    table = Table(title="GitLight Configuration Schema", show_lines=True)
    table.add_column("Section", style="cyan", justify="right")
    table.add_column("Key", style="green")
    table.add_column("Type", style="dim")
    table.add_column("Default", style="yellow")
    table.add_column("Description")

    table.add_row(
        "sync",
        "interval",
        "int | str",
        '"1hr"',
        "Time between automatic syncs (e.g., '30m', 3600). 0 disables the timer.",
    )
    table.add_row(
        "",
        "working_dir",
        "str",
        '""',
        "Absolute path of the git working directory. Required.",
    )
    table.add_row(
        "limits",
        "max_log_size",
        "int | str",
        '"5mb"',
        "Max size for log files before rotation (e.g., '5mb', '1gb').",
    )

    console.print(table)


def tail_log() -> None:
    """Follows the daemon log file in real-time."""
    if not LOG_FILE.exists():
        console.print(f"[red]No log file found yet at {LOG_FILE}.[/red]")
        return

    console.print(f"Tailing [bold cyan]{LOG_FILE}[/bold cyan] (Ctrl+C to stop)...")
    try:
        subprocess.run(["tail", "-n", "1000", "-f", str(LOG_FILE)])
    except KeyboardInterrupt:
        console.print("\nStopped.", style="dim")


def main() -> None:
    """Main entry point for the GitLight CLI."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Keep a git working directory committed, pulled and pushed.",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("now", help="Sync now (one-off)")
    subparsers.add_parser("run", help="Run the sync daemon in the foreground")
    subparsers.add_parser("status", help="Show daemon and configuration status")
    subparsers.add_parser("log", help="Tail the daemon log file")

    config_parser = subparsers.add_parser(
        "config", help="Open config file or view options"
    )
    config_parser.add_argument(
        "--list",
        "-l",
        action="store_true",
        help="List all available configuration options and their descriptions",
    )

    args = parser.parse_args()

    if args.command == "now":
        daemon.setup_logging(interactive=True)
        if not sync_now():
            sys.exit(1)
        return
    elif args.command == "run":
        daemon.main(interactive=True)
        return
    elif args.command == "status":
        show_status()
        return
    elif args.command == "log":
        tail_log()
        return
    elif args.command == "config":
        if args.list:
            show_config_reference()
        else:
            open_config()
        return

    parser.print_help()


if __name__ == "__main__":
    main()
