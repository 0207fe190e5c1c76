import logging
import subprocess
import sys

from rich.console import Console
from rich.markup import escape

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


class Notifier:
    """Base class defining the notification sink used by the scheduler.

    The base implementation only writes to the log, which makes it suitable
    for headless use and tests.
    """

    def notify_success(self, message: str, duration: int) -> None:
        """Shows a transient success notice.

        Args:
            message (str): The notification text.
            duration (int): Suggested display time in seconds.
        """
        pass

    def notify_failure(self, message: str, duration: int) -> None:
        """Shows a long-lived failure notice.

        Args:
            message (str): The notification text.
            duration (int): Suggested display time in seconds.
        """
        pass

    def log(self, line: str, level: int = logging.INFO) -> None:
        """Records a plain diagnostic line.

        Args:
            line (str): The log message.
            level (int, optional): The logging level. Defaults to INFO.
        """
        logger.log(level, line)


class ConsoleNotifier(Notifier):
    """Prints notices to the terminal for interactive commands."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def notify_success(self, message: str, duration: int) -> None:
        self.console.print(f"[bold green]SUCCESS:[/bold green] {escape(message)}")

    def notify_failure(self, message: str, duration: int) -> None:
        self.console.print(f"[bold red]FAILURE:[/bold red] {escape(message)}")


class MacOSNotifier(Notifier):
    """Notification strategy for macOS."""

    def _display(self, message: str) -> None:
        # Sanitize quotes to prevent AppleScript syntax errors.
        clean_msg = message.replace('"', "'")
        script = f'display notification "{clean_msg}" with title "{APP_NAME}"'
        try:
            subprocess.run(["osascript", "-e", script], stderr=subprocess.DEVNULL)
        except OSError as e:
            logger.debug(f"osascript unavailable: {e}")

    def notify_success(self, message: str, duration: int) -> None:
        """Sends a notification using AppleScript (duration is system-managed)."""
        self._display(message)

    def notify_failure(self, message: str, duration: int) -> None:
        self._display(message)


class LinuxNotifier(Notifier):
    """Notification strategy for Linux desktops."""

    def _send(self, message: str, duration: int, urgency: str) -> None:
        """Sends a notification using `notify-send`."""
        cmd = [
            "notify-send",
            "-u",
            urgency,
            "-t",
            str(duration * 1000),
            APP_NAME,
            message,
        ]
        try:
            subprocess.run(cmd, stderr=subprocess.DEVNULL)
        except OSError as e:
            logger.debug(f"notify-send unavailable: {e}")

    def notify_success(self, message: str, duration: int) -> None:
        self._send(message, duration, "normal")

    def notify_failure(self, message: str, duration: int) -> None:
        self._send(message, duration, "critical")


def get_notifier(interactive: bool = False) -> Notifier:
    """Factory function to retrieve the notification strategy.

    Args:
        interactive (bool, optional): Whether output goes to a terminal user.
                                      Defaults to False.

    Returns:
        Notifier: A ConsoleNotifier when interactive, otherwise the
        platform-specific desktop strategy (or the log-only base class).
    """
    if interactive:
        return ConsoleNotifier()
    if sys.platform == "darwin":
        return MacOSNotifier()
    elif sys.platform.startswith("linux"):
        return LinuxNotifier()
    else:
        return Notifier()
