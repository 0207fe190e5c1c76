import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


@dataclass(frozen=True)
class CommandOutcome:
    """The result of a single shell command invocation.

    Attributes:
        command (str): The command line that was executed.
        success (bool): True only if the process exited with status 0.
        stdout (str): Captured standard output (may be empty).
        stderr (str): Captured standard error, or the OS error text if the
            process could not be spawned.
        returncode (int | None): The exit status, negative for signal
            termination, None if the process never started.
    """

    command: str
    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int | None = None


def _command_env() -> dict[str, str]:
    """Builds the subprocess environment, disabling interactive git prompts."""
    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"
    env.setdefault("GIT_SSH_COMMAND", "ssh -o BatchMode=yes")
    return env


async def run_command(command: str, cwd: str | Path) -> CommandOutcome:
    """Executes a shell command in `cwd` and waits for it to finish.

    Only the calling coroutine is suspended while the process runs; the event
    loop stays free for other work. Failures never raise: a non-zero exit,
    a signal, or an inability to spawn the process all produce an outcome
    with `success=False`.

    Args:
        command (str): The shell command line to execute.
        cwd (str | Path): The working directory for the process.

    Returns:
        CommandOutcome: The captured result of the invocation.
    """
    logger.debug(f"RUN {command} (cwd={cwd})")
    try:
        proc = await asyncio.create_subprocess_shell(
            command,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=_command_env(),
        )
        raw_out, raw_err = await proc.communicate()
    except (OSError, ValueError) as e:
        logger.debug(f"Could not spawn '{command}': {e}")
        return CommandOutcome(command=command, success=False, stderr=str(e))

    return CommandOutcome(
        command=command,
        success=proc.returncode == 0,
        stdout=raw_out.decode(errors="replace"),
        stderr=raw_err.decode(errors="replace"),
        returncode=proc.returncode,
    )
