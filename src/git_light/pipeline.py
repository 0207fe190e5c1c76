import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from .config import SyncConfig
from .constants import APP_NAME, COMMIT_MESSAGE
from .runner import CommandOutcome, run_command

logger = logging.getLogger(APP_NAME)

Runner = Callable[[str, str], Awaitable[CommandOutcome]]


@dataclass(frozen=True)
class SyncStep:
    """One external command that must succeed before the next one runs.

    Attributes:
        name (str): A short identifier used in logs (e.g. 'push').
        command (str): The exact shell command line sent to the runner.
    """

    name: str
    command: str


SYNC_STEPS: tuple[SyncStep, ...] = (
    SyncStep("stage", "git add -A"),
    # A clean tree makes diff-index exit 0, so the commit is skipped and the
    # step still succeeds.
    SyncStep(
        "commit", f"git diff-index --quiet HEAD || git commit -m '{COMMIT_MESSAGE}'"
    ),
    SyncStep("pull", "git pull"),
    SyncStep("push", "git push"),
)
"""tuple[SyncStep, ...]: The fixed, ordered sync sequence."""


@dataclass(frozen=True)
class SyncResult:
    """The aggregate outcome of one full pipeline run.

    Attributes:
        success (bool): True if every step succeeded.
        failing_step (str | None): Name of the step that failed.
        failing_command (str | None): Command line of the step that failed.
        stdout (str): Captured stdout of the failing command.
        stderr (str): Captured stderr of the failing command.
        reason (str | None): Why the run failed before any command ran.
    """

    success: bool
    failing_step: str | None = None
    failing_command: str | None = None
    stdout: str = ""
    stderr: str = ""
    reason: str | None = None

    @classmethod
    def from_outcome(cls, step: SyncStep, outcome: CommandOutcome) -> "SyncResult":
        return cls(
            success=False,
            failing_step=step.name,
            failing_command=outcome.command,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
        )


def check_working_dir(working_dir: str) -> str | None:
    """Validates the configured working directory.

    Args:
        working_dir (str): The configured path.

    Returns:
        str | None: A human-readable problem description, or None if usable.
    """
    if not working_dir.strip():
        return "Working directory is not configured."
    path = Path(working_dir)
    if not path.is_absolute():
        return f"Working directory must be an absolute path: {working_dir}"
    if not path.is_dir():
        return f"Working directory does not exist: {working_dir}"
    return None


async def run_sync(
    config: SyncConfig,
    runner: Runner = run_command,
    steps: Sequence[SyncStep] = SYNC_STEPS,
) -> SyncResult:
    """Runs the sync steps in order, stopping at the first failure.

    A partially completed run (e.g. committed but not pushed) is left as is;
    the next run resumes from that state.

    Args:
        config (SyncConfig): The sync settings; only `working_dir` is used here.
        runner (Runner, optional): Executes one command. Defaults to run_command.
        steps (Sequence[SyncStep], optional): The steps to run. Defaults to SYNC_STEPS.

    Returns:
        SyncResult: The outcome of the run. This function never raises.
    """
    if problem := check_working_dir(config.working_dir):
        logger.debug(f"Sync aborted before first step: {problem}")
        return SyncResult(success=False, reason=problem)

    for step in steps:
        outcome = await runner(step.command, config.working_dir)
        if not outcome.success:
            logger.debug(f"Step '{step.name}' failed (exit {outcome.returncode}).")
            return SyncResult.from_outcome(step, outcome)
        logger.debug(f"Step '{step.name}' ok.")

    return SyncResult(success=True)
