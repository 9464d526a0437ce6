import logging
import shutil
import subprocess
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .. import config


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one bounded tool invocation."""
    ok: bool                    # exited before the deadline with status 0
    returncode: Optional[int]
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    launched: bool = True       # False when the tool is missing or not approved

    @classmethod
    def not_launched(cls) -> "CommandResult":
        return cls(ok=False, returncode=None, launched=False)


class CommandRunner:
    """
    Runs approved local tools under a wall-clock deadline.

    The child is polled every `poll_interval` seconds; once the deadline
    passes it is killed and reaped, a warning is logged and the call
    reports failure. Output goes to temporary files rather than pipes so a
    chatty tool can never block on a full pipe while we poll.
    """

    def __init__(self,
                 poll_interval: float = config.POLL_INTERVAL,
                 allowed: Optional[Iterable[str]] = None):
        self.poll_interval = poll_interval
        self.allowed = frozenset(allowed) if allowed is not None else config.APPROVED_TOOLS

    def run(self, argv: Sequence[str], timeout: float) -> CommandResult:
        """
        Executes argv[0] with the remaining arguments.

        Returns:
            CommandResult; never raises for tool problems.
        """
        if not argv:
            raise ValueError("argv must not be empty")

        tool = Path(argv[0]).name
        if tool not in self.allowed:
            logging.warning(f"Refusing to run unapproved tool: {tool}")
            return CommandResult.not_launched()

        executable = shutil.which(argv[0])
        if executable is None:
            logging.debug(f"Tool not found on PATH: {argv[0]}")
            return CommandResult.not_launched()

        with tempfile.TemporaryFile() as out, tempfile.TemporaryFile() as err:
            try:
                proc = subprocess.Popen(
                    [executable, *argv[1:]],
                    stdin=subprocess.DEVNULL,
                    stdout=out,
                    stderr=err,
                )
            except OSError as e:
                logging.debug(f"Failed to launch {argv[0]}: {e}")
                return CommandResult.not_launched()

            deadline = time.monotonic() + timeout
            while proc.poll() is None:
                if time.monotonic() > deadline:
                    proc.kill()
                    proc.wait()
                    logging.warning(f"Process timed out after {timeout}s: {' '.join(argv)}")
                    return CommandResult(ok=False, returncode=None, timed_out=True)
                time.sleep(self.poll_interval)

            out.seek(0)
            err.seek(0)
            stdout = out.read().decode('utf-8', errors='replace')
            stderr = err.read().decode('utf-8', errors='replace')

        if proc.returncode != 0:
            logging.debug(f"{argv[0]} exited with status {proc.returncode}")
        return CommandResult(
            ok=proc.returncode == 0,
            returncode=proc.returncode,
            stdout=stdout,
            stderr=stderr,
        )
