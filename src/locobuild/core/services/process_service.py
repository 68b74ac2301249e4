# src/locobuild/core/services/process_service.py
import logging
import os
import signal
import subprocess
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Callable, Dict, List, Optional, Sequence, Union

from locobuild.exceptions import ActionFailure, ProcessTimeoutError

logger = logging.getLogger(__name__)

LineSink = Callable[[str], None]

# Seconds to wait for the output pumps once a timed-out process is killed.
PUMP_GRACE = 1.0


def _discard(_line: str) -> None:
    pass


def _pump(stream: IO[str], sink: LineSink) -> None:
    """Delivers a stream to the sink line by line; a partial last line arrives at EOF."""
    try:
        for line in stream:
            sink(line.rstrip("\r\n"))
    finally:
        stream.close()


def _kill_tree(proc: subprocess.Popen) -> None:
    """Kills the process and, on POSIX, every process in its session."""
    if os.name == "posix":
        try:
            os.killpg(proc.pid, signal.SIGKILL)
            return
        except (ProcessLookupError, PermissionError):
            pass
    proc.kill()


@dataclass
class ProcessResult:
    code: int
    stdout: List[str] = field(default_factory=list)
    stderr: List[str] = field(default_factory=list)


class ProcessService:
    """
    Runs external commands to completion, streaming their output.

    stdout and stderr are read on their own threads so a process filling one
    pipe never blocks on the other, and each line reaches its sink as soon as
    it is produced.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    def run(
            self,
            cwd: Union[str, Path, None],
            env: Optional[Dict[str, str]],
            command: str,
            args: Sequence[str] = (),
            on_stdout: LineSink = _discard,
            on_stderr: LineSink = _discard,
            timeout: Optional[float] = None,
    ) -> int:
        """
        Runs ``command args...`` and returns its exit code.

        Args:
            cwd: Working directory for the process.
            env: Full environment for the process, or None to inherit ours.
            command: The executable name or path.
            args: Arguments for the executable.
            on_stdout: Called once per stdout line.
            on_stderr: Called once per stderr line.
            timeout: Seconds before the process is killed; defaults to the
                service-wide timeout. None waits forever.

        Raises:
            ActionFailure: If the executable can't be started.
            ProcessTimeoutError: If the process outlives its timeout.
        """
        argv = [command, *args]
        limit = timeout if timeout is not None else self.timeout
        logger.debug("Executing %s in %s", argv, cwd or ".")
        try:
            proc = subprocess.Popen(
                argv,
                cwd=str(cwd) if cwd else None,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                start_new_session=(os.name == "posix"),
            )
        except FileNotFoundError as e:
            raise ActionFailure(f"command not found: {command}") from e
        except OSError as e:
            raise ActionFailure(f"Cannot execute {command}: {e}") from e

        pumps = [
            threading.Thread(target=_pump, args=(proc.stdout, on_stdout), daemon=True),
            threading.Thread(target=_pump, args=(proc.stderr, on_stderr), daemon=True),
        ]
        for t in pumps:
            t.start()

        try:
            code = proc.wait(timeout=limit)
        except subprocess.TimeoutExpired:
            _kill_tree(proc)
            proc.wait()
            for t in pumps:
                t.join(PUMP_GRACE)
            raise ProcessTimeoutError(" ".join(argv), limit)
        except KeyboardInterrupt:
            # The child runs in its own session and never sees the terminal's SIGINT.
            _kill_tree(proc)
            proc.wait()
            raise

        for t in pumps:
            t.join()
        return code
