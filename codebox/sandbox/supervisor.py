"""
Execution Supervisor - own the lifetime of one running sandboxed process.

The run moves through a small state machine:

    starting -> running -> completed    process exited before the deadline
                        -> timed_out    deadline fired, process SIGKILLed
                        -> killed       supervisor cancelled, process SIGKILLed

While running, four activities race as tasks: draining stdout, draining
stderr, feeding stdin, and waiting for exit. The deadline preempts the exit
wait. Every task is joined or cancelled before ``supervise`` returns, so none
outlives the request.
"""

import asyncio
import codecs
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from loguru import logger

from codebox.sandbox.launcher import SandboxHandle
from codebox.sandbox.models import MAX_CODE_CHARS


# =============================================================================
# CONSTANTS
# =============================================================================

# Wall-clock deadline per run, in seconds
LIMIT_SECONDS = 6

# Exit code reported for a forced kill (128 + SIGKILL)
KILLED_EXIT_CODE = 137

# How long output drains may keep reading once the process is gone
DRAIN_GRACE_SECONDS = 1.0

READ_CHUNK_BYTES = 64 * 1024


class RunState(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    KILLED = "killed"


TERMINAL_STATES = frozenset({RunState.COMPLETED, RunState.TIMED_OUT, RunState.KILLED})


# =============================================================================
# OUTPUT BUFFER
# =============================================================================

class OutputBuffer:
    """
    Accumulates decoded text from one output stream up to a character limit.

    Bytes past the limit are still accepted (so the pipe keeps draining) but
    discarded, and ``truncated`` is set.
    """

    def __init__(self, limit: int = MAX_CODE_CHARS):
        self.limit = limit
        self.truncated = False
        self._parts: List[str] = []
        self._size = 0
        self._closed = False
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, data: bytes) -> None:
        if self._closed:
            raise RuntimeError("Output buffer is closed")
        self._append(self._decoder.decode(data))

    def close(self) -> None:
        """Flush any partial multi-byte sequence and stop accepting data."""
        if self._closed:
            return
        self._append(self._decoder.decode(b"", final=True))
        self._closed = True

    def getvalue(self) -> str:
        return "".join(self._parts)

    def __len__(self) -> int:
        return self._size

    def _append(self, text: str) -> None:
        if not text:
            return
        room = self.limit - self._size
        if room <= 0:
            self.truncated = True
            return
        if len(text) > room:
            text = text[:room]
            self.truncated = True
        self._parts.append(text)
        self._size += len(text)


# =============================================================================
# RUN STATE
# =============================================================================

@dataclass
class SandboxRun:
    """Live state of one supervised run. Frozen once a terminal state is reached."""
    name: str
    deadline: float
    state: RunState = RunState.STARTING
    exit_code: Optional[int] = None
    stdout: OutputBuffer = field(default_factory=OutputBuffer)
    stderr: OutputBuffer = field(default_factory=OutputBuffer)
    started_at: float = field(default_factory=time.monotonic)
    finished_at: Optional[float] = None

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def duration_ms(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return (end - self.started_at) * 1000

    def start(self) -> None:
        self._require_state(RunState.STARTING)
        self.state = RunState.RUNNING

    def finish(self, state: RunState, exit_code: int) -> None:
        if state not in TERMINAL_STATES:
            raise ValueError(f"Not a terminal state: {state}")
        self._require_state(RunState.RUNNING)
        self.stdout.close()
        self.stderr.close()
        self.state = state
        self.exit_code = exit_code
        self.finished_at = time.monotonic()

    def _require_state(self, expected: RunState) -> None:
        if self.state is not expected:
            raise RuntimeError(f"Run {self.name} is {self.state.value}, expected {expected.value}")


# =============================================================================
# SUPERVISOR
# =============================================================================

async def supervise(
    handle: SandboxHandle,
    stdin: Optional[str] = None,
    deadline: float = LIMIT_SECONDS,
) -> SandboxRun:
    """
    Drive one started process to a terminal state.

    Args:
        handle: The launched sandbox
        stdin: Text written to the process before its input is closed
        deadline: Seconds before the process is forcibly killed

    Returns:
        The finished SandboxRun
    """
    process = handle.process
    run = SandboxRun(name=handle.container_name, deadline=deadline)
    run.start()

    activities = [
        asyncio.create_task(_drain(process.stdout, run.stdout)),
        asyncio.create_task(_drain(process.stderr, run.stderr)),
        asyncio.create_task(_feed(process.stdin, stdin)),
    ]
    waiter = asyncio.create_task(process.wait())

    outcome = RunState.KILLED
    try:
        done, _ = await asyncio.wait({waiter}, timeout=run.deadline)
        if waiter in done:
            outcome = RunState.COMPLETED
        else:
            logger.info("{} exceeded the {}s deadline, killing", run.name, run.deadline)
            outcome = RunState.TIMED_OUT
            _kill(process)
    except asyncio.CancelledError:
        logger.info("{} cancelled, killing", run.name)
        _kill(process)
        raise
    finally:
        await _join(process, waiter, activities)
        if outcome is RunState.COMPLETED:
            run.finish(outcome, _exit_status(process.returncode))
        else:
            run.finish(outcome, KILLED_EXIT_CODE)

    logger.info(
        "{} {} with exit code {} in {:.0f}ms",
        run.name, run.state.value, run.exit_code, run.duration_ms,
    )
    return run


async def _drain(stream: asyncio.StreamReader, buffer: OutputBuffer) -> None:
    while True:
        chunk = await stream.read(READ_CHUNK_BYTES)
        if not chunk:
            return
        buffer.feed(chunk)


async def _feed(pipe: asyncio.StreamWriter, data: Optional[str]) -> None:
    """Write stdin once, then close it so the program sees end-of-input."""
    try:
        if data:
            pipe.write(data.encode("utf-8"))
            await pipe.drain()
    except (BrokenPipeError, ConnectionResetError):
        # Process exited without reading its input
        pass
    finally:
        pipe.close()


async def _join(
    process: asyncio.subprocess.Process,
    waiter: "asyncio.Task[int]",
    activities: List["asyncio.Task[None]"],
) -> None:
    """Reap the process, let drains reach EOF, cancel whatever is left."""
    try:
        await waiter
    except asyncio.CancelledError:
        # Cancelled again while reaping; make sure the child is gone
        _kill(process)
        await process.wait()
        raise
    finally:
        _, pending = await asyncio.wait(activities, timeout=DRAIN_GRACE_SECONDS)
        for task in pending:
            task.cancel()
        results = await asyncio.gather(*activities, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.warning("Stream activity failed: {!r}", result)


def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        pass


def _exit_status(returncode: Optional[int]) -> int:
    """Map a process return code to a shell-style exit status."""
    if returncode is None:
        return KILLED_EXIT_CODE
    if returncode < 0:
        return 128 - returncode
    return returncode
