import asyncio
import time

import pytest

from codebox.sandbox.supervisor import (
    KILLED_EXIT_CODE,
    OutputBuffer,
    RunState,
    supervise,
)

from conftest import spawn_python


def _run(code, stdin=None, deadline=5.0):
    async def go():
        handle = await spawn_python(code)
        run = await supervise(handle, stdin, deadline)
        return handle, run
    return asyncio.run(go())


def test_clean_exit_captures_stdout():
    handle, run = _run('print("hello")')
    assert run.state is RunState.COMPLETED
    assert run.exit_code == 0
    assert run.stdout.getvalue() == "hello\n"
    assert run.stderr.getvalue() == ""


def test_stdin_is_fed_and_closed():
    handle, run = _run("import sys\nprint(sys.stdin.readline().strip())", stdin="hello\n")
    assert run.exit_code == 0
    assert "hello" in run.stdout.getvalue()


def test_stdin_closed_even_when_empty():
    # Reading to EOF would hang forever if stdin were left open
    handle, run = _run("import sys\nprint(len(sys.stdin.read()))", deadline=3.0)
    assert run.state is RunState.COMPLETED
    assert run.stdout.getvalue().strip() == "0"


def test_nonzero_exit_is_a_normal_outcome():
    handle, run = _run('import sys\nsys.stderr.write("boom\\n")\nsys.exit(3)')
    assert run.state is RunState.COMPLETED
    assert run.exit_code == 3
    assert run.stderr.getvalue() == "boom\n"


def test_signal_death_maps_to_shell_status():
    handle, run = _run("import os, signal\nos.kill(os.getpid(), signal.SIGTERM)")
    assert run.state is RunState.COMPLETED
    assert run.exit_code == 143


def test_silent_infinite_loop_is_killed_at_deadline():
    start = time.monotonic()
    handle, run = _run("while True:\n    pass", deadline=1.0)
    elapsed = time.monotonic() - start
    assert run.state is RunState.TIMED_OUT
    assert run.exit_code == KILLED_EXIT_CODE
    assert run.stdout.getvalue() == ""
    assert run.stderr.getvalue() == ""
    assert handle.process.returncode is not None
    assert elapsed < 5


def test_output_before_kill_is_preserved():
    code = "import time\nprint('partial', flush=True)\nwhile True:\n    time.sleep(0.05)"
    handle, run = _run(code, deadline=1.0)
    assert run.state is RunState.TIMED_OUT
    assert run.exit_code == KILLED_EXIT_CODE
    assert run.stdout.getvalue() == "partial\n"
    assert handle.process.returncode is not None


def test_large_output_on_both_streams_does_not_deadlock():
    code = (
        "import sys\n"
        "sys.stderr.write('e' * 200000)\n"
        "sys.stdout.write('o' * 200000)\n"
    )
    handle, run = _run(code, deadline=5.0)
    assert run.state is RunState.COMPLETED
    assert len(run.stdout) == 200000
    assert len(run.stderr) == 200000


def test_runaway_output_is_capped():
    handle, run = _run("import sys\nsys.stdout.write('x' * 400000)", deadline=5.0)
    assert run.exit_code == 0
    assert len(run.stdout) == 300000
    assert run.stdout.truncated is True


def test_concurrent_runs_do_not_interfere():
    async def go():
        slow = await spawn_python("while True:\n    pass")
        fast = await spawn_python('print("fast")')
        slow_task = asyncio.create_task(supervise(slow, None, 2.0))
        start = time.monotonic()
        fast_run = await supervise(fast, None, 2.0)
        fast_elapsed = time.monotonic() - start
        slow_run = await slow_task
        return fast_run, fast_elapsed, slow_run

    fast_run, fast_elapsed, slow_run = asyncio.run(go())
    assert fast_run.stdout.getvalue() == "fast\n"
    assert fast_elapsed < 2.0
    assert slow_run.state is RunState.TIMED_OUT
    assert slow_run.stdout.getvalue() == ""


def test_cancellation_kills_the_process():
    async def go():
        handle = await spawn_python("while True:\n    pass")
        task = asyncio.create_task(supervise(handle, None, 30.0))
        await asyncio.sleep(0.3)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return handle

    handle = asyncio.run(go())
    assert handle.process.returncode is not None


def test_finished_run_rejects_further_transitions():
    handle, run = _run("pass")
    with pytest.raises(RuntimeError):
        run.finish(RunState.KILLED, KILLED_EXIT_CODE)
    with pytest.raises(RuntimeError):
        run.stdout.feed(b"late")


def test_output_buffer_decodes_split_utf8():
    buffer = OutputBuffer(limit=10)
    data = "héllo".encode("utf-8")
    buffer.feed(data[:2])
    buffer.feed(data[2:])
    buffer.close()
    assert buffer.getvalue() == "héllo"
    assert buffer.truncated is False
