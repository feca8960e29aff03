"""
Result Reporter - turn finished runs and failures into the response contract.
"""

from typing import Tuple

from loguru import logger

from codebox.sandbox.errors import (
    InfrastructureError,
    MissingCode,
    PayloadTooLarge,
    UnsupportedLanguage,
    ValidationError,
)
from codebox.sandbox.models import ExecutionResult
from codebox.sandbox.supervisor import RunState, SandboxRun


def report(run: SandboxRun) -> ExecutionResult:
    """
    Build the result for a finished run.

    ``timed_out`` is set only when the deadline killed the process and it had
    written nothing at all. A killed run with output is reported as an
    ordinary result carrying that output.
    """
    if not run.finished:
        raise RuntimeError(f"Run {run.name} has not finished")

    stdout = run.stdout.getvalue()
    stderr = run.stderr.getvalue()
    timed_out = run.state is RunState.TIMED_OUT and not stdout and not stderr

    return ExecutionResult(
        exit_code=run.exit_code,
        stdout=stdout,
        stderr=stderr,
        timed_out=timed_out,
    )


def error_response(exc: BaseException) -> Tuple[int, str]:
    """Map an exception raised anywhere upstream to (status code, error message)."""
    if isinstance(exc, UnsupportedLanguage):
        return 400, "Unsupported or missing language"
    if isinstance(exc, (MissingCode, PayloadTooLarge)):
        return 413, "Missing code or too large"
    if isinstance(exc, ValidationError):
        return 400, str(exc)
    if isinstance(exc, InfrastructureError):
        logger.error("Sandbox infrastructure failure: {}", exc)
        return 500, str(exc) or "runner error"

    logger.opt(exception=exc).error("Unexpected runner failure")
    return 500, str(exc) or "runner error"
