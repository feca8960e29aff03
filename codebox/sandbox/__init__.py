"""
Sandbox module for executing submitted code in isolated Docker containers.

Components:
- workspace: ephemeral per-request directory holding the source file
- profiles: fixed language recipes (filename, image, command)
- launcher: start and tear down the locked-down container
- supervisor: stream I/O, enforce the deadline, determine the exit code
- reporter: map runs and failures to the response contract
- executor: the end-to-end run
"""

from codebox.sandbox.errors import (
    SandboxError,
    ValidationError,
    UnsupportedLanguage,
    MissingCode,
    PayloadTooLarge,
    InfrastructureError,
    WorkspaceError,
    LaunchError,
)
from codebox.sandbox.executor import run_sandbox
from codebox.sandbox.models import ExecutionRequest, ExecutionResult, MAX_CODE_CHARS
from codebox.sandbox.profiles import LanguageProfile, resolve, supported_languages
from codebox.sandbox.reporter import report, error_response

__all__ = [
    # Executor
    "run_sandbox",
    "ExecutionRequest",
    "ExecutionResult",
    "MAX_CODE_CHARS",
    # Profiles
    "LanguageProfile",
    "resolve",
    "supported_languages",
    # Reporter
    "report",
    "error_response",
    # Errors
    "SandboxError",
    "ValidationError",
    "UnsupportedLanguage",
    "MissingCode",
    "PayloadTooLarge",
    "InfrastructureError",
    "WorkspaceError",
    "LaunchError",
]
