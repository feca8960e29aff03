"""
Sandbox Executor - run one submission end to end.

Lifecycle:
1. Resolve the language profile
2. Allocate a workspace and write the source file
3. Launch the isolated container
4. Supervise it: feed stdin, drain output, enforce the deadline
5. Tear down the container, then the workspace
6. Report the result

Step 5 runs on every path, including failures in steps 2-4.
"""

from typing import Optional

from codebox.config import get_config
from codebox.sandbox import profiles, workspace
from codebox.sandbox.errors import LaunchError
from codebox.sandbox.launcher import DOCKER_RUN_FAILURE, IsolationLauncher, RunOptions, SandboxHandle
from codebox.sandbox.models import ExecutionRequest, ExecutionResult
from codebox.sandbox.reporter import report
from codebox.sandbox.supervisor import LIMIT_SECONDS, RunState, SandboxRun, supervise


def default_launcher() -> IsolationLauncher:
    """Launcher configured from the environment."""
    return IsolationLauncher(docker_binary=get_config().docker_binary)


async def run_sandbox(
    request: ExecutionRequest,
    launcher: Optional[IsolationLauncher] = None,
    deadline: float = LIMIT_SECONDS,
    workspace_root: Optional[str] = None,
) -> ExecutionResult:
    """
    Execute a validated request inside a fresh sandbox.

    Args:
        request: The accepted submission
        launcher: Isolation launcher; defaults to one built from config
        deadline: Wall-clock limit in seconds
        workspace_root: Parent directory for the workspace

    Returns:
        ExecutionResult for the program, whatever its exit status

    Raises:
        UnsupportedLanguage: If the request names an unknown language
        InfrastructureError: If the workspace or container could not be set up
    """
    profile = profiles.resolve(request.language)
    launcher = launcher or default_launcher()
    if workspace_root is None:
        workspace_root = get_config().workspace_root

    with workspace.allocate(workspace_root) as ws:
        workspace.write(ws, profile.filename, request.source)
        handle = await launcher.launch(ws, profile, RunOptions())
        try:
            run = await supervise(handle, request.stdin, deadline)
        finally:
            await launcher.teardown(handle)

    _raise_for_launch_failure(run, handle)
    return report(run)


def _raise_for_launch_failure(run: SandboxRun, handle: SandboxHandle) -> None:
    """
    `docker run` exits 125 when the daemon refuses the run. Only a container
    that was never created makes that an infrastructure failure; otherwise
    125 is the program's own exit code.
    """
    if run.state is not RunState.COMPLETED or run.exit_code != DOCKER_RUN_FAILURE:
        return
    if handle.container_created:
        return
    raise LaunchError(run.stderr.getvalue().strip() or "docker run did not create the container")
