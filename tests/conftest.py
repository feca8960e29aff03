import asyncio
import shutil
import sys
from pathlib import Path

import docker
import pytest
from docker.errors import DockerException

from codebox.sandbox import profiles
from codebox.sandbox.launcher import IsolationLauncher, SandboxHandle
from codebox.sandbox.workspace import Workspace


async def spawn_python(code: str, cwd: str = ".") -> SandboxHandle:
    """Start a local Python child with piped stdio, shaped like a sandbox handle."""
    process = await asyncio.create_subprocess_exec(
        sys.executable, "-c", code,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    return SandboxHandle(
        process=process,
        container_name=f"local-{process.pid}",
        profile=profiles.resolve("python"),
        workspace=Workspace(path=Path(cwd)),
        container_id=f"local-{process.pid}",
    )


class LocalLauncher(IsolationLauncher):
    """Runs the workspace source with the local interpreter instead of Docker."""

    def __init__(self):
        super().__init__(docker_binary="unused", client_factory=lambda: None)
        self.launched = []
        self.torn_down = []

    async def launch(self, workspace, profile, options=None):
        process = await asyncio.create_subprocess_exec(
            sys.executable, str(workspace.path / profile.filename),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(workspace.path),
        )
        name = f"local-{len(self.launched)}"
        handle = SandboxHandle(
            process=process,
            container_name=name,
            profile=profile,
            workspace=workspace,
            container_id=name,
        )
        self.launched.append(handle)
        return handle

    async def teardown(self, handle):
        if handle.process.returncode is None:
            handle.process.kill()
            await handle.process.wait()
        self.torn_down.append(handle.container_name)


def _docker_ready() -> bool:
    if shutil.which("docker") is None:
        return False
    try:
        client = docker.from_env()
        client.ping()
        client.close()
    except DockerException:
        return False
    return True


requires_docker = pytest.mark.skipif(not _docker_ready(), reason="Docker daemon not available")


@pytest.fixture
def local_launcher():
    return LocalLauncher()
