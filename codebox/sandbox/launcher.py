"""
Isolation Launcher - start one locked-down Docker container per run.

Security Requirements:
- Network disabled
- Strict resource limits (0.5 CPU, 256MB memory, 64 processes)
- Read-only root filesystem, small nosuid/nodev tmpfs as the only writable area
- All capabilities dropped, no privilege escalation, unprivileged user
- Workspace mounted read-only
- Containers always removed after execution

The container is started with the ``docker`` CLI so its stdio can be piped
directly; the Docker SDK is used to check the daemon, make sure the image is
present, and force-remove the container afterwards.
"""

import asyncio
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

import docker  # type: ignore[import-not-found]
from docker.errors import APIError, DockerException, ImageNotFound, NotFound  # type: ignore[import-not-found]
from loguru import logger

from codebox.sandbox.errors import LaunchError
from codebox.sandbox.profiles import WORKSPACE_MOUNT, SCRATCH_DIR, LanguageProfile
from codebox.sandbox.workspace import Workspace


# =============================================================================
# CONSTANTS
# =============================================================================

# Resource limits
LIMIT_CPUS = "0.5"
LIMIT_MEMORY = "256m"
LIMIT_PIDS = 64
LIMIT_TMPFS = "64m"

# Unprivileged identity inside the container
SANDBOX_USER = "1000:1000"

CONTAINER_PREFIX = "codebox-"
RUN_LABEL = "codebox.run"

# Exit status of `docker run` when the daemon itself failed to start the container
DOCKER_RUN_FAILURE = 125


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class RunOptions:
    """Per-run container limits. Defaults are the only values ever used."""
    cpus: str = LIMIT_CPUS
    memory: str = LIMIT_MEMORY
    pids_limit: int = LIMIT_PIDS
    tmpfs_size: str = LIMIT_TMPFS
    user: str = SANDBOX_USER


@dataclass
class SandboxHandle:
    """A started container: the piped `docker run` process and its name."""
    process: asyncio.subprocess.Process
    container_name: str
    profile: LanguageProfile
    workspace: Workspace
    # `docker run` writes the container id here once the daemon has created it
    cidfile: Optional[Path] = None
    # Set by teardown from the cidfile
    container_id: Optional[str] = None

    @property
    def container_created(self) -> bool:
        """Whether the daemon ever created the container. Known after teardown."""
        return self.container_id is not None


# =============================================================================
# ARGUMENTS
# =============================================================================

def build_docker_args(
    workspace: Workspace,
    profile: LanguageProfile,
    options: RunOptions,
    container_name: str,
    cidfile: Optional[Path] = None,
) -> List[str]:
    """Build the `docker run` argument list for one run."""
    # Compiled binaries are executed from the scratch area
    tmpfs_flags = "rw,nosuid,nodev," + ("exec" if profile.exec_scratch else "noexec")
    cid_args = ["--cidfile", str(cidfile)] if cidfile is not None else []

    return [
        "run", "--rm", "-i",
        "--name", container_name,
        "--label", f"{RUN_LABEL}={container_name}",
        *cid_args,
        "--network", "none",
        "--cpus", options.cpus,
        "--memory", options.memory,
        "--memory-swap", options.memory,
        "--pids-limit", str(options.pids_limit),
        "--read-only",
        "--tmpfs", f"{SCRATCH_DIR}:{tmpfs_flags},size={options.tmpfs_size}",
        "--cap-drop", "ALL",
        "--security-opt", "no-new-privileges",
        "-v", f"{workspace.path}:{WORKSPACE_MOUNT}:ro",
        "-w", WORKSPACE_MOUNT,
        "--user", options.user,
        profile.image,
        *profile.command,
    ]


# =============================================================================
# LAUNCHER
# =============================================================================

class IsolationLauncher:
    """Starts and tears down sandbox containers."""

    def __init__(
        self,
        docker_binary: str = "docker",
        client_factory: Optional[Callable[[], "docker.DockerClient"]] = None,
    ):
        self.docker_binary = docker_binary
        self._client_factory = client_factory or docker.from_env

    async def launch(
        self,
        workspace: Workspace,
        profile: LanguageProfile,
        options: Optional[RunOptions] = None,
    ) -> SandboxHandle:
        """
        Start one isolated container with attached stdio pipes.

        Raises:
            LaunchError: If Docker is unavailable or the process cannot start
        """
        options = options or RunOptions()
        await asyncio.to_thread(self._prepare, profile.image)

        container_name = f"{CONTAINER_PREFIX}{uuid.uuid4().hex[:12]}"
        # Beside the workspace, never inside the mounted directory
        cidfile = workspace.path.parent / f"{container_name}.cid"
        args = build_docker_args(workspace, profile, options, container_name, cidfile)
        try:
            process = await asyncio.create_subprocess_exec(
                self.docker_binary,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise LaunchError(f"Could not start {self.docker_binary}: {e}") from e

        logger.info("Launched {} ({}, image {})", container_name, profile.id, profile.image)
        return SandboxHandle(
            process=process,
            container_name=container_name,
            profile=profile,
            workspace=workspace,
            cidfile=cidfile,
        )

    async def teardown(self, handle: SandboxHandle) -> None:
        """
        Kill the client process if still alive, record whether the container
        was ever created, and force-remove every container carrying the run's
        label. Never raises.
        """
        process = handle.process
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
        handle.container_id = _consume_cidfile(handle.cidfile)
        await asyncio.to_thread(self._remove_container, handle.container_name)

    def _prepare(self, image: str) -> None:
        """Check the daemon is reachable and the image is present."""
        try:
            client = self._client_factory()
        except DockerException as e:
            raise LaunchError("Docker is not running. Please start Docker and try again.") from e
        try:
            client.ping()
            try:
                client.images.get(image)
            except ImageNotFound:
                logger.info("Pulling image {}", image)
                client.images.pull(image)
        except DockerException as e:
            raise LaunchError(f"Docker could not prepare {image}: {e}") from e
        finally:
            client.close()

    def _remove_container(self, container_name: str) -> None:
        try:
            client = self._client_factory()
        except DockerException as e:
            logger.warning("Could not reach Docker to remove {}: {}", container_name, e)
            return
        try:
            # By label, so a container the daemon finished creating after the
            # client was killed is found as well
            containers = client.containers.list(
                all=True,
                filters={"label": f"{RUN_LABEL}={container_name}"},
                ignore_removed=True,
            )
            for container in containers:
                _force_remove(container)
        except DockerException as e:
            logger.warning("Failed to remove container {}: {}", container_name, e)
        finally:
            client.close()


def _force_remove(container) -> None:
    try:
        container.remove(force=True)
        logger.debug("Removed container {}", container.name)
    except NotFound:
        # Already gone through --rm
        pass
    except APIError as e:
        # 409: removal already in progress
        if e.status_code != 409:
            logger.warning("Failed to remove container {}: {}", container.name, e)


def _consume_cidfile(cidfile: Optional[Path]) -> Optional[str]:
    """Read and delete the id file. An empty or missing file means no container was created."""
    if cidfile is None:
        return None
    try:
        container_id = cidfile.read_text().strip()
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("Could not read {}: {}", cidfile, e)
        container_id = ""
    try:
        cidfile.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove {}: {}", cidfile, e)
    return container_id or None
