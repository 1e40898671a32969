"""Build the image and swap the running container."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from hostdeploy.commands import (
    build_docker_build_cmd,
    build_docker_rm_cmd,
    build_docker_run_cmd,
    build_docker_stop_cmd,
    build_network_create_cmd,
    build_network_inspect_cmd,
)
from hostdeploy.errors import BuildError, RunError
from hostdeploy.runner import CommandRunner, report_failure
from hostdeploy.source_sync import Workspace
from hostdeploy.target import DeploymentIdentity


class ContainerStatus(str, Enum):
    UNKNOWN = "unknown"
    STARTING = "starting"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class ContainerInstance:
    name: str
    image_tag: str
    bound_port: int
    health_probe_enabled: bool
    status: ContainerStatus = ContainerStatus.UNKNOWN


def build_image(identity: DeploymentIdentity, workspace: Workspace, *, run: CommandRunner) -> str:
    result = run.run(
        build_docker_build_cmd(image_tag=identity.image_tag, context_dir=workspace.path),
        capture_output=False,
    )
    if result.returncode != 0:
        raise BuildError(f"Failed to build the Docker image {identity.image_tag}: exit code {result.returncode}")
    return identity.image_tag


def ensure_network(network: str, *, run: CommandRunner) -> None:
    if run.run(build_network_inspect_cmd(network=network)).returncode == 0:
        return
    result = run.run(build_network_create_cmd(network=network))
    if result.returncode != 0:
        raise RunError(f"Failed to create docker network {network}: {report_failure(result)}")


def remove_container(container_name: str, *, run: CommandRunner) -> None:
    # Both steps are best effort: a missing container is not an error.
    run.run(build_docker_stop_cmd(container_name=container_name))
    run.run(build_docker_rm_cmd(container_name=container_name))


def start_container(
    identity: DeploymentIdentity,
    workspace: Workspace,
    *,
    port: int,
    container_port: int,
    network: str,
    health_probe: bool,
    run: CommandRunner,
) -> ContainerInstance:
    cmd = build_docker_run_cmd(
        container_name=identity.container_name,
        image_tag=identity.image_tag,
        host_port=port,
        container_port=container_port,
        env_file=workspace.env_file,
        network=network,
        health_probe=health_probe,
    )
    result = run.run(cmd)
    if result.returncode != 0:
        raise RunError(f"Failed to run the Docker container {identity.container_name}: {report_failure(result)}")
    return ContainerInstance(
        name=identity.container_name,
        image_tag=identity.image_tag,
        bound_port=port,
        health_probe_enabled=health_probe,
        status=ContainerStatus.STARTING,
    )


def replace_container(
    identity: DeploymentIdentity,
    workspace: Workspace,
    *,
    port: int,
    container_port: int,
    network: str,
    health_probe: bool,
    run: CommandRunner,
) -> ContainerInstance:
    """Tear down the previous instance and start the new one; the image must already be built."""
    ensure_network(network, run=run)
    remove_container(identity.container_name, run=run)
    return start_container(
        identity,
        workspace,
        port=port,
        container_port=container_port,
        network=network,
        health_probe=health_probe,
        run=run,
    )
