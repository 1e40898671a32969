"""Wait for a freshly started container while streaming its logs.

Containers started with a health probe gate on docker's health status. Containers
without one get a fixed grace delay and no health signal at all.
"""

from __future__ import annotations

import logging
import subprocess
import time
from typing import Callable

from hostdeploy.commands import HEALTHY, build_docker_logs_cmd, build_docker_state_cmd
from hostdeploy.container import ContainerInstance, ContainerStatus
from hostdeploy.errors import ExhaustedError, HealthCheckError
from hostdeploy.runner import CommandRunner, report_failure

logger = logging.getLogger("hostdeploy")

STOPPED_STATES = frozenset({"exited", "dead"})
LOG_STREAM_STOP_TIMEOUT = 5.0


class ContainerLogStream:
    """`docker logs -f` as a child process for the duration of a `with` block."""

    def __init__(self, container_name: str, *, run: CommandRunner):
        self.container_name = container_name
        self.run = run
        self.process: subprocess.Popen | None = None

    def __enter__(self) -> "ContainerLogStream":
        self.process = self.run.start(build_docker_logs_cmd(container_name=self.container_name))
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def stop(self) -> None:
        process = self.process
        if process is None or process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=LOG_STREAM_STOP_TIMEOUT)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()


def read_container_state(container_name: str, *, run: CommandRunner) -> tuple[str, str]:
    """Return (state, health) as docker reports them; health is "" when no probe is attached."""
    result = run.run(build_docker_state_cmd(container_name=container_name))
    if result.returncode != 0:
        raise HealthCheckError(f"Could not inspect container {container_name}: {report_failure(result)}")
    parts = str(result.stdout or "").split()
    state = parts[0] if parts else ""
    health = parts[1] if len(parts) > 1 else ""
    return state, health


def wait_until_healthy(
    container: ContainerInstance,
    *,
    run: CommandRunner,
    poll_interval: float = 1.0,
    timeout: float = 600.0,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    deadline = clock() + timeout
    while True:
        state, health = read_container_state(container.name, run=run)
        logger.debug("%s: state=%s health=%s", container.name, state, health)

        if health == HEALTHY:
            container.status = ContainerStatus.HEALTHY
            return

        if state in STOPPED_STATES:
            container.status = ContainerStatus.UNHEALTHY
            raise HealthCheckError(f"Container {container.name} stopped ({state}) before becoming healthy")

        container.status = ContainerStatus.UNHEALTHY if health == "unhealthy" else ContainerStatus.STARTING

        if clock() >= deadline:
            raise ExhaustedError(
                f"Container {container.name} not healthy after {timeout:g}s (last health status: {health or 'none'})"
            )
        sleep(poll_interval)


def monitor_container(
    container: ContainerInstance,
    *,
    run: CommandRunner,
    poll_interval: float,
    timeout: float,
    grace_seconds: float,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> ContainerStatus:
    with ContainerLogStream(container.name, run=run) as logs:
        if container.health_probe_enabled:
            wait_until_healthy(
                container,
                run=run,
                poll_interval=poll_interval,
                timeout=timeout,
                sleep=sleep,
                clock=clock,
            )
            logs.stop()
            sleep(grace_seconds)
        else:
            sleep(grace_seconds)
            logs.stop()
            container.status = ContainerStatus.UNKNOWN
    return container.status
