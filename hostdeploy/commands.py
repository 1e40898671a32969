"""Command-line builders for every external tool the pipeline drives.

Each function returns an argv list; nothing here executes anything.
"""

from __future__ import annotations

import shlex
from pathlib import Path

HEALTHY = "healthy"


def build_git_clone_cmd(*, repository: str, path: Path) -> list[str]:
    return ["git", "clone", repository, str(path)]


def build_git_pull_cmd(*, path: Path) -> list[str]:
    return ["git", "-C", str(path), "pull"]


def build_git_head_cmd(*, path: Path) -> list[str]:
    return ["git", "-C", str(path), "rev-parse", "HEAD"]


def build_docker_build_cmd(*, image_tag: str, context_dir: Path) -> list[str]:
    return ["docker", "build", "-t", image_tag, str(context_dir)]


def build_docker_stop_cmd(*, container_name: str) -> list[str]:
    return ["docker", "stop", container_name]


def build_docker_rm_cmd(*, container_name: str) -> list[str]:
    return ["docker", "rm", container_name]


def build_network_inspect_cmd(*, network: str) -> list[str]:
    return ["docker", "network", "inspect", network]


def build_network_create_cmd(*, network: str) -> list[str]:
    return ["docker", "network", "create", network]


def health_probe_command(*, container_port: int) -> str:
    return f"curl -f http://localhost:{container_port} || exit 1"


def build_docker_run_cmd(
    *,
    container_name: str,
    image_tag: str,
    host_port: int,
    container_port: int,
    env_file: Path,
    network: str,
    health_probe: bool,
) -> list[str]:
    cmd = [
        "docker",
        "run",
        f"--network={network}",
        "-d",
        "--env-file",
        str(env_file),
        "--name",
        container_name,
        "-p",
        f"{host_port}:{container_port}",
        "-e",
        f"PORT={container_port}",
    ]
    if health_probe:
        cmd.append(f"--health-cmd={health_probe_command(container_port=container_port)}")
    cmd.append(image_tag)
    return cmd


def build_docker_logs_cmd(*, container_name: str) -> list[str]:
    return ["docker", "logs", "-f", container_name]


def build_docker_state_cmd(*, container_name: str) -> list[str]:
    # Prints "<state> <health>", e.g. "running starting"; health is empty without a probe.
    return [
        "docker",
        "inspect",
        "-f",
        "{{.State.Status}} {{if .State.Health}}{{.State.Health.Status}}{{end}}",
        container_name,
    ]


def build_certbot_cmd(*, hostname: str, email: str) -> list[str]:
    return [
        "certbot",
        "certonly",
        "--nginx",
        "-d",
        hostname,
        "--non-interactive",
        "--agree-tos",
        "--email",
        email,
    ]


def build_nginx_reload_cmd() -> list[str]:
    return ["systemctl", "reload", "nginx"]


def build_editor_cmd(*, editor: str, path: Path) -> list[str]:
    # EDITOR may carry flags, e.g. "code --wait".
    return [*shlex.split(editor), str(path)]
