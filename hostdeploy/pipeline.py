"""Sequence the deployment stages.

Order: prerequisites -> source sync -> env file -> port -> image build ->
container swap -> health wait -> (webserver mode) nginx route, certificate, reload.

Every stage failure propagates as a `DeployError`; nothing is rolled back.
"""

from __future__ import annotations

import os
import random
import shutil
import time
from dataclasses import dataclass
from typing import Callable

from hostdeploy.certs import Certificate, certificate_status, issue_certificate, reload_proxy
from hostdeploy.console import StepLog
from hostdeploy.container import ContainerInstance, build_image, replace_container
from hostdeploy.guard import WhichFn, run_prerequisite_checks
from hostdeploy.health import monitor_container
from hostdeploy.ports import allocate_port, is_port_free
from hostdeploy.proxy import ProxyRoute, write_proxy_route
from hostdeploy.runner import CommandRunner
from hostdeploy.settings import DeploySettings
from hostdeploy.smoke import check_local_endpoint
from hostdeploy.source_sync import Workspace, ensure_env_file, sync_workspace
from hostdeploy.target import DeploymentTarget


@dataclass
class DeploymentResult:
    target: DeploymentTarget
    workspace: Workspace
    port: int
    container: ContainerInstance
    route: ProxyRoute | None = None
    certificate: Certificate | None = None


def provision_route(
    target: DeploymentTarget,
    *,
    port: int,
    settings: DeploySettings,
    run: CommandRunner,
    log: StepLog,
) -> tuple[ProxyRoute, Certificate]:
    """Write the hostname's route, get a certificate if none exists, reload nginx."""
    hostname = target.public_hostname
    if not hostname:
        raise ValueError("provision_route needs a target with a public hostname")

    certificate = certificate_status(hostname, live_dir=settings.cert_live_dir)

    log.step(f"Configuring nginx for {hostname}", icon="🧭")
    route = ProxyRoute(hostname=hostname, upstream_port=port, tls_enabled=certificate.present)
    path = write_proxy_route(route, conf_dir=settings.nginx_conf_dir, cert_live_dir=settings.cert_live_dir)
    log.info(f"Wrote {path}")

    log.step("Getting the SSL certificate", icon="🔐")
    if certificate.present:
        log.info(f"Certificate already present for {hostname}; skipping issuance")
    else:
        certificate = issue_certificate(
            hostname,
            email=target.notification_email,
            live_dir=settings.cert_live_dir,
            run=run,
        )
        route = ProxyRoute(hostname=hostname, upstream_port=port, tls_enabled=True)
        write_proxy_route(route, conf_dir=settings.nginx_conf_dir, cert_live_dir=settings.cert_live_dir)
        log.info(f"Certificate obtained; enabled TLS in {path}")

    log.step("Reloading nginx", icon="🔁")
    reload_proxy(run=run)
    return route, certificate


def run_deployment(
    target: DeploymentTarget,
    *,
    settings: DeploySettings,
    run: CommandRunner,
    log: StepLog | None = None,
    euid: int | None = None,
    which: WhichFn = shutil.which,
    rng: random.Random | None = None,
    is_free: Callable[[int], bool] = is_port_free,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> DeploymentResult:
    log = log or StepLog()
    identity = target.identity

    log.step("Checking prerequisites", icon="🛡️")
    run_prerequisite_checks(target, euid=os.geteuid() if euid is None else euid, which=which)

    workspace_path = identity.workspace_path(settings.base_dir)
    if workspace_path.is_dir():
        log.step("Pulling the latest changes from the repository", icon="📦")
    else:
        log.step("Cloning the repository", icon="📦")
    workspace = sync_workspace(target, base_dir=settings.base_dir, run=run)
    if workspace.previous_revision is None:
        log.info(f"Cloned {target.repository_reference} at {workspace.new_revision}")
    elif workspace.has_new_commits:
        log.info(f"Updated {workspace.previous_revision[:12]} -> {workspace.new_revision[:12]}")
    else:
        log.info(f"No new commits ({workspace.new_revision[:12]}); rebuilding anyway")

    key_count = ensure_env_file(workspace, editor=settings.editor, run=run)
    log.info(f"Using {workspace.env_file} ({key_count} keys)")

    log.step("Finding an open port", icon="🔌")
    port = allocate_port(
        low=settings.port_low,
        high=settings.port_high,
        max_attempts=settings.port_max_attempts,
        rng=rng,
        is_free=is_free,
    )
    log.info(f"Found open port: {port}")

    log.step(f"Building the Docker image {identity.image_tag}", icon="🏗️")
    build_image(identity, workspace, run=run)

    log.step(f"Replacing container {identity.container_name}", icon="🐳")
    container = replace_container(
        identity,
        workspace,
        port=port,
        container_port=settings.container_port,
        network=settings.docker_network,
        health_probe=target.webserver_enabled,
        run=run,
    )

    if container.health_probe_enabled:
        log.step("Waiting for the health check to pass while printing the Docker logs", icon="🩺")
    else:
        log.step(f"Printing the Docker logs for {settings.grace_seconds:g}s", icon="🩺")
    status = monitor_container(
        container,
        run=run,
        poll_interval=settings.health_poll_seconds,
        timeout=settings.health_timeout_seconds,
        grace_seconds=settings.grace_seconds,
        sleep=sleep,
        clock=clock,
    )
    log.info(f"Container {container.name} status: {status.value}")

    if settings.smoke_check:
        log.step(f"Checking http://localhost:{port}{settings.smoke_check_path}", icon="🔎")
        status_code = check_local_endpoint(port, path=settings.smoke_check_path)
        log.info(f"Answered HTTP {status_code}")

    result = DeploymentResult(target=target, workspace=workspace, port=port, container=container)
    if target.webserver_enabled:
        result.route, result.certificate = provision_route(target, port=port, settings=settings, run=run, log=log)
    return result
