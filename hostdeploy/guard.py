"""Checks that run before any side effect: privileges, contact email, tools on PATH."""

from __future__ import annotations

import re
import shutil
from typing import Callable, Optional

from hostdeploy.env_schema import VarsEnum
from hostdeploy.errors import ConfigError, PrivilegeError
from hostdeploy.target import DeploymentTarget

WhichFn = Callable[[str], Optional[str]]

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")

BASE_TOOLS = ("git", "docker")
WEBSERVER_TOOLS = ("nginx", "certbot", "systemctl")


def check_privileges(*, euid: int) -> None:
    if euid != 0:
        raise PrivilegeError("Please run as root (docker, nginx and certbot need administrative access)")


def check_contact_email(target: DeploymentTarget) -> None:
    if not target.webserver_enabled:
        return
    email = target.notification_email.strip()
    if not email:
        raise ConfigError(f"Please set the {VarsEnum.DOMAIN_OWNER_EMAIL.value} environment variable")
    if not _EMAIL_PATTERN.match(email):
        raise ConfigError(f"{VarsEnum.DOMAIN_OWNER_EMAIL.value} does not look like an email address: {email!r}")


def required_tools(target: DeploymentTarget) -> tuple[str, ...]:
    if target.webserver_enabled:
        return BASE_TOOLS + WEBSERVER_TOOLS
    return BASE_TOOLS


def check_required_tools(target: DeploymentTarget, *, which: WhichFn = shutil.which) -> None:
    missing = [tool for tool in required_tools(target) if not which(tool)]
    if missing:
        raise ConfigError(f"Required tool(s) not found on PATH: {', '.join(missing)}. Install them and retry.")


def run_prerequisite_checks(target: DeploymentTarget, *, euid: int, which: WhichFn = shutil.which) -> None:
    check_privileges(euid=euid)
    check_contact_email(target)
    check_required_tools(target, which=which)
