"""Turn invocation arguments into a normalized deployment target."""

from __future__ import annotations

import argparse
import re
from dataclasses import dataclass
from pathlib import Path

from hostdeploy.errors import UsageError
from hostdeploy.settings import DeploySettings

USAGE = "deploy [--no-webserver] <repository> [<domain>]"

# Docker container names allow [a-zA-Z0-9][a-zA-Z0-9_.-]*.
_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
_HOSTNAME_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9-]*[a-z0-9])?)*$")


@dataclass(frozen=True)
class DeploymentIdentity:
    """The one derived name that keys the workspace, the container and the image."""

    name: str

    @property
    def container_name(self) -> str:
        return f"{self.name}-container"

    @property
    def image_tag(self) -> str:
        # Image repositories must be lowercase.
        return f"{self.name.lower()}-image"

    def workspace_path(self, base_dir: Path) -> Path:
        return base_dir / self.name


@dataclass(frozen=True)
class DeploymentTarget:
    repository_reference: str
    workspace_name: str
    domain: str | None
    is_subdomain_of_managed_zone: bool
    public_hostname: str | None
    notification_email: str
    webserver_enabled: bool
    identity: DeploymentIdentity


class _UsageArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(f"{message}. Usage: {USAGE}")


def build_parser() -> argparse.ArgumentParser:
    parser = _UsageArgumentParser(
        prog="deploy",
        description="Redeploy a containerized web app on this host from a git repository",
        usage=USAGE,
    )
    parser.add_argument(
        "--no-webserver",
        action="store_true",
        help="Skip the nginx route and TLS certificate; only build and run the container",
    )
    parser.add_argument(
        "--settings-file",
        default=None,
        help="Settings dotenv file. Resolution: CLI -> DEPLOY_SETTINGS_FILE env var -> /etc/hostdeploy/deploy.env",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log captured command output")
    parser.add_argument("positionals", nargs="*", metavar="ARG", help="<repository> [<domain>]")
    return parser


def flatten_separators(value: str) -> str:
    return value.replace("/", "_")


def repository_base_name(repository: str) -> str:
    """Base name of a repository reference with a trailing `.git` stripped."""
    trimmed = repository.rstrip("/")
    base = re.split(r"[/:]", trimmed)[-1] if trimmed else ""
    if base.endswith(".git"):
        base = base[: -len(".git")]
    return flatten_separators(base)


def split_managed_subdomain(domain: str, managed_zone: str) -> str | None:
    """Return the subdomain part if `domain` lies under `managed_zone`, else None."""
    zone = managed_zone.strip(".").lower()
    if not zone:
        return None
    suffix = f".{zone}"
    if domain.lower().endswith(suffix) and len(domain) > len(suffix):
        return domain[: -len(suffix)]
    return None


def _check_workspace_name(name: str) -> None:
    if not _NAME_PATTERN.match(name):
        raise UsageError(f"Cannot derive a usable deployment name from {name!r}. Usage: {USAGE}")


def resolve_target(
    *,
    repository: str,
    domain: str | None,
    no_webserver: bool,
    settings: DeploySettings,
) -> DeploymentTarget:
    webserver_enabled = not no_webserver
    repository = repository.strip()
    if not repository:
        raise UsageError(f"Repository must be non-empty. Usage: {USAGE}")

    if not webserver_enabled:
        workspace_name = repository_base_name(repository)
        _check_workspace_name(workspace_name)
        return DeploymentTarget(
            repository_reference=repository,
            workspace_name=workspace_name,
            domain=None,
            is_subdomain_of_managed_zone=False,
            public_hostname=None,
            notification_email=settings.fallback_email,
            webserver_enabled=False,
            identity=DeploymentIdentity(workspace_name),
        )

    domain = str(domain or "").strip().rstrip(".").lower()
    if not domain:
        raise UsageError(f"Domain must be non-empty. Usage: {USAGE}")
    # The hostname becomes a file name under the nginx and certificate directories.
    if len(domain) > 253 or not _HOSTNAME_PATTERN.match(domain):
        raise UsageError(f"Not a valid domain name: {domain!r}. Usage: {USAGE}")

    subdomain = split_managed_subdomain(domain, settings.managed_zone)
    if subdomain is not None and "." in subdomain:
        raise UsageError(
            f"Only one label is supported under {settings.managed_zone}, got {subdomain!r}. Usage: {USAGE}"
        )
    if subdomain is not None:
        workspace_name = flatten_separators(subdomain)
        public_hostname = f"{subdomain}.{settings.managed_zone}"
    else:
        workspace_name = flatten_separators(domain)
        public_hostname = domain
    _check_workspace_name(workspace_name)

    return DeploymentTarget(
        repository_reference=repository,
        workspace_name=workspace_name,
        domain=domain,
        is_subdomain_of_managed_zone=subdomain is not None,
        public_hostname=public_hostname,
        notification_email=settings.owner_email,
        webserver_enabled=True,
        identity=DeploymentIdentity(workspace_name),
    )


def split_positionals(args: argparse.Namespace) -> tuple[str, str | None]:
    """Check positional arity for the mode: one repository, plus one domain in webserver mode."""
    positionals: list[str] = list(args.positionals)
    expected = 1 if args.no_webserver else 2
    if len(positionals) != expected:
        raise UsageError(f"Expected {expected} argument(s), got {len(positionals)}. Usage: {USAGE}")
    return positionals[0], (positionals[1] if expected == 2 else None)


def parse_args(argv: list[str] | None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
