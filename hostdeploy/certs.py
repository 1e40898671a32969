"""Let's Encrypt certificate presence, issuance, and the nginx reload."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from hostdeploy.commands import build_certbot_cmd, build_nginx_reload_cmd
from hostdeploy.errors import CertificateError, ReloadError
from hostdeploy.runner import CommandRunner, report_failure


@dataclass(frozen=True)
class Certificate:
    hostname: str
    present: bool


def certificate_dir(hostname: str, *, live_dir: Path) -> Path:
    return live_dir / hostname


def certificate_status(hostname: str, *, live_dir: Path) -> Certificate:
    # Presence only; expiry and renewal are certbot's business.
    return Certificate(hostname=hostname, present=certificate_dir(hostname, live_dir=live_dir).is_dir())


def issue_certificate(hostname: str, *, email: str, live_dir: Path, run: CommandRunner) -> Certificate:
    result = run.run(build_certbot_cmd(hostname=hostname, email=email), capture_output=False)
    if result.returncode != 0:
        raise CertificateError(f"Failed to get the SSL certificate for {hostname}: exit code {result.returncode}")
    certificate = certificate_status(hostname, live_dir=live_dir)
    if not certificate.present:
        raise CertificateError(
            f"certbot reported success but no certificate exists at {certificate_dir(hostname, live_dir=live_dir)}"
        )
    return certificate


def reload_proxy(*, run: CommandRunner) -> None:
    result = run.run(build_nginx_reload_cmd())
    if result.returncode != 0:
        raise ReloadError(f"Failed to reload nginx: {report_failure(result)}")
