"""Error taxonomy for the deployment pipeline.

Every stage failure is fatal: the CLI prints the stage and message and exits 1.
"""

from __future__ import annotations


class DeployError(RuntimeError):
    stage = "deploy"

    def __init__(self, message: str, *, stage: str | None = None):
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage

    def format(self) -> str:
        return f"{self.stage}: {self.message}"


class UsageError(DeployError):
    stage = "usage"


class PrivilegeError(DeployError):
    stage = "privileges"


class ConfigError(DeployError):
    stage = "config"


class SyncError(DeployError):
    stage = "source-sync"


class BuildError(DeployError):
    stage = "image-build"


class RunError(DeployError):
    stage = "container-run"


class HealthCheckError(DeployError):
    stage = "health"


class SmokeCheckError(DeployError):
    stage = "smoke-check"


class ProxyConfigError(DeployError):
    stage = "proxy-config"


class CertificateError(DeployError):
    stage = "certificate"


class ReloadError(DeployError):
    stage = "proxy-reload"


class ExhaustedError(DeployError):
    """A bounded loop (port sampling, health polling) ran out of attempts or time."""

    stage = "exhausted"
