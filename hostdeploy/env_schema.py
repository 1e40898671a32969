"""Deterministic configuration schema for host deployments.

This module is the single source of truth for:
- which configuration keys exist
- whether they are mandatory and/or have defaults
- how a settings dotenv file is parsed and checked

Design goals:
- No heuristic classification (no regex guessing).
- Unknown keys in the settings file are rejected.
- Fail fast with clear error messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping

from dotenv import dotenv_values


class VarsEnum(str, Enum):
    # Certificate contact
    DOMAIN_OWNER_EMAIL = "DOMAIN_OWNER_EMAIL"
    DEPLOY_FALLBACK_EMAIL = "DEPLOY_FALLBACK_EMAIL"

    # Naming / routing
    DEPLOY_MANAGED_ZONE = "DEPLOY_MANAGED_ZONE"

    # Host layout
    DEPLOY_BASE_DIR = "DEPLOY_BASE_DIR"
    DEPLOY_NGINX_CONF_DIR = "DEPLOY_NGINX_CONF_DIR"
    DEPLOY_CERT_LIVE_DIR = "DEPLOY_CERT_LIVE_DIR"
    DEPLOY_SETTINGS_FILE = "DEPLOY_SETTINGS_FILE"

    # Container
    DEPLOY_DOCKER_NETWORK = "DEPLOY_DOCKER_NETWORK"
    DEPLOY_CONTAINER_PORT = "DEPLOY_CONTAINER_PORT"

    # Port allocation
    DEPLOY_PORT_RANGE = "DEPLOY_PORT_RANGE"
    DEPLOY_PORT_MAX_ATTEMPTS = "DEPLOY_PORT_MAX_ATTEMPTS"

    # Health
    DEPLOY_HEALTH_POLL_SECONDS = "DEPLOY_HEALTH_POLL_SECONDS"
    DEPLOY_HEALTH_TIMEOUT_SECONDS = "DEPLOY_HEALTH_TIMEOUT_SECONDS"
    DEPLOY_GRACE_SECONDS = "DEPLOY_GRACE_SECONDS"
    DEPLOY_SMOKE_CHECK = "DEPLOY_SMOKE_CHECK"
    DEPLOY_SMOKE_CHECK_PATH = "DEPLOY_SMOKE_CHECK_PATH"

    # Operator
    EDITOR = "EDITOR"


@dataclass(frozen=True)
class EnvKeySpec:
    key: VarsEnum
    mandatory: bool
    default: str | None = None


class EnvValidationError(ValueError):
    def __init__(self, *, context: str, problems: list[str]):
        super().__init__("; ".join(problems))
        self.context = context
        self.problems = problems

    def format(self) -> str:
        lines = [f"[env] validation failed: {self.context}"]
        for p in self.problems:
            lines.append(f"- {p}")
        return "\n".join(lines)


SETTINGS_SCHEMA: tuple[EnvKeySpec, ...] = (
    # Checked by the prerequisite guard, and only in webserver mode.
    EnvKeySpec(key=VarsEnum.DOMAIN_OWNER_EMAIL, mandatory=False),
    EnvKeySpec(key=VarsEnum.DEPLOY_FALLBACK_EMAIL, mandatory=True, default="webmaster@localhost"),
    EnvKeySpec(key=VarsEnum.DEPLOY_MANAGED_ZONE, mandatory=True, default="marvinirwin.com"),
    EnvKeySpec(key=VarsEnum.DEPLOY_BASE_DIR, mandatory=True, default="/opt"),
    EnvKeySpec(key=VarsEnum.DEPLOY_NGINX_CONF_DIR, mandatory=True, default="/etc/nginx/conf.d"),
    EnvKeySpec(key=VarsEnum.DEPLOY_CERT_LIVE_DIR, mandatory=True, default="/etc/letsencrypt/live"),
    EnvKeySpec(key=VarsEnum.DEPLOY_SETTINGS_FILE, mandatory=False, default="/etc/hostdeploy/deploy.env"),
    EnvKeySpec(key=VarsEnum.DEPLOY_DOCKER_NETWORK, mandatory=True, default="clone-connection"),
    EnvKeySpec(key=VarsEnum.DEPLOY_CONTAINER_PORT, mandatory=True, default="80"),
    EnvKeySpec(key=VarsEnum.DEPLOY_PORT_RANGE, mandatory=True, default="2000-65000"),
    EnvKeySpec(key=VarsEnum.DEPLOY_PORT_MAX_ATTEMPTS, mandatory=True, default="1000"),
    EnvKeySpec(key=VarsEnum.DEPLOY_HEALTH_POLL_SECONDS, mandatory=True, default="1"),
    EnvKeySpec(key=VarsEnum.DEPLOY_HEALTH_TIMEOUT_SECONDS, mandatory=True, default="600"),
    EnvKeySpec(key=VarsEnum.DEPLOY_GRACE_SECONDS, mandatory=True, default="5"),
    EnvKeySpec(key=VarsEnum.DEPLOY_SMOKE_CHECK, mandatory=False, default="false"),
    EnvKeySpec(key=VarsEnum.DEPLOY_SMOKE_CHECK_PATH, mandatory=False, default="/"),
    EnvKeySpec(key=VarsEnum.EDITOR, mandatory=True, default="vim"),
)

# Keys a settings file may carry; it cannot point at another settings file.
SETTINGS_FILE_SCHEMA: tuple[EnvKeySpec, ...] = tuple(
    spec for spec in SETTINGS_SCHEMA if spec.key != VarsEnum.DEPLOY_SETTINGS_FILE
)


def schema_keys(schema: Iterable[EnvKeySpec]) -> set[str]:
    return {spec.key.value for spec in schema}


def parse_dotenv_file(path: Path) -> dict[str, str]:
    """Parse dotenv file strictly.

    - Comments are ignored.
    - Keys are preserved even if they have empty values (""), so we can detect unknown keys.
    """
    kv: dict[str, str] = {}
    raw = dotenv_values(path)
    for k, v in raw.items():
        if k is None:
            continue
        key = str(k).strip()
        if not key:
            continue
        val = "" if v is None else str(v).strip()
        kv[key] = val
    return kv


def validate_known_keys(schema: Iterable[EnvKeySpec], kv: Mapping[str, str], *, context: str) -> None:
    allowed = schema_keys(schema)
    unknown = sorted([k for k in kv.keys() if k not in allowed])
    if unknown:
        raise EnvValidationError(
            context=context,
            problems=["Unknown key(s): " + ", ".join(unknown)],
        )


def apply_defaults(schema: Iterable[EnvKeySpec], kv: dict[str, str]) -> dict[str, str]:
    out = dict(kv)
    for spec in schema:
        if spec.key.value in out and str(out.get(spec.key.value) or "").strip():
            continue
        if spec.default is None:
            continue
        out[spec.key.value] = spec.default
    return out


def validate_required(schema: Iterable[EnvKeySpec], kv: Mapping[str, str], *, context: str) -> None:
    missing: list[str] = []
    for spec in schema:
        if not spec.mandatory:
            continue
        val = str(kv.get(spec.key.value) or "").strip()
        if not val:
            missing.append(spec.key.value)
    if missing:
        raise EnvValidationError(context=context, problems=["Missing mandatory key(s): " + ", ".join(sorted(missing))])


def parse_boolish(value: str | None, *, default: bool = False) -> bool:
    normalized = str(value or "").strip().lower()
    if not normalized:
        return default
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def get_spec(schema: Iterable[EnvKeySpec], key: VarsEnum) -> EnvKeySpec:
    for spec in schema:
        if spec.key == key:
            return spec
    raise KeyError(key)
