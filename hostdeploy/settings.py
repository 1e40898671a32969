"""Resolve deployment configuration into one immutable `DeploySettings`.

Resolution order per key: process environment -> settings dotenv file -> schema default.
The settings file is `--settings-file`, else DEPLOY_SETTINGS_FILE, else
/etc/hostdeploy/deploy.env (skipped when absent).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from hostdeploy.env_schema import (
    SETTINGS_FILE_SCHEMA,
    SETTINGS_SCHEMA,
    EnvValidationError,
    VarsEnum,
    apply_defaults,
    get_spec,
    parse_boolish,
    parse_dotenv_file,
    schema_keys,
    validate_known_keys,
    validate_required,
)
from hostdeploy.errors import ConfigError


@dataclass(frozen=True)
class DeploySettings:
    owner_email: str
    fallback_email: str
    managed_zone: str
    base_dir: Path
    nginx_conf_dir: Path
    cert_live_dir: Path
    docker_network: str
    container_port: int
    port_low: int
    port_high: int
    port_max_attempts: int
    health_poll_seconds: float
    health_timeout_seconds: float
    grace_seconds: float
    smoke_check: bool
    smoke_check_path: str
    editor: str


def _env_subset(environ: Mapping[str, str], keys: set[str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for k in keys:
        v = environ.get(k)
        if v is None:
            continue
        v = str(v).strip()
        if not v:
            continue
        out[k] = v
    return out


def resolve_settings_path(environ: Mapping[str, str], explicit: Path | None) -> tuple[Path, bool]:
    """Return (path, must_exist)."""
    if explicit is not None:
        return explicit, True
    from_env = str(environ.get(VarsEnum.DEPLOY_SETTINGS_FILE.value) or "").strip()
    if from_env:
        return Path(from_env), True
    default = get_spec(SETTINGS_SCHEMA, VarsEnum.DEPLOY_SETTINGS_FILE).default or ""
    return Path(default), False


def parse_port_range(raw: str) -> tuple[int, int]:
    parts = [p.strip() for p in raw.split("-")]
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ConfigError(f"{VarsEnum.DEPLOY_PORT_RANGE.value} must look like LOW-HIGH, got {raw!r}")
    low, high = int(parts[0]), int(parts[1])
    if low < 1 or high > 65535 or low > high:
        raise ConfigError(f"{VarsEnum.DEPLOY_PORT_RANGE.value} must satisfy 1 <= LOW <= HIGH <= 65535, got {raw!r}")
    return low, high


def _int_value(kv: Mapping[str, str], key: VarsEnum, *, minimum: int) -> int:
    raw = kv[key.value]
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key.value} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{key.value} must be >= {minimum}, got {value}")
    return value


def _seconds_value(kv: Mapping[str, str], key: VarsEnum) -> float:
    raw = kv[key.value]
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{key.value} must be a number of seconds, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{key.value} must not be negative, got {raw!r}")
    return value


def load_settings(environ: Mapping[str, str], *, settings_file: Path | None = None) -> DeploySettings:
    context = "settings (env + settings file)"
    path, must_exist = resolve_settings_path(environ, settings_file)

    file_kv: dict[str, str] = {}
    try:
        if path.exists():
            file_kv = parse_dotenv_file(path)
            validate_known_keys(SETTINGS_FILE_SCHEMA, file_kv, context=f"{context}: {path}")
        elif must_exist:
            raise ConfigError(f"Settings file not found: {path}")

        merged = dict(file_kv)
        merged.update(_env_subset(environ, schema_keys(SETTINGS_SCHEMA)))
        merged = apply_defaults(SETTINGS_SCHEMA, merged)
        validate_required(SETTINGS_SCHEMA, merged, context=context)
    except EnvValidationError as e:
        raise ConfigError(e.format()) from e

    port_low, port_high = parse_port_range(merged[VarsEnum.DEPLOY_PORT_RANGE.value])
    container_port = _int_value(merged, VarsEnum.DEPLOY_CONTAINER_PORT, minimum=1)
    if container_port > 65535:
        raise ConfigError(f"{VarsEnum.DEPLOY_CONTAINER_PORT.value} must be <= 65535, got {container_port}")

    try:
        smoke_check = parse_boolish(merged.get(VarsEnum.DEPLOY_SMOKE_CHECK.value))
    except ValueError as e:
        raise ConfigError(f"{VarsEnum.DEPLOY_SMOKE_CHECK.value}: {e}") from e

    smoke_path = merged.get(VarsEnum.DEPLOY_SMOKE_CHECK_PATH.value) or "/"
    if not smoke_path.startswith("/"):
        smoke_path = f"/{smoke_path}"

    return DeploySettings(
        owner_email=str(merged.get(VarsEnum.DOMAIN_OWNER_EMAIL.value) or "").strip(),
        fallback_email=merged[VarsEnum.DEPLOY_FALLBACK_EMAIL.value],
        managed_zone=merged[VarsEnum.DEPLOY_MANAGED_ZONE.value].strip(".").lower(),
        base_dir=Path(merged[VarsEnum.DEPLOY_BASE_DIR.value]),
        nginx_conf_dir=Path(merged[VarsEnum.DEPLOY_NGINX_CONF_DIR.value]),
        cert_live_dir=Path(merged[VarsEnum.DEPLOY_CERT_LIVE_DIR.value]),
        docker_network=merged[VarsEnum.DEPLOY_DOCKER_NETWORK.value],
        container_port=container_port,
        port_low=port_low,
        port_high=port_high,
        port_max_attempts=_int_value(merged, VarsEnum.DEPLOY_PORT_MAX_ATTEMPTS, minimum=1),
        health_poll_seconds=_seconds_value(merged, VarsEnum.DEPLOY_HEALTH_POLL_SECONDS),
        health_timeout_seconds=_seconds_value(merged, VarsEnum.DEPLOY_HEALTH_TIMEOUT_SECONDS),
        grace_seconds=_seconds_value(merged, VarsEnum.DEPLOY_GRACE_SECONDS),
        smoke_check=smoke_check,
        smoke_check_path=smoke_path,
        editor=merged[VarsEnum.EDITOR.value],
    )
