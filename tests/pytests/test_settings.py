from __future__ import annotations

from pathlib import Path

import pytest

from hostdeploy.errors import ConfigError
from hostdeploy.settings import load_settings, parse_port_range


def _write(p: Path, text: str) -> Path:
    p.write_text(text, encoding="utf-8")
    return p


def test_defaults_without_settings_file(tmp_path: Path) -> None:
    s = load_settings({"DEPLOY_SETTINGS_FILE": ""}, settings_file=_write(tmp_path / "deploy.env", ""))
    assert s.owner_email == ""
    assert s.base_dir == Path("/opt")
    assert s.nginx_conf_dir == Path("/etc/nginx/conf.d")
    assert s.cert_live_dir == Path("/etc/letsencrypt/live")
    assert s.docker_network == "clone-connection"
    assert s.container_port == 80
    assert (s.port_low, s.port_high) == (2000, 65000)
    assert s.port_max_attempts == 1000
    assert s.health_poll_seconds == 1.0
    assert s.health_timeout_seconds == 600.0
    assert s.grace_seconds == 5.0
    assert s.smoke_check is False
    assert s.editor == "vim"


def test_env_overrides_settings_file(tmp_path: Path) -> None:
    p = _write(tmp_path / "deploy.env", "DEPLOY_BASE_DIR=/srv/apps\nDEPLOY_DOCKER_NETWORK=from-file\n")
    s = load_settings({"DEPLOY_DOCKER_NETWORK": "from-env", "DOMAIN_OWNER_EMAIL": "ops@example.com"}, settings_file=p)
    assert s.base_dir == Path("/srv/apps")
    assert s.docker_network == "from-env"
    assert s.owner_email == "ops@example.com"


def test_settings_file_from_environment(tmp_path: Path) -> None:
    p = _write(tmp_path / "custom.env", "DEPLOY_MANAGED_ZONE=.Example.ORG.\n")
    s = load_settings({"DEPLOY_SETTINGS_FILE": str(p)})
    assert s.managed_zone == "example.org"


def test_explicit_missing_settings_file_fails(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_settings({}, settings_file=tmp_path / "missing.env")


def test_unknown_key_in_settings_file_fails(tmp_path: Path) -> None:
    p = _write(tmp_path / "deploy.env", "NOT_A_KEY=1\n")
    with pytest.raises(ConfigError) as exc:
        load_settings({}, settings_file=p)
    assert "Unknown key(s): NOT_A_KEY" in str(exc.value)


def test_blank_env_values_fall_back_to_defaults(tmp_path: Path) -> None:
    s = load_settings({"DEPLOY_CONTAINER_PORT": "  "}, settings_file=_write(tmp_path / "deploy.env", ""))
    assert s.container_port == 80


@pytest.mark.parametrize(
    "key,value",
    [
        ("DEPLOY_CONTAINER_PORT", "eighty"),
        ("DEPLOY_CONTAINER_PORT", "70000"),
        ("DEPLOY_PORT_MAX_ATTEMPTS", "0"),
        ("DEPLOY_HEALTH_TIMEOUT_SECONDS", "-1"),
        ("DEPLOY_GRACE_SECONDS", "soon"),
        ("DEPLOY_SMOKE_CHECK", "maybe"),
        ("DEPLOY_PORT_RANGE", "9000-8000"),
    ],
)
def test_malformed_values_fail(tmp_path: Path, key: str, value: str) -> None:
    with pytest.raises(ConfigError) as exc:
        load_settings({key: value}, settings_file=_write(tmp_path / "deploy.env", ""))
    assert key in str(exc.value)


def test_parse_port_range() -> None:
    assert parse_port_range("2000-65000") == (2000, 65000)
    assert parse_port_range(" 8000 - 8000 ") == (8000, 8000)
    for bad in ["2000", "a-b", "0-10", "10-70000"]:
        with pytest.raises(ConfigError):
            parse_port_range(bad)


def test_smoke_check_path_is_normalized(tmp_path: Path) -> None:
    s = load_settings(
        {"DEPLOY_SMOKE_CHECK": "yes", "DEPLOY_SMOKE_CHECK_PATH": "healthz"},
        settings_file=_write(tmp_path / "deploy.env", ""),
    )
    assert s.smoke_check is True
    assert s.smoke_check_path == "/healthz"


def test_settings_file_cannot_name_another_settings_file(tmp_path: Path) -> None:
    other = _write(tmp_path / "other.env", "DEPLOY_BASE_DIR=/srv\n")
    p = _write(tmp_path / "deploy.env", f"DEPLOY_SETTINGS_FILE={other}\n")
    with pytest.raises(ConfigError) as exc:
        load_settings({}, settings_file=p)
    assert "Unknown key(s): DEPLOY_SETTINGS_FILE" in str(exc.value)
