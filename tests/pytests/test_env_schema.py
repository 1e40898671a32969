from __future__ import annotations

from pathlib import Path

import pytest

from hostdeploy.env_schema import (
    SETTINGS_FILE_SCHEMA,
    SETTINGS_SCHEMA,
    EnvValidationError,
    VarsEnum,
    apply_defaults,
    get_spec,
    parse_boolish,
    parse_dotenv_file,
    validate_known_keys,
    validate_required,
)


def _write(p: Path, text: str) -> Path:
    p.write_text(text, encoding="utf-8")
    return p


def test_parse_dotenv_preserves_empty_values(tmp_path: Path) -> None:
    p = _write(tmp_path / "deploy.env", "DOMAIN_OWNER_EMAIL=\n# comment\nDEPLOY_BASE_DIR=/srv\n")
    kv = parse_dotenv_file(p)
    assert kv[VarsEnum.DOMAIN_OWNER_EMAIL.value] == ""
    assert kv[VarsEnum.DEPLOY_BASE_DIR.value] == "/srv"


def test_defaults_and_required(tmp_path: Path) -> None:
    kv = parse_dotenv_file(_write(tmp_path / "deploy.env", "DEPLOY_BASE_DIR=\n"))

    validate_known_keys(SETTINGS_SCHEMA, kv, context="settings")
    kv = apply_defaults(SETTINGS_SCHEMA, kv)

    # blank value replaced by the default
    assert kv[VarsEnum.DEPLOY_BASE_DIR.value] == "/opt"
    # no default, stays absent
    assert VarsEnum.DOMAIN_OWNER_EMAIL.value not in kv

    validate_required(SETTINGS_SCHEMA, kv, context="settings")


def test_unknown_keys_fail(tmp_path: Path) -> None:
    kv = parse_dotenv_file(_write(tmp_path / "deploy.env", "NOT_A_KEY=1\n"))
    with pytest.raises(EnvValidationError):
        validate_known_keys(SETTINGS_SCHEMA, kv, context="settings")


def test_missing_mandatory_key_is_reported() -> None:
    with pytest.raises(EnvValidationError) as exc:
        validate_required(SETTINGS_SCHEMA, {}, context="settings")
    assert "DEPLOY_BASE_DIR" in exc.value.format()
    assert exc.value.format().startswith("[env] validation failed: settings")


def test_owner_email_is_optional_in_schema() -> None:
    spec = get_spec(SETTINGS_SCHEMA, VarsEnum.DOMAIN_OWNER_EMAIL)
    assert spec.mandatory is False
    assert spec.default is None


def test_parse_boolish() -> None:
    assert parse_boolish("true") is True
    assert parse_boolish("1") is True
    assert parse_boolish("off") is False
    assert parse_boolish("", default=True) is True
    with pytest.raises(ValueError):
        parse_boolish("sometimes")


def test_settings_file_schema_omits_its_own_locator() -> None:
    kv = {VarsEnum.DEPLOY_SETTINGS_FILE.value: "/etc/other.env"}
    validate_known_keys(SETTINGS_SCHEMA, kv, context="env")
    with pytest.raises(EnvValidationError):
        validate_known_keys(SETTINGS_FILE_SCHEMA, kv, context="settings file")
