from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from hostdeploy.errors import SmokeCheckError
from hostdeploy.smoke import build_local_url, check_local_endpoint


def _response(status_code: int, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    return response


def test_build_local_url():
    assert build_local_url(port=34821) == "http://localhost:34821/"
    assert build_local_url(port=34821, path="healthz") == "http://localhost:34821/healthz"


def test_success_and_redirects_pass():
    with patch("hostdeploy.smoke.requests.get", return_value=_response(301)) as get:
        assert check_local_endpoint(34821, path="/healthz", timeout=3) == 301
    get.assert_called_once_with("http://localhost:34821/healthz", timeout=3, allow_redirects=False)


def test_server_error_fails():
    with patch("hostdeploy.smoke.requests.get", return_value=_response(502, "Bad Gateway\n")):
        with pytest.raises(SmokeCheckError) as exc:
            check_local_endpoint(34821)
    assert "502" in str(exc.value)
    assert exc.value.stage == "smoke-check"


def test_connection_error_fails():
    with patch("hostdeploy.smoke.requests.get", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(SmokeCheckError) as exc:
            check_local_endpoint(34821)
    assert "not reachable" in str(exc.value)
