"""Optional HTTP check against the freshly bound host port."""

from __future__ import annotations

import requests

from hostdeploy.errors import SmokeCheckError


def build_local_url(*, port: int, path: str = "/") -> str:
    if not path.startswith("/"):
        path = f"/{path}"
    return f"http://localhost:{port}{path}"


def check_local_endpoint(port: int, *, path: str = "/", timeout: float = 10.0) -> int:
    """GET the app through its host port; a connection error or a 5xx is a failure."""
    url = build_local_url(port=port, path=path)
    try:
        response = requests.get(url, timeout=timeout, allow_redirects=False)
    except requests.RequestException as exc:
        raise SmokeCheckError(f"{url} is not reachable: {exc}") from exc

    status_code = int(response.status_code)
    if status_code >= 500:
        details = str(response.text or "").strip().replace("\n", " ")[:200]
        raise SmokeCheckError(f"{url} answered {status_code}: {details}")
    return status_code
