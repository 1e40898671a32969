"""Render and write the nginx routing rule for one public hostname."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from hostdeploy.errors import ProxyConfigError


@dataclass(frozen=True)
class ProxyRoute:
    hostname: str
    upstream_port: int
    tls_enabled: bool = True


def route_path(hostname: str, *, conf_dir: Path) -> Path:
    return conf_dir / f"{hostname}.conf"


def _proxy_location(upstream_port: int) -> str:
    return f"""    location / {{
        proxy_pass http://localhost:{upstream_port};
        proxy_set_header Host $host;
        proxy_set_header X-Real-IP $remote_addr;
        proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
        proxy_set_header X-Forwarded-Proto $scheme;
    }}"""


def render_nginx_site(route: ProxyRoute, *, cert_live_dir: Path = Path("/etc/letsencrypt/live")) -> str:
    hostname = route.hostname
    location = _proxy_location(route.upstream_port)

    if not route.tls_enabled:
        # Bootstrap form, used until a certificate exists for the hostname.
        return f"""server {{
    listen 80;
    server_name {hostname};

{location}
}}
"""

    cert_dir = cert_live_dir / hostname
    return f"""server {{
    listen 80;
    server_name {hostname};

    location / {{
        return 301 https://$host$request_uri;
    }}
}}

server {{
    listen 443 ssl;
    server_name {hostname};

    ssl_certificate {cert_dir / "fullchain.pem"};
    ssl_certificate_key {cert_dir / "privkey.pem"};

{location}
}}
"""


def write_proxy_route(route: ProxyRoute, *, conf_dir: Path, cert_live_dir: Path) -> Path:
    """Overwrite the hostname's routing rule; never merges with what was there."""
    path = route_path(route.hostname, conf_dir=conf_dir)
    content = render_nginx_site(route, cert_live_dir=cert_live_dir)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ProxyConfigError(f"Failed to write nginx config {path}: {e}") from e
    return path
