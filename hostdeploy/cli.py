#!/usr/bin/env python3
"""Redeploy a containerized web app on this host from a git repository.

Usage:
  deploy <repository> <domain>
  deploy --no-webserver <repository>

Examples:
  DOMAIN_OWNER_EMAIL=ops@example.com deploy https://github.com/user/repo.git example.com
  deploy --no-webserver https://github.com/user/worker.git

Webserver mode (the default) also writes an nginx route for the domain, gets a
Let's Encrypt certificate when none exists, and reloads nginx.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from hostdeploy.console import StepLog
from hostdeploy.errors import DeployError
from hostdeploy.pipeline import run_deployment
from hostdeploy.runner import CommandRunner
from hostdeploy.settings import load_settings
from hostdeploy.target import parse_args, resolve_target, split_positionals


def main(argv: list[str] | None = None) -> int:
    log = StepLog()
    try:
        args = parse_args(list(argv) if argv is not None else None)
        repository, domain = split_positionals(args)

        if args.verbose:
            logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

        settings = load_settings(
            os.environ,
            settings_file=Path(args.settings_file) if args.settings_file else None,
        )
        target = resolve_target(
            repository=repository,
            domain=domain,
            no_webserver=args.no_webserver,
            settings=settings,
        )
        if target.public_hostname:
            log.info(target.public_hostname, icon="🌐")

        result = run_deployment(target, settings=settings, run=CommandRunner(), log=log)
    except DeployError as e:
        log.error(e.format())
        return 1

    where = f"https://{result.target.public_hostname}" if result.route else f"localhost:{result.port}"
    print(f"[deploy] ✅ Done. {result.container.name} is serving on {where}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
