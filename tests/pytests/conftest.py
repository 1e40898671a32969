from __future__ import annotations

import subprocess
import sys
from dataclasses import replace
from pathlib import Path
from typing import Callable

import pytest


def pytest_configure() -> None:
    # Allow tests to import `hostdeploy.*` without installing the package.
    repo_root = Path(__file__).parents[2]
    sys.path.append(str(repo_root))


class FakeProcess:
    def __init__(self, cmd: list[str]):
        self.cmd = cmd
        self.returncode: int | None = None
        self.terminated = False

    def poll(self) -> int | None:
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        self.returncode = -15

    def kill(self) -> None:
        self.returncode = -9

    def wait(self, timeout: float | None = None) -> int | None:
        return self.returncode


class RecordingRunner:
    """Stands in for CommandRunner: records argv lists and replays scripted results.

    `on("git", "pull", returncode=1)` matches any command whose first token is "git"
    and that contains "pull". Later registrations win. `stdout` may be a list, consumed
    one item per call with the last item repeating.
    """

    def __init__(self, events: list[str] | None = None):
        self.calls: list[list[str]] = []
        self.started: list[FakeProcess] = []
        self.events = events if events is not None else []
        self._rules: list[tuple[tuple[str, ...], dict]] = []

    def on(
        self,
        *tokens: str,
        returncode: int = 0,
        stdout: str | list[str] = "",
        stderr: str = "",
        effect: Callable[[list[str]], None] | None = None,
    ) -> "RecordingRunner":
        outputs = list(stdout) if isinstance(stdout, list) else [stdout]
        self._rules.insert(0, (tokens, {"returncode": returncode, "stdout": outputs, "stderr": stderr, "effect": effect}))
        return self

    def _match(self, cmd: list[str]) -> dict | None:
        for tokens, rule in self._rules:
            if cmd and cmd[0] == tokens[0] and all(t in cmd for t in tokens[1:]):
                return rule
        return None

    def run(self, cmd: list[str], *, cwd: Path | None = None, capture_output: bool = True):
        cmd = list(cmd)
        self.calls.append(cmd)
        self.events.append("run:" + " ".join(cmd[:2]))
        rule = self._match(cmd)
        if rule is None:
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")
        if rule["effect"] is not None:
            rule["effect"](cmd)
        outputs = rule["stdout"]
        out = outputs.pop(0) if len(outputs) > 1 else outputs[0]
        return subprocess.CompletedProcess(cmd, rule["returncode"], stdout=out, stderr=rule["stderr"])

    def start(self, cmd: list[str]) -> FakeProcess:
        cmd = list(cmd)
        self.calls.append(cmd)
        self.events.append("start:" + " ".join(cmd[:2]))
        process = FakeProcess(cmd)
        self.started.append(process)
        return process

    def commands(self, *tokens: str) -> list[list[str]]:
        return [c for c in self.calls if c and c[0] == tokens[0] and all(t in c for t in tokens[1:])]


class FakeClock:
    def __init__(self, events: list[str] | None = None):
        self.now = 0.0
        self.sleeps: list[float] = []
        self.events = events if events is not None else []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.events.append(f"sleep:{seconds:g}")
        self.now += seconds


@pytest.fixture
def events() -> list[str]:
    return []


@pytest.fixture
def runner(events: list[str]) -> RecordingRunner:
    return RecordingRunner(events)


@pytest.fixture
def clock(events: list[str]) -> FakeClock:
    return FakeClock(events)


@pytest.fixture
def settings(tmp_path: Path):
    from hostdeploy.settings import load_settings

    settings_file = tmp_path / "deploy.env"
    settings_file.write_text("", encoding="utf-8")
    for name in ["opt", "nginx", "live"]:
        (tmp_path / name).mkdir()

    loaded = load_settings({}, settings_file=settings_file)
    return replace(
        loaded,
        owner_email="owner@managed-zone.com",
        managed_zone="managed-zone.com",
        base_dir=tmp_path / "opt",
        nginx_conf_dir=tmp_path / "nginx",
        cert_live_dir=tmp_path / "live",
    )
