"""Clone or fast-forward the workspace and make sure it carries an env file."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from hostdeploy.commands import (
    build_editor_cmd,
    build_git_clone_cmd,
    build_git_head_cmd,
    build_git_pull_cmd,
)
from hostdeploy.env_schema import VarsEnum, parse_dotenv_file
from hostdeploy.errors import ConfigError, SyncError
from hostdeploy.runner import CommandRunner, report_failure
from hostdeploy.target import DeploymentTarget

ENV_FILE_NAME = ".env"


@dataclass(frozen=True)
class Workspace:
    path: Path
    previous_revision: str | None
    new_revision: str

    @property
    def has_new_commits(self) -> bool:
        # Informational only; every deployment rebuilds and restarts.
        return self.previous_revision != self.new_revision

    @property
    def env_file(self) -> Path:
        return self.path / ENV_FILE_NAME


def read_head(path: Path, *, run: CommandRunner) -> str:
    result = run.run(build_git_head_cmd(path=path))
    revision = str(result.stdout or "").strip()
    if result.returncode != 0 or not revision:
        raise SyncError(f"Could not read the current revision of {path}: {report_failure(result)}")
    return revision


def sync_workspace(target: DeploymentTarget, *, base_dir: Path, run: CommandRunner) -> Workspace:
    path = target.identity.workspace_path(base_dir)

    if path.is_dir():
        previous = read_head(path, run=run)
        result = run.run(build_git_pull_cmd(path=path), capture_output=False)
        if result.returncode != 0:
            raise SyncError(f"Failed to pull the latest changes into {path}: exit code {result.returncode}")
        return Workspace(path=path, previous_revision=previous, new_revision=read_head(path, run=run))

    if path.exists():
        raise SyncError(f"Workspace path exists but is not a directory: {path}")

    result = run.run(build_git_clone_cmd(repository=target.repository_reference, path=path), capture_output=False)
    if result.returncode != 0:
        raise SyncError(f"Failed to clone {target.repository_reference} into {path}: exit code {result.returncode}")
    return Workspace(path=path, previous_revision=None, new_revision=read_head(path, run=run))


def ensure_env_file(workspace: Workspace, *, editor: str, run: CommandRunner) -> int:
    """Open the operator's editor on a missing env file; return how many keys it holds."""
    env_file = workspace.env_file
    if not env_file.exists():
        print(f"[deploy] No {ENV_FILE_NAME} file found in {workspace.path}. Opening {editor} to create one.")
        result = run.run(build_editor_cmd(editor=editor, path=env_file), capture_output=False)
        if result.returncode != 0:
            raise ConfigError(
                f"Editor exited with code {result.returncode} while creating {env_file}. "
                f"Set {VarsEnum.EDITOR.value} or create the file by hand."
            )
        if not env_file.exists():
            raise ConfigError(f"{env_file} is required before the image can be run")

    if not env_file.is_file():
        raise ConfigError(f"{env_file} is not a regular file")
    return len(parse_dotenv_file(env_file))
