"""External sync hook: structured request in, exit status and output out."""

from __future__ import annotations

import os
import shlex
from pathlib import Path
from typing import Protocol

from invoke.exceptions import Failure
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from submitsync.core.log import logger
from submitsync.core.refs import R_CHANGES, R_HEADS, object_id
from submitsync.core.runner import Runner
from submitsync.submit.commit import Account


class HookRequest(BaseModel):
    """Everything the hook needs to mirror one commit."""

    model_config = ConfigDict(frozen=True)

    project: str = Field(min_length=1)
    repo_path: Path
    change_ref: str
    branch: str
    ticket: str = Field(min_length=1)
    account: Account
    external_user: str = Field(min_length=1)
    external_secret: SecretStr
    previous_id: str
    new_id: str

    @field_validator("change_ref")
    @classmethod
    def _change_ref(cls, value: str) -> str:
        if not value.startswith(R_CHANGES):
            raise ValueError(f"not a change ref: {value}")
        return value

    @field_validator("branch")
    @classmethod
    def _branch(cls, value: str) -> str:
        if not value.startswith(R_HEADS):
            raise ValueError(f"not a branch ref: {value}")
        return value

    @field_validator("previous_id", "new_id")
    @classmethod
    def _object_id(cls, value: str) -> str:
        return object_id(value)


class HookResult(BaseModel):
    """Exit status and combined output of one hook run."""

    model_config = ConfigDict(frozen=True)

    exit_code: int
    output: str = ""

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class SyncHook(Protocol):
    def invoke(self, request: HookRequest) -> HookResult | None:
        """Run the hook; None when it could not be started at all."""
        ...


class CommandSyncHook:
    """Runs an executable once per commit.

    Arguments are passed as named options; the secret travels in an
    environment variable so it never shows up in a process listing.
    """

    def __init__(
        self,
        path: Path,
        timeout: int | None = None,
        secret_env: str = "SUBMITSYNC_EXTERNAL_SECRET",
        runner: Runner | None = None,
    ):
        self.path = Path(path)
        self.timeout = timeout
        self.secret_env = secret_env
        self.runner = runner or Runner()

    def command_line(self, request: HookRequest) -> str:
        args = [
            str(self.path),
            "--project", request.project,
            "--repo-path", str(request.repo_path),
            "--change-ref", request.change_ref,
            "--branch", request.branch,
            "--ticket", request.ticket,
            "--account-id", str(request.account.account_id),
            "--external-user", request.external_user,
            "--previous", request.previous_id,
            "--new", request.new_id,
        ]
        if request.account.full_name:
            args += ["--account-name", request.account.full_name]
        if request.account.preferred_email:
            args += ["--account-email", request.account.preferred_email]
        return " ".join(shlex.quote(arg) for arg in args)

    def invoke(self, request: HookRequest) -> HookResult | None:
        if not self.path.is_file() or not os.access(self.path, os.X_OK):
            logger.error(
                "External sync hook is missing or not executable",
                hook=str(self.path),
            )
            return None

        env = {self.secret_env: request.external_secret.get_secret_value()}
        with logger.span(
            "external sync hook",
            hook=str(self.path),
            commit=request.new_id,
            ticket=request.ticket,
        ):
            try:
                result = self.runner.execute(
                    self.command_line(request),
                    cwd=request.repo_path,
                    timeout=self.timeout,
                    check=False,
                    env=env,
                )
            except (Failure, OSError) as e:
                logger.error(
                    "External sync hook could not run",
                    hook=str(self.path),
                    error=str(e),
                )
                return None

        output = result.stdout + result.stderr
        logger.debug(
            "External sync hook finished",
            exit_code=result.exited,
            output_bytes=len(output),
        )
        return HookResult(exit_code=result.exited, output=output)
