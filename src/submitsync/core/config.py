"""Application state and configuration."""

from __future__ import annotations

import os
import re
from enum import Enum
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from submitsync.core.base import BaseConfig, BaseState
from submitsync.core.log import Logger
from submitsync.core.refs import full_branch_name
from submitsync.core.yaml_settings import YamlWithIncludesSettingsSource

# Roots a {name.attr} template in YAML may start from, besides config
# e.g. {platformdirs.user_log_dir} or {Path.home}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}

DEFAULT_TICKET_PATTERN = r"TICKET:\s?([0-9]+)"

# ============================================================
# Configuration
# ============================================================

class SubmitType(str, Enum):
    """How approved changes are integrated into a branch."""

    FAST_FORWARD_ONLY = "fast_forward_only"
    FAST_FORWARD_SYNC = "fast_forward_sync"

class GitConfig(BaseConfig):
    """Repository and destination branch."""

    repo_path: Path = Field(
        default_factory=Path.cwd,
        description="Path to the git repository receiving submissions",
    )
    project: str = Field(
        default="",
        description="Project name reported to the external sync hook",
    )
    branch: str = Field(
        default="refs/heads/master",
        description=(
            "Destination branch; short names get refs/heads/ prepended"
        ),
    )

    @field_validator("branch")
    @classmethod
    def _full_ref(cls, value: str) -> str:
        return full_branch_name(value)

class SubmitConfig(BaseConfig):
    """Submit type selection for the project and its branches."""

    submit_type: SubmitType = Field(
        default=SubmitType.FAST_FORWARD_ONLY,
        description="Project-wide submit type",
    )
    branch_submit_types: dict[str, SubmitType] = Field(
        default_factory=dict,
        description=(
            "Per-branch overrides keyed by branch name "
            "(short or full ref)"
        ),
    )

    def submit_type_for(self, branch: str) -> SubmitType:
        """Return the submit type configured for branch."""
        branch = full_branch_name(branch)
        for name, submit_type in self.branch_submit_types.items():
            if full_branch_name(name) == branch:
                return submit_type
        return self.submit_type

class SyncConfig(BaseConfig):
    """External sync hook and ticket routing."""

    hook: Path | None = Field(
        default=None,
        description=(
            "Executable invoked once per commit to push it to the "
            "external mirror"
        ),
    )
    timeout: int | None = Field(
        default=None,
        description=(
            "Seconds before a hook run is abandoned; unset means the "
            "hook is trusted to terminate"
        ),
    )
    ticket_pattern: str = Field(
        default=DEFAULT_TICKET_PATTERN,
        description="Regex whose first group is the routing ticket",
    )
    ticket_from_messages: bool = Field(
        default=True,
        description=(
            "Also search review messages for a ticket; later "
            "messages override the commit message"
        ),
    )
    secret_env: str = Field(
        default="SUBMITSYNC_EXTERNAL_SECRET",
        description=(
            "Environment variable carrying the external secret to "
            "the hook"
        ),
    )

    @field_validator("ticket_pattern")
    @classmethod
    def _one_group(cls, value: str) -> str:
        if re.compile(value).groups < 1:
            raise ValueError("ticket_pattern needs a capturing group")
        return value

class Config(BaseConfig):
    """Application configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default=None,
        description="Log sinks; replaced by the installed global Logger",
    )
    git: GitConfig = Field(
        default_factory=GitConfig,
        description="Repository and branch settings",
    )
    submit: SubmitConfig = Field(
        default_factory=SubmitConfig,
        description="Submit type settings",
    )
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="External sync settings",
    )

    log_level: str = Field(
        default="info",
        alias="log-level",
        description="Default level for every log sink (spew ... fatal)",
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "submitsync"
        ),
        description="Directory receiving per-run log files",
    )

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode='after')
    def _install_logger(self) -> 'Config':
        """Make the configured sinks the process-wide logger."""
        from submitsync.core.log import setup_logger

        sinks = self.logger or Logger(level=self.log_level)
        self.logger = setup_logger(
            log_root=self.log_root,
            run_name=self.git.project.replace("/", "-") or "submit",
            level=sinks.level,
            console=sinks.console,
            otlp=sinks.otlp,
            file=sinks.file,
            logfire=sinks.logfire,
        )
        return self

# ============================================================
# Runtime state
# ============================================================

class SubmitState(BaseState):
    """Submit workflow runtime state."""

    manifest_path: Path | None = Field(
        default=None,
        description="Manifest file listing the approved changes",
    )
    submission: Any = Field(
        default=None,
        description="Submission built from the manifest",
    )
    merge_tip: Any = Field(
        default=None,
        description="Branch tip the run started from",
    )
    operation: Any = Field(
        default=None,
        description="SubmitOperation bound to this run",
    )
    result: Any = Field(
        default=None,
        description="SubmitResult from the strategy run",
    )
    status: str = Field(
        default="pending",
        description="Workflow status: pending, running, complete, failed",
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)

class Runtime(BaseModel):
    """All runtime state, grouped by command."""

    submit: SubmitState = Field(
        default_factory=SubmitState,
        description="Submit/check workflow runtime state"
    )

# ============================================================
# Settings root
# ============================================================

_TEMPLATE = re.compile(r"\{([A-Za-z_]+(?:\.[a-z_]+)+)\}")

class State(BaseSettings):
    """Everything a workflow node reads or writes.

    config is loaded once from YAML, .env, environment and command line;
    runtime is filled in while a command runs.
    """

    config: Config = Field(
        default_factory=Config,
        description="Application configuration (from YAML/env/CLI)"
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description="Runtime state (mutates during command execution)",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Extra YAML files merged over the defaults, in order "
            "(--include on the command line, include: in YAML)"
        ),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SUBMITSYNC_",
        env_nested_delimiter="__",
        cli_parse_args=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore'
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Earlier sources win: init, YAML, .env, env, secret files."""
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> "State":
        """Expand {config.*} and {platformdirs.*} references in config.

        "{config.git.repo_path}/hooks/sync" becomes
        "/srv/git/widgets.git/hooks/sync". References that do not
        resolve are left as written.
        """
        self._expand(self.config)
        return self

    def _expand(self, node: Any) -> Any:
        """Expand templates inside node; returns the replacement."""
        if isinstance(node, str):
            return _TEMPLATE.sub(self._resolve, node)
        if isinstance(node, Path):
            return Path(_TEMPLATE.sub(self._resolve, str(node)))
        if isinstance(node, Logger):
            return node
        if isinstance(node, BaseModel):
            for name in type(node).model_fields:
                value = getattr(node, name)
                expanded = self._expand(value)
                if expanded is not value:
                    setattr(node, name, expanded)
        elif isinstance(node, dict):
            for key, value in node.items():
                node[key] = self._expand(value)
        elif isinstance(node, list):
            node[:] = [self._expand(value) for value in node]
        return node

    def _resolve(self, match: re.Match) -> str:
        root, *path = match.group(1).split(".")
        value = TEMPLATE_NAMESPACE.get(root)
        if value is None:
            value, path = self, [root, *path]
        try:
            for part in path:
                value = getattr(value, part)
            if callable(value):
                # platformdirs helpers take the application name
                value = value("submitsync", appauthor=False)
        except (AttributeError, TypeError):
            return match.group(0)
        return str(value)

__all__ = [
    "Config",
    "DEFAULT_TICKET_PATTERN",
    "GitConfig",
    "State",
    "SubmitConfig",
    "SubmitState",
    "SubmitType",
    "SyncConfig",
]
