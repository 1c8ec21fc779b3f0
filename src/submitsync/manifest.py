"""Submission manifests: the approved changes to submit, as YAML.

A manifest stands in for the review database. It lists the accounts,
the changes with the commit each patch set points at, who submitted
them, and any review messages already on the change. With a commits:
section the whole graph lives in the manifest; without one, commits
are read from the git repository.

Example:
    project: widgets
    branch: master
    accounts:
      - account_id: 1000
        full_name: Ada Lovelace
        preferred_email: ada@example.com
        external_user: ada
        external_secret: hunter2
    changes:
      - change_id: 42
        patch_set: 1
        commit: 3f2a...
        submitter: 1000
        messages:
          - "TICKET: 4521"
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

import yaml
from pydantic import (
    BaseModel,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)

from submitsync.core.errors import GraphError, ManifestError
from submitsync.core.log import logger
from submitsync.core.refs import object_id
from submitsync.core.runner import Runner
from submitsync.graph.base import CommitGraph
from submitsync.graph.git import GitGraph
from submitsync.graph.memory import MemoryGraph
from submitsync.stores.memory import (
    MemoryApprovalStore,
    MemoryCredentialStore,
    MemoryMessageStore,
)
from submitsync.submit.commit import (
    Account,
    Change,
    ChangeMessage,
    PatchSetId,
    SubmitApproval,
    TrackedCommit,
)
from submitsync.sync.credentials import ExternalCredentials


class AccountEntry(BaseModel):
    account_id: int
    full_name: str | None = None
    preferred_email: str | None = None
    external_user: str | None = None
    external_secret: SecretStr | None = None

    def account(self) -> Account:
        return Account(
            account_id=self.account_id,
            full_name=self.full_name,
            preferred_email=self.preferred_email,
        )


class ChangeEntry(BaseModel):
    change_id: int
    patch_set: int = 1
    commit: str
    submitter: int | None = Field(
        default=None,
        description="Account id that submitted the patch set",
    )
    messages: list[str] = Field(default_factory=list)

    @field_validator("commit")
    @classmethod
    def _commit(cls, value: str) -> str:
        # abbreviated ids are fine when git resolves them
        return value.strip().lower()


class CommitEntry(BaseModel):
    id: str
    parents: list[str] = Field(default_factory=list)
    message: str = ""

    @field_validator("id")
    @classmethod
    def _id(cls, value: str) -> str:
        return object_id(value)

    @field_validator("parents")
    @classmethod
    def _parents(cls, value: list[str]) -> list[str]:
        return [object_id(parent) for parent in value]


class Manifest(BaseModel):
    """Validated content of a manifest file."""

    project: str | None = None
    branch: str | None = None
    accounts: list[AccountEntry] = Field(default_factory=list)
    changes: list[ChangeEntry] = Field(default_factory=list)
    commits: list[CommitEntry] | None = None
    refs: dict[str, str] = Field(default_factory=dict)

    @field_validator("refs")
    @classmethod
    def _ref_targets(cls, value: dict[str, str]) -> dict[str, str]:
        return {ref: object_id(target) for ref, target in value.items()}

    @model_validator(mode="after")
    def _known_accounts(self) -> Manifest:
        known = {a.account_id for a in self.accounts}
        for change in self.changes:
            if change.submitter is not None and change.submitter not in known:
                raise ValueError(
                    f"change {change.change_id} submitted by unknown "
                    f"account {change.submitter}"
                )
        return self


@dataclass
class Submission:
    """Everything a submission run reads, built from a manifest."""

    project: str
    branch: str
    graph: CommitGraph
    messages: MemoryMessageStore
    approvals: MemoryApprovalStore
    credentials: MemoryCredentialStore
    pending: list[TrackedCommit]


def load_manifest(path: Path) -> Manifest:
    """Read and validate a manifest file.

    Raises:
        ManifestError: If the file is missing, not YAML, or invalid
    """
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}") from e

    try:
        return Manifest.model_validate(data)
    except ValidationError as e:
        raise ManifestError(f"Invalid manifest {path}:\n{e}") from e


def build_submission(
    manifest: Manifest,
    project: str,
    branch: str,
    repo_path: Path,
    runner: Runner | None = None,
) -> Submission:
    """Turn a manifest into graph, stores and pending commits.

    project and branch are used when the manifest does not name them.

    Raises:
        ManifestError: If a change points at a commit the graph lacks,
            or an account carries an unusable secret
    """
    project = manifest.project or project
    branch = manifest.branch or branch

    if manifest.commits is None:
        graph: CommitGraph = GitGraph(repo_path, runner)
    else:
        graph = MemoryGraph()
        for entry in manifest.commits:
            graph.add(entry.id, entry.parents, entry.message)
        for ref, commit_id in manifest.refs.items():
            graph.set_ref(ref, commit_id)

    accounts = {a.account_id: a for a in manifest.accounts}
    credentials = MemoryCredentialStore()
    for entry in manifest.accounts:
        if entry.external_user is None or entry.external_secret is None:
            continue
        try:
            credentials.add(ExternalCredentials(
                account_id=entry.account_id,
                external_user=entry.external_user,
                external_secret=entry.external_secret,
            ))
        except ValidationError as e:
            raise ManifestError(
                f"Account {entry.account_id} has invalid credentials:\n{e}"
            ) from e

    # Existing review messages are dated in the past, in file order,
    # so they sort before anything the run appends
    start = datetime.now(UTC) - timedelta(days=1)
    history: list[ChangeMessage] = []
    approvals = MemoryApprovalStore()
    pending: list[TrackedCommit] = []

    for entry in manifest.changes:
        patch_set_id = PatchSetId(
            change_id=entry.change_id, patch_set=entry.patch_set
        )
        change = Change(
            change_id=entry.change_id,
            project=project,
            branch=branch,
            current_patch_set=entry.patch_set,
        )
        try:
            commit = graph.lookup(entry.commit)
        except GraphError as e:
            raise ManifestError(
                f"Change {entry.change_id}: {e}"
            ) from e
        pending.append(commit.model_copy(
            update={"patch_set_id": patch_set_id, "change": change}
        ))

        if entry.submitter is not None:
            approvals.add(SubmitApproval(
                patch_set_id=patch_set_id,
                account=accounts[entry.submitter].account(),
            ))
        for text in entry.messages:
            history.append(ChangeMessage(
                uuid=f"manifest-{entry.change_id}-{len(history)}",
                change_id=entry.change_id,
                patch_set_id=patch_set_id,
                message=text,
                written_on=start + timedelta(seconds=len(history)),
            ))

    logger.debug(
        "Loaded submission",
        project=project,
        branch=branch,
        changes=len(pending),
        graph=type(graph).__name__,
    )
    return Submission(
        project=project,
        branch=branch,
        graph=graph,
        messages=MemoryMessageStore(history),
        approvals=approvals,
        credentials=credentials,
        pending=pending,
    )
