"""Commits, changes and approvals taking part in a submission."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from submitsync.core.refs import (
    change_ref_name,
    full_branch_name,
    object_id,
)


class PatchSetId(BaseModel):
    """One reviewed revision of a change."""

    model_config = ConfigDict(frozen=True)

    change_id: int
    patch_set: int

    def to_ref_name(self) -> str:
        return change_ref_name(self.change_id, self.patch_set)

    def __str__(self) -> str:
        return f"{self.change_id},{self.patch_set}"


class Change(BaseModel):
    """The review a patch set belongs to."""

    model_config = ConfigDict(frozen=True)

    change_id: int
    project: str
    branch: str
    current_patch_set: int

    @field_validator("branch")
    @classmethod
    def _full_ref(cls, value: str) -> str:
        return full_branch_name(value)

    @property
    def current_patch_set_id(self) -> PatchSetId:
        return PatchSetId(
            change_id=self.change_id, patch_set=self.current_patch_set
        )


class Account(BaseModel):
    """A user as far as submissions are concerned."""

    model_config = ConfigDict(frozen=True)

    account_id: int
    full_name: str | None = None
    preferred_email: str | None = None

    def ident(self) -> str:
        """Name and email in the form git uses for ref log entries."""
        name = self.full_name or f"Account {self.account_id}"
        if self.preferred_email:
            return f"{name} <{self.preferred_email}>"
        return name


class SubmitApproval(BaseModel):
    """Record of who submitted a patch set."""

    model_config = ConfigDict(frozen=True)

    patch_set_id: PatchSetId
    account: Account
    granted: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ChangeMessage(BaseModel):
    """One entry in a change's audit trail."""

    model_config = ConfigDict(frozen=True)

    uuid: str
    change_id: int
    patch_set_id: PatchSetId | None
    message: str
    written_on: datetime = Field(default_factory=lambda: datetime.now(UTC))


class TrackedCommit(BaseModel):
    """A graph commit bound to the patch set it was uploaded as.

    The branch tip is a TrackedCommit without a patch set. Outcomes
    are not stored here; a run keeps them in its OutcomeLedger keyed
    by commit_id.
    """

    model_config = ConfigDict(frozen=True)

    commit_id: str
    parents: tuple[str, ...] = ()
    message: str = ""
    patch_set_id: PatchSetId | None = None
    change: Change | None = None

    @field_validator("commit_id")
    @classmethod
    def _commit_id(cls, value: str) -> str:
        return object_id(value)

    @field_validator("parents")
    @classmethod
    def _parent_ids(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(object_id(parent) for parent in value)

    @property
    def name(self) -> str:
        """Abbreviated id for logs and messages."""
        return self.commit_id[:12]

    def __str__(self) -> str:
        if self.patch_set_id:
            return f"{self.name} ({self.patch_set_id})"
        return self.name


__all__ = [
    "Account",
    "Change",
    "ChangeMessage",
    "PatchSetId",
    "SubmitApproval",
    "TrackedCommit",
]
