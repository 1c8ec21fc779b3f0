"""Contracts for the record stores a submission reads and writes.

Implementations raise StoreError when the backing store fails; a
lookup that finds nothing returns None or an empty list instead.
"""

from __future__ import annotations

from typing import Protocol

from submitsync.submit.commit import ChangeMessage, PatchSetId, SubmitApproval
from submitsync.sync.credentials import ExternalCredentials


class MessageStore(Protocol):
    """Audit trail of messages attached to changes."""

    def append(
        self, change_id: int, patch_set_id: PatchSetId | None, text: str
    ) -> ChangeMessage:
        """Record text on a change under a fresh message id."""
        ...

    def by_change(self, change_id: int) -> list[ChangeMessage]:
        """All messages of a change, oldest first."""
        ...


class ApprovalStore(Protocol):
    """Who submitted which patch set."""

    def submitter(self, patch_set_id: PatchSetId) -> SubmitApproval | None:
        ...


class CredentialStore(Protocol):
    """External system credentials by account."""

    def lookup(self, account_id: int) -> ExternalCredentials | None:
        ...
