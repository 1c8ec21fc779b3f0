"""Dictionary-backed stores for manifests and tests."""

from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import UTC, datetime

from submitsync.submit.commit import ChangeMessage, PatchSetId, SubmitApproval
from submitsync.sync.credentials import ExternalCredentials


class MemoryMessageStore:
    """Keeps change messages in insertion order per change."""

    def __init__(self, messages: list[ChangeMessage] | None = None):
        self._messages: dict[int, list[ChangeMessage]] = defaultdict(list)
        for message in messages or []:
            self._messages[message.change_id].append(message)

    def append(
        self, change_id: int, patch_set_id: PatchSetId | None, text: str
    ) -> ChangeMessage:
        message = ChangeMessage(
            uuid=uuid.uuid4().hex,
            change_id=change_id,
            patch_set_id=patch_set_id,
            message=text,
            written_on=datetime.now(UTC),
        )
        self._messages[change_id].append(message)
        return message

    def by_change(self, change_id: int) -> list[ChangeMessage]:
        return sorted(
            self._messages.get(change_id, []), key=lambda m: m.written_on
        )

    def all(self) -> list[ChangeMessage]:
        """Every message, oldest first."""
        messages = [m for ms in self._messages.values() for m in ms]
        return sorted(messages, key=lambda m: m.written_on)


class MemoryApprovalStore:
    def __init__(self, approvals: list[SubmitApproval] | None = None):
        self._approvals = {a.patch_set_id: a for a in approvals or []}

    def add(self, approval: SubmitApproval) -> None:
        self._approvals[approval.patch_set_id] = approval

    def submitter(self, patch_set_id: PatchSetId) -> SubmitApproval | None:
        return self._approvals.get(patch_set_id)


class MemoryCredentialStore:
    def __init__(self, credentials: list[ExternalCredentials] | None = None):
        self._credentials = {c.account_id: c for c in credentials or []}

    def add(self, credentials: ExternalCredentials) -> None:
        self._credentials[credentials.account_id] = credentials

    def lookup(self, account_id: int) -> ExternalCredentials | None:
        return self._credentials.get(account_id)
