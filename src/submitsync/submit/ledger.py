"""Per-run record of commit outcomes and the messages explaining them."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from submitsync.core.errors import AlreadyFinalizedError, StoreError
from submitsync.core.log import logger
from submitsync.stores.base import MessageStore
from submitsync.submit.commit import TrackedCommit
from submitsync.submit.outcome import Outcome


class OutcomeLedger:
    """Single outcome map for one submission run, keyed by commit id.

    Every finalize() and note() is written to the message store right
    away, so a run that dies halfway leaves a consistent prefix of
    fully recorded commits behind.
    """

    def __init__(self, messages: MessageStore, log: Any = logger):
        self._messages = messages
        self._log = log
        self._outcomes: dict[str, Outcome] = {}

    def outcome_of(self, commit: TrackedCommit) -> Outcome | None:
        return self._outcomes.get(commit.commit_id)

    def is_final(self, commit: TrackedCommit) -> bool:
        return commit.commit_id in self._outcomes

    def finalize(self, commit: TrackedCommit, outcome: Outcome) -> None:
        """Assign commit its terminal outcome and record the explanation.

        Raises:
            AlreadyFinalizedError: If commit already has an outcome
        """
        previous = self._outcomes.get(commit.commit_id)
        if previous is not None:
            raise AlreadyFinalizedError(
                f"{commit} is already {previous.value}, "
                f"cannot mark it {outcome.value}"
            )
        self._outcomes[commit.commit_id] = outcome
        self._log.info(
            "Commit finalized",
            commit=commit.commit_id,
            patch_set=str(commit.patch_set_id or ""),
            outcome=outcome.value,
        )
        self.note(commit, outcome.message)

    def finalize_all(
        self, commits: Iterable[TrackedCommit], outcome: Outcome
    ) -> None:
        """Finalize every commit in commits that has no outcome yet."""
        for commit in commits:
            if not self.is_final(commit):
                self.finalize(commit, outcome)

    def note(self, commit: TrackedCommit, text: str) -> None:
        """Append text to the audit trail of commit's change.

        A store failure is logged and otherwise ignored: the outcome
        itself is already decided and must not be rolled back.
        """
        if commit.change is None:
            return
        try:
            self._messages.append(
                commit.change.change_id,
                commit.change.current_patch_set_id,
                text,
            )
        except StoreError as e:
            self._log.warn(
                "Cannot record change message",
                change=commit.change.change_id,
                error=str(e),
            )

    def as_dict(self) -> dict[str, Outcome]:
        return dict(self._outcomes)

    def __len__(self) -> int:
        return len(self._outcomes)
