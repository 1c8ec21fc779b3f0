"""Ticket lookup for commits routed to the external system."""

from __future__ import annotations

import re
from typing import Any

from submitsync.core.config import DEFAULT_TICKET_PATTERN
from submitsync.core.errors import StoreError
from submitsync.core.log import logger
from submitsync.stores.base import MessageStore
from submitsync.submit.commit import TrackedCommit


class TicketExtractor:
    """Finds the ticket a commit is filed under.

    The commit message is searched first, then every review message
    on the change, oldest first. The last text that mentions a ticket
    wins, so a reviewer can correct a ticket by posting a new one.
    """

    def __init__(
        self,
        messages: MessageStore,
        pattern: str = DEFAULT_TICKET_PATTERN,
        from_messages: bool = True,
        log: Any = logger,
    ):
        self.messages = messages
        self.pattern = re.compile(pattern)
        self.from_messages = from_messages
        self.log = log

    def match(self, text: str) -> str | None:
        """First ticket mentioned in text."""
        m = self.pattern.search(text)
        if m is None:
            return None
        self.log.debug("Ticket found", ticket=m.group(1))
        return m.group(1)

    def find(self, commit: TrackedCommit) -> str | None:
        ticket = self.match(commit.message)
        if not self.from_messages or commit.change is None:
            return ticket

        try:
            history = self.messages.by_change(commit.change.change_id)
        except StoreError as e:
            self.log.warn(
                "Cannot read change messages",
                change=commit.change.change_id,
                error=str(e),
            )
            return ticket

        for message in history:
            ticket = self.match(message.message) or ticket
        return ticket
