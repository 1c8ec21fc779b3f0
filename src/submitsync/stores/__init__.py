"""Record stores for messages, approvals and credentials."""

from submitsync.stores.base import ApprovalStore, CredentialStore, MessageStore
from submitsync.stores.memory import (
    MemoryApprovalStore,
    MemoryCredentialStore,
    MemoryMessageStore,
)

__all__ = [
    "ApprovalStore",
    "CredentialStore",
    "MessageStore",
    "MemoryApprovalStore",
    "MemoryCredentialStore",
    "MemoryMessageStore",
]
