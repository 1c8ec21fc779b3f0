"""External version control synchronisation."""

from submitsync.sync.credentials import (
    ExternalCredentials,
    InvalidPrivateKeyError,
    check_private_key,
)
from submitsync.sync.hook import (
    CommandSyncHook,
    HookRequest,
    HookResult,
    SyncHook,
)

__all__ = [
    "CommandSyncHook",
    "ExternalCredentials",
    "HookRequest",
    "HookResult",
    "InvalidPrivateKeyError",
    "SyncHook",
    "check_private_key",
]
