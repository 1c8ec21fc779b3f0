"""Ref name and object id helpers for destination branches and patch sets."""

import re

R_HEADS = "refs/heads/"
R_CHANGES = "refs/changes/"

# Previous id reported when a branch is created by the submission
ZERO_ID = "0" * 40

# SHA-1 or SHA-256, full length
_OBJECT_ID = re.compile(r"[0-9a-f]{40}(?:[0-9a-f]{24})?")


def object_id(value: str) -> str:
    """Return value as a lower-case full object id.

    Raises:
        ValueError: If value is not 40 or 64 hex digits
    """
    normalized = value.strip().lower()
    if not _OBJECT_ID.fullmatch(normalized):
        raise ValueError(f"not a full object id: {value!r}")
    return normalized


def full_branch_name(branch: str) -> str:
    """Return branch as a full ref name, adding refs/heads/ if needed."""
    if branch.startswith("refs/"):
        return branch
    return R_HEADS + branch


def short_branch_name(ref: str) -> str:
    """Strip refs/heads/ from a full branch ref."""
    if ref.startswith(R_HEADS):
        return ref[len(R_HEADS):]
    return ref


def is_nested_branch(ref: str) -> bool:
    """Tell whether ref lives outside the top level of refs/heads/.

    Only top-level branches are mirrored to the external system;
    refs/heads/team/master and anything outside refs/heads/ are not.
    """
    if not ref.startswith(R_HEADS):
        return True
    return "/" in short_branch_name(ref)


def change_ref_name(change_id: int, patch_set: int) -> str:
    """Ref holding one patch set, sharded by the change id's last digits."""
    return f"{R_CHANGES}{change_id % 100:02d}/{change_id}/{patch_set}"
