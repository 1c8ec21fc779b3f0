"""Exception hierarchy.

Business outcomes (a commit that cannot be fast-forwarded, a missing
ticket) are never raised; they are recorded per commit as an Outcome.
Everything here is an infrastructure fault or a programming error.
"""


class SubmitsyncError(Exception):
    """Base class for all submitsync errors."""


class GraphError(SubmitsyncError):
    """The commit graph could not be read."""


class MissingCommitError(GraphError):
    """A commit id does not resolve to a commit."""

    def __init__(self, commit_id: str, detail: str = "commit"):
        self.commit_id = commit_id
        super().__init__(f"Missing {detail} {commit_id}")


class WalkInUseError(GraphError):
    """A second revision walk was opened while one is still active."""


class LockFailureError(SubmitsyncError):
    """The destination ref moved while the submission was running."""

    def __init__(self, ref: str, expected: str | None, actual: str | None):
        self.ref = ref
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Cannot update {ref}: expected {expected or 'no ref'}, "
            f"found {actual or 'no ref'}"
        )


class StoreError(SubmitsyncError):
    """A record store could not be read or written."""


class AlreadyFinalizedError(SubmitsyncError):
    """An outcome was assigned twice to the same commit."""


class SubmitError(SubmitsyncError):
    """A submission run aborted on an infrastructure fault."""


class ManifestError(SubmitsyncError):
    """A submission manifest is malformed."""


__all__ = [
    "AlreadyFinalizedError",
    "GraphError",
    "LockFailureError",
    "ManifestError",
    "MissingCommitError",
    "StoreError",
    "SubmitError",
    "SubmitsyncError",
    "WalkInUseError",
]
