"""Commit graph contract used by the submit strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator

from submitsync.core.errors import GraphError
from submitsync.submit.commit import TrackedCommit


class RevisionWalk(ABC):
    """Enumerates commits reachable from a set of starts.

    Commits reachable from any uninteresting commit are excluded.
    Iteration is topological with parents before children, so the
    oldest commit comes first. A walk is a scoped resource: use it
    as a context manager so it is released on every exit path.

    Example:
        with graph.new_walk() as walk:
            walk.mark_start(new_tip)
            walk.mark_uninteresting(old_tip)
            for commit_id in walk:
                ...
    """

    def __init__(self):
        self._starts: list[str] = []
        self._uninteresting: list[str] = []
        self._closed = False

    def mark_start(self, commit_id: str) -> None:
        self._starts.append(commit_id)

    def mark_uninteresting(self, commit_id: str) -> None:
        self._uninteresting.append(commit_id)

    def __iter__(self) -> Iterator[str]:
        if self._closed:
            raise GraphError("revision walk already closed")
        return self._walk(list(self._starts), list(self._uninteresting))

    @abstractmethod
    def _walk(
        self, starts: list[str], uninteresting: list[str]
    ) -> Iterator[str]:
        """Yield commit ids oldest first."""

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> RevisionWalk:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False


class CommitGraph(ABC):
    """Read access to commits plus compare-and-swap ref updates.

    Every method raises GraphError (or a subclass) when the
    underlying object store cannot answer.
    """

    @abstractmethod
    def lookup(self, commit_id: str) -> TrackedCommit:
        """Parse a commit.

        Raises:
            MissingCommitError: If commit_id does not name a commit
        """

    @abstractmethod
    def is_merged_into(self, base: str, tip: str) -> bool:
        """True if base is tip or one of tip's ancestors."""

    @abstractmethod
    def new_walk(self) -> RevisionWalk:
        """Open a revision walk."""

    @abstractmethod
    def resolve_ref(self, ref: str) -> str | None:
        """Commit id a ref points at, None if the ref does not exist."""

    @abstractmethod
    def branch_tips(self) -> set[str]:
        """Commit ids of every branch head in the repository."""

    @abstractmethod
    def update_ref(
        self, ref: str, new_id: str, expected_old: str | None
    ) -> None:
        """Point ref at new_id if it still points at expected_old.

        Raises:
            LockFailureError: If the ref moved in the meantime
        """

    def walk_between(
        self, old: str | None, new: str
    ) -> list[str]:
        """Commits in (old, new], oldest first."""
        with self.new_walk() as walk:
            walk.mark_start(new)
            if old:
                walk.mark_uninteresting(old)
            return list(walk)

    def reachable(
        self, starts: Iterable[str], uninteresting: Iterable[str]
    ) -> list[str]:
        """Commits reachable from starts but not from uninteresting."""
        with self.new_walk() as walk:
            for commit_id in starts:
                walk.mark_start(commit_id)
            for commit_id in uninteresting:
                walk.mark_uninteresting(commit_id)
            return list(walk)
