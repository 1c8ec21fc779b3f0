"""In-memory commit graph."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from submitsync.core.errors import (
    LockFailureError,
    MissingCommitError,
    WalkInUseError,
)
from submitsync.graph.base import CommitGraph, RevisionWalk
from submitsync.submit.commit import TrackedCommit


class MemoryRevisionWalk(RevisionWalk):
    def __init__(self, graph: MemoryGraph):
        super().__init__()
        self._graph = graph

    def _walk(
        self, starts: list[str], uninteresting: list[str]
    ) -> Iterator[str]:
        excluded = self._graph.ancestors(uninteresting)
        seen: set[str] = set()

        # Iterative post-order DFS: a commit is emitted only after all
        # of its parents, which gives oldest-first topological order
        for start in starts:
            if start in excluded or start in seen:
                continue
            stack: list[tuple[str, Iterator[str]]] = [
                (start, iter(self._graph.lookup(start).parents))
            ]
            seen.add(start)
            while stack:
                commit_id, parents = stack[-1]
                for parent in parents:
                    if parent in excluded or parent in seen:
                        continue
                    seen.add(parent)
                    stack.append(
                        (parent, iter(self._graph.lookup(parent).parents))
                    )
                    break
                else:
                    stack.pop()
                    yield commit_id

    def close(self) -> None:
        if not self._closed:
            self._graph._release(self)
        super().close()


class MemoryGraph(CommitGraph):
    """Commit graph held in dictionaries.

    Only one revision walk may be open at a time, mirroring the
    exclusive walk a real object store hands out.
    """

    def __init__(self):
        self._commits: dict[str, TrackedCommit] = {}
        self._refs: dict[str, str] = {}
        self._active_walk: MemoryRevisionWalk | None = None

    def add(
        self, commit_id: str, parents: Iterable[str] = (), message: str = ""
    ) -> TrackedCommit:
        """Add a commit; parents need not exist yet."""
        commit = TrackedCommit(
            commit_id=commit_id, parents=tuple(parents), message=message
        )
        self._commits[commit.commit_id] = commit
        return commit

    def set_ref(self, ref: str, commit_id: str) -> None:
        self._refs[ref] = commit_id

    def lookup(self, commit_id: str) -> TrackedCommit:
        try:
            return self._commits[commit_id]
        except KeyError:
            raise MissingCommitError(commit_id) from None

    def ancestors(self, commit_ids: Iterable[str]) -> set[str]:
        """Every commit reachable from commit_ids, inclusive."""
        result: set[str] = set()
        pending = list(commit_ids)
        while pending:
            commit_id = pending.pop()
            if commit_id in result:
                continue
            result.add(commit_id)
            pending.extend(self.lookup(commit_id).parents)
        return result

    def is_merged_into(self, base: str, tip: str) -> bool:
        self.lookup(base)
        return base in self.ancestors([tip])

    def new_walk(self) -> MemoryRevisionWalk:
        if self._active_walk is not None:
            raise WalkInUseError("a revision walk is already open")
        self._active_walk = MemoryRevisionWalk(self)
        return self._active_walk

    def _release(self, walk: MemoryRevisionWalk) -> None:
        if self._active_walk is walk:
            self._active_walk = None

    def resolve_ref(self, ref: str) -> str | None:
        return self._refs.get(ref)

    def branch_tips(self) -> set[str]:
        return {
            commit_id
            for ref, commit_id in self._refs.items()
            if ref.startswith("refs/heads/")
        }

    def update_ref(
        self, ref: str, new_id: str, expected_old: str | None
    ) -> None:
        actual = self._refs.get(ref)
        if actual != expected_old:
            raise LockFailureError(ref, expected_old, actual)
        self.lookup(new_id)
        self._refs[ref] = new_id
