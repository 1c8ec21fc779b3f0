"""Commit graph backed by the git command line."""

from __future__ import annotations

import shlex
from collections.abc import Iterator
from pathlib import Path

from submitsync.core.errors import (
    GraphError,
    LockFailureError,
    MissingCommitError,
)
from submitsync.core.log import logger
from submitsync.core.refs import R_HEADS, ZERO_ID
from submitsync.core.runner import Runner
from submitsync.graph.base import CommitGraph, RevisionWalk
from submitsync.submit.commit import TrackedCommit


def _git(*args: str) -> str:
    return " ".join(shlex.quote(arg) for arg in ("git", *args))


class GitRevisionWalk(RevisionWalk):
    def __init__(self, graph: GitGraph):
        super().__init__()
        self._graph = graph

    def _walk(
        self, starts: list[str], uninteresting: list[str]
    ) -> Iterator[str]:
        if not starts:
            return iter(())
        args = ["rev-list", "--topo-order", "--reverse", *starts]
        args.extend(f"^{commit_id}" for commit_id in uninteresting)
        output = self._graph._run(*args)
        return iter(output.split())


class GitGraph(CommitGraph):
    """Reads the repository through git plumbing commands."""

    def __init__(self, repo_path: Path, runner: Runner | None = None):
        self.repo_path = Path(repo_path)
        self.runner = runner or Runner()

    def _execute(self, *args: str):
        return self.runner.execute(
            _git(*args), cwd=self.repo_path, check=False
        )

    def _run(self, *args: str) -> str:
        result = self._execute(*args)
        if result.exited != 0:
            raise GraphError(
                f"git {args[0]} failed with exit code {result.exited}: "
                f"{result.stderr.strip()}"
            )
        return result.stdout

    def lookup(self, commit_id: str) -> TrackedCommit:
        result = self._execute(
            "show", "-s", "--format=%H%x00%P%x00%B", f"{commit_id}^{{commit}}"
        )
        if result.exited != 0:
            raise MissingCommitError(commit_id)

        sha, parents, message = result.stdout.split("\x00", 2)
        return TrackedCommit(
            commit_id=sha,
            parents=tuple(parents.split()),
            message=message.rstrip("\n"),
        )

    def is_merged_into(self, base: str, tip: str) -> bool:
        result = self._execute("merge-base", "--is-ancestor", base, tip)
        if result.exited == 0:
            return True
        if result.exited == 1:
            return False
        raise GraphError(
            f"Cannot test {base} against {tip}: {result.stderr.strip()}"
        )

    def new_walk(self) -> GitRevisionWalk:
        return GitRevisionWalk(self)

    def resolve_ref(self, ref: str) -> str | None:
        result = self._execute("rev-parse", "--verify", "--quiet", ref)
        if result.exited != 0:
            return None
        return result.stdout.strip()

    def branch_tips(self) -> set[str]:
        output = self._run(
            "for-each-ref", "--format=%(objectname)", R_HEADS
        )
        return set(output.split())

    def update_ref(
        self, ref: str, new_id: str, expected_old: str | None
    ) -> None:
        result = self._execute(
            "update-ref", ref, new_id, expected_old or ZERO_ID
        )
        if result.exited != 0:
            actual = self.resolve_ref(ref)
            logger.warn(
                "Ref update rejected",
                ref=ref,
                expected=expected_old,
                actual=actual,
                stderr=result.stderr.strip(),
            )
            raise LockFailureError(ref, expected_old, actual)
        logger.info("Updated ref", ref=ref, old=expected_old, new=new_id)
