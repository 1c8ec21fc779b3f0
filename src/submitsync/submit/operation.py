"""Submitting a batch to one branch: tip in, strategy, ref update out."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from submitsync.core.errors import GraphError, LockFailureError, SubmitError
from submitsync.submit.commit import TrackedCommit
from submitsync.submit.strategy import (
    SubmitArguments,
    SubmitResult,
    SubmitStrategy,
)


class SubmitOperation:
    """Runs a strategy against the current branch tip and moves the ref.

    The ref is updated with compare-and-swap against the tip the run
    started from. If someone else moved the branch meanwhile the
    update fails with LockFailureError; the strategy does not retry,
    so the caller decides whether to submit again.
    """

    def __init__(self, args: SubmitArguments, policy):
        self.args = args
        self.policy = policy

    def _prepare(self) -> tuple[SubmitStrategy, TrackedCommit | None]:
        args = self.args
        graph = args.graph
        try:
            tip_id = graph.resolve_ref(args.dest_branch)
            merge_tip = graph.lookup(tip_id) if tip_id else None
            if not args.already_accepted:
                args = replace(
                    args, already_accepted=frozenset(graph.branch_tips())
                )
        except GraphError as e:
            raise SubmitError(
                f"Cannot read {args.dest_branch}: {e}"
            ) from e
        return SubmitStrategy(args, self.policy), merge_tip

    def integrate(
        self, pending: Iterable[TrackedCommit]
    ) -> tuple[TrackedCommit | None, SubmitResult]:
        """Run the strategy without touching the branch.

        Returns:
            The tip the run started from and the strategy result

        Raises:
            SubmitError: If the commit graph could not be read
        """
        strategy, merge_tip = self._prepare()
        return merge_tip, strategy.run(merge_tip, pending)

    def update_branch(
        self, merge_tip: TrackedCommit | None, result: SubmitResult
    ) -> bool:
        """Move the branch from merge_tip to the result's new tip.

        Returns:
            False if there was nothing to move

        Raises:
            LockFailureError: If the branch no longer points at merge_tip
        """
        log = self.args.log
        old_id = merge_tip.commit_id if merge_tip else None
        new_tip = result.new_tip
        if new_tip is None or new_tip.commit_id == old_id:
            log.info("Branch unchanged", branch=self.args.dest_branch)
            return False

        try:
            self.args.graph.update_ref(
                self.args.dest_branch, new_tip.commit_id, old_id
            )
        except LockFailureError:
            log.warn(
                "Branch moved during submission",
                branch=self.args.dest_branch,
                retry=SubmitStrategy.retry_on_lock_failure,
            )
            raise

        log.info(
            "Branch updated",
            branch=self.args.dest_branch,
            old=old_id,
            new=new_tip.commit_id,
            ident=result.ref_log_ident,
        )
        return True

    def submit(self, pending: Iterable[TrackedCommit]) -> SubmitResult:
        """Integrate pending and point the branch at the new tip.

        Raises:
            SubmitError: If the commit graph could not be read
            LockFailureError: If the branch moved during the run
        """
        merge_tip, result = self.integrate(pending)
        self.update_branch(merge_tip, result)
        return result

    def check(self, candidate: TrackedCommit) -> bool:
        """Could candidate be submitted right now?"""
        strategy, merge_tip = self._prepare()
        try:
            return strategy.dry_run(merge_tip, candidate)
        except GraphError as e:
            raise SubmitError(f"Cannot check {candidate}: {e}") from e
