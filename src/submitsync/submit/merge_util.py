"""Commit graph reductions shared by every submit strategy."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from submitsync.core.log import logger
from submitsync.graph.base import CommitGraph
from submitsync.stores.base import ApprovalStore
from submitsync.submit.commit import PatchSetId, SubmitApproval, TrackedCommit
from submitsync.submit.ledger import OutcomeLedger
from submitsync.submit.outcome import Outcome


class MergeUtil:
    """Graph questions a strategy asks while integrating a batch.

    Args:
        graph: Commit graph of the destination repository
        approvals: Store answering who submitted a patch set
        log: Logger; the module-level proxy by default
    """

    def __init__(
        self,
        graph: CommitGraph,
        approvals: ApprovalStore,
        log: Any = logger,
    ):
        self.graph = graph
        self.approvals = approvals
        self.log = log

    def reduce_to_minimal_merge(
        self,
        merge_tip: TrackedCommit | None,
        to_merge: list[TrackedCommit],
        already_accepted: Iterable[str],
        ledger: OutcomeLedger,
    ) -> None:
        """Reduce to_merge, in place, to the heads worth integrating.

        Commits already merged into merge_tip are finalized
        ALREADY_MERGED. already_accepted, typically every branch head,
        only bounds the history walks: a pending commit that is the
        head of some other branch is still integrated here. Commits
        whose history needs something that is neither accepted nor
        part of the batch are finalized MISSING_DEPENDENCY. Commits
        reachable from another candidate are dropped without an
        outcome; integrating that candidate brings them along. Heads
        keep their original order.
        """
        order = {c.commit_id: i for i, c in enumerate(to_merge)}
        accepted = set(already_accepted)
        if merge_tip is not None:
            accepted.add(merge_tip.commit_id)

        candidates: dict[str, TrackedCommit] = {}
        for commit in to_merge:
            if ledger.is_final(commit):
                continue
            if merge_tip is not None and (
                commit.commit_id == merge_tip.commit_id
                or self.graph.is_merged_into(
                    commit.commit_id, merge_tip.commit_id
                )
            ):
                ledger.finalize(commit, Outcome.ALREADY_MERGED)
            else:
                candidates[commit.commit_id] = commit

        incoming = set(candidates)
        heads: dict[str, TrackedCommit] = {}
        while candidates:
            commit_id = next(iter(candidates))
            commit = candidates.pop(commit_id)

            contents = self.graph.reachable([commit_id], accepted)
            missing = [c for c in contents if c not in incoming]
            if missing:
                self.log.info(
                    "Commit has dependencies outside the submission",
                    commit=commit_id,
                    missing=missing,
                )
                ledger.finalize(commit, Outcome.MISSING_DEPENDENCY)
                continue

            # Anything reachable through this commit is merged by
            # merging it, so its ancestors stop being heads
            for ancestor in contents:
                candidates.pop(ancestor, None)
                heads.pop(ancestor, None)
            heads[commit_id] = commit

        if accepted & heads.keys():
            # Accepted commits are cut out of the walks, so a head that
            # is also another branch's tip may sit below a later head
            for commit_id in list(heads):
                if any(
                    other != commit_id
                    and self.graph.is_merged_into(commit_id, other)
                    for other in heads
                ):
                    del heads[commit_id]

        to_merge[:] = sorted(heads.values(), key=lambda c: order[c.commit_id])
        self.log.debug(
            "Reduced to minimal merge",
            heads=[c.commit_id for c in to_merge],
        )

    def first_fast_forward(
        self,
        merge_tip: TrackedCommit | None,
        to_merge: list[TrackedCommit],
    ) -> TrackedCommit | None:
        """Pop and return the first head merge_tip fast-forwards to.

        Returns merge_tip itself when no head qualifies.
        """
        for index, commit in enumerate(to_merge):
            if merge_tip is None or self.graph.is_merged_into(
                merge_tip.commit_id, commit.commit_id
            ):
                del to_merge[index]
                return commit
        return merge_tip

    def mark_clean_merges(
        self,
        new_tip: TrackedCommit | None,
        merge_tip: TrackedCommit | None,
        pending: Sequence[TrackedCommit],
        ledger: OutcomeLedger,
    ) -> SubmitApproval | None:
        """Finalize CLEAN_MERGE for pending commits now on the branch.

        Walks (merge_tip, new_tip] oldest first. Returns the submit
        approval of the oldest newly merged commit, which names the
        account the ref update is attributed to.
        """
        if new_tip is None:
            return None

        by_id = {c.commit_id: c for c in pending}
        uninteresting = [merge_tip.commit_id] if merge_tip else []
        submit_approval = None

        for commit_id in self.graph.reachable(
            [new_tip.commit_id], uninteresting
        ):
            commit = by_id.get(commit_id)
            if commit is None or commit.patch_set_id is None:
                continue
            if ledger.is_final(commit):
                self.log.warn(
                    "Merged commit already has an outcome",
                    commit=commit_id,
                    outcome=ledger.outcome_of(commit).value,
                )
                continue
            ledger.finalize(commit, Outcome.CLEAN_MERGE)
            if submit_approval is None:
                submit_approval = self.submitter_of(commit.patch_set_id)

        return submit_approval

    def can_fast_forward(
        self,
        merge_tip: TrackedCommit | None,
        candidate: TrackedCommit,
        already_accepted: Iterable[str] = (),
    ) -> bool:
        """Would candidate alone fast-forward merge_tip?

        Reads the graph only; nothing is finalized or recorded.
        """
        accepted = set(already_accepted)
        if merge_tip is not None:
            accepted.add(merge_tip.commit_id)

        contents = self.graph.reachable([candidate.commit_id], accepted)
        if any(c != candidate.commit_id for c in contents):
            return False
        return merge_tip is None or self.graph.is_merged_into(
            merge_tip.commit_id, candidate.commit_id
        )

    def submitter_of(self, patch_set_id: PatchSetId) -> SubmitApproval | None:
        return self.approvals.submitter(patch_set_id)
