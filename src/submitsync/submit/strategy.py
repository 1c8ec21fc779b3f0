"""Fast-forward submit engine.

One algorithm serves every integration policy:

1. Reduce the pending commits to the heads worth integrating.
2. Pick the first head the branch tip fast-forwards to.
3. Reject every other head as NOT_FAST_FORWARD.
4. Let the policy accept (a prefix of) the new history.
5. Mark pending commits reachable from the accepted tip CLEAN_MERGE.
6. Finalize whatever is left, so no pending commit ends without an
   outcome.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from submitsync.core.errors import GraphError, SubmitError
from submitsync.core.log import logger
from submitsync.core.refs import full_branch_name
from submitsync.graph.base import CommitGraph
from submitsync.stores.base import MessageStore
from submitsync.submit.commit import SubmitApproval, TrackedCommit
from submitsync.submit.ledger import OutcomeLedger
from submitsync.submit.merge_util import MergeUtil
from submitsync.submit.outcome import Outcome

if TYPE_CHECKING:
    from submitsync.submit.policy import Policy


@dataclass
class SubmitArguments:
    """Collaborators shared by every strategy for one branch."""

    project: str
    dest_branch: str
    repo_path: Path
    graph: CommitGraph
    merge_util: MergeUtil
    messages: MessageStore
    already_accepted: frozenset[str] = frozenset()
    log: Any = logger

    def __post_init__(self):
        self.dest_branch = full_branch_name(self.dest_branch)
        self.already_accepted = frozenset(self.already_accepted)


@dataclass
class IntegrationContext:
    """What a policy sees while integrating one run."""

    args: SubmitArguments
    ledger: OutcomeLedger
    pending: tuple[TrackedCommit, ...]
    fault: GraphError | None = None

    def tracked(self, commit_id: str) -> TrackedCommit | None:
        for commit in self.pending:
            if commit.commit_id == commit_id:
                return commit
        return None


@dataclass(frozen=True)
class SubmitResult:
    """New branch tip plus the outcome of every pending commit."""

    new_tip: TrackedCommit | None
    outcomes: dict[str, Outcome] = field(default_factory=dict)
    submit_approval: SubmitApproval | None = None

    @property
    def ref_log_ident(self) -> str | None:
        if self.submit_approval is None:
            return None
        return self.submit_approval.account.ident()

    @property
    def merged(self) -> list[str]:
        return [c for c, o in self.outcomes.items() if o.is_clean]

    @property
    def rejected(self) -> list[str]:
        return [c for c, o in self.outcomes.items() if not o.is_clean]


class SubmitStrategy:
    """Integrates a batch of approved commits by fast-forwarding.

    The policy decides what "integrate" means for the branch; see
    LocalOnly and ExternalSync.
    """

    retry_on_lock_failure = False

    def __init__(self, args: SubmitArguments, policy: Policy):
        self.args = args
        self.policy = policy

    @property
    def name(self) -> str:
        return self.policy.kind

    def run(
        self,
        merge_tip: TrackedCommit | None,
        pending: Iterable[TrackedCommit],
    ) -> SubmitResult:
        """Integrate pending onto merge_tip.

        The caller's pending collection is never modified.

        Raises:
            SubmitError: If the commit graph could not be read; every
                unresolved commit is finalized INTERNAL_ERROR first
        """
        args = self.args
        pending = tuple(pending)
        ledger = OutcomeLedger(args.messages, log=args.log)
        ctx = IntegrationContext(args=args, ledger=ledger, pending=pending)

        with args.log.span(
            "submit",
            strategy=self.name,
            branch=args.dest_branch,
            tip=merge_tip.commit_id if merge_tip else None,
            pending=len(pending),
        ):
            try:
                new_tip = self._select_tip(ctx, merge_tip)
                new_tip = self.policy.integrate(ctx, merge_tip, new_tip)
                approval = args.merge_util.mark_clean_merges(
                    new_tip, merge_tip, pending, ledger
                )
            except GraphError as e:
                args.log.error(
                    "Cannot read commit graph, aborting submission",
                    branch=args.dest_branch,
                    error=str(e),
                )
                ledger.finalize_all(pending, Outcome.INTERNAL_ERROR)
                raise SubmitError(
                    f"Submission to {args.dest_branch} aborted: {e}"
                ) from e

            remainder = (
                Outcome.INTERNAL_ERROR if ctx.fault else Outcome.BLOCKED
            )
            ledger.finalize_all(pending, remainder)

        result = SubmitResult(
            new_tip=new_tip,
            outcomes=ledger.as_dict(),
            submit_approval=approval,
        )
        args.log.info(
            "Submission finished",
            branch=args.dest_branch,
            new_tip=new_tip.commit_id if new_tip else None,
            merged=len(result.merged),
            rejected=len(result.rejected),
        )
        return result

    def _select_tip(
        self, ctx: IntegrationContext, merge_tip: TrackedCommit | None
    ) -> TrackedCommit | None:
        merge_util = ctx.args.merge_util
        to_merge = list(ctx.pending)

        merge_util.reduce_to_minimal_merge(
            merge_tip, to_merge, ctx.args.already_accepted, ctx.ledger
        )
        new_tip = merge_util.first_fast_forward(merge_tip, to_merge)

        for commit in to_merge:
            ctx.ledger.finalize(commit, Outcome.NOT_FAST_FORWARD)
        return new_tip

    def dry_run(
        self, merge_tip: TrackedCommit | None, candidate: TrackedCommit
    ) -> bool:
        """Would candidate fast-forward merge_tip? Records nothing."""
        return self.args.merge_util.can_fast_forward(
            merge_tip, candidate, self.args.already_accepted
        )


def pending_outcomes(
    result: SubmitResult, pending: Sequence[TrackedCommit]
) -> list[tuple[TrackedCommit, Outcome]]:
    """Pair every pending commit with its outcome, in pending order."""
    return [(c, result.outcomes[c.commit_id]) for c in pending]
