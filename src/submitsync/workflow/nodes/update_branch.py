"""UpdateBranch node - move the branch ref and report outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from pydantic_graph import BaseNode, End, GraphRunContext

from submitsync.core.config import State
from submitsync.core.log import logger
from submitsync.core.result import ChangeReport, SubmitReport
from submitsync.submit.strategy import pending_outcomes


@dataclass
class UpdateBranch(BaseNode[State, None, SubmitReport]):
    """Point the branch at the accepted tip."""

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> End[SubmitReport]:
        """Compare-and-swap the branch, then summarize the run.

        Returns:
            End[SubmitReport]: Per-change outcomes and the new tip
        """
        runtime = ctx.state.runtime.submit
        operation = runtime.operation
        submission = runtime.submission
        merge_tip = runtime.merge_tip
        result = runtime.result

        updated = operation.update_branch(merge_tip, result)
        runtime.status = "complete"

        changes = []
        for commit, outcome in pending_outcomes(result, submission.pending):
            changes.append(ChangeReport(
                change_id=commit.change.change_id if commit.change else None,
                patch_set=(
                    commit.patch_set_id.patch_set
                    if commit.patch_set_id else None
                ),
                commit_id=commit.commit_id,
                outcome=outcome.value,
                merged=outcome.is_clean,
            ))
            logger.info(f"{commit}: {outcome.value}")

        return End(SubmitReport(
            project=submission.project,
            branch=submission.branch,
            strategy=operation.policy.kind,
            old_tip=merge_tip.commit_id if merge_tip else None,
            new_tip=result.new_tip.commit_id if result.new_tip else None,
            branch_updated=updated,
            ref_log_ident=result.ref_log_ident,
            changes=changes,
            timestamp=datetime.now(UTC),
        ))
