"""Integrate node - run the submit strategy over the pending changes."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from submitsync.core.config import State
from submitsync.core.log import logger


@dataclass
class Integrate(BaseNode[State]):
    """Decide the new branch tip and an outcome for every change."""

    async def run(self, ctx: GraphRunContext[State]) -> "UpdateBranch":
        runtime = ctx.state.runtime.submit
        operation = runtime.operation
        pending = runtime.submission.pending

        with logger.span("integrate", changes=len(pending)):
            merge_tip, result = operation.integrate(pending)

        runtime.merge_tip = merge_tip
        runtime.result = result

        logger.info(
            f"{len(result.merged)} of {len(pending)} change(s) can be "
            f"merged"
        )

        from submitsync.workflow.nodes.update_branch import UpdateBranch
        return UpdateBranch()
