"""CheckEligibility node - would a change fast-forward right now?"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from submitsync.core.config import State
from submitsync.core.errors import ManifestError
from submitsync.core.log import logger


@dataclass
class CheckEligibility(BaseNode[State, None, bool]):
    """Dry-run one change against the current branch tip."""

    change_id: int

    async def run(self, ctx: GraphRunContext[State]) -> End[bool]:
        runtime = ctx.state.runtime.submit
        candidate = next(
            (
                c for c in runtime.submission.pending
                if c.change and c.change.change_id == self.change_id
            ),
            None,
        )
        if candidate is None:
            raise ManifestError(
                f"Change {self.change_id} is not in the manifest"
            )

        eligible = runtime.operation.check(candidate)
        runtime.status = "complete"

        if eligible:
            logger.info(f"Change {self.change_id} can be submitted")
        else:
            logger.info(
                f"Change {self.change_id} cannot be fast-forwarded"
            )
        return End(eligible)
