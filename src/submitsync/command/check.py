"""Check command - reports whether one change could be submitted."""

from pathlib import Path

from pydantic import BaseModel, Field

from submitsync.core.errors import SubmitsyncError
from submitsync.core.log import logger


class CheckCommand(BaseModel):
    """Dry-run a single change against the current branch tip.

    Nothing is written: no messages, no ref updates. Exits 0 if the
    change would fast-forward the branch, 2 if it would not.
    """

    manifest: Path = Field(
        description="YAML manifest listing the approved changes",
    )
    change: int = Field(
        description="Change id to check",
    )

    async def run_workflow(self, state: "State") -> int:
        from submitsync.workflow.graph import create_workflow
        from submitsync.workflow.nodes.load_submission import LoadSubmission

        state.runtime.submit.manifest_path = self.manifest

        workflow = create_workflow()
        start = LoadSubmission(check_change=self.change)
        try:
            async with workflow.iter(start, state=state) as run:
                async for node in run:
                    if hasattr(node, 'data'):
                        return 0 if node.data else 2
        except SubmitsyncError as e:
            logger.error(f"Check failed: {e}")
            return 1

        logger.error("Check failed - workflow ended unexpectedly")
        return 1
