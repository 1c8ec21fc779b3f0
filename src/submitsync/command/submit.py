"""Submit command - integrates approved changes into the branch."""

from pathlib import Path

from pydantic import BaseModel, Field

from submitsync.core.errors import LockFailureError, SubmitsyncError
from submitsync.core.log import logger


class SubmitCommand(BaseModel):
    """Fast-forward the destination branch over the approved changes.

    Changes that cannot be fast-forwarded, or that the external sync
    hook rejects, are left out with an explanatory message. The
    branch ref is only moved if nobody else moved it during the run.

    Exit codes: 0 if every change merged, 2 if some were rejected,
    1 if the submission failed outright.
    """

    manifest: Path = Field(
        description="YAML manifest listing the approved changes",
    )

    async def run_workflow(self, state: "State") -> int:
        """Run submit workflow.

        Args:
            state: State instance with config loaded and runtime initialized

        Returns:
            Exit code
        """
        from submitsync.workflow.graph import create_workflow
        from submitsync.workflow.nodes.load_submission import LoadSubmission

        state.runtime.submit.manifest_path = self.manifest
        logger.info(
            f"Submitting {self.manifest} to {state.config.git.branch}"
        )

        workflow = create_workflow()
        try:
            async with workflow.iter(LoadSubmission(), state=state) as run:
                async for node in run:
                    if hasattr(node, 'data'):
                        report = node.data
                        logger.info(
                            f"Submission complete, {report.branch} at "
                            f"{report.new_tip}"
                        )
                        return 0 if report.success else 2
        except LockFailureError as e:
            logger.error(f"Branch moved, submit again: {e}")
            state.runtime.submit.status = "failed"
            return 1
        except SubmitsyncError as e:
            logger.error(f"Submission failed: {e}")
            state.runtime.submit.status = "failed"
            return 1

        logger.error("Submit failed - workflow ended unexpectedly")
        return 1
