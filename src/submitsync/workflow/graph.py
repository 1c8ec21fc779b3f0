"""Graph workflow definition."""

from pydantic_graph import Graph

from submitsync.core.config import State
from submitsync.core.log import logger


def create_workflow():
    """Create the submit workflow graph.

    LoadSubmission → Integrate → UpdateBranch → End[SubmitReport]
    LoadSubmission → CheckEligibility → End[bool]

    Returns:
        Graph workflow with State as state_type
    """
    logger.debug("Building workflow graph")

    # Import nodes (lazy to avoid circular imports)
    from submitsync.workflow.nodes.check_eligibility import CheckEligibility
    from submitsync.workflow.nodes.integrate import Integrate
    from submitsync.workflow.nodes.load_submission import LoadSubmission
    from submitsync.workflow.nodes.update_branch import UpdateBranch

    workflow = Graph(
        nodes=(
            LoadSubmission,
            Integrate,
            UpdateBranch,
            CheckEligibility,
        ),
        state_type=State
    )

    return workflow
