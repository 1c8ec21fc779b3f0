"""Workflow nodes for graph state machine."""

from submitsync.workflow.nodes.check_eligibility import CheckEligibility
from submitsync.workflow.nodes.integrate import Integrate
from submitsync.workflow.nodes.load_submission import LoadSubmission
from submitsync.workflow.nodes.update_branch import UpdateBranch

__all__ = [
    "LoadSubmission",
    "Integrate",
    "UpdateBranch",
    "CheckEligibility",
]
