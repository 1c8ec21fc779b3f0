"""LoadSubmission node - read the manifest and wire up the operation."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from submitsync.core.config import State
from submitsync.core.errors import ManifestError
from submitsync.core.log import logger
from submitsync.manifest import build_submission, load_manifest
from submitsync.submit.merge_util import MergeUtil
from submitsync.submit.operation import SubmitOperation
from submitsync.submit.policy import ExternalSync, select_policy
from submitsync.submit.strategy import SubmitArguments
from submitsync.submit.ticket import TicketExtractor
from submitsync.sync.hook import CommandSyncHook


@dataclass
class LoadSubmission(BaseNode[State]):
    """Build graph, stores and submit operation from the manifest."""

    check_change: int | None = None

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> "Integrate | CheckEligibility":
        """Load the manifest named in the submit runtime state.

        Returns:
            CheckEligibility: If a single change is to be checked
            Integrate: Otherwise
        """
        config = ctx.state.config
        runtime = ctx.state.runtime.submit

        if runtime.manifest_path is None:
            raise ManifestError("No manifest given")

        manifest = load_manifest(runtime.manifest_path)
        submission = build_submission(
            manifest,
            project=config.git.project,
            branch=config.git.branch,
            repo_path=config.git.repo_path,
        )

        hook = CommandSyncHook(
            config.sync.hook,
            timeout=config.sync.timeout,
            secret_env=config.sync.secret_env,
        ) if config.sync.hook else None
        tickets = TicketExtractor(
            submission.messages,
            pattern=config.sync.ticket_pattern,
            from_messages=config.sync.ticket_from_messages,
        )
        policy = select_policy(
            submission.branch,
            config.submit,
            submission.credentials,
            hook,
            tickets,
        )
        if isinstance(policy, ExternalSync) and hook is None:
            raise ManifestError(
                f"{submission.branch} is synced externally but "
                "sync.hook is not configured"
            )

        args = SubmitArguments(
            project=submission.project,
            dest_branch=submission.branch,
            repo_path=config.git.repo_path,
            graph=submission.graph,
            merge_util=MergeUtil(submission.graph, submission.approvals),
            messages=submission.messages,
        )

        runtime.submission = submission
        runtime.operation = SubmitOperation(args, policy)
        runtime.status = "running"

        logger.info(
            f"Loaded {len(submission.pending)} change(s) for "
            f"{submission.branch} using {policy.kind}"
        )

        if self.check_change is not None:
            from submitsync.workflow.nodes.check_eligibility import (
                CheckEligibility,
            )
            return CheckEligibility(change_id=self.check_change)

        from submitsync.workflow.nodes.integrate import Integrate
        return Integrate()
