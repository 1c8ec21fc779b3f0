"""Integration policies: what accepting a fast-forward means for a branch.

LocalOnly accepts the provisional tip as is. ExternalSync first mirrors
every new commit, oldest first, to an external version control system
through a hook, and accepts only the commits the hook took.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from pydantic import ValidationError

from submitsync.core.config import SubmitConfig, SubmitType
from submitsync.core.errors import GraphError, MissingCommitError, StoreError
from submitsync.core.refs import ZERO_ID, is_nested_branch
from submitsync.stores.base import CredentialStore
from submitsync.submit.commit import TrackedCommit
from submitsync.submit.outcome import Outcome
from submitsync.submit.ticket import TicketExtractor
from submitsync.sync.hook import HookRequest, SyncHook

if TYPE_CHECKING:
    from submitsync.submit.strategy import IntegrationContext


@dataclass(frozen=True)
class LocalOnly:
    kind: Literal["local_only"] = field(default="local_only", init=False)

    def integrate(
        self,
        ctx: IntegrationContext,
        merge_tip: TrackedCommit | None,
        new_tip: TrackedCommit | None,
    ) -> TrackedCommit | None:
        return new_tip


@dataclass(frozen=True)
class ExternalSync:
    """Mirror each new commit to the external system before accepting it.

    Commits are pushed one at a time in topological order. The first
    commit that cannot be pushed stops the sync: it gets its own
    outcome, every later commit of the walk is finalized BLOCKED, and
    the branch only advances to the last commit the hook accepted.
    """

    credentials: CredentialStore
    hook: SyncHook
    tickets: TicketExtractor
    kind: Literal["external_sync"] = field(
        default="external_sync", init=False
    )

    def integrate(
        self,
        ctx: IntegrationContext,
        merge_tip: TrackedCommit | None,
        new_tip: TrackedCommit | None,
    ) -> TrackedCommit | None:
        log = ctx.args.log
        if new_tip is None or (
            merge_tip is not None and new_tip.commit_id == merge_tip.commit_id
        ):
            return new_tip

        if is_nested_branch(ctx.args.dest_branch):
            log.info(
                "Branch is not mirrored externally, skipping sync",
                branch=ctx.args.dest_branch,
            )
            return new_tip

        try:
            walk = ctx.args.graph.walk_between(
                merge_tip.commit_id if merge_tip else None,
                new_tip.commit_id,
            )
        except GraphError as e:
            log.error(
                "Cannot list commits to sync",
                branch=ctx.args.dest_branch,
                error=str(e),
            )
            ctx.fault = e
            return merge_tip

        tip = merge_tip
        for index, commit_id in enumerate(walk):
            commit = ctx.tracked(commit_id)
            if commit is None:
                ctx.fault = MissingCommitError(commit_id, "tracked commit")
                log.error(
                    "Commit to sync is not part of the submission",
                    commit=commit_id,
                )
                self._finalize_rest(
                    ctx, walk[index + 1:], Outcome.INTERNAL_ERROR
                )
                break

            if not self._push(ctx, tip, commit):
                self._finalize_rest(ctx, walk[index + 1:], Outcome.BLOCKED)
                break
            tip = commit

        return tip

    def _push(
        self,
        ctx: IntegrationContext,
        previous: TrackedCommit | None,
        commit: TrackedCommit,
    ) -> bool:
        """Push one commit; on failure commit is finalized, False."""
        args, ledger, log = ctx.args, ctx.ledger, ctx.args.log

        approval = None
        if commit.patch_set_id is not None:
            approval = args.merge_util.submitter_of(commit.patch_set_id)
        credentials = None
        if approval is not None:
            try:
                credentials = self.credentials.lookup(
                    approval.account.account_id
                )
            except StoreError as e:
                log.warn(
                    "Cannot read external credentials",
                    account=approval.account.account_id,
                    error=str(e),
                )
        if credentials is None:
            return self._reject(ctx, commit, Outcome.NO_CREDENTIALS)

        ticket = self.tickets.find(commit)
        if ticket is None:
            return self._reject(ctx, commit, Outcome.NO_TICKET)

        log.info(
            "Syncing commit",
            commit=commit.commit_id,
            ticket=ticket,
            external_user=credentials.external_user,
        )
        ledger.note(
            commit,
            f"Going to integrate commit {commit.commit_id} under ticket "
            f"{ticket} as external user {credentials.external_user}",
        )

        try:
            request = HookRequest(
                project=args.project,
                repo_path=args.repo_path,
                change_ref=commit.patch_set_id.to_ref_name(),
                branch=args.dest_branch,
                ticket=ticket,
                account=approval.account,
                external_user=credentials.external_user,
                external_secret=credentials.external_secret,
                previous_id=previous.commit_id if previous else ZERO_ID,
                new_id=commit.commit_id,
            )
        except ValidationError as e:
            log.error(
                "Invalid external sync request",
                commit=commit.commit_id,
                error=str(e),
            )
            ledger.note(commit, f"Invalid external sync request:\n{e}")
            return self._reject(ctx, commit, Outcome.EXTERNAL_SYNC_FAILED)

        result = self.hook.invoke(request)
        if result is None:
            ledger.note(commit, "Could not run external sync hook.")
            return self._reject(ctx, commit, Outcome.EXTERNAL_SYNC_FAILED)

        output = result.output.strip()
        if not result.success:
            log.warn(
                "External sync hook failed",
                commit=commit.commit_id,
                exit_code=result.exit_code,
            )
            ledger.note(
                commit,
                f"{output}\nexternal-sync rc: {result.exit_code}".lstrip(),
            )
            return self._reject(ctx, commit, Outcome.EXTERNAL_SYNC_FAILED)

        if output:
            ledger.note(commit, output)
        return True

    @staticmethod
    def _reject(
        ctx: IntegrationContext, commit: TrackedCommit, outcome: Outcome
    ) -> bool:
        """Finalize commit with outcome unless it already has one."""
        previous = ctx.ledger.outcome_of(commit)
        if previous is None:
            ctx.ledger.finalize(commit, outcome)
        else:
            ctx.args.log.warn(
                "Commit to sync already has an outcome, keeping it",
                commit=commit.commit_id,
                outcome=previous.value,
                rejected_as=outcome.value,
            )
        return False

    @staticmethod
    def _finalize_rest(
        ctx: IntegrationContext, commit_ids: list[str], outcome: Outcome
    ) -> None:
        rest = [ctx.tracked(c) for c in commit_ids]
        ctx.ledger.finalize_all([c for c in rest if c is not None], outcome)


Policy = LocalOnly | ExternalSync


def select_policy(
    branch: str,
    submit_config: SubmitConfig,
    credentials: CredentialStore,
    hook: SyncHook,
    tickets: TicketExtractor,
) -> Policy:
    """Policy for branch according to its configured submit type."""
    submit_type = submit_config.submit_type_for(branch)
    if submit_type is SubmitType.FAST_FORWARD_SYNC:
        return ExternalSync(
            credentials=credentials, hook=hook, tickets=tickets
        )
    return LocalOnly()
