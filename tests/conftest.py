"""Pytest configuration and fixtures for submitsync tests."""

import sys
import tempfile
from pathlib import Path

import pytest

from submitsync.core.log import ConsoleSink, setup_logger
from submitsync.graph.memory import MemoryGraph
from submitsync.stores.memory import (
    MemoryApprovalStore,
    MemoryCredentialStore,
    MemoryMessageStore,
)
from submitsync.submit.commit import (
    Account,
    Change,
    PatchSetId,
    SubmitApproval,
    TrackedCommit,
)
from submitsync.submit.merge_util import MergeUtil
from submitsync.submit.policy import ExternalSync, LocalOnly
from submitsync.submit.strategy import SubmitArguments, SubmitStrategy
from submitsync.submit.ticket import TicketExtractor
from submitsync.sync.credentials import ExternalCredentials
from submitsync.sync.hook import HookResult


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Configure logging for console-only mode during tests.

    This enables debug output during test runs without requiring
    authentication or sending logs to logfire.dev.
    """
    test_log_root = Path(tempfile.gettempdir()) / "submitsync-tests"
    setup_logger(
        log_root=test_log_root,
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


@pytest.fixture
def mock_argv():
    """Save and restore sys.argv."""
    original = sys.argv.copy()
    sys.argv = ["submitsync"]
    yield
    sys.argv = original


def sha(n: int) -> str:
    """Deterministic full-length commit id for commit number n."""
    return f"{n:040x}"


class RecordingHook:
    """Sync hook double returning canned results in order."""

    def __init__(self, *results):
        self.results = list(results)
        self.requests = []

    def invoke(self, request):
        self.requests.append(request)
        if not self.results:
            return HookResult(exit_code=0)
        return self.results.pop(0)


class World:
    """A repository, its record stores and a destination branch."""

    sha = staticmethod(sha)

    def __init__(self, branch="refs/heads/master"):
        self.branch = branch
        self.graph = MemoryGraph()
        self.messages = MemoryMessageStore()
        self.approvals = MemoryApprovalStore()
        self.credentials = MemoryCredentialStore()

    def commit(self, n, parents=(), message="", change=None):
        """Add commit n; with change, bind it to patch set 1 of it."""
        self.graph.add(sha(n), [sha(p) for p in parents], message)
        commit = self.graph.lookup(sha(n))
        if change is None:
            return commit
        return commit.model_copy(update={
            "patch_set_id": PatchSetId(change_id=change, patch_set=1),
            "change": Change(
                change_id=change,
                project="widgets",
                branch=self.branch,
                current_patch_set=1,
            ),
        })

    def set_tip(self, commit: TrackedCommit) -> TrackedCommit:
        self.graph.set_ref(self.branch, commit.commit_id)
        return commit

    def submitted_by(self, commit, account_id, external_user=None):
        """Record account_id as submitter, with external credentials."""
        self.approvals.add(SubmitApproval(
            patch_set_id=commit.patch_set_id,
            account=Account(
                account_id=account_id,
                full_name=f"User {account_id}",
                preferred_email=f"user{account_id}@example.com",
            ),
        ))
        if external_user:
            self.credentials.add(ExternalCredentials(
                account_id=account_id,
                external_user=external_user,
                external_secret="s3cret",
            ))

    def args(self, **overrides) -> SubmitArguments:
        values = dict(
            project="widgets",
            dest_branch=self.branch,
            repo_path=Path("/srv/git/widgets.git"),
            graph=self.graph,
            merge_util=MergeUtil(self.graph, self.approvals),
            messages=self.messages,
        )
        values.update(overrides)
        return SubmitArguments(**values)

    def tickets(self, **kwargs) -> TicketExtractor:
        return TicketExtractor(self.messages, **kwargs)

    def local(self) -> SubmitStrategy:
        return SubmitStrategy(self.args(), LocalOnly())

    def synced(self, hook, **ticket_options) -> SubmitStrategy:
        policy = ExternalSync(
            credentials=self.credentials,
            hook=hook,
            tickets=self.tickets(**ticket_options),
        )
        return SubmitStrategy(self.args(), policy)

    def hook(self, *results) -> RecordingHook:
        return RecordingHook(*results)

    def texts(self, change_id) -> list[str]:
        return [m.message for m in self.messages.by_change(change_id)]


@pytest.fixture
def world():
    return World()


@pytest.fixture
def make_world():
    """Factory for worlds submitting to another branch."""
    return World


@pytest.fixture
def restore_logging(tmp_path):
    """Put the console-only test logger back after a test replaces it."""
    yield
    setup_logger(
        log_root=tmp_path,
        run_name="test",
        console=ConsoleSink(level="debug"),
    )
