"""End-to-end runs of the submit and check workflows on a manifest."""

import asyncio
import sys

import pytest
import yaml

from submitsync.command.check import CheckCommand
from submitsync.command.submit import SubmitCommand
from submitsync.core.config import State, SubmitType

BASE = "1" * 40
FIRST = "2" * 40
SECOND = "3" * 40
SIBLING = "4" * 40

pytestmark = pytest.mark.usefixtures("mock_argv", "restore_logging")


@pytest.fixture
def state(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    state = State()
    state.config.git.repo_path = tmp_path
    return state


def write_manifest(tmp_path, changes, tip=BASE):
    path = tmp_path / "manifest.yaml"
    path.write_text(yaml.safe_dump({
        "project": "widgets",
        "branch": "master",
        "accounts": [{
            "account_id": 1000,
            "full_name": "Ada Lovelace",
            "preferred_email": "ada@example.com",
            "external_user": "ada",
            "external_secret": "hunter2",
        }],
        "changes": changes,
        "commits": [
            {"id": BASE},
            {"id": FIRST, "parents": [BASE], "message": "TICKET: 4521"},
            {"id": SECOND, "parents": [FIRST], "message": "TICKET: 4521"},
            {"id": SIBLING, "parents": [BASE], "message": "Unrelated"},
        ],
        "refs": {"refs/heads/master": tip},
    }))
    return path


def change(change_id, commit):
    return {"change_id": change_id, "commit": commit, "submitter": 1000}


def submit(state, manifest):
    return asyncio.run(SubmitCommand(manifest=manifest).run_workflow(state))


def check(state, manifest, change_id):
    command = CheckCommand(manifest=manifest, change=change_id)
    return asyncio.run(command.run_workflow(state))


def branch_tip(state):
    graph = state.runtime.submit.submission.graph
    return graph.resolve_ref("refs/heads/master")


def texts(state, change_id):
    messages = state.runtime.submit.submission.messages
    return [m.message for m in messages.by_change(change_id)]


class TestSubmit:
    def test_stack_fast_forwards_branch(self, state, tmp_path):
        manifest = write_manifest(
            tmp_path, [change(10, FIRST), change(11, SECOND)]
        )

        assert submit(state, manifest) == 0

        assert branch_tip(state) == SECOND
        assert state.runtime.submit.status == "complete"
        assert "successfully merged" in texts(state, 10)[-1]
        assert "successfully merged" in texts(state, 11)[-1]

    def test_diverged_change_is_rejected(self, state, tmp_path):
        manifest = write_manifest(
            tmp_path,
            [change(10, FIRST), change(11, SECOND), change(12, SIBLING)],
        )

        assert submit(state, manifest) == 2

        assert branch_tip(state) == SECOND
        result = state.runtime.submit.result
        assert result.rejected == [SIBLING]

    def test_nothing_new_leaves_branch(self, state, tmp_path):
        manifest = write_manifest(tmp_path, [change(10, FIRST)], tip=FIRST)

        assert submit(state, manifest) == 0

        assert branch_tip(state) == FIRST
        assert "already part of" in texts(state, 10)[-1]

    def test_missing_manifest_fails(self, state, tmp_path):
        assert submit(state, tmp_path / "absent.yaml") == 1
        assert state.runtime.submit.status == "failed"


@pytest.mark.skipif(
    sys.platform == "win32", reason="hook scripts are POSIX shell"
)
class TestExternalSync:
    @pytest.fixture
    def synced_state(self, state):
        state.config.submit.submit_type = SubmitType.FAST_FORWARD_SYNC
        return state

    def hook(self, tmp_path, state, exit_code=0):
        calls = tmp_path / "calls.log"
        path = tmp_path / "external-sync"
        path.write_text(
            "#!/bin/sh\n"
            f'echo "$@" >> "{calls}"\n'
            'echo "mirrored"\n'
            f"exit {exit_code}\n"
        )
        path.chmod(0o755)
        state.config.sync.hook = path
        return calls

    def test_every_commit_goes_through_hook(self, synced_state, tmp_path):
        calls = self.hook(tmp_path, synced_state)
        manifest = write_manifest(
            tmp_path, [change(10, FIRST), change(11, SECOND)]
        )

        assert submit(synced_state, manifest) == 0

        lines = calls.read_text().splitlines()
        assert len(lines) == 2
        assert f"--new {FIRST}" in lines[0]
        assert f"--previous {BASE}" in lines[0]
        assert f"--new {SECOND}" in lines[1]
        assert branch_tip(synced_state) == SECOND
        assert any(
            "as external user ada" in t for t in texts(synced_state, 10)
        )

    def test_failed_hook_keeps_branch(self, synced_state, tmp_path):
        self.hook(tmp_path, synced_state, exit_code=1)
        manifest = write_manifest(
            tmp_path, [change(10, FIRST), change(11, SECOND)]
        )

        assert submit(synced_state, manifest) == 2

        assert branch_tip(synced_state) == BASE
        assert any(
            "external-sync rc: 1" in t for t in texts(synced_state, 10)
        )
        outcomes = synced_state.runtime.submit.result.outcomes
        assert outcomes[FIRST].value == "external-sync-failed"
        assert outcomes[SECOND].value == "blocked"

    def test_synced_branch_without_hook_fails(self, synced_state, tmp_path):
        manifest = write_manifest(tmp_path, [change(10, FIRST)])

        assert submit(synced_state, manifest) == 1


class TestCheck:
    def test_fast_forward_is_eligible(self, state, tmp_path):
        manifest = write_manifest(tmp_path, [change(12, SIBLING)])

        assert check(state, manifest, 12) == 0

    def test_diverged_change_is_not_eligible(self, state, tmp_path):
        manifest = write_manifest(
            tmp_path, [change(12, SIBLING)], tip=SECOND
        )

        assert check(state, manifest, 12) == 2
        # Nothing recorded, nothing moved
        assert texts(state, 12) == []
        assert branch_tip(state) == SECOND

    def test_unknown_change(self, state, tmp_path):
        manifest = write_manifest(tmp_path, [change(12, SIBLING)])

        assert check(state, manifest, 99) == 1
