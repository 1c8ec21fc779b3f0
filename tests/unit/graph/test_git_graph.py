"""Tests for the git-backed commit graph against a scratch repository."""

import shutil
import subprocess

import pytest

from submitsync.core.errors import LockFailureError, MissingCommitError
from submitsync.graph.git import GitGraph

pytestmark = pytest.mark.skipif(
    shutil.which("git") is None, reason="git is not installed"
)


def git(repo, *args):
    result = subprocess.run(
        ["git", *args],
        cwd=repo,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


def commit(repo, message):
    git(repo, "commit", "--allow-empty", "-q", "-m", message)
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture
def repo(tmp_path):
    """master: A - B - C, side: A - D."""
    git(tmp_path, "init", "-q", "-b", "master")
    git(tmp_path, "config", "user.name", "Test")
    git(tmp_path, "config", "user.email", "test@example.com")
    git(tmp_path, "config", "commit.gpgsign", "false")

    ids = {"A": commit(tmp_path, "A")}
    git(tmp_path, "branch", "side")
    ids["B"] = commit(tmp_path, "B\n\nTICKET: 12")
    ids["C"] = commit(tmp_path, "C")
    git(tmp_path, "checkout", "-q", "side")
    ids["D"] = commit(tmp_path, "D")
    git(tmp_path, "checkout", "-q", "master")
    return tmp_path, ids


def test_lookup_parses_commit(repo):
    path, ids = repo
    graph = GitGraph(path)

    b = graph.lookup(ids["B"])

    assert b.commit_id == ids["B"]
    assert b.parents == (ids["A"],)
    assert b.message == "B\n\nTICKET: 12"


def test_lookup_unknown_commit(repo):
    path, ids = repo

    with pytest.raises(MissingCommitError):
        GitGraph(path).lookup("0123456789abcdef0123456789abcdef01234567")


def test_is_merged_into(repo):
    path, ids = repo
    graph = GitGraph(path)

    assert graph.is_merged_into(ids["A"], ids["C"])
    assert not graph.is_merged_into(ids["C"], ids["A"])
    assert not graph.is_merged_into(ids["D"], ids["C"])


def test_walk_is_oldest_first(repo):
    path, ids = repo
    graph = GitGraph(path)

    assert graph.walk_between(ids["A"], ids["C"]) == [ids["B"], ids["C"]]
    assert graph.reachable([ids["C"]], [ids["D"]]) == [ids["B"], ids["C"]]


def test_refs(repo):
    path, ids = repo
    graph = GitGraph(path)

    assert graph.resolve_ref("refs/heads/master") == ids["C"]
    assert graph.resolve_ref("refs/heads/nope") is None
    assert graph.branch_tips() == {ids["C"], ids["D"]}


def test_update_ref_compare_and_swap(repo):
    path, ids = repo
    graph = GitGraph(path)

    graph.update_ref("refs/heads/side", ids["C"], ids["D"])
    assert graph.resolve_ref("refs/heads/side") == ids["C"]

    with pytest.raises(LockFailureError) as exc:
        graph.update_ref("refs/heads/side", ids["B"], ids["D"])
    assert exc.value.actual == ids["C"]


def test_update_ref_creates_branch(repo):
    path, ids = repo
    graph = GitGraph(path)

    graph.update_ref("refs/heads/fresh", ids["B"], None)

    assert graph.resolve_ref("refs/heads/fresh") == ids["B"]
