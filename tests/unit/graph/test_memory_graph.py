"""Tests for the in-memory commit graph and its revision walk."""

import pytest

from submitsync.core.errors import (
    GraphError,
    LockFailureError,
    MissingCommitError,
    WalkInUseError,
)
from submitsync.graph.memory import MemoryGraph


def sha(n):
    return f"{n:040x}"


@pytest.fixture
def graph():
    """Diamond 1 <- (2, 3) <- 4, then 5 on top."""
    g = MemoryGraph()
    g.add(sha(1))
    g.add(sha(2), [sha(1)])
    g.add(sha(3), [sha(1)])
    g.add(sha(4), [sha(2), sha(3)])
    g.add(sha(5), [sha(4)])
    g.set_ref("refs/heads/master", sha(5))
    g.set_ref("refs/heads/old", sha(2))
    g.set_ref("refs/tags/v1", sha(1))
    return g


class TestRevisionWalk:
    def test_parents_before_children(self, graph):
        order = graph.reachable([sha(5)], [])

        assert order[0] == sha(1)
        assert order[-1] == sha(5)
        assert order.index(sha(2)) < order.index(sha(4))
        assert order.index(sha(3)) < order.index(sha(4))
        assert len(order) == 5

    def test_uninteresting_history_excluded(self, graph):
        assert graph.reachable([sha(5)], [sha(2)]) == [sha(3), sha(4), sha(5)]

    def test_walk_between(self, graph):
        assert graph.walk_between(sha(4), sha(5)) == [sha(5)]
        assert graph.walk_between(sha(5), sha(5)) == []

    def test_only_one_walk_at_a_time(self, graph):
        with graph.new_walk():
            with pytest.raises(WalkInUseError):
                graph.new_walk()

    def test_walk_released_on_error(self, graph):
        graph.add(sha(9), [sha(99)])

        with pytest.raises(MissingCommitError):
            graph.reachable([sha(9)], [])

        # A fresh walk can be opened again
        assert graph.reachable([sha(1)], []) == [sha(1)]

    def test_closed_walk_cannot_iterate(self, graph):
        walk = graph.new_walk()
        walk.mark_start(sha(5))
        walk.close()

        with pytest.raises(GraphError):
            list(walk)


def test_lookup_missing_commit(graph):
    with pytest.raises(MissingCommitError) as exc:
        graph.lookup(sha(42))

    assert exc.value.commit_id == sha(42)


def test_is_merged_into(graph):
    assert graph.is_merged_into(sha(2), sha(5))
    assert graph.is_merged_into(sha(5), sha(5))
    assert not graph.is_merged_into(sha(5), sha(2))
    assert not graph.is_merged_into(sha(2), sha(3))


def test_branch_tips_only_heads(graph):
    assert graph.branch_tips() == {sha(5), sha(2)}


def test_update_ref_compare_and_swap(graph):
    graph.add(sha(6), [sha(5)])

    graph.update_ref("refs/heads/master", sha(6), sha(5))
    assert graph.resolve_ref("refs/heads/master") == sha(6)

    with pytest.raises(LockFailureError):
        graph.update_ref("refs/heads/master", sha(6), sha(5))


def test_update_ref_creates_only_when_absent(graph):
    graph.update_ref("refs/heads/new", sha(1), None)

    assert graph.resolve_ref("refs/heads/new") == sha(1)
    with pytest.raises(LockFailureError):
        graph.update_ref("refs/heads/new", sha(2), None)
