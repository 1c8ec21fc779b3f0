"""Tests for SubmitOperation: tip resolution and the ref update."""

import pytest

from submitsync.core.errors import LockFailureError, SubmitError
from submitsync.submit.operation import SubmitOperation
from submitsync.submit.outcome import Outcome
from submitsync.submit.policy import LocalOnly


@pytest.fixture
def operation(world):
    return SubmitOperation(world.args(), LocalOnly())


def test_submit_moves_branch(world, operation):
    world.set_tip(world.commit(1))
    b = world.commit(2, [1], change=10)

    result = operation.submit([b])

    assert world.graph.resolve_ref(world.branch) == b.commit_id
    assert result.outcomes[b.commit_id] is Outcome.CLEAN_MERGE


def test_submit_creates_missing_branch(world, operation):
    b = world.commit(2, change=10)

    operation.submit([b])

    assert world.graph.resolve_ref(world.branch) == b.commit_id


def test_rejected_submission_leaves_branch(world, operation):
    a = world.set_tip(world.commit(1))
    d = world.commit(7, change=14)

    result = operation.submit([d])

    assert world.graph.resolve_ref(world.branch) == a.commit_id
    assert result.outcomes[d.commit_id] is Outcome.NOT_FAST_FORWARD


def test_other_branch_heads_count_as_accepted(world, operation):
    world.set_tip(world.commit(1))
    world.commit(5, [1])
    world.graph.set_ref("refs/heads/stable", world.sha(5))
    c = world.commit(6, [5], change=13)

    result = operation.submit([c])

    assert result.outcomes[c.commit_id] is Outcome.CLEAN_MERGE
    assert world.graph.resolve_ref(world.branch) == c.commit_id


def test_change_at_another_branch_head_is_merged(world, operation):
    world.set_tip(world.commit(1))
    b = world.commit(2, [1], change=10)
    world.graph.set_ref("refs/heads/stable", b.commit_id)

    result = operation.submit([b])

    assert result.outcomes[b.commit_id] is Outcome.CLEAN_MERGE
    assert world.graph.resolve_ref(world.branch) == b.commit_id


def test_stack_through_another_branch_head_is_merged(world, operation):
    world.set_tip(world.commit(1))
    b = world.commit(2, [1], change=10)
    c = world.commit(3, [2], change=11)
    world.graph.set_ref("refs/heads/stable", b.commit_id)

    result = operation.submit([b, c])

    assert result.outcomes[b.commit_id] is Outcome.CLEAN_MERGE
    assert result.outcomes[c.commit_id] is Outcome.CLEAN_MERGE
    assert world.graph.resolve_ref(world.branch) == c.commit_id


def test_moved_branch_raises_lock_failure(world, operation):
    world.set_tip(world.commit(1))
    b = world.commit(2, [1], change=10)
    world.commit(3, [1])

    merge_tip, result = operation.integrate([b])
    world.graph.set_ref(world.branch, world.sha(3))

    with pytest.raises(LockFailureError) as exc:
        operation.update_branch(merge_tip, result)

    assert exc.value.actual == world.sha(3)
    assert world.graph.resolve_ref(world.branch) == world.sha(3)


def test_unchanged_tip_needs_no_update(world, operation):
    a = world.set_tip(world.commit(1))

    merge_tip, result = operation.integrate([])

    assert merge_tip == a
    assert operation.update_branch(merge_tip, result) is False


def test_check_does_not_write(world, operation):
    world.set_tip(world.commit(1))
    b = world.commit(2, [1], change=10)
    d = world.commit(7, change=14)

    assert operation.check(b) is True
    assert operation.check(d) is False
    assert world.messages.all() == []
    assert world.graph.resolve_ref(world.branch) == world.sha(1)


def test_dangling_branch_is_submit_error(world, operation):
    world.graph.set_ref(world.branch, world.sha(42))
    b = world.commit(2, change=10)

    with pytest.raises(SubmitError):
        operation.submit([b])
