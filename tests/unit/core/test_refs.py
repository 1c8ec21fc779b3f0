"""Tests for ref name helpers."""

import pytest

from submitsync.core.refs import (
    ZERO_ID,
    change_ref_name,
    full_branch_name,
    is_nested_branch,
    object_id,
    short_branch_name,
)


def test_full_and_short_branch_names():
    assert full_branch_name("master") == "refs/heads/master"
    assert full_branch_name("refs/heads/master") == "refs/heads/master"
    assert short_branch_name("refs/heads/team/master") == "team/master"
    assert short_branch_name("refs/tags/v1") == "refs/tags/v1"


def test_top_level_branch_is_mirrored():
    assert not is_nested_branch("refs/heads/master")


def test_nested_branch_is_not_mirrored():
    assert is_nested_branch("refs/heads/team/master")


def test_refs_outside_heads_are_not_mirrored():
    assert is_nested_branch("refs/meta/config")
    assert is_nested_branch("refs/tags/v1")


def test_change_ref_is_sharded_by_last_two_digits():
    assert change_ref_name(4521, 3) == "refs/changes/21/4521/3"
    assert change_ref_name(7, 1) == "refs/changes/07/7/1"


def test_object_ids_are_full_length_lower_case():
    assert object_id(" " + "AB" * 20 + "\n") == "ab" * 20
    assert object_id("c" * 64) == "c" * 64
    assert object_id(ZERO_ID) == ZERO_ID


@pytest.mark.parametrize("value", ["", "abc123", "a" * 41, "g" * 40])
def test_object_id_rejects_partial_ids(value):
    with pytest.raises(ValueError, match="not a full object id"):
        object_id(value)
