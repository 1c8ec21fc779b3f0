"""Tests for template substitution behavior."""

from pathlib import Path

import pytest

from submitsync.core.config import State, SubmitType

pytestmark = pytest.mark.usefixtures("mock_argv", "restore_logging")


def write_config(tmp_path, body):
    (tmp_path / "submitsync.yaml").write_text(body)


def test_config_reference_templates_substituted(fixtures_dir, tmp_path):
    """{config.git.repo_path} in another field is replaced."""
    write_config(tmp_path, (fixtures_dir / "templated.yaml").read_text())

    state = State()

    assert state.config.sync.hook == Path(
        "/srv/git/widgets.git/hooks/external-sync"
    )


def test_platformdirs_templates_substituted(tmp_path):
    write_config(
        tmp_path,
        "config:\n  log_root: '{platformdirs.user_state_dir}/runs'\n",
    )

    state = State()

    assert "{" not in str(state.config.log_root)
    assert str(state.config.log_root).endswith("runs")


def test_unknown_template_left_alone(tmp_path):
    write_config(
        tmp_path,
        "config:\n  git:\n    project: '{config.nothing.here}'\n",
    )

    state = State()

    assert state.config.git.project == "{config.nothing.here}"


def test_yaml_values_reach_typed_config(fixtures_dir, tmp_path):
    write_config(tmp_path, (fixtures_dir / "with_include.yaml").read_text())
    (tmp_path / "extra_sync.yaml").write_text(
        (fixtures_dir / "extra_sync.yaml").read_text()
    )

    config = State().config

    assert config.git.branch == "refs/heads/master"
    assert config.sync.timeout == 600
    assert config.submit.submit_type_for("master") is (
        SubmitType.FAST_FORWARD_SYNC
    )
    assert config.submit.submit_type_for("refs/heads/other") is (
        SubmitType.FAST_FORWARD_ONLY
    )
