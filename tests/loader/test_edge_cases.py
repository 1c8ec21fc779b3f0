"""Tests for edge cases and error handling."""

import pytest

from submitsync.core.config import State
from submitsync.core.yaml_settings import (
    YamlWithIncludesSettingsSource,
    load_yaml_with_includes,
)

pytestmark = pytest.mark.usefixtures("mock_argv")


def test_circular_include_detected(fixtures_dir):
    """Circular include raises ValueError while the source is built."""
    with pytest.raises(ValueError, match="Circular include"):
        YamlWithIncludesSettingsSource(
            State, yaml_file=str(fixtures_dir / "circular_a.yaml")
        )


def test_self_include_detected(tmp_path):
    config_file = tmp_path / "self.yaml"
    config_file.write_text("include: self.yaml\n")

    with pytest.raises(ValueError, match="Circular include"):
        load_yaml_with_includes(config_file)


def test_missing_include_file_raises_error(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("include: nonexistent.yaml\n")

    with pytest.raises(FileNotFoundError):
        YamlWithIncludesSettingsSource(State, yaml_file=str(config_file))


def test_missing_explicit_file_is_skipped(tmp_path):
    data = YamlWithIncludesSettingsSource(
        State, yaml_file=str(tmp_path / "absent.yaml")
    )()

    assert data["config"]["git"]["branch"] == "refs/heads/master"


def test_empty_include_list(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "include: []\nconfig:\n  git:\n    project: empty\n"
    )

    assert load_yaml_with_includes(config_file) == {
        "config": {"git": {"project": "empty"}}
    }


def test_empty_file_loads_as_empty_mapping(tmp_path):
    config_file = tmp_path / "empty.yaml"
    config_file.write_text("")

    assert load_yaml_with_includes(config_file) == {}


def test_shared_include_is_not_a_cycle(tmp_path):
    """Two siblings may include the same file."""
    (tmp_path / "common.yaml").write_text("config:\n  log-level: warn\n")
    (tmp_path / "left.yaml").write_text("include: common.yaml\n")
    (tmp_path / "right.yaml").write_text("include: common.yaml\n")
    top = tmp_path / "top.yaml"
    top.write_text("include:\n  - left.yaml\n  - right.yaml\n")

    assert load_yaml_with_includes(top) == {"config": {"log-level": "warn"}}
