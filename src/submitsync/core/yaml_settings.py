"""YAML configuration loading with include directive support."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

from submitsync.core.log import logger

DEFAULTS_FILE = Path(__file__).parent.parent / "defaults" / "default.yaml"
PROJECT_CONFIG = "submitsync.yaml"


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge override into base (override wins).

    Args:
        base: Base dictionary
        override: Override dictionary (takes precedence)

    Returns:
        New dictionary with deep merge applied
    """
    result = base.copy()
    for key, value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_with_includes(
    filepath: Path, visited: frozenset[Path] = frozenset()
) -> dict:
    """Load a YAML file, resolving its include: directive recursively.

    Included files are merged underneath the including file, so the
    including file's own keys win. Relative include paths resolve
    against the including file's directory.

    Raises:
        ValueError: If an include cycle is detected
    """
    filepath = filepath.resolve()
    if filepath in visited:
        raise ValueError(f"Circular include: {filepath}")
    visited = visited | {filepath}

    with open(filepath, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    includes = data.pop("include", None) or []
    if isinstance(includes, str):
        includes = [includes]

    for inc in includes:
        inc_path = Path(inc).expanduser()
        if not inc_path.is_absolute():
            inc_path = filepath.parent / inc_path
        logger.debug(
            "Including configuration file",
            included_from=str(filepath),
            include_file=str(inc_path),
        )
        data = deep_merge(load_yaml_with_includes(inc_path, visited), data)

    return data


def _cli_includes(argv: list[str]) -> list[str]:
    """Collect --include values before pydantic parses the CLI."""
    includes = []
    i = 1
    while i < len(argv):
        if argv[i] == "--include" and i + 1 < len(argv):
            includes.append(argv[i + 1])
            i += 1
        i += 1
    return includes


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """YAML settings source layering defaults, user, project and CLI files.

    Merge order, lowest priority first:
        package defaults < user config < ./submitsync.yaml
        < files named by --include (or an explicit yaml_file)
    """

    def __init__(
        self, settings_cls: type[BaseSettings], yaml_file=None
    ):
        """Initialize with CLI include processing.

        Args:
            settings_cls: The Settings class being initialized
            yaml_file: Explicit extra file(s), merged last
        """
        extra = _cli_includes(sys.argv)
        if yaml_file:
            if isinstance(yaml_file, (str, os.PathLike)):
                yaml_file = [yaml_file]
            extra = list(yaml_file) + extra
        super().__init__(settings_cls, extra or None)

    def _read_files(self, files):
        """Load and merge every configuration layer that exists."""
        files_to_load = [
            DEFAULTS_FILE,
            Path(user_config_dir("submitsync", appauthor=False))
            / PROJECT_CONFIG,
            Path(PROJECT_CONFIG),
        ]
        if files:
            if isinstance(files, (str, os.PathLike)):
                files = [files]
            files_to_load.extend(Path(f).expanduser() for f in files)

        result: dict = {}
        for file_path in files_to_load:
            if not file_path.is_file():
                logger.debug(
                    "Configuration file not found (skipping)",
                    file=str(file_path),
                )
                continue
            result = deep_merge(result, load_yaml_with_includes(file_path))
        return result
