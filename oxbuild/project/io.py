"""Project config loading, discovery and evaluation.

This module provides helpers for finding a project's marker and config
files and for evaluating a config file for a specific target triple.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from oxbuild.errors import ConfigEvaluationError
from oxbuild.project.schema import ProjectConfig

if TYPE_CHECKING:
    from oxbuild.config import Settings

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "oxbuild.yaml"
PROJECT_FILE_PATTERNS = ("oxbuild*.yaml", "oxbuild*.yml")


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content as a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the YAML content is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping, got {type(data).__name__}")
    return data


def merge_overrides(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge ``overrides`` into a copy of ``base``.

    Nested mappings are merged key by key; any other value replaces the
    base value outright.
    """
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_overrides(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def resolve_target_data(data: dict[str, Any], target: str) -> dict[str, Any]:
    """Apply the ``targets.<triple>`` override block for ``target``.

    Args:
        data: Raw config mapping.
        target: Target triple being built.

    Returns:
        Config mapping without the ``targets`` block.
    """
    data = dict(data)
    targets = data.pop("targets", None) or {}
    if not isinstance(targets, dict):
        raise ValueError("'targets' must be a mapping of target triple to overrides")
    overrides = targets.get(target)
    if overrides is None:
        return data
    if not isinstance(overrides, dict):
        raise ValueError(f"Overrides for target '{target}' must be a mapping")
    logger.debug("Applying config overrides for target %s", target)
    return merge_overrides(data, overrides)


def evaluate_config_file(path: Path, target: str) -> ProjectConfig:
    """Evaluate a project config file for a target triple.

    Args:
        path: Path to the config file.
        target: Target triple being built.

    Returns:
        Validated ProjectConfig.

    Raises:
        ConfigEvaluationError: If the file cannot be read, parsed or validated.
    """
    logger.debug("Evaluating config %s for target %s", path, target)
    try:
        data = resolve_target_data(load_yaml(path), target)
        return ProjectConfig.model_validate(data)
    except FileNotFoundError as e:
        raise ConfigEvaluationError(
            f"Config file not found: {path}", path=path
        ) from e
    except yaml.YAMLError as e:
        raise ConfigEvaluationError(
            f"Invalid YAML in {path}: {e}", code="config_syntax", path=path
        ) from e
    except ValidationError as e:
        raise ConfigEvaluationError(
            f"Invalid config in {path}: {e}", code="config_validation", path=path
        ) from e
    except (OSError, ValueError) as e:
        raise ConfigEvaluationError(f"Error evaluating {path}: {e}", path=path) from e


def find_config_file(project_path: Path, settings: Settings) -> Path | None:
    """Discover the config file for a project.

    ``Settings.config_path`` (``OXBUILD_CONFIG_PATH``) wins when it points at
    an existing file; otherwise the conventional file in the project root
    is used.

    Returns:
        Path to the config file, or None if none was found.
    """
    if settings.config_path is not None:
        if settings.config_path.is_file():
            return settings.config_path
        logger.warning(
            "Configured config path %s does not exist; ignoring",
            settings.config_path,
        )

    candidate = project_path / CONFIG_FILENAME
    if candidate.is_file():
        return candidate
    return None


def find_project_files(project_path: Path) -> list[Path]:
    """Return the project marker files in ``project_path``."""
    if not project_path.is_dir():
        return []
    found: set[Path] = set()
    for pattern in PROJECT_FILE_PATTERNS:
        found.update(p for p in project_path.glob(pattern) if p.is_file())
    return sorted(found)


__all__ = [
    "CONFIG_FILENAME",
    "evaluate_config_file",
    "find_config_file",
    "find_project_files",
    "load_yaml",
    "merge_overrides",
    "resolve_target_data",
]
