"""Project configuration and layout.

This module handles:
- The project config schema (YAML, validated with pydantic)
- Config file discovery and evaluation for a target
- Project marker detection and new-project initialization
"""

from oxbuild.project.schema import ProjectConfig

__all__ = ["ProjectConfig"]
