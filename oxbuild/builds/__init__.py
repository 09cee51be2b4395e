"""Build orchestration module.

This module handles:
- Dependency manifest parsing and staleness tracking
- Build context resolution
- Artifact generation, toolchain invocation and packaging stages
- Pipeline sequencing with fail-fast semantics
"""

from oxbuild.builds.context import BuildContext

__all__ = ["BuildContext"]

# Access stage modules via oxbuild.builds.staleness, etc.
