"""Python distribution handling.

This module handles:
- Extracting distribution archives (.tar, .tar.gz, .tar.xz, .tar.bz2, .tar.zst)
- Checksum verification
- Reading distribution metadata (version, extension modules, licenses)
"""

from oxbuild.distribution.analysis import DistributionInfo, ExtensionModule

__all__ = ["DistributionInfo", "ExtensionModule"]
