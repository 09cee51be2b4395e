"""oxbuild - Incremental build orchestration for embedded-runtime executables.

This package drives the pipeline that generates embedding artifacts, invokes
the native toolchain against them, packages the resulting application tree
and optionally runs it.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
