"""Pydantic models for the project configuration file.

The configuration is a YAML mapping. A ``targets`` block may carry
per-target-triple overrides, which are merged before validation (see
``oxbuild.project.io``).
"""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from oxbuild.types import RawAllocator

APPLICATION_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_\-]+$")


class BuildSection(BaseModel):
    """Schema for the ``build`` section.

    Attributes:
        application_name: Name of the binary produced by the toolchain.
        build_path: Build directory, relative to the project root.
    """

    model_config = ConfigDict(extra="forbid")

    application_name: str = Field(description="Name of the application binary")
    build_path: str | None = Field(
        default=None, description="Build directory relative to project root"
    )

    @field_validator("application_name")
    @classmethod
    def validate_application_name(cls, v: str) -> str:
        """Validate application name is usable as a binary name."""
        if not APPLICATION_NAME_PATTERN.match(v):
            raise ValueError(
                f"application_name must match {APPLICATION_NAME_PATTERN.pattern}, "
                f"got '{v}'"
            )
        return v


class EmbeddedPythonSection(BaseModel):
    """Schema for the ``embedded_python`` section."""

    model_config = ConfigDict(extra="forbid")

    raw_allocator: RawAllocator = Field(default=RawAllocator.SYSTEM)
    optimize_level: int = Field(default=0, ge=0, le=2)
    write_bytecode: bool = Field(default=False)


class PythonDistributionSection(BaseModel):
    """Schema for the ``python_distribution`` section.

    Attributes:
        local_path: Path to the distribution archive (relative to project root
            or absolute).
        sha256: Optional expected SHA-256 of the archive.
    """

    model_config = ConfigDict(extra="forbid")

    local_path: str = Field(description="Path to distribution archive")
    sha256: str | None = Field(default=None)

    @field_validator("sha256")
    @classmethod
    def validate_sha256(cls, v: str | None) -> str | None:
        """Validate sha256 is a hex digest."""
        if v is None:
            return v
        if not re.match(r"^[0-9a-fA-F]{64}$", v):
            raise ValueError("sha256 must be a 64 character hex digest")
        return v.lower()


class RunSection(BaseModel):
    """Schema for the ``run`` section: what the application runs at startup."""

    model_config = ConfigDict(extra="forbid")

    mode: Literal["repl", "module", "eval"] = Field(default="repl")
    module: str | None = Field(default=None)
    code: str | None = Field(default=None)

    @model_validator(mode="after")
    def validate_mode_arguments(self) -> "RunSection":
        """Validate the argument required by the selected mode is present."""
        if self.mode == "module" and not self.module:
            raise ValueError("run.module is required when run.mode is 'module'")
        if self.mode == "eval" and not self.code:
            raise ValueError("run.code is required when run.mode is 'eval'")
        return self


class ProjectConfig(BaseModel):
    """Complete, target-resolved project configuration."""

    model_config = ConfigDict(extra="forbid")

    build: BuildSection
    embedded_python: EmbeddedPythonSection = Field(
        default_factory=EmbeddedPythonSection
    )
    python_distribution: PythonDistributionSection
    run: RunSection = Field(default_factory=RunSection)
    packages: list[str] = Field(default_factory=list)


__all__ = [
    "BuildSection",
    "EmbeddedPythonSection",
    "ProjectConfig",
    "PythonDistributionSection",
    "RunSection",
]
