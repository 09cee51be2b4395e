"""Tests for builds/build_script.py module."""

import pytest

from oxbuild.builds.build_script import run_build_script
from oxbuild.builds.manifest import MANIFEST_FILENAME, parse_manifest
from oxbuild.builds.toolchain import ARTIFACT_DIR_ENV, REUSE_ARTIFACTS_ENV
from oxbuild.config import Settings
from oxbuild.errors import BuildScriptError

from .conftest import TARGET


class FakeStage:
    """Artifact stage writing a fixed manifest."""

    def __init__(self):
        self.contexts = []

    def ensure_artifacts(self, context):
        self.contexts.append(context)
        context.artifacts_path.mkdir(parents=True, exist_ok=True)
        (context.artifacts_path / MANIFEST_FILENAME).write_text(
            "cargo:rustc-link-lib=static=pythonXY\n"
        )


class TestRunBuildScript:
    """Tests for run_build_script function."""

    def test_reuses_existing_manifest(self, tmp_path):
        """With reuse enabled the existing manifest is echoed."""
        artifacts = tmp_path / "artifacts"
        artifacts.mkdir()
        (artifacts / MANIFEST_FILENAME).write_text(
            "cargo:rerun-if-changed=/p/oxbuild.yaml\nnoise\n"
        )
        stage = FakeStage()

        output = run_build_script(
            "build.rs",
            environ={ARTIFACT_DIR_ENV: str(artifacts), REUSE_ARTIFACTS_ENV: "1"},
            settings=Settings(),
            stage=stage,
        )

        assert output.splitlines() == [
            "cargo:rerun-if-changed=build.rs",
            f"cargo:rerun-if-env-changed={ARTIFACT_DIR_ENV}",
            f"cargo:rerun-if-env-changed={REUSE_ARTIFACTS_ENV}",
            "cargo:rerun-if-changed=/p/oxbuild.yaml",
        ]
        assert stage.contexts == []

    def test_generates_into_out_dir(self, project_dir, tmp_path):
        """Without reuse, artifacts are generated into OUT_DIR."""
        out_dir = tmp_path / "out"
        stage = FakeStage()

        output = run_build_script(
            "build.rs",
            environ={
                "TARGET": TARGET,
                "PROFILE": "release",
                "CARGO_MANIFEST_DIR": str(project_dir),
                "OUT_DIR": str(out_dir),
            },
            settings=Settings(),
            stage=stage,
        )

        (context,) = stage.contexts
        assert context.artifacts_path == out_dir
        assert context.release is True
        assert context.target_triple == TARGET
        kinds = [d.kind.value for d in parse_manifest(output).directives]
        assert kinds[-1] == "rustc-link-lib"

    def test_artifact_dir_without_reuse(self, project_dir, tmp_path):
        """An artifact directory without reuse is regenerated in place."""
        artifacts = tmp_path / "artifacts"
        stage = FakeStage()

        run_build_script(
            "build.rs",
            environ={
                ARTIFACT_DIR_ENV: str(artifacts),
                "TARGET": TARGET,
                "PROFILE": "debug",
                "CARGO_MANIFEST_DIR": str(project_dir),
            },
            settings=Settings(),
            stage=stage,
        )

        assert stage.contexts[0].artifacts_path == artifacts
        assert stage.contexts[0].release is False

    def test_missing_toolchain_variables(self, tmp_path):
        """Running outside the toolchain fails clearly."""
        with pytest.raises(BuildScriptError, match="TARGET"):
            run_build_script("build.rs", environ={}, settings=Settings())
