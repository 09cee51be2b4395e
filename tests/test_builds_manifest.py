"""Tests for builds/manifest.py module."""

from pathlib import Path

from oxbuild.builds.manifest import (
    MANIFEST_FILENAME,
    Directive,
    DirectiveKind,
    parse_line,
    parse_manifest,
    read_manifest,
    render_manifest,
    rerun_if_changed,
    write_manifest,
)


class TestParseLine:
    """Tests for parse_line function."""

    def test_rerun_if_changed(self):
        """Should parse a changed-dependency directive."""
        directive = parse_line("cargo:rerun-if-changed=/src/main.rs")
        assert directive == Directive(DirectiveKind.RERUN_IF_CHANGED, "/src/main.rs")

    def test_value_may_contain_equals(self):
        """Should split only on the first '='."""
        directive = parse_line("cargo:rustc-env=FOO=bar")
        assert directive is not None
        assert directive.kind is DirectiveKind.RUSTC_ENV
        assert directive.value == "FOO=bar"

    def test_unknown_kind_skipped(self):
        """Should return None for unknown directive kinds."""
        assert parse_line("cargo:something-new=value") is None

    def test_non_directive_skipped(self):
        """Should return None for non-directive lines."""
        assert parse_line("hello world") is None
        assert parse_line("") is None
        assert parse_line("cargo:rerun-if-changed") is None

    def test_strips_carriage_return(self):
        """Should tolerate CRLF line endings."""
        directive = parse_line("cargo:rerun-if-changed=/a/b\r")
        assert directive is not None
        assert directive.value == "/a/b"


class TestParseManifest:
    """Tests for parse_manifest function."""

    def test_preserves_order(self):
        """Should keep directives in file order."""
        text = (
            "cargo:rerun-if-changed=/one\n"
            "noise\n"
            "cargo:rustc-link-lib=static=python\n"
            "cargo:rerun-if-changed=/two\n"
        )
        manifest = parse_manifest(text)

        assert [d.kind for d in manifest.directives] == [
            DirectiveKind.RERUN_IF_CHANGED,
            DirectiveKind.RUSTC_LINK_LIB,
            DirectiveKind.RERUN_IF_CHANGED,
        ]
        assert list(manifest.changed_dependencies()) == [Path("/one"), Path("/two")]
        assert list(manifest.changed_values()) == ["/one", "/two"]

    def test_empty(self):
        """Should parse empty text to no directives."""
        manifest = parse_manifest("")
        assert manifest.directives == ()
        assert list(manifest.changed_dependencies()) == []


class TestWriteManifest:
    """Tests for manifest writing."""

    def test_render(self):
        """Should render one directive per line."""
        text = render_manifest(rerun_if_changed(Path("/a"), Path("/b")))
        assert text == "cargo:rerun-if-changed=/a\ncargo:rerun-if-changed=/b\n"

    def test_write_and_read(self, tmp_path):
        """Should read back what was written."""
        directives = [
            Directive(DirectiveKind.RERUN_IF_CHANGED, "/x/config.yaml"),
            Directive(DirectiveKind.RERUN_IF_ENV_CHANGED, "OXBUILD_CONFIG_PATH"),
        ]
        path = write_manifest(tmp_path / "out" / MANIFEST_FILENAME, directives)

        assert path.exists()
        assert read_manifest(path).directives == tuple(directives)
