"""Thin CLI wrapper for oxbuild.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import logging
import tempfile
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from oxbuild import __version__
from oxbuild.config import get_settings, print_settings_json
from oxbuild.errors import OxbuildError

app = typer.Typer(
    name="oxbuild",
    help="oxbuild - build native executables with an embedded Python runtime",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"oxbuild version {__version__}")
        raise typer.Exit()


def _fail(error: OxbuildError) -> typer.Exit:
    console.print(f"[red]Error: {escape(error.message)}[/red]")
    return typer.Exit(code=1)


def _set_verbose(verbose: bool) -> None:
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """oxbuild - build native executables with an embedded Python runtime."""
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
    else:
        config_display = (
            str(settings.config_path) if settings.config_path else "(discovered)"
        )
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Paths:[/bold]")
        console.print(f"  Config file:         {config_display}")
        console.print(f"  Build directory:     {settings.build_dir_name}")
        console.print()
        console.print("[bold]Toolchain:[/bold]")
        console.print(f"  Build driver:        {settings.toolchain}")
        console.print(f"  Compiler:            {settings.compiler}")
        console.print(f"  Allocator feature:   {settings.allocator_feature}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Log level:           {settings.log_level}")


@app.command()
def init(
    path: Annotated[Path, typer.Argument(help="Directory to create the project in")],
    code: Annotated[
        str | None,
        typer.Option("--code", help="Python code to run instead of a REPL"),
    ] = None,
    pip_install: Annotated[
        list[str] | None,
        typer.Option("--pip-install", help="Package to install (can be repeated)"),
    ] = None,
) -> None:
    """Create a new application project."""
    from oxbuild.project.layout import initialize_project

    settings = get_settings()
    try:
        initialize_project(
            path, code=code, pip_install=pip_install or (), toolchain=settings.toolchain
        )
    except OxbuildError as e:
        raise _fail(e) from None

    console.print()
    console.print(f"A new application has been created in {path}")
    console.print()
    console.print("This application can be built by doing the following:")
    console.print()
    console.print(f"  $ cd {path}")
    console.print("  $ oxbuild build")
    console.print("  $ oxbuild run")
    console.print()
    console.print("The default configuration is to invoke a Python REPL. Edit")
    console.print("oxbuild.yaml to change behavior; the application must be")
    console.print("rebuilt for configuration changes to take effect.")


@app.command()
def build(
    path: Annotated[
        Path, typer.Option("--path", "-p", help="Project directory")
    ] = Path("."),
    target: Annotated[
        str | None,
        typer.Option("--target", "-t", help="Target triple to build for"),
    ] = None,
    release: Annotated[
        bool, typer.Option("--release", help="Build in release mode")
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Verbose output")
    ] = False,
) -> None:
    """Build the project and package the application."""
    from oxbuild.builds.pipeline import build as build_project

    _set_verbose(verbose)
    try:
        context = build_project(path, target=target, release=release, verbose=verbose)
    except OxbuildError as e:
        raise _fail(e) from None
    console.print(f"[green]Built {escape(str(context.app_exe_path))}[/green]")


@app.command()
def run(
    extra_args: Annotated[
        list[str] | None,
        typer.Argument(help="Arguments forwarded to the executable (after --)"),
    ] = None,
    path: Annotated[
        Path, typer.Option("--path", "-p", help="Project directory")
    ] = Path("."),
    target: Annotated[
        str | None,
        typer.Option("--target", "-t", help="Target triple to build for"),
    ] = None,
    release: Annotated[
        bool, typer.Option("--release", help="Build in release mode")
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Verbose output")
    ] = False,
) -> None:
    """Build the project, then run the executable."""
    from oxbuild.builds.pipeline import run as run_project

    _set_verbose(verbose)
    try:
        run_project(
            path,
            target=target,
            release=release,
            extra_args=extra_args or (),
            verbose=verbose,
        )
    except OxbuildError as e:
        raise _fail(e) from None


@app.command("build-artifacts")
def build_artifacts(
    dest: Annotated[Path, typer.Argument(help="Directory to write artifacts to")],
    path: Annotated[
        Path, typer.Option("--path", "-p", help="Project directory")
    ] = Path("."),
    target: Annotated[
        str | None,
        typer.Option("--target", "-t", help="Target triple to build for"),
    ] = None,
    release: Annotated[
        bool, typer.Option("--release", help="Build in release mode")
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Verbose output")
    ] = False,
) -> None:
    """Generate embedding artifacts only."""
    from oxbuild.builds.pipeline import build_artifacts as build_project_artifacts

    _set_verbose(verbose)
    try:
        context = build_project_artifacts(
            path, dest, target=target, release=release, verbose=verbose
        )
    except OxbuildError as e:
        raise _fail(e) from None
    console.print(f"[green]Artifacts in {escape(str(context.artifacts_path))}[/green]")


@app.command("run-build-script")
def run_build_script(
    script: Annotated[str, typer.Argument(help="Build script invoking the hook")],
) -> None:
    """Ensure artifacts from inside a toolchain build script."""
    from oxbuild.builds.build_script import run_build_script as run_hook

    try:
        output = run_hook(script)
    except OxbuildError as e:
        raise _fail(e) from None
    typer.echo(output, nl=False)


@app.command("python-distribution-extract")
def python_distribution_extract(
    dist_path: Annotated[Path, typer.Argument(help="Distribution archive")],
    dest_path: Annotated[Path, typer.Argument(help="Directory to extract into")],
) -> None:
    """Extract a Python distribution archive."""
    from oxbuild.distribution.archive import extract_archive

    console.print(f"extracting archive to {dest_path}")
    try:
        extract_archive(dist_path, dest_path)
    except OxbuildError as e:
        raise _fail(e) from None


def _heading(text: str, underline: str = "=") -> None:
    console.print(text, markup=False, highlight=False)
    console.print(underline * len(text), markup=False, highlight=False)


@app.command("python-distribution-info")
def python_distribution_info(
    dist_path: Annotated[Path, typer.Argument(help="Distribution archive")],
) -> None:
    """Show metadata of a Python distribution."""
    from oxbuild.distribution.analysis import analyze_distribution

    with tempfile.TemporaryDirectory(prefix="python-distribution-") as tmp:
        try:
            dist = analyze_distribution(dist_path, Path(tmp))
        except OxbuildError as e:
            raise _fail(e) from None

    _heading("High-Level Metadata")
    console.print()
    console.print(f"Flavor:       {dist.flavor}", markup=False)
    console.print(f"Version:      {dist.version}", markup=False)
    console.print(f"OS:           {dist.os}", markup=False)
    console.print(f"Architecture: {dist.arch}", markup=False)
    console.print()

    _heading("Extension Modules")
    for name, variants in dist.extension_modules.items():
        _heading(name, "-")
        console.print()
        for em in variants:
            _heading(em.variant, "^")
            console.print()
            console.print(f"Required: {em.required}")
            console.print(f"Built-in Default: {em.builtin_default}")
            if em.licenses:
                console.print(f"Licenses: {', '.join(em.licenses)}", markup=False)
            if em.links:
                links = ", ".join(link.name for link in em.links)
                console.print(f"Links: {links}", markup=False)
            console.print()

    _heading("Python Modules")
    console.print()
    for module in dist.py_modules:
        console.print(module, markup=False, highlight=False)
    console.print()

    _heading("Python Resources")
    console.print()
    for package, resources in dist.resources.items():
        for resource in resources:
            console.print(f"[{package}].{resource}", markup=False, highlight=False)


@app.command("python-distribution-licenses")
def python_distribution_licenses(
    dist_path: Annotated[Path, typer.Argument(help="Distribution archive")],
) -> None:
    """Show licenses of a Python distribution and its extension libraries."""
    from oxbuild.distribution.analysis import analyze_distribution

    with tempfile.TemporaryDirectory(prefix="python-distribution-") as tmp:
        try:
            dist = analyze_distribution(dist_path, Path(tmp))
        except OxbuildError as e:
            raise _fail(e) from None

    licenses = ", ".join(dist.licenses) if dist.licenses else "NO LICENSE FOUND"
    console.print(f"Python Distribution Licenses: {licenses}", markup=False)
    console.print()
    _heading("Extension Libraries and License Requirements")
    console.print()

    for name, variants in dist.extension_modules.items():
        for variant in variants:
            if not variant.links:
                continue

            title = name
            if variant.variant != "default":
                title = f"{name} ({variant.variant})"
            _heading(title, "-")
            console.print()

            for link in variant.links:
                console.print(f"Dependency: {link.name}", markup=False)
                console.print(f"Link Type: {link.link_type}")
                console.print()

            console.print(f"Licenses: {variant.license_summary}", markup=False)
            if not variant.license_public_domain:
                for spdx in variant.licenses or []:
                    console.print(
                        f"License Info: https://spdx.org/licenses/{spdx}.html",
                        markup=False,
                    )
            console.print()


if __name__ == "__main__":
    app()
