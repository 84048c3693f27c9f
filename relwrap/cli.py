import os
import sys
from pathlib import Path
from typing import List, Optional

import typer

from relwrap.analyze.graph import transitive_closure
from relwrap.bundle.assembler import assemble_bundle
from relwrap.bundle.sysconfig import ENVIRONMENTS, SysConfigSpec, write_sys_config
from relwrap.config import BuildGraph, BundleConfig, ReleaseConfig
from relwrap.errors import ConfigError, RelwrapError
from relwrap.logger import setup_logger
from relwrap.release.builder import build_release
from relwrap.release.boot import SystoolsBootCompiler
from relwrap.release.emitter import ReleaseArtifacts
from relwrap.release.input import dependency_input_from_graph, parse_dependency_input
from relwrap.runtime.discover import discover_erlang_runtime
from relwrap.runtime.index import OtpLibraryIndex


app = typer.Typer(
    name="relwrap",
    help="relwrap: build Erlang/OTP releases and bundle them into deployable directories",
    add_completion=False,
)

@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
):

    setup_logger(verbose=verbose)

@app.command()
def release(
    app_name: str = typer.Argument(..., help="Name of the main application"),
    app_version: str = typer.Argument(
        ...,
        help="Version of the main application (fallback if not in its .app file)",
    ),
    output_dir: Path = typer.Argument(..., help="Directory to write release files"),
    release_name: Optional[str] = typer.Argument(
        None,
        help="Name of the release (defaults to app_name)",
    ),
    release_version: Optional[str] = typer.Argument(
        None,
        help="Version of the release (defaults to app_version)",
    ),
    extra_app: List[str] = typer.Option(
        [],
        "--extra-app",
        "-x",
        help="Platform application to include (can be passed multiple times)",
    ),
    graph: Optional[Path] = typer.Option(
        None,
        "--graph",
        "-g",
        help="JSON build graph; when omitted, dependency terms are read from stdin",
    ),
    erlang_home: Optional[Path] = typer.Option(
        None,
        "--erlang-home",
        help="Erlang installation to use (defaults to erl on PATH)",
    ),
):

    try:
        config = ReleaseConfig(
            app_name=app_name,
            app_version=app_version,
            output_dir=output_dir,
            release_name=release_name,
            release_version=release_version,
            extra_apps=extra_app,
        )

        runtime = discover_erlang_runtime(erlang_home=erlang_home)
        index = OtpLibraryIndex.from_runtime(runtime, _erl_libs())
        compiler = SystoolsBootCompiler(runtime, index)

        if graph is not None:
            deps_input = dependency_input_from_graph(BuildGraph.from_file(graph))
        else:
            deps_input = parse_dependency_input(sys.stdin.read())

        artifacts = build_release(
            config,
            deps_input.deps,
            extra_apps=deps_input.extra_apps,
            declared_versions=deps_input.versions,
            index=index,
            boot_compiler=compiler,
            runtime_version=runtime.erts_version,
        )

        for path in artifacts.all_files():
            typer.echo(f" - {path}")
        typer.echo(
            "Successfully generated release files for "
            f"{artifacts.release_name}-{artifacts.release_version}"
        )

    except RelwrapError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        sys.exit(exc.exit_code)


@app.command()
def bundle(
    release_dir: Path = typer.Option(..., "--release-dir", "-r"),
    release_name: str = typer.Option(..., "--release-name", "-n"),
    graph: Path = typer.Option(..., "--graph", "-g", help="JSON build graph of the release"),
    output: Path = typer.Option(..., "--output", "-o"),
    sys_config: Optional[Path] = typer.Option(
        None,
        "--sys-config",
        help="sys.config to ship with the release",
    ),
    app_name: Optional[str] = typer.Option(
        None,
        "--app-name",
        help="Main application name (defaults to the build graph's main component)",
    ),
):

    try:
        config = BundleConfig(
            release_dir=release_dir,
            release_name=release_name,
            output_dir=output,
            sys_config=sys_config,
        )

        build_graph = BuildGraph.from_file(graph)
        artifacts = ReleaseArtifacts.from_directory(
            config.release_dir,
            config.release_name,
            app_name=app_name or build_graph.main,
        )

        typer.echo(f"Assembling bundle for {artifacts.release_name}-{artifacts.release_version}")
        layout = assemble_bundle(
            artifacts=artifacts,
            components=transitive_closure([build_graph.main_component()]),
            output_dir=config.output_dir,
            sys_config=config.sys_config,
        )
        typer.echo("Bundle complete!")
        typer.echo(f"Run with: {layout.launcher} console")

    except RelwrapError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        sys.exit(exc.exit_code)


@app.command("sys-config")
def sys_config(
    output: Path = typer.Option(..., "--output", "-o"),
    config: List[str] = typer.Option(
        [],
        "--config",
        "-c",
        help="APP=TERM application environment (can be passed multiple times)",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config-file",
        help="Existing sys.config to copy instead of generating one",
    ),
    env: str = typer.Option(
        "prod",
        "--env",
        "-e",
        help="Environment: prod, dev or test",
    ),
):

    try:
        env = env.lower()
        if env not in ENVIRONMENTS:
            raise ConfigError(f"Unknown environment {env!r} (expected one of: {', '.join(ENVIRONMENTS)})")

        spec = SysConfigSpec(
            configs=_parse_config_pairs(config),
            config_file=config_file,
            env=env,
        )
        written = write_sys_config(spec, output)
        typer.echo(f"sys.config written to: {written}")

    except RelwrapError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        sys.exit(exc.exit_code)


def _parse_config_pairs(pairs: List[str]) -> dict:
    configs = {}
    for pair in pairs:
        name, sep, term = pair.partition("=")
        if not sep or not name.strip():
            raise ConfigError(f"Expected APP=TERM, got: {pair}")
        configs[name.strip()] = term
    return configs


def _erl_libs() -> List[Path]:
    value = os.environ.get("ERL_LIBS", "")
    return [Path(entry) for entry in value.split(os.pathsep) if entry]


def run_cli() -> None:
    app()


if __name__ == "__main__":
    run_cli()
