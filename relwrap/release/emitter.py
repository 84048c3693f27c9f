from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from relwrap.analyze.applist import ReleaseApp
from relwrap.analyze.versions import DependencyTable
from relwrap.erlang import etf
from relwrap.erlang.terms import Atom, consult, format_term
from relwrap.errors import AssemblyError, BuildError, ReleaseError, TermFormatError, TermSyntaxError
from relwrap.release.boot import (
    BootCompiler,
    BootErr,
    BootOkWithWarnings,
    BootRequest,
    boot_search_paths,
)
from relwrap.utils.fs import ensure_dir

logger = logging.getLogger(__name__)

RELEASE_TAG = "release"
RUNTIME_TAG = "erts"


@dataclass(frozen=True)
class ReleaseSpec:
    name: str
    version: str
    runtime_version: str
    apps: Tuple[ReleaseApp, ...]

    def to_term(self) -> tuple:
        return (
            Atom(RELEASE_TAG),
            (self.name, self.version),
            (Atom(RUNTIME_TAG), self.runtime_version),
            [(Atom(app.name), app.version) for app in self.apps],
        )

    def render(self) -> str:
        head, name_vsn, runtime, apps = self.to_term()
        indent = " " * (len(RELEASE_TAG) + 2)
        app_lines = [format_term(app) for app in apps]
        body = (",\n" + indent + " ").join(app_lines)
        return (
            f"{{{format_term(head)},{format_term(name_vsn)},\n"
            f"{indent}{format_term(runtime)},\n"
            f"{indent}[{body}]}}.\n"
        )

    @classmethod
    def from_term(cls, term: Any) -> "ReleaseSpec":
        try:
            tag, (name, version), (runtime_tag, runtime_version), apps = term
        except (TypeError, ValueError) as exc:
            raise BuildError(f"Malformed release term: {term!r}") from exc

        if tag != RELEASE_TAG or runtime_tag != RUNTIME_TAG or not isinstance(apps, list):
            raise BuildError(f"Malformed release term: {term!r}")

        parsed: List[ReleaseApp] = []
        for app in apps:
            # {App, Vsn} or {App, Vsn, Type | IncludedApps}
            if not (isinstance(app, tuple) and len(app) in (2, 3, 4)):
                raise BuildError(f"Malformed release application entry: {app!r}")
            parsed.append(ReleaseApp(str(app[0]), str(app[1])))

        return cls(
            name=str(name),
            version=str(version),
            runtime_version=str(runtime_version),
            apps=tuple(parsed),
        )

    @classmethod
    def read(cls, path: Path) -> "ReleaseSpec":
        try:
            terms = consult(path)
        except TermSyntaxError as exc:
            raise BuildError(f"Could not read release file {path}: {exc}") from exc
        if len(terms) != 1:
            raise BuildError(f"Expected exactly one term in {path}")
        return cls.from_term(terms[0])


@dataclass(frozen=True)
class ReleaseArtifacts:
    rel_file: Path
    script_file: Path
    boot_file: Path
    manifest_file: Path
    app_name: str
    release_name: str
    release_version: str
    warnings: Tuple[str, ...] = ()

    def all_files(self) -> List[Path]:
        return [self.rel_file, self.script_file, self.boot_file, self.manifest_file]

    @classmethod
    def for_release(
        cls,
        output_dir: Path,
        *,
        app_name: str,
        release_name: str,
        release_version: str,
        warnings: Sequence[str] = (),
    ) -> "ReleaseArtifacts":
        return cls(
            rel_file=output_dir / f"{release_name}.rel",
            script_file=output_dir / f"{release_name}.script",
            boot_file=output_dir / f"{release_name}.boot",
            manifest_file=output_dir / f"{release_name}.manifest",
            app_name=app_name,
            release_name=release_name,
            release_version=release_version,
            warnings=tuple(warnings),
        )

    @classmethod
    def from_directory(
        cls,
        release_dir: Path,
        release_name: str,
        app_name: Optional[str] = None,
    ) -> "ReleaseArtifacts":
        spec = ReleaseSpec.read(release_dir / f"{release_name}.rel")
        if app_name is None:
            if not spec.apps:
                raise BuildError(f"Release {release_name} lists no applications")
            app_name = spec.apps[-1].name

        artifacts = cls.for_release(
            release_dir,
            app_name=app_name,
            release_name=release_name,
            release_version=spec.version,
        )
        verify_artifacts(artifacts)
        return artifacts


def write_release_spec(spec: ReleaseSpec, path: Path) -> None:
    try:
        path.write_text(spec.render(), encoding="utf-8")
    except OSError as exc:
        raise BuildError(f"Failed to write release file: {path}") from exc
    logger.info("Generated %s", path)


def encode_manifest(table: DependencyTable) -> bytes:
    return etf.encode(
        {Atom(name): entry.version.encode("utf-8") for name, entry in table.items()}
    )


def write_manifest(table: DependencyTable, path: Path) -> None:
    try:
        path.write_bytes(encode_manifest(table))
    except OSError as exc:
        raise BuildError(f"Failed to write manifest: {path}") from exc
    logger.info("Generated manifest %s", path)


def read_manifest(path: Path) -> Dict[str, str]:
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise BuildError(f"Failed to read manifest: {path}") from exc

    try:
        term = etf.decode(data)
    except TermFormatError as exc:
        raise BuildError(f"Corrupt manifest {path}: {exc}") from exc

    if not isinstance(term, dict):
        raise BuildError(f"Manifest {path} does not contain a map")

    versions: Dict[str, str] = {}
    for name, version in term.items():
        if isinstance(version, bytes):
            version = version.decode("utf-8")
        versions[str(name)] = str(version)
    return versions


def verify_artifacts(artifacts: ReleaseArtifacts) -> None:
    for path in artifacts.all_files():
        if not path.is_file():
            raise AssemblyError(f"Release artifact {path} was not created")


def emit_release(
    apps: Sequence[ReleaseApp],
    table: DependencyTable,
    *,
    output_dir: Path,
    app_name: str,
    release_name: str,
    release_version: str,
    runtime_version: str,
    boot_compiler: BootCompiler,
) -> ReleaseArtifacts:
    ensure_dir(output_dir)

    spec = ReleaseSpec(
        name=release_name,
        version=release_version,
        runtime_version=runtime_version,
        apps=tuple(apps),
    )
    rel_base = output_dir / release_name
    write_release_spec(spec, rel_base.with_name(f"{release_name}.rel"))
    write_manifest(table, rel_base.with_name(f"{release_name}.manifest"))

    request = BootRequest(
        rel_base=rel_base,
        search_paths=boot_search_paths(table),
        output_dir=output_dir,
    )
    result = boot_compiler.compile(request)

    warnings: Tuple[str, ...] = ()
    if isinstance(result, BootErr):
        raise ReleaseError("make_script/2 failed", payload=result.reason)
    if isinstance(result, BootOkWithWarnings):
        warnings = result.warnings
        logger.warning("Warnings:")
        for warning in warnings:
            logger.warning("  %s", warning)

    artifacts = ReleaseArtifacts.for_release(
        output_dir,
        app_name=app_name,
        release_name=release_name,
        release_version=release_version,
        warnings=warnings,
    )
    verify_artifacts(artifacts)

    logger.info("Generated %s", artifacts.script_file)
    logger.info("Generated %s", artifacts.boot_file)
    return artifacts
