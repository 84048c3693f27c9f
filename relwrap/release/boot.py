from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Tuple, Union

from relwrap.analyze.versions import DependencyTable
from relwrap.erlang.terms import Atom, format_term
from relwrap.errors import EnvironmentError
from relwrap.runtime.erlang import ErlangRuntime
from relwrap.runtime.index import PlatformLibraryIndex
from relwrap.utils.subprocess import SubprocessError, run_command

logger = logging.getLogger(__name__)

SUPPORT_APPLICATION = "sasl"
SUPPORT_MODULE = "systools"
MAKE_SCRIPT_TIMEOUT = 600.0


@dataclass(frozen=True)
class BootOk:
    pass


@dataclass(frozen=True)
class BootOkWithWarnings:
    warnings: Tuple[str, ...]


@dataclass(frozen=True)
class BootErr:
    reason: str


BootResult = Union[BootOk, BootOkWithWarnings, BootErr]


@dataclass(frozen=True)
class BootRequest:
    rel_base: Path
    search_paths: Tuple[Path, ...]
    output_dir: Path
    silent: bool = True
    skip_module_tests: bool = True

    def options_term(self) -> list:
        options: list = [
            (Atom("outdir"), str(self.output_dir)),
            (Atom("path"), [str(path) for path in self.search_paths]),
        ]
        if self.silent:
            options.append(Atom("silent"))
        if self.skip_module_tests:
            options.append(Atom("no_module_tests"))
        return options


class BootCompiler(Protocol):
    def ensure_available(self) -> None:
        ...

    def compile(self, request: BootRequest) -> BootResult:
        ...


def boot_search_paths(table: DependencyTable) -> Tuple[Path, ...]:
    paths: List[Path] = []
    for entry in table.values():
        if entry.location is None:
            continue
        paths.append(entry.location)
        ebin = entry.location / "ebin"
        if ebin.is_dir():
            paths.append(ebin)
    return tuple(paths)


class SystoolsBootCompiler:
    """Generates ``.script``/``.boot`` files with ``systools:make_script/2``."""

    def __init__(
        self,
        runtime: ErlangRuntime,
        index: PlatformLibraryIndex,
        timeout: float = MAKE_SCRIPT_TIMEOUT,
    ) -> None:
        self.runtime = runtime
        self.index = index
        self.timeout = timeout
        self._support_ebin: Optional[Path] = None

    def ensure_available(self) -> None:
        app_file = self.index.resolve(SUPPORT_APPLICATION)
        if app_file is None:
            raise EnvironmentError(
                f"{SUPPORT_APPLICATION.upper()} application not found. "
                f"Cannot load {SUPPORT_MODULE} module."
            )

        ebin = app_file.parent
        if not (ebin / f"{SUPPORT_MODULE}.beam").is_file():
            raise EnvironmentError(
                f"Cannot load {SUPPORT_MODULE} module from {ebin}"
            )
        self._support_ebin = ebin

    def compile(self, request: BootRequest) -> BootResult:
        if self._support_ebin is None:
            self.ensure_available()

        logger.debug("Running make_script/2 for %s", request.rel_base)
        command = [
            str(self.runtime.erl_executable),
            "-noshell",
            "-pa",
            str(self._support_ebin),
            "-eval",
            self._eval_expression(request),
        ]
        try:
            result = run_command(command, check=False, timeout=self.timeout)
        except SubprocessError as exc:
            return BootErr(str(exc))
        return parse_make_script_output(result.returncode, result.stdout, result.stderr)

    @staticmethod
    def _eval_expression(request: BootRequest) -> str:
        return (
            f"try {SUPPORT_MODULE}:make_script({format_term(str(request.rel_base))}, "
            f"{format_term(request.options_term())}) of "
            'ok -> io:format("ok~n"), halt(0); '
            "{ok, _, Warnings} -> io:format(\"warnings~n\"), "
            'lists:foreach(fun(W) -> io:format("~p~n", [W]) end, Warnings), halt(0); '
            'error -> io:format("error~n"), halt(2); '
            '{error, _, Reason} -> io:format("error~n~p~n", [Reason]), halt(2) '
            "catch Class:Crash -> "
            'io:format("error~n~p~n", [{Class, Crash}]), halt(2) '
            "end."
        )


def parse_make_script_output(returncode: int, stdout: str, stderr: str) -> BootResult:
    lines = [line for line in stdout.splitlines() if line.strip()]
    status = lines[0].strip() if lines else ""
    details = [line.strip() for line in lines[1:]]

    if returncode == 0 and status == "ok":
        return BootOk()
    if returncode == 0 and status == "warnings":
        return BootOkWithWarnings(tuple(details))

    if status == "error":
        reason = "\n".join(details) or "make_script/2 reported error"
    else:
        reason = (stderr.strip() or stdout.strip()
                  or f"erl exited with code {returncode}")
    return BootErr(reason)
