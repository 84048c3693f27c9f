from __future__ import annotations

import subprocess
from pathlib import Path

import pytest
from conftest import write_app_file

from relwrap.analyze.versions import DependencyEntry
from relwrap.erlang.terms import Atom, format_term
from relwrap.errors import EnvironmentError
from relwrap.release import boot
from relwrap.release.boot import (
    BootErr,
    BootOk,
    BootOkWithWarnings,
    BootRequest,
    SystoolsBootCompiler,
    boot_search_paths,
    parse_make_script_output,
)
from relwrap.runtime.erlang import ErlangRuntime
from relwrap.runtime.index import StaticLibraryIndex
from relwrap.utils.subprocess import SubprocessError


@pytest.fixture
def runtime(tmp_path: Path) -> ErlangRuntime:
    root = tmp_path / "otp"
    (root / "bin").mkdir(parents=True)
    erl = root / "bin" / "erl"
    erl.write_text("#!/bin/sh\n")
    return ErlangRuntime(erl_executable=erl, erts_version="14.2", otp_release="26", root_dir=root)


def test_options_term() -> None:
    request = BootRequest(
        rel_base=Path("/out/svc"),
        search_paths=(Path("/build/svc"), Path("/build/svc/ebin")),
        output_dir=Path("/out"),
    )

    assert format_term(request.options_term()) == (
        '[{outdir,"/out"},{path,["/build/svc","/build/svc/ebin"]},silent,no_module_tests]'
    )


def test_options_can_be_loud() -> None:
    request = BootRequest(
        rel_base=Path("/out/svc"),
        search_paths=(),
        output_dir=Path("/out"),
        silent=False,
        skip_module_tests=False,
    )

    assert request.options_term() == [(Atom("outdir"), "/out"), (Atom("path"), [])]


def test_search_paths_include_existing_ebin(tmp_path: Path) -> None:
    (tmp_path / "svc" / "ebin").mkdir(parents=True)
    (tmp_path / "flat").mkdir()
    table = {
        "svc": DependencyEntry("1.0.0", tmp_path / "svc"),
        "flat": DependencyEntry("0.1", tmp_path / "flat"),
        "virtual": DependencyEntry("0.0.0", None),
    }

    assert boot_search_paths(table) == (
        tmp_path / "svc",
        tmp_path / "svc" / "ebin",
        tmp_path / "flat",
    )


@pytest.mark.parametrize(
    "returncode, stdout, stderr, expected",
    [
        (0, "ok\n", "", BootOk()),
        (0, "warnings\nsource code not found\n\nno debug info\n", "", BootOkWithWarnings(("source code not found", "no debug info"))),
        (2, "error\n{missing_app,lib_z}\n", "", BootErr("{missing_app,lib_z}")),
        (2, "error\n", "", BootErr("make_script/2 reported error")),
        (1, "", "crash dump written\n", BootErr("crash dump written")),
        (139, "", "", BootErr("erl exited with code 139")),
    ],
)
def test_parse_make_script_output(returncode, stdout, stderr, expected) -> None:
    assert parse_make_script_output(returncode, stdout, stderr) == expected


def test_systools_requires_sasl(runtime) -> None:
    compiler = SystoolsBootCompiler(runtime, StaticLibraryIndex({}))

    with pytest.raises(EnvironmentError, match="SASL application not found"):
        compiler.ensure_available()


def test_systools_requires_systools_module(runtime, tmp_path: Path) -> None:
    app_file = write_app_file(tmp_path / "sasl-4.2", "sasl", "4.2")
    compiler = SystoolsBootCompiler(runtime, StaticLibraryIndex({"sasl": app_file}))

    with pytest.raises(EnvironmentError, match="systools"):
        compiler.ensure_available()

    (app_file.parent / "systools.beam").write_bytes(b"FOR1")
    compiler.ensure_available()


def test_eval_expression_calls_make_script() -> None:
    request = BootRequest(rel_base=Path("/out/svc"), search_paths=(), output_dir=Path("/out"))

    expression = SystoolsBootCompiler._eval_expression(request)

    assert expression.startswith('try systools:make_script("/out/svc", [{outdir,"/out"}')
    assert "catch Class:Crash -> " in expression
    assert expression.endswith("end.")


@pytest.fixture
def systools_compiler(runtime, tmp_path: Path) -> SystoolsBootCompiler:
    app_file = write_app_file(tmp_path / "sasl-4.2", "sasl", "4.2")
    (app_file.parent / "systools.beam").write_bytes(b"FOR1")
    return SystoolsBootCompiler(runtime, StaticLibraryIndex({"sasl": app_file}), timeout=5.0)


def _request(tmp_path: Path) -> BootRequest:
    return BootRequest(rel_base=tmp_path / "svc", search_paths=(), output_dir=tmp_path)


def test_compile_runs_erl_with_timeout(systools_compiler, tmp_path: Path, monkeypatch) -> None:
    calls = []

    def fake_run(command, *, check, timeout):
        calls.append((command, check, timeout))
        return subprocess.CompletedProcess(command, 0, stdout="ok\n", stderr="")

    monkeypatch.setattr(boot, "run_command", fake_run)

    assert systools_compiler.compile(_request(tmp_path)) == BootOk()
    ((command, check, timeout),) = calls
    assert command[1:4] == ["-noshell", "-pa", str(tmp_path / "sasl-4.2" / "ebin")]
    assert (check, timeout) == (False, 5.0)


def test_hung_erl_becomes_boot_error(systools_compiler, tmp_path: Path, monkeypatch) -> None:
    def fake_run(command, *, check, timeout):
        raise SubprocessError(f"{command[0]} did not finish within {timeout} seconds")

    monkeypatch.setattr(boot, "run_command", fake_run)

    result = systools_compiler.compile(_request(tmp_path))

    assert isinstance(result, BootErr)
    assert "did not finish within 5.0 seconds" in result.reason
