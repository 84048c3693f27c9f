import shutil
from pathlib import Path
from typing import Dict, Optional

from relwrap.errors import ErlangRuntimeError
from relwrap.runtime.erlang import ErlangRuntime
from relwrap.utils.subprocess import SubprocessError, run_command

_PROBE = (
    'io:format("version=~s~nroot=~s~notp=~s~n", '
    "[erlang:system_info(version), code:root_dir(), "
    "erlang:system_info(otp_release)]), halt()."
)

PROBE_TIMEOUT = 60.0


def discover_erlang_runtime(
    *,
    erlang_home: Optional[Path] = None,
) -> ErlangRuntime:
    exe = _resolve_erl_executable(erlang_home)

    info = _query_erlang_runtime(exe)

    return ErlangRuntime(
        erl_executable=exe,
        erts_version=info["version"],
        otp_release=info["otp"],
        root_dir=Path(info["root"]),
    )


def _resolve_erl_executable(
    erlang_home: Optional[Path],
) -> Path:
    if erlang_home:
        exe = erlang_home / "bin" / "erl"
    else:
        found = shutil.which("erl")
        if not found:
            raise ErlangRuntimeError(
                "No erl executable found in PATH (set --erlang-home)"
            )
        exe = Path(found)

    if not exe.exists():
        raise ErlangRuntimeError(
            f"erl executable does not exist: {exe}"
        )

    return exe.resolve()


def _query_erlang_runtime(exe: Path) -> Dict[str, str]:
    try:
        result = run_command(
            [str(exe), "-noshell", "-eval", _PROBE],
            timeout=PROBE_TIMEOUT,
        )
    except SubprocessError as exc:
        raise ErlangRuntimeError(
            f"Failed to query Erlang runtime: {exc}"
        ) from exc

    return parse_probe_output(result.stdout)


def parse_probe_output(output: str) -> Dict[str, str]:
    info: Dict[str, str] = {}
    for line in output.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            info[key.strip()] = value.strip()

    missing = [key for key in ("version", "root", "otp") if not info.get(key)]
    if missing:
        raise ErlangRuntimeError(
            "Invalid response while probing Erlang runtime "
            f"(missing {', '.join(missing)})"
        )
    return info
