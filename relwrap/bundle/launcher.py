from __future__ import annotations

import stat
import textwrap
from pathlib import Path

from relwrap.errors import BuildError

COMMANDS = ("start", "console", "foreground", "eval", "version", "remote")


def render_launcher(
    *,
    release_name: str,
    release_version: str,
    app_name: str,
) -> str:
    script = textwrap.dedent(
        """
        #!/usr/bin/env bash
        set -e

        RELEASE_NAME="{release_name}"
        RELEASE_VERSION="{release_version}"
        APP_NAME="{app_name}"

        ROOT="$(cd "$(dirname "$0")/.." && pwd)"
        RELEASE_DIR="$ROOT/releases/$RELEASE_VERSION"

        if [ -n "${{ERLANG_HOME:-}}" ] && [ -x "$ERLANG_HOME/bin/erl" ]; then
            ERL="$ERLANG_HOME/bin/erl"
        elif command -v erl >/dev/null 2>&1; then
            ERL="$(command -v erl)"
        else
            echo "Error: no Erlang runtime found (set ERLANG_HOME or add erl to PATH)" >&2
            exit 1
        fi

        NODE_NAME="${{NODE_NAME:-$APP_NAME}}"
        COOKIE="${{COOKIE:-$RELEASE_NAME}}"
        LOG_DIR="${{LOG_DIR:-$ROOT/log}}"
        KERNEL_POLL="${{KERNEL_POLL:-true}}"
        ASYNC_THREADS="${{ASYNC_THREADS:-30}}"
        START_MODE="${{START_MODE:-embedded}}"
        ERL_EXTRA_ARGS="${{ERL_EXTRA_ARGS:-}}"

        export ERL_LIBS="$ROOT/lib${{ERL_LIBS:+:$ERL_LIBS}}"

        case "$NODE_NAME" in
            *@*)
                NAME_FLAG="-name"
                REMSH_NAME="remsh$$@${{NODE_NAME#*@}}"
                ;;
            *)
                NAME_FLAG="-sname"
                REMSH_NAME="remsh$$"
                ;;
        esac

        BOOT_ARGS=(-boot "$RELEASE_DIR/start" -mode "$START_MODE")
        if [ -f "$RELEASE_DIR/sys.config" ]; then
            BOOT_ARGS+=(-config "$RELEASE_DIR/sys")
        fi

        VM_ARGS=("$NAME_FLAG" "$NODE_NAME" -setcookie "$COOKIE" +K "$KERNEL_POLL" +A "$ASYNC_THREADS")

        usage() {{
            echo "Usage: $(basename "$0") {{{commands}}}" >&2
        }}

        # ERL_EXTRA_ARGS is split on whitespace on purpose.
        # shellcheck disable=SC2086
        case "${{1:-}}" in
            start)
                mkdir -p "$LOG_DIR"
                exec "$ERL" "${{BOOT_ARGS[@]}}" "${{VM_ARGS[@]}}" -detached \\
                    -env ERL_CRASH_DUMP "$LOG_DIR/erl_crash.dump" $ERL_EXTRA_ARGS
                ;;
            console)
                exec "$ERL" "${{BOOT_ARGS[@]}}" "${{VM_ARGS[@]}}" $ERL_EXTRA_ARGS
                ;;
            foreground)
                exec "$ERL" "${{BOOT_ARGS[@]}}" "${{VM_ARGS[@]}}" -noshell -noinput $ERL_EXTRA_ARGS
                ;;
            eval)
                if [ -z "${{2:-}}" ]; then
                    usage
                    exit 1
                fi
                exec "$ERL" -boot start_clean -noshell -eval "$2" -s init stop
                ;;
            version)
                echo "$RELEASE_NAME $RELEASE_VERSION"
                ;;
            remote)
                exec "$ERL" "$NAME_FLAG" "$REMSH_NAME" -setcookie "$COOKIE" -hidden -remsh "$NODE_NAME"
                ;;
            *)
                usage
                exit 1
                ;;
        esac
        """
    ).format(
        release_name=release_name,
        release_version=release_version,
        app_name=app_name,
        commands="|".join(COMMANDS),
    )
    return script.lstrip("\n")


def write_launcher(
    launcher_path: Path,
    *,
    release_name: str,
    release_version: str,
    app_name: str,
) -> Path:
    script = render_launcher(
        release_name=release_name,
        release_version=release_version,
        app_name=app_name,
    )

    try:
        launcher_path.write_text(script)
    except OSError as exc:
        raise BuildError(
            f"Failed to write launcher script: {launcher_path}"
        ) from exc

    _make_executable(launcher_path)
    return launcher_path


def _make_executable(path: Path) -> None:
    try:
        mode = path.stat().st_mode
        path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError as exc:
        raise BuildError(
            f"Failed to mark launcher executable: {path}"
        ) from exc
