import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from relwrap.errors import RelwrapError

logger = logging.getLogger(__name__)


class SubprocessError(RelwrapError):
    exit_code = 13


def run_command(
    command: List[str],
    *,
    cwd: Optional[Path] = None,
    env: Optional[dict] = None,
    check: bool = True,
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess:
    logger.debug("Running: %s", " ".join(command))
    try:
        result = subprocess.run(
            command,
            cwd=str(cwd) if cwd else None,
            env=env,
            check=False,  # handled manually
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise SubprocessError(
            f"{command[0]} did not finish within {timeout} seconds"
        ) from exc
    except FileNotFoundError as exc:
        raise SubprocessError(
            f"Command not found: {command[0]}"
        ) from exc
    except OSError as exc:
        raise SubprocessError(
            f"Failed to execute command: {command[0]}"
        ) from exc

    if check and result.returncode != 0:
        raise SubprocessError(describe_failure(command, result))

    return result


def describe_failure(
    command: List[str],
    result: subprocess.CompletedProcess,
) -> str:
    message = [
        f"{command[0]} exited with code {result.returncode}",
    ]

    if result.stdout and result.stdout.strip():
        message.append(f"stdout:\n{result.stdout.strip()}")

    if result.stderr and result.stderr.strip():
        message.append(f"stderr:\n{result.stderr.strip()}")

    return "\n".join(message)
