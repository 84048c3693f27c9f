"""Error hierarchy for relwrap.

Every error carries the process exit code the CLI reports for it:

* 2-5: bad configuration or input (nothing has been built yet)
* 10-13: the host environment (Erlang runtime, filesystem, subprocesses)
* 20-22: release generation and bundle assembly
"""


class RelwrapError(Exception):
    exit_code: int = 1

    def __init__(self, message: str):
        super().__init__(message)


class ConfigError(RelwrapError):
    exit_code = 2


class InputError(RelwrapError):
    exit_code = 3


class TermSyntaxError(RelwrapError):
    """Erlang term text could not be parsed."""

    exit_code = 4


class TermFormatError(RelwrapError):
    """Binary external term data could not be encoded or decoded."""

    exit_code = 5


class EnvironmentError(RelwrapError):
    exit_code = 10


class ErlangRuntimeError(RelwrapError):
    exit_code = 11


class BuildError(RelwrapError):
    exit_code = 20


class ReleaseError(BuildError):
    """``systools:make_script/2`` refused the release.

    ``payload`` holds the reason reported by the boot compiler.
    """

    exit_code = 21

    def __init__(self, message: str, payload: str | None = None):
        if payload:
            message = f"{message}: {payload}"
        super().__init__(message)
        self.payload = payload


class AssemblyError(BuildError):
    exit_code = 22
