from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from relwrap.errors import ErlangRuntimeError


class ErlangRuntime(BaseModel):
    erl_executable: Path = Field(
        ...,
        description="Path to the erl launcher",
    )

    erts_version: str = Field(
        ...,
        description="ERTS version string (e.g. 14.2.5)",
    )

    otp_release: str = Field(
        ...,
        description="OTP major release (e.g. 26)",
    )

    root_dir: Path = Field(
        ...,
        description="Installation root reported by code:root_dir/0",
    )

    @field_validator("erl_executable")
    @classmethod
    def validate_erl_executable(cls, value: Path) -> Path:
        if not value.exists():
            raise ErlangRuntimeError(
                f"erl executable does not exist: {value}"
            )
        if not value.is_file():
            raise ErlangRuntimeError(
                f"erl executable is not a file: {value}"
            )
        return value

    @field_validator("root_dir")
    @classmethod
    def validate_root_dir(cls, value: Path) -> Path:
        if not value.is_dir():
            raise ErlangRuntimeError(
                f"Erlang root directory does not exist: {value}"
            )
        return value

    @property
    def lib_dir(self) -> Path:
        return self.root_dir / "lib"

    class Config:
        frozen = True
