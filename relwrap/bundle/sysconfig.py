from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from relwrap.erlang.terms import Atom, format_term, parse_term
from relwrap.errors import ConfigError, TermSyntaxError
from relwrap.utils.fs import ensure_dir

logger = logging.getLogger(__name__)

ENVIRONMENTS = ("prod", "dev", "test")


class SysConfigSpec(BaseModel):
    configs: Dict[str, str] = Field(
        default_factory=dict,
        description="Application name -> Erlang term with that application's environment",
        examples=[{"kernel": "[{logger_level, info}]", "myapp": "[{port, 8080}]"}],
    )

    config_file: Optional[Path] = Field(
        default=None,
        description="Existing sys.config to use instead of generating one",
    )

    env: Literal["prod", "dev", "test"] = Field(
        default="prod",
        description="Environment this configuration is meant for",
    )

    @field_validator("config_file")
    @classmethod
    def validate_config_file(cls, value: Optional[Path]) -> Optional[Path]:
        if value is None:
            return value
        if not value.is_file():
            raise ConfigError(f"Config file does not exist: {value}")
        if value.suffix != ".config":
            raise ConfigError(f"Config file must have a .config extension: {value}")
        return value

    class Config:
        frozen = True


def render_sys_config(configs: Dict[str, str]) -> str:
    entries = []
    for app_name, config_text in configs.items():
        try:
            parse_term(config_text)
        except TermSyntaxError as exc:
            raise ConfigError(
                f"Invalid configuration term for {app_name}: {exc}"
            ) from exc
        text = config_text.strip()
        if text.endswith("."):
            text = text[:-1].rstrip()
        entries.append(f"  {{{format_term(Atom(app_name))}, {text}}}")

    if not entries:
        return "[].\n"
    return "[\n" + ",\n".join(entries) + "\n].\n"


def write_sys_config(spec: SysConfigSpec, output: Path) -> Path:
    ensure_dir(output.parent)

    try:
        if spec.config_file is not None:
            shutil.copy2(spec.config_file, output)
        else:
            output.write_text(render_sys_config(spec.configs), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to write sys.config: {output}") from exc

    logger.info("Generated %s sys.config at %s", spec.env, output)
    return output
