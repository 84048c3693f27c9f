from __future__ import annotations

from pathlib import Path

import pytest

from relwrap.bundle.sysconfig import SysConfigSpec, render_sys_config, write_sys_config
from relwrap.erlang.terms import consult, parse_terms
from relwrap.errors import ConfigError


def test_render_empty() -> None:
    assert render_sys_config({}) == "[].\n"


def test_render_entries() -> None:
    text = render_sys_config(
        {"kernel": "[{logger_level, info}]", "my-app": "[{port, 8080}]."}
    )

    assert text == (
        "[\n"
        "  {kernel, [{logger_level, info}]},\n"
        "  {'my-app', [{port, 8080}]}\n"
        "].\n"
    )


def test_rendered_config_is_a_valid_term() -> None:
    text = render_sys_config({"svc": '[{greeting, "hi"}, {pool, #{size => 4}}]'})

    (config,) = parse_terms(text)
    assert config[0][0] == "svc"


def test_invalid_term_is_rejected() -> None:
    with pytest.raises(ConfigError, match="svc"):
        render_sys_config({"svc": "[{port, 8080}"})


def test_write_generated(tmp_path: Path) -> None:
    output = tmp_path / "nested" / "sys.config"

    written = write_sys_config(SysConfigSpec(configs={"svc": "[]"}, env="dev"), output)

    assert written == output
    assert consult(output) == [[("svc", [])]]


def test_write_copies_existing_file(tmp_path: Path) -> None:
    source = tmp_path / "prod.config"
    source.write_text("[{svc, [{mode, prod}]}].\n")

    write_sys_config(SysConfigSpec(config_file=source), tmp_path / "sys.config")

    assert (tmp_path / "sys.config").read_text() == source.read_text()


def test_config_file_must_exist_and_end_in_config(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="does not exist"):
        SysConfigSpec(config_file=tmp_path / "missing.config")

    other = tmp_path / "settings.txt"
    other.write_text("[].")
    with pytest.raises(ConfigError, match=".config extension"):
        SysConfigSpec(config_file=other)


def test_bad_escape_is_a_config_error() -> None:
    with pytest.raises(ConfigError, match="svc"):
        render_sys_config({"svc": '[{greeting, "\\xZZ"}]'})
