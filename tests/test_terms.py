from __future__ import annotations

import pytest

from relwrap.erlang.terms import Atom, format_term, parse_term, parse_terms
from relwrap.errors import TermSyntaxError


def test_parse_app_file_term() -> None:
    text = """
    %% generated
    {application, my_app,
     [{description, "My " "app"},
      {vsn, "1.2.3"},
      {registered, []},
      {applications, [kernel, stdlib, 'cowboy']},
      {env, [{port, 8080}, {ratio, 0.5}, {neg, -3}, {hex, 16#ff}, {char, $a}]}]}.
    """
    (term,) = parse_terms(text)

    tag, name, props = term
    assert tag == Atom("application")
    assert isinstance(name, Atom) and name == "my_app"
    assert ("description" in [p[0] for p in props])
    assert dict(props)["vsn"] == "1.2.3"
    assert not isinstance(dict(props)["vsn"], Atom)
    assert dict(props)["applications"] == ["kernel", "stdlib", "cowboy"]
    env = dict(dict(props)["env"])
    assert env == {"port": 8080, "ratio": 0.5, "neg": -3, "hex": 255, "char": 97}


def test_parse_binaries_maps_and_escapes() -> None:
    term = parse_term('#{key => <<"va\\"l">>, <<1,2>> => "tab\\there"}.')

    assert term[Atom("key")] == b'va"l'
    assert term[b"\x01\x02"] == "tab\there"


def test_parse_list_with_tail() -> None:
    assert parse_term("[a, b | [c]]") == ["a", "b", "c"]


@pytest.mark.parametrize(
    "text",
    [
        "{a, b",
        "[a b]",
        "{a, Var}",
        '"unterminated',
        "a. b",
        "",
        '"bad \\xZZ"',
        '"\\x{110000}"',
        '"\\x{D800}"',
        "#{#{a => 1} => b}",
        "#{[x, #{}] => b}",
    ],
)
def test_parse_rejects_malformed_text(text: str) -> None:
    with pytest.raises(TermSyntaxError):
        parse_term(text)


def test_parse_terms_requires_dot_terminators() -> None:
    with pytest.raises(TermSyntaxError):
        parse_terms("{a, 1}")


def test_format_quotes_atoms_only_when_needed() -> None:
    assert format_term(Atom("kernel")) == "kernel"
    assert format_term(Atom("Elixir.Foo")) == "'Elixir.Foo'"
    assert format_term(Atom("end")) == "'end'"
    assert format_term(Atom("it's")) == "'it\\'s'"


def test_format_nested_structure() -> None:
    term = (
        Atom("release"),
        ("svc", "1.0.0"),
        (Atom("erts"), "14.2"),
        [(Atom("kernel"), "9.2"), (Atom("svc"), "1.0.0")],
    )

    text = format_term(term)

    assert text == '{release,{"svc","1.0.0"},{erts,"14.2"},[{kernel,"9.2"},{svc,"1.0.0"}]}'
    assert parse_term(text) == term


def test_format_paths_with_backslashes_and_quotes() -> None:
    text = format_term('C:\\dir\\"x"')

    assert parse_term(text) == 'C:\\dir\\"x"'


def test_format_binary_and_map() -> None:
    assert format_term(b"1.0") == '<<"1.0">>'
    assert format_term({Atom("a"): 1}) == "#{a => 1}"
