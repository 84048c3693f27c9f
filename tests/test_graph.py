from __future__ import annotations

import json
from pathlib import Path

import pytest

from relwrap.analyze.graph import Component, transitive_closure
from relwrap.config import BuildGraph
from relwrap.errors import ConfigError, InputError


def _graph(**overrides) -> dict:
    data = {
        "main": "svc",
        "components": [
            {"name": "svc", "version": "1.0.0", "files": ["/build/svc/ebin"], "deps": ["lib_a"]},
            {"name": "lib_a", "files": ["/build/lib_a/ebin"], "deps": ["lib_b"]},
            {"name": "lib_b", "files": ["/build/lib_b/ebin"]},
            {"name": "unused"},
        ],
    }
    data.update(overrides)
    return data


def test_closure_contains_every_reachable_component() -> None:
    leaf = Component("leaf")
    mid = Component("mid", dependencies=(leaf,))
    top = Component("top", dependencies=(mid, leaf))

    closure = transitive_closure([top])

    assert {c.name for c in closure} == {"top", "mid", "leaf"}


def test_closure_of_nothing_is_empty() -> None:
    assert transitive_closure([]) == set()


def test_component_location(tmp_path: Path) -> None:
    ebin = tmp_path / "ebin"
    ebin.mkdir()
    app_file = ebin / "svc.app"
    app_file.write_text("{application, svc, []}.\n")

    assert Component("svc", files=(ebin,)).location == ebin
    assert Component("svc", files=(app_file,)).location == ebin
    assert Component("svc").location is None


def test_build_graph_resolves_components() -> None:
    graph = BuildGraph.model_validate(_graph())

    main = graph.main_component()

    assert main.name == "svc"
    assert main.version == "1.0.0"
    assert [dep.name for dep in main.dependencies] == ["lib_a"]
    assert {c.name for c in transitive_closure([main])} == {"svc", "lib_a", "lib_b"}


def test_build_graph_rejects_unknown_main() -> None:
    with pytest.raises(InputError, match="Main component"):
        BuildGraph.model_validate(_graph(main="nope"))


def test_build_graph_rejects_unknown_dependency() -> None:
    data = _graph()
    data["components"][2]["deps"] = ["ghost"]

    with pytest.raises(InputError, match="ghost"):
        BuildGraph.model_validate(data)


def test_build_graph_rejects_duplicates() -> None:
    data = _graph()
    data["components"].append({"name": "lib_b"})

    with pytest.raises(InputError, match="Duplicate"):
        BuildGraph.model_validate(data)


def test_build_graph_rejects_cycles() -> None:
    data = _graph()
    data["components"][2]["deps"] = ["svc"]
    graph = BuildGraph.model_validate(data)

    with pytest.raises(InputError, match="cycle"):
        graph.to_components()


def test_component_names_must_not_be_paths() -> None:
    data = _graph()
    data["components"][3]["name"] = "../escape"

    with pytest.raises(ConfigError):
        BuildGraph.model_validate(data)


def test_from_file(tmp_path: Path) -> None:
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(_graph()))

    graph = BuildGraph.from_file(path)

    assert graph.main == "svc"
    assert len(graph.components) == 4


def test_from_file_errors(tmp_path: Path) -> None:
    with pytest.raises(InputError, match="Failed to read"):
        BuildGraph.from_file(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text('{"main": "svc"}')
    with pytest.raises(InputError, match="Invalid build graph"):
        BuildGraph.from_file(broken)
