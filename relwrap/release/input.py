from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from relwrap.analyze.graph import transitive_closure
from relwrap.config import BuildGraph
from relwrap.erlang.terms import Atom, parse_term
from relwrap.errors import InputError, TermSyntaxError


@dataclass(frozen=True)
class DependencyInput:
    deps: List[Tuple[str, Optional[Path]]]
    extra_apps: List[str] = field(default_factory=list)
    versions: Dict[str, str] = field(default_factory=dict)


def parse_dependency_input(text: str) -> DependencyInput:
    """Parse the dependency payload handed over by the build.

    Accepted forms are ``{[{App, "Dir"}, ...], [ExtraApp, ...]}.`` and the
    older bare list ``[{App, "Dir"}, ...].``.
    """
    try:
        term = parse_term(text)
    except TermSyntaxError as exc:
        raise InputError(f"Could not parse dependency input: {exc}") from exc

    if isinstance(term, tuple) and len(term) == 2 \
            and isinstance(term[0], list) and isinstance(term[1], list):
        deps_term, extra_term = term
    elif isinstance(term, list):
        deps_term, extra_term = term, []
    else:
        raise InputError(
            "Dependency input must be a list of {App, Dir} pairs "
            "or a {Deps, ExtraApps} tuple"
        )

    return DependencyInput(
        deps=[_dependency_pair(item) for item in deps_term],
        extra_apps=[_extra_app(item) for item in extra_term],
    )


def _dependency_pair(item: Any) -> Tuple[str, Path]:
    if not (isinstance(item, tuple) and len(item) == 2):
        raise InputError(f"Expected an {{App, Dir}} pair, got {item!r}")
    name, location = item
    if not isinstance(name, Atom):
        raise InputError(f"Application name must be an atom, got {name!r}")
    if not isinstance(location, str) or isinstance(location, Atom):
        raise InputError(f"Directory for {name} must be a string, got {location!r}")
    return str(name), Path(location)


def _extra_app(item: Any) -> str:
    if not isinstance(item, Atom):
        raise InputError(f"Extra application must be an atom, got {item!r}")
    return str(item)


def dependency_input_from_graph(
    graph: BuildGraph,
    extra_apps: Sequence[str] = (),
) -> DependencyInput:
    closure = sorted(transitive_closure([graph.main_component()]), key=lambda c: c.name)
    return DependencyInput(
        deps=[(component.name, component.location) for component in closure],
        extra_apps=list(extra_apps),
        versions={
            component.name: component.version
            for component in closure
            if component.version
        },
    )
