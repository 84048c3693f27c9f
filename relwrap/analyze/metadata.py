from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, FrozenSet, List, Optional

from relwrap.erlang.terms import Atom, consult
from relwrap.errors import TermSyntaxError

logger = logging.getLogger(__name__)

APPLICATION_TAG = "application"


class MetadataShapeError(ValueError):
    pass


@dataclass(frozen=True)
class MetadataRecord:
    """Parsed contents of an ``<name>.app`` file.

    ``dependencies`` and ``included`` default to empty sets and ``version``
    to ``None`` when the property list does not carry them.
    """

    kind: str
    name: str
    dependencies: FrozenSet[str] = frozenset()
    included: FrozenSet[str] = frozenset()
    version: Optional[str] = None

    @property
    def all_dependencies(self) -> FrozenSet[str]:
        return self.dependencies | self.included

    @classmethod
    def from_term(cls, term: Any) -> "MetadataRecord":
        if not (isinstance(term, tuple) and len(term) == 3):
            raise MetadataShapeError("expected a 3-tuple {application, Name, Props}")

        kind, name, props = term
        if not isinstance(kind, Atom) or kind != APPLICATION_TAG:
            raise MetadataShapeError(f"unexpected tag {kind!r}")
        if not isinstance(name, Atom):
            raise MetadataShapeError("application name must be an atom")
        if not isinstance(props, list):
            raise MetadataShapeError("property list must be a list")

        return cls(
            kind=str(kind),
            name=str(name),
            dependencies=_name_set(_prop(props, "applications", [])),
            included=_name_set(_prop(props, "included_applications", [])),
            version=_version(_prop(props, "vsn", None)),
        )


def _prop(props: List[Any], key: str, default: Any) -> Any:
    # proplists:get_value/3: first matching {Key, Value}; a bare atom means true.
    for item in props:
        if isinstance(item, tuple) and len(item) >= 2 and item[0] == key:
            return item[1]
        if isinstance(item, Atom) and item == key:
            return True
    return default


def _name_set(value: Any) -> FrozenSet[str]:
    if not isinstance(value, list):
        raise MetadataShapeError("dependency lists must be lists")
    names = set()
    for item in value:
        if not isinstance(item, Atom):
            raise MetadataShapeError(f"dependency {item!r} is not an atom")
        names.add(str(item))
    return frozenset(names)


def _version(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (str, bytes)):
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)
    raise MetadataShapeError(f"vsn must be a string, got {value!r}")


def metadata_candidates(name: str, location: Path) -> List[Path]:
    candidates = [
        location / "ebin" / f"{name}.app",
        location / f"{name}.app",
    ]
    if location.suffix == ".app":
        candidates.append(location)
    return candidates


def read_metadata(path: Path) -> Optional[MetadataRecord]:
    if not path.is_file():
        return None

    try:
        terms = consult(path)
    except TermSyntaxError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None

    if len(terms) != 1:
        logger.warning("Expected exactly one term in %s, found %d", path, len(terms))
        return None

    try:
        return MetadataRecord.from_term(terms[0])
    except MetadataShapeError as exc:
        logger.warning("Malformed application metadata in %s: %s", path, exc)
        return None


def find_metadata(name: str, location: Optional[Path]) -> Optional[MetadataRecord]:
    if location is None:
        return None

    for candidate in metadata_candidates(name, location):
        record = read_metadata(candidate)
        if record is not None:
            logger.debug("Read metadata for %s from %s", name, candidate)
            return record

    logger.debug("No readable metadata for %s under %s", name, location)
    return None
